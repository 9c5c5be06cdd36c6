"""
题目模块的序列化工具函数：
- 作者始终内嵌；测试点只有在调用方显式要求时才出现在结果中
- 嵌套在比赛 / 题单 / 提交中的题目一律不带测试点
"""

from __future__ import annotations

from typing import Optional

from apps.accounts.serializers import serialize_user

from .models import Problem, TestCase


def serialize_test_case(test_case: Optional[TestCase]) -> Optional[dict]:
    if test_case is None:
        return None
    return {
        "test_case_id": test_case.test_case_id,
        "input_file": test_case.input_file,
        "output_file": test_case.output_file,
        "is_pretest": test_case.is_pretest,
        "is_hidden": test_case.is_hidden,
        "score": test_case.score,
    }


def serialize_problem(problem: Optional[Problem], *, include_test_cases: bool = False) -> Optional[dict]:
    """
    题目序列化：
    - include_test_cases=False 时结果中不存在 test_cases 键（而不是空列表）
    - 测试点来自预取的 test_case_links（已按加入顺序排列、已剔除悬挂引用）
    """
    if problem is None:
        return None
    data = {
        "problem_id": problem.problem_id,
        "author": serialize_user(problem.author),
        "author_username": problem.author_username,
        "display_name": problem.display_name,
        "creation_date": problem.creation_date,
        "is_public": problem.is_public,
        "time_limit": problem.time_limit,
        "memory_limit": problem.memory_limit,
        "input_source": problem.input_source,
        "output_source": problem.output_source,
        "checker": problem.checker,
    }
    if include_test_cases:
        data["test_cases"] = [serialize_test_case(link.test_case) for link in problem.test_case_links.all()]
    return data

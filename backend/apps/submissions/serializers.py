"""
提交模块的序列化工具函数：
- 作者、题目、比赛始终内嵌；嵌套题目不带测试点，嵌套比赛不带题目 / 参赛者 / 公告
- 评测结果聚合为 result，没有任何结果字段时为 None
"""

from __future__ import annotations

from typing import Optional

from apps.accounts.serializers import serialize_user
from apps.contests.serializers import serialize_contest
from apps.problems.serializers import serialize_problem, serialize_test_case

from .models import Submission


def serialize_result(submission: Submission) -> Optional[dict]:
    if not submission.has_result:
        return None
    return {
        "score": submission.score,
        "run_time": submission.run_time,
        "failed_test_case": serialize_test_case(submission.failed_test_case),
        "actual_output": submission.actual_output,
        "log": submission.log,
    }


def serialize_submission(submission: Optional[Submission]) -> Optional[dict]:
    if submission is None:
        return None
    return {
        "submission_id": submission.submission_id,
        "author": serialize_user(submission.author),
        "author_username": submission.author_username,
        "problem": serialize_problem(submission.problem),
        "problem_id": submission.problem_code,
        "contest": serialize_contest(submission.contest),
        "contest_id": submission.contest_code,
        "source_file": submission.source_file,
        "language": submission.language,
        "submission_time": submission.submission_time,
        "status": submission.status,
        "result": serialize_result(submission),
    }

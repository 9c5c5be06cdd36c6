from __future__ import annotations

from typing import Optional

from django.db import transaction
from django.db.models import Prefetch, QuerySet

from apps.accounts.repo import UserRepo
from apps.common.base.base_repo import BaseRepo
from apps.common.exceptions import ProblemNotFoundError, TestCaseNotFoundError
from apps.common.query import compose_query, count_query, visible_to
from apps.common.utils.validators import validate_required

from .models import Problem, ProblemTestCase, TestCase
from .schemas import ProblemBaseSchema, ProblemFilterOptions, TestCaseSchema
from .serializers import serialize_problem, serialize_test_case


# 仓储层：封装题目、测试点的 ORM 访问以及题目测试点集合的增删

#: 更新题目时忽略的字段（创建后不可修改）
PROBLEM_IMMUTABLE_FIELDS = {"problem_id", "author_username", "creation_date"}


def ordered_test_case_links() -> Prefetch:
    """按加入顺序预取题目的测试点；内连接会剔除已被删除的测试点"""
    return Prefetch(
        "test_case_links",
        queryset=ProblemTestCase.objects.select_related("test_case").order_by("id"),
    )


class TestCaseRepo(BaseRepo[TestCase]):
    """测试点仓储：test_case_id 为对外标识"""

    __test__ = False
    model = TestCase
    lookup_field = "test_case_id"
    entity_name = "test_case"
    not_found_error = TestCaseNotFoundError

    def get_test_case(self, test_case_id: str) -> Optional[dict]:
        return serialize_test_case(self.get_by_key(test_case_id))

    def add_test_case(self, schema: TestCaseSchema) -> dict:
        return serialize_test_case(self.create(schema.to_model_kwargs()))

    def update_test_case(self, schema: TestCaseSchema) -> Optional[dict]:
        with transaction.atomic():
            test_case = self.get_by_key(schema.test_case_id)
            if test_case is None:
                return None
            test_case = self.update(test_case, schema.to_model_kwargs(exclude={"test_case_id"}))
        return serialize_test_case(test_case)

    def delete_test_case(self, test_case_id: str) -> int:
        """硬删除测试点；引用它的题目在读取时自动跳过该测试点"""
        return self.delete_by_key(test_case_id)


class ProblemRepo(BaseRepo[Problem]):
    """
    题目仓储：
    - 读取时始终带上作者；测试点按需展开
    - 传入 as_user 时，只返回公开题目或该用户自己的题目
    """

    model = Problem
    lookup_field = "problem_id"
    entity_name = "problem"
    not_found_error = ProblemNotFoundError
    owned_links = ((ProblemTestCase, "problem"),)

    def __init__(self, user_repo: UserRepo | None = None, test_case_repo: TestCaseRepo | None = None):
        self.user_repo = user_repo or UserRepo()
        self.test_case_repo = test_case_repo or TestCaseRepo()

    def get_queryset(self) -> QuerySet[Problem]:
        return super().get_queryset().select_related("author")

    def expanded_queryset(self, *, include_test_cases: bool = False) -> QuerySet[Problem]:
        qs = self.get_queryset()
        if include_test_cases:
            qs = qs.prefetch_related(ordered_test_case_links())
        return qs

    # ------------------------
    # 读
    # ------------------------

    def get_problem(self, problem_id: str, include_test_cases: bool = False) -> Optional[dict]:
        problem = self.get_by_key(problem_id, queryset=self.expanded_queryset(include_test_cases=include_test_cases))
        return serialize_problem(problem, include_test_cases=include_test_cases)

    def list_problems(
            self,
            options: ProblemFilterOptions,
            as_user: str | None = None,
            include_test_cases: bool = False,
    ) -> list[dict]:
        extra = visible_to(as_user, owner_lookup="author_username") if as_user is not None else None
        qs = compose_query(self.expanded_queryset(include_test_cases=include_test_cases), options, extra=extra)
        return [serialize_problem(problem, include_test_cases=include_test_cases) for problem in qs]

    def count_problems(self, options: ProblemFilterOptions, as_user: str | None = None) -> int:
        extra = visible_to(as_user, owner_lookup="author_username") if as_user is not None else None
        return count_query(self.model._default_manager.all(), options, extra=extra)

    # ------------------------
    # 写
    # ------------------------

    def add_problem(self, schema: ProblemBaseSchema) -> dict:
        """在同一事务内解析作者并创建题目，作者不存在时不落任何数据"""
        validate_required(schema.author_username, field_name="author_username")
        with transaction.atomic():
            author = self.user_repo.require_user(schema.author_username)
            data = schema.to_model_kwargs(exclude={"author_username"})
            data.update(author=author, author_username=author.username)
            problem = self.create(data)
        return serialize_problem(problem)

    def update_problem(self, schema: ProblemBaseSchema) -> Optional[dict]:
        """忽略不可修改字段后更新；题目不存在返回 None"""
        with transaction.atomic():
            problem = self.get_by_key(schema.problem_id)
            if problem is None:
                return None
            self.update(problem, schema.to_model_kwargs(exclude=PROBLEM_IMMUTABLE_FIELDS))
        return self.get_problem(schema.problem_id)

    def delete_problem(self, problem_id: str) -> int:
        """硬删除题目及其测试点集合；比赛、题单、提交中的引用保持原样"""
        return self.delete_by_key(problem_id)

    # ------------------------
    # 测试点集合
    # ------------------------

    def add_problem_test_case(self, problem_id: str, test_case_id: str) -> dict:
        """把测试点加入题目（已存在时不重复加入），先校验题目再校验测试点"""
        with transaction.atomic():
            problem = self.require(problem_id, for_update=True)
            test_case = self.test_case_repo.require(test_case_id)
            problem.test_cases.add(test_case)
            self.log_write("test_case_added", problem_id, test_case_id=test_case_id)
        return self.get_problem(problem_id, include_test_cases=True)

    def remove_problem_test_case(self, problem_id: str, test_case_id: str) -> dict:
        """从题目移除测试点，不在集合中时什么都不做"""
        with transaction.atomic():
            problem = self.require(problem_id, for_update=True)
            test_case = self.test_case_repo.require(test_case_id)
            problem.test_cases.remove(test_case)
            self.log_write("test_case_removed", problem_id, test_case_id=test_case_id)
        return self.get_problem(problem_id, include_test_cases=True)

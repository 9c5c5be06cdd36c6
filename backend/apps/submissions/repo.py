from __future__ import annotations

from typing import Optional

from django.db import transaction
from django.db.models import QuerySet

from apps.accounts.repo import UserRepo
from apps.common.base.base_repo import BaseRepo
from apps.common.exceptions import SubmissionNotFoundError
from apps.common.query import compose_query, count_query, visible_to
from apps.common.utils.validators import validate_required
from apps.contests.repo import ContestRepo
from apps.problems.repo import ProblemRepo, TestCaseRepo

from .models import Submission
from .schemas import SubmissionBaseSchema, SubmissionFilterOptions
from .serializers import serialize_submission


# 仓储层：封装提交记录的 ORM 访问；创建 / 更新时在事务内解析所有引用

#: 引用字段：写库前替换为解析后的模型对象
REFERENCE_FIELDS = {"author_username", "problem_id", "contest_id", "failed_test_case_id"}
#: 更新提交时忽略的字段（创建后不可修改）
SUBMISSION_IMMUTABLE_FIELDS = {"submission_id", "author_username", "problem_id", "contest_id"}


class SubmissionRepo(BaseRepo[Submission]):
    """
    提交仓储：
    - 创建时依次解析作者 → 题目 → 未通过的测试点 → 比赛，任一缺失都不落数据
    - 传入 as_user 时，只返回该用户自己的提交或公开题目下的提交
    """

    model = Submission
    lookup_field = "submission_id"
    entity_name = "submission"
    not_found_error = SubmissionNotFoundError

    def __init__(
            self,
            user_repo: UserRepo | None = None,
            problem_repo: ProblemRepo | None = None,
            test_case_repo: TestCaseRepo | None = None,
            contest_repo: ContestRepo | None = None,
    ):
        self.user_repo = user_repo or UserRepo()
        self.test_case_repo = test_case_repo or TestCaseRepo()
        self.problem_repo = problem_repo or ProblemRepo(user_repo=self.user_repo, test_case_repo=self.test_case_repo)
        self.contest_repo = contest_repo or ContestRepo(user_repo=self.user_repo, problem_repo=self.problem_repo)

    def get_queryset(self) -> QuerySet[Submission]:
        return super().get_queryset().select_related(
            "author", "problem", "problem__author", "contest", "contest__organizer", "failed_test_case"
        )

    @staticmethod
    def visibility(as_user: str | None):
        if as_user is None:
            return None
        return visible_to(as_user, owner_lookup="author_username", public_lookup="problem__is_public")

    # ------------------------
    # 读
    # ------------------------

    def get_submission(self, submission_id: str) -> Optional[dict]:
        return serialize_submission(self.get_by_key(submission_id))

    def list_submissions(self, options: SubmissionFilterOptions, as_user: str | None = None) -> list[dict]:
        qs = compose_query(self.get_queryset(), options, extra=self.visibility(as_user))
        return [serialize_submission(submission) for submission in qs]

    def count_submissions(self, options: SubmissionFilterOptions, as_user: str | None = None) -> int:
        return count_query(self.model._default_manager.all(), options, extra=self.visibility(as_user))

    # ------------------------
    # 写
    # ------------------------

    def add_submission(self, schema: SubmissionBaseSchema) -> dict:
        validate_required(schema.author_username, field_name="author_username")
        validate_required(schema.problem_id, field_name="problem_id")
        with transaction.atomic():
            author = self.user_repo.require_user(schema.author_username)
            problem = self.problem_repo.require(schema.problem_id)
            failed_test_case = None
            if schema.failed_test_case_id:
                failed_test_case = self.test_case_repo.require(schema.failed_test_case_id)
            contest = None
            if schema.contest_id:
                contest = self.contest_repo.require(schema.contest_id)

            data = schema.to_model_kwargs(exclude=REFERENCE_FIELDS)
            data.update(
                author=author,
                author_username=author.username,
                problem=problem,
                problem_code=problem.problem_id,
                contest=contest,
                contest_code=contest.contest_id if contest is not None else None,
                failed_test_case=failed_test_case,
            )
            submission = self.create(data)
            return self.get_submission(submission.submission_id)

    def update_submission(self, schema: SubmissionBaseSchema) -> Optional[dict]:
        """
        忽略作者 / 题目 / 比赛后更新；提交不存在返回 None。
        新的 failed_test_case_id 在同一事务内解析，不存在时整体回滚
        """
        with transaction.atomic():
            submission = self.get_by_key(schema.submission_id, queryset=self.model._default_manager.all())
            if submission is None:
                return None
            data = schema.to_model_kwargs(exclude=SUBMISSION_IMMUTABLE_FIELDS | {"failed_test_case_id"})
            if schema.failed_test_case_id:
                data["failed_test_case"] = self.test_case_repo.require(schema.failed_test_case_id)
            self.update(submission, data)
            return self.get_submission(schema.submission_id)

    def delete_submission(self, submission_id: str) -> int:
        return self.delete_by_key(submission_id)

from __future__ import annotations

from typing import Optional

from django.db import transaction
from django.db.models import Prefetch, QuerySet

from apps.accounts.repo import UserRepo
from apps.common.base.base_repo import BaseRepo
from apps.common.exceptions import AnnouncementNotFoundError, ContestNotFoundError
from apps.common.query import compose_query, count_query, visible_to
from apps.common.utils.validators import validate_required
from apps.problems.repo import ProblemRepo

from .models import Announcement, Contest, ContestParticipant, ContestProblem
from .schemas import AnnouncementSchema, ContestBaseSchema, ContestExpandOptions, ContestFilterOptions
from .serializers import serialize_announcement, serialize_contest


# 仓储层：封装比赛、公告的 ORM 访问，以及比赛题目 / 参赛者集合的增删

#: 更新比赛时忽略的字段（创建后不可修改）
CONTEST_IMMUTABLE_FIELDS = {"contest_id", "organizer_username"}


class ContestRepo(BaseRepo[Contest]):
    """
    比赛仓储：
    - 读取时始终带上组织者；题目、参赛者、公告按 ContestExpandOptions 展开
    - 集合关系的增删在事务内先校验比赛，再校验被引用的题目 / 用户
    """

    model = Contest
    lookup_field = "contest_id"
    entity_name = "contest"
    not_found_error = ContestNotFoundError
    owned_links = ((ContestProblem, "contest"), (ContestParticipant, "contest"))

    def __init__(self, user_repo: UserRepo | None = None, problem_repo: ProblemRepo | None = None):
        self.user_repo = user_repo or UserRepo()
        self.problem_repo = problem_repo or ProblemRepo(user_repo=self.user_repo)

    def get_queryset(self) -> QuerySet[Contest]:
        return super().get_queryset().select_related("organizer")

    def expanded_queryset(self, expand: ContestExpandOptions) -> QuerySet[Contest]:
        """按展开选项附加预取；内连接剔除已被删除的题目 / 用户"""
        qs = self.get_queryset()
        if expand.include_problems:
            qs = qs.prefetch_related(Prefetch(
                "problem_links",
                queryset=ContestProblem.objects.select_related("problem", "problem__author").order_by("id"),
            ))
        if expand.include_participants:
            qs = qs.prefetch_related(Prefetch(
                "participant_links",
                queryset=ContestParticipant.objects.select_related("user").order_by("user__username"),
            ))
        if expand.include_announcements:
            qs = qs.prefetch_related(Prefetch(
                "announcements",
                queryset=Announcement.objects.order_by("-timestamp", "-id"),
            ))
        return qs

    # ------------------------
    # 读
    # ------------------------

    def get_contest(self, contest_id: str, expand: ContestExpandOptions | None = None) -> Optional[dict]:
        expand = expand or ContestExpandOptions()
        contest = self.get_by_key(contest_id, queryset=self.expanded_queryset(expand))
        return serialize_contest(contest, expand=expand)

    def list_contests(
            self,
            options: ContestFilterOptions,
            as_user: str | None = None,
            expand: ContestExpandOptions | None = None,
    ) -> list[dict]:
        expand = expand or ContestExpandOptions()
        extra = visible_to(as_user, owner_lookup="organizer_username") if as_user is not None else None
        qs = compose_query(self.expanded_queryset(expand), options, extra=extra)
        return [serialize_contest(contest, expand=expand) for contest in qs]

    def count_contests(self, options: ContestFilterOptions, as_user: str | None = None) -> int:
        extra = visible_to(as_user, owner_lookup="organizer_username") if as_user is not None else None
        return count_query(self.model._default_manager.all(), options, extra=extra)

    # ------------------------
    # 写
    # ------------------------

    def add_contest(self, schema: ContestBaseSchema) -> dict:
        """在同一事务内解析组织者并创建比赛"""
        validate_required(schema.organizer_username, field_name="organizer_username")
        with transaction.atomic():
            organizer = self.user_repo.require_user(schema.organizer_username)
            data = schema.to_model_kwargs(exclude={"organizer_username"})
            data.update(organizer=organizer, organizer_username=organizer.username)
            contest = self.create(data)
        return serialize_contest(contest)

    def update_contest(self, schema: ContestBaseSchema) -> Optional[dict]:
        """忽略 contest_id / organizer_username 后更新；比赛不存在返回 None"""
        with transaction.atomic():
            contest = self.get_by_key(schema.contest_id)
            if contest is None:
                return None
            self.update(contest, schema.to_model_kwargs(exclude=CONTEST_IMMUTABLE_FIELDS))
        return self.get_contest(schema.contest_id)

    def delete_contest(self, contest_id: str) -> int:
        """硬删除比赛及其题目 / 参赛者集合；公告与提交中的引用保持原样"""
        return self.delete_by_key(contest_id)

    # ------------------------
    # 题目集合
    # ------------------------

    def add_contest_problem(self, contest_id: str, problem_id: str) -> dict:
        with transaction.atomic():
            contest = self.require(contest_id, for_update=True)
            problem = self.problem_repo.require(problem_id)
            contest.problems.add(problem)
            self.log_write("problem_added", contest_id, problem_id=problem_id)
        return self.get_contest(contest_id, ContestExpandOptions(include_problems=True))

    def remove_contest_problem(self, contest_id: str, problem_id: str) -> dict:
        with transaction.atomic():
            contest = self.require(contest_id, for_update=True)
            problem = self.problem_repo.require(problem_id)
            contest.problems.remove(problem)
            self.log_write("problem_removed", contest_id, problem_id=problem_id)
        return self.get_contest(contest_id, ContestExpandOptions(include_problems=True))

    # ------------------------
    # 参赛者集合
    # ------------------------

    def add_contest_participant(self, contest_id: str, username: str) -> dict:
        """比赛与用户都不存在时，先报比赛不存在"""
        with transaction.atomic():
            contest = self.require(contest_id, for_update=True)
            user = self.user_repo.require_user(username)
            contest.participants.add(user)
            self.log_write("participant_added", contest_id, username=username)
        return self.get_contest(contest_id, ContestExpandOptions(include_participants=True))

    def remove_contest_participant(self, contest_id: str, username: str) -> dict:
        with transaction.atomic():
            contest = self.require(contest_id, for_update=True)
            user = self.user_repo.require_user(username)
            contest.participants.remove(user)
            self.log_write("participant_removed", contest_id, username=username)
        return self.get_contest(contest_id, ContestExpandOptions(include_participants=True))


class AnnouncementRepo(BaseRepo[Announcement]):
    """
    比赛公告仓储：
    - 创建时在事务内解析所属比赛
    - 更新不存在的公告抛 AnnouncementNotFoundError；按 id 删除不存在的公告返回 0
    """

    model = Announcement
    lookup_field = "announcement_id"
    entity_name = "announcement"
    not_found_error = AnnouncementNotFoundError

    def __init__(self, contest_repo: ContestRepo | None = None):
        self.contest_repo = contest_repo or ContestRepo()

    def get_announcement(self, announcement_id: str) -> Optional[dict]:
        return serialize_announcement(self.get_by_key(announcement_id))

    def add_announcement(self, contest_id: str, schema: AnnouncementSchema) -> dict:
        with transaction.atomic():
            contest = self.contest_repo.require(contest_id)
            data = schema.to_model_kwargs()
            data["of_contest"] = contest
            announcement = self.create(data)
        return serialize_announcement(announcement)

    def update_announcement(self, schema: AnnouncementSchema) -> dict:
        """announcement_id 仅用于定位；所属比赛不随更新变化"""
        with transaction.atomic():
            announcement = self.require(schema.announcement_id)
            announcement = self.update(announcement, schema.to_model_kwargs(exclude={"announcement_id"}))
        return serialize_announcement(announcement)

    def delete_announcement(self, announcement_id: str) -> int:
        return self.delete_by_key(announcement_id)

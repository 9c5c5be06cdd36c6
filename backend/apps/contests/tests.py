from __future__ import annotations

from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from apps.accounts.repo import UserRepo
from apps.accounts.schemas import UserSchema
from apps.common.exceptions import (
    AnnouncementNotFoundError,
    ContestNotFoundError,
    ProblemNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from apps.problems.repo import ProblemRepo, TestCaseRepo
from apps.problems.schemas import ProblemBaseSchema, TestCaseSchema

from .models import Announcement, Contest, ContestProblem
from .repo import AnnouncementRepo, ContestRepo
from .schemas import AnnouncementSchema, ContestBaseSchema, ContestExpandOptions, ContestFilterOptions


# 测试用例：覆盖 contests 模块的仓储层，包括集合关系、展开与公告


class ContestRepoTestBase(TestCase):
    """构造用户、题目与一场公开比赛，供各用例复用"""

    def setUp(self) -> None:
        self.user_repo = UserRepo()
        self.test_case_repo = TestCaseRepo()
        self.problem_repo = ProblemRepo(user_repo=self.user_repo, test_case_repo=self.test_case_repo)
        self.repo = ContestRepo(user_repo=self.user_repo, problem_repo=self.problem_repo)
        self.announcement_repo = AnnouncementRepo(contest_repo=self.repo)
        self.start = timezone.now().replace(microsecond=0) + timedelta(days=1)

        for username, display_name in (("alice_01", "Alice"), ("bob_0001", "Bob"), ("carol_01", "Carol")):
            self.user_repo.add_user(UserSchema(username=username, display_name=display_name))
        for problem_id in ("p1", "p2"):
            self.problem_repo.add_problem(
                ProblemBaseSchema(problem_id=problem_id, author_username="alice_01", display_name=problem_id)
            )
        self.test_case_repo.add_test_case(TestCaseSchema(test_case_id="tc1", input_file="1.in", output_file="1.out"))
        self.problem_repo.add_problem_test_case("p1", "tc1")
        self.add_contest("c1", "alice_01", is_public=True)

    def add_contest(self, contest_id: str, organizer: str, *, days: int = 0, **extra) -> dict:
        return self.repo.add_contest(
            ContestBaseSchema(
                contest_id=contest_id,
                organizer_username=organizer,
                display_name=extra.pop("display_name", contest_id.upper()),
                start_time=self.start + timedelta(days=days),
                duration=extra.pop("duration", 2 * 60 * 60 * 1000),
                **extra,
            )
        )


class ContestCrudTests(ContestRepoTestBase):
    """比赛创建、更新、删除与字段约束"""

    def test_add_contest_embeds_organizer(self):
        contest = self.repo.get_contest("c1")
        self.assertEqual(contest["organizer"], {"username": "alice_01", "display_name": "Alice"})
        self.assertEqual(contest["organizer_username"], "alice_01")
        self.assertEqual(contest["format"], "ICPC")

    def test_duration_minimum_is_five_minutes(self):
        with self.assertRaises(ValidationError):
            self.add_contest("short", "alice_01", duration=299999)
        self.add_contest("exact", "alice_01", duration=300000)

    def test_format_must_be_known(self):
        with self.assertRaises(ValidationError):
            self.add_contest("c2", "alice_01", format="Codeforces")

    def test_missing_organizer_writes_nothing(self):
        with self.assertRaises(UserNotFoundError):
            self.add_contest("c2", "ghost_user")
        self.assertFalse(Contest.objects.filter(contest_id="c2").exists())

    def test_description_is_trimmed_and_sanitized(self):
        contest = self.add_contest("c2", "alice_01", description="  rules  ")
        self.assertEqual(contest["description"], "rules")
        with self.assertRaises(ValidationError):
            self.add_contest("c3", "alice_01", description="<script>alert(1)</script>")

    def test_update_ignores_organizer(self):
        updated = self.repo.update_contest(
            ContestBaseSchema(contest_id="c1", organizer_username="bob_0001", display_name="Renamed", format="IOI")
        )
        self.assertEqual(updated["display_name"], "Renamed")
        self.assertEqual(updated["format"], "IOI")
        self.assertEqual(updated["organizer_username"], "alice_01")
        self.assertIsNone(self.repo.update_contest(ContestBaseSchema(contest_id="nope", display_name="X")))

    def test_delete_keeps_announcements(self):
        """删除比赛不级联删除公告"""
        self.announcement_repo.add_announcement("c1", AnnouncementSchema(announcement_id="a1", subject="Hi"))
        self.repo.add_contest_problem("c1", "p1")
        self.assertEqual(self.repo.delete_contest("c1"), 1)
        self.assertEqual(self.repo.delete_contest("c1"), 0)
        self.assertIsNone(self.repo.get_contest("c1"))
        self.assertIsNotNone(self.announcement_repo.get_announcement("a1"))
        self.assertEqual(ContestProblem.objects.count(), 0)


class ContestRelationTests(ContestRepoTestBase):
    """题目 / 参赛者集合：幂等、检查顺序与展开"""

    def test_add_problem_twice_keeps_one_entry(self):
        self.repo.add_contest_problem("c1", "p1")
        contest = self.repo.add_contest_problem("c1", "p1")
        self.assertEqual([problem["problem_id"] for problem in contest["problems"]], ["p1"])
        self.assertEqual(ContestProblem.objects.filter(contest__contest_id="c1").count(), 1)

    def test_remove_non_member_is_noop(self):
        self.repo.add_contest_problem("c1", "p1")
        contest = self.repo.remove_contest_problem("c1", "p2")
        self.assertEqual([problem["problem_id"] for problem in contest["problems"]], ["p1"])

    def test_missing_contest_reported_before_missing_user(self):
        with self.assertRaises(ContestNotFoundError) as ctx:
            self.repo.add_contest_participant("no-contest", "ghost_user")
        self.assertEqual(ctx.exception.contest_id, "no-contest")
        with self.assertRaises(UserNotFoundError):
            self.repo.add_contest_participant("c1", "ghost_user")
        with self.assertRaises(ProblemNotFoundError):
            self.repo.add_contest_problem("c1", "p-missing")

    def test_participants_sorted_by_username_and_idempotent(self):
        self.repo.add_contest_participant("c1", "carol_01")
        self.repo.add_contest_participant("c1", "bob_0001")
        contest = self.repo.add_contest_participant("c1", "carol_01")
        self.assertEqual([user["username"] for user in contest["participants"]], ["bob_0001", "carol_01"])
        contest = self.repo.remove_contest_participant("c1", "bob_0001")
        self.assertEqual([user["username"] for user in contest["participants"]], ["carol_01"])
        self.assertNotIn("problems", contest)

    def test_expansion_only_includes_requested_relations(self):
        self.repo.add_contest_problem("c1", "p1")
        self.repo.add_contest_participant("c1", "bob_0001")
        self.announcement_repo.add_announcement("c1", AnnouncementSchema(announcement_id="a1", subject="Hi"))

        plain = self.repo.get_contest("c1")
        for key in ("problems", "participants", "announcements"):
            self.assertNotIn(key, plain)

        with_problems = self.repo.get_contest("c1", ContestExpandOptions(include_problems=True))
        self.assertEqual([problem["problem_id"] for problem in with_problems["problems"]], ["p1"])
        self.assertNotIn("test_cases", with_problems["problems"][0])
        self.assertNotIn("participants", with_problems)
        self.assertNotIn("announcements", with_problems)

        full = self.repo.get_contest(
            "c1",
            ContestExpandOptions(include_problems=True, include_participants=True, include_announcements=True),
        )
        self.assertEqual([user["username"] for user in full["participants"]], ["bob_0001"])
        self.assertEqual([item["announcement_id"] for item in full["announcements"]], ["a1"])

    def test_deleted_problem_disappears_from_contest(self):
        self.repo.add_contest_problem("c1", "p1")
        self.repo.add_contest_problem("c1", "p2")
        self.problem_repo.delete_problem("p1")
        contest = self.repo.get_contest("c1", ContestExpandOptions(include_problems=True))
        self.assertEqual([problem["problem_id"] for problem in contest["problems"]], ["p2"])


class ContestListTests(ContestRepoTestBase):
    """列表查询：可见性、组织者过滤、时长区间与展开"""

    def setUp(self) -> None:
        super().setUp()
        self.add_contest("c2", "bob_0001", days=1)
        self.add_contest("c3", "bob_0001", days=2, is_public=True, format="IOI", duration=600000)

    def ids(self, options: ContestFilterOptions, **kwargs) -> list[str]:
        return [contest["contest_id"] for contest in self.repo.list_contests(options, **kwargs)]

    def test_default_order_is_latest_start_first(self):
        self.assertEqual(self.ids(ContestFilterOptions()), ["c3", "c2", "c1"])

    def test_as_user_visibility(self):
        self.assertEqual(self.ids(ContestFilterOptions(), as_user="alice_01"), ["c3", "c1"])
        self.assertEqual(self.ids(ContestFilterOptions(), as_user="bob_0001"), ["c3", "c2", "c1"])
        self.assertEqual(self.repo.count_contests(ContestFilterOptions(), as_user="carol_01"), 2)

    def test_filters_combine_with_and(self):
        self.assertEqual(self.ids(ContestFilterOptions(organizer=["bob_0001"], format=["IOI"])), ["c3"])
        self.assertEqual(self.ids(ContestFilterOptions(duration=[None, 600000])), ["c3"])
        self.assertEqual(self.ids(ContestFilterOptions(is_public=False)), ["c2"])

    def test_duration_bounds_must_be_integers(self):
        with self.assertRaises(ValidationError):
            ContestFilterOptions(duration=["abc", None])
        with self.assertRaises(ValidationError):
            ContestFilterOptions(duration=["abc", 5])
        with self.assertRaises(ValidationError):
            ContestFilterOptions(duration=[None, 1.5])
        with self.assertRaises(ValidationError):
            self.repo.list_contests(ContestFilterOptions(duration=["abc", None]))

    def test_list_expansion_is_per_item(self):
        self.repo.add_contest_problem("c1", "p1")
        contests = self.repo.list_contests(ContestFilterOptions(), expand=ContestExpandOptions(include_problems=True))
        by_id = {contest["contest_id"]: contest for contest in contests}
        self.assertEqual([problem["problem_id"] for problem in by_id["c1"]["problems"]], ["p1"])
        self.assertEqual(by_id["c2"]["problems"], [])
        self.assertNotIn("participants", by_id["c2"])


class AnnouncementRepoTests(ContestRepoTestBase):
    """公告：创建需要比赛存在，更新 / 删除的两种缺失语义"""

    def test_add_requires_contest(self):
        with self.assertRaises(ContestNotFoundError):
            self.announcement_repo.add_announcement("no-contest", AnnouncementSchema(announcement_id="a1", subject="x"))
        self.assertFalse(Announcement.objects.exists())

    def test_subject_and_content_are_trimmed(self):
        announcement = self.announcement_repo.add_announcement(
            "c1", AnnouncementSchema(announcement_id="a1", subject="  Clarification ", content=" p1 fixed  ")
        )
        self.assertEqual(announcement["subject"], "Clarification")
        self.assertEqual(announcement["content"], "p1 fixed")

    def test_update_and_delete(self):
        self.announcement_repo.add_announcement("c1", AnnouncementSchema(announcement_id="a1", subject="Old"))
        updated = self.announcement_repo.update_announcement(AnnouncementSchema(announcement_id="a1", subject="New"))
        self.assertEqual(updated["subject"], "New")
        with self.assertRaises(AnnouncementNotFoundError):
            self.announcement_repo.update_announcement(AnnouncementSchema(announcement_id="a9", subject="New"))
        self.assertEqual(self.announcement_repo.delete_announcement("a1"), 1)
        self.assertEqual(self.announcement_repo.delete_announcement("a1"), 0)

    def test_announcements_newest_first(self):
        now = timezone.now()
        self.announcement_repo.add_announcement(
            "c1", AnnouncementSchema(announcement_id="a-old", subject="old", timestamp=now - timedelta(hours=1))
        )
        self.announcement_repo.add_announcement("c1", AnnouncementSchema(announcement_id="a-new", subject="new", timestamp=now))
        contest = self.repo.get_contest("c1", ContestExpandOptions(include_announcements=True))
        self.assertEqual([item["announcement_id"] for item in contest["announcements"]], ["a-new", "a-old"])

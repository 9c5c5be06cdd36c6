from __future__ import annotations

from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from apps.accounts.repo import UserRepo
from apps.accounts.schemas import UserSchema
from apps.common.exceptions import (
    ContestNotFoundError,
    ProblemNotFoundError,
    TestCaseNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from apps.contests.repo import ContestRepo
from apps.contests.schemas import ContestBaseSchema
from apps.problems.repo import ProblemRepo, TestCaseRepo
from apps.problems.schemas import ProblemBaseSchema, TestCaseSchema

from .models import Submission, SubmissionStatus
from .repo import SubmissionRepo
from .schemas import SubmissionBaseSchema, SubmissionFilterOptions


# 测试用例：覆盖 submissions 模块的仓储层，包括引用解析、过滤与结果展开


class SubmissionRepoTestBase(TestCase):
    """构造用户、公开 / 私有题目、测试点与比赛，供各用例复用"""

    def setUp(self) -> None:
        self.user_repo = UserRepo()
        self.test_case_repo = TestCaseRepo()
        self.problem_repo = ProblemRepo(user_repo=self.user_repo, test_case_repo=self.test_case_repo)
        self.contest_repo = ContestRepo(user_repo=self.user_repo, problem_repo=self.problem_repo)
        self.repo = SubmissionRepo(
            user_repo=self.user_repo,
            problem_repo=self.problem_repo,
            test_case_repo=self.test_case_repo,
            contest_repo=self.contest_repo,
        )
        self.t0 = timezone.now().replace(microsecond=0) - timedelta(hours=5)

        for username in ("alice_01", "bob_0001"):
            self.user_repo.add_user(UserSchema(username=username, display_name=username.title()))
        self.problem_repo.add_problem(
            ProblemBaseSchema(problem_id="pub", author_username="alice_01", display_name="Public", is_public=True)
        )
        self.problem_repo.add_problem(
            ProblemBaseSchema(problem_id="priv", author_username="alice_01", display_name="Private")
        )
        self.test_case_repo.add_test_case(TestCaseSchema(test_case_id="tc1", input_file="1.in", output_file="1.out"))
        self.test_case_repo.add_test_case(TestCaseSchema(test_case_id="tc2", input_file="2.in", output_file="2.out"))
        self.problem_repo.add_problem_test_case("pub", "tc1")
        self.contest_repo.add_contest(
            ContestBaseSchema(
                contest_id="c1",
                organizer_username="alice_01",
                display_name="Round 1",
                start_time=self.t0,
                duration=3 * 60 * 60 * 1000,
            )
        )
        self.contest_repo.add_contest_problem("c1", "pub")

    def submit(self, submission_id: str, author: str, problem: str, *, minutes: int = 0, **extra) -> dict:
        return self.repo.add_submission(
            SubmissionBaseSchema(
                submission_id=submission_id,
                author_username=author,
                problem_id=problem,
                source_file=f"{submission_id}.cpp",
                language=extra.pop("language", "Cpp"),
                submission_time=self.t0 + timedelta(minutes=minutes),
                **extra,
            )
        )


class SubmissionWriteTests(SubmissionRepoTestBase):
    """创建与更新：引用解析顺序、原子性、不可修改字段"""

    def test_add_submission_expands_references(self):
        submission = self.submit("s1", "bob_0001", "pub", contest_id="c1")
        self.assertEqual(submission["author"]["username"], "bob_0001")
        self.assertEqual(submission["problem"]["problem_id"], "pub")
        self.assertNotIn("test_cases", submission["problem"])
        self.assertEqual(submission["contest"]["contest_id"], "c1")
        for key in ("problems", "participants", "announcements"):
            self.assertNotIn(key, submission["contest"])
        self.assertEqual(submission["contest_id"], "c1")
        self.assertEqual(submission["status"], SubmissionStatus.SUBMITTED)
        self.assertIsNone(submission["result"])

    def test_submission_outside_contest(self):
        submission = self.submit("s1", "bob_0001", "pub")
        self.assertIsNone(submission["contest"])
        self.assertIsNone(submission["contest_id"])

    def test_reference_checks_in_order_and_atomic(self):
        """作者 → 题目 → 测试点 → 比赛，任一缺失都不落数据"""
        with self.assertRaises(UserNotFoundError):
            self.submit("s1", "ghost_user", "p-missing", contest_id="c-missing")
        with self.assertRaises(ProblemNotFoundError):
            self.submit("s1", "bob_0001", "p-missing", failed_test_case_id="tc-missing")
        with self.assertRaises(TestCaseNotFoundError):
            self.submit("s1", "bob_0001", "pub", failed_test_case_id="tc-missing", contest_id="c-missing")
        with self.assertRaises(ContestNotFoundError):
            self.submit("s1", "bob_0001", "pub", contest_id="c-missing")
        self.assertFalse(Submission.objects.exists())

    def test_invalid_enums_are_rejected(self):
        with self.assertRaises(ValidationError):
            self.submit("s1", "bob_0001", "pub", language="Rust")
        with self.assertRaises(ValidationError):
            self.submit("s1", "bob_0001", "pub", status="Crashed")

    def test_update_records_result_and_ignores_references(self):
        self.submit("s1", "bob_0001", "pub", contest_id="c1")
        updated = self.repo.update_submission(
            SubmissionBaseSchema(
                submission_id="s1",
                author_username="alice_01",
                problem_id="priv",
                contest_id=None,
                status=SubmissionStatus.WA,
                score=0,
                run_time=120,
                failed_test_case_id="tc1",
                actual_output="3\n",
            )
        )
        self.assertEqual(updated["author_username"], "bob_0001")
        self.assertEqual(updated["problem_id"], "pub")
        self.assertEqual(updated["contest_id"], "c1")
        self.assertEqual(updated["status"], "WA")
        self.assertEqual(updated["result"]["failed_test_case"]["test_case_id"], "tc1")
        self.assertEqual(updated["result"]["run_time"], 120)
        self.assertIn(updated["status"], SubmissionStatus.terminal())

    def test_update_with_missing_test_case_rolls_back(self):
        self.submit("s1", "bob_0001", "pub")
        with self.assertRaises(TestCaseNotFoundError):
            self.repo.update_submission(
                SubmissionBaseSchema(submission_id="s1", status=SubmissionStatus.WA, failed_test_case_id="tc-missing")
            )
        self.assertEqual(self.repo.get_submission("s1")["status"], "Submitted")

    def test_update_missing_submission_returns_none(self):
        self.assertIsNone(self.repo.update_submission(SubmissionBaseSchema(submission_id="nope", status="Judging")))

    def test_delete_and_dangling_references(self):
        """删除题目 / 比赛 / 测试点后，提交仍可读取，对应引用为 None"""
        self.submit("s1", "bob_0001", "pub", contest_id="c1", failed_test_case_id="tc2", score=10)
        self.contest_repo.delete_contest("c1")
        self.problem_repo.delete_problem("pub")
        self.test_case_repo.delete_test_case("tc2")
        submission = self.repo.get_submission("s1")
        self.assertIsNone(submission["problem"])
        self.assertIsNone(submission["contest"])
        self.assertEqual(submission["problem_id"], "pub")
        self.assertIsNone(submission["result"]["failed_test_case"])
        self.assertEqual(self.repo.delete_submission("s1"), 1)
        self.assertEqual(self.repo.delete_submission("s1"), 0)


class SubmissionListTests(SubmissionRepoTestBase):
    """列表查询：可见性按题目是否公开判断；比赛过滤支持 None"""

    def setUp(self) -> None:
        super().setUp()
        self.submit("s1", "bob_0001", "pub", minutes=1, contest_id="c1")
        self.submit("s2", "bob_0001", "priv", minutes=2)
        self.submit("s3", "alice_01", "priv", minutes=3, language="Python3")
        self.submit("s4", "alice_01", "pub", minutes=4, status="Accepted")

    def ids(self, options: SubmissionFilterOptions, as_user: str | None = None) -> list[str]:
        return [submission["submission_id"] for submission in self.repo.list_submissions(options, as_user=as_user)]

    def test_default_order_is_newest_first(self):
        self.assertEqual(self.ids(SubmissionFilterOptions()), ["s4", "s3", "s2", "s1"])

    def test_as_user_sees_own_and_public_problem_submissions(self):
        self.assertEqual(self.ids(SubmissionFilterOptions(), as_user="bob_0001"), ["s4", "s2", "s1"])
        self.assertEqual(self.repo.count_submissions(SubmissionFilterOptions(), as_user="carol_01"), 2)

    def test_contest_filter_matches_submissions_outside_contests(self):
        self.assertEqual(self.ids(SubmissionFilterOptions(contest=[None])), ["s4", "s3", "s2"])
        self.assertEqual(self.ids(SubmissionFilterOptions(contest=["c1"])), ["s1"])
        self.assertEqual(self.ids(SubmissionFilterOptions(contest=["c1", None], author=["bob_0001"])), ["s2", "s1"])

    def test_list_filters(self):
        self.assertEqual(self.ids(SubmissionFilterOptions(language=["Python3"])), ["s3"])
        self.assertEqual(self.ids(SubmissionFilterOptions(status=["Accepted"])), ["s4"])
        self.assertEqual(self.ids(SubmissionFilterOptions(problem=["priv"], author=["alice_01"])), ["s3"])
        window = [self.t0 + timedelta(minutes=2), self.t0 + timedelta(minutes=3)]
        self.assertEqual(self.ids(SubmissionFilterOptions(submission_time=window)), ["s3", "s2"])

    def test_sort_by_problem_id(self):
        options = SubmissionFilterOptions(sort_fields=["problem_id", "-submission_time"])
        self.assertEqual(self.ids(options), ["s3", "s2", "s4", "s1"])

from __future__ import annotations

from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from apps.accounts.repo import UserRepo
from apps.accounts.schemas import UserSchema
from apps.common.exceptions import ProblemNotFoundError, TestCaseNotFoundError, UserNotFoundError, ValidationError
from apps.common.query import SortField

from .models import Problem, ProblemTestCase
from .repo import ProblemRepo, TestCaseRepo
from .schemas import ProblemBaseSchema, ProblemFilterOptions, TestCaseSchema


# 测试用例：覆盖 problems 模块的仓储层，包括过滤、展开与测试点集合


class ProblemRepoTestBase(TestCase):
    """构造两个用户与一组题目，供各用例复用"""

    def setUp(self) -> None:
        self.user_repo = UserRepo()
        self.test_case_repo = TestCaseRepo()
        self.repo = ProblemRepo(user_repo=self.user_repo, test_case_repo=self.test_case_repo)
        self.user_repo.add_user(UserSchema(username="alice_01", display_name="Alice"))
        self.user_repo.add_user(UserSchema(username="bob_0001", display_name="Bob"))
        self.t0 = timezone.now().replace(microsecond=0) - timedelta(days=10)

    def add_problem(self, problem_id: str, author: str, *, days: int = 0, is_public: bool = False, **extra) -> dict:
        return self.repo.add_problem(
            ProblemBaseSchema(
                problem_id=problem_id,
                author_username=author,
                display_name=extra.pop("display_name", problem_id.upper()),
                creation_date=self.t0 + timedelta(days=days),
                is_public=is_public,
                **extra,
            )
        )

    def add_test_case(self, test_case_id: str, score: float = 10) -> dict:
        return self.test_case_repo.add_test_case(
            TestCaseSchema(
                test_case_id=test_case_id,
                input_file=f"{test_case_id}.in",
                output_file=f"{test_case_id}.out",
                score=score,
            )
        )


class ProblemCrudTests(ProblemRepoTestBase):
    """题目创建、读取、更新、删除"""

    def test_add_problem_embeds_author_and_denormalizes_username(self):
        problem = self.add_problem("p1", "alice_01", display_name="  A + B  ")
        self.assertEqual(problem["display_name"], "A + B")
        self.assertEqual(problem["author"], {"username": "alice_01", "display_name": "Alice"})
        self.assertEqual(problem["author_username"], "alice_01")
        self.assertEqual(problem["input_source"], "stdio")
        self.assertNotIn("test_cases", problem)

    def test_duplicate_problem_id_keeps_first(self):
        """重复的 problem_id 报参数错误，第一条记录保持不变"""
        self.add_problem("p1", "alice_01", display_name="First")
        with self.assertRaises(ValidationError):
            self.add_problem("p1", "bob_0001", display_name="Second")
        problem = self.repo.get_problem("p1")
        self.assertEqual(problem["display_name"], "First")
        self.assertEqual(problem["author_username"], "alice_01")

    def test_add_problem_with_missing_author_writes_nothing(self):
        with self.assertRaises(UserNotFoundError):
            self.add_problem("p1", "ghost_user")
        self.assertFalse(Problem.objects.filter(problem_id="p1").exists())

    def test_limits_are_enforced(self):
        with self.assertRaises(ValidationError):
            self.add_problem("p1", "alice_01", time_limit=99)
        with self.assertRaises(ValidationError):
            self.add_problem("p2", "alice_01", memory_limit=15)
        with self.assertRaises(ValidationError):
            self.add_problem("p3", "alice_01", input_source="../etc/passwd")
        self.assertEqual(Problem.objects.count(), 0)

    def test_update_ignores_immutable_fields(self):
        """更新时作者、problem_id、创建时间不可修改"""
        created = self.add_problem("p1", "alice_01")
        updated = self.repo.update_problem(
            ProblemBaseSchema(
                problem_id="p1",
                author_username="bob_0001",
                display_name="X",
                creation_date=self.t0 + timedelta(days=100),
                time_limit=2000,
            )
        )
        self.assertEqual(updated["display_name"], "X")
        self.assertEqual(updated["time_limit"], 2000)
        self.assertEqual(updated["author_username"], "alice_01")
        self.assertEqual(updated["author"]["username"], "alice_01")
        self.assertEqual(updated["creation_date"], created["creation_date"])

    def test_update_missing_problem_returns_none(self):
        self.assertIsNone(self.repo.update_problem(ProblemBaseSchema(problem_id="nope", display_name="X")))

    def test_delete_signals_by_count(self):
        self.add_problem("p1", "alice_01")
        self.assertEqual(self.repo.delete_problem("does-not-exist"), 0)
        self.assertEqual(self.repo.delete_problem("p1"), 1)
        self.assertIsNone(self.repo.get_problem("p1"))

    def test_deleted_author_reads_back_as_none(self):
        """删除作者不会级联删除题目，题目的 author 读出为 None"""
        self.add_problem("p1", "alice_01")
        self.user_repo.delete_user("alice_01")
        problem = self.repo.get_problem("p1")
        self.assertIsNone(problem["author"])
        self.assertEqual(problem["author_username"], "alice_01")


class ProblemTestCaseSetTests(ProblemRepoTestBase):
    """题目测试点集合：顺序、去重、原子性与悬挂引用"""

    def setUp(self) -> None:
        super().setUp()
        self.add_problem("p1", "alice_01")
        self.add_test_case("tc1")
        self.add_test_case("tc2")

    def test_add_is_idempotent_and_ordered(self):
        self.repo.add_problem_test_case("p1", "tc2")
        self.repo.add_problem_test_case("p1", "tc1")
        problem = self.repo.add_problem_test_case("p1", "tc2")
        self.assertEqual([tc["test_case_id"] for tc in problem["test_cases"]], ["tc2", "tc1"])
        self.assertEqual(ProblemTestCase.objects.count(), 2)

    def test_remove_non_member_is_noop(self):
        self.repo.add_problem_test_case("p1", "tc1")
        problem = self.repo.remove_problem_test_case("p1", "tc2")
        self.assertEqual([tc["test_case_id"] for tc in problem["test_cases"]], ["tc1"])
        problem = self.repo.remove_problem_test_case("p1", "tc1")
        self.assertEqual(problem["test_cases"], [])

    def test_missing_test_case_leaves_set_unchanged(self):
        """测试点不存在时报错，题目的测试点集合不变"""
        self.repo.add_problem_test_case("p1", "tc1")
        with self.assertRaises(TestCaseNotFoundError):
            self.repo.add_problem_test_case("p1", "tc-missing")
        problem = self.repo.get_problem("p1", include_test_cases=True)
        self.assertEqual([tc["test_case_id"] for tc in problem["test_cases"]], ["tc1"])

    def test_owner_checked_before_reference(self):
        with self.assertRaises(ProblemNotFoundError):
            self.repo.add_problem_test_case("p-missing", "tc-missing")

    def test_deleted_test_case_is_skipped(self):
        self.repo.add_problem_test_case("p1", "tc1")
        self.repo.add_problem_test_case("p1", "tc2")
        self.assertEqual(self.test_case_repo.delete_test_case("tc1"), 1)
        problem = self.repo.get_problem("p1", include_test_cases=True)
        self.assertEqual([tc["test_case_id"] for tc in problem["test_cases"]], ["tc2"])

    def test_delete_problem_drops_its_links(self):
        self.repo.add_problem_test_case("p1", "tc1")
        self.repo.delete_problem("p1")
        self.assertEqual(ProblemTestCase.objects.count(), 0)
        self.assertIsNotNone(self.test_case_repo.get_test_case("tc1"))

    def test_test_case_update_keeps_id(self):
        updated = self.test_case_repo.update_test_case(TestCaseSchema(test_case_id="tc1", score=25, is_hidden=True))
        self.assertEqual(updated["score"], 25)
        self.assertTrue(updated["is_hidden"])
        self.assertIsNone(self.test_case_repo.update_test_case(TestCaseSchema(test_case_id="tc9", score=1)))
        with self.assertRaises(ValidationError):
            TestCaseSchema(test_case_id="tc1", score=-1)


class ProblemListTests(ProblemRepoTestBase):
    """列表查询：过滤、可见性、区间、排序、分页"""

    def setUp(self) -> None:
        super().setUp()
        self.add_problem("a-private", "alice_01", days=1)
        self.add_problem("a-public", "alice_01", days=2, is_public=True)
        self.add_problem("b-private", "bob_0001", days=3)
        self.add_problem("b-public", "bob_0001", days=4, is_public=True)

    def ids(self, options: ProblemFilterOptions, as_user: str | None = None) -> list[str]:
        return [problem["problem_id"] for problem in self.repo.list_problems(options, as_user=as_user)]

    def test_default_order_is_newest_first(self):
        self.assertEqual(self.ids(ProblemFilterOptions()), ["b-public", "b-private", "a-public", "a-private"])

    def test_author_filter_ignores_visibility(self):
        options = ProblemFilterOptions(author=["alice_01"], is_public=None)
        self.assertEqual(set(self.ids(options)), {"a-private", "a-public"})

    def test_as_user_hides_other_users_private_problems(self):
        options = ProblemFilterOptions(author=["alice_01"])
        self.assertEqual(self.ids(options, as_user="bob_0001"), ["a-public"])
        self.assertEqual(set(self.ids(ProblemFilterOptions(), as_user="bob_0001")), {"a-public", "b-private", "b-public"})
        self.assertEqual(self.repo.count_problems(ProblemFilterOptions(), as_user="bob_0001"), 3)

    def test_empty_list_matches_nothing(self):
        self.assertEqual(self.ids(ProblemFilterOptions(author=[])), [])

    def test_creation_date_range_is_inclusive(self):
        boundary = self.t0 + timedelta(days=2)
        self.assertEqual(set(self.ids(ProblemFilterOptions(creation_date=[None, boundary]))), {"a-private", "a-public"})
        self.assertEqual(
            set(self.ids(ProblemFilterOptions(creation_date=[boundary, None]))), {"a-public", "b-private", "b-public"}
        )

    def test_range_must_have_two_bounds(self):
        with self.assertRaises(ValidationError):
            ProblemFilterOptions(creation_date=[self.t0])

    def test_sort_and_paginate(self):
        options = ProblemFilterOptions(
            sort_fields=[SortField("problem_id", ascending=True)], start_index=1, item_count=2
        )
        self.assertEqual(self.ids(options), ["a-public", "b-private"])
        self.assertEqual(self.repo.count_problems(options), 4)

    def test_sort_field_whitelist(self):
        with self.assertRaises(ValidationError):
            ProblemFilterOptions(sort_fields=[{"field": "author_id", "ascending": True}])
        options = ProblemFilterOptions(sort_fields=[{"field": "displayName", "ascending": False}])
        self.assertEqual(self.ids(options)[0], "b-public")

    def test_list_can_include_test_cases(self):
        self.add_test_case("tc1")
        self.repo.add_problem_test_case("a-public", "tc1")
        problems = self.repo.list_problems(ProblemFilterOptions(author=["alice_01"]), include_test_cases=True)
        by_id = {problem["problem_id"]: problem for problem in problems}
        self.assertEqual([tc["test_case_id"] for tc in by_id["a-public"]["test_cases"]], ["tc1"])
        self.assertEqual(by_id["a-private"]["test_cases"], [])

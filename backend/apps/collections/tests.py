from __future__ import annotations

from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from apps.accounts.repo import UserRepo
from apps.accounts.schemas import UserSchema
from apps.common.exceptions import CollectionNotFoundError, ProblemNotFoundError, UserNotFoundError, ValidationError
from apps.problems.repo import ProblemRepo, TestCaseRepo
from apps.problems.schemas import ProblemBaseSchema, TestCaseSchema

from .models import Collection, CollectionProblem
from .repo import CollectionRepo
from .schemas import CollectionBaseSchema, CollectionFilterOptions


class CollectionRepoTestBase(TestCase):
    def setUp(self) -> None:
        self.user_repo = UserRepo()
        self.test_case_repo = TestCaseRepo()
        self.problem_repo = ProblemRepo(user_repo=self.user_repo, test_case_repo=self.test_case_repo)
        self.repo = CollectionRepo(user_repo=self.user_repo, problem_repo=self.problem_repo)
        self.t0 = timezone.now().replace(microsecond=0) - timedelta(days=3)

        self.user_repo.add_user(UserSchema(username="alice_01", display_name="Alice"))
        self.user_repo.add_user(UserSchema(username="bob_0001", display_name="Bob"))
        for problem_id in ("p1", "p2"):
            self.problem_repo.add_problem(
                ProblemBaseSchema(problem_id=problem_id, author_username="alice_01", display_name=problem_id)
            )
        self.test_case_repo.add_test_case(TestCaseSchema(test_case_id="tc1", input_file="1.in", output_file="1.out"))
        self.problem_repo.add_problem_test_case("p1", "tc1")

    def add_collection(self, collection_id: str, owner: str, display_name: str, **extra) -> dict:
        return self.repo.add_collection(
            CollectionBaseSchema(
                collection_id=collection_id, owner_username=owner, display_name=display_name, **extra
            )
        )


class CollectionCrudTests(CollectionRepoTestBase):
    """题单创建、更新、删除"""

    def test_add_collection_trims_and_embeds_owner(self):
        collection = self.add_collection("c1", "alice_01", "  Warmup  ", description=" easy ones ")
        self.assertEqual(collection["display_name"], "Warmup")
        self.assertEqual(collection["description"], "easy ones")
        self.assertEqual(collection["owner"], {"username": "alice_01", "display_name": "Alice"})
        self.assertFalse(collection["is_public"])
        self.assertNotIn("problems", collection)

    def test_blank_display_name_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.add_collection("c1", "alice_01", "   ")
        with self.assertRaises(ValidationError):
            self.add_collection("c2", "alice_01", "x" * 129)
        self.assertFalse(Collection.objects.exists())

    def test_missing_owner_writes_nothing(self):
        with self.assertRaises(UserNotFoundError):
            self.add_collection("c1", "ghost_user", "Warmup")
        self.assertFalse(Collection.objects.exists())

    def test_update_ignores_owner_and_creation_date(self):
        created = self.add_collection("c1", "alice_01", "Warmup", creation_date=self.t0)
        updated = self.repo.update_collection(
            CollectionBaseSchema(
                collection_id="c1",
                owner_username="bob_0001",
                creation_date=self.t0 + timedelta(days=1),
                display_name="Renamed",
                is_public=True,
            )
        )
        self.assertEqual(updated["display_name"], "Renamed")
        self.assertTrue(updated["is_public"])
        self.assertEqual(updated["owner_username"], "alice_01")
        self.assertEqual(updated["creation_date"], created["creation_date"])
        self.assertIsNone(self.repo.update_collection(CollectionBaseSchema(collection_id="nope", display_name="X")))

    def test_delete_drops_links_but_keeps_problems(self):
        self.add_collection("c1", "alice_01", "Warmup")
        self.repo.add_collection_problem("c1", "p1")
        self.assertEqual(self.repo.delete_collection("c1"), 1)
        self.assertEqual(self.repo.delete_collection("c1"), 0)
        self.assertEqual(CollectionProblem.objects.count(), 0)
        self.assertIsNotNone(self.problem_repo.get_problem("p1"))


class CollectionProblemSetTests(CollectionRepoTestBase):
    def setUp(self) -> None:
        super().setUp()
        self.add_collection("c1", "alice_01", "Warmup")

    def test_add_is_idempotent_and_ordered(self):
        self.repo.add_collection_problem("c1", "p2")
        self.repo.add_collection_problem("c1", "p1")
        collection = self.repo.add_collection_problem("c1", "p2")
        self.assertEqual([problem["problem_id"] for problem in collection["problems"]], ["p2", "p1"])
        self.assertNotIn("test_cases", collection["problems"][1])

    def test_remove_problem(self):
        self.repo.add_collection_problem("c1", "p1")
        collection = self.repo.remove_collection_problem("c1", "p2")
        self.assertEqual([problem["problem_id"] for problem in collection["problems"]], ["p1"])
        collection = self.repo.remove_collection_problem("c1", "p1")
        self.assertEqual(collection["problems"], [])

    def test_collection_checked_before_problem(self):
        with self.assertRaises(CollectionNotFoundError):
            self.repo.add_collection_problem("nope", "p-missing")
        with self.assertRaises(ProblemNotFoundError):
            self.repo.add_collection_problem("c1", "p-missing")

    def test_deleted_problem_is_skipped(self):
        self.repo.add_collection_problem("c1", "p1")
        self.repo.add_collection_problem("c1", "p2")
        self.problem_repo.delete_problem("p2")
        collection = self.repo.get_collection("c1", include_problems=True)
        self.assertEqual([problem["problem_id"] for problem in collection["problems"]], ["p1"])


class CollectionListTests(CollectionRepoTestBase):
    def setUp(self) -> None:
        super().setUp()
        self.add_collection("c1", "alice_01", "Beta", creation_date=self.t0)
        self.add_collection("c2", "alice_01", "Alpha", creation_date=self.t0 + timedelta(days=1), is_public=True)
        self.add_collection("c3", "bob_0001", "Gamma", creation_date=self.t0 + timedelta(days=2))

    def ids(self, options: CollectionFilterOptions, **kwargs) -> list[str]:
        return [collection["collection_id"] for collection in self.repo.list_collections(options, **kwargs)]

    def test_default_order_is_display_name(self):
        self.assertEqual(self.ids(CollectionFilterOptions()), ["c2", "c1", "c3"])

    def test_visibility_and_filters(self):
        self.assertEqual(self.ids(CollectionFilterOptions(), as_user="bob_0001"), ["c2", "c3"])
        self.assertEqual(self.ids(CollectionFilterOptions(owner=["alice_01"], is_public=False)), ["c1"])
        window = [self.t0 + timedelta(days=1), None]
        self.assertEqual(self.ids(CollectionFilterOptions(creation_date=window)), ["c2", "c3"])
        self.assertEqual(self.repo.count_collections(CollectionFilterOptions(), as_user="carol_01"), 1)

    def test_sort_and_paginate(self):
        options = CollectionFilterOptions(sort_fields=["-creationDate"], start_index=1, item_count=1)
        self.assertEqual(self.ids(options), ["c2"])

    def test_list_with_problems(self):
        self.repo.add_collection_problem("c2", "p1")
        collections = self.repo.list_collections(CollectionFilterOptions(owner=["alice_01"]), include_problems=True)
        by_id = {collection["collection_id"]: collection for collection in collections}
        self.assertEqual([problem["problem_id"] for problem in by_id["c2"]["problems"]], ["p1"])
        self.assertEqual(by_id["c1"]["problems"], [])

from __future__ import annotations

from typing import Optional

from django.db import transaction
from django.db.models import Prefetch, QuerySet

from apps.accounts.repo import UserRepo
from apps.common.base.base_repo import BaseRepo
from apps.common.exceptions import CollectionNotFoundError
from apps.common.query import compose_query, count_query, visible_to
from apps.common.utils.validators import validate_required
from apps.problems.repo import ProblemRepo

from .models import Collection, CollectionProblem
from .schemas import CollectionBaseSchema, CollectionFilterOptions
from .serializers import serialize_collection


# 仓储层：题单的 ORM 访问以及题单题目集合的增删

COLLECTION_IMMUTABLE_FIELDS = {"collection_id", "owner_username", "creation_date"}


class CollectionRepo(BaseRepo[Collection]):
    """
    题单仓储：
    - 读取时始终带上所有者；题目按需展开
    - 传入 as_user 时，只返回公开题单或该用户自己的题单
    """

    model = Collection
    lookup_field = "collection_id"
    entity_name = "collection"
    not_found_error = CollectionNotFoundError
    owned_links = ((CollectionProblem, "collection"),)

    def __init__(self, user_repo: UserRepo | None = None, problem_repo: ProblemRepo | None = None):
        self.user_repo = user_repo or UserRepo()
        self.problem_repo = problem_repo or ProblemRepo(user_repo=self.user_repo)

    def get_queryset(self) -> QuerySet[Collection]:
        return super().get_queryset().select_related("owner")

    def expanded_queryset(self, *, include_problems: bool = False) -> QuerySet[Collection]:
        qs = self.get_queryset()
        if include_problems:
            qs = qs.prefetch_related(Prefetch(
                "problem_links",
                queryset=CollectionProblem.objects.select_related("problem", "problem__author").order_by("id"),
            ))
        return qs

    def get_collection(self, collection_id: str, include_problems: bool = False) -> Optional[dict]:
        collection = self.get_by_key(collection_id, queryset=self.expanded_queryset(include_problems=include_problems))
        return serialize_collection(collection, include_problems=include_problems)

    def list_collections(
            self,
            options: CollectionFilterOptions,
            as_user: str | None = None,
            include_problems: bool = False,
    ) -> list[dict]:
        extra = visible_to(as_user, owner_lookup="owner_username") if as_user is not None else None
        qs = compose_query(self.expanded_queryset(include_problems=include_problems), options, extra=extra)
        return [serialize_collection(collection, include_problems=include_problems) for collection in qs]

    def count_collections(self, options: CollectionFilterOptions, as_user: str | None = None) -> int:
        extra = visible_to(as_user, owner_lookup="owner_username") if as_user is not None else None
        return count_query(self.model._default_manager.all(), options, extra=extra)

    def add_collection(self, schema: CollectionBaseSchema) -> dict:
        validate_required(schema.owner_username, field_name="owner_username")
        with transaction.atomic():
            owner = self.user_repo.require_user(schema.owner_username)
            data = schema.to_model_kwargs(exclude={"owner_username"})
            data.update(owner=owner, owner_username=owner.username)
            collection = self.create(data)
        return serialize_collection(collection)

    def update_collection(self, schema: CollectionBaseSchema) -> Optional[dict]:
        with transaction.atomic():
            collection = self.get_by_key(schema.collection_id)
            if collection is None:
                return None
            self.update(collection, schema.to_model_kwargs(exclude=COLLECTION_IMMUTABLE_FIELDS))
        return self.get_collection(schema.collection_id)

    def delete_collection(self, collection_id: str) -> int:
        return self.delete_by_key(collection_id)

    def add_collection_problem(self, collection_id: str, problem_id: str) -> dict:
        with transaction.atomic():
            collection = self.require(collection_id, for_update=True)
            problem = self.problem_repo.require(problem_id)
            collection.problems.add(problem)
            self.log_write("problem_added", collection_id, problem_id=problem_id)
        return self.get_collection(collection_id, include_problems=True)

    def remove_collection_problem(self, collection_id: str, problem_id: str) -> dict:
        with transaction.atomic():
            collection = self.require(collection_id, for_update=True)
            problem = self.problem_repo.require(problem_id)
            collection.problems.remove(problem)
            self.log_write("problem_removed", collection_id, problem_id=problem_id)
        return self.get_collection(collection_id, include_problems=True)

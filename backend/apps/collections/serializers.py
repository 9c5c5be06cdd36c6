from __future__ import annotations

from typing import Optional

from apps.accounts.serializers import serialize_user
from apps.problems.serializers import serialize_problem

from .models import Collection


def serialize_collection(collection: Optional[Collection], *, include_problems: bool = False) -> Optional[dict]:
    """题单序列化：所有者始终内嵌；题目按需展开，且不带测试点"""
    if collection is None:
        return None
    data = {
        "collection_id": collection.collection_id,
        "owner": serialize_user(collection.owner),
        "owner_username": collection.owner_username,
        "display_name": collection.display_name,
        "creation_date": collection.creation_date,
        "description": collection.description,
        "is_public": collection.is_public,
    }
    if include_problems:
        data["problems"] = [serialize_problem(link.problem) for link in collection.problem_links.all()]
    return data

# apps/collections/schemas.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from functools import partial
from typing import ClassVar, Optional

from apps.common.base.base_schema import BaseSchema
from apps.common.query import BaseFilterOptions, FilterField, FilterKind, SortField
from apps.common.utils.time import ensure_aware
from apps.common.utils.validators import forbid_dangerous_html, validate_boolean, validate_identifier, validate_text


@dataclass
class CollectionBaseSchema(BaseSchema[None]):
    """
    题单写入对象：
    - 创建时 owner_username / display_name 必填
    - 更新时 collection_id 仅用于定位，owner_username / creation_date 会被忽略
    """
    auto_validate: ClassVar[bool] = True
    collection_id: str
    owner_username: Optional[str] = None
    display_name: Optional[str] = None
    creation_date: Optional[datetime] = None
    description: Optional[str] = None
    is_public: Optional[bool] = None

    def validate(self) -> None:
        validate_identifier(self.collection_id, field_name="collection_id")
        validate_text(self.owner_username, field_name="owner_username")
        validate_text(self.display_name, field_name="display_name")
        validate_text(self.description, field_name="description")
        validate_boolean(self.is_public, field_name="is_public")
        if self.description:
            forbid_dangerous_html(self.description, field_name="description")
        self.creation_date = ensure_aware(self.creation_date, field_name="creation_date")


@dataclass
class CollectionFilterOptions(BaseFilterOptions):
    """题单列表过滤：owner 列表、creation_date 区间、is_public；默认按名称升序"""
    FILTER_FIELDS: ClassVar[tuple] = (
        FilterField("owner", "owner_username", FilterKind.LIST),
        FilterField("creation_date", "creation_date", FilterKind.RANGE,
                    parser=partial(ensure_aware, field_name="creation_date")),
        FilterField("is_public", "is_public", FilterKind.BOOL),
    )
    SORTABLE: ClassVar[dict] = {
        "collection_id": "collection_id",
        "owner_username": "owner_username",
        "display_name": "display_name",
        "creation_date": "creation_date",
    }
    DEFAULT_SORT: ClassVar[tuple] = (SortField("display_name", ascending=True),)

    owner: Optional[list] = None
    creation_date: Optional[list] = None
    is_public: Optional[bool] = None

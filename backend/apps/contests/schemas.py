# apps/contests/schemas.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from functools import partial
from typing import ClassVar, Optional

from apps.common.base.base_schema import BaseSchema
from apps.common.query import BaseFilterOptions, FilterField, FilterKind, SortField
from apps.common.utils.time import ensure_aware
from apps.common.utils.validators import (
    forbid_dangerous_html,
    validate_boolean,
    validate_choice,
    validate_identifier,
    validate_integer,
    validate_text,
)

from .models import MIN_CONTEST_DURATION, ContestFormat


# Schema 层：负责仓储入参的结构化与校验，禁止写业务逻辑


def _duration_bound(value):
    """时长区间的单侧边界：必须是整数（毫秒）"""
    validate_integer(value, field_name="duration")
    return value


@dataclass
class ContestBaseSchema(BaseSchema[None]):
    """
    比赛写入对象：
    - 创建时 organizer_username / display_name / start_time / duration 必填
    - 更新时 contest_id 仅用于定位，organizer_username 会被忽略
    """
    auto_validate: ClassVar[bool] = True
    contest_id: str
    organizer_username: Optional[str] = None
    display_name: Optional[str] = None
    # IOI / ICPC
    format: Optional[str] = None
    start_time: Optional[datetime] = None
    # 时长（毫秒），至少 5 分钟
    duration: Optional[int] = None
    description: Optional[str] = None
    is_public: Optional[bool] = None

    def validate(self) -> None:
        """校验标识、赛制、时长下限，并拒绝描述中的可执行片段"""
        validate_identifier(self.contest_id, field_name="contest_id")
        validate_text(self.organizer_username, field_name="organizer_username")
        validate_text(self.display_name, field_name="display_name")
        validate_text(self.description, field_name="description")
        if self.format is not None:
            validate_choice(self.format, ContestFormat, field_name="format")
        validate_integer(self.duration, field_name="duration", minimum=MIN_CONTEST_DURATION)
        validate_boolean(self.is_public, field_name="is_public")
        if self.display_name:
            forbid_dangerous_html(self.display_name, field_name="display_name")
        if self.description:
            forbid_dangerous_html(self.description, field_name="description")
        self.start_time = ensure_aware(self.start_time, field_name="start_time")


@dataclass
class ContestFilterOptions(BaseFilterOptions):
    """
    比赛列表过滤：
    - organizer / format：列表
    - start_time / duration：[下界, 上界] 区间
    - is_public：是否公开
    """
    FILTER_FIELDS: ClassVar[tuple] = (
        FilterField("organizer", "organizer_username", FilterKind.LIST),
        FilterField("format", "format", FilterKind.LIST),
        FilterField("start_time", "start_time", FilterKind.RANGE, parser=partial(ensure_aware, field_name="start_time")),
        FilterField("duration", "duration", FilterKind.RANGE, parser=_duration_bound),
        FilterField("is_public", "is_public", FilterKind.BOOL),
    )
    SORTABLE: ClassVar[dict] = {
        "contest_id": "contest_id",
        "organizer_username": "organizer_username",
        "display_name": "display_name",
        "format": "format",
        "start_time": "start_time",
        "duration": "duration",
    }
    DEFAULT_SORT: ClassVar[tuple] = (SortField("start_time", ascending=False),)

    organizer: Optional[list] = None
    format: Optional[list] = None
    start_time: Optional[list] = None
    duration: Optional[list] = None
    is_public: Optional[bool] = None


@dataclass
class ContestExpandOptions(BaseSchema[None]):
    """比赛展开选项：未要求的关系不会出现在结果中"""
    auto_validate: ClassVar[bool] = True
    include_problems: bool = False
    include_participants: bool = False
    include_announcements: bool = False

    def validate(self) -> None:
        for name in ("include_problems", "include_participants", "include_announcements"):
            validate_boolean(getattr(self, name), field_name=name)


@dataclass
class AnnouncementSchema(BaseSchema[None]):
    """公告写入对象：所属比赛在创建时单独传入"""
    auto_validate: ClassVar[bool] = True
    announcement_id: str
    timestamp: Optional[datetime] = None
    subject: Optional[str] = None
    content: Optional[str] = None

    def validate(self) -> None:
        validate_identifier(self.announcement_id, field_name="announcement_id")
        validate_text(self.subject, field_name="subject")
        validate_text(self.content, field_name="content")
        if self.content:
            forbid_dangerous_html(self.content, field_name="content")
        self.timestamp = ensure_aware(self.timestamp, field_name="timestamp")

# apps/problems/schemas.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from functools import partial
from typing import ClassVar, Optional

from apps.common.base.base_schema import BaseSchema
from apps.common.exceptions import ValidationError
from apps.common.query import BaseFilterOptions, FilterField, FilterKind, SortField
from apps.common.utils.time import ensure_aware
from apps.common.utils.validators import (
    validate_boolean,
    validate_identifier,
    validate_integer,
    validate_text,
)


# Schema 层：负责仓储入参的结构化与校验，长度/唯一性等约束交给模型层 full_clean


@dataclass
class ProblemBaseSchema(BaseSchema[None]):
    """
    题目写入对象：
    - 创建时 author_username / display_name 必填，其余字段缺省走模型默认值
    - 更新时 problem_id 仅用于定位，author_username / creation_date 会被忽略
    - 值为 None 的字段表示“未提供”
    """
    auto_validate: ClassVar[bool] = True
    problem_id: str
    author_username: Optional[str] = None
    display_name: Optional[str] = None
    creation_date: Optional[datetime] = None
    is_public: Optional[bool] = None
    # 时间限制（毫秒）
    time_limit: Optional[int] = None
    # 内存限制（MB）
    memory_limit: Optional[int] = None
    input_source: Optional[str] = None
    output_source: Optional[str] = None
    checker: Optional[str] = None

    def validate(self) -> None:
        validate_identifier(self.problem_id, field_name="problem_id")
        for name in ("author_username", "display_name", "input_source", "output_source", "checker"):
            validate_text(getattr(self, name), field_name=name)
        validate_boolean(self.is_public, field_name="is_public")
        validate_integer(self.time_limit, field_name="time_limit", minimum=100)
        validate_integer(self.memory_limit, field_name="memory_limit", minimum=16)
        self.creation_date = ensure_aware(self.creation_date, field_name="creation_date")


@dataclass
class ProblemFilterOptions(BaseFilterOptions):
    """
    题目列表过滤：
    - author：作者用户名列表
    - creation_date：[下界, 上界] 创建时间区间
    - is_public：是否公开
    """
    FILTER_FIELDS: ClassVar[tuple] = (
        FilterField("author", "author_username", FilterKind.LIST),
        FilterField("creation_date", "creation_date", FilterKind.RANGE,
                    parser=partial(ensure_aware, field_name="creation_date")),
        FilterField("is_public", "is_public", FilterKind.BOOL),
    )
    SORTABLE: ClassVar[dict] = {
        "problem_id": "problem_id",
        "author_username": "author_username",
        "display_name": "display_name",
        "creation_date": "creation_date",
        "time_limit": "time_limit",
        "memory_limit": "memory_limit",
    }
    DEFAULT_SORT: ClassVar[tuple] = (SortField("creation_date", ascending=False),)

    author: Optional[list] = None
    creation_date: Optional[list] = None
    is_public: Optional[bool] = None


@dataclass
class TestCaseSchema(BaseSchema[None]):
    """测试点写入对象：test_case_id 创建后不可修改"""
    __test__ = False
    auto_validate: ClassVar[bool] = True
    test_case_id: str
    input_file: Optional[str] = None
    output_file: Optional[str] = None
    is_pretest: Optional[bool] = None
    is_hidden: Optional[bool] = None
    score: Optional[float] = None

    def validate(self) -> None:
        validate_identifier(self.test_case_id, field_name="test_case_id")
        validate_text(self.input_file, field_name="input_file")
        validate_text(self.output_file, field_name="output_file")
        validate_boolean(self.is_pretest, field_name="is_pretest")
        validate_boolean(self.is_hidden, field_name="is_hidden")
        if self.score is not None:
            if isinstance(self.score, bool) or not isinstance(self.score, (int, float)):
                raise ValidationError.from_field_errors({"score": "score 必须是数字"})
            if self.score < 0:
                raise ValidationError.from_field_errors({"score": "score 不能小于 0"})

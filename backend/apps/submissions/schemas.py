# apps/submissions/schemas.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from functools import partial
from typing import ClassVar, Optional

from apps.common.base.base_schema import BaseSchema
from apps.common.exceptions import ValidationError
from apps.common.query import BaseFilterOptions, FilterField, FilterKind, SortField
from apps.common.utils.time import ensure_aware
from apps.common.utils.validators import validate_choice, validate_identifier, validate_integer, validate_text

from .models import SubmissionLanguage, SubmissionStatus


# Schema 层：负责仓储入参的结构化与校验，禁止写业务逻辑


@dataclass
class SubmissionBaseSchema(BaseSchema[None]):
    """
    提交写入对象：
    - 引用字段均为对外标识（author_username / problem_id / contest_id / failed_test_case_id）
    - 更新时作者、题目、比赛会被忽略；failed_test_case_id 需重新解析
    - 评测结果字段平铺在对象上，None 表示未提供
    """
    auto_validate: ClassVar[bool] = True
    submission_id: str
    author_username: Optional[str] = None
    problem_id: Optional[str] = None
    contest_id: Optional[str] = None
    source_file: Optional[str] = None
    language: Optional[str] = None
    submission_time: Optional[datetime] = None
    status: Optional[str] = None
    score: Optional[float] = None
    run_time: Optional[int] = None
    failed_test_case_id: Optional[str] = None
    actual_output: Optional[str] = None
    log: Optional[str] = None

    def validate(self) -> None:
        validate_identifier(self.submission_id, field_name="submission_id")
        for name in ("author_username", "problem_id", "contest_id", "failed_test_case_id",
                     "source_file", "actual_output", "log"):
            validate_text(getattr(self, name), field_name=name)
        if self.language is not None:
            validate_choice(self.language, SubmissionLanguage, field_name="language")
        if self.status is not None:
            validate_choice(self.status, SubmissionStatus, field_name="status")
        if self.score is not None and (isinstance(self.score, bool) or not isinstance(self.score, (int, float))):
            raise ValidationError.from_field_errors({"score": "score 必须是数字"})
        validate_integer(self.run_time, field_name="run_time", minimum=0)
        self.submission_time = ensure_aware(self.submission_time, field_name="submission_time")


@dataclass
class SubmissionFilterOptions(BaseFilterOptions):
    """
    提交列表过滤：
    - author / problem / contest / language / status：列表；contest 中的 None 匹配不属于任何比赛的提交
    - submission_time：[下界, 上界] 区间
    """
    FILTER_FIELDS: ClassVar[tuple] = (
        FilterField("author", "author_username", FilterKind.LIST),
        FilterField("problem", "problem_code", FilterKind.LIST),
        FilterField("contest", "contest_code", FilterKind.LIST),
        FilterField("language", "language", FilterKind.LIST),
        FilterField("submission_time", "submission_time", FilterKind.RANGE,
                    parser=partial(ensure_aware, field_name="submission_time")),
        FilterField("status", "status", FilterKind.LIST),
    )
    SORTABLE: ClassVar[dict] = {
        "submission_id": "submission_id",
        "author_username": "author_username",
        "problem_id": "problem_code",
        "contest_id": "contest_code",
        "language": "language",
        "submission_time": "submission_time",
        "status": "status",
        "score": "score",
        "run_time": "run_time",
    }
    DEFAULT_SORT: ClassVar[tuple] = (SortField("submission_time", ascending=False),)

    author: Optional[list] = None
    problem: Optional[list] = None
    contest: Optional[list] = None
    language: Optional[list] = None
    submission_time: Optional[list] = None
    status: Optional[list] = None

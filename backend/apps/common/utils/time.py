"""
时间工具：提供常用的时间戳与格式化助手，统一使用感知时区的时间
"""

from __future__ import annotations

import datetime
from typing import Optional, Union

from django.utils import timezone

from apps.common.exceptions import ValidationError


def now() -> datetime.datetime:
    """返回当前时间（感知时区），用于默认的创建时间/提交时间"""
    return timezone.now()


def to_timestamp(dt: datetime.datetime) -> int:
    """将 datetime 转为秒级时间戳，缺省时区则补齐 UTC"""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return int(dt.timestamp())


def from_timestamp(ts: Union[int, float]) -> datetime.datetime:
    """从时间戳创建 datetime（UTC），用于反序列化时间字段"""
    return datetime.datetime.fromtimestamp(float(ts), tz=datetime.timezone.utc)


def ensure_aware(
    value: Union[datetime.datetime, str, int, float, None],
    *,
    field_name: str = "时间",
) -> Optional[datetime.datetime]:
    """
    将外部传入的时间统一转换为时区感知的 datetime：
    - None 原样返回（表示未提供 / 不限）
    - ISO 字符串按 fromisoformat 解析，数字按秒级时间戳解析
    - naive datetime 视为默认时区时间
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError.from_field_errors({field_name: f"{field_name} 格式不正确"})
    if isinstance(value, (int, float)):
        return from_timestamp(value)
    if isinstance(value, str):
        try:
            value = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValidationError.from_field_errors({field_name: f"{field_name} 格式不正确"}) from exc
    if not isinstance(value, datetime.datetime):
        raise ValidationError.from_field_errors({field_name: f"{field_name} 格式不正确"})
    if timezone.is_naive(value):
        value = timezone.make_aware(value, timezone.get_default_timezone())
    return value

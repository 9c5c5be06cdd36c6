"""
校验工具集合：提供常用字段格式校验

- 模型层（Django validators）与 Schema 层共用同一套规则
- Schema 层的校验失败统一抛业务 ValidationError
"""

from __future__ import annotations

import re

from django.core.validators import RegexValidator

from apps.common.exceptions import ValidationError

USERNAME_REGEX = re.compile(r"^[A-Za-z0-9_]+\Z")
IDENTIFIER_REGEX = re.compile(r"^[A-Za-z0-9_.-]+\Z")

#: 用户名：仅字母、数字、下划线
username_validator = RegexValidator(USERNAME_REGEX, message="用户名仅能包含字母、数字或下划线")

#: 文件名：不允许出现路径分隔符
file_name_validator = RegexValidator(r"[\\/]", inverse_match=True, message="文件名不能包含路径分隔符")

#: 外部标识：problem_id / contest_id 等
identifier_validator = RegexValidator(IDENTIFIER_REGEX, message="标识仅能包含字母、数字、下划线、点或连字符")


def validate_username(username: str) -> None:
    """校验用户名长度与字符集，规则与模型层保持一致"""
    if not isinstance(username, str) or not 6 <= len(username) <= 32:
        raise ValidationError.from_field_errors({"username": "用户名长度需在 6-32 位之间"})
    if not USERNAME_REGEX.match(username):
        raise ValidationError.from_field_errors({"username": "用户名仅能包含字母、数字或下划线"})


def validate_identifier(value: str, *, field_name: str) -> None:
    """校验外部标识（problem_id / contest_id 等）非空且不含空白或特殊字符"""
    if not isinstance(value, str) or not value:
        raise ValidationError.from_field_errors({field_name: f"{field_name} 不能为空"})
    if not IDENTIFIER_REGEX.match(value):
        raise ValidationError.from_field_errors(
            {field_name: f"{field_name} 仅能包含字母、数字、下划线、点或连字符"}
        )


def validate_choice(value: str, choices, *, field_name: str) -> None:
    """校验枚举值，choices 为 Django TextChoices 类"""
    if value not in choices.values:
        raise ValidationError.from_field_errors(
            {field_name: f"{field_name} 取值非法：{value}，可选值：{', '.join(choices.values)}"}
        )


def validate_minimum(value, minimum, *, field_name: str) -> None:
    """校验数值下限（含边界）"""
    if value is None:
        return
    if value < minimum:
        raise ValidationError.from_field_errors({field_name: f"{field_name} 不能小于 {minimum}"})


def validate_required(value, *, field_name: str) -> None:
    """校验必填字段（None 或空串均视为缺失）"""
    if value is None or value == "":
        raise ValidationError.from_field_errors({field_name: f"{field_name} 为必填项"})


def validate_integer(value, *, field_name: str, minimum=None) -> None:
    """校验整数（不接受布尔值），可选下限；None 表示未提供，直接通过"""
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError.from_field_errors({field_name: f"{field_name} 必须是整数"})
    if minimum is not None:
        validate_minimum(value, minimum, field_name=field_name)


def validate_text(value, *, field_name: str) -> None:
    if value is not None and not isinstance(value, str):
        raise ValidationError.from_field_errors({field_name: f"{field_name} 必须是字符串"})


def validate_boolean(value, *, field_name: str) -> None:
    if value is not None and not isinstance(value, bool):
        raise ValidationError.from_field_errors({field_name: f"{field_name} 必须是布尔值"})


def forbid_dangerous_html(value: str, *, field_name: str = "字段") -> None:
    """
    拒绝常见危险 HTML 片段（如 <script>/<iframe>/javascript: 等），降低 XSS 风险
    允许普通文本、Markdown 与无害 HTML，但若检测到可执行片段则阻断
    """
    if not value:
        return
    lower = value.lower()
    dangerous_markers = [
        "<script",
        "javascript:",
        "onerror=",
        "onload=",
        "<iframe",
        "<object",
        "<embed",
        "svg/onload",
    ]
    if any(marker in lower for marker in dangerous_markers):
        raise ValidationError.from_field_errors({field_name: f"{field_name} 含有潜在危险的 HTML/脚本片段"})

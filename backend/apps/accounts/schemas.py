# apps/accounts/schemas.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar, Optional

from apps.common.base.base_schema import BaseSchema
from apps.common.utils.time import ensure_aware
from apps.common.utils.validators import validate_choice, validate_required, validate_text, validate_username

from .models import AuthenticationMethod


# Schema 层：负责仓储入参的结构化与校验，长度/唯一性等约束交给模型层 full_clean


@dataclass
class UserSchema(BaseSchema[None]):
    """
    用户写入对象：
    - 创建时两个字段都需要提供
    - 更新时只使用 display_name，username 仅用于定位
    """
    auto_validate: ClassVar[bool] = True
    # 用户名
    username: str
    # 显示名称，存储前去除首尾空白
    display_name: Optional[str] = None

    def validate(self) -> None:
        validate_username(self.username)
        validate_text(self.display_name, field_name="display_name")


@dataclass
class AuthenticationDetailSchema(BaseSchema[None]):
    """认证信息写入对象，value 为明文凭据（保存时由模型层哈希）"""
    auto_validate: ClassVar[bool] = True
    method: str
    value: Optional[str] = None

    def validate(self) -> None:
        validate_choice(self.method, AuthenticationMethod, field_name="method")
        validate_text(self.value, field_name="value")


@dataclass
class BlacklistedJwtSchema(BaseSchema[None]):
    auto_validate: ClassVar[bool] = True
    jwt_id: str
    exp: Optional[datetime] = None

    def validate(self) -> None:
        validate_required(self.jwt_id, field_name="jwt_id")
        validate_text(self.jwt_id, field_name="jwt_id")
        self.exp = ensure_aware(self.exp, field_name="exp")

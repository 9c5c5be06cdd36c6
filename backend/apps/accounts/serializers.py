"""
账户模块的序列化工具函数：
- 将模型对象转换为对外字典，供其他实体嵌套引用（author / organizer / owner / participants）
- 输入为 None（未找到或悬挂引用）时返回 None
"""

from __future__ import annotations

from typing import Optional

from .models import AuthenticationDetail, BlacklistedJwt, User


def serialize_user(user: Optional[User]) -> Optional[dict]:
    """用户序列化：只暴露用户名与显示名称"""
    if user is None:
        return None
    return {
        "username": user.username,
        "display_name": user.display_name,
    }


def serialize_authentication_detail(detail: Optional[AuthenticationDetail], *, username: str) -> Optional[dict]:
    """认证信息序列化：value 为哈希后的凭据"""
    if detail is None:
        return None
    return {
        "username": username,
        "method": detail.method,
        "value": detail.value,
    }


def serialize_blacklisted_jwt(blacklisted: Optional[BlacklistedJwt]) -> Optional[dict]:
    if blacklisted is None:
        return None
    return {
        "jwt_id": blacklisted.jwt_id,
        "exp": blacklisted.exp,
    }

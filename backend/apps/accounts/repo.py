from __future__ import annotations

from datetime import datetime
from typing import Optional

from django.db import transaction

from apps.common.base.base_repo import BaseRepo
from apps.common.exceptions import AuthenticationDetailNotFoundError, UserNotFoundError
from apps.common.utils.time import now as current_time
from apps.common.utils.validators import validate_required

from .models import AuthenticationDetail, BlacklistedJwt, User
from .schemas import AuthenticationDetailSchema, BlacklistedJwtSchema, UserSchema
from .serializers import serialize_authentication_detail, serialize_blacklisted_jwt, serialize_user


# 仓储层：封装用户、认证信息、JWT 黑名单的 ORM 访问


class UserRepo(BaseRepo[User]):
    """用户仓储：username 为对外标识，创建后不可修改"""

    model = User
    lookup_field = "username"
    entity_name = "user"
    not_found_error = UserNotFoundError

    def get_user(self, username: str) -> Optional[dict]:
        """按用户名读取，不存在返回 None"""
        return serialize_user(self.get_by_key(username))

    def require_user(self, username: str, *, for_update: bool = False) -> User:
        """解析被引用的用户，不存在抛 UserNotFoundError"""
        validate_required(username, field_name="username")
        return self.require(username, for_update=for_update)

    def add_user(self, schema: UserSchema) -> dict:
        user = self.create(schema.to_model_kwargs())
        return serialize_user(user)

    def update_user(self, schema: UserSchema) -> Optional[dict]:
        """只更新 display_name；用户不存在返回 None"""
        with transaction.atomic():
            user = self.get_by_key(schema.username)
            if user is None:
                return None
            user = self.update(user, schema.to_model_kwargs(exclude={"username"}))
        return serialize_user(user)

    def delete_user(self, username: str) -> int:
        """硬删除用户，引用该用户的题目/比赛/提交等保持原样"""
        return self.delete_by_key(username)


class AuthenticationDetailRepo(BaseRepo[AuthenticationDetail]):
    """
    认证信息仓储：
    - 所有操作都以 (username, method) 定位
    - 读取时用户或认证信息不存在均返回 None
    - 写操作在事务内先解析用户，再定位认证信息，两类缺失分别抛出不同异常
    """

    model = AuthenticationDetail
    entity_name = "authentication_detail"

    def __init__(self, user_repo: UserRepo | None = None):
        self.user_repo = user_repo or UserRepo()

    def _find(self, user: User, method: str) -> Optional[AuthenticationDetail]:
        return self.filter(of_user=user, method=method).order_by("pk").first()

    def get_authentication_detail(self, username: str, method: str) -> Optional[dict]:
        user = self.user_repo.get_by_key(username)
        if user is None:
            return None
        return serialize_authentication_detail(self._find(user, method), username=user.username)

    def add_authentication_detail(self, username: str, schema: AuthenticationDetailSchema) -> dict:
        with transaction.atomic():
            user = self.user_repo.require_user(username)
            detail = self.create({"of_user": user, "method": schema.method, "value": schema.value})
        return serialize_authentication_detail(detail, username=user.username)

    def update_authentication_detail(self, username: str, schema: AuthenticationDetailSchema) -> dict:
        with transaction.atomic():
            user = self.user_repo.require_user(username)
            detail = self._find(user, schema.method)
            if detail is None:
                raise self.not_found(AuthenticationDetailNotFoundError(username, schema.method))
            detail = self.update(detail, {"value": schema.value})
        return serialize_authentication_detail(detail, username=user.username)

    def delete_authentication_detail(self, username: str, method: str) -> int:
        """删除该用户指定方式的全部认证信息，一条都没有时抛 AuthenticationDetailNotFoundError"""
        with transaction.atomic():
            user = self.user_repo.require_user(username)
            _, per_model = self.filter(of_user=user, method=method).delete()
            deleted = per_model.get(self.model._meta.label, 0)
            if deleted == 0:
                raise self.not_found(AuthenticationDetailNotFoundError(username, method))
        self.log_write("deleted", username, method=str(method))
        return deleted

    def verify_authentication_detail(self, username: str, method: str, raw_value: str) -> bool:
        """校验明文凭据；用户或认证信息不存在时返回 False"""
        user = self.user_repo.get_by_key(username)
        if user is None:
            return False
        detail = self._find(user, method)
        return detail is not None and detail.check_value(raw_value)


class BlacklistedJwtRepo(BaseRepo[BlacklistedJwt]):
    """JWT 黑名单仓储：jwt_id 为对外标识"""

    model = BlacklistedJwt
    lookup_field = "jwt_id"
    entity_name = "blacklisted_jwt"

    def get_blacklisted_jwt(self, jwt_id: str) -> Optional[dict]:
        return serialize_blacklisted_jwt(self.get_by_key(jwt_id))

    def add_blacklisted_jwt(self, schema: BlacklistedJwtSchema) -> dict:
        return serialize_blacklisted_jwt(self.create(schema.to_model_kwargs()))

    def update_blacklisted_jwt(self, schema: BlacklistedJwtSchema) -> Optional[dict]:
        """只更新 exp；记录不存在返回 None"""
        with transaction.atomic():
            blacklisted = self.get_by_key(schema.jwt_id)
            if blacklisted is None:
                return None
            blacklisted = self.update(blacklisted, schema.to_model_kwargs(exclude={"jwt_id"}))
        return serialize_blacklisted_jwt(blacklisted)

    def delete_blacklisted_jwt(self, jwt_id: str) -> int:
        return self.delete_by_key(jwt_id)

    def is_blacklisted(self, jwt_id: str, now: datetime | None = None) -> bool:
        """令牌在黑名单中且尚未过期"""
        return self.exists(jwt_id=jwt_id, exp__gt=now or current_time())

    def purge_expired(self, now: datetime | None = None) -> int:
        """清理已过期的黑名单记录，返回删除条数"""
        _, per_model = self.filter(exp__lte=now or current_time()).delete()
        purged = per_model.get(self.model._meta.label, 0)
        if purged:
            self.log_write("purged", "expired", count=purged)
        return purged

"""
账户相关模型定义（用户、认证信息、JWT 黑名单）

- User 只保存用户名与显示名称，认证凭据单独存放在 AuthenticationDetail 中
- AuthenticationDetail 通过弱引用指向所属用户，写库时对密码类凭据做哈希
- BlacklistedJwt 记录已注销的令牌 id 及其过期时间
"""

from __future__ import annotations

from django.contrib.auth.hashers import check_password, make_password
from django.core.validators import MinLengthValidator
from django.db import models
from django.utils.crypto import constant_time_compare

from apps.common.models import TrimmedFieldsMixin, WeakForeignKey
from apps.common.utils.validators import username_validator


class User(TrimmedFieldsMixin, models.Model):
    """
    平台用户：
    - username 创建后不可修改，被题目、比赛、提交、题单等实体引用
    - 删除用户不会级联删除引用方，引用方读到的 author/organizer/owner 为 None
    """

    trimmed_fields = ("display_name",)

    username = models.CharField(
        "用户名",
        max_length=32,
        unique=True,
        validators=[MinLengthValidator(6), username_validator],
        help_text="6-32 位，仅字母、数字、下划线",
    )
    display_name = models.CharField("显示名称", max_length=64)

    class Meta:
        verbose_name = "用户"
        verbose_name_plural = "用户"
        ordering = ["username"]

    def __str__(self) -> str:
        return self.username


class AuthenticationMethod(models.TextChoices):
    PASSWORD = "Password", "密码"


class AuthenticationDetail(models.Model):
    """
    认证信息：
    - 每个用户每种方式至多一条（由仓储层维护，数据库不建联合唯一约束）
    - method 为 Password 且 value 发生变化时，保存前先用 make_password 哈希
    """

    of_user = WeakForeignKey(User, verbose_name="所属用户", related_name="authentication_details")
    method = models.CharField("认证方式", max_length=32, choices=AuthenticationMethod.choices)
    value = models.TextField("凭据")

    # 最近一次从数据库读出（或写入）的 value，用于判断是否需要重新哈希
    _stored_value = None

    class Meta:
        verbose_name = "认证信息"
        verbose_name_plural = "认证信息"
        ordering = ["id"]
        indexes = [models.Index(fields=["of_user", "method"], name="auth_detail_user_method_idx")]

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._stored_value = instance.value
        return instance

    def save(self, *args, **kwargs):
        if self.method == AuthenticationMethod.PASSWORD and self.value != self._stored_value:
            self.value = make_password(self.value)
        super().save(*args, **kwargs)
        self._stored_value = self.value

    def check_value(self, raw_value: str) -> bool:
        """校验明文凭据是否与已保存的值匹配"""
        if self.method == AuthenticationMethod.PASSWORD:
            return check_password(raw_value, self.value)
        return constant_time_compare(raw_value, self.value)

    def __str__(self) -> str:
        return f"{self.of_user_id}:{self.method}"


class BlacklistedJwt(models.Model):
    """已注销的 JWT：按 jwt_id（jti）查询，过期后可清理"""

    jwt_id = models.CharField("令牌 ID", max_length=255, unique=True)
    exp = models.DateTimeField("过期时间", db_index=True)

    class Meta:
        verbose_name = "JWT 黑名单"
        verbose_name_plural = "JWT 黑名单"
        ordering = ["exp"]

    def __str__(self) -> str:
        return self.jwt_id

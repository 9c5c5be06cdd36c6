from __future__ import annotations

import re

import django.core.validators
from django.db import migrations, models

import apps.common.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="User",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "username",
                    models.CharField(
                        help_text="6-32 位，仅字母、数字、下划线",
                        max_length=32,
                        unique=True,
                        validators=[
                            django.core.validators.MinLengthValidator(6),
                            django.core.validators.RegexValidator(
                                re.compile("^[A-Za-z0-9_]+\\Z"),
                                message="用户名仅能包含字母、数字或下划线",
                            ),
                        ],
                        verbose_name="用户名",
                    ),
                ),
                ("display_name", models.CharField(max_length=64, verbose_name="显示名称")),
            ],
            options={
                "verbose_name": "用户",
                "verbose_name_plural": "用户",
                "ordering": ["username"],
            },
        ),
        migrations.CreateModel(
            name="BlacklistedJwt",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("jwt_id", models.CharField(max_length=255, unique=True, verbose_name="令牌 ID")),
                ("exp", models.DateTimeField(db_index=True, verbose_name="过期时间")),
            ],
            options={
                "verbose_name": "JWT 黑名单",
                "verbose_name_plural": "JWT 黑名单",
                "ordering": ["exp"],
            },
        ),
        migrations.CreateModel(
            name="AuthenticationDetail",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "method",
                    models.CharField(choices=[("Password", "密码")], max_length=32, verbose_name="认证方式"),
                ),
                ("value", models.TextField(verbose_name="凭据")),
                (
                    "of_user",
                    apps.common.models.WeakForeignKey(
                        related_name="authentication_details",
                        required=True,
                        to="accounts.user",
                        verbose_name="所属用户",
                    ),
                ),
            ],
            options={
                "verbose_name": "认证信息",
                "verbose_name_plural": "认证信息",
                "ordering": ["id"],
                "indexes": [models.Index(fields=["of_user", "method"], name="auth_detail_user_method_idx")],
            },
        ),
    ]

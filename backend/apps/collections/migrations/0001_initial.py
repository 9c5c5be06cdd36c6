from __future__ import annotations

import re

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

import apps.common.models


def identifier_validator():
    return django.core.validators.RegexValidator(
        re.compile("^[A-Za-z0-9_.-]+\\Z"), message="标识仅能包含字母、数字、下划线、点或连字符"
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        ("problems", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Collection",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "collection_id",
                    models.CharField(
                        max_length=64, unique=True, validators=[identifier_validator()], verbose_name="题单 ID"
                    ),
                ),
                ("owner_username", models.CharField(db_index=True, max_length=32, verbose_name="所有者用户名")),
                ("display_name", models.CharField(max_length=128, verbose_name="题单名称")),
                (
                    "creation_date",
                    models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name="创建时间"),
                ),
                ("description", models.TextField(blank=True, default="", verbose_name="题单描述")),
                ("is_public", models.BooleanField(db_index=True, default=False, verbose_name="是否公开")),
                (
                    "owner",
                    apps.common.models.WeakForeignKey(
                        related_name="owned_collections",
                        required=True,
                        to="accounts.user",
                        verbose_name="所有者",
                    ),
                ),
            ],
            options={
                "verbose_name": "题单",
                "verbose_name_plural": "题单",
                "ordering": ["display_name"],
            },
        ),
        migrations.CreateModel(
            name="CollectionProblem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "collection",
                    models.ForeignKey(
                        db_constraint=False,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="problem_links",
                        to="collections.collection",
                        verbose_name="题单",
                    ),
                ),
                (
                    "problem",
                    models.ForeignKey(
                        db_constraint=False,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="collection_links",
                        to="problems.problem",
                        verbose_name="题目",
                    ),
                ),
            ],
            options={
                "verbose_name": "题单题目",
                "verbose_name_plural": "题单题目",
                "ordering": ["id"],
            },
        ),
        migrations.AddField(
            model_name="collection",
            name="problems",
            field=models.ManyToManyField(
                blank=True,
                related_name="collections",
                through="collections.CollectionProblem",
                to="problems.problem",
                verbose_name="题目",
            ),
        ),
        migrations.AddConstraint(
            model_name="collectionproblem",
            constraint=models.UniqueConstraint(fields=("collection", "problem"), name="uniq_collection_problem"),
        ),
    ]

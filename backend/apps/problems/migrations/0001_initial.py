from __future__ import annotations

import re

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

import apps.common.models


def file_name_validator():
    return django.core.validators.RegexValidator(
        "[\\\\/]", inverse_match=True, message="文件名不能包含路径分隔符"
    )


def identifier_validator():
    return django.core.validators.RegexValidator(
        re.compile("^[A-Za-z0-9_.-]+\\Z"), message="标识仅能包含字母、数字、下划线、点或连字符"
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="TestCase",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "test_case_id",
                    models.CharField(
                        max_length=64, unique=True, validators=[identifier_validator()], verbose_name="测试点 ID"
                    ),
                ),
                ("input_file", models.CharField(max_length=255, validators=[file_name_validator()], verbose_name="输入文件")),
                ("output_file", models.CharField(max_length=255, validators=[file_name_validator()], verbose_name="输出文件")),
                ("is_pretest", models.BooleanField(default=False, verbose_name="预测试点")),
                ("is_hidden", models.BooleanField(default=False, verbose_name="隐藏")),
                (
                    "score",
                    models.FloatField(
                        default=0, validators=[django.core.validators.MinValueValidator(0)], verbose_name="分值"
                    ),
                ),
            ],
            options={
                "verbose_name": "测试点",
                "verbose_name_plural": "测试点",
                "ordering": ["test_case_id"],
            },
        ),
        migrations.CreateModel(
            name="Problem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "problem_id",
                    models.CharField(
                        max_length=64, unique=True, validators=[identifier_validator()], verbose_name="题目 ID"
                    ),
                ),
                ("author_username", models.CharField(db_index=True, max_length=32, verbose_name="作者用户名")),
                ("display_name", models.CharField(max_length=128, verbose_name="题目名称")),
                (
                    "creation_date",
                    models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name="创建时间"),
                ),
                ("is_public", models.BooleanField(db_index=True, default=False, verbose_name="是否公开")),
                (
                    "time_limit",
                    models.PositiveIntegerField(
                        default=1000,
                        validators=[django.core.validators.MinValueValidator(100)],
                        verbose_name="时间限制(ms)",
                    ),
                ),
                (
                    "memory_limit",
                    models.PositiveIntegerField(
                        default=256,
                        validators=[django.core.validators.MinValueValidator(16)],
                        verbose_name="内存限制(MB)",
                    ),
                ),
                (
                    "input_source",
                    models.CharField(
                        default="stdio", max_length=255, validators=[file_name_validator()], verbose_name="输入来源"
                    ),
                ),
                (
                    "output_source",
                    models.CharField(
                        default="stdio", max_length=255, validators=[file_name_validator()], verbose_name="输出去向"
                    ),
                ),
                (
                    "checker",
                    models.CharField(
                        default="EqualChecker",
                        help_text="内置比较器名称或自定义比较器文件名",
                        max_length=255,
                        validators=[file_name_validator()],
                        verbose_name="比较器",
                    ),
                ),
                (
                    "author",
                    apps.common.models.WeakForeignKey(
                        related_name="authored_problems",
                        required=True,
                        to="accounts.user",
                        verbose_name="作者",
                    ),
                ),
            ],
            options={
                "verbose_name": "题目",
                "verbose_name_plural": "题目",
                "ordering": ["-creation_date"],
            },
        ),
        migrations.CreateModel(
            name="ProblemTestCase",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "problem",
                    models.ForeignKey(
                        db_constraint=False,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="test_case_links",
                        to="problems.problem",
                        verbose_name="题目",
                    ),
                ),
                (
                    "test_case",
                    models.ForeignKey(
                        db_constraint=False,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="problem_links",
                        to="problems.testcase",
                        verbose_name="测试点",
                    ),
                ),
            ],
            options={
                "verbose_name": "题目测试点",
                "verbose_name_plural": "题目测试点",
                "ordering": ["id"],
            },
        ),
        migrations.AddField(
            model_name="problem",
            name="test_cases",
            field=models.ManyToManyField(
                blank=True,
                related_name="problems",
                through="problems.ProblemTestCase",
                to="problems.testcase",
                verbose_name="测试点",
            ),
        ),
        migrations.AddConstraint(
            model_name="problemtestcase",
            constraint=models.UniqueConstraint(fields=("problem", "test_case"), name="uniq_problem_test_case"),
        ),
    ]

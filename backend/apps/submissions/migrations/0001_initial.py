from __future__ import annotations

import re

import django.core.validators
import django.utils.timezone
from django.db import migrations, models

import apps.common.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        ("problems", "0001_initial"),
        ("contests", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Submission",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "submission_id",
                    models.CharField(
                        max_length=64,
                        unique=True,
                        validators=[
                            django.core.validators.RegexValidator(
                                re.compile("^[A-Za-z0-9_.-]+\\Z"),
                                message="标识仅能包含字母、数字、下划线、点或连字符",
                            )
                        ],
                        verbose_name="提交 ID",
                    ),
                ),
                ("author_username", models.CharField(db_index=True, max_length=32, verbose_name="提交人用户名")),
                ("problem_code", models.CharField(db_index=True, max_length=64, verbose_name="题目 ID")),
                (
                    "contest_code",
                    models.CharField(blank=True, db_index=True, max_length=64, null=True, verbose_name="比赛 ID"),
                ),
                (
                    "source_file",
                    models.CharField(
                        max_length=255,
                        validators=[
                            django.core.validators.RegexValidator(
                                "[\\\\/]", inverse_match=True, message="文件名不能包含路径分隔符"
                            )
                        ],
                        verbose_name="源文件",
                    ),
                ),
                (
                    "language",
                    models.CharField(
                        choices=[("C", "C"), ("Cpp", "C++"), ("Java", "Java"), ("Python3", "Python 3")],
                        max_length=16,
                        verbose_name="语言",
                    ),
                ),
                (
                    "submission_time",
                    models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name="提交时间"),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("Submitted", "已提交"),
                            ("InQueue", "排队中"),
                            ("Compiling", "编译中"),
                            ("CE", "编译错误"),
                            ("Judging", "评测中"),
                            ("TLE", "超出时间限制"),
                            ("MLE", "超出内存限制"),
                            ("RuntimeError", "运行时错误"),
                            ("WA", "答案错误"),
                            ("Accepted", "通过"),
                        ],
                        db_index=True,
                        default="Submitted",
                        max_length=16,
                        verbose_name="状态",
                    ),
                ),
                (
                    "score",
                    models.FloatField(
                        blank=True,
                        null=True,
                        validators=[django.core.validators.MinValueValidator(0)],
                        verbose_name="得分",
                    ),
                ),
                ("run_time", models.PositiveIntegerField(blank=True, null=True, verbose_name="最长运行时间(ms)")),
                ("actual_output", models.TextField(blank=True, null=True, verbose_name="实际输出片段")),
                ("log", models.TextField(blank=True, null=True, verbose_name="评测日志")),
                (
                    "author",
                    apps.common.models.WeakForeignKey(
                        related_name="submissions", required=True, to="accounts.user", verbose_name="提交人"
                    ),
                ),
                (
                    "problem",
                    apps.common.models.WeakForeignKey(
                        related_name="submissions", required=True, to="problems.problem", verbose_name="题目"
                    ),
                ),
                (
                    "contest",
                    apps.common.models.WeakForeignKey(
                        related_name="submissions", required=False, to="contests.contest", verbose_name="所属比赛"
                    ),
                ),
                (
                    "failed_test_case",
                    apps.common.models.WeakForeignKey(
                        related_name="failed_submissions",
                        required=False,
                        to="problems.testcase",
                        verbose_name="未通过的测试点",
                    ),
                ),
            ],
            options={
                "verbose_name": "提交记录",
                "verbose_name_plural": "提交记录",
                "ordering": ["-submission_time"],
            },
        ),
    ]

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
            name="Contest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "contest_id",
                    models.CharField(
                        max_length=64, unique=True, validators=[identifier_validator()], verbose_name="比赛 ID"
                    ),
                ),
                ("organizer_username", models.CharField(db_index=True, max_length=32, verbose_name="组织者用户名")),
                ("display_name", models.CharField(max_length=128, verbose_name="比赛名称")),
                (
                    "format",
                    models.CharField(
                        choices=[("IOI", "IOI"), ("ICPC", "ICPC")], default="ICPC", max_length=8, verbose_name="赛制"
                    ),
                ),
                ("start_time", models.DateTimeField(db_index=True, verbose_name="开始时间")),
                (
                    "duration",
                    models.PositiveIntegerField(
                        validators=[django.core.validators.MinValueValidator(300000)], verbose_name="时长(ms)"
                    ),
                ),
                ("description", models.TextField(blank=True, default="", verbose_name="比赛描述")),
                ("is_public", models.BooleanField(db_index=True, default=False, verbose_name="是否公开")),
                (
                    "organizer",
                    apps.common.models.WeakForeignKey(
                        related_name="organized_contests",
                        required=True,
                        to="accounts.user",
                        verbose_name="组织者",
                    ),
                ),
            ],
            options={
                "verbose_name": "比赛",
                "verbose_name_plural": "比赛",
                "ordering": ["-start_time"],
            },
        ),
        migrations.CreateModel(
            name="Announcement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "announcement_id",
                    models.CharField(
                        max_length=64, unique=True, validators=[identifier_validator()], verbose_name="公告 ID"
                    ),
                ),
                (
                    "timestamp",
                    models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name="发布时间"),
                ),
                ("subject", models.CharField(max_length=255, verbose_name="公告标题")),
                ("content", models.TextField(blank=True, default="", verbose_name="公告内容")),
                (
                    "of_contest",
                    apps.common.models.WeakForeignKey(
                        related_name="announcements",
                        required=True,
                        to="contests.contest",
                        verbose_name="所属比赛",
                    ),
                ),
            ],
            options={
                "verbose_name": "比赛公告",
                "verbose_name_plural": "比赛公告",
                "ordering": ["-timestamp", "-id"],
            },
        ),
        migrations.CreateModel(
            name="ContestParticipant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "contest",
                    models.ForeignKey(
                        db_constraint=False,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="participant_links",
                        to="contests.contest",
                        verbose_name="比赛",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        db_constraint=False,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="contest_links",
                        to="accounts.user",
                        verbose_name="参赛者",
                    ),
                ),
            ],
            options={
                "verbose_name": "参赛者",
                "verbose_name_plural": "参赛者",
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="ContestProblem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "contest",
                    models.ForeignKey(
                        db_constraint=False,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="problem_links",
                        to="contests.contest",
                        verbose_name="比赛",
                    ),
                ),
                (
                    "problem",
                    models.ForeignKey(
                        db_constraint=False,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="contest_links",
                        to="problems.problem",
                        verbose_name="题目",
                    ),
                ),
            ],
            options={
                "verbose_name": "比赛题目",
                "verbose_name_plural": "比赛题目",
                "ordering": ["id"],
            },
        ),
        migrations.AddField(
            model_name="contest",
            name="participants",
            field=models.ManyToManyField(
                blank=True,
                related_name="participating_contests",
                through="contests.ContestParticipant",
                to="accounts.user",
                verbose_name="参赛者",
            ),
        ),
        migrations.AddField(
            model_name="contest",
            name="problems",
            field=models.ManyToManyField(
                blank=True,
                related_name="contests",
                through="contests.ContestProblem",
                to="problems.problem",
                verbose_name="题目",
            ),
        ),
        migrations.AddConstraint(
            model_name="contestparticipant",
            constraint=models.UniqueConstraint(fields=("contest", "user"), name="uniq_contest_participant"),
        ),
        migrations.AddConstraint(
            model_name="contestproblem",
            constraint=models.UniqueConstraint(fields=("contest", "problem"), name="uniq_contest_problem"),
        ),
    ]

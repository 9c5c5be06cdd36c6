from __future__ import annotations

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from apps.accounts.models import User
from apps.common.models import TrimmedFieldsMixin, WeakForeignKey, link_foreign_key
from apps.common.utils.validators import identifier_validator
from apps.problems.models import Problem

# 模型文件：负责比赛、公告以及比赛题目/参赛者集合的数据结构定义，不承载业务流程

#: 比赛最短时长：5 分钟（毫秒）
MIN_CONTEST_DURATION = 5 * 60 * 1000


class ContestFormat(models.TextChoices):
    """赛制：IOI 允许部分得分，ICPC 只有全对才得分"""
    IOI = "IOI", "IOI"
    ICPC = "ICPC", "ICPC"


class Contest(TrimmedFieldsMixin, models.Model):
    """
    比赛模型：
    - contest_id 与组织者创建后不可修改，组织者用户名冗余存储以便过滤/排序
    - 题目、参赛者为集合关系（去重、按加入顺序 / 用户名排列）
    - 公告是反向关系，由 Announcement.of_contest 指向比赛
    """

    trimmed_fields = ("display_name", "description")

    # 对外标识
    contest_id = models.CharField("比赛 ID", max_length=64, unique=True, validators=[identifier_validator])
    # 组织者
    organizer = WeakForeignKey(User, verbose_name="组织者", related_name="organized_contests")
    organizer_username = models.CharField("组织者用户名", max_length=32, db_index=True)
    # 比赛名称
    display_name = models.CharField("比赛名称", max_length=128)
    # 赛制
    format = models.CharField("赛制", max_length=8, choices=ContestFormat.choices, default=ContestFormat.ICPC)
    # 开赛时间
    start_time = models.DateTimeField("开始时间", db_index=True)
    # 时长（毫秒）
    duration = models.PositiveIntegerField("时长(ms)", validators=[MinValueValidator(MIN_CONTEST_DURATION)])
    # 比赛描述
    description = models.TextField("比赛描述", blank=True, default="")
    # 可见性
    is_public = models.BooleanField("是否公开", default=False, db_index=True)
    problems = models.ManyToManyField(
        Problem,
        through="ContestProblem",
        related_name="contests",
        verbose_name="题目",
        blank=True,
    )
    participants = models.ManyToManyField(
        User,
        through="ContestParticipant",
        related_name="participating_contests",
        verbose_name="参赛者",
        blank=True,
    )

    class Meta:
        ordering = ["-start_time"]
        verbose_name = "比赛"
        verbose_name_plural = "比赛"

    def __str__(self) -> str:
        return self.contest_id


class ContestProblem(models.Model):
    """比赛题目集合，按加入顺序排列"""

    contest = link_foreign_key(Contest, verbose_name="比赛", related_name="problem_links")
    problem = link_foreign_key(Problem, verbose_name="题目", related_name="contest_links")

    class Meta:
        ordering = ["id"]
        verbose_name = "比赛题目"
        verbose_name_plural = "比赛题目"
        constraints = [
            models.UniqueConstraint(fields=["contest", "problem"], name="uniq_contest_problem"),
        ]


class ContestParticipant(models.Model):
    """比赛参赛者集合"""

    contest = link_foreign_key(Contest, verbose_name="比赛", related_name="participant_links")
    user = link_foreign_key(User, verbose_name="参赛者", related_name="contest_links")

    class Meta:
        ordering = ["id"]
        verbose_name = "参赛者"
        verbose_name_plural = "参赛者"
        constraints = [
            models.UniqueConstraint(fields=["contest", "user"], name="uniq_contest_participant"),
        ]


class Announcement(TrimmedFieldsMixin, models.Model):
    """
    比赛公告：
    - of_contest 必填；删除比赛不会删除公告
    - 标题与内容存储前去除首尾空白
    """

    trimmed_fields = ("subject", "content")

    announcement_id = models.CharField("公告 ID", max_length=64, unique=True, validators=[identifier_validator])
    of_contest = WeakForeignKey(Contest, verbose_name="所属比赛", related_name="announcements")
    timestamp = models.DateTimeField("发布时间", default=timezone.now, db_index=True)
    subject = models.CharField("公告标题", max_length=255)
    content = models.TextField("公告内容", blank=True, default="")

    class Meta:
        ordering = ["-timestamp", "-id"]
        verbose_name = "比赛公告"
        verbose_name_plural = "比赛公告"

    def __str__(self) -> str:
        return self.announcement_id

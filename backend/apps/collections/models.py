from __future__ import annotations

from django.db import models
from django.utils import timezone

from apps.accounts.models import User
from apps.common.models import TrimmedFieldsMixin, WeakForeignKey, link_foreign_key
from apps.common.utils.validators import identifier_validator
from apps.problems.models import Problem

# 模型文件：题单与题单题目集合


class Collection(TrimmedFieldsMixin, models.Model):
    """
    题单：
    - collection_id、所有者与创建时间创建后不可修改
    - 题目为有序集合，按加入顺序排列
    """

    trimmed_fields = ("display_name", "description")

    collection_id = models.CharField("题单 ID", max_length=64, unique=True, validators=[identifier_validator])
    owner = WeakForeignKey(User, verbose_name="所有者", related_name="owned_collections")
    owner_username = models.CharField("所有者用户名", max_length=32, db_index=True)
    display_name = models.CharField("题单名称", max_length=128)
    creation_date = models.DateTimeField("创建时间", default=timezone.now, db_index=True)
    description = models.TextField("题单描述", blank=True, default="")
    is_public = models.BooleanField("是否公开", default=False, db_index=True)
    problems = models.ManyToManyField(
        Problem,
        through="CollectionProblem",
        related_name="collections",
        verbose_name="题目",
        blank=True,
    )

    class Meta:
        ordering = ["display_name"]
        verbose_name = "题单"
        verbose_name_plural = "题单"

    def __str__(self) -> str:
        return self.collection_id


class CollectionProblem(models.Model):
    """题单题目集合，按加入顺序排列"""

    collection = link_foreign_key(Collection, verbose_name="题单", related_name="problem_links")
    problem = link_foreign_key(Problem, verbose_name="题目", related_name="collection_links")

    class Meta:
        verbose_name = "题单题目"
        verbose_name_plural = "题单题目"
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["collection", "problem"], name="uniq_collection_problem"),
        ]

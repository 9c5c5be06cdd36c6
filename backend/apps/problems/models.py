"""
题目相关模型定义（题目、测试点、题目-测试点关系）

- Problem 通过弱引用指向作者，并冗余保存 author_username 以便过滤/排序时无需联表
- TestCase 自身不保存所属题目，归属关系由 ProblemTestCase 表达
- ProblemTestCase 按插入顺序（主键）排列，(problem, test_case) 唯一，保证集合语义
"""

from __future__ import annotations

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from apps.accounts.models import User
from apps.common.models import TrimmedFieldsMixin, WeakForeignKey, link_foreign_key
from apps.common.utils.validators import file_name_validator, identifier_validator

#: 标准输入/输出的占位值
STDIO = "stdio"


class ProblemChecker(models.TextChoices):
    """内置比较器；也可以填写自定义比较器的文件名"""

    EQUAL = "EqualChecker", "逐字节比较"
    CASE_INSENSITIVE_EQUAL = "CaseInsensitiveEqualChecker", "忽略大小写比较"


class TestCase(models.Model):
    """
    测试点：
    - input_file / output_file 为评测机上的文件名
    - is_pretest 标记预测试点，is_hidden 控制是否在提交详情中展示
    """

    __test__ = False  # 名称以 Test 开头，避免被 pytest 当作测试类收集

    test_case_id = models.CharField("测试点 ID", max_length=64, unique=True, validators=[identifier_validator])
    input_file = models.CharField("输入文件", max_length=255, validators=[file_name_validator])
    output_file = models.CharField("输出文件", max_length=255, validators=[file_name_validator])
    is_pretest = models.BooleanField("预测试点", default=False)
    is_hidden = models.BooleanField("隐藏", default=False)
    score = models.FloatField("分值", default=0, validators=[MinValueValidator(0)])

    class Meta:
        verbose_name = "测试点"
        verbose_name_plural = "测试点"
        ordering = ["test_case_id"]

    def __str__(self) -> str:
        return self.test_case_id


class Problem(TrimmedFieldsMixin, models.Model):
    """
    题目：
    - problem_id 与作者创建后不可修改
    - 时间限制单位毫秒（≥100），内存限制单位 MB（≥16）
    - input_source / output_source 为 stdio 或文件名
    """

    trimmed_fields = ("display_name",)

    problem_id = models.CharField("题目 ID", max_length=64, unique=True, validators=[identifier_validator])
    author = WeakForeignKey(User, verbose_name="作者", related_name="authored_problems")
    author_username = models.CharField("作者用户名", max_length=32, db_index=True)
    display_name = models.CharField("题目名称", max_length=128)
    creation_date = models.DateTimeField("创建时间", default=timezone.now, db_index=True)
    is_public = models.BooleanField("是否公开", default=False, db_index=True)
    time_limit = models.PositiveIntegerField("时间限制(ms)", default=1000, validators=[MinValueValidator(100)])
    memory_limit = models.PositiveIntegerField("内存限制(MB)", default=256, validators=[MinValueValidator(16)])
    input_source = models.CharField("输入来源", max_length=255, default=STDIO, validators=[file_name_validator])
    output_source = models.CharField("输出去向", max_length=255, default=STDIO, validators=[file_name_validator])
    checker = models.CharField(
        "比较器",
        max_length=255,
        default=ProblemChecker.EQUAL,
        validators=[file_name_validator],
        help_text="内置比较器名称或自定义比较器文件名",
    )
    test_cases = models.ManyToManyField(
        TestCase,
        through="ProblemTestCase",
        related_name="problems",
        verbose_name="测试点",
        blank=True,
    )

    class Meta:
        verbose_name = "题目"
        verbose_name_plural = "题目"
        ordering = ["-creation_date"]

    def __str__(self) -> str:
        return self.problem_id


class ProblemTestCase(models.Model):
    """题目拥有的测试点集合，按加入顺序排列"""

    problem = link_foreign_key(Problem, verbose_name="题目", related_name="test_case_links")
    test_case = link_foreign_key(TestCase, verbose_name="测试点", related_name="problem_links")

    class Meta:
        verbose_name = "题目测试点"
        verbose_name_plural = "题目测试点"
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["problem", "test_case"], name="uniq_problem_test_case"),
        ]

from __future__ import annotations

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from apps.accounts.models import User
from apps.common.models import WeakForeignKey
from apps.common.utils.validators import file_name_validator, identifier_validator
from apps.contests.models import Contest
from apps.problems.models import Problem, TestCase

# 模型定义：提交记录与评测结果；作者 / 题目 / 比赛的标识冗余存储，便于过滤与排序


class SubmissionLanguage(models.TextChoices):
    C = "C", "C"
    CPP = "Cpp", "C++"
    JAVA = "Java", "Java"
    PYTHON3 = "Python3", "Python 3"


class SubmissionStatus(models.TextChoices):
    """
    评测状态：
    Submitted → InQueue → Compiling → {CE | Judging} → {TLE | MLE | RuntimeError | WA | Accepted}
    仓储层只校验取值合法，不校验状态迁移
    """
    SUBMITTED = "Submitted", "已提交"
    IN_QUEUE = "InQueue", "排队中"
    COMPILING = "Compiling", "编译中"
    CE = "CE", "编译错误"
    JUDGING = "Judging", "评测中"
    TLE = "TLE", "超出时间限制"
    MLE = "MLE", "超出内存限制"
    RUNTIME_ERROR = "RuntimeError", "运行时错误"
    WA = "WA", "答案错误"
    ACCEPTED = "Accepted", "通过"

    @classmethod
    def terminal(cls) -> list["SubmissionStatus"]:
        """终态：评测已结束"""
        return [cls.CE, cls.TLE, cls.MLE, cls.RUNTIME_ERROR, cls.WA, cls.ACCEPTED]


class Submission(models.Model):
    """
    提交记录：
    - 作者、题目、比赛创建后不可修改；比赛可为空（不在任何比赛中的提交）
    - score / run_time / failed_test_case / actual_output / log 组成评测结果，全部为空表示尚无结果
    """

    submission_id = models.CharField("提交 ID", max_length=64, unique=True, validators=[identifier_validator])
    # 提交人
    author = WeakForeignKey(User, verbose_name="提交人", related_name="submissions")
    author_username = models.CharField("提交人用户名", max_length=32, db_index=True)
    # 提交的题目
    problem = WeakForeignKey(Problem, verbose_name="题目", related_name="submissions")
    problem_code = models.CharField("题目 ID", max_length=64, db_index=True)
    # 所属比赛（可为空）
    contest = WeakForeignKey(Contest, verbose_name="所属比赛", related_name="submissions", required=False)
    contest_code = models.CharField("比赛 ID", max_length=64, null=True, blank=True, db_index=True)
    # 评测机上的源文件名
    source_file = models.CharField("源文件", max_length=255, validators=[file_name_validator])
    language = models.CharField("语言", max_length=16, choices=SubmissionLanguage.choices)
    submission_time = models.DateTimeField("提交时间", default=timezone.now, db_index=True)
    status = models.CharField(
        "状态", max_length=16, choices=SubmissionStatus.choices, default=SubmissionStatus.SUBMITTED, db_index=True
    )
    # 评测结果
    score = models.FloatField("得分", null=True, blank=True, validators=[MinValueValidator(0)])
    run_time = models.PositiveIntegerField("最长运行时间(ms)", null=True, blank=True)
    failed_test_case = WeakForeignKey(
        TestCase, verbose_name="未通过的测试点", related_name="failed_submissions", required=False
    )
    actual_output = models.TextField("实际输出片段", null=True, blank=True)
    log = models.TextField("评测日志", null=True, blank=True)

    class Meta:
        ordering = ["-submission_time"]
        verbose_name = "提交记录"
        verbose_name_plural = "提交记录"

    def __str__(self) -> str:
        return self.submission_id

    @property
    def has_result(self) -> bool:
        return any(
            value is not None
            for value in (self.score, self.run_time, self.failed_test_case_id, self.actual_output, self.log)
        )

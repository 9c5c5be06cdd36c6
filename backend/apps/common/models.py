"""
模型层公共约束：
- TrimmedFieldsMixin：写库前去除文本字段首尾空白
- WeakForeignKey：弱引用外键，仅用于查找，不级联删除、不建数据库外键约束
- link_foreign_key：集合关系（有序、去重）中间表使用的外键
"""

from __future__ import annotations

from typing import ClassVar

from django.db import models


class TrimmedFieldsMixin(models.Model):
    """
    文本字段去空白：
    - 在 clean_fields 之前执行，保证长度校验作用于去空白后的值
    - "  Bob " 存储为 "Bob"；只含空白的必填字段会因为变成空串而校验失败
    """

    #: 需要去空白的字段名
    trimmed_fields: ClassVar[tuple[str, ...]] = ()

    class Meta:
        abstract = True

    def trim_fields(self) -> None:
        for name in self.trimmed_fields:
            value = getattr(self, name, None)
            if isinstance(value, str):
                setattr(self, name, value.strip())

    def clean_fields(self, exclude=None):
        self.trim_fields()
        super().clean_fields(exclude=exclude)

    def save(self, *args, **kwargs):
        # 绕过 full_clean 的写入路径同样需要去空白
        self.trim_fields()
        super().save(*args, **kwargs)


class WeakForeignKey(models.ForeignKey):
    """
    弱引用外键：
    - 删除被引用对象时什么都不做，也不建数据库约束，引用方保留悬挂引用
    - 列允许为空，悬挂引用配合 select_related 读出为 None
    - full_clean 只做必填检查，不再查询被引用对象是否存在（引用解析由仓储层负责）
    """

    def __init__(self, to, *, required: bool = True, **kwargs):
        kwargs["on_delete"] = models.DO_NOTHING
        kwargs["db_constraint"] = False
        kwargs["null"] = True
        kwargs.setdefault("blank", not required)
        super().__init__(to, **kwargs)

    def deconstruct(self):
        name, path, args, kwargs = super().deconstruct()
        for key in ("on_delete", "db_constraint", "null"):
            kwargs.pop(key, None)
        kwargs["required"] = not kwargs.pop("blank", False)
        return name, path, args, kwargs

    def validate(self, value, model_instance):
        models.Field.validate(self, value, model_instance)


def link_foreign_key(to, *, verbose_name: str, related_name: str) -> models.ForeignKey:
    """集合关系中间表的外键：同样不级联、不建数据库约束"""
    return models.ForeignKey(
        to,
        verbose_name=verbose_name,
        related_name=related_name,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
    )

# apps/common/base/base_repo.py

from __future__ import annotations

from abc import ABC
from typing import Any, Generic, Iterable, Mapping, Optional, TypeVar

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, connection, transaction
from django.db.models import Model, QuerySet

from apps.common.exceptions import NotFoundError, ValidationError
from apps.common.infra.logger import get_logger, logger_extra

T = TypeVar("T", bound=Model)

logger = get_logger(__name__)


class BaseRepo(ABC, Generic[T]):
    """
    Repository（数据访问层）基类：
    - 业务目标：统一封装 Django ORM 读写细节，给调用方提供稳定接口
    - 模块角色：集中管理 select_related/prefetch/filter 等查询配置，以及写入前的约束校验
    - 实例只持有协作仓储的引用，不保存请求状态，可在进程内共享
    - 用法示例：class UserRepo(BaseRepo[User]): model = User
    """

    #: 子类必须指定对应的模型
    model: type[T]
    #: 对外标识字段（username / problem_id ...），用于按 id 读取与删除
    lookup_field: str = "pk"
    #: 日志中的实体名
    entity_name: str = "entity"
    #: 引用解析失败时抛出的异常类型，构造参数为对外标识
    not_found_error: type[NotFoundError] = NotFoundError
    #: 本实体拥有的集合关系中间表：(模型, 指向本实体的外键名)，删除实体时一并删除
    owned_links: tuple = ()

    # ------------------------
    # QuerySet 构建
    # ------------------------

    def get_queryset(self) -> QuerySet[T]:
        """
        返回默认 QuerySet，子类可覆盖以附加 select_related/prefetch/filter
        """
        if not getattr(self, "model", None):
            raise NotImplementedError("BaseRepo 子类必须声明 model 属性")
        return self.model._default_manager.all()

    def filter(self, *, queryset: Optional[QuerySet[T]] = None, **filters) -> QuerySet[T]:
        """
        通用过滤入口，允许注入自定义 QuerySet
        """
        qs = queryset if queryset is not None else self.get_queryset()
        return qs.filter(**filters)

    def get_or_none(self, *, queryset: Optional[QuerySet[T]] = None, **filters) -> Optional[T]:
        """
        返回符合条件的单个对象，未命中则为 None
        """
        qs = queryset if queryset is not None else self.get_queryset()
        return qs.filter(**filters).first()

    def get_by_key(self, key: Any, *, queryset: Optional[QuerySet[T]] = None) -> Optional[T]:
        """按对外标识读取，未命中返回 None"""
        return self.get_or_none(queryset=queryset, **{self.lookup_field: key})

    def get_for_update(self, key: Any) -> Optional[T]:
        """
        事务内按对外标识读取并加行锁（数据库支持时），用于集合关系的增删
        """
        qs = self.model._default_manager.all()
        if connection.features.has_select_for_update:
            qs = qs.select_for_update()
        return qs.filter(**{self.lookup_field: key}).first()

    def require(self, key: Any, *, for_update: bool = False) -> T:
        """
        解析写操作引用的实体：不存在时记录 WARNING 并抛出 not_found_error
        """
        instance = self.get_for_update(key) if for_update else self.get_by_key(key)
        if instance is None:
            raise self.not_found(self.not_found_error(key))
        return instance

    def not_found(self, error: NotFoundError) -> NotFoundError:
        logger.warning(error.message, extra=logger_extra({"entity": self.entity_name, "code": error.code, **error.extra}))
        return error

    def exists(self, **filters) -> bool:
        """
        判断是否存在满足条件的记录
        """
        return self.filter(**filters).exists()

    def count(self, **filters) -> int:
        """
        返回满足条件的记录数
        """
        return self.filter(**filters).count()

    # ------------------------
    # 写操作
    # ------------------------

    def save_validated(self, instance: T, *, update_fields: Iterable[str] | None = None) -> T:
        """
        先 full_clean 再保存：
        - 字段约束（长度、格式、必填、枚举、唯一性）失败统一转为业务 ValidationError
        - 并发下唯一索引冲突（IntegrityError）同样视为参数错误；保存包在保存点内，
          失败时不破坏外层事务
        """
        try:
            instance.full_clean()
        except DjangoValidationError as exc:
            raise to_biz_validation_error(exc) from exc
        try:
            with transaction.atomic():
                if update_fields is None:
                    instance.save()
                else:
                    instance.save(update_fields=list(update_fields))
        except IntegrityError as exc:
            raise ValidationError(message="数据违反唯一性或完整性约束", extra={"detail": str(exc)}) from exc
        return instance

    def create(self, data: Mapping[str, Any]) -> T:
        """
        创建记录：构造实例后走 save_validated
        """
        instance = self.model(**data)
        self.save_validated(instance)
        self.log_write("created", getattr(instance, self.lookup_field))
        return instance

    def update(self, instance: T, data: Mapping[str, Any]) -> T:
        """
        批量更新字段并保存，返回最新实例
        """
        for field, value in data.items():
            setattr(instance, field, value)
        self.save_validated(instance)
        self.log_write("updated", getattr(instance, self.lookup_field), fields=",".join(data.keys()))
        return instance

    def delete_by_key(self, key: Any) -> int:
        """
        按对外标识硬删除，返回删除条数（0 或 1）；不存在时不报错。
        只删除本表记录及本实体拥有的集合关系，不级联其他实体
        """
        with transaction.atomic():
            pks = list(self.model._default_manager.filter(**{self.lookup_field: key}).values_list("pk", flat=True))
            if not pks:
                return 0
            for link_model, owner_field in self.owned_links:
                link_model._default_manager.filter(**{f"{owner_field}_id__in": pks}).delete()
            _, per_model = self.model._default_manager.filter(pk__in=pks).delete()
        deleted = per_model.get(self.model._meta.label, 0)
        if deleted:
            self.log_write("deleted", key)
        return deleted

    def log_write(self, action: str, identifier: Any, **context) -> None:
        """写操作统一记录一行 INFO 日志"""
        logger.info(
            f"{self.entity_name} {action}",
            extra=logger_extra({"entity": self.entity_name, "identifier": identifier, **context}),
        )


def to_biz_validation_error(exc: DjangoValidationError) -> ValidationError:
    """Django ValidationError -> 业务 ValidationError，保留逐字段错误信息"""
    if hasattr(exc, "error_dict"):
        return ValidationError.from_field_errors(exc.message_dict)
    return ValidationError.from_field_errors({"__all__": exc.messages})

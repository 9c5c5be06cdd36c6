# apps/common/base/base_schema.py

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, fields
from typing import Any, ClassVar, Dict, Generic, Iterable, Mapping, TypeVar

from apps.common.exceptions import ValidationError

T = TypeVar("T")
SchemaType = TypeVar("SchemaType", bound="BaseSchema[Any]")

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def camel_to_snake(name: str) -> str:
    """displayName -> display_name；已是蛇形命名时原样返回"""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


@dataclass
class BaseSchema(ABC, Generic[T]):
    """
    业务 Schema / DTO 基类

    目的：
        - 作为仓储层的入参（*Base / *FilterOptions / 展开选项），替代无类型的字典；
        - 聚合字段校验逻辑，写库前先做一次结构化校验；
        - 提供通用的字典化与外部 payload 解析能力

    子类示例：
        @dataclass
        class UserSchema(BaseSchema):
            username: str
            display_name: str

            def validate(self):
                validate_username(self.username)
    """

    #: 是否在 __post_init__ 中自动执行 validate
    auto_validate: ClassVar[bool] = False
    #: 字段别名映射：兼容外部命名（如 ofContestId）到内部字段
    ALIASES: ClassVar[dict[str, str]] = {}

    def __post_init__(self):
        if self.auto_validate:
            self.validate()

    # ------------------------
    # 校验钩子
    # ------------------------

    @abstractmethod
    def validate(self) -> None:
        """
        子类实现字段/业务约束校验，出错时抛 ValidationError
        """

    # ------------------------
    # 数据转换
    # ------------------------

    def to_dict(
            self,
            *,
            exclude_none: bool = False,
            exclude: Iterable[str] | None = None,
    ) -> Dict[str, Any]:
        """
        将 Schema 转为 dict，支持过滤 None 或移除指定字段
        """
        data = asdict(self)
        if exclude_none:
            data = {key: value for key, value in data.items() if value is not None}
        if exclude:
            for key in exclude:
                data.pop(key, None)
        return data

    def to_model_kwargs(
            self,
            *,
            exclude_none: bool = True,
            exclude: Iterable[str] | None = None,
    ) -> Dict[str, Any]:
        """
        写库用的字段字典：默认去掉值为 None（未提供）的字段，便于 create/update
        """
        return self.to_dict(exclude_none=exclude_none, exclude=exclude)

    # ------------------------
    # 构建方法
    # ------------------------

    @classmethod
    def from_dict(
            cls: type[SchemaType],
            data: Mapping[str, Any],
    ) -> SchemaType:
        """
        将外部 payload 转为 Schema：
        - 兼容驼峰命名（displayName → display_name）与 ALIASES 别名
        - 未知字段直接报参数错误，避免静默丢弃
        - auto_validate 的 Schema 在构造时已校验，其余 Schema 在返回前校验
        """
        known = {item.name for item in fields(cls) if item.init}
        normalized: Dict[str, Any] = {}
        unknown: list[str] = []
        for key, value in dict(data).items():
            target = cls.ALIASES.get(key) or (key if key in known else camel_to_snake(key))
            if target not in known:
                unknown.append(key)
                continue
            # 同时出现别名与目标字段时以目标字段为准
            if target in normalized and key != target:
                continue
            normalized[target] = value
        if unknown:
            raise ValidationError.from_field_errors({key: "未知字段" for key in unknown})
        try:
            instance = cls(**normalized)  # type: ignore[arg-type]
        except TypeError as exc:
            raise ValidationError(message=f"缺少必要字段：{exc}") from exc
        if not cls.auto_validate:
            instance.validate()
        return instance

"""
查询组装器：把各实体的 FilterOptions 翻译成 Django QuerySet

规则：
- 列表型过滤（LIST）：None 表示不过滤；其余值按字面量应用，空列表匹配不到任何记录；
  列表中的 None 额外匹配该字段为空的记录（例如“不属于任何比赛的提交”）
- 区间型过滤（RANGE）：[下界, 上界]，两端均为闭区间，任一端为 None 表示该侧不设限
- 布尔型过滤（BOOL）：非 None 时做等值匹配
- 排序：按 sort_fields 顺序依次应用，最后追加主键保证分页稳定
- 分页：跳过 start_index 条，再取最多 item_count 条（None 表示不限）
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Mapping, Optional, Sequence

from django.db.models import Q, QuerySet

from apps.common.base.base_schema import BaseSchema, camel_to_snake
from apps.common.exceptions import ValidationError
from apps.common.utils.validators import validate_boolean


class FilterKind(str, enum.Enum):
    LIST = "list"
    RANGE = "range"
    BOOL = "bool"


@dataclass(frozen=True)
class FilterField:
    """声明一个可过滤字段：FilterOptions 上的属性名 -> ORM 查询路径"""

    option: str
    lookup: str
    kind: FilterKind
    #: 单个取值的转换函数（如把字符串时间转为 datetime），出错时抛 ValidationError
    parser: Optional[Callable[[Any], Any]] = None


@dataclass(frozen=True)
class SortField:
    """排序指令：field 为对外字段名，ascending 控制升降序"""

    field: str
    ascending: bool = True

    @classmethod
    def parse(cls, value: Any) -> "SortField":
        """兼容 SortField / {"field": ..., "ascending": ...} / "-field" 三种写法"""
        if isinstance(value, SortField):
            return value
        if isinstance(value, Mapping):
            if "field" not in value:
                raise ValidationError.from_field_errors({"sort_fields": "排序项缺少 field"})
            ascending = value.get("ascending", True)
            validate_boolean(ascending, field_name="ascending")
            return cls(field=str(value["field"]), ascending=True if ascending is None else ascending)
        if isinstance(value, str) and value:
            if value.startswith("-"):
                return cls(field=value[1:], ascending=False)
            return cls(field=value, ascending=True)
        raise ValidationError.from_field_errors({"sort_fields": f"无法识别的排序项：{value!r}"})


@dataclass
class BaseFilterOptions(BaseSchema[None]):
    """
    列表查询的公共参数：分页与排序

    子类声明：
    - FILTER_FIELDS：可过滤字段
    - SORTABLE：允许排序的对外字段名 -> ORM 字段
    - DEFAULT_SORT：未指定 sort_fields 时的默认排序
    """

    auto_validate: ClassVar[bool] = True
    FILTER_FIELDS: ClassVar[Sequence[FilterField]] = ()
    SORTABLE: ClassVar[Mapping[str, str]] = {}
    DEFAULT_SORT: ClassVar[Sequence[SortField]] = ()

    # 结果集中第一条记录的下标
    start_index: int = 0
    # 返回的记录数，None 表示不限
    item_count: Optional[int] = None
    # 排序指令，None 表示使用默认排序
    sort_fields: Optional[list] = None

    def validate(self) -> None:
        """校验分页参数、排序字段白名单以及各过滤字段的形状"""
        if self.start_index is None:
            self.start_index = 0
        if isinstance(self.start_index, bool) or not isinstance(self.start_index, int) or self.start_index < 0:
            raise ValidationError.from_field_errors({"start_index": "start_index 必须是非负整数"})
        if self.item_count is not None and (
                isinstance(self.item_count, bool) or not isinstance(self.item_count, int) or self.item_count < 0
        ):
            raise ValidationError.from_field_errors({"item_count": "item_count 必须是非负整数或为空"})

        if self.sort_fields is None:
            self.sort_fields = list(self.DEFAULT_SORT)
        else:
            parsed = [SortField.parse(item) for item in self.sort_fields]
            normalized = []
            for item in parsed:
                name = item.field if item.field in self.SORTABLE else camel_to_snake(item.field)
                if name not in self.SORTABLE:
                    raise ValidationError.from_field_errors(
                        {"sort_fields": f"不支持按 {item.field} 排序，可选：{', '.join(self.SORTABLE)}"}
                    )
                normalized.append(SortField(field=name, ascending=item.ascending))
            self.sort_fields = normalized

        for filter_field in self.FILTER_FIELDS:
            value = getattr(self, filter_field.option, None)
            if value is None:
                continue
            setattr(self, filter_field.option, _normalize_filter_value(filter_field, value))


def _normalize_filter_value(filter_field: FilterField, value: Any) -> Any:
    """按过滤类型校验取值形状，并对每个元素应用 parser"""
    parse = filter_field.parser or (lambda item: item)
    if filter_field.kind is FilterKind.LIST:
        if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple, set, frozenset)):
            raise ValidationError.from_field_errors({filter_field.option: f"{filter_field.option} 必须是列表"})
        return [None if item is None else parse(item) for item in value]
    if filter_field.kind is FilterKind.RANGE:
        if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)) or len(value) != 2:
            raise ValidationError.from_field_errors({filter_field.option: f"{filter_field.option} 必须是 [下界, 上界] 两个元素"})
        low, high = (None if item is None else parse(item) for item in value)
        if low is not None and high is not None:
            try:
                reversed_bounds = low > high
            except TypeError as exc:
                raise ValidationError.from_field_errors(
                    {filter_field.option: f"{filter_field.option} 上下界类型不一致"}
                ) from exc
            if reversed_bounds:
                raise ValidationError.from_field_errors({filter_field.option: f"{filter_field.option} 下界不能大于上界"})
        return [low, high]
    if not isinstance(value, bool):
        raise ValidationError.from_field_errors({filter_field.option: f"{filter_field.option} 必须是布尔值"})
    return value


# ------------------------
# 条件 / 排序 / 分页
# ------------------------

def _list_condition(lookup: str, values: Sequence[Any]) -> Q:
    concrete = [item for item in values if item is not None]
    condition = Q(**{f"{lookup}__in": concrete})
    if len(concrete) != len(values):
        condition |= Q(**{f"{lookup}__isnull": True})
    return condition


def _range_condition(lookup: str, bounds: Sequence[Any]) -> Q:
    low, high = bounds
    condition = Q()
    if low is not None:
        condition &= Q(**{f"{lookup}__gte": low})
    if high is not None:
        condition &= Q(**{f"{lookup}__lte": high})
    return condition


def build_conditions(options: BaseFilterOptions) -> Q:
    """把已填写的过滤字段按 AND 组合成一个 Q 对象"""
    condition = Q()
    for filter_field in options.FILTER_FIELDS:
        value = getattr(options, filter_field.option, None)
        if value is None:
            continue
        if filter_field.kind is FilterKind.LIST:
            condition &= _list_condition(filter_field.lookup, value)
        elif filter_field.kind is FilterKind.RANGE:
            condition &= _range_condition(filter_field.lookup, value)
        else:
            condition &= Q(**{filter_field.lookup: value})
    return condition


def build_ordering(options: BaseFilterOptions) -> list[str]:
    """排序指令 -> order_by 参数，最后追加主键作为稳定的次序"""
    ordering = []
    for item in options.sort_fields or ():
        lookup = options.SORTABLE[item.field]
        ordering.append(lookup if item.ascending else f"-{lookup}")
    ordering.append("pk")
    return ordering


def paginate(queryset: QuerySet, start_index: int, item_count: Optional[int]) -> QuerySet:
    """跳过 start_index 条后取最多 item_count 条"""
    if item_count is None:
        return queryset[start_index:] if start_index else queryset
    return queryset[start_index:start_index + item_count]


def visible_to(as_user: str, *, owner_lookup: str, public_lookup: str = "is_public") -> Q:
    """可见性条件：本人创建的，或公开的"""
    return Q(**{owner_lookup: as_user}) | Q(**{public_lookup: True})


def compose_query(queryset: QuerySet, options: BaseFilterOptions, *, extra: Optional[Q] = None) -> QuerySet:
    """
    组装完整列表查询：过滤 + 额外条件（如可见性）+ 排序 + 分页
    """
    condition = build_conditions(options)
    if extra is not None:
        condition &= extra
    queryset = queryset.filter(condition).order_by(*build_ordering(options))
    return paginate(queryset, options.start_index, options.item_count)


def count_query(queryset: QuerySet, options: BaseFilterOptions, *, extra: Optional[Q] = None) -> int:
    """与 compose_query 相同的过滤条件，但忽略排序与分页，返回总数"""
    condition = build_conditions(options)
    if extra is not None:
        condition &= extra
    return queryset.filter(condition).count()

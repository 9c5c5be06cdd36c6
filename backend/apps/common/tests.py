"""
公共模块单测：
- 查询组装器（过滤 / 排序 / 分页 / 可见性）
- Schema 的外部 payload 解析
- 业务异常、字段校验与时间工具
- 日志上下文脱敏
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from typing import ClassVar, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from apps.accounts.models import User
from apps.common.base.base_repo import to_biz_validation_error
from apps.common.base.base_schema import BaseSchema
from apps.common.exceptions import BizError, NotFoundError, ProblemNotFoundError, ValidationError
from apps.common.infra.logger import TMOJJSONFormatter, TMOJPlainFormatter, logger_extra
from apps.common.query import (
    BaseFilterOptions,
    FilterField,
    FilterKind,
    SortField,
    build_ordering,
    compose_query,
    count_query,
    visible_to,
)
from apps.common.utils.time import ensure_aware, from_timestamp, to_timestamp
from apps.common.utils.validators import (
    forbid_dangerous_html,
    validate_identifier,
    validate_integer,
    validate_required,
    validate_username,
)
from apps.problems.schemas import ProblemBaseSchema, ProblemFilterOptions


@dataclass
class UserListOptions(BaseFilterOptions):
    """仅供测试使用的用户列表过滤参数"""
    FILTER_FIELDS: ClassVar[tuple] = (
        FilterField("username", "username", FilterKind.LIST),
        FilterField("display_name", "display_name", FilterKind.LIST),
        FilterField("name_between", "display_name", FilterKind.RANGE),
    )
    SORTABLE: ClassVar[dict] = {"username": "username", "display_name": "display_name"}
    DEFAULT_SORT: ClassVar[tuple] = (SortField("username"),)

    username: Optional[list] = None
    display_name: Optional[list] = None
    name_between: Optional[list] = None


class FilterOptionsTests(SimpleTestCase):
    """过滤参数的形状校验"""

    def test_negative_pagination_is_rejected(self):
        with self.assertRaises(ValidationError):
            UserListOptions(start_index=-1)
        with self.assertRaises(ValidationError):
            UserListOptions(item_count=-5)
        with self.assertRaises(ValidationError):
            UserListOptions(item_count=True)

    def test_sort_directives_accept_three_shapes(self):
        options = UserListOptions(
            sort_fields=[SortField("username", ascending=False), {"field": "displayName"}, "-username"]
        )
        self.assertEqual(
            options.sort_fields,
            [SortField("username", False), SortField("display_name", True), SortField("username", False)],
        )
        self.assertEqual(build_ordering(options), ["-username", "display_name", "-username", "pk"])

    def test_sort_direction_must_be_boolean(self):
        with self.assertRaises(ValidationError):
            UserListOptions(sort_fields=[{"field": "displayName", "ascending": "false"}])
        options = UserListOptions(sort_fields=[{"field": "displayName", "ascending": False}])
        self.assertEqual(options.sort_fields, [SortField("display_name", False)])

    def test_range_bounds_of_mixed_types_are_rejected(self):
        with self.assertRaises(ValidationError):
            UserListOptions(name_between=["a", 5])
        self.assertEqual(UserListOptions(name_between=["a", "m"]).name_between, ["a", "m"])

    def test_default_sort_applies_when_absent(self):
        self.assertEqual(build_ordering(UserListOptions()), ["username", "pk"])
        self.assertEqual(build_ordering(UserListOptions(sort_fields=[])), ["pk"])

    def test_list_filter_must_be_a_list(self):
        with self.assertRaises(ValidationError):
            UserListOptions(username="alice_01")

    def test_reversed_range_is_rejected(self):
        now = timezone.now()
        with self.assertRaises(ValidationError):
            ProblemFilterOptions(creation_date=[now, now - datetime.timedelta(days=1)])
        options = ProblemFilterOptions(creation_date=["2024-01-01T00:00:00Z", None])
        self.assertEqual(options.creation_date[0], datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc))


class ComposeQueryTests(TestCase):
    """在真实 QuerySet 上验证过滤、排序与分页"""

    def setUp(self) -> None:
        for username, display_name in (
                ("alice_01", "Alice"), ("bob_0001", "Bob"), ("carol_01", "Carol"), ("dave_001", "Bob")
        ):
            User.objects.create(username=username, display_name=display_name)

    def usernames(self, options: BaseFilterOptions) -> list[str]:
        return [user.username for user in compose_query(User.objects.all(), options)]

    def test_list_filter_and_empty_list(self):
        self.assertEqual(self.usernames(UserListOptions(display_name=["Bob"])), ["bob_0001", "dave_001"])
        self.assertEqual(self.usernames(UserListOptions(display_name=[])), [])
        self.assertEqual(self.usernames(UserListOptions()), ["alice_01", "bob_0001", "carol_01", "dave_001"])

    def test_pagination_window(self):
        self.assertEqual(self.usernames(UserListOptions(start_index=1, item_count=2)), ["bob_0001", "carol_01"])
        self.assertEqual(self.usernames(UserListOptions(start_index=3)), ["dave_001"])
        self.assertEqual(self.usernames(UserListOptions(start_index=10)), [])
        self.assertEqual(self.usernames(UserListOptions(item_count=0)), [])

    def test_sort_ties_fall_back_to_insertion_order(self):
        options = UserListOptions(sort_fields=["-displayName"])
        self.assertEqual(self.usernames(options), ["carol_01", "bob_0001", "dave_001", "alice_01"])

    def test_count_ignores_pagination(self):
        options = UserListOptions(display_name=["Bob", "Alice"], start_index=2, item_count=1)
        self.assertEqual(count_query(User.objects.all(), options), 3)

    def test_extra_condition_is_anded(self):
        condition = visible_to("alice_01", owner_lookup="username", public_lookup="display_name__isnull")
        rows = compose_query(User.objects.all(), UserListOptions(display_name=["Bob", "Alice"]), extra=condition)
        self.assertEqual([user.username for user in rows], ["alice_01"])


@dataclass
class PayloadSchema(ProblemBaseSchema):
    ALIASES: ClassVar[dict] = {"title": "display_name"}


@dataclass
class DeferredSchema(BaseSchema[None]):
    """构造时不校验的 Schema"""
    name: str
    note: Optional[str] = None

    def validate(self) -> None:
        validate_required(self.name, field_name="name")


class SchemaParsingTests(SimpleTestCase):
    def test_from_dict_accepts_camel_case_and_aliases(self):
        schema = PayloadSchema.from_dict({"problemId": "p1", "title": "A + B", "timeLimit": 2000})
        self.assertEqual(schema.display_name, "A + B")
        self.assertEqual(schema.time_limit, 2000)
        self.assertEqual(schema.to_model_kwargs(), {"problem_id": "p1", "display_name": "A + B", "time_limit": 2000})

    def test_unknown_and_missing_fields(self):
        with self.assertRaises(ValidationError) as ctx:
            ProblemBaseSchema.from_dict({"problemId": "p1", "difficulty": 3})
        self.assertEqual(ctx.exception.extra["fields"], {"difficulty": ["未知字段"]})
        with self.assertRaises(ValidationError):
            ProblemBaseSchema.from_dict({"displayName": "no id"})

    def test_from_dict_validates_schemas_without_auto_validate(self):
        self.assertEqual(DeferredSchema(name="").name, "")
        with self.assertRaises(ValidationError):
            DeferredSchema.from_dict({"name": ""})
        schema = DeferredSchema.from_dict({"name": "x"})
        self.assertEqual(schema.to_model_kwargs(), {"name": "x"})
        self.assertEqual(schema.to_model_kwargs(exclude_none=False), {"name": "x", "note": None})

    def test_validation_runs_on_construction(self):
        with self.assertRaises(ValidationError):
            ProblemBaseSchema(problem_id="has space")
        with self.assertRaises(ValidationError):
            ProblemBaseSchema(problem_id="p1", time_limit=True)


class ExceptionTests(SimpleTestCase):
    def test_not_found_carries_identifier(self):
        error = ProblemNotFoundError("p1")
        self.assertIsInstance(error, NotFoundError)
        self.assertIsInstance(error, BizError)
        self.assertEqual(error.problem_id, "p1")
        self.assertEqual(error.extra, {"problem_id": "p1"})
        self.assertEqual(error.http_status, 404)
        self.assertIn("p1", str(error))

    def test_field_errors_use_first_message(self):
        error = ValidationError.from_field_errors({"a": ["first", "second"], "b": "third"})
        self.assertEqual(error.message, "first")
        self.assertEqual(error.extra["fields"], {"a": ["first", "second"], "b": ["third"]})

    def test_django_validation_error_is_translated(self):
        error = to_biz_validation_error(DjangoValidationError({"display_name": ["too long"]}))
        self.assertEqual(error.extra["fields"], {"display_name": ["too long"]})
        error = to_biz_validation_error(DjangoValidationError("broken"))
        self.assertEqual(error.extra["fields"], {"__all__": ["broken"]})


class ValidatorTests(SimpleTestCase):
    def test_username_rules(self):
        validate_username("alice_01")
        for bad in ("short", "x" * 33, "has-dash", "中文用户名称啊", None):
            with self.assertRaises(ValidationError):
                validate_username(bad)

    def test_identifier_rules(self):
        validate_identifier("contest-2024.round_1", field_name="contest_id")
        for bad in ("", " p1", "a/b", 7):
            with self.assertRaises(ValidationError):
                validate_identifier(bad, field_name="contest_id")

    def test_required_and_integer(self):
        with self.assertRaises(ValidationError):
            validate_required("", field_name="x")
        validate_integer(None, field_name="x", minimum=10)
        with self.assertRaises(ValidationError):
            validate_integer(9, field_name="x", minimum=10)
        with self.assertRaises(ValidationError):
            validate_integer(1.5, field_name="x")

    def test_dangerous_html(self):
        forbid_dangerous_html("**bold** <b>ok</b>", field_name="description")
        with self.assertRaises(ValidationError):
            forbid_dangerous_html('<a href="JavaScript:alert(1)">x</a>', field_name="description")


class TimeUtilTests(SimpleTestCase):
    def test_ensure_aware_inputs(self):
        self.assertIsNone(ensure_aware(None))
        self.assertEqual(ensure_aware(0), datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc))
        self.assertTrue(timezone.is_aware(ensure_aware(datetime.datetime(2024, 5, 1, 8, 0))))
        for bad in ("yesterday", True, [2024]):
            with self.assertRaises(ValidationError):
                ensure_aware(bad)

    def test_timestamp_round_trip(self):
        self.assertEqual(to_timestamp(from_timestamp(1700000000)), 1700000000)
        self.assertEqual(to_timestamp(datetime.datetime(1970, 1, 1, 0, 1)), 60)


class LoggerTests(SimpleTestCase):
    def make_record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord("apps.problems.repo", logging.INFO, __file__, 1, "problem created", (), None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_sensitive_keys_are_masked(self):
        self.assertEqual(
            logger_extra({"username": "alice_01", "value": "hunter2", "Password": "x"}),
            {"username": "alice_01", "value": "***", "Password": "***"},
        )
        self.assertEqual(logger_extra(None), {})

    def test_formatters_append_context(self):
        record = self.make_record(entity="problem", identifier="p1")
        self.assertTrue(TMOJPlainFormatter().format(record).endswith("problem created [entity=problem identifier=p1]"))
        self.assertIn('"identifier": "p1"', TMOJJSONFormatter().format(record))

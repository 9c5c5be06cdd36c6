from __future__ import annotations

from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from apps.common.exceptions import AuthenticationDetailNotFoundError, UserNotFoundError, ValidationError

from .models import AuthenticationDetail, AuthenticationMethod
from .repo import AuthenticationDetailRepo, BlacklistedJwtRepo, UserRepo
from .schemas import AuthenticationDetailSchema, BlacklistedJwtSchema, UserSchema


# 测试用例：覆盖 accounts 模块的仓储层读写与约束


class UserRepoTests(TestCase):
    """用户仓储：创建、读取、更新、删除以及字段约束"""

    def setUp(self) -> None:
        self.repo = UserRepo()

    def test_display_name_is_trimmed(self):
        """显示名称存储前去除首尾空白"""
        self.repo.add_user(UserSchema(username="u_1_bob", display_name=" Bob "))
        self.assertEqual(self.repo.get_user("u_1_bob"), {"username": "u_1_bob", "display_name": "Bob"})

    def test_get_missing_user_returns_none(self):
        self.assertIsNone(self.repo.get_user("nobody_here"))

    def test_duplicate_username_is_validation_error(self):
        """重复用户名报参数错误，原记录保持不变"""
        self.repo.add_user(UserSchema(username="alice_01", display_name="Alice"))
        with self.assertRaises(ValidationError):
            self.repo.add_user(UserSchema(username="alice_01", display_name="Another"))
        self.assertEqual(self.repo.get_user("alice_01")["display_name"], "Alice")

    def test_username_constraints(self):
        """用户名长度 6-32，仅字母数字下划线"""
        with self.assertRaises(ValidationError):
            UserSchema(username="short", display_name="S")
        with self.assertRaises(ValidationError):
            UserSchema(username="has space", display_name="S")
        with self.assertRaises(ValidationError):
            UserSchema(username="x" * 33, display_name="S")

    def test_display_name_required_and_bounded(self):
        """仅含空白的显示名称去空白后为空，视为缺失；超过 64 个字符报错"""
        with self.assertRaises(ValidationError):
            self.repo.add_user(UserSchema(username="blank_name", display_name="   "))
        with self.assertRaises(ValidationError):
            self.repo.add_user(UserSchema(username="long_name", display_name="n" * 65))
        with self.assertRaises(ValidationError):
            self.repo.add_user(UserSchema(username="none_name"))

    def test_update_only_changes_display_name(self):
        self.repo.add_user(UserSchema(username="carol_01", display_name="Carol"))
        updated = self.repo.update_user(UserSchema(username="carol_01", display_name="  Caroline "))
        self.assertEqual(updated, {"username": "carol_01", "display_name": "Caroline"})

    def test_update_missing_user_returns_none(self):
        self.assertIsNone(self.repo.update_user(UserSchema(username="ghost_user", display_name="G")))

    def test_delete_signals_by_count(self):
        self.repo.add_user(UserSchema(username="dave_001", display_name="Dave"))
        self.assertEqual(self.repo.delete_user("dave_001"), 1)
        self.assertEqual(self.repo.delete_user("dave_001"), 0)
        self.assertIsNone(self.repo.get_user("dave_001"))

    def test_require_user_raises_not_found(self):
        with self.assertRaises(UserNotFoundError) as ctx:
            self.repo.require_user("ghost_user")
        self.assertEqual(ctx.exception.username, "ghost_user")

    def test_from_dict_accepts_camel_case(self):
        schema = UserSchema.from_dict({"username": "erin_001", "displayName": "Erin"})
        self.assertEqual(schema.display_name, "Erin")
        with self.assertRaises(ValidationError):
            UserSchema.from_dict({"username": "erin_001", "nickname": "E"})


class AuthenticationDetailRepoTests(TestCase):
    """认证信息仓储：哈希、校验以及“用户不存在 / 认证信息不存在”两类错误"""

    def setUp(self) -> None:
        self.user_repo = UserRepo()
        self.repo = AuthenticationDetailRepo(user_repo=self.user_repo)
        self.user_repo.add_user(UserSchema(username="alice_01", display_name="Alice"))

    def test_password_is_hashed_and_verifiable(self):
        """密码保存前哈希，明文不落库"""
        detail = self.repo.add_authentication_detail(
            "alice_01", AuthenticationDetailSchema(method=AuthenticationMethod.PASSWORD, value="S3cret!")
        )
        self.assertNotEqual(detail["value"], "S3cret!")
        self.assertTrue(self.repo.verify_authentication_detail("alice_01", AuthenticationMethod.PASSWORD, "S3cret!"))
        self.assertFalse(self.repo.verify_authentication_detail("alice_01", AuthenticationMethod.PASSWORD, "wrong"))

    def test_unchanged_value_is_not_rehashed(self):
        """value 未变化时再次保存不会重复哈希"""
        self.repo.add_authentication_detail(
            "alice_01", AuthenticationDetailSchema(method=AuthenticationMethod.PASSWORD, value="S3cret!")
        )
        detail = AuthenticationDetail.objects.get(of_user__username="alice_01")
        stored = detail.value
        detail.save()
        detail.refresh_from_db()
        self.assertEqual(detail.value, stored)
        self.assertTrue(detail.check_value("S3cret!"))

    def test_get_returns_none_for_missing_user_or_method(self):
        self.assertIsNone(self.repo.get_authentication_detail("ghost_user", AuthenticationMethod.PASSWORD))
        self.assertIsNone(self.repo.get_authentication_detail("alice_01", AuthenticationMethod.PASSWORD))

    def test_add_for_missing_user_raises(self):
        with self.assertRaises(UserNotFoundError):
            self.repo.add_authentication_detail(
                "ghost_user", AuthenticationDetailSchema(method=AuthenticationMethod.PASSWORD, value="x")
            )
        self.assertEqual(AuthenticationDetail.objects.count(), 0)

    def test_update_distinguishes_missing_user_and_missing_detail(self):
        schema = AuthenticationDetailSchema(method=AuthenticationMethod.PASSWORD, value="new-pass")
        with self.assertRaises(UserNotFoundError):
            self.repo.update_authentication_detail("ghost_user", schema)
        with self.assertRaises(AuthenticationDetailNotFoundError) as ctx:
            self.repo.update_authentication_detail("alice_01", schema)
        self.assertEqual(ctx.exception.method, "Password")

    def test_update_rehashes_new_value(self):
        self.repo.add_authentication_detail(
            "alice_01", AuthenticationDetailSchema(method=AuthenticationMethod.PASSWORD, value="old-pass")
        )
        self.repo.update_authentication_detail(
            "alice_01", AuthenticationDetailSchema(method=AuthenticationMethod.PASSWORD, value="new-pass")
        )
        self.assertTrue(self.repo.verify_authentication_detail("alice_01", AuthenticationMethod.PASSWORD, "new-pass"))
        self.assertFalse(self.repo.verify_authentication_detail("alice_01", AuthenticationMethod.PASSWORD, "old-pass"))

    def test_delete_raises_when_nothing_matched(self):
        with self.assertRaises(AuthenticationDetailNotFoundError):
            self.repo.delete_authentication_detail("alice_01", AuthenticationMethod.PASSWORD)
        self.repo.add_authentication_detail(
            "alice_01", AuthenticationDetailSchema(method=AuthenticationMethod.PASSWORD, value="pw")
        )
        self.assertEqual(self.repo.delete_authentication_detail("alice_01", AuthenticationMethod.PASSWORD), 1)

    def test_invalid_method_is_rejected(self):
        with self.assertRaises(ValidationError):
            AuthenticationDetailSchema(method="Fingerprint", value="x")


class BlacklistedJwtRepoTests(TestCase):
    """JWT 黑名单仓储"""

    def setUp(self) -> None:
        self.repo = BlacklistedJwtRepo()
        self.now = timezone.now()

    def test_blacklist_lifecycle(self):
        self.repo.add_blacklisted_jwt(BlacklistedJwtSchema(jwt_id="jti-1", exp=self.now + timedelta(hours=1)))
        self.assertTrue(self.repo.is_blacklisted("jti-1", now=self.now))
        self.assertFalse(self.repo.is_blacklisted("jti-2", now=self.now))

        later = self.now + timedelta(hours=2)
        updated = self.repo.update_blacklisted_jwt(BlacklistedJwtSchema(jwt_id="jti-1", exp=later))
        self.assertEqual(updated["exp"], later)
        self.assertIsNone(self.repo.update_blacklisted_jwt(BlacklistedJwtSchema(jwt_id="jti-9", exp=later)))

        self.assertEqual(self.repo.delete_blacklisted_jwt("jti-1"), 1)
        self.assertIsNone(self.repo.get_blacklisted_jwt("jti-1"))

    def test_purge_expired(self):
        self.repo.add_blacklisted_jwt(BlacklistedJwtSchema(jwt_id="old", exp=self.now - timedelta(minutes=1)))
        self.repo.add_blacklisted_jwt(BlacklistedJwtSchema(jwt_id="fresh", exp=self.now + timedelta(minutes=1)))
        self.assertEqual(self.repo.purge_expired(now=self.now), 1)
        self.assertIsNone(self.repo.get_blacklisted_jwt("old"))
        self.assertIsNotNone(self.repo.get_blacklisted_jwt("fresh"))

    def test_exp_accepts_iso_string(self):
        schema = BlacklistedJwtSchema(jwt_id="jti-iso", exp="2030-01-01T00:00:00Z")
        self.assertEqual(schema.exp.year, 2030)
        self.assertIsNotNone(schema.exp.tzinfo)

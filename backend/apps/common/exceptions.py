"""
业务异常体系（BizError）

约定与作用：
- 数据访问层所有“预期内的错误”都继承 BizError，避免直接抛 ORM / 框架异常
- 统一错误码/HTTP 状态/提示语，由（范围外的）HTTP 层读取后构造响应
- 系统级错误（代码 bug、数据库故障等）不做包装，原样向上抛出

错误码规范：
- 40000~40099      : 通用请求 / 参数错误（字段长度、格式、枚举、唯一性等）
- 40400~40499      : 资源不存在（用户、题目、比赛、提交等）

两条失败路径必须区分：
- 按 id 读取 / 删除时目标不存在：通过返回值（None / 0）表达，不抛异常
- 写操作引用的其他实体不存在：抛对应的 *NotFoundError，并回滚整个事务
"""

from __future__ import annotations

from typing import Any, Mapping


class BizError(Exception):
    """
    所有业务异常的基类

    设计要点：
    - 不耦合 HTTP / Response，只是纯数据和语义；
    - 子类只需覆盖 default_code / default_message / http_status；
    - 也可以在 __init__ 时传入自定义 message / code / extra 做覆盖
    """

    #: 子类可覆盖的默认错误码
    default_code: int = 40000

    #: 子类可覆盖的默认提示信息
    default_message: str = "业务错误"

    #: 子类可覆盖的建议 HTTP 状态码（交给异常处理器用）
    http_status: int = 400

    def __init__(self, message: str | None = None, code: int | None = None, *, extra: dict | None = None):
        self.code = code if code is not None else self.default_code
        self.message = message if message is not None else self.default_message
        self.extra = extra or {}
        super().__init__(self.message)

    def __str__(self) -> str:  # 方便日志输出
        return f"[{self.code}] {self.message}"


# ======================
# 通用类错误
# ======================

class ValidationError(BizError):
    """
    参数校验 / 写入数据不合法：
    - 缺少必要字段、长度或格式不符、枚举值非法
    - 唯一字段重复（如重复的 problem_id）
    - 过滤/排序/分页参数不合法

    extra["fields"] 中按字段列出具体原因，便于前端逐项提示
    """
    default_code = 40002
    default_message = "请求参数不合法"
    http_status = 400

    @classmethod
    def from_field_errors(cls, errors: Mapping[str, Any], *, message: str | None = None) -> "ValidationError":
        """由 {字段: [错误信息]} 构造异常，首条信息作为提示语"""
        fields = {name: [str(item) for item in (value if isinstance(value, (list, tuple)) else [value])]
                  for name, value in errors.items()}
        if message is None:
            first = next((msgs[0] for msgs in fields.values() if msgs), None)
            message = first or cls.default_message
        return cls(message=message, extra={"fields": fields})


class NotFoundError(BizError):
    """
    通用资源不存在：
    - 写操作引用的用户 / 题目 / 比赛等不存在
    - 某个 ID 对应的资源未找到
    """
    default_code = 40400
    default_message = "资源不存在"
    http_status = 404


# ======================
# 评测平台实体：引用解析失败
# ======================

class UserNotFoundError(NotFoundError):
    """按用户名找不到用户"""
    default_code = 40401

    def __init__(self, username: str):
        self.username = username
        super().__init__(message=f"用户不存在：{username}", extra={"username": username})


class AuthenticationDetailNotFoundError(NotFoundError):
    """用户存在，但没有指定方式的认证信息"""
    default_code = 40402

    def __init__(self, username: str, method: str):
        self.username = username
        self.method = str(method)
        super().__init__(
            message=f"用户 {username} 没有 {self.method} 方式的认证信息",
            extra={"username": username, "method": self.method},
        )


class ProblemNotFoundError(NotFoundError):
    """按 problem_id 找不到题目"""
    default_code = 40403

    def __init__(self, problem_id: str):
        self.problem_id = problem_id
        super().__init__(message=f"题目不存在：{problem_id}", extra={"problem_id": problem_id})


class TestCaseNotFoundError(NotFoundError):
    """按 test_case_id 找不到测试点"""
    __test__ = False  # 名称以 Test 开头，避免被 pytest 当作测试类收集
    default_code = 40404

    def __init__(self, test_case_id: str):
        self.test_case_id = test_case_id
        super().__init__(message=f"测试点不存在：{test_case_id}", extra={"test_case_id": test_case_id})


class ContestNotFoundError(NotFoundError):
    """按 contest_id 找不到比赛"""
    default_code = 40405

    def __init__(self, contest_id: str):
        self.contest_id = contest_id
        super().__init__(message=f"比赛不存在：{contest_id}", extra={"contest_id": contest_id})


class AnnouncementNotFoundError(NotFoundError):
    """按 announcement_id 找不到公告"""
    default_code = 40406

    def __init__(self, announcement_id: str):
        self.announcement_id = announcement_id
        super().__init__(message=f"公告不存在：{announcement_id}", extra={"announcement_id": announcement_id})


class SubmissionNotFoundError(NotFoundError):
    """按 submission_id 找不到提交"""
    default_code = 40407

    def __init__(self, submission_id: str):
        self.submission_id = submission_id
        super().__init__(message=f"提交不存在：{submission_id}", extra={"submission_id": submission_id})


class CollectionNotFoundError(NotFoundError):
    """按 collection_id 找不到题单"""
    default_code = 40408

    def __init__(self, collection_id: str):
        self.collection_id = collection_id
        super().__init__(message=f"题单不存在：{collection_id}", extra={"collection_id": collection_id})

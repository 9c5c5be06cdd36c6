"""
日志封装：提供统一的日志记录器

- 通过 settings.LOG_PATH 配置输出目录
- 支持 JSON 和 PLAIN 两种格式（settings.LOG_FORMAT）
- 自动轮转日志文件（按日期）
- 通过 logger_extra 注入的上下文字段（entity、identifier 等）会附在日志行尾部
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

from django.conf import settings as django_settings

_configured = False

# LogRecord 自带的属性，其余属性视为通过 extra 注入的上下文
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def _record_context(record: logging.LogRecord) -> dict:
    """提取通过 extra 注入的上下文字段"""
    return {key: value for key, value in vars(record).items() if key not in _RESERVED_ATTRS}


class TMOJJSONFormatter(logging.Formatter):
    """
    JSON 格式化器

    输出示例：
    {"timestamp": "2025-11-28 16:57:25", "level": "INFO", "logger": "apps.problems.repo",
     "message": "题目已创建", "entity": "problem", "identifier": "p1"}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_dict = {
            "timestamp": datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_dict.update(_record_context(record))
        if record.exc_info:
            log_dict["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_dict, ensure_ascii=False, default=str)


class TMOJPlainFormatter(logging.Formatter):
    """
    PLAIN 格式化器：人类可读，易于 grep

    格式：{timestamp} {level} {logger} {message} [key=value ...]

    输出示例：
    2025-11-28 16:57:25 INFO apps.problems.repo 题目已创建 [entity=problem identifier=p1]
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        log_line = f"{timestamp} {record.levelname} {record.name} {record.getMessage()}"

        context = _record_context(record)
        if context:
            log_line += " [" + " ".join(f"{key}={value}" for key, value in context.items()) + "]"

        if record.exc_info:
            log_line += "\n" + self.formatException(record.exc_info)
        return log_line


def get_log_path_from_settings() -> str:
    """基于 settings.LOG_PATH 生成日志文件路径，默认 logs/system.log"""
    log_dir_path = Path(getattr(django_settings, "LOG_PATH", "logs"))
    log_dir_path.mkdir(parents=True, exist_ok=True)
    return str(log_dir_path / "system.log")


def configure_logging(force: bool = False, *, level: Optional[int] = None, log_file_path: Optional[str] = None) -> None:
    """
    配置日志系统

    配置内容：
    - 默认 PLAIN 格式，settings.LOG_FORMAT="json" 时输出 JSON
    - 按日期自动轮转（每天午夜），保留 30 天历史日志
    - DEBUG=true 时额外输出到控制台

    参数：
        force: 是否强制重新配置（默认只配置一次）
    """
    global _configured
    if _configured and not force:
        return

    if level is None:
        level = logging.getLevelName(str(getattr(django_settings, "LOG_LEVEL", "INFO")).upper())
        if not isinstance(level, int):
            level = logging.INFO
    log_file_path = log_file_path if log_file_path is not None else get_log_path_from_settings()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # 清除已有的 handlers，关闭旧文件避免资源告警
    for handler in list(root_logger.handlers):
        handler.close()
    root_logger.handlers.clear()

    class SafeTimedRotatingFileHandler(logging.handlers.TimedRotatingFileHandler):
        """在 Windows 上轮转失败时跳过，避免 PermissionError 中断日志"""

        def doRollover(self):
            try:
                super().doRollover()
            except PermissionError:
                # 文件被占用时跳过一次轮转，下次写入再尝试
                pass

    file_handler = SafeTimedRotatingFileHandler(
        filename=log_file_path,
        when="midnight",
        interval=1,
        backupCount=30,
        encoding="utf-8",
        delay=True,
    )
    file_handler.suffix = "%Y-%m-%d"  # 轮转文件后缀：system.log.2025-11-28
    file_handler.setLevel(level)

    if str(getattr(django_settings, "LOG_FORMAT", "plain")).lower() == "json":
        formatter: logging.Formatter = TMOJJSONFormatter()
    else:
        formatter = TMOJPlainFormatter()
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    if os.getenv("DEBUG", "False").lower() == "true":
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    _configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    获取 logger 实例

    使用方式：
        logger = get_logger(__name__)
        logger.info("题目已创建", extra=logger_extra({"identifier": "p1"}))
    """
    if not _configured:
        configure_logging()
    return logging.getLogger(name)


# 认证信息等敏感字段，不允许出现在日志里
SENSITIVE_KEYS = {"password", "token", "value", "secret", "jwt", "credential"}


def sanitize_extra(extra: Optional[dict] = None) -> dict:
    """过滤敏感字段，避免在日志中泄露密码/凭据"""
    if not extra:
        return {}
    sanitized = {}
    for k, v in extra.items():
        if k.lower() in SENSITIVE_KEYS:
            sanitized[k] = "***"
        else:
            sanitized[k] = v
    return sanitized


def logger_extra(extra: Optional[dict] = None) -> dict:
    """封装 extra，自动过滤敏感字段"""
    return sanitize_extra(extra)

"""日志工具模块.

所有模块通过 ``setup_logger(__name__)`` 获取 ``garment_studio`` 包下的日志记录器。
导入时只挂载控制台输出；文件日志由配置管理器加载设置后通过
``configure_file_logging`` 开启，避免测试和只读环境在导入阶段写文件。

Features:
    - 控制台彩色输出
    - 文件日志轮转（app.log / error.log）
    - 带上下文前缀的操作日志（如一次保存的服装名称和用户）
    - 全局日志级别管理
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

from garment_studio.utils.constants import LOG_DIR

PACKAGE_LOGGER = "garment_studio"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10MB
LOG_FILE_BACKUP_COUNT = 5

_log_level: int = logging.INFO
_console_configured: bool = False
_log_dir: Optional[Path] = None


class ColoredFormatter(logging.Formatter):
    """彩色日志格式化器（仅着色级别名，不修改原记录）."""

    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        colored = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelno, "")
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)


class OperationLogger(logging.LoggerAdapter):
    """为一次操作的所有日志加上统一前缀.

    Example:
        >>> log = operation_logger(logger, garment="夏季款", user="u1")
        >>> log.info("开始上传")
        # [garment=夏季款 user=u1] 开始上传
    """

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        prefix = " ".join(f"{k}={v}" for k, v in self.extra.items())
        return f"[{prefix}] {msg}", kwargs


def _package_logger() -> logging.Logger:
    return logging.getLogger(PACKAGE_LOGGER)


def _configure_console() -> None:
    global _console_configured
    if _console_configured:
        return

    root = _package_logger()
    root.setLevel(_log_level)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(_log_level)
    console.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT))
    root.addHandler(console)

    _console_configured = True


def _rotating_handler(path: Path, level: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    return handler


def configure_file_logging(log_dir: Optional[Path] = None) -> Optional[Path]:
    """开启文件日志.

    重复调用时会替换之前的文件处理器。目录无法创建时保留控制台输出，
    并记录一条警告。

    Args:
        log_dir: 日志目录，默认 ``~/.garment-studio/logs``

    Returns:
        实际使用的日志目录，未能开启时返回 None
    """
    global _log_dir
    disable_file_logging()
    root = _package_logger()
    target = Path(log_dir or LOG_DIR)

    try:
        target.mkdir(parents=True, exist_ok=True)
        root.addHandler(_rotating_handler(target / "app.log", _log_level))
        root.addHandler(_rotating_handler(target / "error.log", logging.ERROR))
    except OSError as e:
        _log_dir = None
        root.warning(f"无法写入日志目录 {target}，仅输出到控制台: {e}")
        return None

    _log_dir = target
    return target


def disable_file_logging() -> None:
    """关闭文件日志，只保留控制台输出."""
    global _log_dir
    _configure_console()
    root = _package_logger()
    for handler in [h for h in root.handlers if isinstance(h, RotatingFileHandler)]:
        root.removeHandler(handler)
        handler.close()
    _log_dir = None


def setup_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """设置并返回日志记录器.

    Args:
        name: 日志记录器名称，通常使用 __name__
        level: 日志级别，默认跟随全局配置

    Returns:
        配置好的日志记录器
    """
    _configure_console()
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger


def operation_logger(logger: logging.Logger, **context: Any) -> OperationLogger:
    """创建带上下文前缀的操作日志记录器."""
    return OperationLogger(logger, context)


def set_log_level(level: int | str) -> None:
    """设置全局日志级别（错误日志文件始终为 ERROR）."""
    global _log_level
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    _log_level = level

    root = _package_logger()
    root.setLevel(level)
    for handler in root.handlers:
        if handler.level != logging.ERROR:
            handler.setLevel(level)


def get_log_level() -> int:
    """获取当前全局日志级别."""
    return _log_level


def get_log_dir() -> Optional[Path]:
    """获取当前文件日志目录，未开启时返回 None."""
    return _log_dir

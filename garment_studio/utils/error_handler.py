"""错误处理工具模块.

提供统一的错误处理机制和用户友好的错误消息。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from garment_studio.utils.exceptions import (
    AppException,
    BlobDeleteError,
    BlobUploadError,
    ConfigError,
    DataServiceError,
    ImageDecodeError,
    ImageProcessError,
    NotAuthenticatedError,
    RecordNotFoundError,
    RecordStoreError,
)
from garment_studio.utils.logger import setup_logger

logger = setup_logger(__name__)


# 错误消息映射（子类在前）
ERROR_MESSAGES = {
    NotAuthenticatedError: "请先登录后再保存设计",
    BlobUploadError: "文件上传失败，请稍后重试",
    BlobDeleteError: "文件删除失败",
    RecordNotFoundError: "未找到对应的设计记录",
    RecordStoreError: "保存设计失败，请稍后重试",
    DataServiceError: "数据服务异常，请稍后重试",
    ImageDecodeError: "部分设计图片无法读取，已跳过",
    ImageProcessError: "图片处理失败，请检查图片文件",
    ConfigError: "配置错误，请检查配置文件",
}


def get_user_friendly_message(exception: Exception) -> str:
    """获取用户友好的错误消息.

    Args:
        exception: 异常对象

    Returns:
        用户友好的错误消息
    """
    for exc_type, message in ERROR_MESSAGES.items():
        if isinstance(exception, exc_type):
            return message

    # 其余应用异常（例如缺少字段）直接使用其消息
    if isinstance(exception, AppException):
        return exception.message

    return "操作失败，请稍后重试"


def get_error_details(exception: Exception) -> dict[str, Any]:
    """获取错误详细信息.

    Args:
        exception: 异常对象

    Returns:
        包含错误详情的字典
    """
    details = {
        "type": type(exception).__name__,
        "message": str(exception),
        "user_message": get_user_friendly_message(exception),
    }

    if isinstance(exception, AppException):
        details["code"] = exception.code

    if isinstance(exception, RecordStoreError) and exception.status_code:
        details["status_code"] = exception.status_code

    return details


@dataclass(frozen=True)
class CollectedError:
    """收集到的单个非致命错误.

    Attributes:
        exception: 异常对象
        context: 发生错误的步骤，例如 "上传正面预览图"
    """

    exception: Exception
    context: str = ""

    @property
    def message(self) -> str:
        """带步骤前缀的错误消息."""
        exc = self.exception
        text = exc.message if isinstance(exc, AppException) else str(exc)
        return f"{self.context}: {text}" if self.context else text


class ErrorCollector:
    """保存、删除等多步骤流程中的非致命错误收集器.

    单步失败时记录下来并继续后续步骤，流程结束后把
    ``messages`` 作为警告返回给调用方。

    Example:
        >>> collector = ErrorCollector()
        >>> try:
        ...     await data_service.upload_blob(bucket, path, data, "image/png")
        ... except BlobUploadError as e:
        ...     collector.add(e, context="上传正面预览图")
        >>> collector.messages
        ['上传正面预览图: 文件上传失败: ...']
    """

    def __init__(self) -> None:
        self._entries: list[CollectedError] = []

    def add(self, exception: Exception, context: str = "") -> None:
        """记录一个错误并写警告日志."""
        entry = CollectedError(exception, context)
        self._entries.append(entry)
        logger.warning(f"已跳过 [{context or type(exception).__name__}]: {exception}")

    @property
    def has_errors(self) -> bool:
        return bool(self._entries)

    @property
    def error_count(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[CollectedError]:
        """已收集的错误（副本）."""
        return list(self._entries)

    @property
    def messages(self) -> list[str]:
        """面向用户的警告消息，顺序与发生顺序一致."""
        return [entry.message for entry in self._entries]

    @property
    def summary(self) -> str:
        """多行错误摘要，用于日志."""
        if not self._entries:
            return "无错误"
        lines = [f"共 {len(self._entries)} 个错误:"]
        lines.extend(
            f"  {i}. {type(entry.exception).__name__}: {entry.message}"
            for i, entry in enumerate(self._entries, 1)
        )
        return "\n".join(lines)

    def clear(self) -> None:
        self._entries.clear()

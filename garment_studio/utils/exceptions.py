"""自定义异常类."""

from __future__ import annotations


class AppException(Exception):
    """应用基础异常类.

    所有自定义异常都应继承此类。

    Attributes:
        message: 错误消息
        code: 错误代码
    """

    def __init__(self, message: str, code: str = "UNKNOWN") -> None:
        """初始化异常.

        Args:
            message: 错误消息
            code: 错误代码
        """
        self.message = message
        self.code = code
        super().__init__(self.message)

    def __str__(self) -> str:
        """返回异常字符串表示."""
        return f"[{self.code}] {self.message}"


# ===================
# 配置相关异常
# ===================
class ConfigError(AppException):
    """配置错误异常."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "CONFIG_ERROR")


# ===================
# 图片处理相关异常
# ===================
class ImageProcessError(AppException):
    """图片处理错误异常."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "IMAGE_PROCESS_ERROR")


class UnsupportedImageFormatError(ImageProcessError):
    """不支持的图片格式异常."""

    def __init__(self, format: str) -> None:
        self.format = format
        super().__init__(f"不支持的图片格式: {format}")


class ImageTooLargeError(ImageProcessError):
    """图片文件过大异常."""

    def __init__(self, size: int, max_size: int) -> None:
        self.size = size
        self.max_size = max_size
        size_mb = size / (1024 * 1024)
        max_mb = max_size / (1024 * 1024)
        super().__init__(f"图片文件过大 ({size_mb:.1f}MB)，最大允许 {max_mb:.1f}MB")


class ImageDecodeError(ImageProcessError):
    """图片解码失败异常."""

    def __init__(self, name: str, reason: str = "") -> None:
        self.name = name
        msg = f"图片无法解码: {name}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


# ===================
# 设计相关异常
# ===================
class DesignError(AppException):
    """设计数据错误异常."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "DESIGN_ERROR")


class MissingFieldError(DesignError):
    """必填字段缺失异常."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"缺少必填字段: {field}")


# ===================
# 数据服务相关异常
# ===================
class DataServiceError(AppException):
    """数据服务错误异常."""

    def __init__(self, message: str, code: str = "DATA_SERVICE_ERROR") -> None:
        super().__init__(message, code)


class NotAuthenticatedError(DataServiceError):
    """用户未登录异常."""

    def __init__(self) -> None:
        super().__init__("用户未登录，请先登录", "NOT_AUTHENTICATED")


class BlobUploadError(DataServiceError):
    """对象上传失败异常."""

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        msg = f"文件上传失败: {path}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, "BLOB_UPLOAD_ERROR")


class BlobDeleteError(DataServiceError):
    """对象删除失败异常."""

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        msg = f"文件删除失败: {path}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, "BLOB_DELETE_ERROR")


class RecordStoreError(DataServiceError):
    """数据记录读写失败异常."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        msg = message
        if status_code:
            msg = f"数据请求失败 (HTTP {status_code}): {message}"
        super().__init__(msg, "RECORD_STORE_ERROR")


class RecordNotFoundError(DataServiceError):
    """数据记录不存在异常."""

    def __init__(self, table: str, record_id: str) -> None:
        self.table = table
        self.record_id = record_id
        super().__init__(f"记录未找到: {table}/{record_id}", "RECORD_NOT_FOUND")

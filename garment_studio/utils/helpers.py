"""辅助函数模块.

提供各种通用辅助函数。
"""

from __future__ import annotations

import time
import uuid


def generate_short_id(length: int = 8) -> str:
    """生成短 ID.

    Args:
        length: ID 长度

    Returns:
        短 ID 字符串
    """
    return uuid.uuid4().hex[:length]


def timestamp_ms() -> int:
    """当前时间戳（毫秒）."""
    return int(time.time() * 1000)


def format_file_size(size_bytes: float) -> str:
    """格式化文件大小.

    Args:
        size_bytes: 文件大小（字节）

    Returns:
        格式化后的大小字符串
    """
    for unit in ["B", "KB", "MB", "GB"]:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.1f} TB"


def get_file_extension(file_name: str) -> str:
    """获取文件扩展名（小写，不含点号）."""
    if "." not in file_name:
        return ""
    return file_name.rsplit(".", 1)[-1].lower()


def build_blob_path(user_id: str, folder: str, extension: str) -> str:
    """生成对象存储路径.

    路径格式为 ``{user_id}/{folder}/{timestamp}-{random}.{ext}``，
    以用户 ID 开头便于存储端按用户做权限隔离。

    Args:
        user_id: 用户 ID
        folder: 子目录，例如 ``designs/front``
        extension: 文件扩展名

    Returns:
        对象存储路径
    """
    name = f"{timestamp_ms()}-{generate_short_id(11)}"
    if extension:
        name = f"{name}.{extension}"
    return f"{user_id}/{folder}/{name}"

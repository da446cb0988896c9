"""设计文件接收模块.

校验用户选择的设计文件并为通过校验的文件创建图层。
单个文件被拒绝不影响同一批次的其他文件。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from garment_studio.models.app_settings import Settings
from garment_studio.models.design import GarmentDesign, ImageSource, Layer, Side
from garment_studio.utils.constants import MIME_EXTENSIONS
from garment_studio.utils.exceptions import (
    ImageProcessError,
    ImageTooLargeError,
    UnsupportedImageFormatError,
)
from garment_studio.utils.helpers import format_file_size, get_file_extension
from garment_studio.utils.logger import setup_logger

logger = setup_logger(__name__)

# 拒绝原因
REASON_UNSUPPORTED_TYPE = "unsupported_type"
REASON_TOO_LARGE = "too_large"
REASON_EMPTY = "empty"

# 扩展名 -> MIME 类型（文件未携带 MIME 类型时使用）
EXTENSION_MIME_TYPES = {ext: mime for mime, ext in MIME_EXTENSIONS.items()}
EXTENSION_MIME_TYPES["jpeg"] = "image/jpeg"


@dataclass
class DesignFile:
    """用户选择的设计文件.

    Attributes:
        file_name: 文件名
        mime_type: MIME 类型，为空时按扩展名推断
        data: 文件字节
    """

    file_name: str
    mime_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def resolved_mime_type(self) -> str:
        """规范化后的 MIME 类型."""
        mime = (self.mime_type or "").split(";", 1)[0].strip().lower()
        if not mime:
            mime = EXTENSION_MIME_TYPES.get(get_file_extension(self.file_name), "")
        return mime


@dataclass(frozen=True)
class FileRejection:
    """被拒绝的文件.

    Attributes:
        file_name: 文件名
        reason: 拒绝原因代码
        message: 面向用户的说明
    """

    file_name: str
    reason: str
    message: str


@dataclass
class FileIntakeResult:
    """一批文件的接收结果."""

    layers: list[Layer] = field(default_factory=list)
    rejections: list[FileRejection] = field(default_factory=list)

    @property
    def accepted_count(self) -> int:
        return len(self.layers)

    @property
    def has_rejections(self) -> bool:
        return len(self.rejections) > 0


def validate_design_file(file: DesignFile, settings: Settings) -> str:
    """校验设计文件.

    Args:
        file: 设计文件
        settings: 应用设置（类型白名单和大小上限）

    Returns:
        规范化后的 MIME 类型

    Raises:
        UnsupportedImageFormatError: 类型不在白名单内
        ImageTooLargeError: 超过大小上限
        ImageProcessError: 文件为空
    """
    mime = file.resolved_mime_type
    if mime not in settings.allowed_mime_types:
        raise UnsupportedImageFormatError(mime or file.file_name)
    if file.size > settings.max_upload_bytes:
        raise ImageTooLargeError(file.size, settings.max_upload_bytes)
    if file.size == 0:
        raise ImageProcessError(f"文件为空: {file.file_name}")
    return mime


def _rejection_for(file: DesignFile, error: ImageProcessError) -> FileRejection:
    if isinstance(error, UnsupportedImageFormatError):
        reason = REASON_UNSUPPORTED_TYPE
        message = f"{file.file_name}: 不支持的文件类型，请上传 PNG、JPEG、WEBP 或 SVG 图片"
    elif isinstance(error, ImageTooLargeError):
        reason = REASON_TOO_LARGE
        message = (
            f"{file.file_name}: 文件过大 ({format_file_size(error.size)})，"
            f"最大允许 {format_file_size(error.max_size)}"
        )
    else:
        reason = REASON_EMPTY
        message = f"{file.file_name}: {error.message}"
    return FileRejection(file_name=file.file_name, reason=reason, message=message)


def attach_files(
    design: GarmentDesign,
    side: Side,
    files: Iterable[DesignFile],
    settings: Optional[Settings] = None,
) -> FileIntakeResult:
    """接收一批设计文件，为合格文件在指定面上创建默认几何的图层.

    Args:
        design: 服装设计
        side: 服装面
        files: 文件列表
        settings: 应用设置，默认使用全局配置

    Returns:
        接收结果（新图层 + 拒绝列表）
    """
    if settings is None:
        from garment_studio.core.config_manager import get_config

        settings = get_config().settings

    result = FileIntakeResult()
    for file in files:
        try:
            mime = validate_design_file(file, settings)
        except ImageProcessError as e:
            rejection = _rejection_for(file, e)
            logger.info(f"拒绝设计文件: {rejection.message}")
            result.rejections.append(rejection)
            continue

        layer = Layer(source=ImageSource.from_bytes(file.data, file.file_name, mime))
        design.add_layer(side, layer)
        result.layers.append(layer)
        logger.debug(f"添加图层 {layer.id}: {file.file_name} -> {Side(side).value}")

    if result.layers:
        logger.info(f"已添加 {result.accepted_count} 个图层到{Side(side).value}")
    return result

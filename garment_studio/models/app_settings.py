"""应用设置模型."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from garment_studio.utils.constants import (
    ALLOWED_DESIGN_MIME_TYPES,
    API_TIMEOUT,
    DEFAULT_SNAPSHOT_FORMAT,
    DEFAULT_SNAPSHOT_QUALITY,
    DESIGN_BUCKET,
    INTERACTIVE_CANVAS_HEIGHT,
    INTERACTIVE_CANVAS_WIDTH,
    MAX_DESIGN_FILE_SIZE,
    PREVIEW_BUCKET,
    RASTER_HEIGHT,
    RASTER_WIDTH,
)

SNAPSHOT_FORMATS = {"PNG", "JPEG", "WEBP"}


class Settings(BaseSettings):
    """应用设置.

    支持从环境变量和 .env 文件加载配置，环境变量统一使用
    ``GARMENT_`` 前缀，例如 ``GARMENT_LOG_LEVEL=DEBUG``。

    Attributes:
        log_level: 日志级别
        log_to_file: 是否写入文件日志
        log_dir: 文件日志目录，为空时使用默认目录
        data_service_url: 后端数据服务基础 URL，为空时使用本地数据服务
        data_service_key: 后端数据服务 API 密钥
        design_bucket: 设计文件存储桶
        preview_bucket: 预览图存储桶
        max_upload_bytes: 设计文件最大字节数
        allowed_mime_types: 允许的设计文件 MIME 类型
        snapshot_format: 预览快照编码格式
        snapshot_quality: 有损编码质量
        decode_timeout: 远程图片下载超时（秒）
        local_storage_dir: 本地数据服务目录
    """

    model_config = SettingsConfigDict(
        env_prefix="GARMENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = Field(default="INFO", description="日志级别")
    log_to_file: bool = Field(default=True, description="是否写入文件日志")
    log_dir: Optional[Path] = Field(default=None, description="文件日志目录")

    # 数据服务
    data_service_url: str = Field(default="", description="数据服务基础 URL")
    data_service_key: str = Field(default="", description="数据服务 API 密钥")
    design_bucket: str = Field(default=DESIGN_BUCKET, description="设计文件存储桶")
    preview_bucket: str = Field(default=PREVIEW_BUCKET, description="预览图存储桶")
    request_timeout: int = Field(
        default=API_TIMEOUT,
        ge=1,
        le=600,
        description="请求超时（秒）",
    )

    # 上传限制
    max_upload_bytes: int = Field(
        default=MAX_DESIGN_FILE_SIZE,
        ge=1,
        description="设计文件最大字节数",
    )
    allowed_mime_types: list[str] = Field(
        default_factory=lambda: sorted(ALLOWED_DESIGN_MIME_TYPES),
        description="允许的设计文件 MIME 类型",
    )

    # 画布尺寸
    interactive_width: int = Field(default=INTERACTIVE_CANVAS_WIDTH, ge=1)
    interactive_height: int = Field(default=INTERACTIVE_CANVAS_HEIGHT, ge=1)
    raster_width: int = Field(default=RASTER_WIDTH, ge=1)
    raster_height: int = Field(default=RASTER_HEIGHT, ge=1)
    require_uniform_scale: bool = Field(
        default=False,
        description="是否要求横纵缩放比例一致",
    )

    # 快照输出
    snapshot_format: str = Field(default=DEFAULT_SNAPSHOT_FORMAT, description="快照格式")
    snapshot_quality: int = Field(
        default=DEFAULT_SNAPSHOT_QUALITY,
        ge=1,
        le=100,
        description="快照质量",
    )
    decode_timeout: float = Field(default=15.0, gt=0, description="图片下载超时（秒）")

    # 本地数据服务
    local_storage_dir: Optional[Path] = Field(default=None, description="本地数据目录")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """验证日志级别."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"无效的日志级别: {v}，有效值: {valid_levels}")
        return upper_v

    @field_validator("snapshot_format")
    @classmethod
    def validate_snapshot_format(cls, v: str) -> str:
        """验证快照格式."""
        upper_v = v.upper()
        if upper_v == "JPG":
            upper_v = "JPEG"
        if upper_v not in SNAPSHOT_FORMATS:
            raise ValueError(f"无效的快照格式: {v}，有效值: {SNAPSHOT_FORMATS}")
        return upper_v

    @field_validator("allowed_mime_types")
    @classmethod
    def validate_mime_types(cls, v: list[str]) -> list[str]:
        """统一 MIME 类型为小写."""
        return [m.strip().lower() for m in v if m.strip()]

    @property
    def uses_remote_data_service(self) -> bool:
        """是否配置了远程数据服务."""
        return bool(self.data_service_url)

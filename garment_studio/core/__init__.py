"""核心业务逻辑模块."""

from garment_studio.core.config_manager import ConfigManager, get_config
from garment_studio.core.coordinate_mapping import CoordinateMapping, RasterRect
from garment_studio.core.file_intake import (
    DesignFile,
    FileIntakeResult,
    FileRejection,
    attach_files,
    validate_design_file,
)
from garment_studio.core.interaction import (
    GestureMode,
    InteractionController,
    InteractionSession,
)
from garment_studio.core.raster_surface import RasterSurface
from garment_studio.core.silhouette import (
    GarmentSilhouette,
    build_clip_mask,
    render_silhouette,
)

__all__ = [
    # 配置
    "ConfigManager",
    "get_config",
    # 坐标映射
    "CoordinateMapping",
    "RasterRect",
    # 文件接收
    "DesignFile",
    "FileIntakeResult",
    "FileRejection",
    "attach_files",
    "validate_design_file",
    # 交互控制
    "GestureMode",
    "InteractionController",
    "InteractionSession",
    # 栅格绘制
    "RasterSurface",
    "GarmentSilhouette",
    "build_clip_mask",
    "render_silhouette",
]

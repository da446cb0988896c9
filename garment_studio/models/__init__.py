"""数据模型模块."""

from garment_studio.models.app_settings import Settings
from garment_studio.models.design import (
    # 枚举
    Side,
    SIDE_NAMES,
    # 几何类型
    Point,
    Size,
    # 图层
    ImageSource,
    Layer,
    # 持久化记录
    LayerMeta,
    DesignSet,
    GarmentRecord,
    # 服装设计
    GarmentDesign,
    # 辅助函数
    clamp_layer_dimension,
    generate_layer_id,
    normalize_rotation,
)

__all__ = [
    # 设置
    "Settings",
    # 枚举
    "Side",
    "SIDE_NAMES",
    # 几何类型
    "Point",
    "Size",
    # 图层
    "ImageSource",
    "Layer",
    # 持久化记录
    "LayerMeta",
    "DesignSet",
    "GarmentRecord",
    # 服装设计
    "GarmentDesign",
    # 辅助函数
    "clamp_layer_dimension",
    "generate_layer_id",
    "normalize_rotation",
]

"""服装设计与图层数据模型.

提供服装定制设计的数据模型，支持正反两面的多图层管理。

Features:
    - 图层几何（位置、尺寸、旋转）与尺寸约束
    - 正面/背面独立的有序图层列表（插入顺序即绘制顺序）
    - 设计快照（渲染前的深拷贝）
    - 持久化记录（LayerMeta / GarmentRecord）序列化
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from garment_studio.utils.constants import (
    DEFAULT_GARMENT_COLOR,
    DEFAULT_GARMENT_PRICE,
    DEFAULT_GARMENT_STATUS,
    DEFAULT_LAYER_POSITION,
    DEFAULT_LAYER_ROTATION,
    DEFAULT_LAYER_SIZE,
    MAX_LAYER_SIZE,
    MIN_LAYER_SIZE,
)
from garment_studio.utils.helpers import generate_short_id


# ===================
# 枚举定义
# ===================


class Side(str, Enum):
    """服装面."""

    FRONT = "front"  # 正面
    BACK = "back"  # 背面


SIDE_NAMES: dict[Side, str] = {
    Side.FRONT: "正面",
    Side.BACK: "背面",
}


# ===================
# 辅助函数
# ===================


def generate_layer_id() -> str:
    """生成唯一的图层ID.

    Returns:
        12位十六进制字符串
    """
    return generate_short_id(12)


def clamp_layer_dimension(value: float) -> float:
    """将图层边长限制在允许范围内.

    Args:
        value: 边长

    Returns:
        限制在 [MIN_LAYER_SIZE, MAX_LAYER_SIZE] 内的边长
    """
    return max(MIN_LAYER_SIZE, min(MAX_LAYER_SIZE, value))


def normalize_rotation(degrees: float) -> float:
    """将角度归一化到 [0, 360).

    负角度按下取整取模映射，例如 -90 -> 270。
    """
    result = math.fmod(degrees, 360.0)
    if result < 0:
        result += 360.0
    # fmod(-1e-15) + 360 会得到 360.0
    if result >= 360.0:
        result = 0.0
    return result


# ===================
# 几何类型
# ===================


class Point(BaseModel):
    """二维坐标点（交互画布坐标系）."""

    x: float = 0.0
    y: float = 0.0

    def __sub__(self, other: "Point") -> "Point":
        return Point(x=self.x - other.x, y=self.y - other.y)

    def __add__(self, other: "Point") -> "Point":
        return Point(x=self.x + other.x, y=self.y + other.y)

    def as_tuple(self) -> tuple[float, float]:
        """转换为元组."""
        return (self.x, self.y)


class Size(BaseModel):
    """二维尺寸."""

    width: float
    height: float

    def as_tuple(self) -> tuple[float, float]:
        """转换为元组."""
        return (self.width, self.height)


def default_position() -> Point:
    """新图层的默认位置."""
    return Point(x=DEFAULT_LAYER_POSITION[0], y=DEFAULT_LAYER_POSITION[1])


def default_size() -> Size:
    """新图层的默认尺寸."""
    return Size(width=DEFAULT_LAYER_SIZE[0], height=DEFAULT_LAYER_SIZE[1])


# ===================
# 图层
# ===================


class ImageSource(BaseModel):
    """图层图片来源.

    上传前持有原始文件字节；上传或从记录恢复后持有存储 URL。

    Attributes:
        file_name: 原始文件名
        mime_type: MIME 类型
        file_size: 文件大小（字节）
        data: 原始文件字节
        url: 存储后的访问 URL
    """

    file_name: str = ""
    mime_type: str = "image/png"
    file_size: int = 0
    data: Optional[bytes] = Field(default=None, repr=False)
    url: Optional[str] = None

    @property
    def has_data(self) -> bool:
        """是否持有本地字节."""
        return self.data is not None

    @property
    def display_name(self) -> str:
        """用于日志和提示的名称."""
        return self.file_name or self.url or "<未命名>"

    @classmethod
    def from_bytes(cls, data: bytes, file_name: str, mime_type: str) -> "ImageSource":
        """从文件字节创建来源."""
        return cls(
            file_name=file_name,
            mime_type=mime_type,
            file_size=len(data),
            data=data,
        )


class Layer(BaseModel):
    """设计图层.

    一张放置在服装某一面上的设计图片。位置不受画布边界约束，
    尺寸始终保持在 [20, 500] 范围内，旋转围绕图层自身中心。

    Attributes:
        id: 图层唯一ID
        source: 图片来源
        position: 左上角位置（交互画布坐标）
        size: 尺寸（交互画布坐标）
        rotation: 旋转角度（度，顺时针）

    Example:
        >>> layer = Layer(source=ImageSource.from_bytes(data, "logo.png", "image/png"))
        >>> layer.position
        Point(x=50.0, y=40.0)
    """

    id: str = Field(default_factory=generate_layer_id, description="图层唯一ID")
    source: ImageSource = Field(description="图片来源")
    position: Point = Field(default_factory=default_position, description="位置")
    size: Size = Field(default_factory=default_size, description="尺寸")
    rotation: float = Field(default=DEFAULT_LAYER_ROTATION, description="旋转角度")

    @field_validator("size")
    @classmethod
    def clamp_size(cls, v: Size) -> Size:
        """限制尺寸范围."""
        return Size(
            width=clamp_layer_dimension(v.width),
            height=clamp_layer_dimension(v.height),
        )

    @property
    def center(self) -> Point:
        """图层几何中心."""
        return Point(
            x=self.position.x + self.size.width / 2,
            y=self.position.y + self.size.height / 2,
        )

    @property
    def rotation_radians(self) -> float:
        """旋转角度（弧度）."""
        return math.radians(self.rotation)

    def move_to(self, x: float, y: float) -> None:
        """移动图层到指定位置（不做边界限制）.

        Args:
            x: 新的X坐标
            y: 新的Y坐标
        """
        self.position = Point(x=x, y=y)

    def grow_by(self, delta: float) -> None:
        """宽高同时增加相同的增量，结果各自限制在允许范围内.

        宽高不等时不保持原始比例。

        Args:
            delta: 增量（可为负）
        """
        self.size = Size(
            width=clamp_layer_dimension(self.size.width + delta),
            height=clamp_layer_dimension(self.size.height + delta),
        )

    def set_rotation(self, degrees: float) -> None:
        """设置旋转角度并归一化到 [0, 360)."""
        self.rotation = normalize_rotation(degrees)

    def reset_transform(self) -> None:
        """恢复默认位置和尺寸（旋转保持不变）."""
        self.position = default_position()
        self.size = default_size()

    def to_meta(self, file_url: str) -> "LayerMeta":
        """生成持久化元数据.

        Args:
            file_url: 已上传图片的 URL

        Returns:
            LayerMeta 实例
        """
        return LayerMeta(
            id=self.id,
            position=self.position.model_copy(),
            size=self.size.model_copy(),
            rotation=self.rotation,
            file_url=file_url,
            file_name=self.source.file_name,
            file_type=self.source.mime_type,
            file_size=self.source.file_size,
        )

    @classmethod
    def from_meta(cls, meta: "LayerMeta") -> "Layer":
        """从持久化元数据恢复图层（图片来源为 URL）."""
        return cls(
            id=meta.id,
            source=ImageSource(
                file_name=meta.file_name,
                mime_type=meta.file_type,
                file_size=meta.file_size,
                url=meta.file_url,
            ),
            position=meta.position.model_copy(),
            size=meta.size.model_copy(),
            rotation=meta.rotation,
        )


# ===================
# 持久化记录
# ===================


class LayerMeta(BaseModel):
    """图层持久化元数据.

    只保存上传后的 URL 和变换信息，不保存原始文件。
    序列化时使用 camelCase 字段名。
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    position: Point
    size: Size
    rotation: float = 0.0
    file_url: str = Field(alias="fileUrl")
    file_name: str = Field(default="", alias="fileName")
    file_type: str = Field(default="image/png", alias="fileType")
    file_size: int = Field(default=0, alias="fileSize")


class DesignSet(BaseModel):
    """正反两面的图层元数据."""

    front: list[LayerMeta] = Field(default_factory=list)
    back: list[LayerMeta] = Field(default_factory=list)

    def for_side(self, side: Side) -> list[LayerMeta]:
        """获取某一面的元数据列表."""
        return self.front if side == Side.FRONT else self.back


class GarmentRecord(BaseModel):
    """服装持久化记录（数据表 shirts 的一行）."""

    id: Optional[str] = None
    user_id: str
    label: str
    title: str = ""
    description: str = ""
    price: float = Field(default=DEFAULT_GARMENT_PRICE, ge=0)
    color: str = DEFAULT_GARMENT_COLOR
    designs: DesignSet = Field(default_factory=DesignSet)
    status: str = DEFAULT_GARMENT_STATUS
    preview_front_url: Optional[str] = None
    preview_back_url: Optional[str] = None
    created_at: Optional[str] = None

    def preview_url(self, side: Side) -> Optional[str]:
        """获取某一面的预览图 URL."""
        return self.preview_front_url if side == Side.FRONT else self.preview_back_url

    def to_row(self) -> dict[str, Any]:
        """转换为数据表行.

        未生成的预览 URL 不写入。
        """
        row = self.model_dump(by_alias=True, exclude_none=True)
        if not row.get("title"):
            row["title"] = self.label
        return row

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "GarmentRecord":
        """从数据表行创建记录."""
        data = dict(row)
        if data.get("designs") is None:
            data["designs"] = {}
        return cls.model_validate(data)


# ===================
# 服装设计
# ===================


class LayerIndex:
    """按面缓存的 图层ID -> 图层 查找表.

    只是 ``front`` / ``back`` 列表的缓存：不参与设计比较，拷贝设计时重新建立。
    列表被整体替换或直接追加后，下一次未命中的查找会按列表重建。
    """

    def __init__(self) -> None:
        self._sides: dict[Side, tuple[list[Layer], dict[str, Layer]]] = {}

    def __eq__(self, other: object) -> bool:
        return isinstance(other, LayerIndex)

    __hash__ = None  # type: ignore[assignment]

    def __copy__(self) -> "LayerIndex":
        return LayerIndex()

    def __deepcopy__(self, memo: dict) -> "LayerIndex":
        return LayerIndex()

    def _build(self, side: Side, layers: list[Layer]) -> dict[str, Layer]:
        # 同ID时保留先插入的图层
        index = {layer.id: layer for layer in reversed(layers)}
        self._sides[side] = (layers, index)
        return index

    def lookup(self, side: Side, layers: list[Layer], layer_id: str) -> Optional[Layer]:
        """查找图层，未命中时按列表重建一次."""
        cached = self._sides.get(side)
        if cached is None or cached[0] is not layers:
            return self._build(side, layers).get(layer_id)
        layer = cached[1].get(layer_id)
        if layer is None:
            layer = self._build(side, layers).get(layer_id)
        return layer

    def add(self, side: Side, layer: Layer) -> None:
        cached = self._sides.get(side)
        if cached is not None:
            cached[1].setdefault(layer.id, layer)

    def discard(self, side: Side, layer_id: str) -> None:
        cached = self._sides.get(side)
        if cached is not None:
            cached[1].pop(layer_id, None)

    def clear(self, side: Side) -> None:
        self._sides.pop(side, None)


class GarmentDesign(BaseModel):
    """服装设计.

    聚合底色和正反两面的图层列表。列表顺序即绘制顺序，
    最后插入的图层绘制在最上层。

    Attributes:
        color: 服装底色（任意 CSS 颜色值）
        label: 名称
        description: 描述
        price: 价格
        front: 正面图层
        back: 背面图层

    Example:
        >>> design = GarmentDesign(color="#1e3a8a")
        >>> design.add_layer(Side.FRONT, layer)
        >>> design.layer_count
        1
    """

    color: str = Field(default=DEFAULT_GARMENT_COLOR, description="服装底色")
    label: str = Field(default="", max_length=100, description="名称")
    description: str = Field(default="", max_length=2000, description="描述")
    price: float = Field(default=DEFAULT_GARMENT_PRICE, ge=0, description="价格")
    front: list[Layer] = Field(default_factory=list, description="正面图层")
    back: list[Layer] = Field(default_factory=list, description="背面图层")

    _layer_index: LayerIndex = PrivateAttr(default_factory=LayerIndex)

    @property
    def layer_count(self) -> int:
        """两面图层总数."""
        return len(self.front) + len(self.back)

    def layers(self, side: Side) -> list[Layer]:
        """获取某一面的图层列表（原列表引用）."""
        return self.front if Side(side) == Side.FRONT else self.back

    def add_layer(self, side: Side, layer: Layer) -> Layer:
        """在某一面最上层添加图层.

        Args:
            side: 服装面
            layer: 图层

        Returns:
            添加的图层
        """
        side = Side(side)
        self.layers(side).append(layer)
        self._layer_index.add(side, layer)
        return layer

    def get_layer(self, side: Side, layer_id: str) -> Optional[Layer]:
        """根据ID获取图层.

        通过按面缓存的ID索引查找。图层列表应通过本类方法修改，
        直接从列表中移除的图层在索引中不会立即失效。

        Args:
            side: 服装面
            layer_id: 图层ID

        Returns:
            图层对象，不存在返回None
        """
        side = Side(side)
        return self._layer_index.lookup(side, self.layers(side), layer_id)

    def remove_layer(self, side: Side, layer_id: str) -> bool:
        """删除图层.

        Args:
            side: 服装面
            layer_id: 图层ID

        Returns:
            是否删除成功
        """
        side = Side(side)
        layers = self.layers(side)
        for i, layer in enumerate(layers):
            if layer.id == layer_id:
                layers.pop(i)
                self._layer_index.discard(side, layer_id)
                return True
        return False

    def clear_side(self, side: Side) -> None:
        """清空某一面的所有图层."""
        side = Side(side)
        self.layers(side).clear()
        self._layer_index.clear(side)

    def snapshot(self) -> "GarmentDesign":
        """创建设计快照.

        渲染只接收快照，渲染期间对原设计的修改不会被观察到。

        Returns:
            深拷贝的设计
        """
        return self.model_copy(deep=True)

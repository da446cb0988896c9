"""坐标映射模块.

定义交互画布坐标系与栅格输出坐标系之间唯一的换算关系。
交互控制器与渲染引擎共用同一个映射实例，保证所见即所得。

注意：默认尺寸 500x600 -> 300x400 的横纵缩放比例不同（0.6 与 0.667），
旋转角度不随缩放变换，因此旋转后的图层在快照中会有轻微拉伸。
需要严格一致时可设置 require_uniform=True，两个尺寸的比例不一致将直接报错。
"""

from __future__ import annotations

from dataclasses import dataclass, field

from garment_studio.models.design import Point, Size
from garment_studio.utils.constants import INTERACTIVE_CANVAS_SIZE, RASTER_SIZE
from garment_studio.utils.exceptions import ConfigError
from garment_studio.utils.logger import setup_logger

logger = setup_logger(__name__)

# 比较缩放比例时的容差
SCALE_TOLERANCE = 1e-9


@dataclass(frozen=True)
class RasterRect:
    """栅格坐标系中的矩形.

    Attributes:
        x: 左上角X
        y: 左上角Y
        width: 宽度
        height: 高度
        rotation: 旋转角度（度，与交互坐标系相同）
    """

    x: float
    y: float
    width: float
    height: float
    rotation: float = 0.0

    @property
    def center(self) -> tuple[float, float]:
        """矩形中心."""
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """(left, top, right, bottom) 边界."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)


@dataclass(frozen=True)
class CoordinateMapping:
    """交互坐标到栅格坐标的映射.

    缩放比例在构造时计算一次并校验，之后所有调用方只读取。

    Attributes:
        interactive_size: 交互画布尺寸 (Wi, Hi)
        raster_size: 栅格输出尺寸 (Wr, Hr)
        require_uniform: 是否要求 scale_x == scale_y

    Example:
        >>> mapping = CoordinateMapping()
        >>> mapping.scale_x, round(mapping.scale_y, 4)
        (0.6, 0.6667)
    """

    interactive_size: tuple[int, int] = INTERACTIVE_CANVAS_SIZE
    raster_size: tuple[int, int] = RASTER_SIZE
    require_uniform: bool = False
    scale_x: float = field(init=False)
    scale_y: float = field(init=False)

    def __post_init__(self) -> None:
        wi, hi = self.interactive_size
        wr, hr = self.raster_size

        if min(wi, hi, wr, hr) <= 0:
            raise ConfigError(f"画布尺寸必须为正数: 交互={self.interactive_size}, 栅格={self.raster_size}")
        if not (wr < wi and hr < hi):
            raise ConfigError(
                f"栅格尺寸 {self.raster_size} 必须小于交互画布尺寸 {self.interactive_size}"
            )

        scale_x = wr / wi
        scale_y = hr / hi
        if self.require_uniform and abs(scale_x - scale_y) > SCALE_TOLERANCE:
            raise ConfigError(
                f"横纵缩放比例不一致 ({scale_x:.4f} != {scale_y:.4f})，旋转图层将产生拉伸"
            )

        object.__setattr__(self, "scale_x", scale_x)
        object.__setattr__(self, "scale_y", scale_y)

        if not self.is_uniform:
            logger.debug(f"坐标映射为非等比缩放: scale=({scale_x:.4f}, {scale_y:.4f})")

    @property
    def is_uniform(self) -> bool:
        """横纵缩放比例是否一致."""
        return abs(self.scale_x - self.scale_y) <= SCALE_TOLERANCE

    def to_raster_point(self, point: Point) -> tuple[float, float]:
        """映射坐标点."""
        return (point.x * self.scale_x, point.y * self.scale_y)

    def to_raster_size(self, size: Size) -> tuple[float, float]:
        """映射尺寸."""
        return (size.width * self.scale_x, size.height * self.scale_y)

    def to_raster_rect(self, position: Point, size: Size, rotation: float = 0.0) -> RasterRect:
        """映射图层矩形，旋转角度原样保留.

        Args:
            position: 左上角位置
            size: 尺寸
            rotation: 旋转角度（度）

        Returns:
            栅格坐标系中的矩形
        """
        x, y = self.to_raster_point(position)
        width, height = self.to_raster_size(size)
        return RasterRect(x=x, y=y, width=width, height=height, rotation=rotation)

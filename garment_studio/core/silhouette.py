"""服装轮廓几何模块.

定义 T 恤矢量轮廓（衣身、两只袖子、领口）并生成填充层和裁剪蒙版。
坐标直接使用栅格输出坐标系（300x400）。

Features:
    - 二次贝塞尔曲线折线化
    - 正/背面不同的领口曲线
    - 双色线性渐变面料填充
    - 超采样抗锯齿
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Sequence

from PIL import Image, ImageChops, ImageDraw

from garment_studio.models.design import Side
from garment_studio.utils.constants import (
    RASTER_SIZE,
    SEAM_OPACITY,
    SEAM_STROKE_COLOR,
    SILHOUETTE_STROKE_COLOR,
    SUPERSAMPLE_FACTOR,
)

Coord = tuple[float, float]
RGBColor = tuple[int, int, int]

# 每段二次曲线的折线段数
QUAD_SEGMENTS = 16


# ===================
# 路径构建
# ===================


def flatten_quadratic(p0: Coord, ctrl: Coord, p1: Coord, segments: int = QUAD_SEGMENTS) -> list[Coord]:
    """将二次贝塞尔曲线折线化.

    Args:
        p0: 起点
        ctrl: 控制点
        p1: 终点
        segments: 段数

    Returns:
        曲线上的点（不含起点，含终点）
    """
    points = []
    for i in range(1, segments + 1):
        t = i / segments
        mt = 1 - t
        x = mt * mt * p0[0] + 2 * mt * t * ctrl[0] + t * t * p1[0]
        y = mt * mt * p0[1] + 2 * mt * t * ctrl[1] + t * t * p1[1]
        points.append((x, y))
    return points


class OutlinePath:
    """折线路径构建器."""

    def __init__(self, x: float, y: float) -> None:
        self._points: list[Coord] = [(x, y)]

    def line_to(self, x: float, y: float) -> "OutlinePath":
        self._points.append((x, y))
        return self

    def quad_to(self, cx: float, cy: float, x: float, y: float) -> "OutlinePath":
        self._points.extend(flatten_quadratic(self._points[-1], (cx, cy), (x, y)))
        return self

    @property
    def points(self) -> tuple[Coord, ...]:
        return tuple(self._points)


def _scale(points: Sequence[Coord], factor: float) -> list[Coord]:
    return [(x * factor, y * factor) for x, y in points]


# ===================
# T 恤轮廓
# ===================

BODY_OUTLINE = (
    OutlinePath(60, 90)
    .line_to(60, 370)
    .quad_to(60, 380, 70, 380)
    .line_to(230, 380)
    .quad_to(240, 380, 240, 370)
    .line_to(240, 90)
    .line_to(220, 90)
    .line_to(220, 60)
    .quad_to(220, 45, 205, 45)
    .line_to(95, 45)
    .quad_to(80, 45, 80, 60)
    .line_to(80, 90)
    .points
)

LEFT_SLEEVE_OUTLINE = (
    OutlinePath(60, 90).line_to(0, 100).line_to(10, 170).line_to(60, 165).points
)

RIGHT_SLEEVE_OUTLINE = (
    OutlinePath(240, 90).line_to(300, 100).line_to(290, 170).line_to(240, 165).points
)

# 领口控制点Y：正面领口更深
NECKLINE_CONTROL_Y = {
    Side.FRONT: 80,
    Side.BACK: 55,
}

SIDE_SEAMS = (
    ((60, 90), (60, 370)),
    ((240, 90), (240, 370)),
)


@dataclass(frozen=True)
class GarmentSilhouette:
    """某一面的服装轮廓.

    Attributes:
        side: 服装面
        pieces: 填充部件（衣身、左袖、右袖），按绘制顺序
        neckline: 领口折线（只描边，不参与裁剪）
    """

    side: Side
    pieces: tuple[tuple[Coord, ...], ...]
    neckline: tuple[Coord, ...]

    @classmethod
    def for_side(cls, side: Side) -> "GarmentSilhouette":
        """创建指定面的轮廓."""
        side = Side(side)
        neckline = OutlinePath(95, 45).quad_to(150, NECKLINE_CONTROL_Y[side], 205, 45).points
        return cls(
            side=side,
            pieces=(BODY_OUTLINE, LEFT_SLEEVE_OUTLINE, RIGHT_SLEEVE_OUTLINE),
            neckline=neckline,
        )

    @property
    def clip_polygons(self) -> tuple[tuple[Coord, ...], ...]:
        """裁剪区域（衣身 + 两袖）."""
        return self.pieces

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """裁剪区域边界 (left, top, right, bottom)."""
        xs = [x for piece in self.pieces for x, _ in piece]
        ys = [y for piece in self.pieces for _, y in piece]
        return (min(xs), min(ys), max(xs), max(ys))


# ===================
# 颜色处理
# ===================


def darken_color(color: RGBColor, amount: float) -> RGBColor:
    """调暗颜色.

    每个通道减去 ``round(255 * amount)`` 并限制在 0-255。

    Args:
        color: RGB颜色
        amount: 调整幅度（0-1）

    Returns:
        调暗后的颜色
    """
    offset = round(255 * amount)
    return tuple(max(0, min(255, c - offset)) for c in color)  # type: ignore[return-value]


def create_diagonal_gradient(
    size: tuple[int, int],
    start: RGBColor,
    end: RGBColor,
    span: tuple[float, float],
    factor: int = 1,
) -> Image.Image:
    """创建从左上到右下的线性渐变.

    渐变向量为 (0, 0) -> span，插值参数
    ``t = (x * span_x + y * span_y) / |span|^2``。

    Args:
        size: 图像尺寸（已乘超采样倍数）
        start: 起始颜色
        end: 结束颜色
        span: 渐变向量（栅格坐标）
        factor: 超采样倍数

    Returns:
        RGBA 渐变图像
    """
    width, height = size
    sx, sy = span
    denom = sx * sx + sy * sy

    # t 可分解为 x 分量与 y 分量之和
    row = [round(255 * ((x + 0.5) / factor) * sx / denom) for x in range(width)]
    col = [round(255 * ((y + 0.5) / factor) * sy / denom) for y in range(height)]

    row_img = Image.new("L", (width, 1))
    row_img.putdata([min(255, v) for v in row])
    col_img = Image.new("L", (1, height))
    col_img.putdata([min(255, v) for v in col])

    t_mask = ImageChops.add(
        row_img.resize((width, height), Image.Resampling.NEAREST),
        col_img.resize((width, height), Image.Resampling.NEAREST),
    )

    base = Image.new("RGBA", size, (*start, 255))
    dark = Image.new("RGBA", size, (*end, 255))
    return Image.composite(dark, base, t_mask)


# ===================
# 轮廓渲染
# ===================


def _stroke_polygon(draw: ImageDraw.ImageDraw, points: Sequence[Coord], fill: tuple, width: int) -> None:
    closed = list(points) + [points[0]]
    draw.line(closed, fill=fill, width=width, joint="curve")


def render_silhouette(
    side: Side,
    color: RGBColor,
    darker: RGBColor,
    size: tuple[int, int] = RASTER_SIZE,
    factor: int = SUPERSAMPLE_FACTOR,
) -> Image.Image:
    """渲染服装轮廓层（填充 + 描边 + 缝线）.

    Args:
        side: 服装面
        color: 面料颜色
        darker: 渐变终点颜色
        size: 输出尺寸
        factor: 超采样倍数

    Returns:
        与输出尺寸相同的 RGBA 图像
    """
    silhouette = GarmentSilhouette.for_side(side)
    big = (size[0] * factor, size[1] * factor)

    fabric = create_diagonal_gradient(big, color, darker, span=(size[0], size[1]), factor=factor)
    layer = Image.new("RGBA", big, (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    stroke = (*SILHOUETTE_STROKE_COLOR, 255)

    # 每个部件先填充后描边，后绘制的部件覆盖前一个的描边
    for piece in silhouette.pieces:
        scaled = _scale(piece, factor)
        mask = Image.new("L", big, 0)
        ImageDraw.Draw(mask).polygon(scaled, fill=255)
        layer.paste(fabric, (0, 0), mask)
        _stroke_polygon(draw, scaled, stroke, factor)

    draw.line(_scale(silhouette.neckline, factor), fill=stroke, width=factor, joint="curve")

    # 缝线半透明，单独绘制后叠加
    seams = Image.new("RGBA", big, (0, 0, 0, 0))
    seam_draw = ImageDraw.Draw(seams)
    seam_fill = (*SEAM_STROKE_COLOR, round(255 * SEAM_OPACITY))
    for start, end in SIDE_SEAMS:
        seam_draw.line(_scale((start, end), factor), fill=seam_fill, width=max(1, factor // 2))
    layer.alpha_composite(seams)

    return layer.resize(size, Image.Resampling.LANCZOS)


@lru_cache(maxsize=8)
def build_clip_mask(
    side: Side,
    size: tuple[int, int] = RASTER_SIZE,
    factor: int = SUPERSAMPLE_FACTOR,
) -> Image.Image:
    """生成裁剪蒙版（衣身 + 两袖，不含领口）.

    返回的蒙版被缓存共享，调用方不得修改。

    Args:
        side: 服装面
        size: 输出尺寸
        factor: 超采样倍数

    Returns:
        L 模式蒙版，255 表示可绘制
    """
    silhouette = GarmentSilhouette.for_side(side)
    big = (size[0] * factor, size[1] * factor)
    mask = Image.new("L", big, 0)
    draw = ImageDraw.Draw(mask)
    for polygon in silhouette.clip_polygons:
        draw.polygon(_scale(polygon, factor), fill=255)
    return mask.resize(size, Image.Resampling.LANCZOS)

"""栅格绘制表面模块.

封装 RGBA 画布，提供作用域化的变换栈和裁剪区域。
变换和裁剪都通过上下文管理器进出，退出时（包括异常）保证恢复，
前一个图层的旋转不会残留到下一个图层。
"""

from __future__ import annotations

import io
import math
from contextlib import contextmanager
from typing import Iterator, Optional

from PIL import Image, ImageChops

from garment_studio.core.coordinate_mapping import RasterRect

# 仿射矩阵 (a, b, c, d, e, f)：x' = a*x + b*y + c, y' = d*x + e*y + f
Matrix = tuple[float, float, float, float, float, float]

IDENTITY: Matrix = (1.0, 0.0, 0.0, 0.0, 1.0, 0.0)


# ===================
# 仿射矩阵工具
# ===================


def multiply(m1: Matrix, m2: Matrix) -> Matrix:
    """矩阵相乘，结果先应用 m2 再应用 m1."""
    a1, b1, c1, d1, e1, f1 = m1
    a2, b2, c2, d2, e2, f2 = m2
    return (
        a1 * a2 + b1 * d2,
        a1 * b2 + b1 * e2,
        a1 * c2 + b1 * f2 + c1,
        d1 * a2 + e1 * d2,
        d1 * b2 + e1 * e2,
        d1 * c2 + e1 * f2 + f1,
    )


def invert(m: Matrix) -> Matrix:
    """求逆矩阵."""
    a, b, c, d, e, f = m
    det = a * e - b * d
    if abs(det) < 1e-12:
        raise ValueError("变换矩阵不可逆")
    ia = e / det
    ib = -b / det
    id_ = -d / det
    ie = a / det
    return (ia, ib, -(ia * c + ib * f), id_, ie, -(id_ * c + ie * f))


def translation(tx: float, ty: float) -> Matrix:
    """平移矩阵."""
    return (1.0, 0.0, tx, 0.0, 1.0, ty)


def scaling(sx: float, sy: float) -> Matrix:
    """缩放矩阵."""
    return (sx, 0.0, 0.0, 0.0, sy, 0.0)


def rotation_about(degrees: float, cx: float, cy: float) -> Matrix:
    """绕指定点旋转的矩阵（Y 轴向下，正角度为屏幕上顺时针）."""
    rad = math.radians(degrees)
    cos_r = math.cos(rad)
    sin_r = math.sin(rad)
    rot = (cos_r, -sin_r, 0.0, sin_r, cos_r, 0.0)
    return multiply(translation(cx, cy), multiply(rot, translation(-cx, -cy)))


def apply(m: Matrix, x: float, y: float) -> tuple[float, float]:
    """对坐标点应用矩阵."""
    a, b, c, d, e, f = m
    return (a * x + b * y + c, d * x + e * y + f)


# ===================
# 绘制表面
# ===================


class RasterSurface:
    """RGBA 绘制表面.

    Attributes:
        size: 表面尺寸
        image: 当前内容

    Example:
        >>> surface = RasterSurface((300, 400))
        >>> with surface.clip(mask):
        ...     with surface.rotation(45, 150, 200):
        ...         surface.draw_bitmap(bitmap, rect)
        >>> data = surface.encode("PNG")
    """

    def __init__(self, size: tuple[int, int]) -> None:
        self.size = size
        self._image = Image.new("RGBA", size, (0, 0, 0, 0))
        self._transforms: list[Matrix] = [IDENTITY]
        self._clip: Optional[Image.Image] = None

    @property
    def image(self) -> Image.Image:
        """当前内容."""
        return self._image

    @property
    def current_transform(self) -> Matrix:
        """栈顶变换."""
        return self._transforms[-1]

    @property
    def transform_depth(self) -> int:
        """变换栈深度（不含单位矩阵）."""
        return len(self._transforms) - 1

    @property
    def clip_mask(self) -> Optional[Image.Image]:
        """当前裁剪蒙版."""
        return self._clip

    def clear(self) -> None:
        """清空为全透明."""
        self._image = Image.new("RGBA", self.size, (0, 0, 0, 0))

    @contextmanager
    def transform(self, matrix: Matrix) -> Iterator[None]:
        """压入变换，退出作用域时弹出."""
        self._transforms.append(multiply(self.current_transform, matrix))
        try:
            yield
        finally:
            self._transforms.pop()

    @contextmanager
    def rotation(self, degrees: float, cx: float, cy: float) -> Iterator[None]:
        """绕 (cx, cy) 旋转的变换作用域，角度为 0 时不压栈."""
        if degrees == 0:
            yield
            return
        with self.transform(rotation_about(degrees, cx, cy)):
            yield

    @contextmanager
    def clip(self, mask: Image.Image) -> Iterator[None]:
        """设置裁剪区域，退出作用域时移除.

        Args:
            mask: 与表面同尺寸的 L 模式蒙版
        """
        if mask.size != self.size:
            raise ValueError(f"裁剪蒙版尺寸 {mask.size} 与表面尺寸 {self.size} 不一致")
        previous = self._clip
        self._clip = mask if previous is None else ImageChops.multiply(previous, mask)
        try:
            yield
        finally:
            self._clip = previous

    def composite(self, overlay: Image.Image) -> None:
        """以 source-over 方式叠加整幅图像（受裁剪约束）."""
        if overlay.mode != "RGBA":
            overlay = overlay.convert("RGBA")
        if self._clip is not None:
            overlay = overlay.copy()
            overlay.putalpha(ImageChops.multiply(overlay.getchannel("A"), self._clip))
        self._image.alpha_composite(overlay)

    def transformed_bounds(self, rect: RasterRect) -> tuple[float, float, float, float]:
        """矩形在当前变换下的包围盒."""
        left, top, right, bottom = rect.bounds
        corners = [
            apply(self.current_transform, x, y)
            for x, y in ((left, top), (right, top), (right, bottom), (left, bottom))
        ]
        xs = [p[0] for p in corners]
        ys = [p[1] for p in corners]
        return (min(xs), min(ys), max(xs), max(ys))

    def draw_bitmap(self, bitmap: Image.Image, rect: RasterRect) -> bool:
        """将位图拉伸绘制到目标矩形（应用当前变换和裁剪）.

        Args:
            bitmap: 源位图
            rect: 目标矩形（栅格坐标，未旋转）

        Returns:
            是否产生了绘制（完全在表面外时返回 False）
        """
        if rect.width <= 0 or rect.height <= 0:
            return False

        left, top, right, bottom = self.transformed_bounds(rect)
        if right <= 0 or bottom <= 0 or left >= self.size[0] or top >= self.size[1]:
            return False

        if bitmap.mode != "RGBA":
            bitmap = bitmap.convert("RGBA")

        # 先用高质量缩放到目标尺寸附近，剩余的小比例缩放和旋转交给仿射变换
        target_w = max(1, round(rect.width))
        target_h = max(1, round(rect.height))
        resized = bitmap.resize((target_w, target_h), Image.Resampling.LANCZOS)

        matrix = multiply(
            self.current_transform,
            multiply(
                translation(rect.x, rect.y),
                scaling(rect.width / target_w, rect.height / target_h),
            ),
        )
        inverse = invert(matrix)
        overlay = resized.transform(
            self.size,
            Image.Transform.AFFINE,
            data=inverse,
            resample=Image.Resampling.BICUBIC,
            fillcolor=(0, 0, 0, 0),
        )
        self.composite(overlay)
        return True

    def encode(self, format: str = "PNG", quality: int = 90) -> bytes:
        """编码为图片字节.

        Args:
            format: PNG / JPEG / WEBP
            quality: 有损格式质量

        Returns:
            编码后的字节
        """
        format = format.upper()
        buffer = io.BytesIO()
        image = self._image
        if format == "JPEG":
            # JPEG 无透明通道，合成到白底
            background = Image.new("RGBA", self.size, (255, 255, 255, 255))
            background.alpha_composite(image)
            background.convert("RGB").save(buffer, format="JPEG", quality=quality, optimize=True)
        elif format == "WEBP":
            image.save(buffer, format="WEBP", quality=quality, method=6)
        else:
            image.save(buffer, format="PNG", optimize=True)
        return buffer.getvalue()

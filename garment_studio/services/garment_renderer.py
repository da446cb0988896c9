"""服装预览渲染服务.

将服装设计的某一面栅格化为预览快照：

1. 创建透明画布（栅格输出尺寸）
2. 绘制服装轮廓（渐变面料 + 描边 + 缝线）
3. 设置裁剪区域（衣身 + 两袖）
4. 并发解码所有图层图片，按插入顺序逐层绘制（旋转围绕图层中心）
5. 移除裁剪区域
6. 编码输出

渲染只读取设计快照，相同输入产生相同输出。
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Optional, Sequence

from PIL import ImageColor

from garment_studio.core.coordinate_mapping import CoordinateMapping, RasterRect
from garment_studio.core.raster_surface import RasterSurface
from garment_studio.core.silhouette import build_clip_mask, darken_color, render_silhouette
from garment_studio.models.app_settings import Settings
from garment_studio.models.design import SIDE_NAMES, GarmentDesign, Layer, Side
from garment_studio.services.image_decoder import DecodedImage, ImageDecoder
from garment_studio.utils.constants import GRADIENT_DARKEN_AMOUNT, SUPERSAMPLE_FACTOR
from garment_studio.utils.exceptions import ImageDecodeError
from garment_studio.utils.logger import setup_logger

logger = setup_logger(__name__)

WHITE = (255, 255, 255)

SNAPSHOT_MIME_TYPES = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
}


@dataclass
class RenderedSnapshot:
    """某一面的预览快照.

    Attributes:
        side: 服装面
        data: 编码后的图片字节
        format: 编码格式（PNG / JPEG / WEBP）
        size: 图片尺寸
        warnings: 渲染过程中的非致命问题（例如跳过的图层）
    """

    side: Side
    data: bytes
    format: str
    size: tuple[int, int]
    warnings: list[str] = field(default_factory=list)

    @property
    def mime_type(self) -> str:
        return SNAPSHOT_MIME_TYPES.get(self.format, "image/png")

    @property
    def extension(self) -> str:
        return "jpg" if self.format == "JPEG" else self.format.lower()


def parse_garment_color(color: Optional[str]) -> tuple[tuple[int, int, int], Optional[str]]:
    """解析服装底色.

    支持 PIL 可识别的所有 CSS 颜色写法（#rgb、#rrggbb、rgb()、颜色名等）。

    Args:
        color: 颜色字符串

    Returns:
        (RGB颜色, 警告信息)，无法解析时回退为白色并返回警告
    """
    if not color or not color.strip():
        return WHITE, "未设置服装颜色，使用白色"
    try:
        rgb = ImageColor.getrgb(color.strip())
    except ValueError:
        return WHITE, f"无效的服装颜色 '{color}'，使用白色"
    return (rgb[0], rgb[1], rgb[2]), None


class GarmentRenderer:
    """服装预览渲染器.

    Attributes:
        mapping: 坐标映射
        settings: 应用设置

    Example:
        >>> renderer = GarmentRenderer(mapping, settings)
        >>> snapshot = await renderer.render_side("#1e3a8a", Side.FRONT, design.front)
        >>> snapshot.size
        (300, 400)
    """

    def __init__(
        self,
        mapping: CoordinateMapping,
        settings: Settings,
        decoder: Optional[ImageDecoder] = None,
    ) -> None:
        """初始化渲染器.

        Args:
            mapping: 坐标映射
            settings: 应用设置
            decoder: 图片解码器，未提供时自动创建
        """
        self.mapping = mapping
        self.settings = settings
        self._decoder = decoder or ImageDecoder(settings)

    async def render_side(
        self,
        color: Optional[str],
        side: Side,
        layers: Sequence[Layer],
    ) -> RenderedSnapshot:
        """渲染某一面的预览.

        Args:
            color: 服装底色
            side: 服装面
            layers: 图层列表（按绘制顺序）

        Returns:
            预览快照
        """
        side = Side(side)
        warnings: list[str] = []

        rgb, color_warning = parse_garment_color(color)
        if color_warning:
            logger.warning(color_warning)
            warnings.append(color_warning)

        rects = [
            self.mapping.to_raster_rect(layer.position, layer.size, layer.rotation)
            for layer in layers
        ]

        # 并发解码，结果顺序与图层顺序一致
        results = await asyncio.gather(
            *(
                self._decoder.decode(
                    layer.source,
                    target_size=(max(1, round(rect.width)), max(1, round(rect.height))),
                )
                for layer, rect in zip(layers, rects)
            ),
            return_exceptions=True,
        )

        decoded: list[tuple[DecodedImage, RasterRect]] = []
        for layer, rect, result in zip(layers, rects, results):
            if isinstance(result, Exception):
                message = f"{SIDE_NAMES[side]}图层 '{layer.source.display_name}' 无法解码，已跳过"
                reason = result.message if isinstance(result, ImageDecodeError) else repr(result)
                logger.warning(f"{message}: {reason}")
                warnings.append(message)
                continue
            # CancelledError 等非 Exception 不属于单个图层的失败
            if isinstance(result, BaseException):
                raise result
            decoded.append((result, rect))

        loop = asyncio.get_running_loop()
        data = await loop.run_in_executor(None, self._compose, side, rgb, decoded)

        logger.info(
            f"{SIDE_NAMES[side]}预览渲染完成: {len(decoded)}/{len(layers)} 个图层, "
            f"{len(data)} bytes"
        )
        return RenderedSnapshot(
            side=side,
            data=data,
            format=self.settings.snapshot_format,
            size=self.mapping.raster_size,
            warnings=warnings,
        )

    def _compose(
        self,
        side: Side,
        rgb: tuple[int, int, int],
        decoded: Sequence[tuple[DecodedImage, RasterRect]],
    ) -> bytes:
        """同步合成并编码（在线程池中执行）."""
        size = self.mapping.raster_size
        surface = RasterSurface(size)
        surface.clear()

        darker = darken_color(rgb, GRADIENT_DARKEN_AMOUNT)
        surface.composite(render_silhouette(side, rgb, darker, size=size, factor=SUPERSAMPLE_FACTOR))

        with surface.clip(build_clip_mask(side, size, SUPERSAMPLE_FACTOR)):
            for item, rect in decoded:
                with surface.rotation(rect.rotation, *rect.center):
                    drawn = surface.draw_bitmap(item.image, rect)
                if not drawn:
                    logger.debug(f"图层 '{item.name}' 位于画布之外，未绘制")

        return surface.encode(self.settings.snapshot_format, self.settings.snapshot_quality)

    async def render_design(self, design: GarmentDesign) -> dict[Side, RenderedSnapshot]:
        """并发渲染设计的正反两面.

        渲染基于设计快照，期间对原设计的修改不会影响结果。

        Args:
            design: 服装设计

        Returns:
            各面的预览快照
        """
        snapshot = design.snapshot()
        front, back = await asyncio.gather(
            self.render_side(snapshot.color, Side.FRONT, snapshot.front),
            self.render_side(snapshot.color, Side.BACK, snapshot.back),
        )
        return {Side.FRONT: front, Side.BACK: back}

    async def close(self) -> None:
        """释放解码器资源."""
        await self._decoder.close()


# ===================
# 便捷函数
# ===================


async def render_garment_previews(
    design: GarmentDesign,
    settings: Optional[Settings] = None,
    mapping: Optional[CoordinateMapping] = None,
) -> dict[Side, RenderedSnapshot]:
    """渲染服装正反两面预览（便捷函数）.

    Args:
        design: 服装设计
        settings: 应用设置，默认使用全局配置
        mapping: 坐标映射，默认使用全局配置

    Returns:
        各面的预览快照
    """
    if settings is None or mapping is None:
        from garment_studio.core.config_manager import get_config

        config = get_config()
        settings = settings or config.settings
        mapping = mapping or config.mapping

    renderer = GarmentRenderer(mapping, settings)
    try:
        return await renderer.render_design(design)
    finally:
        await renderer.close()

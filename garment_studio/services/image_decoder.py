"""设计图片解码服务.

将图层的图片来源（内存字节、本地 file:// 路径或远程 URL）解码为 RGBA 位图。
位图解码在线程池中执行，远程图片通过 httpx 异步下载，
SVG 使用 resvg 按目标尺寸直接渲染，避免矢量图被放大后模糊。
"""

from __future__ import annotations

import asyncio
import io
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse
from xml.etree import ElementTree

import httpx
from PIL import Image
from resvg_py import svg_to_bytes

from garment_studio.models.app_settings import Settings
from garment_studio.models.design import ImageSource
from garment_studio.utils.constants import SVG_MIME_TYPE
from garment_studio.utils.exceptions import ImageDecodeError
from garment_studio.utils.logger import setup_logger

logger = setup_logger(__name__)


@dataclass
class DecodedImage:
    """解码结果.

    Attributes:
        name: 来源名称
        image: RGBA 位图
        is_vector: 是否由 SVG 渲染得到
    """

    name: str
    image: Image.Image
    is_vector: bool = False

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size


def is_svg_source(source: ImageSource, data: Optional[bytes] = None) -> bool:
    """判断来源是否为 SVG."""
    if source.mime_type == SVG_MIME_TYPE:
        return True
    if source.url and urlparse(source.url).path.lower().endswith(".svg"):
        return True
    if data is not None:
        head = data[:512].lstrip().lower()
        return head.startswith(b"<svg") or (head.startswith(b"<?xml") and b"<svg" in head)
    return False


def decode_raster_bytes(data: bytes, name: str) -> Image.Image:
    """同步解码位图字节.

    Args:
        data: 图片字节
        name: 来源名称（用于错误信息）

    Returns:
        RGBA 图像

    Raises:
        ImageDecodeError: 无法识别或数据损坏
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except Exception as e:
        # Pillow 插件对损坏数据会抛出 SyntaxError 等非 OSError 异常
        raise ImageDecodeError(name, f"{type(e).__name__}: {e}") from e


def render_svg_bytes(data: bytes, name: str, size: tuple[int, int]) -> Image.Image:
    """同步渲染 SVG 为指定尺寸的 RGBA 图像.

    Args:
        data: SVG 文本字节
        name: 来源名称
        size: 输出尺寸

    Returns:
        RGBA 图像
    """
    width, height = max(1, int(round(size[0]))), max(1, int(round(size[1])))
    try:
        svg_string = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ImageDecodeError(name, "SVG 不是有效的 UTF-8 文本") from e

    # 渲染前先检查文档结构，格式错误的文档不交给 resvg
    try:
        root = ElementTree.fromstring(svg_string)
    except ElementTree.ParseError as e:
        raise ImageDecodeError(name, f"SVG 格式错误: {e}") from e
    if not root.tag.endswith("svg"):
        raise ImageDecodeError(name, "根元素不是 <svg>")

    try:
        png_bytes = bytes(svg_to_bytes(svg_string=svg_string, width=width, height=height))
    except Exception as e:
        raise ImageDecodeError(name, f"SVG 渲染失败: {e}") from e

    image = decode_raster_bytes(png_bytes, name)
    if image.size != (width, height):
        image = image.resize((width, height), Image.Resampling.LANCZOS)
    return image


class ImageDecoder:
    """图片解码器.

    Attributes:
        timeout: 远程下载超时（秒）

    Example:
        >>> decoder = ImageDecoder(settings)
        >>> decoded = await decoder.decode(layer.source, target_size=(120, 120))
        >>> decoded.image.mode
        'RGBA'
    """

    def __init__(
        self,
        settings: Settings,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """初始化解码器.

        Args:
            settings: 应用设置
            http_client: 可选的共享 HTTP 客户端，未提供时按需创建
        """
        self.timeout = settings.decode_timeout
        self._http_client = http_client
        self._owns_client = http_client is None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """获取 HTTP 客户端."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
            )
        return self._http_client

    async def decode(
        self,
        source: ImageSource,
        target_size: Optional[tuple[int, int]] = None,
    ) -> DecodedImage:
        """解码图片来源.

        Args:
            source: 图片来源
            target_size: 绘制目标尺寸（SVG 按此尺寸渲染）

        Returns:
            解码结果

        Raises:
            ImageDecodeError: 读取或解码失败
        """
        name = source.display_name
        data = await self._read_source(source)

        loop = asyncio.get_running_loop()
        if is_svg_source(source, data):
            size = target_size or (256, 256)
            image = await loop.run_in_executor(None, render_svg_bytes, data, name, size)
            return DecodedImage(name=name, image=image, is_vector=True)

        image = await loop.run_in_executor(None, decode_raster_bytes, data, name)
        return DecodedImage(name=name, image=image)

    async def _read_source(self, source: ImageSource) -> bytes:
        """读取来源字节."""
        if source.data is not None:
            return source.data
        if not source.url:
            raise ImageDecodeError(source.display_name, "图层没有可用的图片数据")

        parsed = urlparse(source.url)
        if parsed.scheme == "file":
            return await self._read_file(Path(unquote(parsed.path)), source.display_name)
        if parsed.scheme in ("http", "https"):
            return await self._fetch(source.url, source.display_name)
        raise ImageDecodeError(source.display_name, f"不支持的 URL: {source.url}")

    async def _read_file(self, path: Path, name: str) -> bytes:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, path.read_bytes)
        except OSError as e:
            raise ImageDecodeError(name, f"读取文件失败: {e}") from e

    async def _fetch(self, url: str, name: str) -> bytes:
        """下载远程图片."""
        logger.debug(f"下载设计图片: {url}")
        try:
            response = await self.http_client.get(url)
        except httpx.TimeoutException as e:
            raise ImageDecodeError(name, f"下载超时 ({self.timeout}s)") from e
        except httpx.HTTPError as e:
            raise ImageDecodeError(name, f"下载失败: {e}") from e

        if response.status_code != 200:
            raise ImageDecodeError(name, f"下载失败: HTTP {response.status_code}")
        return response.content

    async def close(self) -> None:
        """关闭自行创建的 HTTP 客户端."""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None
            logger.debug("图片解码器 HTTP 客户端已关闭")

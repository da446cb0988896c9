"""Pytest 配置和共享 fixtures."""

import io
import os
import struct
import zlib
from typing import Callable

import pytest
from PIL import Image

from garment_studio.core.coordinate_mapping import CoordinateMapping
from garment_studio.models.app_settings import Settings
from garment_studio.models.design import GarmentDesign, ImageSource, Layer

SVG_SAMPLE = (
    b'<svg xmlns="http://www.w3.org/2000/svg" width="100" height="100" viewBox="0 0 100 100">'
    b'<rect x="0" y="0" width="100" height="100" fill="#ff0000"/>'
    b"</svg>"
)


def pytest_configure(config):
    """测试期间不写入用户目录下的日志文件."""
    os.environ.setdefault("GARMENT_LOG_TO_FILE", "false")


def make_png(size: tuple[int, int] = (64, 64), color: tuple = (255, 0, 0, 255)) -> bytes:
    """生成纯色 PNG 字节."""
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def _png_chunk(chunk_type: bytes, payload: bytes) -> bytes:
    crc = zlib.crc32(chunk_type + payload) & 0xFFFFFFFF
    return struct.pack(">I", len(payload)) + chunk_type + payload + struct.pack(">I", crc)


def make_broken_png(size: int = 16) -> bytes:
    """生成能通过识别、但在读取像素数据时损坏的 PNG.

    像素数据拆成两个数据块，第二块的类型为非法字节，
    Pillow 在 load() 阶段才会发现并抛出 SyntaxError。
    """
    header = struct.pack(">IIBBBBB", size, size, 8, 6, 0, 0, 0)
    raw = b"".join(b"\x00" + bytes(range(size * 4)) for _ in range(size))
    compressed = zlib.compress(raw)
    half = len(compressed) // 2
    return (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", header)
        + _png_chunk(b"IDAT", compressed[:half])
        + _png_chunk(b"X\tV\x82", compressed[half:])
        + _png_chunk(b"IEND", b"")
    )


@pytest.fixture
def settings() -> Settings:
    """返回不读取 .env 的默认设置."""
    return Settings(_env_file=None)


@pytest.fixture
def mapping() -> CoordinateMapping:
    """返回默认坐标映射 (500x600 -> 300x400)."""
    return CoordinateMapping()


@pytest.fixture
def png_factory() -> Callable[..., bytes]:
    """返回纯色 PNG 生成函数."""
    return make_png


@pytest.fixture
def png_bytes() -> bytes:
    """返回红色 PNG 图片字节."""
    return make_png()


@pytest.fixture
def broken_png_bytes() -> bytes:
    """返回像素数据损坏的 PNG 字节."""
    return make_broken_png()


@pytest.fixture
def svg_bytes() -> bytes:
    """返回红色方块 SVG 字节."""
    return SVG_SAMPLE


@pytest.fixture
def make_layer() -> Callable[..., Layer]:
    """返回图层工厂函数."""

    def _make(
        data: bytes | None = None,
        file_name: str = "logo.png",
        mime_type: str = "image/png",
        **kwargs,
    ) -> Layer:
        source = ImageSource.from_bytes(data if data is not None else make_png(), file_name, mime_type)
        return Layer(source=source, **kwargs)

    return _make


@pytest.fixture
def design() -> GarmentDesign:
    """返回空白服装设计."""
    return GarmentDesign(color="#1e3a8a", label="测试T恤", description="测试描述")

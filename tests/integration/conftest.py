"""集成测试配置和共享 fixtures."""

import tempfile
from pathlib import Path
from typing import Generator

import pytest
import pytest_asyncio
from PIL import Image

from garment_studio.core.config_manager import get_config
from garment_studio.models.app_settings import Settings
from garment_studio.services.garment_service import reset_garment_service


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """临时目录 fixture."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_logo_file(temp_dir: Path) -> Path:
    """创建示例 PNG 设计文件（透明背景上的红色方块）."""
    img = Image.new("RGBA", (200, 200), color=(0, 0, 0, 0))
    for x in range(40, 160):
        for y in range(40, 160):
            img.putpixel((x, y), (220, 30, 30, 255))
    path = temp_dir / "logo.png"
    img.save(path)
    return path


@pytest.fixture
def sample_svg_file(temp_dir: Path) -> Path:
    """创建示例 SVG 设计文件."""
    path = temp_dir / "badge.svg"
    path.write_text(
        '<svg xmlns="http://www.w3.org/2000/svg" width="50" height="50">'
        '<circle cx="25" cy="25" r="25" fill="#00aa00"/></svg>',
        encoding="utf-8",
    )
    return path


@pytest.fixture
def storage_dir(temp_dir: Path) -> Path:
    """本地数据服务目录."""
    return temp_dir / "store"


@pytest_asyncio.fixture
async def local_config(storage_dir: Path):
    """使用本地数据服务的全局配置，测试结束后恢复."""
    config = get_config()
    config.configure(Settings(_env_file=None, local_storage_dir=storage_dir))
    await reset_garment_service()
    yield config
    await reset_garment_service()
    config.reload()

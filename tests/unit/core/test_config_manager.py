"""配置管理器单元测试."""

import logging

import pytest

from garment_studio.core.config_manager import ConfigManager, get_config
from garment_studio.models.app_settings import Settings
from garment_studio.utils.exceptions import ConfigError
from garment_studio.utils.logger import get_log_level


@pytest.fixture
def config():
    """返回配置管理器，测试结束后恢复."""
    manager = get_config()
    yield manager
    manager.reload()


class TestConfigManager:
    """配置管理器测试."""

    def test_singleton(self):
        """测试单例."""
        assert ConfigManager() is ConfigManager()
        assert get_config() is ConfigManager()

    def test_configure_rebuilds_mapping(self, config):
        """测试替换设置后重新构建映射."""
        config.configure(Settings(_env_file=None, raster_width=250, raster_height=300))

        assert config.settings.raster_width == 250
        assert config.mapping.raster_size == (250, 300)
        assert config.mapping.scale_x == pytest.approx(0.5)
        assert config.mapping.is_uniform

    def test_mapping_built_once(self, config):
        """测试映射只构建一次."""
        config.configure(Settings(_env_file=None))
        assert config.mapping is config.mapping

    def test_configure_rejects_non_uniform_scale(self, config):
        """测试要求等比缩放时拒绝默认尺寸，并保持原配置."""
        config.configure(Settings(_env_file=None))
        original = config.mapping

        with pytest.raises(ConfigError):
            config.configure(Settings(_env_file=None, require_uniform_scale=True))

        assert config.mapping is original
        assert config.settings.require_uniform_scale is False

    def test_load_from_environment(self, config, monkeypatch):
        """测试从环境变量加载."""
        monkeypatch.setenv("GARMENT_SNAPSHOT_FORMAT", "jpg")
        monkeypatch.setenv("GARMENT_LOG_LEVEL", "debug")
        config.reload()

        assert config.settings.snapshot_format == "JPEG"
        assert config.settings.log_level == "DEBUG"
        assert get_log_level() == logging.DEBUG

    def test_invalid_environment(self, config, monkeypatch):
        """测试环境变量无效时抛出配置异常."""
        monkeypatch.setenv("GARMENT_SNAPSHOT_FORMAT", "tiff")
        config.reload()

        with pytest.raises(ConfigError):
            _ = config.settings

    def test_logging_controlled_by_log_level_only(self, config, monkeypatch):
        """测试日志行为只由日志级别控制，旧的调试开关被忽略."""
        monkeypatch.setenv("GARMENT_DEBUG", "true")
        config.reload()

        assert "debug" not in Settings.model_fields
        assert config.settings.log_level == "INFO"
        assert get_log_level() == logging.INFO

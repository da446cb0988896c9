"""配置管理器模块."""

from __future__ import annotations

from typing import Optional

from pydantic import ValidationError

from garment_studio.core.coordinate_mapping import CoordinateMapping
from garment_studio.models.app_settings import Settings
from garment_studio.utils.constants import APP_NAME
from garment_studio.utils.exceptions import ConfigError
from garment_studio.utils.logger import (
    configure_file_logging,
    disable_file_logging,
    set_log_level,
    setup_logger,
)

logger = setup_logger(__name__)


class ConfigManager:
    """配置管理器.

    负责应用设置的加载，并在首次访问时一次性构建全局坐标映射。

    Attributes:
        settings: 应用设置
        mapping: 交互画布到栅格输出的坐标映射
    """

    _instance: Optional["ConfigManager"] = None

    def __new__(cls) -> "ConfigManager":
        """单例模式."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        """初始化配置管理器."""
        if self._initialized:
            return

        self._settings: Optional[Settings] = None
        self._mapping: Optional[CoordinateMapping] = None
        self._initialized = True

        logger.debug(f"{APP_NAME} 配置管理器初始化完成")

    @property
    def settings(self) -> Settings:
        """获取应用设置."""
        if self._settings is None:
            self._settings = self._load_settings()
            self._apply_logging(self._settings)
        return self._settings

    @property
    def mapping(self) -> CoordinateMapping:
        """获取坐标映射（由设置构建，之后只读）."""
        if self._mapping is None:
            self._mapping = self._build_mapping(self.settings)
        return self._mapping

    def _load_settings(self) -> Settings:
        """加载应用设置.

        从环境变量和 .env 文件加载。

        Returns:
            Settings 实例
        """
        try:
            settings = Settings()
            logger.debug(f"应用设置加载完成: log_level={settings.log_level}")
            return settings
        except ValidationError as e:
            logger.error(f"加载应用设置失败: {e}")
            raise ConfigError(f"加载应用设置失败: {e}") from e

    @staticmethod
    def _apply_logging(settings: Settings) -> None:
        set_log_level(settings.log_level)
        if settings.log_to_file:
            configure_file_logging(settings.log_dir)
        else:
            disable_file_logging()

    @staticmethod
    def _build_mapping(settings: Settings) -> CoordinateMapping:
        mapping = CoordinateMapping(
            interactive_size=(settings.interactive_width, settings.interactive_height),
            raster_size=(settings.raster_width, settings.raster_height),
            require_uniform=settings.require_uniform_scale,
        )
        logger.debug(
            f"坐标映射已构建: {mapping.interactive_size} -> {mapping.raster_size}, "
            f"scale=({mapping.scale_x:.4f}, {mapping.scale_y:.4f})"
        )
        return mapping

    def configure(self, settings: Settings) -> None:
        """使用指定设置替换当前配置.

        坐标映射会立即重新构建，构建失败时保持原配置不变。

        Args:
            settings: 应用设置
        """
        mapping = self._build_mapping(settings)
        self._settings = settings
        self._mapping = mapping
        self._apply_logging(settings)
        logger.info("配置已更新")

    def reload(self) -> None:
        """重新加载所有配置."""
        self._settings = None
        self._mapping = None
        logger.info("配置已重新加载")


# 全局配置管理器实例
config_manager = ConfigManager()


def get_config() -> ConfigManager:
    """获取配置管理器实例.

    Returns:
        ConfigManager 单例实例
    """
    return config_manager

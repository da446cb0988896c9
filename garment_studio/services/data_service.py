"""数据服务抽象基类.

定义统一的用户、数据记录和对象存储接口，支持多种实现方式
（远程 REST 后端、本地 SQLite + 文件系统）。

所有操作只尝试一次，失败直接抛出异常，重试策略由调用方决定。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import BaseModel

from garment_studio.models.app_settings import Settings
from garment_studio.utils.logger import setup_logger

logger = setup_logger(__name__)

Row = dict[str, Any]


class User(BaseModel):
    """当前登录用户."""

    id: str
    email: Optional[str] = None


class DataService(ABC):
    """数据服务抽象基类.

    Example:
        >>> async with create_data_service(settings) as service:
        ...     user = await service.get_current_user()
        ...     rows = await service.query("shirts", {"user_id": user.id})
    """

    @abstractmethod
    async def get_current_user(self) -> Optional[User]:
        """获取当前登录用户.

        Returns:
            用户信息，未登录返回 None
        """
        pass

    @abstractmethod
    async def query(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = True,
    ) -> list[Row]:
        """按等值条件查询记录.

        Args:
            table: 表名
            filters: 字段等值过滤条件
            order_by: 排序字段
            descending: 是否倒序

        Returns:
            记录列表
        """
        pass

    @abstractmethod
    async def insert(self, table: str, row: Row) -> Row:
        """插入记录.

        Args:
            table: 表名
            row: 记录内容

        Returns:
            插入后的完整记录（含 id）
        """
        pass

    @abstractmethod
    async def update(self, table: str, record_id: str, values: Row) -> Row:
        """更新记录.

        Raises:
            RecordNotFoundError: 记录不存在
        """
        pass

    @abstractmethod
    async def delete(self, table: str, record_id: str) -> None:
        """删除记录."""
        pass

    @abstractmethod
    async def upload_blob(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
    ) -> str:
        """上传对象.

        Args:
            bucket: 存储桶
            path: 对象路径
            data: 对象内容
            content_type: MIME 类型

        Returns:
            对象的公开访问 URL

        Raises:
            BlobUploadError: 上传失败
        """
        pass

    @abstractmethod
    async def delete_blob(self, bucket: str, path: str) -> None:
        """删除对象.

        Raises:
            BlobDeleteError: 删除失败
        """
        pass

    @abstractmethod
    def blob_path_from_url(self, bucket: str, url: str) -> Optional[str]:
        """从公开 URL 解析对象路径，不属于该存储桶时返回 None."""
        pass

    async def get(self, table: str, record_id: str) -> Optional[Row]:
        """根据ID获取单条记录."""
        rows = await self.query(table, {"id": record_id})
        return rows[0] if rows else None

    async def close(self) -> None:
        """关闭连接，释放资源.

        子类可重写此方法释放特定资源。
        """
        pass

    async def __aenter__(self) -> "DataService":
        """异步上下文管理器入口."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """异步上下文管理器出口."""
        await self.close()


def create_data_service(
    settings: Settings,
    access_token: Optional[str] = None,
) -> DataService:
    """根据设置创建数据服务.

    配置了 ``data_service_url`` 时使用远程 REST 服务，否则使用本地服务。

    Args:
        settings: 应用设置
        access_token: 远程服务的用户访问令牌

    Returns:
        DataService 实例
    """
    if settings.uses_remote_data_service:
        from garment_studio.services.rest_data_service import RestDataService

        logger.debug(f"使用远程数据服务: {settings.data_service_url}")
        return RestDataService(
            base_url=settings.data_service_url,
            api_key=settings.data_service_key,
            access_token=access_token,
            timeout=settings.request_timeout,
        )

    from garment_studio.services.local_data_service import LocalDataService

    logger.debug("使用本地数据服务")
    return LocalDataService(root=settings.local_storage_dir)

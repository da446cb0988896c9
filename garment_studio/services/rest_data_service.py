"""远程 REST 数据服务实现.

对接 PostgREST 风格的数据接口和对象存储接口：

    - GET    /auth/v1/user                              当前用户
    - GET    /rest/v1/{table}?col=eq.value              查询
    - POST   /rest/v1/{table}                           插入
    - PATCH  /rest/v1/{table}?id=eq.{id}                更新
    - DELETE /rest/v1/{table}?id=eq.{id}                删除
    - POST   /storage/v1/object/{bucket}/{path}         上传对象
    - DELETE /storage/v1/object/{bucket}                删除对象
    - GET    /storage/v1/object/public/{bucket}/{path}  公开访问
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional
from urllib.parse import quote, unquote

import httpx

from garment_studio.services.data_service import DataService, Row, User
from garment_studio.utils.exceptions import (
    BlobDeleteError,
    BlobUploadError,
    RecordNotFoundError,
    RecordStoreError,
)
from garment_studio.utils.logger import setup_logger

logger = setup_logger(__name__)


def _error_text(response: httpx.Response) -> str:
    """提取响应中的错误信息."""
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(data, dict):
        for key in ("message", "error_description", "error", "msg"):
            if data.get(key):
                return str(data[key])
    return response.text or f"HTTP {response.status_code}"


class RestDataService(DataService):
    """远程 REST 数据服务.

    Attributes:
        base_url: 服务基础 URL
        api_key: 项目 API 密钥
        access_token: 用户访问令牌（未登录时为 None）
        timeout: 请求超时时间（秒）

    Example:
        >>> service = RestDataService(
        ...     base_url="https://example.supabase.co",
        ...     api_key="anon-key",
        ...     access_token=token,
        ... )
        >>> user = await service.get_current_user()
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        access_token: Optional[str] = None,
        timeout: int = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """初始化远程数据服务.

        Args:
            base_url: 服务基础 URL
            api_key: 项目 API 密钥
            access_token: 用户访问令牌
            timeout: 请求超时时间（秒）
            transport: 自定义传输层（测试时注入）
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.access_token = access_token
        self.timeout = timeout
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None
        self._http_client_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """获取 HTTP 客户端.

        如果当前事件循环与创建客户端时的不同，会自动重新创建客户端。
        """
        try:
            current_loop = asyncio.get_running_loop()
        except RuntimeError:
            current_loop = None

        if self._http_client is not None:
            loop_changed = (
                self._http_client_loop is None
                or self._http_client_loop != current_loop
                or self._http_client_loop.is_closed()
            )
            if loop_changed:
                logger.debug("事件循环已改变，重新创建 HTTP 客户端")
                self._http_client = None
                self._http_client_loop = None

        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
            self._http_client_loop = current_loop
        return self._http_client

    def _headers(self, **extra: str) -> dict[str, str]:
        headers = {"apikey": self.api_key}
        token = self.access_token or self.api_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        headers.update(extra)
        return headers

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """发送请求，将传输层错误转换为 RecordStoreError."""
        try:
            return await self.http_client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"数据服务请求超时: {method} {url}")
            raise RecordStoreError(f"请求超时 ({self.timeout}s)") from e
        except httpx.HTTPError as e:
            logger.error(f"无法连接到数据服务: {e}")
            raise RecordStoreError(f"无法连接到数据服务: {e}") from e

    # ========================
    # 用户
    # ========================

    async def get_current_user(self) -> Optional[User]:
        """获取当前登录用户."""
        if not self.access_token:
            return None

        response = await self._send("GET", "/auth/v1/user", headers=self._headers())
        if response.status_code in (401, 403):
            logger.debug("访问令牌无效或已过期")
            return None
        if response.status_code != 200:
            raise RecordStoreError(_error_text(response), response.status_code)

        data = response.json()
        return User(id=str(data["id"]), email=data.get("email"))

    # ========================
    # 数据记录
    # ========================

    async def query(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = True,
    ) -> list[Row]:
        """按等值条件查询记录."""
        params: dict[str, str] = {"select": "*"}
        for key, value in (filters or {}).items():
            params[key] = f"eq.{value}"
        if order_by:
            params["order"] = f"{order_by}.{'desc' if descending else 'asc'}"

        response = await self._send(
            "GET", f"/rest/v1/{table}", params=params, headers=self._headers()
        )
        if response.status_code != 200:
            raise RecordStoreError(_error_text(response), response.status_code)
        return list(response.json())

    async def insert(self, table: str, row: Row) -> Row:
        """插入记录."""
        response = await self._send(
            "POST",
            f"/rest/v1/{table}",
            json=row,
            headers=self._headers(Prefer="return=representation"),
        )
        if response.status_code not in (200, 201):
            logger.error(f"插入记录失败: {table}, HTTP {response.status_code}")
            raise RecordStoreError(_error_text(response), response.status_code)

        data = response.json()
        if isinstance(data, list):
            if not data:
                raise RecordStoreError(f"插入 {table} 未返回记录")
            data = data[0]
        logger.info(f"记录已插入: {table}/{data.get('id')}")
        return data

    async def update(self, table: str, record_id: str, values: Row) -> Row:
        """更新记录."""
        response = await self._send(
            "PATCH",
            f"/rest/v1/{table}",
            params={"id": f"eq.{record_id}"},
            json=values,
            headers=self._headers(Prefer="return=representation"),
        )
        if response.status_code != 200:
            raise RecordStoreError(_error_text(response), response.status_code)

        data = response.json()
        if not data:
            raise RecordNotFoundError(table, record_id)
        return data[0] if isinstance(data, list) else data

    async def delete(self, table: str, record_id: str) -> None:
        """删除记录."""
        response = await self._send(
            "DELETE",
            f"/rest/v1/{table}",
            params={"id": f"eq.{record_id}"},
            headers=self._headers(),
        )
        if response.status_code not in (200, 204):
            raise RecordStoreError(_error_text(response), response.status_code)
        logger.info(f"记录已删除: {table}/{record_id}")

    # ========================
    # 对象存储
    # ========================

    def public_url(self, bucket: str, path: str) -> str:
        """对象的公开访问 URL."""
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{quote(path)}"

    def blob_path_from_url(self, bucket: str, url: str) -> Optional[str]:
        """从公开 URL 解析对象路径."""
        prefix = f"{self.base_url}/storage/v1/object/public/{bucket}/"
        if not url.startswith(prefix):
            return None
        return unquote(url[len(prefix):].split("?", 1)[0])

    async def upload_blob(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
    ) -> str:
        """上传对象（不覆盖已有对象）."""
        try:
            response = await self._send(
                "POST",
                f"/storage/v1/object/{bucket}/{quote(path)}",
                content=data,
                headers=self._headers(
                    **{
                        "Content-Type": content_type,
                        "Cache-Control": "3600",
                        "x-upsert": "false",
                    }
                ),
            )
        except RecordStoreError as e:
            raise BlobUploadError(path, e.message) from e

        if response.status_code not in (200, 201):
            reason = _error_text(response)
            logger.error(f"上传对象失败: {bucket}/{path}: {reason}")
            raise BlobUploadError(path, reason)

        url = self.public_url(bucket, path)
        logger.debug(f"对象已上传: {url}")
        return url

    async def delete_blob(self, bucket: str, path: str) -> None:
        """删除对象."""
        try:
            response = await self._send(
                "DELETE",
                f"/storage/v1/object/{bucket}",
                json={"prefixes": [path]},
                headers=self._headers(),
            )
        except RecordStoreError as e:
            raise BlobDeleteError(path, e.message) from e

        if response.status_code not in (200, 204):
            raise BlobDeleteError(path, _error_text(response))
        logger.debug(f"对象已删除: {bucket}/{path}")

    async def close(self) -> None:
        """关闭 HTTP 客户端."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
            logger.debug("远程数据服务 HTTP 客户端已关闭")

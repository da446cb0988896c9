"""本地数据服务实现.

使用 SQLite（SQLAlchemy）保存数据记录，使用本地文件系统保存对象，
对象 URL 为 ``file://`` 形式。用于离线编辑和集成测试。
"""

from __future__ import annotations

import asyncio
import json
import uuid
from datetime import datetime, timezone
from functools import partial
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Optional, TypeVar
from urllib.parse import unquote, urlparse

from sqlalchemy import create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from garment_studio.models.database import Base, RecordRow
from garment_studio.services.data_service import DataService, Row, User
from garment_studio.utils.constants import APP_DATA_DIR
from garment_studio.utils.exceptions import (
    BlobDeleteError,
    BlobUploadError,
    RecordNotFoundError,
    RecordStoreError,
)
from garment_studio.utils.logger import setup_logger

logger = setup_logger(__name__)

T = TypeVar("T")


class LocalDataService(DataService):
    """本地数据服务.

    Attributes:
        root: 数据根目录（包含 data.db 和 storage/）
        current_user: 当前登录用户

    Example:
        >>> service = LocalDataService(root=tmp_dir, user=User(id="u1"))
        >>> url = await service.upload_blob("tshirt-designs", "u1/designs/front/a.png", data, "image/png")
        >>> url.startswith("file://")
        True
    """

    def __init__(
        self,
        root: Optional[Path] = None,
        user: Optional[User] = None,
    ) -> None:
        """初始化本地数据服务.

        Args:
            root: 数据根目录，默认使用应用数据目录
            user: 当前登录用户
        """
        self.root = Path(root or APP_DATA_DIR).resolve()
        self.storage_dir = self.root / "storage"
        self.db_path = self.root / "data.db"
        self.current_user = user

        self.root.mkdir(parents=True, exist_ok=True)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(
            f"sqlite:///{self.db_path}",
            connect_args={"check_same_thread": False},
            echo=False,
        )
        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
        )
        Base.metadata.create_all(self.engine)

        logger.debug(f"本地数据服务初始化完成: {self.root}")

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        """在线程池中执行同步操作."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args))

    # ========================
    # 用户
    # ========================

    def set_current_user(self, user: Optional[User]) -> None:
        """设置当前登录用户（None 表示登出）."""
        self.current_user = user

    async def get_current_user(self) -> Optional[User]:
        """获取当前登录用户."""
        return self.current_user

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
        return await self._run(self._query_sync, table, filters or {}, order_by, descending)

    def _query_sync(
        self,
        table: str,
        filters: dict[str, Any],
        order_by: Optional[str],
        descending: bool,
    ) -> list[Row]:
        try:
            with self.SessionLocal() as session:
                stmt = (
                    select(RecordRow)
                    .where(RecordRow.table_name == table)
                    .order_by(RecordRow.created_at)
                )
                rows = [json.loads(r.data_json) for r in session.scalars(stmt)]
        except SQLAlchemyError as e:
            raise RecordStoreError(f"查询 {table} 失败: {e}") from e

        result = [
            row for row in rows
            if all(str(row.get(k)) == str(v) for k, v in filters.items())
        ]
        if order_by:
            result.sort(key=lambda r: str(r.get(order_by, "")), reverse=descending)
        return result

    async def insert(self, table: str, row: Row) -> Row:
        """插入记录，自动生成 id 和 created_at."""
        return await self._run(self._insert_sync, table, row)

    def _insert_sync(self, table: str, row: Row) -> Row:
        data = dict(row)
        data.setdefault("id", str(uuid.uuid4()))
        data.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        try:
            with self.SessionLocal() as session:
                session.add(
                    RecordRow(
                        id=data["id"],
                        table_name=table,
                        data_json=json.dumps(data, ensure_ascii=False),
                    )
                )
                session.commit()
        except SQLAlchemyError as e:
            raise RecordStoreError(f"插入 {table} 失败: {e}") from e
        logger.info(f"记录已插入: {table}/{data['id']}")
        return data

    async def update(self, table: str, record_id: str, values: Row) -> Row:
        """更新记录."""
        return await self._run(self._update_sync, table, record_id, values)

    def _update_sync(self, table: str, record_id: str, values: Row) -> Row:
        try:
            with self.SessionLocal() as session:
                record = session.get(RecordRow, record_id)
                if record is None or record.table_name != table:
                    raise RecordNotFoundError(table, record_id)
                data = json.loads(record.data_json)
                data.update(values)
                data["id"] = record_id
                record.data_json = json.dumps(data, ensure_ascii=False)
                session.commit()
        except SQLAlchemyError as e:
            raise RecordStoreError(f"更新 {table}/{record_id} 失败: {e}") from e
        return data

    async def delete(self, table: str, record_id: str) -> None:
        """删除记录（不存在时忽略）."""
        await self._run(self._delete_sync, table, record_id)

    def _delete_sync(self, table: str, record_id: str) -> None:
        try:
            with self.SessionLocal() as session:
                record = session.get(RecordRow, record_id)
                if record is not None and record.table_name == table:
                    session.delete(record)
                    session.commit()
                    logger.info(f"记录已删除: {table}/{record_id}")
        except SQLAlchemyError as e:
            raise RecordStoreError(f"删除 {table}/{record_id} 失败: {e}") from e

    # ========================
    # 对象存储
    # ========================

    def _blob_file(self, bucket: str, path: str) -> Path:
        """对象路径对应的本地文件，拒绝越出存储桶目录的路径."""
        parts = PurePosixPath(path).parts
        if not parts or PurePosixPath(path).is_absolute() or ".." in parts:
            raise ValueError(f"非法的对象路径: {path}")
        return self.storage_dir / bucket / Path(*parts)

    def blob_path_from_url(self, bucket: str, url: str) -> Optional[str]:
        """从 file:// URL 解析对象路径."""
        parsed = urlparse(url)
        if parsed.scheme != "file":
            return None
        try:
            relative = Path(unquote(parsed.path)).relative_to(self.storage_dir / bucket)
        except ValueError:
            return None
        return relative.as_posix()

    async def upload_blob(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
    ) -> str:
        """保存对象到本地文件（不覆盖已有对象）."""
        try:
            file_path = self._blob_file(bucket, path)
        except ValueError as e:
            raise BlobUploadError(path, str(e)) from e
        if file_path.exists():
            raise BlobUploadError(path, "对象已存在")

        try:
            await self._run(self._write_blob, file_path, data)
        except OSError as e:
            raise BlobUploadError(path, str(e)) from e

        logger.debug(f"对象已保存: {file_path} ({content_type}, {len(data)} bytes)")
        return file_path.as_uri()

    @staticmethod
    def _write_blob(file_path: Path, data: bytes) -> None:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(data)

    async def delete_blob(self, bucket: str, path: str) -> None:
        """删除对象（不存在时忽略）."""
        try:
            file_path = self._blob_file(bucket, path)
        except ValueError as e:
            raise BlobDeleteError(path, str(e)) from e

        try:
            await self._run(partial(file_path.unlink, missing_ok=True))
        except OSError as e:
            raise BlobDeleteError(path, str(e)) from e
        logger.debug(f"对象已删除: {bucket}/{path}")

    async def close(self) -> None:
        """关闭数据库连接."""
        self.engine.dispose()
        logger.debug("本地数据服务数据库连接已关闭")

"""服装设计保存服务.

串联预览渲染、文件上传和记录持久化：

保存流程：
    1. 校验登录状态和名称
    2. 基于设计快照渲染正反两面预览（失败时降级为无预览）
    3. 上传预览图（单张失败时省略对应 URL）
    4. 上传设计文件（单个失败时省略对应图层）
    5. 写入服装记录（失败则抛出异常）

在两面预览都完成之前不会上传任何内容。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from garment_studio.models.app_settings import Settings
from garment_studio.models.design import (
    SIDE_NAMES,
    DesignSet,
    GarmentDesign,
    GarmentRecord,
    Layer,
    LayerMeta,
    Side,
)
from garment_studio.services.data_service import DataService, User, create_data_service
from garment_studio.services.garment_renderer import GarmentRenderer, RenderedSnapshot
from garment_studio.utils.constants import (
    DESIGN_FOLDER,
    GARMENT_TABLE,
    MIME_EXTENSIONS,
    PREVIEW_FOLDER,
)
from garment_studio.utils.error_handler import ErrorCollector, get_error_details
from garment_studio.utils.exceptions import (
    AppException,
    BlobDeleteError,
    BlobUploadError,
    DataServiceError,
    MissingFieldError,
    NotAuthenticatedError,
    RecordNotFoundError,
)
from garment_studio.utils.helpers import build_blob_path, get_file_extension
from garment_studio.utils.logger import operation_logger, setup_logger

logger = setup_logger(__name__)


@dataclass
class SaveResult:
    """保存结果.

    Attributes:
        record: 已写入的服装记录
        warnings: 非致命问题（预览缺失、跳过的设计文件等）
    """

    record: GarmentRecord
    warnings: list[str] = field(default_factory=list)

    @property
    def has_previews(self) -> bool:
        return bool(self.record.preview_front_url and self.record.preview_back_url)


class GarmentService:
    """服装设计保存服务.

    Attributes:
        data_service: 数据服务
        renderer: 预览渲染器
        settings: 应用设置

    Example:
        >>> service = GarmentService(data_service, renderer, settings)
        >>> result = await service.save_garment(design)
        >>> result.record.status
        'draft'
    """

    def __init__(
        self,
        data_service: DataService,
        renderer: GarmentRenderer,
        settings: Settings,
    ) -> None:
        """初始化服务.

        Args:
            data_service: 数据服务
            renderer: 预览渲染器
            settings: 应用设置
        """
        self.data_service = data_service
        self.renderer = renderer
        self.settings = settings

    async def _require_user(self) -> User:
        user = await self.data_service.get_current_user()
        if user is None:
            raise NotAuthenticatedError()
        return user

    # ========================
    # 保存
    # ========================

    async def save_garment(self, design: GarmentDesign) -> SaveResult:
        """保存服装设计.

        Args:
            design: 服装设计

        Returns:
            保存结果

        Raises:
            NotAuthenticatedError: 未登录
            MissingFieldError: 名称为空
            RecordStoreError: 记录写入失败
        """
        user = await self._require_user()
        if not design.label.strip():
            raise MissingFieldError("label")

        snapshot = design.snapshot()
        collector = ErrorCollector()
        warnings: list[str] = []

        log = operation_logger(logger, garment=snapshot.label.strip(), user=user.id)
        log.info(
            f"开始保存: 正面 {len(snapshot.front)} 个图层, 背面 {len(snapshot.back)} 个图层"
        )

        # 1. 渲染预览（降级：失败时继续保存，不带预览）
        previews: dict[Side, RenderedSnapshot] = {}
        try:
            previews = await self.renderer.render_design(snapshot)
        except (AppException, OSError, ValueError) as e:
            collector.add(e, context="生成预览图")
        for preview in previews.values():
            warnings.extend(preview.warnings)

        # 2. 上传预览图
        preview_urls: dict[Side, str] = {}
        for side, preview in previews.items():
            path = build_blob_path(user.id, PREVIEW_FOLDER, preview.extension)
            try:
                preview_urls[side] = await self.data_service.upload_blob(
                    self.settings.preview_bucket, path, preview.data, preview.mime_type
                )
            except BlobUploadError as e:
                collector.add(e, context=f"上传{SIDE_NAMES[side]}预览图")

        # 3. 上传设计文件
        designs = DesignSet()
        for side in Side:
            metas = designs.for_side(side)
            for layer in snapshot.layers(side):
                meta = await self._persist_layer(user, side, layer, collector)
                if meta is not None:
                    metas.append(meta)

        # 4. 写入记录
        record = GarmentRecord(
            user_id=user.id,
            label=snapshot.label.strip(),
            title=snapshot.label.strip(),
            description=snapshot.description,
            price=snapshot.price,
            color=snapshot.color,
            designs=designs,
            preview_front_url=preview_urls.get(Side.FRONT),
            preview_back_url=preview_urls.get(Side.BACK),
        )
        try:
            row = await self.data_service.insert(GARMENT_TABLE, record.to_row())
        except DataServiceError as e:
            log.error(f"写入服装记录失败: {get_error_details(e)}")
            raise
        saved = GarmentRecord.from_row(row)

        warnings.extend(collector.messages)
        log.info(f"已保存为 {saved.id} ({len(warnings)} 条警告)")
        return SaveResult(record=saved, warnings=warnings)

    async def _persist_layer(
        self,
        user: User,
        side: Side,
        layer: Layer,
        collector: ErrorCollector,
    ) -> Optional[LayerMeta]:
        """上传图层文件并生成元数据，失败时返回 None."""
        source = layer.source
        if source.data is None:
            if source.url:
                # 重新编辑的已保存图层，文件已在存储中
                return layer.to_meta(source.url)
            collector.add(
                AppException(f"图层 '{source.display_name}' 没有图片数据", "LAYER_WITHOUT_DATA"),
                context=f"{SIDE_NAMES[side]}设计文件",
            )
            return None

        extension = get_file_extension(source.file_name) or MIME_EXTENSIONS.get(source.mime_type, "")
        path = build_blob_path(user.id, f"{DESIGN_FOLDER}/{side.value}", extension)
        try:
            url = await self.data_service.upload_blob(
                self.settings.design_bucket, path, source.data, source.mime_type
            )
        except BlobUploadError as e:
            collector.add(e, context=f"上传{SIDE_NAMES[side]}设计文件 '{source.display_name}'")
            return None
        return layer.to_meta(url)

    # ========================
    # 读取
    # ========================

    def load_design(self, record: GarmentRecord) -> GarmentDesign:
        """从记录恢复可编辑的设计.

        图层图片来源为已上传文件的 URL。

        Args:
            record: 服装记录

        Returns:
            服装设计
        """
        return GarmentDesign(
            color=record.color,
            label=record.label,
            description=record.description,
            price=record.price,
            front=[Layer.from_meta(meta) for meta in record.designs.front],
            back=[Layer.from_meta(meta) for meta in record.designs.back],
        )

    async def list_user_garments(self) -> list[GarmentRecord]:
        """获取当前用户的服装列表（最新在前）."""
        user = await self._require_user()
        rows = await self.data_service.query(
            GARMENT_TABLE,
            {"user_id": user.id},
            order_by="created_at",
            descending=True,
        )
        return [GarmentRecord.from_row(row) for row in rows]

    # ========================
    # 删除
    # ========================

    async def delete_garment(self, garment_id: str) -> list[str]:
        """删除服装记录及其预览图和设计文件.

        单个文件删除失败只记录警告，不影响记录删除。

        Args:
            garment_id: 服装记录ID

        Returns:
            警告信息列表

        Raises:
            NotAuthenticatedError: 未登录
            RecordNotFoundError: 记录不存在或不属于当前用户
        """
        user = await self._require_user()
        rows = await self.data_service.query(GARMENT_TABLE, {"id": garment_id, "user_id": user.id})
        if not rows:
            raise RecordNotFoundError(GARMENT_TABLE, garment_id)
        record = GarmentRecord.from_row(rows[0])

        blobs: list[tuple[str, str]] = []
        for side in Side:
            url = record.preview_url(side)
            if url:
                blobs.append((self.settings.preview_bucket, url))
        for side in Side:
            for meta in record.designs.for_side(side):
                blobs.append((self.settings.design_bucket, meta.file_url))

        collector = ErrorCollector()
        for bucket, url in blobs:
            path = self.data_service.blob_path_from_url(bucket, url)
            if path is None:
                logger.warning(f"无法解析对象路径，跳过: {url}")
                continue
            try:
                await self.data_service.delete_blob(bucket, path)
            except BlobDeleteError as e:
                collector.add(e, context=f"删除 {bucket}/{path}")

        await self.data_service.delete(GARMENT_TABLE, garment_id)
        logger.info(f"服装设计已删除: {garment_id}")
        return collector.messages

    async def close(self) -> None:
        """释放资源."""
        await self.renderer.close()
        await self.data_service.close()


# ===================
# 单例
# ===================

_garment_service_instance: Optional[GarmentService] = None


def get_garment_service(access_token: Optional[str] = None) -> GarmentService:
    """获取服装设计保存服务单例.

    Args:
        access_token: 远程数据服务的用户访问令牌，仅首次调用时生效

    Returns:
        GarmentService 实例
    """
    global _garment_service_instance

    if _garment_service_instance is None:
        from garment_studio.core.config_manager import get_config

        config = get_config()
        _garment_service_instance = GarmentService(
            data_service=create_data_service(config.settings, access_token),
            renderer=GarmentRenderer(config.mapping, config.settings),
            settings=config.settings,
        )

    return _garment_service_instance


async def reset_garment_service() -> None:
    """重置服装设计保存服务单例."""
    global _garment_service_instance

    if _garment_service_instance:
        await _garment_service_instance.close()
        _garment_service_instance = None

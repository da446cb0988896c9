"""服务层模块."""

from garment_studio.services.data_service import (
    DataService,
    User,
    create_data_service,
)
from garment_studio.services.garment_renderer import (
    GarmentRenderer,
    RenderedSnapshot,
    render_garment_previews,
)
from garment_studio.services.garment_service import (
    GarmentService,
    SaveResult,
    get_garment_service,
    reset_garment_service,
)
from garment_studio.services.image_decoder import DecodedImage, ImageDecoder
from garment_studio.services.local_data_service import LocalDataService
from garment_studio.services.rest_data_service import RestDataService

__all__ = [
    # 数据服务
    "DataService",
    "User",
    "create_data_service",
    "LocalDataService",
    "RestDataService",
    # 预览渲染
    "GarmentRenderer",
    "RenderedSnapshot",
    "render_garment_previews",
    "DecodedImage",
    "ImageDecoder",
    # 设计保存
    "GarmentService",
    "SaveResult",
    "get_garment_service",
    "reset_garment_service",
]

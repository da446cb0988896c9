"""应用常量定义."""

from pathlib import Path

# ===================
# 应用信息
# ===================
APP_NAME = "Garment Studio 服装定制设计工具"
APP_VERSION = "0.3.0"

# ===================
# 路径常量
# ===================
# 应用数据目录
APP_DATA_DIR = Path.home() / ".garment-studio"

# 日志目录
LOG_DIR = APP_DATA_DIR / "logs"

# ===================
# 画布尺寸
# ===================
# 交互画布逻辑尺寸（设计器容器）
INTERACTIVE_CANVAS_WIDTH = 500
INTERACTIVE_CANVAS_HEIGHT = 600
INTERACTIVE_CANVAS_SIZE = (INTERACTIVE_CANVAS_WIDTH, INTERACTIVE_CANVAS_HEIGHT)

# 栅格输出尺寸（预览快照）
RASTER_WIDTH = 300
RASTER_HEIGHT = 400
RASTER_SIZE = (RASTER_WIDTH, RASTER_HEIGHT)

# ===================
# 图层默认值
# ===================
DEFAULT_LAYER_POSITION = (50.0, 40.0)
DEFAULT_LAYER_SIZE = (200.0, 200.0)
DEFAULT_LAYER_ROTATION = 0.0

# 图层尺寸限制
MIN_LAYER_SIZE = 20.0
MAX_LAYER_SIZE = 500.0

# ===================
# 服装设置
# ===================
DEFAULT_GARMENT_COLOR = "#ffffff"
DEFAULT_GARMENT_PRICE = 19.99
DEFAULT_GARMENT_STATUS = "draft"

# 面料渐变暗化幅度
GRADIENT_DARKEN_AMOUNT = 0.1

# 轮廓描边颜色
SILHOUETTE_STROKE_COLOR = (209, 213, 219)  # #d1d5db
SEAM_STROKE_COLOR = (229, 231, 235)  # #e5e7eb
SEAM_OPACITY = 0.6

# 抗锯齿超采样倍数
SUPERSAMPLE_FACTOR = 4

# ===================
# 上传限制
# ===================
# 设计文件最大大小 (5MB)
MAX_DESIGN_FILE_SIZE = 5 * 1024 * 1024

# 允许的设计文件 MIME 类型
ALLOWED_DESIGN_MIME_TYPES = frozenset({
    "image/png",
    "image/jpeg",
    "image/webp",
    "image/svg+xml",
})

SVG_MIME_TYPE = "image/svg+xml"

# MIME 类型对应的扩展名
MIME_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/svg+xml": "svg",
}

# ===================
# 快照输出
# ===================
DEFAULT_SNAPSHOT_FORMAT = "PNG"
DEFAULT_SNAPSHOT_QUALITY = 90

# ===================
# 数据服务
# ===================
GARMENT_TABLE = "shirts"
DESIGN_BUCKET = "tshirt-designs"
PREVIEW_BUCKET = "tshirt-previews"
DESIGN_FOLDER = "designs"
PREVIEW_FOLDER = "previews"

API_TIMEOUT = 30  # 秒

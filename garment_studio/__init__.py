"""服装定制设计工具.

提供服装正反两面的多图层设计编辑、预览快照渲染和设计保存功能。
"""

from garment_studio.utils.constants import APP_VERSION

__version__ = APP_VERSION

"""图层交互控制器模块.

将指针事件转换为图层几何变化（拖拽 / 缩放 / 旋转）。

同一时刻最多只有一个手势作用于一个图层；开始新手势会先结束旧手势。
对不存在的图层或无活动手势的调用都是静默的空操作，
以容忍界面上的过期引用（例如图层删除后才到达的 pointer-up）。

Features:
    - 拖拽保持抓取偏移，不限制边界
    - 缩放使用主导轴增量，增量式累积，尺寸限制在 [20, 500]
    - 旋转扣除初始抓取角，角度归一化到 [0, 360)
    - 切换服装面时自动结束手势
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Sequence, Union

from garment_studio.core.file_intake import DesignFile, FileIntakeResult, attach_files
from garment_studio.models.app_settings import Settings
from garment_studio.models.design import (
    GarmentDesign,
    Layer,
    Point,
    Side,
    normalize_rotation,
)
from garment_studio.utils.logger import setup_logger

logger = setup_logger(__name__)

PointLike = Union[Point, tuple[float, float]]


class GestureMode(str, Enum):
    """手势类型."""

    NONE = "none"
    DRAGGING = "dragging"
    RESIZING = "resizing"
    ROTATING = "rotating"


@dataclass
class InteractionSession:
    """当前交互会话（不持久化）.

    Attributes:
        mode: 手势类型
        active_layer_id: 手势目标图层ID
        anchor_point: 拖拽偏移 / 缩放参考点
        anchor_angle: 旋转初始角偏移（弧度）
        active_layer: 手势目标图层（开始手势时解析并持有）
    """

    mode: GestureMode = GestureMode.NONE
    active_layer_id: Optional[str] = None
    anchor_point: Point = field(default_factory=Point)
    anchor_angle: float = 0.0
    active_layer: Optional[Layer] = None

    @property
    def is_active(self) -> bool:
        """是否有活动手势."""
        return self.mode != GestureMode.NONE and self.active_layer is not None

    def reset(self) -> None:
        """结束手势."""
        self.mode = GestureMode.NONE
        self.active_layer_id = None
        self.active_layer = None
        self.anchor_point = Point()
        self.anchor_angle = 0.0


def _to_point(value: PointLike) -> Point:
    if isinstance(value, Point):
        return value
    x, y = value
    return Point(x=float(x), y=float(y))


def pointer_angle(pointer: Point, center: Point) -> float:
    """指针相对中心的角度（弧度，Y 轴向下）."""
    return math.atan2(pointer.y - center.y, pointer.x - center.x)


class InteractionController:
    """图层交互控制器.

    持有服装设计的引用，是图层几何的唯一修改者。

    Attributes:
        design: 服装设计
        session: 当前交互会话

    Example:
        >>> controller = InteractionController(design)
        >>> controller.begin_gesture(layer.id, GestureMode.DRAGGING, (120, 90))
        True
        >>> controller.update_gesture((140, 100))
        True
        >>> controller.end_gesture()
    """

    def __init__(
        self,
        design: GarmentDesign,
        active_side: Side = Side.FRONT,
        settings: Optional[Settings] = None,
    ) -> None:
        """初始化控制器.

        Args:
            design: 服装设计
            active_side: 当前编辑的服装面
            settings: 应用设置（文件校验），默认使用全局配置
        """
        self.design = design
        self.settings = settings
        self.session = InteractionSession()
        self._active_side = Side(active_side)

    # ========================
    # 属性
    # ========================

    @property
    def active_side(self) -> Side:
        """当前编辑的服装面."""
        return self._active_side

    @property
    def mode(self) -> GestureMode:
        """当前手势类型."""
        return self.session.mode

    @property
    def active_layer(self) -> Optional[Layer]:
        """当前手势目标图层，已不在设计中时返回 None."""
        layer = self.session.active_layer
        if layer is None or not self.session.is_active:
            return None
        if self.design.get_layer(self._active_side, layer.id) is not layer:
            return None
        return layer

    def set_active_side(self, side: Side) -> None:
        """切换编辑面，结束进行中的手势."""
        side = Side(side)
        if side != self._active_side:
            self.end_gesture()
            self._active_side = side

    # ========================
    # 手势
    # ========================

    def begin_gesture(self, layer_id: str, mode: GestureMode, pointer: PointLike) -> bool:
        """开始手势.

        Args:
            layer_id: 目标图层ID（必须位于当前编辑面）
            mode: 手势类型
            pointer: 指针位置（交互画布坐标）

        Returns:
            是否成功开始
        """
        mode = GestureMode(mode)
        layer = self.design.get_layer(self._active_side, layer_id)
        if layer is None or mode == GestureMode.NONE:
            logger.debug(f"忽略手势开始: layer={layer_id}, mode={mode.value}")
            return False

        # 先原子地结束旧手势，旧图层之后不会再被修改
        self.end_gesture()

        pos = _to_point(pointer)
        self.session.mode = mode
        self.session.active_layer_id = layer_id
        self.session.active_layer = layer

        if mode == GestureMode.DRAGGING:
            self.session.anchor_point = pos - layer.position
        elif mode == GestureMode.RESIZING:
            self.session.anchor_point = pos
        elif mode == GestureMode.ROTATING:
            self.session.anchor_angle = pointer_angle(pos, layer.center) - layer.rotation_radians

        return True

    def update_gesture(self, pointer: PointLike) -> bool:
        """根据指针移动更新目标图层.

        Args:
            pointer: 指针位置（交互画布坐标）

        Returns:
            是否修改了图层
        """
        if not self.session.is_active:
            return False

        layer = self.active_layer
        if layer is None:
            # 目标图层已被删除
            self.end_gesture()
            return False

        pos = _to_point(pointer)
        mode = self.session.mode

        if mode == GestureMode.DRAGGING:
            anchor = self.session.anchor_point
            layer.move_to(pos.x - anchor.x, pos.y - anchor.y)
        elif mode == GestureMode.RESIZING:
            anchor = self.session.anchor_point
            delta = max(pos.x - anchor.x, pos.y - anchor.y)
            layer.grow_by(delta)
            self.session.anchor_point = pos
        elif mode == GestureMode.ROTATING:
            angle = pointer_angle(pos, layer.center) - self.session.anchor_angle
            layer.rotation = normalize_rotation(math.degrees(angle))

        return True

    def end_gesture(self) -> None:
        """结束手势（幂等）."""
        self.session.reset()

    # ========================
    # 图层管理
    # ========================

    def reset_layer_transforms(self, side: Optional[Side] = None) -> None:
        """将某一面所有图层恢复默认位置和尺寸，旋转保持不变.

        Args:
            side: 服装面，默认当前编辑面
        """
        side = self._active_side if side is None else Side(side)
        if side == self._active_side:
            self.end_gesture()
        for layer in self.design.layers(side):
            layer.reset_transform()

    def remove_layer(self, side: Side, layer_id: str) -> bool:
        """删除图层，若为手势目标则先结束手势.

        Args:
            side: 服装面
            layer_id: 图层ID

        Returns:
            是否删除成功
        """
        side = Side(side)
        if (
            self.session.active_layer_id == layer_id
            and side == self._active_side
        ):
            self.end_gesture()
        removed = self.design.remove_layer(side, layer_id)
        if not removed:
            logger.debug(f"忽略删除不存在的图层: {side.value}/{layer_id}")
        return removed

    def add_layers(self, layers: Sequence[Layer]) -> None:
        """在当前编辑面追加图层."""
        for layer in layers:
            self.design.add_layer(self._active_side, layer)

    def attach_files(self, files: Iterable[DesignFile]) -> FileIntakeResult:
        """接收设计文件并添加到当前编辑面.

        Args:
            files: 用户选择的文件

        Returns:
            接收结果，被拒绝的文件不会创建图层
        """
        return attach_files(self.design, self._active_side, files, self.settings)

"""服装设计数据模型单元测试."""

import pytest

from garment_studio.models.design import (
    DesignSet,
    GarmentDesign,
    GarmentRecord,
    ImageSource,
    Layer,
    LayerIndex,
    LayerMeta,
    Point,
    Side,
    Size,
    clamp_layer_dimension,
    generate_layer_id,
    normalize_rotation,
)


# ===================
# 辅助函数测试
# ===================


class TestHelpers:
    """辅助函数测试."""

    def test_generate_layer_id_unique(self):
        """测试图层ID唯一."""
        ids = {generate_layer_id() for _ in range(100)}
        assert len(ids) == 100
        assert all(len(i) == 12 for i in ids)

    @pytest.mark.parametrize(
        "value, expected",
        [(10, 20.0), (20, 20.0), (250, 250), (500, 500.0), (9999, 500.0)],
    )
    def test_clamp_layer_dimension(self, value, expected):
        """测试边长限制."""
        assert clamp_layer_dimension(value) == expected

    @pytest.mark.parametrize(
        "degrees, expected",
        [(0, 0.0), (90, 90.0), (360, 0.0), (450, 90.0), (-90, 270.0), (-720, 0.0)],
    )
    def test_normalize_rotation(self, degrees, expected):
        """测试角度归一化到 [0, 360)."""
        assert normalize_rotation(degrees) == pytest.approx(expected)

    def test_normalize_rotation_tiny_negative(self):
        """测试极小负角度不会得到 360."""
        result = normalize_rotation(-1e-15)
        assert 0 <= result < 360


# ===================
# Layer 测试
# ===================


class TestLayer:
    """图层测试."""

    def test_defaults(self, make_layer):
        """测试新图层默认几何."""
        layer = make_layer()
        assert layer.position == Point(x=50, y=40)
        assert layer.size == Size(width=200, height=200)
        assert layer.rotation == 0

    def test_size_clamped_on_create(self, make_layer):
        """测试创建时尺寸被限制."""
        layer = make_layer(size=Size(width=5, height=900))
        assert layer.size.width == 20
        assert layer.size.height == 500

    def test_center(self, make_layer):
        """测试图层中心."""
        layer = make_layer()
        assert layer.center == Point(x=150, y=140)

    def test_move_to_unbounded(self, make_layer):
        """测试移动不受画布边界限制."""
        layer = make_layer()
        layer.move_to(-300, 1000)
        assert layer.position == Point(x=-300, y=1000)

    def test_grow_by_clamps_each_dimension(self, make_layer):
        """测试缩放时宽高各自限制."""
        layer = make_layer(size=Size(width=100, height=480))
        layer.grow_by(50)
        assert layer.size == Size(width=150, height=500)

    def test_grow_by_negative(self, make_layer):
        """测试缩小到下限."""
        layer = make_layer()
        layer.grow_by(-1000)
        assert layer.size == Size(width=20, height=20)

    def test_reset_transform_keeps_rotation(self, make_layer):
        """测试重置只恢复位置和尺寸."""
        layer = make_layer(position=Point(x=0, y=0), size=Size(width=80, height=80), rotation=45)
        layer.reset_transform()
        assert layer.position == Point(x=50, y=40)
        assert layer.size == Size(width=200, height=200)
        assert layer.rotation == 45

    def test_meta_roundtrip(self, make_layer):
        """测试元数据转换保留几何和文件信息."""
        layer = make_layer(position=Point(x=12, y=34), rotation=30)
        meta = layer.to_meta("https://cdn.test/a.png")
        restored = Layer.from_meta(meta)

        assert restored.id == layer.id
        assert restored.position == layer.position
        assert restored.rotation == 30
        assert restored.source.url == "https://cdn.test/a.png"
        assert restored.source.data is None
        assert restored.source.file_name == "logo.png"

    def test_meta_uses_camel_case_aliases(self, make_layer):
        """测试元数据序列化字段名."""
        meta = make_layer().to_meta("u")
        dumped = meta.model_dump(by_alias=True)
        assert {"fileUrl", "fileName", "fileType", "fileSize"} <= dumped.keys()

    def test_image_source_from_bytes(self, png_bytes):
        """测试从字节创建图片来源."""
        source = ImageSource.from_bytes(png_bytes, "a.png", "image/png")
        assert source.file_size == len(png_bytes)
        assert source.has_data
        assert "data" not in repr(source)


# ===================
# GarmentDesign 测试
# ===================


class TestGarmentDesign:
    """服装设计测试."""

    def test_add_and_get_layer(self, design, make_layer):
        """测试添加和获取图层."""
        layer = design.add_layer(Side.FRONT, make_layer())
        assert design.get_layer(Side.FRONT, layer.id) is layer
        assert design.get_layer(Side.BACK, layer.id) is None
        assert design.layer_count == 1

    def test_insertion_order(self, design, make_layer):
        """测试插入顺序即绘制顺序."""
        first = design.add_layer(Side.BACK, make_layer())
        second = design.add_layer(Side.BACK, make_layer())
        assert [l.id for l in design.back] == [first.id, second.id]

    def test_remove_layer(self, design, make_layer):
        """测试删除图层."""
        layer = design.add_layer(Side.FRONT, make_layer())
        assert design.remove_layer(Side.FRONT, layer.id) is True
        assert design.remove_layer(Side.FRONT, layer.id) is False
        assert design.front == []

    def test_clear_side(self, design, make_layer):
        """测试清空某一面."""
        design.add_layer(Side.FRONT, make_layer())
        design.add_layer(Side.BACK, make_layer())
        design.clear_side(Side.FRONT)
        assert design.front == []
        assert len(design.back) == 1

    def test_snapshot_is_independent(self, design, make_layer):
        """测试快照与原设计相互独立."""
        layer = design.add_layer(Side.FRONT, make_layer())
        snapshot = design.snapshot()

        layer.move_to(999, 999)
        design.add_layer(Side.FRONT, make_layer())

        assert len(snapshot.front) == 1
        assert snapshot.front[0].position == Point(x=50, y=40)

    def test_get_layer_uses_index(self, design, make_layer, monkeypatch):
        """测试重复查找只建立一次索引."""
        layers = [design.add_layer(Side.FRONT, make_layer()) for _ in range(200)]
        builds = []
        original = LayerIndex._build

        def counting_build(self, side, side_layers):
            builds.append(side)
            return original(self, side, side_layers)

        monkeypatch.setattr(LayerIndex, "_build", counting_build)

        for _ in range(50):
            assert design.get_layer(Side.FRONT, layers[-1].id) is layers[-1]
        design.add_layer(Side.FRONT, make_layer())
        assert design.get_layer(Side.FRONT, layers[0].id) is layers[0]

        assert builds == [Side.FRONT]

    def test_index_follows_removal_and_clear(self, design, make_layer):
        """测试删除和清空后索引同步失效."""
        first = design.add_layer(Side.FRONT, make_layer())
        second = design.add_layer(Side.FRONT, make_layer())
        assert design.get_layer(Side.FRONT, first.id) is first

        design.remove_layer(Side.FRONT, first.id)
        assert design.get_layer(Side.FRONT, first.id) is None
        assert design.get_layer(Side.FRONT, second.id) is second

        design.clear_side(Side.FRONT)
        assert design.get_layer(Side.FRONT, second.id) is None

    def test_index_sees_direct_list_changes(self, design, make_layer):
        """测试直接追加或整体替换列表后仍能找到图层."""
        design.get_layer(Side.FRONT, "missing")
        appended = make_layer()
        design.front.append(appended)
        assert design.get_layer(Side.FRONT, appended.id) is appended

        replacement = make_layer()
        design.front = [replacement]
        assert design.get_layer(Side.FRONT, replacement.id) is replacement
        assert design.get_layer(Side.FRONT, appended.id) is None

    def test_index_built_from_constructor(self, make_layer):
        """测试构造时传入的图层可直接查找."""
        layer = make_layer()
        design = GarmentDesign(back=[layer])
        assert design.get_layer(Side.BACK, layer.id) is design.back[0]

    def test_index_ignored_by_equality_and_copy(self, design, make_layer):
        """测试索引不影响设计比较，快照查找到的是拷贝后的图层."""
        layer = design.add_layer(Side.FRONT, make_layer())
        before = design.model_copy(deep=True)
        design.get_layer(Side.FRONT, layer.id)
        assert design == before

        snapshot = design.snapshot()
        copied = snapshot.get_layer(Side.FRONT, layer.id)
        assert copied == layer
        assert copied is not layer
        assert copied is snapshot.front[0]

    def test_negative_price_rejected(self):
        """测试价格不能为负."""
        with pytest.raises(ValueError):
            GarmentDesign(price=-1)


# ===================
# GarmentRecord 测试
# ===================


class TestGarmentRecord:
    """服装记录测试."""

    def test_to_row_defaults(self):
        """测试行数据默认值."""
        record = GarmentRecord(user_id="u1", label="夏日T恤")
        row = record.to_row()

        assert row["title"] == "夏日T恤"
        assert row["status"] == "draft"
        assert row["price"] == 19.99
        assert row["designs"] == {"front": [], "back": []}
        assert "preview_front_url" not in row
        assert "id" not in row

    def test_from_row_with_null_designs(self):
        """测试 designs 为空时可解析."""
        record = GarmentRecord.from_row(
            {"id": "1", "user_id": "u1", "label": "x", "designs": None, "extra": 1}
        )
        assert record.designs == DesignSet()

    def test_row_roundtrip_with_layers(self, make_layer):
        """测试带图层元数据的记录往返."""
        meta = make_layer().to_meta("https://cdn.test/f.png")
        record = GarmentRecord(
            user_id="u1",
            label="x",
            designs=DesignSet(front=[meta]),
            preview_back_url="https://cdn.test/b.png",
        )
        restored = GarmentRecord.from_row(record.to_row())

        assert restored.designs.front[0].file_url == "https://cdn.test/f.png"
        assert restored.preview_url(Side.BACK) == "https://cdn.test/b.png"
        assert restored.preview_url(Side.FRONT) is None

    def test_layer_meta_accepts_field_names(self):
        """测试元数据可用字段名构造."""
        meta = LayerMeta(
            id="a",
            position=Point(),
            size=Size(width=20, height=20),
            file_url="u",
        )
        assert meta.file_url == "u"

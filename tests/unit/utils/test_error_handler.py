"""错误处理工具单元测试."""

from garment_studio.utils.error_handler import (
    ErrorCollector,
    get_error_details,
    get_user_friendly_message,
)
from garment_studio.utils.exceptions import (
    BlobUploadError,
    ImageDecodeError,
    MissingFieldError,
    NotAuthenticatedError,
    RecordStoreError,
)
from garment_studio.utils.helpers import build_blob_path, format_file_size, get_file_extension


class TestUserFriendlyMessage:
    """用户友好消息测试."""

    def test_known_exceptions(self):
        """测试已知异常映射."""
        assert get_user_friendly_message(NotAuthenticatedError()) == "请先登录后再保存设计"
        assert get_user_friendly_message(BlobUploadError("a.png")) == "文件上传失败，请稍后重试"
        assert "跳过" in get_user_friendly_message(ImageDecodeError("a.png"))

    def test_design_error_uses_message(self):
        """测试设计错误直接使用原消息."""
        assert get_user_friendly_message(MissingFieldError("label")) == "缺少必填字段: label"

    def test_unknown_exception(self):
        """测试未知异常."""
        assert get_user_friendly_message(RuntimeError("x")) == "操作失败，请稍后重试"

    def test_error_details(self):
        """测试错误详情."""
        details = get_error_details(RecordStoreError("boom", 503))
        assert details["type"] == "RecordStoreError"
        assert details["code"] == "RECORD_STORE_ERROR"
        assert details["status_code"] == 503


class TestErrorCollector:
    """错误收集器测试."""

    def test_collect(self):
        """测试收集错误."""
        collector = ErrorCollector()
        assert not collector.has_errors
        assert collector.summary == "无错误"

        collector.add(BlobUploadError("a.png", "timeout"), context="上传预览")
        collector.add(ValueError("bad"))

        assert collector.error_count == 2
        assert collector.messages == ["上传预览: 文件上传失败: a.png: timeout", "bad"]
        assert "共 2 个错误" in collector.summary

        collector.clear()
        assert not collector.has_errors


class TestHelpers:
    """辅助函数测试."""

    def test_build_blob_path(self):
        """测试对象路径格式."""
        path = build_blob_path("u1", "designs/front", "png")
        user, folder, side, name = path.split("/")
        assert (user, folder, side) == ("u1", "designs", "front")
        stamp, rest = name.split("-", 1)
        assert stamp.isdigit()
        assert rest.endswith(".png")
        assert len(rest) == len("xxxxxxxxxxx.png")

    def test_build_blob_path_unique(self):
        """测试路径不重复."""
        assert build_blob_path("u1", "previews", "png") != build_blob_path("u1", "previews", "png")

    def test_get_file_extension(self):
        """测试获取扩展名."""
        assert get_file_extension("Logo.PNG") == "png"
        assert get_file_extension("noext") == ""

    def test_format_file_size(self):
        """测试文件大小格式化."""
        assert format_file_size(512) == "512.0 B"
        assert format_file_size(6 * 1024 * 1024) == "6.0 MB"

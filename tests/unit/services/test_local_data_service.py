"""本地数据服务单元测试."""

import pytest

from garment_studio.models.app_settings import Settings
from garment_studio.services.data_service import User, create_data_service
from garment_studio.services.local_data_service import LocalDataService
from garment_studio.services.rest_data_service import RestDataService
from garment_studio.utils.exceptions import BlobUploadError, RecordNotFoundError


# ===================
# Fixtures
# ===================


@pytest.fixture
def service(tmp_path):
    """创建本地数据服务."""
    svc = LocalDataService(root=tmp_path, user=User(id="u1", email="u1@test"))
    yield svc
    svc.engine.dispose()


class TestLocalUser:
    """用户测试."""

    @pytest.mark.asyncio
    async def test_current_user(self, service):
        """测试登录和登出."""
        assert (await service.get_current_user()).id == "u1"
        service.set_current_user(None)
        assert await service.get_current_user() is None


class TestLocalRecords:
    """数据记录测试."""

    @pytest.mark.asyncio
    async def test_insert_assigns_id_and_created_at(self, service):
        """测试插入自动生成 id 和 created_at."""
        row = await service.insert("shirts", {"label": "A", "user_id": "u1"})
        assert row["id"]
        assert row["created_at"]

        fetched = await service.get("shirts", row["id"])
        assert fetched == row

    @pytest.mark.asyncio
    async def test_query_filters_and_order(self, service):
        """测试等值过滤和排序."""
        await service.insert("shirts", {"label": "old", "user_id": "u1", "created_at": "2024-01-01"})
        await service.insert("shirts", {"label": "new", "user_id": "u1", "created_at": "2024-06-01"})
        await service.insert("shirts", {"label": "other", "user_id": "u2", "created_at": "2024-03-01"})
        await service.insert("orders", {"label": "x", "user_id": "u1"})

        rows = await service.query("shirts", {"user_id": "u1"}, order_by="created_at")
        assert [r["label"] for r in rows] == ["new", "old"]

        rows = await service.query("shirts", {"user_id": "u1"}, order_by="created_at", descending=False)
        assert [r["label"] for r in rows] == ["old", "new"]

    @pytest.mark.asyncio
    async def test_update(self, service):
        """测试更新记录."""
        row = await service.insert("shirts", {"label": "A"})
        updated = await service.update("shirts", row["id"], {"label": "B"})

        assert updated["label"] == "B"
        assert (await service.get("shirts", row["id"]))["label"] == "B"

    @pytest.mark.asyncio
    async def test_update_missing(self, service):
        """测试更新不存在的记录."""
        with pytest.raises(RecordNotFoundError):
            await service.update("shirts", "missing", {"label": "B"})

    @pytest.mark.asyncio
    async def test_delete(self, service):
        """测试删除记录，重复删除不报错."""
        row = await service.insert("shirts", {"label": "A"})
        await service.delete("shirts", row["id"])
        await service.delete("shirts", row["id"])
        assert await service.get("shirts", row["id"]) is None

    @pytest.mark.asyncio
    async def test_records_persist_across_instances(self, tmp_path):
        """测试记录保存在磁盘上."""
        first = LocalDataService(root=tmp_path)
        row = await first.insert("shirts", {"label": "持久化"})
        await first.close()

        second = LocalDataService(root=tmp_path)
        assert (await second.get("shirts", row["id"]))["label"] == "持久化"
        await second.close()


class TestLocalBlobs:
    """对象存储测试."""

    @pytest.mark.asyncio
    async def test_upload_and_resolve_path(self, service, png_bytes):
        """测试上传返回 file:// URL 并可反解析路径."""
        url = await service.upload_blob("tshirt-designs", "u1/designs/front/a.png", png_bytes, "image/png")

        assert url.startswith("file://")
        file_path = service.storage_dir / "tshirt-designs" / "u1" / "designs" / "front" / "a.png"
        assert file_path.read_bytes() == png_bytes
        assert service.blob_path_from_url("tshirt-designs", url) == "u1/designs/front/a.png"
        assert service.blob_path_from_url("tshirt-previews", url) is None
        assert service.blob_path_from_url("tshirt-designs", "https://cdn.test/a.png") is None

    @pytest.mark.asyncio
    async def test_upload_does_not_overwrite(self, service):
        """测试不覆盖已有对象."""
        await service.upload_blob("b", "u1/a.png", b"1", "image/png")
        with pytest.raises(BlobUploadError):
            await service.upload_blob("b", "u1/a.png", b"2", "image/png")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["../escape.png", "/abs/a.png", ""])
    async def test_upload_rejects_unsafe_paths(self, service, path):
        """测试拒绝越界路径."""
        with pytest.raises(BlobUploadError):
            await service.upload_blob("b", path, b"1", "image/png")

    @pytest.mark.asyncio
    async def test_delete_blob(self, service):
        """测试删除对象，不存在时忽略."""
        await service.upload_blob("b", "u1/a.png", b"1", "image/png")
        await service.delete_blob("b", "u1/a.png")
        await service.delete_blob("b", "u1/a.png")
        assert not (service.storage_dir / "b" / "u1" / "a.png").exists()


class TestCreateDataService:
    """数据服务工厂测试."""

    def test_local_by_default(self, tmp_path):
        """测试未配置 URL 时使用本地服务."""
        settings = Settings(_env_file=None, local_storage_dir=tmp_path)
        service = create_data_service(settings)
        assert isinstance(service, LocalDataService)
        assert service.root == tmp_path.resolve()
        service.engine.dispose()

    def test_remote_when_url_configured(self):
        """测试配置 URL 时使用远程服务."""
        settings = Settings(
            _env_file=None,
            data_service_url="https://backend.test/",
            data_service_key="anon",
        )
        service = create_data_service(settings, access_token="tok")
        assert isinstance(service, RestDataService)
        assert service.base_url == "https://backend.test"
        assert service.access_token == "tok"

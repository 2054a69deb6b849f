"""
Tests for storage backends, the backend factory and store provisioning.
"""
import pytest

from blobstore import BackendError, BlobStore, ConfigurationError
from storage import StorageConfig, create_storage_backend
from storage.azure import AzureStorageBackend, build_connection_string
from storage.config import normalize_policy
from storage.local import LocalStorageBackend
from storage.s3 import S3StorageBackend


class TestFactory:
    """Backend selection from configuration."""

    def test_filesystem_aliases(self, tmp_path):
        for backend_type in ("filesystem", "local", "FILE"):
            backend = create_storage_backend(
                {"type": backend_type, "container": "uploads", "base_path": str(tmp_path)}
            )
            assert isinstance(backend, LocalStorageBackend)

    def test_s3(self):
        backend = create_storage_backend({"type": "minio", "container": "bucket", "endpoint_url": "http://minio:9000"})

        assert isinstance(backend, S3StorageBackend)
        assert backend.base_address == "http://minio:9000/bucket/"

    def test_s3_default_address_with_prefix(self):
        backend = create_storage_backend(
            {"type": "s3", "container": "bucket", "region": "eu-west-1", "prefix": "/media/"}
        )

        assert backend.base_address == "https://bucket.s3.eu-west-1.amazonaws.com/media/"
        assert backend._key("a.txt") == "media/a.txt"
        assert backend._name("media/a.txt") == "a.txt"

    def test_azure_from_account_key(self):
        backend = create_storage_backend(
            {"type": "azure", "container": "Uploads", "account_name": "acct", "account_key": "a2V5"}
        )

        assert isinstance(backend, AzureStorageBackend)
        assert backend.container == "uploads"
        assert backend.base_address == "https://acct.blob.core.windows.net/uploads/"

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            create_storage_backend({"type": "tape", "container": "uploads"})

    def test_missing_container(self):
        with pytest.raises(ValueError):
            create_storage_backend({"type": "filesystem"})


class TestAzureConfiguration:
    """Azure-specific validation happens before any network call."""

    def test_connection_string_from_account(self):
        assert build_connection_string("acct", "secret") == (
            "DefaultEndpointsProtocol=https;AccountName=acct;AccountKey=secret"
        )

    @pytest.mark.parametrize("container", ["ab", "has_underscore", "double--hyphen", "-leading", "x" * 64])
    def test_invalid_container_name(self, container):
        with pytest.raises(ValueError):
            AzureStorageBackend(StorageConfig(type="azure", container=container, account_name="a", account_key="a2V5"))

    def test_missing_credentials(self):
        with pytest.raises(ValueError):
            AzureStorageBackend(StorageConfig(type="azure", container="uploads"))


class TestPolicy:
    """Public access policy normalization."""

    def test_known_policies(self):
        assert normalize_policy("blob") == "blob"
        assert normalize_policy("Container") == "container"
        assert normalize_policy("off") is None
        assert normalize_policy(None) is None

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            normalize_policy("everyone")


class TestLocalBackend:
    """Filesystem adapter behaviour."""

    @pytest.fixture
    async def backend(self, storage_config):
        backend = LocalStorageBackend(storage_config)
        await backend.create_container_if_absent()
        return backend

    @pytest.mark.asyncio
    async def test_put_get_delete(self, backend):
        written = await backend.put_object_stream("dir/a.bin", b"\x00\x01\x02")

        assert written == 3
        assert await backend.exists("dir/a.bin")
        chunks = [chunk async for chunk in backend.get_object_stream("dir/a.bin")]
        assert b"".join(chunks) == b"\x00\x01\x02"
        assert await backend.delete("dir/a.bin")
        assert not await backend.delete("dir/a.bin")

    @pytest.mark.asyncio
    async def test_listing_is_flat_and_sorted(self, backend):
        await backend.put_object_stream("b.txt", b"b")
        await backend.put_object_stream("a/nested.txt", b"n")

        objects = await backend.list_objects()

        assert [o.name for o in objects] == ["a/nested.txt", "b.txt"]
        assert objects[1].address == backend.base_address + "b.txt"

    @pytest.mark.asyncio
    async def test_missing_object(self, backend):
        with pytest.raises(FileNotFoundError):
            async for _ in backend.get_object_stream("missing"):
                pass

    @pytest.mark.asyncio
    async def test_escape_rejected(self, backend):
        with pytest.raises(ValueError):
            await backend.put_object_stream("../outside.txt", b"x")

    @pytest.mark.asyncio
    async def test_escaping_read_is_missing_object(self, backend):
        assert not await backend.exists("../outside.txt")
        with pytest.raises(FileNotFoundError):
            async for _ in backend.get_object_stream("../outside.txt"):
                pass

    @pytest.mark.asyncio
    async def test_listing_orders_by_full_name(self, backend):
        for name in ("zeta.txt", "m/inner/deep.txt", "alpha.txt", "m.txt"):
            await backend.put_object_stream(name, b"x")

        objects = await backend.list_objects()

        assert [o.name for o in objects] == ["alpha.txt", "m.txt", "m/inner/deep.txt", "zeta.txt"]

    @pytest.mark.asyncio
    async def test_address_name_round_trip(self, backend):
        address = backend.address_for("with space.txt")

        assert address.endswith("/with%20space.txt")
        assert backend.name_for(address) == "with space.txt"
        assert backend.name_for("bare.txt") == "bare.txt"

    @pytest.mark.asyncio
    async def test_status(self, backend):
        await backend.set_permissions("blob")

        status = await backend.get_status()

        assert status["available"] is True
        assert status["public_access"] == "blob"
        assert status["container"] == "uploads"


class TestConnect:
    """Store provisioning and configuration errors."""

    @pytest.mark.asyncio
    async def test_connect_creates_container(self, tmp_path):
        store = await BlobStore.connect({"type": "filesystem", "container": "fresh", "base_path": str(tmp_path)})

        assert (tmp_path / "fresh").is_dir()
        assert store.base_address == (tmp_path / "fresh").resolve().as_uri() + "/"

    @pytest.mark.asyncio
    async def test_stores_do_not_share_state(self, tmp_path):
        first = await BlobStore.connect({"type": "filesystem", "container": "one", "base_path": str(tmp_path)})
        second = await BlobStore.connect({"type": "filesystem", "container": "two", "base_path": str(tmp_path)})

        await first.backend.put_object_stream("only-in-one.txt", b"1")

        assert len(await first.list_addresses()) == 1
        assert await second.list_addresses() == []

    @pytest.mark.asyncio
    async def test_unknown_backend_type(self):
        with pytest.raises(ConfigurationError):
            await BlobStore.connect({"type": "tape", "container": "uploads"})

    @pytest.mark.asyncio
    async def test_invalid_azure_container(self):
        with pytest.raises(ConfigurationError):
            await BlobStore.connect(
                {"type": "azure", "container": "no_underscores", "account_name": "a", "account_key": "a2V5"}
            )

    @pytest.mark.asyncio
    async def test_unknown_extra_option(self, tmp_path):
        with pytest.raises(ConfigurationError):
            await BlobStore.connect({"type": "filesystem", "container": "c", "bogus": True})

    @pytest.mark.asyncio
    async def test_invalid_policy(self, tmp_path):
        with pytest.raises(ConfigurationError):
            await BlobStore.connect(
                {"type": "filesystem", "container": "c", "base_path": str(tmp_path)},
                public_access="world",
            )

    @pytest.mark.asyncio
    async def test_listing_failure_is_backend_error(self, store, monkeypatch):
        async def broken():
            raise ConnectionError("backend unreachable")

        monkeypatch.setattr(store.backend, "list_objects", broken)

        with pytest.raises(BackendError):
            await store.list_addresses()

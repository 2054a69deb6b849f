"""
Tests for the HTTP layer over the blob store.
"""
import zipfile
from io import BytesIO

import httpx
import pytest

from api.main import app
from conftest import encode_multipart


@pytest.fixture
async def test_client(store):
    """HTTP client bound to the app, with the test store in place of the configured one."""
    app.state.blob_store = store
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client


class TestFileEndpoints:
    """Upload, list and download over HTTP."""

    @pytest.mark.asyncio
    async def test_upload_with_id(self, test_client, store):
        body, content_type = encode_multipart(
            files=[("a", "first.txt", b"one"), ("b", "second.csv", b"two")]
        )

        response = await test_client.post(
            "/api/v1/files", params={"id": "batch"}, content=body, headers={"Content-Type": content_type}
        )

        assert response.status_code == 201
        data = response.json()
        assert data["count"] == 2
        assert [f["name"] for f in data["files"]] == ["batch-0.txt", "batch-1.csv"]
        assert data["files"][0]["address"] == store.base_address + "batch-0.txt"
        assert data["files"][0]["size"] == 3

    @pytest.mark.asyncio
    async def test_upload_with_client_encoded_form(self, test_client):
        response = await test_client.post(
            "/api/v1/files",
            data={"id": "form"},
            files={"upload": ("photo.jpg", b"\xff\xd8\xff", "image/jpeg")},
        )

        assert response.status_code == 201
        assert response.json()["files"][0]["name"] == "form-0.jpg"

    @pytest.mark.asyncio
    async def test_upload_rejects_non_multipart(self, test_client, store):
        response = await test_client.post(
            "/api/v1/files", content=b'{"a": 1}', headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "decode_error"
        assert await store.list_addresses() == []

    @pytest.mark.asyncio
    async def test_list_files(self, test_client):
        body, content_type = encode_multipart(files=[("a", "x.txt", b"x"), ("b", "y.txt", b"y")])
        await test_client.post("/api/v1/files", content=body, headers={"Content-Type": content_type})

        response = await test_client.get("/api/v1/files")

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert [a.rsplit("/", 1)[1] for a in data["addresses"]] == ["a.txt", "b.txt"]

    @pytest.mark.asyncio
    async def test_download_content(self, test_client):
        body, content_type = encode_multipart(files=[("doc", "notes.txt", b"hello blob")])
        upload = await test_client.post("/api/v1/files", content=body, headers={"Content-Type": content_type})
        address = upload.json()["files"][0]["address"]

        response = await test_client.get("/api/v1/files/content", params={"address": address})

        assert response.status_code == 200
        assert response.content == b"hello blob"
        assert response.headers["content-type"].startswith("text/plain")

    @pytest.mark.asyncio
    async def test_download_missing(self, test_client):
        response = await test_client.get("/api/v1/files/content", params={"address": "missing.txt"})

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "not_found"
        assert error["details"]["object_name"] == "missing.txt"

    @pytest.mark.asyncio
    async def test_download_outside_container_is_not_found(self, test_client):
        response = await test_client.get("/api/v1/files/content", params={"address": "../../etc/passwd"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not_found"

    @pytest.mark.asyncio
    async def test_download_several_as_archive(self, test_client):
        body, content_type = encode_multipart(files=[("a", "1.txt", b"first"), ("b", "2.txt", b"second")])
        await test_client.post("/api/v1/files", params={"id": "zip"}, content=body, headers={"Content-Type": content_type})

        response = await test_client.post(
            "/api/v1/files/download", json={"addresses": ["zip-1.txt", "zip-0.txt"]}
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/zip"
        with zipfile.ZipFile(BytesIO(response.content)) as archive:
            assert archive.namelist() == ["zip-1.txt", "zip-0.txt"]
            assert archive.read("zip-1.txt") == b"second"

    @pytest.mark.asyncio
    async def test_download_several_requires_addresses(self, test_client):
        response = await test_client.post("/api/v1/files/download", json={"addresses": []})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_download_several_missing_fails_whole_request(self, test_client):
        body, content_type = encode_multipart(files=[("a", "1.txt", b"first")])
        await test_client.post("/api/v1/files", content=body, headers={"Content-Type": content_type})

        response = await test_client.post("/api/v1/files/download", json={"addresses": ["a.txt", "nope.txt"]})

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_archive(self, test_client):
        body, content_type = encode_multipart(files=[("a", "1.txt", b"first"), ("b", "2.txt", b"second")])
        await test_client.post("/api/v1/files", content=body, headers={"Content-Type": content_type})

        response = await test_client.get("/api/v1/files/archive")

        assert response.status_code == 200
        assert 'filename="uploads.zip"' in response.headers["content-disposition"]
        with zipfile.ZipFile(BytesIO(response.content)) as archive:
            assert sorted(archive.namelist()) == ["a.txt", "b.txt"]


class TestServiceEndpoints:
    """Health and root information."""

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["storage"]["type"] == "filesystem"

    @pytest.mark.asyncio
    async def test_root(self, test_client):
        response = await test_client.get("/")

        assert response.status_code == 200
        assert response.json()["endpoints"]["files"] == "/api/v1/files"

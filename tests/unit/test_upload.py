"""
Unit tests for Client.upload.

Uploads are a single multipart POST retried at the connection level only.
"""
from pathlib import Path

import httpx
import pytest

from wavespeed.inference.exceptions import ConfigurationError, UploadError

DOWNLOAD_URL = "https://cdn.test.local/uploads/test.png?sig=abc"


@pytest.fixture
def image_file(tmp_path):
    path = tmp_path / "test.png"
    path.write_bytes(b"fake image data")
    return path


def upload_ok(url=DOWNLOAD_URL):
    return {"code": 200, "message": "success", "data": {"download_url": url}}


class TestUpload:
    """Tests for the file upload path."""

    @pytest.mark.asyncio
    async def test_returns_download_url_verbatim(self, make_client, service, image_file):
        """A 200 response yields download_url exactly as sent."""
        service.on_upload(upload_ok())
        client = make_client()

        url = await client.upload(str(image_file))

        assert url == DOWNLOAD_URL
        request = service.requests["upload"][0]
        assert request.url.path == "/api/v3/media/upload/binary"
        assert request.headers["Authorization"] == "Bearer test-key"
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        assert b'name="file"; filename="test.png"' in request.content
        assert b"fake image data" in request.content

    @pytest.mark.asyncio
    async def test_missing_file_fails_before_network(self, make_client, service, tmp_path):
        """A nonexistent path raises FileNotFoundError with no request sent."""
        service.on_upload(upload_ok())
        client = make_client()

        with pytest.raises(FileNotFoundError):
            await client.upload(tmp_path / "missing.png")

        assert service.count("upload") == 0

    @pytest.mark.asyncio
    async def test_missing_api_key(self, make_client, service, image_file):
        """Upload requires an API key."""
        client = make_client(api_key="")

        with pytest.raises(ConfigurationError):
            await client.upload(image_file)

        assert service.count("upload") == 0

    @pytest.mark.asyncio
    async def test_http_error_is_upload_error(self, make_client, service, image_file):
        """Non-200 HTTP responses become UploadError and are not retried."""
        service.on_upload(httpx.Response(500, text="storage down"))
        client = make_client(max_connection_retries=3, max_retries=3)

        with pytest.raises(UploadError) as exc_info:
            await client.upload(image_file)

        assert exc_info.value.status_code == 500
        assert service.count("upload") == 1

    @pytest.mark.asyncio
    async def test_api_error_code(self, make_client, service, image_file):
        """An envelope code other than 200 is an upload failure."""
        service.on_upload({"code": 400, "message": "unsupported file type"})
        client = make_client()

        with pytest.raises(UploadError) as exc_info:
            await client.upload(image_file)

        assert "unsupported file type" in str(exc_info.value)
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_download_url(self, make_client, service, image_file):
        """A success envelope without download_url is an upload failure."""
        service.on_upload({"code": 200, "message": "success", "data": {}})
        client = make_client()

        with pytest.raises(UploadError, match="no download_url"):
            await client.upload(image_file)

    @pytest.mark.asyncio
    async def test_connection_errors_are_retried_then_wrapped(
        self, make_client, service, recording_sleep, image_file
    ):
        """Transport failures use connection retries, then raise UploadError."""
        service.on_upload(httpx.ConnectError("refused"))
        client = make_client(max_connection_retries=2, retry_interval=1.0)

        with pytest.raises(UploadError) as exc_info:
            await client.upload(image_file)

        assert service.count("upload") == 3
        assert recording_sleep.delays == [1.0, 2.0]
        assert exc_info.value.__cause__.attempts == 3

    @pytest.mark.asyncio
    async def test_retried_attempt_resends_whole_file(
        self, make_client, service, image_file
    ):
        """Each attempt re-reads the file so the body is complete."""
        service.on_upload(httpx.ReadTimeout("slow"), upload_ok())
        client = make_client(max_connection_retries=1)

        url = await client.upload(image_file)

        assert url == DOWNLOAD_URL
        assert all(b"fake image data" in r.content for r in service.requests["upload"])

    @pytest.mark.asyncio
    async def test_unreadable_file_is_upload_error(
        self, make_client, service, image_file, monkeypatch
    ):
        """A read failure after the existence check is wrapped in UploadError."""
        def deny(self):
            raise PermissionError(13, "Permission denied", str(self))

        monkeypatch.setattr(Path, "read_bytes", deny)
        service.on_upload(upload_ok())
        client = make_client(max_connection_retries=3)

        with pytest.raises(UploadError) as exc_info:
            await client.upload(image_file)

        assert isinstance(exc_info.value.__cause__, PermissionError)
        assert exc_info.value.status_code is None
        assert service.count("upload") == 0

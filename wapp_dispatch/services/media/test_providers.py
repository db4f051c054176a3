"""
Tests for the storage providers

Local storage runs against tmp_path, S3 against moto, WhatsApp against
httpx.MockTransport.
"""

import json

import boto3
import httpx
import pytest
from moto import mock_aws

from .factory import create_storage_provider
from .local_provider import LocalStorageProvider
from .s3_provider import S3StorageProvider
from .whatsapp_provider import WhatsAppStorageProvider
from ...core.exceptions import MediaNotFoundError, UpstreamError
from ...models.media import MediaStatus, MediaType, UploadMediaParams
from ...schemas.storage import LocalStorageConfig, S3StorageConfig, WhatsAppStorageConfig

TEST_BUCKET_NAME = "wapp-media-test"
PDF = b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\ntrailer\n<</Root 1 0 R>>\n%%EOF"


def pdf_params(file_name: str = "invoice.pdf") -> UploadMediaParams:
    return UploadMediaParams(
        type=MediaType.DOCUMENT,
        file_name=file_name,
        mime_type="application/pdf",
        data=PDF,
    )


@pytest.fixture
def local_provider(tmp_path):
    return LocalStorageProvider(
        LocalStorageConfig(upload_dir=str(tmp_path), base_url="http://files.test/media/")
    )


@pytest.fixture
def s3_client(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket=TEST_BUCKET_NAME)
        yield client


@pytest.mark.asyncio
class TestLocalStorageProvider:

    async def test_upload_get_url_delete(self, local_provider, tmp_path):
        info = await local_provider.upload(pdf_params())

        assert info.storage_provider == "local"
        assert info.status == MediaStatus.UPLOADED
        assert info.size == len(PDF)
        assert info.url == f"http://files.test/media/{info.id}.pdf"
        assert (tmp_path / f"{info.id}.pdf").read_bytes() == PDF

        fetched = await local_provider.get(info.id)
        assert fetched.file_name == "invoice.pdf"
        assert fetched.mime_type == "application/pdf"
        assert fetched.sha256 == info.sha256
        assert fetched.media_type == MediaType.DOCUMENT
        assert fetched.uploaded_at == info.uploaded_at

        assert await local_provider.get_url(info.id) == info.url

        assert await local_provider.delete(info.id) is True
        assert not (tmp_path / f"{info.id}.pdf").exists()
        with pytest.raises(MediaNotFoundError):
            await local_provider.get(info.id)

    async def test_sidecar_holds_metadata(self, local_provider, tmp_path):
        info = await local_provider.upload(pdf_params())

        meta = json.loads((tmp_path / f"{info.id}.meta.json").read_text())

        assert meta["file_name"] == "invoice.pdf"
        assert meta["stored_name"] == f"{info.id}.pdf"

    async def test_unknown_id(self, local_provider):
        with pytest.raises(MediaNotFoundError):
            await local_provider.get("does-not-exist")

    async def test_path_traversal_is_not_found(self, local_provider):
        with pytest.raises(MediaNotFoundError):
            await local_provider.get("../etc/passwd")


@pytest.mark.asyncio
class TestS3StorageProvider:

    async def test_upload_get_delete(self, s3_client):
        provider = S3StorageProvider(
            S3StorageConfig(bucket=TEST_BUCKET_NAME, region="us-east-1"),
            client=s3_client,
        )

        info = await provider.upload(pdf_params("счёт 1.pdf"))

        assert info.storage_provider == "s3"
        assert info.id.endswith(".pdf")
        stored = s3_client.get_object(Bucket=TEST_BUCKET_NAME, Key=f"media/{info.id}")
        assert stored["Body"].read() == PDF
        assert stored["ContentType"] == "application/pdf"

        fetched = await provider.get(info.id)
        assert fetched.file_name == "счёт 1.pdf"
        assert fetched.size == len(PDF)
        assert fetched.sha256 == info.sha256
        assert fetched.media_type == MediaType.DOCUMENT

        assert await provider.delete(info.id) is True
        with pytest.raises(MediaNotFoundError):
            await provider.get(info.id)

    async def test_presigned_url(self, s3_client):
        provider = S3StorageProvider(S3StorageConfig(bucket=TEST_BUCKET_NAME), client=s3_client)

        info = await provider.upload(pdf_params())
        url = await provider.get_url(info.id)

        assert TEST_BUCKET_NAME in url
        assert "Signature" in url or "X-Amz-Signature" in url

    async def test_public_base_url(self, s3_client):
        provider = S3StorageProvider(
            S3StorageConfig(bucket=TEST_BUCKET_NAME, public_base_url="https://cdn.test/"),
            client=s3_client,
        )

        info = await provider.upload(pdf_params())

        assert info.url == f"https://cdn.test/media/{info.id}"

    async def test_delete_missing_object(self, s3_client):
        provider = S3StorageProvider(S3StorageConfig(bucket=TEST_BUCKET_NAME), client=s3_client)

        with pytest.raises(MediaNotFoundError):
            await provider.delete("missing.pdf")


def whatsapp_provider(handler) -> WhatsAppStorageProvider:
    config = WhatsAppStorageConfig(
        base_url="https://graph.test/v21.0",
        access_token="token",
        phone_number_id="12345",
    )
    return WhatsAppStorageProvider(
        config, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )


@pytest.mark.asyncio
class TestWhatsAppStorageProvider:

    async def test_upload(self):
        provider = whatsapp_provider(lambda request: httpx.Response(200, json={"id": "wa-media-1"}))

        info = await provider.upload(pdf_params())

        assert info.id == "wa-media-1"
        assert info.storage_provider == "whatsapp"
        assert info.size == len(PDF)
        assert info.file_name == "invoice.pdf"

    async def test_get_url(self):
        provider = whatsapp_provider(lambda request: httpx.Response(200, json={
            "id": "wa-media-1",
            "url": "https://lookaside.test/x",
            "mime_type": "application/pdf",
            "sha256": "abc",
        }))

        assert await provider.get_url("wa-media-1") == "https://lookaside.test/x"

    async def test_get_url_without_url_fails(self):
        provider = whatsapp_provider(lambda request: httpx.Response(200, json={"id": "wa-media-1"}))

        with pytest.raises(UpstreamError):
            await provider.get_url("wa-media-1")

    async def test_missing_media(self):
        provider = whatsapp_provider(lambda request: httpx.Response(
            404, json={"error": {"message": "Unsupported get request"}}
        ))

        with pytest.raises(MediaNotFoundError):
            await provider.get("nope")

    async def test_delete(self):
        provider = whatsapp_provider(lambda request: httpx.Response(200, json={"success": True}))
        assert await provider.delete("wa-media-1") is True


class TestFactory:

    def test_dispatches_on_provider_tag(self, tmp_path):
        local = create_storage_provider(LocalStorageConfig(upload_dir=str(tmp_path), base_url="http://x"))
        whatsapp = create_storage_provider(
            WhatsAppStorageConfig(base_url="https://g", access_token="t", phone_number_id="1")
        )

        assert isinstance(local, LocalStorageProvider)
        assert isinstance(whatsapp, WhatsAppStorageProvider)

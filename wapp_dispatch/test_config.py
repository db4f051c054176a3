"""Tests for settings and storage configuration parsing"""

import pytest

from .config import Settings, parse_storage_config
from .core.exceptions import ConfigurationError
from .schemas.storage import LocalStorageConfig, S3StorageConfig, WhatsAppStorageConfig


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestParseStorageConfig:

    def test_whatsapp_variant(self):
        config = parse_storage_config({
            "provider": "whatsapp",
            "base_url": "https://graph.facebook.com/v21.0",
            "access_token": "token",
            "phone_number_id": "123",
        })
        assert isinstance(config, WhatsAppStorageConfig)

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError):
            parse_storage_config({"provider": "gcs", "bucket": "b"})

    def test_empty_required_field(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_storage_config({"provider": "s3", "bucket": ""})
        assert exc_info.value.details["errors"]

    def test_fields_of_other_variants_rejected(self):
        with pytest.raises(ConfigurationError):
            parse_storage_config({
                "provider": "local",
                "upload_dir": "/tmp/x",
                "base_url": "http://x",
                "bucket": "not-a-local-field",
            })


class TestSettingsStorage:

    def test_whatsapp_primary_requires_credentials(self):
        settings = make_settings(media_storage_provider="whatsapp", whatsapp_access_token=None)

        with pytest.raises(ConfigurationError):
            settings.storage_config()

    def test_whatsapp_primary_uses_graph_url(self):
        settings = make_settings(
            whatsapp_access_token="token",
            whatsapp_phone_number_id="123",
            whatsapp_api_version="v20.0",
        )

        config = settings.storage_config()

        assert config.base_url == "https://graph.facebook.com/v20.0"
        assert config.phone_number_id == "123"

    def test_local_primary(self):
        settings = make_settings(media_storage_provider="local", local_upload_dir="/data/media")

        config = settings.storage_config()

        assert isinstance(config, LocalStorageConfig)
        assert config.upload_dir == "/data/media"

    def test_no_fallback_by_default(self):
        assert make_settings().fallback_storage_config() is None

    def test_fallback_overrides(self):
        settings = make_settings(
            media_storage_provider="local",
            media_fallback_storage_provider="s3",
            s3_bucket="primary-bucket",
            fallback_s3_bucket="fallback-bucket",
            s3_region="eu-west-1",
        )

        fallback = settings.fallback_storage_config()

        assert isinstance(fallback, S3StorageConfig)
        assert fallback.bucket == "fallback-bucket"
        assert fallback.region == "eu-west-1"

    def test_local_storage_configs_lists_local_backends(self):
        settings = make_settings(
            media_storage_provider="local",
            media_fallback_storage_provider="local",
            fallback_local_upload_dir="/data/fallback",
        )

        configs = settings.local_storage_configs()

        assert [c.upload_dir for c in configs] == ["./uploads", "/data/fallback"]

    def test_no_local_storage_configs_for_remote_backends(self):
        assert make_settings(media_storage_provider="whatsapp").local_storage_configs() == []

    def test_storage_config_is_immutable(self):
        config = make_settings(media_storage_provider="local").storage_config()
        with pytest.raises(Exception):
            config.upload_dir = "/elsewhere"


class TestSettingsUrls:

    def test_redis_url_with_password(self):
        settings = make_settings(redis_password="secret", redis_host="cache", redis_db=2)
        assert settings.redis_url == "redis://:secret@cache:6379/2"

    def test_database_url(self):
        settings = make_settings(postgres_host="db", postgres_db="wapp")
        assert settings.database_url == "postgresql://postgres:postgres@db:5432/wapp"

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import ValidationError as PydanticValidationError, TypeAdapter
from typing import List, Optional

from .core.exceptions import ConfigurationError
from .schemas.storage import LocalStorageConfig, StorageConfig


class Settings(BaseSettings):
    """Application configuration using Pydantic Settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_name: str = "WhatsApp Dispatch"
    app_version: str = "1.0.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8020

    # Database
    postgres_host: str = "localhost"
    postgres_port: Optional[int] = 5432
    postgres_db: str = "whatssuite"
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    db_pool_min_size: Optional[int] = 2
    db_pool_max_size: Optional[int] = 10

    @property
    def database_url(self) -> str:
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Redis
    redis_host: str = "localhost"
    redis_port: Optional[int] = 6379
    redis_db: Optional[int] = 0
    redis_password: Optional[str] = None

    @property
    def redis_url(self) -> str:
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # WhatsApp Cloud API
    whatsapp_api_base_url: str = "https://graph.facebook.com"
    whatsapp_api_version: str = "v21.0"
    whatsapp_phone_number_id: Optional[str] = None
    whatsapp_access_token: Optional[str] = None
    whatsapp_template_language: str = "en_US"
    whatsapp_timeout: float = 30.0

    @property
    def whatsapp_graph_url(self) -> str:
        return f"{self.whatsapp_api_base_url.rstrip('/')}/{self.whatsapp_api_version}"

    # Message worker
    worker_queue_channel: str = "message-queue"
    worker_max_concurrent_jobs: int = 5
    worker_queue_size: int = 100
    worker_job_timeout: float = 30.0  # seconds, per dispatch attempt
    worker_max_retries: int = 2
    worker_retry_delay: float = 5.0  # seconds, doubled on every retry
    worker_retry_timeouts: bool = True  # a timed-out send may already be delivered
    worker_dead_letter_key: str = "message-queue:dead-letter"
    worker_dead_letter_max_length: int = 10000
    worker_health_check_interval: float = 60.0
    worker_stats_interval: float = 300.0
    worker_graceful_shutdown_timeout: float = 10.0

    # Media storage: whatsapp | local | s3
    media_storage_provider: str = "whatsapp"
    media_fallback_storage_provider: Optional[str] = None

    local_upload_dir: str = "./uploads"
    local_base_url: str = "http://localhost:8020/media/files"

    s3_bucket: Optional[str] = None
    s3_region: str = "us-east-1"
    s3_access_key_id: Optional[str] = None
    s3_secret_access_key: Optional[str] = None
    s3_endpoint_url: Optional[str] = None
    s3_public_base_url: Optional[str] = None
    s3_presign_expiry: int = 3600

    # Fallback-specific overrides (FALLBACK_*), fall back to the primary values
    fallback_whatsapp_access_token: Optional[str] = None
    fallback_whatsapp_phone_number_id: Optional[str] = None
    fallback_local_upload_dir: Optional[str] = None
    fallback_local_base_url: Optional[str] = None
    fallback_s3_bucket: Optional[str] = None
    fallback_s3_region: Optional[str] = None
    fallback_s3_access_key_id: Optional[str] = None
    fallback_s3_secret_access_key: Optional[str] = None
    fallback_s3_endpoint_url: Optional[str] = None

    # Media validation
    media_validation_enabled: bool = True
    media_max_image_size: int = 5 * 1024 * 1024
    media_max_video_size: int = 16 * 1024 * 1024
    media_max_audio_size: int = 16 * 1024 * 1024
    media_max_document_size: int = 100 * 1024 * 1024

    # Logging
    log_level: str = "INFO"
    log_file: str = "logs/wapp_dispatch.log"

    def _storage_payload(self, provider: str, fallback: bool = False) -> dict:
        """Raw fields for one storage backend; FALLBACK_* values win when building the fallback."""
        def pick(name: str):
            if fallback:
                value = getattr(self, f"fallback_{name}", None)
                if value:
                    return value
            return getattr(self, name)

        if provider == "whatsapp":
            return {
                "provider": "whatsapp",
                "base_url": self.whatsapp_graph_url,
                "access_token": pick("whatsapp_access_token") or "",
                "phone_number_id": pick("whatsapp_phone_number_id") or "",
            }
        if provider == "local":
            return {
                "provider": "local",
                "upload_dir": pick("local_upload_dir"),
                "base_url": pick("local_base_url"),
            }
        if provider == "s3":
            return {
                "provider": "s3",
                "bucket": pick("s3_bucket") or "",
                "region": pick("s3_region"),
                "access_key_id": pick("s3_access_key_id"),
                "secret_access_key": pick("s3_secret_access_key"),
                "endpoint_url": pick("s3_endpoint_url"),
                "public_base_url": self.s3_public_base_url,
                "presign_expiry": self.s3_presign_expiry,
            }
        return {"provider": provider}

    def storage_config(self) -> StorageConfig:
        """Validated config for the primary storage backend"""
        return parse_storage_config(self._storage_payload(self.media_storage_provider))

    def fallback_storage_config(self) -> Optional[StorageConfig]:
        """Validated config for the fallback backend, or None when not configured"""
        if not self.media_fallback_storage_provider:
            return None
        return parse_storage_config(
            self._storage_payload(self.media_fallback_storage_provider, fallback=True)
        )

    def local_storage_configs(self) -> List[LocalStorageConfig]:
        """Local backends in use (primary first); their directories are served by the API"""
        configs = []
        for provider, fallback in (
            (self.media_storage_provider, False),
            (self.media_fallback_storage_provider, True),
        ):
            if provider == "local":
                configs.append(parse_storage_config(self._storage_payload("local", fallback=fallback)))
        return configs


_storage_config_adapter = TypeAdapter(StorageConfig)


def parse_storage_config(data: dict) -> StorageConfig:
    """
    Validate a raw storage config mapping into its tagged variant.

    Raises:
        ConfigurationError: unknown provider or missing/empty backend fields
    """
    try:
        return _storage_config_adapter.validate_python(data)
    except PydanticValidationError as e:
        raise ConfigurationError(
            message=f"Invalid storage configuration for provider '{data.get('provider')}'",
            details={"errors": [err["msg"] for err in e.errors()]},
        ) from e


settings = Settings()

"""Storage backend configuration - one closed variant per provider"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Annotated, Literal, Optional, Union


class _StorageConfigBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class WhatsAppStorageConfig(_StorageConfigBase):
    """Provider-native media storage (Graph API /media endpoints)"""
    provider: Literal["whatsapp"] = "whatsapp"
    base_url: str = Field(..., min_length=1, description="Graph API root incl. version")
    access_token: str = Field(..., min_length=1)
    phone_number_id: str = Field(..., min_length=1)
    timeout: float = Field(30.0, gt=0)


class LocalStorageConfig(_StorageConfigBase):
    """Local filesystem storage served under a public base URL"""
    provider: Literal["local"] = "local"
    upload_dir: str = Field(..., min_length=1)
    base_url: str = Field(..., min_length=1, description="Public URL prefix for stored files")


class S3StorageConfig(_StorageConfigBase):
    """S3 or any S3-compatible object storage"""
    provider: Literal["s3"] = "s3"
    bucket: str = Field(..., min_length=1)
    region: str = Field("us-east-1", min_length=1)
    access_key_id: Optional[str] = None  # None -> default boto3 credential chain
    secret_access_key: Optional[str] = None
    endpoint_url: Optional[str] = None  # custom S3-compatible services
    public_base_url: Optional[str] = None  # when set, URLs are not presigned
    presign_expiry: int = Field(3600, gt=0)


StorageConfig = Annotated[
    Union[WhatsAppStorageConfig, LocalStorageConfig, S3StorageConfig],
    Field(discriminator="provider"),
]

"""Services - business logic layer"""

from .contact_resolver import ContactResolver
from .dead_letter import RedisDeadLetterSink
from .dispatcher import OutboundDispatcher, normalize_phone, validate_job
from .job_publisher import JobPublisher
from .media_assets import MediaAssetRepository
from .whatsapp_client import (
    WhatsAppCloudClient,
    WhatsAppClientConfig,
    build_template_components,
)

__all__ = [
    "ContactResolver",
    "RedisDeadLetterSink",
    "OutboundDispatcher",
    "normalize_phone",
    "validate_job",
    "JobPublisher",
    "MediaAssetRepository",
    "WhatsAppCloudClient",
    "WhatsAppClientConfig",
    "build_template_components",
]

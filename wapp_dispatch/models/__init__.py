"""Domain models - dataclasses for records passed between components"""

from .media import MediaInfo, MediaStatus, MediaType, UploadMediaParams
from .message import JobOutcome, JobResult, MessageHandle, ResolvedRecipient

__all__ = [
    "MediaInfo",
    "MediaStatus",
    "MediaType",
    "UploadMediaParams",
    "JobOutcome",
    "JobResult",
    "MessageHandle",
    "ResolvedRecipient",
]

"""
Media file validation - name, MIME type and per-type size checks

Runs before an upload reaches any storage backend.
"""
import logging
import re
import time
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional

from ...core.exceptions import MediaValidationError
from ...models.media import MediaType

logger = logging.getLogger(__name__)

MB = 1024 * 1024

DEFAULT_IMAGE_TYPES = frozenset({
    "image/jpeg", "image/jpg", "image/png", "image/gif",
    "image/webp", "image/bmp", "image/tiff",
})
DEFAULT_VIDEO_TYPES = frozenset({
    "video/mp4", "video/avi", "video/mov", "video/wmv",
    "video/flv", "video/webm", "video/3gpp", "video/3gpp2",
})
DEFAULT_AUDIO_TYPES = frozenset({
    "audio/mp3", "audio/mpeg", "audio/wav", "audio/ogg", "audio/aac",
    "audio/m4a", "audio/flac", "audio/3gpp", "audio/3gpp2",
})
DEFAULT_DOCUMENT_TYPES = frozenset({
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
    "text/csv",
})

_INVALID_CHARS = re.compile(r'[<>:"/\\|?*]')
_RESERVED_NAMES = frozenset(
    ["CON", "PRN", "AUX", "NUL"]
    + [f"COM{i}" for i in range(1, 10)]
    + [f"LPT{i}" for i in range(1, 10)]
)
MAX_FILE_NAME_LENGTH = 255

# Leading bytes of common formats
_SIGNATURES = {
    "image/jpeg": b"\xff\xd8\xff",
    "image/png": b"\x89PNG",
    "image/gif": b"GIF",
    "image/webp": b"RIFF",
    "application/pdf": b"%PDF",
    "audio/mp3": b"ID3",
}


@dataclass(frozen=True)
class ValidationConfig:
    """Allowed MIME types and size limits per media type"""
    enabled: bool = True
    allowed_image_types: FrozenSet[str] = DEFAULT_IMAGE_TYPES
    allowed_video_types: FrozenSet[str] = DEFAULT_VIDEO_TYPES
    allowed_audio_types: FrozenSet[str] = DEFAULT_AUDIO_TYPES
    allowed_document_types: FrozenSet[str] = DEFAULT_DOCUMENT_TYPES
    max_image_size: int = 5 * MB
    max_video_size: int = 16 * MB
    max_audio_size: int = 16 * MB
    max_document_size: int = 100 * MB

    @classmethod
    def from_settings(cls, settings) -> "ValidationConfig":
        return cls(
            enabled=settings.media_validation_enabled,
            max_image_size=settings.media_max_image_size,
            max_video_size=settings.media_max_video_size,
            max_audio_size=settings.media_max_audio_size,
            max_document_size=settings.media_max_document_size,
        )

    def allowed_types(self, media_type: MediaType) -> FrozenSet[str]:
        return {
            MediaType.IMAGE: self.allowed_image_types,
            MediaType.VIDEO: self.allowed_video_types,
            MediaType.AUDIO: self.allowed_audio_types,
            MediaType.DOCUMENT: self.allowed_document_types,
        }[media_type]

    def max_size(self, media_type: MediaType) -> int:
        return {
            MediaType.IMAGE: self.max_image_size,
            MediaType.VIDEO: self.max_video_size,
            MediaType.AUDIO: self.max_audio_size,
            MediaType.DOCUMENT: self.max_document_size,
        }[media_type]


DEFAULT_VALIDATION_CONFIG = ValidationConfig()


@dataclass
class ValidationResult:
    is_valid: bool
    media_type: MediaType
    size: int
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    detected_mime_type: Optional[str] = None


def detect_media_type(mime_type: str) -> MediaType:
    """Media type from a MIME type; anything unknown is a document"""
    mime_type = (mime_type or "").lower()
    if mime_type.startswith("image/"):
        return MediaType.IMAGE
    if mime_type.startswith("video/"):
        return MediaType.VIDEO
    if mime_type.startswith("audio/"):
        return MediaType.AUDIO
    return MediaType.DOCUMENT


def detect_mime_type(data: bytes) -> Optional[str]:
    """MIME type from leading bytes, None when no known signature matches"""
    for mime_type, signature in _SIGNATURES.items():
        if data.startswith(signature):
            return mime_type
    return None


def validate_file_name(file_name: str) -> Optional[str]:
    """Error message for an unusable file name, None when it is fine"""
    if not file_name or not file_name.strip():
        return "File name cannot be empty"
    if _INVALID_CHARS.search(file_name):
        return "File name contains invalid characters"
    if file_name.split(".")[0].upper() in _RESERVED_NAMES:
        return "File name is a reserved system name"
    if len(file_name) > MAX_FILE_NAME_LENGTH:
        return f"File name is too long (max {MAX_FILE_NAME_LENGTH} characters)"
    return None


def format_file_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def validate_file(
    file_name: str,
    mime_type: str,
    data: bytes,
    media_type: Optional[MediaType] = None,
    config: ValidationConfig = DEFAULT_VALIDATION_CONFIG,
) -> ValidationResult:
    """
    Check a file against the limits of its media type.

    The declared media_type wins over the one derived from mime_type.
    A mismatch between the declared MIME type and the file signature is
    only a warning.
    """
    media_type = media_type or detect_media_type(mime_type)
    size = len(data)
    errors: List[str] = []
    warnings: List[str] = []

    name_error = validate_file_name(file_name)
    if name_error:
        errors.append(name_error)

    max_size = config.max_size(media_type)
    if size > max_size:
        errors.append(f'File "{file_name}" exceeds maximum size of {format_file_size(max_size)}')
    if size == 0:
        errors.append(f'File "{file_name}" is empty')

    allowed = config.allowed_types(media_type)
    if mime_type not in allowed:
        errors.append(
            f'File type "{mime_type}" is not allowed for {media_type.value}. '
            f'Allowed types: {", ".join(sorted(allowed))}'
        )

    detected = detect_mime_type(data)
    if detected and detected != mime_type:
        warnings.append(f"Declared MIME type ({mime_type}) differs from detected type ({detected})")

    result = ValidationResult(
        is_valid=not errors,
        media_type=media_type,
        size=size,
        errors=errors,
        warnings=warnings,
        detected_mime_type=detected,
    )
    if errors:
        logger.warning(f"File validation failed for {file_name}: {'; '.join(errors)}")
    elif warnings:
        logger.info(f"File validation warnings for {file_name}: {'; '.join(warnings)}")
    return result


def ensure_valid_file(
    file_name: str,
    mime_type: str,
    data: bytes,
    media_type: Optional[MediaType] = None,
    config: ValidationConfig = DEFAULT_VALIDATION_CONFIG,
) -> ValidationResult:
    """
    Raises:
        MediaValidationError: the file breaks at least one rule
    """
    result = validate_file(file_name, mime_type, data, media_type, config)
    if not result.is_valid:
        raise MediaValidationError(
            message=f"Invalid media file: {result.errors[0]}",
            status_code=400,
            details={"errors": result.errors, "file_name": file_name},
        )
    return result


def get_file_extension(file_name: str) -> str:
    """Lower-case extension without the dot, '' when there is none"""
    parts = file_name.rsplit(".", 1)
    return parts[1].lower() if len(parts) == 2 and parts[0] else ""


def generate_safe_file_name(original_name: str, prefix: Optional[str] = None) -> str:
    """File name with unsafe characters replaced and a millisecond timestamp appended"""
    extension = get_file_extension(original_name)
    stem = original_name[: -(len(extension) + 1)] if extension else original_name
    safe = _INVALID_CHARS.sub("_", stem)
    safe = re.sub(r"\s+", "_", safe)
    safe = re.sub(r"_+", "_", safe).strip("_") or "file"
    if prefix:
        safe = f"{prefix}_{safe}"
    timestamp = int(time.time() * 1000)
    return f"{safe}_{timestamp}.{extension}" if extension else f"{safe}_{timestamp}"

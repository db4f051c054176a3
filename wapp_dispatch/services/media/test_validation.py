"""Tests for media file validation"""

import re

import pytest

from .validation import (
    ValidationConfig,
    detect_media_type,
    ensure_valid_file,
    generate_safe_file_name,
    get_file_extension,
    validate_file,
    validate_file_name,
)
from ...core.exceptions import MediaValidationError
from ...models.media import MediaType

MB = 1024 * 1024


class TestDetectMediaType:

    @pytest.mark.parametrize("mime_type,expected", [
        ("image/png", MediaType.IMAGE),
        ("video/mp4", MediaType.VIDEO),
        ("audio/ogg", MediaType.AUDIO),
        ("application/pdf", MediaType.DOCUMENT),
        ("text/csv", MediaType.DOCUMENT),
        ("something/else", MediaType.DOCUMENT),
    ])
    def test_detect(self, mime_type, expected):
        assert detect_media_type(mime_type) == expected


class TestValidateFile:

    def test_valid_pdf(self):
        result = validate_file("report.pdf", "application/pdf", b"%PDF-1.4 body")

        assert result.is_valid
        assert result.media_type == MediaType.DOCUMENT
        assert result.errors == []

    def test_image_size_limit(self):
        result = validate_file("big.png", "image/png", b"\x89PNG" + b"0" * (5 * MB))

        assert not result.is_valid
        assert "exceeds maximum size" in result.errors[0]

    def test_document_allows_larger_files(self):
        result = validate_file("big.pdf", "application/pdf", b"%PDF" + b"0" * (6 * MB))
        assert result.is_valid

    def test_mime_type_not_allowed_for_media_type(self):
        result = validate_file("clip.mp4", "video/mp4", b"0" * 2048, media_type=MediaType.IMAGE)

        assert not result.is_valid
        assert any("not allowed" in error for error in result.errors)

    def test_empty_file(self):
        assert not validate_file("a.png", "image/png", b"").is_valid

    def test_signature_mismatch_is_only_a_warning(self):
        result = validate_file("photo.png", "image/png", b"\xff\xd8\xff" + b"0" * 200)

        assert result.is_valid
        assert result.detected_mime_type == "image/jpeg"
        assert result.warnings

    def test_custom_limits(self):
        config = ValidationConfig(max_document_size=10)
        assert not validate_file("a.pdf", "application/pdf", b"%PDF" + b"0" * 20, config=config).is_valid

    def test_ensure_valid_file_raises(self):
        with pytest.raises(MediaValidationError) as exc_info:
            ensure_valid_file("bad<name>.png", "image/png", b"\x89PNG")
        assert exc_info.value.details["errors"]


class TestFileNames:

    @pytest.mark.parametrize("name", ["", "   ", "a<b.png", "CON.txt", "x" * 256])
    def test_invalid_names(self, name):
        assert validate_file_name(name) is not None

    def test_valid_name(self):
        assert validate_file_name("holiday photo.jpg") is None

    def test_get_file_extension(self):
        assert get_file_extension("Report.PDF") == "pdf"
        assert get_file_extension("archive.tar.gz") == "gz"
        assert get_file_extension("README") == ""
        assert get_file_extension(".env") == ""

    def test_generate_safe_file_name(self):
        name = generate_safe_file_name("my  report:final?.pdf", prefix="inv")
        assert re.fullmatch(r"inv_my_report_final_\d+\.pdf", name)

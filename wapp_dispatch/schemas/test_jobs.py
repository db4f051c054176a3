"""
Tests for job parsing

Run with: pytest wapp_dispatch/schemas/test_jobs.py -v
"""

import json

import pytest

from .jobs import Job, MediaRef
from ..core.exceptions import JobParseError, ValidationError


class TestJobParsing:
    """Wire format of jobs read off the channel"""

    def test_camel_case_template_job(self):
        raw = json.dumps({
            "contactRef": "c1",
            "templateName": "welcome",
            "templateBodyParams": ["Asha"],
        })

        job = Job.from_raw(raw)

        assert job.contact_ref == "c1"
        assert job.template_name == "welcome"
        assert job.template_body_params == ["Asha"]
        assert job.template_button_params is None
        assert job.media_ref is None
        assert job.kind == "template"

    def test_text_job_from_bytes(self):
        job = Job.from_raw(b'{"recipientPhone": "+15551234567", "textBody": "Hi there"}')

        assert job.recipient_phone == "+15551234567"
        assert job.text_body == "Hi there"
        assert job.kind == "text"

    def test_legacy_producer_keys(self):
        """Older producers send contactId/params/buttonParams/documentUrl"""
        raw = json.dumps({
            "contactId": "c9",
            "templateName": "invoice",
            "params": ["Ravi", 42],
            "buttonParams": ["abc123"],
            "documentUrl": "https://cdn.example.com/inv.pdf",
            "filename": "invoice.pdf",
        })

        job = Job.from_raw(raw)

        assert job.contact_ref == "c9"
        assert job.template_body_params == ["Ravi", "42"]
        assert job.template_button_params == ["abc123"]
        assert job.media_ref == MediaRef(
            url="https://cdn.example.com/inv.pdf", filename="invoice.pdf", type="document"
        )

    def test_legacy_image_url(self):
        job = Job.from_raw(json.dumps({
            "phoneNumber": "919999999999",
            "templateName": "promo",
            "imageUrl": "https://cdn.example.com/banner.png",
        }))

        assert job.recipient_phone == "919999999999"
        assert job.media_ref.type == "image"
        assert job.media_ref.url == "https://cdn.example.com/banner.png"

    def test_media_ref_type_inferred_from_filename(self):
        job = Job.from_raw(json.dumps({
            "contactRef": "c1",
            "templateName": "doc",
            "mediaRef": {"url": "https://x/y.pdf", "filename": "y.pdf"},
        }))
        assert job.media_ref.type == "document"

    def test_blank_strings_count_as_absent(self):
        job = Job.from_raw(json.dumps({
            "recipientPhone": "  ",
            "contactRef": " c1 ",
            "textBody": "hello",
            "templateName": "",
        }))

        assert job.recipient_phone is None
        assert job.contact_ref == "c1"
        assert job.template_name is None
        assert job.kind == "text"

    def test_unknown_keys_ignored(self):
        job = Job.from_raw('{"contactRef": "c1", "textBody": "x", "campaignId": 7}')
        assert job.contact_ref == "c1"

    @pytest.mark.parametrize("raw", [
        "not json",
        "",
        "[1, 2, 3]",
        '{"templateBodyParams": "should be a list"}',
        '{"mediaRef": {"filename": "no-url.pdf"}}',
    ])
    def test_malformed_payload_raises_parse_error(self, raw):
        with pytest.raises(JobParseError) as exc_info:
            Job.from_raw(raw)
        # Parse errors are validation errors: never worth a retry
        assert isinstance(exc_info.value, ValidationError)

    def test_kind_is_none_when_ambiguous(self):
        assert Job(text_body="x", template_name="t").kind is None
        assert Job(contact_ref="c1").kind is None

    def test_to_json_uses_camel_case_and_skips_nulls(self):
        job = Job(
            contact_ref="c1",
            template_name="welcome",
            template_body_params=["Asha"],
            media_ref=MediaRef(url="https://x/a.png"),
        )

        data = json.loads(job.to_json())

        assert data == {
            "contactRef": "c1",
            "templateName": "welcome",
            "templateBodyParams": ["Asha"],
            "mediaRef": {"url": "https://x/a.png", "type": "image"},
        }
        assert Job.from_raw(job.to_json()) == job

    def test_job_is_immutable(self):
        job = Job(contact_ref="c1", text_body="x")
        with pytest.raises(Exception):
            job.text_body = "changed"

    def test_log_context_has_no_message_text(self):
        job = Job(recipient_phone="+1555", text_body="secret content")
        assert "secret content" not in str(job.log_context())

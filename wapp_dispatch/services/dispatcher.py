"""
Outbound dispatcher - decides message shape and hands it to the messaging client

    validate -> resolve recipient -> normalize phone -> send text | send template
"""
import logging
from typing import Optional, Protocol

from ..core.exceptions import ValidationError
from ..models.message import MessageHandle, ResolvedRecipient
from ..schemas.jobs import Job

logger = logging.getLogger(__name__)


class Resolver(Protocol):
    async def resolve(self, contact_ref: str) -> str: ...


def normalize_phone(phone: str) -> str:
    """
    Prefix a phone number with '+' unless it already has one.

    No other formatting and no digit validation. Idempotent.
    """
    phone = phone.strip()
    return phone if phone.startswith("+") else f"+{phone}"


def validate_job(job: Job) -> None:
    """
    Check that a job names exactly one recipient and exactly one payload kind

    Raises:
        ValidationError: before any lookup or send is attempted
    """
    if not job.recipient_phone and not job.contact_ref:
        raise ValidationError(
            message="Job has no recipient: set recipientPhone or contactRef",
            status_code=400,
        )
    if job.recipient_phone and job.contact_ref:
        raise ValidationError(
            message="Job has both recipientPhone and contactRef",
            status_code=400,
        )
    if job.text_body and job.template_name:
        raise ValidationError(
            message="Job has both textBody and templateName",
            status_code=400,
        )
    if not job.text_body and not job.template_name:
        raise ValidationError(
            message="Job has no payload: set textBody or templateName",
            status_code=400,
        )


class OutboundDispatcher:
    """
    Turns one job into one outbound message.

    Errors from the resolver and the messaging client are not handled
    here; they propagate to the worker.
    """

    def __init__(self, resolver: Resolver, messaging_client, logger: Optional[logging.Logger] = None):
        self.resolver = resolver
        self.messaging_client = messaging_client
        self.logger = logger or logging.getLogger(__name__)

    async def resolve_recipient(self, job: Job) -> ResolvedRecipient:
        """Phone from the job itself, else looked up by contact reference"""
        if job.recipient_phone:
            return ResolvedRecipient(phone=normalize_phone(job.recipient_phone))
        phone = await self.resolver.resolve(job.contact_ref)
        self.logger.debug(f"Contact {job.contact_ref} resolved")
        return ResolvedRecipient(phone=normalize_phone(phone))

    async def dispatch(self, job: Job) -> MessageHandle:
        """
        Send the message described by a job

        Returns:
            Handle with the provider message id

        Raises:
            ValidationError: malformed job, nothing was looked up or sent
            NotFoundError: contact reference did not resolve
            UpstreamError: provider or datastore rejected the call
        """
        validate_job(job)
        recipient = await self.resolve_recipient(job)
        phone = recipient.phone

        if job.kind == "text":
            message_id = await self.messaging_client.send_text(phone, job.text_body)
            return MessageHandle(message_id=message_id, phone=phone, kind="text")

        message_id = await self.messaging_client.send_template(
            phone,
            job.template_name,
            list(job.template_body_params or []),
            list(job.template_button_params or []),
            job.media_ref,
        )
        return MessageHandle(
            message_id=message_id,
            phone=phone,
            kind="template",
            template_name=job.template_name,
        )

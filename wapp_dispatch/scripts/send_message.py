#!/usr/bin/env python3
"""
Publish one message job for the message worker.

Run:
    python -m wapp_dispatch.scripts.send_message --phone 15551234567 --text "Hi there"
    python -m wapp_dispatch.scripts.send_message --contact-ref c1 --template welcome --param Asha
"""

import argparse
import asyncio
import sys

from ..config import settings
from ..core.exceptions import ValidationError
from ..core.redis import close_redis_client, create_redis_client
from ..schemas.jobs import Job, MediaRef
from ..services.dispatcher import validate_job
from ..services.job_publisher import JobPublisher


def build_job(args: argparse.Namespace) -> Job:
    media_ref = None
    if args.document_url:
        media_ref = MediaRef(url=args.document_url, filename=args.filename, type="document")
    elif args.image_url:
        media_ref = MediaRef(url=args.image_url, type="image")

    return Job(
        recipient_phone=args.phone,
        contact_ref=args.contact_ref,
        text_body=args.text,
        template_name=args.template,
        template_body_params=args.params or None,
        template_button_params=args.button_params or None,
        media_ref=media_ref,
    )


async def publish(job: Job, channel: str) -> int:
    client = await create_redis_client(settings.redis_url)
    try:
        return await JobPublisher(client, channel).publish(job)
    finally:
        await close_redis_client(client)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Publish a WhatsApp message job")
    recipient = parser.add_mutually_exclusive_group(required=True)
    recipient.add_argument("--phone", help="Recipient phone number")
    recipient.add_argument("--contact-ref", help="Contact id to look up")

    payload = parser.add_mutually_exclusive_group(required=True)
    payload.add_argument("--text", help="Free-form text body")
    payload.add_argument("--template", help="Approved template name")

    parser.add_argument("--param", dest="params", action="append", default=[], help="Template body parameter (repeatable)")
    parser.add_argument("--button-param", dest="button_params", action="append", default=[], help="URL button parameter (repeatable)")
    parser.add_argument("--image-url", help="Header image link")
    parser.add_argument("--document-url", help="Header document link")
    parser.add_argument("--filename", help="Header document file name")
    parser.add_argument("--channel", default=settings.worker_queue_channel, help="Job channel")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    job = build_job(args)

    try:
        validate_job(job)
    except ValidationError as e:
        print(f"❌ {e.message}")
        sys.exit(1)

    receivers = asyncio.run(publish(job, args.channel))
    if receivers:
        print(f"✅ Job published to '{args.channel}' ({receivers} receivers)")
    else:
        print(f"⚠️ Job published to '{args.channel}' but no worker is subscribed, it was lost")
        sys.exit(2)


if __name__ == "__main__":
    main()

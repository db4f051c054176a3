"""
Messages router - producer side of the job channel

Jobs are validated here with the same rules the dispatcher applies, then
published for the message worker. The response only says whether a worker
was listening; delivery happens asynchronously.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Annotated, List
import logging

from ..core.exceptions import ValidationError
from ..dependencies import get_dead_letter, get_job_publisher
from ..schemas.jobs import Job
from ..schemas.messages import DeadLetterEntry, PublishJobResponse
from ..services.dead_letter import RedisDeadLetterSink
from ..services.dispatcher import validate_job
from ..services.job_publisher import JobPublisher

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=PublishJobResponse, status_code=status.HTTP_202_ACCEPTED)
async def publish_message(
    job: Job,
    publisher: Annotated[JobPublisher, Depends(get_job_publisher)],
):
    """Queue one outbound message for the worker"""
    try:
        validate_job(job)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.message,
        )

    try:
        receivers = await publisher.publish(job)
    except Exception as e:
        logger.error(f"Failed to publish job: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Job channel is unavailable",
        )

    return PublishJobResponse(
        queued=receivers > 0,
        channel=publisher.channel,
        receivers=receivers,
        kind=job.kind,
    )


@router.get("/dead-letter", response_model=List[DeadLetterEntry])
async def list_dead_letters(
    dead_letter: Annotated[RedisDeadLetterSink, Depends(get_dead_letter)],
    limit: int = Query(50, ge=1, le=1000),
):
    """Most recent jobs the worker gave up on"""
    return await dead_letter.recent(limit)

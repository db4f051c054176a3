from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class ResolvedRecipient:
    """Normalized destination of one dispatch call"""
    phone: str


@dataclass(frozen=True)
class MessageHandle:
    """Provider-assigned identifier of an accepted outbound message"""
    message_id: str
    phone: str
    kind: str  # 'text' or 'template'
    template_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'message_id': self.message_id,
            'phone': self.phone,
            'kind': self.kind,
            'template_name': self.template_name,
        }


class JobOutcome(str, Enum):
    """Terminal outcome of one received job"""
    SENT = "sent"
    DROPPED = "dropped"  # unparseable or invalid, never dispatched
    FAILED = "failed"  # dispatch failed, no dead-letter sink configured
    DEAD_LETTERED = "dead_lettered"


@dataclass
class JobResult:
    """What the worker did with one received payload"""
    job_id: str
    outcome: JobOutcome
    attempts: int = 0
    duration: float = 0.0
    handle: Optional[MessageHandle] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.outcome == JobOutcome.SENT

"""Message producer schemas for API responses"""

from pydantic import BaseModel, Field
from typing import Optional


class PublishJobResponse(BaseModel):
    """Schema for an accepted job"""
    queued: bool
    channel: str
    receivers: int = Field(..., description="Workers subscribed when the job was published; 0 means it was lost")
    kind: str


class DeadLetterEntry(BaseModel):
    """Schema for a dead-lettered job"""
    payload: str
    attempts: int
    failed_at: str
    error_type: str
    error: str
    status_code: Optional[int] = None

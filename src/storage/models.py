from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self is not JobStatus.PROCESSING


class Job(BaseModel):
    id: str
    user_id: str
    title: str
    description: str = ""
    source: str
    duration: Optional[float] = None
    status: JobStatus = JobStatus.PROCESSING
    media_reference: Optional[str] = None
    thumbnail_reference: Optional[str] = None
    subtitle_text: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

"""
Practice Log Models

Durable, append-only record of assessed practice answers for one course.
"""

import time
import uuid
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


def new_entry_id(timestamp_ms: Optional[int] = None) -> str:
    """`<millis>-<hex>` ids, unique within a course log."""
    millis = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    return f"{millis}-{uuid.uuid4().hex[:12]}"


def now_ms() -> int:
    return int(time.time() * 1000)


class PracticeLogEntry(BaseModel):
    """One assessed question/answer pair. Never mutated once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_entry_id)
    course_slug: str
    timestamp: int = Field(default_factory=now_ms, description="Unix epoch milliseconds")
    topic: str = "General"
    question: str
    answer: str
    assessment: str = ""
    grade: int = Field(ge=0, le=10)


class AssessmentOutcome(BaseModel):
    """Result of assessing a practice answer."""

    entry: Optional[PracticeLogEntry] = None
    skipped: bool = False
    reason: Optional[str] = None

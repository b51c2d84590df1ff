"""User content, audit and notification records."""
from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .ids import new_id


class ContentKind(str, Enum):
    STORY = "story"
    PHOTO = "photo"
    COMMENT = "comment"
    REACTION = "reaction"


class ContentItem(BaseModel):
    """Minimal content record; merges re-point author and subject."""

    id: str = Field(default_factory=new_id)
    kind: ContentKind
    author_id: str | None = None
    subject_id: str | None = None
    body: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class AuditRecord(BaseModel):
    id: str = Field(default_factory=new_id)
    action: str
    entity_type: str
    entity_id: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Notification(BaseModel):
    id: str = Field(default_factory=new_id)
    event_type: str
    actor_id: str | None = None
    primary_profile_id: str
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

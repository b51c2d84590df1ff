"""Connection request model."""
from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

from .ids import new_id


class RequestStatus(str, Enum):
    """Lifecycle of a connection request. Everything but PENDING is terminal."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.PENDING


# pending + accepted block a new request for the same pair
ACTIVE_REQUEST_STATUSES = (RequestStatus.PENDING, RequestStatus.ACCEPTED)


class ConnectionRequest(BaseModel):
    id: str = Field(default_factory=new_id)
    from_user: str
    to_user: str
    shared_ancestor_id: str | None = None
    status: RequestStatus = RequestStatus.PENDING
    message: str | None = None
    relationship_description: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    responded_at: datetime | None = None

    def involves(self, user_id: str) -> bool:
        return user_id in (self.from_user, self.to_user)

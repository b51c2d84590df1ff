"""Identifier generation."""
from __future__ import annotations

from uuid import UUID

from uuid_utils import uuid7 as _uuid7


def uuid7() -> UUID:
    """Generate a UUID7 compatible with stdlib UUID."""
    return UUID(str(_uuid7()))


def new_id() -> str:
    """Time-ordered string id; sorts by creation for keyset pagination."""
    return str(uuid7())

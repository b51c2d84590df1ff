"""Error taxonomy for graph operations.

Every failure leaves prior state untouched: writes run inside a single
transaction and are rolled back before one of these escapes.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, TypeVar


@dataclass
class FamGraphError(Exception):
    """Base class for all domain errors raised by famgraph."""

    reason: str
    entity_type: str | None = None
    entity_id: str | None = None

    code: ClassVar[str] = "error"
    # Whether the caller may retry without re-reading resource state
    retryable: ClassVar[bool] = False

    def __str__(self) -> str:  # pragma: no cover - human readable
        base = self.reason
        if self.entity_type and self.entity_id:
            base += f" ({self.entity_type}={self.entity_id})"
        return base

    def to_dict(self) -> dict[str, str | None]:
        return {
            "code": self.code,
            "reason": self.reason,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
        }


@dataclass
class ValidationError(FamGraphError):
    """Malformed input: missing ids, self-request, self-merge."""

    code: ClassVar[str] = "validation_error"


@dataclass
class NotFoundError(FamGraphError):
    """Unknown profile, request or duplicate record."""

    code: ClassVar[str] = "not_found"


@dataclass
class ConflictError(FamGraphError):
    """Non-pending transition, duplicate pending request, concurrent merge."""

    code: ClassVar[str] = "conflict"


@dataclass
class ForbiddenError(FamGraphError):
    """Wrong actor for the transition, or matching disabled by the target."""

    code: ClassVar[str] = "forbidden"


@dataclass
class IntegrityError(FamGraphError):
    """Edge would create an ancestry cycle, a self-loop or a duplicate type."""

    code: ClassVar[str] = "integrity_error"


@dataclass
class InternalError(FamGraphError):
    """Backing-store or otherwise unexpected failure."""

    code: ClassVar[str] = "internal_error"
    retryable: ClassVar[bool] = True


E = TypeVar("E", bound=Enum)


def coerce_enum(enum_type: type[E], value: E | str, entity_type: str | None = None, entity_id: str | None = None) -> E:
    """Convert caller input to ``enum_type``, raising ``ValidationError`` on junk."""
    try:
        return enum_type(value)
    except ValueError as exc:
        allowed = ", ".join(m.value for m in enum_type)
        raise ValidationError(
            f"unknown {enum_type.__name__} {value!r} (expected one of: {allowed})", entity_type, entity_id
        ) from exc

"""Profile node model."""
from __future__ import annotations

import re
from datetime import UTC, datetime
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, Field, field_validator

from .ids import new_id

_DATE_RE = re.compile(r"^\d{4}(-\d{2}(-\d{2})?)?")


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    UNKNOWN = "unknown"


class Profile(BaseModel):
    """A person in the family graph.

    Dates are ISO strings at whatever precision is known
    (``YYYY``, ``YYYY-MM`` or ``YYYY-MM-DD``).
    """

    # Scalar fields a merge may copy from the removed profile
    MERGEABLE_FIELDS: ClassVar[tuple[str, ...]] = (
        "maiden_name",
        "nickname",
        "middle_name",
        "birth_date",
        "birth_place",
        "birth_city",
        "birth_country",
        "death_date",
        "death_place",
        "gender",
        "occupation",
        "bio",
        "is_living",
    )

    id: str = Field(default_factory=new_id)
    first_name: str | None = None
    last_name: str | None = None
    maiden_name: str | None = None
    nickname: str | None = None
    middle_name: str | None = None

    birth_date: str | None = None
    death_date: str | None = None
    gender: Gender = Gender.UNKNOWN
    birth_place: str | None = None
    birth_city: str | None = None
    birth_country: str | None = None
    death_place: str | None = None
    occupation: str | None = None
    bio: str | None = None

    is_living: bool | None = None
    is_active: bool = True

    # Matching preferences
    allow_matching: bool = True
    min_ancestor_depth: int = Field(default=1, ge=1)

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("birth_date", "death_date")
    @classmethod
    def _check_date(cls, v: str | None) -> str | None:
        if v is None or v == "":
            return None
        if not _DATE_RE.match(v):
            raise ValueError(f"date must be ISO YYYY[-MM[-DD]]: {v!r}")
        return v[:10]

    @property
    def display_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p) or "Unknown"

    @property
    def birth_year(self) -> int | None:
        return int(self.birth_date[:4]) if self.birth_date else None

    @property
    def death_year(self) -> int | None:
        return int(self.death_date[:4]) if self.death_date else None

    @property
    def birthplace(self) -> str | None:
        """Best available birthplace string."""
        return self.birth_city or self.birth_place

    def snapshot(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class MatchingPreferences(BaseModel):
    """Matching preferences a user may change on their own profile."""

    allow_matching: bool | None = None
    min_ancestor_depth: int | None = Field(default=None, ge=1)

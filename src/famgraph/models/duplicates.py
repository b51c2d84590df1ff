"""Duplicate detection and merge audit models."""
from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, computed_field

from .ids import new_id
from .profile import Profile

T = TypeVar("T")


class DuplicateStatus(str, Enum):
    PENDING = "pending"
    MERGED = "merged"
    REJECTED = "rejected"
    DISMISSED = "dismissed"


class ConfidenceLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"

    @classmethod
    def for_score(cls, score: float) -> ConfidenceLevel:
        if score >= 80:
            return cls.VERY_HIGH
        if score >= 60:
            return cls.HIGH
        if score >= 40:
            return cls.MEDIUM
        return cls.LOW


class MatchReasons(BaseModel):
    """Which signals contributed to a duplicate score."""

    exact_name_match: bool = False
    first_name_match: bool = False
    last_name_match: bool = False
    fuzzy_name_match: bool = False
    fuzzy_name_similarity: float | None = None
    maiden_name_match: bool = False
    nickname_match: bool = False
    exact_birth_date_match: bool = False
    birth_year_match: bool = False
    birth_city_match: bool = False
    birth_country_match: bool = False
    birth_place_match: bool = False
    shared_relatives: list[str] = Field(default_factory=list)

    def describe(self) -> list[str]:
        """Human-readable descriptions, most significant first."""
        out: list[str] = []
        if self.exact_name_match:
            out.append("Exact name match (first and last name)")
        else:
            if self.first_name_match:
                out.append("First name matches exactly")
            if self.last_name_match:
                out.append("Last name matches exactly")
            if self.fuzzy_name_match and self.fuzzy_name_similarity:
                out.append(f"Names are similar ({round(self.fuzzy_name_similarity * 100)}% match)")
        if self.maiden_name_match:
            out.append("Maiden name matches")
        if self.nickname_match:
            out.append("Nickname matches")
        if self.exact_birth_date_match:
            out.append("Birth date matches exactly")
        elif self.birth_year_match:
            out.append("Birth year matches")
        if self.birth_city_match:
            out.append("Birth city matches")
        if self.birth_country_match:
            out.append("Birth country matches")
        if self.birth_place_match:
            out.append("Birthplace matches")
        if self.shared_relatives:
            out.append(f"Shares {len(self.shared_relatives)} relative(s)")
        return out


class PotentialDuplicate(BaseModel):
    id: str = Field(default_factory=new_id)
    profile_a: str
    profile_b: str
    confidence_score: float = Field(ge=0.0, le=100.0)
    match_reasons: MatchReasons = Field(default_factory=MatchReasons)
    status: DuplicateStatus = DuplicateStatus.PENDING
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @computed_field
    @property
    def confidence_level(self) -> ConfidenceLevel:
        return ConfidenceLevel.for_score(self.confidence_score)


class DuplicateWithProfiles(BaseModel):
    """A duplicate row with snapshots of both profiles for review."""

    duplicate: PotentialDuplicate
    profile_a: Profile | None = None
    profile_b: Profile | None = None
    relationship_counts: dict[str, int] = Field(default_factory=dict)


class Page(BaseModel, Generic[T]):
    items: list[T] = Field(default_factory=list)
    page: int = 1
    page_size: int = 20
    total: int = 0

    @computed_field
    @property
    def has_next(self) -> bool:
        return self.page * self.page_size < self.total


class MergeHistory(BaseModel):
    """Append-only audit of a profile merge."""

    id: str = Field(default_factory=new_id)
    keep_id: str
    merge_id: str
    duplicate_id: str | None = None
    actor: str
    snapshot: dict[str, Any] = Field(default_factory=dict)
    relationships_transferred: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class MergeResult(BaseModel):
    relationships_transferred: int = 0
    relationships_dropped: int = 0
    content_reassigned: int = 0
    fields_merged: list[str] = Field(default_factory=list)
    merge_history_id: str


class ScanSummary(BaseModel):
    profiles_scanned: int = 0
    pairs_compared: int = 0
    duplicates_found: int = 0
    duplicates_inserted: int = 0
    preview: list[PotentialDuplicate] = Field(default_factory=list)

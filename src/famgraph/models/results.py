"""Result models for read-side operations."""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, computed_field

from .profile import Gender, Profile


class AncestorHit(BaseModel):
    ancestor_id: str
    depth: int
    path: list[str] = Field(default_factory=list)

    def as_tuple(self) -> tuple[str, int]:
        return self.ancestor_id, self.depth


class RelativeMatch(BaseModel):
    candidate_id: str
    score: float
    reasons: list[str] = Field(default_factory=list)
    relationship_label: str
    path_expr: str
    shared_ancestor_id: str
    ego_depth: int
    candidate_depth: int


class ResolutionSource(str, Enum):
    STRUCTURED = "structured"
    LEXICAL = "lexical"


class KinshipResolution(BaseModel):
    path_expr: str
    label: str
    matched_person_ids: list[str] = Field(default_factory=list)
    source: ResolutionSource = ResolutionSource.LEXICAL


class PathDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    LATERAL = "lateral"


class RelationshipCategory(str, Enum):
    DIRECT = "direct"
    EXTENDED = "extended"
    COUSIN = "cousin"
    IN_LAW = "in_law"
    OTHER = "other"


class PathStep(BaseModel):
    """One person on a relationship path.

    ``step``, ``relationship_type`` and ``direction`` describe the hop to the
    next person and are ``None`` on the last one. ``step`` is also ``None``
    for a discovered_relative hop, which has no P/C/S/M reading.
    """

    profile_id: str
    display_name: str
    gender: Gender = Gender.UNKNOWN
    step: str | None = None
    relationship_type: str | None = None
    direction: PathDirection | None = None


class RelationshipPath(BaseModel):
    from_id: str
    to_id: str
    found: bool
    path_length: int = 0
    steps: list[PathStep] = Field(default_factory=list)
    path_expr: str | None = None
    label: str
    category: RelationshipCategory = RelationshipCategory.OTHER
    degree_of_separation: str


class SharedAncestor(BaseModel):
    ancestor_id: str
    display_name: str
    depth_a: int
    depth_b: int
    birth_year: int | None = None
    death_year: int | None = None

    @computed_field
    @property
    def total_depth(self) -> int:
        return self.depth_a + self.depth_b


class RelativesByDepth(BaseModel):
    """Immediate family grouped by exact generation distance."""

    profile_id: str
    parents: list[Profile] = Field(default_factory=list)
    grandparents: list[Profile] = Field(default_factory=list)
    children: list[Profile] = Field(default_factory=list)
    grandchildren: list[Profile] = Field(default_factory=list)
    siblings: list[Profile] = Field(default_factory=list)
    spouses: list[Profile] = Field(default_factory=list)

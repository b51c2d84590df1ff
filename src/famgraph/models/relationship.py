"""Typed relationship edges and the ancestor cache row."""
from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field, computed_field

from .ids import new_id


class EdgeType(str, Enum):
    """Relationship edge types.

    PARENT is directed (person_a is parent of person_b); the others are
    symmetric.
    """

    PARENT = "parent"
    SPOUSE = "spouse"
    SIBLING = "sibling"
    DISCOVERED_RELATIVE = "discovered_relative"

    @property
    def is_symmetric(self) -> bool:
        return self is not EdgeType.PARENT


class Halfness(str, Enum):
    FULL = "full"
    HALF = "half"
    ADOPTIVE = "adoptive"
    FOSTER = "foster"


class EdgeSource(str, Enum):
    """Where an edge came from."""

    MANUAL = "manual"
    CONNECTION_REQUEST = "connection_request"
    MERGE = "merge"
    IMPORT = "import"


class EdgeQualifiers(BaseModel):
    in_law: bool = False
    is_ex: bool = False
    cousin_removed: int | None = Field(default=None, ge=0)
    halfness: Halfness | None = None


class Provenance(BaseModel):
    """Tracks who/what created an edge."""

    source: EdgeSource = EdgeSource.MANUAL
    source_ref: str | None = Field(default=None, description="e.g. connection request id")
    created_by: str | None = Field(default=None, description="Acting user id")


class RelationshipEdge(BaseModel):
    id: str = Field(default_factory=new_id)
    person_a: str
    person_b: str
    type: EdgeType
    qualifiers: EdgeQualifiers = Field(default_factory=EdgeQualifiers)
    provenance: Provenance = Field(default_factory=Provenance)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @computed_field
    @property
    def pair_key(self) -> tuple[str, str]:
        """Unordered pair, low id first."""
        a, b = sorted((self.person_a, self.person_b))
        return a, b

    def other(self, profile_id: str) -> str:
        """The endpoint that is not ``profile_id``."""
        return self.person_b if self.person_a == profile_id else self.person_a

    def touches(self, profile_id: str) -> bool:
        return profile_id in (self.person_a, self.person_b)


class AncestorCacheEntry(BaseModel):
    descendant_id: str
    ancestor_id: str
    depth: int = Field(ge=1)
    # Ids walked from the descendant's parent up to (and including) the ancestor
    path: list[str] = Field(default_factory=list)
    computed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

"""Profile nodes and typed relationship edges."""
from __future__ import annotations

import sqlite3
from collections.abc import Iterable
from typing import Any, Literal

import structlog

from ..errors import IntegrityError, NotFoundError, ValidationError, coerce_enum
from ..models import EdgeQualifiers, EdgeType, Profile, Provenance, RelationshipEdge, RelativesByDepth
from ..storage import ProfileRepository, RelationshipRepository
from .ancestors import AncestorIndex

logger = structlog.get_logger(__name__)

Direction = Literal["outgoing", "incoming", "both"]


class ProfileGraphStore:
    """CRUD over profiles and edges, bound to one connection.

    Parent edges are directed (``person_a`` is the parent of ``person_b``);
    every other type is symmetric. Parent-edge changes refresh the
    ancestor cache for the child's subtree on the same connection, so the
    refresh commits or rolls back with the edge itself.
    """

    def __init__(self, conn: sqlite3.Connection, index: AncestorIndex | None = None) -> None:
        self.conn = conn
        self.profiles = ProfileRepository(conn)
        self.edges = RelationshipRepository(conn)
        self.index = index or AncestorIndex(conn)

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def add_profile(self, profile: Profile) -> Profile:
        self.profiles.insert(profile)
        logger.info("profile.added", profile_id=profile.id)
        return profile

    def get_profile(self, profile_id: str, *, include_inactive: bool = False) -> Profile | None:
        profile = self.profiles.get(profile_id)
        if profile is None or (not profile.is_active and not include_inactive):
            return None
        return profile

    def require_profile(self, profile_id: str | None, *, include_inactive: bool = False) -> Profile:
        if not profile_id:
            raise ValidationError("profile id is required", "profile")
        profile = self.get_profile(profile_id, include_inactive=include_inactive)
        if profile is None:
            raise NotFoundError("profile not found", "profile", profile_id)
        return profile

    def update_profile(self, profile_id: str, **fields: Any) -> Profile:
        current = self.require_profile(profile_id)
        if "id" in fields:
            raise ValidationError("profile id cannot change", "profile", profile_id)
        try:
            updated = Profile.model_validate({**current.model_dump(), **fields})
        except ValueError as exc:
            raise ValidationError(str(exc), "profile", profile_id) from exc
        dumped = updated.model_dump(mode="json")
        self.profiles.update_fields(profile_id, {k: dumped[k] for k in fields})
        return self.require_profile(profile_id)

    def deactivate_profile(self, profile_id: str) -> None:
        self.require_profile(profile_id)
        self.profiles.deactivate(profile_id)
        logger.info("profile.deactivated", profile_id=profile_id)

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def add_edge(
        self,
        a: str,
        b: str,
        edge_type: EdgeType,
        qualifiers: EdgeQualifiers | None = None,
        provenance: Provenance | None = None,
    ) -> RelationshipEdge:
        """Insert an edge. For PARENT, ``a`` is the parent and ``b`` the child."""
        edge_type = coerce_enum(EdgeType, edge_type, "relationship")
        if a == b:
            raise IntegrityError("edge would be a self-loop", "profile", a)
        self.require_profile(a)
        self.require_profile(b)

        if self.edges.find(edge_type, a, b) is not None:
            raise IntegrityError(f"{edge_type.value} edge already exists for this pair", "relationship")
        if edge_type is EdgeType.PARENT and self.index.would_create_cycle(a, b):
            raise IntegrityError("parent edge would create an ancestry cycle", "profile", b)

        edge = RelationshipEdge(
            person_a=a,
            person_b=b,
            type=edge_type,
            qualifiers=qualifiers or EdgeQualifiers(),
            provenance=provenance or Provenance(),
        )
        self.edges.insert(edge)
        if edge_type is EdgeType.PARENT:
            self.index.refresh_subtree(b)
        logger.info("edge.added", edge_id=edge.id, type=edge_type.value, person_a=a, person_b=b)
        return edge

    def remove_edge(self, edge_id: str) -> RelationshipEdge:
        edge = self.edges.get(edge_id)
        if edge is None:
            raise NotFoundError("relationship not found", "relationship", edge_id)
        self.edges.delete(edge_id)
        if edge.type is EdgeType.PARENT:
            self.index.refresh_subtree(edge.person_b)
        logger.info("edge.removed", edge_id=edge_id, type=edge.type.value)
        return edge

    def reassign_edge(self, edge_id: str, old_id: str, new_id: str) -> RelationshipEdge:
        """Move one endpoint of an edge. Cache refresh is left to the caller."""
        if not self.edges.reassign(edge_id, old_id, new_id):
            raise NotFoundError("relationship not found", "relationship", edge_id)
        edge = self.edges.get(edge_id)
        assert edge is not None
        return edge

    # ------------------------------------------------------------------
    # Adjacency
    # ------------------------------------------------------------------

    def parents_of(self, profile_id: str) -> list[str]:
        return self.edges.parents_of(profile_id)

    def children_of(self, profile_id: str) -> list[str]:
        return self.edges.children_of(profile_id)

    def spouses_of(self, profile_id: str, *, include_ex: bool = True) -> list[str]:
        if include_ex:
            return self.edges.symmetric_of(profile_id, EdgeType.SPOUSE)
        return sorted(
            e.other(profile_id)
            for e in self.edges.edges_of(profile_id, [EdgeType.SPOUSE])
            if not e.qualifiers.is_ex
        )

    def siblings_of(self, profile_id: str) -> list[str]:
        """Explicit sibling edges plus other children of any parent."""
        found = set(self.edges.symmetric_of(profile_id, EdgeType.SIBLING))
        for parent in self.edges.parents_of(profile_id):
            found.update(self.edges.children_of(parent))
        found.discard(profile_id)
        return sorted(found)

    def neighbors(
        self,
        profile_id: str,
        types: Iterable[EdgeType] | None = None,
        direction: Direction = "both",
    ) -> list[tuple[RelationshipEdge, str]]:
        """Edges touching ``profile_id`` with the id on the other end.

        Direction only filters directed (parent) edges: ``outgoing`` keeps
        edges where ``profile_id`` is the parent, ``incoming`` where it is
        the child.
        """
        out = []
        for edge in self.edges.edges_of(profile_id, types):
            if not edge.type.is_symmetric:
                if direction == "outgoing" and edge.person_a != profile_id:
                    continue
                if direction == "incoming" and edge.person_b != profile_id:
                    continue
            out.append((edge, edge.other(profile_id)))
        return out

    def edges_of(self, profile_id: str) -> list[RelationshipEdge]:
        return self.edges.edges_of(profile_id)

    def edges_between(self, a: str, b: str) -> list[RelationshipEdge]:
        return self.edges.edges_between(a, b)

    def relatives_by_depth(self, profile_id: str) -> RelativesByDepth:
        """Immediate family bucketed by exact shortest depth.

        A grandparent who is also linked as a direct parent is listed once,
        as a parent.
        """
        self.require_profile(profile_id)
        ancestors = self.index.lookup(profile_id, 2)
        if ancestors is None:
            ancestors = self.index.compute(profile_id, 2)
        up = {e.ancestor_id: e.depth for e in ancestors}
        down = self.index.descendant_depths(profile_id, 2)
        siblings = self.siblings_of(profile_id)
        spouses = self.spouses_of(profile_id)
        people = {
            pid: p
            for pid, p in self.profiles.get_many([*up, *down, *siblings, *spouses]).items()
            if p.is_active
        }

        def pick(ids: Iterable[str]) -> list[Profile]:
            return sorted((people[i] for i in ids if i in people), key=lambda p: (p.display_name, p.id))

        return RelativesByDepth(
            profile_id=profile_id,
            parents=pick(a for a, d in up.items() if d == 1),
            grandparents=pick(a for a, d in up.items() if d == 2),
            children=pick(c for c, d in down.items() if d == 1),
            grandchildren=pick(c for c, d in down.items() if d == 2),
            siblings=pick(siblings),
            spouses=pick(spouses),
        )

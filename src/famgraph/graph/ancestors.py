"""Bounded ancestor closure cache.

For every profile the cache holds (ancestor, depth, path) for each profile
reachable by following parent edges up to ``max_depth`` hops. Rows are
maintained incrementally: a parent-edge change only recomputes the child
and its descendants.
"""
from __future__ import annotations

import sqlite3
from collections import deque
from collections.abc import Iterable

import structlog

from ..config import CONFIG
from ..models import AncestorCacheEntry
from ..storage import AncestorCacheRepository, ProfileRepository, RelationshipRepository

logger = structlog.get_logger(__name__)


class AncestorIndex:
    """Ancestor cache bound to one connection (usually an open transaction)."""

    def __init__(self, conn: sqlite3.Connection, max_depth: int | None = None) -> None:
        self.conn = conn
        self.max_depth = max_depth or CONFIG.max_ancestor_depth
        self.edges = RelationshipRepository(conn)
        self.cache = AncestorCacheRepository(conn)

    # ------------------------------------------------------------------
    # Live traversal
    # ------------------------------------------------------------------

    def compute(self, profile_id: str, max_depth: int | None = None) -> list[AncestorCacheEntry]:
        """Breadth-first walk up parent edges. Does not touch the cache.

        BFS order guarantees each ancestor is first reached at its shortest
        depth; the visited set makes the walk safe on malformed (cyclic) data.
        """
        limit = max_depth or self.max_depth
        visited = {profile_id}
        queue: deque[tuple[str, int, list[str]]] = deque([(profile_id, 0, [])])
        out: list[AncestorCacheEntry] = []

        while queue:
            node, depth, path = queue.popleft()
            if depth >= limit:
                continue
            for parent in self.edges.parents_of(node):
                if parent in visited:
                    continue
                visited.add(parent)
                parent_path = [*path, parent]
                out.append(
                    AncestorCacheEntry(
                        descendant_id=profile_id,
                        ancestor_id=parent,
                        depth=depth + 1,
                        path=parent_path,
                    )
                )
                queue.append((parent, depth + 1, parent_path))
        return out

    def descendant_depths(self, profile_id: str, max_depth: int | None = None) -> dict[str, int]:
        """Shortest child-edge distance to every profile below ``profile_id``."""
        depths: dict[str, int] = {}
        queue: deque[tuple[str, int]] = deque([(profile_id, 0)])
        while queue:
            node, depth = queue.popleft()
            if max_depth is not None and depth >= max_depth:
                continue
            for child in self.edges.children_of(node):
                if child == profile_id or child in depths:
                    continue
                depths[child] = depth + 1
                queue.append((child, depth + 1))
        return depths

    def descendants_of(self, profile_id: str, max_depth: int | None = None) -> list[str]:
        """Profiles below ``profile_id`` along child edges, nearest first."""
        return list(self.descendant_depths(profile_id, max_depth))

    def would_create_cycle(self, parent_id: str, child_id: str) -> bool:
        """True if ``parent_id`` is ``child_id`` or already below it."""
        if parent_id == child_id:
            return True
        return parent_id in self.descendants_of(child_id)

    # ------------------------------------------------------------------
    # Cache maintenance
    # ------------------------------------------------------------------

    def affected_by(self, child_id: str) -> list[str]:
        """The child plus every descendant whose closure can change.

        A descendant ``k`` hops below the child only sees ancestors above the
        child at depth ``k + 1`` or more, so the walk stops at ``max_depth - 1``.
        """
        return [child_id, *self.descendants_of(child_id, self.max_depth - 1)]

    def refresh(self, profile_ids: Iterable[str]) -> int:
        """Recompute and store the rows for exactly these profiles."""
        written = 0
        for pid in dict.fromkeys(profile_ids):
            written += self.cache.replace_for(pid, self.compute(pid))
        return written

    def refresh_subtree(self, child_id: str) -> int:
        affected = self.affected_by(child_id)
        written = self.refresh(affected)
        logger.debug("ancestors.subtree_refreshed", root=child_id, profiles=len(affected), rows=written)
        return written

    def rebuild_all(self) -> int:
        self.cache.clear()
        profiles = ProfileRepository(self.conn).all_ids()
        written = self.refresh(profiles)
        logger.info("ancestors.rebuilt", profiles=len(profiles), rows=written, max_depth=self.max_depth)
        return written

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def lookup(self, profile_id: str, max_depth: int | None = None) -> list[AncestorCacheEntry] | None:
        """Cached ancestors within ``max_depth``.

        Returns ``None`` on a cache miss (no rows although the profile has
        parents); callers refresh inside a write transaction and retry.
        Depths beyond the cache bound are computed live.
        """
        limit = max_depth or self.max_depth
        if limit > self.max_depth:
            return self.compute(profile_id, limit)
        rows = self.cache.get(profile_id, limit)
        if not rows and self.edges.parents_of(profile_id):
            return None
        return rows

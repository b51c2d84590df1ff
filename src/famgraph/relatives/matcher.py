"""Cross-user relative discovery through shared ancestors."""
from __future__ import annotations

import sqlite3
from collections import defaultdict

import structlog

from ..config import CONFIG
from ..errors import NotFoundError, ValidationError
from ..graph import AncestorIndex, compose
from ..models import Profile, RelativeMatch, SharedAncestor
from ..storage import AncestorCacheRepository, ConnectionRequestRepository, ProfileRepository, RelationshipRepository
from ..utils.normalize import normalize_name, normalize_place

logger = structlog.get_logger(__name__)


class RelativeMatcher:
    """Ranks profiles that share an ancestor with ego.

    Score is ``1 / (ego_depth + candidate_depth)`` to the nearest shared
    ancestor. Equal scores are ordered by metadata agreement (surname,
    birthplace) and then by candidate id.
    """

    def __init__(self, conn: sqlite3.Connection, index: AncestorIndex | None = None, *, locale: str = "en") -> None:
        self.conn = conn
        self.index = index or AncestorIndex(conn)
        self.locale = locale
        self.profiles = ProfileRepository(conn)
        self.edges = RelationshipRepository(conn)
        self.cache = AncestorCacheRepository(conn)
        self.requests = ConnectionRequestRepository(conn)

    def _ancestor_depths(self, profile_id: str, max_depth: int) -> dict[str, int]:
        entries = self.index.lookup(profile_id, max_depth)
        if entries is None:
            entries = self.index.compute(profile_id, max_depth)
        return {e.ancestor_id: e.depth for e in entries}

    def excluded_for(self, ego_id: str, ego_ancestors: dict[str, int]) -> set[str]:
        """Profiles that can never be suggested to ego."""
        excluded = {ego_id}
        excluded.update(ego_ancestors)
        excluded.update(self.index.descendants_of(ego_id))
        excluded.update(self.edges.connected_ids(ego_id))
        # siblings are already linked through their shared parent
        for parent in self.edges.parents_of(ego_id):
            excluded.update(self.edges.children_of(parent))
        excluded.update(self.requests.active_counterparts(ego_id))
        return excluded

    def find_matches(self, ego_id: str, max_depth: int | None = None, limit: int | None = None) -> list[RelativeMatch]:
        max_depth = max_depth or CONFIG.max_ancestor_depth
        limit = limit or CONFIG.match_limit

        ego = self.profiles.get(ego_id)
        if ego is None or not ego.is_active:
            raise NotFoundError("profile not found", "profile", ego_id)

        ego_ancestors = self._ancestor_depths(ego_id, max_depth)
        if not ego_ancestors:
            return []
        excluded = self.excluded_for(ego_id, ego_ancestors)

        # candidate -> shared ancestor -> candidate depth
        shared: dict[str, dict[str, int]] = defaultdict(dict)
        for row in self.cache.descendants_sharing(ego_ancestors, max_depth):
            if row.descendant_id not in excluded:
                shared[row.descendant_id][row.ancestor_id] = row.depth

        candidates = self.profiles.get_many(shared)
        ranked: list[tuple[float, int, str, RelativeMatch]] = []
        for cid, ancestors in shared.items():
            candidate = candidates.get(cid)
            if candidate is None or not candidate.is_active or not candidate.allow_matching:
                continue
            match = self._score(ego, candidate, ego_ancestors, ancestors)
            if match is None:
                continue
            bonus = sum(1 for r in match.reasons if r in ("same_surname", "same_birthplace"))
            ranked.append((match.score, bonus, cid, match))

        ranked.sort(key=lambda t: (-t[0], -t[1], t[2]))
        results = [t[3] for t in ranked[:limit]]
        logger.info("matches.found", ego_id=ego_id, candidates=len(shared), returned=len(results))
        return results

    def shared_ancestors(self, a_id: str, b_id: str, max_depth: int | None = None) -> list[SharedAncestor]:
        """Ancestors common to both profiles, nearest (smallest total depth) first."""
        if a_id == b_id:
            raise ValidationError("cannot compare a profile with itself", "profile", a_id)
        max_depth = max_depth or CONFIG.max_ancestor_depth
        for pid in (a_id, b_id):
            person = self.profiles.get(pid) if pid else None
            if person is None or not person.is_active:
                raise NotFoundError("profile not found", "profile", pid)

        depths_a = self._ancestor_depths(a_id, max_depth)
        depths_b = self._ancestor_depths(b_id, max_depth)
        common = depths_a.keys() & depths_b.keys()
        people = self.profiles.get_many(common)
        shared = []
        for aid in common:
            ancestor = people.get(aid)
            shared.append(
                SharedAncestor(
                    ancestor_id=aid,
                    display_name=ancestor.display_name if ancestor else "Unknown",
                    depth_a=depths_a[aid],
                    depth_b=depths_b[aid],
                    birth_year=ancestor.birth_year if ancestor else None,
                    death_year=ancestor.death_year if ancestor else None,
                )
            )
        shared.sort(key=lambda s: (s.total_depth, s.depth_a, s.ancestor_id))
        return shared

    def _score(
        self,
        ego: Profile,
        candidate: Profile,
        ego_ancestors: dict[str, int],
        candidate_ancestors: dict[str, int],
    ) -> RelativeMatch | None:
        # nearest shared ancestor: smallest total distance, then ego depth, then id
        ancestor_id, d1, d2 = min(
            ((aid, ego_ancestors[aid], d) for aid, d in candidate_ancestors.items()),
            key=lambda t: (t[1] + t[2], t[1], t[0]),
        )
        if d2 < candidate.min_ancestor_depth:
            return None

        reasons = [f"shared_ancestor:{ancestor_id}"]
        if ego.last_name and normalize_name(ego.last_name) == normalize_name(candidate.last_name):
            reasons.append("same_surname")
        if ego.birthplace and normalize_place(ego.birthplace) == normalize_place(candidate.birthplace):
            reasons.append("same_birthplace")

        path = compose(d1, d2)
        return RelativeMatch(
            candidate_id=candidate.id,
            score=round(1.0 / (d1 + d2), 4),
            reasons=reasons,
            relationship_label=path.label(self.locale, candidate.gender),
            path_expr=str(path),
            shared_ancestor_id=ancestor_id,
            ego_depth=d1,
            candidate_depth=d2,
        )

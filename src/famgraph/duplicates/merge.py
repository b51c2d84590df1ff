"""Atomic merge of a duplicate profile into the one being kept."""
from __future__ import annotations

import sqlite3
from collections.abc import Iterable
from typing import Any

import structlog

from ..collaborators import AuditLog, audit_safely
from ..errors import ConflictError, FamGraphError, NotFoundError, ValidationError
from ..graph import AncestorIndex, ProfileGraphStore
from ..locks import SubtreeLockManager
from ..models import (
    DuplicateStatus,
    EdgeType,
    Gender,
    MergeHistory,
    MergeResult,
    Profile,
    RelationshipEdge,
)
from ..storage import (
    ConnectionRequestRepository,
    ContentRepository,
    Database,
    DuplicateRepository,
    MergeHistoryRepository,
)

logger = structlog.get_logger(__name__)


def _is_unset(value: Any) -> bool:
    return value is None or value == "" or value is Gender.UNKNOWN


class ProfileMerger:
    """Folds ``merge_id`` into ``keep_id`` in one transaction.

    Steps: copy fields, move edges (dropping self-loops, duplicates and
    cycle-forming parent edges), move content and requests, refresh the
    ancestor cache, write merge history, deactivate the merged profile and
    mark the duplicate row merged. Any failure rolls all of it back.
    """

    def __init__(
        self,
        db: Database,
        *,
        locks: SubtreeLockManager | None = None,
        audit: AuditLog | None = None,
        max_depth: int | None = None,
    ) -> None:
        self.db = db
        self.locks = locks or SubtreeLockManager()
        self.audit = audit
        self.max_depth = max_depth

    # ------------------------------------------------------------------

    def _lock_set(self, keep_id: str, merge_id: str) -> list[str]:
        def run(conn: sqlite3.Connection) -> list[str]:
            index = AncestorIndex(conn, self.max_depth)
            return [keep_id, merge_id, *index.descendants_of(keep_id), *index.descendants_of(merge_id)]

        return self.db.run_read(run)

    @staticmethod
    def _fields_to_copy(
        keep: Profile,
        merge: Profile,
        fields: Iterable[str],
        override: set[str],
    ) -> dict[str, Any]:
        chosen: dict[str, Any] = {}
        for name in fields:
            incoming = getattr(merge, name)
            if _is_unset(incoming):
                continue
            current = getattr(keep, name)
            if name == "bio":
                # longer biography wins
                if name in override or len(incoming) > len(current or ""):
                    chosen[name] = incoming
            elif name in override or _is_unset(current):
                chosen[name] = incoming
        return chosen

    def _move_edge(self, store: ProfileGraphStore, edge: RelationshipEdge, keep_id: str, merge_id: str) -> bool:
        """Re-point one edge; returns False when it was dropped instead."""
        other = edge.other(merge_id)
        drop = other == keep_id or store.edges.find(edge.type, keep_id, other) is not None
        if not drop and edge.type is EdgeType.PARENT:
            if edge.person_a == merge_id:
                drop = store.index.would_create_cycle(keep_id, other)
            else:
                drop = store.index.would_create_cycle(other, keep_id)
        if drop:
            store.edges.delete(edge.id)
            return False
        store.reassign_edge(edge.id, merge_id, keep_id)
        return True

    def merge(
        self,
        duplicate_id: str,
        keep_id: str,
        merge_id: str,
        fields_to_merge: Iterable[str] = (),
        actor: str = "system",
        override_fields: Iterable[str] = (),
    ) -> MergeResult:
        if not duplicate_id or not keep_id or not merge_id:
            raise ValidationError("duplicate, keep and merge ids are required", "potential_duplicate")
        if keep_id == merge_id:
            raise ValidationError("cannot merge a profile into itself", "profile", keep_id)
        fields = list(fields_to_merge) or list(Profile.MERGEABLE_FIELDS)
        override = set(override_fields)
        unknown = (set(fields) | override) - set(Profile.MERGEABLE_FIELDS)
        if unknown:
            raise ValidationError(f"fields cannot be merged: {sorted(unknown)}", "profile", keep_id)

        # every event logged during the merge, including cache and store
        # events, carries the merge identifiers
        with structlog.contextvars.bound_contextvars(
            duplicate_id=duplicate_id, keep_id=keep_id, merge_id=merge_id, actor=actor
        ):
            try:
                with self.locks.hold(self._lock_set(keep_id, merge_id)):
                    result, edge_count = self._merge_locked(duplicate_id, keep_id, merge_id, fields, override, actor)
            except FamGraphError as exc:
                logger.warning("merge.failed", error=exc.code, reason=exc.reason)
                raise

            logger.info(
                "merge.completed",
                transferred=result.relationships_transferred,
                dropped=result.relationships_dropped,
                fields=result.fields_merged,
            )
        audit_safely(
            self.audit,
            "profiles_merged",
            "profile",
            keep_id,
            {
                "duplicate_id": duplicate_id,
                "merged_profile_id": merge_id,
                "actor": actor,
                "fields_merged": result.fields_merged,
                "relationships_transferred": result.relationships_transferred,
                "relationships_dropped": result.relationships_dropped,
                "merged_profile_edges": edge_count,
            },
        )
        return result

    def _merge_locked(
        self,
        duplicate_id: str,
        keep_id: str,
        merge_id: str,
        fields: list[str],
        override: set[str],
        actor: str,
    ) -> tuple[MergeResult, int]:
        with self.db.transaction() as conn:
            dups = DuplicateRepository(conn)
            dup = dups.get(duplicate_id)
            if dup is None:
                raise NotFoundError("duplicate not found", "potential_duplicate", duplicate_id)
            if {dup.profile_a, dup.profile_b} != {keep_id, merge_id}:
                raise ValidationError("profiles do not match the duplicate record", "potential_duplicate", duplicate_id)
            if dup.status is not DuplicateStatus.PENDING:
                raise ConflictError(f"duplicate is already {dup.status.value}", "potential_duplicate", duplicate_id)

            index = AncestorIndex(conn, self.max_depth)
            store = ProfileGraphStore(conn, index)
            keep = store.require_profile(keep_id)
            merging = store.require_profile(merge_id)
            # keep_id takes merge_id's place, so rows naming merge_id at the full
            # depth bound must be recomputed too
            affected = [
                *index.affected_by(keep_id),
                *index.descendants_of(merge_id, index.max_depth),
            ]
            edges_before = store.edges_of(merge_id)

            # 1. scalar fields
            copied = self._fields_to_copy(keep, merging, fields, override)
            if copied:
                dumped = merging.model_dump(mode="json")
                store.profiles.update_fields(keep_id, {name: dumped[name] for name in copied})

            # 2. relationship edges
            transferred = dropped = 0
            for edge in edges_before:
                if self._move_edge(store, edge, keep_id, merge_id):
                    transferred += 1
                else:
                    dropped += 1

            # 3. content, requests and cached closure rows
            content = ContentRepository(conn).reassign(merge_id, keep_id)
            ConnectionRequestRepository(conn).repoint(merge_id, keep_id)
            index.cache.delete_referencing(merge_id)
            index.refresh(pid for pid in affected if pid != merge_id)

            # 4. history
            history = MergeHistoryRepository(conn).insert(
                MergeHistory(
                    keep_id=keep_id,
                    merge_id=merge_id,
                    duplicate_id=duplicate_id,
                    actor=actor,
                    relationships_transferred=transferred,
                    snapshot={
                        "profile": merging.snapshot(),
                        "edges": [e.model_dump(mode="json") for e in edges_before],
                        "fields_copied": sorted(copied),
                        "relationships_transferred": transferred,
                        "relationships_dropped": dropped,
                        "content_reassigned": content,
                    },
                )
            )

            # 5. retire the merged profile and close out the duplicate row
            store.profiles.deactivate(merge_id)
            if dups.transition(duplicate_id, DuplicateStatus.MERGED, actor) == 0:
                raise ConflictError("duplicate was reviewed concurrently", "potential_duplicate", duplicate_id)
            dups.dismiss_pending_for(merge_id, actor)

        result = MergeResult(
            relationships_transferred=transferred,
            relationships_dropped=dropped,
            content_reassigned=content,
            fields_merged=sorted(copied),
            merge_history_id=history.id,
        )
        return result, len(edges_before)

    def history_for(self, profile_id: str) -> list[MergeHistory]:
        return self.db.run_read(lambda conn: MergeHistoryRepository(conn).for_profile(profile_id))

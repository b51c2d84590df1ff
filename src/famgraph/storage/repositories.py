"""Typed repositories over the SQLite tables.

Each repository wraps a connection handed out by :class:`Database`, so
several repositories can take part in one transaction.
"""
from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterable
from typing import Any

from ..models import (
    ACTIVE_REQUEST_STATUSES,
    AncestorCacheEntry,
    AuditRecord,
    ConnectionRequest,
    ContentItem,
    DuplicateStatus,
    EdgeType,
    MergeHistory,
    Notification,
    PotentialDuplicate,
    Profile,
    RelationshipEdge,
    RequestStatus,
)
from .database import now_iso

_PROFILE_COLUMNS = (
    "id",
    "first_name",
    "last_name",
    "maiden_name",
    "nickname",
    "middle_name",
    "birth_date",
    "death_date",
    "gender",
    "birth_place",
    "birth_city",
    "birth_country",
    "death_place",
    "occupation",
    "bio",
    "is_living",
    "is_active",
    "allow_matching",
    "min_ancestor_depth",
    "created_at",
    "updated_at",
)


def _placeholders(n: int) -> str:
    return ", ".join("?" for _ in range(n))


def _pair(a: str, b: str) -> tuple[str, str]:
    return (a, b) if a <= b else (b, a)


class _Repository:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn


# --------------------------------------------------------------------------
# Profiles
# --------------------------------------------------------------------------


class ProfileRepository(_Repository):
    @staticmethod
    def _from_row(row: sqlite3.Row) -> Profile:
        return Profile.model_validate(dict(row))

    def insert(self, profile: Profile) -> Profile:
        data = profile.model_dump(mode="json")
        values = [data[c] for c in _PROFILE_COLUMNS]
        self.conn.execute(
            f"INSERT INTO profiles ({', '.join(_PROFILE_COLUMNS)}) VALUES ({_placeholders(len(values))})",
            values,
        )
        return profile

    def get(self, profile_id: str) -> Profile | None:
        row = self.conn.execute("SELECT * FROM profiles WHERE id = ?", (profile_id,)).fetchone()
        return self._from_row(row) if row else None

    def get_many(self, profile_ids: Iterable[str]) -> dict[str, Profile]:
        ids = list(dict.fromkeys(profile_ids))
        if not ids:
            return {}
        rows = self.conn.execute(
            f"SELECT * FROM profiles WHERE id IN ({_placeholders(len(ids))})", ids
        ).fetchall()
        return {row["id"]: self._from_row(row) for row in rows}

    def update_fields(self, profile_id: str, fields: dict[str, Any]) -> int:
        """Write the given columns; values must already be JSON-mode scalars."""
        if not fields:
            return 0
        unknown = set(fields) - set(_PROFILE_COLUMNS)
        if unknown:
            raise KeyError(f"unknown profile columns: {sorted(unknown)}")
        assignments = ", ".join(f"{c} = ?" for c in fields)
        cur = self.conn.execute(
            f"UPDATE profiles SET {assignments}, updated_at = ? WHERE id = ?",
            [*fields.values(), now_iso(), profile_id],
        )
        return cur.rowcount

    def deactivate(self, profile_id: str) -> int:
        cur = self.conn.execute(
            "UPDATE profiles SET is_active = 0, allow_matching = 0, updated_at = ? WHERE id = ? AND is_active = 1",
            (now_iso(), profile_id),
        )
        return cur.rowcount

    def chunk_after(self, after_id: str | None, limit: int, *, active_only: bool = True) -> list[Profile]:
        """Keyset page of profiles ordered by id."""
        clauses = []
        params: list[Any] = []
        if after_id is not None:
            clauses.append("id > ?")
            params.append(after_id)
        if active_only:
            clauses.append("is_active = 1")
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self.conn.execute(
            f"SELECT * FROM profiles {where} ORDER BY id LIMIT ?", [*params, limit]
        ).fetchall()
        return [self._from_row(r) for r in rows]

    def all_ids(self) -> list[str]:
        return [r["id"] for r in self.conn.execute("SELECT id FROM profiles ORDER BY id")]


# --------------------------------------------------------------------------
# Relationship edges
# --------------------------------------------------------------------------


class RelationshipRepository(_Repository):
    @staticmethod
    def _from_row(row: sqlite3.Row) -> RelationshipEdge:
        return RelationshipEdge.model_validate(
            {
                "id": row["id"],
                "person_a": row["person_a"],
                "person_b": row["person_b"],
                "type": row["type"],
                "qualifiers": {
                    "in_law": bool(row["in_law"]),
                    "is_ex": bool(row["is_ex"]),
                    "cousin_removed": row["cousin_removed"],
                    "halfness": row["halfness"],
                },
                "provenance": {
                    "source": row["source"],
                    "source_ref": row["source_ref"],
                    "created_by": row["created_by"],
                },
                "created_at": row["created_at"],
            }
        )

    def insert(self, edge: RelationshipEdge) -> RelationshipEdge:
        low, high = edge.pair_key
        q = edge.qualifiers
        p = edge.provenance
        self.conn.execute(
            """
            INSERT INTO relationships (
                id, person_a, person_b, type, low_id, high_id,
                in_law, is_ex, cousin_removed, halfness,
                source, source_ref, created_by, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                edge.id,
                edge.person_a,
                edge.person_b,
                edge.type.value,
                low,
                high,
                int(q.in_law),
                int(q.is_ex),
                q.cousin_removed,
                q.halfness.value if q.halfness else None,
                p.source.value,
                p.source_ref,
                p.created_by,
                edge.created_at.isoformat(),
            ),
        )
        return edge

    def get(self, edge_id: str) -> RelationshipEdge | None:
        row = self.conn.execute("SELECT * FROM relationships WHERE id = ?", (edge_id,)).fetchone()
        return self._from_row(row) if row else None

    def find(self, edge_type: EdgeType, a: str, b: str) -> RelationshipEdge | None:
        """Edge of ``edge_type`` on the unordered pair, if any."""
        low, high = _pair(a, b)
        row = self.conn.execute(
            "SELECT * FROM relationships WHERE type = ? AND low_id = ? AND high_id = ?",
            (edge_type.value, low, high),
        ).fetchone()
        return self._from_row(row) if row else None

    def edges_between(self, a: str, b: str) -> list[RelationshipEdge]:
        low, high = _pair(a, b)
        rows = self.conn.execute(
            "SELECT * FROM relationships WHERE low_id = ? AND high_id = ? ORDER BY type",
            (low, high),
        ).fetchall()
        return [self._from_row(r) for r in rows]

    def edges_of(self, profile_id: str, types: Iterable[EdgeType] | None = None) -> list[RelationshipEdge]:
        sql = "SELECT * FROM relationships WHERE (person_a = ? OR person_b = ?)"
        params: list[Any] = [profile_id, profile_id]
        if types is not None:
            values = [t.value for t in types]
            sql += f" AND type IN ({_placeholders(len(values))})"
            params.extend(values)
        rows = self.conn.execute(sql + " ORDER BY created_at, id", params).fetchall()
        return [self._from_row(r) for r in rows]

    def connected_ids(self, profile_id: str) -> set[str]:
        """Every profile sharing an edge of any type with ``profile_id``."""
        rows = self.conn.execute(
            "SELECT person_a, person_b FROM relationships WHERE person_a = ? OR person_b = ?",
            (profile_id, profile_id),
        ).fetchall()
        return {r["person_b"] if r["person_a"] == profile_id else r["person_a"] for r in rows}

    def parents_of(self, profile_id: str) -> list[str]:
        rows = self.conn.execute(
            "SELECT person_a FROM relationships WHERE type = 'parent' AND person_b = ? ORDER BY person_a",
            (profile_id,),
        ).fetchall()
        return [r["person_a"] for r in rows]

    def children_of(self, profile_id: str) -> list[str]:
        rows = self.conn.execute(
            "SELECT person_b FROM relationships WHERE type = 'parent' AND person_a = ? ORDER BY person_b",
            (profile_id,),
        ).fetchall()
        return [r["person_b"] for r in rows]

    def symmetric_of(self, profile_id: str, edge_type: EdgeType) -> list[str]:
        rows = self.conn.execute(
            """
            SELECT CASE WHEN person_a = ? THEN person_b ELSE person_a END AS other
            FROM relationships
            WHERE type = ? AND (person_a = ? OR person_b = ?)
            ORDER BY other
            """,
            (profile_id, edge_type.value, profile_id, profile_id),
        ).fetchall()
        return [r["other"] for r in rows]

    def delete(self, edge_id: str) -> int:
        return self.conn.execute("DELETE FROM relationships WHERE id = ?", (edge_id,)).rowcount

    def reassign(self, edge_id: str, old_id: str, new_id: str) -> int:
        """Swap ``old_id`` for ``new_id`` on whichever endpoint holds it."""
        row = self.conn.execute(
            "SELECT person_a, person_b FROM relationships WHERE id = ?", (edge_id,)
        ).fetchone()
        if row is None:
            return 0
        a = new_id if row["person_a"] == old_id else row["person_a"]
        b = new_id if row["person_b"] == old_id else row["person_b"]
        low, high = _pair(a, b)
        return self.conn.execute(
            "UPDATE relationships SET person_a = ?, person_b = ?, low_id = ?, high_id = ? WHERE id = ?",
            (a, b, low, high, edge_id),
        ).rowcount

    def counts_by_type(self, profile_id: str) -> dict[str, int]:
        rows = self.conn.execute(
            """
            SELECT type, COUNT(*) AS n FROM relationships
            WHERE person_a = ? OR person_b = ?
            GROUP BY type
            """,
            (profile_id, profile_id),
        ).fetchall()
        return {r["type"]: r["n"] for r in rows}


# --------------------------------------------------------------------------
# Ancestor cache
# --------------------------------------------------------------------------


class AncestorCacheRepository(_Repository):
    @staticmethod
    def _from_row(row: sqlite3.Row) -> AncestorCacheEntry:
        return AncestorCacheEntry(
            descendant_id=row["descendant_id"],
            ancestor_id=row["ancestor_id"],
            depth=row["depth"],
            path=json.loads(row["path_json"]),
            computed_at=row["computed_at"],
        )

    def replace_for(self, descendant_id: str, entries: Iterable[AncestorCacheEntry]) -> int:
        self.conn.execute("DELETE FROM ancestor_cache WHERE descendant_id = ?", (descendant_id,))
        rows = [
            (e.descendant_id, e.ancestor_id, e.depth, json.dumps(e.path), e.computed_at.isoformat())
            for e in entries
        ]
        self.conn.executemany(
            "INSERT INTO ancestor_cache (descendant_id, ancestor_id, depth, path_json, computed_at) VALUES (?, ?, ?, ?, ?)",
            rows,
        )
        return len(rows)

    def get(self, descendant_id: str, max_depth: int | None = None) -> list[AncestorCacheEntry]:
        sql = "SELECT * FROM ancestor_cache WHERE descendant_id = ?"
        params: list[Any] = [descendant_id]
        if max_depth is not None:
            sql += " AND depth <= ?"
            params.append(max_depth)
        rows = self.conn.execute(sql + " ORDER BY depth, ancestor_id", params).fetchall()
        return [self._from_row(r) for r in rows]

    def descendants_sharing(self, ancestor_ids: Iterable[str], max_depth: int) -> list[AncestorCacheEntry]:
        """Cache rows of every profile that has one of ``ancestor_ids`` within ``max_depth``."""
        ids = list(ancestor_ids)
        if not ids:
            return []
        rows = self.conn.execute(
            f"""
            SELECT * FROM ancestor_cache
            WHERE ancestor_id IN ({_placeholders(len(ids))}) AND depth <= ?
            ORDER BY descendant_id, depth, ancestor_id
            """,
            [*ids, max_depth],
        ).fetchall()
        return [self._from_row(r) for r in rows]

    def delete_referencing(self, profile_id: str) -> int:
        return self.conn.execute(
            "DELETE FROM ancestor_cache WHERE descendant_id = ? OR ancestor_id = ?",
            (profile_id, profile_id),
        ).rowcount

    def clear(self) -> int:
        return self.conn.execute("DELETE FROM ancestor_cache").rowcount


# --------------------------------------------------------------------------
# Connection requests
# --------------------------------------------------------------------------


class ConnectionRequestRepository(_Repository):
    _ACTIVE = tuple(s.value for s in ACTIVE_REQUEST_STATUSES)

    @staticmethod
    def _from_row(row: sqlite3.Row) -> ConnectionRequest:
        data = dict(row)
        data.pop("low_id")
        data.pop("high_id")
        return ConnectionRequest.model_validate(data)

    def insert(self, request: ConnectionRequest) -> ConnectionRequest:
        low, high = _pair(request.from_user, request.to_user)
        self.conn.execute(
            """
            INSERT INTO connection_requests (
                id, from_user, to_user, low_id, high_id, shared_ancestor_id, status,
                message, relationship_description, created_at, responded_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                request.id,
                request.from_user,
                request.to_user,
                low,
                high,
                request.shared_ancestor_id,
                request.status.value,
                request.message,
                request.relationship_description,
                request.created_at.isoformat(),
                request.responded_at.isoformat() if request.responded_at else None,
            ),
        )
        return request

    def get(self, request_id: str) -> ConnectionRequest | None:
        row = self.conn.execute("SELECT * FROM connection_requests WHERE id = ?", (request_id,)).fetchone()
        return self._from_row(row) if row else None

    def find_active_between(self, a: str, b: str) -> ConnectionRequest | None:
        low, high = _pair(a, b)
        row = self.conn.execute(
            "SELECT * FROM connection_requests WHERE low_id = ? AND high_id = ? AND status IN (?, ?) LIMIT 1",
            (low, high, *self._ACTIVE),
        ).fetchone()
        return self._from_row(row) if row else None

    def active_counterparts(self, user_id: str) -> set[str]:
        rows = self.conn.execute(
            """
            SELECT from_user, to_user FROM connection_requests
            WHERE (from_user = ? OR to_user = ?) AND status IN (?, ?)
            """,
            (user_id, user_id, *self._ACTIVE),
        ).fetchall()
        return {r["to_user"] if r["from_user"] == user_id else r["from_user"] for r in rows}

    def transition(self, request_id: str, new_status: RequestStatus) -> int:
        """Compare-and-swap from pending. Returns rowcount (0 = lost the race)."""
        cur = self.conn.execute(
            "UPDATE connection_requests SET status = ?, responded_at = ? WHERE id = ? AND status = 'pending'",
            (new_status.value, now_iso(), request_id),
        )
        return cur.rowcount

    def list_for(self, user_id: str, *, status: RequestStatus | None = None, direction: str = "all") -> list[ConnectionRequest]:
        if direction == "incoming":
            sql, params = "to_user = ?", [user_id]
        elif direction == "outgoing":
            sql, params = "from_user = ?", [user_id]
        else:
            sql, params = "(from_user = ? OR to_user = ?)", [user_id, user_id]
        if status is not None:
            sql += " AND status = ?"
            params.append(status.value)
        rows = self.conn.execute(
            f"SELECT * FROM connection_requests WHERE {sql} ORDER BY created_at DESC, id DESC", params
        ).fetchall()
        return [self._from_row(r) for r in rows]

    def pending_count(self, user_id: str) -> int:
        row = self.conn.execute(
            "SELECT COUNT(*) AS n FROM connection_requests WHERE to_user = ? AND status = 'pending'",
            (user_id,),
        ).fetchone()
        return row["n"]

    def repoint(self, old_id: str, new_id: str) -> int:
        """Move requests from ``old_id`` to ``new_id``.

        Requests between the two profiles, and requests that would duplicate
        an active request ``new_id`` already has, are cancelled and left on
        ``old_id``.
        """
        moved = 0
        rows = self.conn.execute(
            "SELECT * FROM connection_requests WHERE from_user = ? OR to_user = ?",
            (old_id, old_id),
        ).fetchall()
        for row in rows:
            req = self._from_row(row)
            other = req.to_user if req.from_user == old_id else req.from_user
            clash = other == new_id or (
                req.status.value in self._ACTIVE and self.find_active_between(new_id, other) is not None
            )
            if clash:
                if req.status is RequestStatus.PENDING:
                    self.transition(req.id, RequestStatus.CANCELLED)
                continue
            from_user = new_id if req.from_user == old_id else req.from_user
            to_user = new_id if req.to_user == old_id else req.to_user
            low, high = _pair(from_user, to_user)
            self.conn.execute(
                "UPDATE connection_requests SET from_user = ?, to_user = ?, low_id = ?, high_id = ? WHERE id = ?",
                (from_user, to_user, low, high, req.id),
            )
            moved += 1
        return moved


# --------------------------------------------------------------------------
# Potential duplicates
# --------------------------------------------------------------------------


class DuplicateRepository(_Repository):
    @staticmethod
    def _from_row(row: sqlite3.Row) -> PotentialDuplicate:
        data = dict(row)
        data["match_reasons"] = json.loads(data.pop("match_reasons_json"))
        return PotentialDuplicate.model_validate(data)

    def insert_if_absent(self, dup: PotentialDuplicate) -> bool:
        low, high = _pair(dup.profile_a, dup.profile_b)
        cur = self.conn.execute(
            """
            INSERT INTO potential_duplicates (
                id, profile_a, profile_b, confidence_score, match_reasons_json, status, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(profile_a, profile_b) DO NOTHING
            """,
            (
                dup.id,
                low,
                high,
                dup.confidence_score,
                dup.match_reasons.model_dump_json(),
                dup.status.value,
                dup.created_at.isoformat(),
            ),
        )
        return cur.rowcount == 1

    def exists_pair(self, a: str, b: str) -> bool:
        low, high = _pair(a, b)
        row = self.conn.execute(
            "SELECT 1 FROM potential_duplicates WHERE profile_a = ? AND profile_b = ?", (low, high)
        ).fetchone()
        return row is not None

    def get(self, duplicate_id: str) -> PotentialDuplicate | None:
        row = self.conn.execute("SELECT * FROM potential_duplicates WHERE id = ?", (duplicate_id,)).fetchone()
        return self._from_row(row) if row else None

    def transition(self, duplicate_id: str, new_status: DuplicateStatus, reviewed_by: str) -> int:
        """Compare-and-swap from pending."""
        cur = self.conn.execute(
            """
            UPDATE potential_duplicates SET status = ?, reviewed_by = ?, reviewed_at = ?
            WHERE id = ? AND status = 'pending'
            """,
            (new_status.value, reviewed_by, now_iso(), duplicate_id),
        )
        return cur.rowcount

    def dismiss_pending_for(self, profile_id: str, reviewed_by: str) -> int:
        cur = self.conn.execute(
            """
            UPDATE potential_duplicates SET status = 'dismissed', reviewed_by = ?, reviewed_at = ?
            WHERE (profile_a = ? OR profile_b = ?) AND status = 'pending'
            """,
            (reviewed_by, now_iso(), profile_id, profile_id),
        )
        return cur.rowcount

    def _filters(self, status: DuplicateStatus | None, min_confidence: float) -> tuple[str, list[Any]]:
        sql = "confidence_score >= ?"
        params: list[Any] = [min_confidence]
        if status is not None:
            sql += " AND status = ?"
            params.append(status.value)
        return sql, params

    def list(
        self,
        *,
        status: DuplicateStatus | None = None,
        min_confidence: float = 0.0,
        offset: int = 0,
        limit: int = 20,
    ) -> list[PotentialDuplicate]:
        where, params = self._filters(status, min_confidence)
        rows = self.conn.execute(
            f"""
            SELECT * FROM potential_duplicates WHERE {where}
            ORDER BY confidence_score DESC, created_at DESC, id
            LIMIT ? OFFSET ?
            """,
            [*params, limit, offset],
        ).fetchall()
        return [self._from_row(r) for r in rows]

    def count(self, *, status: DuplicateStatus | None = None, min_confidence: float = 0.0) -> int:
        where, params = self._filters(status, min_confidence)
        row = self.conn.execute(f"SELECT COUNT(*) AS n FROM potential_duplicates WHERE {where}", params).fetchone()
        return row["n"]


# --------------------------------------------------------------------------
# Merge history, content, audit, notifications
# --------------------------------------------------------------------------


class MergeHistoryRepository(_Repository):
    @staticmethod
    def _from_row(row: sqlite3.Row) -> MergeHistory:
        data = dict(row)
        data["snapshot"] = json.loads(data.pop("snapshot_json"))
        return MergeHistory.model_validate(data)

    def insert(self, entry: MergeHistory) -> MergeHistory:
        self.conn.execute(
            """
            INSERT INTO merge_history (
                id, keep_id, merge_id, duplicate_id, actor, snapshot_json, relationships_transferred, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.id,
                entry.keep_id,
                entry.merge_id,
                entry.duplicate_id,
                entry.actor,
                json.dumps(entry.snapshot, ensure_ascii=False, default=str),
                entry.relationships_transferred,
                entry.created_at.isoformat(),
            ),
        )
        return entry

    def for_profile(self, profile_id: str) -> list[MergeHistory]:
        rows = self.conn.execute(
            "SELECT * FROM merge_history WHERE keep_id = ? OR merge_id = ? ORDER BY created_at DESC, id DESC",
            (profile_id, profile_id),
        ).fetchall()
        return [self._from_row(r) for r in rows]


class ContentRepository(_Repository):
    def insert(self, item: ContentItem) -> ContentItem:
        self.conn.execute(
            "INSERT INTO content_items (id, kind, author_id, subject_id, body, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (item.id, item.kind.value, item.author_id, item.subject_id, item.body, item.created_at.isoformat()),
        )
        return item

    def reassign(self, old_id: str, new_id: str) -> int:
        """Re-point authorship and subject; returns the number of rows touched."""
        authored = self.conn.execute(
            "UPDATE content_items SET author_id = ? WHERE author_id = ?", (new_id, old_id)
        ).rowcount
        about = self.conn.execute(
            "UPDATE content_items SET subject_id = ? WHERE subject_id = ?", (new_id, old_id)
        ).rowcount
        return authored + about

    def list_for(self, profile_id: str) -> list[ContentItem]:
        rows = self.conn.execute(
            "SELECT * FROM content_items WHERE author_id = ? OR subject_id = ? ORDER BY created_at, id",
            (profile_id, profile_id),
        ).fetchall()
        return [ContentItem.model_validate(dict(r)) for r in rows]


class AuditRepository(_Repository):
    def insert(self, record: AuditRecord) -> AuditRecord:
        self.conn.execute(
            "INSERT INTO audit_log (id, action, entity_type, entity_id, payload_json, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (
                record.id,
                record.action,
                record.entity_type,
                record.entity_id,
                json.dumps(record.payload, ensure_ascii=False, default=str),
                record.created_at.isoformat(),
            ),
        )
        return record

    def list(self, *, entity_type: str | None = None, entity_id: str | None = None) -> list[AuditRecord]:
        clauses, params = [], []
        if entity_type is not None:
            clauses.append("entity_type = ?")
            params.append(entity_type)
        if entity_id is not None:
            clauses.append("entity_id = ?")
            params.append(entity_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self.conn.execute(f"SELECT * FROM audit_log {where} ORDER BY created_at, id", params).fetchall()
        out = []
        for r in rows:
            data = dict(r)
            data["payload"] = json.loads(data.pop("payload_json"))
            out.append(AuditRecord.model_validate(data))
        return out


class NotificationRepository(_Repository):
    def insert(self, note: Notification) -> Notification:
        self.conn.execute(
            """
            INSERT INTO notifications (id, event_type, actor_id, primary_profile_id, payload_json, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                note.id,
                note.event_type,
                note.actor_id,
                note.primary_profile_id,
                json.dumps(note.payload, ensure_ascii=False, default=str),
                note.created_at.isoformat(),
            ),
        )
        return note

    def list_for(self, profile_id: str) -> list[Notification]:
        rows = self.conn.execute(
            "SELECT * FROM notifications WHERE primary_profile_id = ? ORDER BY created_at, id", (profile_id,)
        ).fetchall()
        out = []
        for r in rows:
            data = dict(r)
            data["payload"] = json.loads(data.pop("payload_json"))
            out.append(Notification.model_validate(data))
        return out

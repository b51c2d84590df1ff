"""FamilyGraphService: the operations the platform calls into."""
from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import structlog

from .collaborators import (
    AuditLog,
    NotificationSink,
    ProfileDirectory,
    StoredAuditLog,
    StoredNotificationSink,
    StoredProfileDirectory,
)
from .config import CONFIG, FamGraphConfig
from .duplicates import DuplicateDetector, ProfileMerger
from .errors import FamGraphError, InternalError, NotFoundError, ValidationError, coerce_enum
from .graph import AncestorIndex, ProfileGraphStore, RelationshipPathFinder
from .kinship import KinshipPhraseResolver
from .locks import SubtreeLockManager
from .models import (
    AncestorHit,
    ConnectionRequest,
    ContentItem,
    DuplicateStatus,
    DuplicateWithProfiles,
    EdgeQualifiers,
    EdgeType,
    KinshipResolution,
    MatchingPreferences,
    MergeHistory,
    MergeResult,
    Page,
    PotentialDuplicate,
    Profile,
    Provenance,
    RelationshipEdge,
    RelationshipPath,
    RelativeMatch,
    RelativesByDepth,
    RequestStatus,
    ScanSummary,
    SharedAncestor,
)
from .relatives import ConnectionRequestManager, RelativeMatcher
from .relatives.requests import RequestDirection
from .storage import ContentRepository, Database, RelationshipRepository

logger = structlog.get_logger(__name__)


@contextmanager
def _reported(operation: str, **context: Any) -> Iterator[None]:
    """Log a failed operation at the level its error deserves, then re-raise."""
    try:
        yield
    except InternalError as exc:
        logger.error(f"{operation}.failed", error=exc.code, reason=exc.reason, **context)
        raise
    except FamGraphError as exc:
        logger.warning(f"{operation}.failed", error=exc.code, reason=exc.reason, **context)
        raise


class FamilyGraphService:
    """Facade over the graph store, matcher, requests, kinship and duplicates.

    Example:
        svc = FamilyGraphService("./data/famgraph.db")
        dad = svc.create_profile(first_name="Alexander", last_name="Ivanov")
        kid = svc.create_profile(first_name="Filip", last_name="Ivanov")
        svc.add_relationship(dad.id, kid.id, EdgeType.PARENT)
        svc.get_ancestors(kid.id)  # [(dad.id, 1)]
    """

    def __init__(
        self,
        db: Database | str | Path | None = None,
        *,
        config: FamGraphConfig | None = None,
        notifications: NotificationSink | None = None,
        audit: AuditLog | None = None,
        directory: ProfileDirectory | None = None,
        locks: SubtreeLockManager | None = None,
    ) -> None:
        self.config = config or CONFIG
        if isinstance(db, Database):
            self.db = db
        else:
            self.db = Database(db or self.config.db_path, read_retries=self.config.read_retries)
        self.max_depth = self.config.max_ancestor_depth
        self.locks = locks or SubtreeLockManager(self.config.lock_timeout_seconds)
        self.notifications = notifications or StoredNotificationSink(self.db)
        self.audit = audit or StoredAuditLog(self.db)
        self.directory = directory or StoredProfileDirectory(self.db)

        self.requests = ConnectionRequestManager(
            self.db,
            notifications=self.notifications,
            audit=self.audit,
            locks=self.locks,
            max_depth=self.max_depth,
        )
        self.detector = DuplicateDetector(
            self.db,
            audit=self.audit,
            min_confidence=self.config.duplicate_min_confidence,
            chunk_size=self.config.scan_chunk_size,
        )
        self.merger = ProfileMerger(self.db, locks=self.locks, audit=self.audit, max_depth=self.max_depth)
        self.resolver = KinshipPhraseResolver(self.db)

    # ------------------------------------------------------------------
    # Profiles and edges
    # ------------------------------------------------------------------

    def create_profile(self, profile: Profile | None = None, **fields: Any) -> Profile:
        try:
            profile = profile or Profile(**fields)
        except ValueError as exc:
            raise ValidationError(str(exc), "profile") from exc
        with self.db.transaction() as conn:
            return ProfileGraphStore(conn, AncestorIndex(conn, self.max_depth)).add_profile(profile)

    def get_profile(self, profile_id: str) -> Profile:
        profile = self.directory.get_profile(profile_id)
        if profile is None:
            raise NotFoundError("profile not found", "profile", profile_id)
        return profile

    def update_matching_preferences(
        self,
        profile_id: str,
        preferences: MatchingPreferences | None = None,
        **fields: Any,
    ) -> Profile:
        try:
            prefs = preferences or MatchingPreferences(**fields)
        except ValueError as exc:
            raise ValidationError(str(exc), "profile", profile_id) from exc
        changes = prefs.model_dump(exclude_none=True)
        with _reported("preferences.update", profile_id=profile_id):
            with self.db.transaction() as conn:
                store = ProfileGraphStore(conn, AncestorIndex(conn, self.max_depth))
                profile = store.update_profile(profile_id, **changes) if changes else store.require_profile(profile_id)
        logger.info("preferences.updated", profile_id=profile_id, **changes)
        return profile

    def _edge_lock_set(self, a: str, b: str, edge_type: EdgeType) -> list[str]:
        if edge_type is not EdgeType.PARENT:
            return [a, b]

        def run(conn: sqlite3.Connection) -> list[str]:
            return [a, *AncestorIndex(conn, self.max_depth).affected_by(b)]

        return self.db.run_read(run)

    def add_relationship(
        self,
        a: str,
        b: str,
        edge_type: EdgeType | str,
        qualifiers: EdgeQualifiers | None = None,
        provenance: Provenance | None = None,
    ) -> RelationshipEdge:
        """Add an edge; for ``parent`` edges ``a`` is the parent of ``b``."""
        edge_type = coerce_enum(EdgeType, edge_type, "relationship")
        with _reported("edge.add", person_a=a, person_b=b, type=edge_type.value):
            with self.locks.hold(self._edge_lock_set(a, b, edge_type)):
                with self.db.transaction() as conn:
                    store = ProfileGraphStore(conn, AncestorIndex(conn, self.max_depth))
                    return store.add_edge(a, b, edge_type, qualifiers, provenance)

    def remove_relationship(self, edge_id: str) -> RelationshipEdge:
        edge = self.db.run_read(lambda conn: RelationshipRepository(conn).get(edge_id))
        if edge is None:
            raise NotFoundError("relationship not found", "relationship", edge_id)
        with _reported("edge.remove", edge_id=edge_id):
            with self.locks.hold(self._edge_lock_set(edge.person_a, edge.person_b, edge.type)):
                with self.db.transaction() as conn:
                    return ProfileGraphStore(conn, AncestorIndex(conn, self.max_depth)).remove_edge(edge_id)

    def relationships_of(self, profile_id: str) -> list[RelationshipEdge]:
        return self.db.run_read(lambda conn: RelationshipRepository(conn).edges_of(profile_id))

    def add_content(self, item: ContentItem) -> ContentItem:
        with self.db.transaction() as conn:
            return ContentRepository(conn).insert(item)

    def content_for(self, profile_id: str) -> list[ContentItem]:
        return self.db.run_read(lambda conn: ContentRepository(conn).list_for(profile_id))

    # ------------------------------------------------------------------
    # Ancestors and matching
    # ------------------------------------------------------------------

    def ancestor_paths(self, profile_id: str, max_depth: int | None = None) -> list[AncestorHit]:
        self.get_profile(profile_id)
        depth = max_depth or self.max_depth

        def lookup(conn: sqlite3.Connection):
            return AncestorIndex(conn, self.max_depth).lookup(profile_id, depth)

        entries = self.db.run_read(lookup)
        if entries is None:
            # read-through on a cold cache
            with self.db.transaction() as conn:
                index = AncestorIndex(conn, self.max_depth)
                index.refresh([profile_id])
                entries = index.lookup(profile_id, depth) or []
        return [AncestorHit(ancestor_id=e.ancestor_id, depth=e.depth, path=e.path) for e in entries]

    def get_ancestors(self, profile_id: str, max_depth: int | None = None) -> list[tuple[str, int]]:
        return [hit.as_tuple() for hit in self.ancestor_paths(profile_id, max_depth)]

    def find_relative_matches(
        self,
        ego_id: str,
        max_depth: int | None = None,
        limit: int | None = None,
        *,
        locale: str = "en",
    ) -> list[RelativeMatch]:
        def run(conn: sqlite3.Connection) -> list[RelativeMatch]:
            matcher = RelativeMatcher(conn, AncestorIndex(conn, self.max_depth), locale=locale)
            return matcher.find_matches(ego_id, max_depth or self.max_depth, limit or self.config.match_limit)

        with _reported("matches.find", ego_id=ego_id):
            return self.db.run_read(run)

    def shared_ancestors(self, a: str, b: str, max_depth: int | None = None) -> list[SharedAncestor]:
        def run(conn: sqlite3.Connection) -> list[SharedAncestor]:
            matcher = RelativeMatcher(conn, AncestorIndex(conn, self.max_depth))
            return matcher.shared_ancestors(a, b, max_depth or self.max_depth)

        with _reported("ancestors.shared", person_a=a, person_b=b):
            return self.db.run_read(run)

    def relationship_path(
        self,
        a: str,
        b: str,
        max_depth: int | None = None,
        locale: str = "en",
    ) -> RelationshipPath:
        with _reported("path.find", person_a=a, person_b=b):
            return self.db.run_read(lambda conn: RelationshipPathFinder(conn).find(a, b, max_depth, locale))

    def relatives_by_depth(self, profile_id: str) -> RelativesByDepth:
        def run(conn: sqlite3.Connection) -> RelativesByDepth:
            return ProfileGraphStore(conn, AncestorIndex(conn, self.max_depth)).relatives_by_depth(profile_id)

        with _reported("relatives.by_depth", profile_id=profile_id):
            return self.db.run_read(run)

    def rebuild_ancestor_index(self) -> int:
        with self.db.transaction() as conn:
            return AncestorIndex(conn, self.max_depth).rebuild_all()

    # ------------------------------------------------------------------
    # Connection requests
    # ------------------------------------------------------------------

    def create_connection_request(
        self,
        from_id: str,
        to_id: str,
        shared_ancestor_id: str | None = None,
        message: str | None = None,
        relationship_description: str | None = None,
    ) -> ConnectionRequest:
        with _reported("request.create", from_user=from_id, to_user=to_id):
            return self.requests.create(from_id, to_id, shared_ancestor_id, message, relationship_description)

    def update_connection_request_status(
        self,
        request_id: str,
        acting_user_id: str,
        new_status: RequestStatus | str,
    ) -> ConnectionRequest:
        with _reported("request.transition", request_id=request_id, actor=acting_user_id):
            return self.requests.update_status(request_id, acting_user_id, new_status)

    def list_connection_requests(
        self,
        user_id: str,
        status: RequestStatus | str = "all",
        direction: RequestDirection = "all",
    ) -> list[ConnectionRequest]:
        return self.requests.list_requests(user_id, status, direction)

    def pending_request_count(self, user_id: str) -> int:
        return self.requests.pending_count(user_id)

    # ------------------------------------------------------------------
    # Kinship phrases
    # ------------------------------------------------------------------

    def resolve_kinship_phrase(self, ego_id: str | None, phrase: str, locale: str = "en") -> list[KinshipResolution]:
        return self.resolver.resolve(ego_id, phrase, locale)

    # ------------------------------------------------------------------
    # Duplicates
    # ------------------------------------------------------------------

    def scan_duplicates(self, min_confidence: float | None = None, *, dry_run: bool = False) -> ScanSummary:
        return self.detector.scan(min_confidence, dry_run=dry_run)

    def list_potential_duplicates(
        self,
        status: DuplicateStatus | str | None = None,
        min_confidence: float = 0.0,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[DuplicateWithProfiles]:
        return self.detector.list(status, min_confidence, page, page_size)

    def review_duplicate(self, duplicate_id: str, status: DuplicateStatus | str, actor: str) -> PotentialDuplicate:
        with _reported("duplicates.review", duplicate_id=duplicate_id):
            return self.detector.review(duplicate_id, status, actor)

    def merge_profiles(
        self,
        duplicate_id: str,
        keep_id: str,
        merge_id: str,
        fields_to_merge: Iterable[str] = (),
        acting_user_id: str = "system",
        override_fields: Iterable[str] = (),
    ) -> MergeResult:
        return self.merger.merge(duplicate_id, keep_id, merge_id, fields_to_merge, acting_user_id, override_fields)

    def merge_history_for(self, profile_id: str) -> list[MergeHistory]:
        return self.merger.history_for(profile_id)

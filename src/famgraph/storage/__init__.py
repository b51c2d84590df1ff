"""SQLite persistence: schema, transactions and typed repositories."""

from .database import Database, now_iso
from .repositories import (
    AncestorCacheRepository,
    AuditRepository,
    ConnectionRequestRepository,
    ContentRepository,
    DuplicateRepository,
    MergeHistoryRepository,
    NotificationRepository,
    ProfileRepository,
    RelationshipRepository,
)

__all__ = [
    "Database",
    "now_iso",
    "ProfileRepository",
    "RelationshipRepository",
    "AncestorCacheRepository",
    "ConnectionRequestRepository",
    "DuplicateRepository",
    "MergeHistoryRepository",
    "ContentRepository",
    "AuditRepository",
    "NotificationRepository",
]

"""Contracts for the services this engine talks to, plus default adapters.

Notification delivery and audit storage belong to the surrounding
platform. The defaults here persist to the same SQLite store (so tests and
the CLI can inspect them) or just log.
"""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import structlog

from .models import AuditRecord, Notification, Profile
from .storage import AuditRepository, Database, NotificationRepository, ProfileRepository

logger = structlog.get_logger(__name__)


@runtime_checkable
class ProfileDirectory(Protocol):
    """Read access to profiles owned by profile management."""

    def get_profile(self, profile_id: str) -> Profile | None:
        ...


@runtime_checkable
class NotificationSink(Protocol):
    """Fire-and-forget notifications. Callers log failures and move on."""

    def create_notification(
        self,
        event_type: str,
        actor_id: str | None,
        primary_profile_id: str,
        payload: dict[str, Any],
    ) -> None:
        ...


@runtime_checkable
class AuditLog(Protocol):
    """Append-only audit trail."""

    def log_audit(self, action: str, entity_type: str, entity_id: str | None, payload: dict[str, Any]) -> None:
        ...


class StoredProfileDirectory:
    def __init__(self, db: Database) -> None:
        self.db = db

    def get_profile(self, profile_id: str) -> Profile | None:
        return self.db.run_read(lambda conn: ProfileRepository(conn).get(profile_id))


class StoredNotificationSink:
    def __init__(self, db: Database) -> None:
        self.db = db

    def create_notification(
        self,
        event_type: str,
        actor_id: str | None,
        primary_profile_id: str,
        payload: dict[str, Any],
    ) -> None:
        note = Notification(
            event_type=event_type,
            actor_id=actor_id,
            primary_profile_id=primary_profile_id,
            payload=payload,
        )
        with self.db.transaction() as conn:
            NotificationRepository(conn).insert(note)

    def list_for(self, profile_id: str) -> list[Notification]:
        return self.db.run_read(lambda conn: NotificationRepository(conn).list_for(profile_id))


class LoggingNotificationSink:
    def create_notification(
        self,
        event_type: str,
        actor_id: str | None,
        primary_profile_id: str,
        payload: dict[str, Any],
    ) -> None:
        logger.info(
            "notification.created",
            event_type=event_type,
            actor_id=actor_id,
            primary_profile_id=primary_profile_id,
            payload=payload,
        )


class StoredAuditLog:
    def __init__(self, db: Database) -> None:
        self.db = db

    def log_audit(self, action: str, entity_type: str, entity_id: str | None, payload: dict[str, Any]) -> None:
        record = AuditRecord(action=action, entity_type=entity_type, entity_id=entity_id, payload=payload)
        with self.db.transaction() as conn:
            AuditRepository(conn).insert(record)

    def records(self, *, entity_type: str | None = None, entity_id: str | None = None) -> list[AuditRecord]:
        return self.db.run_read(
            lambda conn: AuditRepository(conn).list(entity_type=entity_type, entity_id=entity_id)
        )


class LoggingAuditLog:
    def log_audit(self, action: str, entity_type: str, entity_id: str | None, payload: dict[str, Any]) -> None:
        logger.info("audit.recorded", action=action, entity_type=entity_type, entity_id=entity_id, payload=payload)


def notify_safely(
    sink: NotificationSink | None,
    event_type: str,
    actor_id: str | None,
    primary_profile_id: str,
    payload: dict[str, Any],
) -> None:
    """Deliver a notification after commit; failures are logged, never raised."""
    if sink is None:
        return
    try:
        sink.create_notification(event_type, actor_id, primary_profile_id, payload)
    except Exception as exc:
        logger.warning("notification.failed", event_type=event_type, profile_id=primary_profile_id, error=str(exc))


def audit_safely(audit: AuditLog | None, action: str, entity_type: str, entity_id: str | None, payload: dict[str, Any]) -> None:
    """Record an audit entry for an already-committed change.

    The change cannot be undone at this point, so a failing audit sink is
    reported at error level instead of failing the operation.
    """
    if audit is None:
        return
    try:
        audit.log_audit(action, entity_type, entity_id, payload)
    except Exception as exc:
        logger.error("audit.failed", action=action, entity_type=entity_type, entity_id=entity_id, error=str(exc))

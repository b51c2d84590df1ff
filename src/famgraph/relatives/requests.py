"""Connection request state machine.

pending -> accepted | declined | cancelled; every non-pending state is
terminal. Transitions are compare-and-swaps on ``status = 'pending'``, so a
request can be answered exactly once even under concurrent callers.
"""
from __future__ import annotations

from typing import Literal, get_args

import structlog

from ..collaborators import AuditLog, NotificationSink, audit_safely, notify_safely
from ..errors import ConflictError, ForbiddenError, NotFoundError, ValidationError, coerce_enum
from ..graph import AncestorIndex, ProfileGraphStore
from ..locks import SubtreeLockManager
from ..models import ConnectionRequest, EdgeSource, EdgeType, Provenance, RequestStatus
from ..storage import ConnectionRequestRepository, Database

logger = structlog.get_logger(__name__)

RequestDirection = Literal["incoming", "outgoing", "all"]

# Who may move a request into each terminal state
_RECIPIENT_ONLY = (RequestStatus.ACCEPTED, RequestStatus.DECLINED)
_SENDER_ONLY = (RequestStatus.CANCELLED,)


class ConnectionRequestManager:
    def __init__(
        self,
        db: Database,
        *,
        notifications: NotificationSink | None = None,
        audit: AuditLog | None = None,
        locks: SubtreeLockManager | None = None,
        max_depth: int | None = None,
    ) -> None:
        self.db = db
        self.notifications = notifications
        self.audit = audit
        self.locks = locks or SubtreeLockManager()
        self.max_depth = max_depth

    def create(
        self,
        from_id: str | None,
        to_id: str | None,
        shared_ancestor_id: str | None = None,
        message: str | None = None,
        relationship_description: str | None = None,
    ) -> ConnectionRequest:
        if not from_id or not to_id:
            raise ValidationError("from and to profile ids are required", "connection_request")
        if from_id == to_id:
            raise ValidationError("cannot send a connection request to yourself", "connection_request")

        with self.locks.hold([from_id, to_id]):
            with self.db.transaction() as conn:
                store = ProfileGraphStore(conn, AncestorIndex(conn, self.max_depth))
                store.require_profile(from_id)
                target = store.require_profile(to_id)
                if not target.allow_matching:
                    raise ForbiddenError("user does not accept connection requests", "profile", to_id)
                if shared_ancestor_id:
                    store.require_profile(shared_ancestor_id, include_inactive=True)

                repo = ConnectionRequestRepository(conn)
                existing = repo.find_active_between(from_id, to_id)
                if existing is not None:
                    raise ConflictError(
                        f"a {existing.status.value} request already exists for this pair",
                        "connection_request",
                        existing.id,
                    )
                request = repo.insert(
                    ConnectionRequest(
                        from_user=from_id,
                        to_user=to_id,
                        shared_ancestor_id=shared_ancestor_id,
                        message=message,
                        relationship_description=relationship_description,
                    )
                )

        logger.info("request.created", request_id=request.id, from_user=from_id, to_user=to_id)
        notify_safely(
            self.notifications,
            "connection_request_received",
            from_id,
            to_id,
            {"request_id": request.id, "shared_ancestor_id": shared_ancestor_id},
        )
        audit_safely(
            self.audit,
            "connection_request_created",
            "connection_request",
            request.id,
            {"from_user": from_id, "to_user": to_id, "shared_ancestor_id": shared_ancestor_id},
        )
        return request

    def get(self, request_id: str) -> ConnectionRequest:
        request = self.db.run_read(lambda conn: ConnectionRequestRepository(conn).get(request_id))
        if request is None:
            raise NotFoundError("connection request not found", "connection_request", request_id)
        return request

    def update_status(self, request_id: str, acting_user_id: str, new_status: RequestStatus | str) -> ConnectionRequest:
        new_status = coerce_enum(RequestStatus, new_status, "connection_request", request_id)
        if new_status is RequestStatus.PENDING:
            raise ValidationError("a request cannot be moved back to pending", "connection_request", request_id)

        request = self.get(request_id)
        if not request.involves(acting_user_id):
            raise ForbiddenError("actor is not a party to this request", "connection_request", request_id)
        if new_status in _RECIPIENT_ONLY and acting_user_id != request.to_user:
            raise ForbiddenError(f"only the recipient can mark a request {new_status.value}", "connection_request", request_id)
        if new_status in _SENDER_ONLY and acting_user_id != request.from_user:
            raise ForbiddenError("only the sender can cancel a request", "connection_request", request_id)
        if request.status.is_terminal:
            raise ConflictError(f"request is already {request.status.value}", "connection_request", request_id)

        with self.locks.hold([request.from_user, request.to_user]):
            with self.db.transaction() as conn:
                repo = ConnectionRequestRepository(conn)
                if repo.transition(request_id, new_status) == 0:
                    raise ConflictError("request was answered concurrently", "connection_request", request_id)
                if new_status is RequestStatus.ACCEPTED:
                    self._link(conn, request, acting_user_id)
                updated = repo.get(request_id)

        assert updated is not None
        logger.info("request.transitioned", request_id=request_id, status=new_status.value, actor=acting_user_id)
        if new_status in _RECIPIENT_ONLY:
            notify_safely(
                self.notifications,
                f"connection_request_{new_status.value}",
                acting_user_id,
                request.from_user,
                {"request_id": request_id, "shared_ancestor_id": request.shared_ancestor_id},
            )
        audit_safely(
            self.audit,
            f"connection_request_{new_status.value}",
            "connection_request",
            request_id,
            {"actor": acting_user_id, "from_user": request.from_user, "to_user": request.to_user},
        )
        return updated

    def _link(self, conn, request: ConnectionRequest, acting_user_id: str) -> None:
        """Create the discovered_relative edge for an accepted request."""
        index = AncestorIndex(conn, self.max_depth)
        store = ProfileGraphStore(conn, index)
        if not store.edges.find(EdgeType.DISCOVERED_RELATIVE, request.from_user, request.to_user):
            store.add_edge(
                request.from_user,
                request.to_user,
                EdgeType.DISCOVERED_RELATIVE,
                provenance=Provenance(
                    source=EdgeSource.CONNECTION_REQUEST,
                    source_ref=request.id,
                    created_by=acting_user_id,
                ),
            )
        index.refresh(index.affected_by(request.from_user) + index.affected_by(request.to_user))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_requests(
        self,
        user_id: str,
        status: RequestStatus | str = "all",
        direction: RequestDirection = "all",
    ) -> list[ConnectionRequest]:
        if direction not in get_args(RequestDirection):
            raise ValidationError(f"unknown direction {direction!r}", "connection_request")
        wanted = None if status == "all" else coerce_enum(RequestStatus, status, "connection_request")
        return self.db.run_read(
            lambda conn: ConnectionRequestRepository(conn).list_for(user_id, status=wanted, direction=direction)
        )

    def pending_count(self, user_id: str) -> int:
        return self.db.run_read(lambda conn: ConnectionRequestRepository(conn).pending_count(user_id))

    def has_active_request(self, a: str, b: str) -> bool:
        return self.db.run_read(lambda conn: ConnectionRequestRepository(conn).find_active_between(a, b)) is not None

"""Tests for the connection request lifecycle."""
from __future__ import annotations

import threading

import pytest

from famgraph.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from famgraph.models import EdgeSource, EdgeType, RequestStatus


@pytest.fixture()
def pair(person):
    return person("Filip", "Ivanov"), person("Kira", "Petrova")


class TestCreate:
    def test_create_pending(self, svc, pair):
        a, b = pair
        req = svc.create_connection_request(a.id, b.id, message="Hi, I think we are cousins")
        assert req.status is RequestStatus.PENDING
        assert req.from_user == a.id
        assert svc.pending_request_count(b.id) == 1
        assert svc.pending_request_count(a.id) == 0

    def test_validation(self, svc, pair):
        a, _ = pair
        with pytest.raises(ValidationError):
            svc.create_connection_request(a.id, a.id)
        with pytest.raises(ValidationError):
            svc.create_connection_request(a.id, None)
        with pytest.raises(NotFoundError):
            svc.create_connection_request(a.id, "ghost")

    def test_target_opted_out(self, svc, pair):
        a, b = pair
        svc.update_matching_preferences(b.id, allow_matching=False)
        with pytest.raises(ForbiddenError):
            svc.create_connection_request(a.id, b.id)

    def test_one_active_request_per_pair(self, svc, pair):
        a, b = pair
        svc.create_connection_request(a.id, b.id)
        with pytest.raises(ConflictError):
            svc.create_connection_request(b.id, a.id)

    def test_recipient_notified_and_audited(self, svc, pair):
        a, b = pair
        req = svc.create_connection_request(a.id, b.id)
        (note,) = svc.notifications.list_for(b.id)
        assert note.event_type == "connection_request_received"
        assert note.payload["request_id"] == req.id
        actions = [r.action for r in svc.audit.records(entity_id=req.id)]
        assert actions == ["connection_request_created"]


class TestTransitions:
    def test_accept_creates_discovered_edge(self, svc, pair):
        a, b = pair
        req = svc.create_connection_request(a.id, b.id)
        updated = svc.update_connection_request_status(req.id, b.id, "accepted")
        assert updated.status is RequestStatus.ACCEPTED
        assert updated.responded_at is not None

        (edge,) = svc.relationships_of(a.id)
        assert edge.type is EdgeType.DISCOVERED_RELATIVE
        assert edge.provenance.source is EdgeSource.CONNECTION_REQUEST
        assert edge.provenance.source_ref == req.id

        (note,) = svc.notifications.list_for(a.id)
        assert note.event_type == "connection_request_accepted"

    def test_only_recipient_answers(self, svc, pair):
        a, b = pair
        req = svc.create_connection_request(a.id, b.id)
        with pytest.raises(ForbiddenError):
            svc.update_connection_request_status(req.id, a.id, "accepted")
        with pytest.raises(ForbiddenError):
            svc.update_connection_request_status(req.id, b.id, "cancelled")

    def test_sender_cancels(self, svc, pair):
        a, b = pair
        req = svc.create_connection_request(a.id, b.id)
        assert svc.update_connection_request_status(req.id, a.id, "cancelled").status is RequestStatus.CANCELLED
        assert svc.pending_request_count(b.id) == 0

    def test_terminal_states_are_final(self, svc, pair):
        a, b = pair
        req = svc.create_connection_request(a.id, b.id)
        svc.update_connection_request_status(req.id, b.id, "accepted")
        with pytest.raises(ConflictError):
            svc.update_connection_request_status(req.id, b.id, "accepted")
        with pytest.raises(ConflictError):
            svc.update_connection_request_status(req.id, b.id, "declined")
        assert len(svc.relationships_of(a.id)) == 1

    def test_bad_status(self, svc, pair):
        a, b = pair
        req = svc.create_connection_request(a.id, b.id)
        with pytest.raises(ValidationError):
            svc.update_connection_request_status(req.id, b.id, "maybe")
        with pytest.raises(ValidationError):
            svc.update_connection_request_status(req.id, b.id, "pending")
        with pytest.raises(NotFoundError):
            svc.update_connection_request_status("nope", b.id, "accepted")

    def test_decline_allows_new_request(self, svc, pair):
        a, b = pair
        req = svc.create_connection_request(a.id, b.id)
        svc.update_connection_request_status(req.id, b.id, "declined")
        assert svc.relationships_of(a.id) == []
        again = svc.create_connection_request(a.id, b.id)
        assert again.id != req.id

    def test_concurrent_accepts_link_once(self, svc, pair):
        a, b = pair
        req = svc.create_connection_request(a.id, b.id)
        outcomes: list[str] = []
        barrier = threading.Barrier(4)

        def accept():
            barrier.wait()
            try:
                svc.update_connection_request_status(req.id, b.id, "accepted")
                outcomes.append("ok")
            except ConflictError:
                outcomes.append("conflict")

        threads = [threading.Thread(target=accept) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count("conflict") == 3
        assert len(svc.relationships_of(a.id)) == 1


class TestQueries:
    def test_list_filters(self, svc, person, pair):
        a, b = pair
        c = person("Olga", "Petrova")
        r1 = svc.create_connection_request(a.id, b.id)
        r2 = svc.create_connection_request(c.id, a.id)
        svc.update_connection_request_status(r2.id, a.id, "declined")

        assert {r.id for r in svc.list_connection_requests(a.id)} == {r1.id, r2.id}
        assert [r.id for r in svc.list_connection_requests(a.id, direction="outgoing")] == [r1.id]
        assert [r.id for r in svc.list_connection_requests(a.id, direction="incoming")] == [r2.id]
        assert [r.id for r in svc.list_connection_requests(a.id, status="pending")] == [r1.id]

    def test_has_active_request(self, svc, pair):
        a, b = pair
        assert not svc.requests.has_active_request(a.id, b.id)
        req = svc.create_connection_request(a.id, b.id)
        assert svc.requests.has_active_request(b.id, a.id)
        svc.update_connection_request_status(req.id, a.id, "cancelled")
        assert not svc.requests.has_active_request(a.id, b.id)

    def test_outsider_cannot_transition(self, svc, person, pair):
        a, b = pair
        req = svc.create_connection_request(a.id, b.id)
        with pytest.raises(ForbiddenError):
            svc.update_connection_request_status(req.id, person("Eve").id, "cancelled")

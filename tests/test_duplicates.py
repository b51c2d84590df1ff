"""Tests for duplicate scoring, scanning and review."""
from __future__ import annotations

import pytest

from famgraph.duplicates import DuplicateDetector
from famgraph.errors import ConflictError, NotFoundError, ValidationError
from famgraph.graph import AncestorIndex, ProfileGraphStore
from famgraph.models import ConfidenceLevel, DuplicateStatus, Profile


@pytest.fixture()
def detector(db):
    return DuplicateDetector(db, min_confidence=50, chunk_size=1)


class TestScore:
    def test_exact_name_and_birth_date(self, detector):
        a = Profile(first_name="Anna", last_name="Ivanova", birth_date="1985-03-14")
        b = Profile(first_name="anna", last_name="IVANOVA", birth_date="1985-03-14")
        score, reasons = detector.score(a, b)
        assert score == 80
        assert reasons.exact_name_match and reasons.exact_birth_date_match
        assert ConfidenceLevel.for_score(score) is ConfidenceLevel.VERY_HIGH

    def test_first_name_and_year(self, detector):
        a = Profile(first_name="Anna", last_name="Smirnova", birth_date="1985")
        b = Profile(first_name="Anna", last_name="Ivanova", birth_date="1985-03-14")
        score, reasons = detector.score(a, b)
        assert score == 40
        assert reasons.first_name_match and reasons.birth_year_match
        assert not reasons.exact_birth_date_match

    def test_fuzzy_first_name(self, detector):
        a = Profile(first_name="Jonathon", last_name="Smith")
        b = Profile(first_name="Jonathan", last_name="Smith")
        score, reasons = detector.score(a, b)
        assert reasons.fuzzy_name_match
        assert reasons.fuzzy_name_similarity == pytest.approx(0.875)
        assert score == 35

    def test_dissimilar_first_names_are_not_fuzzy(self, detector):
        a = Profile(first_name="John", last_name="Smith")
        b = Profile(first_name="Peter", last_name="Smith")
        score, reasons = detector.score(a, b)
        assert not reasons.fuzzy_name_match
        assert score == 15

    def test_city_takes_precedence_over_place(self, detector):
        a = Profile(first_name="X", birth_city="Kazan", birth_place="Kazan, Russia", birth_country="Russia")
        b = Profile(first_name="Y", birth_city="Kazan", birth_country="russia")
        score, reasons = detector.score(a, b)
        assert reasons.birth_city_match and reasons.birth_country_match
        assert not reasons.birth_place_match
        assert score == 20

    def test_relatives_are_capped(self, detector):
        a, b = Profile(first_name="X"), Profile(first_name="Y")
        score, reasons = detector.score(a, b, ["p1", "p2", "p3"])
        assert score == 20
        assert reasons.shared_relatives == ["p1", "p2", "p3"]

    def test_total_is_capped_at_100(self, detector):
        fields = dict(
            first_name="Anna",
            last_name="Ivanova",
            maiden_name="Petrova",
            birth_date="1985-03-14",
            birth_city="Kazan",
            birth_country="Russia",
        )
        score, _ = detector.score(Profile(**fields), Profile(**fields), ["p1", "p2"])
        assert score == 100

    def test_blocking_keys(self):
        p = Profile(first_name="Anna Maria", last_name="Ivanova", birth_date="1985", birth_city="Kazan")
        keys = DuplicateDetector.blocking_keys(p)
        assert {"ln:ivanova", "fn:anna", "bp:1985:kazan"} <= keys
        assert any(k.startswith("sx:I") for k in keys)
        assert not any(k.startswith("sx:") for k in DuplicateDetector.blocking_keys(Profile(last_name="Иванова")))


class TestScan:
    def test_finds_and_records_once(self, svc, detector, person, family):
        twin = person("Anna", "Ivanova", birth_date="1985-03-14", birth_city="Kazan")
        summary = detector.scan()
        assert summary.profiles_scanned == 5
        assert summary.duplicates_found == summary.duplicates_inserted == 1
        (dup,) = summary.preview
        assert {dup.profile_a, dup.profile_b} == {family["anna"].id, twin.id}
        assert dup.confidence_score == 95
        assert dup.profile_a < dup.profile_b

        again = detector.scan()
        assert again.duplicates_inserted == 0
        assert again.duplicates_found == 0

    def test_dry_run_writes_nothing(self, svc, detector, person, family):
        person("Anna", "Ivanova", birth_date="1985-03-14")
        summary = detector.scan(dry_run=True)
        assert summary.duplicates_found == 1
        assert summary.duplicates_inserted == 0
        assert svc.list_potential_duplicates().total == 0

    def test_unrelated_blocks_are_not_compared(self, detector, person):
        person("Zed", "Alpha")
        person("Yan", "Beta")
        summary = detector.scan(min_confidence=0)
        assert summary.pairs_compared == 0

    def test_inactive_profiles_skipped(self, db, detector, person):
        a = person("Anna", "Ivanova", birth_date="1985-03-14")
        person("Anna", "Ivanova", birth_date="1985-03-14")
        with db.transaction() as conn:
            ProfileGraphStore(conn, AncestorIndex(conn)).deactivate_profile(a.id)
        assert detector.scan().duplicates_found == 0


@pytest.fixture()
def flagged(svc, person):
    """Three scanned duplicate pairs with scores 95, 80 and 80."""
    for first, city in (("Anna", "Kazan"), ("Boris", None), ("Vera", None)):
        for _ in range(2):
            person(first, "Orlova", birth_date="1970-01-01", birth_city=city)
    svc.scan_duplicates(min_confidence=80)
    return svc.list_potential_duplicates(page_size=100).items


class TestReviewAndList:
    def test_paging(self, svc, flagged):
        assert len(flagged) == 3
        first = svc.list_potential_duplicates(page=1, page_size=2)
        assert first.total == 3 and first.has_next and len(first.items) == 2
        assert first.items[0].duplicate.confidence_score == 95
        second = svc.list_potential_duplicates(page=2, page_size=2)
        assert len(second.items) == 1 and not second.has_next

    def test_list_carries_profiles(self, svc, flagged):
        item = flagged[0]
        assert item.profile_a.id == item.duplicate.profile_a
        assert item.relationship_counts == {"profile_a": 0, "profile_b": 0}

    def test_filters(self, svc, flagged):
        assert svc.list_potential_duplicates(min_confidence=90).total == 1
        svc.review_duplicate(flagged[0].duplicate.id, "rejected", "admin")
        assert svc.list_potential_duplicates(status="pending").total == 2
        assert svc.list_potential_duplicates(status=DuplicateStatus.REJECTED).total == 1

    def test_bad_paging(self, svc):
        with pytest.raises(ValidationError):
            svc.list_potential_duplicates(page=0)
        with pytest.raises(ValidationError):
            svc.list_potential_duplicates(page_size=101)

    def test_review_transitions(self, svc, flagged):
        dup_id = flagged[0].duplicate.id
        reviewed = svc.review_duplicate(dup_id, "dismissed", "admin")
        assert reviewed.status is DuplicateStatus.DISMISSED
        assert reviewed.reviewed_by == "admin"
        with pytest.raises(ConflictError):
            svc.review_duplicate(dup_id, "rejected", "admin")

    def test_review_rejects_merge_status(self, svc, flagged):
        with pytest.raises(ValidationError):
            svc.review_duplicate(flagged[0].duplicate.id, "merged", "admin")
        with pytest.raises(NotFoundError):
            svc.review_duplicate("missing", "rejected", "admin")

"""Duplicate profile detection.

Profiles are read in keyset-paginated chunks and grouped into blocks
(surname, Soundex of a Latin surname, first name, birth year + place).
Only pairs that share a block are scored.
"""
from __future__ import annotations

import sqlite3
from collections import defaultdict
from collections.abc import Iterator
from typing import ClassVar

import structlog
from rapidfuzz import fuzz

from ..collaborators import AuditLog, audit_safely
from ..config import CONFIG
from ..errors import ConflictError, NotFoundError, ValidationError, coerce_enum
from ..models import (
    DuplicateStatus,
    DuplicateWithProfiles,
    EdgeType,
    MatchReasons,
    Page,
    PotentialDuplicate,
    Profile,
    ScanSummary,
)
from ..storage import Database, DuplicateRepository, ProfileRepository, RelationshipRepository
from ..utils.normalize import is_latin, normalize_name, normalize_place, soundex

logger = structlog.get_logger(__name__)

_REVIEW_STATUSES = (DuplicateStatus.REJECTED, DuplicateStatus.DISMISSED)


class DuplicateDetector:
    """Scores profile pairs on a 0-100 scale and records likely duplicates."""

    WEIGHTS: ClassVar[dict[str, int]] = {
        "exact_name": 50,
        "first_name": 25,
        "last_name": 15,
        "maiden_name": 10,
        "nickname": 5,
        "fuzzy_name": 20,
        "exact_birth_date": 30,
        "birth_year": 15,
        "birth_city": 15,
        "birth_country": 5,
        "birth_place": 15,
        "shared_relative": 10,
    }

    CAPS: ClassVar[dict[str, int]] = {
        "name": 50,
        "date": 30,
        "place": 20,
        "relatives": 20,
    }

    FUZZY_THRESHOLD: ClassVar[float] = 0.8

    def __init__(
        self,
        db: Database,
        *,
        audit: AuditLog | None = None,
        min_confidence: float | None = None,
        chunk_size: int | None = None,
    ) -> None:
        self.db = db
        self.audit = audit
        self.min_confidence = CONFIG.duplicate_min_confidence if min_confidence is None else min_confidence
        self.chunk_size = chunk_size or CONFIG.scan_chunk_size

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def score(self, a: Profile, b: Profile, shared_relatives: list[str] | None = None) -> tuple[float, MatchReasons]:
        w = self.WEIGHTS
        reasons = MatchReasons()

        first_a, first_b = normalize_name(a.first_name), normalize_name(b.first_name)
        last_a, last_b = normalize_name(a.last_name), normalize_name(b.last_name)

        name = 0
        if first_a and last_a and first_a == first_b and last_a == last_b:
            reasons.exact_name_match = True
            name += w["exact_name"]
        else:
            if first_a and first_a == first_b:
                reasons.first_name_match = True
                name += w["first_name"]
            elif first_a and first_b:
                similarity = fuzz.ratio(first_a, first_b) / 100.0
                if similarity >= self.FUZZY_THRESHOLD:
                    reasons.fuzzy_name_match = True
                    reasons.fuzzy_name_similarity = round(similarity, 4)
                    name += w["fuzzy_name"]
            if last_a and last_a == last_b:
                reasons.last_name_match = True
                name += w["last_name"]

        maiden_a, maiden_b = normalize_name(a.maiden_name), normalize_name(b.maiden_name)
        if maiden_a and maiden_a == maiden_b:
            reasons.maiden_name_match = True
            name += w["maiden_name"]

        nick_a, nick_b = normalize_name(a.nickname), normalize_name(b.nickname)
        if (nick_a and nick_a in (nick_b, first_b)) or (nick_b and nick_b == first_a):
            reasons.nickname_match = True
            name += w["nickname"]

        date = 0
        if a.birth_date and b.birth_date and len(a.birth_date) == 10 and a.birth_date == b.birth_date:
            reasons.exact_birth_date_match = True
            date += w["exact_birth_date"]
        elif a.birth_year and a.birth_year == b.birth_year:
            reasons.birth_year_match = True
            date += w["birth_year"]

        place = 0
        city_a, city_b = normalize_place(a.birth_city), normalize_place(b.birth_city)
        if city_a and city_a == city_b:
            reasons.birth_city_match = True
            place += w["birth_city"]
        elif not (city_a and city_b):
            place_a, place_b = normalize_place(a.birthplace), normalize_place(b.birthplace)
            if place_a and place_a == place_b:
                reasons.birth_place_match = True
                place += w["birth_place"]
        country_a, country_b = normalize_place(a.birth_country), normalize_place(b.birth_country)
        if country_a and country_a == country_b:
            reasons.birth_country_match = True
            place += w["birth_country"]

        relatives = 0
        if shared_relatives:
            reasons.shared_relatives = sorted(shared_relatives)
            relatives = w["shared_relative"] * len(shared_relatives)

        total = (
            min(name, self.CAPS["name"])
            + min(date, self.CAPS["date"])
            + min(place, self.CAPS["place"])
            + min(relatives, self.CAPS["relatives"])
        )
        return float(min(total, 100)), reasons

    @staticmethod
    def blocking_keys(p: Profile) -> set[str]:
        keys: set[str] = set()
        for surname in (p.last_name, p.maiden_name):
            norm = normalize_name(surname)
            if not norm:
                continue
            keys.add(f"ln:{norm}")
            if is_latin(norm):
                keys.add(f"sx:{soundex(norm)}")
        first = normalize_name(p.first_name)
        if first:
            keys.add(f"fn:{first.split()[0]}")
        place = normalize_place(p.birthplace)
        if p.birth_year and place:
            keys.add(f"bp:{p.birth_year}:{place}")
        return keys

    # ------------------------------------------------------------------
    # Scan
    # ------------------------------------------------------------------

    def _chunks(self) -> Iterator[list[Profile]]:
        after: str | None = None
        while True:
            chunk = self.db.run_read(lambda conn: ProfileRepository(conn).chunk_after(after, self.chunk_size))
            if not chunk:
                return
            yield chunk
            after = chunk[-1].id

    @staticmethod
    def _relatives(conn: sqlite3.Connection, profile_id: str) -> set[str]:
        edges = RelationshipRepository(conn)
        return set(edges.parents_of(profile_id)) | set(edges.symmetric_of(profile_id, EdgeType.SPOUSE))

    def scan(self, min_confidence: float | None = None, *, dry_run: bool = False) -> ScanSummary:
        threshold = self.min_confidence if min_confidence is None else min_confidence
        summary = ScanSummary()
        blocks: dict[str, list[Profile]] = defaultdict(list)
        relatives: dict[str, set[str]] = {}

        for chunk in self._chunks():

            # pure apart from the relatives memo, so a retried read starts clean
            def collect(conn: sqlite3.Connection) -> tuple[list[PotentialDuplicate], int, dict[str, list[Profile]]]:
                repo = DuplicateRepository(conn)
                found: list[PotentialDuplicate] = []
                compared = 0
                local: dict[str, list[Profile]] = defaultdict(list)
                for p in chunk:
                    keys = self.blocking_keys(p)
                    others = {q.id: q for k in keys for q in (*blocks.get(k, ()), *local[k])}
                    for q in others.values():
                        if repo.exists_pair(p.id, q.id):
                            continue
                        compared += 1
                        for pid in (p.id, q.id):
                            if pid not in relatives:
                                relatives[pid] = self._relatives(conn, pid)
                        shared = sorted(relatives[p.id] & relatives[q.id])
                        score, reasons = self.score(q, p, shared)
                        if score >= threshold:
                            low, high = sorted((p.id, q.id))
                            found.append(
                                PotentialDuplicate(
                                    profile_a=low,
                                    profile_b=high,
                                    confidence_score=score,
                                    match_reasons=reasons,
                                )
                            )
                    for k in keys:
                        local[k].append(p)
                return found, compared, local

            found, compared, local = self.db.run_read(collect)
            for k, members in local.items():
                blocks[k].extend(members)
            summary.profiles_scanned += len(chunk)
            summary.pairs_compared += compared
            summary.duplicates_found += len(found)
            summary.preview.extend(found)
            if found and not dry_run:
                with self.db.transaction() as conn:
                    repo = DuplicateRepository(conn)
                    summary.duplicates_inserted += sum(1 for d in found if repo.insert_if_absent(d))

        logger.info(
            "duplicates.scanned",
            profiles=summary.profiles_scanned,
            compared=summary.pairs_compared,
            found=summary.duplicates_found,
            inserted=summary.duplicates_inserted,
            dry_run=dry_run,
        )
        return summary

    # ------------------------------------------------------------------
    # Review and listing
    # ------------------------------------------------------------------

    def get(self, duplicate_id: str) -> PotentialDuplicate:
        dup = self.db.run_read(lambda conn: DuplicateRepository(conn).get(duplicate_id))
        if dup is None:
            raise NotFoundError("duplicate not found", "potential_duplicate", duplicate_id)
        return dup

    def review(self, duplicate_id: str, status: DuplicateStatus | str, actor: str) -> PotentialDuplicate:
        status = coerce_enum(DuplicateStatus, status, "potential_duplicate", duplicate_id)
        if status not in _REVIEW_STATUSES:
            raise ValidationError("review may only reject or dismiss", "potential_duplicate", duplicate_id)

        with self.db.transaction() as conn:
            repo = DuplicateRepository(conn)
            if repo.get(duplicate_id) is None:
                raise NotFoundError("duplicate not found", "potential_duplicate", duplicate_id)
            if repo.transition(duplicate_id, status, actor) == 0:
                raise ConflictError("duplicate is no longer pending", "potential_duplicate", duplicate_id)
            dup = repo.get(duplicate_id)

        logger.info("duplicates.reviewed", duplicate_id=duplicate_id, status=status.value, actor=actor)
        audit_safely(self.audit, f"duplicate_{status.value}", "potential_duplicate", duplicate_id, {"actor": actor})
        assert dup is not None
        return dup

    def list(
        self,
        status: DuplicateStatus | str | None = None,
        min_confidence: float = 0.0,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[DuplicateWithProfiles]:
        if page < 1 or not 1 <= page_size <= 100:
            raise ValidationError("page must be >= 1 and page_size within 1..100", "potential_duplicate")
        wanted = coerce_enum(DuplicateStatus, status, "potential_duplicate") if status else None

        def run(conn: sqlite3.Connection) -> Page[DuplicateWithProfiles]:
            repo = DuplicateRepository(conn)
            rows = repo.list(
                status=wanted,
                min_confidence=min_confidence,
                offset=(page - 1) * page_size,
                limit=page_size,
            )
            profiles = ProfileRepository(conn).get_many(pid for d in rows for pid in (d.profile_a, d.profile_b))
            edges = RelationshipRepository(conn)
            items = [
                DuplicateWithProfiles(
                    duplicate=d,
                    profile_a=profiles.get(d.profile_a),
                    profile_b=profiles.get(d.profile_b),
                    relationship_counts={
                        "profile_a": sum(edges.counts_by_type(d.profile_a).values()),
                        "profile_b": sum(edges.counts_by_type(d.profile_b).values()),
                    },
                )
                for d in rows
            ]
            total = repo.count(status=wanted, min_confidence=min_confidence)
            return Page[DuplicateWithProfiles](items=items, page=page, page_size=page_size, total=total)

        return self.db.run_read(run)


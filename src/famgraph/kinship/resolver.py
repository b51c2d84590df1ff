"""Resolve kinship phrases to path expressions and, given ego, to people."""
from __future__ import annotations

import sqlite3

import structlog

from ..errors import FamGraphError, NotFoundError
from ..graph import ProfileGraphStore
from ..graph.paths import Step
from ..models import Gender, KinshipResolution, ResolutionSource
from ..storage import Database, ProfileRepository
from .lexicon import Interpretation, LexicalPatternTable, default_table

logger = structlog.get_logger(__name__)


class StructuredEvaluator:
    """Walks P/C/S/M hops literally from ego over the stored graph."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.store = ProfileGraphStore(conn)
        self.profiles = ProfileRepository(conn)

    def _step(self, node: str, step: Step) -> list[str]:
        if step is Step.P:
            return self.store.parents_of(node)
        if step is Step.C:
            return self.store.children_of(node)
        if step is Step.S:
            return self.store.siblings_of(node)
        return self.store.spouses_of(node, include_ex=False)

    def evaluate(self, ego_id: str, hops: tuple[tuple[Step, Gender | None], ...]) -> list[str]:
        if self.store.get_profile(ego_id) is None:
            raise NotFoundError("profile not found", "profile", ego_id)

        frontier = {ego_id}
        for step, gender in hops:
            reached = {target for node in frontier for target in self._step(node, step)}
            people = self.profiles.get_many(reached)
            frontier = {
                pid
                for pid, p in people.items()
                if p.is_active and (gender is None or p.gender in (Gender.UNKNOWN, gender))
            }
            if not frontier:
                break
        frontier.discard(ego_id)
        return sorted(frontier)


class KinshipPhraseResolver:
    """Two mutually exclusive strategies per call.

    With a known ego the structured evaluator runs first and is
    authoritative. The lexical table answers alone when there is no ego, no
    database, or when the structured walk raised or found nobody; lexical
    answers carry paths only, never person ids.
    """

    def __init__(self, db: Database | None = None, table: LexicalPatternTable | None = None) -> None:
        self.db = db
        self.table = table or default_table()

    def register(self, pattern: str, path_expr: str, gender: Gender | str | None = None) -> None:
        self.table.register(pattern, path_expr, gender)

    def _resolution(
        self,
        interp: Interpretation,
        locale: str,
        source: ResolutionSource,
        ids: list[str] | None = None,
    ) -> KinshipResolution:
        path = interp.path.canonical()
        return KinshipResolution(
            path_expr=str(path),
            label=path.label(locale, interp.gender),
            matched_person_ids=ids or [],
            source=source,
        )

    def _structured(self, ego_id: str, interps: list[Interpretation], locale: str) -> list[KinshipResolution]:
        assert self.db is not None

        def run(conn: sqlite3.Connection) -> list[tuple[Interpretation, list[str]]]:
            evaluator = StructuredEvaluator(conn)
            return [(i, evaluator.evaluate(ego_id, i.hops)) for i in interps]

        return [
            self._resolution(interp, locale, ResolutionSource.STRUCTURED, ids)
            for interp, ids in self.db.run_read(run)
            if ids
        ]

    def resolve(self, ego_id: str | None, phrase: str, locale: str = "en") -> list[KinshipResolution]:
        interps = self.table.interpret(phrase or "")
        if not interps:
            logger.info("kinship.unknown_phrase", phrase=phrase)
            return []

        if ego_id and self.db is not None:
            try:
                structured = self._structured(ego_id, interps, locale)
            except (FamGraphError, ValueError) as exc:
                # unreadable rows count as a failed walk, not a failed call
                logger.warning("kinship.structured_failed", ego_id=ego_id, phrase=phrase, error=str(exc))
            else:
                if structured:
                    return structured

        return [self._resolution(i, locale, ResolutionSource.LEXICAL) for i in interps]

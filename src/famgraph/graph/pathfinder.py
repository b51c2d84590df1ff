"""Shortest relationship path between two profiles.

The walk is breadth-first over every stored edge, in both directions:
parent edges read as ``P`` going up and ``C`` going down, spouse edges as
``M`` and sibling edges as ``S``. The resulting hop string is labelled with
the same path algebra the matcher and the phrase resolver use.
"""
from __future__ import annotations

import sqlite3
from typing import NamedTuple

import structlog

from ..errors import ValidationError
from ..models import (
    EdgeType,
    PathDirection,
    PathStep,
    Profile,
    RelationshipCategory,
    RelationshipPath,
)
from ..storage import ProfileRepository
from .paths import PathExpr, Step
from .store import ProfileGraphStore

logger = structlog.get_logger(__name__)

DEFAULT_PATH_DEPTH = 15
MAX_PATH_DEPTH = 20

_CATEGORIES = {
    "self": RelationshipCategory.DIRECT,
    "ancestor": RelationshipCategory.DIRECT,
    "descendant": RelationshipCategory.DIRECT,
    "sibling": RelationshipCategory.DIRECT,
    "spouse": RelationshipCategory.DIRECT,
    "aunt_uncle": RelationshipCategory.EXTENDED,
    "niece_nephew": RelationshipCategory.EXTENDED,
    "cousin": RelationshipCategory.COUSIN,
    "parent_in_law": RelationshipCategory.IN_LAW,
    "child_in_law": RelationshipCategory.IN_LAW,
    "spouse_sibling": RelationshipCategory.IN_LAW,
    "sibling_spouse": RelationshipCategory.IN_LAW,
    "step_parent": RelationshipCategory.IN_LAW,
    "step_child": RelationshipCategory.IN_LAW,
}

_DIRECTIONS = {Step.P: PathDirection.UP, Step.C: PathDirection.DOWN}

_TEXT = {
    "en": {"none": "No connection found", "unlinked": "Not connected", "linked": "Connected"},
    "ru": {"none": "Связь не найдена", "unlinked": "Не связаны", "linked": "Связаны"},
}


class Hop(NamedTuple):
    target: str
    step: Step | None
    relationship_type: str


def degree_of_separation(hops: int, locale: str = "en") -> str:
    if locale == "ru":
        if hops == 0:
            return "Это вы"
        if hops == 1:
            return "Прямое родство"
        return f"{hops}-я степень родства"
    if hops == 0:
        return "Same person"
    if hops == 1:
        return "Directly related"
    if 10 <= hops % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(hops % 10, "th")
    return f"{hops}{suffix} degree"


class RelationshipPathFinder:
    """Finds and labels the shortest chain of edges between two people."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.store = ProfileGraphStore(conn)
        self.profiles = ProfileRepository(conn)

    def _hops(self, node: str) -> list[Hop]:
        hops = []
        for edge in self.store.edges_of(node):
            if edge.type is EdgeType.PARENT:
                up = edge.person_b == node
                hops.append(Hop(edge.other(node), Step.P if up else Step.C, "parent" if up else "child"))
            elif edge.type is EdgeType.SPOUSE:
                hops.append(Hop(edge.other(node), Step.M, edge.type.value))
            elif edge.type is EdgeType.SIBLING:
                hops.append(Hop(edge.other(node), Step.S, edge.type.value))
            else:
                hops.append(Hop(edge.other(node), None, edge.type.value))
        # typed hops win over discovered_relative to the same person
        return sorted(hops, key=lambda h: (h.target, h.step is None, h.step.value if h.step else ""))

    def _search(self, start: str, goal: str, max_depth: int) -> dict[str, tuple[str, Hop] | None]:
        came_from: dict[str, tuple[str, Hop] | None] = {start: None}
        frontier = [start]
        depth = 0
        while frontier and goal not in came_from and depth < max_depth:
            depth += 1
            reached: dict[str, tuple[str, Hop]] = {}
            for node in frontier:
                for hop in self._hops(node):
                    if hop.target not in came_from and hop.target not in reached:
                        reached[hop.target] = (node, hop)
            people = self.profiles.get_many(reached)
            frontier = []
            for pid, link in reached.items():
                person = people.get(pid)
                if person is not None and person.is_active:
                    came_from[pid] = link
                    frontier.append(pid)
        return came_from

    def find(self, from_id: str, to_id: str, max_depth: int | None = None, locale: str = "en") -> RelationshipPath:
        if not from_id or not to_id:
            raise ValidationError("both profile ids are required", "profile")
        max_depth = DEFAULT_PATH_DEPTH if max_depth is None else max_depth
        if max_depth < 1:
            raise ValidationError("max_depth must be at least 1", "profile", from_id)
        max_depth = min(max_depth, MAX_PATH_DEPTH)
        text = _TEXT.get(locale, _TEXT["en"])

        start = self.store.require_profile(from_id)
        goal = self.store.require_profile(to_id)
        came_from = self._search(from_id, to_id, max_depth)
        if to_id not in came_from:
            logger.info("path.not_found", from_id=from_id, to_id=to_id, max_depth=max_depth)
            return RelationshipPath(
                from_id=from_id,
                to_id=to_id,
                found=False,
                label=text["none"],
                degree_of_separation=text["unlinked"],
            )

        # walk back from the goal
        chain: list[tuple[str, Hop | None]] = [(to_id, None)]
        node = to_id
        while came_from[node] is not None:
            prev, hop = came_from[node]
            chain.append((prev, hop))
            node = prev
        chain.reverse()

        people = self.profiles.get_many(pid for pid, _ in chain)
        people[from_id], people[to_id] = start, goal
        steps = [self._path_step(people[pid], hop) for pid, hop in chain]
        hops = [hop for _, hop in chain if hop is not None]

        if any(h.step is None for h in hops):
            path_expr, label, category = None, text["linked"], RelationshipCategory.OTHER
        else:
            expr = PathExpr(tuple(h.step for h in hops)).canonical()
            path_expr = str(expr)
            label = expr.label(locale, goal.gender)
            category = _CATEGORIES.get(expr.classify().kind, RelationshipCategory.OTHER)

        logger.info("path.found", from_id=from_id, to_id=to_id, hops=len(hops), path_expr=path_expr)
        return RelationshipPath(
            from_id=from_id,
            to_id=to_id,
            found=True,
            path_length=len(hops),
            steps=steps,
            path_expr=path_expr,
            label=label,
            category=category,
            degree_of_separation=degree_of_separation(len(hops), locale),
        )

    @staticmethod
    def _path_step(person: Profile, hop: Hop | None) -> PathStep:
        if hop is None:
            return PathStep(profile_id=person.id, display_name=person.display_name, gender=person.gender)
        return PathStep(
            profile_id=person.id,
            display_name=person.display_name,
            gender=person.gender,
            step=hop.step.value if hop.step else None,
            relationship_type=hop.relationship_type,
            direction=_DIRECTIONS.get(hop.step, PathDirection.LATERAL),
        )

"""Graph layer: profile store, ancestor index, path algebra and path finding."""

from .ancestors import AncestorIndex
from .pathfinder import RelationshipPathFinder, degree_of_separation
from .paths import KinshipClass, PathExpr, Step, compose
from .store import ProfileGraphStore

__all__ = [
    "AncestorIndex",
    "KinshipClass",
    "PathExpr",
    "ProfileGraphStore",
    "RelationshipPathFinder",
    "Step",
    "compose",
    "degree_of_separation",
]

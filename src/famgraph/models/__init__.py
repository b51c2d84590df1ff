"""Pydantic data models."""

from .content import AuditRecord, ContentItem, ContentKind, Notification
from .duplicates import (
    ConfidenceLevel,
    DuplicateStatus,
    DuplicateWithProfiles,
    MatchReasons,
    MergeHistory,
    MergeResult,
    Page,
    PotentialDuplicate,
    ScanSummary,
)
from .ids import new_id
from .profile import Gender, MatchingPreferences, Profile
from .relationship import (
    AncestorCacheEntry,
    EdgeQualifiers,
    EdgeSource,
    EdgeType,
    Halfness,
    Provenance,
    RelationshipEdge,
)
from .requests import ACTIVE_REQUEST_STATUSES, ConnectionRequest, RequestStatus
from .results import (
    AncestorHit,
    KinshipResolution,
    PathDirection,
    PathStep,
    RelationshipCategory,
    RelationshipPath,
    RelativeMatch,
    RelativesByDepth,
    ResolutionSource,
    SharedAncestor,
)

__all__ = [
    "Profile",
    "Gender",
    "MatchingPreferences",
    "RelationshipEdge",
    "EdgeType",
    "EdgeQualifiers",
    "EdgeSource",
    "Halfness",
    "Provenance",
    "AncestorCacheEntry",
    "ConnectionRequest",
    "RequestStatus",
    "ACTIVE_REQUEST_STATUSES",
    "PotentialDuplicate",
    "DuplicateStatus",
    "DuplicateWithProfiles",
    "ConfidenceLevel",
    "MatchReasons",
    "MergeHistory",
    "MergeResult",
    "ScanSummary",
    "Page",
    "ContentItem",
    "ContentKind",
    "AuditRecord",
    "Notification",
    "AncestorHit",
    "RelativeMatch",
    "KinshipResolution",
    "ResolutionSource",
    "PathDirection",
    "PathStep",
    "RelationshipCategory",
    "RelationshipPath",
    "RelativesByDepth",
    "SharedAncestor",
    "new_id",
]

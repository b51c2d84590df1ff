"""Runtime configuration read from the environment."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


def _f(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _i(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _s(name: str, default: str) -> str:
    return os.getenv(name) or default


@dataclass(frozen=True)
class FamGraphConfig:
    db_path: Path = Path(_s("FAMGRAPH_DB_PATH", "./data/famgraph.db"))
    log_level: str = _s("FAMGRAPH_LOG_LEVEL", "INFO").upper()

    # Ancestor closure bound (parent-edge hops)
    max_ancestor_depth: int = _i("FAMGRAPH_MAX_ANCESTOR_DEPTH", 8)

    # Relative matching
    match_limit: int = _i("FAMGRAPH_MATCH_LIMIT", 50)

    # Duplicate detection
    duplicate_min_confidence: float = _f("FAMGRAPH_DUPLICATE_MIN_CONFIDENCE", 50.0)
    scan_chunk_size: int = _i("FAMGRAPH_SCAN_CHUNK_SIZE", 500)

    # Subtree locks and read retries
    lock_timeout_seconds: float = _f("FAMGRAPH_LOCK_TIMEOUT_SECONDS", 10.0)
    read_retries: int = _i("FAMGRAPH_READ_RETRIES", 3)

    @classmethod
    def from_env(cls) -> FamGraphConfig:
        """Re-read the environment (e.g. after load_dotenv)."""
        return cls(
            db_path=Path(_s("FAMGRAPH_DB_PATH", "./data/famgraph.db")),
            log_level=_s("FAMGRAPH_LOG_LEVEL", "INFO").upper(),
            max_ancestor_depth=_i("FAMGRAPH_MAX_ANCESTOR_DEPTH", 8),
            match_limit=_i("FAMGRAPH_MATCH_LIMIT", 50),
            duplicate_min_confidence=_f("FAMGRAPH_DUPLICATE_MIN_CONFIDENCE", 50.0),
            scan_chunk_size=_i("FAMGRAPH_SCAN_CHUNK_SIZE", 500),
            lock_timeout_seconds=_f("FAMGRAPH_LOCK_TIMEOUT_SECONDS", 10.0),
            read_retries=_i("FAMGRAPH_READ_RETRIES", 3),
        )


CONFIG = FamGraphConfig()

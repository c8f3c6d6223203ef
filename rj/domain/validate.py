import math
from typing import Any, Dict, Optional


def as_number(v: Any) -> Optional[float]:
    """Return v if it is a real, finite number, else None (bools and strings don't count)."""
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    if not math.isfinite(v):
        return None
    return v


def as_text(v: Any) -> Optional[str]:
    if not isinstance(v, str) or not v.strip():
        return None
    return v


def description_of(rec: Dict[str, Any]) -> str:
    d = rec.get("description") if isinstance(rec, dict) else None
    return d if isinstance(d, str) else ""


def timestamp_of(rec: Any, name: str = "timestamp") -> Optional[float]:
    if not isinstance(rec, dict):
        return None
    return as_number(rec.get(name))


def is_cluster_candidate(report) -> bool:
    """Only complete records are ever clustered."""
    return bool(
        report.type
        and report.has_coords
        and report.timestamp is not None
        and report.icon
        and report.submitting_user
    )

from typing import Any, Dict, Optional, Set

from ..core.constants import USER_TS_FIELD
from ..core.models import ChangeSet, Policy, Snapshot
from ..utils.log import log_line
from ..utils.time import age_hours
from .validate import timestamp_of


def is_older_than(ts: Optional[float], now: int, max_age_s: int) -> bool:
    """Ambiguous age (None) is never old."""
    if ts is None:
        return False
    return now - ts > max_age_s


def merged_timestamps(merged: Dict[str, Any]) -> Set[float]:
    """Timestamps that protect live records from age eviction."""
    out = set()
    for rec in merged.values():
        ts = timestamp_of(rec)
        if ts is not None:
            out.add(ts)
    return out


def is_evicted(rec: Any, now: int, max_age_s: int, protected: Optional[Set[float]] = None) -> bool:
    """Old and not protected. Only live records pass a protected set; other collections expire on age alone."""
    ts = timestamp_of(rec)
    return is_older_than(ts, now, max_age_s) and ts not in (protected or ())


def retained(records: Dict[str, Any], now: int, max_age_s: int, protected: Optional[Set[float]] = None) -> Dict[str, Any]:
    """The records of one collection the sweep leaves in place, in store order."""
    return {
        rid: rec for rid, rec in records.items()
        if not is_evicted(rec, now, max_age_s, protected)
    }


def surviving_live(snapshot: Snapshot, now: int, policy: Policy) -> Dict[str, Any]:
    return retained(snapshot.live, now, policy.max_age_s, merged_timestamps(snapshot.merged))


def surviving_merged(snapshot: Snapshot, now: int, policy: Policy) -> Dict[str, Any]:
    return retained(snapshot.merged, now, policy.max_age_s)


def sweep(snapshot: Snapshot, changes: ChangeSet, now: int, policy: Policy) -> ChangeSet:
    """
    Age-out pass over all four collections.
    Live records whose exact timestamp is also a merged timestamp are kept.
    """
    names = snapshot.names
    max_age = policy.max_age_s
    protected = merged_timestamps(snapshot.merged)

    for rid, rec in snapshot.live.items():
        if is_evicted(rec, now, max_age, protected):
            changes.delete(names.live, rid)
            changes.bump("evicted")
            log_line(f"EVICT | {names.live}/{rid} age_h={age_hours(timestamp_of(rec), now)}")

    for coll, records in ((names.trash, snapshot.trash), (names.merged, snapshot.merged)):
        for rid, rec in records.items():
            ts = timestamp_of(rec)
            if is_older_than(ts, now, max_age):
                changes.delete(coll, rid)
                changes.bump("evicted")
                log_line(f"EVICT | {coll}/{rid} age_h={age_hours(ts, now)}")

    for uid, user in snapshot.users.items():
        ts = timestamp_of(user, USER_TS_FIELD)
        if is_older_than(ts, now, max_age):
            changes.clear_field(names.users, uid, USER_TS_FIELD)
            changes.bump("users_cleared")
            log_line(f"USER CLEAR | {names.users}/{uid} {USER_TS_FIELD} age_h={age_hours(ts, now)}")

    return changes

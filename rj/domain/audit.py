"""
Read-only consistency audit of a store snapshot.

Reports what the next run would still have to fix:
* expired records (live records only when their timestamp is not protected
  by a merged record), and stale user timestamps
* live duplicates: same type and coordinate key with non-empty descriptions
  of differing length
* mergeable live records: two cluster candidates of one type within the radius
* orphaned merged records that restoration would copy back into live

Each issue is an (issue, id) pair; a store right after a run audits clean.
"""
from typing import Dict, List, Tuple

from ..core.constants import USER_TS_FIELD
from ..core.models import Policy, Snapshot
from .geo import CoordIndex, coord_key
from .merge import build_clusters, cluster_candidates
from .retention import is_evicted, is_older_than, merged_timestamps, surviving_live, surviving_merged
from .validate import as_text, description_of, timestamp_of

Issue = Tuple[str, str]


def _expired(snapshot: Snapshot, now: int, policy: Policy) -> List[Issue]:
    max_age = policy.max_age_s
    protected = merged_timestamps(snapshot.merged)
    issues: List[Issue] = []
    for rid, rec in snapshot.live.items():
        if is_evicted(rec, now, max_age, protected):
            issues.append(("expired_live", rid))
    for rid, rec in snapshot.merged.items():
        if is_older_than(timestamp_of(rec), now, max_age):
            issues.append(("expired_merged", rid))
    for rid, rec in snapshot.trash.items():
        if is_older_than(timestamp_of(rec), now, max_age):
            issues.append(("expired_trash", rid))
    for uid, user in snapshot.users.items():
        if is_older_than(timestamp_of(user, USER_TS_FIELD), now, max_age):
            issues.append(("stale_user_timestamp", uid))
    return issues


def _duplicates(live: Dict, precision) -> List[Issue]:
    groups: Dict[tuple, List[str]] = {}
    for rid, rec in live.items():
        key = coord_key(rec, precision)
        rtype = as_text(rec.get("type")) if isinstance(rec, dict) else None
        if key is None or rtype is None:
            continue
        groups.setdefault((rtype, key), []).append(rid)

    issues: List[Issue] = []
    for ids in groups.values():
        lengths = [len(description_of(live[rid])) for rid in ids]
        longest = max(lengths)
        for rid, n in zip(ids, lengths):
            if 0 < n < longest:
                issues.append(("duplicate_live", rid))
    return issues


def audit_snapshot(snapshot: Snapshot, now: int, policy: Policy) -> List[Issue]:
    issues = _expired(snapshot, now, policy)

    live = surviving_live(snapshot, now, policy)
    issues += _duplicates(live, policy.coord_precision)

    for cluster in build_clusters(cluster_candidates(snapshot, now, policy), policy.merge_radius_km):
        for r in cluster:
            issues.append(("mergeable_live", r.id))

    occupied = CoordIndex.from_records(live, policy.coord_precision)
    for rid, rec in surviving_merged(snapshot, now, policy).items():
        if rid in snapshot.live or timestamp_of(rec) is None:
            continue
        if not occupied.occupied_by_other(rec, exclude=(rid,)):
            issues.append(("orphaned_merged", rid))

    return issues

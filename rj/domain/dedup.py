from typing import Any, Dict, List, Set, Tuple

from ..core.models import ChangeSet, Policy, Snapshot
from ..utils.log import log_line
from .geo import CoordKey, coord_key
from .retention import surviving_live, surviving_merged
from .validate import as_text, description_of


def group_by_key(records: Dict[str, Any], precision) -> Dict[CoordKey, List[str]]:
    """Ids per coordinate key, in store order. Records without coordinates are skipped."""
    groups: Dict[CoordKey, List[str]] = {}
    for rid, rec in records.items():
        key = coord_key(rec, precision)
        if key is None:
            continue
        groups.setdefault(key, []).append(rid)
    return groups


def pick_richest(records: Dict[str, Any], ids: List[str]) -> str:
    """Longest description wins; ties go to the first encountered."""
    best = ids[0]
    best_len = len(description_of(records[best]))
    for rid in ids[1:]:
        n = len(description_of(records[rid]))
        if n > best_len:
            best, best_len = rid, n
    return best


def dedup_merged(snapshot: Snapshot, changes: ChangeSet, now: int, policy: Policy) -> Set[str]:
    """Collapse merged records sharing a coordinate key. Returns the removed ids."""
    merged = surviving_merged(snapshot, now, policy)
    removed: Set[str] = set()
    for key, ids in group_by_key(merged, policy.coord_precision).items():
        if len(ids) < 2:
            continue
        keep = pick_richest(merged, ids)
        for rid in ids:
            if rid == keep:
                continue
            changes.delete(snapshot.names.merged, rid)
            changes.bump("deduplicated")
            removed.add(rid)
            log_line(f"DEDUP | {snapshot.names.merged}/{rid} dup_of={keep} at={key}")
    return removed


def dedup_live_merged(
    snapshot: Snapshot, changes: ChangeSet, now: int, policy: Policy, skip_merged: Set[str]
) -> Set[str]:
    """
    Live x Merged pairs at the same coordinate key (different ids): the longer
    description survives. Equal lengths are left alone. Returns removed live ids.
    """
    names = snapshot.names
    live = surviving_live(snapshot, now, policy)
    merged = surviving_merged(snapshot, now, policy)
    live_at = group_by_key(live, policy.coord_precision)
    removed_live: Set[str] = set()

    for mid, mrec in merged.items():
        if mid in skip_merged:
            continue
        key = coord_key(mrec, policy.coord_precision)
        if key is None:
            continue
        m_len = len(description_of(mrec))
        for lid in live_at.get(key, []):
            if lid == mid or lid in removed_live:
                continue
            l_len = len(description_of(live[lid]))
            if l_len > m_len:
                changes.delete(names.merged, mid)
                changes.bump("deduplicated")
                log_line(f"DEDUP | {names.merged}/{mid} richer_live={lid} at={key}")
                break
            if m_len > l_len:
                changes.archive(names, lid, live[lid])
                changes.bump("deduplicated")
                removed_live.add(lid)
                log_line(f"DEDUP | {names.live}/{lid} -> {names.trash} richer_merged={mid} at={key}")
    return removed_live


def dedup_live(snapshot: Snapshot, changes: ChangeSet, now: int, policy: Policy, skip_live: Set[str]) -> Set[str]:
    """
    Same-type live records at one coordinate key: non-empty descriptions shorter
    than the longest one are archived. Empty or equal-length ones stay.
    """
    names = snapshot.names
    live = {
        rid: rec for rid, rec in surviving_live(snapshot, now, policy).items()
        if rid not in skip_live
    }
    groups: Dict[Tuple[str, CoordKey], List[str]] = {}
    for rid, rec in live.items():
        key = coord_key(rec, policy.coord_precision)
        rtype = as_text(rec.get("type")) if isinstance(rec, dict) else None
        if key is None or rtype is None:
            continue
        groups.setdefault((rtype, key), []).append(rid)

    removed: Set[str] = set()
    for (rtype, key), ids in groups.items():
        lengths = {rid: len(description_of(live[rid])) for rid in ids}
        longest = max(lengths.values())
        if len(ids) < 2 or longest == 0:
            continue
        for rid in ids:
            if 0 < lengths[rid] < longest:
                changes.archive(names, rid, live[rid])
                changes.bump("deduplicated")
                removed.add(rid)
                log_line(f"DEDUP | {names.live}/{rid} -> {names.trash} type={rtype} at={key}")
    return removed


def run_dedup(snapshot: Snapshot, changes: ChangeSet, now: int, policy: Policy) -> ChangeSet:
    removed_merged = dedup_merged(snapshot, changes, now, policy)
    removed_live = dedup_live_merged(snapshot, changes, now, policy, removed_merged)
    dedup_live(snapshot, changes, now, policy, removed_live)
    return changes

from typing import Any, Callable, Dict, List, Optional, Set

from ..core.constants import DESCRIPTION_SEP, SYSTEM_USER
from ..core.models import ChangeSet, Policy, Report, Snapshot
from ..utils.log import log_line
from .geo import CoordIndex, distance_km
from .retention import surviving_live
from .validate import description_of, is_cluster_candidate


def live_view(snapshot: Snapshot, changes: ChangeSet, now: int, policy: Policy) -> Dict[str, Any]:
    """
    Live as left by the earlier stages of this run: survivors not removed by
    dedup, followed by the merged records restoration copied back.
    """
    names = snapshot.names
    out = {
        rid: rec for rid, rec in surviving_live(snapshot, now, policy).items()
        if not changes.is_deleted(names.live, rid)
    }
    for rid in snapshot.merged:
        if rid in out:
            continue
        rec = changes.get(names.live, rid)
        if rec is not None:
            out[rid] = rec
    return out


def cluster_candidates(
    snapshot: Snapshot, now: int, policy: Policy, changes: Optional[ChangeSet] = None
) -> List[Report]:
    """Complete live records that survive the retention sweep, in store order."""
    if changes is None:
        records = surviving_live(snapshot, now, policy)
    else:
        records = live_view(snapshot, changes, now, policy)
    out = []
    for rid, rec in records.items():
        r = Report.from_record(rid, rec)
        if is_cluster_candidate(r):
            out.append(r)
    return out


def build_clusters(candidates: List[Report], radius_km: float) -> List[List[Report]]:
    """
    Greedy single-anchor clustering.

    Each unprocessed candidate anchors a cluster; every later unprocessed
    candidate of the same type within radius_km of the anchor joins it.
    Members are compared to the anchor only, so a chain of points each close
    to its neighbour may be split across clusters. Singletons are dropped.
    """
    processed: Set[str] = set()
    clusters: List[List[Report]] = []

    for anchor in candidates:
        if anchor.id in processed:
            continue
        processed.add(anchor.id)
        cluster = [anchor]

        for other in candidates:
            if other.id in processed or other.type != anchor.type:
                continue
            if distance_km(anchor, other) <= radius_km:
                cluster.append(other)
                processed.add(other.id)

        if len(cluster) >= 2:
            clusters.append(cluster)

    return clusters


def synthesize(cluster: List[Report], new_id: str) -> Report:
    """One representative record for a cluster; position and look come from the newest member."""
    newest = cluster[0]
    for r in cluster[1:]:
        if r.timestamp > newest.timestamp:
            newest = r

    desc = DESCRIPTION_SEP.join(r.description for r in cluster if r.description.strip())

    return Report(
        id=new_id,
        type=newest.type,
        latitude=newest.latitude,
        longitude=newest.longitude,
        timestamp=newest.timestamp,
        description=desc,
        icon=newest.icon,
        submitting_user=SYSTEM_USER,
        source_ids=[r.id for r in cluster],
    )


def _live_record(snapshot: Snapshot, changes: ChangeSet, rid: str) -> Any:
    rec = changes.get(snapshot.names.live, rid)
    return rec if rec is not None else snapshot.live.get(rid)


def _has_merged_entry(snapshot: Snapshot, changes: ChangeSet, rid: str) -> bool:
    return rid in snapshot.merged or changes.get(snapshot.names.merged, rid) is not None


def _displace(snapshot: Snapshot, changes: ChangeSet, rid: str, by: str) -> None:
    """A poorer record at the spot of a new merged record leaves live and merged, as dedup would next run."""
    names = snapshot.names
    changes.archive(names, rid, _live_record(snapshot, changes, rid))
    if _has_merged_entry(snapshot, changes, rid):
        changes.delete(names.merged, rid)
    changes.bump("deduplicated")
    log_line(f"DEDUP | {names.live}/{rid} -> {names.trash} richer_merged={by}")


def merge_clusters(
    snapshot: Snapshot,
    changes: ChangeSet,
    now: int,
    policy: Policy,
    new_key: Callable[[str], str],
    occupied: CoordIndex,
) -> ChangeSet:
    names = snapshot.names
    candidates = cluster_candidates(snapshot, now, policy, changes)
    clusters = build_clusters(candidates, policy.merge_radius_km)
    # all members leave live in this run, so none of them blocks a merged record
    clustered = {r.id for cluster in clusters for r in cluster}

    for cluster in clusters:
        member_ids = [r.id for r in cluster]
        merged = synthesize(cluster, new_key(names.merged))
        rec = merged.to_record()
        changes.put(names.merged, merged.id, rec)

        others = sorted(occupied.occupants(merged, exclude=clustered))
        richer = all(
            len(description_of(_live_record(snapshot, changes, oid))) < len(merged.description)
            for oid in others
        )
        if richer:
            for oid in others:
                _displace(snapshot, changes, oid, merged.id)
                occupied.discard(oid)
            changes.put(names.live, merged.id, rec)
            occupied.add(merged.id, merged)
        else:
            changes.bump("duplicate_skips")
            log_line(f"MERGE SKIP LIVE | {names.merged}/{merged.id} coordinate in use by {','.join(others)}")

        for r in cluster:
            changes.archive(names, r.id, r.raw)
            occupied.discard(r.id)
            # a member with a merged entry is superseded by the new record
            if _has_merged_entry(snapshot, changes, r.id):
                changes.delete(names.merged, r.id)

        changes.bump("merged_clusters")
        changes.bump("merged_sources", len(cluster))
        log_line(
            f"MERGE | {merged.id} type={merged.type} members={len(cluster)} "
            f"at={merged.latitude},{merged.longitude} src={','.join(member_ids)}"
        )

    return changes

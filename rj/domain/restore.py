from ..core.models import ChangeSet, Policy, Snapshot
from ..utils.log import log_line
from .geo import CoordIndex
from .retention import surviving_merged
from .validate import timestamp_of


def restore_orphans(
    snapshot: Snapshot, changes: ChangeSet, now: int, policy: Policy, occupied: CoordIndex
) -> ChangeSet:
    """
    Copy merged records that lost their live counterpart back into live, unmodified.
    A merged record whose spot is already taken by another live record waits for a later run.
    """
    names = snapshot.names
    for rid, rec in surviving_merged(snapshot, now, policy).items():
        if rid in snapshot.live or timestamp_of(rec) is None:
            continue
        # dropped by the dedup pass in this same run
        if changes.is_deleted(names.merged, rid):
            continue
        if occupied.occupied_by_other(rec, exclude=(rid,)):
            changes.bump("duplicate_skips")
            log_line(f"RESTORE SKIP | {names.merged}/{rid} coordinate in use")
            continue
        changes.put(names.live, rid, dict(rec))
        occupied.add(rid, rec)
        changes.bump("restored")
        log_line(f"RESTORE | {names.merged}/{rid} -> {names.live}/{rid}")
    return changes

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict

from .models import ChangeSet, Collections, Policy, RunResult, Snapshot
from ..domain.dedup import run_dedup
from ..domain.geo import CoordIndex
from ..domain.merge import merge_clusters
from ..domain.restore import restore_orphans
from ..domain.retention import surviving_live, sweep
from ..utils.log import log_line


def load_snapshot(store: Any, names: Collections) -> Snapshot:
    """Read the four collections concurrently; all reads finish before any decision is made."""
    order = ("live", "merged", "trash", "users")
    with ThreadPoolExecutor(max_workers=len(order)) as pool:
        futures = {k: pool.submit(store.fetch, getattr(names, k)) for k in order}
        data: Dict[str, Dict[str, Any]] = {k: (f.result() or {}) for k, f in futures.items()}
    return Snapshot(names=names, **data)


class Pipeline:
    """
    One run of the job: load -> sweep -> dedup -> restore -> merge -> apply.
    Every stage reads the same snapshot and adds to one ChangeSet, which is
    written in a single atomic update at the end.
    """

    def __init__(self, store: Any, policy: Policy, names: Collections, now: int):
        self.store = store
        self.policy = policy
        self.names = names
        self.now = now
        self.snapshot = None
        self.changes = ChangeSet()

    def load(self) -> Snapshot:
        log_line("LOAD | fetching collections")
        self.snapshot = load_snapshot(self.store, self.names)
        s = self.snapshot
        log_line(
            f"LOAD | live={len(s.live)} merged={len(s.merged)} "
            f"trash={len(s.trash)} users={len(s.users)}"
        )
        return s

    def compute(self) -> ChangeSet:
        s, c, now, p = self.snapshot, self.changes, self.now, self.policy

        c = sweep(s, c, now, p)
        c = run_dedup(s, c, now, p)

        # Live spots taken after the sweep and dedup removals; restore/merge keep it current.
        occupied = CoordIndex(p.coord_precision)
        for rid, rec in surviving_live(s, now, p).items():
            if not c.is_deleted(self.names.live, rid):
                occupied.add(rid, rec)

        c = restore_orphans(s, c, now, p, occupied)
        c = merge_clusters(s, c, now, p, self.store.new_key, occupied)
        self.changes = c
        return c

    def apply(self) -> bool:
        if not self.changes:
            log_line("APPLY | nothing to do")
            return False
        log_line(f"APPLY | writing {len(self.changes)} paths in one update")
        self.store.update(dict(self.changes.items()))
        return True

    def run(self) -> RunResult:
        self.load()
        self.compute()
        applied = self.apply()
        result = RunResult.from_changes(self.now, self.changes)
        result.applied = applied
        return result

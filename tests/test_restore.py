"""
Tests for restore.py - self-healing of merged records that lost their live copy.
"""

from conftest import NOW, HOUR, report, snap
from rj.core.models import ChangeSet, Policy
from rj.domain.geo import CoordIndex
from rj.domain.restore import restore_orphans


def run(s, changes=None):
    occupied = CoordIndex.from_records(s.live)
    return restore_orphans(s, changes or ChangeSet(), NOW, Policy(), occupied)


class TestRestoreOrphans:

    def test_orphan_copied_back_unmodified(self):
        rec = report(desc="merged", user="0", sourceIds=["a", "b"])
        c = run(snap(merged={"m": rec}))
        assert c.get("reports", "m") == rec
        assert c.counts["restored"] == 1

    def test_record_with_live_copy_untouched(self):
        c = run(snap(live={"m": report()}, merged={"m": report()}))
        assert len(c) == 0

    def test_expired_merged_not_restored(self):
        c = run(snap(merged={"m": report(ts=NOW - 49 * HOUR)}))
        assert len(c) == 0

    def test_unknown_age_not_restored(self):
        c = run(snap(merged={"m": report(ts=None)}))
        assert len(c) == 0

    def test_occupied_coordinate_skipped(self):
        c = run(snap(live={"x": report(type_="flood")}, merged={"m": report()}))
        assert c.get("reports", "m") is None
        assert c.counts["duplicate_skips"] == 1

    def test_two_orphans_at_one_spot_restore_once(self):
        c = run(snap(merged={"m1": report(desc="a"), "m2": report(desc="b")}))
        assert c.get("reports", "m1") is not None
        assert c.get("reports", "m2") is None

    def test_merged_removed_by_dedup_not_restored(self):
        changes = ChangeSet()
        changes.delete("merged_reports", "m")
        c = run(snap(merged={"m": report()}), changes)
        assert c.get("reports", "m") is None

#!/usr/bin/env python3
"""
Script to check the consistency of the report store.
Loads either a JSON export of the database (top-level keys are the collection
paths, e.g. the file produced by "Export JSON" in the Firebase console) or,
with --live, reads the configured database, and lists what the next janitor
run would still have to fix:
* expired_live / expired_merged / expired_trash / stale_user_timestamp
* duplicate_live: same type + coordinate, non-empty descriptions of different length
* mergeable_live: same-type reports within the merge radius
* orphaned_merged: merged report without a live copy (would be restored)
Each line contains the issue type and the record id. The script exits with a
non-zero status if issues are found. Nothing is written.
Usage:
    python tools/check_data.py --export backup.json
    python tools/check_data.py --live --config config.json --secrets secrets.json
"""
import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from rj.adapters.firebase_api import FirebaseStore
from rj.core.config import collections_from_config, load_config, load_json, policy_from_config, DEFAULTS
from rj.core.models import Snapshot
from rj.core.pipeline import load_snapshot
from rj.domain.audit import audit_snapshot
from rj.utils.time import now_epoch


def snapshot_from_export(data: dict, names) -> Snapshot:
    return Snapshot(
        live=data.get(names.live) or {},
        merged=data.get(names.merged) or {},
        trash=data.get(names.trash) or {},
        users=data.get(names.users) or {},
        names=names,
    )


def main() -> int:
    parser = argparse.ArgumentParser(description="Audit the report store")
    parser.add_argument("--export", help="JSON export of the database")
    parser.add_argument("--live", action="store_true", help="read the configured database instead")
    parser.add_argument("--config", default="config.json")
    parser.add_argument("--secrets", default="secrets.json")
    parser.add_argument("--now", type=int, help="evaluate ages at this epoch second")
    args = parser.parse_args()

    if args.live:
        cfg = load_config(Path(args.config), Path(args.secrets))
        snapshot = load_snapshot(FirebaseStore(cfg), collections_from_config(cfg))
    elif args.export:
        cfg = dict(DEFAULTS, **load_json(Path(args.config), {}))
        try:
            data = json.loads(Path(args.export).read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise SystemExit(f"File not found: {args.export}")
        snapshot = snapshot_from_export(data or {}, collections_from_config(cfg))
    else:
        parser.error("one of --export or --live is required")

    now = args.now if args.now is not None else now_epoch()
    issues = audit_snapshot(snapshot, now, policy_from_config(cfg))
    if issues:
        for issue, rid in issues:
            print(f"{issue}\t{rid}")
        print(f"\nFound {len(issues)} issues")
        return 1
    print("No issues detected")
    return 0


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
# Report janitor (scheduled): age-out, dedup and merge of geotagged reports
#
# Collections (Realtime Database paths, configurable):
# - reports         live, user-visible reports
# - merged_reports  every record the merge engine synthesized (provenance + recovery)
# - reports_trash   soft-deleted / superseded reports, kept for the retention window
# - users           per-user metadata (lastReportTimestamp is cleared when stale)
#
# Files:
# - config.json   (tracked)      firebase_db_url, retention/merge tuning, collection names
# - secrets.json  (NOT tracked)  {"access_token": "..."} or {"auth": "..."}
#
# Env overrides: FIREBASE_DB_URL, FIREBASE_ACCESS_TOKEN, FIREBASE_AUTH
#
# All changes of a run go out as one multi-path update, so readers never see
# a half-applied run.

import argparse
import pathlib
import sys

from rj.core.config import load_config
from rj.core.runner import main as run_main

ROOT = pathlib.Path(__file__).resolve().parent


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Clean up, dedup and merge reports in the shared store")
    parser.add_argument("--config", default=str(ROOT / "config.json"))
    parser.add_argument("--secrets", default=str(ROOT / "secrets.json"))
    args = parser.parse_args(argv)

    try:
        cfg = load_config(pathlib.Path(args.config), pathlib.Path(args.secrets))
    except SystemExit as e:
        print(f"CONFIG ERROR | {e}", file=sys.stderr)
        return 2

    return run_main(cfg, ROOT)


if __name__ == "__main__":
    sys.exit(main())

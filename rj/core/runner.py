import pathlib
from typing import Any, Dict, Optional

import rj
from .config import collections_from_config, policy_from_config
from .models import RunResult
from .pipeline import Pipeline
from ..adapters.firebase_api import FirebaseStore
from ..utils.log import log_line, setup_logging
from ..utils.time import now_epoch


def setup_log_paths(cfg: Dict[str, Any], root: pathlib.Path) -> None:
    log_dir = cfg.get("log_dir")
    setup_logging((root / log_dir) if log_dir else None)


def run_once(cfg: Dict[str, Any], store: Optional[Any] = None, now: Optional[int] = None) -> RunResult:
    """
    A single run against the configured store. `now` is read once here.
    Any store failure propagates; since the only write is the final update,
    a failed run has changed nothing.
    """
    now = now_epoch() if now is None else int(now)
    store = store if store is not None else FirebaseStore(cfg)
    pipeline = Pipeline(store, policy_from_config(cfg), collections_from_config(cfg), now)
    return pipeline.run()


def log_summary(res: RunResult) -> None:
    log_line(
        f"RUN DONE | evicted={res.evicted} users_cleared={res.users_cleared} "
        f"deduplicated={res.deduplicated} restored={res.restored} "
        f"merged={res.merged_clusters} (sources={res.merged_sources}) "
        f"skipped_duplicates={res.duplicate_skips} paths={res.changes} applied={res.applied}"
    )


def main(cfg: Dict[str, Any], root: pathlib.Path, store: Optional[Any] = None) -> int:
    """Run and map the outcome to an exit status (0 ok, 1 failed run)."""
    setup_log_paths(cfg, root)
    log_line(f"RUN START | report janitor v{rj.__version__}")
    try:
        res = run_once(cfg, store=store)
    except Exception as e:
        log_line(f"RUN ERROR | err={e!r}")
        return 1
    log_summary(res)
    return 0

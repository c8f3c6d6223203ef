import threading
from pathlib import Path
from typing import Any, Optional

from .time import now_local, today_iso

# Set by setup_logging(); when None, lines only go to stdout.
LOG_PATH: Optional[Path] = None

_LOG_LOCK = threading.Lock()


def setup_logging(log_dir: Optional[Path], name: str = "janitor") -> Optional[Path]:
    """Point log_line at a daily file under log_dir (or stdout only if None)."""
    global LOG_PATH
    if log_dir is None:
        LOG_PATH = None
        return None
    log_dir.mkdir(parents=True, exist_ok=True)
    LOG_PATH = log_dir / f"{name}-{today_iso()}.log"
    return LOG_PATH


def _append(path: Path, line: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        f.write(line + "\n")


def log_line(msg: Any) -> None:
    """
    Logging wrapper (single timestamp, readable):
    - Prefix every line with: YYYY-MM-DD // HH:MM:SS+zz:zz -
    - Messages carry their own tag, e.g. "EVICT | reports/abc age_h=49.0".
    """
    line = str(msg).strip()

    with _LOG_LOCK:
        prefix = now_local().strftime("%Y-%m-%d // %H:%M:%S%z")
        if len(prefix) >= 5:
            prefix = prefix[:-2] + ":" + prefix[-2:]

        full = f"{prefix} - {line}" if line else f"{prefix} -"

        if LOG_PATH:
            _append(LOG_PATH, full)

        print(full, flush=True)

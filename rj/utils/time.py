import time
from datetime import datetime


def now_local() -> datetime:
    return datetime.now().astimezone()


def now_epoch() -> int:
    """Current time as whole seconds since the epoch (read once per run)."""
    return int(time.time())


def now_ms() -> int:
    return int(time.time() * 1000)


def today_iso() -> str:
    return now_local().date().isoformat()


def age_hours(ts: float, now: int) -> float:
    return round((now - ts) / 3600.0, 1)

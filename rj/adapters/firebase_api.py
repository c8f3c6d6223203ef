import random
import threading
from typing import Any, Dict, List, Optional

import requests

from ..core.constants import STORE_TIMEOUT_S
from ..utils.log import log_line
from ..utils.time import now_ms

# Firebase push-id alphabet (ordered so ids sort by creation time)
PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"


class StoreError(RuntimeError):
    """A read or write against the store failed. Nothing was applied."""


class PushIdGenerator:
    """
    Firebase-compatible push ids: 8 chars of millisecond time + 12 random chars.
    Ids generated within the same millisecond increment the random part, so they
    stay unique and ordered.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.SystemRandom()
        self._last_ms = -1
        self._last_rand: List[int] = [0] * 12
        self._lock = threading.Lock()

    def __call__(self, ts_ms: Optional[int] = None) -> str:
        ts = now_ms() if ts_ms is None else int(ts_ms)
        with self._lock:
            same_ms = ts == self._last_ms
            self._last_ms = ts

            time_chars = []
            for _ in range(8):
                time_chars.append(PUSH_CHARS[ts % 64])
                ts //= 64
            time_part = "".join(reversed(time_chars))

            if not same_ms:
                self._last_rand = [self._rng.randrange(64) for _ in range(12)]
            else:
                i = 11
                while i >= 0 and self._last_rand[i] == 63:
                    self._last_rand[i] = 0
                    i -= 1
                if i >= 0:
                    self._last_rand[i] += 1

            return time_part + "".join(PUSH_CHARS[n] for n in self._last_rand)


def _as_mapping(data: Any) -> Dict[str, Any]:
    """RTDB returns null for absent paths and a list for densely integer-keyed ones."""
    if data is None:
        return {}
    if isinstance(data, dict):
        return data
    if isinstance(data, list):
        return {str(i): v for i, v in enumerate(data) if v is not None}
    raise StoreError(f"unexpected collection payload type {type(data).__name__}")


class FirebaseStore:
    """Realtime Database over its REST API: subtree reads, local push ids, atomic multi-path PATCH."""

    def __init__(self, cfg: Dict[str, Any], push_ids: Optional[PushIdGenerator] = None):
        self.db_url = str(cfg.get("firebase_db_url", "") or "").rstrip("/")
        if not self.db_url:
            raise StoreError("firebase_db_url not configured")
        self.access_token = str(cfg.get("access_token", "") or "")
        self.auth = str(cfg.get("auth", "") or "")
        self.user_agent = str(cfg.get("user_agent", "ReportJanitor/1.0") or "ReportJanitor/1.0")
        self.timeout_s = float(cfg.get("timeout_s", STORE_TIMEOUT_S) or STORE_TIMEOUT_S)
        self._push_ids = push_ids or PushIdGenerator()

    def _url(self, path: str) -> str:
        path = path.strip("/")
        return f"{self.db_url}/{path}.json" if path else f"{self.db_url}/.json"

    def _headers(self) -> Dict[str, str]:
        h = {"User-Agent": self.user_agent}
        if self.access_token:
            h["Authorization"] = f"Bearer {self.access_token}"
        return h

    def _params(self) -> Dict[str, str]:
        return {"auth": self.auth} if self.auth else {}

    def fetch(self, collection: str) -> Dict[str, Any]:
        try:
            r = requests.get(self._url(collection), headers=self._headers(), params=self._params(), timeout=self.timeout_s)
        except requests.RequestException as e:
            raise StoreError(f"read {collection} failed: {e!r}") from e
        if r.status_code != 200:
            raise StoreError(f"read {collection} failed: http {r.status_code} {r.text[:200]!r}")
        try:
            data = r.json()
        except ValueError as e:
            raise StoreError(f"read {collection} returned invalid JSON") from e
        out = _as_mapping(data)
        log_line(f"STORE READ | {collection} records={len(out)}")
        return out

    def new_key(self, collection: str) -> str:
        # Same as the client SDK's push(): generated locally, nothing written.
        return self._push_ids()

    def update(self, updates: Dict[str, Any]) -> None:
        """Apply all paths in one request; the database applies a multi-path PATCH atomically."""
        body = {path.strip("/"): value for path, value in updates.items()}
        try:
            r = requests.patch(self._url(""), json=body, headers=self._headers(), params=self._params(), timeout=self.timeout_s)
        except requests.RequestException as e:
            raise StoreError(f"update failed: {e!r}") from e
        if r.status_code != 200:
            raise StoreError(f"update failed: http {r.status_code} {r.text[:200]!r}")
        log_line(f"STORE WRITE | paths={len(body)}")

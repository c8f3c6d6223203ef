from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Iterator, Tuple

from . import constants as C
from ..domain.validate import as_number, as_text, description_of


@dataclass
class Report:
    """Parsed view of one store record. Missing or malformed fields are None."""
    id: str
    type: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timestamp: Optional[float] = None
    description: str = ""
    icon: Optional[str] = None
    submitting_user: Optional[str] = None
    source_ids: List[str] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, rid: str, rec: Any) -> "Report":
        if not isinstance(rec, dict):
            return cls(id=str(rid))
        user = rec.get("submittingUser")
        if isinstance(user, (int, float)) and not isinstance(user, bool):
            user = str(user)
        src = rec.get("sourceIds")
        return cls(
            id=str(rid),
            type=as_text(rec.get("type")),
            latitude=as_number(rec.get("latitude")),
            longitude=as_number(rec.get("longitude")),
            timestamp=as_number(rec.get("timestamp")),
            description=description_of(rec),
            icon=as_text(rec.get("icon")),
            submitting_user=as_text(user),
            source_ids=[str(s) for s in src] if isinstance(src, list) else [],
            raw=dict(rec),
        )

    @property
    def has_coords(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_record(self) -> Dict[str, Any]:
        rec: Dict[str, Any] = {
            "description": self.description,
            "icon": self.icon,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timestamp": self.timestamp,
            "type": self.type,
            "submittingUser": self.submitting_user,
        }
        if self.source_ids:
            rec["sourceIds"] = list(self.source_ids)
        return rec


@dataclass(frozen=True)
class Collections:
    live: str = C.COLL_LIVE
    merged: str = C.COLL_MERGED
    trash: str = C.COLL_TRASH
    users: str = C.COLL_USERS


@dataclass(frozen=True)
class Policy:
    max_age_s: int = C.MAX_AGE_S
    merge_radius_km: float = C.MERGE_RADIUS_KM
    coord_precision: Optional[int] = C.COORD_PRECISION


@dataclass
class Snapshot:
    """The four collections as read at the start of a run. Stages never mutate it."""
    live: Dict[str, Any] = field(default_factory=dict)
    merged: Dict[str, Any] = field(default_factory=dict)
    trash: Dict[str, Any] = field(default_factory=dict)
    users: Dict[str, Any] = field(default_factory=dict)
    names: Collections = field(default_factory=Collections)


class ChangeSet:
    """
    Pending changes of one run: store path -> new value, or None to delete.
    Later writes to the same path replace earlier ones. Also carries the
    per-stage counters that end up in the run summary.
    """

    def __init__(self):
        self.updates: Dict[str, Any] = {}
        self.counts: Dict[str, int] = {}

    @staticmethod
    def path(*parts: str) -> str:
        return "/".join(str(p).strip("/") for p in parts)

    def put(self, collection: str, rid: str, value: Any) -> None:
        self.updates[self.path(collection, rid)] = value

    def delete(self, collection: str, rid: str) -> None:
        self.updates[self.path(collection, rid)] = None

    def clear_field(self, collection: str, rid: str, name: str) -> None:
        self.updates[self.path(collection, rid, name)] = None

    def get(self, collection: str, rid: str, default: Any = None) -> Any:
        return self.updates.get(self.path(collection, rid), default)

    def is_deleted(self, collection: str, rid: str) -> bool:
        p = self.path(collection, rid)
        return p in self.updates and self.updates[p] is None

    def archive(self, names: Collections, rid: str, rec: Dict[str, Any]) -> None:
        """Soft-delete: copy a live record into trash, then remove it from live."""
        self.put(names.trash, rid, dict(rec))
        self.delete(names.live, rid)

    def bump(self, key: str, n: int = 1) -> None:
        self.counts[key] = self.counts.get(key, 0) + n

    def items(self) -> Iterator[Tuple[str, Any]]:
        return iter(self.updates.items())

    def __len__(self) -> int:
        return len(self.updates)

    def __bool__(self) -> bool:
        return bool(self.updates)


@dataclass
class RunResult:
    now: int = 0
    evicted: int = 0
    users_cleared: int = 0
    deduplicated: int = 0
    restored: int = 0
    merged_clusters: int = 0
    merged_sources: int = 0
    duplicate_skips: int = 0
    changes: int = 0
    applied: bool = False

    @classmethod
    def from_changes(cls, now: int, changes: ChangeSet) -> "RunResult":
        c = changes.counts
        return cls(
            now=now,
            evicted=c.get("evicted", 0),
            users_cleared=c.get("users_cleared", 0),
            deduplicated=c.get("deduplicated", 0),
            restored=c.get("restored", 0),
            merged_clusters=c.get("merged_clusters", 0),
            merged_sources=c.get("merged_sources", 0),
            duplicate_skips=c.get("duplicate_skips", 0),
            changes=len(changes),
        )

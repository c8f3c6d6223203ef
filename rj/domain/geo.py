import math
from typing import Any, Optional, Set, Tuple

from ..core.constants import EARTH_RADIUS_KM
from .validate import as_number

CoordKey = Tuple[float, float]


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    p1, p2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dl = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dl / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(1.0, a)))


def distance_km(a, b) -> float:
    """Distance between two Reports (both must have coordinates)."""
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def coord_key(rec: Any, precision: Optional[int] = None) -> Optional[CoordKey]:
    """
    "Same place" key of a raw record or Report.
    Exact (lat, lon) when precision is None, else both rounded to `precision` decimals.
    """
    if isinstance(rec, dict):
        lat, lon = as_number(rec.get("latitude")), as_number(rec.get("longitude"))
    else:
        lat, lon = getattr(rec, "latitude", None), getattr(rec, "longitude", None)
    if lat is None or lon is None:
        return None
    if precision is None:
        return float(lat), float(lon)
    return round(float(lat), precision), round(float(lon), precision)


class CoordIndex:
    """Which record ids currently occupy each coordinate key."""

    def __init__(self, precision: Optional[int] = None):
        self.precision = precision
        self._ids = {}
        self._key_of = {}

    @classmethod
    def from_records(cls, records, precision: Optional[int] = None) -> "CoordIndex":
        idx = cls(precision)
        for rid, rec in records.items():
            idx.add(rid, rec)
        return idx

    def add(self, rid: str, rec: Any) -> None:
        key = coord_key(rec, self.precision)
        if key is not None:
            self._ids.setdefault(key, set()).add(rid)
            self._key_of[rid] = key

    def discard(self, rid: str) -> None:
        key = self._key_of.pop(rid, None)
        if key is not None:
            self._ids.get(key, set()).discard(rid)

    def occupants(self, rec: Any, exclude=()) -> Set[str]:
        """Ids at rec's coordinate key, minus `exclude`."""
        key = coord_key(rec, self.precision)
        if key is None:
            return set()
        return self._ids.get(key, set()) - set(exclude)

    def occupied_by_other(self, rec: Any, exclude=()) -> bool:
        return bool(self.occupants(rec, exclude))

import copy
import itertools

import pytest

from rj.core.models import Collections, Policy, Snapshot

NOW = 1_700_000_000
HOUR = 3600


class FakeStore:
    """In-memory store with the same contract as FirebaseStore."""

    def __init__(self, data=None):
        self.data = copy.deepcopy(data or {})
        self.updates = []
        self._ids = itertools.count(1)

    def fetch(self, collection):
        return copy.deepcopy(self.data.get(collection) or {})

    def new_key(self, collection):
        return f"-new{next(self._ids):04d}"

    def update(self, updates):
        self.updates.append(dict(updates))
        for path, value in updates.items():
            parts = path.strip("/").split("/")
            node = self.data
            for p in parts[:-1]:
                node = node.setdefault(p, {})
            if value is None:
                node.pop(parts[-1], None)
            else:
                node[parts[-1]] = copy.deepcopy(value)
        # drop emptied parents like the real database does
        for coll in list(self.data):
            if isinstance(self.data[coll], dict):
                for rid in list(self.data[coll]):
                    if self.data[coll][rid] == {}:
                        del self.data[coll][rid]
                if not self.data[coll]:
                    del self.data[coll]


def report(type_="fire", lat=40.0, lon=-73.0, ts=NOW, desc="", icon="flame", user="u1", **extra):
    rec = {
        "type": type_,
        "latitude": lat,
        "longitude": lon,
        "timestamp": ts,
        "icon": icon,
        "submittingUser": user,
    }
    if desc is not None:
        rec["description"] = desc
    rec.update(extra)
    return rec


def snap(live=None, merged=None, trash=None, users=None):
    return Snapshot(
        live=live or {}, merged=merged or {}, trash=trash or {}, users=users or {},
        names=Collections(),
    )


@pytest.fixture
def policy():
    return Policy()


@pytest.fixture
def fake_store():
    return FakeStore

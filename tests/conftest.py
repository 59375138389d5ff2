import itertools
import json

import pytest

from data_integrator import MemoryKeyValueStore
from domain.errors import PersistenceError
from services.tracker import InventoryTracker

TODAY = "2024-03-01"


class FlakyStore(MemoryKeyValueStore):
    """In-memory store whose writes fail for the keys listed in `fail_keys`."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.fail_keys = set()

    def set(self, key, value):
        if key in self.fail_keys:
            raise PersistenceError(f"Could not save '{key}': disk full")
        super().set(key, value)


def dump(value):
    return json.dumps(value)


@pytest.fixture
def store():
    return FlakyStore()


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda: f"id{next(counter)}"


@pytest.fixture
def make_tracker(store, id_factory):
    def _make(today=TODAY):
        return InventoryTracker(store, today=lambda: today, new_id=id_factory)

    return _make


@pytest.fixture
def tracker(make_tracker):
    return make_tracker()

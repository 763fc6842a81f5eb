# tests/conftest.py
import os, sys
from datetime import date
from itertools import count

import pytest

# lägg till projektroten (mappen som innehåller "quotely") först i sys.path
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from quotely.services.event_log import EventLog  # noqa: E402
from quotely.services.quote_store import QuoteStore  # noqa: E402
from quotely.services.snapshot_store import MemorySnapshotStore  # noqa: E402

TODAY = date(2025, 3, 1)


def make_id_generator():
    counter = count(1)
    return lambda prefix: f"{prefix}-{next(counter)}"


def make_token_generator():
    counter = count(1)
    return lambda: f"tok-{next(counter)}"


def make_store(snapshot_store=None, **kwargs) -> QuoteStore:
    kwargs.setdefault("id_generator", make_id_generator())
    kwargs.setdefault("token_generator", make_token_generator())
    kwargs.setdefault("clock", lambda: TODAY)
    kwargs.setdefault("event_log", EventLog(tag="test"))
    return QuoteStore(snapshot_store if snapshot_store is not None else MemorySnapshotStore(), **kwargs)


@pytest.fixture
def memory():
    return MemorySnapshotStore()


@pytest.fixture
def store(memory):
    s = make_store(memory)
    s.load()
    return s


@pytest.fixture
def store_factory():
    return make_store

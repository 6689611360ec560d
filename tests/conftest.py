"""
Shared fixtures: every test gets its own SQLite file under tmp_path,
so nothing touches a real database.
"""

import pytest

from crimesense.db.store import LocalStore
from crimesense.events import ChangeBus, InProcessTransport, MarkerTransport
from crimesense.repository import CrimeRepository


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'crimesense.db'}"


@pytest.fixture
def store(database_url):
    store = LocalStore(database_url, schema_version=2)
    yield store
    store.close()


@pytest.fixture
def bus(store):
    return ChangeBus([InProcessTransport(), MarkerTransport(store)])


@pytest.fixture
def repository(store, bus):
    return CrimeRepository(store, bus)


@pytest.fixture
def received():
    """A subscriber callback that remembers every event it gets."""
    events = []

    def callback(event):
        events.append(event)

    callback.events = events
    return callback

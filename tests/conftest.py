import pytest

from bugregistry.services.bug_store import InMemoryBugStore
from bugregistry.services.dedup_engine import DedupEngine


@pytest.fixture
def store():
    return InMemoryBugStore()


@pytest.fixture
def engine(store):
    return DedupEngine(store)

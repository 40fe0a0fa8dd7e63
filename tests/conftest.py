"""Shared fixtures and record store doubles for session tests."""

import threading

import pytest

from pairwise_elicit.errors import PersistenceFailure
from pairwise_elicit.persistence import PersistenceDispatcher
from pairwise_elicit.record_store import InMemoryRecordStore
from pairwise_elicit.response_models.session import Respondent
from pairwise_elicit.session_engine import SessionEngine

INVITE_CODE = "CODE1"

ITEMS = [
    "https://github.com/ethereum/go-ethereum",
    "https://github.com/grandinetech/grandine",
    "https://github.com/sigp/lighthouse",
    "https://github.com/prysmaticlabs/prysm",
    "https://github.com/paradigmxyz/reth",
]


class BlockingRecordStore(InMemoryRecordStore):
    """Holds every upsert until `release` is set."""
    
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.release = threading.Event()
    
    def upsert(self, respondent, judgment, existing_record_id=None):
        self.release.wait(5)
        return super().upsert(respondent, judgment, existing_record_id)


class FailingRecordStore(InMemoryRecordStore):
    """Fails the first `failures` upserts."""
    
    def __init__(self, *args, failures=1, **kwargs):
        super().__init__(*args, **kwargs)
        self.failures = failures
    
    def upsert(self, respondent, judgment, existing_record_id=None):
        if self.failures > 0:
            self.failures -= 1
            raise PersistenceFailure("sheet unavailable", key=judgment.key)
        return super().upsert(respondent, judgment, existing_record_id)


@pytest.fixture
def respondent():
    return Respondent(name="Ada Lovelace", email="ada@example.com", invite_code=INVITE_CODE)


@pytest.fixture
def store():
    return InMemoryRecordStore(invite_codes=[INVITE_CODE])


@pytest.fixture
def make_engine():
    """Factory for engines; every engine created is closed after the test."""
    engines = []
    
    def factory(store, items=ITEMS, pairs_per_round=3):
        engine = SessionEngine(
            items,
            store,
            pairs_per_round=pairs_per_round,
            dispatcher=PersistenceDispatcher(max_workers=2),
        )
        engines.append(engine)
        return engine
    
    yield factory
    
    for engine in engines:
        release = getattr(engine.record_store, "release", None)
        if release is not None:
            release.set()
        engine.wait_for_persistence(timeout=5)
        engine.close()

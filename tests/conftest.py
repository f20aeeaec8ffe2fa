"""Shared test fixtures and utilities for tunesearch testing."""

import pytest

from tunesearch.auth import AuthVerifier, StaticIdentityBackend
from tunesearch.cache import CacheStore
from tunesearch.config import SearchSettings
from tunesearch.errors import ErrorMapper
from tunesearch.service import SearchService
from tunesearch.store import InMemoryDocumentStore, QueryPage, StoredDocument

VALID_TOKEN = "token-alice"


class FakeClock:
    """Manually advanced clock for deterministic TTL tests."""

    def __init__(self, start: float = 1_000_000.0):
        self.current = start

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


def video(doc_id: str, seconds: float | None, nanoseconds: int = 0, **fields) -> StoredDocument:
    """Build a stored video record; ``seconds=None`` leaves uploadDate out."""
    data = {"title": fields.pop("title", doc_id), "artist": fields.pop("artist", "artist"), **fields}
    if seconds is not None:
        data["uploadDate"] = {"seconds": seconds, "nanoseconds": nanoseconds}
    return StoredDocument(id=doc_id, data=data)


def page(*records: StoredDocument, has_more: bool = False) -> QueryPage:
    return QueryPage(records=list(records), has_more=has_more)


class ScriptedStore:
    """Store returning a fixed page (or raising) per descriptor branch."""

    def __init__(self, pages: dict | None = None, errors: dict | None = None):
        self.pages = pages or {}
        self.errors = errors or {}
        self.calls = []
        self.recent = []

    async def run_query(self, descriptor):
        self.calls.append(descriptor)
        if descriptor.branch in self.errors:
            raise self.errors[descriptor.branch]
        return self.pages.get(descriptor.branch, QueryPage())

    async def add_recent_search(self, uid, query):
        self.recent.append((uid, query))


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def identity_backend() -> StaticIdentityBackend:
    return StaticIdentityBackend({VALID_TOKEN: {"uid": "alice", "email": "alice@example.com"}})


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """In-memory store seeded with a small catalogue."""
    return InMemoryDocumentStore(
        [
            video("v1", 300, title="rock anthem", artist="the rockers", tags=["rock", "live"], genre="rock", mood="energetic"),
            video("v2", 200, title="quiet night", artist="rocky", tags=["rock", "ballad"], genre="rock", mood="calm"),
            video("v3", 100, title="jazz hands", artist="jazz trio", tags=["jazz"], genre="jazz", mood="calm"),
            video("v4", 400, title="roadtrip", artist="the band", tags=["pop"], genre="pop", mood="happy"),
        ]
    )


@pytest.fixture
def cache(fake_clock) -> CacheStore:
    return CacheStore(ttl_seconds=300, max_items=1000, clock=fake_clock)


@pytest.fixture
def service(store, identity_backend, cache) -> SearchService:
    return SearchService(
        auth=AuthVerifier(identity_backend),
        store=store,
        cache=cache,
        mapper=ErrorMapper(),
        settings=SearchSettings(),
    )

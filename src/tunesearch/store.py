"""Document store boundary and an in-memory implementation.

The search core only needs two capabilities from the backing store: run a
:class:`~tunesearch.planner.QueryDescriptor` and return one ordered page of
raw records, and record a user's recent search.
"""

import asyncio
import json
import time
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

import aiofiles

from .logging_config import get_logger
from .models import is_valid_timestamp
from .planner import Direction, Operator, QueryDescriptor

logger = get_logger(__name__)


@dataclass(frozen=True)
class StoredDocument:
    """A raw record as returned by the store."""

    id: str
    data: Mapping[str, Any]


@dataclass
class QueryPage:
    """One ordered page of results for a descriptor."""

    records: list[StoredDocument] = field(default_factory=list)
    has_more: bool = False


class StoreError(Exception):
    """Backend failure carrying a store-specific error code."""

    def __init__(self, message: str, code: str = "internal", details: Any = None):
        super().__init__(message)
        self.code = code
        self.details = details


class DocumentStore(Protocol):
    async def run_query(self, descriptor: QueryDescriptor) -> QueryPage: ...

    async def add_recent_search(self, uid: str, query: str) -> None: ...


def _sort_value(value: Any) -> tuple:
    """Rank values by type first so mixed-type fields still order consistently."""
    if value is None:
        return (0,)
    if isinstance(value, bool):
        return (1, int(value))
    if isinstance(value, (int, float)):
        return (2, value)
    if is_valid_timestamp(value):
        if isinstance(value, Mapping):
            return (3, value["seconds"], value["nanoseconds"])
        return (3, value.seconds, value.nanoseconds)
    if isinstance(value, str):
        return (4, value)
    return (5, str(value))


def _matches(descriptor: QueryDescriptor, data: Mapping[str, Any]) -> bool:
    if descriptor.operator is Operator.ARRAY_CONTAINS:
        values = data.get(descriptor.field)
        return isinstance(values, list) and descriptor.value in values

    if descriptor.operator is Operator.PREFIX:
        value = data.get(descriptor.field)
        return isinstance(value, str) and descriptor.value <= value < descriptor.upper_bound

    if descriptor.operator is Operator.EQUALS:
        return all(data.get(name) == expected for name, expected in descriptor.equality_filters)

    raise StoreError(f"Unsupported operator: {descriptor.operator}", code="invalid-argument")


class InMemoryDocumentStore:
    """Evaluates query descriptors against documents held in memory.

    Documents lacking any ``order_by`` field are excluded from ordered
    results, as an indexed document store would do.
    """

    def __init__(self, documents: Iterable[StoredDocument] | None = None):
        self._documents: dict[str, StoredDocument] = {}
        self._recent_searches: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self._failures: dict[str, StoreError] = {}
        self.query_log: list[QueryDescriptor] = []
        for document in documents or []:
            self.add(document.id, document.data)

    def add(self, doc_id: str, data: Mapping[str, Any]) -> None:
        self._documents[doc_id] = StoredDocument(id=doc_id, data=dict(data))

    def __len__(self) -> int:
        return len(self._documents)

    def fail_branch(self, branch: str, error: StoreError) -> None:
        """Make every query for ``branch`` raise ``error``; ``"*"`` matches all branches."""
        self._failures[branch] = error

    def clear_failures(self) -> None:
        self._failures.clear()

    async def run_query(self, descriptor: QueryDescriptor) -> QueryPage:
        self.query_log.append(descriptor)
        # Yield so concurrent branches interleave like real I/O.
        await asyncio.sleep(0)

        failure = self._failures.get(descriptor.branch) or self._failures.get("*")
        if failure is not None:
            raise failure

        order_fields = [name for name, _ in descriptor.order_by]
        matches = [
            document
            for document in self._documents.values()
            if _matches(descriptor, document.data)
            and all(document.data.get(name) is not None for name in order_fields)
        ]

        # Stable sorts applied from the least to the most significant key.
        for name, direction in reversed(descriptor.order_by):
            matches.sort(
                key=lambda document, name=name: _sort_value(document.data.get(name)),
                reverse=direction is Direction.DESC,
            )

        page = matches[: descriptor.limit]
        return QueryPage(
            records=[StoredDocument(id=document.id, data=dict(document.data)) for document in page],
            has_more=len(matches) > descriptor.limit,
        )

    async def add_recent_search(self, uid: str, query: str) -> None:
        failure = self._failures.get("recentSearches") or self._failures.get("*")
        if failure is not None:
            raise failure
        self._recent_searches[uid].append({"query": query, "timestamp": time.time()})

    def recent_searches(self, uid: str) -> list[dict[str, Any]]:
        return list(self._recent_searches.get(uid, []))

    async def load_json(self, path: str) -> int:
        """Load documents from a JSON file. Returns how many were loaded.

        The file holds either a list of objects each carrying an ``id``, or
        an object mapping ids to document data.
        """
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            content = await f.read()

        payload = json.loads(content)
        if isinstance(payload, dict):
            items = [{"id": doc_id, **data} for doc_id, data in payload.items()]
        elif isinstance(payload, list):
            items = payload
        else:
            raise ValueError(f"Unsupported document file layout in {path}")

        loaded = 0
        for item in items:
            doc_id = item.get("id") if isinstance(item, dict) else None
            if not doc_id:
                logger.warning("Skipping document without id in %s", path)
                continue
            self.add(str(doc_id), {key: value for key, value in item.items() if key != "id"})
            loaded += 1

        logger.info("Loaded %d documents from %s", loaded, path)
        return loaded

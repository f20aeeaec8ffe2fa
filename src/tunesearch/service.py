"""Search service orchestrating auth, caching, planning and aggregation.

Every operation verifies the caller before doing any work, never retries,
and reports failures through the closed error taxonomy in
:mod:`tunesearch.errors`.
"""

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, ValidationError

from .aggregator import ResultAggregator
from .auth import AuthVerifier, IdentityBackend
from .cache import CacheStore, Clock, make_cache_key
from .config import SearchSettings
from .errors import ErrorCode, ErrorMapper, InvalidArgumentError, TuneSearchError
from .logging_config import get_logger, log_event, sanitize_request
from .models import SearchRequest, SearchResultItem, SuggestionsRequest, TrackSearchRequest
from .planner import QueryPlanner
from .store import DocumentStore
from .suggestions import SuggestionEngine

logger = get_logger(__name__)

SEARCH_ERROR_CODES = frozenset(ErrorCode)
SUGGESTIONS_ERROR_CODES = frozenset(
    {
        ErrorCode.UNAUTHENTICATED,
        ErrorCode.INTERNAL,
        ErrorCode.PERMISSION_DENIED,
        ErrorCode.NOT_FOUND,
        ErrorCode.FAILED_PRECONDITION,
    }
)
TRACK_SEARCH_ERROR_CODES = frozenset({ErrorCode.UNAUTHENTICATED, ErrorCode.INTERNAL})


class SearchState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    CACHE_CHECK = "cache_check"
    CACHE_HIT = "cache_hit"
    CACHE_MISS = "cache_miss"
    PLANNING = "planning"
    AGGREGATING = "aggregating"
    CACHING = "caching"
    DONE = "done"
    FAILED = "failed"


class RequestTrace:
    """Tracks and logs the state of one request."""

    def __init__(self, operation: str):
        self.operation = operation
        self.state = SearchState.UNAUTHENTICATED
        self.history = [self.state]

    def advance(self, state: SearchState) -> None:
        log_event(logger, logging.DEBUG, f"{self.operation}.state", previous=self.state.value, state=state.value)
        self.state = state
        self.history.append(state)


def _parse(model: type[BaseModel], payload: Any, defaults: dict[str, Any] | None = None) -> Any:
    if isinstance(payload, model):
        return payload
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise InvalidArgumentError("Request payload must be an object", value=payload)

    data = {key: value for key, value in payload.items() if value is not None}
    for key, value in (defaults or {}).items():
        data.setdefault(key, value)

    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidArgumentError(
            "Invalid request payload",
            details={"errors": [error["msg"] for error in e.errors()]},
        ) from e


class SearchService:
    """Entry point for the ``search``, ``suggestions`` and ``track_search`` operations."""

    def __init__(
        self,
        auth: AuthVerifier,
        store: DocumentStore,
        cache: CacheStore,
        planner: QueryPlanner | None = None,
        aggregator: ResultAggregator | None = None,
        suggestion_engine: SuggestionEngine | None = None,
        mapper: ErrorMapper | None = None,
        settings: SearchSettings | None = None,
    ):
        self.settings = settings or SearchSettings()
        self.mapper = mapper or ErrorMapper()
        self.auth = auth
        self.store = store
        self.cache = cache
        self.planner = planner or QueryPlanner(batch_size=self.settings.batch_size)
        self.aggregator = aggregator or ResultAggregator(store, self.mapper)
        self.suggestion_engine = suggestion_engine or SuggestionEngine(
            store, self.mapper, per_field_limit=self.settings.suggestion_limit
        )

    @classmethod
    def create(
        cls,
        store: DocumentStore,
        identity_backend: IdentityBackend,
        settings: SearchSettings | None = None,
        clock: Clock | None = None,
    ) -> "SearchService":
        """Wire a service with its own cache and error mapper."""
        settings = settings or SearchSettings()
        cache = CacheStore(
            ttl_seconds=settings.cache_ttl_seconds,
            max_items=settings.cache_max_items,
            clock=clock,
        )
        return cls(
            auth=AuthVerifier(identity_backend),
            store=store,
            cache=cache,
            settings=settings,
        )

    async def search(self, token: Any, payload: Any = None) -> dict[str, Any]:
        """Search videos by free text and/or filters.

        Returns ``{"videos": [...]}`` with items newest first.
        """
        trace = RequestTrace("search")
        log_event(logger, logging.INFO, "search.start", request=sanitize_request(payload))
        try:
            principal = await self.auth.verify(token)
            trace.advance(SearchState.AUTHENTICATED)

            request = _parse(SearchRequest, payload, {"limit": self.settings.default_limit})
            if not request.has_criteria():
                raise InvalidArgumentError("Search query or filters are required")

            trace.advance(SearchState.CACHE_CHECK)
            key = make_cache_key(request)
            entry = await self.cache.get(key)
            if entry is not None:
                trace.advance(SearchState.CACHE_HIT)
                results: list[SearchResultItem] = list(entry.results)
            else:
                trace.advance(SearchState.CACHE_MISS)
                results = await self._run_search(request, trace)
                trace.advance(SearchState.CACHING)
                await self.cache.put(key, results)

            trace.advance(SearchState.DONE)
            log_event(
                logger, logging.INFO, "search.done",
                uid=principal.uid, cache="hit" if entry is not None else "miss", result_count=len(results),
            )
            return {"videos": [item.to_wire() for item in results]}
        except Exception as e:
            trace.advance(SearchState.FAILED)
            self._raise_classified("search", e, payload, SEARCH_ERROR_CODES)

    async def _run_search(self, request: SearchRequest, trace: RequestTrace) -> list[SearchResultItem]:
        trace.advance(SearchState.PLANNING)
        descriptors = self.planner.plan(request)
        log_event(
            logger, logging.DEBUG, "search.planned",
            branches=",".join(descriptor.branch for descriptor in descriptors),
        )

        trace.advance(SearchState.AGGREGATING)
        return await self.aggregator.aggregate(descriptors, request.limit)

    async def suggestions(self, token: Any, payload: Any = None) -> dict[str, Any]:
        """Suggest artists, genres and moods starting with the typed query."""
        trace = RequestTrace("suggestions")
        log_event(logger, logging.INFO, "suggestions.start", request=sanitize_request(payload))
        try:
            principal = await self.auth.verify(token)
            trace.advance(SearchState.AUTHENTICATED)

            request = _parse(SuggestionsRequest, payload)
            items = await self.suggestion_engine.suggest(request.query)

            trace.advance(SearchState.DONE)
            log_event(logger, logging.INFO, "suggestions.done", uid=principal.uid, total=len(items))
            return {"suggestions": [item.to_wire() for item in items]}
        except Exception as e:
            trace.advance(SearchState.FAILED)
            self._raise_classified("suggestions", e, payload, SUGGESTIONS_ERROR_CODES)

    async def track_search(self, token: Any, payload: Any = None) -> dict[str, Any]:
        """Record the query in the caller's recent searches."""
        trace = RequestTrace("track_search")
        log_event(logger, logging.INFO, "track_search.start", request=sanitize_request(payload))
        try:
            principal = await self.auth.verify(token)
            trace.advance(SearchState.AUTHENTICATED)

            request = _parse(TrackSearchRequest, payload)
            await self.store.add_recent_search(principal.uid, request.query)

            trace.advance(SearchState.DONE)
            log_event(logger, logging.INFO, "track_search.done", uid=principal.uid)
            return {"success": True}
        except Exception as e:
            trace.advance(SearchState.FAILED)
            self._raise_classified("track_search", e, payload, TRACK_SEARCH_ERROR_CODES)

    def _raise_classified(self, operation: str, error: Exception, payload: Any, allowed: frozenset[ErrorCode]):
        sanitized = sanitize_request(payload)
        mapped: TuneSearchError = self.mapper.map(error, operation, {"request": sanitized}, allowed=allowed)
        log_event(
            logger, logging.ERROR, f"{operation}.failed",
            code=mapped.code, message=mapped.message, request=sanitized,
        )
        if mapped is error:
            raise mapped
        raise mapped from error

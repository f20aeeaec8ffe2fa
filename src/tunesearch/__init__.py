"""tunesearch: cached search and suggestions over a video document store."""

from .aggregator import BranchOutcome, ResultAggregator, merge_results
from .auth import AuthVerifier, StaticIdentityBackend
from .cache import CacheEntry, CacheStore, SystemClock, make_cache_key
from .config import SearchSettings
from .errors import ErrorCode, ErrorMapper, TuneSearchError
from .models import SearchFilters, SearchRequest, SearchResultItem, SuggestionItem
from .planner import QueryDescriptor, QueryPlanner
from .service import SearchService
from .store import InMemoryDocumentStore, QueryPage, StoredDocument
from .suggestions import SuggestionEngine

__version__ = "0.1.0"

__all__ = [
    # Service
    "SearchService",
    "SearchSettings",
    # Components
    "AuthVerifier",
    "StaticIdentityBackend",
    "CacheStore",
    "CacheEntry",
    "SystemClock",
    "make_cache_key",
    "QueryPlanner",
    "QueryDescriptor",
    "ResultAggregator",
    "BranchOutcome",
    "merge_results",
    "SuggestionEngine",
    # Store
    "InMemoryDocumentStore",
    "QueryPage",
    "StoredDocument",
    # Models
    "SearchFilters",
    "SearchRequest",
    "SearchResultItem",
    "SuggestionItem",
    # Errors
    "ErrorCode",
    "ErrorMapper",
    "TuneSearchError",
]

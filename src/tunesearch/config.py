"""Runtime settings for tunesearch, read from TUNESEARCH_* environment variables."""

import os
from dataclasses import dataclass

DEFAULT_CACHE_TTL_SECONDS = 300
DEFAULT_CACHE_MAX_ITEMS = 1000
DEFAULT_BATCH_SIZE = 20
DEFAULT_RESULT_LIMIT = 20
DEFAULT_SUGGESTION_LIMIT = 3
DEFAULT_REQUEST_TIMEOUT_SECONDS = 60


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass(frozen=True)
class SearchSettings:
    """Tunables for the search service.

    ``request_timeout_seconds`` is the hosting platform's per-request
    deadline. It is passed through to the outer surface and never enforced
    by the search core itself.
    """

    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    cache_max_items: int = DEFAULT_CACHE_MAX_ITEMS
    batch_size: int = DEFAULT_BATCH_SIZE
    default_limit: int = DEFAULT_RESULT_LIMIT
    suggestion_limit: int = DEFAULT_SUGGESTION_LIMIT
    request_timeout_seconds: int = DEFAULT_REQUEST_TIMEOUT_SECONDS
    seed_file: str | None = None
    tokens_file: str | None = None

    @classmethod
    def from_env(cls) -> "SearchSettings":
        return cls(
            cache_ttl_seconds=_env_int("TUNESEARCH_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS),
            cache_max_items=_env_int("TUNESEARCH_CACHE_MAX_ITEMS", DEFAULT_CACHE_MAX_ITEMS),
            batch_size=_env_int("TUNESEARCH_BATCH_SIZE", DEFAULT_BATCH_SIZE),
            default_limit=_env_int("TUNESEARCH_DEFAULT_LIMIT", DEFAULT_RESULT_LIMIT),
            suggestion_limit=_env_int("TUNESEARCH_SUGGESTION_LIMIT", DEFAULT_SUGGESTION_LIMIT),
            request_timeout_seconds=_env_int("TUNESEARCH_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT_SECONDS),
            seed_file=os.getenv("TUNESEARCH_SEED_FILE") or None,
            tokens_file=os.getenv("TUNESEARCH_TOKENS_FILE") or None,
        )

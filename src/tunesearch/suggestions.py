"""Prefix-based search suggestions across artist, genre and mood."""

import asyncio
import logging

from .config import DEFAULT_SUGGESTION_LIMIT
from .errors import ErrorMapper, error_mapper
from .logging_config import get_logger, log_event
from .models import SuggestionItem
from .planner import prefix_descriptor
from .store import DocumentStore, QueryPage

logger = get_logger(__name__)

SUGGESTION_FIELDS = ("artist", "genre", "mood")


class SuggestionEngine:
    """Completes partial input with stored artist, genre and mood values."""

    def __init__(
        self,
        store: DocumentStore,
        mapper: ErrorMapper | None = None,
        per_field_limit: int = DEFAULT_SUGGESTION_LIMIT,
    ):
        self.store = store
        self.mapper = mapper or error_mapper
        self.per_field_limit = per_field_limit

    async def suggest(self, query: str | None) -> list[SuggestionItem]:
        if not query:
            return []

        lowered = query.lower()
        descriptors = [
            prefix_descriptor(branch=f"suggest_{name}", field_name=name, text=lowered, limit=self.per_field_limit)
            for name in SUGGESTION_FIELDS
        ]
        pages = await asyncio.gather(*(self.store.run_query(d) for d in descriptors), return_exceptions=True)

        for descriptor, page in zip(descriptors, pages):
            if isinstance(page, BaseException):
                log_event(
                    logger, logging.ERROR, "suggestions.branch_failed",
                    field=descriptor.field, code=getattr(page, "code", None), error=page,
                )
        for descriptor, page in zip(descriptors, pages):
            if isinstance(page, asyncio.CancelledError):
                raise page
            if isinstance(page, BaseException):
                mapped = self.mapper.map(page, "suggestions", {"field": descriptor.field})
                if mapped is page:
                    raise mapped
                raise mapped from page

        suggestions = []
        for name, page in zip(SUGGESTION_FIELDS, pages):
            suggestions.extend(SuggestionItem(type=name, text=value) for value in _unique_values(page, name))
        return suggestions


def _unique_values(page: QueryPage, field_name: str) -> list[str]:
    """Distinct non-empty values of ``field_name`` in page order."""
    values: dict[str, None] = {}
    for record in page.records:
        value = record.data.get(field_name)
        if not value or not isinstance(value, str):
            logger.warning("Document %s missing %s field", record.id, field_name)
            continue
        values.setdefault(value, None)
    return list(values)

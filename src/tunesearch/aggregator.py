"""Concurrent execution and merging of search branches."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from pydantic import ValidationError

from .errors import ErrorMapper, error_mapper
from .logging_config import get_logger, log_event
from .models import SearchResultItem, is_valid_timestamp
from .planner import QueryDescriptor
from .store import DocumentStore, QueryPage, StoredDocument

logger = get_logger(__name__)


@dataclass
class BranchOutcome:
    """Result of running one descriptor: either a page or the error it raised."""

    descriptor: QueryDescriptor
    page: QueryPage | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ResultAggregator:
    """Runs query descriptors concurrently and merges their results.

    All branches must succeed; the first failure in submission order fails
    the whole aggregation.
    """

    def __init__(self, store: DocumentStore, mapper: ErrorMapper | None = None):
        self.store = store
        self.mapper = mapper or error_mapper

    async def execute(self, descriptors: Sequence[QueryDescriptor]) -> list[BranchOutcome]:
        """Run every descriptor concurrently, collecting one outcome per descriptor."""
        results = await asyncio.gather(
            *(self.store.run_query(descriptor) for descriptor in descriptors),
            return_exceptions=True,
        )

        outcomes = []
        for descriptor, result in zip(descriptors, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                outcomes.append(BranchOutcome(descriptor=descriptor, error=result))
            else:
                log_event(
                    logger, logging.DEBUG, "branch.completed",
                    branch=descriptor.branch, docs_found=len(result.records), has_more=result.has_more,
                )
                outcomes.append(BranchOutcome(descriptor=descriptor, page=result))
        return outcomes

    async def aggregate(self, descriptors: Sequence[QueryDescriptor], limit: int) -> list[SearchResultItem]:
        outcomes = await self.execute(descriptors)

        failures = [outcome for outcome in outcomes if not outcome.ok]
        for outcome in failures:
            log_event(
                logger, logging.ERROR, "branch.failed",
                branch=outcome.descriptor.branch,
                code=getattr(outcome.error, "code", None),
                error=outcome.error,
            )
        if failures:
            first = failures[0]
            mapped = self.mapper.map(first.error, "search", {"branch": first.descriptor.branch})
            if mapped is first.error:
                raise mapped
            raise mapped from first.error

        return merge_results([outcome.page for outcome in outcomes], limit)


def _dedupe(pages: Sequence[QueryPage]) -> list[StoredDocument]:
    seen: set[str] = set()
    unique = []
    for page in pages:
        for record in page.records:
            if record.id in seen:
                continue
            seen.add(record.id)
            unique.append(record)
    return unique


def merge_results(pages: Sequence[QueryPage], limit: int) -> list[SearchResultItem]:
    """Merge branch pages into one ordered, de-duplicated result list.

    1. Keep the first occurrence of each id, scanning pages in order.
    2. Drop records with a malformed upload timestamp.
    3. Stable sort by upload time, newest first.
    4. Truncate to ``limit``.
    """
    items = []
    for record in _dedupe(pages):
        upload_date = record.data.get("uploadDate")
        if not is_valid_timestamp(upload_date):
            log_event(
                logger, logging.WARNING, "result.invalid_upload_date",
                doc_id=record.id, upload_date=upload_date, type=type(upload_date).__name__,
            )
            continue
        try:
            items.append(SearchResultItem.from_document(record.id, record.data))
        except ValidationError as e:
            log_event(logger, logging.WARNING, "result.invalid_document", doc_id=record.id, errors=e.error_count())

    # reverse=True keeps equal keys in their original relative order
    items.sort(key=lambda item: item.upload_date.sort_key, reverse=True)
    return items[:limit]

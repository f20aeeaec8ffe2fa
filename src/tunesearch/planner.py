"""Turns a search request into independent query descriptors.

The planner never touches the store. Each descriptor it returns can be
executed on its own, in any order, and caps its own result count.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .config import DEFAULT_BATCH_SIZE
from .models import SearchRequest

# Highest code point in the BMP private use area; appended to a prefix to
# form the exclusive upper bound of a "starts with" range.
HIGH_SENTINEL = "\uf8ff"

UPLOAD_DATE_FIELD = "uploadDate"


class Operator(str, Enum):
    ARRAY_CONTAINS = "array-contains"
    PREFIX = "prefix"
    EQUALS = "equals"


class Direction(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class QueryDescriptor:
    """One independently executable lookup against the document store.

    ``PREFIX`` matches ``value <= doc[field] < upper_bound``;
    ``ARRAY_CONTAINS`` matches documents whose list ``field`` contains
    ``value``; ``EQUALS`` matches on every pair in ``equality_filters``
    (``field``/``value`` are unused).
    """

    branch: str
    operator: Operator
    field: str | None = None
    value: Any = None
    upper_bound: str | None = None
    equality_filters: tuple[tuple[str, str], ...] = ()
    order_by: tuple[tuple[str, Direction], ...] = ()
    limit: int = DEFAULT_BATCH_SIZE

    def describe(self) -> dict[str, Any]:
        """Loggable summary of this descriptor."""
        summary: dict[str, Any] = {"branch": self.branch, "operator": self.operator.value, "limit": self.limit}
        if self.field:
            summary["field"] = self.field
        if self.equality_filters:
            summary["filters"] = [name for name, _ in self.equality_filters]
        return summary


def prefix_descriptor(
    branch: str,
    field_name: str,
    text: str,
    limit: int,
    order_by: tuple[tuple[str, Direction], ...] | None = None,
) -> QueryDescriptor:
    """Range lookup simulating ``field_name`` starts-with ``text``."""
    return QueryDescriptor(
        branch=branch,
        operator=Operator.PREFIX,
        field=field_name,
        value=text,
        upper_bound=text + HIGH_SENTINEL,
        order_by=order_by if order_by is not None else ((field_name, Direction.ASC),),
        limit=limit,
    )


@dataclass
class QueryPlanner:
    """Stateless builder of search branches."""

    batch_size: int = DEFAULT_BATCH_SIZE
    newest_first: tuple[tuple[str, Direction], ...] = field(
        default=((UPLOAD_DATE_FIELD, Direction.DESC),), repr=False
    )

    def plan(self, request: SearchRequest) -> list[QueryDescriptor]:
        """Return 1-4 descriptors in submission order: tags, title, artist, filters."""
        descriptors: list[QueryDescriptor] = []
        filters = request.effective_filters
        text = request.query_text

        if text is not None:
            # Range queries on the store are case-sensitive; indexed values are lower-case.
            lowered = text.lower()

            if filters.search_in_tags is not False:
                descriptors.append(
                    QueryDescriptor(
                        branch="tags",
                        operator=Operator.ARRAY_CONTAINS,
                        field="tags",
                        value=lowered,
                        order_by=self.newest_first,
                        limit=self.batch_size,
                    )
                )

            for field_name in ("title", "artist"):
                descriptors.append(
                    prefix_descriptor(
                        branch=field_name,
                        field_name=field_name,
                        text=lowered,
                        limit=self.batch_size,
                        order_by=((field_name, Direction.ASC),) + self.newest_first,
                    )
                )

        equality = filters.equality_filters()
        if equality or text is None:
            descriptors.append(
                QueryDescriptor(
                    branch="filters",
                    operator=Operator.EQUALS,
                    equality_filters=tuple(equality.items()),
                    order_by=self.newest_first,
                    limit=self.batch_size,
                )
            )

        return descriptors

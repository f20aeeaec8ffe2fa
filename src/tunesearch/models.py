"""Data models for search requests, results and suggestions."""

import math
from collections.abc import Mapping
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_RESULT_LIMIT = 20

SuggestionType = Literal["artist", "genre", "mood", "recent"]


def _timestamp_part(value: Any, name: str) -> Any:
    if isinstance(value, Mapping):
        return value.get(name)
    return getattr(value, name, None)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def is_valid_timestamp(value: Any) -> bool:
    """Check that ``value`` is a well-formed ``{seconds, nanoseconds}`` pair.

    Accepts mappings and objects exposing ``seconds``/``nanoseconds``
    attributes (e.g. store-native timestamp types).
    """
    if value is None or isinstance(value, (str, bytes, int, float, bool)):
        return False
    return _is_number(_timestamp_part(value, "seconds")) and _is_number(_timestamp_part(value, "nanoseconds"))


class UploadTimestamp(BaseModel):
    """Seconds + nanoseconds upload time as stored in the document store."""

    # Stored values are kept as-is; a float is never truncated.
    seconds: Union[int, float] = Field(..., description="Seconds since the epoch")
    nanoseconds: Union[int, float] = Field(0, description="Sub-second part in nanoseconds")

    @classmethod
    def from_value(cls, value: Any) -> "UploadTimestamp":
        """Build from a mapping or timestamp-like object. Caller must validate first."""
        return cls(
            seconds=_timestamp_part(value, "seconds"),
            nanoseconds=_timestamp_part(value, "nanoseconds"),
        )

    @property
    def sort_key(self) -> tuple[Union[int, float], Union[int, float]]:
        return (self.seconds, self.nanoseconds)


class SearchFilters(BaseModel):
    """Structured filters accompanying a search."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    genre: Optional[str] = Field(None, description="Exact genre match")
    mood: Optional[str] = Field(None, description="Exact mood match")
    artist: Optional[str] = Field(None, description="Exact artist match")
    search_in_tags: Optional[bool] = Field(
        None, alias="searchInTags", description="Set to False to skip the tag containment branch"
    )

    def is_present(self) -> bool:
        """True when any filter field was supplied."""
        return any(
            value is not None for value in (self.genre, self.mood, self.artist, self.search_in_tags)
        )

    def equality_filters(self) -> dict[str, str]:
        """Non-empty exact-match filters in a fixed genre, mood, artist order."""
        filters = {}
        for name in ("genre", "mood", "artist"):
            value = getattr(self, name)
            if value:
                filters[name] = value
        return filters


class SearchRequest(BaseModel):
    """Free-text query plus optional structured filters."""

    query: Optional[str] = Field(None, description="Free-text query")
    filters: Optional[SearchFilters] = Field(None, description="Structured filters")
    limit: int = Field(DEFAULT_RESULT_LIMIT, ge=1, description="Maximum number of results returned")

    @property
    def query_text(self) -> str | None:
        """Query text, or None when absent or empty."""
        return self.query if self.query else None

    @property
    def effective_filters(self) -> SearchFilters:
        return self.filters or SearchFilters()

    def has_criteria(self) -> bool:
        return self.query_text is not None or self.effective_filters.is_present()


class SearchResultItem(BaseModel):
    """A media item surfaced by a search."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(..., description="Document identifier, unique within the store")
    title: str = Field("", description="Item title")
    artist: str = Field("", description="Performing artist")
    upload_date: UploadTimestamp = Field(..., alias="uploadDate", description="Upload time")
    tags: Optional[list[str]] = Field(None, description="Lower-case tags")
    genre: Optional[str] = Field(None)
    mood: Optional[str] = Field(None)

    @classmethod
    def from_document(cls, doc_id: str, data: Mapping[str, Any]) -> "SearchResultItem":
        """Build an item from a raw store record whose upload date is already validated."""
        fields = {key: value for key, value in data.items() if key not in ("id", "uploadDate")}
        return cls(id=doc_id, uploadDate=UploadTimestamp.from_value(data["uploadDate"]), **fields)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class SuggestionItem(BaseModel):
    """A typed completion for partially typed search input."""

    type: SuggestionType
    text: str

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump()


class Principal(BaseModel):
    """Identity decoded from a verified credential."""

    uid: str = Field(..., min_length=1)
    email: Optional[str] = None


class SuggestionsRequest(BaseModel):
    query: Optional[str] = None


class TrackSearchRequest(BaseModel):
    query: str = ""

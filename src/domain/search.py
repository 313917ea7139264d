"""Fuzzy search domain models and enums."""

import re
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from src.core.config import settings


_IDENTIFIER_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def _default_columns() -> list[str]:
    return [settings.fuzzy_default_column]


class MatchStrategy(StrEnum):
    """Approximate-matching strategy a record can satisfy."""

    EXACT = "exact"
    PREFIX = "prefix"
    SUFFIX = "suffix"
    WORD_BOUNDARY = "word_boundary"
    PERMUTATION = "permutation"
    PHONETIC = "phonetic"


class BaseQuery(BaseModel):
    """The caller's base filtered set, expressed in record store filter syntax."""

    collection: str = Field(..., description="Collection (table) to scan")
    filter_query: str = Field(default="", description='Filter expression, e.g. status = "active"')
    sort: str = Field(default="", description="Base ordering, e.g. -created or name ASC")

    @field_validator("collection")
    @classmethod
    def validate_collection(cls, v: str) -> str:
        """Ensure the collection is a plain identifier."""
        if not _IDENTIFIER_PATTERN.match(v):
            raise ValueError(f"Invalid collection name: {v}")
        return v


class SearchRequest(BaseModel):
    """A single ranked search request over a non-empty normalized term."""

    term: str = Field(..., min_length=1, description="Search term as returned by normalize_term")
    columns: list[str] = Field(default_factory=_default_columns, description="Columns to search, in tie-break order")
    debug: bool = Field(default=False, description="Emit search plan and failure diagnostics")

    @field_validator("columns")
    @classmethod
    def validate_columns(cls, v: list[str]) -> list[str]:
        """Require at least one column, each a plain identifier."""
        if not v:
            raise ValueError("At least one search column is required")
        for column in v:
            if not _IDENTIFIER_PATTERN.match(column):
                raise ValueError(f"Invalid column name: {column}")
        return v


class ScoredMatch(BaseModel, frozen=True):
    """One satisfied (strategy, column) pair for a record."""

    record_id: str
    priority: int
    quality: int
    strategy: MatchStrategy
    column: str

    @property
    def rank(self) -> tuple[int, int]:
        """Ordering key; lower is a better match."""
        return (self.priority, self.quality)


class SearchPlan(BaseModel):
    """What a search is about to execute, as reported to diagnostics."""

    collection: str
    filter_query: str
    term: str
    permutations: list[str]
    columns: list[str]
    record_columns: list[str]

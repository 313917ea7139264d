"""Domain models and DTOs."""

from src.domain.search import BaseQuery, MatchStrategy, ScoredMatch, SearchPlan, SearchRequest


__all__ = [
    "BaseQuery",
    "MatchStrategy",
    "ScoredMatch",
    "SearchPlan",
    "SearchRequest",
]

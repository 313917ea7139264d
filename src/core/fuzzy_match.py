"""Fuzzy matching and ranking over an already filtered record set.

The pipeline is:

1. ``normalize_term`` lowercases and trims the query term.
2. ``generate_permutations`` builds cheap single-typo variants of the term.
3. ``match_candidates`` runs every record through the ``STRATEGIES`` table and
   emits one ``ScoredMatch`` per satisfied (strategy, column) pair.
4. ``reduce_best_scores`` keeps the best (priority, quality) per record id.
5. ``rank_record_ids`` orders the surviving ids, and ``order_records`` imposes
   that order on records fetched back from the store.

Lower priority and quality values are better matches; priority dominates.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from src.core.config import constants
from src.core.phonetic import PhoneticKey, soundex
from src.domain.search import MatchStrategy, ScoredMatch


# Common spelling substitutions applied to short terms (all occurrences at once)
SUBSTITUTIONS: dict[str, list[str]] = {
    "a": ["e"],
    "e": ["a", "i"],
    "i": ["e", "y"],
    "o": ["u"],
    "u": ["o"],
    "s": ["z"],
    "z": ["s"],
    "ph": ["f"],
    "f": ["ph"],
}


def normalize_term(raw: str) -> str:
    """Lowercase and trim a raw search term. An empty result means pass-through."""
    return raw.strip().lower()


def generate_permutations(term: str) -> set[str]:
    """Generate typo variants of a normalized term.

    Includes adjacent character swaps, and for terms of 5 characters or less also
    single character omissions and common substitutions. Terms longer than 10
    characters are returned as-is to avoid excessive permutations.

    Args:
        term: The normalized search term

    Returns:
        Set of unique non-empty variants (the term itself is not guaranteed to be included)
    """
    length = len(term)

    if length > constants.MAX_PERMUTATION_TERM_LENGTH:
        return {term}

    permutations: set[str] = set()

    for i in range(length - 1):
        permutations.add(term[:i] + term[i + 1] + term[i] + term[i + 2 :])

    if length <= constants.MAX_OMISSION_TERM_LENGTH:
        for i in range(length):
            permutations.add(term[:i] + term[i + 1 :])

        for key, alternatives in SUBSTITUTIONS.items():
            if key in term:
                for alternative in alternatives:
                    permutations.add(term.replace(key, alternative))

    # An empty variant would be contained in every value
    permutations.discard("")
    return permutations


@dataclass(frozen=True)
class MatchContext:
    """Per-request values shared by every predicate evaluation."""

    permutations: frozenset[str]
    phonetic_key: PhoneticKey
    term_phonetic_key: str


Predicate = Callable[[str, str, MatchContext], bool]


@dataclass(frozen=True)
class StrategyRule:
    """A match strategy with its fixed score and predicate over a column value."""

    strategy: MatchStrategy
    priority: int
    quality: int
    predicate: Predicate


def _is_word_bounded(value: str, term: str) -> bool:
    return f" {term} " in value or value.startswith(f"{term} ") or value.endswith(f" {term}")


def _contains_permutation(value: str, _term: str, context: MatchContext) -> bool:
    return any(variant in value for variant in context.permutations)


def _sounds_alike(value: str, _term: str, context: MatchContext) -> bool:
    # Empty keys (no letters) never match each other
    return bool(context.term_phonetic_key) and context.phonetic_key(value) == context.term_phonetic_key


STRATEGIES: tuple[StrategyRule, ...] = (
    StrategyRule(MatchStrategy.EXACT, 1, 1, lambda value, term, _ctx: term in value),
    StrategyRule(MatchStrategy.PREFIX, 2, 1, lambda value, term, _ctx: value.startswith(term)),
    StrategyRule(MatchStrategy.SUFFIX, 2, 2, lambda value, term, _ctx: value.endswith(term)),
    StrategyRule(MatchStrategy.WORD_BOUNDARY, 2, 3, lambda value, term, _ctx: _is_word_bounded(value, term)),
    StrategyRule(MatchStrategy.PERMUTATION, 3, 1, _contains_permutation),
    StrategyRule(MatchStrategy.PHONETIC, 3, 2, _sounds_alike),
)


def _column_text(record: dict[str, Any], column: str) -> str | None:
    """Lowercased string form of a column value; None when absent or NULL."""
    value = record.get(column)
    if value is None:
        return None
    return str(value).lower()


def match_candidates(
    candidates: Iterable[dict[str, Any]],
    term: str,
    permutations: Iterable[str],
    columns: list[str],
    *,
    phonetic_key: PhoneticKey = soundex,
    strategies: tuple[StrategyRule, ...] = STRATEGIES,
) -> list[ScoredMatch]:
    """Evaluate every candidate against every strategy on every column.

    A record may produce several matches (one per satisfied strategy and column);
    duplicates are resolved by ``reduce_best_scores``.
    """
    context = MatchContext(
        permutations=frozenset(permutations),
        phonetic_key=phonetic_key,
        term_phonetic_key=phonetic_key(term),
    )
    active = [rule for rule in strategies if rule.strategy != MatchStrategy.PERMUTATION or context.permutations]
    records = list(candidates)

    matches: list[ScoredMatch] = []
    for column in columns:
        values = [(str(record[constants.ID_FIELD]), _column_text(record, column)) for record in records]
        for rule in active:
            matches.extend(
                ScoredMatch(
                    record_id=record_id,
                    priority=rule.priority,
                    quality=rule.quality,
                    strategy=rule.strategy,
                    column=column,
                )
                for record_id, value in values
                if value is not None and rule.predicate(value, term, context)
            )
    return matches


def reduce_best_scores(matches: Iterable[ScoredMatch]) -> dict[str, ScoredMatch]:
    """Keep the lexicographically smallest (priority, quality) match per record id."""
    best: dict[str, ScoredMatch] = {}
    for match in matches:
        current = best.get(match.record_id)
        if current is None or match.rank < current.rank:
            best[match.record_id] = match
    return best


SortValue = tuple[int, float | str]


def _sort_value(value: Any) -> SortValue:
    """Ascending sort value in SQLite type order: NULL, numbers, then case-folded text."""
    if value is None:
        return (0, "")
    if isinstance(value, int | float):
        return (1, value)
    if isinstance(value, str):
        return (2, value.lower())
    return (3, str(value))


def rank_record_ids(
    best: dict[str, ScoredMatch],
    candidates: Iterable[dict[str, Any]],
    sort_column: str,
) -> list[str]:
    """Order matched ids by priority, then quality, then the sort column value.

    Ties keep the candidates' original order. Candidates without a match are dropped.
    """
    sort_values: dict[str, SortValue] = {}
    for record in candidates:
        record_id = str(record[constants.ID_FIELD])
        if record_id in best and record_id not in sort_values:
            sort_values[record_id] = _sort_value(record.get(sort_column))

    return sorted(
        sort_values,
        key=lambda record_id: (*best[record_id].rank, sort_values[record_id]),
    )


def order_records(records: Iterable[dict[str, Any]], ranked_ids: list[str]) -> list[dict[str, Any]]:
    """Arrange fetched records in ranked id order, dropping any id not ranked."""
    by_id = {str(record[constants.ID_FIELD]): record for record in records}
    return [by_id[record_id] for record_id in ranked_ids if record_id in by_id]

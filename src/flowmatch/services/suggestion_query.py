"""Filtering, sorting, facets and statistics over computed suggestions.

Pure-function module, NO database access. Everything here works on the
in-memory list returned by ``SuggestionEngine.compute_suggestions``.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from flowmatch.domain.contracts import Suggestion
from flowmatch.domain.enums import SuggestionSort, SuggestionStatus
from flowmatch.domain.errors import InvalidInputError
from flowmatch.services.suggestion_state_machine import AWAITING_RESPONSE_STATUSES

DEFAULT_LIMIT = 25
MAX_LIMIT = 100
MAX_DISTANCE_FILTER_KM = 500

HIGH_SCORE = 80
MEDIUM_SCORE = 60

COMPATIBILITY_PRESETS = [
    {"label": "Very strong (≥ 85%)", "min_score": 85},
    {"label": "High (70-84%)", "min_score": 70},
    {"label": "Medium (50-69%)", "min_score": 50},
]

DISTANCE_PRESETS = [
    {"label": "≤ 5 km", "max_distance": 5},
    {"label": "≤ 15 km", "max_distance": 15},
    {"label": "≤ 30 km", "max_distance": 30},
]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass
class SuggestionFilters:
    search: Optional[str] = None
    status: Optional[SuggestionStatus] = None
    min_score: Optional[float] = None
    max_distance: Optional[float] = None
    include_ignored: bool = False
    tags: list[str] = field(default_factory=list)

    def validate(self) -> SuggestionFilters:
        """Raise ``InvalidInputError`` for out-of-range values; return self."""
        if self.min_score is not None and not 0 <= self.min_score <= 100:
            raise InvalidInputError("min_score must be between 0 and 100")
        if self.max_distance is not None and not 0 < self.max_distance <= MAX_DISTANCE_FILTER_KM:
            raise InvalidInputError(
                f"max_distance must be greater than 0 and at most {MAX_DISTANCE_FILTER_KM}"
            )
        if self.status is not None and not isinstance(self.status, SuggestionStatus):
            try:
                self.status = SuggestionStatus(self.status)
            except ValueError:
                raise InvalidInputError(f"Unknown status: {self.status!r}") from None
        return self


@dataclass
class SuggestionPage:
    items: list[Suggestion]
    total: int
    available: int


@dataclass
class FacetCount:
    value: str
    count: int


@dataclass
class FacetSummary:
    sectors: list[FacetCount]
    tags: list[FacetCount]
    status: list[str] = field(default_factory=lambda: [s.value for s in SuggestionStatus])
    compatibility: list[dict] = field(default_factory=lambda: [dict(p) for p in COMPATIBILITY_PRESETS])
    distance: list[dict] = field(default_factory=lambda: [dict(p) for p in DISTANCE_PRESETS])


@dataclass
class StatsSummary:
    active: int
    new_this_week: int
    awaiting_response: int
    average_score: int
    best_score: int
    distribution: dict[str, int]
    status: dict[str, int]


# ── Filtering ────────────────────────────────────────────────────────────────

def _matches_filters(suggestion: Suggestion, filters: SuggestionFilters) -> bool:
    if not filters.include_ignored and suggestion.status == SuggestionStatus.IGNORED:
        return False

    if filters.status is not None and suggestion.status != filters.status:
        return False

    if filters.min_score is not None and suggestion.score < filters.min_score:
        return False

    if (
        filters.max_distance is not None
        and suggestion.distance_km is not None
        and suggestion.distance_km > filters.max_distance
    ):
        return False

    if filters.tags:
        suggestion_tags = {tag.lower() for tag in suggestion.tags}
        if not any(tag.lower() in suggestion_tags for tag in filters.tags):
            return False

    if filters.search:
        haystack = " ".join([
            suggestion.company.name or "",
            suggestion.company.sector or "",
            *suggestion.tags,
            *(reason.message for reason in suggestion.reasons),
        ]).lower()
        if filters.search.lower() not in haystack:
            return False

    return True


def apply_filters(suggestions: list[Suggestion], filters: SuggestionFilters) -> list[Suggestion]:
    """Keep the suggestions that satisfy every filter; ignored ones only on request."""
    filters.validate()
    return [s for s in suggestions if _matches_filters(s, filters)]


# ── Sorting ──────────────────────────────────────────────────────────────────

def _distance_key(suggestion: Suggestion) -> tuple[bool, float]:
    # Unknown distances sort last
    d = suggestion.distance_km
    return (d is None, d if d is not None else 0.0)


def _updated_at(suggestion: Suggestion) -> datetime:
    if suggestion.meta is None or suggestion.meta.updated_at is None:
        return _EPOCH
    value = suggestion.meta.updated_at
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def sort_suggestions(
    suggestions: list[Suggestion],
    sort: SuggestionSort | str = SuggestionSort.SCORE,
) -> list[Suggestion]:
    """Return a new, stably sorted list.

    * ``score``: score desc, then distance asc (unknown last)
    * ``distance``: distance asc (unknown last), then score desc
    * ``recent``: interaction update time desc
    * ``alpha``: company name asc, case-insensitive
    """
    try:
        mode = SuggestionSort(sort or SuggestionSort.SCORE)
    except ValueError:
        raise InvalidInputError(f"Unknown sort: {sort!r}") from None

    if mode == SuggestionSort.DISTANCE:
        return sorted(suggestions, key=lambda s: (_distance_key(s), -s.score))
    if mode == SuggestionSort.RECENT:
        return sorted(suggestions, key=_updated_at, reverse=True)
    if mode == SuggestionSort.ALPHA:
        return sorted(suggestions, key=lambda s: (s.company.name or "").casefold())
    return sorted(suggestions, key=lambda s: (-s.score, _distance_key(s)))


def query_suggestions(
    suggestions: list[Suggestion],
    filters: Optional[SuggestionFilters] = None,
    sort: SuggestionSort | str = SuggestionSort.SCORE,
    limit: Optional[int] = None,
    *,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> SuggestionPage:
    """Filter, sort and truncate; ``total`` counts matches before the limit.

    The route passes the configured page bounds; the module constants are
    the defaults for direct callers.
    """
    limit = default_limit if limit is None else limit
    if not 1 <= limit <= max_limit:
        raise InvalidInputError(f"limit must be between 1 and {max_limit}")

    filtered = apply_filters(suggestions, filters or SuggestionFilters())
    ordered = sort_suggestions(filtered, sort)
    return SuggestionPage(
        items=ordered[:limit],
        total=len(filtered),
        available=len(suggestions),
    )


# ── Facets ───────────────────────────────────────────────────────────────────

def _to_facets(counter: Counter) -> list[FacetCount]:
    return [
        FacetCount(value=value, count=count)
        for value, count in sorted(counter.items(), key=lambda item: (-item[1], item[0]))
    ]


def compute_facets(suggestions: list[Suggestion]) -> FacetSummary:
    """Count sectors and tags across non-ignored suggestions."""
    sectors: Counter = Counter()
    tags: Counter = Counter()

    for suggestion in suggestions:
        if suggestion.status == SuggestionStatus.IGNORED:
            continue
        if suggestion.company.sector:
            sectors[suggestion.company.sector] += 1
        for tag in suggestion.tags:
            if tag:
                tags[tag] += 1

    return FacetSummary(sectors=_to_facets(sectors), tags=_to_facets(tags))


# ── Stats ────────────────────────────────────────────────────────────────────

def _active(suggestions: list[Suggestion]) -> list[Suggestion]:
    return [s for s in suggestions if s.status != SuggestionStatus.IGNORED]


def compute_stats(suggestions: list[Suggestion]) -> StatsSummary:
    """Aggregate counts and score distribution.

    Everything except the per-status breakdown ignores ignored suggestions.
    """
    active = _active(suggestions)
    scores = [s.score for s in active]

    fresh_new = [
        s for s in active
        if s.status == SuggestionStatus.NEW and s.meta is not None and s.meta.is_fresh
    ]
    awaiting = [s for s in active if s.status in AWAITING_RESPONSE_STATUSES]

    average = int(sum(scores) / len(scores) + 0.5) if scores else 0

    return StatsSummary(
        active=len(active),
        new_this_week=len(fresh_new),
        awaiting_response=len(awaiting),
        average_score=average,
        best_score=max(scores, default=0),
        distribution={
            "high": sum(1 for score in scores if score >= HIGH_SCORE),
            "medium": sum(1 for score in scores if MEDIUM_SCORE <= score < HIGH_SCORE),
            "low": sum(1 for score in scores if score < MEDIUM_SCORE),
        },
        status={
            status.value: sum(1 for s in suggestions if s.status == status)
            for status in SuggestionStatus
        },
    )


def compute_engagement(suggestions: list[Suggestion]) -> dict[str, int]:
    """Counts of the three user decisions."""
    return {
        status.value: sum(1 for s in suggestions if s.status == status)
        for status in (SuggestionStatus.SAVED, SuggestionStatus.CONTACTED, SuggestionStatus.IGNORED)
    }


def best_matches(suggestions: list[Suggestion], count: int = 3) -> list[Suggestion]:
    """Top non-ignored suggestions by score."""
    return sort_suggestions(_active(suggestions), SuggestionSort.SCORE)[:count]

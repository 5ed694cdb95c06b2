"""Deterministic compatibility scorer.

Pure-function module, NO database access.

Computes a 0-100 compatibility score from four weighted components:
    - Resource  (40 pts): normalized match strength across both directions
    - Proximity (30 pts): haversine distance with linear decay 5-50 km
    - Quantity  (20 pts): share of matches with compatible units
    - Sector    (10 pts): overlap of declared types, then of tags

Each component is rounded half-up to an integer before summing, so the
total is an integer clamped to [0, 100].
"""

from __future__ import annotations

import math
from typing import Optional

from flowmatch.domain.contracts import (
    Classification,
    CompanyContext,
    CompatibilityScore,
    Match,
    ScoreBreakdown,
)

# ── Weights ──────────────────────────────────────────────────────────────────

W_RESOURCE = 40
W_PROXIMITY = 30
W_QUANTITY = 20
W_SECTOR = 10

# ── Proximity band ───────────────────────────────────────────────────────────

EARTH_RADIUS_KM = 6371.0
FULL_PROXIMITY_KM = 5.0
MAX_DISTANCE_SCORE_KM = 50.0

# ── Partial-credit ratios ────────────────────────────────────────────────────

QUANTITY_NO_UNIT_RATIO = 0.4
QUANTITY_BASE_RATIO = 0.6
SECTOR_SHARED_TAG_RATIO = 0.7
SECTOR_ANY_TAGS_RATIO = 0.4

# ── Classification thresholds (score, label, badge, color) ──────────────────

CLASSIFICATIONS: list[tuple[int, Classification]] = [
    (85, Classification("Very strong compatibility", "top", "emerald")),
    (70, Classification("High compatibility", "high", "green")),
    (50, Classification("Medium compatibility", "medium", "amber")),
]
LIMITED = Classification("Limited compatibility", "low", "gray")


# ── Helpers ──────────────────────────────────────────────────────────────────

def round_half_up(value: float) -> int:
    """Round non-negative *value* to the nearest int, halves going up.

    Python's built-in ``round`` uses banker's rounding (``round(2.5) == 2``),
    which would shift scores on exact halves.
    """
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def haversine_km(
    lat1: Optional[float],
    lng1: Optional[float],
    lat2: Optional[float],
    lng2: Optional[float],
) -> Optional[float]:
    """Great-circle distance in km, or ``None`` when any coordinate is missing."""
    if lat1 is None or lng1 is None or lat2 is None or lng2 is None:
        return None
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(dlng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def company_distance_km(source: CompanyContext, target: CompanyContext) -> Optional[float]:
    return haversine_km(source.latitude, source.longitude, target.latitude, target.longitude)


# ── Component scores ─────────────────────────────────────────────────────────

def compute_resource_score(
    matches: list[Match],
    offer_count: int,
    need_count: int,
) -> tuple[int, int]:
    """Return ``(points, detail_percent)`` for the resource component."""
    if not matches:
        return 0, 0
    denominator = max(offer_count, need_count, 1)
    total_strength = sum(m.strength for m in matches)
    normalized = clamp(total_strength / denominator, 0.0, 1.0)
    return round_half_up(normalized * W_RESOURCE), round_half_up(normalized * 100)


def compute_quantity_score(matches: list[Match]) -> tuple[int, int]:
    """Return ``(points, unit_matched_count)`` for the quantity component.

    Rules
    -----
    * No matches                    → 0
    * Matches but no unit agreement → 40% of the weight
    * Otherwise                     → 60% to 100% of the weight, linear in
                                      the share of unit-compatible matches
    """
    if not matches:
        return 0, 0
    unit_matches = sum(1 for m in matches if m.unit_match)
    if unit_matches == 0:
        return round_half_up(W_QUANTITY * QUANTITY_NO_UNIT_RATIO), 0
    ratio = clamp(unit_matches / len(matches), 0.0, 1.0)
    points = round_half_up(W_QUANTITY * (QUANTITY_BASE_RATIO + (1 - QUANTITY_BASE_RATIO) * ratio))
    return points, unit_matches


def compute_proximity_score(distance_km: Optional[float]) -> int:
    """Linear decay from full points at 5 km to zero at 50 km.

    A missing distance (either company without coordinates) scores 0.
    """
    if distance_km is None or math.isnan(distance_km):
        return 0
    if distance_km <= FULL_PROXIMITY_KM:
        return W_PROXIMITY
    if distance_km >= MAX_DISTANCE_SCORE_KM:
        return 0
    effective_range = MAX_DISTANCE_SCORE_KM - FULL_PROXIMITY_KM
    remaining = clamp(MAX_DISTANCE_SCORE_KM - distance_km, 0.0, effective_range)
    return round_half_up(W_PROXIMITY * remaining / effective_range)


def compute_sector_score(
    source: CompanyContext,
    target: CompanyContext,
) -> tuple[int, list[str]]:
    """Return ``(points, shared_type_names)`` for the sector component."""
    shared = sorted(source.type_set & target.type_set)
    if shared:
        return W_SECTOR, shared
    target_tags = set(target.tags)
    if any(tag in target_tags for tag in source.tags):
        return round_half_up(W_SECTOR * SECTOR_SHARED_TAG_RATIO), []
    if source.tags and target.tags:
        return round_half_up(W_SECTOR * SECTOR_ANY_TAGS_RATIO), []
    return 0, []


def classify_compatibility(score: int) -> Classification:
    for threshold, classification in CLASSIFICATIONS:
        if score >= threshold:
            return classification
    return LIMITED


# ── Main scorer ──────────────────────────────────────────────────────────────

def compute_compatibility(
    source: CompanyContext,
    target: CompanyContext,
    forward: list[Match],
    backward: list[Match],
) -> CompatibilityScore:
    """Score one company pair from its forward and backward matches.

    Offers are counted on the requesting company only; needs are counted
    on both sides, so unmatched needs dilute the resource component.
    """
    matches = [*forward, *backward]
    distance = company_distance_km(source, target)

    resource, resource_detail = compute_resource_score(
        matches,
        offer_count=len(source.offers),
        need_count=len(source.needs) + len(target.needs),
    )
    quantity, quantity_matches = compute_quantity_score(matches)
    proximity = compute_proximity_score(distance)
    sector, shared_types = compute_sector_score(source, target)

    breakdown = ScoreBreakdown(
        resource=resource,
        proximity=proximity,
        quantity=quantity,
        sector=sector,
    )
    total = int(clamp(breakdown.total, 0, 100))

    return CompatibilityScore(
        score=total,
        breakdown=breakdown,
        classification=classify_compatibility(total),
        distance_km=distance,
        resource_match_detail=resource_detail,
        quantity_matches=quantity_matches,
        shared_sector_types=shared_types,
    )

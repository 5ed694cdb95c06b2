"""Human-readable reasons for a suggestion.

Pure-function module. Reasons are derived from the exact match lists and
sector result used for scoring; nothing is re-matched here.
"""

from __future__ import annotations

from typing import Optional

from flowmatch.domain.contracts import CompanyContext, Match, Reason
from flowmatch.domain.enums import MatchKind, ReasonType

MAX_RESOURCE_REASONS_PER_DIRECTION = 2
IMMEDIATE_PROXIMITY_KM = 5.0
TRANSPORT_PROXIMITY_KM = 25.0

_KIND_SUFFIX: dict[MatchKind, str] = {
    MatchKind.FAMILY: " (same family)",
    MatchKind.CATEGORY: " (compatible category)",
}


def describe_match(match: Match, direction: str, candidate_name: str) -> str:
    """Phrase one match from the requester's point of view."""
    if direction == "forward":
        label = f"Your {match.offer.name} satisfies {candidate_name}'s need for {match.need.name}"
    else:
        label = f"Their {match.offer.name} could satisfy your need for {match.need.name}"
    return label + _KIND_SUFFIX.get(match.kind, "")


def _proximity_reason(distance_km: Optional[float]) -> Optional[Reason]:
    if distance_km is None:
        return None
    if distance_km <= IMMEDIATE_PROXIMITY_KM:
        return Reason(ReasonType.PROXIMITY.value, f"Immediate proximity ({distance_km:.1f} km)")
    if distance_km <= TRANSPORT_PROXIMITY_KM:
        return Reason(ReasonType.PROXIMITY.value, f"Optimized transport ({distance_km:.1f} km)")
    return None


def _sector_reason(
    company: CompanyContext,
    candidate: CompanyContext,
    shared_types: list[str],
) -> Optional[Reason]:
    if shared_types:
        return Reason(ReasonType.SECTOR.value, f"Shared expertise: {', '.join(shared_types)}")
    if company.sector and candidate.sector and company.sector != candidate.sector:
        return Reason(
            ReasonType.SECTOR.value,
            f"Complementary sectors: {company.sector} ↔ {candidate.sector}",
        )
    return None


def build_reasons(
    company: CompanyContext,
    candidate: CompanyContext,
    forward: list[Match],
    backward: list[Match],
    distance_km: Optional[float],
    shared_types: list[str],
) -> list[Reason]:
    """Build the ordered reason list; never empty."""
    reasons: list[Reason] = []

    for match in forward[:MAX_RESOURCE_REASONS_PER_DIRECTION]:
        reasons.append(
            Reason(ReasonType.RESOURCE.value, describe_match(match, "forward", candidate.name))
        )
    for match in backward[:MAX_RESOURCE_REASONS_PER_DIRECTION]:
        reasons.append(
            Reason(ReasonType.RESOURCE.value, describe_match(match, "backward", candidate.name))
        )

    proximity = _proximity_reason(distance_km)
    if proximity:
        reasons.append(proximity)

    sector = _sector_reason(company, candidate, shared_types)
    if sector:
        reasons.append(sector)

    if any(m.unit_match for m in forward) or any(m.unit_match for m in backward):
        reasons.append(
            Reason(
                ReasonType.QUANTITY.value,
                "Compatible volumes and units to start a collaboration quickly",
            )
        )

    if not reasons:
        reasons.append(
            Reason(
                ReasonType.INSIGHT.value,
                f"{candidate.name} shares several key points with your activity.",
            )
        )

    return reasons

"""Serialization: suggestion engine dataclasses -> API response dicts.

Keys use the camelCase shape the dashboard client consumes.
"""

from datetime import datetime
from typing import Optional

from flowmatch.domain.contracts import (
    CompatibilityScore,
    Match,
    StatusChangeResult,
    Suggestion,
)
from flowmatch.services.suggestion_query import FacetSummary, StatsSummary


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_match(match: Match) -> dict:
    return {
        "offer": {
            "id": match.offer.id,
            "name": match.offer.name,
            "kind": match.offer.kind.value,
        },
        "need": {
            "id": match.need.id,
            "name": match.need.name,
        },
        "matchType": match.kind.value,
        "strength": match.strength,
        "unitMatch": match.unit_match,
    }


def serialize_compatibility(compatibility: CompatibilityScore) -> dict:
    return {
        "score": compatibility.score,
        "label": compatibility.label,
        "badge": compatibility.badge,
        "color": compatibility.color,
        "components": compatibility.breakdown.to_dict(),
    }


def serialize_suggestion(suggestion: Suggestion) -> dict:
    """Produce the suggestion card dict rendered by the dashboard."""
    company = suggestion.company
    meta = suggestion.meta
    return {
        "id": company.id,
        "interactionId": suggestion.interaction_id,
        "status": suggestion.status.value,
        "company": {
            "id": company.id,
            "name": company.name,
            "sector": company.sector,
            "address": company.address,
            "latitude": company.latitude,
            "longitude": company.longitude,
        },
        "distanceKm": suggestion.distance_km,
        "compatibility": serialize_compatibility(suggestion.compatibility),
        "tags": list(suggestion.tags),
        "reasons": [reason.to_dict() for reason in suggestion.reasons],
        "matches": {
            "forward": [serialize_match(m) for m in suggestion.forward_matches],
            "backward": [serialize_match(m) for m in suggestion.backward_matches],
        },
        "meta": {
            "isFresh": meta.is_fresh if meta else False,
            "createdAt": _iso(meta.created_at) if meta else None,
            "updatedAt": _iso(meta.updated_at) if meta else None,
        },
    }


def serialize_stats(stats: StatsSummary) -> dict:
    return {
        "active": stats.active,
        "newThisWeek": stats.new_this_week,
        "awaitingResponse": stats.awaiting_response,
        "averageScore": stats.average_score,
        "bestScore": stats.best_score,
        "distribution": dict(stats.distribution),
        "status": dict(stats.status),
    }


def serialize_facets(facets: FacetSummary) -> dict:
    return {
        "sectors": [{"value": f.value, "count": f.count} for f in facets.sectors],
        "tags": [{"value": f.value, "count": f.count} for f in facets.tags],
        "status": list(facets.status),
        "compatibility": [
            {"label": p["label"], "minScore": p["min_score"]} for p in facets.compatibility
        ],
        "distance": [
            {"label": p["label"], "maxDistance": p["max_distance"]} for p in facets.distance
        ],
    }


def serialize_status_change(company_id: str, result: StatusChangeResult) -> dict:
    return {
        "companyId": company_id,
        "status": result.status.value,
        "interactionId": result.interaction_id,
        "updatedAt": _iso(result.updated_at),
        "message": result.message,
    }

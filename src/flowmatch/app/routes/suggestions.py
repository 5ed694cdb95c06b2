"""Suggestion API endpoints.

Lists scored partner suggestions for the current user's company, exposes
dashboard stats and filter facets, and records save / ignore / contact
decisions. Listing recomputes and persists; stats and filters are
read-only computations.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from flowmatch.app.config import get_settings
from flowmatch.app.routes.auth import get_current_user_dep
from flowmatch.domain.enums import SuggestionStatus
from flowmatch.domain.errors import (
    ConflictError,
    InternalError,
    InvalidInputError,
    NotFoundError,
)
from flowmatch.domain.models import User
from flowmatch.domain.schemas import SuggestionAction, SuggestionQuery
from flowmatch.infra.database import get_db
from flowmatch.services.suggestion_engine import compute_suggestions, set_interaction_status
from flowmatch.services.suggestion_query import (
    SuggestionFilters,
    best_matches,
    compute_engagement,
    compute_facets,
    compute_stats,
    query_suggestions,
)
from flowmatch.services.suggestion_serializer import (
    serialize_facets,
    serialize_stats,
    serialize_status_change,
    serialize_suggestion,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/suggestions", tags=["suggestions"])

_ACTIONS = {
    "save": SuggestionStatus.SAVED,
    "ignore": SuggestionStatus.IGNORED,
    "contact": SuggestionStatus.CONTACTED,
}


def _to_http(exc: Exception) -> HTTPException:
    """Translate a domain or validation error into an HTTP error."""
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ValidationError):
        return HTTPException(
            status_code=400,
            detail={
                "message": "Invalid parameters",
                "errors": exc.errors(include_url=False, include_context=False),
            },
        )
    if isinstance(exc, InvalidInputError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, InternalError):
        return HTTPException(status_code=500, detail="Internal error while processing suggestions")
    logger.exception("Unexpected suggestion error: %s", exc)
    return HTTPException(status_code=500, detail="Internal error while processing suggestions")


def _applied_filters(query: SuggestionQuery, limit: int) -> dict:
    return {
        "search": query.search,
        "status": query.status.value if query.status else None,
        "minScore": query.min_score,
        "maxDistance": query.max_distance,
        "sort": query.sort.value,
        "limit": limit,
        "includeIgnored": query.include_ignored,
        "tags": list(query.tags),
    }


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@router.get("")
async def list_suggestions(
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    min_score: Optional[str] = Query(None, alias="minScore"),
    max_distance: Optional[str] = Query(None, alias="maxDistance"),
    sort: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    include_ignored: Optional[str] = Query(None, alias="includeIgnored"),
    tags: Optional[str] = Query(None, description="Comma-separated tags"),
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    """Recompute, persist and return the filtered suggestion page."""
    settings = get_settings()
    raw = {
        "search": search,
        "status": status,
        "minScore": min_score,
        "maxDistance": max_distance,
        "sort": sort,
        "limit": limit,
        "includeIgnored": include_ignored,
        "tags": tags,
    }
    try:
        query = SuggestionQuery.model_validate({k: v for k, v in raw.items() if v is not None})
        page_limit = query.limit or settings.suggestion_default_limit
        if page_limit > settings.suggestion_max_limit:
            raise InvalidInputError(
                f"limit must be between 1 and {settings.suggestion_max_limit}"
            )

        computation = await compute_suggestions(db, user.id, persist=True)
        suggestions = computation.suggestions
        page = query_suggestions(
            suggestions,
            SuggestionFilters(
                search=query.search,
                status=query.status,
                min_score=query.min_score,
                max_distance=query.max_distance,
                include_ignored=query.include_ignored,
                tags=query.tags,
            ),
            sort=query.sort,
            limit=page_limit,
            max_limit=settings.suggestion_max_limit,
        )
    except Exception as e:
        raise _to_http(e)

    return {
        "suggestions": [serialize_suggestion(s) for s in page.items],
        "stats": serialize_stats(compute_stats(suggestions)),
        "facets": serialize_facets(compute_facets(suggestions)),
        "total": page.total,
        "available": page.available,
        "appliedFilters": _applied_filters(query, page_limit),
        "limit": page_limit,
    }


@router.get("/stats")
async def suggestion_stats(
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    """Dashboard counters, engagement totals and the top three matches."""
    try:
        computation = await compute_suggestions(db, user.id, persist=False)
    except Exception as e:
        raise _to_http(e)

    suggestions = computation.suggestions
    return {
        "stats": serialize_stats(compute_stats(suggestions)),
        "engagement": compute_engagement(suggestions),
        "bestMatches": [serialize_suggestion(s) for s in best_matches(suggestions)],
    }


@router.get("/filters")
async def suggestion_filters(
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    """Facet values available for the filter bar."""
    try:
        computation = await compute_suggestions(db, user.id, persist=False)
    except Exception as e:
        raise _to_http(e)

    return {"facets": serialize_facets(compute_facets(computation.suggestions))}


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


async def _apply_action(
    action: str,
    company_id: str,
    body: Optional[dict],
    user: User,
    db: AsyncSession,
) -> dict:
    try:
        payload = SuggestionAction.model_validate(body or {})
        result = await set_interaction_status(
            db, user.id, company_id, _ACTIONS[action], note=payload.comment,
        )
    except Exception as e:
        raise _to_http(e)
    return serialize_status_change(company_id, result)


@router.post("/{company_id}/save")
async def save_suggestion(
    company_id: str,
    body: Optional[dict] = Body(None),
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    return await _apply_action("save", company_id, body, user, db)


@router.post("/{company_id}/ignore")
async def ignore_suggestion(
    company_id: str,
    body: Optional[dict] = Body(None),
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    return await _apply_action("ignore", company_id, body, user, db)


@router.post("/{company_id}/contact")
async def contact_suggestion(
    company_id: str,
    body: Optional[dict] = Body(None),
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    return await _apply_action("contact", company_id, body, user, db)

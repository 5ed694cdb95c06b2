"""Suggestion Engine - orchestrates the resource-flow matching pipeline.

For the requesting user's company, the engine loads every eligible
candidate company, and for each one:

    1. Extracts normalized resource contexts for both companies
    2. Matches offers to needs in both directions
    3. Drops candidates with no match at all (hard pre-filter)
    4. Scores resource, proximity, quantity and sector compatibility
    5. Drops candidates below the minimum score (soft filter)
    6. Builds human-readable reasons
    7. Upserts the (user, candidate) interaction when persisting
    8. Emits a ``Suggestion`` carrying the user's stored status

An error at any step for one candidate is logged and counted in
``failed``; the remaining candidates are still scored.

Read-only callers (stats, facets) run with ``persist=False`` so dashboard
reads never write.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from flowmatch.app.config import Settings, get_settings
from flowmatch.domain.contracts import (
    CompanyContext,
    CompanyRecord,
    CompanySummary,
    CompatibilityScore,
    InteractionMetadata,
    InteractionSnapshot,
    Match,
    Reason,
    StatusChangeResult,
    Suggestion,
    SuggestionComputation,
    SuggestionMeta,
)
from flowmatch.domain.enums import SuggestionStatus
from flowmatch.domain.errors import InternalError, InvalidInputError, NotFoundError
from flowmatch.services.company_provider import CompanyProvider
from flowmatch.services.compatibility_scorer import compute_compatibility
from flowmatch.services.interaction_store import SuggestionInteractionStore, as_utc
from flowmatch.services.reason_builder import build_reasons
from flowmatch.services.resource_extractor import build_company_context
from flowmatch.services.resource_matcher import match_companies
from flowmatch.services.suggestion_state_machine import USER_ACTION_STATUSES, coerce_status

logger = logging.getLogger(__name__)

NO_COMPANY_MESSAGE = "Create a company profile to receive suggestions"

STATUS_MESSAGES: dict[SuggestionStatus, str] = {
    SuggestionStatus.CONTACTED: "Contact initiated",
    SuggestionStatus.SAVED: "Suggestion saved",
    SuggestionStatus.IGNORED: "Suggestion ignored",
}

MAX_NOTE_LENGTH = 500


def _unique(values) -> list[str]:
    seen: set[str] = set()
    result = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


class SuggestionEngine:
    """Computes scored suggestions for one user per call."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        settings: Optional[Settings] = None,
        provider: Optional[CompanyProvider] = None,
        store: Optional[SuggestionInteractionStore] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        settings = settings or get_settings()
        self.session = session
        self.min_score = settings.suggestion_min_score
        self.fresh_window = timedelta(days=settings.suggestion_fresh_window_days)
        self.provider = provider or CompanyProvider(session, settings.eligible_statuses_list)
        self.store = store or SuggestionInteractionStore(session)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def compute_suggestions(
        self,
        user_id: str,
        *,
        persist: bool = True,
    ) -> SuggestionComputation:
        """Score every eligible candidate against the user's company.

        Raises:
            NotFoundError: the user has no company profile.
        """
        record = await self.provider.get_company_for_user(user_id)
        if record is None:
            raise NotFoundError(NO_COMPANY_MESSAGE)

        company = build_company_context(record)
        interactions = {
            company_id: InteractionSnapshot.from_row(row)
            for company_id, row in (await self.store.list_for_user(user_id)).items()
        }
        candidates = await self.provider.list_eligible_candidates(record.id)

        computation = SuggestionComputation(
            company=company,
            suggestions=[],
            scanned=len(candidates),
        )
        now = self._clock()

        for candidate_record in candidates:
            try:
                evaluated = self._evaluate(company, candidate_record)
                if evaluated is None:
                    computation.skipped_no_match += 1
                    continue

                candidate, forward, backward, compatibility = evaluated
                if compatibility.score < self.min_score:
                    computation.skipped_low_score += 1
                    continue

                reasons = build_reasons(
                    company,
                    candidate,
                    forward,
                    backward,
                    compatibility.distance_km,
                    compatibility.shared_sector_types,
                )

                interaction = interactions.get(candidate.company_id)
                if persist:
                    stored = await self._persist(
                        user_id, candidate.company_id, compatibility, reasons, interaction, now,
                    )
                    if stored is not None:
                        interaction = stored

                suggestion = self._build_suggestion(
                    candidate, compatibility, reasons, forward, backward, interaction, now,
                )
            except Exception as e:  # noqa: BLE001
                computation.failed += 1
                logger.warning("Skipping candidate %s: %s", candidate_record.id, e)
                continue

            computation.suggestions.append(suggestion)

        logger.info(
            "Suggestions for user=%s: %d candidates, %d emitted, %d without match, "
            "%d below %d, %d failed (persist=%s)",
            user_id,
            computation.scanned,
            len(computation.suggestions),
            computation.skipped_no_match,
            computation.skipped_low_score,
            self.min_score,
            computation.failed,
            persist,
        )
        return computation

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    def _evaluate(
        self,
        company: CompanyContext,
        candidate_record: CompanyRecord,
    ) -> Optional[tuple[CompanyContext, list[Match], list[Match], CompatibilityScore]]:
        """Extract, match and score one candidate; ``None`` when nothing matches."""
        candidate = build_company_context(candidate_record)
        forward, backward = match_companies(company, candidate)
        if not forward and not backward:
            return None
        compatibility = compute_compatibility(company, candidate, forward, backward)
        return candidate, forward, backward, compatibility

    async def _persist(
        self,
        user_id: str,
        company_id: str,
        compatibility: CompatibilityScore,
        reasons: list[Reason],
        interaction: Optional[InteractionSnapshot],
        now: datetime,
    ) -> Optional[InteractionSnapshot]:
        """Upsert the interaction; on storage failure log and keep going."""
        metadata = InteractionMetadata(
            components=compatibility.breakdown.to_dict(),
            raw_scores={
                "resource_match_detail": compatibility.resource_match_detail,
                "quantity_matches": compatibility.quantity_matches,
                "shared_sector_types": list(compatibility.shared_sector_types),
            },
            computed_at=now.isoformat(),
        )
        try:
            row = await self.store.upsert(
                user_id,
                company_id,
                score=compatibility.score,
                distance_km=compatibility.distance_km,
                reasons=reasons,
                metadata=metadata,
                existing=interaction,
            )
            snapshot = InteractionSnapshot.from_row(row)
            await self.session.commit()
            return snapshot
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.warning(
                "Could not persist suggestion user=%s company=%s: %s", user_id, company_id, e,
            )
            return None

    def _is_fresh(self, interaction: Optional[InteractionSnapshot], now: datetime) -> bool:
        if interaction is None:
            return True
        created = as_utc(interaction.created_at)
        if created is None:
            return False
        return now - created <= self.fresh_window

    def _build_suggestion(
        self,
        candidate: CompanyContext,
        compatibility: CompatibilityScore,
        reasons: list[Reason],
        forward: list[Match],
        backward: list[Match],
        interaction: Optional[InteractionSnapshot],
        now: datetime,
    ) -> Suggestion:
        status = coerce_status(interaction.status) if interaction else SuggestionStatus.NEW
        distance = compatibility.distance_km
        created_at = as_utc(interaction.created_at) if interaction else None
        updated_at = as_utc(interaction.updated_at) if interaction else None

        return Suggestion(
            company=CompanySummary(
                id=candidate.company_id,
                name=candidate.name,
                sector=candidate.sector,
                address=candidate.address,
                latitude=candidate.latitude,
                longitude=candidate.longitude,
            ),
            status=status,
            interaction_id=interaction.id if interaction else None,
            distance_km=round(distance, 2) if distance is not None else None,
            compatibility=compatibility,
            tags=_unique([candidate.sector, *candidate.tags]),
            reasons=reasons,
            forward_matches=forward,
            backward_matches=backward,
            meta=SuggestionMeta(
                is_fresh=self._is_fresh(interaction, now),
                created_at=created_at or now,
                updated_at=updated_at or now,
            ),
        )


# ----------------------------------------------------------------------
# Module-level convenience
# ----------------------------------------------------------------------


async def compute_suggestions(
    session: AsyncSession,
    user_id: str,
    *,
    persist: bool = True,
) -> SuggestionComputation:
    """Convenience: run the engine with the configured settings."""
    return await SuggestionEngine(session).compute_suggestions(user_id, persist=persist)


async def set_interaction_status(
    session: AsyncSession,
    user_id: str,
    company_id: str,
    target_status: SuggestionStatus,
    note: Optional[str] = None,
) -> StatusChangeResult:
    """Apply a save/ignore/contact action and commit it.

    Unlike recomputation, failures here propagate: the user is waiting for
    a confirmation.

    Raises:
        InvalidInputError: unknown action or note too long.
        NotFoundError: the target company does not exist.
        InternalError: the write failed.
    """
    if target_status not in USER_ACTION_STATUSES:
        raise InvalidInputError(f"Unsupported suggestion action: {target_status.value}")

    note = note.strip() if note else None
    if note and len(note) > MAX_NOTE_LENGTH:
        raise InvalidInputError(f"Note must be at most {MAX_NOTE_LENGTH} characters")

    store = SuggestionInteractionStore(session)
    try:
        interaction = await store.set_status(user_id, company_id, target_status, note=note)
        snapshot = InteractionSnapshot.from_row(interaction)
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(
            "Status change failed user=%s company=%s status=%s: %s",
            user_id, company_id, target_status.value, e,
        )
        raise InternalError("Could not update the suggestion") from e

    logger.info(
        "Suggestion status user=%s company=%s -> %s", user_id, company_id, target_status.value,
    )
    return StatusChangeResult(
        status=target_status,
        interaction_id=snapshot.id,
        updated_at=as_utc(snapshot.updated_at),
        message=STATUS_MESSAGES[target_status],
    )

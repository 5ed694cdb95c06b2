"""Persistence for per (user, target company) suggestion interactions.

Every write goes through one ``INSERT ... ON CONFLICT DO UPDATE`` keyed on
the unique (user_id, target_company_id) pair, so concurrent recomputations
for the same user converge on a single row without application locks.
Recomputation never includes ``status`` in its update set.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from flowmatch.domain.contracts import InteractionMetadata, InteractionSnapshot, Reason
from flowmatch.domain.enums import InteractionActor, SuggestionStatus
from flowmatch.domain.errors import NotFoundError
from flowmatch.domain.models import SuggestionInteraction
from flowmatch.services.company_provider import CompanyProvider
from flowmatch.services.suggestion_state_machine import SuggestionStateMachine, coerce_status

logger = logging.getLogger(__name__)

_CONFLICT_KEYS = ["user_id", "target_company_id"]


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive timestamps read back from the database."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ---------------------------------------------------------------------------
# Metadata merging
# ---------------------------------------------------------------------------

def merge_metadata(
    existing: Optional[InteractionMetadata],
    computed: InteractionMetadata,
) -> InteractionMetadata:
    """Refresh engine-owned fields and keep the user's note."""
    if existing is None:
        return replace(computed, note=None, note_updated_at=None)
    return InteractionMetadata(
        components=computed.components,
        raw_scores=computed.raw_scores,
        computed_at=computed.computed_at,
        note=existing.note,
        note_updated_at=existing.note_updated_at,
    )


def with_note(
    metadata: Optional[InteractionMetadata],
    note: Optional[str],
    at: datetime,
) -> InteractionMetadata:
    """Return *metadata* with *note* applied; a blank note changes nothing."""
    base = metadata or InteractionMetadata()
    if not note:
        return base
    return replace(base, note=note, note_updated_at=at.isoformat())


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class SuggestionInteractionStore:
    """Reads and keyed upserts of ``SuggestionInteraction`` rows.

    The store never commits; callers own the transaction boundary.
    """

    def __init__(
        self,
        session: AsyncSession,
        state_machine: Optional[SuggestionStateMachine] = None,
    ) -> None:
        self.session = session
        self.state_machine = state_machine or SuggestionStateMachine()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, user_id: str, company_id: str) -> Optional[SuggestionInteraction]:
        result = await self.session.execute(
            select(SuggestionInteraction)
            .where(
                SuggestionInteraction.user_id == user_id,
                SuggestionInteraction.target_company_id == company_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: str) -> dict[str, SuggestionInteraction]:
        """Return every interaction of *user_id* keyed by target company id."""
        result = await self.session.execute(
            select(SuggestionInteraction)
            .where(SuggestionInteraction.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return {row.target_company_id: row for row in result.scalars().all()}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def upsert(
        self,
        user_id: str,
        company_id: str,
        *,
        score: int,
        distance_km: Optional[float],
        reasons: list[Reason],
        metadata: InteractionMetadata,
        existing: Optional[SuggestionInteraction | InteractionSnapshot] = None,
    ) -> SuggestionInteraction:
        """Record a fresh computation for the pair.

        New rows start as ``new``; existing rows keep their status. The
        computed metadata is merged over *existing* (a row or a snapshot read
        earlier in the same run) so user notes survive.
        """
        current_status = coerce_status(existing.status) if existing else None
        status = self.state_machine.resolve_recomputed_status(current_status)

        previous = InteractionMetadata.from_json(existing.meta) if existing else None
        merged = merge_metadata(previous, metadata)
        now = utcnow()

        values = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "target_company_id": company_id,
            "status": status.value,
            "last_score": score,
            "distance_km": distance_km,
            "reasons": [r.to_dict() for r in reasons],
            "metadata": merged.to_json(),
            "created_at": now,
            "updated_at": now,
        }
        update_columns = ["last_score", "distance_km", "reasons", "metadata", "updated_at"]
        return await self._upsert(values, update_columns)

    async def set_status(
        self,
        user_id: str,
        company_id: str,
        status: SuggestionStatus,
        note: Optional[str] = None,
    ) -> SuggestionInteraction:
        """Apply a user decision, creating the row when the pair has none.

        Raises:
            NotFoundError: no row exists and the target company does not.
            InvalidTransitionError: the status change is not allowed.
        """
        existing = await self.get(user_id, company_id)
        current_status = coerce_status(existing.status) if existing else None
        self.state_machine.validate_transition(current_status, status, InteractionActor.USER)

        if existing is None and not await CompanyProvider(self.session).company_exists(company_id):
            raise NotFoundError(f"Company {company_id} not found")

        now = utcnow()
        previous = InteractionMetadata.from_json(existing.meta) if existing else None
        metadata = with_note(previous, note, now)

        values = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "target_company_id": company_id,
            "status": status.value,
            "reasons": [],
            "metadata": metadata.to_json() or None,
            "created_at": now,
            "updated_at": now,
        }
        return await self._upsert(values, ["status", "metadata", "updated_at"])

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _insert(self):
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(SuggestionInteraction.__table__)
        if dialect == "sqlite":
            return sqlite.insert(SuggestionInteraction.__table__)
        raise NotImplementedError(f"No atomic upsert for dialect {dialect!r}")

    async def _upsert(self, values: dict, update_columns: list[str]) -> SuggestionInteraction:
        stmt = self._insert().values(values)
        stmt = stmt.on_conflict_do_update(
            index_elements=_CONFLICT_KEYS,
            set_={col: stmt.excluded[col] for col in update_columns},
        )
        await self.session.execute(stmt)

        interaction = await self.get(values["user_id"], values["target_company_id"])
        logger.debug(
            "Upserted suggestion interaction user=%s company=%s status=%s",
            values["user_id"], values["target_company_id"],
            interaction.status if interaction else None,
        )
        return interaction

"""Read-only access to company profiles and their declared flows.

Rows are eagerly loaded and copied into detached ``CompanyRecord``
snapshots, so later rollbacks in the same session cannot trigger lazy loads.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from flowmatch.domain.contracts import CompanyContext, CompanyRecord, RawResource
from flowmatch.domain.models import Company, CompanyInput, CompanyOutput, CompanyTypeLink
from flowmatch.services.resource_extractor import build_company_context

logger = logging.getLogger(__name__)

DEFAULT_ELIGIBLE_STATUSES = ("validated", "approved", "active")


def _with_flows(stmt):
    return stmt.options(
        selectinload(Company.outputs).selectinload(CompanyOutput.family),
        selectinload(Company.inputs).selectinload(CompanyInput.family),
        selectinload(Company.type_links).selectinload(CompanyTypeLink.type),
    )


def _raw_resource(row, is_waste: bool) -> RawResource:
    return RawResource(
        id=row.id,
        name=row.name,
        category=row.category,
        unit_measure=row.unit_measure,
        family_name=row.family.name if row.family is not None else None,
        is_waste=is_waste,
    )


def snapshot_company(company: Company) -> CompanyRecord:
    """Copy an eagerly loaded ``Company`` into a ``CompanyRecord``."""
    return CompanyRecord(
        id=company.id,
        name=company.name,
        owner_id=company.owner_id,
        sector=company.sector,
        address=company.address,
        latitude=company.latitude,
        longitude=company.longitude,
        validation_status=company.validation_status,
        outputs=[_raw_resource(o, bool(o.is_waste)) for o in company.outputs],
        inputs=[_raw_resource(i, False) for i in company.inputs],
        type_names=[link.type.name for link in company.type_links if link.type is not None],
    )


class CompanyProvider:
    """Loads company records for the suggestion engine."""

    def __init__(
        self,
        session: AsyncSession,
        eligible_statuses: Optional[Iterable[str]] = None,
    ) -> None:
        self.session = session
        self.eligible_statuses = list(eligible_statuses or DEFAULT_ELIGIBLE_STATUSES)

    async def get_company_for_user(self, user_id: str) -> Optional[CompanyRecord]:
        """Return the company owned by *user_id* (oldest first), if any."""
        result = await self.session.execute(
            _with_flows(select(Company))
            .where(Company.owner_id == user_id)
            .order_by(Company.created_at, Company.id)
            .limit(1)
        )
        company = result.scalars().first()
        return snapshot_company(company) if company else None

    async def get_company_context(self, company_id: str) -> Optional[CompanyContext]:
        result = await self.session.execute(
            _with_flows(select(Company)).where(Company.id == company_id)
        )
        company = result.scalars().first()
        return build_company_context(snapshot_company(company)) if company else None

    async def list_eligible_candidates(self, exclude_company_id: str) -> list[CompanyRecord]:
        """Every company whose validation status is allowed, except *exclude_company_id*."""
        stmt = _with_flows(select(Company)).where(Company.id != exclude_company_id)
        if self.eligible_statuses:
            stmt = stmt.where(Company.validation_status.in_(self.eligible_statuses))
        result = await self.session.execute(stmt.order_by(Company.id))
        companies = result.scalars().all()
        logger.debug("Loaded %d eligible candidates (excluding %s)", len(companies), exclude_company_id)
        return [snapshot_company(c) for c in companies]

    async def company_exists(self, company_id: str) -> bool:
        result = await self.session.execute(select(Company.id).where(Company.id == company_id))
        return result.scalar_one_or_none() is not None

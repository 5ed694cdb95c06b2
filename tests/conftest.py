"""Shared test infrastructure for the FlowMatch test suite.

Provides:
- db_session: async SQLite in-memory session with all tables created
- make_user: factory for User rows
- make_company: factory for Company + outputs + inputs + type links
- make_record: factory for detached CompanyRecord snapshots (no database)
"""

import uuid

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import Base first, then models to register all tables
from flowmatch.infra.database import Base

import flowmatch.domain.models  # noqa: F401

from flowmatch.domain.contracts import CompanyRecord, RawResource
from flowmatch.domain.models import (
    Company,
    CompanyInput,
    CompanyOutput,
    CompanyType,
    CompanyTypeLink,
    ResourceFamily,
    User,
)


# ---------------------------------------------------------------------------
# Database session fixture
# ---------------------------------------------------------------------------

@pytest.fixture
async def db_session():
    """Async SQLite in-memory session with all tables created.

    Creates a fresh engine + tables for each test, yields a session,
    then rolls back and tears down.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


# ---------------------------------------------------------------------------
# User factory
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(db_session):
    """Factory that creates a User row.

    Usage:
        user = await make_user(email="someone@test.com")
    """
    async def _factory(email: str | None = None, name: str = "Test User", is_active: bool = True) -> User:
        user = User(
            id=str(uuid.uuid4()),
            email=email or f"user-{uuid.uuid4().hex[:8]}@test.com",
            name=name,
            is_active=is_active,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _factory


# ---------------------------------------------------------------------------
# Company factory
# ---------------------------------------------------------------------------

async def _get_or_create(session, model, name: str):
    result = await session.execute(select(model).where(model.name == name))
    row = result.scalar_one_or_none()
    if row is None:
        row = model(name=name)
        session.add(row)
        await session.flush()
    return row


@pytest.fixture
def make_company(db_session):
    """Factory that creates a Company with its declared flows.

    Outputs are dicts with ``name`` and optional ``category``, ``unit``,
    ``family`` and ``is_waste``; inputs take the same keys minus
    ``is_waste``.

    Usage:
        company = await make_company(
            name="Acme",
            owner=user,
            outputs=[{"name": "PET offcuts", "family": "Plastic", "unit": "kg", "is_waste": True}],
            inputs=[{"name": "Pallets", "family": "Wood"}],
        )
    """
    async def _factory(
        name: str = "Test Company",
        owner: User | None = None,
        sector: str | None = None,
        address: str | None = None,
        latitude: float | None = None,
        longitude: float | None = None,
        validation_status: str = "validated",
        types: list[str] | None = None,
        outputs: list[dict] | None = None,
        inputs: list[dict] | None = None,
    ) -> Company:
        company_id = str(uuid.uuid4())
        company = Company(
            id=company_id,
            owner_id=owner.id if owner else None,
            name=name,
            sector=sector,
            address=address,
            latitude=latitude,
            longitude=longitude,
            validation_status=validation_status,
        )
        db_session.add(company)
        await db_session.flush()

        for type_name in types or []:
            company_type = await _get_or_create(db_session, CompanyType, type_name)
            db_session.add(CompanyTypeLink(company_id=company_id, type_id=company_type.id))

        for flow in outputs or []:
            family = await _get_or_create(db_session, ResourceFamily, flow["family"]) if flow.get("family") else None
            db_session.add(CompanyOutput(
                id=str(uuid.uuid4()),
                company_id=company_id,
                name=flow["name"],
                category=flow.get("category"),
                unit_measure=flow.get("unit"),
                is_waste=flow.get("is_waste", False),
                family_id=family.id if family else None,
            ))

        for flow in inputs or []:
            family = await _get_or_create(db_session, ResourceFamily, flow["family"]) if flow.get("family") else None
            db_session.add(CompanyInput(
                id=str(uuid.uuid4()),
                company_id=company_id,
                name=flow["name"],
                category=flow.get("category"),
                unit_measure=flow.get("unit"),
                family_id=family.id if family else None,
            ))

        await db_session.flush()
        return company

    return _factory


# ---------------------------------------------------------------------------
# Detached record factory
# ---------------------------------------------------------------------------

@pytest.fixture
def make_record():
    """Factory that builds a CompanyRecord without touching the database.

    Outputs and inputs use the same dict shape as ``make_company``.

    Usage:
        record = make_record(name="Acme", outputs=[{"name": "Glass", "unit": "kg"}])
    """
    def _factory(
        name: str = "Test Company",
        id: str | None = None,
        sector: str | None = None,
        latitude: float | None = None,
        longitude: float | None = None,
        types: list[str] | None = None,
        outputs: list[dict] | None = None,
        inputs: list[dict] | None = None,
    ) -> CompanyRecord:
        def _raw(flow: dict, is_waste: bool) -> RawResource:
            return RawResource(
                id=flow.get("id") or str(uuid.uuid4()),
                name=flow["name"],
                category=flow.get("category"),
                unit_measure=flow.get("unit"),
                family_name=flow.get("family"),
                is_waste=is_waste,
            )

        return CompanyRecord(
            id=id or str(uuid.uuid4()),
            name=name,
            sector=sector,
            latitude=latitude,
            longitude=longitude,
            validation_status="validated",
            outputs=[_raw(o, o.get("is_waste", False)) for o in outputs or []],
            inputs=[_raw(i, False) for i in inputs or []],
            type_names=list(types or []),
        )

    return _factory

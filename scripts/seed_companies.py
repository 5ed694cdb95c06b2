"""Seed script: demo companies with material flows around Aubagne.

Usage:
    python scripts/seed_companies.py

Creates tables if needed, then inserts a demo owner, resource families,
company types and five validated companies with outputs and inputs. Rows
are keyed on fixed ids, so re-running only fills in what is missing.
"""

import asyncio
import logging
import os
import sys

# Ensure src is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

logging.basicConfig(level=logging.INFO, format="%(levelname)s  %(message)s")
logger = logging.getLogger(__name__)

OWNER_ID = "aaaaaaaa-0000-0000-0000-000000000001"
OWNER_EMAIL = "demo-owner@flowmatch.local"
OWNER_COMPANY_ID = "cccccccc-0000-0000-0000-000000000001"

FAMILIES = ["Plastic", "Wood", "Metal", "Organic", "Glass"]
TYPES = ["Manufacturing", "Recycling", "Logistics", "Agri-food", "Construction"]

# (id, name, sector, address, lat, lng, types, outputs, inputs)
# outputs: (name, category, unit, family, is_waste); inputs: (name, category, unit, family)
COMPANIES = [
    (
        "cccccccc-0000-0000-0000-000000000001",
        "Provence Plasturgie",
        "Plastics",
        "ZI Les Paluds, 13400 Aubagne",
        43.2927, 5.5708,
        ["Manufacturing"],
        [
            ("PET offcuts", "Polymer", "kg", "Plastic", True),
            ("Injection-molded crates", "Packaging", "unit", "Plastic", False),
        ],
        [("Shipping pallets", "Packaging", "unit", "Wood")],
    ),
    (
        "cccccccc-0000-0000-0000-000000000002",
        "Recyclage du Garlaban",
        "Recycling",
        "Chemin de la Thuilière, 13400 Aubagne",
        43.2990, 5.5490,
        ["Recycling"],
        [("Recycled PET flakes", "Polymer", "kg", "Plastic", False)],
        [
            ("Plastic scrap", "Polymer", "kg", "Plastic"),
            ("Glass cullet", "Mineral", "kg", "Glass"),
        ],
    ),
    (
        "cccccccc-0000-0000-0000-000000000003",
        "Palettes de l'Huveaune",
        "Logistics",
        "Avenue des Paluds, 13685 Gémenos",
        43.2960, 5.6270,
        ["Logistics", "Recycling"],
        [
            ("Shipping pallets", "Packaging", "unit", "Wood", False),
            ("Sawdust", "Biomass", "kg", "Wood", True),
        ],
        [("Stretch film", "Polymer", "kg", "Plastic")],
    ),
    (
        "cccccccc-0000-0000-0000-000000000004",
        "Conserverie Marseillaise",
        "Food processing",
        "Boulevard de la Valbarelle, 13011 Marseille",
        43.2880, 5.4700,
        ["Agri-food"],
        [
            ("Vegetable peelings", "Biowaste", "kg", "Organic", True),
            ("Broken jars", "Mineral", "kg", "Glass", True),
        ],
        [("Food-grade crates", "Packaging", "unit", "Plastic")],
    ),
    (
        "cccccccc-0000-0000-0000-000000000005",
        "Compost Sainte-Baume",
        "Agriculture",
        "Route de Cuges, 13780 Cuges-les-Pins",
        43.2760, 5.7000,
        ["Agri-food", "Recycling"],
        [("Compost", "Soil amendment", "t", "Organic", False)],
        [
            ("Green waste", "Biowaste", "kg", "Organic"),
            ("Sawdust", "Biomass", "kg", "Wood"),
        ],
    ),
]


async def seed():
    from sqlalchemy import select
    from flowmatch.infra.database import async_session, init_db
    from flowmatch.domain.enums import ValidationStatus
    from flowmatch.domain.models import (
        Company,
        CompanyInput,
        CompanyOutput,
        CompanyType,
        CompanyTypeLink,
        ResourceFamily,
        User,
    )

    await init_db()

    async with async_session() as session:
        if await session.get(User, OWNER_ID) is None:
            session.add(User(id=OWNER_ID, email=OWNER_EMAIL, name="Demo Owner", is_active=True))
            logger.info("Created owner %s", OWNER_EMAIL)

        families = {
            f.name: f for f in (await session.execute(select(ResourceFamily))).scalars().all()
        }
        for name in FAMILIES:
            if name not in families:
                families[name] = ResourceFamily(name=name)
                session.add(families[name])

        types = {
            t.name: t for t in (await session.execute(select(CompanyType))).scalars().all()
        }
        for name in TYPES:
            if name not in types:
                types[name] = CompanyType(name=name)
                session.add(types[name])

        await session.flush()

        created = 0
        for company_id, name, sector, address, lat, lng, type_names, outputs, inputs in COMPANIES:
            if await session.get(Company, company_id) is not None:
                continue

            session.add(Company(
                id=company_id,
                owner_id=OWNER_ID if company_id == OWNER_COMPANY_ID else None,
                name=name,
                sector=sector,
                address=address,
                latitude=lat,
                longitude=lng,
                validation_status=ValidationStatus.VALIDATED.value,
            ))
            for type_name in type_names:
                session.add(CompanyTypeLink(company_id=company_id, type_id=types[type_name].id))
            for out_name, category, unit, family, is_waste in outputs:
                session.add(CompanyOutput(
                    company_id=company_id,
                    name=out_name,
                    category=category,
                    unit_measure=unit,
                    is_waste=is_waste,
                    family_id=families[family].id,
                ))
            for in_name, category, unit, family in inputs:
                session.add(CompanyInput(
                    company_id=company_id,
                    name=in_name,
                    category=category,
                    unit_measure=unit,
                    family_id=families[family].id,
                ))
            created += 1

        await session.commit()

    if created:
        logger.info("Seeded %d companies.", created)
    else:
        logger.info("All demo companies already present. Nothing to do.")


if __name__ == "__main__":
    asyncio.run(seed())

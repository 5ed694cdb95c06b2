"""Resource extraction: raw company records into comparable descriptors.

Pure-function module, NO database access.
"""

from __future__ import annotations

from typing import Iterable, Optional

from flowmatch.domain.contracts import (
    CompanyContext,
    CompanyRecord,
    RawResource,
    ResourceDescriptor,
)
from flowmatch.domain.enums import FlowKind


def normalize_text(value) -> Optional[str]:
    """Trim and lower-case *value*; non-strings and blanks become ``None``."""
    if not isinstance(value, str):
        return None
    cleaned = value.strip().lower()
    return cleaned or None


def _unique(values: Iterable[Optional[str]]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if not value or value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


def build_resource_descriptor(
    resource: RawResource,
    kind: FlowKind,
    company_id: str,
) -> ResourceDescriptor:
    """Normalize one raw output/input row."""
    return ResourceDescriptor(
        id=resource.id,
        name=resource.name if isinstance(resource.name, str) else "",
        category=normalize_text(resource.category),
        family=normalize_text(resource.family_name),
        unit=normalize_text(resource.unit_measure),
        kind=kind,
        company_id=company_id,
    )


def build_company_context(record: CompanyRecord) -> CompanyContext:
    """Split a company's flows and derive its tag sets.

    Tags are the sector, the declared type names and, for each waste, its
    family name (or category when it has no family). ``type_set`` holds the
    lower-cased type names only and drives the sector-overlap score.
    """
    productions = [
        build_resource_descriptor(o, FlowKind.PRODUCTION, record.id)
        for o in record.outputs
        if not o.is_waste
    ]
    waste_rows = [o for o in record.outputs if o.is_waste]
    wastes = [
        build_resource_descriptor(o, FlowKind.WASTE, record.id)
        for o in waste_rows
    ]
    needs = [
        build_resource_descriptor(i, FlowKind.NEED, record.id)
        for i in record.inputs
    ]

    type_names = [name for name in record.type_names if isinstance(name, str) and name]
    waste_labels = [w.family_name or w.category for w in waste_rows]

    tags = _unique([
        record.sector if isinstance(record.sector, str) else None,
        *type_names,
        *(label if isinstance(label, str) else None for label in waste_labels),
    ])
    type_set = frozenset(
        t for t in (normalize_text(name) for name in type_names) if t
    )

    return CompanyContext(
        company_id=record.id,
        name=record.name,
        sector=record.sector,
        address=record.address,
        latitude=record.latitude,
        longitude=record.longitude,
        productions=productions,
        wastes=wastes,
        needs=needs,
        tags=tags,
        type_set=type_set,
    )

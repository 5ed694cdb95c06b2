"""Pairwise resource matcher.

Pure-function module, NO database access.

Every offer is compared with every need. Per-company resource counts are
small; matching runs over the dense cross product.
Precedence, first rule wins:

    family   (1.0):  both families present and equal
    category (0.75): both categories present and equal
    name     (0.5):  names equal, case-insensitive
"""

from __future__ import annotations

from flowmatch.domain.contracts import CompanyContext, Match, ResourceDescriptor
from flowmatch.domain.enums import MatchKind
from flowmatch.services.resource_extractor import normalize_text

STRENGTH_FAMILY = 1.0
STRENGTH_CATEGORY = 0.75
STRENGTH_NAME = 0.5


def _same(a: str | None, b: str | None) -> bool:
    a, b = normalize_text(a), normalize_text(b)
    return a is not None and a == b


def classify_pair(
    offer: ResourceDescriptor,
    need: ResourceDescriptor,
) -> tuple[float, MatchKind] | None:
    """Return ``(strength, kind)`` for an offer/need pair, or ``None``."""
    if _same(offer.family, need.family):
        return STRENGTH_FAMILY, MatchKind.FAMILY
    if _same(offer.category, need.category):
        return STRENGTH_CATEGORY, MatchKind.CATEGORY
    if _same(offer.name, need.name):
        return STRENGTH_NAME, MatchKind.NAME
    return None


def match_resources(
    offers: list[ResourceDescriptor],
    needs: list[ResourceDescriptor],
) -> list[Match]:
    """Find every offer/need link, ordered by offer then need."""
    matches: list[Match] = []
    for offer in offers:
        for need in needs:
            result = classify_pair(offer, need)
            if result is None:
                continue
            strength, kind = result
            matches.append(
                Match(
                    offer=offer,
                    need=need,
                    strength=strength,
                    kind=kind,
                    unit_match=_same(offer.unit, need.unit),
                )
            )
    return matches


def match_companies(
    source: CompanyContext,
    target: CompanyContext,
) -> tuple[list[Match], list[Match]]:
    """Run the matcher in both directions.

    Returns ``(forward, backward)``: forward links the source's offers to the
    target's needs, backward links the target's offers to the source's needs.
    """
    forward = match_resources(source.offers, target.needs)
    backward = match_resources(target.offers, source.needs)
    return forward, backward

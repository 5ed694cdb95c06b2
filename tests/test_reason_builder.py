"""Unit tests for suggestion reason generation."""

from flowmatch.domain.enums import ReasonType
from flowmatch.services.reason_builder import build_reasons, describe_match
from flowmatch.services.resource_extractor import build_company_context
from flowmatch.services.resource_matcher import match_companies


def _pair(make_record, source_kwargs, target_kwargs):
    source = build_company_context(make_record(name="Provence Plasturgie", **source_kwargs))
    target = build_company_context(make_record(name="Recyclage du Garlaban", **target_kwargs))
    forward, backward = match_companies(source, target)
    return source, target, forward, backward


class TestDescribeMatch:

    def test_forward_family_match(self, make_record):
        _, _, forward, _ = _pair(
            make_record,
            {"outputs": [{"name": "PET offcuts", "family": "Plastic", "is_waste": True}]},
            {"inputs": [{"name": "Plastic scrap", "family": "Plastic"}]},
        )
        assert describe_match(forward[0], "forward", "Recyclage du Garlaban") == (
            "Your PET offcuts satisfies Recyclage du Garlaban's need for Plastic scrap (same family)"
        )

    def test_backward_category_match(self, make_record):
        _, _, _, backward = _pair(
            make_record,
            {"inputs": [{"name": "Crates", "category": "Packaging"}]},
            {"outputs": [{"name": "Pallets", "category": "packaging"}]},
        )
        assert describe_match(backward[0], "backward", "Recyclage du Garlaban") == (
            "Their Pallets could satisfy your need for Crates (compatible category)"
        )

    def test_name_match_has_no_suffix(self, make_record):
        _, _, forward, _ = _pair(
            make_record,
            {"outputs": [{"name": "Sawdust"}]},
            {"inputs": [{"name": "sawdust"}]},
        )
        assert describe_match(forward[0], "forward", "X").endswith("need for sawdust")


class TestBuildReasons:

    def test_order_and_content(self, make_record):
        source, target, forward, backward = _pair(
            make_record,
            {
                "sector": "Plastics",
                "outputs": [{"name": "PET offcuts", "family": "Plastic", "unit": "kg", "is_waste": True}],
                "inputs": [{"name": "Pallets", "family": "Wood"}],
            },
            {
                "sector": "Recycling",
                "outputs": [{"name": "Used pallets", "family": "Wood"}],
                "inputs": [{"name": "Plastic scrap", "family": "Plastic", "unit": "kg"}],
            },
        )
        reasons = build_reasons(source, target, forward, backward, 3.04, [])

        assert [r.type for r in reasons] == [
            ReasonType.RESOURCE.value,
            ReasonType.RESOURCE.value,
            ReasonType.PROXIMITY.value,
            ReasonType.SECTOR.value,
            ReasonType.QUANTITY.value,
        ]
        assert reasons[2].message == "Immediate proximity (3.0 km)"
        assert reasons[3].message == "Complementary sectors: Plastics ↔ Recycling"

    def test_at_most_two_resource_reasons_per_direction(self, make_record):
        source, target, forward, backward = _pair(
            make_record,
            {"outputs": [{"name": f"Offcut {i}", "family": "Plastic"} for i in range(4)]},
            {"inputs": [{"name": "Plastic scrap", "family": "Plastic"}]},
        )
        reasons = build_reasons(source, target, forward, backward, None, [])
        assert len(forward) == 4
        assert sum(1 for r in reasons if r.type == ReasonType.RESOURCE.value) == 2

    def test_transport_band_and_shared_expertise(self, make_record):
        source, target, forward, backward = _pair(
            make_record,
            {"outputs": [{"name": "Glass"}]},
            {"inputs": [{"name": "Glass"}]},
        )
        reasons = build_reasons(source, target, forward, backward, 18.26, ["recycling"])
        messages = [r.message for r in reasons]
        assert "Optimized transport (18.3 km)" in messages
        assert "Shared expertise: recycling" in messages

    def test_far_away_has_no_proximity_reason(self, make_record):
        source, target, forward, backward = _pair(
            make_record,
            {"outputs": [{"name": "Glass"}]},
            {"inputs": [{"name": "Glass"}]},
        )
        reasons = build_reasons(source, target, forward, backward, 40.0, [])
        assert all(r.type != ReasonType.PROXIMITY.value for r in reasons)

    def test_never_empty(self, make_record):
        source = build_company_context(make_record(name="A"))
        target = build_company_context(make_record(name="Compost Sainte-Baume"))
        reasons = build_reasons(source, target, [], [], None, [])
        assert len(reasons) == 1
        assert reasons[0].type == ReasonType.INSIGHT.value
        assert reasons[0].message == "Compost Sainte-Baume shares several key points with your activity."

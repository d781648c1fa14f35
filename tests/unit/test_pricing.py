"""Unit tests for pricing rule parsing and quoting"""

import pytest
from agency_ledger.domain.exceptions import ValidationError
from agency_ledger.domain.pricing import (
    ExternalTable,
    FixedFee,
    ManualPricing,
    MatrixPricing,
    parse_pricing_rules,
    quote,
    rules_to_dict,
)

MATRIX = {
    "matrix": [
        {"vehicle_type": "private", "driver_age_group": "above_24", "offer_amount_min": 0, "price": 2500},
        {"vehicle_type": "private", "driver_age_group": "above_24", "offer_amount_min": 50000, "price": 3100},
        {"vehicle_type": "private", "driver_age_group": "under_24", "offer_amount_min": 0, "price": 4200},
    ]
}


def test_matrix_types_parse_to_matrix_pricing():
    for pricing_type in ("comprehensive", "third_party"):
        rule = parse_pricing_rules(pricing_type, MATRIX)
        assert isinstance(rule, MatrixPricing)
        assert len(rule.entries) == 3


def test_matrix_requires_matrix_list():
    with pytest.raises(ValidationError) as exc:
        parse_pricing_rules("comprehensive", {})
    assert exc.value.field == "rules.matrix"


def test_matrix_entry_requires_all_keys():
    with pytest.raises(ValidationError):
        parse_pricing_rules("third_party", {"matrix": [{"vehicle_type": "private", "price": 100}]})


def test_fixed_fee():
    rule = parse_pricing_rules("accident_fee_waiver", {"fixed_amount": 350})
    assert rule == FixedFee(amount=350)
    assert quote(rule) == 350


@pytest.mark.parametrize("raw", [{}, {"fixed_amount": "350"}, {"fixed_amount": True}])
def test_fixed_fee_requires_number(raw):
    with pytest.raises(ValidationError) as exc:
        parse_pricing_rules("accident_fee_waiver", raw)
    assert exc.value.field == "rules.fixed_amount"


def test_manual_and_external_have_no_automatic_price():
    assert quote(parse_pricing_rules("compulsory", None)) is None
    rule = parse_pricing_rules("road_service", {})
    assert rule == ExternalTable(source="road_service")
    assert quote(rule) is None
    assert isinstance(parse_pricing_rules("compulsory", {}), ManualPricing)


def test_unknown_pricing_type():
    with pytest.raises(ValidationError) as exc:
        parse_pricing_rules("life", {})
    assert exc.value.field == "pricing_type"


def test_matrix_quote_picks_highest_threshold_reached():
    rule = parse_pricing_rules("comprehensive", MATRIX)
    assert quote(rule, "private", "above_24", 10000) == 2500
    assert quote(rule, "private", "above_24", 50000) == 3100
    assert quote(rule, "private", "under_24", 90000) == 4200
    assert quote(rule, "truck", "above_24", 10000) is None


def test_rules_to_dict_round_trips_matrix():
    rule = parse_pricing_rules("comprehensive", MATRIX)
    assert parse_pricing_rules("comprehensive", rules_to_dict(rule)) == rule

"""Insurance company pricing rules as a closed set of variants"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from agency_ledger.domain.exceptions import ValidationError

MATRIX_KEYS = ("vehicle_type", "driver_age_group", "offer_amount_min", "price")


@dataclass(frozen=True)
class MatrixEntry:
    vehicle_type: str
    driver_age_group: str
    offer_amount_min: int
    price: int


@dataclass(frozen=True)
class MatrixPricing:
    """Price looked up by vehicle type, driver age group and offer amount"""

    entries: List[MatrixEntry]


@dataclass(frozen=True)
class FixedFee:
    amount: int


@dataclass(frozen=True)
class ManualPricing:
    """Price typed in by the agent for every policy"""


@dataclass(frozen=True)
class ExternalTable:
    """Prices live in another catalogue (e.g. road services)"""

    source: str


PricingRule = Union[MatrixPricing, FixedFee, ManualPricing, ExternalTable]


def _parse_matrix(raw: Dict[str, Any]) -> MatrixPricing:
    matrix = raw.get("matrix")
    if not isinstance(matrix, list):
        raise ValidationError("Matrix-based pricing types require rules.matrix array", field="rules.matrix")

    entries = []
    for entry in matrix:
        if not isinstance(entry, dict) or any(entry.get(key) is None for key in MATRIX_KEYS):
            raise ValidationError(
                "Each matrix entry must have: vehicle_type, driver_age_group, offer_amount_min, price",
                field="rules.matrix",
            )
        entries.append(
            MatrixEntry(
                vehicle_type=str(entry["vehicle_type"]),
                driver_age_group=str(entry["driver_age_group"]),
                offer_amount_min=int(entry["offer_amount_min"]),
                price=int(entry["price"]),
            )
        )
    return MatrixPricing(entries=entries)


def parse_pricing_rules(pricing_type: str, raw: Optional[Dict[str, Any]]) -> PricingRule:
    """
    Turn a pricing type and its raw rules into a PricingRule variant.

    - comprehensive / third_party: matrix of prices
    - accident_fee_waiver: fixed amount
    - compulsory: priced manually
    - road_service: priced from the road-service catalogue
    """
    raw = raw or {}

    if pricing_type in ("comprehensive", "third_party"):
        return _parse_matrix(raw)

    if pricing_type == "accident_fee_waiver":
        amount = raw.get("fixed_amount")
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise ValidationError(
                "Accident fee waiver requires rules.fixed_amount (number)",
                field="rules.fixed_amount",
            )
        return FixedFee(amount=int(amount))

    if pricing_type == "compulsory":
        return ManualPricing()

    if pricing_type == "road_service":
        return ExternalTable(source="road_service")

    raise ValidationError("Unknown pricing type", field="pricing_type")


def rules_to_dict(rule: PricingRule) -> Dict[str, Any]:
    """Storage form of a rule, the inverse of parse_pricing_rules"""
    if isinstance(rule, MatrixPricing):
        return {
            "matrix": [
                {
                    "vehicle_type": e.vehicle_type,
                    "driver_age_group": e.driver_age_group,
                    "offer_amount_min": e.offer_amount_min,
                    "price": e.price,
                }
                for e in rule.entries
            ]
        }
    if isinstance(rule, FixedFee):
        return {"fixed_amount": rule.amount}
    if isinstance(rule, ExternalTable):
        return {"source": rule.source}
    if isinstance(rule, ManualPricing):
        return {}
    raise TypeError(f"Unsupported pricing rule: {rule!r}")


def quote(
    rule: PricingRule,
    vehicle_type: Optional[str] = None,
    driver_age_group: Optional[str] = None,
    offer_amount: int = 0,
) -> Optional[int]:
    """
    Price a policy under a rule; None means no automatic price exists.

    For a matrix the entry with the matching vehicle type and age group and
    the highest offer_amount_min not above the offer wins.
    """
    if isinstance(rule, MatrixPricing):
        candidates = [
            e for e in rule.entries
            if e.vehicle_type == vehicle_type
            and e.driver_age_group == driver_age_group
            and e.offer_amount_min <= offer_amount
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda e: e.offer_amount_min).price
    if isinstance(rule, FixedFee):
        return rule.amount
    if isinstance(rule, (ManualPricing, ExternalTable)):
        return None
    raise TypeError(f"Unsupported pricing rule: {rule!r}")

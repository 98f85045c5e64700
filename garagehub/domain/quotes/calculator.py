"""
Quote and invoice arithmetic

Pure functions over line items and totals. Money is rounded to the cent
with ROUND_HALF_UP. Inputs are not validated here: negative costs or
quantities flow through the arithmetic unchanged and callers (the pydantic
schemas) are responsible for rejecting them.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping, Optional, Union

from ...config import DEFAULT_DEPOSIT_PERCENT, DEFAULT_TAX_RATE, DEFAULT_VARIANCE_TOLERANCE

CENT = Decimal("0.01")

Number = Union[int, float, Decimal]


def _dec(value: Optional[Number]) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    # str() keeps 0.1 as 0.1 instead of its binary expansion
    return Decimal(str(value))


def round_money(value: Number) -> float:
    """Round to 2 decimals, half-up on the cent"""
    return float(_dec(value).quantize(CENT, rounding=ROUND_HALF_UP))


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read a field from an ORM row, a pydantic model or a plain mapping"""
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _parts_cost(item: Any) -> Decimal:
    return _dec(_field(item, "part_cost", 0)) * _dec(_field(item, "quantity", 1))


def _labor_cost(item: Any) -> Decimal:
    return _dec(_field(item, "labor_hours", 0)) * _dec(_field(item, "labor_rate", 0))


def calculate_line_item_subtotal(item: Any) -> float:
    """part_cost x quantity + labor_hours x labor_rate"""
    return round_money(_parts_cost(item) + _labor_cost(item))


def calculate_totals(
    line_items: Iterable[Any],
    shop_fees: Number = 0,
    tax_rate: Number = DEFAULT_TAX_RATE,
) -> dict[str, float]:
    """
    Derive every total of a quote or invoice from its line items.

    Returns:
        dict with parts_cost_total, labor_cost_total, subtotal, taxes, total.
        taxes is computed on the rounded subtotal so that
        total == subtotal + taxes holds to the cent.
    """
    items = list(line_items)
    parts_cost_total = sum((_parts_cost(item) for item in items), Decimal("0"))
    labor_cost_total = sum((_labor_cost(item) for item in items), Decimal("0"))

    subtotal = _dec(round_money(parts_cost_total + labor_cost_total + _dec(shop_fees)))
    taxes = _dec(round_money(subtotal * _dec(tax_rate)))

    return {
        "parts_cost_total": round_money(parts_cost_total),
        "labor_cost_total": round_money(labor_cost_total),
        "subtotal": float(subtotal),
        "taxes": float(taxes),
        "total": round_money(subtotal + taxes),
    }


def calculate_variance(quote_total: Number, invoice_total: Number) -> float:
    """
    Percent difference of the final bill from the quote
    (positive = over quote, negative = under quote).

    A zero quote total yields 0 rather than dividing by zero.
    """
    quote = _dec(quote_total)
    if quote == 0:
        return 0.0
    return round_money((_dec(invoice_total) - quote) / quote * 100)


def is_variance_over_tolerance(
    variance: Number, tolerance: Number = DEFAULT_VARIANCE_TOLERANCE
) -> bool:
    """variance is a percent, tolerance a fraction (0.15 == 15%)"""
    return abs(_dec(variance)) > _dec(tolerance) * 100


def calculate_deposit(estimated_total: Number, deposit_percent: Number = DEFAULT_DEPOSIT_PERCENT) -> float:
    return round_money(_dec(estimated_total) * _dec(deposit_percent) / 100)


def calculate_estimated_range(estimated_total: Number, confidence: Number) -> tuple[float, float]:
    """Lower confidence widens the band around the estimate"""
    total = _dec(estimated_total)
    spread = 1 - _dec(confidence)
    return round_money(total * (1 - spread)), round_money(total * (1 + spread))


def compare_quotes(quotes: Iterable[Any]) -> list[Any]:
    """
    Rank quotes: guaranteed first, then higher confidence, then cheaper.
    sorted() is stable, so equal quotes keep their input order.
    """
    return sorted(
        quotes,
        key=lambda q: (
            not bool(_field(q, "guaranteed", False)),
            -float(_field(q, "confidence", 0) or 0),
            float(_field(q, "estimated_total", 0) or 0),
        ),
    )


def get_confidence_label(confidence: Number) -> str:
    # Each band includes its lower bound
    if confidence >= 0.9:
        return "High Confidence"
    if confidence >= 0.7:
        return "Good Confidence"
    if confidence >= 0.5:
        return "Moderate Confidence"
    return "Estimate Only"


def get_service_price_range(pricing_rows: Iterable[Any], car_type: str) -> Optional[tuple[float, float]]:
    """Catalogue price band for a vehicle class, or None when the service has none"""
    wanted = getattr(car_type, "value", car_type)
    for row in pricing_rows:
        row_type = _field(row, "car_type")
        if getattr(row_type, "value", row_type) == wanted:
            return float(_field(row, "min_price")), float(_field(row, "max_price"))
    return None

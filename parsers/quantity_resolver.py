"""
Target quantity resolution for inventory spreadsheet rows.

Spreadsheets arrive with different stock columns depending on which system
exported them. The first rule whose inputs are present decides the quantity:

1. Closing stock                      → closing_stock_direct
2. Opening stock + movement           → opening_plus_movement
3. Opening stock + inward - outward   → opening_plus_inward_minus_outward
4. Opening stock alone                → opening_stock_fallback
5. Nothing usable                     → missing_stock_fields (no quantity)
"""

import math
import re
import numbers
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Mapping, Optional, Sequence

from models.inventory_sync import QuantitySource

CLOSING_STOCK_COLUMNS = [
    "Closing Stock",
    "Closing Stock On Qty",
    "On hand (new)",
    "Available (not editable)",
    "Quantity",
    "Variant Inventory Qty",
]
OPENING_STOCK_COLUMNS = [
    "Opening Stock",
    "Opening Stock Qty",
    "On hand (current)",
    "Available",
]
STOCK_MOVEMENT_COLUMNS = ["Stock Movement", "Movement", "Net Movement", "Adjustment"]
INWARD_COLUMNS = ["Inward Stock", "Received Qty"]
OUTWARD_COLUMNS = ["Out Qty", "Sold Qty"]

# Cells that mean "nothing on hand"
EMPTY_STOCK_TOKENS = frozenset({"not stocked", "n/a", "na", "none", "null", "-"})

# Plain decimal with optional exponent; no underscores, inf or nan
NUMBER_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")

MISSING_STOCK_REASON = (
    "Missing stock values. Provide Closing Stock/On hand (new), "
    "or Opening Stock (+ Movement)"
)


@dataclass(frozen=True)
class QuantityDecision:
    """Resolved quantity (None when no rule applied) and its provenance."""
    quantity: Optional[int]
    source: QuantitySource
    reason: Optional[str] = None


def normalize_header(header: Any) -> str:
    """Header key used for case/whitespace-insensitive column matching."""
    return str(header).strip().lower()


def get_cell(row: Mapping[str, Any], aliases: Sequence[str]) -> Any:
    """
    First cell whose header matches one of the aliases.

    Args:
        row: Mapping of normalized header → cell value
        aliases: Column names in priority order

    Returns:
        The cell value, or None when no alias is present
    """
    for alias in aliases:
        key = normalize_header(alias)
        if key in row:
            return row[key]
    return None


def parse_quantity(value: Any) -> Optional[float]:
    """
    Parse a stock cell.

    - 12 / 12.5 → the number (NaN and infinities are rejected)
    - "1,250" → 1250.0
    - "N/A", "not stocked", "-" → 0.0
    - "", "abc", None → None

    Returns:
        Parsed number, or None when the cell holds no usable value
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (numbers.Real, Decimal)):
        number = float(value)
        return number if math.isfinite(number) else None

    raw = str(value).strip()
    if not raw:
        return None

    if raw.lower() in EMPTY_STOCK_TOKENS:
        return 0.0

    text = raw.replace(",", "")
    if not NUMBER_PATTERN.match(text):
        return None
    number = float(text)
    return number if math.isfinite(number) else None


def round_quantity(value: float) -> int:
    """Round half away from zero, clamped at 0."""
    rounded = int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return max(0, rounded)


def resolve_quantity(row: Mapping[str, Any]) -> QuantityDecision:
    """
    Resolve the target quantity of one spreadsheet row.

    Args:
        row: Mapping of normalized header → cell value

    Returns:
        QuantityDecision; quantity is None only for missing_stock_fields
    """
    closing = parse_quantity(get_cell(row, CLOSING_STOCK_COLUMNS))
    if closing is not None:
        return QuantityDecision(round_quantity(closing), QuantitySource.CLOSING_STOCK_DIRECT)

    opening = parse_quantity(get_cell(row, OPENING_STOCK_COLUMNS))
    movement = parse_quantity(get_cell(row, STOCK_MOVEMENT_COLUMNS))
    if opening is not None and movement is not None:
        return QuantityDecision(
            round_quantity(opening + movement),
            QuantitySource.OPENING_PLUS_MOVEMENT,
        )

    inward = parse_quantity(get_cell(row, INWARD_COLUMNS))
    outward = parse_quantity(get_cell(row, OUTWARD_COLUMNS))
    if opening is not None and (inward is not None or outward is not None):
        return QuantityDecision(
            round_quantity(opening + (inward or 0.0) - (outward or 0.0)),
            QuantitySource.OPENING_PLUS_INWARD_MINUS_OUTWARD,
        )

    if opening is not None:
        return QuantityDecision(round_quantity(opening), QuantitySource.OPENING_STOCK_FALLBACK)

    return QuantityDecision(None, QuantitySource.MISSING_STOCK_FIELDS, MISSING_STOCK_REASON)

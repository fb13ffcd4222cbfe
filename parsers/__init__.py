"""
Spreadsheet parsers module.

Inventory sheet parsing and target quantity resolution.
"""

from parsers.inventory_sheet_parser import (
    parse_inventory_file,
    parse_inventory_records,
    InventorySheetParseResult,
)
from parsers.quantity_resolver import (
    resolve_quantity,
    parse_quantity,
    QuantityDecision,
)

__all__ = [
    "parse_inventory_file",
    "parse_inventory_records",
    "InventorySheetParseResult",
    "resolve_quantity",
    "parse_quantity",
    "QuantityDecision",
]

"""
Inventory spreadsheet parser.

Reads the first sheet of an uploaded .xlsx, .xls or .csv file and turns each
data row into a ParsedRow (identifiers, option values, target quantity,
location and bin). Rows that cannot be used are returned as skipped
ResultRows with the reason.

Header matching is case-insensitive and ignores surrounding whitespace.
Row numbers follow the sheet: header is row 1, first data row is row 2.
"""

from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Any, Mapping, Optional
import math
import structlog

import pandas as pd

from exceptions import SpreadsheetParseError
from models.inventory_sync import ParsedRow, ResultRow
from parsers.quantity_resolver import get_cell, normalize_header, resolve_quantity

logger = structlog.get_logger(__name__)

SUPPORTED_EXTENSIONS = (".xlsx", ".xls", ".csv")

# Windows/Excel exports are often not UTF-8. latin-1 decodes any byte, so it goes last.
CSV_ENCODINGS = ["utf-8-sig", "cp1252", "latin-1"]

SKU_COLUMNS = ["SKU", "Variant SKU"]
ITEM_CODE_COLUMNS = ["Item Code", "Item Code_New"]
HANDLE_COLUMNS = ["Handle"]
TITLE_COLUMNS = ["Title", "Item Name"]
BARCODE_COLUMNS = ["Variant Barcode", "Barcode", "Barcode Value", "Ean Code"]
# Each column contributes at most one value; order is kept
OPTION_VALUE_COLUMNS = [
    "Option1 Value",
    "Option2 Value",
    "Option3 Value",
    "Size",
    "Colour",
    "Color",
]
LOCATION_COLUMNS = ["ShopifyLocationName", "Location", "Location Name", "Inventory Location"]
BIN_COLUMNS = ["Bin name", "Bin"]

MISSING_IDENTIFIERS_REASON = (
    "Missing identifiers: provide SKU, Item Code, Handle, Variant Barcode, or Title"
)
INVALID_QUANTITY_REASON = "Quantity must be a non-negative integer"
NO_SHEETS_REASON = "Workbook has no sheets"

_ZIP_MAGIC = b"PK\x03\x04"
_OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


@dataclass
class InventorySheetParseResult:
    """Result of parsing an inventory spreadsheet."""
    rows: list[ParsedRow] = field(default_factory=list)
    skipped: list[ResultRow] = field(default_factory=list)

    @property
    def has_rows(self) -> bool:
        """True if any row is ready for sync."""
        return len(self.rows) > 0


def parse_inventory_file(
    content: bytes,
    filename: Optional[str] = None,
) -> InventorySheetParseResult:
    """
    Parse an uploaded inventory spreadsheet.

    Args:
        content: Raw file bytes
        filename: Original file name, used to pick the reader

    Returns:
        InventorySheetParseResult with usable rows and skipped rows

    Raises:
        SpreadsheetParseError: If the bytes cannot be read as a spreadsheet
    """
    file_format = detect_format(content, filename)
    logger.info("parsing_inventory_file", filename=filename, format=file_format, size=len(content))

    records = read_first_sheet(content, file_format)
    if records is None:
        logger.warning("inventory_workbook_empty", filename=filename)
        return InventorySheetParseResult(skipped=[
            ResultRow(row_number=0, quantity=0, reason=NO_SHEETS_REASON)
        ])

    result = parse_inventory_records(records)

    logger.info(
        "inventory_sheet_parsed",
        total_rows=len(records),
        parsed=len(result.rows),
        skipped=len(result.skipped),
    )
    return result


def detect_format(content: bytes, filename: Optional[str] = None) -> str:
    """
    Pick a reader for the file.

    The extension wins when it is a supported one; otherwise the leading
    bytes decide (zip → xlsx, OLE2 → xls, anything else → csv).
    """
    if filename:
        suffix = Path(filename).suffix.lower()
        if suffix in SUPPORTED_EXTENSIONS:
            return suffix.lstrip(".")

    if content.startswith(_ZIP_MAGIC):
        return "xlsx"
    if content.startswith(_OLE_MAGIC):
        return "xls"
    return "csv"


def read_first_sheet(content: bytes, file_format: str) -> Optional[list[dict[str, Any]]]:
    """
    Read the first sheet into header → cell dicts.

    Cells keep their raw values: no NA detection, so text such as "N/A"
    reaches the quantity parser untouched.

    Returns:
        One dict per data row, or None when the workbook has no sheets

    Raises:
        SpreadsheetParseError: If the file cannot be read
    """
    try:
        if file_format == "csv":
            try:
                df = _load_csv(content)
            except pd.errors.EmptyDataError:
                return []
        else:
            engine = "openpyxl" if file_format == "xlsx" else "xlrd"
            excel = pd.ExcelFile(BytesIO(content), engine=engine)
            if not excel.sheet_names:
                return None
            df = excel.parse(excel.sheet_names[0], dtype=object, na_filter=False)
    except Exception as e:
        logger.error("inventory_file_read_failed", format=file_format, error=str(e))
        raise SpreadsheetParseError(
            message="Failed to read spreadsheet",
            details={"format": file_format, "original_error": str(e)}
        )

    return [
        {str(column): _clean_cell(value) for column, value in record.items()}
        for record in df.to_dict(orient="records")
    ]


def parse_inventory_records(records: list[Mapping[str, Any]]) -> InventorySheetParseResult:
    """
    Turn header → cell records into parsed and skipped rows.

    Args:
        records: Data rows of the first sheet, in sheet order

    Returns:
        InventorySheetParseResult (row order preserved in both lists)
    """
    result = InventorySheetParseResult()

    for index, raw in enumerate(records):
        row_number = index + 2  # Sheet row (1-indexed + header)
        row = {normalize_header(key): value for key, value in raw.items()}

        sku = _text(get_cell(row, SKU_COLUMNS))
        item_code = _text(get_cell(row, ITEM_CODE_COLUMNS))
        handle = _text(get_cell(row, HANDLE_COLUMNS))
        title = _text(get_cell(row, TITLE_COLUMNS))
        barcode = _text(get_cell(row, BARCODE_COLUMNS))
        option_values = tuple(
            value
            for value in (_text(get_cell(row, [column])) for column in OPTION_VALUE_COLUMNS)
            if value
        )
        location_name = _text(get_cell(row, LOCATION_COLUMNS))
        bin_name = _text(get_cell(row, BIN_COLUMNS))

        if not (sku or item_code or handle or barcode or title):
            result.skipped.append(ResultRow(
                row_number=row_number,
                sku=sku,
                item_name=title,
                location_name=location_name,
                quantity=0,
                reason=MISSING_IDENTIFIERS_REASON,
            ))
            continue

        decision = resolve_quantity(row)

        if decision.quantity is None:
            result.skipped.append(ResultRow(
                row_number=row_number,
                sku=sku,
                item_name=title,
                location_name=location_name,
                quantity=0,
                reason=decision.reason or "Missing quantity values",
                quantity_source=decision.source,
            ))
            continue

        if not isinstance(decision.quantity, int) or decision.quantity < 0:
            result.skipped.append(ResultRow(
                row_number=row_number,
                sku=sku,
                item_name=title,
                location_name=location_name,
                quantity=0,
                reason=INVALID_QUANTITY_REASON,
                quantity_source=decision.source,
            ))
            continue

        result.rows.append(ParsedRow(
            row_number=row_number,
            quantity=decision.quantity,
            quantity_source=decision.source,
            sku=sku,
            item_code=item_code,
            barcode=barcode,
            handle=handle,
            title=title,
            option_values=option_values,
            location_name=location_name,
            bin_name=bin_name,
        ))

    return result


# ===================
# HELPER FUNCTIONS
# ===================

def _load_csv(content: bytes) -> pd.DataFrame:
    """Load CSV bytes, trying each encoding in CSV_ENCODINGS until one decodes."""
    last_error = None

    for encoding in CSV_ENCODINGS:
        try:
            df = pd.read_csv(
                BytesIO(content),
                dtype=str,
                keep_default_na=False,
                encoding=encoding,
            )
        except UnicodeDecodeError as e:
            last_error = e
            continue

        logger.debug("csv_loaded", encoding=encoding, columns=len(df.columns))
        return df

    raise last_error


def _clean_cell(value: Any) -> Any:
    """Map NaN/NaT to None and numpy scalars to Python values."""
    if value is None:
        return None
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        try:
            value = value.item()
        except (ValueError, TypeError):
            pass
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


def _text(value: Any) -> str:
    """
    Cell as trimmed text.

    Whole-number floats lose the ".0" spreadsheet typing adds
    (12345.0 → "12345").
    """
    if value is None:
        return ""
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value).strip()

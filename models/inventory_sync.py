"""
Schemas for the spreadsheet-to-Shopify inventory sync.

Parser output (ParsedRow), identity keys used for grouping and caching,
remote catalog records, and the response summary returned to callers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.base import BaseSchema


class QuantitySource(str, Enum):
    """Which rule produced a row's target quantity."""
    CLOSING_STOCK_DIRECT = "closing_stock_direct"
    OPENING_PLUS_MOVEMENT = "opening_plus_movement"
    OPENING_PLUS_INWARD_MINUS_OUTWARD = "opening_plus_inward_minus_outward"
    OPENING_STOCK_FALLBACK = "opening_stock_fallback"
    MISSING_STOCK_FIELDS = "missing_stock_fields"
    AGGREGATED_FROM_BINS = "aggregated_from_bins"


class Bucket(str, Enum):
    """Terminal classification of a row."""
    UPDATED = "updated"
    FAILED = "failed"
    SKIPPED = "skipped"


# ===================
# PARSER OUTPUT
# ===================

@dataclass(frozen=True)
class ParsedRow:
    """A spreadsheet row with a resolved, non-negative integer quantity."""
    row_number: int
    quantity: int
    quantity_source: QuantitySource
    sku: str = ""
    item_code: str = ""
    barcode: str = ""
    handle: str = ""
    title: str = ""
    option_values: tuple[str, ...] = ()
    location_name: str = ""
    bin_name: str = ""

    @property
    def identity_key(self) -> "IdentityKey":
        return IdentityKey.from_row(self)


def _norm(value: str) -> str:
    return (value or "").strip().lower()


@dataclass(frozen=True)
class IdentityKey:
    """
    Normalized identifiers of a row.

    Rows with equal keys describe the same catalog item. Used by the
    deduplicator for grouping and by the variant cache for memoization.
    """
    sku: str
    item_code: str
    barcode: str
    handle: str
    title: str
    option_values: tuple[str, ...]

    @classmethod
    def from_row(cls, row: ParsedRow) -> "IdentityKey":
        return cls(
            sku=_norm(row.sku),
            item_code=_norm(row.item_code),
            barcode=_norm(row.barcode),
            handle=_norm(row.handle),
            title=_norm(row.title),
            option_values=tuple(_norm(v) for v in row.option_values),
        )

    def __str__(self) -> str:
        return (
            f"sku:{self.sku}|itemcode:{self.item_code}|barcode:{self.barcode}"
            f"|handle:{self.handle}|title:{self.title}"
            f"|opts:{'|'.join(self.option_values)}"
        )


# ===================
# REMOTE CATALOG RECORDS
# ===================

@dataclass(frozen=True)
class Location:
    """A Shopify stocking location."""
    id: str
    name: str


@dataclass(frozen=True)
class RemoteVariant:
    """A Shopify product variant as returned by the catalog gateway."""
    inventory_item_id: str
    sku: str = ""
    title: str = ""
    barcode: str = ""
    selected_option_values: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProductCandidate:
    """A product returned by a title search, with its variants."""
    title: str
    variants: tuple[RemoteVariant, ...] = ()


@dataclass(frozen=True)
class ResolvedVariant:
    """The inventory item a row will be written to."""
    inventory_item_id: str
    sku: str


@dataclass(frozen=True)
class VariantResolution:
    """Outcome of resolving one identity key."""
    variant: Optional[ResolvedVariant] = None
    reason: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.variant is not None


@dataclass
class VariantCache:
    """Resolutions for one sync run, keyed by identity key."""
    _entries: dict[IdentityKey, VariantResolution] = field(default_factory=dict)

    def get(self, key: IdentityKey) -> Optional[VariantResolution]:
        return self._entries.get(key)

    def put(self, key: IdentityKey, resolution: VariantResolution) -> None:
        self._entries[key] = resolution

    def __len__(self) -> int:
        return len(self._entries)


# ===================
# RESPONSE SCHEMAS
# ===================

class ResultRow(BaseSchema):
    """
    One terminal classification of a spreadsheet row.

    Serialized with camelCase keys (rowNumber, itemName, ...).
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    row_number: int = Field(..., ge=0, description="1-based sheet row (header is row 1)")
    sku: str = ""
    item_name: str = ""
    location_name: str = ""
    quantity: int = 0
    reason: str
    quantity_source: Optional[QuantitySource] = None

    @classmethod
    def from_parsed(
        cls,
        row: ParsedRow,
        reason: str,
        sku: Optional[str] = None,
        location_name: Optional[str] = None,
    ) -> "ResultRow":
        """Build a result from a parsed row, optionally overriding sku/location."""
        return cls(
            row_number=row.row_number,
            sku=row.sku if sku is None else sku,
            item_name=row.title,
            location_name=row.location_name if location_name is None else location_name,
            quantity=row.quantity,
            reason=reason,
            quantity_source=row.quantity_source,
        )


class SyncSummary(BaseSchema):
    """Bucketed outcome of one sync run."""

    updated: list[ResultRow] = Field(default_factory=list)
    failed: list[ResultRow] = Field(default_factory=list)
    skipped: list[ResultRow] = Field(default_factory=list)

    def add(self, bucket: Bucket, row: ResultRow) -> None:
        getattr(self, bucket.value).append(row)

    @property
    def total(self) -> int:
        return len(self.updated) + len(self.failed) + len(self.skipped)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

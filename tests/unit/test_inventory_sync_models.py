"""
Unit tests for inventory sync schemas.
"""

import pytest
from pydantic import ValidationError

from models.inventory_sync import (
    Bucket,
    IdentityKey,
    QuantitySource,
    ResolvedVariant,
    ResultRow,
    SyncSummary,
    VariantCache,
    VariantResolution,
)
from tests.factories import ParsedRowFactory


class TestIdentityKey:
    """Tests for IdentityKey."""

    def test_normalizes_case_and_whitespace(self):
        a = ParsedRowFactory.create(sku=" ABC ", title="Blue Hoodie", option_values=("M", "Red"))
        b = ParsedRowFactory.create(sku="abc", title="blue hoodie ", option_values=("m", "red"))
        assert a.identity_key == b.identity_key
        assert hash(a.identity_key) == hash(b.identity_key)

    def test_option_order_matters(self):
        a = ParsedRowFactory.create(title="Hoodie", option_values=("M", "Red"))
        b = ParsedRowFactory.create(title="Hoodie", option_values=("Red", "M"))
        assert a.identity_key != b.identity_key

    def test_string_form(self):
        row = ParsedRowFactory.create(sku="A1", handle="hoodie", option_values=("M", "Red"))
        assert str(IdentityKey.from_row(row)) == (
            "sku:a1|itemcode:|barcode:|handle:hoodie|title:|opts:m|red"
        )


class TestVariantCache:
    """Tests for VariantCache."""

    def test_put_and_get(self):
        cache = VariantCache()
        key = ParsedRowFactory.create(sku="A").identity_key
        resolution = VariantResolution(variant=ResolvedVariant("item-1", "A"))

        assert cache.get(key) is None
        cache.put(key, resolution)

        assert cache.get(key) is resolution
        assert len(cache) == 1


class TestResultRow:
    """Tests for ResultRow serialization."""

    def test_camel_case_keys(self):
        row = ResultRow(
            row_number=4,
            sku="A",
            item_name="Hat",
            location_name="Main",
            quantity=3,
            reason="Updated from 1",
            quantity_source=QuantitySource.OPENING_PLUS_MOVEMENT,
        )
        assert row.model_dump(mode="json", by_alias=True) == {
            "rowNumber": 4,
            "sku": "A",
            "itemName": "Hat",
            "locationName": "Main",
            "quantity": 3,
            "reason": "Updated from 1",
            "quantitySource": "opening_plus_movement",
        }

    def test_from_parsed_with_overrides(self):
        parsed = ParsedRowFactory.create(row_number=7, item_code="IC-1", title="Hat", quantity=2)
        row = ResultRow.from_parsed(parsed, "ok", sku="SHOP-SKU", location_name="Outlet")

        assert row.row_number == 7
        assert row.sku == "SHOP-SKU"
        assert row.item_name == "Hat"
        assert row.location_name == "Outlet"
        assert row.quantity_source == QuantitySource.CLOSING_STOCK_DIRECT

    def test_negative_row_number_rejected(self):
        with pytest.raises(ValidationError):
            ResultRow(row_number=-1, reason="x")


class TestSyncSummary:
    """Tests for SyncSummary."""

    def test_to_dict_omits_missing_quantity_source(self):
        summary = SyncSummary()
        summary.add(Bucket.SKIPPED, ResultRow(row_number=2, reason="Missing identifiers"))
        summary.add(Bucket.UPDATED, ResultRow(
            row_number=3, sku="A", quantity=1, reason="Updated from 0",
            quantity_source=QuantitySource.CLOSING_STOCK_DIRECT,
        ))

        data = summary.to_dict()

        assert summary.total == 2
        assert data["failed"] == []
        assert "quantitySource" not in data["skipped"][0]
        assert data["updated"][0]["quantitySource"] == "closing_stock_direct"

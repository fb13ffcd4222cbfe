"""
Unit tests for the inventory sync run.

Runs the whole reconciliation against the fake catalog gateway. Async code
is driven with asyncio.run; batch pauses use a recording sleep.
"""

import asyncio
import threading
import pytest

from exceptions import ShopifyAPIError, ShopifyConfigurationError
from models.inventory_sync import QuantitySource
from parsers.inventory_sheet_parser import parse_inventory_records
from services.inventory_sync_service import (
    ALREADY_MATCHES_REASON,
    INITIALIZED_REASON,
    InventorySyncService,
    SyncOptions,
    SyncRun,
    chunk,
)
from tests.factories import FakeCatalogGateway, create_csv, variant


class RecordingSleep:
    """Async sleep that records delays instead of waiting."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class BarrierGateway(FakeCatalogGateway):
    """Quantity reads wait until `parties` reads are in flight at once."""

    def __init__(self, locations, parties: int):
        super().__init__(locations=locations)
        self.barrier = threading.Barrier(parties, timeout=5)

    def get_current_quantity(self, inventory_item_id, location_id):
        self.barrier.wait()
        return super().get_current_quantity(inventory_item_id, location_id)


def run_sync(gateway, records, options=None, progress=None, sleep=None):
    run = SyncRun(
        gateway,
        options or SyncOptions(batch_size=10, batch_delay_ms=0),
        progress=progress,
        sleep=sleep or RecordingSleep(),
    )
    return asyncio.run(run.execute(parse_inventory_records(records)))


@pytest.fixture
def catalog(gateway, main_location):
    """Single-location catalog with two SKUs; A has 3 on hand, B is not stocked."""
    gateway.add_variant(variant("item-a", sku="A"))
    gateway.add_variant(variant("item-b", sku="B"))
    gateway.quantities[("item-a", main_location.id)] = 3
    return gateway


# ===================
# ROW OUTCOMES
# ===================

class TestRowOutcomes:
    """Each row lands in the right bucket with the right reason."""

    def test_update_and_initialize(self, catalog, main_location):
        summary = run_sync(catalog, [
            {"SKU": "A", "Closing Stock": 10},
            {"SKU": "B", "Closing Stock": 4},
        ])

        assert [r.reason for r in summary.updated] == ["Updated from 3", INITIALIZED_REASON]
        assert summary.updated[0].location_name == main_location.name
        assert summary.updated[0].quantity_source == QuantitySource.CLOSING_STOCK_DIRECT
        assert catalog.writes == [
            ("item-a", main_location.id, 10),
            ("item-b", main_location.id, 4),
        ]

    def test_already_matching_is_skipped_without_write(self, catalog):
        summary = run_sync(catalog, [{"SKU": "A", "Closing Stock": 3}])

        assert summary.updated == []
        assert summary.skipped[0].reason == ALREADY_MATCHES_REASON
        assert catalog.writes == []

    def test_second_run_is_idempotent(self, catalog):
        records = [{"SKU": "A", "Closing Stock": 10}, {"SKU": "B", "Closing Stock": 4}]

        run_sync(catalog, records)
        second = run_sync(catalog, records)

        assert second.updated == []
        assert [r.reason for r in second.skipped] == [ALREADY_MATCHES_REASON] * 2
        assert len(catalog.writes) == 2

    def test_unresolved_variant_fails(self, catalog):
        summary = run_sync(catalog, [{"SKU": "NOPE", "Closing Stock": 1}])

        assert summary.failed[0].sku == "NOPE"
        assert summary.failed[0].reason.startswith("No matching variant")

    def test_unknown_location_fails(self, catalog):
        summary = run_sync(catalog, [{"SKU": "A", "Location": "Moon Base", "Closing Stock": 1}])
        assert summary.failed[0].reason == 'Location "Moon Base" not found in Shopify'

    def test_write_error_fails_only_that_row(self, catalog):
        catalog.errors["set_quantity:item-a"] = ShopifyAPIError("Inventory item not stocked")

        summary = run_sync(catalog, [
            {"SKU": "A", "Closing Stock": 10},
            {"SKU": "B", "Closing Stock": 4},
        ])

        assert summary.failed[0].reason == "Shopify API error: Inventory item not stocked"
        assert summary.failed[0].sku == "A"
        assert [r.sku for r in summary.updated] == ["B"]

    def test_lookup_error_is_recorded_per_row(self, catalog):
        catalog.errors["get_variant_by_sku:A"] = ShopifyAPIError("timeout")

        summary = run_sync(catalog, [
            {"SKU": "A", "Closing Stock": 10},
            {"SKU": "B", "Closing Stock": 4},
        ])

        assert summary.failed[0].reason == "Lookup error: timeout"
        assert len(summary.updated) == 1

    def test_bin_rows_sync_once_with_total(self, catalog, main_location):
        summary = run_sync(catalog, [
            {"SKU": "B", "Bin": "B1", "Closing Stock": 5},
            {"SKU": "B", "Bin": "B2", "Closing Stock": 7},
        ])

        assert catalog.writes == [("item-b", main_location.id, 12)]
        assert summary.updated[0].quantity_source == QuantitySource.AGGREGATED_FROM_BINS
        assert summary.skipped[0].row_number == 3

    def test_location_fetch_failure_is_fatal(self, catalog):
        catalog.errors["get_locations"] = ShopifyAPIError("down")
        with pytest.raises(ShopifyAPIError):
            run_sync(catalog, [{"SKU": "A", "Closing Stock": 1}])

    def test_no_valid_rows_skips_remote_calls(self, catalog):
        summary = run_sync(catalog, [{"Location": "Main", "Closing Stock": 1}])

        assert len(summary.skipped) == 1
        assert catalog.calls["get_locations"] == 0


# ===================
# RUN-WIDE PROPERTIES
# ===================

class TestRunProperties:
    """Conservation, memoization, batching and progress."""

    def test_every_row_lands_in_one_bucket(self, catalog):
        records = [
            {"SKU": "A", "Closing Stock": 3},              # already matches
            {"SKU": "B", "Closing Stock": 4},              # initialized
            {"SKU": "C", "Closing Stock": 1},              # unresolved
            {"Title": "", "Closing Stock": 1},             # no identifiers
            {"SKU": "D"},                                  # no quantity
            {"SKU": "E", "Location": "X", "Closing Stock": 1},
            {"SKU": "E", "Location": "X", "Closing Stock": 2},
        ]

        summary = run_sync(catalog, records)

        row_numbers = sorted(
            r.row_number for r in summary.updated + summary.failed + summary.skipped
        )
        assert summary.total == len(records)
        assert row_numbers == list(range(2, len(records) + 2))

    def test_identity_key_resolved_once(self, multi_location_gateway, main_location, outlet_location):
        multi_location_gateway.add_variant(variant("item-a", sku="A"))

        run_sync(multi_location_gateway, [
            {"SKU": "A", "Location": main_location.name, "Closing Stock": 1},
            {"SKU": "a ", "Location": outlet_location.name, "Closing Stock": 2},
        ])

        assert multi_location_gateway.calls["get_variant_by_sku"] == 1
        assert len(multi_location_gateway.writes) == 2

    def test_batches_pause_between_not_after(self, catalog):
        sleep = RecordingSleep()
        records = [{"SKU": "A", "Closing Stock": 3}] + [
            {"SKU": f"X{i}", "Closing Stock": 1} for i in range(4)
        ]

        run_sync(catalog, records, options=SyncOptions(batch_size=2, batch_delay_ms=500), sleep=sleep)

        # 5 rows → 3 batches for prefetch and 3 for sync
        assert sleep.delays == [0.5, 0.5, 0.5, 0.5]

    def test_rows_in_a_batch_run_concurrently(self, main_location):
        batch_size = 3
        gateway = BarrierGateway(locations=[main_location], parties=batch_size)
        records = []
        for i in range(batch_size * 2):
            gateway.add_variant(variant(f"item-{i}", sku=f"S{i}"))
            records.append({"SKU": f"S{i}", "Closing Stock": 1})

        summary = run_sync(gateway, records, options=SyncOptions(batch_size=batch_size, batch_delay_ms=0))

        # A serial run would break the barrier and fail every row
        assert summary.failed == []
        assert len(summary.updated) == batch_size * 2

    def test_progress_reported_per_batch(self, catalog):
        calls = []
        records = [{"SKU": f"X{i}", "Closing Stock": 1} for i in range(5)]

        run_sync(
            catalog,
            records,
            options=SyncOptions(batch_size=2, batch_delay_ms=0),
            progress=lambda done, total: calls.append((done, total)),
        )

        assert calls == [(2, 5), (4, 5), (5, 5)]

    def test_default_location_used_when_ambiguous(self, multi_location_gateway, outlet_location):
        multi_location_gateway.add_variant(variant("item-a", sku="A"))

        summary = run_sync(
            multi_location_gateway,
            [{"SKU": "A", "Closing Stock": 1}],
            options=SyncOptions(default_location_name="Outlet"),
        )

        assert summary.updated[0].location_name == outlet_location.name


def test_chunk():
    assert chunk([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
    assert chunk([], 3) == []
    assert chunk([1, 2], 0) == [[1], [2]]


# ===================
# SERVICE
# ===================

class TestInventorySyncService:
    """Tests for InventorySyncService.sync_file."""

    def test_sync_file(self, catalog):
        service = InventorySyncService(
            gateway_factory=lambda: catalog,
            options=SyncOptions(batch_delay_ms=0),
        )
        content = create_csv([{"SKU": "B", "Closing Stock": "6"}])

        summary = asyncio.run(service.sync_file(content, "stock.csv"))

        assert summary.to_dict()["updated"][0] == {
            "rowNumber": 2,
            "sku": "B",
            "itemName": "",
            "locationName": "Main Warehouse",
            "quantity": 6,
            "reason": INITIALIZED_REASON,
            "quantitySource": "closing_stock_direct",
        }

    def test_configuration_error_before_parsing(self):
        def factory():
            raise ShopifyConfigurationError(["shop_name"])

        service = InventorySyncService(gateway_factory=factory, options=SyncOptions())

        with pytest.raises(ShopifyConfigurationError):
            asyncio.run(service.sync_file(b"not parsed", "stock.xlsx"))

"""
Business logic services.

Services handle reconciliation logic between routes and the Shopify gateway.
"""

from services.inventory_sync_service import (
    InventorySyncService,
    SyncOptions,
    SyncRun,
    get_inventory_sync_service,
)
from services.row_deduplicator import deduplicate_rows, DeduplicationResult
from services.variant_resolver import VariantResolver
from services.location_resolver import LocationResolver, LocationResolution

__all__ = [
    "InventorySyncService",
    "SyncOptions",
    "SyncRun",
    "get_inventory_sync_service",
    "deduplicate_rows",
    "DeduplicationResult",
    "VariantResolver",
    "LocationResolver",
    "LocationResolution",
]

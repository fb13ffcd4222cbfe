"""
Inventory sync service.

Reconciles an uploaded inventory spreadsheet against Shopify:

    parse → deduplicate → fetch locations → prefetch variants → sync rows

Rows are processed in fixed-size batches. Rows inside a batch run
concurrently; batches run one after another with a pause in between to keep
the request rate under Shopify's limits. Every row ends up in exactly one
bucket of the summary (updated, failed or skipped).
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence, TypeVar
import structlog

from config.settings import Settings, get_settings
from integrations.shopify import CatalogGateway, get_shopify_gateway
from models.inventory_sync import (
    Bucket,
    IdentityKey,
    Location,
    ParsedRow,
    ResultRow,
    SyncSummary,
    VariantCache,
    VariantResolution,
)
from parsers.inventory_sheet_parser import InventorySheetParseResult, parse_inventory_file
from services.location_resolver import LocationResolver
from services.row_deduplicator import deduplicate_rows
from services.variant_resolver import VariantResolver

logger = structlog.get_logger(__name__)

T = TypeVar("T")

UNRESOLVED_VARIANT_REASON = "Could not resolve variant in Shopify"
ALREADY_MATCHES_REASON = "Inventory already matches target quantity"
INITIALIZED_REASON = "Inventory created/initialized"

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class SyncOptions:
    """Run-wide pacing and fallback settings."""
    batch_size: int = 10
    batch_delay_ms: int = 500
    default_location_name: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "SyncOptions":
        return cls(
            batch_size=settings.sync_batch_size,
            batch_delay_ms=settings.sync_batch_delay_ms,
            default_location_name=settings.default_location_name,
        )


def chunk(items: Sequence[T], size: int) -> list[list[T]]:
    """Split items into consecutive lists of at most size elements."""
    size = max(1, size)
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def error_message(error: BaseException) -> str:
    return getattr(error, "message", None) or str(error) or type(error).__name__


class SyncRun:
    """
    State of one reconciliation run.

    Owns the summary, the variant cache and the location list. Nothing here
    outlives the run. The cache and locations are only written before row
    processing starts, so concurrent rows read them without locking.

    Row lifecycle:
        pending → variant resolved | variant failed
                → location resolved | location failed
                → compared → updated | skipped (already matches) | failed (remote error)
    """

    def __init__(
        self,
        gateway: CatalogGateway,
        options: SyncOptions,
        progress: Optional[ProgressCallback] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.gateway = gateway
        self.options = options
        self.progress = progress
        self._sleep = sleep

        self.summary = SyncSummary()
        self.variant_cache = VariantCache()
        self.locations: list[Location] = []
        self.resolver = VariantResolver(gateway)
        self.processed = 0
        self.total = 0

    # ===================
    # ENTRY POINT
    # ===================

    async def execute(self, parsed: InventorySheetParseResult) -> SyncSummary:
        """
        Sync parsed rows to Shopify.

        Args:
            parsed: Parser output (usable rows and parser-skipped rows)

        Returns:
            SyncSummary for this run

        Raises:
            ShopifyAPIError: If the shop's locations cannot be fetched
        """
        self.summary.skipped.extend(parsed.skipped)

        if not parsed.has_rows:
            logger.warning("sync_no_valid_rows", skipped=len(parsed.skipped))
            return self.summary

        deduped = deduplicate_rows(parsed.rows)
        self.summary.skipped.extend(deduped.skipped)
        self.summary.failed.extend(deduped.failed)

        self.locations = await asyncio.to_thread(self.gateway.get_locations)
        location_resolver = LocationResolver(
            self.gateway,
            self.locations,
            self.options.default_location_name,
        )

        await self.prefetch_variants(deduped.rows)

        self.total = len(deduped.rows)
        logger.info(
            "sync_started",
            rows=self.total,
            locations=len(self.locations),
            distinct_items=len(self.variant_cache),
            batch_size=self.options.batch_size,
        )

        async def sync_one(row: ParsedRow) -> None:
            bucket, result = await self.process_row(row, location_resolver)
            self.summary.add(bucket, result)
            self.processed += 1

        await self._run_batches(deduped.rows, sync_one, on_batch_done=self._report_progress)

        logger.info(
            "sync_completed",
            updated=len(self.summary.updated),
            failed=len(self.summary.failed),
            skipped=len(self.summary.skipped),
        )
        return self.summary

    # ===================
    # PHASES
    # ===================

    async def prefetch_variants(self, rows: Sequence[ParsedRow]) -> None:
        """Resolve one representative row per distinct identity key."""
        representatives: dict[IdentityKey, ParsedRow] = {}
        for row in rows:
            representatives.setdefault(row.identity_key, row)

        async def resolve_one(item: tuple[IdentityKey, ParsedRow]) -> None:
            key, row = item
            self.variant_cache.put(key, await self._resolve_variant(key, row))

        await self._run_batches(list(representatives.items()), resolve_one)

    async def _resolve_variant(self, key: IdentityKey, row: ParsedRow) -> VariantResolution:
        try:
            return await asyncio.to_thread(self.resolver.resolve, row)
        except Exception as e:
            logger.error("variant_lookup_failed", key=str(key), error=error_message(e))
            return VariantResolution(variant=None, reason=f"Lookup error: {error_message(e)}")

    async def process_row(
        self,
        row: ParsedRow,
        location_resolver: LocationResolver,
    ) -> tuple[Bucket, ResultRow]:
        """
        Classify one deduplicated row, writing to Shopify when needed.

        Never raises: remote errors become a failed result for this row.
        """
        resolution = self.variant_cache.get(row.identity_key)
        variant = resolution.variant if resolution else None

        if variant is None:
            reason = (resolution.reason if resolution else None) or UNRESOLVED_VARIANT_REASON
            return Bucket.FAILED, ResultRow.from_parsed(row, reason)

        try:
            located = await asyncio.to_thread(
                location_resolver.resolve, row, variant.inventory_item_id
            )
            if located.location is None:
                return Bucket.FAILED, ResultRow.from_parsed(row, located.reason)

            location = located.location
            current = await asyncio.to_thread(
                self.gateway.get_current_quantity, variant.inventory_item_id, location.id
            )

            if current == row.quantity:
                return Bucket.SKIPPED, ResultRow.from_parsed(
                    row,
                    ALREADY_MATCHES_REASON,
                    sku=variant.sku,
                    location_name=location.name,
                )

            await asyncio.to_thread(
                self.gateway.set_quantity, variant.inventory_item_id, location.id, row.quantity
            )
            reason = INITIALIZED_REASON if current is None else f"Updated from {current}"
            return Bucket.UPDATED, ResultRow.from_parsed(
                row,
                reason,
                sku=variant.sku,
                location_name=location.name,
            )

        except Exception as e:
            logger.error(
                "row_sync_failed",
                row_number=row.row_number,
                sku=variant.sku,
                error=error_message(e),
            )
            return Bucket.FAILED, ResultRow.from_parsed(
                row,
                f"Shopify API error: {error_message(e)}",
                sku=row.sku or variant.sku,
            )

    # ===================
    # BATCHING
    # ===================

    async def _run_batches(
        self,
        items: Sequence[T],
        worker: Callable[[T], Awaitable[None]],
        on_batch_done: Optional[Callable[[], None]] = None,
    ) -> None:
        """Run worker over items batch by batch, pausing between batches."""
        batches = chunk(items, self.options.batch_size)
        for index, batch in enumerate(batches):
            await asyncio.gather(*(worker(item) for item in batch))

            if on_batch_done is not None:
                on_batch_done()

            is_last = index == len(batches) - 1
            if not is_last and self.options.batch_delay_ms > 0:
                await self._sleep(self.options.batch_delay_ms / 1000)

    def _report_progress(self) -> None:
        logger.info("sync_batch_completed", processed=self.processed, total=self.total)
        if self.progress is not None:
            self.progress(self.processed, self.total)


class InventorySyncService:
    """
    Entry point for spreadsheet syncs.

    Builds a fresh SyncRun per call; no state is shared between runs.
    """

    def __init__(
        self,
        gateway_factory: Callable[[], CatalogGateway] = get_shopify_gateway,
        options: Optional[SyncOptions] = None,
    ):
        self.gateway_factory = gateway_factory
        self.options = options

    async def sync_file(
        self,
        content: bytes,
        filename: Optional[str] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> SyncSummary:
        """
        Parse a spreadsheet and sync it to Shopify.

        Args:
            content: Raw spreadsheet bytes
            filename: Original file name (selects the reader)
            progress: Called with (processed, total) after each batch

        Returns:
            SyncSummary with updated, failed and skipped rows

        Raises:
            ShopifyConfigurationError: If Shopify credentials are missing
            SpreadsheetParseError: If the file cannot be read
        """
        gateway = self.gateway_factory()
        options = self.options or SyncOptions.from_settings(get_settings())

        parsed = parse_inventory_file(content, filename)
        run = SyncRun(gateway, options, progress=progress)
        return await run.execute(parsed)


def get_inventory_sync_service() -> InventorySyncService:
    """Create an InventorySyncService using application settings."""
    return InventorySyncService()

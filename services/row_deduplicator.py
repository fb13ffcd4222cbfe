"""
Row deduplication for inventory sync.

Rows are grouped by identity key and location. A group whose rows all name
different bins is one location's stock split across bins and collapses into
a single row carrying the summed quantity. Any other repeated group is a
conflict the file author has to fix.
"""

from dataclasses import dataclass, field, replace
import structlog

from models.inventory_sync import (
    IdentityKey,
    ParsedRow,
    QuantitySource,
    ResultRow,
)

logger = structlog.get_logger(__name__)

AUTO_LOCATION = "__auto__"

BIN_AGGREGATED_REASON = "Aggregated with other bins for same item/location"


@dataclass
class DeduplicationResult:
    """Rows to sync plus the rows settled during deduplication."""
    rows: list[ParsedRow] = field(default_factory=list)
    skipped: list[ResultRow] = field(default_factory=list)
    failed: list[ResultRow] = field(default_factory=list)


def group_key(row: ParsedRow) -> tuple[IdentityKey, str]:
    """(identity key, lower-cased location or the auto-location sentinel)."""
    location = row.location_name.strip().lower()
    return (row.identity_key, location or AUTO_LOCATION)


def is_bin_split(rows: list[ParsedRow]) -> bool:
    """True when every row names a bin and no two rows share one."""
    bins = [row.bin_name.strip().lower() for row in rows]
    return all(bins) and len(set(bins)) == len(rows)


def deduplicate_rows(rows: list[ParsedRow]) -> DeduplicationResult:
    """
    Collapse bin splits and flag duplicate rows.

    Args:
        rows: Parsed rows in sheet order

    Returns:
        DeduplicationResult; groups keep first-seen order
    """
    groups: dict[tuple[IdentityKey, str], list[ParsedRow]] = {}
    for row in rows:
        groups.setdefault(group_key(row), []).append(row)

    result = DeduplicationResult()

    for group_rows in groups.values():
        if len(group_rows) == 1:
            result.rows.append(group_rows[0])
            continue

        if is_bin_split(group_rows):
            representative = group_rows[0]
            result.rows.append(replace(
                representative,
                quantity=sum(row.quantity for row in group_rows),
                quantity_source=QuantitySource.AGGREGATED_FROM_BINS,
            ))
            for row in group_rows[1:]:
                result.skipped.append(ResultRow.from_parsed(row, BIN_AGGREGATED_REASON))
            logger.debug(
                "bin_rows_aggregated",
                row_number=representative.row_number,
                bins=len(group_rows),
            )
            continue

        row_numbers = ", ".join(str(row.row_number) for row in group_rows)
        reason = f"Duplicate item/location in file. Conflicting rows: {row_numbers}"
        for row in group_rows:
            result.failed.append(ResultRow.from_parsed(row, reason))
        logger.warning("duplicate_rows_in_file", rows=row_numbers)

    logger.info(
        "rows_deduplicated",
        input_rows=len(rows),
        unique_rows=len(result.rows),
        aggregated=len(result.skipped),
        conflicts=len(result.failed),
    )
    return result

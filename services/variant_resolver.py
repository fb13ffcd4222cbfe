"""
Variant resolution for inventory sync.

Maps a spreadsheet row to exactly one Shopify inventory item by trying its
identifiers from most to least precise:

    SKU → item code → barcode → handle (+ options) → fuzzy title (+ options)

Each step is a strategy function (row, gateway) → outcome. A strategy returns
None when it does not apply or found nothing, letting the next one run; a
VariantResolution (resolved or failed) ends the cascade.
"""

from typing import Callable, Optional, Sequence
import structlog

from integrations.shopify import CatalogGateway
from models.inventory_sync import (
    ParsedRow,
    ProductCandidate,
    RemoteVariant,
    ResolvedVariant,
    VariantResolution,
)
from utils.text_utils import title_similarity

logger = structlog.get_logger(__name__)

MIN_TITLE_CONFIDENCE = 0.58
MIN_TITLE_LEAD = 0.08

NO_MATCH_REASON = "No matching variant by SKU, item code, barcode, handle, or title"

Strategy = Callable[[ParsedRow, CatalogGateway], Optional[VariantResolution]]


# ===================
# HELPERS
# ===================

def _resolved(variant: RemoteVariant, row: ParsedRow, fallback_sku: str = "") -> VariantResolution:
    """Successful resolution; the row's own SKU wins over the catalog's."""
    return VariantResolution(variant=ResolvedVariant(
        inventory_item_id=variant.inventory_item_id,
        sku=row.sku or variant.sku or fallback_sku,
    ))


def _failed(reason: str) -> VariantResolution:
    return VariantResolution(variant=None, reason=reason)


def match_variants_by_options(
    variants: Sequence[RemoteVariant],
    option_values: Sequence[str],
) -> list[RemoteVariant]:
    """
    Variants whose selected options include every supplied value.

    Comparison is case-insensitive. No supplied values keeps every variant.
    """
    if not option_values:
        return list(variants)

    wanted = [value.strip().lower() for value in option_values]
    matches = []
    for variant in variants:
        selected = {value.strip().lower() for value in variant.selected_option_values}
        if all(option in selected for option in wanted):
            matches.append(variant)
    return matches


def pick_title_candidate(
    title: str,
    candidates: Sequence[ProductCandidate],
) -> Optional[ProductCandidate]:
    """
    Choose the product whose title confidently matches.

    The best scorer wins only with a score of at least 0.58 and a lead of at
    least 0.08 over the runner-up; otherwise the match is ambiguous.
    """
    ranked = sorted(
        ((title_similarity(title, candidate.title), candidate) for candidate in candidates),
        key=lambda scored: scored[0],
        reverse=True,
    )
    if not ranked:
        return None

    best_score, best = ranked[0]
    if best_score < MIN_TITLE_CONFIDENCE:
        return None

    if len(ranked) > 1 and best_score - ranked[1][0] < MIN_TITLE_LEAD:
        logger.debug(
            "title_match_ambiguous",
            title=title,
            best=best.title,
            runner_up=ranked[1][1].title,
        )
        return None

    return best


# ===================
# STRATEGIES
# ===================

def resolve_by_sku(row: ParsedRow, gateway: CatalogGateway) -> Optional[VariantResolution]:
    if not row.sku:
        return None
    variant = gateway.get_variant_by_sku(row.sku)
    return _resolved(variant, row) if variant else None


def resolve_by_item_code(row: ParsedRow, gateway: CatalogGateway) -> Optional[VariantResolution]:
    if not row.item_code:
        return None
    variant = gateway.get_variant_by_sku(row.item_code)
    return _resolved(variant, row, fallback_sku=row.item_code) if variant else None


def resolve_by_barcode(row: ParsedRow, gateway: CatalogGateway) -> Optional[VariantResolution]:
    if not row.barcode:
        return None
    variant = gateway.get_variant_by_barcode(row.barcode)
    return _resolved(variant, row) if variant else None


def resolve_by_handle(row: ParsedRow, gateway: CatalogGateway) -> Optional[VariantResolution]:
    if not row.handle:
        return None

    variants = gateway.get_variants_by_handle(row.handle)
    if not variants:
        return _failed(f'No product found for handle "{row.handle}"')

    matched = match_variants_by_options(variants, row.option_values)
    if len(matched) == 1:
        return _resolved(matched[0], row)

    if len(matched) > 1:
        wanted_title = row.title.strip().lower()
        by_title = [
            variant for variant in matched
            if wanted_title and variant.title.strip().lower() == wanted_title
        ]
        if len(by_title) == 1:
            return _resolved(by_title[0], row)
        return _failed(
            f'Handle "{row.handle}" matched multiple variants; provide SKU or barcode'
        )

    if row.title:
        return None
    return _failed(
        f'No variant of handle "{row.handle}" matches options: {", ".join(row.option_values)}'
    )


def resolve_by_title(row: ParsedRow, gateway: CatalogGateway) -> Optional[VariantResolution]:
    if not row.title:
        return None

    candidates = gateway.search_products_by_title(row.title)
    product = pick_title_candidate(row.title, candidates)
    if product is None or not product.variants:
        return _failed(f'No confident product match for title "{row.title}"')

    matched = match_variants_by_options(product.variants, row.option_values)
    if len(matched) == 1:
        return _resolved(matched[0], row)

    if len(matched) > 1:
        return _failed(
            f'Title "{row.title}" matched multiple variants; provide SKU, barcode, or handle'
        )

    return None


DEFAULT_STRATEGIES: tuple[Strategy, ...] = (
    resolve_by_sku,
    resolve_by_item_code,
    resolve_by_barcode,
    resolve_by_handle,
    resolve_by_title,
)


class VariantResolver:
    """
    Runs the resolution strategies in order.

    Stateless apart from the gateway; memoization lives in the sync run's
    VariantCache.
    """

    def __init__(
        self,
        gateway: CatalogGateway,
        strategies: Sequence[Strategy] = DEFAULT_STRATEGIES,
    ):
        self.gateway = gateway
        self.strategies = tuple(strategies)

    def resolve(self, row: ParsedRow) -> VariantResolution:
        """
        Resolve a row to one variant.

        Args:
            row: Parsed spreadsheet row

        Returns:
            VariantResolution with a variant, or with the failure reason

        Raises:
            ShopifyAPIError: If a catalog lookup fails
        """
        for strategy in self.strategies:
            outcome = strategy(row, self.gateway)
            if outcome is not None:
                logger.debug(
                    "variant_resolution_finished",
                    row_number=row.row_number,
                    strategy=strategy.__name__,
                    resolved=outcome.resolved,
                )
                return outcome

        return _failed(NO_MATCH_REASON)

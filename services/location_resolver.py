"""
Location resolution for inventory sync.

Decides which Shopify location a row's quantity is written to.
"""

from dataclasses import dataclass
from typing import Optional
import structlog

from integrations.shopify import CatalogGateway
from models.inventory_sync import Location, ParsedRow

logger = structlog.get_logger(__name__)

AMBIGUOUS_LOCATION_REASON = (
    "Location is ambiguous. Add location in file or set DEFAULT_LOCATION_NAME in config"
)


@dataclass(frozen=True)
class LocationResolution:
    """Chosen location, or the reason none could be chosen."""
    location: Optional[Location] = None
    reason: Optional[str] = None


class LocationResolver:
    """
    Resolves a row's location against the shop's locations.

    Order:
        1. Location named in the row (case-insensitive exact match)
        2. The shop's only location
        3. The only location currently stocking the item
        4. The configured default location
    """

    def __init__(
        self,
        gateway: CatalogGateway,
        locations: list[Location],
        default_location_name: str = "",
    ):
        self.gateway = gateway
        self.locations = list(locations)
        self.default_location_name = (default_location_name or "").strip()
        self._by_name = {location.name.strip().lower(): location for location in self.locations}
        self._by_id = {location.id: location for location in self.locations}

    def find_by_name(self, name: str) -> Optional[Location]:
        """Location with this name, ignoring case and surrounding whitespace."""
        return self._by_name.get(name.strip().lower())

    def resolve(self, row: ParsedRow, inventory_item_id: str) -> LocationResolution:
        """
        Resolve the location for a row whose variant is known.

        Args:
            row: Parsed spreadsheet row
            inventory_item_id: Resolved Shopify inventory item

        Returns:
            LocationResolution

        Raises:
            ShopifyAPIError: If the item's locations cannot be fetched
        """
        requested = row.location_name.strip()
        if requested:
            location = self.find_by_name(requested)
            if location is None:
                return LocationResolution(
                    reason=f'Location "{requested}" not found in Shopify'
                )
            return LocationResolution(location=location)

        if len(self.locations) == 1:
            return LocationResolution(location=self.locations[0])

        item_location_ids = list(dict.fromkeys(
            self.gateway.get_item_location_ids(inventory_item_id)
        ))
        if len(item_location_ids) == 1 and item_location_ids[0] in self._by_id:
            return LocationResolution(location=self._by_id[item_location_ids[0]])

        if self.default_location_name:
            location = self.find_by_name(self.default_location_name)
            if location is not None:
                return LocationResolution(location=location)
            logger.warning(
                "default_location_not_found",
                default_location_name=self.default_location_name,
            )

        return LocationResolution(reason=AMBIGUOUS_LOCATION_REASON)

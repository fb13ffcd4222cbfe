"""
Shopify Admin GraphQL gateway.

Every catalog read and inventory write used by the sync goes through
ShopifyGateway. Each call is a single GraphQL request wrapped in the
rate-limit retry policy (HTTP 429 → linear backoff).
"""

import time
from typing import Any, Callable, Optional, Protocol
import requests
import structlog

from config.settings import Settings, get_settings
from exceptions import (
    ShopifyAPIError,
    ShopifyConfigurationError,
    ShopifyHTTPError,
)
from models.inventory_sync import Location, ProductCandidate, RemoteVariant
from utils.retry import RetryPolicy, linear_backoff, with_retry

logger = structlog.get_logger(__name__)

TITLE_SEARCH_LIMIT = 10
VARIANTS_PER_PRODUCT = 100
LOCATIONS_LIMIT = 250


class CatalogGateway(Protocol):
    """Remote catalog operations the sync depends on."""

    def get_locations(self) -> list[Location]: ...

    def get_variant_by_sku(self, sku: str) -> Optional[RemoteVariant]: ...

    def get_variant_by_barcode(self, barcode: str) -> Optional[RemoteVariant]: ...

    def get_variants_by_handle(self, handle: str) -> list[RemoteVariant]: ...

    def search_products_by_title(self, title: str) -> list[ProductCandidate]: ...

    def get_current_quantity(self, inventory_item_id: str, location_id: str) -> Optional[int]: ...

    def set_quantity(self, inventory_item_id: str, location_id: str, quantity: int) -> None: ...

    def get_item_location_ids(self, inventory_item_id: str) -> list[str]: ...


# ===================
# QUERIES
# ===================

_VARIANT_FIELDS = """
    sku
    title
    barcode
    selectedOptions { value }
    inventoryItem { id }
"""

LOCATIONS_QUERY = f"""
query GetLocations {{
  locations(first: {LOCATIONS_LIMIT}) {{
    edges {{ node {{ id name }} }}
  }}
}}
"""

VARIANT_SEARCH_QUERY = f"""
query VariantSearch($search: String!) {{
  productVariants(first: 1, query: $search) {{
    edges {{ node {{ {_VARIANT_FIELDS} }} }}
  }}
}}
"""

VARIANTS_BY_HANDLE_QUERY = f"""
query VariantsByHandle($search: String!) {{
  products(first: 1, query: $search) {{
    edges {{
      node {{
        variants(first: {VARIANTS_PER_PRODUCT}) {{
          edges {{ node {{ {_VARIANT_FIELDS} }} }}
        }}
      }}
    }}
  }}
}}
"""

PRODUCTS_BY_TITLE_QUERY = f"""
query ProductsByTitle($search: String!) {{
  products(first: {TITLE_SEARCH_LIMIT}, query: $search) {{
    edges {{
      node {{
        title
        variants(first: {VARIANTS_PER_PRODUCT}) {{
          edges {{ node {{ {_VARIANT_FIELDS} }} }}
        }}
      }}
    }}
  }}
}}
"""

CURRENT_QUANTITY_QUERY = """
query CurrentInventory($inventoryItemId: ID!, $locationId: ID!) {
  inventoryItem(id: $inventoryItemId) {
    inventoryLevel(locationId: $locationId) {
      quantities(names: ["available"]) { name quantity }
    }
  }
}
"""

ITEM_LOCATIONS_QUERY = f"""
query ItemLocations($inventoryItemId: ID!) {{
  inventoryItem(id: $inventoryItemId) {{
    inventoryLevels(first: {LOCATIONS_LIMIT}) {{
      edges {{ node {{ location {{ id }} }} }}
    }}
  }}
}}
"""

SET_QUANTITY_MUTATION = """
mutation SetInventory($input: InventorySetQuantitiesInput!) {
  inventorySetQuantities(input: $input) {
    userErrors { field message }
  }
}
"""


def is_rate_limited(error: BaseException) -> bool:
    """True for HTTP 429 responses and GraphQL THROTTLED errors."""
    if isinstance(error, ShopifyHTTPError):
        return error.http_status == 429
    return isinstance(error, ShopifyAPIError) and bool(error.details.get("throttled"))


def _search_value(value: str) -> str:
    """Quote a value for Shopify's search syntax."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _to_variant(node: dict) -> Optional[RemoteVariant]:
    item = node.get("inventoryItem") or {}
    if not item.get("id"):
        return None
    return RemoteVariant(
        inventory_item_id=item["id"],
        sku=node.get("sku") or "",
        title=node.get("title") or "",
        barcode=node.get("barcode") or "",
        selected_option_values=tuple(
            option.get("value") or "" for option in node.get("selectedOptions") or []
        ),
    )


def _to_variants(variant_edges: list[dict]) -> list[RemoteVariant]:
    variants = (_to_variant(edge.get("node") or {}) for edge in variant_edges)
    return [v for v in variants if v is not None]


class ShopifyGateway:
    """
    Shopify Admin GraphQL client.

    Handles request construction, error mapping and rate-limit retries.
    Methods are blocking; the sync service runs them in worker threads.
    """

    def __init__(
        self,
        shop_name: str,
        access_token: str,
        api_version: str = "2023-01",
        max_retries: int = 5,
        retry_base_delay_ms: int = 1000,
        timeout_seconds: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        missing = []
        if not (shop_name or "").strip():
            missing.append("shop_name")
        if not (access_token or "").strip():
            missing.append("access_token")
        if missing:
            raise ShopifyConfigurationError(missing)

        shop_name = shop_name.strip()
        self.domain = shop_name if ".myshopify.com" in shop_name else f"{shop_name}.myshopify.com"
        self.access_token = access_token.strip()
        self.api_version = api_version
        self.timeout_seconds = timeout_seconds
        self.retry_policy = RetryPolicy(
            is_retryable=is_rate_limited,
            max_retries=max_retries,
            delay_for=linear_backoff(retry_base_delay_ms / 1000),
        )
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> "ShopifyGateway":
        """Build a gateway from application settings."""
        return cls(
            shop_name=settings.shopify_shop_name,
            access_token=settings.shopify_access_token,
            api_version=settings.shopify_api_version,
            max_retries=settings.shopify_max_retries,
            retry_base_delay_ms=settings.shopify_retry_base_delay_ms,
            timeout_seconds=settings.shopify_request_timeout_seconds,
        )

    @property
    def graphql_url(self) -> str:
        return f"https://{self.domain}/admin/api/{self.api_version}/graphql.json"

    # ===================
    # TRANSPORT
    # ===================

    def _post(self, query: str, variables: Optional[dict[str, Any]]) -> dict:
        """Send one GraphQL request and return its data payload."""
        try:
            response = requests.post(
                self.graphql_url,
                json={"query": query, "variables": variables or {}},
                headers={
                    "Content-Type": "application/json",
                    "X-Shopify-Access-Token": self.access_token,
                },
                timeout=self.timeout_seconds,
            )
        except requests.exceptions.RequestException as e:
            raise ShopifyAPIError(f"Shopify request failed: {e}")

        if not response.ok:
            raise ShopifyHTTPError(response.status_code, response.text[:500])

        payload = response.json()
        errors = payload.get("errors") or []
        if errors:
            throttled = any(
                (error.get("extensions") or {}).get("code") == "THROTTLED"
                for error in errors
            )
            raise ShopifyAPIError(
                "; ".join(error.get("message", "Unknown error") for error in errors),
                details={"throttled": throttled},
            )

        data = payload.get("data")
        if data is None:
            raise ShopifyAPIError("Shopify GraphQL response missing data")
        return data

    def graphql(
        self,
        query: str,
        variables: Optional[dict[str, Any]] = None,
        label: str = "graphql",
    ) -> dict:
        """
        Execute a GraphQL operation with rate-limit retries.

        Args:
            query: GraphQL document
            variables: Operation variables
            label: Description used in retry logs

        Returns:
            The response's data object

        Raises:
            ShopifyHTTPError: Non-2xx response (429 after retries are exhausted)
            ShopifyAPIError: GraphQL errors or transport failure
        """
        return with_retry(
            lambda: self._post(query, variables),
            self.retry_policy,
            label=label,
            sleep=self._sleep,
        )

    # ===================
    # LOCATIONS
    # ===================

    def get_locations(self) -> list[Location]:
        """All shop locations (first 250)."""
        data = self.graphql(LOCATIONS_QUERY, label="locations query")
        edges = (data.get("locations") or {}).get("edges") or []
        locations = [Location(id=e["node"]["id"], name=e["node"]["name"]) for e in edges]
        logger.info("shopify_locations_loaded", count=len(locations))
        return locations

    def get_item_location_ids(self, inventory_item_id: str) -> list[str]:
        """Ids of locations that stock the inventory item."""
        data = self.graphql(
            ITEM_LOCATIONS_QUERY,
            {"inventoryItemId": inventory_item_id},
            label=f"inventory locations query item={inventory_item_id}",
        )
        item = data.get("inventoryItem")
        if not item:
            return []
        edges = (item.get("inventoryLevels") or {}).get("edges") or []
        return [
            e["node"]["location"]["id"]
            for e in edges
            if (e.get("node") or {}).get("location")
        ]

    # ===================
    # VARIANTS
    # ===================

    def _first_variant(self, field: str, value: str) -> Optional[RemoteVariant]:
        data = self.graphql(
            VARIANT_SEARCH_QUERY,
            {"search": f"{field}:{_search_value(value)}"},
            label=f"variant query {field}={value}",
        )
        edges = (data.get("productVariants") or {}).get("edges") or []
        if not edges:
            return None
        return _to_variant(edges[0].get("node") or {})

    def get_variant_by_sku(self, sku: str) -> Optional[RemoteVariant]:
        """First variant whose SKU matches exactly."""
        return self._first_variant("sku", sku)

    def get_variant_by_barcode(self, barcode: str) -> Optional[RemoteVariant]:
        """First variant whose barcode matches exactly."""
        return self._first_variant("barcode", barcode)

    def get_variants_by_handle(self, handle: str) -> list[RemoteVariant]:
        """Variants of the product with this handle, or [] when none exists."""
        data = self.graphql(
            VARIANTS_BY_HANDLE_QUERY,
            {"search": f"handle:{_search_value(handle)}"},
            label=f"product query handle={handle}",
        )
        edges = (data.get("products") or {}).get("edges") or []
        if not edges:
            return []
        product = edges[0].get("node") or {}
        return _to_variants((product.get("variants") or {}).get("edges") or [])

    def search_products_by_title(self, title: str) -> list[ProductCandidate]:
        """Top title-search candidates, in Shopify's relevance order."""
        data = self.graphql(
            PRODUCTS_BY_TITLE_QUERY,
            {"search": f"title:{title}"},
            label=f"product query title={title}",
        )
        edges = (data.get("products") or {}).get("edges") or []
        candidates = []
        for edge in edges:
            node = edge.get("node") or {}
            candidates.append(ProductCandidate(
                title=node.get("title") or "",
                variants=tuple(_to_variants((node.get("variants") or {}).get("edges") or [])),
            ))
        return candidates

    # ===================
    # INVENTORY LEVELS
    # ===================

    def get_current_quantity(self, inventory_item_id: str, location_id: str) -> Optional[int]:
        """Available quantity at the location, or None when the item is not stocked there."""
        data = self.graphql(
            CURRENT_QUANTITY_QUERY,
            {"inventoryItemId": inventory_item_id, "locationId": location_id},
            label=f"inventory level query item={inventory_item_id} location={location_id}",
        )
        level = (data.get("inventoryItem") or {}).get("inventoryLevel") or {}
        quantities = level.get("quantities") or []
        if not quantities:
            return None
        quantity = quantities[0].get("quantity")
        return quantity if isinstance(quantity, int) else None

    def set_quantity(self, inventory_item_id: str, location_id: str, quantity: int) -> None:
        """
        Set the available quantity at a location.

        Raises:
            ShopifyAPIError: If Shopify reports user errors
        """
        data = self.graphql(
            SET_QUANTITY_MUTATION,
            {
                "input": {
                    "name": "available",
                    "reason": "correction",
                    "ignoreCompareQuantity": True,
                    "quantities": [{
                        "inventoryItemId": inventory_item_id,
                        "locationId": location_id,
                        "quantity": quantity,
                    }],
                },
            },
            label=f"inventory set mutation item={inventory_item_id} location={location_id}",
        )
        user_errors = (data.get("inventorySetQuantities") or {}).get("userErrors") or []
        if user_errors:
            raise ShopifyAPIError(
                user_errors[0].get("message", "Unknown error"),
                details={"user_errors": user_errors},
            )
        logger.debug(
            "shopify_quantity_set",
            inventory_item_id=inventory_item_id,
            location_id=location_id,
            quantity=quantity,
        )


def get_shopify_gateway() -> ShopifyGateway:
    """
    Build a gateway from current settings.

    Raises:
        ShopifyConfigurationError: If shop name or access token is missing
    """
    return ShopifyGateway.from_settings(get_settings())

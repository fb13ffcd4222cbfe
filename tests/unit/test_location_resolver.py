"""
Unit tests for location resolution.
"""

from services.location_resolver import AMBIGUOUS_LOCATION_REASON, LocationResolver
from tests.factories import ParsedRowFactory


class TestLocationResolver:
    """Tests for LocationResolver.resolve."""

    def test_explicit_name_matches_case_insensitively(self, multi_location_gateway, outlet_location):
        resolver = LocationResolver(multi_location_gateway, multi_location_gateway.locations)
        resolution = resolver.resolve(ParsedRowFactory.create(location_name=" outlet "), "item-1")

        assert resolution.location == outlet_location
        assert multi_location_gateway.calls["get_item_location_ids"] == 0

    def test_unknown_name_fails(self, multi_location_gateway):
        resolver = LocationResolver(multi_location_gateway, multi_location_gateway.locations)
        resolution = resolver.resolve(ParsedRowFactory.create(location_name="Warehouse 9"), "item-1")

        assert resolution.location is None
        assert resolution.reason == 'Location "Warehouse 9" not found in Shopify'

    def test_unknown_name_does_not_fall_back_to_single_location(self, gateway):
        resolver = LocationResolver(gateway, gateway.locations)
        resolution = resolver.resolve(ParsedRowFactory.create(location_name="Elsewhere"), "item-1")
        assert resolution.location is None

    def test_single_shop_location(self, gateway, main_location):
        resolver = LocationResolver(gateway, gateway.locations)
        resolution = resolver.resolve(ParsedRowFactory.create(), "item-1")

        assert resolution.location == main_location
        assert gateway.calls["get_item_location_ids"] == 0

    def test_item_stocked_at_one_location(self, multi_location_gateway, outlet_location):
        multi_location_gateway.item_locations["item-1"] = [outlet_location.id, outlet_location.id]
        resolver = LocationResolver(multi_location_gateway, multi_location_gateway.locations)

        resolution = resolver.resolve(ParsedRowFactory.create(), "item-1")

        assert resolution.location == outlet_location

    def test_default_location(self, multi_location_gateway, main_location, outlet_location):
        multi_location_gateway.item_locations["item-1"] = [main_location.id, outlet_location.id]
        resolver = LocationResolver(
            multi_location_gateway,
            multi_location_gateway.locations,
            default_location_name="main warehouse",
        )

        resolution = resolver.resolve(ParsedRowFactory.create(), "item-1")

        assert resolution.location == main_location

    def test_ambiguous_without_default(self, multi_location_gateway):
        resolver = LocationResolver(multi_location_gateway, multi_location_gateway.locations)
        resolution = resolver.resolve(ParsedRowFactory.create(), "item-1")

        assert resolution.location is None
        assert resolution.reason == AMBIGUOUS_LOCATION_REASON

    def test_unknown_default_is_ambiguous(self, multi_location_gateway):
        resolver = LocationResolver(
            multi_location_gateway,
            multi_location_gateway.locations,
            default_location_name="Nowhere",
        )
        resolution = resolver.resolve(ParsedRowFactory.create(), "item-1")
        assert resolution.reason == AMBIGUOUS_LOCATION_REASON

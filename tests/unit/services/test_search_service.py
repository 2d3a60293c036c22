"""
Unit tests for property search.
"""

import pytest
from loguru import logger

from unicorn_properties.exceptions import EventValidationError
from unicorn_properties.services.search import (
    PROPERTY_DETAILS,
    SEARCH_BY_CITY,
    SEARCH_BY_STREET,
    PropertySearchService,
    SearchQuery,
    build_query,
    path_parameter,
)
from unicorn_properties.storage.schemas import PropertyStatus


class TestBuildQuery:
    """Tests for route to query translation."""

    def test_city(self):
        query = build_query(SEARCH_BY_CITY, {"country": "USA", "city": "Anytown"})
        assert query == SearchQuery(pk="property#usa#anytown")

    def test_street(self):
        query = build_query(
            SEARCH_BY_STREET, {"country": "usa", "city": "anytown", "street": "Main+Street"}
        )
        assert query == SearchQuery(pk="property#usa#anytown", sk_prefix="main-street")

    def test_property_details(self):
        query = build_query(
            PROPERTY_DETAILS,
            {"country": "usa", "city": "anytown", "street": "main%20street", "number": "123"},
        )
        assert query == SearchQuery(pk="property#usa#anytown", sk_prefix="main-street#123")

    def test_route_case_and_parameter_names(self):
        """Test route templates and parameter names match case-insensitively."""
        query = build_query("/SEARCH/{country}/{city}", {"Country": "USA", "City": "Anytown"})
        assert query.pk == "property#usa#anytown"

    @pytest.mark.parametrize(
        ("resource", "params"),
        [
            ("/unknown/{country}", {"country": "usa"}),
            (None, {}),
            (SEARCH_BY_CITY, {"country": "usa"}),
            (SEARCH_BY_CITY, {"country": "usa", "city": "  "}),
        ],
    )
    def test_unroutable(self, resource, params):
        assert build_query(resource, params) is None

    def test_path_parameter_missing(self):
        assert path_parameter(None, "city") == ""


class TestPropertySearchService:
    """Tests for PropertySearchService.search."""

    @pytest.mark.asyncio
    async def test_only_approved_returned(self, property_store, make_property):
        await property_store.save(make_property(number="1", status=PropertyStatus.APPROVED))
        await property_store.save(make_property(number="2", status=PropertyStatus.PENDING))
        await property_store.save(make_property(number="3", status=PropertyStatus.DECLINED))
        await property_store.save(
            make_property(street="Elm Street", number="4", status=PropertyStatus.APPROVED)
        )
        service = PropertySearchService(property_store)

        by_city = await service.search(SEARCH_BY_CITY, {"country": "usa", "city": "anytown"})
        by_street = await service.search(
            SEARCH_BY_STREET, {"country": "usa", "city": "anytown", "street": "main street"}
        )

        assert sorted(r.property_number for r in by_city) == ["1", "4"]
        assert [r.property_number for r in by_street] == ["1"]

    @pytest.mark.asyncio
    async def test_property_details(self, property_store, make_property):
        await property_store.save(make_property(status=PropertyStatus.APPROVED))
        service = PropertySearchService(property_store)

        [record] = await service.search(
            PROPERTY_DETAILS,
            {"country": "usa", "city": "anytown", "street": "main-street", "number": "123"},
        )

        assert record.to_dto()["number"] == "123"

    @pytest.mark.asyncio
    async def test_unroutable_request(self, property_store):
        with pytest.raises(EventValidationError):
            await PropertySearchService(property_store).search("/nope", {})

    @pytest.mark.asyncio
    async def test_route_template_logged_as_field(self, property_store):
        """Test route templates with braces are logged without being formatted."""
        records = []
        sink_id = logger.add(lambda message: records.append(message.record), level="INFO")
        try:
            result = await PropertySearchService(property_store).search(
                SEARCH_BY_CITY, {"country": "usa", "city": "anytown"}
            )
        finally:
            logger.remove(sink_id)

        assert result == []
        [record] = [r for r in records if r["message"] == "Search path resolved"]
        assert record["extra"]["path"] == SEARCH_BY_CITY
        assert record["extra"]["pk"] == "property#usa#anytown"

"""
Property search over approved listings.

Routes map onto a partition key and an optional sort key prefix:

    /search/{country}/{city}                        -> PK
    /search/{country}/{city}/{street}               -> PK + street prefix
    /properties/{country}/{city}/{street}/{number}  -> PK + full sort key

Only APPROVED properties are ever returned.
"""

from dataclasses import dataclass
from typing import Any
from urllib.parse import unquote_plus

from loguru import logger

from unicorn_properties.exceptions import EventValidationError
from unicorn_properties.storage.base import PropertyStore
from unicorn_properties.storage.keys import partition_key, sort_key, street_prefix
from unicorn_properties.storage.schemas import PropertyRecord, PropertyStatus

SEARCH_BY_CITY = "/search/{country}/{city}"
SEARCH_BY_STREET = "/search/{country}/{city}/{street}"
PROPERTY_DETAILS = "/properties/{country}/{city}/{street}/{number}"


@dataclass(frozen=True)
class SearchQuery:
    pk: str
    sk_prefix: str | None = None


def path_parameter(path_parameters: dict[str, Any] | None, name: str) -> str:
    """
    Look up a path parameter case-insensitively and URL-decode it.

    Returns:
        The decoded value, or "" if absent or blank
    """
    params = path_parameters or {}
    value = params.get(name)
    if value is None:
        value = next((v for k, v in params.items() if k.lower() == name.lower()), None)
    if value is None or not str(value).strip():
        return ""
    return unquote_plus(str(value))


def build_query(resource: str | None, path_parameters: dict[str, Any] | None) -> SearchQuery | None:
    """Translate a route template and its parameters into a query, or None if unroutable."""
    route = (resource or "").lower()
    if route not in (SEARCH_BY_CITY, SEARCH_BY_STREET, PROPERTY_DETAILS):
        return None

    country = path_parameter(path_parameters, "country")
    city = path_parameter(path_parameters, "city")
    if not country or not city:
        return None
    pk = partition_key(country, city)

    if route == SEARCH_BY_STREET:
        street = path_parameter(path_parameters, "street")
        return SearchQuery(pk=pk, sk_prefix=street_prefix(street) if street else None)

    if route == PROPERTY_DETAILS:
        street = path_parameter(path_parameters, "street")
        number = path_parameter(path_parameters, "number")
        return SearchQuery(pk=pk, sk_prefix=sort_key(street, number))

    return SearchQuery(pk=pk)


class PropertySearchService:
    def __init__(self, store: PropertyStore) -> None:
        self.store = store

    async def search(
        self, resource: str | None, path_parameters: dict[str, Any] | None
    ) -> list[PropertyRecord]:
        """
        Find approved properties for a search route.

        Raises:
            EventValidationError: If the route is unknown or lacks country/city
            StoreError: If the query fails
        """
        query = build_query(resource, path_parameters)
        logger.info(
            "Search path resolved",
            path=(resource or "").lower(),
            pk=query.pk if query else None,
            sk_prefix=query.sk_prefix if query else None,
        )
        if query is None:
            raise EventValidationError(f"Cannot build a query for route {resource!r}")

        return await self.store.query(
            query.pk, sk_prefix=query.sk_prefix, status=PropertyStatus.APPROVED
        )

"""
Inbound request payloads.

Requests arrive as JSON in API bodies and queue messages. Field names are
accepted in snake_case or PascalCase (``property_id`` or ``PropertyId``).
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from unicorn_properties.exceptions import EventValidationError
from unicorn_properties.storage.schemas import Address


class _Request(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    @classmethod
    def parse(cls, data: Any) -> Any:
        """
        Validate a decoded JSON payload.

        Raises:
            EventValidationError: If the payload is not an object or a field is invalid
        """
        if not isinstance(data, dict):
            raise EventValidationError(f"{cls.__name__} payload must be a JSON object")
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise EventValidationError(f"Invalid {cls.__name__}: {e}") from e


class AddressRequest(_Request):
    number: int = Field(default=0, validation_alias=AliasChoices("number", "Number"))
    street: str | None = Field(default=None, validation_alias=AliasChoices("street", "Street"))
    city: str | None = Field(default=None, validation_alias=AliasChoices("city", "City"))
    country: str | None = Field(default=None, validation_alias=AliasChoices("country", "Country"))

    def to_address(self) -> Address:
        return Address(
            number=self.number,
            street=self.street,
            city=self.city,
            country=self.country or "USA",
        )


class CreateContractRequest(_Request):
    """Body of a contract creation request."""

    property_id: str = Field(
        min_length=1, validation_alias=AliasChoices("property_id", "PropertyId")
    )
    seller_name: str | None = Field(
        default=None, validation_alias=AliasChoices("seller_name", "SellerName")
    )
    address: AddressRequest | None = Field(
        default=None, validation_alias=AliasChoices("address", "Address")
    )


class UpdateContractRequest(_Request):
    """Body of a contract approval request."""

    property_id: str = Field(
        min_length=1, validation_alias=AliasChoices("property_id", "PropertyId")
    )


class RequestApprovalRequest(_Request):
    """Body of a publication approval request. The id is validated by the service."""

    property_id: str | None = Field(
        default=None, validation_alias=AliasChoices("property_id", "PropertyId")
    )

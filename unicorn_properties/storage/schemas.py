"""
Data models for contracts, contract status items and property records.

These schemas define the structure of items stored in the three tables.
``to_item()`` / ``from_item()`` produce and read the store representation
(PascalCase attribute names, nested maps); ``to_dict()`` is the JSON wire form.
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from unicorn_properties.storage.keys import partition_key, sort_key


class ContractStatus(str, Enum):
    """Contract lifecycle status."""

    DRAFT = "DRAFT"
    APPROVED = "APPROVED"
    CANCELLED = "CANCELLED"
    CLOSED = "CLOSED"
    EXPIRED = "EXPIRED"


# A contract may only be re-created over one of these
TERMINAL_CONTRACT_STATUSES = frozenset(
    {ContractStatus.CANCELLED, ContractStatus.CLOSED, ContractStatus.EXPIRED}
)


class PropertyStatus(str, Enum):
    """Publication status of a property. A record without status is NEW."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"

    @classmethod
    def parse(cls, value: str | None) -> "PropertyStatus | None":
        """Case-insensitive lookup; None for empty or unknown values."""
        if not value:
            return None
        try:
            return cls(value.upper())
        except ValueError:
            return None


def utcnow() -> datetime:
    return datetime.now(UTC)


def parse_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class Address:
    """Postal address of a contracted property."""

    number: int = 0
    street: str | None = None
    city: str | None = None
    country: str = "USA"

    def to_item(self) -> dict[str, Any]:
        """Convert to store/wire representation."""
        return {
            "Number": self.number,
            "Street": self.street,
            "City": self.city,
            "Country": self.country,
        }

    @classmethod
    def from_item(cls, data: dict[str, Any] | None) -> "Address | None":
        """Create from store/wire representation."""
        if data is None:
            return None
        return cls(
            number=int(data.get("Number", 0)),
            street=data.get("Street"),
            city=data.get("City"),
            country=data.get("Country") or "USA",
        )


@dataclass
class Contract:
    """
    A contract between a seller and Unicorn Properties for one property.

    ``contract_id`` and ``contract_created`` are set once when the contract is
    created and never change afterwards.
    """

    property_id: str
    contract_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    contract_status: ContractStatus = ContractStatus.DRAFT
    contract_created: datetime = field(default_factory=utcnow)
    contract_last_modified_on: datetime = field(default_factory=utcnow)
    address: Address | None = None
    seller_name: str | None = None

    def to_item(self) -> dict[str, Any]:
        """Convert to store representation."""
        item: dict[str, Any] = {
            "PropertyId": self.property_id,
            "ContractId": self.contract_id,
            "ContractStatus": self.contract_status.value,
            "ContractCreated": self.contract_created.isoformat(),
            "ContractLastModifiedOn": self.contract_last_modified_on.isoformat(),
        }
        if self.address is not None:
            item["Address"] = self.address.to_item()
        if self.seller_name is not None:
            item["SellerName"] = self.seller_name
        return item

    @classmethod
    def from_item(cls, data: dict[str, Any]) -> "Contract":
        """Create from store representation."""
        return cls(
            property_id=data["PropertyId"],
            contract_id=str(data["ContractId"]),
            contract_status=ContractStatus(data["ContractStatus"]),
            contract_created=parse_datetime(data["ContractCreated"]),
            contract_last_modified_on=parse_datetime(data["ContractLastModifiedOn"]),
            address=Address.from_item(data.get("Address")),
            seller_name=data.get("SellerName"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return self.to_item()


@dataclass
class ContractStatusItem:
    """
    The Properties domain's mirror of a contract's status.

    ``sfn_wait_approved_task_token`` holds the task token of a workflow
    execution paused until this contract is approved.
    """

    property_id: str
    contract_id: str | None = None
    contract_status: ContractStatus | None = None
    contract_last_modified_on: datetime | None = None
    sfn_wait_approved_task_token: str | None = None

    @property
    def is_approved(self) -> bool:
        return self.contract_status == ContractStatus.APPROVED

    def to_item(self) -> dict[str, Any]:
        """Convert to store representation. Unset attributes are omitted."""
        item: dict[str, Any] = {"PropertyId": self.property_id}
        if self.contract_id is not None:
            item["ContractId"] = self.contract_id
        if self.contract_status is not None:
            item["ContractStatus"] = self.contract_status.value
        if self.contract_last_modified_on is not None:
            item["ContractLastModifiedOn"] = self.contract_last_modified_on.isoformat()
        if self.sfn_wait_approved_task_token:
            item["SfnWaitApprovedTaskToken"] = self.sfn_wait_approved_task_token
        return item

    @classmethod
    def from_item(cls, data: dict[str, Any]) -> "ContractStatusItem":
        """Create from store representation."""
        status = data.get("ContractStatus")
        return cls(
            property_id=data["PropertyId"],
            contract_id=str(data["ContractId"]) if data.get("ContractId") else None,
            contract_status=ContractStatus(status) if status else None,
            contract_last_modified_on=parse_datetime(data.get("ContractLastModifiedOn")),
            sfn_wait_approved_task_token=data.get("SfnWaitApprovedTaskToken") or None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary with every attribute present (callback output)."""
        return {
            "PropertyId": self.property_id,
            "ContractId": self.contract_id,
            "ContractStatus": self.contract_status.value if self.contract_status else None,
            "ContractLastModifiedOn": _isoformat(self.contract_last_modified_on),
            "SfnWaitApprovedTaskToken": self.sfn_wait_approved_task_token,
        }


@dataclass
class PropertyRecord:
    """
    A property listing in the Web domain.

    PK and SK are derived from the address unless loaded from the store.
    """

    country: str
    city: str
    street: str
    property_number: str
    description: str = ""
    contract: str = ""
    list_price: Decimal = Decimal("0")
    currency: str = ""
    images: list[str] = field(default_factory=list)
    status: PropertyStatus | None = None
    pk: str = ""
    sk: str = ""

    def __post_init__(self) -> None:
        if not self.pk:
            self.pk = partition_key(self.country, self.city)
        if not self.sk:
            self.sk = sort_key(self.street, self.property_number)

    def to_item(self) -> dict[str, Any]:
        """Convert to store representation."""
        item: dict[str, Any] = {
            "PK": self.pk,
            "SK": self.sk,
            "Country": self.country,
            "City": self.city,
            "Street": self.street,
            "Number": self.property_number,
            "Description": self.description,
            "Contract": self.contract,
            "ListPrice": self.list_price,
            "Currency": self.currency,
            "Images": list(self.images),
        }
        if self.status is not None:
            item["Status"] = self.status.value
        return item

    @classmethod
    def from_item(cls, data: dict[str, Any]) -> "PropertyRecord":
        """Create from store representation."""
        return cls(
            country=data.get("Country", ""),
            city=data.get("City", ""),
            street=data.get("Street", ""),
            property_number=str(data.get("Number", "")),
            description=data.get("Description", ""),
            contract=data.get("Contract", ""),
            list_price=Decimal(str(data.get("ListPrice", "0"))),
            currency=data.get("Currency", ""),
            images=list(data.get("Images") or []),
            status=PropertyStatus.parse(data.get("Status")),
            pk=data.get("PK", ""),
            sk=data.get("SK", ""),
        )

    def to_dto(self) -> dict[str, Any]:
        """Public projection returned by search; internal keys are dropped."""
        return {
            "country": self.country,
            "city": self.city,
            "street": self.street,
            "number": self.property_number,
            "description": self.description,
            "contract": self.contract,
            "listprice": float(self.list_price),
            "currency": self.currency,
            "images": list(self.images),
            "status": self.status.value if self.status else None,
        }

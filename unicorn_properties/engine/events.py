"""
Event envelopes exchanged over the event bus.

Events are immutable records constructed once and serialized verbatim. The
detail-type strings are part of the wire contract with external consumers.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from unicorn_properties.exceptions import EventValidationError
from unicorn_properties.storage.schemas import (
    Contract,
    ContractStatus,
    PropertyRecord,
    PropertyStatus,
    parse_datetime,
)


class EventType(Enum):
    """Detail-types published to or consumed from the bus."""

    CONTRACT_STATUS_CHANGED = "ContractStatusChanged"
    PUBLICATION_APPROVAL_REQUESTED = "PublicationApprovalRequested"
    PUBLICATION_EVALUATION_COMPLETED = "PublicationEvaluationCompleted"


@dataclass(frozen=True)
class ContractStatusChangedEvent:
    """Emitted whenever a contract is created or changes status."""

    property_id: str
    contract_id: str
    contract_status: ContractStatus
    contract_last_modified_on: datetime

    detail_type = EventType.CONTRACT_STATUS_CHANGED

    def __post_init__(self) -> None:
        if not self.property_id:
            raise EventValidationError("ContractStatusChanged event must have a PropertyId")
        if self.contract_status is None:
            raise EventValidationError("ContractStatusChanged event must have a ContractStatus")

    def to_detail(self) -> dict[str, Any]:
        return {
            "PropertyId": self.property_id,
            "ContractId": self.contract_id,
            "ContractStatus": self.contract_status.value,
            "ContractLastModifiedOn": self.contract_last_modified_on.isoformat(),
        }

    @classmethod
    def from_detail(cls, detail: dict[str, Any]) -> "ContractStatusChangedEvent":
        try:
            return cls(
                property_id=detail["PropertyId"],
                contract_id=str(detail["ContractId"]),
                contract_status=ContractStatus(detail["ContractStatus"]),
                contract_last_modified_on=parse_datetime(detail["ContractLastModifiedOn"]),
            )
        except (KeyError, ValueError, TypeError) as e:
            raise EventValidationError(f"Invalid ContractStatusChanged detail: {e}") from e


@dataclass(frozen=True)
class PublicationEvaluationCompletedEvent:
    """Emitted by the external evaluation pipeline once a property is checked."""

    property_id: str
    evaluation_result: str

    detail_type = EventType.PUBLICATION_EVALUATION_COMPLETED

    def to_detail(self) -> dict[str, Any]:
        return {
            "PropertyId": self.property_id,
            "EvaluationResult": self.evaluation_result,
        }

    @classmethod
    def from_detail(cls, detail: dict[str, Any]) -> "PublicationEvaluationCompletedEvent":
        try:
            return cls(
                property_id=detail["PropertyId"],
                evaluation_result=str(detail.get("EvaluationResult") or ""),
            )
        except (KeyError, TypeError) as e:
            raise EventValidationError(
                f"Invalid PublicationEvaluationCompleted detail: {e}"
            ) from e


@dataclass(frozen=True)
class RequestApprovalEventAddress:
    country: str
    city: str
    street: str
    number: str

    def to_detail(self) -> dict[str, Any]:
        return {
            "Country": self.country,
            "City": self.city,
            "Street": self.street,
            "Number": self.number,
        }


@dataclass(frozen=True)
class RequestApprovalEvent:
    """Asks the evaluation pipeline to review a property listing."""

    property_id: str
    status: PropertyStatus
    description: str
    address: RequestApprovalEventAddress
    images: tuple[str, ...] = field(default_factory=tuple)

    detail_type = EventType.PUBLICATION_APPROVAL_REQUESTED

    def to_detail(self) -> dict[str, Any]:
        return {
            "PropertyId": self.property_id,
            "Status": self.status.value,
            "Description": self.description,
            "Address": self.address.to_detail(),
            "Images": list(self.images),
        }


@dataclass(frozen=True)
class BusEvent:
    """A single entry as submitted to the event bus."""

    source: str
    detail_type: str
    detail: dict[str, Any]
    resources: tuple[str, ...] = ()

    @property
    def detail_json(self) -> str:
        return json.dumps(self.detail)


def event_detail(envelope: dict[str, Any]) -> dict[str, Any]:
    """
    Extract the typed payload from an EventBridge envelope.

    Accepts ``detail`` (native Lambda shape) or ``Detail``; a JSON string
    detail is decoded.
    """
    detail = envelope.get("detail", envelope.get("Detail"))
    if isinstance(detail, str):
        try:
            detail = json.loads(detail)
        except json.JSONDecodeError as e:
            raise EventValidationError(f"Event detail is not valid JSON: {e}") from e
    if not isinstance(detail, dict):
        raise EventValidationError("Event does not contain a detail payload")
    return detail


# Event creation helpers


def create_contract_status_changed_event(contract: Contract) -> ContractStatusChangedEvent:
    """Create a ContractStatusChanged event from the current contract state."""
    return ContractStatusChangedEvent(
        property_id=contract.property_id,
        contract_id=contract.contract_id,
        contract_status=contract.contract_status,
        contract_last_modified_on=contract.contract_last_modified_on,
    )


def create_request_approval_event(
    property_id: str, record: PropertyRecord
) -> RequestApprovalEvent:
    """Create a PublicationApprovalRequested event carrying the denormalized listing."""
    return RequestApprovalEvent(
        property_id=property_id,
        status=record.status,
        description=record.description,
        address=RequestApprovalEventAddress(
            country=record.country,
            city=record.city,
            street=record.street,
            number=record.property_number,
        ),
        images=tuple(record.images),
    )

"""
Contract ingestion, approval and change-stream publication.

ContractService is the single pipeline behind every contract entry point (API
create/update and queue ingestion). ContractStreamPublisher turns change-stream
records of the contracts table into ContractStatusChanged events, for
deployments where the table's stream rather than the service owns publication.
"""

from typing import Any

from boto3.dynamodb.types import TypeDeserializer
from loguru import logger

from unicorn_properties.engine.events import (
    BusEvent,
    ContractStatusChangedEvent,
    create_contract_status_changed_event,
)
from unicorn_properties.engine.publisher import EventPublisher
from unicorn_properties.exceptions import ConditionalWriteRejected, ContractNotFoundError
from unicorn_properties.observability.tracing import add_span_event
from unicorn_properties.services.requests import CreateContractRequest, UpdateContractRequest
from unicorn_properties.storage.base import ContractStore
from unicorn_properties.storage.schemas import Contract, ContractStatus, parse_datetime, utcnow

# Change-stream filter: only these mutations and statuses become events
STREAM_EVENT_NAMES = frozenset({"INSERT", "MODIFY"})
STREAM_PUBLISHED_STATUSES = frozenset({ContractStatus.DRAFT.value, ContractStatus.APPROVED.value})


class ContractService:
    """
    Creates and approves contracts.

    Args:
        store: Contracts table
        publisher: Receives a ContractStatusChanged event after every write
        source: Event source namespace for published events
    """

    def __init__(
        self,
        store: ContractStore,
        publisher: EventPublisher,
        source: str = "unicorn.contracts",
    ) -> None:
        self.store = store
        self.publisher = publisher
        self.source = source

    async def create_contract(self, request: CreateContractRequest) -> Contract:
        """
        Create a DRAFT contract for a property.

        Raises:
            ConditionalWriteRejected: If a non-terminal contract already exists
            StoreError: If the store call fails
            EventPublishError: If the status change could not be published
        """
        contract = Contract(
            property_id=request.property_id,
            address=request.address.to_address() if request.address else None,
            seller_name=request.seller_name,
        )
        contract.contract_last_modified_on = contract.contract_created

        log = logger.bind(property_id=contract.property_id, contract_id=contract.contract_id)
        log.info("Creating new contract")

        try:
            await self.store.create(contract)
        except ConditionalWriteRejected:
            log.warning("Unable to create contract; a live contract already exists for the property")
            raise

        await self.publisher.emit(self.source, create_contract_status_changed_event(contract))
        add_span_event("contract_created", {"property_id": contract.property_id})
        log.info("Contract created", contract_status=contract.contract_status.value)
        return contract

    async def update_contract(self, request: UpdateContractRequest) -> Contract:
        """
        Approve the existing contract for a property.

        Raises:
            ContractNotFoundError: If no contract exists for the property
            StoreError: If the store call fails
            EventPublishError: If the status change could not be published
        """
        log = logger.bind(property_id=request.property_id)

        contract = await self.store.get(request.property_id)
        if contract is None:
            log.warning("Cannot approve contract; no contract exists for the property")
            raise ContractNotFoundError(request.property_id)

        contract.contract_status = ContractStatus.APPROVED
        contract.contract_last_modified_on = utcnow()
        await self.store.update(contract)

        await self.publisher.emit(self.source, create_contract_status_changed_event(contract))
        add_span_event("contract_approved", {"property_id": contract.property_id})
        log.info("Contract approved", contract_id=contract.contract_id)
        return contract


class ContractStreamPublisher:
    """
    Publishes ContractStatusChanged events from contracts-table stream records.

    Only INSERT/MODIFY records whose new image has status DRAFT or APPROVED
    are published; everything else is skipped.
    """

    def __init__(self, publisher: EventPublisher, source: str = "unicorn.contracts") -> None:
        self.publisher = publisher
        self.source = source
        self._deserializer = TypeDeserializer()

    @staticmethod
    def matches(record: dict[str, Any]) -> bool:
        if record.get("eventName") not in STREAM_EVENT_NAMES:
            return False
        new_image = record.get("dynamodb", {}).get("NewImage") or {}
        status = new_image.get("ContractStatus", {}).get("S")
        return status in STREAM_PUBLISHED_STATUSES

    def _image(self, image: dict[str, Any]) -> dict[str, Any]:
        return {key: self._deserializer.deserialize(value) for key, value in image.items()}

    def to_event(self, record: dict[str, Any]) -> ContractStatusChangedEvent:
        """Build the event from the record's Keys and NewImage."""
        change = record["dynamodb"]
        keys = self._image(change["Keys"])
        new_image = self._image(change["NewImage"])
        return ContractStatusChangedEvent(
            property_id=keys["PropertyId"],
            contract_id=str(new_image.get("ContractId", "")),
            contract_status=ContractStatus(new_image["ContractStatus"]),
            contract_last_modified_on=parse_datetime(new_image.get("ContractLastModifiedOn"))
            or utcnow(),
        )

    async def process_record(self, record: dict[str, Any]) -> BusEvent | None:
        """
        Publish the event for one stream record.

        Returns:
            The published BusEvent, or None if the record was filtered out
        """
        if not self.matches(record):
            logger.debug(
                "Skipping contract stream record",
                event_name=record.get("eventName"),
            )
            return None

        event = self.to_event(record)
        bus_event = await self.publisher.emit(self.source, event)
        logger.info(
            "Published contract status change from stream",
            property_id=event.property_id,
            contract_status=event.contract_status.value,
        )
        return bus_event

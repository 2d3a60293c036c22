"""
The Properties domain's view of contract status.

ContractStatusService keeps the contract status mirror up to date, parks
workflow task tokens on it, and resumes the waiting workflow once the
mirrored contract is APPROVED.
"""

from enum import Enum

from loguru import logger

from unicorn_properties.engine.callback import WorkflowCallback
from unicorn_properties.engine.events import ContractStatusChangedEvent
from unicorn_properties.exceptions import (
    ConditionalWriteRejected,
    ContractStatusChangedEventHandlerError,
    ContractStatusNotFoundError,
    DownstreamFailure,
    TaskTokenConsumedError,
)
from unicorn_properties.observability.tracing import add_span_event
from unicorn_properties.storage.base import ContractStatusStore
from unicorn_properties.storage.schemas import ContractStatusItem


class SyncOutcome(Enum):
    """Result of an approval sync attempt."""

    NO_TOKEN = "no_token"
    NOT_APPROVED = "not_approved"
    RESUMED = "resumed"
    ALREADY_RESUMED = "already_resumed"


class ContractStatusService:
    def __init__(self, store: ContractStatusStore, callback: WorkflowCallback) -> None:
        self.store = store
        self.callback = callback

    async def on_contract_status_changed(
        self, event: ContractStatusChangedEvent
    ) -> ContractStatusItem | None:
        """
        Mirror a contract status change.

        The contract attributes are set in one conditional write that leaves
        the stored task token alone. A change older than the one already
        mirrored (a late redelivery) is logged and dropped.

        Returns:
            The mirrored item, or None if the change was stale

        Raises:
            ContractStatusChangedEventHandlerError: If the store call fails
        """
        log = logger.bind(property_id=event.property_id, contract_id=event.contract_id)

        try:
            item = await self.store.apply_status_change(
                event.property_id,
                event.contract_id,
                event.contract_status,
                event.contract_last_modified_on,
            )
        except ConditionalWriteRejected as e:
            log.warning(
                "Dropping out-of-order contract status change",
                contract_status=event.contract_status.value,
                error=str(e),
            )
            return None
        except DownstreamFailure as e:
            log.error("Unable to mirror contract status change", error=str(e))
            raise ContractStatusChangedEventHandlerError(
                f"Unable to mirror status change for property {event.property_id}: {e}"
            ) from e

        log.info("Contract status mirrored", contract_status=event.contract_status.value)
        return item

    async def register_wait(self, property_id: str, task_token: str) -> ContractStatusItem:
        """
        Park a workflow task token until the contract is approved.

        Raises:
            ContractStatusNotFoundError: If the property has no mirrored contract
        """
        try:
            item = await self.store.set_task_token(property_id, task_token)
        except ContractStatusNotFoundError:
            logger.warning("No contract status found for property", property_id=property_id)
            raise

        logger.info("Registered workflow wait for contract approval", property_id=property_id)
        return item

    async def check_contract_exists(self, property_id: str) -> ContractStatusItem:
        """
        Load the mirrored contract status for a property.

        Raises:
            ContractStatusNotFoundError: If the property has no mirrored contract
        """
        item = await self.store.get(property_id)
        if item is None:
            logger.warning("No contract status found for property", property_id=property_id)
            raise ContractStatusNotFoundError(property_id)
        return item

    async def sync_approval(self, property_id: str) -> SyncOutcome:
        """
        Resume the waiting workflow if the contract is approved.

        The callback output is the serialized status item. After the callback
        the token is removed with a conditional write, so a replay of the same
        change observes no token and does nothing.

        Raises:
            ContractStatusNotFoundError: If the property has no mirrored contract
            WorkflowCallbackError: If the callback fails
        """
        log = logger.bind(property_id=property_id)
        item = await self.check_contract_exists(property_id)

        token = item.sfn_wait_approved_task_token
        if not token:
            log.info("No task token present; nothing to resume")
            return SyncOutcome.NO_TOKEN

        if not item.is_approved:
            log.info(
                "Contract not approved yet; workflow keeps waiting",
                contract_status=item.contract_status.value if item.contract_status else None,
            )
            return SyncOutcome.NOT_APPROVED

        outcome = SyncOutcome.RESUMED
        try:
            await self.callback.send_task_success(token, item.to_dict())
        except TaskTokenConsumedError as e:
            log.warning("Task token already redeemed or expired", error=str(e))
            outcome = SyncOutcome.ALREADY_RESUMED

        try:
            await self.store.clear_task_token(property_id, token)
        except ConditionalWriteRejected:
            log.info("Task token already cleared by a concurrent sync")

        add_span_event("workflow_resumed", {"property_id": property_id, "outcome": outcome.value})
        log.info("Contract approval synced to workflow", outcome=outcome.value)
        return outcome

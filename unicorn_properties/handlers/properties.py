"""
Properties domain entry points.

- contract_status_changed: ContractStatusChanged bus events (directly or via a queue)
- wait_for_contract_approval: workflow task that parks its task token
- contract_exists_checker: workflow task that requires a mirrored contract
- properties_approval_sync: contract status stream -> workflow callback
"""

from typing import Any

from loguru import logger

from unicorn_properties.config import get_config
from unicorn_properties.engine.callback import config_to_callback
from unicorn_properties.engine.events import ContractStatusChangedEvent, event_detail
from unicorn_properties.exceptions import EventValidationError
from unicorn_properties.handlers.base import (
    LambdaHandler,
    LazyHandler,
    json_body,
    process_batch,
    sqs_message_id,
    stream_sequence_number,
)
from unicorn_properties.observability.logging import property_logging_context
from unicorn_properties.services.contract_status import ContractStatusService
from unicorn_properties.storage.config import config_to_contract_status_store


def workflow_property_id(event: dict[str, Any]) -> str:
    """
    Read ``Input.PropertyId`` from a workflow task payload.

    Raises:
        EventValidationError: If it is missing
    """
    task_input = event.get("Input") if isinstance(event, dict) else None
    property_id = task_input.get("PropertyId") if isinstance(task_input, dict) else None
    if not property_id:
        raise EventValidationError("Workflow input does not contain Input.PropertyId")
    return property_id


class ContractStatusChangedHandler(LambdaHandler):
    """
    Mirrors contract status changes.

    Accepts a single bus envelope, or a queue batch whose message bodies are
    bus envelopes. Failures propagate so the event is redelivered.
    """

    function_name = "contract_status_changed"

    def __init__(self, service: ContractStatusService) -> None:
        self.service = service

    async def process_envelope(self, envelope: dict[str, Any]) -> None:
        event = ContractStatusChangedEvent.from_detail(event_detail(envelope))
        with property_logging_context(event.property_id):
            await self.service.on_contract_status_changed(event)

    async def process_message(self, record: dict[str, Any]) -> None:
        await self.process_envelope(json_body(record))

    async def handle(self, event: dict[str, Any], context: Any) -> dict[str, Any] | None:
        if "Records" in event:
            return await process_batch(event["Records"], self.process_message, sqs_message_id)
        await self.process_envelope(event)
        return None


class WaitForContractApprovalHandler(LambdaHandler):
    """Stores the task token of a workflow waiting for contract approval."""

    function_name = "wait_for_contract_approval"

    def __init__(self, service: ContractStatusService) -> None:
        self.service = service

    async def handle(self, event: dict[str, Any], context: Any) -> dict[str, Any]:
        property_id = workflow_property_id(event)
        task_token = event.get("TaskToken")
        if not task_token:
            raise EventValidationError("Workflow input does not contain TaskToken")

        with property_logging_context(property_id):
            item = await self.service.register_wait(property_id, task_token)
        return item.to_dict()


class ContractExistsCheckerHandler(LambdaHandler):
    """Fails the workflow task if the property has no mirrored contract."""

    function_name = "contract_exists_checker"

    def __init__(self, service: ContractStatusService) -> None:
        self.service = service

    async def handle(self, event: dict[str, Any], context: Any) -> dict[str, Any]:
        property_id = workflow_property_id(event)
        with property_logging_context(property_id):
            item = await self.service.check_contract_exists(property_id)
        return item.to_dict()


class PropertiesApprovalSyncHandler(LambdaHandler):
    """Resumes waiting workflows from contract status stream records."""

    function_name = "properties_approval_sync"

    def __init__(self, service: ContractStatusService) -> None:
        self.service = service

    async def process_record(self, record: dict[str, Any]) -> None:
        if record.get("eventName") == "REMOVE":
            logger.debug("Skipping removed contract status item")
            return

        keys = record.get("dynamodb", {}).get("Keys") or {}
        property_id = (keys.get("PropertyId") or {}).get("S")
        if not property_id:
            raise EventValidationError("Stream record has no PropertyId key")

        with property_logging_context(property_id):
            await self.service.sync_approval(property_id)

    async def handle(self, event: dict[str, Any], context: Any) -> dict[str, Any]:
        return await process_batch(
            event.get("Records", []), self.process_record, stream_sequence_number
        )


def build_contract_status_service() -> ContractStatusService:
    config = get_config()
    return ContractStatusService(
        config_to_contract_status_store(config),
        config_to_callback(config),
    )


contract_status_changed = LazyHandler(
    lambda: ContractStatusChangedHandler(build_contract_status_service())
)
wait_for_contract_approval = LazyHandler(
    lambda: WaitForContractApprovalHandler(build_contract_status_service())
)
contract_exists_checker = LazyHandler(
    lambda: ContractExistsCheckerHandler(build_contract_status_service())
)
properties_approval_sync = LazyHandler(
    lambda: PropertiesApprovalSyncHandler(build_contract_status_service())
)

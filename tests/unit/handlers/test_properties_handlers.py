"""
Unit tests for the Properties domain entry points.
"""

import json
from unittest.mock import AsyncMock

import pytest

import unicorn_properties
from unicorn_properties.engine.callback import config_to_callback
from unicorn_properties.exceptions import (
    ContractStatusChangedEventHandlerError,
    ContractStatusNotFoundError,
    EventValidationError,
    StoreError,
)
from unicorn_properties.handlers import wait_for_contract_approval
from unicorn_properties.handlers.properties import (
    ContractExistsCheckerHandler,
    ContractStatusChangedHandler,
    PropertiesApprovalSyncHandler,
    WaitForContractApprovalHandler,
    workflow_property_id,
)
from unicorn_properties.services.contract_status import ContractStatusService
from unicorn_properties.storage.config import config_to_contract_status_store
from unicorn_properties.storage.schemas import ContractStatus, ContractStatusItem

PROPERTY_ID = "usa/anytown/main-street/123"


def envelope(status="DRAFT", modified_on="2025-01-15T10:30:00+00:00"):
    return {
        "source": "unicorn.contracts",
        "detail-type": "ContractStatusChanged",
        "detail": {
            "PropertyId": PROPERTY_ID,
            "ContractId": "c-1",
            "ContractStatus": status,
            "ContractLastModifiedOn": modified_on,
        },
    }


def stream_record(event_name="MODIFY", sequence="1"):
    return {
        "eventName": event_name,
        "dynamodb": {"Keys": {"PropertyId": {"S": PROPERTY_ID}}, "SequenceNumber": sequence},
    }


@pytest.fixture
def service(status_store, callback):
    return ContractStatusService(status_store, callback)


class TestWorkflowPropertyId:
    def test_reads_input(self):
        assert workflow_property_id({"Input": {"PropertyId": PROPERTY_ID}}) == PROPERTY_ID

    @pytest.mark.parametrize("event", [{}, {"Input": {}}, {"Input": "x"}])
    def test_missing(self, event):
        with pytest.raises(EventValidationError):
            workflow_property_id(event)


class TestContractStatusChangedHandler:
    """Tests for ContractStatusChangedHandler."""

    @pytest.mark.asyncio
    async def test_single_envelope(self, service, status_store):
        handler = ContractStatusChangedHandler(service)

        assert await handler.invoke(envelope()) is None

        assert (await status_store.get(PROPERTY_ID)).contract_status == ContractStatus.DRAFT

    @pytest.mark.asyncio
    async def test_invalid_envelope_raises(self, service):
        with pytest.raises(EventValidationError):
            await ContractStatusChangedHandler(service).invoke({"detail": {"ContractId": "c"}})

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, callback):
        store = AsyncMock()
        store.apply_status_change.side_effect = StoreError("throttled")
        handler = ContractStatusChangedHandler(ContractStatusService(store, callback))

        with pytest.raises(ContractStatusChangedEventHandlerError):
            await handler.invoke(envelope())

    @pytest.mark.asyncio
    async def test_queue_batch(self, callback):
        """Test queued envelopes are processed and only failures are returned."""
        store = AsyncMock()
        store.apply_status_change.side_effect = [
            ContractStatusItem(property_id=PROPERTY_ID),
            StoreError("throttled"),
        ]
        handler = ContractStatusChangedHandler(ContractStatusService(store, callback))
        event = {
            "Records": [
                {"messageId": "m-1", "body": json.dumps(envelope())},
                {"messageId": "m-2", "body": json.dumps(envelope("APPROVED"))},
                {"messageId": "m-3", "body": "not json"},
            ]
        }

        result = await handler.invoke(event)

        assert result == {"batchItemFailures": [{"itemIdentifier": "m-2"}]}
        assert store.apply_status_change.await_count == 2

    @pytest.mark.asyncio
    async def test_out_of_order_batch(self, service, status_store):
        """Test an older change delivered after a newer one is dropped, not redelivered."""
        handler = ContractStatusChangedHandler(service)
        event = {
            "Records": [
                {
                    "messageId": "m-1",
                    "body": json.dumps(envelope("APPROVED", "2025-01-16T09:00:00+00:00")),
                },
                {"messageId": "m-2", "body": json.dumps(envelope("DRAFT"))},
            ]
        }

        result = await handler.invoke(event)

        assert result == {"batchItemFailures": []}
        assert (await status_store.get(PROPERTY_ID)).contract_status == ContractStatus.APPROVED


class TestWaitForContractApprovalHandler:
    """Tests for WaitForContractApprovalHandler."""

    @pytest.mark.asyncio
    async def test_registers_token(self, service, status_store):
        await ContractStatusChangedHandler(service).invoke(envelope())

        result = await WaitForContractApprovalHandler(service).invoke(
            {"Input": {"PropertyId": PROPERTY_ID}, "TaskToken": "t-1"}
        )

        assert result["SfnWaitApprovedTaskToken"] == "t-1"
        assert result["ContractStatus"] == "DRAFT"
        assert (await status_store.get(PROPERTY_ID)).sfn_wait_approved_task_token == "t-1"

    @pytest.mark.asyncio
    async def test_missing_token(self, service):
        with pytest.raises(EventValidationError):
            await WaitForContractApprovalHandler(service).invoke(
                {"Input": {"PropertyId": PROPERTY_ID}}
            )

    @pytest.mark.asyncio
    async def test_missing_contract_fails_task(self, service):
        with pytest.raises(ContractStatusNotFoundError):
            await WaitForContractApprovalHandler(service).invoke(
                {"Input": {"PropertyId": PROPERTY_ID}, "TaskToken": "t-1"}
            )


class TestContractExistsCheckerHandler:
    """Tests for ContractExistsCheckerHandler."""

    @pytest.mark.asyncio
    async def test_exists(self, service, status_store):
        await status_store.save(
            ContractStatusItem(property_id=PROPERTY_ID, contract_status=ContractStatus.DRAFT)
        )

        result = await ContractExistsCheckerHandler(service).invoke(
            {"Input": {"PropertyId": PROPERTY_ID}}
        )

        assert result["PropertyId"] == PROPERTY_ID

    @pytest.mark.asyncio
    async def test_missing(self, service):
        with pytest.raises(ContractStatusNotFoundError):
            await ContractExistsCheckerHandler(service).invoke({"Input": {"PropertyId": PROPERTY_ID}})


class TestPropertiesApprovalSyncHandler:
    """Tests for PropertiesApprovalSyncHandler."""

    @pytest.mark.asyncio
    async def test_resumes_waiting_workflow(self, service, status_store, callback):
        await status_store.save(
            ContractStatusItem(
                property_id=PROPERTY_ID,
                contract_status=ContractStatus.APPROVED,
                sfn_wait_approved_task_token="t-1",
            )
        )
        handler = PropertiesApprovalSyncHandler(service)

        result = await handler.invoke(
            {"Records": [stream_record(sequence="1"), stream_record(sequence="2")]}
        )

        assert result == {"batchItemFailures": []}
        assert len(callback.calls) == 1

    @pytest.mark.asyncio
    async def test_skips_removals_and_drops_unknown(self, service, callback):
        handler = PropertiesApprovalSyncHandler(service)

        result = await handler.invoke(
            {"Records": [stream_record("REMOVE"), stream_record("INSERT"), {"eventName": "MODIFY"}]}
        )

        assert result == {"batchItemFailures": []}
        assert callback.calls == []

    @pytest.mark.asyncio
    async def test_callback_failure_redelivered(self, status_store):
        await status_store.save(
            ContractStatusItem(
                property_id=PROPERTY_ID,
                contract_status=ContractStatus.APPROVED,
                sfn_wait_approved_task_token="t-1",
            )
        )
        failing = AsyncMock()
        failing.send_task_success.side_effect = RuntimeError("network down")
        handler = PropertiesApprovalSyncHandler(ContractStatusService(status_store, failing))

        result = await handler.invoke({"Records": [stream_record(sequence="42")]})

        assert result == {"batchItemFailures": [{"itemIdentifier": "42"}]}


class TestWiring:
    def test_lazy_entry_point(self):
        """Test the workflow task entry point against the configured backend."""
        unicorn_properties.configure(storage_backend="memory")
        store = config_to_contract_status_store()
        wait_for_contract_approval.reset()
        try:
            with pytest.raises(ContractStatusNotFoundError):
                wait_for_contract_approval({"Input": {"PropertyId": PROPERTY_ID}, "TaskToken": "t"})
        finally:
            wait_for_contract_approval.reset()

        assert store is config_to_contract_status_store()
        assert config_to_callback().calls == []

"""Tests for event bus publishers and workflow callbacks."""

import json
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from unicorn_properties.config import UnicornConfig
from unicorn_properties.engine.callback import (
    InMemoryWorkflowCallback,
    StepFunctionsCallback,
    config_to_callback,
)
from unicorn_properties.engine.events import BusEvent, ContractStatusChangedEvent
from unicorn_properties.engine.publisher import (
    EventBridgePublisher,
    InMemoryEventPublisher,
    NullEventPublisher,
    config_to_publisher,
)
from unicorn_properties.exceptions import (
    ConfigurationError,
    EventPublishError,
    TaskTokenConsumedError,
    WorkflowCallbackError,
)
from unicorn_properties.storage.schemas import ContractStatus


@pytest.fixture
def status_event():
    return ContractStatusChangedEvent(
        property_id="usa/anytown/main-street/123",
        contract_id="c-1",
        contract_status=ContractStatus.DRAFT,
        contract_last_modified_on=datetime(2025, 1, 15, tzinfo=UTC),
    )


class TestEmit:
    """Tests for EventPublisher.emit."""

    @pytest.mark.asyncio
    async def test_emit_wraps_event(self, status_event):
        """Test emit builds the bus entry from the typed event."""
        publisher = InMemoryEventPublisher()

        bus_event = await publisher.emit("unicorn.contracts", status_event, resources=["r-1"])

        assert publisher.events == [bus_event]
        assert bus_event.source == "unicorn.contracts"
        assert bus_event.detail_type == "ContractStatusChanged"
        assert bus_event.detail["ContractStatus"] == "DRAFT"
        assert bus_event.resources == ("r-1",)

    @pytest.mark.asyncio
    async def test_null_publisher_discards(self, status_event):
        """Test the null publisher accepts and drops events."""
        bus_event = await NullEventPublisher().emit("unicorn.contracts", status_event)
        assert bus_event.detail_type == "ContractStatusChanged"


class TestEventBridgePublisher:
    """Tests for EventBridgePublisher."""

    @pytest.mark.asyncio
    async def test_publish_entry(self):
        """Test the put_events entry carries bus, source, detail and resources."""
        client = MagicMock()
        client.put_events.return_value = {"FailedEntryCount": 0, "Entries": [{"EventId": "1"}]}
        publisher = EventBridgePublisher("unicorn-bus", client=client)

        await publisher.publish(
            BusEvent(
                source="unicorn.web",
                detail_type="PublicationApprovalRequested",
                detail={"PropertyId": "p"},
                resources=("p",),
            )
        )

        entry = client.put_events.call_args.kwargs["Entries"][0]
        assert entry["EventBusName"] == "unicorn-bus"
        assert entry["Source"] == "unicorn.web"
        assert entry["DetailType"] == "PublicationApprovalRequested"
        assert json.loads(entry["Detail"]) == {"PropertyId": "p"}
        assert entry["Resources"] == ["p"]

    @pytest.mark.asyncio
    async def test_failed_entries_raise(self):
        """Test any failed entry makes the publish fail."""
        client = MagicMock()
        client.put_events.return_value = {
            "FailedEntryCount": 1,
            "Entries": [{"ErrorCode": "InternalFailure", "ErrorMessage": "boom"}],
        }
        publisher = EventBridgePublisher("unicorn-bus", client=client)

        with pytest.raises(EventPublishError) as exc_info:
            await publisher.publish(BusEvent("s", "t", {}))

        assert exc_info.value.failed_entry_count == 1

    @pytest.mark.asyncio
    async def test_client_error_raises(self):
        """Test transport errors become EventPublishError."""
        client = MagicMock()
        client.put_events.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "no"}}, "PutEvents"
        )
        publisher = EventBridgePublisher("unicorn-bus", client=client)

        with pytest.raises(EventPublishError):
            await publisher.publish(BusEvent("s", "t", {}))


class TestStepFunctionsCallback:
    """Tests for StepFunctionsCallback."""

    @pytest.mark.asyncio
    async def test_send_task_success(self):
        """Test the output is sent as JSON."""
        client = MagicMock()
        callback = StepFunctionsCallback(client=client)

        await callback.send_task_success("t-1", {"PropertyId": "p"})

        client.send_task_success.assert_called_once_with(
            taskToken="t-1", output=json.dumps({"PropertyId": "p"})
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", ["TaskTimedOut", "InvalidToken"])
    async def test_consumed_token(self, code):
        """Test expired or redeemed tokens raise TaskTokenConsumedError."""
        client = MagicMock()
        client.send_task_success.side_effect = ClientError(
            {"Error": {"Code": code, "Message": code}}, "SendTaskSuccess"
        )
        callback = StepFunctionsCallback(client=client)

        with pytest.raises(TaskTokenConsumedError):
            await callback.send_task_success("t-1", {})

    @pytest.mark.asyncio
    async def test_other_errors(self):
        """Test other failures raise WorkflowCallbackError, not the consumed variant."""
        client = MagicMock()
        client.send_task_success.side_effect = ClientError(
            {"Error": {"Code": "ThrottlingException", "Message": "slow down"}}, "SendTaskSuccess"
        )
        callback = StepFunctionsCallback(client=client)

        with pytest.raises(WorkflowCallbackError) as exc_info:
            await callback.send_task_success("t-1", {})

        assert not isinstance(exc_info.value, TaskTokenConsumedError)


class TestInMemoryWorkflowCallback:
    """Tests for InMemoryWorkflowCallback."""

    @pytest.mark.asyncio
    async def test_token_redeemed_once(self):
        """Test a second redemption of the same token is rejected."""
        callback = InMemoryWorkflowCallback()
        await callback.send_task_success("t-1", {"a": 1})

        with pytest.raises(TaskTokenConsumedError):
            await callback.send_task_success("t-1", {"a": 2})

        assert callback.outputs_for("t-1") == [{"a": 1}]


class TestFactories:
    """Tests for building publishers and callbacks from configuration."""

    def test_memory_backend_shares_instances(self):
        """Test the memory backend returns one shared publisher and callback."""
        config = UnicornConfig(storage_backend="memory")
        assert config_to_publisher(config) is config_to_publisher(config)
        assert isinstance(config_to_callback(config), InMemoryWorkflowCallback)

    def test_eventbridge_requires_bus(self):
        """Test the bus name is required outside the memory backend."""
        with pytest.raises(ConfigurationError, match="UNICORN_EVENT_BUS"):
            config_to_publisher(UnicornConfig(storage_backend="dynamodb"))

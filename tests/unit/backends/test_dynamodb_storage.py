"""
Unit tests for the DynamoDB stores.

The boto3 Table resource is replaced with a MagicMock; these tests verify
the requests sent to it and how its errors are mapped.
"""

from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from unicorn_properties.exceptions import (
    ConditionalWriteRejected,
    ContractNotFoundError,
    ContractStatusNotFoundError,
    StoreError,
)
from unicorn_properties.storage.dynamodb import (
    DynamoDBContractStatusStore,
    DynamoDBContractStore,
    DynamoDBPropertyStore,
)
from unicorn_properties.storage.schemas import (
    Contract,
    ContractStatus,
    ContractStatusItem,
    PropertyStatus,
)

PROPERTY_ID = "usa/anytown/main-street/123"


def client_error(code: str, operation: str = "PutItem") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def resource():
    return MagicMock()


@pytest.fixture
def table(resource):
    return resource.Table.return_value


class TestDynamoDBContractStore:
    """Test DynamoDBContractStore."""

    def test_init_uses_table_name(self, resource):
        """Test the table is looked up by name."""
        store = DynamoDBContractStore("contracts", resource=resource)
        resource.Table.assert_called_once_with("contracts")
        assert store.table_name == "contracts"

    @pytest.mark.asyncio
    async def test_create_sends_condition(self, resource, table):
        """Test create is a conditional put."""
        store = DynamoDBContractStore("contracts", resource=resource)
        contract = Contract(property_id=PROPERTY_ID)

        await store.create(contract)

        kwargs = table.put_item.call_args.kwargs
        assert kwargs["Item"] == contract.to_item()
        assert "ConditionExpression" in kwargs

    @pytest.mark.asyncio
    async def test_create_conditional_failure(self, resource, table):
        """Test a failed condition becomes ConditionalWriteRejected."""
        table.put_item.side_effect = client_error("ConditionalCheckFailedException")
        store = DynamoDBContractStore("contracts", resource=resource)

        with pytest.raises(ConditionalWriteRejected) as exc_info:
            await store.create(Contract(property_id=PROPERTY_ID))

        assert exc_info.value.property_id == PROPERTY_ID

    @pytest.mark.asyncio
    async def test_other_client_errors_become_store_errors(self, resource, table):
        """Test throttling and similar errors become StoreError."""
        table.put_item.side_effect = client_error("ProvisionedThroughputExceededException")
        store = DynamoDBContractStore("contracts", resource=resource)

        with pytest.raises(StoreError):
            await store.create(Contract(property_id=PROPERTY_ID))

    @pytest.mark.asyncio
    async def test_get(self, resource, table):
        """Test get loads and parses the item."""
        contract = Contract(property_id=PROPERTY_ID)
        table.get_item.return_value = {"Item": contract.to_item()}
        store = DynamoDBContractStore("contracts", resource=resource)

        assert await store.get(PROPERTY_ID) == contract
        table.get_item.assert_called_once_with(Key={"PropertyId": PROPERTY_ID})

    @pytest.mark.asyncio
    async def test_get_missing(self, resource, table):
        """Test a missing item reads as None."""
        table.get_item.return_value = {}
        store = DynamoDBContractStore("contracts", resource=resource)

        assert await store.get(PROPERTY_ID) is None

    @pytest.mark.asyncio
    async def test_update_requires_existing_item(self, resource, table):
        """Test update of a missing contract raises ContractNotFoundError."""
        table.update_item.side_effect = client_error("ConditionalCheckFailedException", "UpdateItem")
        store = DynamoDBContractStore("contracts", resource=resource)

        with pytest.raises(ContractNotFoundError):
            await store.update(Contract(property_id=PROPERTY_ID))

        kwargs = table.update_item.call_args.kwargs
        assert kwargs["ConditionExpression"] == Attr("PropertyId").exists()

    @pytest.mark.asyncio
    async def test_update_sets_status_and_timestamp(self, resource, table):
        """Test update writes the new status and modification time."""
        contract = Contract(property_id=PROPERTY_ID, contract_status=ContractStatus.APPROVED)
        store = DynamoDBContractStore("contracts", resource=resource)

        await store.update(contract)

        values = table.update_item.call_args.kwargs["ExpressionAttributeValues"]
        assert values[":status"] == "APPROVED"
        assert values[":modified"] == contract.contract_last_modified_on.isoformat()


class TestDynamoDBContractStatusStore:
    """Test DynamoDBContractStatusStore."""

    @pytest.mark.asyncio
    async def test_save(self, resource, table):
        """Test save puts the item unconditionally."""
        item = ContractStatusItem(property_id=PROPERTY_ID, contract_status=ContractStatus.DRAFT)
        store = DynamoDBContractStatusStore("status", resource=resource)

        await store.save(item)

        table.put_item.assert_called_once_with(Item=item.to_item())

    @pytest.mark.asyncio
    async def test_apply_status_change(self, resource, table):
        """Test the mirror update sets only contract attributes, guarded by modification time."""
        table.update_item.return_value = {
            "Attributes": {
                "PropertyId": PROPERTY_ID,
                "ContractId": "c-1",
                "ContractStatus": "APPROVED",
                "ContractLastModifiedOn": "2025-01-15T10:30:00+00:00",
                "SfnWaitApprovedTaskToken": "t-1",
            }
        }
        store = DynamoDBContractStatusStore("status", resource=resource)

        item = await store.apply_status_change(
            PROPERTY_ID,
            "c-1",
            ContractStatus.APPROVED,
            datetime(2025, 1, 15, 12, 30, tzinfo=timezone(timedelta(hours=2))),
        )

        kwargs = table.update_item.call_args.kwargs
        assert "SfnWaitApprovedTaskToken" not in kwargs["UpdateExpression"]
        assert kwargs["ExpressionAttributeValues"][":modified"] == "2025-01-15T10:30:00+00:00"
        assert kwargs["ConditionExpression"] == Attr("ContractLastModifiedOn").not_exists() | Attr(
            "ContractLastModifiedOn"
        ).lte("2025-01-15T10:30:00+00:00")
        assert item.sfn_wait_approved_task_token == "t-1"

    @pytest.mark.asyncio
    async def test_apply_stale_status_change_rejected(self, resource, table):
        table.update_item.side_effect = client_error("ConditionalCheckFailedException", "UpdateItem")
        store = DynamoDBContractStatusStore("status", resource=resource)

        with pytest.raises(ConditionalWriteRejected):
            await store.apply_status_change(
                PROPERTY_ID, "c-1", ContractStatus.DRAFT, datetime(2025, 1, 15, tzinfo=UTC)
            )

    @pytest.mark.asyncio
    async def test_set_task_token(self, resource, table):
        """Test the token is set on an existing item only."""
        table.update_item.return_value = {
            "Attributes": {"PropertyId": PROPERTY_ID, "SfnWaitApprovedTaskToken": "t-1"}
        }
        store = DynamoDBContractStatusStore("status", resource=resource)

        item = await store.set_task_token(PROPERTY_ID, "t-1")

        kwargs = table.update_item.call_args.kwargs
        assert kwargs["UpdateExpression"] == "SET SfnWaitApprovedTaskToken = :token"
        assert kwargs["ConditionExpression"] == Attr("PropertyId").exists()
        assert item.sfn_wait_approved_task_token == "t-1"

    @pytest.mark.asyncio
    async def test_set_task_token_missing_item(self, resource, table):
        table.update_item.side_effect = client_error("ConditionalCheckFailedException", "UpdateItem")
        store = DynamoDBContractStatusStore("status", resource=resource)

        with pytest.raises(ContractStatusNotFoundError):
            await store.set_task_token(PROPERTY_ID, "t-1")

    @pytest.mark.asyncio
    async def test_clear_task_token_condition(self, resource, table):
        """Test the token is only removed if it still matches."""
        store = DynamoDBContractStatusStore("status", resource=resource)

        await store.clear_task_token(PROPERTY_ID, "t-1")

        kwargs = table.update_item.call_args.kwargs
        assert kwargs["UpdateExpression"] == "REMOVE SfnWaitApprovedTaskToken"
        assert kwargs["ConditionExpression"] == Attr("SfnWaitApprovedTaskToken").eq("t-1")

    @pytest.mark.asyncio
    async def test_clear_task_token_rejected(self, resource, table):
        """Test a replaced token maps to ConditionalWriteRejected."""
        table.update_item.side_effect = client_error("ConditionalCheckFailedException", "UpdateItem")
        store = DynamoDBContractStatusStore("status", resource=resource)

        with pytest.raises(ConditionalWriteRejected):
            await store.clear_task_token(PROPERTY_ID, "t-1")


class TestDynamoDBPropertyStore:
    """Test DynamoDBPropertyStore."""

    @pytest.mark.asyncio
    async def test_query_paginates(self, resource, table, make_property):
        """Test query follows LastEvaluatedKey until exhausted."""
        first = make_property(number="1").to_item()
        second = make_property(number="2").to_item()
        table.query.side_effect = [
            {"Items": [first], "LastEvaluatedKey": {"PK": first["PK"], "SK": first["SK"]}},
            {"Items": [second]},
        ]
        store = DynamoDBPropertyStore("properties", resource=resource)

        records = await store.query("property#usa#anytown", status=PropertyStatus.APPROVED)

        assert [r.property_number for r in records] == ["1", "2"]
        assert table.query.call_count == 2
        second_call = table.query.call_args_list[1].kwargs
        assert second_call["ExclusiveStartKey"] == {"PK": first["PK"], "SK": first["SK"]}
        assert second_call["FilterExpression"] == Attr("Status").eq("APPROVED")

    @pytest.mark.asyncio
    async def test_query_without_status_has_no_filter(self, resource, table):
        """Test an unfiltered query sends no FilterExpression."""
        table.query.return_value = {"Items": []}
        store = DynamoDBPropertyStore("properties", resource=resource)

        await store.query("property#usa#anytown", sk_prefix="main-street")

        assert "FilterExpression" not in table.query.call_args.kwargs

    @pytest.mark.asyncio
    async def test_get_reads_decimal_price(self, resource, table, make_property):
        """Test numbers returned as Decimal are kept as Decimal."""
        item = make_property().to_item()
        item["ListPrice"] = Decimal("200000.50")
        table.get_item.return_value = {"Item": item}
        store = DynamoDBPropertyStore("properties", resource=resource)

        record = await store.get(item["PK"], item["SK"])

        assert record.list_price == Decimal("200000.50")

    @pytest.mark.asyncio
    async def test_save_with_expected_status(self, resource, table, make_property):
        """Test check-and-set sends a condition on Status."""
        store = DynamoDBPropertyStore("properties", resource=resource)

        await store.save(make_property(), expected_status=PropertyStatus.PENDING)

        kwargs = table.put_item.call_args.kwargs
        assert kwargs["ConditionExpression"] == Attr("Status").eq("PENDING")

    @pytest.mark.asyncio
    async def test_save_expecting_no_status(self, resource, table, make_property):
        """Test expecting a NEW record requires Status to be absent."""
        store = DynamoDBPropertyStore("properties", resource=resource)

        await store.save(make_property(), expected_status=None)

        kwargs = table.put_item.call_args.kwargs
        assert kwargs["ConditionExpression"] == Attr("Status").not_exists()

    @pytest.mark.asyncio
    async def test_save_unconditional(self, resource, table, make_property):
        """Test a plain save sends no condition."""
        store = DynamoDBPropertyStore("properties", resource=resource)

        await store.save(make_property())

        assert "ConditionExpression" not in table.put_item.call_args.kwargs

    @pytest.mark.asyncio
    async def test_save_lost_race(self, resource, table, make_property):
        """Test a failed check-and-set becomes ConditionalWriteRejected."""
        table.put_item.side_effect = client_error("ConditionalCheckFailedException")
        store = DynamoDBPropertyStore("properties", resource=resource)

        with pytest.raises(ConditionalWriteRejected):
            await store.save(make_property(), expected_status=None)

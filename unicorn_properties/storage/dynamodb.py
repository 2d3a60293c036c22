"""
DynamoDB stores.

Each store wraps a ``boto3`` Table resource. boto3 is synchronous, so every
call runs in a worker thread via ``asyncio.to_thread`` to keep the store
interface async.

Conditional writes map ``ConditionalCheckFailedException`` to
ConditionalWriteRejected; any other client error becomes StoreError.
"""

import asyncio
from datetime import UTC, datetime
from typing import Any

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from unicorn_properties.exceptions import (
    ConditionalWriteRejected,
    ContractNotFoundError,
    ContractStatusNotFoundError,
    StoreError,
)
from unicorn_properties.storage.base import (
    ANY_STATUS,
    ContractStatusStore,
    ContractStore,
    PropertyStore,
)
from unicorn_properties.storage.schemas import (
    TERMINAL_CONTRACT_STATUSES,
    Contract,
    ContractStatus,
    ContractStatusItem,
    PropertyRecord,
    PropertyStatus,
)


def _is_conditional_failure(exc: Exception) -> bool:
    if not isinstance(exc, ClientError):
        return False
    return exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


def _table(table_name: str, region_name: str | None, resource: Any | None) -> Any:
    if resource is None:
        resource = boto3.resource("dynamodb", region_name=region_name)
    return resource.Table(table_name)


class _DynamoDBStore:
    """Shared plumbing for the table-backed stores."""

    def __init__(
        self,
        table_name: str,
        region_name: str | None = None,
        resource: Any | None = None,
    ) -> None:
        self.table_name = table_name
        self.region_name = region_name
        self._table = _table(table_name, region_name, resource)

    async def _call(self, operation: str, **kwargs: Any) -> dict[str, Any]:
        method = getattr(self._table, operation)
        try:
            return await asyncio.to_thread(method, **kwargs)
        except ClientError as e:
            if _is_conditional_failure(e):
                raise
            logger.error(
                f"DynamoDB {operation} failed",
                table=self.table_name,
                error=str(e),
            )
            raise StoreError(f"DynamoDB {operation} on {self.table_name} failed: {e}") from e
        except BotoCoreError as e:
            logger.error(
                f"DynamoDB {operation} failed",
                table=self.table_name,
                error=str(e),
            )
            raise StoreError(f"DynamoDB {operation} on {self.table_name} failed: {e}") from e


class DynamoDBContractStore(_DynamoDBStore, ContractStore):
    """Contracts table, keyed by PropertyId."""

    async def get(self, property_id: str) -> Contract | None:
        response = await self._call("get_item", Key={"PropertyId": property_id})
        item = response.get("Item")
        return Contract.from_item(item) if item else None

    async def create(self, contract: Contract) -> None:
        terminal = [status.value for status in TERMINAL_CONTRACT_STATUSES]
        condition = Attr("PropertyId").not_exists() | Attr("ContractStatus").is_in(terminal)
        try:
            await self._call("put_item", Item=contract.to_item(), ConditionExpression=condition)
        except ClientError as e:
            raise ConditionalWriteRejected(
                f"Contract for property {contract.property_id} already exists",
                property_id=contract.property_id,
            ) from e

    async def update(self, contract: Contract) -> None:
        try:
            await self._call(
                "update_item",
                Key={"PropertyId": contract.property_id},
                UpdateExpression="SET ContractStatus = :status, ContractLastModifiedOn = :modified",
                ExpressionAttributeValues={
                    ":status": contract.contract_status.value,
                    ":modified": contract.contract_last_modified_on.isoformat(),
                },
                ConditionExpression=Attr("PropertyId").exists(),
            )
        except ClientError as e:
            raise ContractNotFoundError(contract.property_id) from e


class DynamoDBContractStatusStore(_DynamoDBStore, ContractStatusStore):
    """Contract status mirror table, keyed by PropertyId."""

    async def get(self, property_id: str) -> ContractStatusItem | None:
        response = await self._call("get_item", Key={"PropertyId": property_id})
        item = response.get("Item")
        return ContractStatusItem.from_item(item) if item else None

    async def save(self, item: ContractStatusItem) -> None:
        await self._call("put_item", Item=item.to_item())

    async def apply_status_change(
        self,
        property_id: str,
        contract_id: str,
        contract_status: ContractStatus,
        contract_last_modified_on: datetime,
    ) -> ContractStatusItem:
        # ISO-8601 strings in UTC order the same way as the instants they encode
        modified = contract_last_modified_on.astimezone(UTC).isoformat()
        condition = Attr("ContractLastModifiedOn").not_exists() | Attr(
            "ContractLastModifiedOn"
        ).lte(modified)
        try:
            response = await self._call(
                "update_item",
                Key={"PropertyId": property_id},
                UpdateExpression=(
                    "SET ContractId = :contract_id, ContractStatus = :status, "
                    "ContractLastModifiedOn = :modified"
                ),
                ExpressionAttributeValues={
                    ":contract_id": contract_id,
                    ":status": contract_status.value,
                    ":modified": modified,
                },
                ConditionExpression=condition,
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            raise ConditionalWriteRejected(
                f"Contract status for property {property_id} has a change newer than {modified}",
                property_id=property_id,
            ) from e
        return ContractStatusItem.from_item(response["Attributes"])

    async def set_task_token(self, property_id: str, task_token: str) -> ContractStatusItem:
        try:
            response = await self._call(
                "update_item",
                Key={"PropertyId": property_id},
                UpdateExpression="SET SfnWaitApprovedTaskToken = :token",
                ExpressionAttributeValues={":token": task_token},
                ConditionExpression=Attr("PropertyId").exists(),
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            raise ContractStatusNotFoundError(property_id) from e
        return ContractStatusItem.from_item(response["Attributes"])

    async def clear_task_token(self, property_id: str, task_token: str) -> None:
        try:
            await self._call(
                "update_item",
                Key={"PropertyId": property_id},
                UpdateExpression="REMOVE SfnWaitApprovedTaskToken",
                ConditionExpression=Attr("SfnWaitApprovedTaskToken").eq(task_token),
            )
        except ClientError as e:
            raise ConditionalWriteRejected(
                f"Task token for property {property_id} was replaced or already cleared",
                property_id=property_id,
            ) from e


class DynamoDBPropertyStore(_DynamoDBStore, PropertyStore):
    """Properties table, keyed by (PK, SK)."""

    async def get(self, pk: str, sk: str) -> PropertyRecord | None:
        response = await self._call("get_item", Key={"PK": pk, "SK": sk})
        item = response.get("Item")
        return PropertyRecord.from_item(item) if item else None

    async def query(
        self,
        pk: str,
        sk_prefix: str | None = None,
        status: PropertyStatus | None = None,
    ) -> list[PropertyRecord]:
        key_condition = Key("PK").eq(pk)
        if sk_prefix:
            key_condition = key_condition & Key("SK").begins_with(sk_prefix)

        kwargs: dict[str, Any] = {"KeyConditionExpression": key_condition}
        if status is not None:
            kwargs["FilterExpression"] = Attr("Status").eq(status.value)

        records: list[PropertyRecord] = []
        while True:
            response = await self._call("query", **kwargs)
            records.extend(PropertyRecord.from_item(item) for item in response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key

        return records

    async def save(
        self,
        record: PropertyRecord,
        expected_status: "PropertyStatus | None | object" = ANY_STATUS,
    ) -> None:
        kwargs: dict[str, Any] = {"Item": record.to_item()}
        if expected_status is None:
            kwargs["ConditionExpression"] = Attr("Status").not_exists()
        elif expected_status is not ANY_STATUS:
            kwargs["ConditionExpression"] = Attr("Status").eq(expected_status.value)

        try:
            await self._call("put_item", **kwargs)
        except ClientError as e:
            raise ConditionalWriteRejected(
                f"Property {record.pk}/{record.sk} status changed from {expected_status}",
            ) from e

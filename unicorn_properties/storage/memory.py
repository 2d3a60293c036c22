"""
In-memory stores for testing and local development.

These stores keep the store representation (``to_item()`` dicts) rather than
live objects, so callers never share state with the store, and they enforce
the same conditional-write rules as the DynamoDB stores.

Note: All data is lost when the process exits.
"""

import copy
import threading
from datetime import datetime
from typing import Any

from unicorn_properties.exceptions import (
    ConditionalWriteRejected,
    ContractNotFoundError,
    ContractStatusNotFoundError,
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
    parse_datetime,
)


class InMemoryContractStore(ContractStore):
    """
    Thread-safe in-memory contract table.

    Example:
        >>> store = InMemoryContractStore()
        >>> await store.create(Contract(property_id="usa/anytown/main-street/123"))
    """

    def __init__(self) -> None:
        """Initialize empty storage."""
        self._items: dict[str, dict[str, Any]] = {}
        self._lock = threading.RLock()

    async def get(self, property_id: str) -> Contract | None:
        """Retrieve the contract for a property."""
        with self._lock:
            item = self._items.get(property_id)
            return Contract.from_item(copy.deepcopy(item)) if item else None

    async def create(self, contract: Contract) -> None:
        """Persist a new contract if none is live for the property."""
        with self._lock:
            existing = self._items.get(contract.property_id)
            if existing is not None:
                status = ContractStatus(existing["ContractStatus"])
                if status not in TERMINAL_CONTRACT_STATUSES:
                    raise ConditionalWriteRejected(
                        f"Contract for property {contract.property_id} already exists "
                        f"with status {status.value}",
                        property_id=contract.property_id,
                    )
            self._items[contract.property_id] = contract.to_item()

    async def update(self, contract: Contract) -> None:
        """Overwrite an existing contract."""
        with self._lock:
            if contract.property_id not in self._items:
                raise ContractNotFoundError(contract.property_id)
            self._items[contract.property_id] = contract.to_item()

    def put_item(self, item: dict[str, Any]) -> None:
        """Seed a raw item, bypassing preconditions."""
        with self._lock:
            self._items[item["PropertyId"]] = copy.deepcopy(item)


class InMemoryContractStatusStore(ContractStatusStore):
    """Thread-safe in-memory contract status mirror."""

    def __init__(self) -> None:
        """Initialize empty storage."""
        self._items: dict[str, dict[str, Any]] = {}
        self._lock = threading.RLock()

    async def get(self, property_id: str) -> ContractStatusItem | None:
        """Retrieve the mirrored status for a property."""
        with self._lock:
            item = self._items.get(property_id)
            return ContractStatusItem.from_item(copy.deepcopy(item)) if item else None

    async def save(self, item: ContractStatusItem) -> None:
        """Write an item, replacing any stored version."""
        with self._lock:
            self._items[item.property_id] = item.to_item()

    async def apply_status_change(
        self,
        property_id: str,
        contract_id: str,
        contract_status: ContractStatus,
        contract_last_modified_on: datetime,
    ) -> ContractStatusItem:
        """Set the contract attributes unless a newer change is stored."""
        with self._lock:
            item = self._items.setdefault(property_id, {"PropertyId": property_id})
            stored = parse_datetime(item.get("ContractLastModifiedOn"))
            if stored is not None and stored > contract_last_modified_on:
                raise ConditionalWriteRejected(
                    f"Contract status for property {property_id} was modified at "
                    f"{stored.isoformat()}, after {contract_last_modified_on.isoformat()}",
                    property_id=property_id,
                )
            item["ContractId"] = contract_id
            item["ContractStatus"] = contract_status.value
            item["ContractLastModifiedOn"] = contract_last_modified_on.isoformat()
            return ContractStatusItem.from_item(copy.deepcopy(item))

    async def set_task_token(self, property_id: str, task_token: str) -> ContractStatusItem:
        """Set the task token of an existing item."""
        with self._lock:
            item = self._items.get(property_id)
            if item is None:
                raise ContractStatusNotFoundError(property_id)
            item["SfnWaitApprovedTaskToken"] = task_token
            return ContractStatusItem.from_item(copy.deepcopy(item))

    async def clear_task_token(self, property_id: str, task_token: str) -> None:
        """Remove the task token if it is still the redeemed one."""
        with self._lock:
            item = self._items.get(property_id)
            if item is None or item.get("SfnWaitApprovedTaskToken") != task_token:
                raise ConditionalWriteRejected(
                    f"Task token for property {property_id} was replaced or already cleared",
                    property_id=property_id,
                )
            del item["SfnWaitApprovedTaskToken"]


class InMemoryPropertyStore(PropertyStore):
    """Thread-safe in-memory properties table keyed by (PK, SK)."""

    def __init__(self) -> None:
        """Initialize empty storage."""
        self._items: dict[tuple[str, str], dict[str, Any]] = {}
        self._lock = threading.RLock()

    async def get(self, pk: str, sk: str) -> PropertyRecord | None:
        """Retrieve a property by its full key."""
        with self._lock:
            item = self._items.get((pk, sk))
            return PropertyRecord.from_item(copy.deepcopy(item)) if item else None

    async def query(
        self,
        pk: str,
        sk_prefix: str | None = None,
        status: PropertyStatus | None = None,
    ) -> list[PropertyRecord]:
        """Query a partition, optionally by sort key prefix and status."""
        with self._lock:
            items = [
                item
                for (item_pk, item_sk), item in self._items.items()
                if item_pk == pk and (not sk_prefix or item_sk.startswith(sk_prefix))
            ]

            if status is not None:
                items = [i for i in items if i.get("Status") == status.value]

            items.sort(key=lambda i: i["SK"])
            return [PropertyRecord.from_item(copy.deepcopy(i)) for i in items]

    async def save(
        self,
        record: PropertyRecord,
        expected_status: "PropertyStatus | None | object" = ANY_STATUS,
    ) -> None:
        """Write a property record, optionally checking the stored Status first."""
        with self._lock:
            key = (record.pk, record.sk)
            if expected_status is not ANY_STATUS:
                current = self._items.get(key, {}).get("Status")
                expected = expected_status.value if expected_status is not None else None
                if current != expected:
                    raise ConditionalWriteRejected(
                        f"Property {record.pk}/{record.sk} status changed from "
                        f"{expected} to {current}",
                    )
            self._items[key] = record.to_item()

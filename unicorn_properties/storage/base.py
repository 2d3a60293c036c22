"""
Abstract base classes for the key-value stores.

Each table gets a small capability interface so services can be wired to
DynamoDB in production and to in-memory fakes in tests. All methods are async.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from unicorn_properties.storage.schemas import (
    Contract,
    ContractStatus,
    ContractStatusItem,
    PropertyRecord,
    PropertyStatus,
)

# Sentinel for "no precondition on Status" in PropertyStore.save
ANY_STATUS = object()


class ContractStore(ABC):
    """
    Store of Contract records keyed by PropertyId.

    Storage backends are responsible for:
    - Enforcing the create-if-absent-or-terminal precondition atomically
    - Rejecting updates of contracts that do not exist
    """

    @abstractmethod
    async def get(self, property_id: str) -> Contract | None:
        """
        Retrieve the contract for a property.

        Args:
            property_id: Property identifier

        Returns:
            Contract if found, None otherwise
        """
        pass

    @abstractmethod
    async def create(self, contract: Contract) -> None:
        """
        Persist a new contract.

        Succeeds only if no contract exists for the property or the existing
        one is in a terminal status (CANCELLED, CLOSED, EXPIRED).

        Args:
            contract: Contract to persist

        Raises:
            ConditionalWriteRejected: If a live contract already exists
            StoreError: If the store call fails
        """
        pass

    @abstractmethod
    async def update(self, contract: Contract) -> None:
        """
        Overwrite an existing contract.

        Args:
            contract: Contract with updated status and modification time

        Raises:
            ContractNotFoundError: If no contract exists for the property
            StoreError: If the store call fails
        """
        pass


class ContractStatusStore(ABC):
    """Store of ContractStatusItem records (the Properties-side mirror)."""

    @abstractmethod
    async def get(self, property_id: str) -> ContractStatusItem | None:
        """
        Retrieve the mirrored status for a property.

        Args:
            property_id: Property identifier

        Returns:
            ContractStatusItem if found, None otherwise
        """
        pass

    @abstractmethod
    async def save(self, item: ContractStatusItem) -> None:
        """
        Write an item, replacing any stored version.

        Args:
            item: Item to persist
        """
        pass

    @abstractmethod
    async def apply_status_change(
        self,
        property_id: str,
        contract_id: str,
        contract_status: ContractStatus,
        contract_last_modified_on: datetime,
    ) -> ContractStatusItem:
        """
        Set the contract attributes of an item, creating it if absent.

        A single conditional write: the stored task token is left untouched,
        and the change is rejected if the stored ContractLastModifiedOn is
        later than ``contract_last_modified_on``.

        Returns:
            The item as stored after the write

        Raises:
            ConditionalWriteRejected: If a newer change is already stored
        """
        pass

    @abstractmethod
    async def set_task_token(self, property_id: str, task_token: str) -> ContractStatusItem:
        """
        Set the task token of an existing item, leaving its other attributes.

        Returns:
            The item as stored after the write

        Raises:
            ContractStatusNotFoundError: If no item exists for the property
        """
        pass

    @abstractmethod
    async def clear_task_token(self, property_id: str, task_token: str) -> None:
        """
        Remove the task token, only if it still equals ``task_token``.

        Args:
            property_id: Property identifier
            task_token: The token that was redeemed

        Raises:
            ConditionalWriteRejected: If the stored token differs or is absent
        """
        pass


class PropertyStore(ABC):
    """Store of PropertyRecord items keyed by (PK, SK)."""

    @abstractmethod
    async def get(self, pk: str, sk: str) -> PropertyRecord | None:
        """
        Retrieve a property by its full key.

        Returns:
            PropertyRecord if found, None otherwise
        """
        pass

    @abstractmethod
    async def query(
        self,
        pk: str,
        sk_prefix: str | None = None,
        status: PropertyStatus | None = None,
    ) -> list[PropertyRecord]:
        """
        Query a partition, optionally by sort key prefix and status.

        Args:
            pk: Partition key
            sk_prefix: Optional ``begins_with`` condition on the sort key
            status: Optional filter on Status

        Returns:
            Matching records ordered by sort key
        """
        pass

    @abstractmethod
    async def save(
        self,
        record: PropertyRecord,
        expected_status: "PropertyStatus | None | object" = ANY_STATUS,
    ) -> None:
        """
        Write a property record.

        Args:
            record: Record to persist
            expected_status: If given, the write only succeeds when the stored
                Status equals this value (None means "no Status yet")

        Raises:
            ConditionalWriteRejected: If the stored Status changed meanwhile
        """
        pass


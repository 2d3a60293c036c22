"""
Stores for Unicorn Properties.

Provides the contracts, contract status and properties tables behind small
async interfaces, with DynamoDB and in-memory implementations.
"""

from unicorn_properties.storage.base import (
    ANY_STATUS,
    ContractStatusStore,
    ContractStore,
    PropertyStore,
)
from unicorn_properties.storage.config import (
    config_to_contract_status_store,
    config_to_contract_store,
    config_to_property_store,
)
from unicorn_properties.storage.keys import (
    PROPERTY_ID_PATTERN,
    PropertyKey,
    parse_property_id,
    partition_key,
    sort_key,
)
from unicorn_properties.storage.memory import (
    InMemoryContractStatusStore,
    InMemoryContractStore,
    InMemoryPropertyStore,
)
from unicorn_properties.storage.schemas import (
    Address,
    Contract,
    ContractStatus,
    ContractStatusItem,
    PropertyRecord,
    PropertyStatus,
)

__all__ = [
    "ContractStore",
    "ContractStatusStore",
    "PropertyStore",
    "ANY_STATUS",
    "InMemoryContractStore",
    "InMemoryContractStatusStore",
    "InMemoryPropertyStore",
    "Address",
    "Contract",
    "ContractStatus",
    "ContractStatusItem",
    "PropertyRecord",
    "PropertyStatus",
    "PROPERTY_ID_PATTERN",
    "PropertyKey",
    "parse_property_id",
    "partition_key",
    "sort_key",
    # Config utilities
    "config_to_contract_store",
    "config_to_contract_status_store",
    "config_to_property_store",
]

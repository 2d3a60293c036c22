"""
Store construction from configuration.

Turns a UnicornConfig into store instances for each table. The in-memory
stores are shared per process so that handlers wired separately see the same
data during local runs and tests.
"""

from typing import Any

from unicorn_properties.config import UnicornConfig, get_config
from unicorn_properties.storage.base import ContractStatusStore, ContractStore, PropertyStore

_memory_stores: dict[str, Any] = {}


def _memory_store(kind: str) -> Any:
    if kind not in _memory_stores:
        from unicorn_properties.storage.memory import (
            InMemoryContractStatusStore,
            InMemoryContractStore,
            InMemoryPropertyStore,
        )

        factories = {
            "contracts": InMemoryContractStore,
            "contract_status": InMemoryContractStatusStore,
            "properties": InMemoryPropertyStore,
        }
        _memory_stores[kind] = factories[kind]()
    return _memory_stores[kind]


def reset_memory_stores() -> None:
    """Drop the shared in-memory stores. Primarily used for testing."""
    _memory_stores.clear()


def config_to_contract_store(config: UnicornConfig | None = None) -> ContractStore:
    """
    Create the contracts store from configuration.

    Raises:
        ConfigurationError: If the DynamoDB table name is not configured
        ValueError: If the storage backend is unknown
    """
    config = config or get_config()

    if config.storage_backend == "memory":
        return _memory_store("contracts")
    elif config.storage_backend == "dynamodb":
        from unicorn_properties.storage.dynamodb import DynamoDBContractStore

        config.require("contracts_table")
        return DynamoDBContractStore(config.contracts_table, region_name=config.aws_region)
    else:
        raise ValueError(f"Unknown storage backend: {config.storage_backend}")


def config_to_contract_status_store(config: UnicornConfig | None = None) -> ContractStatusStore:
    """Create the contract status mirror store from configuration."""
    config = config or get_config()

    if config.storage_backend == "memory":
        return _memory_store("contract_status")
    elif config.storage_backend == "dynamodb":
        from unicorn_properties.storage.dynamodb import DynamoDBContractStatusStore

        config.require("contract_status_table")
        return DynamoDBContractStatusStore(
            config.contract_status_table, region_name=config.aws_region
        )
    else:
        raise ValueError(f"Unknown storage backend: {config.storage_backend}")


def config_to_property_store(config: UnicornConfig | None = None) -> PropertyStore:
    """Create the properties store from configuration."""
    config = config or get_config()

    if config.storage_backend == "memory":
        return _memory_store("properties")
    elif config.storage_backend == "dynamodb":
        from unicorn_properties.storage.dynamodb import DynamoDBPropertyStore

        config.require("properties_table")
        return DynamoDBPropertyStore(config.properties_table, region_name=config.aws_region)
    else:
        raise ValueError(f"Unknown storage backend: {config.storage_backend}")

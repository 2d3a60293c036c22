"""Shared fixtures for the Unicorn Properties test suite."""

from decimal import Decimal

import pytest

import unicorn_properties
from unicorn_properties.engine.callback import InMemoryWorkflowCallback, reset_memory_callback
from unicorn_properties.engine.publisher import InMemoryEventPublisher, reset_memory_publisher
from unicorn_properties.storage.config import reset_memory_stores
from unicorn_properties.storage.memory import (
    InMemoryContractStatusStore,
    InMemoryContractStore,
    InMemoryPropertyStore,
)
from unicorn_properties.storage.schemas import PropertyRecord, PropertyStatus


@pytest.fixture(autouse=True)
def reset_state(monkeypatch):
    """Give every test a fresh configuration and fresh shared in-memory backends."""
    for name in (
        "UNICORN_STORAGE_BACKEND",
        "UNICORN_CONTRACTS_TABLE",
        "UNICORN_CONTRACT_STATUS_TABLE",
        "UNICORN_PROPERTIES_TABLE",
        "UNICORN_EVENT_BUS",
        "UNICORN_CONTRACT_EVENTS",
    ):
        monkeypatch.delenv(name, raising=False)

    unicorn_properties.reset_config()
    reset_memory_stores()
    reset_memory_publisher()
    reset_memory_callback()
    yield
    unicorn_properties.reset_config()
    reset_memory_stores()
    reset_memory_publisher()
    reset_memory_callback()


@pytest.fixture
def contract_store():
    return InMemoryContractStore()


@pytest.fixture
def status_store():
    return InMemoryContractStatusStore()


@pytest.fixture
def property_store():
    return InMemoryPropertyStore()


@pytest.fixture
def publisher():
    return InMemoryEventPublisher()


@pytest.fixture
def callback():
    return InMemoryWorkflowCallback()


def _make_property(
    street: str = "Main Street",
    number: str = "123",
    status: PropertyStatus | None = None,
    **overrides,
) -> PropertyRecord:
    """Build a property record in Anytown, USA."""
    fields = {
        "country": "USA",
        "city": "Anytown",
        "street": street,
        "property_number": number,
        "description": "Cosy two-bedroom house",
        "contract": "sale",
        "list_price": Decimal("200000"),
        "currency": "SPL",
        "images": ["prop1_exterior1.jpg", "prop1_interior1.jpg"],
        "status": status,
    }
    fields.update(overrides)
    return PropertyRecord(**fields)


@pytest.fixture
def make_property():
    return _make_property

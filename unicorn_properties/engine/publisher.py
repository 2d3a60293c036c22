"""
Event bus publishers.

Services hand typed events to an EventPublisher, which wraps them in a
BusEvent (source, detail-type, detail, resources) and delivers them. The
EventBridge implementation treats any failed entry as a failed publish.
"""

import asyncio
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from unicorn_properties.config import UnicornConfig, get_config
from unicorn_properties.engine.events import BusEvent
from unicorn_properties.exceptions import EventPublishError


class EventPublisher(ABC):
    """Delivers events to the event bus."""

    @abstractmethod
    async def publish(self, event: BusEvent) -> None:
        """
        Deliver a single event.

        Raises:
            EventPublishError: If the bus rejects the entry or is unreachable
        """
        pass

    async def emit(self, source: str, event: Any, resources: Iterable[str] = ()) -> BusEvent:
        """
        Wrap a typed event and publish it.

        Args:
            source: Event source namespace (e.g. ``unicorn.contracts``)
            event: Typed event with ``detail_type`` and ``to_detail()``
            resources: Resource identifiers attached to the entry

        Returns:
            The BusEvent that was published
        """
        bus_event = BusEvent(
            source=source,
            detail_type=event.detail_type.value,
            detail=event.to_detail(),
            resources=tuple(resources),
        )
        await self.publish(bus_event)
        return bus_event


class InMemoryEventPublisher(EventPublisher):
    """Records published events. Used in tests and local runs."""

    def __init__(self) -> None:
        self.events: list[BusEvent] = []
        self._lock = threading.RLock()

    async def publish(self, event: BusEvent) -> None:
        with self._lock:
            self.events.append(event)
        logger.debug(
            "Event recorded",
            source=event.source,
            detail_type=event.detail_type,
        )

    def of_type(self, detail_type: str) -> list[BusEvent]:
        with self._lock:
            return [e for e in self.events if e.detail_type == detail_type]

    def clear(self) -> None:
        with self._lock:
            self.events.clear()


class NullEventPublisher(EventPublisher):
    """Discards events. Wired in when another component owns publication."""

    async def publish(self, event: BusEvent) -> None:
        return None


class EventBridgePublisher(EventPublisher):
    """
    Publishes to an EventBridge bus with ``put_events``.

    Args:
        event_bus_name: Target bus
        region_name: AWS region, defaults to the environment's
        client: Pre-built ``events`` client (mainly for tests)
    """

    def __init__(
        self,
        event_bus_name: str,
        region_name: str | None = None,
        client: Any | None = None,
    ) -> None:
        self.event_bus_name = event_bus_name
        self._client = client or boto3.client("events", region_name=region_name)

    async def publish(self, event: BusEvent) -> None:
        entry: dict[str, Any] = {
            "Source": event.source,
            "DetailType": event.detail_type,
            "Detail": event.detail_json,
            "EventBusName": self.event_bus_name,
        }
        if event.resources:
            entry["Resources"] = list(event.resources)

        try:
            response = await asyncio.to_thread(self._client.put_events, Entries=[entry])
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "Failed to publish event",
                detail_type=event.detail_type,
                event_bus=self.event_bus_name,
                error=str(e),
            )
            raise EventPublishError(f"Could not publish {event.detail_type}: {e}") from e

        failed = response.get("FailedEntryCount", 0)
        if failed > 0:
            errors = [
                entry.get("ErrorMessage") or entry.get("ErrorCode")
                for entry in response.get("Entries", [])
                if entry.get("ErrorCode")
            ]
            logger.error(
                "Event bus rejected entries",
                detail_type=event.detail_type,
                failed_entry_count=failed,
                errors=errors,
            )
            raise EventPublishError(
                f"Error sending {event.detail_type} to {self.event_bus_name}: {errors}",
                failed_entry_count=failed,
            )

        logger.info(
            "Event published",
            source=event.source,
            detail_type=event.detail_type,
        )


_memory_publisher: InMemoryEventPublisher | None = None


def config_to_publisher(config: UnicornConfig | None = None) -> EventPublisher:
    """
    Create the event publisher from configuration.

    The memory backend gets one shared InMemoryEventPublisher per process.
    """
    global _memory_publisher
    config = config or get_config()

    if config.storage_backend == "memory":
        if _memory_publisher is None:
            _memory_publisher = InMemoryEventPublisher()
        return _memory_publisher

    config.require("event_bus")
    return EventBridgePublisher(config.event_bus, region_name=config.aws_region)


def reset_memory_publisher() -> None:
    """Drop the shared in-memory publisher. Primarily used for testing."""
    global _memory_publisher
    _memory_publisher = None

"""
Shared plumbing for function entry points.

Every function is a LambdaHandler subclass with an async ``handle`` method.
Instances are callable with the synchronous ``(event, context)`` signature
the Lambda runtime expects and run ``handle`` on the persistent event loop,
inside a logging context and (optionally) a tracing span.

Module-level entry points wrap a factory in LazyHandler so configuration is
read and AWS clients are built on the first invocation, then reused.
"""

import json
import threading
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from unicorn_properties.config import get_config
from unicorn_properties.exceptions import (
    ConditionalWriteRejected,
    EventValidationError,
    NotFoundError,
    ValidationError,
)
from unicorn_properties.observability.logging import (
    configure_logging_from_env,
    handler_logging_context,
)
from unicorn_properties.observability.tracing import (
    TracingConfig,
    configure_tracing,
    trace_handler,
)
from unicorn_properties.runtime.loop import run_async

RESPONSE_HEADERS = {
    "Content-Type": "application/json",
}

# Rejections that redelivery cannot fix; logged and dropped in batch processing
DROPPED_ERRORS = (ValidationError, NotFoundError, ConditionalWriteRejected)

_bootstrapped = False
_bootstrap_lock = threading.Lock()


def bootstrap() -> None:
    """Configure logging and tracing once per process."""
    global _bootstrapped
    with _bootstrap_lock:
        if _bootstrapped:
            return
        config = get_config()
        configure_logging_from_env()
        configure_tracing(TracingConfig.from_config(config))
        _bootstrapped = True


def api_response(status_code: int, body: Any) -> dict[str, Any]:
    """Build an API Gateway proxy response with a JSON body."""
    return {
        "statusCode": status_code,
        "headers": dict(RESPONSE_HEADERS),
        "body": json.dumps(body, default=str),
    }


def message_response(status_code: int, message: str) -> dict[str, Any]:
    return api_response(status_code, {"message": message})


def json_body(event: dict[str, Any]) -> Any:
    """
    Decode the JSON body of an API request or queue message.

    Raises:
        EventValidationError: If the body is missing or not valid JSON
    """
    body = event.get("body")
    if body is None or body == "":
        raise EventValidationError("Request body is empty")
    if isinstance(body, (dict, list)):
        return body
    try:
        return json.loads(body)
    except (json.JSONDecodeError, TypeError) as e:
        raise EventValidationError(f"Unable to parse event input as JSON: {e}") from e


async def process_batch(
    records: list[dict[str, Any]],
    process_record: Callable[[dict[str, Any]], Awaitable[Any]],
    identifier: Callable[[dict[str, Any]], str | None],
) -> dict[str, Any]:
    """
    Process queue or stream records one at a time.

    Records failing with a rejection that redelivery cannot fix are logged
    and dropped; any other failure is reported back so only that record is
    redelivered.

    Returns:
        Partial batch response ``{"batchItemFailures": [...]}``
    """
    logger.info(f"Beginning to process {len(records)} records")
    failures: list[dict[str, str]] = []

    for record in records:
        try:
            await process_record(record)
        except DROPPED_ERRORS as e:
            logger.warning(
                "Record rejected and dropped",
                error_type=type(e).__name__,
                error=str(e),
            )
        except Exception as e:
            logger.exception("Record processing failed; returning it for redelivery", error=str(e))
            item_id = identifier(record)
            if item_id:
                failures.append({"itemIdentifier": item_id})

    logger.info("Processing complete", failed=len(failures))
    return {"batchItemFailures": failures}


def sqs_message_id(record: dict[str, Any]) -> str | None:
    return record.get("messageId")


def stream_sequence_number(record: dict[str, Any]) -> str | None:
    return record.get("dynamodb", {}).get("SequenceNumber")


class LambdaHandler(ABC):
    """
    Base class for function entry points.

    Subclasses set ``function_name`` and implement ``handle``.
    """

    function_name: str = "handler"

    @abstractmethod
    async def handle(self, event: dict[str, Any], context: Any) -> Any:
        pass

    async def invoke(self, event: dict[str, Any], context: Any = None) -> Any:
        """Run ``handle`` with logging context and a tracing span."""
        request_id = getattr(context, "aws_request_id", None)
        headers = event.get("headers") if isinstance(event, dict) else None

        with handler_logging_context(self.function_name, request_id):
            with trace_handler(self.function_name, headers=headers):
                return await self.handle(event, context)

    def __call__(self, event: dict[str, Any], context: Any = None) -> Any:
        return run_async(self.invoke(event, context))


class LazyHandler:
    """
    Entry point that builds its handler on the first invocation.

    Args:
        factory: Zero-argument callable returning a LambdaHandler
    """

    def __init__(self, factory: Callable[[], LambdaHandler]) -> None:
        self._factory = factory
        self._handler: LambdaHandler | None = None
        self._lock = threading.Lock()

    @property
    def handler(self) -> LambdaHandler:
        with self._lock:
            if self._handler is None:
                bootstrap()
                self._handler = self._factory()
            return self._handler

    def reset(self) -> None:
        """Forget the built handler. Primarily used for testing."""
        with self._lock:
            self._handler = None

    def __call__(self, event: dict[str, Any], context: Any = None) -> Any:
        return self.handler(event, context)

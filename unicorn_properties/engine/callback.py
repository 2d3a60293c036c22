"""
Workflow engine callbacks.

A paused workflow execution is resumed by redeeming its task token. The Step
Functions implementation reports already-consumed or expired tokens as
TaskTokenConsumedError so callers can treat them as "already resumed".
"""

import asyncio
import json
import threading
from abc import ABC, abstractmethod
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from unicorn_properties.config import UnicornConfig, get_config
from unicorn_properties.exceptions import TaskTokenConsumedError, WorkflowCallbackError

# Error codes meaning the token can no longer be redeemed
CONSUMED_TOKEN_ERROR_CODES = frozenset({"TaskTimedOut", "InvalidToken", "TaskDoesNotExist"})


class WorkflowCallback(ABC):
    """Resumes paused workflow executions."""

    @abstractmethod
    async def send_task_success(self, task_token: str, output: dict[str, Any]) -> None:
        """
        Report success for a task token.

        Args:
            task_token: Token handed out when the execution paused
            output: JSON-serializable task output

        Raises:
            TaskTokenConsumedError: If the token was already redeemed or expired
            WorkflowCallbackError: If the call fails for any other reason
        """
        pass


class InMemoryWorkflowCallback(WorkflowCallback):
    """
    Records callbacks. A token can be redeemed once; a second redemption
    raises TaskTokenConsumedError, as the real service does.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self._redeemed: set[str] = set()
        self._lock = threading.RLock()

    async def send_task_success(self, task_token: str, output: dict[str, Any]) -> None:
        with self._lock:
            if task_token in self._redeemed:
                raise TaskTokenConsumedError(f"Task token already redeemed: {task_token}")
            self._redeemed.add(task_token)
            self.calls.append((task_token, json.dumps(output)))

    def outputs_for(self, task_token: str) -> list[dict[str, Any]]:
        with self._lock:
            return [json.loads(out) for token, out in self.calls if token == task_token]


class StepFunctionsCallback(WorkflowCallback):
    """Resumes Step Functions executions with ``send_task_success``."""

    def __init__(self, region_name: str | None = None, client: Any | None = None) -> None:
        self._client = client or boto3.client("stepfunctions", region_name=region_name)

    async def send_task_success(self, task_token: str, output: dict[str, Any]) -> None:
        try:
            await asyncio.to_thread(
                self._client.send_task_success,
                taskToken=task_token,
                output=json.dumps(output),
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in CONSUMED_TOKEN_ERROR_CODES:
                raise TaskTokenConsumedError(f"Task token can no longer be redeemed: {code}") from e
            logger.error("Task success callback failed", error_code=code, error=str(e))
            raise WorkflowCallbackError(f"send_task_success failed: {e}") from e
        except BotoCoreError as e:
            logger.error("Task success callback failed", error=str(e))
            raise WorkflowCallbackError(f"send_task_success failed: {e}") from e


_memory_callback: InMemoryWorkflowCallback | None = None


def config_to_callback(config: UnicornConfig | None = None) -> WorkflowCallback:
    """Create the workflow callback from configuration."""
    global _memory_callback
    config = config or get_config()

    if config.storage_backend == "memory":
        if _memory_callback is None:
            _memory_callback = InMemoryWorkflowCallback()
        return _memory_callback

    return StepFunctionsCallback(region_name=config.aws_region)


def reset_memory_callback() -> None:
    """Drop the shared in-memory callback. Primarily used for testing."""
    global _memory_callback
    _memory_callback = None

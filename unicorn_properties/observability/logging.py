"""
Loguru logging configuration for Unicorn Properties.

Provides structured logging with context-aware formatting for function
invocations and the property being processed.

Features:
- Configuration from UNICORN_LOG_* settings for deployed functions
- Standard JSON schema compatible with ELK/Loki/CloudWatch Insights
- Context managers for scoped logging
- Automatic context binding for invocations and properties
"""

import json
import sys
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from loguru import logger

# Keys grouped under "context" in JSON output
CONTEXT_KEYS = frozenset({"function_name", "request_id", "property_id", "contract_id"})


def configure_logging(
    level: str = "INFO",
    log_file: str | None = None,
    json_logs: bool = False,
    show_context: bool = True,
) -> None:
    """
    Configure Unicorn Properties logging with loguru.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for log output
        json_logs: If True, output logs in JSON format (one object per line)
        show_context: If True, include invocation context in log messages

    Examples:
        # Local development
        configure_logging(level="DEBUG")

        # Deployed functions
        configure_logging(level="INFO", json_logs=True)
    """
    logger.remove()

    if json_logs:
        logger.add(
            sys.stderr,
            format="{message}",
            level=level,
            colorize=False,
            serialize=False,
            filter=_create_json_filter(show_context),
        )
    else:
        console_format = (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )

        def format_with_context(record: dict[str, Any]) -> bool:
            """Add context fields to the format string dynamically."""
            extra_str = ""
            if show_context and record["extra"]:
                context_parts = [
                    f"{key}={record['extra'][key]}"
                    for key in ("function_name", "request_id", "property_id")
                    if key in record["extra"]
                ]
                if context_parts:
                    extra_str = " | " + " ".join(context_parts)
            record["extra"]["_context"] = extra_str
            return True

        logger.add(
            sys.stderr,
            format=console_format + "{extra[_context]}",
            level=level,
            colorize=True,
            filter=format_with_context,  # type: ignore[arg-type]
        )

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

        if json_logs:
            logger.add(
                log_file,
                format="{message}",
                level=level,
                rotation="100 MB",
                retention="30 days",
                compression="gz",
                serialize=False,
                filter=_create_json_filter(show_context),
            )
        else:
            logger.add(
                log_file,
                format=(
                    "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                    "{level: <8} | "
                    "{name}:{function}:{line} | "
                    "{message} | "
                    "{extra}"
                ),
                level=level,
                rotation="100 MB",
                retention="30 days",
                compression="gz",
            )

    logger.debug(f"Unicorn Properties logging configured at level {level}")


def _create_json_filter(show_context: bool) -> Any:
    def json_filter(record: dict[str, Any]) -> bool:
        record["message"] = _format_for_json(record, show_context)
        return True

    return json_filter


def _format_for_json(record: dict[str, Any], show_context: bool = True) -> str:
    """Format a log record as a single JSON object.

    Args:
        record: Loguru log record.
        show_context: Whether to include context fields.

    Returns:
        JSON string representation of the log.
    """
    context = {}
    extra = {}

    for key, value in record["extra"].items():
        if key.startswith("_"):
            continue
        if key in CONTEXT_KEYS:
            context[key] = value
        else:
            extra[key] = _safe_serialize(value)

    log_obj: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
    }

    if show_context and context:
        log_obj["context"] = context

    if extra:
        log_obj["extra"] = extra

    if record["exception"] is not None:
        log_obj["exception"] = {
            "type": record["exception"].type.__name__ if record["exception"].type else None,
            "value": str(record["exception"].value) if record["exception"].value else None,
            "traceback": record["exception"].traceback is not None,
        }

    return json.dumps(log_obj, default=str)


def _safe_serialize(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool, type(None))):
        return value
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_safe_serialize(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _safe_serialize(v) for k, v in value.items()}
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def configure_logging_from_env() -> None:
    """Configure logging from UNICORN_LOG_* settings.

    Settings:
        UNICORN_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        UNICORN_LOG_FORMAT: Log format ("json" or "console")
        UNICORN_LOG_FILE: Optional file path for log output
        UNICORN_LOG_CONTEXT: Whether to show context ("true" or "false")
    """
    from unicorn_properties.config import get_config

    config = get_config()
    configure_logging(
        level=config.log_level.upper(),
        log_file=config.log_file,
        json_logs=(config.log_format == "json"),
        show_context=config.log_context,
    )


def get_logger(name: str | None = None) -> Any:
    """
    Get a logger instance, optionally bound to a module name.

    Examples:
        log = get_logger(__name__)
        log.info("Processing contract")
    """
    if name:
        return logger.bind(module=name)
    return logger


def bind_property_context(property_id: str, contract_id: str | None = None) -> Any:
    """
    Bind property context to logger.

    Returns:
        Logger with property_id (and contract_id, if given) bound
    """
    if contract_id:
        return logger.bind(property_id=property_id, contract_id=contract_id)
    return logger.bind(property_id=property_id)


@contextmanager
def handler_logging_context(
    function_name: str, request_id: str | None = None
) -> Generator[None, None, None]:
    """Context manager to bind invocation context to all logs within scope.

    Example:
        with handler_logging_context("request_approval", context.aws_request_id):
            logger.info("Processing request")
    """
    with logger.contextualize(function_name=function_name, request_id=request_id):
        yield


@contextmanager
def property_logging_context(property_id: str) -> Generator[None, None, None]:
    """Context manager to bind the property being processed to all logs within scope."""
    with logger.contextualize(property_id=property_id):
        yield

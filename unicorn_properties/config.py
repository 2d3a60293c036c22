"""
Unicorn Properties configuration system.

Settings come from ``UNICORN_*`` environment variables (and an optional
``.env`` file), overridable in-process.

Configuration is resolved in this priority order:
1. Values set via unicorn_properties.configure() (highest priority)
2. UNICORN_* environment variables
3. Default values

Usage:
    >>> import unicorn_properties
    >>> unicorn_properties.configure(
    ...     storage_backend="memory",
    ...     event_bus="unicorn-bus",
    ... )
"""

from typing import Any, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from unicorn_properties.exceptions import ConfigurationError


class UnicornConfig(BaseSettings):
    """
    Global configuration for Unicorn Properties.

    Attributes:
        storage_backend: "dynamodb" for production, "memory" for local runs
        contracts_table: Name of the contracts table
        contract_status_table: Name of the contract status mirror table
        properties_table: Name of the properties table
        event_bus: Name of the event bus events are published to
        contracts_namespace: Event source of the Contracts domain
        web_namespace: Event source of the Web domain
        contract_events: "service" to publish from the contract service,
            "stream" to publish from the table's change stream
        aws_region: AWS region for all clients
        log_level: Minimum log level
        log_format: "console" or "json"
        log_file: Optional file to write logs to
        log_context: Whether to show bound context in console logs
        service_name: Service name reported to tracing backends
        tracing_enabled: Whether to emit OpenTelemetry spans
        tracing_exporter: "otlp" or "console"
        tracing_endpoint: OTLP endpoint URL
        tracing_sample_rate: Sampling rate (0.0 to 1.0)
    """

    model_config = SettingsConfigDict(
        env_prefix="UNICORN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
    )

    # Storage
    storage_backend: Literal["dynamodb", "memory"] = "dynamodb"
    contracts_table: str | None = None
    contract_status_table: str | None = None
    properties_table: str | None = None

    # Events
    event_bus: str | None = None
    contracts_namespace: str = "unicorn.contracts"
    web_namespace: str = "unicorn.web"
    contract_events: Literal["service", "stream"] = "service"

    # Infrastructure
    aws_region: str | None = None

    # Logging
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    log_file: str | None = None
    log_context: bool = True

    # Tracing
    service_name: str = "unicorn-properties"
    tracing_enabled: bool = False
    tracing_exporter: Literal["otlp", "console"] = "otlp"
    tracing_endpoint: str | None = None
    tracing_sample_rate: float = 1.0

    def require(self, *names: str) -> None:
        """
        Ensure the named settings are present.

        Raises:
            ConfigurationError: Naming the environment variables that are unset
        """
        missing = [name for name in names if not getattr(self, name, None)]
        if missing:
            env_vars = ", ".join(f"UNICORN_{name.upper()}" for name in missing)
            raise ConfigurationError(f"Missing required configuration: {env_vars}")


# Global singleton
_config: UnicornConfig | None = None


def configure(**kwargs: Any) -> None:
    """
    Override configuration values in-process.

    Args:
        **kwargs: Any UnicornConfig field

    Raises:
        ValueError: If an unknown option is given

    Example:
        >>> import unicorn_properties
        >>> unicorn_properties.configure(storage_backend="memory")
    """
    config = get_config()

    for key, value in kwargs.items():
        if key in UnicornConfig.model_fields:
            setattr(config, key, value)
        else:
            valid_keys = list(UnicornConfig.model_fields.keys())
            raise ValueError(
                f"Unknown config option: {key}. Valid options: {', '.join(valid_keys)}"
            )


def get_config() -> UnicornConfig:
    """
    Get the current configuration.

    Loaded from the environment on first access.

    Returns:
        Current UnicornConfig instance
    """
    global _config
    if _config is None:
        _config = UnicornConfig()
    return _config


def reset_config() -> None:
    """
    Reset configuration so the next access reloads the environment.

    Primarily used for testing.
    """
    global _config
    _config = None

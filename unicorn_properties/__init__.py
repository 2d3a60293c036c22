"""
Unicorn Properties - contract and property approval saga

Contracts, Properties and Web domains connected by an event bus, queues,
table change streams and a workflow engine that pauses on task tokens:

- Contract status changes are mirrored into the Properties domain, and a
  workflow waiting on a property resumes once its contract is APPROVED
- Property publication goes through a request -> evaluation -> outcome
  handshake before the listing shows up in search

Quick Start:
    >>> import unicorn_properties
    >>> from unicorn_properties.services import ContractService, CreateContractRequest
    >>> from unicorn_properties.storage import InMemoryContractStore
    >>> from unicorn_properties.engine import InMemoryEventPublisher
    >>>
    >>> service = ContractService(InMemoryContractStore(), InMemoryEventPublisher())
    >>> contract = await service.create_contract(
    ...     CreateContractRequest.parse({"property_id": "usa/anytown/main-street/123"})
    ... )
"""

__version__ = "0.1.0"

# Configuration
from unicorn_properties.config import UnicornConfig, configure, get_config, reset_config

# Exceptions
from unicorn_properties.exceptions import (
    ConditionalWriteRejected,
    ConfigurationError,
    ContractNotFoundError,
    ContractStatusChangedEventHandlerError,
    ContractStatusNotFoundError,
    DownstreamFailure,
    EventPublishError,
    EventValidationError,
    NotFoundError,
    PropertyAlreadyApprovedError,
    PropertyIdValidationError,
    PropertyNotFoundError,
    PublicationEvaluationEventHandlerError,
    StoreError,
    TaskTokenConsumedError,
    UnicornError,
    ValidationError,
    WorkflowCallbackError,
)

# Logging
from unicorn_properties.observability.logging import (
    configure_logging,
    configure_logging_from_env,
    get_logger,
)

__all__ = [
    "__version__",
    # Configuration
    "UnicornConfig",
    "configure",
    "get_config",
    "reset_config",
    # Exceptions
    "UnicornError",
    "ConfigurationError",
    "ValidationError",
    "EventValidationError",
    "PropertyIdValidationError",
    "NotFoundError",
    "ContractNotFoundError",
    "ContractStatusNotFoundError",
    "PropertyNotFoundError",
    "ConditionalWriteRejected",
    "PropertyAlreadyApprovedError",
    "DownstreamFailure",
    "StoreError",
    "EventPublishError",
    "WorkflowCallbackError",
    "TaskTokenConsumedError",
    "ContractStatusChangedEventHandlerError",
    "PublicationEvaluationEventHandlerError",
    # Logging
    "configure_logging",
    "configure_logging_from_env",
    "get_logger",
]

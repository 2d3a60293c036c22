"""
Exception hierarchy for Unicorn Properties.

Errors fall into four families that decide how a handler reacts:

- ValidationError: malformed input, rejected without side effects
- NotFoundError: a referenced contract, status item or property is absent
- ConditionalWriteRejected: a store precondition did not hold, nothing written
- DownstreamFailure: a store, bus or workflow callback call failed; always
  propagated so the invocation substrate can redeliver
"""


class UnicornError(Exception):
    """Base exception for all Unicorn Properties errors."""

    pass


class ConfigurationError(UnicornError):
    """Raised when required configuration is missing or invalid."""

    pass


# Validation


class ValidationError(UnicornError):
    """Raised when inbound data is malformed."""

    pass


class EventValidationError(ValidationError):
    """Raised when a request, message or event payload cannot be parsed."""

    pass


class PropertyIdValidationError(ValidationError):
    """
    Raised when a property id does not match the expected pattern.

    Attributes:
        property_id: The rejected value
        pattern: The regular expression it had to match
    """

    def __init__(self, property_id: str, pattern: str) -> None:
        super().__init__(f"Input invalid; must conform to regular expression: {pattern}")
        self.property_id = property_id
        self.pattern = pattern


# Lookups


class NotFoundError(UnicornError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, message: str, property_id: str | None = None) -> None:
        super().__init__(message)
        self.property_id = property_id


class ContractNotFoundError(NotFoundError):
    """Raised when no contract exists for a property."""

    def __init__(self, property_id: str) -> None:
        super().__init__(f"Could not find property with ID: {property_id}", property_id)


class ContractStatusNotFoundError(NotFoundError):
    """Raised when the contract status mirror has no item for a property."""

    def __init__(self, property_id: str) -> None:
        super().__init__(f"Could not find property with ID: {property_id}", property_id)


class PropertyNotFoundError(NotFoundError):
    """Raised when no property record matches a property id."""

    def __init__(self, property_id: str) -> None:
        super().__init__(
            "No property found in database with the requested property id", property_id
        )


# Conditional writes


class ConditionalWriteRejected(UnicornError):
    """
    Raised when a conditional write is rejected by the store.

    Not fatal: callers log it and drop the request.
    """

    def __init__(self, message: str, property_id: str | None = None) -> None:
        super().__init__(message)
        self.property_id = property_id


class PropertyAlreadyApprovedError(ConditionalWriteRejected):
    """Raised when approval is requested for a property that is already approved."""

    def __init__(self, property_id: str, status: str) -> None:
        super().__init__(f"Property is already {status}; no action taken", property_id)
        self.status = status


# Downstream failures


class DownstreamFailure(UnicornError):
    """Raised when a call to a store, the event bus or the workflow engine fails."""

    pass


class StoreError(DownstreamFailure):
    """Raised when a key-value store operation fails."""

    pass


class EventPublishError(DownstreamFailure):
    """
    Raised when an event could not be delivered to the bus.

    Attributes:
        failed_entry_count: Number of entries the bus reported as failed
    """

    def __init__(self, message: str, failed_entry_count: int = 0) -> None:
        super().__init__(message)
        self.failed_entry_count = failed_entry_count


class WorkflowCallbackError(DownstreamFailure):
    """Raised when the workflow engine rejects or fails a task callback."""

    pass


class TaskTokenConsumedError(WorkflowCallbackError):
    """Raised when a task token was already redeemed or has timed out."""

    pass


class ContractStatusChangedEventHandlerError(DownstreamFailure):
    """Raised when a contract status change could not be mirrored."""

    pass


class PublicationEvaluationEventHandlerError(DownstreamFailure):
    """Raised when a publication evaluation result could not be applied."""

    pass

"""
Event bus and workflow engine integration.

Event envelopes, publishers for the event bus and callbacks that resume
paused workflow executions.
"""

from unicorn_properties.engine.callback import (
    InMemoryWorkflowCallback,
    StepFunctionsCallback,
    WorkflowCallback,
    config_to_callback,
)
from unicorn_properties.engine.events import (
    BusEvent,
    ContractStatusChangedEvent,
    EventType,
    PublicationEvaluationCompletedEvent,
    RequestApprovalEvent,
    RequestApprovalEventAddress,
    event_detail,
)
from unicorn_properties.engine.publisher import (
    EventBridgePublisher,
    EventPublisher,
    InMemoryEventPublisher,
    NullEventPublisher,
    config_to_publisher,
)

__all__ = [
    "EventType",
    "BusEvent",
    "ContractStatusChangedEvent",
    "PublicationEvaluationCompletedEvent",
    "RequestApprovalEvent",
    "RequestApprovalEventAddress",
    "event_detail",
    "EventPublisher",
    "EventBridgePublisher",
    "InMemoryEventPublisher",
    "NullEventPublisher",
    "config_to_publisher",
    "WorkflowCallback",
    "StepFunctionsCallback",
    "InMemoryWorkflowCallback",
    "config_to_callback",
]

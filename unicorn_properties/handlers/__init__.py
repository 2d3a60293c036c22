"""
Function entry points.

Each name below is a synchronous ``(event, context)`` callable suitable as a
Lambda handler, e.g. ``unicorn_properties.handlers.request_approval``.
"""

from unicorn_properties.handlers.base import LambdaHandler, LazyHandler, api_response
from unicorn_properties.handlers.contracts import (
    contract_ingestion,
    contract_stream,
    create_contract,
    update_contract,
)
from unicorn_properties.handlers.properties import (
    contract_exists_checker,
    contract_status_changed,
    properties_approval_sync,
    wait_for_contract_approval,
)
from unicorn_properties.handlers.web import (
    content_integrity_validator,
    publication_evaluation_completed,
    request_approval,
    request_approval_queue,
    search,
)

__all__ = [
    "LambdaHandler",
    "LazyHandler",
    "api_response",
    # Contracts
    "create_contract",
    "update_contract",
    "contract_ingestion",
    "contract_stream",
    # Properties
    "contract_status_changed",
    "wait_for_contract_approval",
    "contract_exists_checker",
    "properties_approval_sync",
    # Web
    "request_approval",
    "request_approval_queue",
    "publication_evaluation_completed",
    "content_integrity_validator",
    "search",
]

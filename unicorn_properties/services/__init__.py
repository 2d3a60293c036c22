"""
Domain services.

Each service owns one part of the approval saga and talks only to injected
stores, publishers and callbacks.
"""

from unicorn_properties.services.contract_status import ContractStatusService, SyncOutcome
from unicorn_properties.services.contracts import ContractService, ContractStreamPublisher
from unicorn_properties.services.publication import (
    APPROVAL_BLOCKING_STATUSES,
    PublicationService,
    evaluate_content_integrity,
)
from unicorn_properties.services.requests import (
    CreateContractRequest,
    RequestApprovalRequest,
    UpdateContractRequest,
)
from unicorn_properties.services.search import PropertySearchService

__all__ = [
    "ContractService",
    "ContractStreamPublisher",
    "ContractStatusService",
    "SyncOutcome",
    "PublicationService",
    "APPROVAL_BLOCKING_STATUSES",
    "evaluate_content_integrity",
    "PropertySearchService",
    "CreateContractRequest",
    "UpdateContractRequest",
    "RequestApprovalRequest",
]

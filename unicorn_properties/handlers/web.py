"""
Web domain entry points.

- request_approval: API request to publish a property
- request_approval_queue: the same, from queued requests
- publication_evaluation_completed: evaluation outcome bus events
- content_integrity_validator: moderation step of the evaluation workflow
- search: property search API
"""

from typing import Any

from loguru import logger

from unicorn_properties.config import get_config
from unicorn_properties.engine.events import PublicationEvaluationCompletedEvent, event_detail
from unicorn_properties.engine.publisher import config_to_publisher
from unicorn_properties.exceptions import (
    ConditionalWriteRejected,
    EventValidationError,
    UnicornError,
    ValidationError,
)
from unicorn_properties.handlers.base import (
    LambdaHandler,
    LazyHandler,
    api_response,
    json_body,
    message_response,
    process_batch,
    sqs_message_id,
)
from unicorn_properties.observability.logging import property_logging_context
from unicorn_properties.observability.tracing import set_span_attribute
from unicorn_properties.services.publication import (
    PublicationService,
    evaluate_content_integrity,
)
from unicorn_properties.services.requests import RequestApprovalRequest
from unicorn_properties.services.search import PropertySearchService
from unicorn_properties.storage.config import config_to_property_store

SEARCH_INVALID_REQUEST = {"message": "ErrorInRequest", "requestDetails": "Input Invalid"}
SEARCH_CANNOT_PROCESS = {"message": "ErrorInRequest", "requestDetails": "Cannot Process Request"}


class RequestApprovalHandler(LambdaHandler):
    function_name = "request_approval"

    def __init__(self, service: PublicationService) -> None:
        self.service = service

    async def handle(self, event: dict[str, Any], context: Any) -> dict[str, Any]:
        try:
            request = RequestApprovalRequest.parse(json_body(event))
        except EventValidationError as e:
            logger.error("Unable to parse approval request", error=str(e))
            return message_response(400, "Unable to parse event input as JSON")

        try:
            await self.service.request_approval(request.property_id)
        except ValidationError as e:
            return message_response(400, str(e))
        except UnicornError as e:
            logger.error("Approval request failed", error=str(e))
            return message_response(500, str(e))

        return message_response(200, "Approval Requested")


class RequestApprovalQueueHandler(LambdaHandler):
    function_name = "request_approval_queue"

    def __init__(self, service: PublicationService) -> None:
        self.service = service

    async def process_record(self, record: dict[str, Any]) -> None:
        request = RequestApprovalRequest.parse(json_body(record))
        await self.service.request_approval(request.property_id)

    async def handle(self, event: dict[str, Any], context: Any) -> dict[str, Any]:
        return await process_batch(event.get("Records", []), self.process_record, sqs_message_id)


class PublicationEvaluationCompletedHandler(LambdaHandler):
    """Applies evaluation outcomes. A lost check-and-set race is logged and dropped."""

    function_name = "publication_evaluation_completed"

    def __init__(self, service: PublicationService) -> None:
        self.service = service

    async def handle(self, event: dict[str, Any], context: Any) -> None:
        evaluation = PublicationEvaluationCompletedEvent.from_detail(event_detail(event))
        with property_logging_context(evaluation.property_id):
            try:
                await self.service.on_evaluation_completed(evaluation)
            except ConditionalWriteRejected as e:
                logger.warning("Property changed while applying evaluation; dropped", error=str(e))


class ContentIntegrityValidatorHandler(LambdaHandler):
    function_name = "content_integrity_validator"

    async def handle(self, event: dict[str, Any], context: Any) -> dict[str, Any]:
        result = evaluate_content_integrity(event)
        set_span_attribute("validation_result", result["ValidationResult"])
        logger.info("Content integrity evaluated", validation_result=result["ValidationResult"])
        return result


class SearchHandler(LambdaHandler):
    function_name = "search"

    def __init__(self, service: PropertySearchService) -> None:
        self.service = service

    async def handle(self, event: dict[str, Any], context: Any) -> dict[str, Any]:
        if str(event.get("httpMethod", "")).upper() != "GET":
            return api_response(400, SEARCH_INVALID_REQUEST)

        try:
            records = await self.service.search(event.get("resource"), event.get("pathParameters"))
        except UnicornError as e:
            logger.error("Search failed", error=str(e))
            return api_response(500, SEARCH_CANNOT_PROCESS)

        return api_response(200, [record.to_dto() for record in records])


def build_publication_service() -> PublicationService:
    config = get_config()
    return PublicationService(
        config_to_property_store(config),
        config_to_publisher(config),
        source=config.web_namespace,
    )


def build_search_service() -> PropertySearchService:
    return PropertySearchService(config_to_property_store(get_config()))


request_approval = LazyHandler(lambda: RequestApprovalHandler(build_publication_service()))
request_approval_queue = LazyHandler(
    lambda: RequestApprovalQueueHandler(build_publication_service())
)
publication_evaluation_completed = LazyHandler(
    lambda: PublicationEvaluationCompletedHandler(build_publication_service())
)
content_integrity_validator = LazyHandler(ContentIntegrityValidatorHandler)
search = LazyHandler(lambda: SearchHandler(build_search_service()))

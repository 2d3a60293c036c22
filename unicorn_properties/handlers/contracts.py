"""
Contracts domain entry points.

- create_contract / update_contract: API requests
- contract_ingestion: queue messages, routed by the HttpMethod attribute
- contract_stream: contracts-table change stream -> ContractStatusChanged
"""

from typing import Any

from loguru import logger

from unicorn_properties.config import get_config
from unicorn_properties.engine.publisher import (
    EventPublisher,
    NullEventPublisher,
    config_to_publisher,
)
from unicorn_properties.exceptions import (
    ConditionalWriteRejected,
    ContractNotFoundError,
    DownstreamFailure,
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
    stream_sequence_number,
)
from unicorn_properties.services.contracts import ContractService, ContractStreamPublisher
from unicorn_properties.services.requests import CreateContractRequest, UpdateContractRequest
from unicorn_properties.storage.config import config_to_contract_store


class CreateContractHandler(LambdaHandler):
    function_name = "create_contract"

    def __init__(self, service: ContractService) -> None:
        self.service = service

    async def handle(self, event: dict[str, Any], context: Any) -> dict[str, Any]:
        try:
            request = CreateContractRequest.parse(json_body(event))
            contract = await self.service.create_contract(request)
        except ValidationError as e:
            return message_response(400, str(e))
        except ConditionalWriteRejected as e:
            return message_response(409, str(e))
        except DownstreamFailure as e:
            logger.error("Contract creation failed", error=str(e))
            return message_response(500, str(e))

        return api_response(200, contract.to_dict())


class UpdateContractHandler(LambdaHandler):
    function_name = "update_contract"

    def __init__(self, service: ContractService) -> None:
        self.service = service

    async def handle(self, event: dict[str, Any], context: Any) -> dict[str, Any]:
        try:
            request = UpdateContractRequest.parse(json_body(event))
            contract = await self.service.update_contract(request)
        except ValidationError as e:
            return message_response(400, str(e))
        except ContractNotFoundError as e:
            return message_response(404, str(e))
        except DownstreamFailure as e:
            logger.error("Contract update failed", error=str(e))
            return message_response(500, str(e))

        return api_response(200, contract.to_dict())


class ContractIngestionHandler(LambdaHandler):
    """Creates (POST) or approves (PUT) contracts from queued API requests."""

    function_name = "contract_ingestion"

    def __init__(self, service: ContractService) -> None:
        self.service = service

    async def process_record(self, record: dict[str, Any]) -> None:
        attributes = record.get("messageAttributes") or {}
        method = (attributes.get("HttpMethod") or {}).get("stringValue")
        logger.info(f"Identified HTTP method: {method}")

        if method == "POST":
            await self.service.create_contract(CreateContractRequest.parse(json_body(record)))
        elif method == "PUT":
            await self.service.update_contract(UpdateContractRequest.parse(json_body(record)))
        else:
            logger.info("Nothing to process", message_id=record.get("messageId"))

    async def handle(self, event: dict[str, Any], context: Any) -> dict[str, Any]:
        return await process_batch(event.get("Records", []), self.process_record, sqs_message_id)


class ContractStreamHandler(LambdaHandler):
    """Publishes ContractStatusChanged events from the contracts-table stream."""

    function_name = "contract_stream"

    def __init__(self, stream_publisher: ContractStreamPublisher) -> None:
        self.stream_publisher = stream_publisher

    async def handle(self, event: dict[str, Any], context: Any) -> dict[str, Any]:
        return await process_batch(
            event.get("Records", []),
            self.stream_publisher.process_record,
            stream_sequence_number,
        )


def build_contract_service() -> ContractService:
    """
    Wire a ContractService from configuration.

    With ``contract_events="stream"`` the service publishes nothing and the
    change stream owns publication.
    """
    config = get_config()
    publisher: EventPublisher
    if config.contract_events == "stream":
        publisher = NullEventPublisher()
    else:
        publisher = config_to_publisher(config)
    return ContractService(
        config_to_contract_store(config),
        publisher,
        source=config.contracts_namespace,
    )


def build_stream_publisher() -> ContractStreamPublisher:
    config = get_config()
    return ContractStreamPublisher(config_to_publisher(config), source=config.contracts_namespace)


create_contract = LazyHandler(lambda: CreateContractHandler(build_contract_service()))
update_contract = LazyHandler(lambda: UpdateContractHandler(build_contract_service()))
contract_ingestion = LazyHandler(lambda: ContractIngestionHandler(build_contract_service()))
contract_stream = LazyHandler(lambda: ContractStreamHandler(build_stream_publisher()))

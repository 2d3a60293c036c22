"""
Property publication approval.

A listing is published only after an external evaluation pipeline approves
it. PublicationService starts that handshake (request_approval) and applies
its outcome (on_evaluation_completed). evaluate_content_integrity is the
moderation step of the evaluation workflow.
"""

from typing import Any

from loguru import logger

from unicorn_properties.engine.events import (
    PublicationEvaluationCompletedEvent,
    RequestApprovalEvent,
    create_request_approval_event,
)
from unicorn_properties.engine.publisher import EventPublisher
from unicorn_properties.exceptions import (
    EventValidationError,
    PropertyAlreadyApprovedError,
    PropertyNotFoundError,
    PublicationEvaluationEventHandlerError,
    StoreError,
)
from unicorn_properties.observability.tracing import add_span_event
from unicorn_properties.storage.base import PropertyStore
from unicorn_properties.storage.keys import parse_property_id
from unicorn_properties.storage.schemas import PropertyRecord, PropertyStatus

# Properties in these states cannot be sent for approval again
APPROVAL_BLOCKING_STATUSES = frozenset({PropertyStatus.APPROVED})

EVALUATION_RESULTS = {
    "approved": PropertyStatus.APPROVED,
    "declined": PropertyStatus.DECLINED,
}

VALIDATION_PASS = "PASS"
VALIDATION_FAIL = "FAIL"


class PublicationService:
    """
    Requests publication approval and records evaluation outcomes.

    Args:
        store: Properties table
        publisher: Receives PublicationApprovalRequested events
        source: Event source namespace for published events
    """

    def __init__(
        self,
        store: PropertyStore,
        publisher: EventPublisher,
        source: str = "unicorn.web",
    ) -> None:
        self.store = store
        self.publisher = publisher
        self.source = source

    async def request_approval(self, property_id: str | None) -> RequestApprovalEvent:
        """
        Ask the evaluation pipeline to review a property.

        The record is set to PENDING. The event is published before the record
        is written, so a failed publish leaves the record untouched.

        Raises:
            PropertyIdValidationError: If the id does not match PROPERTY_ID_PATTERN
            PropertyNotFoundError: If no record matches the id
            PropertyAlreadyApprovedError: If the property is already approved
            EventPublishError: If the event could not be published
            ConditionalWriteRejected: If the record's status changed concurrently
        """
        key = parse_property_id(property_id or "", validate=True)
        log = logger.bind(property_id=key.property_id)
        log.info("Requesting approval for property")

        records = await self.store.query(key.pk, sk_prefix=key.sk)
        if not records:
            log.warning("No property found for approval request")
            raise PropertyNotFoundError(key.property_id)

        record = next((r for r in records if r.sk == key.sk), records[0])

        if record.status in APPROVAL_BLOCKING_STATUSES:
            log.warning("Property already approved; no action taken")
            raise PropertyAlreadyApprovedError(key.property_id, record.status.value)

        previous_status = record.status
        record.status = PropertyStatus.PENDING

        event = create_request_approval_event(key.property_id, record)
        await self.publisher.emit(self.source, event, resources=[key.property_id])

        log.info(f"Storing property with PK {record.pk} and SK {record.sk}")
        await self.store.save(record, expected_status=previous_status)

        add_span_event("approval_requested", {"property_id": key.property_id})
        return event

    async def on_evaluation_completed(
        self, event: PublicationEvaluationCompletedEvent
    ) -> PropertyRecord | None:
        """
        Apply an evaluation outcome to the property record.

        Returns:
            The updated record, or None if the result was not recognised

        Raises:
            PropertyIdValidationError: If the event's PropertyId is malformed
            PropertyNotFoundError: If the property does not exist
            PublicationEvaluationEventHandlerError: If the store call fails
            ConditionalWriteRejected: If the record's status changed concurrently
        """
        key = parse_property_id(event.property_id)
        log = logger.bind(property_id=event.property_id)

        new_status = EVALUATION_RESULTS.get(event.evaluation_result.strip().lower())
        if new_status is None:
            log.warning(
                "Unknown evaluation result; property left unchanged",
                evaluation_result=event.evaluation_result,
            )
            return None

        try:
            record = await self.store.get(key.pk, key.sk)
            if record is None:
                log.error("Evaluated property does not exist")
                raise PropertyNotFoundError(event.property_id)

            previous_status = record.status
            record.status = new_status
            await self.store.save(record, expected_status=previous_status)
        except StoreError as e:
            log.error("Unable to record evaluation result", error=str(e))
            raise PublicationEvaluationEventHandlerError(
                f"Unable to record evaluation for property {event.property_id}: {e}"
            ) from e

        log.info("Evaluation result recorded", status=new_status.value)
        return record


def evaluate_content_integrity(payload: dict[str, Any]) -> dict[str, Any]:
    """
    Decide whether a listing's content passes moderation.

    The listing fails if any image carries moderation labels or the
    description sentiment is not POSITIVE (case-insensitive).

    Args:
        payload: Workflow state with ``ImageModerations`` and ``ContentSentiment``

    Returns:
        The payload with ``ValidationResult`` set to PASS or FAIL

    Raises:
        EventValidationError: If either section is missing
    """
    try:
        moderations = payload["ImageModerations"]
        sentiment = payload["ContentSentiment"]["Sentiment"]
    except (KeyError, TypeError) as e:
        raise EventValidationError(f"Content integrity input is missing {e}") from e

    flagged = any(m.get("ModerationLabels") for m in moderations or [])
    positive = str(sentiment or "").upper() == "POSITIVE"

    result = dict(payload)
    result["ValidationResult"] = VALIDATION_PASS if positive and not flagged else VALIDATION_FAIL
    return result

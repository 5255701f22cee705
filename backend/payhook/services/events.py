import enum
import logging
from dataclasses import dataclass

from payhook.schemas.ingest import RazorpayWebhook
from pydantic import ValidationError

logger = logging.getLogger(__name__)


class PaymentEventType(str, enum.Enum):
    payment_captured = "payment.captured"
    payment_failed = "payment.failed"
    unknown = "unknown"

    @classmethod
    def classify(cls, raw: str | None) -> "PaymentEventType":
        if raw in (cls.payment_captured.value, cls.payment_failed.value):
            return cls(raw)
        return cls.unknown


class ParseErrorReason(str, enum.Enum):
    malformed_payload = "MalformedPayload"
    missing_user_identifier = "MissingUserIdentifier"


class ParseError(Exception):
    def __init__(self, reason: ParseErrorReason, message: str = ""):
        self.reason = reason
        super().__init__(message or reason.value)


@dataclass(frozen=True)
class PaymentEvent:
    event_type: PaymentEventType
    raw_event_type: str | None
    user_id: str
    payment_id: str | None = None
    amount: int | None = None
    currency: str | None = None


def parse(raw_body: bytes) -> PaymentEvent:
    """
    Build a PaymentEvent from a verified webhook body.

    The user id is read from ``payload.payment.entity.notes.user_id``, where
    the checkout page stores it, and returned exactly as sent.
    """
    try:
        webhook = RazorpayWebhook.model_validate_json(raw_body)
    except ValidationError as ve:
        logger.info(f"Rejecting malformed webhook payload: {ve.error_count()} error(s)")
        raise ParseError(
            ParseErrorReason.malformed_payload, "Malformed payload"
        ) from ve

    entity = None
    if webhook.payload and webhook.payload.payment:
        entity = webhook.payload.payment.entity

    user_id = None
    if entity is not None and isinstance(entity.notes, dict):
        user_id = entity.notes.get("user_id")
    if not isinstance(user_id, str) or not user_id:
        raise ParseError(ParseErrorReason.missing_user_identifier, "User not found")

    raw_event_type = _event_name(webhook.event)
    return PaymentEvent(
        event_type=PaymentEventType.classify(raw_event_type),
        raw_event_type=raw_event_type,
        user_id=user_id,
        payment_id=entity.id if isinstance(entity.id, str) else None,
        amount=_amount(entity.amount),
        currency=entity.currency if isinstance(entity.currency, str) else None,
    )


def _event_name(value) -> str | None:
    # A present but non-string name is still a named event, just not one we know
    if value is None or isinstance(value, str):
        return value
    return str(value)


def _amount(value) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None

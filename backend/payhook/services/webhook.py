"""Per-request handling of payment webhooks.

A request is authenticated, parsed, filtered by event type and, for
successful payments, turned into an entitlement upsert. The upsert is the
only side effect, and it is idempotent, so every non-2xx outcome is safe for
the processor to retry.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from payhook.db.models import utc_now
from payhook.services import events
from payhook.services.entitlement_store import (
    EntitlementStore,
    StoreError,
    StoreRejected,
    StoreUnavailable,
)
from payhook.services.razorpay_verify import SignatureVerifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WebhookRequest:
    body: bytes
    signature: str | None
    content_type: str | None = None


class OutcomeState(str, enum.Enum):
    acknowledged = "acknowledged"
    ignored = "ignored"
    rejected = "rejected"
    failed = "failed"


@dataclass(frozen=True)
class WebhookOutcome:
    state: OutcomeState
    status_code: int
    body: str

    @property
    def retryable(self) -> bool:
        return self.status_code >= 500


ACKNOWLEDGED = WebhookOutcome(OutcomeState.acknowledged, 200, "OK")
IGNORED = WebhookOutcome(OutcomeState.ignored, 200, "OK")
INVALID_SIGNATURE = WebhookOutcome(OutcomeState.rejected, 401, "Invalid signature")
MALFORMED_PAYLOAD = WebhookOutcome(OutcomeState.rejected, 400, "Malformed payload")
USER_NOT_FOUND = WebhookOutcome(OutcomeState.rejected, 400, "User not found")
STORE_UNAVAILABLE = WebhookOutcome(OutcomeState.failed, 500, "Store unavailable")
STORE_REJECTED = WebhookOutcome(OutcomeState.failed, 400, "Entitlement update rejected")

_PARSE_OUTCOMES = {
    events.ParseErrorReason.malformed_payload: MALFORMED_PAYLOAD,
    events.ParseErrorReason.missing_user_identifier: USER_NOT_FOUND,
}


class WebhookController:
    def __init__(
        self,
        verifier: SignatureVerifier,
        store: EntitlementStore,
        provider: str = "razorpay",
        activate_untyped_events: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.verifier = verifier
        self.store = store
        self.provider = provider
        self.activate_untyped_events = activate_untyped_events
        self.clock = clock

    def activates(self, event: events.PaymentEvent) -> bool:
        """Whether ``event`` grants the user an active entitlement."""
        if event.event_type is events.PaymentEventType.payment_captured:
            return True
        # Payloads without any event name predate typed events
        return event.raw_event_type is None and self.activate_untyped_events

    def handle(self, request: WebhookRequest) -> WebhookOutcome:
        if not self.verifier.verify(request.body, request.signature):
            return INVALID_SIGNATURE

        try:
            event = events.parse(request.body)
        except events.ParseError as e:
            logger.warning(f"Rejecting webhook: {e.reason.value}")
            return _PARSE_OUTCOMES[e.reason]

        if not self.activates(event):
            logger.info(
                f"Ignoring {event.event_type.value} event "
                f"(event={event.raw_event_type!r}) for user {event.user_id}"
            )
            return IGNORED

        try:
            self.store.upsert(event.user_id, True, self.provider, self.clock())
        except StoreUnavailable:
            logger.warning(
                f"Store unavailable for payment {event.payment_id}, processor will retry"
            )
            return STORE_UNAVAILABLE
        except StoreRejected as e:
            logger.error(
                f"Entitlement update rejected for user {event.user_id} "
                f"payment {event.payment_id}: {e}"
            )
            return STORE_REJECTED
        except StoreError as e:
            logger.error(f"Unclassified store error for user {event.user_id}: {e}")
            return STORE_UNAVAILABLE

        logger.info(
            f"Entitlement activated for user {event.user_id} (payment {event.payment_id})"
        )
        return ACKNOWLEDGED

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _Envelope(BaseModel):
    model_config = ConfigDict(extra="ignore")


class PaymentEntity(_Envelope):
    # Informational fields stay untyped here; the parser drops values of the wrong type
    id: Any = Field(None, description="Processor payment ID")
    amount: Any = Field(None, description="Amount in the currency subunit")
    currency: Any = None
    # Razorpay sends an empty list instead of an object when no notes were set
    notes: dict[str, Any] | list[Any] | None = None


class PaymentWrapper(_Envelope):
    entity: PaymentEntity | None = None


class EventPayload(_Envelope):
    payment: PaymentWrapper | None = None


class RazorpayWebhook(_Envelope):
    event: Any = Field(None, description="Event type / name")
    payload: EventPayload | None = None

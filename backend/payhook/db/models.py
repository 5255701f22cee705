import enum
from datetime import datetime
from datetime import timezone as tz

from sqlalchemy import Boolean, Column, DateTime, Enum, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utc_now():
    return datetime.now(tz.utc)


class Provider(str, enum.Enum):
    razorpay = "razorpay"
    paypal = "paypal"


class Subscription(Base):
    """Current entitlement of one user. Written only through the store adapter."""

    __tablename__ = "subscriptions"
    user_id = Column(String, primary_key=True)
    is_active = Column(Boolean, nullable=False, default=False)
    provider = Column(
        Enum(
            Provider,
            name="entitlement_provider",
            values_callable=lambda e: [p.value for p in e],
            native_enum=False,
            validate_strings=True,
            create_constraint=True,
        ),
        nullable=False,
    )
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    def __repr__(self):
        return (
            f"<Subscription user_id={self.user_id!r} is_active={self.is_active} "
            f"provider={self.provider!r}>"
        )

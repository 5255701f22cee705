from datetime import datetime

from payhook.db import models
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

_ON_CONFLICT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def has_atomic_upsert(db: Session) -> bool:
    return db.get_bind().dialect.name in _ON_CONFLICT_INSERTS


def upsert_subscription(
    db: Session,
    user_id: str,
    is_active: bool,
    provider: models.Provider,
    now: datetime,
) -> None:
    """Create or replace the subscription row for ``user_id``.

    Does not commit; the caller owns the transaction.
    """
    values = {
        "user_id": user_id,
        "is_active": is_active,
        "provider": provider,
        "updated_at": now,
    }
    insert = _ON_CONFLICT_INSERTS.get(db.get_bind().dialect.name)
    if insert is not None:
        stmt = insert(models.Subscription).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id"],
            set_={
                "is_active": stmt.excluded.is_active,
                "provider": stmt.excluded.provider,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        db.execute(stmt)
        return

    sub = db.get(models.Subscription, user_id, with_for_update=True)
    if sub:
        sub.is_active = is_active
        sub.provider = provider
        sub.updated_at = now
    else:
        db.add(models.Subscription(**values))
    db.flush()


def get_subscription(db: Session, user_id: str) -> models.Subscription | None:
    return db.get(models.Subscription, user_id)

import logging
from datetime import datetime
from typing import Callable, Protocol

import sqlalchemy.exc
from payhook.db import crud, models, schemas
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class StoreError(Exception):
    retryable = False


class StoreUnavailable(StoreError):
    """Transient backend failure; the processor may retry."""

    retryable = True


class StoreRejected(StoreError):
    """The store refused the write; retrying the same request will not help."""


class EntitlementStore(Protocol):
    def upsert(
        self, user_id: str, is_active: bool, provider: str, now: datetime
    ) -> None: ...

    def get(self, user_id: str) -> schemas.EntitlementRecord | None: ...


def classify_db_error(exc: Exception) -> StoreError:
    if isinstance(exc, (sqlalchemy.exc.IntegrityError, sqlalchemy.exc.DataError)):
        return StoreRejected(str(exc.orig))
    if isinstance(exc, sqlalchemy.exc.StatementError) and isinstance(
        exc.orig, (LookupError, ValueError)
    ):
        return StoreRejected(str(exc.orig))
    # Connection loss, timeouts, pool exhaustion and anything unrecognised
    return StoreUnavailable(str(exc))


class SqlEntitlementStore:
    """Entitlement store backed by the ``subscriptions`` table.

    Every call runs in its own session and transaction.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def upsert(
        self, user_id: str, is_active: bool, provider: str, now: datetime
    ) -> None:
        try:
            provider_value = models.Provider(provider)
        except ValueError:
            raise StoreRejected(f"Unknown provider {provider!r}")

        try:
            with self._session_factory() as db:
                try:
                    crud.upsert_subscription(
                        db, user_id, is_active, provider_value, now
                    )
                    db.commit()
                except sqlalchemy.exc.IntegrityError:
                    if crud.has_atomic_upsert(db):
                        raise
                    # Lost the insert race on the read-then-write path
                    db.rollback()
                    crud.upsert_subscription(
                        db, user_id, is_active, provider_value, now
                    )
                    db.commit()
        except sqlalchemy.exc.SQLAlchemyError as e:
            error = classify_db_error(e)
            logger.error(
                f"Entitlement upsert failed for user {user_id}: "
                f"{type(error).__name__}: {error}"
            )
            raise error from e
        logger.info(
            f"Entitlement stored: user={user_id} active={is_active} "
            f"provider={provider_value.value}"
        )

    def get(self, user_id: str) -> schemas.EntitlementRecord | None:
        try:
            with self._session_factory() as db:
                sub = crud.get_subscription(db, user_id)
                if sub is None:
                    return None
                return schemas.EntitlementRecord.model_validate(sub)
        except sqlalchemy.exc.SQLAlchemyError as e:
            raise classify_db_error(e) from e

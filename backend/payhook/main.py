import logging
from functools import lru_cache

from fastapi import Depends, FastAPI, Request
from fastapi.responses import PlainTextResponse
from payhook.core.config import get_settings
from payhook.db.session import SessionLocal
from payhook.middleware.body_size import (
    BodySizeLimitMiddleware,
    BodyTooLarge,
    payload_too_large,
    read_body,
)
from payhook.services.entitlement_store import EntitlementStore, SqlEntitlementStore
from payhook.services.razorpay_verify import SIGNATURE_HEADER, SignatureVerifier
from payhook.services.webhook import WebhookController, WebhookRequest
from starlette.concurrency import run_in_threadpool

settings = get_settings()

app = FastAPI(
    title="Payment Webhook Service",
    description="Records entitlements from payment processor webhooks",
    version="1.0.0",
)

app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_body_bytes)

logger = logging.getLogger(__name__)


@app.on_event("startup")
async def startup():
    """Configure logging once per process."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"Entitlement provider: {settings.entitlement_provider}")


# ---------- dependencies ----------
@lru_cache
def get_store() -> EntitlementStore:
    return SqlEntitlementStore(SessionLocal)


def get_controller(store: EntitlementStore = Depends(get_store)) -> WebhookController:
    return WebhookController(
        verifier=SignatureVerifier(settings.webhook_secret_bytes),
        store=store,
        provider=settings.entitlement_provider,
        activate_untyped_events=settings.activate_untyped_events,
    )


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
    return PlainTextResponse("Internal error", status_code=500)


@app.get("/health", include_in_schema=False)
async def health():
    return {"status": "ok"}


# ---------- payment webhook ----------
@app.post("/payment-webhook", response_class=PlainTextResponse)
async def payment_webhook(
    request: Request,
    controller: WebhookController = Depends(get_controller),
):
    # Exact bytes from the wire; the signature covers these, not a re-serialization
    try:
        raw = await read_body(request, settings.max_body_bytes)
    except BodyTooLarge:
        logger.warning("Rejecting webhook body over the size limit")
        return payload_too_large()
    webhook_request = WebhookRequest(
        body=raw,
        signature=request.headers.get(SIGNATURE_HEADER),
        content_type=request.headers.get("content-type"),
    )
    # Worker threads are not cancelled on disconnect; an in-flight upsert completes
    outcome = await run_in_threadpool(controller.handle, webhook_request)
    logger.info(
        f"Webhook handled: state={outcome.state.value} status={outcome.status_code}"
    )
    return PlainTextResponse(outcome.body, status_code=outcome.status_code)

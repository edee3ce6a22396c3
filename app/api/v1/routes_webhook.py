import hmac
import hashlib
import logging
import re
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Header, Request
from pydantic import ValidationError
from app.core.config import settings
from app.core.exceptions import InvalidPayloadError, InvalidSignatureError
from app.schemas.webhook import ProcessedWebhookResponse, WebhookAck, WebhookEvent
from app.services.webhook_guard import WebhookIdempotencyGuard, get_webhook_guard
from app.services.webhook_handlers import WebhookHandlerRegistry, get_webhook_handlers

router = APIRouter(prefix="/webhooks")
logger = logging.getLogger(__name__)

MAX_PROVIDER_LENGTH = 32
_PROVIDER_UNSAFE = re.compile(r"[^a-zA-Z0-9_-]")


def sanitize_provider(provider: str) -> str:
    """Strip anything that is not safe to log or use as a lookup key."""
    return _PROVIDER_UNSAFE.sub("", provider)[:MAX_PROVIDER_LENGTH]


def verify_signature(payload: bytes, signature: str, secret: str) -> bool:
    """
    Verify webhook signature (HMAC-SHA256 over the raw body).
    Header format: sha256=<hex digest>
    """
    expected = hmac.new(
        secret.encode(),
        payload,
        hashlib.sha256
    ).hexdigest()
    return hmac.compare_digest(f"sha256={expected}", signature)


def check_signature(payload: bytes, signature: Optional[str]):
    if settings.ENV == "development":
        return
    if not settings.WEBHOOK_SECRET:
        # fail closed: nothing can be verified without a secret
        logger.warning("WEBHOOK_SECRET not configured, rejecting webhook")
        raise InvalidSignatureError("Webhook secret not configured")
    if not signature:
        raise InvalidSignatureError("Missing signature")
    if not verify_signature(payload, signature, settings.WEBHOOK_SECRET):
        logger.warning("Invalid webhook signature")
        raise InvalidSignatureError()


@router.post("/{provider}", response_model=WebhookAck)
async def receive_webhook(
    provider: str,
    request: Request,
    x_webhook_signature: Optional[str] = Header(None, alias="X-Webhook-Signature"),
    guard: WebhookIdempotencyGuard = Depends(get_webhook_guard),
    handlers: WebhookHandlerRegistry = Depends(get_webhook_handlers),
):
    """
    Receive one webhook delivery and apply its side effect at most once.

    1. verify the signature over the raw body
    2. skip deliveries already recorded
    3. run the handler for (provider, event type)
    4. record the delivery; a concurrent duplicate losing the insert still gets 200
    """
    provider = sanitize_provider(provider)
    if not provider:
        raise InvalidPayloadError("Invalid provider")
    payload = await request.body()
    check_signature(payload, x_webhook_signature)

    try:
        event = WebhookEvent.model_validate_json(payload)
    except ValidationError:
        raise InvalidPayloadError("Invalid JSON or missing id/type")

    logger.info(f"Received {provider} webhook: {event.type} (id: {event.id})")

    if await guard.is_already_processed(event.id):
        logger.info(f"Webhook {event.id} already processed, skipping")
        return WebhookAck(status="already_processed", event_id=event.id)

    await handlers.dispatch(provider, event)

    if not await guard.mark_processed(event.id, event.type):
        return WebhookAck(status="already_processed", event_id=event.id)
    logger.info(f"Webhook {event.id} processed")
    return WebhookAck(status="processed", event_id=event.id)


@router.get("/processed/{delivery_id}", response_model=ProcessedWebhookResponse)
async def get_processed_webhook(delivery_id: str,
                                guard: WebhookIdempotencyGuard = Depends(get_webhook_guard)):
    record = await guard.get_record(delivery_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Delivery not found")
    return record

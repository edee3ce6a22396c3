import logging
from typing import Optional
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from app.core.config import settings
from app.core.exceptions import DuplicateDeliveryError, StorageUnavailableError
from app.db.session import async_session_factory
from app.models.processed_webhook import ProcessedWebhook, utcnow
from app.redis import redis_client
from app.services.seen_cache import RecentDeliveryCache

logger = logging.getLogger(__name__)


class WebhookIdempotencyGuard:
    """
    Makes sure each webhook delivery is applied at most once.

    Call is_already_processed() before the business effect to skip obvious
    repeats, and mark_processed() once the effect has succeeded. The primary key
    on processed_webhooks.delivery_id is what actually decides a race between
    two deliveries of the same event; the pre-check only saves work.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession],
                 seen_cache: Optional[RecentDeliveryCache] = None):
        self.session_factory = session_factory
        self.seen_cache = seen_cache

    async def is_already_processed(self, delivery_id: str) -> bool:
        if self.seen_cache is not None and await self.seen_cache.contains(delivery_id):
            return True

        found = await self._exists(delivery_id)
        if found and self.seen_cache is not None:
            await self.seen_cache.add(delivery_id)
        return found

    async def mark_processed(self, delivery_id: str, event_type: str) -> bool:
        """
        Record the delivery as processed.

        Returns True if this call stored the record, False if the delivery was
        already recorded (by an earlier or a concurrent call). The stored row is
        never modified, so the first event_type and processed_at win.
        """
        if not delivery_id or not delivery_id.strip():
            raise ValueError("delivery_id must not be blank")
        if not event_type or not event_type.strip():
            raise ValueError("event_type must not be blank")

        try:
            await self._insert(delivery_id, event_type)
            recorded = True
        except DuplicateDeliveryError:
            logger.debug(f"Delivery {delivery_id} already processed, skipping insert")
            recorded = False

        if self.seen_cache is not None:
            await self.seen_cache.add(delivery_id)
        return recorded

    async def get_record(self, delivery_id: str) -> Optional[ProcessedWebhook]:
        try:
            async with self.session_factory() as db:
                return await db.get(ProcessedWebhook, delivery_id)
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"failed to load delivery {delivery_id}: {e}", exc_info=True)
            raise StorageUnavailableError("failed to load processed webhook") from e

    async def _exists(self, delivery_id: str) -> bool:
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(ProcessedWebhook.delivery_id)
                    .where(ProcessedWebhook.delivery_id == delivery_id)
                )
                return result.scalar_one_or_none() is not None
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"failed to check delivery {delivery_id}: {e}", exc_info=True)
            raise StorageUnavailableError("failed to check processed webhook") from e

    async def _insert(self, delivery_id: str, event_type: str) -> None:
        try:
            async with self.session_factory() as db:
                async with db.begin():
                    db.add(ProcessedWebhook(
                        delivery_id=delivery_id,
                        event_type=event_type,
                        processed_at=utcnow(),
                    ))
        except IntegrityError as e:
            # Only a primary key collision means "already processed"; any other
            # constraint failure leaves no row behind for this delivery.
            if await self._exists(delivery_id):
                raise DuplicateDeliveryError(delivery_id) from e
            logger.error(f"failed to record delivery {delivery_id}: {e}", exc_info=True)
            raise StorageUnavailableError("failed to record processed webhook") from e
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"failed to record delivery {delivery_id}: {e}", exc_info=True)
            raise StorageUnavailableError("failed to record processed webhook") from e


def build_webhook_guard() -> WebhookIdempotencyGuard:
    seen_cache = None
    if settings.SEEN_CACHE_ENABLED:
        seen_cache = RecentDeliveryCache(
            redis_client, ttl_seconds=settings.SEEN_CACHE_TTL_SECONDS)
    return WebhookIdempotencyGuard(async_session_factory, seen_cache=seen_cache)


webhook_guard = build_webhook_guard()


def get_webhook_guard() -> WebhookIdempotencyGuard:
    """FastAPI dependency returning the process-wide guard."""
    return webhook_guard

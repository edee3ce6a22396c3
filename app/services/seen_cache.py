import logging
from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

# Key pattern: webhook:processed:{delivery_id}
KEY_PREFIX = "webhook:processed"


class RecentDeliveryCache:
    """
    Short-lived Redis record of deliveries known to be processed.

    Only a fast path in front of the processed_webhooks table: a miss says
    nothing, and Redis failures degrade to a miss instead of failing the webhook.
    """

    def __init__(self, redis: Redis, ttl_seconds: int = 86400):
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key_for(delivery_id: str) -> str:
        return f"{KEY_PREFIX}:{delivery_id}"

    async def contains(self, delivery_id: str) -> bool:
        try:
            return await self.redis.exists(self.key_for(delivery_id)) > 0
        except RedisError:
            logger.warning(
                f"Redis unavailable for delivery lookup, falling back to database: {delivery_id}",
                exc_info=True)
            return False

    async def add(self, delivery_id: str) -> None:
        try:
            await self.redis.set(self.key_for(delivery_id), "1", ex=self.ttl_seconds)
        except RedisError:
            logger.warning(
                f"Failed to cache processed delivery {delivery_id}", exc_info=True)

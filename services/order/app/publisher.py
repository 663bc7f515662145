"""
Order Service - event publisher (Redis Pub/Sub)

Publishing happens after the transaction has committed and is best effort:
a failure or a broker that stops answering is logged and dropped. No retry,
no outbox. Redis Pub/Sub is fire-and-forget anyway, so a subscriber that is
down misses the event.
"""

import asyncio
import json
import logging
from uuid import UUID

import redis.asyncio as aioredis
from pydantic import BaseModel

logger = logging.getLogger(__name__)

ORDER_CREATED_CHANNEL = "order-created"
ORDER_STATUS_UPDATED_CHANNEL = "order-status-updated"
ORDER_CANCELLED_CHANNEL = "order-cancelled"

DEFAULT_PUBLISH_TIMEOUT = 2.0


class EventPublisher:
    def __init__(self, redis: aioredis.Redis, timeout: float = DEFAULT_PUBLISH_TIMEOUT):
        self.redis = redis
        self.timeout = timeout

    async def publish(self, channel: str, key: UUID, event: BaseModel) -> bool:
        """
        Publish one event to `channel`, waiting at most `timeout` seconds.
        Returns False instead of raising when the broker call fails.
        """
        event_type = type(event).__name__
        body = json.dumps({
            "event_type": event_type,
            "key": str(key),
            "data": event.model_dump(mode="json"),
        }, default=str)
        try:
            await asyncio.wait_for(self.redis.publish(channel, body), self.timeout)
        except Exception:
            logger.exception("Failed to publish %s event: orderId=%s", event_type, key)
            return False
        logger.info("Published %s event: orderId=%s", event_type, key)
        return True

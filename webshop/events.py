"""
Webshop: イベント定義と発行

注文が台帳に確定したら OrderCompleted を Redis Pub/Sub の
order_events チャネルに発行する。REDIS_URL 未設定なら発行しない。
発行の失敗は注文の結果に影響しない。
"""

import json
import logging
from datetime import datetime

import redis.asyncio as aioredis
from pydantic import BaseModel

logger = logging.getLogger(__name__)

CHANNEL = "order_events"


class OrderCompleted(BaseModel):
    """注文が確定した"""
    order_id: str
    customer_email: str
    shipping_method: str
    total_quantity: int
    total: float
    timestamp: datetime


class EventPublisher:
    def __init__(self, redis: aioredis.Redis | None = None) -> None:
        self.redis = redis

    async def publish(self, event: BaseModel) -> None:
        if self.redis is None:
            return
        event_type = type(event).__name__
        try:
            await self.redis.publish(
                CHANNEL,
                json.dumps(
                    {
                        "event_type": event_type,
                        "data": event.model_dump(mode="json"),
                    },
                    default=str,
                ),
            )
        except Exception:
            logger.exception("Failed to publish %s", event_type)

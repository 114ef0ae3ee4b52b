"""
Shelter Service — イベント発行

猫の登録・販売・購入 Saga の補償を Redis Pub/Sub の
shelter_events チャネルに発行する。

Pub/Sub は fire-and-forget。発行に失敗しても完了済みの操作は
取り消さず、ログに残すだけにする。
"""

import json
import logging
from datetime import datetime, timezone

import redis.asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

CHANNEL = "shelter_events"


class RedisEventPublisher:
    def __init__(self, redis: aioredis.Redis, channel: str = CHANNEL):
        self.redis = redis
        self.channel = channel

    async def publish(self, event_type: str, payload: dict) -> None:
        message = json.dumps(
            {
                "event_type": event_type,
                "data": payload,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
            default=str,
        )
        try:
            await self.redis.publish(self.channel, message)
        except RedisError:
            logger.exception("Failed to publish %s", event_type)

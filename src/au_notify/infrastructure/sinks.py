"""Notification sinks — where dispatched messages actually go.

LogNotificationSink: default for local dev and tests.
RedisNotificationSink: PUBLISH to per-recipient and per-auction channels for
the websocket / e-mail workers that live outside this service.
"""
import json
import logging

from src.au_common.redis_client import get_redis
from src.au_notify.events import Notification

logger = logging.getLogger("au.notify")


class LogNotificationSink:
    async def send(self, notification: Notification) -> None:
        logger.info(
            "notify %s → %s %s",
            notification.event.value,
            notification.recipient_id,
            notification.payload,
        )


class RedisNotificationSink:
    async def send(self, notification: Notification) -> None:
        redis = await get_redis()
        message = json.dumps(notification.to_message(), default=str)
        await redis.publish(f"notify:user:{notification.recipient_id}", message)
        item_id = notification.payload.get("item_id")
        if item_id:
            await redis.publish(f"notify:auction:{item_id}", message)

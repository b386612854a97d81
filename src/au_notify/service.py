# src/au_notify/service.py
from config.settings import settings
from src.au_notify.dispatcher import NotificationDispatcher
from src.au_notify.events import NotificationSink
from src.au_notify.infrastructure.sinks import LogNotificationSink, RedisNotificationSink

_dispatcher: NotificationDispatcher | None = None


def _build_sink() -> NotificationSink:
    if settings.NOTIFY_BACKEND == "redis":
        return RedisNotificationSink()
    return LogNotificationSink()


def get_notification_dispatcher() -> NotificationDispatcher:
    global _dispatcher  # noqa: PLW0603
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher(_build_sink(), maxsize=settings.NOTIFY_QUEUE_MAXSIZE)
    return _dispatcher

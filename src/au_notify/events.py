"""Outbound notification message and the port the core writes to."""
from dataclasses import dataclass, field
from typing import Any, Protocol

from src.au_common.enums import NotificationEvent


@dataclass(frozen=True)
class Notification:
    recipient_id: str
    event: NotificationEvent
    payload: dict[str, Any] = field(default_factory=dict)

    def to_message(self) -> dict[str, Any]:
        return {
            "recipient_id": self.recipient_id,
            "event": self.event.value,
            "payload": self.payload,
        }


class NotifierProtocol(Protocol):
    def notify_many(self, notifications: list[Notification]) -> None:
        """Hand off without blocking; must never raise into the caller."""
        ...


class NotificationSink(Protocol):
    async def send(self, notification: Notification) -> None: ...

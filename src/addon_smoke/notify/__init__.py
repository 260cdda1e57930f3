"""Run notifications: buffered text and chat transport."""

from addon_smoke.notify.buffer import NotificationBuffer, NotificationTransport, NullTransport
from addon_smoke.notify.chatwork import ChatworkTransport, start_banner

__all__ = [
    "ChatworkTransport",
    "NotificationBuffer",
    "NotificationTransport",
    "NullTransport",
    "start_banner",
]

"""
TN Notification Sinks

Provides a unified interface to whatever presents notifications:
- Desktop (notify-send / osascript)
- Memory (testing, headless)

All sinks implement the NotificationSink interface, so the session
manager works with any of them.
"""

from .base import (
    NotificationSink,
    NotificationContent,
    DeliveredItem,
    Attachment,
    AuthorizationStatus,
    SinkError,
    DEFAULT_SOUND,
)

from .memory import MemorySink
from .desktop import DesktopSink

__all__ = [
    'NotificationSink',
    'NotificationContent',
    'DeliveredItem',
    'Attachment',
    'AuthorizationStatus',
    'SinkError',
    'DEFAULT_SOUND',
    'MemorySink',
    'DesktopSink',
]

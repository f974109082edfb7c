"""
TN Notification Sink Base Class

Defines the abstract interface to the subsystem that actually presents
and stores notifications (the platform notification center, a desktop
notifier, or an in-memory store for tests).

Design Principles:
- Simple, blocking interface
- The sink owns the delivered-notification set
- Failures raise SinkError; the session maps them to runtime errors
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional

from ..ipc.messages import InterruptionLevel


# Sound sentinel meaning "platform default sound"
DEFAULT_SOUND = "default"


class SinkError(Exception):
    """Exception raised for sink-level failures."""
    pass


class AuthorizationStatus(Enum):
    """Whether this process may present notifications."""
    AUTHORIZED = "authorized"
    PROVISIONAL = "provisional"
    EPHEMERAL = "ephemeral"
    DENIED = "denied"
    NOT_DETERMINED = "notDetermined"

    @property
    def allows_delivery(self) -> bool:
        return self in (
            AuthorizationStatus.AUTHORIZED,
            AuthorizationStatus.PROVISIONAL,
            AuthorizationStatus.EPHEMERAL,
        )


@dataclass
class Attachment:
    """Resolved local attachment."""
    identifier: str
    path: Path
    # True when the file is a temporary download owned by the shim
    temporary: bool = False


@dataclass
class NotificationContent:
    """
    Platform-neutral notification content handed to a sink.
    """
    identifier: str
    title: str
    body: str
    subtitle: Optional[str] = None
    sound: Optional[str] = None
    interruption_level: InterruptionLevel = InterruptionLevel.ACTIVE
    thread_id: Optional[str] = None
    attachment: Optional[Attachment] = None

    # Click actions, passed through untouched
    open_url: Optional[str] = None
    execute: Optional[str] = None
    activate_bundle_id: Optional[str] = None

    @property
    def uses_default_sound(self) -> bool:
        return self.sound == DEFAULT_SOUND


@dataclass
class DeliveredItem:
    """A notification currently in the sink's delivered set."""
    id: str
    group_tag: str
    title: str
    subtitle: str
    body: str
    delivered_at: float = field(default_factory=time.time)


class NotificationSink(ABC):
    """
    Abstract base class for notification sinks.

    Usage:
        sink = ConcreteSink()
        if sink.current_authorization_status().allows_delivery:
            sink.submit(content, delay=0.1)
        for item in sink.list_delivered():
            print(item.title)
    """

    def __init__(self, name: str = "sink"):
        """
        Args:
            name: Human-readable name for this sink
        """
        self.name = name

        # Statistics
        self._submitted = 0
        self._removed = 0
        self._submit_errors = 0

    @abstractmethod
    def current_authorization_status(self) -> AuthorizationStatus:
        """Return the current authorization state without prompting."""
        pass

    @abstractmethod
    def request_authorization(self) -> bool:
        """
        Ask the user for permission to post notifications.

        May block for as long as the user takes to answer.

        Returns:
            True if granted
        """
        pass

    @abstractmethod
    def list_delivered(self) -> List[DeliveredItem]:
        """Return delivered notifications in the sink's enumeration order."""
        pass

    @abstractmethod
    def remove_delivered(self, ids: Iterable[str]) -> None:
        """Remove delivered notifications by identifier."""
        pass

    @abstractmethod
    def remove_all_delivered(self) -> None:
        """Remove every delivered notification."""
        pass

    @abstractmethod
    def submit(self, content: NotificationContent, delay: float = 0.0) -> None:
        """
        Schedule a notification for delivery.

        Args:
            content: What to present
            delay: Scheduling delay in seconds

        Raises:
            SinkError: If the sink rejects the notification
        """
        pass

    def close(self) -> None:
        """Release sink resources."""
        pass

    def get_stats(self) -> dict:
        """Get sink statistics."""
        return {
            "name": self.name,
            "submitted": self._submitted,
            "removed": self._removed,
            "submit_errors": self._submit_errors,
        }

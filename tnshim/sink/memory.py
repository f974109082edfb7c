"""
TN Memory Sink

A notification sink that keeps the delivered set in process memory and
presents nothing.

Useful for:
- Unit and integration testing
- Headless machines
- Base bookkeeping for sinks that only know how to present

Features:
- Configurable authorization state and prompt answer
- Optional injected submit failure
- Thread-safe delivered store
"""

import logging
import threading
import time
from typing import Dict, Iterable, List, Optional

from .base import (
    AuthorizationStatus,
    DeliveredItem,
    NotificationContent,
    NotificationSink,
    SinkError,
)


logger = logging.getLogger(__name__)


class MemorySink(NotificationSink):
    """
    In-memory notification sink.

    Usage:
        sink = MemorySink(authorization=AuthorizationStatus.NOT_DETERMINED,
                          grant_on_request=True)
        session = SessionManager(sink)
        session.post(payload)
        assert len(sink.list_delivered()) == 1
    """

    def __init__(
        self,
        name: str = "memory",
        authorization: AuthorizationStatus = AuthorizationStatus.AUTHORIZED,
        grant_on_request: bool = True,
    ):
        """
        Initialize memory sink.

        Args:
            name: Sink instance name
            authorization: Initial authorization state
            grant_on_request: Answer given when authorization is requested
        """
        super().__init__(name)
        self._authorization = authorization
        self._grant_on_request = grant_on_request
        self._delivered: Dict[str, DeliveredItem] = {}
        self._contents: Dict[str, NotificationContent] = {}
        self._lock = threading.RLock()

        self.authorization_requests = 0
        self.fail_next_submit: Optional[str] = None

    def current_authorization_status(self) -> AuthorizationStatus:
        return self._authorization

    def set_authorization(self, status: AuthorizationStatus) -> None:
        self._authorization = status

    def request_authorization(self) -> bool:
        self.authorization_requests += 1
        granted = self._grant_on_request
        self._authorization = (
            AuthorizationStatus.AUTHORIZED if granted else AuthorizationStatus.DENIED
        )
        return granted

    def list_delivered(self) -> List[DeliveredItem]:
        with self._lock:
            return list(self._delivered.values())

    def content_for(self, identifier: str) -> Optional[NotificationContent]:
        """Full content of a delivered notification, if still present."""
        with self._lock:
            return self._contents.get(identifier)

    def remove_delivered(self, ids: Iterable[str]) -> None:
        with self._lock:
            for identifier in ids:
                if self._delivered.pop(identifier, None) is not None:
                    self._release(self._contents.pop(identifier, None))
                    self._removed += 1

    def remove_all_delivered(self) -> None:
        with self._lock:
            self._removed += len(self._delivered)
            for content in self._contents.values():
                self._release(content)
            self._delivered.clear()
            self._contents.clear()

    def _release(self, content: Optional[NotificationContent]) -> None:
        """Delete a downloaded attachment once its notification is gone."""
        if content is None or content.attachment is None or not content.attachment.temporary:
            return
        try:
            content.attachment.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove {content.attachment.path}: {e}")

    def submit(self, content: NotificationContent, delay: float = 0.0) -> None:
        if self.fail_next_submit is not None:
            reason, self.fail_next_submit = self.fail_next_submit, None
            self._submit_errors += 1
            raise SinkError(reason)

        self.present(content)

        item = DeliveredItem(
            id=content.identifier,
            group_tag=content.thread_id or "",
            title=content.title,
            subtitle=content.subtitle or "",
            body=content.body,
            delivered_at=time.time() + delay,
        )
        with self._lock:
            self._delivered[item.id] = item
            self._contents[item.id] = content
            self._submitted += 1

        logger.debug(f"Delivered {item.id} (group={item.group_tag or '-'})")

    def present(self, content: NotificationContent) -> None:
        """Show the notification; the memory sink shows nothing."""
        pass

    def close(self) -> None:
        with self._lock:
            for content in self._contents.values():
                self._release(content)

    def get_stats(self) -> dict:
        stats = super().get_stats()
        stats["delivered"] = len(self._delivered)
        stats["authorization"] = self._authorization.value
        return stats

"""
TN Session Manager

The stateful core of the shim. Mediates between decoded requests and the
notification sink.

Post:
    validate -> authorization gate -> group replacement
             -> attachment resolution -> submit
List:
    delivered set -> filter by group -> TSV table
Remove:
    ALL -> clear everything, else clear one group (no matches is fine)

Group invariant: at most one delivered notification per group. Posting to
a group first removes whatever that group already shows.

Every operation holds the session lock, so group read-then-act sequences
never interleave even if requests are served concurrently.
"""

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Optional

from .. import ALL_GROUPS, MAX_ATTACHMENT_SIZE
from ..errors import (
    NotAuthorized,
    NotifierError,
    NotifierRuntimeError,
    ResultStatus,
    ValidationError,
)
from ..ipc.messages import (
    ListRequest,
    NotificationPayload,
    RemoveRequest,
    Request,
    Result,
    SendRequest,
)
from ..sink.base import (
    Attachment,
    AuthorizationStatus,
    DeliveredItem,
    NotificationContent,
    NotificationSink,
)
from ..validation import validate
from .attachments import AttachmentResolver


logger = logging.getLogger(__name__)

# Scheduling delay for submitted notifications (seconds)
DEFAULT_DELIVERY_DELAY = 0.1

LIST_COLUMNS = ("group", "title", "subtitle", "message", "deliveredAt")
LIST_HEADER = "\t".join(LIST_COLUMNS)


def _cell(value: str) -> str:
    return value.replace("\t", " ").replace("\r", " ").replace("\n", " ")


def format_row(item: DeliveredItem) -> str:
    delivered_at = datetime.fromtimestamp(item.delivered_at, tz=timezone.utc)
    return "\t".join([
        _cell(item.group_tag),
        _cell(item.title),
        _cell(item.subtitle),
        _cell(item.body),
        delivered_at.isoformat(timespec="seconds"),
    ])


class SessionManager:
    """
    Notification session state machine.

    Usage:
        session = SessionManager(MemorySink())

        # Direct calls raise NotifierError / ValidationError
        session.post(payload)
        print(session.list("ALL"))
        session.remove("build")

        # Request dispatch never raises; errors become Results
        result = session.handle(ListRequest(group="ALL"))
    """

    def __init__(
        self,
        sink: NotificationSink,
        resolver: Optional[AttachmentResolver] = None,
        max_attachment_bytes: int = MAX_ATTACHMENT_SIZE,
        delivery_delay: float = DEFAULT_DELIVERY_DELAY,
    ):
        """
        Initialize session manager.

        Args:
            sink: Sink that presents and stores notifications
            resolver: Attachment resolver (default: HTTP fetcher)
            max_attachment_bytes: Largest accepted local attachment
            delivery_delay: Scheduling delay passed to the sink
        """
        self._sink = sink
        self._resolver = resolver or AttachmentResolver()
        self._max_attachment_bytes = max_attachment_bytes
        self._delivery_delay = delivery_delay
        self._lock = threading.Lock()

        # Statistics
        self._posted = 0
        self._replaced = 0
        self._failures = 0

    @property
    def sink(self) -> NotificationSink:
        return self._sink

    # =========================================================================
    # Operations
    # =========================================================================

    def post(self, payload: NotificationPayload) -> str:
        """
        Post a notification.

        Args:
            payload: Notification to deliver

        Returns:
            Identifier of the submitted notification

        Raises:
            ValidationError: Payload rejected (nothing was touched)
            NotAuthorized: User has not allowed notifications
            InvalidAttachment: contentImage could not be resolved
            NotifierRuntimeError: The sink failed
        """
        validate(payload, self._max_attachment_bytes)

        with self._lock:
            self._ensure_authorized()

            if payload.group_id:
                self._replace_group(payload.group_id)

            attachment = None
            if payload.content_image:
                attachment = self._resolver.resolve(payload.content_image)

            content = self._build_content(payload, attachment)
            try:
                self._sink.submit(content, delay=self._delivery_delay)
            except Exception as e:
                if attachment is not None and attachment.temporary:
                    attachment.path.unlink(missing_ok=True)
                raise NotifierRuntimeError(str(e) or type(e).__name__)

            self._posted += 1
            logger.info(
                f"Posted {content.identifier} "
                f"(group={payload.group_id or '-'}, level={payload.interruption_level.value})"
            )
            return content.identifier

    def list(self, group: str) -> str:
        """
        List delivered notifications as a TSV table.

        Args:
            group: Group identifier or ALL

        Returns:
            Header row followed by one row per matching notification
        """
        with self._lock:
            items = self._delivered(group)
        return "\n".join([LIST_HEADER] + [format_row(item) for item in items])

    def remove(self, group: str) -> int:
        """
        Remove delivered notifications for a group or ALL.

        Returns:
            Number of notifications removed
        """
        with self._lock:
            if group == ALL_GROUPS:
                count = len(self._sink_call(self._sink.list_delivered))
                self._sink_call(self._sink.remove_all_delivered)
            else:
                ids = [item.id for item in self._delivered(group)]
                count = len(ids)
                if ids:
                    self._sink_call(self._sink.remove_delivered, ids)
        logger.info(f"Removed {count} notification(s) from {group}")
        return count

    # =========================================================================
    # Request dispatch
    # =========================================================================

    def handle(self, request: Request) -> Result:
        """
        Run a decoded request and wrap the outcome in a Result.

        Never raises for session failures.
        """
        result = Result(status=ResultStatus.OK, correlation_id=request.correlation_id)
        try:
            if isinstance(request, SendRequest):
                self.post(request.payload)
            elif isinstance(request, ListRequest):
                result.message = self.list(request.group)
            elif isinstance(request, RemoveRequest):
                self.remove(request.group)
            else:
                raise NotifierRuntimeError(f"unsupported request: {type(request).__name__}")
        except (NotifierError, ValidationError) as e:
            self._failures += 1
            logger.warning(f"{request.correlation_id} failed: {e}")
            result.status = e.status
            result.message = str(e)
        except Exception as e:
            self._failures += 1
            logger.error(f"{request.correlation_id} crashed: {e}", exc_info=True)
            result.status = ResultStatus.RUNTIME_ERROR
            result.message = str(e) or type(e).__name__
        return result

    # =========================================================================
    # Internals
    # =========================================================================

    def _sink_call(self, fn, *args):
        try:
            return fn(*args)
        except NotifierError:
            raise
        except Exception as e:
            raise NotifierRuntimeError(str(e) or type(e).__name__)

    def _ensure_authorized(self) -> None:
        status = self._sink_call(self._sink.current_authorization_status)
        if status.allows_delivery:
            return
        if status == AuthorizationStatus.DENIED:
            raise NotAuthorized()

        # NOT_DETERMINED: ask and wait for the user
        logger.info("Requesting notification authorization")
        if not self._sink_call(self._sink.request_authorization):
            raise NotAuthorized()

    def _replace_group(self, group_id: str) -> None:
        try:
            ids = [item.id for item in self._sink.list_delivered() if item.group_tag == group_id]
            if ids:
                self._sink.remove_delivered(ids)
                self._replaced += len(ids)
                logger.debug(f"Replaced {len(ids)} notification(s) in group {group_id}")
        except Exception as e:
            logger.warning(f"Group replacement for {group_id} failed: {e}")

    def _delivered(self, group: str):
        items = self._sink_call(self._sink.list_delivered)
        if group == ALL_GROUPS:
            return items
        return [item for item in items if item.group_tag == group]

    def _build_content(
        self,
        payload: NotificationPayload,
        attachment: Optional[Attachment],
    ) -> NotificationContent:
        return NotificationContent(
            identifier=str(uuid.uuid4()),
            title=payload.title,
            subtitle=payload.subtitle,
            body=payload.message,
            sound=payload.sound,
            interruption_level=payload.interruption_level,
            thread_id=payload.group_id,
            attachment=attachment,
            open_url=payload.open_url,
            execute=payload.execute,
            activate_bundle_id=payload.activate_bundle_id,
        )

    def get_stats(self) -> dict:
        """Get session statistics."""
        return {
            "posted": self._posted,
            "replaced": self._replaced,
            "failures": self._failures,
            "sink": self._sink.get_stats(),
        }

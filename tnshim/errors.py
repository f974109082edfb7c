"""
TN Error Taxonomy

All errors raised by the shim and its client derive from TNError.

Families:
- ProtocolError   : malformed or undecodable frames (connection-local)
- IPCError        : transport failures seen by the RPC client
- ValidationError : payload preflight rejections
- NotifierError   : session manager failures reported back as a Result

Every ValidationError and NotifierError carries a stable status string
that is sent on the wire in Result.status.
"""

from typing import Optional


class ResultStatus:
    """Status vocabulary for Result.status."""
    OK = "ok"
    INVALID_PAYLOAD = "invalid_payload"
    NOT_AUTHORIZED = "not_authorized"
    INVALID_ATTACHMENT = "invalid_attachment"
    RUNTIME_ERROR = "runtime_error"

    ALL = (OK, INVALID_PAYLOAD, NOT_AUTHORIZED, INVALID_ATTACHMENT, RUNTIME_ERROR)


class TNError(Exception):
    """Base class for all TN errors."""
    pass


# =============================================================================
# Protocol
# =============================================================================

class ProtocolError(TNError):
    """Peer sent something that is not a valid frame or message."""
    pass


class FrameError(ProtocolError):
    """Frame header is invalid (e.g. declared length over the limit)."""
    pass


class DecodeError(ProtocolError):
    """Payload bytes do not match the expected message shape."""
    pass


# =============================================================================
# Transport
# =============================================================================

class IPCError(TNError):
    """Transport failure while talking to the shim."""

    def __init__(self, message: str, errno: Optional[int] = None):
        super().__init__(message)
        self.errno = errno


class ConnectError(IPCError):
    """Socket path missing, refused, or too long."""

    def __init__(self, path: str, reason: str, errno: Optional[int] = None):
        super().__init__(f"connect({path}) failed: {reason}", errno)
        self.path = path


class WriteError(IPCError):
    """Writing the request frame failed."""
    pass


class ReadError(IPCError):
    """Reading the response frame failed."""
    pass


class ShortReadError(IPCError):
    """Peer closed the connection before the declared length arrived."""

    def __init__(self, expected: int, received: int):
        super().__init__(f"short read: expected {expected} bytes, got {received}")
        self.expected = expected
        self.received = received


# =============================================================================
# Validation
# =============================================================================

class ValidationError(TNError):
    """Payload rejected before any side effect."""
    status = ResultStatus.INVALID_PAYLOAD


class EmptyMessage(ValidationError):
    def __init__(self):
        super().__init__("message is required (use --message or pipe stdin)")


class InvalidOpenURL(ValidationError):
    def __init__(self, value: str):
        super().__init__(f"invalid --open URL: {value}")
        self.value = value


class AttachmentNotFound(ValidationError):
    def __init__(self, path: str):
        super().__init__(f"content image not found: {path}")
        self.path = path


class AttachmentTooLarge(ValidationError):
    def __init__(self, path: str, size: int, max_size: int):
        super().__init__(f"content image too large ({size} > {max_size} bytes): {path}")
        self.path = path
        self.size = size
        self.max_size = max_size


class InvalidWaitSeconds(ValidationError):
    def __init__(self, value: int):
        super().__init__(f"invalid --wait value (must be > 0): {value}")
        self.value = value


# =============================================================================
# Session
# =============================================================================

class NotifierError(TNError):
    """Session manager failure, converted to a Result by the server."""
    status = ResultStatus.RUNTIME_ERROR


class NotAuthorized(NotifierError):
    status = ResultStatus.NOT_AUTHORIZED

    def __init__(self, message: str = "notifications not authorized"):
        super().__init__(message)


class InvalidAttachment(NotifierError):
    status = ResultStatus.INVALID_ATTACHMENT

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class NotifierRuntimeError(NotifierError):
    """Sink-level failure; wraps whatever the platform reported."""
    status = ResultStatus.RUNTIME_ERROR

    def __init__(self, description: str):
        super().__init__(description)
        self.description = description

"""
TN IPC Messages

Request and response types exchanged between the `tn` CLI and the shim.

Wire shapes (JSON objects, member order irrelevant):
    SendRequest   {op: "send",   correlationID, payload: NotificationPayload}
    ListRequest   {op: "list",   correlationID, group}
    RemoveRequest {op: "remove", correlationID, group}
    Result        {correlationID?, status, message?}

Requests are not wrapped in an envelope. A receiver probes the variants in
the fixed order Send, List, Remove and keeps the first structural match.
The `op` member (protocol version 2) is always written; when present it
must name the variant being probed. Untagged payloads from version 1
peers still decode, with List taking precedence over the identically
shaped Remove.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Type, Union

from ..errors import DecodeError, ResultStatus


class InterruptionLevel(str, Enum):
    """How strongly a notification may interrupt the user."""
    PASSIVE = "passive"
    ACTIVE = "active"
    TIME_SENSITIVE = "timeSensitive"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["InterruptionLevel"]:
        """Parse a wire/CLI value, returning None when unknown."""
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


# =============================================================================
# Structural decoding helpers
# =============================================================================

def _require(data: Dict[str, Any], key: str, kind: Union[type, Tuple[type, ...]]) -> Any:
    if key not in data or data[key] is None:
        raise DecodeError(f"missing required member: {key}")
    value = data[key]
    if isinstance(value, bool) and kind is not bool:
        raise DecodeError(f"member {key} has wrong type: bool")
    if not isinstance(value, kind):
        raise DecodeError(f"member {key} has wrong type: {type(value).__name__}")
    return value


def _optional(data: Dict[str, Any], key: str, kind: Union[type, Tuple[type, ...]]) -> Any:
    if data.get(key) is None:
        return None
    return _require(data, key, kind)


def _require_object(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise DecodeError(f"expected JSON object, got {type(data).__name__}")
    return data


def _parse_uuid(value: str, key: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise DecodeError(f"member {key} is not a UUID: {value!r}")


def _check_op(data: Dict[str, Any], op: str) -> None:
    tag = data.get("op")
    if tag is not None and tag != op:
        raise DecodeError(f"op {tag!r} does not match {op!r}")


def _prune(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


# =============================================================================
# Payload
# =============================================================================

@dataclass
class NotificationPayload:
    """
    The unit of content to deliver.

    Only `title` and `message` are required; everything else is optional
    and omitted from the wire when unset.
    """
    title: str
    message: str
    subtitle: Optional[str] = None
    group_id: Optional[str] = None
    sound: Optional[str] = None
    open_url: Optional[str] = None
    execute: Optional[str] = None
    activate_bundle_id: Optional[str] = None
    content_image: Optional[str] = None
    sender_profile: Optional[str] = None
    interruption_level: InterruptionLevel = InterruptionLevel.ACTIVE
    wait_seconds: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return _prune({
            "title": self.title,
            "subtitle": self.subtitle,
            "message": self.message,
            "groupID": self.group_id,
            "sound": self.sound,
            "openURL": self.open_url,
            "execute": self.execute,
            "activateBundleID": self.activate_bundle_id,
            "contentImage": self.content_image,
            "senderProfile": self.sender_profile,
            "interruptionLevel": self.interruption_level.value,
            "waitSeconds": self.wait_seconds,
        })

    @classmethod
    def from_dict(cls, data: Any) -> "NotificationPayload":
        data = _require_object(data)

        level_raw = _optional(data, "interruptionLevel", str)
        level = InterruptionLevel.ACTIVE
        if level_raw is not None:
            level = InterruptionLevel.parse(level_raw)
            if level is None:
                raise DecodeError(f"unknown interruptionLevel: {level_raw!r}")

        return cls(
            title=_require(data, "title", str),
            message=_require(data, "message", str),
            subtitle=_optional(data, "subtitle", str),
            group_id=_optional(data, "groupID", str),
            sound=_optional(data, "sound", str),
            open_url=_optional(data, "openURL", str),
            execute=_optional(data, "execute", str),
            activate_bundle_id=_optional(data, "activateBundleID", str),
            content_image=_optional(data, "contentImage", str),
            sender_profile=_optional(data, "senderProfile", str),
            interruption_level=level,
            wait_seconds=_optional(data, "waitSeconds", int),
        )


# =============================================================================
# Requests
# =============================================================================

@dataclass
class SendRequest:
    """Post a notification."""
    payload: NotificationPayload
    correlation_id: uuid.UUID = field(default_factory=uuid.uuid4)

    OP = "send"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "op": self.OP,
            "correlationID": str(self.correlation_id),
            "payload": self.payload.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "SendRequest":
        data = _require_object(data)
        _check_op(data, cls.OP)
        correlation_id = _parse_uuid(_require(data, "correlationID", str), "correlationID")
        payload = NotificationPayload.from_dict(_require(data, "payload", dict))
        return cls(payload=payload, correlation_id=correlation_id)


@dataclass
class _GroupRequest:
    group: str
    correlation_id: uuid.UUID = field(default_factory=uuid.uuid4)

    OP = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "op": self.OP,
            "correlationID": str(self.correlation_id),
            "group": self.group,
        }

    @classmethod
    def from_dict(cls, data: Any):
        data = _require_object(data)
        _check_op(data, cls.OP)
        correlation_id = _parse_uuid(_require(data, "correlationID", str), "correlationID")
        return cls(group=_require(data, "group", str), correlation_id=correlation_id)


@dataclass
class ListRequest(_GroupRequest):
    """List delivered notifications for a group or ALL."""
    OP = "list"


@dataclass
class RemoveRequest(_GroupRequest):
    """Remove delivered notifications for a group or ALL."""
    OP = "remove"


Request = Union[SendRequest, ListRequest, RemoveRequest]

# Probe order is part of the wire contract; do not reorder.
REQUEST_PROBE_ORDER: Tuple[Type, ...] = (SendRequest, ListRequest, RemoveRequest)


# =============================================================================
# Response
# =============================================================================

@dataclass
class Result:
    """Response envelope for every decoded request."""
    status: str
    correlation_id: Optional[uuid.UUID] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.OK

    def to_dict(self) -> Dict[str, Any]:
        return _prune({
            "correlationID": str(self.correlation_id) if self.correlation_id else None,
            "status": self.status,
            "message": self.message,
        })

    @classmethod
    def from_dict(cls, data: Any) -> "Result":
        data = _require_object(data)
        raw_id = _optional(data, "correlationID", str)
        return cls(
            status=_require(data, "status", str),
            correlation_id=_parse_uuid(raw_id, "correlationID") if raw_id else None,
            message=_optional(data, "message", str),
        )

"""
TN Payload Validation

Preflight checks applied to a NotificationPayload before it reaches the
session. Rules run in a fixed order and the first violation is raised:

    message -> openURL -> contentImage -> waitSeconds

Validation only inspects the payload and the local filesystem; it never
fetches remote attachments or touches the notification sink.
"""

import os
from pathlib import Path
from urllib.parse import unquote, urlparse

from . import MAX_ATTACHMENT_SIZE
from .errors import (
    AttachmentNotFound,
    AttachmentTooLarge,
    EmptyMessage,
    InvalidOpenURL,
    InvalidWaitSeconds,
)
from .ipc.messages import NotificationPayload


# Schemes accepted for the click-to-open URL
ALLOWED_OPEN_SCHEMES = frozenset({"http", "https", "file"})

REMOTE_PREFIXES = ("http://", "https://")
FILE_URL_PREFIX = "file://"


def is_remote_reference(ref: str) -> bool:
    """True for http(s) attachment references."""
    return ref.lower().startswith(REMOTE_PREFIXES)


def is_file_url(ref: str) -> bool:
    return ref.lower().startswith(FILE_URL_PREFIX)


def file_url_to_path(ref: str) -> Path:
    """
    Resolve a file:// URL to a local path.

    Raises:
        ValueError: If the URL names a remote host
    """
    parsed = urlparse(ref)
    if parsed.netloc not in ("", "localhost"):
        raise ValueError(f"file URL with remote host: {ref}")
    return Path(unquote(parsed.path))


def validate_open_url(value: str) -> None:
    scheme, sep, _ = value.partition("://")
    if not sep or scheme.lower() not in ALLOWED_OPEN_SCHEMES:
        raise InvalidOpenURL(value)


def validate_local_attachment(path: str, max_size: int = MAX_ATTACHMENT_SIZE) -> None:
    """
    Check that a local attachment exists, is a file and fits the size limit.

    Raises:
        AttachmentNotFound: Missing path or a directory
        AttachmentTooLarge: File larger than max_size
    """
    local = os.path.expanduser(path)
    if not os.path.exists(local) or os.path.isdir(local):
        raise AttachmentNotFound(path)
    size = os.path.getsize(local)
    if size > max_size:
        raise AttachmentTooLarge(path, size, max_size)


def validate_attachment(ref: str, max_size: int = MAX_ATTACHMENT_SIZE) -> None:
    if is_remote_reference(ref):
        # Size is enforced by the fetcher at download time
        return
    if is_file_url(ref):
        try:
            path = file_url_to_path(ref)
        except ValueError:
            raise AttachmentNotFound(ref)
        validate_local_attachment(str(path), max_size)
        return
    validate_local_attachment(ref, max_size)


def validate(payload: NotificationPayload, max_attachment_size: int = MAX_ATTACHMENT_SIZE) -> None:
    """
    Validate a payload for basic correctness before posting.

    Args:
        payload: Payload to check
        max_attachment_size: Largest accepted local attachment in bytes

    Raises:
        ValidationError: The first rule the payload violates
    """
    if not payload.message.strip():
        raise EmptyMessage()

    if payload.open_url is not None:
        validate_open_url(payload.open_url)

    if payload.content_image:
        validate_attachment(payload.content_image, max_attachment_size)

    if payload.wait_seconds is not None and payload.wait_seconds <= 0:
        raise InvalidWaitSeconds(payload.wait_seconds)

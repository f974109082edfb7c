"""
TN Shim - Terminal Notifier Session Daemon

Long-running process that owns the notification session and serves
post/list/remove requests from the `tn` CLI over a Unix domain socket.

This package contains:
- ipc/      : Frame codec, accumulator, request/response types, client, server
- session/  : Session manager and attachment resolution
- sink/     : Notification sink abstraction and implementations
- engine.py : In-process and remote facades over the session
"""

__version__ = "0.2.0"
__author__ = "TN Project"

# Core constants
PROTOCOL_VERSION = 2
ALL_GROUPS = "ALL"
MAX_ATTACHMENT_SIZE = 10 * 1024 * 1024  # bytes (10 MiB)

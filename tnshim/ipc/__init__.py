"""
TN IPC Module

Local RPC between the `tn` CLI and the shim over a Unix domain socket.

Protocol: length-prefixed JSON frames, one request/response per connection.
"""

from .messages import (
    InterruptionLevel,
    NotificationPayload,
    SendRequest,
    ListRequest,
    RemoveRequest,
    Request,
    Result,
)

from .frame import (
    FrameAccumulator,
    encode_frame,
    decode_payload,
    decode_request,
    HEADER_SIZE,
)

from .client import (
    IPCClient,
    round_trip,
)

from .server import (
    IPCServer,
    DEFAULT_SOCKET_PATH,
)

__all__ = [
    # Messages
    'InterruptionLevel',
    'NotificationPayload',
    'SendRequest',
    'ListRequest',
    'RemoveRequest',
    'Request',
    'Result',
    # Frames
    'FrameAccumulator',
    'encode_frame',
    'decode_payload',
    'decode_request',
    'HEADER_SIZE',
    # Transport
    'IPCClient',
    'round_trip',
    'IPCServer',
    'DEFAULT_SOCKET_PATH',
]

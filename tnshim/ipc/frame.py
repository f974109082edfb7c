"""
TN Frame Codec

Wire format for every message on the shim socket:

    [ length : u32 big-endian ] [ JSON payload : length bytes ]

The length field counts payload bytes only, never the header itself.

Payloads are canonical JSON (sorted keys, compact separators, UTF-8) so
that the same message always encodes to the same bytes.
"""

import json
import struct
from typing import Any, List, Optional, Type, TypeVar

from ..errors import DecodeError, FrameError
from .messages import REQUEST_PROBE_ORDER, Request


# Header: network-order uint32
_HEADER = struct.Struct(">I")
HEADER_SIZE = _HEADER.size

# Largest length a u32 header can carry
MAX_FRAME_LENGTH = 0xFFFFFFFF

T = TypeVar("T")


def _to_jsonable(message: Any) -> Any:
    to_dict = getattr(message, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return message


def encode_payload(message: Any) -> bytes:
    """Serialize a message (or plain JSON value) to canonical JSON bytes."""
    try:
        return json.dumps(
            _to_jsonable(message),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        ).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise FrameError(f"message is not JSON serializable: {e}")


def encode_frame(message: Any) -> bytes:
    """
    Encode a message as a length-prefixed frame.

    Args:
        message: Dataclass message with to_dict(), or a JSON-compatible value

    Returns:
        Header + payload bytes

    Raises:
        FrameError: If the message cannot be serialized or is too large
    """
    payload = encode_payload(message)
    if len(payload) > MAX_FRAME_LENGTH:
        raise FrameError(f"payload too large: {len(payload)} bytes")
    return _HEADER.pack(len(payload)) + payload


def parse_header(header: bytes) -> int:
    """Return the payload length declared by a 4-byte header."""
    if len(header) != HEADER_SIZE:
        raise FrameError(f"header must be {HEADER_SIZE} bytes, got {len(header)}")
    (length,) = _HEADER.unpack(header)
    return length


def _load_json(payload: bytes) -> Any:
    try:
        return json.loads(bytes(payload).decode("utf-8"))
    except UnicodeDecodeError as e:
        raise DecodeError(f"payload is not UTF-8: {e}")
    except json.JSONDecodeError as e:
        raise DecodeError(f"payload is not JSON: {e}")


def decode_payload(payload: bytes, as_type: Type[T]) -> T:
    """
    Decode a payload (no header) into the requested message type.

    Raises:
        DecodeError: If the bytes do not match the expected shape
    """
    return as_type.from_dict(_load_json(payload))


def decode_request(payload: bytes) -> Request:
    """
    Decode a request payload by probing each known variant in order.

    The first variant that decodes structurally wins.

    Raises:
        DecodeError: If no request variant matches
    """
    data = _load_json(payload)
    failures = []
    for variant in REQUEST_PROBE_ORDER:
        try:
            return variant.from_dict(data)
        except DecodeError as e:
            failures.append(f"{variant.__name__}: {e}")
    raise DecodeError("no request variant matched (" + "; ".join(failures) + ")")


class FrameAccumulator:
    """
    Incremental frame splitter for partial reads.

    Feed it whatever chunks a stream transport delivers; it returns every
    complete payload and keeps the remainder for the next call.

    Usage:
        acc = FrameAccumulator()
        for chunk in chunks:
            for payload in acc.feed(chunk):
                handle(payload)
    """

    def __init__(self, max_frame_size: Optional[int] = None):
        """
        Args:
            max_frame_size: Reject frames declaring a longer payload
        """
        self._buffer = bytearray()
        self._max_frame_size = max_frame_size

    def feed(self, chunk: bytes) -> List[bytes]:
        """
        Append a chunk and extract all complete payloads.

        Raises:
            FrameError: If a header declares more than max_frame_size bytes
        """
        self._buffer.extend(chunk)
        payloads: List[bytes] = []

        while True:
            length = self.expected_length
            if length is None:
                break
            if self._max_frame_size is not None and length > self._max_frame_size:
                raise FrameError(f"frame too large: {length} > {self._max_frame_size}")
            total = HEADER_SIZE + length
            if len(self._buffer) < total:
                break
            payloads.append(bytes(self._buffer[HEADER_SIZE:total]))
            del self._buffer[:total]

        return payloads

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet returned."""
        return len(self._buffer)

    @property
    def expected_length(self) -> Optional[int]:
        """Payload length of the frame at the head of the buffer, if known."""
        if len(self._buffer) < HEADER_SIZE:
            return None
        return parse_header(bytes(self._buffer[:HEADER_SIZE]))

    def reset(self) -> None:
        """Discard any buffered bytes."""
        self._buffer.clear()

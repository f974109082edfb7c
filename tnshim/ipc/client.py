"""
TN IPC Client

Synchronous one-shot client for the shim socket.

One call = one connection:
    connect -> write request frame -> read response frame -> close

No retries and no timeout unless the caller asks for one.
"""

import errno
import logging
import os
import socket
import sys
from pathlib import Path
from typing import Optional, Union

from ..errors import (
    ConnectError,
    DecodeError,
    ReadError,
    ShortReadError,
    WriteError,
)
from .frame import HEADER_SIZE, decode_payload, encode_frame, parse_header
from .messages import Request, Result


logger = logging.getLogger(__name__)

# sun_path capacity including the trailing NUL
if sys.platform.startswith("linux"):
    MAX_SOCKET_PATH = 108
else:
    MAX_SOCKET_PATH = 104

# Read size for the response body
RECV_CHUNK = 4096


def _check_socket_path(path: str) -> None:
    if len(os.fsencode(path)) + 1 > MAX_SOCKET_PATH:
        raise ConnectError(
            path,
            f"socket path exceeds {MAX_SOCKET_PATH - 1} bytes",
            errno.ENAMETOOLONG,
        )


def _recv_exact(sock: socket.socket, n: int) -> bytes:
    buf = bytearray()
    while len(buf) < n:
        try:
            chunk = sock.recv(min(n - len(buf), RECV_CHUNK))
        except socket.timeout:
            raise ReadError("read timed out")
        except OSError as e:
            raise ReadError(f"read() failed: {e}", e.errno)
        if not chunk:
            raise ShortReadError(n, len(buf))
        buf.extend(chunk)
    return bytes(buf)


class IPCClient:
    """
    Client for the shim socket.

    Usage:
        client = IPCClient("/tmp/tn-shim.sock")
        result = client.round_trip(ListRequest(group="ALL"))
        print(result.message)
    """

    def __init__(self, socket_path: Union[str, Path], timeout: Optional[float] = None):
        """
        Initialize client.

        Args:
            socket_path: Path of the shim's Unix socket
            timeout: Optional per-operation socket timeout in seconds
        """
        self._socket_path = str(socket_path)
        self._timeout = timeout

    @property
    def socket_path(self) -> str:
        return self._socket_path

    def round_trip(self, request: Request) -> Result:
        """
        Send one request and wait for its Result.

        Args:
            request: Request to send

        Returns:
            Decoded Result from the shim

        Raises:
            ConnectError: Path missing, refused, or too long
            WriteError: Request could not be written
            ReadError: Socket failure while reading
            ShortReadError: Peer closed before the full response arrived
            DecodeError: Response is not a valid Result
        """
        path = self._socket_path
        _check_socket_path(path)

        frame = encode_frame(request)
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.settimeout(self._timeout)

            try:
                sock.connect(path)
            except OSError as e:
                raise ConnectError(path, e.strerror or str(e), e.errno)

            try:
                sock.sendall(frame)
            except OSError as e:
                raise WriteError(f"write() failed: {e}", e.errno)

            length = parse_header(_recv_exact(sock, HEADER_SIZE))
            body = _recv_exact(sock, length)

            try:
                result = decode_payload(body, Result)
            except DecodeError as e:
                raise DecodeError(f"decode failed: {e}")

            logger.debug(
                f"round trip {type(request).__name__} "
                f"{request.correlation_id} -> {result.status}"
            )
            return result
        finally:
            sock.close()


def round_trip(socket_path: Union[str, Path], request: Request) -> Result:
    """Convenience wrapper for a single IPCClient call."""
    return IPCClient(socket_path).round_trip(request)

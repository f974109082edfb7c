"""Test helpers."""

import socket

from tnshim.ipc.frame import HEADER_SIZE, parse_header
from tnshim.ipc.messages import NotificationPayload


def make_payload(message="Hi", **kwargs):
    kwargs.setdefault("title", "T")
    return NotificationPayload(message=message, **kwargs)


def raw_exchange(path, data, shutdown=True):
    """Send raw bytes to a socket and return whatever comes back."""
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    sock.settimeout(5.0)
    try:
        sock.connect(str(path))
        sock.sendall(data)
        if shutdown:
            sock.shutdown(socket.SHUT_WR)
        received = b""
        while True:
            try:
                chunk = sock.recv(4096)
            except ConnectionResetError:
                break
            if not chunk:
                break
            received += chunk
        return received
    finally:
        sock.close()


def split_frame(frame):
    length = parse_header(frame[:HEADER_SIZE])
    return length, frame[HEADER_SIZE:]

"""
TN IPC Server

Unix socket server for `tn` CLI requests.

Protocol:
- Length-prefixed JSON frames (see frame.py)
- One request/response per connection
- Authentication via Unix permissions

Behavior:
- Connections are accepted and served strictly one at a time
- Accept errors are logged and skipped, never fatal
- Short reads, oversized frames and undecodable payloads close the
  connection without a response
"""

import logging
import os
import socket
import stat
import threading
from pathlib import Path
from typing import Callable, Optional, Union

from ..errors import ProtocolError
from .frame import FrameAccumulator, decode_request, encode_frame
from .messages import Request, Result


logger = logging.getLogger(__name__)

# Default socket path
DEFAULT_SOCKET_PATH = Path("/tmp/tn-shim.sock")

# Maximum request payload size (1 MiB)
MAX_REQUEST_SIZE = 1024 * 1024

# Listen backlog
LISTEN_BACKLOG = 16

# Accept poll interval, lets stop() take effect (seconds)
ACCEPT_POLL_INTERVAL = 1.0

# Read size per recv()
RECV_CHUNK = 4096


# Handler type
RequestHandler = Callable[[Request], Result]


class _ShortRead(Exception):
    pass


class IPCServer:
    """
    Shim socket server.

    Usage:
        server = IPCServer(socket_path, session.handle)

        # Serve on a background thread
        server.start()
        ...
        server.stop()

        # Or block the calling thread
        server.serve_forever()
    """

    def __init__(
        self,
        socket_path: Optional[Union[str, Path]] = None,
        handler: Optional[RequestHandler] = None,
        max_request_size: int = MAX_REQUEST_SIZE,
        connection_timeout: Optional[float] = None,
    ):
        """
        Initialize IPC server.

        Args:
            socket_path: Path for Unix socket
            handler: Called with each decoded request, returns its Result
            max_request_size: Largest accepted request payload in bytes
            connection_timeout: Optional per-connection read/write timeout
        """
        self._socket_path = Path(socket_path) if socket_path else DEFAULT_SOCKET_PATH
        self._handler = handler
        self._max_request_size = max_request_size
        self._connection_timeout = connection_timeout
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._thread: Optional[threading.Thread] = None

        # Statistics
        self._accepted = 0
        self._served = 0
        self._protocol_errors = 0
        self._accept_errors = 0
        self._aborted = 0

    @property
    def socket_path(self) -> Path:
        return self._socket_path

    @property
    def is_running(self) -> bool:
        """Check if server is running."""
        return self._running

    def set_handler(self, handler: RequestHandler) -> None:
        """Set the request handler."""
        self._handler = handler

    def bind(self) -> None:
        """Create, bind and listen on the socket, replacing any stale file."""
        if self._socket is not None:
            return

        self._socket_path.parent.mkdir(parents=True, exist_ok=True)

        # Binding to an existing path fails, so clear leftovers first
        if self._socket_path.exists() or self._socket_path.is_symlink():
            self._socket_path.unlink()

        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.bind(str(self._socket_path))
            os.chmod(self._socket_path, stat.S_IRUSR | stat.S_IWUSR)
            sock.listen(LISTEN_BACKLOG)
            sock.settimeout(ACCEPT_POLL_INTERVAL)
        except OSError:
            sock.close()
            raise

        self._socket = sock
        logger.info(f"Listening at {self._socket_path}")

    def start(self) -> None:
        """Bind and serve on a background thread."""
        if self._running:
            return

        self.bind()
        self._running = True
        self._thread = threading.Thread(
            target=self._serve_loop,
            daemon=True,
            name="ipc-server",
        )
        self._thread.start()

    def serve_forever(self) -> None:
        """Bind and serve on the calling thread until stop() is called."""
        self.bind()
        self._running = True
        self._serve_loop()

    def stop(self) -> None:
        """Stop the server and remove the socket file."""
        self._running = False

        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=5.0)
        self._thread = None

        if self._socket:
            self._socket.close()
            self._socket = None

        if self._socket_path.exists():
            try:
                self._socket_path.unlink()
            except OSError as e:
                logger.warning(f"Could not remove {self._socket_path}: {e}")

        logger.info("IPC server stopped")

    def _serve_loop(self) -> None:
        """Accept and fully serve one connection at a time."""
        while self._running:
            sock = self._socket
            if sock is None:
                break

            try:
                conn, _ = sock.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._running:
                    break
                self._accept_errors += 1
                logger.warning(f"accept() failed: {e}")
                continue

            self._accepted += 1
            try:
                conn.settimeout(self._connection_timeout)
                self.handle_connection(conn)
            except Exception as e:
                logger.error(f"Connection handler failed: {e}", exc_info=True)
            finally:
                conn.close()

    def handle_connection(self, conn: socket.socket) -> None:
        """
        Serve exactly one request on a connected socket.

        The caller owns the socket and closes it afterwards.
        """
        try:
            payload = self._read_request(conn)
        except _ShortRead as e:
            self._aborted += 1
            logger.debug(f"Connection closed early: {e}")
            return
        except ProtocolError as e:
            self._protocol_errors += 1
            logger.warning(f"Protocol error: {e}")
            return
        except OSError as e:
            self._aborted += 1
            logger.warning(f"Read failed: {e}")
            return

        try:
            request = decode_request(payload)
        except ProtocolError as e:
            self._protocol_errors += 1
            logger.warning(f"Undecodable request: {e}")
            return

        if self._handler is None:
            raise RuntimeError("IPC server has no request handler")

        logger.info(f"{type(request).__name__} {request.correlation_id}")
        result = self._handler(request)
        logger.info(f"{request.correlation_id} -> {result.status}")

        conn.sendall(encode_frame(result))
        self._served += 1

    def _read_request(self, conn: socket.socket) -> bytes:
        """Read until one complete frame is buffered."""
        accumulator = FrameAccumulator(max_frame_size=self._max_request_size)
        while True:
            chunk = conn.recv(RECV_CHUNK)
            if not chunk:
                raise _ShortRead(f"peer closed with {accumulator.pending} bytes buffered")
            payloads = accumulator.feed(chunk)
            if payloads:
                # Anything after the first frame is a protocol violation we ignore
                return payloads[0]

    def get_stats(self) -> dict:
        """Get server statistics."""
        return {
            "socket_path": str(self._socket_path),
            "running": self._running,
            "accepted": self._accepted,
            "served": self._served,
            "aborted": self._aborted,
            "protocol_errors": self._protocol_errors,
            "accept_errors": self._accept_errors,
        }

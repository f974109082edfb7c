"""
TN Shim Main Entry Point

The tn-shim daemon:
- Owns the notification session and its sink
- Serves post/list/remove requests on a Unix socket, one at a time
"""

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

from . import PROTOCOL_VERSION, __version__
from .config import Config, DEFAULT_CONFIG_PATH, SINK_TYPES
from .ipc.server import IPCServer
from .session.attachments import AttachmentResolver, HTTPAttachmentFetcher
from .session.manager import SessionManager
from .sink.base import NotificationSink
from .sink.desktop import DesktopSink
from .sink.memory import MemorySink


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger("tnshim")


def setup_logging(level: int, log_file: Optional[Path] = None) -> None:
    """Configure root logging for the daemon."""
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, mode="a"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)


class ShimDaemon:
    """
    Main shim daemon class.

    Wires the sink, session manager and socket server together.
    """

    def __init__(self, config: Config, sink: Optional[NotificationSink] = None):
        """
        Initialize daemon with configuration.

        Args:
            config: Loaded configuration
            sink: Sink override (default: built from config)
        """
        self.config = config
        self.sink = sink or self._create_sink()

        fetcher = HTTPAttachmentFetcher(
            timeout=config.attachments.fetch_timeout,
            max_bytes=config.attachments.max_bytes,
            download_dir=config.attachments.download_dir,
        )
        self.session = SessionManager(
            self.sink,
            resolver=AttachmentResolver(fetcher),
            max_attachment_bytes=config.attachments.max_bytes,
            delivery_delay=config.sink.delivery_delay,
        )
        self.server = IPCServer(
            socket_path=config.socket_path,
            handler=self.session.handle,
            max_request_size=config.server.max_request_size,
            connection_timeout=config.server.connection_timeout,
        )

    def _create_sink(self) -> NotificationSink:
        kind = self.config.sink.type
        if kind == "desktop":
            return DesktopSink(app_name=self.config.sink.app_name)
        if kind == "memory":
            return MemorySink()
        raise ValueError(f"Unknown sink type: {kind}")

    def run(self) -> None:
        """Serve until stop() is called."""
        logger.info(f"Starting tn-shim v{__version__} (protocol {PROTOCOL_VERSION}, sink={self.sink.name})")
        try:
            self.server.serve_forever()
        finally:
            self.sink.close()
            logger.info(f"tn-shim stopped: {self.session.get_stats()}")

    def stop(self) -> None:
        self.server.stop()


def main(argv=None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="tn notification shim daemon")
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Configuration file path",
    )
    parser.add_argument(
        "-s", "--socket",
        type=Path,
        help="Socket path (overrides config and TN_SHIM_SOCKET)",
    )
    parser.add_argument(
        "--sink",
        choices=SINK_TYPES,
        help="Notification sink to use",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"tn-shim {__version__}",
    )

    args = parser.parse_args(argv)

    try:
        config = Config.load(args.config)
        if args.socket:
            config.socket_path = args.socket
        if args.sink:
            config.sink.type = args.sink
        if args.verbose:
            config.log_level = "DEBUG"
        config.validate()
    except ValueError as e:
        setup_logging(logging.INFO)
        logger.error(f"Configuration error: {e}")
        return 1

    setup_logging(config.log_level_value, config.log_file)

    daemon = ShimDaemon(config)

    # Signal handlers
    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}")
        daemon.stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        daemon.run()
    except OSError as e:
        logger.error(f"Fatal error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())

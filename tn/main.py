#!/usr/bin/env python3
"""
tn - Terminal Notifier CLI

Command-line interface for posting notifications through tn-shim.

Usage:
    tn send --message "Build done" --group build
    echo "Build done" | tn send --title CI
    tn list [GROUP]     - List delivered notifications (default ALL)
    tn remove GROUP     - Remove delivered notifications for GROUP or ALL
"""

import argparse
import os
import sys
from pathlib import Path
from typing import Optional

from tnshim import ALL_GROUPS, __version__
from tnshim.config import ENV_SOCKET
from tnshim.engine import Engine, RemoteEngine
from tnshim.errors import IPCError, ProtocolError, ResultStatus, ValidationError
from tnshim.ipc.messages import InterruptionLevel, NotificationPayload, Result
from tnshim.ipc.server import DEFAULT_SOCKET_PATH
from tnshim.validation import validate


DEFAULT_TITLE = "Terminal"

# Process exit codes
EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2
EXIT_NOT_AUTHORIZED = 3
EXIT_INVALID_ATTACHMENT = 4

STATUS_EXIT_CODES = {
    ResultStatus.OK: EXIT_OK,
    ResultStatus.INVALID_PAYLOAD: EXIT_USAGE,
    ResultStatus.NOT_AUTHORIZED: EXIT_NOT_AUTHORIZED,
    ResultStatus.INVALID_ATTACHMENT: EXIT_INVALID_ATTACHMENT,
    ResultStatus.RUNTIME_ERROR: EXIT_ERROR,
}


def default_socket_path() -> Path:
    return Path(os.environ.get(ENV_SOCKET) or DEFAULT_SOCKET_PATH)


class TnCtl:
    """tn CLI application."""

    def __init__(self, engine: Engine):
        """Initialize CLI with an engine."""
        self.engine = engine

    def _call(self, fn, *args) -> Optional[Result]:
        try:
            return fn(*args)
        except (IPCError, ProtocolError) as e:
            print(f"Failed to reach tn-shim: {e}", file=sys.stderr)
            return None

    def _finish(self, result: Optional[Result]) -> int:
        if result is None:
            return EXIT_ERROR
        if not result.ok:
            print(f"Error: {result.message or result.status}", file=sys.stderr)
        return STATUS_EXIT_CODES.get(result.status, EXIT_ERROR)

    def send(self, payload: NotificationPayload) -> int:
        """Post a notification."""
        try:
            validate(payload)
        except ValidationError as e:
            print(f"error: {e}", file=sys.stderr)
            return EXIT_USAGE

        return self._finish(self._call(self.engine.post, payload))

    def list(self, group: str = ALL_GROUPS) -> int:
        """List delivered notifications."""
        result = self._call(self.engine.list, group)
        if result is not None and result.ok:
            print(result.message or "")
        return self._finish(result)

    def remove(self, group: str) -> int:
        """Remove delivered notifications."""
        return self._finish(self._call(self.engine.remove, group))


def read_message(args, stdin=None) -> Optional[str]:
    """Message from --message, else from piped stdin."""
    stdin = stdin or sys.stdin
    if args.message is not None:
        return args.message
    if not stdin.isatty():
        return stdin.read().strip()
    return None


def build_payload(args, message: str) -> NotificationPayload:
    level = InterruptionLevel.ACTIVE
    if args.interruption_level is not None:
        level = InterruptionLevel.parse(args.interruption_level)
        if level is None:
            raise ValueError(f"invalid --interruption-level: {args.interruption_level}")

    return NotificationPayload(
        title=args.title or DEFAULT_TITLE,
        subtitle=args.subtitle,
        message=message,
        group_id=args.group,
        sound=args.sound,
        open_url=args.open,
        execute=args.execute,
        activate_bundle_id=args.activate,
        content_image=args.content_image,
        sender_profile=args.sender,
        interruption_level=level,
        wait_seconds=args.wait,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tn",
        description="Post desktop notifications from the terminal.",
    )
    parser.add_argument(
        "-s", "--socket",
        type=Path,
        default=None,
        help=f"tn-shim socket path (default: ${ENV_SOCKET} or {DEFAULT_SOCKET_PATH})",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"tn {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command")

    # send
    send_parser = subparsers.add_parser("send", help="Post a notification")
    send_parser.add_argument("--title", help="Notification title")
    send_parser.add_argument("--subtitle", help="Notification subtitle")
    send_parser.add_argument("--message", help="Notification body (default: read stdin)")
    send_parser.add_argument("--sound", help="Sound name ('default' for system default)")
    send_parser.add_argument("--group", help="Group identifier")
    send_parser.add_argument("--open", help="URL to open on click")
    send_parser.add_argument("--execute", help="Shell command to run on click")
    send_parser.add_argument("--activate", help="Bundle identifier to activate on click")
    send_parser.add_argument("--content-image", dest="content_image", help="Image path or URL")
    send_parser.add_argument("--sender", help="Sender profile name")
    send_parser.add_argument(
        "--interruption-level",
        dest="interruption_level",
        help="passive|active|timeSensitive (default: active)",
    )
    send_parser.add_argument("--wait", type=int, help="Seconds to wait for a click action")

    # list
    list_parser = subparsers.add_parser("list", help="List delivered notifications")
    list_parser.add_argument("group", nargs="?", default=ALL_GROUPS, help="Group ID or ALL")

    # remove
    remove_parser = subparsers.add_parser("remove", help="Remove delivered notifications")
    remove_parser.add_argument("group", help="Group ID or ALL")

    return parser


def main(argv=None, engine: Optional[Engine] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_USAGE

    ctl = TnCtl(engine or RemoteEngine(args.socket or default_socket_path()))

    if args.command == "send":
        message = read_message(args)
        if not message:
            print("error: message is required (use --message or pipe stdin)", file=sys.stderr)
            return EXIT_USAGE
        try:
            payload = build_payload(args, message)
        except ValueError as e:
            print(f"error: {e}", file=sys.stderr)
            return EXIT_USAGE
        return ctl.send(payload)

    if args.command == "list":
        return ctl.list(args.group)

    if args.command == "remove":
        return ctl.remove(args.group)

    parser.print_help()
    return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())

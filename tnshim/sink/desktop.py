"""
TN Desktop Sink

Presents notifications through the desktop's command-line notifier and
keeps the delivered set in memory (the shim process owns it).

Supported notifiers:
- Linux : notify-send (libnotify)
- macOS : osascript `display notification`

If no notifier is available the sink reports DENIED, so posts fail with
not_authorized instead of silently disappearing.

On Linux, posts to a group replace the group's on-screen notification
through stacking hints. Notifications already on screen cannot be
withdrawn by remove; only the delivered set is cleared.
"""

import logging
import shutil
import subprocess
import sys
from typing import List, Optional

from ..ipc.messages import InterruptionLevel
from .base import AuthorizationStatus, NotificationContent, SinkError
from .memory import MemorySink


logger = logging.getLogger(__name__)

# Seconds to wait for the notifier process
NOTIFIER_TIMEOUT = 10.0

# Hints that make a notification daemon replace the on-screen notification
# carrying the same value (notify-osd/GNOME, dunst)
_GROUP_HINTS = ("x-canonical-private-synchronous", "x-dunst-stack-tag")

# notify-send urgency per interruption level
_URGENCY = {
    InterruptionLevel.PASSIVE: "low",
    InterruptionLevel.ACTIVE: "normal",
    InterruptionLevel.TIME_SENSITIVE: "critical",
}


def _applescript_string(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


class DesktopSink(MemorySink):
    """
    Sink backed by the platform notifier command.

    Usage:
        sink = DesktopSink(app_name="tn")
        sink.submit(content)
    """

    def __init__(
        self,
        name: str = "desktop",
        app_name: str = "tn",
        platform: Optional[str] = None,
    ):
        """
        Initialize desktop sink.

        Args:
            name: Sink instance name
            app_name: Application name shown by the notifier
            platform: Override sys.platform (for testing)
        """
        self._platform = platform or sys.platform
        self._app_name = app_name
        self._notifier = self._find_notifier()

        status = AuthorizationStatus.AUTHORIZED if self._notifier else AuthorizationStatus.DENIED
        super().__init__(name, authorization=status, grant_on_request=bool(self._notifier))

        if not self._notifier:
            logger.warning(f"No notifier command found for platform {self._platform}")

    def _find_notifier(self) -> Optional[str]:
        if self._platform == "darwin":
            return shutil.which("osascript")
        return shutil.which("notify-send")

    def build_command(self, content: NotificationContent) -> List[str]:
        """Build the notifier command line for a notification."""
        if not self._notifier:
            raise SinkError("no desktop notifier available")

        if self._platform == "darwin":
            script = f"display notification {_applescript_string(content.body)}"
            script += f" with title {_applescript_string(content.title)}"
            if content.subtitle:
                script += f" subtitle {_applescript_string(content.subtitle)}"
            if content.sound:
                sound = "Glass" if content.uses_default_sound else content.sound
                script += f" sound name {_applescript_string(sound)}"
            return [self._notifier, "-e", script]

        body = content.body
        if content.subtitle:
            body = f"{content.subtitle}\n{body}"
        cmd = [
            self._notifier,
            "--app-name", self._app_name,
            "--urgency", _URGENCY[content.interruption_level],
        ]
        if content.attachment is not None:
            cmd += ["--icon", str(content.attachment.path)]
        if content.thread_id:
            for hint in _GROUP_HINTS:
                cmd += ["--hint", f"string:{hint}:{content.thread_id}"]
        cmd += [content.title, body]
        return cmd

    def present(self, content: NotificationContent) -> None:
        cmd = self.build_command(content)
        try:
            subprocess.run(
                cmd,
                check=True,
                capture_output=True,
                timeout=NOTIFIER_TIMEOUT,
            )
        except subprocess.CalledProcessError as e:
            self._submit_errors += 1
            stderr = (e.stderr or b"").decode(errors="replace").strip()
            raise SinkError(f"{cmd[0]} exited with {e.returncode}: {stderr}")
        except (OSError, subprocess.TimeoutExpired) as e:
            self._submit_errors += 1
            raise SinkError(f"{cmd[0]} failed: {e}")

"""
Notification Control — platform-aware desktop notifications for phase changes.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from typing import Callable, Optional

from ..dispatch import EffectDispatcher

logger = logging.getLogger(__name__)

APP_TITLE = "Get Shit Done"

PHASE_COMPLETE_MESSAGES = {
    "focus": "Focus session complete! Time for a break.",
    "shortBreak": "Break over! Ready for another focus session?",
    "longBreak": "Long break over! Ready to focus again?",
}


def phase_complete_message(phase: str) -> str:
    return PHASE_COMPLETE_MESSAGES.get(phase, "Phase complete!")


class NotificationController:
    """
    notify() hands the request to *listener* right away (the broadcast
    channel, so UI collaborators can show it and play the chime) and, when
    *desktop* is set, queues an OS notification on the effect dispatcher.
    """

    def __init__(
        self,
        listener: Optional[Callable[[dict], None]] = None,
        dispatcher: Optional[EffectDispatcher] = None,
        desktop: bool = True,
    ):
        self._listener = listener
        self._dispatcher = dispatcher or EffectDispatcher(inline=True)
        self.desktop = desktop

    def notify(self, title: str, message: str, chime: bool = False) -> None:
        payload = {"title": title, "message": message, "chime": chime}
        if self._listener is not None:
            self._listener(payload)
        if self.desktop:
            self._dispatcher.submit(self.show, title, message, label="desktop_notification")

    def show(self, title: str, message: str) -> bool:
        if sys.platform == "win32":
            return self._windows_toast(title, message)
        if sys.platform == "darwin":
            return self._macos_notify(title, message)
        return self._linux_notify(title, message)

    # ------------------------------------------------------------------
    # Platform implementations
    # ------------------------------------------------------------------

    def _windows_toast(self, title: str, message: str) -> bool:
        script = (
            "[reflection.assembly]::loadwithpartialname('System.Windows.Forms') | Out-Null;"
            "$n = New-Object System.Windows.Forms.NotifyIcon;"
            "$n.Icon = [System.Drawing.SystemIcons]::Information;"
            "$n.Visible = $true;"
            f"$n.ShowBalloonTip(5000, '{_ps_quote(title)}', '{_ps_quote(message)}', 'Info')"
        )
        return _run(["powershell", "-Command", script])

    def _macos_notify(self, title: str, message: str) -> bool:
        script = f'display notification "{_as_quote(message)}" with title "{_as_quote(title)}"'
        return _run(["osascript", "-e", script])

    def _linux_notify(self, title: str, message: str) -> bool:
        if shutil.which("notify-send") is None:
            logger.debug("notify-send not available; skipping desktop notification")
            return False
        return _run(["notify-send", "--app-name", APP_TITLE, title, message])


def _run(cmd: list) -> bool:
    try:
        subprocess.run(cmd, check=True, capture_output=True, timeout=5)
        return True
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning("desktop notification failed: %s", e)
        return False


def _ps_quote(text: str) -> str:
    return text.replace("'", "''")


def _as_quote(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')

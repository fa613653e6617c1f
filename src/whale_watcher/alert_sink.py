from __future__ import annotations

import logging
import subprocess
import sys
import time
from typing import Protocol, TextIO

logger = logging.getLogger(__name__)

MACOS_SOUND = "/System/Library/Sounds/Ping.aiff"
LINUX_SOUNDS = (
    ("paplay", "/usr/share/sounds/freedesktop/stereo/message.oga"),
    ("aplay", "/usr/share/sounds/alsa/Front_Center.wav"),
)


class AlertSink(Protocol):
    def beep(self, count: int = 1, gap_seconds: float = 0.1) -> None: ...


class AudioAlertSink:
    """Best-effort audible cue: a platform sound player, then the terminal bell."""

    def __init__(self, platform: str | None = None, stream: TextIO | None = None) -> None:
        self.platform = platform or sys.platform
        self.stream = stream or sys.stdout

    def beep(self, count: int = 1, gap_seconds: float = 0.1) -> None:
        for i in range(count):
            if i:
                time.sleep(gap_seconds)
            if not self._play_platform_sound():
                logger.debug("No platform sound player available; using terminal bell")
            self.stream.write("\a")
            self.stream.flush()

    def _play_platform_sound(self) -> bool:
        for command in self._commands():
            try:
                subprocess.Popen(
                    command,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                )
                return True
            except OSError:
                continue
        return False

    def _commands(self) -> list[list[str]]:
        if self.platform == "darwin":
            return [["afplay", MACOS_SOUND]]
        if self.platform.startswith("linux"):
            return [[player, sound] for player, sound in LINUX_SOUNDS]
        if self.platform.startswith("win"):
            return [["powershell", "-c", "[console]::beep(800,300)"]]
        return []

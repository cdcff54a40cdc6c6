"""Coloured console logger and start-up banner."""

from __future__ import annotations

import os
import sys
import time
from dataclasses import dataclass
from typing import TextIO

_BANNER_WIDTH = 50

_LOGO = r"""
 __    __  ___  ___           _          
/ / /\ \ \/ _ \/ _ \_ __ ___ | |__   ___ 
\ \/  \/ / /_)/ /_)/ '__/ _ \| '_ \ / _ \
 \  /\  / ___/ ___/| | | (_) | |_) |  __/
  \/  \/\/   \/    |_|  \___/|_.__/ \___|"""


@dataclass(frozen=True)
class _Style:
    """A foreground colour given as #RRGGBB, optionally bold."""

    color: str
    bold: bool = False

    def render(self, text: str, enabled: bool) -> str:
        if not enabled:
            return text
        red, green, blue = (int(self.color[i : i + 2], 16) for i in (1, 3, 5))
        prefix = f"\x1b[{'1;' if self.bold else ''}38;2;{red};{green};{blue}m"
        return f"{prefix}{text}\x1b[0m"


INFO_STYLE = _Style("#00AEEF")
WARNING_STYLE = _Style("#FFCC00")
ERROR_STYLE = _Style("#FF5733")
SUCCESS_STYLE = _Style("#33CC33")
TIME_STYLE = _Style("#888888")

_LATEST_STYLE = _Style("#33CC33", bold=True)
_OUTDATED_STYLE = _Style("#FF5733", bold=True)
_VERSION_STYLE = _Style("#00AEEF", bold=True)
_TEXT_STYLE = _Style("#AAAAAA", bold=True)


def format_time() -> str:
    """Return the current local time as HH:MM:SS."""
    return time.strftime("%H:%M:%S")


class Logger:
    """Writes timestamped, levelled messages to a stream (stdout by default)."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    @property
    def _colored(self) -> bool:
        if os.environ.get("NO_COLOR"):
            return False
        isatty = getattr(self.stream, "isatty", None)
        return bool(isatty and isatty())

    def _log(self, level: str, style: _Style, msg: str) -> None:
        color = self._colored
        line = (
            f"{TIME_STYLE.render(format_time(), color)} "
            f"[{style.render(level, color)}] {msg}"
        )
        self.stream.write(line + "\n")
        self.stream.flush()

    def info(self, msg: str) -> None:
        self._log("INFO", INFO_STYLE, msg)

    def warning(self, msg: str) -> None:
        self._log("WARNING", WARNING_STYLE, msg)

    def error(self, msg: str) -> None:
        self._log("ERROR", ERROR_STYLE, msg)

    def success(self, msg: str) -> None:
        self._log("SUCCESS", SUCCESS_STYLE, msg)

    def print_banner(self, version: str, is_latest: bool) -> None:
        """Print the logo, the version and whether it is the latest release."""
        color = self._colored
        status_word = "latest" if is_latest else "outdated"
        status_style = _LATEST_STYLE if is_latest else _OUTDATED_STYLE

        plain = f"{version} [{status_word}]"
        styled = (
            f"{_VERSION_STYLE.render(version, color)} "
            f"[{status_style.render(status_word, color)}]"
        )
        padding = " " * max(0, _BANNER_WIDTH - len(plain))
        version_line = padding + styled

        out = self.stream
        out.write(_LOGO + "\n" + version_line + "\n\n")
        out.write(_TEXT_STYLE.render("Stealthy WordPress Plugin Scanner\n", color) + "\n")
        out.flush()

        if not is_latest:
            self.warning("Your current WPProbe version is outdated. Latest version available.")
            self.info("Update with: wpprobe update")


DEFAULT_LOGGER = Logger()
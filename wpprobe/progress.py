"""Thread-safe terminal progress bar with fixed-width messages."""

from __future__ import annotations

import signal
import sys
import threading
import time

from tqdm import tqdm

MSG_WIDTH = 50

_CYAN = "\x1b[36m"
_RESET = "\x1b[0m"
_BAR_FORMAT = "{desc} ⏳ {bar:30} ⏳ {n_fmt}/{total_fmt} [{rate_fmt}]"


def pad_or_trunc(s: str) -> str:
    """Return ``s`` padded with spaces or truncated with "..." to MSG_WIDTH characters."""
    if len(s) > MSG_WIDTH:
        if MSG_WIDTH > 3:
            return s[: MSG_WIDTH - 3] + "..."
        return s[:MSG_WIDTH]
    return s + " " * (MSG_WIDTH - len(s))


class ProgressManager:
    """A progress bar on stderr that finishes cleanly on SIGINT or SIGTERM."""

    def __init__(self, total: int, description: str) -> None:
        self._lock = threading.Lock()
        self._finished = False
        self._description = pad_or_trunc(description)
        self._bar = tqdm(
            total=total,
            desc=_CYAN + self._description + _RESET,
            file=sys.stderr,
            mininterval=0.1,
            ascii="░▒▓",
            bar_format=_BAR_FORMAT,
            unit="it",
        )
        self._previous_handlers: dict[int, object] = {}
        if threading.current_thread() is threading.main_thread():
            for sig in (signal.SIGINT, signal.SIGTERM):
                self._previous_handlers[sig] = signal.signal(sig, self._on_signal)

    def _on_signal(self, signum, frame) -> None:
        self.finish()
        raise SystemExit(1)

    def _restore_handlers(self) -> None:
        for sig, previous in self._previous_handlers.items():
            if signal.getsignal(sig) == self._on_signal:
                signal.signal(sig, previous)
        self._previous_handlers.clear()

    @property
    def current(self) -> int:
        return self._bar.n

    @property
    def total(self) -> int:
        return self._bar.total

    @property
    def percent(self) -> float:
        """Completed fraction between 0.0 and 1.0."""
        total = self._bar.total
        return self._bar.n / total if total else 0.0

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def description(self) -> str:
        return self._description

    def increment(self) -> None:
        with self._lock:
            self._bar.update(1)

    def finish(self) -> None:
        """Fill the bar, close it and release the signal handlers."""
        with self._lock:
            if self._finished:
                return
            self._finished = True
            if self._bar.total is not None and self._bar.n < self._bar.total:
                self._bar.update(self._bar.total - self._bar.n)
            self._bar.close()
        if threading.current_thread() is threading.main_thread():
            self._restore_handlers()

    def render_blank(self) -> None:
        with self._lock:
            self._bar.refresh()

    def clear_line(self) -> None:
        with self._lock:
            time.sleep(0.01)
            sys.stdout.flush()
            sys.stderr.write("\r\x1b[2K")
            sys.stderr.flush()

    def write(self, data) -> int:
        """Advance the bar by the length of ``data`` and return that length."""
        n = len(data)
        with self._lock:
            self._bar.update(n)
        return n

    def bprintln(self, *args) -> int:
        """Print the arguments on a line above the bar; return the bytes written."""
        message = " ".join(str(a) for a in args)
        with self._lock:
            tqdm.write(message, file=self._bar.fp)
        return len(message.encode()) + 1

    def bprintf(self, fmt: str, *args) -> int:
        """Print %-formatted text above the bar; return the bytes written."""
        text = fmt % args if args else fmt
        with self._lock:
            tqdm.write(text, file=self._bar.fp, end="")
        return len(text.encode())

    def set_total(self, total: int) -> None:
        with self._lock:
            self._bar.total = total
            self._bar.refresh()

    def set_message(self, description: str) -> None:
        with self._lock:
            self._description = pad_or_trunc(description)
            self._bar.set_description_str(_CYAN + self._description + _RESET)
"""Non-blocking keyboard input for the plain-text display."""

import os
import select
import sys
import termios
import time
import tty
from typing import TextIO

import structlog

from proctop.errors import InputPollFailure, RenderFailure
from proctop.models import KeyEvent

log = structlog.get_logger()


class KeyReader:
    """
    Reads single key presses from a terminal without waiting for Enter.

    Entering the context switches the terminal to cbreak mode; leaving it
    restores the saved mode, once, whatever way the block is left. When
    the stream is not a terminal, read() just waits out its timeout.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdin
        self._fd: int | None = None
        self._saved: list | None = None

    @property
    def is_tty(self) -> bool:
        return self._fd is not None

    @property
    def active(self) -> bool:
        """True while the terminal is held in cbreak mode."""
        return self._saved is not None

    def __enter__(self) -> "KeyReader":
        try:
            fd = self._stream.fileno()
        except (AttributeError, OSError, ValueError):
            # Not backed by a file descriptor (pipes in tests, StringIO)
            return self
        if not os.isatty(fd):
            return self

        try:
            self._saved = termios.tcgetattr(fd)
            tty.setcbreak(fd)
        except termios.error as exc:
            self._saved = None
            raise RenderFailure(f"Cannot set up terminal: {exc}") from exc
        self._fd = fd
        log.debug("terminal_cbreak_enabled", fd=fd)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.restore()
        return False

    def restore(self) -> None:
        """Put the terminal back into the mode it had on entry."""
        if self._saved is None or self._fd is None:
            return
        saved, self._saved = self._saved, None
        try:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, saved)
        except termios.error as exc:
            log.warning("terminal_restore_failed", error=str(exc))
        else:
            log.debug("terminal_restored", fd=self._fd)

    def read(self, timeout: float) -> KeyEvent | None:
        """Wait up to timeout seconds for a key press."""
        if self._fd is None:
            time.sleep(timeout)
            return None

        try:
            ready, _, _ = select.select([self._fd], [], [], timeout)
            if not ready:
                return None
            data = os.read(self._fd, 1)
        except (OSError, ValueError) as exc:
            raise InputPollFailure(f"Cannot read keyboard input: {exc}") from exc

        if not data:
            return None
        return KeyEvent(key=data.decode(errors="replace"))

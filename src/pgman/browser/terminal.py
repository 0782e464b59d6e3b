"""Raw terminal handling for the snapshot browser.

Owns the raw-mode lifecycle and decodes stdin bytes into key tokens:
ESC, TAB, ENTER, BACKSPACE, UP, DOWN, LEFT, RIGHT, or the typed character.
An empty string means no key arrived before the timeout.
"""

import contextlib
import os
import select
import termios
import tty
from typing import Iterator, Optional

ESC_SEQUENCE_TIMEOUT_MS = 25

ESC = "ESC"
TAB = "TAB"
ENTER = "ENTER"
BACKSPACE = "BACKSPACE"
UP = "UP"
DOWN = "DOWN"
LEFT = "LEFT"
RIGHT = "RIGHT"

_CONTROL_KEYS = {
    b"\t": TAB,
    b"\r": ENTER,
    b"\n": ENTER,
    b"\x08": BACKSPACE,
    b"\x7f": BACKSPACE,
}

_ARROW_KEYS = {
    b"A": UP,
    b"B": DOWN,
    b"C": RIGHT,
    b"D": LEFT,
}

# Byte read while probing for an escape sequence, replayed by the next read_key
_pushed_back: dict[int, bytes] = {}


def _read_ready_byte(fd: int, timeout_ms: int) -> Optional[bytes]:
    ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
    if not ready:
        return None
    ch = os.read(fd, 1)
    return ch or None


def _read_utf8(fd: int, first: bytes) -> str:
    """Complete a multi-byte UTF-8 character started by first."""
    lead = first[0]
    if lead >= 0xF0:
        needed = 3
    elif lead >= 0xE0:
        needed = 2
    elif lead >= 0xC0:
        needed = 1
    else:
        needed = 0

    data = first
    for _ in range(needed):
        nxt = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if nxt is None:
            break
        data += nxt
    return data.decode("utf-8", errors="replace")


def read_key(fd: int, timeout_ms: Optional[int] = None) -> str:
    """Read one key token, waiting at most timeout_ms (forever if None)."""
    ch = _pushed_back.pop(fd, None)
    if ch is None:
        if timeout_ms is not None:
            ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
            if not ready:
                return ""
        ch = os.read(fd, 1)
    if not ch:
        return ""

    if ch in _CONTROL_KEYS:
        return _CONTROL_KEYS[ch]
    if ch != b"\x1b":
        return _read_utf8(fd, ch)

    # Escape alone, or an arrow-key sequence ESC [ A..D
    seq = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if seq != b"[":
        if seq is not None:
            _pushed_back[fd] = seq
        return ESC
    seq = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    return _ARROW_KEYS.get(seq, ESC)


class TerminalController:
    """Switches the terminal into unbuffered, no-echo alternate-screen mode and back."""

    def __init__(self, stdin_fd: int, stdout_fd: int) -> None:
        self.stdin_fd = stdin_fd
        self.stdout_fd = stdout_fd
        self._saved_tty_state = termios.tcgetattr(stdin_fd)

    def enable_tui_mode(self) -> None:
        # cbreak keeps output post-processing, which Rich relies on for newlines
        tty.setcbreak(self.stdin_fd, termios.TCSAFLUSH)
        # Alternate screen, hidden cursor
        os.write(self.stdout_fd, b"\x1b[?1049h\x1b[?25l")

    def disable_tui_mode(self) -> None:
        os.write(self.stdout_fd, b"\x1b[?25h\x1b[?1049l")
        termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, self._saved_tty_state)

    @contextlib.contextmanager
    def raw_mode(self) -> Iterator[None]:
        """Bracket the browser session; the terminal is restored even on error."""
        try:
            self.enable_tui_mode()
            yield
        finally:
            self.disable_tui_mode()

    def read_key(self, timeout_ms: Optional[int] = None) -> str:
        return read_key(self.stdin_fd, timeout_ms)

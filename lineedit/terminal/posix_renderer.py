"""Drawing the prompt and the edited line on a POSIX terminal."""

from __future__ import annotations

import logging
import struct
import sys
from typing import BinaryIO, Protocol

import regex

from lineedit.terminal.base import (
    BellStyle,
    EscapeTracker,
    Layout,
    OutputStreamType,
    Position,
    Renderer,
)
from lineedit.terminal.posix_reader import read_digits_until, take_sigwinch

_log = logging.getLogger(__name__)

_GRAPHEME = regex.compile(r"\X")

_STREAM_FDS = {OutputStreamType.STDOUT: 1, OutputStreamType.STDERR: 2}

_DEFAULT_SIZE = (80, 24)


class _Highlighter(Protocol):
    def highlight_prompt(self, prompt: str, default: bool) -> str: ...

    def highlight(self, line: str, pos: int) -> str: ...

    def highlight_hint(self, hint: str) -> str: ...


class _PollingReader(Protocol):
    def poll(self, timeout_ms: int) -> int: ...

    def next_char(self) -> str: ...


def get_win_size(fd: int) -> tuple[int, int]:
    """Return (columns, rows) of the terminal on `fd`, or (80, 24) if unknown.

    A zero width is taken as 80 columns and a zero height as unlimited rows.
    """
    try:
        import fcntl
        import termios
    except ImportError:
        return _DEFAULT_SIZE
    try:
        packed = fcntl.ioctl(fd, termios.TIOCGWINSZ, struct.pack("HHHH", 0, 0, 0, 0))
    except OSError:
        return _DEFAULT_SIZE
    rows, cols, _, _ = struct.unpack("HHHH", packed)
    return (cols or 80, rows or sys.maxsize)


def _std_stream(out: OutputStreamType):
    return sys.stdout if out is OutputStreamType.STDOUT else sys.stderr


def write_and_flush(out: OutputStreamType, data: bytes) -> None:
    """Write `data` to the standard stream `out` and flush it."""
    stream = _std_stream(out)
    stream.flush()
    stream.buffer.write(data)
    stream.buffer.flush()


class PosixRenderer(Renderer):
    """Renders prompt, line and hint with ANSI escape sequences."""

    def __init__(
        self,
        out: OutputStreamType = OutputStreamType.STDOUT,
        tab_stop: int = 8,
        colors_enabled: bool = False,
        bell_style: BellStyle = BellStyle.AUDIBLE,
        columns: int | None = None,
        stream: BinaryIO | None = None,
    ) -> None:
        self._out = out
        self._stream = stream
        self._cols = get_win_size(_STREAM_FDS[out])[0] if columns is None else columns
        self._tab_stop = tab_stop
        self._colors_enabled = colors_enabled
        self._bell_style = bell_style
        self.buffer = ""

    def _clear_old_rows(self, layout: Layout) -> list[str]:
        parts: list[str] = []
        current_row = layout.cursor.row
        old_rows = layout.end.row
        # old_rows < current_row when a multi-line prompt is displayed
        movement = max(old_rows - current_row, 0)
        if movement > 0:
            parts.append(f"\x1b[{movement}B")
        parts.append("\r\x1b[0K\x1b[A" * old_rows)
        parts.append("\r\x1b[0K")
        return parts

    def move_cursor(self, old: Position, new: Position) -> None:
        parts: list[str] = []
        if new.row > old.row:
            shift = new.row - old.row
            parts.append("\x1b[B" if shift == 1 else f"\x1b[{shift}B")
        elif new.row < old.row:
            shift = old.row - new.row
            parts.append("\x1b[A" if shift == 1 else f"\x1b[{shift}A")
        if new.col > old.col:
            shift = new.col - old.col
            parts.append("\x1b[C" if shift == 1 else f"\x1b[{shift}C")
        elif new.col < old.col:
            shift = old.col - new.col
            parts.append("\x1b[D" if shift == 1 else f"\x1b[{shift}D")
        self.buffer = "".join(parts)
        self.write_and_flush(self.buffer.encode("utf-8"))

    def refresh_line(
        self,
        prompt: str,
        line: str,
        pos: int,
        hint: str | None,
        old_layout: Layout,
        new_layout: Layout,
        highlighter: _Highlighter | None = None,
    ) -> None:
        cursor = new_layout.cursor
        end_pos = new_layout.end
        parts = self._clear_old_rows(old_layout)

        if highlighter is not None:
            parts.append(highlighter.highlight_prompt(prompt, new_layout.default_prompt))
            parts.append(highlighter.highlight(line, pos))
        else:
            parts.append(prompt)
            parts.append(line)
        if hint is not None:
            parts.append(highlighter.highlight_hint(hint) if highlighter is not None else hint)

        # on line wrap the newline has to be emitted explicitly
        ends_with_newline = hint.endswith("\n") if hint is not None else line.endswith("\n")
        if end_pos.col == 0 and end_pos.row > 0 and not ends_with_newline:
            parts.append("\n")

        row_movement = end_pos.row - cursor.row
        if row_movement > 0:
            parts.append(f"\x1b[{row_movement}A")
        parts.append(f"\r\x1b[{cursor.col}C" if cursor.col > 0 else "\r")

        self.buffer = "".join(parts)
        self.write_and_flush(self.buffer.encode("utf-8"))

    def write_and_flush(self, data: bytes) -> None:
        if self._stream is not None:
            self._stream.write(data)
            self._stream.flush()
        else:
            write_and_flush(self._out, data)

    def calculate_position(self, s: str, orig: Position) -> Position:
        """Escape sequences and control characters take no columns; wide
        characters are never split across rows."""
        col, row = orig.col, orig.row
        tracker = EscapeTracker()
        for grapheme in _GRAPHEME.findall(s):
            if grapheme == "\n":
                row += 1
                col = 0
                continue
            if grapheme == "\t":
                width = self._tab_stop - (col % self._tab_stop)
            else:
                width = tracker.width(grapheme)
            col += width
            if col > self._cols:
                row += 1
                col = width
        if col == self._cols:
            col = 0
            row += 1
        return Position(col=col, row=row)

    def beep(self) -> None:
        if self._bell_style is BellStyle.AUDIBLE:
            stream = sys.stderr
            stream.flush()
            stream.buffer.write(b"\x07")
            stream.buffer.flush()

    def clear_screen(self) -> None:
        self.write_and_flush(b"\x1b[H\x1b[2J")

    def sigwinch(self) -> bool:
        return take_sigwinch()

    def update_size(self) -> None:
        self._cols = get_win_size(_STREAM_FDS[self._out])[0]

    def get_columns(self) -> int:
        return self._cols

    def get_rows(self) -> int:
        return get_win_size(_STREAM_FDS[self._out])[1]

    def colors_enabled(self) -> bool:
        return self._colors_enabled

    def move_cursor_at_leftmost(self, reader: _PollingReader) -> None:
        """Emit a newline unless the cursor already sits in the first column."""
        if reader.poll(0) != 0:
            _log.debug("cannot request cursor location")
            return
        self.write_and_flush(b"\x1b[6n")
        # response: ESC [ rows ; cols R
        if (
            reader.poll(100) == 0
            or reader.next_char() != "\x1b"
            or reader.next_char() != "["
            or read_digits_until(reader, ";") is None
        ):
            _log.warning("cannot read initial cursor location")
            return
        col = read_digits_until(reader, "R")
        _log.debug("initial cursor location: %r", col)
        if col is not None and col != 1:
            self.write_and_flush(b"\n")
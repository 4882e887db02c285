"""An in-memory terminal fed from a list of key events."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from lineedit.terminal.base import (
    BellStyle,
    ColorMode,
    EofError,
    KeyCode,
    KeyEvent,
    Modifiers,
    Position,
    RawReader,
    ReadlineError,
    Renderer,
    Layout,
)


class KeyListReader(RawReader):
    """Yields key events from a fixed sequence, then raises EofError."""

    def __init__(self, keys: Iterable[KeyEvent]) -> None:
        self._keys = iter(list(keys))

    def _next(self) -> KeyEvent:
        try:
            return next(self._keys)
        except StopIteration:
            raise EofError("no more keys") from None

    def next_key(self, single_esc_abort: bool = False) -> KeyEvent:
        return self._next()

    def next_char(self) -> str:
        key = self._next()
        if key.code is KeyCode.CHAR and key.mods == Modifiers.NONE:
            return str(key.value)
        raise ReadlineError(f"expected a plain character key, got {key!r}")

    def read_pasted_text(self) -> str:
        raise ReadlineError("a key list carries no pasted text")


class Sink(Renderer):
    """A renderer that draws nothing; positions count UTF-8 bytes as columns."""

    def move_cursor(self, old: Position, new: Position) -> None:
        return None

    def refresh_line(
        self,
        prompt: str,
        line: str,
        pos: int,
        hint: str | None,
        old_layout: Layout,
        new_layout: Layout,
        highlighter: object | None = None,
    ) -> None:
        return None

    def calculate_position(self, s: str, orig: Position) -> Position:
        return Position(col=orig.col + len(s.encode("utf-8")), row=orig.row)

    def write_and_flush(self, data: bytes) -> None:
        return None

    def beep(self) -> None:
        return None

    def clear_screen(self) -> None:
        return None

    def sigwinch(self) -> bool:
        return False

    def update_size(self) -> None:
        return None

    def get_columns(self) -> int:
        return 80

    def get_rows(self) -> int:
        return 24

    def colors_enabled(self) -> bool:
        return False

    def move_cursor_at_leftmost(self, reader: RawReader) -> None:
        return None


class _NoRawMode:
    """Raw mode on a terminal with no device; only its active flag changes."""

    def __init__(self) -> None:
        self.active = True

    def disable_raw_mode(self) -> None:
        self.active = False

    def __enter__(self) -> _NoRawMode:
        return self

    def __exit__(self, *exc: object) -> None:
        self.disable_raw_mode()


@dataclass
class DummyTerminal:
    """A terminal whose input is `keys`; `cursor` records the last cursor offset."""

    keys: list[KeyEvent] = field(default_factory=list)
    cursor: int = 0
    color_mode: ColorMode = ColorMode.ENABLED
    bell_style: BellStyle = BellStyle.AUDIBLE

    def is_unsupported(self) -> bool:
        return False

    def is_stdin_tty(self) -> bool:
        return True

    def is_output_tty(self) -> bool:
        return False

    def enable_raw_mode(self) -> _NoRawMode:
        return _NoRawMode()

    def create_reader(self, keyseq_timeout: int | None = None) -> KeyListReader:
        return KeyListReader(self.keys)

    def create_writer(self) -> Sink:
        return Sink()
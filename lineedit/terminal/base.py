"""Shared terminal types: positions, layouts, key events and reader/renderer contracts."""

from __future__ import annotations

import abc
import enum
import functools
from dataclasses import dataclass, field
from typing import ClassVar, Union

from wcwidth import wcwidth


@functools.total_ordering
@dataclass(frozen=True)
class Position:
    """A screen position; ordered by row first, then column."""

    col: int = 0
    row: int = 0

    def _key(self) -> tuple[int, int]:
        return (self.row, self.col)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Position):
            return NotImplemented
        return self._key() < other._key()


@dataclass(frozen=True)
class Layout:
    """Where the prompt, the cursor and the end of the input sit on screen."""

    prompt_size: Position = field(default_factory=Position)
    default_prompt: bool = False
    cursor: Position = field(default_factory=Position)
    end: Position = field(default_factory=Position)


class KeyCode(enum.Enum):
    """The kind of key that was pressed."""

    UNKNOWN_ESC_SEQ = "unknown_esc_seq"
    NULL = "null"
    BACKSPACE = "backspace"
    BACK_TAB = "back_tab"
    BRACKETED_PASTE_START = "bracketed_paste_start"
    BRACKETED_PASTE_END = "bracketed_paste_end"
    CHAR = "char"
    DELETE = "delete"
    DOWN = "down"
    END = "end"
    ENTER = "enter"
    ESC = "esc"
    F = "f"
    HOME = "home"
    INSERT = "insert"
    LEFT = "left"
    PAGE_DOWN = "page_down"
    PAGE_UP = "page_up"
    RIGHT = "right"
    TAB = "tab"
    UP = "up"


class Modifiers(enum.Flag):
    """Modifier keys held while a key was pressed."""

    NONE = 0
    SHIFT = enum.auto()
    ALT = enum.auto()
    CTRL = enum.auto()
    ALT_SHIFT = ALT | SHIFT
    CTRL_SHIFT = CTRL | SHIFT
    CTRL_ALT = CTRL | ALT
    CTRL_ALT_SHIFT = CTRL | ALT | SHIFT


@dataclass(frozen=True)
class KeyEvent:
    """A key press: its code, its modifiers and, for CHAR or F keys, a value."""

    code: KeyCode
    mods: Modifiers = Modifiers.NONE
    value: Union[str, int, None] = None

    ESC: ClassVar[KeyEvent]
    ENTER: ClassVar[KeyEvent]
    BACKSPACE: ClassVar[KeyEvent]

    @classmethod
    def from_char(cls, c: str, mods: Modifiers = Modifiers.NONE) -> KeyEvent:
        """Build the key event for character `c`, decoding control characters."""
        code = ord(c)
        if code == 0x1B:
            return cls(KeyCode.ESC, mods)
        if code == 0x0D:
            return cls(KeyCode.ENTER, mods)
        if code in (0x08, 0x7F):
            return cls(KeyCode.BACKSPACE, mods)
        if code == 0x09:
            if Modifiers.SHIFT in mods:
                return cls(KeyCode.BACK_TAB, mods & ~Modifiers.SHIFT)
            return cls(KeyCode.TAB, mods)
        if code == 0x00:
            return cls(KeyCode.CHAR, mods | Modifiers.CTRL, " ")
        if code < 0x20:
            return cls(KeyCode.CHAR, mods | Modifiers.CTRL, chr(code + 0x40))
        if 0x80 <= code < 0xA0:
            return cls(KeyCode.NULL, mods)
        return cls(KeyCode.CHAR, mods, c)

    @classmethod
    def alt(cls, c: str) -> KeyEvent:
        """The key event for Alt plus character `c`."""
        return cls.from_char(c, Modifiers.ALT)


KeyEvent.ESC = KeyEvent(KeyCode.ESC)
KeyEvent.ENTER = KeyEvent(KeyCode.ENTER)
KeyEvent.BACKSPACE = KeyEvent(KeyCode.BACKSPACE)


class BellStyle(enum.Enum):
    """How the terminal bell is rung."""

    AUDIBLE = "audible"
    NONE = "none"
    VISIBLE = "visible"


class ColorMode(enum.Enum):
    """Whether colours are used on output."""

    ENABLED = "enabled"
    FORCED = "forced"
    DISABLED = "disabled"


class OutputStreamType(enum.Enum):
    """Which standard stream the line is drawn on."""

    STDOUT = "stdout"
    STDERR = "stderr"


class ReadlineError(Exception):
    """Base class for errors raised while reading a line."""


class EofError(ReadlineError):
    """The input stream ended."""


class Utf8Error(ReadlineError):
    """The input held an invalid UTF-8 sequence."""


class EscapeTracker:
    """Measures grapheme widths while skipping ANSI escape sequences."""

    _NONE = 0
    _ESC = 1
    _CSI = 2

    def __init__(self) -> None:
        self._state = self._NONE

    def width(self, grapheme: str) -> int:
        """Return the display width of `grapheme`, 0 inside escape sequences."""
        if self._state == self._ESC:
            self._state = self._CSI if grapheme == "[" else self._NONE
            return 0
        if self._state == self._CSI:
            if not (grapheme == ";" or "0" <= grapheme[:1] <= "9"):
                self._state = self._NONE
            return 0
        if grapheme == "\x1b":
            self._state = self._ESC
            return 0
        if grapheme == "\n":
            return 0
        return sum(max(wcwidth(ch), 0) for ch in grapheme)


class RawReader(abc.ABC):
    """Turns raw terminal input into key events."""

    @abc.abstractmethod
    def next_key(self, single_esc_abort: bool) -> KeyEvent:
        """Block until a key is pressed and return it."""

    @abc.abstractmethod
    def next_char(self) -> str:
        """Read one character, as needed for quoted insert."""

    @abc.abstractmethod
    def read_pasted_text(self) -> str:
        """Read the text of a bracketed paste."""


class Renderer(abc.ABC):
    """Draws the prompt, the line and the cursor."""

    def compute_layout(
        self,
        prompt_size: Position,
        default_prompt: bool,
        line: str,
        pos: int,
        info: str | None = None,
    ) -> Layout:
        """Lay out prompt, line (cursor at `pos`) and optional trailing info."""
        cursor = self.calculate_position(line[:pos], prompt_size)
        end = cursor if pos == len(line) else self.calculate_position(line[pos:], cursor)
        if info is not None:
            end = self.calculate_position(info, end)
        return Layout(
            prompt_size=prompt_size,
            default_prompt=default_prompt,
            cursor=cursor,
            end=end,
        )

    @abc.abstractmethod
    def calculate_position(self, s: str, orig: Position) -> Position:
        """Return where output ends after writing `s` starting at `orig`."""
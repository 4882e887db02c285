"""Reading key presses from a POSIX terminal and decoding escape sequences."""

from __future__ import annotations

import codecs
import logging
import os
import select
import signal

from lineedit.terminal.base import (
    EofError,
    KeyCode,
    KeyEvent,
    Modifiers,
    RawReader,
    Utf8Error,
)

_log = logging.getLogger(__name__)

STDIN_FILENO = 0
_U32_MAX = 2**32 - 1

# final characters of cursor-key sequences
_UP = "A"
_DOWN = "B"
_RIGHT = "C"
_LEFT = "D"
_END = "F"
_HOME = "H"
# first parameter of "\E[<n>~" sequences
_INSERT = "2"
_DELETE = "3"
_PAGE_UP = "5"
_PAGE_DOWN = "6"
_RXVT_HOME = "7"
_RXVT_END = "8"
# modifier parameters of xterm sequences
_SHIFT = "2"
_ALT = "3"
_ALT_SHIFT = "4"
_CTRL = "5"
_CTRL_SHIFT = "6"
_CTRL_ALT = "7"
_CTRL_ALT_SHIFT = "8"
# rxvt modifier suffixes
_RXVT_SHIFT = "$"
_RXVT_CTRL = "\x1e"
_RXVT_CTRL_SHIFT = "@"

_NONE = Modifiers.NONE
_UNKNOWN = KeyEvent(KeyCode.UNKNOWN_ESC_SEQ)


def _f(n: int, mods: Modifiers = _NONE) -> KeyEvent:
    return KeyEvent(KeyCode.F, mods, n)


def _is_digit(c: str) -> bool:
    return len(c) == 1 and "0" <= c <= "9"


_ARROWS = {
    _UP: KeyCode.UP,
    _DOWN: KeyCode.DOWN,
    _RIGHT: KeyCode.RIGHT,
    _LEFT: KeyCode.LEFT,
    _END: KeyCode.END,
    _HOME: KeyCode.HOME,
}

_MOD_CHARS = {
    _SHIFT: Modifiers.SHIFT,
    _ALT: Modifiers.ALT,
    _ALT_SHIFT: Modifiers.ALT_SHIFT,
    _CTRL: Modifiers.CTRL,
    _CTRL_SHIFT: Modifiers.CTRL_SHIFT,
    _CTRL_ALT: Modifiers.CTRL_ALT,
    _CTRL_ALT_SHIFT: Modifiers.CTRL_ALT_SHIFT,
}

_CSI_PLAIN = {
    _UP: KeyEvent(KeyCode.UP),
    _DOWN: KeyEvent(KeyCode.DOWN),
    _RIGHT: KeyEvent(KeyCode.RIGHT),
    _LEFT: KeyEvent(KeyCode.LEFT),
    _END: KeyEvent(KeyCode.END),
    _HOME: KeyEvent(KeyCode.HOME),
    "Z": KeyEvent(KeyCode.BACK_TAB),
    "a": KeyEvent(KeyCode.UP, Modifiers.SHIFT),
    "b": KeyEvent(KeyCode.DOWN, Modifiers.SHIFT),
    "c": KeyEvent(KeyCode.RIGHT, Modifiers.SHIFT),
    "d": KeyEvent(KeyCode.LEFT, Modifiers.SHIFT),
}

_LINUX_CONSOLE = {"A": _f(1), "B": _f(2), "C": _f(3), "D": _f(4), "E": _f(5)}

_CSI_TILDE = {
    "1": KeyEvent(KeyCode.HOME),
    _RXVT_HOME: KeyEvent(KeyCode.HOME),
    _INSERT: KeyEvent(KeyCode.INSERT),
    _DELETE: KeyEvent(KeyCode.DELETE),
    "4": KeyEvent(KeyCode.END),
    _RXVT_END: KeyEvent(KeyCode.END),
    _PAGE_UP: KeyEvent(KeyCode.PAGE_UP),
    _PAGE_DOWN: KeyEvent(KeyCode.PAGE_DOWN),
}

_FUNCTION_NUMBERS = {
    "11": 1, "12": 2, "13": 3, "14": 4, "15": 5, "17": 6,
    "18": 7, "19": 8, "20": 9, "21": 10, "23": 11, "24": 12,
}
_CTRL_FUNCTION_NUMBERS = {
    "15": 5, "17": 6, "18": 7, "19": 8, "20": 9, "21": 10, "23": 11, "24": 12,
}

_PASTE = {
    "200": KeyEvent(KeyCode.BRACKETED_PASTE_START),
    "201": KeyEvent(KeyCode.BRACKETED_PASTE_END),
}


def _build_one_mod_table() -> dict[tuple[str, str], KeyEvent]:
    table: dict[tuple[str, str], KeyEvent] = {}
    for mod_char, mods in _MOD_CHARS.items():
        for key_char, code in _ARROWS.items():
            table[(mod_char, key_char)] = KeyEvent(code, mods)
    for mod_char in (_CTRL, _CTRL_SHIFT, _CTRL_ALT, _CTRL_ALT_SHIFT):
        for digit, letter in enumerate("pqrstuvwxy"):
            table[(mod_char, letter)] = KeyEvent(KeyCode.CHAR, _MOD_CHARS[mod_char], str(digit))
    table[(_CTRL, "P")] = _f(1, Modifiers.CTRL)
    table[(_CTRL, "Q")] = _f(2, Modifiers.CTRL)
    table[(_CTRL, "S")] = _f(4, Modifiers.CTRL)
    # Meta + arrow on some Macs with iTerm defaults
    for key_char in (_UP, _DOWN, _RIGHT, _LEFT):
        table[("9", key_char)] = KeyEvent(_ARROWS[key_char], Modifiers.ALT)
    return table


def _build_mod_tilde_table() -> dict[tuple[str, str], KeyEvent]:
    codes = {
        _INSERT: KeyCode.INSERT,
        _DELETE: KeyCode.DELETE,
        _PAGE_UP: KeyCode.PAGE_UP,
        _PAGE_DOWN: KeyCode.PAGE_DOWN,
    }
    return {
        (seq2, mod_char): KeyEvent(code, mods)
        for seq2, code in codes.items()
        for mod_char, mods in _MOD_CHARS.items()
    }


_CSI_ONE_MOD = _build_one_mod_table()
_CSI_MOD_TILDE = _build_mod_tilde_table()

_RXVT = {
    (_DELETE, _RXVT_CTRL): KeyEvent(KeyCode.DELETE, Modifiers.CTRL),
    (_DELETE, _RXVT_CTRL_SHIFT): KeyEvent(KeyCode.DELETE, Modifiers.CTRL_SHIFT),
    (_CTRL, _UP): KeyEvent(KeyCode.UP, Modifiers.CTRL),
    (_CTRL, _DOWN): KeyEvent(KeyCode.DOWN, Modifiers.CTRL),
    (_CTRL, _RIGHT): KeyEvent(KeyCode.RIGHT, Modifiers.CTRL),
    (_CTRL, _LEFT): KeyEvent(KeyCode.LEFT, Modifiers.CTRL),
    (_PAGE_UP, _RXVT_CTRL): KeyEvent(KeyCode.PAGE_UP, Modifiers.CTRL),
    (_PAGE_UP, _RXVT_SHIFT): KeyEvent(KeyCode.PAGE_UP, Modifiers.SHIFT),
    (_PAGE_UP, _RXVT_CTRL_SHIFT): KeyEvent(KeyCode.PAGE_UP, Modifiers.CTRL_SHIFT),
    (_PAGE_DOWN, _RXVT_CTRL): KeyEvent(KeyCode.PAGE_DOWN, Modifiers.CTRL),
    (_PAGE_DOWN, _RXVT_SHIFT): KeyEvent(KeyCode.PAGE_DOWN, Modifiers.SHIFT),
    (_PAGE_DOWN, _RXVT_CTRL_SHIFT): KeyEvent(KeyCode.PAGE_DOWN, Modifiers.CTRL_SHIFT),
    (_RXVT_HOME, _RXVT_CTRL): KeyEvent(KeyCode.HOME, Modifiers.CTRL),
    (_RXVT_HOME, _RXVT_SHIFT): KeyEvent(KeyCode.HOME, Modifiers.SHIFT),
    (_RXVT_HOME, _RXVT_CTRL_SHIFT): KeyEvent(KeyCode.HOME, Modifiers.CTRL_SHIFT),
    (_RXVT_END, _RXVT_CTRL): KeyEvent(KeyCode.END, Modifiers.CTRL),
    (_RXVT_END, _RXVT_SHIFT): KeyEvent(KeyCode.END, Modifiers.SHIFT),
    (_RXVT_END, _RXVT_CTRL_SHIFT): KeyEvent(KeyCode.END, Modifiers.CTRL_SHIFT),
}

_SS3 = {
    _UP: KeyEvent(KeyCode.UP),
    _DOWN: KeyEvent(KeyCode.DOWN),
    _RIGHT: KeyEvent(KeyCode.RIGHT),
    _LEFT: KeyEvent(KeyCode.LEFT),
    _END: KeyEvent(KeyCode.END),
    _HOME: KeyEvent(KeyCode.HOME),
    "M": KeyEvent.ENTER,
    "P": _f(1),
    "Q": _f(2),
    "R": _f(3),
    "S": _f(4),
    "a": KeyEvent(KeyCode.UP, Modifiers.CTRL),
    "b": KeyEvent(KeyCode.DOWN, Modifiers.CTRL),
    "c": KeyEvent(KeyCode.RIGHT, Modifiers.CTRL),
    "d": KeyEvent(KeyCode.LEFT, Modifiers.CTRL),
    "l": _f(8),
    "t": _f(5),
    "u": _f(6),
    "v": _f(7),
    "w": _f(9),
    "x": _f(10),
}


def _lookup(table: dict, key: object, description: str) -> KeyEvent:
    event = table.get(key)
    if event is None:
        _log.debug("unsupported esc sequence: %r", description)
        return _UNKNOWN
    return event


class _SigwinchFlag:
    """Set from the SIGWINCH handler, cleared by whoever consumes it."""

    def __init__(self) -> None:
        self.pending = False
        self.installed = False


_SIGWINCH = _SigwinchFlag()


def _on_sigwinch(signum: int, frame: object) -> None:
    _SIGWINCH.pending = True


def install_sigwinch_handler() -> None:
    """Install the window-resize handler once; failures are ignored."""
    if _SIGWINCH.installed or not hasattr(signal, "SIGWINCH"):
        return
    try:
        signal.signal(signal.SIGWINCH, _on_sigwinch)
    except (ValueError, OSError):
        return
    _SIGWINCH.installed = True


def take_sigwinch() -> bool:
    """Return True if the window was resized since the last call, clearing the flag."""
    pending = _SIGWINCH.pending
    _SIGWINCH.pending = False
    return pending


class PosixRawReader(RawReader):
    """Reads UTF-8 input byte by byte from a file descriptor and decodes keys."""

    def __init__(self, keyseq_timeout: int | None = -1, fd: int = STDIN_FILENO) -> None:
        self._timeout_ms = -1 if keyseq_timeout is None else keyseq_timeout
        self._fd = fd
        self._decoder = codecs.getincrementaldecoder("utf-8")("strict")

    def _read_byte(self) -> bytes:
        while True:
            try:
                return os.read(self._fd, 1)
            except InterruptedError:
                if _SIGWINCH.pending:
                    raise

    def next_char(self) -> str:
        """Read one complete character; raise EofError or Utf8Error."""
        while True:
            data = self._read_byte()
            if not data:
                raise EofError("end of input")
            try:
                text = self._decoder.decode(data)
            except UnicodeDecodeError as exc:
                self._decoder.reset()
                raise Utf8Error("invalid UTF-8 input") from exc
            if text:
                return text

    def poll(self, timeout_ms: int) -> int:
        """Wait up to `timeout_ms` (negative: forever); return the number of ready fds."""
        poller = select.poll()
        poller.register(self._fd, select.POLLIN)
        try:
            return len(poller.poll(timeout_ms if timeout_ms >= 0 else None))
        except InterruptedError:
            if _SIGWINCH.pending:
                raise
            return 0

    def next_key(self, single_esc_abort: bool = False) -> KeyEvent:
        key = KeyEvent.from_char(self.next_char())
        if key == KeyEvent.ESC:
            timeout_ms = 0 if single_esc_abort and self._timeout_ms == -1 else self._timeout_ms
            if self.poll(timeout_ms) != 0:
                key = self._escape_sequence()
        _log.debug("key: %r", key)
        return key

    def read_pasted_text(self) -> str:
        chars: list[str] = []
        while True:
            c = self.next_char()
            if c == "\x1b":
                if self._escape_sequence() == _PASTE["201"]:
                    break
                continue
            chars.append(c)
        return "".join(chars).replace("\r\n", "\n").replace("\r", "\n")

    def _escape_sequence(self, allow_recurse: bool = True) -> KeyEvent:
        seq1 = self.next_char()
        if seq1 == "[":
            return self._escape_csi()
        if seq1 == "O":
            return self._escape_o()
        if seq1 == "\x1b":
            # ESC ESC <seq>: Alt plus the key, or a lone Escape
            if not allow_recurse:
                return KeyEvent.ESC
            timeout = 100 if self._timeout_ms < 0 else self._timeout_ms
            try:
                ready = self.poll(timeout)
            except OSError:
                return KeyEvent.ESC
            if ready == 0:
                return KeyEvent.ESC
            inner = self._escape_sequence(allow_recurse=False)
            return KeyEvent(inner.code, inner.mods | Modifiers.ALT, inner.value)
        return KeyEvent.alt(seq1)

    def _escape_csi(self) -> KeyEvent:
        seq2 = self.next_char()
        if _is_digit(seq2):
            if seq2 in ("0", "9"):
                _log.debug("unsupported esc sequence: \\E[%r", seq2)
                return _UNKNOWN
            return self._extended_escape(seq2)
        if seq2 == "[":
            seq3 = self.next_char()
            return _lookup(_LINUX_CONSOLE, seq3, "\\E[[" + seq3)
        return _lookup(_CSI_PLAIN, seq2, "\\E[" + seq2)

    def _extended_escape(self, seq2: str) -> KeyEvent:
        seq3 = self.next_char()
        if seq3 == "~":
            return _lookup(_CSI_TILDE, seq2, f"\\E[{seq2}~")
        if _is_digit(seq3):
            return self._two_digit_escape(seq2, seq3)
        if seq3 == ";":
            return self._modified_escape(seq2)
        return _lookup(_RXVT, (seq2, seq3), f"\\E[{seq2}{seq3}")

    def _two_digit_escape(self, seq2: str, seq3: str) -> KeyEvent:
        seq4 = self.next_char()
        number = seq2 + seq3
        if seq4 == "~":
            n = _FUNCTION_NUMBERS.get(number)
            if n is None:
                _log.debug("unsupported esc sequence: \\E[%s~", number)
                return _UNKNOWN
            return _f(n)
        if seq4 == ";":
            seq5 = self.next_char()
            if not _is_digit(seq5):
                _log.debug("unsupported esc sequence: \\E[%s;%r", number, seq5)
                return _UNKNOWN
            seq6 = self.next_char()
            if _is_digit(seq6):
                self.next_char()  # 'R' expected
                return _UNKNOWN
            if seq6 == "R":
                return _UNKNOWN
            if seq6 == "~":
                n = _CTRL_FUNCTION_NUMBERS.get(number)
                if seq5 == _CTRL and n is not None:
                    return _f(n, Modifiers.CTRL)
                _log.debug("unsupported esc sequence: \\E[%s;%s~", number, seq5)
                return _UNKNOWN
            _log.debug("unsupported esc sequence: \\E[%s;%s%s", number, seq5, seq6)
            return _UNKNOWN
        if _is_digit(seq4):
            seq5 = self.next_char()
            if seq5 == "~":
                return _lookup(_PASTE, number + seq4, f"\\E[{number}{seq4}~")
            _log.debug("unsupported esc sequence: \\E[%s%s%s", number, seq4, seq5)
            return _UNKNOWN
        _log.debug("unsupported esc sequence: \\E[%s%r", number, seq4)
        return _UNKNOWN

    def _modified_escape(self, seq2: str) -> KeyEvent:
        seq4 = self.next_char()
        if not _is_digit(seq4):
            _log.debug("unsupported esc sequence: \\E[%s;%r", seq2, seq4)
            return _UNKNOWN
        seq5 = self.next_char()
        if _is_digit(seq5):
            self.next_char()  # 'R' expected
            return _UNKNOWN
        if seq2 == "1":
            return _lookup(_CSI_ONE_MOD, (seq4, seq5), f"\\E[1;{seq4}{seq5}")
        if seq5 == "~":
            return _lookup(_CSI_MOD_TILDE, (seq2, seq4), f"\\E[{seq2};{seq4}~")
        _log.debug("unsupported esc sequence: \\E[%s;%s%r", seq2, seq4, seq5)
        return _UNKNOWN

    def _escape_o(self) -> KeyEvent:
        seq2 = self.next_char()
        return _lookup(_SS3, seq2, "\\EO" + seq2)


def read_digits_until(reader: RawReader, sep: str) -> int | None:
    """Read decimal digits up to `sep`; None if another character comes first."""
    num = 0
    while True:
        c = reader.next_char()
        if _is_digit(c):
            num = min(num * 10 + int(c), _U32_MAX)
        elif c == sep:
            return num
        else:
            return None
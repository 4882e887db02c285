"""POSIX terminal: capability checks, raw mode and reader/renderer creation."""

from __future__ import annotations

import errno
import logging
import os
import signal
import termios
from dataclasses import dataclass
from typing import Optional

from lineedit.terminal.base import BellStyle, ColorMode, OutputStreamType
from lineedit.terminal.posix_reader import (
    STDIN_FILENO,
    PosixRawReader,
    install_sigwinch_handler,
)
from lineedit.terminal.posix_renderer import PosixRenderer, write_and_flush

_log = logging.getLogger(__name__)

UNSUPPORTED_TERMS = ("dumb", "cons25", "emacs")

BRACKETED_PASTE_ON = b"\x1b[?2004h"
BRACKETED_PASTE_OFF = b"\x1b[?2004l"

_STREAM_FDS = {OutputStreamType.STDOUT: 1, OutputStreamType.STDERR: 2}

# indices into the list returned by termios.tcgetattr
_IFLAG, _OFLAG, _CFLAG, _LFLAG, _ISPEED, _OSPEED, _CC = range(7)


def is_unsupported_term() -> bool:
    """Return True if the TERM variable names a terminal without raw mode."""
    term = os.environ.get("TERM")
    if term is None:
        return False
    return term.lower() in UNSUPPORTED_TERMS


@dataclass(frozen=True)
class PosixMode:
    """The terminal settings to restore when leaving raw mode."""

    fd: int
    saved: list
    out: Optional[OutputStreamType] = None

    def disable_raw_mode(self) -> None:
        """Restore the saved settings and turn bracketed paste off if it was on."""
        termios.tcsetattr(self.fd, termios.TCSADRAIN, self.saved)
        if self.out is not None:
            write_and_flush(self.out, BRACKETED_PASTE_OFF)

    def __enter__(self) -> PosixMode:
        return self

    def __exit__(self, *exc: object) -> None:
        self.disable_raw_mode()


class PosixTerminal:
    """The controlling terminal reached through standard input and an output stream."""

    def __init__(
        self,
        color_mode: ColorMode = ColorMode.ENABLED,
        stream_type: OutputStreamType = OutputStreamType.STDOUT,
        tab_stop: int = 8,
        bell_style: BellStyle = BellStyle.AUDIBLE,
        enable_bracketed_paste: bool = True,
        stdin_fd: int = STDIN_FILENO,
    ) -> None:
        self.color_mode = color_mode
        self._stream_type = stream_type
        self._tab_stop = tab_stop
        self._bell_style = bell_style
        self._enable_bracketed_paste = enable_bracketed_paste
        self._stdin_fd = stdin_fd
        self._unsupported = is_unsupported_term()
        self._stdin_isatty = os.isatty(stdin_fd)
        self._stdstream_isatty = os.isatty(_STREAM_FDS[stream_type])
        if not self._unsupported and self._stdin_isatty and self._stdstream_isatty:
            install_sigwinch_handler()

    def is_unsupported(self) -> bool:
        """Whether the terminal cannot offer rich line editing."""
        return self._unsupported

    def is_stdin_tty(self) -> bool:
        return self._stdin_isatty

    def is_output_tty(self) -> bool:
        return self._stdstream_isatty

    def colors_enabled(self) -> bool:
        if self.color_mode is ColorMode.FORCED:
            return True
        if self.color_mode is ColorMode.DISABLED:
            return False
        return self._stdstream_isatty

    def enable_raw_mode(self) -> PosixMode:
        """Switch standard input to raw mode; the result restores the old settings."""
        if not self._stdin_isatty:
            raise OSError(errno.ENOTTY, os.strerror(errno.ENOTTY))
        original = termios.tcgetattr(self._stdin_fd)
        raw = list(original)
        raw[_CC] = list(original[_CC])
        # no BREAK interrupt, CR-to-NL, parity check, 8th-bit strip or flow control
        raw[_IFLAG] &= ~(
            termios.BRKINT | termios.ICRNL | termios.INPCK | termios.ISTRIP | termios.IXON
        )
        raw[_CFLAG] |= termios.CS8
        # no echo, canonical mode, extended input processing or signals
        raw[_LFLAG] &= ~(termios.ECHO | termios.ICANON | termios.IEXTEN | termios.ISIG)
        # one character at a time, blocking
        raw[_CC][termios.VMIN] = 1
        raw[_CC][termios.VTIME] = 0
        termios.tcsetattr(self._stdin_fd, termios.TCSADRAIN, raw)

        out: Optional[OutputStreamType] = None
        if self._enable_bracketed_paste:
            try:
                write_and_flush(self._stream_type, BRACKETED_PASTE_ON)
            except (OSError, ValueError) as exc:
                _log.debug("Cannot enable bracketed paste: %s", exc)
            else:
                out = self._stream_type
        return PosixMode(fd=self._stdin_fd, saved=original, out=out)

    def create_reader(self, keyseq_timeout: int | None = -1) -> PosixRawReader:
        return PosixRawReader(keyseq_timeout, fd=self._stdin_fd)

    def create_writer(self) -> PosixRenderer:
        return PosixRenderer(
            self._stream_type,
            self._tab_stop,
            self.colors_enabled(),
            self._bell_style,
        )


def suspend() -> None:
    """Stop the whole process group, as Ctrl-Z would."""
    os.kill(0, signal.SIGTSTP)
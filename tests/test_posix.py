import copy
import errno
import os
import signal
import termios
from unittest import mock

import pytest

from lineedit.terminal.base import ColorMode, KeyEvent
from lineedit.terminal.posix import (
    BRACKETED_PASTE_OFF,
    BRACKETED_PASTE_ON,
    PosixTerminal,
    is_unsupported_term,
    suspend,
)


@pytest.fixture
def no_tty(monkeypatch):
    monkeypatch.setenv("TERM", "dumb")
    monkeypatch.setattr(os, "isatty", lambda fd: False)


@pytest.fixture
def all_tty(monkeypatch):
    monkeypatch.setenv("TERM", "dumb")
    monkeypatch.setattr(os, "isatty", lambda fd: True)


@pytest.fixture
def fake_tty(monkeypatch, all_tty):
    """A pipe standing in for a terminal, with its attributes kept in memory."""
    state = {}

    def tcgetattr(fd):
        if fd not in state:
            state[fd] = [
                termios.ICRNL | termios.IXON | termios.BRKINT,
                termios.OPOST,
                termios.CREAD,
                termios.ECHO | termios.ICANON | termios.ISIG | termios.IEXTEN,
                termios.B38400,
                termios.B38400,
                [b"\x00"] * termios.NCCS,
            ]
        return copy.deepcopy(state[fd])

    def tcsetattr(fd, when, attrs):
        state[fd] = copy.deepcopy(attrs)

    monkeypatch.setattr(termios, "tcgetattr", tcgetattr)
    monkeypatch.setattr(termios, "tcsetattr", tcsetattr)
    read_fd, write_fd = os.pipe()
    yield read_fd, write_fd
    os.close(read_fd)
    os.close(write_fd)


def test_unsupported_term(monkeypatch):
    monkeypatch.setenv("TERM", "xterm")
    assert is_unsupported_term() is False
    monkeypatch.setenv("TERM", "dumb")
    assert is_unsupported_term() is True


def test_unsupported_term_ignores_case_and_missing(monkeypatch):
    monkeypatch.setenv("TERM", "EMACS")
    assert is_unsupported_term() is True
    monkeypatch.delenv("TERM")
    assert is_unsupported_term() is False


def test_terminal_reports_unsupported(monkeypatch, no_tty):
    term = PosixTerminal()
    assert term.is_unsupported() is True


def test_tty_flags_follow_isatty(no_tty):
    term = PosixTerminal()
    assert term.is_stdin_tty() is False
    assert term.is_output_tty() is False


def test_tty_flags_true(all_tty):
    term = PosixTerminal()
    assert term.is_stdin_tty() is True
    assert term.is_output_tty() is True


@pytest.mark.parametrize(
    "mode, expected",
    [(ColorMode.FORCED, True), (ColorMode.DISABLED, False), (ColorMode.ENABLED, False)],
)
def test_colors_without_tty(no_tty, mode, expected):
    assert PosixTerminal(color_mode=mode).colors_enabled() is expected


@pytest.mark.parametrize(
    "mode, expected",
    [(ColorMode.FORCED, True), (ColorMode.DISABLED, False), (ColorMode.ENABLED, True)],
)
def test_colors_with_tty(all_tty, mode, expected):
    assert PosixTerminal(color_mode=mode).colors_enabled() is expected


def test_writer_carries_color_setting(no_tty):
    writer = PosixTerminal(color_mode=ColorMode.FORCED).create_writer()
    assert writer.colors_enabled() is True
    writer = PosixTerminal(color_mode=ColorMode.DISABLED).create_writer()
    assert writer.colors_enabled() is False


def test_enable_raw_mode_needs_tty(no_tty):
    term = PosixTerminal()
    with pytest.raises(OSError) as info:
        term.enable_raw_mode()
    assert info.value.errno == errno.ENOTTY


def test_raw_mode_round_trip(fake_tty):
    read_fd, _ = fake_tty
    before = termios.tcgetattr(read_fd)
    term = PosixTerminal(stdin_fd=read_fd, enable_bracketed_paste=False)
    mode = term.enable_raw_mode()
    raw = termios.tcgetattr(read_fd)
    assert raw[3] & termios.ECHO == 0
    assert raw[3] & termios.ICANON == 0
    assert raw[0] & termios.ICRNL == 0
    assert mode.out is None
    mode.disable_raw_mode()
    after = termios.tcgetattr(read_fd)
    assert after[3] == before[3]
    assert after[0] == before[0]


def test_raw_mode_as_context_manager(fake_tty):
    read_fd, _ = fake_tty
    before = termios.tcgetattr(read_fd)
    term = PosixTerminal(stdin_fd=read_fd, enable_bracketed_paste=False)
    with term.enable_raw_mode():
        assert termios.tcgetattr(read_fd)[3] & termios.ECHO == 0
    assert termios.tcgetattr(read_fd)[3] == before[3]


def test_bracketed_paste_toggled(fake_tty, capsysbinary):
    read_fd, _ = fake_tty
    term = PosixTerminal(stdin_fd=read_fd, enable_bracketed_paste=True)
    mode = term.enable_raw_mode()
    assert capsysbinary.readouterr().out == b"\x1b[?2004h" == BRACKETED_PASTE_ON
    mode.disable_raw_mode()
    assert capsysbinary.readouterr().out == b"\x1b[?2004l" == BRACKETED_PASTE_OFF


def test_reader_reads_from_terminal_input(fake_tty):
    read_fd, write_fd = fake_tty
    term = PosixTerminal(stdin_fd=read_fd, enable_bracketed_paste=False)
    with term.enable_raw_mode():
        os.write(write_fd, b"a")
        reader = term.create_reader(-1)
        assert reader.next_key(False) == KeyEvent.from_char("a")


def test_suspend_stops_process_group():
    with mock.patch("os.kill") as kill:
        result = suspend()
    assert (result, kill.call_args_list) == (None, [mock.call(0, signal.SIGTSTP)])


def test_suspend_propagates_kill_failure():
    with mock.patch("os.kill", side_effect=PermissionError(errno.EPERM, "denied")):
        with pytest.raises(PermissionError) as info:
            suspend()
    assert info.value.errno == errno.EPERM
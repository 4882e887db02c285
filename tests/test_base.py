import regex

from lineedit.terminal.base import (
    EscapeTracker,
    KeyCode,
    KeyEvent,
    Layout,
    Modifiers,
    Position,
    Renderer,
)


class _CountingRenderer(Renderer):
    """Columns advance one per character; '\n' starts a new row."""

    def calculate_position(self, s, orig):
        col, row = orig.col, orig.row
        for ch in s:
            if ch == "\n":
                row += 1
                col = 0
            else:
                col += 1
        return Position(col=col, row=row)


def _measure(text):
    tracker = EscapeTracker()
    return sum(tracker.width(g) for g in regex.findall(r"\X", text))


def test_position_orders_by_row_then_col():
    assert Position(col=50, row=0) < Position(col=0, row=1)
    assert Position(col=1, row=2) < Position(col=2, row=2)
    assert Position(col=3, row=1) <= Position(col=3, row=1)
    assert max(Position(col=9, row=0), Position(col=0, row=1)) == Position(col=0, row=1)


def test_position_default_is_origin():
    assert Position() == Position(col=0, row=0)


def test_prompt_with_ansi_escape_codes_has_visible_width():
    assert _measure("\x1b[1;32m>>\x1b[0m ") == 3


def test_escape_tracker_newline_and_plain_text():
    assert _measure("ab\ncd") == len("abcd")


def test_escape_tracker_wide_characters():
    tracker = EscapeTracker()
    assert tracker.width("漢") == 2


def test_escape_tracker_two_char_sequence_resets():
    tracker = EscapeTracker()
    assert tracker.width("\x1b") == 0
    assert tracker.width("c") == 0
    assert tracker.width("x") == 1


def test_compute_layout_cursor_at_end():
    renderer = _CountingRenderer()
    prompt = renderer.calculate_position("> ", Position())
    layout = renderer.compute_layout(prompt, True, "abc", 3)
    assert layout.cursor == layout.end
    assert layout.prompt_size == prompt
    assert layout.default_prompt is True
    assert layout.prompt_size <= layout.cursor <= layout.end


def test_compute_layout_cursor_in_middle_and_info():
    renderer = _CountingRenderer()
    prompt = Position(col=2, row=0)
    without_info = renderer.compute_layout(prompt, False, "hello", 2)
    with_info = renderer.compute_layout(prompt, False, "hello", 2, "!!")
    assert without_info.cursor == with_info.cursor
    assert without_info.cursor < without_info.end
    assert without_info.end < with_info.end


def test_compute_layout_multiline():
    renderer = _CountingRenderer()
    layout = renderer.compute_layout(Position(), False, "a\nb", 0)
    assert layout.cursor == Position()
    assert layout.end.row == 1


def test_layout_defaults():
    layout = Layout()
    assert layout.cursor == layout.end == layout.prompt_size == Position()


def test_from_char_plain():
    assert KeyEvent.from_char("a") == KeyEvent(KeyCode.CHAR, Modifiers.NONE, "a")


def test_from_char_control_keys():
    assert KeyEvent.from_char("\x1b") == KeyEvent.ESC
    assert KeyEvent.from_char("\r") == KeyEvent.ENTER
    assert KeyEvent.from_char("\x7f") == KeyEvent.BACKSPACE
    assert KeyEvent.from_char("\x01") == KeyEvent(KeyCode.CHAR, Modifiers.CTRL, "A")
    assert KeyEvent.from_char("\t").code is KeyCode.TAB


def test_alt():
    key = KeyEvent.alt("b")
    assert key.mods == Modifiers.ALT
    assert key.value == "b"


def test_alt_modifier_combines_with_shift():
    key = KeyEvent.alt("b")
    assert key.mods | Modifiers.SHIFT == Modifiers.ALT_SHIFT
    assert key.mods | Modifiers.CTRL | Modifiers.SHIFT == Modifiers.CTRL_ALT_SHIFT
    assert Modifiers.CTRL not in key.mods
# lineedit

Building blocks for an interactive terminal line editor on POSIX systems.

- **Undo history** (`lineedit.undo.Changeset`) records inserts, deletes and replacements. It merges consecutive alphanumeric character inserts and single-character deletes into one change, and it groups changes between `begin()` and `end()`. It can undo and redo changes on a line buffer. `last_insert()` returns the text of the most recent insertion or replacement.
- **Input validation** (`lineedit.validate`) provides:
  - the `Validator` base class, which accepts any input;
  - `ValidationResult`, which holds a `ValidationKind` and an optional message;
  - `MatchingBracketValidator` and `validate_brackets()`, which report unclosed `(`, `[` or `{` as incomplete and mismatched or unpaired closers as invalid.
- **Terminal layer** (`lineedit.terminal`):
  - `base`: `Position`, `Layout`, `KeyEvent` with `KeyCode` and `Modifiers`, the `ReadlineError`/`EofError`/`Utf8Error` exceptions, and the `RawReader` and `Renderer` base classes. `Renderer.compute_layout()` works out where the cursor and the end of the input fall.
  - `dummy`: a scripted terminal. `DummyTerminal` holds a list of key events. `KeyListReader` yields those events and then raises `EofError`. `Sink` is a renderer that draws nothing.
  - `posix_reader`: `PosixRawReader` reads UTF-8 input byte by byte and decodes xterm, rxvt and Linux-console escape sequences into `KeyEvent`s. It also reads bracketed pastes. This module also holds `read_digits_until()`, `install_sigwinch_handler()` and `take_sigwinch()`.
  - `posix_renderer`: `PosixRenderer` draws the prompt, line and hint with ANSI escape sequences. It wraps at the terminal width, counts tab stops, ignores escape sequences when measuring, and keeps wide characters whole. This module also holds `get_win_size()` and `write_and_flush()`.
  - `posix`: `PosixTerminal` checks `TERM` and whether the streams are terminals. `enable_raw_mode()` returns a `PosixMode`, which also works as a context manager and restores the saved settings. The module also provides `is_unsupported_term()` and `suspend()`.

## Installation

```
pip install .
```

To install the test dependencies as well:

```
pip install .[test]
```

## Validating input

```python
from lineedit.validate import validate_brackets

result = validate_brackets("foo(bar[")
print(result.kind)         # ValidationKind.INCOMPLETE
print(result.is_valid())   # False
```

## Recording undoable edits

```python
from lineedit.undo import Changeset

changes = Changeset()
changes.begin()
changes.delete(0, "Hello")
changes.insert_str(0, "Bye")
changes.end()
print(changes.last_insert())   # "Bye"
```

`Changeset.undo(line, n)` and `Changeset.redo(line)` work on any object that has the methods `delete_range(start, end)`, `insert_str(idx, text)`, `set_pos(pos)` and `replace(start, end, text)`.

## Laying out a prompt

```python
from lineedit.terminal.base import Position
from lineedit.terminal.dummy import Sink

sink = Sink()
prompt_size = sink.calculate_position("> ", Position())
layout = sink.compute_layout(prompt_size, True, "hello", 5, None)
print(layout.cursor)   # Position(col=7, row=0)
```

## Using a real terminal

```python
from lineedit.terminal.posix import PosixTerminal

term = PosixTerminal()
with term.enable_raw_mode():
    reader = term.create_reader()
    key = reader.next_key()
print(key)
```

`PosixTerminal.create_writer()` returns a `PosixRenderer` for the chosen output stream.

## What this package does not do

The package has no complete line editor. There is no `readline` loop, no line buffer, no history, no key bindings for Emacs or vi, and no completion or hints. It provides the pieces such an editor is built from. The terminal classes need POSIX `termios`, so Windows consoles are not supported.

## Running the tests

```
pytest
```
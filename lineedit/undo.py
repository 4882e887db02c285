"""Undo and redo history for edits made to a line buffer."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Protocol, Union

import regex

_log = logging.getLogger(__name__)

_GRAPHEME = regex.compile(r"\X")


class _EditableLine(Protocol):
    """What a line buffer must offer for changes to be undone or redone."""

    def delete_range(self, start: int, end: int) -> None: ...

    def insert_str(self, idx: int, text: str) -> None: ...

    def set_pos(self, pos: int) -> None: ...

    def replace(self, start: int, end: int, text: str) -> None: ...


class _Marker(enum.Enum):
    BEGIN = "begin"
    END = "end"


@dataclass
class _Insert:
    idx: int
    text: str

    def undo(self, line: _EditableLine) -> None:
        line.delete_range(self.idx, self.idx + len(self.text))

    def redo(self, line: _EditableLine) -> None:
        line.insert_str(self.idx, self.text)

    def continues_at(self, idx: int) -> bool:
        return self.idx + len(self.text) == idx


@dataclass
class _Delete:
    idx: int
    text: str

    def undo(self, line: _EditableLine) -> None:
        line.insert_str(self.idx, self.text)
        line.set_pos(self.idx + len(self.text))

    def redo(self, line: _EditableLine) -> None:
        line.delete_range(self.idx, self.idx + len(self.text))

    def continues_at(self, idx: int, length: int) -> bool:
        # forward delete or backspace
        return self.idx == idx or self.idx == idx + length


@dataclass
class _Replace:
    idx: int
    old: str
    new: str

    def undo(self, line: _EditableLine) -> None:
        line.replace(self.idx, self.idx + len(self.new), self.old)

    def redo(self, line: _EditableLine) -> None:
        line.replace(self.idx, self.idx + len(self.old), self.new)

    def continues_at(self, idx: int) -> bool:
        return self.idx + len(self.new) == idx


_Change = Union[_Marker, _Insert, _Delete, _Replace]


def _is_single_alnum_grapheme(text: str) -> bool:
    graphemes = _GRAPHEME.findall(text)
    return len(graphemes) == 1 and all(ch.isalnum() for ch in graphemes[0])


class Changeset:
    """Records edits so they can be undone and redone, optionally in groups."""

    def __init__(self) -> None:
        self._group_level = 0
        self._killing = False
        self._undos: list[_Change] = []
        self._redos: list[_Change] = []

    def _last(self) -> _Change | None:
        return self._undos[-1] if self._undos else None

    def begin(self) -> int:
        """Open a group of changes; return a mark usable with `truncate`."""
        _log.debug("Changeset.begin")
        self._redos.clear()
        mark = len(self._undos)
        self._undos.append(_Marker.BEGIN)
        self._group_level += 1
        return mark

    def end(self) -> bool:
        """Close all open groups; return True if any change happened inside."""
        _log.debug("Changeset.end")
        self._redos.clear()
        touched = False
        while self._group_level > 0:
            self._group_level -= 1
            if self._last() is _Marker.BEGIN:
                self._undos.pop()
            else:
                self._undos.append(_Marker.END)
                touched = True
        return touched

    def insert(self, idx: int, c: str) -> None:
        """Record insertion of a single character at `idx`."""
        _log.debug("Changeset.insert(%d, %r)", idx, c)
        self._redos.clear()
        last = self._last()
        if c.isalnum() and isinstance(last, _Insert) and last.continues_at(idx):
            # consecutive alphanumeric insertions form one change
            last.text += c
            return
        self._undos.append(_Insert(idx, c))

    def insert_str(self, idx: int, string: str) -> None:
        """Record insertion of `string` at `idx`."""
        _log.debug("Changeset.insert_str(%d, %r)", idx, string)
        self._redos.clear()
        if not string:
            return
        self._undos.append(_Insert(idx, string))

    def delete(self, idx: int, string: str) -> None:
        """Record deletion of `string` found at `idx`."""
        _log.debug("Changeset.delete(%d, %r)", idx, string)
        self._redos.clear()
        if not string:
            return
        last = self._last()
        if (
            _is_single_alnum_grapheme(string)
            and isinstance(last, _Delete)
            and last.continues_at(idx, len(string))
        ):
            # consecutive single-character deletions form one change
            if last.idx == idx:
                last.text += string
            else:
                last.text = string + last.text
                last.idx = idx
            return
        self._undos.append(_Delete(idx, string))

    def replace(self, idx: int, old: str, new: str) -> None:
        """Record replacement of `old` by `new` at `idx`."""
        _log.debug("Changeset.replace(%d, %r, %r)", idx, old, new)
        self._redos.clear()
        last = self._last()
        if isinstance(last, _Replace) and last.continues_at(idx):
            last.old += old
            last.new += new
            return
        self._undos.append(_Replace(idx, old, new))

    def undo(self, line: _EditableLine, n: int = 1) -> bool:
        """Undo `n` changes or groups on `line`; return True if anything changed."""
        _log.debug("Changeset.undo")
        count = 0
        waiting_for_begin = 0
        undone = False
        while self._undos:
            change = self._undos.pop()
            if change is _Marker.BEGIN:
                waiting_for_begin -= 1
            elif change is _Marker.END:
                waiting_for_begin += 1
            else:
                change.undo(line)
                undone = True
            self._redos.append(change)
            if waiting_for_begin <= 0:
                count += 1
                if count >= n:
                    break
        return undone

    def redo(self, line: _EditableLine) -> bool:
        """Redo the last undone change or group; return True if anything changed."""
        waiting_for_end = 0
        redone = False
        while self._redos:
            change = self._redos.pop()
            if change is _Marker.BEGIN:
                waiting_for_end += 1
            elif change is _Marker.END:
                waiting_for_end -= 1
            else:
                change.redo(line)
                redone = True
            self._undos.append(change)
            if waiting_for_end <= 0:
                break
        return redone

    def truncate(self, length: int) -> None:
        """Drop every recorded change past the first `length`."""
        _log.debug("Changeset.truncate(%d)", length)
        del self._undos[length:]

    def last_insert(self) -> str | None:
        """Return the text of the most recent insertion or replacement, if any."""
        for change in reversed(self._undos):
            if isinstance(change, _Insert):
                return change.text
            if isinstance(change, _Replace):
                return change.new
            if change is _Marker.END:
                continue
            return None
        return None

    def start_killing(self) -> None:
        """Note that a run of kill commands has started."""
        self._killing = True

    def stop_killing(self) -> None:
        """Note that a run of kill commands has ended."""
        self._killing = False
"""Mouse selection over the terminal grid: snapping, normalising, extracting text."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from stterm.glyph import Attr, Glyph, SelectionMode, SelectionSnap, SelectionType
from stterm.utf8 import utf8_encode

__all__ = ["Grid", "Point", "Selection"]


class Grid(Protocol):
    """What a selection needs to know about the screen it lives on."""

    cols: int
    rows: int
    top: int
    bot: int
    altscreen: bool

    def line(self, y: int) -> Sequence[Glyph]: ...

    def line_length(self, y: int) -> int: ...

    def set_dirty(self, top: int, bot: int) -> None: ...


@dataclass
class Point:
    x: int = 0
    y: int = 0


class Selection:
    """A selection in screen coordinates.

    ``ob``/``oe`` hold the original begin and end as the user made them;
    ``nb``/``ne`` hold the normalised, snapped corners.
    """

    def __init__(self, grid: Grid, word_delimiters: str = " ") -> None:
        self.grid = grid
        self.word_delimiters = word_delimiters
        self.mode = SelectionMode.IDLE
        self.type = SelectionType.REGULAR
        self.snap = SelectionSnap.NONE
        self.nb = Point()
        self.ne = Point()
        self.ob = Point(-1, 0)
        self.oe = Point()
        self.alt = False

    @property
    def active(self) -> bool:
        return self.ob.x != -1

    def _is_delim(self, u: int) -> bool:
        return 0 < u <= 0x10FFFF and chr(u) in self.word_delimiters

    def start(self, col: int, row: int, snap: int) -> None:
        """Begin a new selection at (col, row)."""
        self.clear()
        self.mode = SelectionMode.EMPTY
        self.type = SelectionType.REGULAR
        self.alt = self.grid.altscreen
        self.snap = SelectionSnap(snap)
        self.ob = Point(col, row)
        self.oe = Point(col, row)
        self.normalize()
        if self.snap != SelectionSnap.NONE:
            self.mode = SelectionMode.READY
        self.grid.set_dirty(self.nb.y, self.ne.y)

    def extend(self, col: int, row: int, type_: int, done: bool) -> None:
        """Move the selection's end to (col, row); ``done`` finishes it."""
        if self.mode == SelectionMode.IDLE:
            return
        if done and self.mode == SelectionMode.EMPTY:
            self.clear()
            return

        old_end = (self.oe.x, self.oe.y)
        old_top, old_bottom = self.nb.y, self.ne.y
        old_type = self.type

        self.oe = Point(col, row)
        self.normalize()
        self.type = SelectionType(type_)

        if (
            old_end != (self.oe.x, self.oe.y)
            or old_type != self.type
            or self.mode == SelectionMode.EMPTY
        ):
            self.grid.set_dirty(min(self.nb.y, old_top), max(self.ne.y, old_bottom))

        self.mode = SelectionMode.IDLE if done else SelectionMode.READY

    def normalize(self) -> None:
        """Recompute the normalised corners from the original ones."""
        ob, oe = self.ob, self.oe
        if self.type == SelectionType.REGULAR and ob.y != oe.y:
            nbx = ob.x if ob.y < oe.y else oe.x
            nex = oe.x if ob.y < oe.y else ob.x
        else:
            nbx = min(ob.x, oe.x)
            nex = max(ob.x, oe.x)
        self.nb = Point(*self._snap(nbx, min(ob.y, oe.y), -1))
        self.ne = Point(*self._snap(nex, max(ob.y, oe.y), +1))

        if self.type == SelectionType.RECTANGULAR:
            return
        # expand the selection over line breaks
        length = self.grid.line_length(self.nb.y)
        if length < self.nb.x:
            self.nb.x = length
        if self.grid.line_length(self.ne.y) <= self.ne.x:
            self.ne.x = self.grid.cols - 1

    def _snap(self, x: int, y: int, direction: int) -> tuple[int, int]:
        grid = self.grid
        if self.snap == SelectionSnap.WORD:
            prev = grid.line(y)[x]
            prev_delim = self._is_delim(prev.u)
            while True:
                newx = x + direction
                newy = y
                if not 0 <= newx <= grid.cols - 1:
                    newy += direction
                    newx = (newx + grid.cols) % grid.cols
                    if not 0 <= newy <= grid.rows - 1:
                        break
                    yt, xt = (y, x) if direction > 0 else (newy, newx)
                    if not grid.line(yt)[xt].mode & Attr.WRAP:
                        break
                if newx >= grid.line_length(newy):
                    break
                glyph = grid.line(newy)[newx]
                delim = self._is_delim(glyph.u)
                if not glyph.mode & Attr.WDUMMY and (
                    delim != prev_delim or (delim and glyph.u != prev.u)
                ):
                    break
                x, y = newx, newy
                prev, prev_delim = glyph, delim
        elif self.snap == SelectionSnap.LINE:
            last = grid.cols - 1
            x = 0 if direction < 0 else last
            if direction < 0:
                while y > 0 and grid.line(y - 1)[last].mode & Attr.WRAP:
                    y -= 1
            elif direction > 0:
                while y < grid.rows - 1 and grid.line(y)[last].mode & Attr.WRAP:
                    y += 1
        return x, y

    def selected(self, x: int, y: int) -> bool:
        """Tell whether the cell (x, y) lies inside the selection."""
        if (
            self.mode == SelectionMode.EMPTY
            or not self.active
            or self.alt != self.grid.altscreen
        ):
            return False
        nb, ne = self.nb, self.ne
        if self.type == SelectionType.RECTANGULAR:
            return nb.y <= y <= ne.y and nb.x <= x <= ne.x
        return (
            nb.y <= y <= ne.y
            and (y != nb.y or x >= nb.x)
            and (y != ne.y or x <= ne.x)
        )

    def clear(self) -> None:
        """Drop the selection and mark its rows for redrawing."""
        if not self.active:
            return
        self.mode = SelectionMode.IDLE
        self.ob.x = -1
        self.grid.set_dirty(self.nb.y, self.ne.y)

    def scroll(self, orig: int, n: int) -> None:
        """Follow ``n`` lines of scrolling in the region starting at ``orig``."""
        if not self.active:
            return
        grid = self.grid
        begin_in = orig <= self.nb.y <= grid.bot
        end_in = orig <= self.ne.y <= grid.bot
        if begin_in != end_in:
            self.clear()
        elif begin_in:
            self.ob.y += n
            self.oe.y += n
            if not (
                grid.top <= self.ob.y <= grid.bot and grid.top <= self.oe.y <= grid.bot
            ):
                self.clear()
            else:
                self.normalize()

    def text(self) -> str | None:
        """Return the selected text, or None if nothing is selected."""
        if not self.active:
            return None
        grid = self.grid
        rectangular = self.type == SelectionType.RECTANGULAR
        out = bytearray()
        for y in range(self.nb.y, self.ne.y + 1):
            length = grid.line_length(y)
            if length == 0:
                out += b"\n"
                continue
            line = grid.line(y)
            if rectangular:
                first = self.nb.x
                lastx = self.ne.x
            else:
                first = self.nb.x if self.nb.y == y else 0
                lastx = self.ne.x if self.ne.y == y else grid.cols - 1
            last = min(lastx, length - 1)
            while last >= first and line[last].u == ord(" "):
                last -= 1
            for glyph in line[first : last + 1]:
                if glyph.mode & Attr.WDUMMY:
                    continue
                out += utf8_encode(glyph.u)
            wrapped = last >= 0 and bool(line[last].mode & Attr.WRAP)
            # lines are joined with '\n'; pasting turns it back into '\r'
            if (y < self.ne.y or lastx >= length) and (not wrapped or rectangular):
                out += b"\n"
        return out.decode("utf-8", errors="replace")
"""The character grid: primary and alternate screens, cursor, tabs and scrolling."""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Sequence

from stterm.glyph import Attr, Cursor, CursorState, Glyph, truecolor
from stterm.selection import Selection
from stterm.utf8 import utf8_encode

__all__ = ["Charset", "Screen"]

log = logging.getLogger(__name__)


class Charset(IntEnum):
    """Character sets that can be designated into G0-G3."""

    GRAPHIC0 = 0
    GRAPHIC1 = 1
    UK = 2
    USA = 3
    MULTI = 4
    GER = 5
    FIN = 6


# DEC special graphics, as borrowed from rxvt.
_VT100_GRAPHICS = {
    ord(k): ord(v)
    for k, v in zip(
        "ABCDEFG_`abcdefghijklmnopqrstuvwxyz{|}~",
        "↑↓→←█▚☃ ◆▒␉␌␍␊°±␤␋┘┐┌└┼⎺⎻─⎼⎽├┤┴┬│≤≥π≠£·",
    )
}

_SGR_SET = {
    1: Attr.BOLD,
    2: Attr.FAINT,
    3: Attr.ITALIC,
    4: Attr.UNDERLINE,
    5: Attr.BLINK,
    6: Attr.BLINK,
    7: Attr.REVERSE,
    8: Attr.INVISIBLE,
    9: Attr.STRUCK,
}

_SGR_CLEAR = {
    22: Attr.BOLD | Attr.FAINT,
    23: Attr.ITALIC,
    24: Attr.UNDERLINE,
    25: Attr.BLINK,
    27: Attr.REVERSE,
    28: Attr.INVISIBLE,
    29: Attr.STRUCK,
}

_SGR_RESET = (
    Attr.BOLD
    | Attr.FAINT
    | Attr.ITALIC
    | Attr.UNDERLINE
    | Attr.BLINK
    | Attr.REVERSE
    | Attr.INVISIBLE
    | Attr.STRUCK
)


def _limit(value: int, low: int, high: int) -> int:
    return low if value < low else high if value > high else value


class Screen:
    """Two grids of glyphs (primary and alternate) with a cursor and tab stops."""

    def __init__(
        self,
        cols: int,
        rows: int,
        tabspaces: int = 8,
        defaultfg: int = 7,
        defaultbg: int = 0,
        word_delimiters: str = " ",
    ) -> None:
        if tabspaces < 1:
            raise ValueError("tabspaces must be positive")
        self.tabspaces = tabspaces
        self.defaultfg = defaultfg
        self.defaultbg = defaultbg
        self.cols = 0
        self.rows = 0
        self.lines: list[list[Glyph]] = []
        self.alt: list[list[Glyph]] = []
        self.dirty: list[bool] = []
        self.tabs: list[bool] = []
        self.top = 0
        self.bot = 0
        self.altscreen = False
        self.cursor = Cursor(attr=Glyph(fg=defaultfg, bg=defaultbg))
        self._saved = [Cursor(), Cursor()]
        self.trantbl = [Charset.USA] * 4
        self.charset = 0
        self.icharset = 0
        self.selection = Selection(self, word_delimiters)
        self.resize(cols, rows)
        self.reset()

    # grid access ----------------------------------------------------------

    def line(self, y: int) -> list[Glyph]:
        return self.lines[y]

    def line_length(self, y: int) -> int:
        """Length of row ``y`` without trailing blanks; full width if it wraps."""
        line = self.lines[y]
        i = self.cols
        if line[i - 1].mode & Attr.WRAP:
            return i
        while i > 0 and line[i - 1].u == ord(" "):
            i -= 1
        return i

    # sizing and reset -----------------------------------------------------

    def resize(self, cols: int, rows: int) -> None:
        """Change the grid size, keeping the cursor row on screen."""
        if cols < 1 or rows < 1:
            raise ValueError(f"cannot resize to {cols}x{rows}")
        minrow = min(rows, self.rows)
        mincol = min(cols, self.cols)
        old_cols = self.cols
        shift = max(0, self.cursor.y - rows + 1)

        def fit(lines: list[list[Glyph]]) -> list[list[Glyph]]:
            out = []
            for line in lines[shift : shift + rows]:
                out.append(line[:cols] + [Glyph() for _ in range(cols - len(line))])
            out.extend([Glyph() for _ in range(cols)] for _ in range(rows - len(out)))
            return out

        self.lines = fit(self.lines)
        self.alt = fit(self.alt)
        self.dirty = (self.dirty + [False] * rows)[:rows]

        tabs = self.tabs[:cols] + [False] * (cols - len(self.tabs))
        if cols > old_cols:
            idx = old_cols - 1
            while idx > 0 and not tabs[idx]:
                idx -= 1
            for j in range(idx + self.tabspaces, cols, self.tabspaces):
                tabs[j] = True
        self.tabs = tabs

        self.cols = cols
        self.rows = rows
        self.set_scroll(0, rows - 1)
        self.move_to(self.cursor.x, self.cursor.y)
        saved = self.cursor.copy()
        for _ in range(2):
            if mincol < cols and minrow > 0:
                self.clear_region(mincol, 0, cols - 1, minrow - 1)
            if minrow < rows:
                self.clear_region(0, minrow, cols - 1, rows - 1)
            self.swap_screen()
            self.load_cursor()
        self.cursor = saved

    def reset(self) -> None:
        """Restore cursor, tab stops, scroll region and charsets; clear both screens."""
        self.cursor = Cursor(attr=Glyph(fg=self.defaultfg, bg=self.defaultbg))
        self.tabs = [False] * self.cols
        for i in range(self.tabspaces, self.cols, self.tabspaces):
            self.tabs[i] = True
        self.top = 0
        self.bot = self.rows - 1
        self.trantbl = [Charset.USA] * 4
        self.charset = 0
        self.altscreen = False
        for _ in range(2):
            self.move_to(0, 0)
            self.save_cursor()
            self.clear_region(0, 0, self.cols - 1, self.rows - 1)
            self.swap_screen()

    # cursor ---------------------------------------------------------------

    def move_to(self, x: int, y: int) -> None:
        """Move the cursor, clamped to the screen or, in origin mode, the region."""
        if self.cursor.state & CursorState.ORIGIN:
            miny, maxy = self.top, self.bot
        else:
            miny, maxy = 0, self.rows - 1
        self.cursor.state &= ~CursorState.WRAPNEXT
        self.cursor.x = _limit(x, 0, self.cols - 1)
        self.cursor.y = _limit(y, miny, maxy)

    def move_to_absolute(self, x: int, y: int) -> None:
        """Move the cursor with ``y`` relative to the region in origin mode."""
        offset = self.top if self.cursor.state & CursorState.ORIGIN else 0
        self.move_to(x, y + offset)

    def save_cursor(self) -> None:
        self._saved[int(self.altscreen)] = self.cursor.copy()

    def load_cursor(self) -> None:
        saved = self._saved[int(self.altscreen)]
        self.cursor = saved.copy()
        self.move_to(saved.x, saved.y)

    def put_tab(self, n: int) -> None:
        """Move the cursor ``n`` tab stops forward, or back if negative."""
        x = self.cursor.x
        if n > 0:
            while x < self.cols and n:
                n -= 1
                x += 1
                while x < self.cols and not self.tabs[x]:
                    x += 1
        elif n < 0:
            while x > 0 and n:
                n += 1
                x -= 1
                while x > 0 and not self.tabs[x]:
                    x -= 1
        self.cursor.x = _limit(x, 0, self.cols - 1)

    def newline(self, first_col: bool) -> None:
        """Move down one row, scrolling at the bottom of the region."""
        y = self.cursor.y
        if y == self.bot:
            self.scroll_up(self.top, 1)
        else:
            y += 1
        self.move_to(0 if first_col else self.cursor.x, y)

    # cell editing ---------------------------------------------------------

    def set_char(self, u: int, attr: Glyph, x: int, y: int) -> None:
        """Store rune ``u`` with attributes ``attr`` at (x, y)."""
        if self.trantbl[self.charset] == Charset.GRAPHIC0:
            u = _VT100_GRAPHICS.get(u, u)
        line = self.lines[y]
        current = line[x]
        if current.mode & Attr.WIDE:
            if x + 1 < self.cols:
                line[x + 1].u = ord(" ")
                line[x + 1].mode &= ~Attr.WDUMMY
        elif current.mode & Attr.WDUMMY and x > 0:
            line[x - 1].u = ord(" ")
            line[x - 1].mode &= ~Attr.WIDE
        self.dirty[y] = True
        glyph = attr.copy()
        glyph.u = u
        line[x] = glyph

    def clear_region(self, x1: int, y1: int, x2: int, y2: int) -> None:
        """Blank the rectangle between two corners with the cursor's colours."""
        if x1 > x2:
            x1, x2 = x2, x1
        if y1 > y2:
            y1, y2 = y2, y1
        x1 = _limit(x1, 0, self.cols - 1)
        x2 = _limit(x2, 0, self.cols - 1)
        y1 = _limit(y1, 0, self.rows - 1)
        y2 = _limit(y2, 0, self.rows - 1)
        fg, bg = self.cursor.attr.fg, self.cursor.attr.bg
        for y in range(y1, y2 + 1):
            self.dirty[y] = True
            line = self.lines[y]
            for x in range(x1, x2 + 1):
                if self.selection.selected(x, y):
                    self.selection.clear()
                line[x] = Glyph(ord(" "), Attr.NULL, fg, bg)

    def delete_chars(self, n: int) -> None:
        """Delete ``n`` cells at the cursor, pulling the rest of the row left."""
        c = self.cursor
        n = _limit(n, 0, self.cols - c.x)
        line = self.lines[c.y]
        src = c.x + n
        line[c.x : c.x + self.cols - src] = line[src : self.cols]
        self.clear_region(self.cols - n, c.y, self.cols - 1, c.y)

    def insert_blanks(self, n: int) -> None:
        """Insert ``n`` blank cells at the cursor, pushing the row right."""
        c = self.cursor
        n = _limit(n, 0, self.cols - c.x)
        line = self.lines[c.y]
        dst = c.x + n
        size = self.cols - dst
        line[dst : dst + size] = line[c.x : c.x + size]
        self.clear_region(c.x, c.y, dst - 1, c.y)

    def insert_blank_lines(self, n: int) -> None:
        if self.top <= self.cursor.y <= self.bot:
            self.scroll_down(self.cursor.y, n)

    def delete_lines(self, n: int) -> None:
        if self.top <= self.cursor.y <= self.bot:
            self.scroll_up(self.cursor.y, n)

    # scrolling ------------------------------------------------------------

    def scroll_down(self, orig: int, n: int) -> None:
        """Scroll rows ``orig``..bottom down by ``n``, blanking the top."""
        n = _limit(n, 0, self.bot - orig + 1)
        self.set_dirty(orig, self.bot - n)
        self.clear_region(0, self.bot - n + 1, self.cols - 1, self.bot)
        lines = self.lines
        for i in range(self.bot, orig + n - 1, -1):
            lines[i], lines[i - n] = lines[i - n], lines[i]
        self.selection.scroll(orig, n)

    def scroll_up(self, orig: int, n: int) -> None:
        """Scroll rows ``orig``..bottom up by ``n``, blanking the bottom."""
        n = _limit(n, 0, self.bot - orig + 1)
        self.clear_region(0, orig, self.cols - 1, orig + n - 1)
        self.set_dirty(orig + n, self.bot)
        lines = self.lines
        for i in range(orig, self.bot - n + 1):
            lines[i], lines[i + n] = lines[i + n], lines[i]
        self.selection.scroll(orig, -n)

    def set_scroll(self, top: int, bot: int) -> None:
        """Set the scrolling region, clamping and ordering its limits."""
        top = _limit(top, 0, self.rows - 1)
        bot = _limit(bot, 0, self.rows - 1)
        if top > bot:
            top, bot = bot, top
        self.top = top
        self.bot = bot

    def swap_screen(self) -> None:
        """Exchange the primary and alternate screens."""
        self.lines, self.alt = self.alt, self.lines
        self.altscreen = not self.altscreen
        self.full_dirty()

    # attributes -----------------------------------------------------------

    def set_attributes(self, attrs: Sequence[int]) -> None:
        """Apply SGR parameters to the cursor's attributes."""
        attr = self.cursor.attr
        n = len(attrs)
        i = 0
        while i < n:
            a = attrs[i]
            if a == 0:
                attr.mode &= ~_SGR_RESET
                attr.fg = self.defaultfg
                attr.bg = self.defaultbg
            elif a in _SGR_SET:
                attr.mode |= _SGR_SET[a]
            elif a in _SGR_CLEAR:
                attr.mode &= ~_SGR_CLEAR[a]
            elif a == 38:
                idx, i = self._define_color(attrs, i)
                if idx >= 0:
                    attr.fg = idx
            elif a == 39:
                attr.fg = self.defaultfg
            elif a == 48:
                idx, i = self._define_color(attrs, i)
                if idx >= 0:
                    attr.bg = idx
            elif a == 49:
                attr.bg = self.defaultbg
            elif 30 <= a <= 37:
                attr.fg = a - 30
            elif 40 <= a <= 47:
                attr.bg = a - 40
            elif 90 <= a <= 97:
                attr.fg = a - 90 + 8
            elif 100 <= a <= 107:
                attr.bg = a - 100 + 8
            else:
                log.warning("erresc(default): gfx attr %d unknown", a)
            i += 1

    @staticmethod
    def _define_color(attrs: Sequence[int], i: int) -> tuple[int, int]:
        """Read an extended colour after index ``i``; return (colour or -1, new i)."""
        n = len(attrs)
        kind = attrs[i + 1] if i + 1 < n else 0
        if kind == 2:
            if i + 4 >= n:
                log.warning("erresc(38): Incorrect number of parameters (%d)", i)
                return -1, i
            r, g, b = attrs[i + 2 : i + 5]
            i += 4
            if not all(0 <= v <= 255 for v in (r, g, b)):
                log.warning("erresc: bad rgb color (%d,%d,%d)", r, g, b)
                return -1, i
            return truecolor(r, g, b), i
        if kind == 5:
            if i + 2 >= n:
                log.warning("erresc(38): Incorrect number of parameters (%d)", i)
                return -1, i
            i += 2
            value = attrs[i]
            if not 0 <= value <= 255:
                log.warning("erresc: bad fgcolor %d", value)
                return -1, i
            return value, i
        log.warning("erresc(38): gfx attr %d unknown", attrs[i])
        return -1, i

    # dirtiness ------------------------------------------------------------

    def set_dirty(self, top: int, bot: int) -> None:
        top = _limit(top, 0, self.rows - 1)
        bot = _limit(bot, 0, self.rows - 1)
        for i in range(top, bot + 1):
            self.dirty[i] = True

    def full_dirty(self) -> None:
        self.set_dirty(0, self.rows - 1)

    def attr_set(self, attr: Attr) -> bool:
        """Tell whether any cell outside the last row and column carries ``attr``."""
        return any(
            self.lines[y][x].mode & attr
            for y in range(self.rows - 1)
            for x in range(self.cols - 1)
        )

    def set_dirty_attr(self, attr: Attr) -> None:
        """Mark rows holding a cell with ``attr`` (last row and column excluded)."""
        for y in range(self.rows - 1):
            if any(self.lines[y][x].mode & attr for x in range(self.cols - 1)):
                self.set_dirty(y, y)

    # misc -----------------------------------------------------------------

    def alignment_test(self) -> None:
        """DEC screen alignment test: fill the screen with 'E'."""
        for x in range(self.cols):
            for y in range(self.rows):
                self.set_char(ord("E"), self.cursor.attr, x, y)

    def dump_line(self, y: int) -> bytes:
        """Return row ``y`` as UTF-8 without trailing blanks, ending in a newline."""
        line = self.lines[y]
        length = min(self.line_length(y), self.cols)
        out = bytearray()
        if not (length == 1 and line[0].u == ord(" ")):
            for glyph in line[:length]:
                out += utf8_encode(glyph.u)
        out += b"\n"
        return bytes(out)

    def dump(self) -> bytes:
        return b"".join(self.dump_line(y) for y in range(self.rows))
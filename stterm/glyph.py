"""Character cells, cursor state and selection enumerations."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import IntEnum, IntFlag

__all__ = [
    "Attr",
    "Glyph",
    "CursorState",
    "Cursor",
    "SelectionMode",
    "SelectionType",
    "SelectionSnap",
    "truecolor",
    "is_truecolor",
]

_TRUECOLOR_BIT = 1 << 24


class Attr(IntFlag):
    """Attribute flags carried by every glyph."""

    NULL = 0
    BOLD = 1 << 0
    FAINT = 1 << 1
    ITALIC = 1 << 2
    UNDERLINE = 1 << 3
    BLINK = 1 << 4
    REVERSE = 1 << 5
    INVISIBLE = 1 << 6
    STRUCK = 1 << 7
    WRAP = 1 << 8
    WIDE = 1 << 9
    WDUMMY = 1 << 10
    BOXDRAW = 1 << 11
    LIGA = 1 << 12
    SIXEL = 1 << 13
    BOLD_FAINT = BOLD | FAINT


class CursorState(IntFlag):
    """Flags describing the cursor's wrapping and origin behaviour."""

    DEFAULT = 0
    WRAPNEXT = 1
    ORIGIN = 2


class SelectionMode(IntEnum):
    IDLE = 0
    EMPTY = 1
    READY = 2


class SelectionType(IntEnum):
    REGULAR = 1
    RECTANGULAR = 2


class SelectionSnap(IntEnum):
    NONE = 0
    WORD = 1
    LINE = 2


@dataclass
class Glyph:
    """One screen cell: a code point plus its attributes and colours."""

    u: int = ord(" ")
    mode: Attr = Attr.NULL
    fg: int = 0
    bg: int = 0

    def copy(self) -> Glyph:
        return replace(self)


@dataclass
class Cursor:
    """Cursor position, state and the attributes used for new glyphs."""

    attr: Glyph = field(default_factory=Glyph)
    x: int = 0
    y: int = 0
    state: CursorState = CursorState.DEFAULT

    def copy(self) -> Cursor:
        return Cursor(self.attr.copy(), self.x, self.y, self.state)


def truecolor(r: int, g: int, b: int) -> int:
    """Pack an RGB triple into a colour value marked as direct colour."""
    return _TRUECOLOR_BIT | (r << 16) | (g << 8) | b


def is_truecolor(color: int) -> bool:
    """Tell whether a colour value holds direct RGB rather than an index."""
    return bool(color & _TRUECOLOR_BIT)
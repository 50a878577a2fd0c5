"""Window-side state the terminal drives: modes, titles, colours, clipboard."""

from __future__ import annotations

import string
from enum import IntFlag

__all__ = ["WinMode", "Window", "DEFAULT_PALETTE_SIZE"]

DEFAULT_PALETTE_SIZE = 260


class WinMode(IntFlag):
    """Window mode flags set by the terminal's escape sequences."""

    VISIBLE = 1 << 0
    FOCUSED = 1 << 1
    APPKEYPAD = 1 << 2
    MOUSEBTN = 1 << 3
    MOUSEMOTION = 1 << 4
    REVERSE = 1 << 5
    KBDLOCK = 1 << 6
    HIDE = 1 << 7
    APPCURSOR = 1 << 8
    MOUSESGR = 1 << 9
    EIGHT_BIT = 1 << 10
    BLINK = 1 << 11
    FBLINK = 1 << 12
    FOCUS = 1 << 13
    MOUSEX10 = 1 << 14
    MOUSEMANY = 1 << 15
    BRCKTPASTE = 1 << 16
    NUMLOCK = 1 << 17
    MOUSE = MOUSEBTN | MOUSEMOTION | MOUSEX10 | MOUSEMANY


def _parse_color(name: str) -> tuple[int, int, int]:
    """Parse '#rgb'-style or 'rgb:r/g/b' colour names into 8-bit components."""
    spec = name.strip()
    if spec.startswith("#"):
        digits = spec[1:]
        if len(digits) not in (3, 6, 9, 12):
            raise ValueError(f"invalid colour name: {name!r}")
        width = len(digits) // 3
        parts = [digits[i : i + width] for i in range(0, len(digits), width)]
    elif spec.lower().startswith("rgb:"):
        parts = spec[4:].split("/")
        if len(parts) != 3 or not all(1 <= len(p) <= 4 for p in parts):
            raise ValueError(f"invalid colour name: {name!r}")
    else:
        raise ValueError(f"invalid colour name: {name!r}")
    if not all(p and set(p) <= set(string.hexdigits) for p in parts):
        raise ValueError(f"invalid colour name: {name!r}")
    r, g, b = (int(p, 16) * 255 // (16 ** len(p) - 1) for p in parts)
    return r, g, b


class Window:
    """In-memory model of the window a terminal draws into.

    A graphical front end can subclass it and react to each call; by itself
    it records the requested state so it can be inspected.
    """

    def __init__(
        self,
        default_title: str = "st",
        palette_size: int = DEFAULT_PALETTE_SIZE,
        cursor_style: int = 2,
    ) -> None:
        self.default_title = default_title
        self.palette_size = palette_size
        self.mode = WinMode(0)
        self.title = default_title
        self.icon_title = default_title
        self.bells = 0
        self.selection: str | None = None
        self.clipboard: str | None = None
        self.pointer_motion = False
        self.cursor_style = cursor_style
        self.colors: dict[int, tuple[int, int, int]] = {}
        self.clears = 0

    def set_mode(self, enable: bool, flag: WinMode) -> None:
        if enable:
            self.mode |= flag
        else:
            self.mode &= ~flag

    def set_title(self, title: str | None) -> None:
        """Set the window title; None restores the default."""
        self.title = self.default_title if title is None else title

    def set_icon_title(self, title: str | None) -> None:
        """Set the icon title; None restores the default."""
        self.icon_title = self.default_title if title is None else title

    def bell(self) -> None:
        self.bells += 1

    def set_selection(self, text: str) -> None:
        """Own the primary selection and copy it to the clipboard."""
        self.selection = text
        self.clipboard = text

    def set_pointer_motion(self, enable: bool) -> None:
        self.pointer_motion = bool(enable)

    def set_cursor_style(self, style: int) -> None:
        """Set the DECSCUSR cursor style; raises ValueError if unknown."""
        if not 0 <= style <= 7:
            raise ValueError(f"unknown cursor style {style}")
        self.cursor_style = style

    def set_color_name(
        self, index: int, name: str | None
    ) -> tuple[int, int, int] | None:
        """Override palette entry ``index``; None resets it to its default."""
        if not 0 <= index < self.palette_size:
            raise ValueError(f"colour index {index} out of range")
        if name is None:
            self.colors.pop(index, None)
            return None
        rgb = _parse_color(name)
        self.colors[index] = rgb
        return rgb

    def load_colors(self) -> None:
        """Drop every override and return to the configured palette."""
        self.colors.clear()

    def clear(self) -> None:
        self.clears += 1
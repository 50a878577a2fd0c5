"""The terminal state machine: decodes program output into screen updates."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import IntFlag
from typing import Callable, Optional, Sequence

from wcwidth import wcwidth

from stterm.csi import CSIEscape, STREscape
from stterm.glyph import Attr, CursorState
from stterm.screen import Charset, Screen
from stterm.utf8 import base64_decode, utf8_decode, utf8_encode
from stterm.window import WinMode, Window

__all__ = ["Mode", "Esc", "Config", "Terminal", "is_control"]

log = logging.getLogger(__name__)


class Mode(IntFlag):
    """Terminal mode flags."""

    WRAP = 1 << 0
    INSERT = 1 << 1
    CRLF = 1 << 3
    ECHO = 1 << 4
    PRINT = 1 << 5
    UTF8 = 1 << 6


class Esc(IntFlag):
    """Escape sequence parser state flags."""

    START = 1
    CSI = 2
    STR = 4  # DCS, OSC, PM, APC
    ALTCHARSET = 8
    STR_END = 16  # a final string was encountered
    TEST = 32
    UTF8 = 64


def is_control_c0(c: int) -> bool:
    return 0 <= c <= 0x1F or c == 0x7F


def is_control_c1(c: int) -> bool:
    return 0x80 <= c <= 0x9F


def is_control(c: int) -> bool:
    return is_control_c0(c) or is_control_c1(c)


_ATOI = re.compile(r"\s*([+-]?\d+)")


def _atoi(text: str) -> int:
    match = _ATOI.match(text)
    return int(match.group(1)) if match else 0


@dataclass
class Config:
    """Settings the terminal and its tty are built with."""

    tabspaces: int = 8
    defaultfg: int = 258
    defaultbg: int = 259
    defaultcs: int = 256
    vtiden: str = "\033[?6c"
    allowaltscreen: bool = True
    allowwindowops: bool = False
    word_delimiters: str = " "
    shell: str = "/bin/sh"
    termname: str = "st-256color"
    stty_args: str = "stty raw pass8 nl -echo -iexten -cstopb 38400"
    utmp: Optional[str] = None
    scroll: Optional[str] = None


_STR_INTRODUCERS = {0x90: "P", 0x9F: "_", 0x9E: "^", 0x9D: "]"}

_IGNORED_PRIVATE_MODES = {0, 2, 3, 4, 8, 18, 19, 42, 12, 1001, 1005, 1015}

_MOUSE_MODES = {
    9: WinMode.MOUSEX10,
    1000: WinMode.MOUSEBTN,
    1002: WinMode.MOUSEMOTION,
    1003: WinMode.MOUSEMANY,
}

_SIMPLE_PRIVATE_MODES = {
    1: WinMode.APPCURSOR,
    5: WinMode.REVERSE,
    1004: WinMode.FOCUS,
    1006: WinMode.MOUSESGR,
    1034: WinMode.EIGHT_BIT,
    2004: WinMode.BRCKTPASTE,
}


class Terminal:
    """A VT-style terminal driving a Screen and a Window.

    ``writer`` receives bytes the terminal answers with (device reports,
    identification). ``printer``, when set, receives printed output.
    """

    def __init__(
        self,
        cols: int,
        rows: int,
        window: Optional[Window] = None,
        writer: Optional[Callable[[bytes], None]] = None,
        config: Optional[Config] = None,
    ) -> None:
        self.config = config if config is not None else Config()
        self.window = window if window is not None else Window()
        self.writer = writer
        self.printer: Optional[Callable[[bytes], None]] = None
        cfg = self.config
        self.screen = Screen(
            cols,
            rows,
            cfg.tabspaces,
            cfg.defaultfg,
            cfg.defaultbg,
            cfg.word_delimiters,
        )
        self.mode = Mode.WRAP | Mode.UTF8
        self.esc = Esc(0)
        self.csi = CSIEscape()
        self.str = STREscape()
        self.lastc = 0

    # output helpers -------------------------------------------------------

    def _reply(self, data: str | bytes) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        if self.writer is not None:
            self.writer(data)

    def _print(self, data: bytes) -> None:
        if self.printer is None:
            return
        try:
            self.printer(data)
        except OSError as exc:
            log.error("Error writing to output file: %s", exc)
            self.printer = None

    # input ----------------------------------------------------------------

    def write(self, data: bytes, show_ctrl: bool = False) -> int:
        """Process bytes from the program; return how many were consumed.

        An incomplete UTF-8 sequence at the end is left unconsumed.
        """
        n = 0
        length = len(data)
        while n < length:
            if self.mode & Mode.UTF8:
                u, size = utf8_decode(data[n : n + 4])
                if size == 0:
                    break
            else:
                u = data[n] & 0xFF
                size = 1
            if show_ctrl and is_control(u):
                if u & 0x80:
                    u &= 0x7F
                    self.put(ord("^"))
                    self.put(ord("["))
                elif u not in (0x0A, 0x0D, 0x09):
                    u ^= 0x40
                    self.put(ord("^"))
            self.put(u)
            n += size
        return n

    def put(self, rune: int) -> None:
        """Process one character."""
        u = rune
        control = is_control(u)
        width = 1
        if u < 127 or not self.mode & Mode.UTF8:
            c = bytes([u & 0xFF])
        else:
            c = utf8_encode(u)
            if not control:
                try:
                    width = wcwidth(chr(u))
                except (ValueError, OverflowError):
                    width = -1
                if width == -1:
                    width = 1

        if self.mode & Mode.PRINT:
            self._print(c)

        # a string sequence swallows everything up to its terminator
        if self.esc & Esc.STR:
            if u in (0x07, 0o30, 0o32, 0o33) or is_control_c1(u):
                self.esc &= ~(Esc.START | Esc.STR)
                self.esc |= Esc.STR_END
            else:
                self.str.append(c)
                return

        if control:
            self.control_code(u)
            if not self.esc:
                self.lastc = 0
            return
        if self.esc & Esc.START:
            if self.esc & Esc.CSI:
                if self.csi.append(u):
                    self.esc = Esc(0)
                    self.csi.parse()
                    self.handle_csi()
                return
            if self.esc & Esc.UTF8:
                self._define_utf8(u)
            elif self.esc & Esc.ALTCHARSET:
                self._define_translation(u)
            elif self.esc & Esc.TEST:
                self._dec_test(u)
            elif not self.handle_esc(u):
                return
            self.esc = Esc(0)
            return

        self._put_glyph(u, width)

    def _put_glyph(self, u: int, width: int) -> None:
        screen = self.screen
        cur = screen.cursor
        if screen.selection.selected(cur.x, cur.y):
            screen.selection.clear()

        if self.mode & Mode.WRAP and screen.cursor.state & CursorState.WRAPNEXT:
            screen.line(screen.cursor.y)[screen.cursor.x].mode |= Attr.WRAP
            screen.newline(True)

        cur = screen.cursor
        line = screen.line(cur.y)
        if self.mode & Mode.INSERT and cur.x + width < screen.cols:
            line[cur.x + width : screen.cols] = [
                g.copy() for g in line[cur.x : screen.cols - width]
            ]

        if cur.x + width > screen.cols:
            screen.newline(True)

        cur = screen.cursor
        x, y = cur.x, cur.y
        screen.set_char(u, cur.attr, x, y)
        self.lastc = u

        if width == 2:
            line = screen.line(y)
            line[x].mode |= Attr.WIDE
            if x + 1 < screen.cols:
                nxt = line[x + 1]
                nxt.u = 0
                nxt.mode = Attr.WDUMMY
        if x + width < screen.cols:
            screen.move_to(x + width, y)
        else:
            cur.state |= CursorState.WRAPNEXT

    # control codes --------------------------------------------------------

    def _str_sequence(self, c: int) -> None:
        self.str.reset(_STR_INTRODUCERS.get(c, chr(c)))
        self.esc |= Esc.STR

    def control_code(self, code: int) -> None:
        """Act on a C0 or C1 control character."""
        screen = self.screen
        cur = screen.cursor
        if code == 0x09:
            screen.put_tab(1)
            return
        if code == 0x08:
            screen.move_to(cur.x - 1, cur.y)
            return
        if code == 0x0D:
            screen.move_to(0, cur.y)
            return
        if code in (0x0C, 0x0B, 0x0A):
            screen.newline(bool(self.mode & Mode.CRLF))
            return
        if code == 0x1B:
            self.csi.reset()
            self.esc &= ~(Esc.CSI | Esc.ALTCHARSET | Esc.TEST)
            self.esc |= Esc.START
            return
        if code in (0x0E, 0x0F):
            screen.charset = 1 - (code - 0x0E)
            return
        if code in (0x05, 0x00, 0x11, 0x13, 0x7F):
            return
        if code in _STR_INTRODUCERS:
            self._str_sequence(code)
            return

        if code == 0x07:
            if self.esc & Esc.STR_END:
                self.handle_str()
            else:
                self.window.bell()
        elif code == 0x1A:
            screen.set_char(ord("?"), cur.attr, cur.x, cur.y)
            self.csi.reset()
        elif code == 0x18:
            self.csi.reset()
        elif code == 0x85:
            screen.newline(True)
        elif code == 0x88:
            screen.tabs[cur.x] = True
        elif code == 0x9A:
            self._reply(self.config.vtiden)
        # only CAN, SUB, BEL and C1 characters interrupt a sequence
        self.esc &= ~(Esc.STR_END | Esc.STR)

    # escape sequences -----------------------------------------------------

    def _define_utf8(self, c: int) -> None:
        if c == ord("G"):
            self.mode |= Mode.UTF8
        elif c == ord("@"):
            self.mode &= ~Mode.UTF8

    def _define_translation(self, c: int) -> None:
        table = {ord("0"): Charset.GRAPHIC0, ord("B"): Charset.USA}
        if c in table:
            self.screen.trantbl[self.screen.icharset] = table[c]
        else:
            log.warning("esc unhandled charset: ESC ( %c", c)

    def _dec_test(self, c: int) -> None:
        if c == ord("8"):
            self.screen.alignment_test()

    def reset(self) -> None:
        """Return to the initial state (RIS)."""
        self.screen.reset()
        self.mode = Mode.WRAP | Mode.UTF8
        self.window.set_title(None)
        self.window.load_colors()

    def handle_esc(self, char: int) -> bool:
        """Handle the character after ESC; return True if the sequence is done."""
        screen = self.screen
        cur = screen.cursor
        ch = chr(char) if 0 <= char <= 0x10FFFF else ""
        if ch == "[":
            self.esc |= Esc.CSI
            return False
        if ch == "#":
            self.esc |= Esc.TEST
            return False
        if ch == "%":
            self.esc |= Esc.UTF8
            return False
        if ch in ("P", "_", "^", "]", "k") and ch:
            self._str_sequence(char)
            return False
        if ch in ("(", ")", "*", "+") and ch:
            screen.icharset = char - ord("(")
            self.esc |= Esc.ALTCHARSET
            return False

        if ch in ("n", "o") and ch:
            screen.charset = 2 + (char - ord("n"))
        elif ch == "D":
            if cur.y == screen.bot:
                screen.scroll_up(screen.top, 1)
            else:
                screen.move_to(cur.x, cur.y + 1)
        elif ch == "E":
            screen.newline(True)
        elif ch == "H":
            screen.tabs[cur.x] = True
        elif ch == "M":
            if cur.y == screen.top:
                screen.scroll_down(screen.top, 1)
            else:
                screen.move_to(cur.x, cur.y - 1)
        elif ch == "Z":
            self._reply(self.config.vtiden)
        elif ch == "c":
            self.reset()
        elif ch == "=":
            self.window.set_mode(True, WinMode.APPKEYPAD)
        elif ch == ">":
            self.window.set_mode(False, WinMode.APPKEYPAD)
        elif ch == "7":
            screen.save_cursor()
        elif ch == "8":
            screen.load_cursor()
        elif ch == "\\":
            if self.esc & Esc.STR_END:
                self.handle_str()
        else:
            shown = ch if ch.isprintable() and ch else "."
            log.warning("erresc: unknown sequence ESC 0x%02X '%s'", char & 0xFF, shown)
        return True

    def handle_csi(self) -> None:
        """Execute the parsed CSI sequence."""
        screen = self.screen
        cur = screen.cursor
        csi = self.csi
        args = csi.args
        mode = csi.mode[0]
        a0 = args[0] or 1

        def unknown() -> None:
            log.warning("erresc: unknown csi %s", csi.dump())

        if mode == "@":
            screen.insert_blanks(a0)
        elif mode == "A":
            screen.move_to(cur.x, cur.y - a0)
        elif mode in ("B", "e"):
            screen.move_to(cur.x, cur.y + a0)
        elif mode == "i":
            if args[0] == 0:
                self.print_screen()
            elif args[0] == 1:
                self._print(screen.dump_line(cur.y))
            elif args[0] == 2:
                self.print_selection()
            elif args[0] == 4:
                self.mode &= ~Mode.PRINT
            elif args[0] == 5:
                self.mode |= Mode.PRINT
        elif mode == "c":
            if args[0] == 0:
                self._reply(self.config.vtiden)
        elif mode == "b":
            if self.lastc:
                for _ in range(a0):
                    self.put(self.lastc)
        elif mode in ("C", "a"):
            screen.move_to(cur.x + a0, cur.y)
        elif mode == "D":
            screen.move_to(cur.x - a0, cur.y)
        elif mode == "E":
            screen.move_to(0, cur.y + a0)
        elif mode == "F":
            screen.move_to(0, cur.y - a0)
        elif mode == "g":
            if args[0] == 0:
                screen.tabs[cur.x] = False
            elif args[0] == 3:
                screen.tabs = [False] * screen.cols
            else:
                unknown()
        elif mode in ("G", "`"):
            screen.move_to(a0 - 1, cur.y)
        elif mode in ("H", "f"):
            screen.move_to_absolute((args[1] or 1) - 1, a0 - 1)
        elif mode == "I":
            screen.put_tab(a0)
        elif mode == "J":
            last_col, last_row = screen.cols - 1, screen.rows - 1
            if args[0] == 0:
                screen.clear_region(cur.x, cur.y, last_col, cur.y)
                if cur.y < last_row:
                    screen.clear_region(0, cur.y + 1, last_col, last_row)
            elif args[0] == 1:
                if cur.y > 1:
                    screen.clear_region(0, 0, last_col, cur.y - 1)
                screen.clear_region(0, cur.y, cur.x, cur.y)
            elif args[0] in (2, 3):
                screen.clear_region(0, 0, last_col, last_row)
            else:
                unknown()
        elif mode == "K":
            if args[0] == 0:
                screen.clear_region(cur.x, cur.y, screen.cols - 1, cur.y)
            elif args[0] == 1:
                screen.clear_region(0, cur.y, cur.x, cur.y)
            elif args[0] == 2:
                screen.clear_region(0, cur.y, screen.cols - 1, cur.y)
        elif mode == "S":
            screen.scroll_up(screen.top, a0)
        elif mode == "T":
            screen.scroll_down(screen.top, a0)
        elif mode == "L":
            screen.insert_blank_lines(a0)
        elif mode == "l":
            self.set_mode(csi.priv, False, args[: csi.narg])
        elif mode == "M":
            screen.delete_lines(a0)
        elif mode == "X":
            screen.clear_region(cur.x, cur.y, cur.x + a0 - 1, cur.y)
        elif mode == "P":
            screen.delete_chars(a0)
        elif mode == "Z":
            screen.put_tab(-a0)
        elif mode == "d":
            screen.move_to_absolute(cur.x, a0 - 1)
        elif mode == "h":
            self.set_mode(csi.priv, True, args[: csi.narg])
        elif mode == "m":
            screen.set_attributes(args[: csi.narg])
        elif mode == "n":
            if args[0] == 6:
                self._reply(f"\033[{cur.y + 1};{cur.x + 1}R")
        elif mode == "r":
            if csi.priv:
                unknown()
            else:
                screen.set_scroll(a0 - 1, (args[1] or screen.rows) - 1)
                screen.move_to_absolute(0, 0)
        elif mode == "s":
            screen.save_cursor()
        elif mode == "u":
            screen.load_cursor()
        elif mode == " ":
            if csi.mode[1] == "q":
                try:
                    self.window.set_cursor_style(args[0])
                except ValueError:
                    unknown()
            else:
                unknown()
        else:
            unknown()

    def set_mode(self, priv: bool, enable: bool, args: Sequence[int]) -> None:
        """Apply SM/RM (or their private DEC variants) for each argument."""
        screen = self.screen
        window = self.window
        for arg in args:
            if not priv:
                self._set_ansi_mode(enable, arg)
                continue
            if arg in _SIMPLE_PRIVATE_MODES:
                window.set_mode(enable, _SIMPLE_PRIVATE_MODES[arg])
            elif arg == 6:
                if enable:
                    screen.cursor.state |= CursorState.ORIGIN
                else:
                    screen.cursor.state &= ~CursorState.ORIGIN
                screen.move_to_absolute(0, 0)
            elif arg == 7:
                self._modbit(enable, Mode.WRAP)
            elif arg == 25:
                window.set_mode(not enable, WinMode.HIDE)
            elif arg in _MOUSE_MODES:
                window.set_pointer_motion(enable if arg == 1003 else False)
                window.set_mode(False, WinMode.MOUSE)
                window.set_mode(enable, _MOUSE_MODES[arg])
            elif arg in (47, 1047, 1049):
                if not self.config.allowaltscreen:
                    continue
                if arg == 1049:
                    self._save_or_load(enable)
                alt = screen.altscreen
                if alt:
                    screen.clear_region(0, 0, screen.cols - 1, screen.rows - 1)
                if bool(enable) != alt:
                    screen.swap_screen()
                if arg == 1049:
                    self._save_or_load(enable)
            elif arg == 1048:
                self._save_or_load(enable)
            elif arg in _IGNORED_PRIVATE_MODES:
                pass
            else:
                log.warning("erresc: unknown private set/reset mode %d", arg)

    def _save_or_load(self, save: bool) -> None:
        if save:
            self.screen.save_cursor()
        else:
            self.screen.load_cursor()

    def _modbit(self, enable: bool, flag: Mode) -> None:
        if enable:
            self.mode |= flag
        else:
            self.mode &= ~flag

    def _set_ansi_mode(self, enable: bool, arg: int) -> None:
        if arg == 0:
            return
        if arg == 2:
            self.window.set_mode(enable, WinMode.KBDLOCK)
        elif arg == 4:
            self._modbit(enable, Mode.INSERT)
        elif arg == 12:
            self._modbit(not enable, Mode.ECHO)
        elif arg == 20:
            self._modbit(enable, Mode.CRLF)
        else:
            log.warning("erresc: unknown set/reset mode %d", arg)

    def handle_str(self) -> None:
        """Execute a finished string sequence (OSC, DCS, APC, PM, title)."""
        self.esc &= ~(Esc.STR_END | Esc.STR)
        seq = self.str
        seq.parse()
        args = seq.args
        narg = len(args)
        par = _atoi(args[0]) if narg else 0
        window = self.window
        cfg = self.config

        if seq.type == "]":
            if par == 0:
                if narg > 1:
                    window.set_title(args[1])
                    window.set_icon_title(args[1])
                return
            if par == 1:
                if narg > 1:
                    window.set_icon_title(args[1])
                return
            if par == 2:
                if narg > 1:
                    window.set_title(args[1])
                return
            if par == 52:
                if narg > 2 and cfg.allowwindowops:
                    decoded = base64_decode(args[2])
                    window.set_selection(decoded.decode("utf-8", errors="replace"))
                return
            if par in (10, 11, 12, 4, 104):
                name: Optional[str] = None
                if par != 104:
                    if (par == 4 and narg < 3) or narg < 2:
                        log.warning("erresc: unknown str %s", seq.dump())
                        return
                    name = args[2 if par == 4 else 1]
                if par == 10:
                    index = cfg.defaultfg
                elif par == 11:
                    index = cfg.defaultbg
                elif par == 12:
                    index = cfg.defaultcs
                else:
                    index = _atoi(args[1]) if narg > 1 else -1
                try:
                    window.set_color_name(index, name)
                except ValueError:
                    if par == 104 and narg <= 1:
                        return  # colour reset without parameter
                    log.warning(
                        "erresc: invalid color j=%d, p=%s",
                        index,
                        name if name is not None else "(null)",
                    )
                    return
                if index == cfg.defaultbg:
                    window.clear()
                self.screen.full_dirty()
                return
        elif seq.type == "k":
            window.set_title(args[0] if args else "")
            return
        elif seq.type in ("P", "_", "^"):
            return

        log.warning("erresc: unknown str %s", seq.dump())

    # commands -------------------------------------------------------------

    def resize(self, cols: int, rows: int) -> None:
        self.screen.resize(cols, rows)

    def selection_text(self) -> Optional[str]:
        return self.screen.selection.text()

    def toggle_printer(self) -> None:
        self.mode ^= Mode.PRINT

    def print_screen(self) -> None:
        self._print(self.screen.dump())

    def print_selection(self) -> None:
        text = self.selection_text()
        if text:
            self._print(text.encode("utf-8"))

    def text(self) -> str:
        """The screen contents, one line per row without trailing blanks."""
        return self.screen.dump().decode("utf-8", errors="replace")
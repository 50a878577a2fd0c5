"""Decoder for DEC sixel graphics, producing BGRA pixel data."""

from __future__ import annotations

from array import array
from enum import IntEnum

from stterm.hls import hls_to_rgb

__all__ = [
    "PARAMS_MAX",
    "PALETTE_MAX",
    "PARAMVALUE_MAX",
    "WIDTH_MAX",
    "HEIGHT_MAX",
    "ParseState",
    "SixelError",
    "SixelParser",
]

PARAMS_MAX = 16
PALETTE_MAX = 1024
PARAMVALUE_MAX = 65535
WIDTH_MAX = 4096
HEIGHT_MAX = 4096


def _rgb(r: int, g: int, b: int) -> int:
    return r + (g << 8) + (b << 16)


def _palval(n: int, a: int, m: int) -> int:
    return (n * a + m // 2) // m


def _xrgb(r: int, g: int, b: int) -> int:
    """Pack percentages (0-100) into a palette colour."""
    return _rgb(_palval(r, 255, 100), _palval(g, 255, 100), _palval(b, 255, 100))


_DEFAULT_COLORS = tuple(
    _xrgb(*spec)
    for spec in (
        (0, 0, 0),  # black
        (20, 20, 80),  # blue
        (80, 13, 13),  # red
        (20, 80, 20),  # green
        (80, 20, 80),  # magenta
        (20, 80, 80),  # cyan
        (80, 80, 20),  # yellow
        (53, 53, 53),  # gray 50%
        (26, 26, 26),  # gray 25%
        (33, 33, 60),  # blue*
        (60, 26, 26),  # red*
        (33, 60, 33),  # green*
        (60, 33, 60),  # magenta*
        (33, 60, 60),  # cyan*
        (60, 60, 33),  # yellow*
        (80, 80, 80),  # gray 75%
    )
)


class ParseState(IntEnum):
    ESC = 1
    DECSIXEL = 2
    DECGRA = 3
    DECGRI = 4
    DECGCI = 5


class SixelError(Exception):
    """Raised when sixel data cannot be processed."""


def _zeros(n: int) -> array:
    return array("H", bytes(2 * n))


def _round_up(value: int, grid: int) -> int:
    return (value + grid - 1) // grid * grid


class SixelParser:
    """Incremental sixel decoder holding an indexed image and its palette."""

    def __init__(
        self,
        fgcolor: int,
        bgcolor: int,
        use_private_register: bool,
        cell_width: int,
        cell_height: int,
    ) -> None:
        self.state = ParseState.DECSIXEL
        self.pos_x = 0
        self.pos_y = 0
        self.max_x = 0
        self.max_y = 0
        self.attributed_pan = 2
        self.attributed_pad = 1
        self.attributed_ph = 0
        self.attributed_pv = 0
        self.repeat_count = 1
        self.color_index = 16
        self.grid_width = cell_width
        self.grid_height = cell_height
        self.param = 0
        self.params: list[int] = []

        self.width = 1
        self.height = 1
        self._rows: list[array] = [_zeros(1)]
        self.ncolors = 2
        self.use_private_register = bool(use_private_register)
        self.palette = [0] * PALETTE_MAX
        self.palette[0] = bgcolor
        if self.use_private_register:
            self.palette[1] = fgcolor
        self.palette_modified = False

    # image buffer -------------------------------------------------------

    def _resize(self, width: int, height: int) -> None:
        rows = []
        for row in self._rows[: min(height, self.height)]:
            if width > len(row):
                rows.append(row + _zeros(width - len(row)))
            else:
                rows.append(row[:width])
        rows.extend(_zeros(width) for _ in range(height - len(rows)))
        self._rows = rows
        self.width = width
        self.height = height

    def pixel(self, x: int, y: int) -> int:
        """Return the palette register stored at (x, y)."""
        return self._rows[y][x]

    # palette ------------------------------------------------------------

    def set_default_color(self) -> None:
        """Load the VT340 colours, a 6x6x6 cube and a grey ramp into the palette."""
        palette = self.palette
        palette[1:17] = _DEFAULT_COLORS
        n = 17
        for r in range(6):
            for g in range(6):
                for b in range(6):
                    palette[n] = _rgb(r * 51, g * 51, b * 51)
                    n += 1
        for i in range(24):
            palette[n] = _rgb(i * 11, i * 11, i * 11)
            n += 1
        palette[n:] = [_rgb(255, 255, 255)] * (PALETTE_MAX - n)

    # parsing ------------------------------------------------------------

    def parse(self, data: bytes | bytearray | str) -> None:
        """Feed sixel data; raises SixelError if data follows an escape."""
        if isinstance(data, str):
            data = data.encode("latin-1")
        for byte in data:
            while not self._step(byte):
                pass

    def _step(self, c: int) -> bool:
        """Process one byte; return False if it must be seen again."""
        state = self.state
        if state is ParseState.ESC:
            raise SixelError("sixel data after escape")
        if c == 0x1B:
            self.state = ParseState.ESC
            return True
        if state is ParseState.DECSIXEL:
            return self._sixel_body(c)
        if 0x30 <= c <= 0x39:
            self.param = min(self.param * 10 + c - 0x30, PARAMVALUE_MAX)
            return True
        if state is ParseState.DECGRA:
            return self._raster_attributes(c)
        if state is ParseState.DECGRI:
            self.repeat_count = self.param or 1
            self._enter_body()
            return False
        return self._color_introducer(c)

    def _push_param(self) -> None:
        if len(self.params) < PARAMS_MAX:
            self.params.append(self.param)
        self.param = 0

    def _enter_body(self) -> None:
        self.state = ParseState.DECSIXEL
        self.param = 0
        self.params = []

    def _start(self, state: ParseState) -> None:
        self.param = 0
        self.params = []
        self.state = state

    def _sixel_body(self, c: int) -> bool:
        if c == ord('"'):
            self._start(ParseState.DECGRA)
        elif c == ord("!"):
            self._start(ParseState.DECGRI)
        elif c == ord("#"):
            self._start(ParseState.DECGCI)
        elif c == ord("$"):
            self.pos_x = 0
        elif c == ord("-"):
            self.pos_x = 0
            if self.pos_y < HEIGHT_MAX - 5 - 6:
                self.pos_y += 6
            else:
                self.pos_y = HEIGHT_MAX + 1
        elif ord("?") <= c <= ord("~"):
            self._draw(c - ord("?"))
        return True

    def _draw(self, bits: int) -> None:
        need_x = self.pos_x + self.repeat_count
        need_y = self.pos_y + 6
        if (
            (self.width < need_x or self.height < need_y)
            and self.width < WIDTH_MAX
            and self.height < HEIGHT_MAX
        ):
            sx = self.width * 2
            sy = self.height * 2
            while sx < need_x or sy < need_y:
                sx *= 2
                sy *= 2
            self._resize(min(sx, WIDTH_MAX), min(sy, HEIGHT_MAX))

        if self.color_index > self.ncolors:
            self.ncolors = self.color_index

        if self.pos_x + self.repeat_count > self.width:
            self.repeat_count = self.width - self.pos_x

        if self.repeat_count > 0 and self.pos_y - 5 < self.height and bits:
            if self.repeat_count <= 1:
                self._draw_single(bits)
            else:
                self._draw_repeated(bits)

        if self.repeat_count > 0:
            self.pos_x += self.repeat_count
        self.repeat_count = 1

    def _draw_single(self, bits: int) -> None:
        for i in range(6):
            y = self.pos_y + i
            if bits & (1 << i) and y < self.height:
                self._rows[y][self.pos_x] = self.color_index
                self.max_x = max(self.max_x, self.pos_x)
                self.max_y = max(self.max_y, y)

    def _draw_repeated(self, bits: int) -> None:
        count = self.repeat_count
        x0 = self.pos_x
        fill = array("H", [self.color_index]) * count
        i = 0
        while i < 6:
            if not bits & (1 << i):
                i += 1
                continue
            n = 1
            while i + n < 6 and bits & (1 << (i + n)):
                n += 1
            top = self.pos_y + i
            bottom = min(top + n, self.height)
            for y in range(top, bottom):
                self._rows[y][x0 : x0 + count] = fill
            if bottom > top:
                self.max_x = max(self.max_x, x0 + count - 1)
                self.max_y = max(self.max_y, bottom - 1)
            i += n

    def _raster_attributes(self, c: int) -> bool:
        if c == ord(";"):
            self._push_param()
            return True
        self._push_param()
        params = self.params
        if len(params) > 0:
            self.attributed_pad = params[0]
        if len(params) > 1:
            self.attributed_pan = params[1]
        if len(params) > 2 and params[2] > 0:
            self.attributed_ph = params[2]
        if len(params) > 3 and params[3] > 0:
            self.attributed_pv = params[3]
        if self.attributed_pan <= 0:
            self.attributed_pan = 1
        if self.attributed_pad <= 0:
            self.attributed_pad = 1

        if self.width < self.attributed_ph or self.height < self.attributed_pv:
            sx = _round_up(max(self.attributed_ph, self.width), self.grid_width)
            sy = _round_up(max(self.attributed_pv, self.height), self.grid_height)
            self._resize(min(sx, WIDTH_MAX), min(sy, HEIGHT_MAX))
        self._enter_body()
        return False

    def _color_introducer(self, c: int) -> bool:
        if c == ord(";"):
            self._push_param()
            return True
        self.state = ParseState.DECSIXEL
        self._push_param()
        params = self.params
        if params:
            self.color_index = min(max(1 + params[0], 0), PALETTE_MAX - 1)
        if len(params) > 4:
            self.palette_modified = True
            if params[1] == 1:
                hue = min(params[2], 360)
                lum = min(params[3], 100)
                sat = min(params[4], 100)
                self.palette[self.color_index] = hls_to_rgb(hue, lum, sat)
            elif params[1] == 2:
                r, g, b = (min(p, 100) for p in params[2:5])
                self.palette[self.color_index] = _xrgb(r, g, b)
        return False

    # output -------------------------------------------------------------

    def finalize(self) -> bytes:
        """Crop the image to the drawn area and return it as BGRA bytes.

        The size is rounded up to whole character cells; the result holds
        ``width * height * 4`` bytes.
        """
        self.max_x += 1
        if self.max_x < self.attributed_ph:
            self.max_x = self.attributed_ph
        self.max_y += 1
        if self.max_y < self.attributed_pv:
            self.max_y = self.attributed_pv

        sx = _round_up(self.max_x, self.grid_width)
        sy = _round_up(self.max_y, self.grid_height)
        if self.width > sx or self.height > sy:
            self._resize(sx, sy)

        if (
            self.use_private_register
            and self.ncolors > 2
            and not self.palette_modified
        ):
            self.set_default_color()

        lut = [
            bytes(((color >> 16) & 0xFF, (color >> 8) & 0xFF, color & 0xFF, 255))
            for color in self.palette
        ]
        return b"".join(lut[i] for row in self._rows for i in row)
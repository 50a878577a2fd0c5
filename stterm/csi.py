"""Buffers and parsers for CSI and string (OSC, DCS, APC, PM) escape sequences."""

from __future__ import annotations

__all__ = [
    "ESC_BUF_SIZ",
    "ESC_ARG_SIZ",
    "STR_ARG_SIZ",
    "CSIEscape",
    "STREscape",
]

ESC_BUF_SIZ = 128 * 4
ESC_ARG_SIZ = 16
STR_ARG_SIZ = ESC_ARG_SIZ

_LONG_MAX = (1 << 63) - 1
_LONG_MIN = -(1 << 63)
_SPACES = b" \t\n\v\f\r"


def _strtol(buf: bytes, start: int) -> tuple[int, int]:
    """Parse a decimal integer like strtol; return (value, end index)."""
    i = start
    n = len(buf)
    while i < n and buf[i] in _SPACES:
        i += 1
    sign = 1
    if i < n and buf[i] in b"+-":
        sign = -1 if buf[i] == ord("-") else 1
        i += 1
    j = i
    while j < n and 0x30 <= buf[j] <= 0x39:
        j += 1
    if j == i:
        return 0, start
    value = sign * int(buf[i:j])
    return min(max(value, _LONG_MIN), _LONG_MAX), j


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def _escape_byte(c: int) -> str:
    if 0x20 <= c <= 0x7E:
        return chr(c)
    if c == 0x0A:
        return "(\\n)"
    if c == 0x0D:
        return "(\\r)"
    if c == 0x1B:
        return "(\\e)"
    return f"({c:02x})"


class CSIEscape:
    """A CSI sequence: ESC '[' [[ [<priv>] <arg> [;]] <mode> [<mode>]]."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.buf = bytearray()
        self.priv = False
        self.args = [0] * ESC_ARG_SIZ
        self.narg = 0
        self.mode = "\0\0"

    def append(self, char: int | str) -> bool:
        """Add one character; return True when the sequence is complete."""
        c = ord(char) if isinstance(char, str) else char
        self.buf.append(c & 0xFF)
        return 0x40 <= c <= 0x7E or len(self.buf) >= ESC_BUF_SIZ - 1

    def parse(self) -> None:
        """Split the buffer into the private flag, arguments and final bytes."""
        buf = bytes(self.buf)
        end = len(buf)
        self.args = [0] * ESC_ARG_SIZ
        self.narg = 0
        p = 0
        if buf[:1] == b"?":
            self.priv = True
            p = 1
        while p < end:
            value, np = _strtol(buf, p)
            if value in (_LONG_MAX, _LONG_MIN):
                value = -1
            self.args[self.narg] = _to_int32(value)
            self.narg += 1
            p = np
            if p >= end or buf[p] != ord(";") or self.narg == ESC_ARG_SIZ:
                break
            p += 1
        first = chr(buf[p]) if p < end else "\0"
        p += 1
        second = chr(buf[p]) if p < end else "\0"
        self.mode = first + second

    def dump(self) -> str:
        """Render the sequence for diagnostics, escaping unprintable bytes."""
        return "ESC[" + "".join(_escape_byte(c) for c in self.buf)


class STREscape:
    """A string sequence: ESC type [[ [<priv>] <arg> [;]] <mode>] ESC '\\'."""

    def __init__(self, type_: str = "\0") -> None:
        self.reset(type_)

    def reset(self, type_: str = "\0") -> None:
        self.type = type_
        self.buf = bytearray()
        self.args: list[str] = []

    @property
    def narg(self) -> int:
        return len(self.args)

    def append(self, data: bytes | str) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.buf += data

    def parse(self) -> None:
        """Split the buffer at ';' into at most STR_ARG_SIZ arguments."""
        text = bytes(self.buf).split(b"\0", 1)[0]
        if not text:
            self.args = []
            return
        self.args = [
            part.decode("utf-8", errors="replace")
            for part in text.split(b";")[:STR_ARG_SIZ]
        ]

    def dump(self) -> str:
        """Render the sequence for diagnostics, escaping unprintable bytes."""
        parts = [f"ESC{self.type}"]
        for c in self.buf:
            if c == 0:
                return "".join(parts)
            parts.append(_escape_byte(c))
        parts.append("ESC\\")
        return "".join(parts)
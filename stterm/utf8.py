"""UTF-8 coding in the terminal's lenient style, and base64 decoding."""

from __future__ import annotations

__all__ = [
    "UTF_INVALID",
    "UTF_SIZ",
    "utf8_decode",
    "utf8_encode",
    "utf8_validate",
    "base64_decode",
]

UTF_INVALID = 0xFFFD
UTF_SIZ = 4

_UTF_BYTE = (0x80, 0x00, 0xC0, 0xE0, 0xF0)
_UTF_MASK = (0xC0, 0x80, 0xE0, 0xF0, 0xF8)
_UTF_MIN = (0, 0, 0x80, 0x800, 0x10000)
_UTF_MAX = (0x10FFFF, 0x7F, 0x7FF, 0xFFFF, 0x10FFFF)


def _decode_byte(c: int) -> tuple[int, int]:
    """Return the payload bits of one byte and its class (0 = continuation)."""
    for kind, (mask, marker) in enumerate(zip(_UTF_MASK, _UTF_BYTE)):
        if c & mask == marker:
            return c & ~mask, kind
    return 0, len(_UTF_MASK)


def utf8_validate(rune: int, index: int) -> tuple[int, int]:
    """Replace an out-of-range rune and return it with its encoded length."""
    if not _UTF_MIN[index] <= rune <= _UTF_MAX[index] or 0xD800 <= rune <= 0xDFFF:
        rune = UTF_INVALID
    length = 1
    while rune > _UTF_MAX[length]:
        length += 1
    return rune, length


def utf8_decode(data: bytes) -> tuple[int, int]:
    """Decode one character from the front of ``data``.

    Returns ``(rune, consumed)``. ``consumed`` is 0 when the data is empty
    or holds only the start of a multi-byte sequence.
    """
    if not data:
        return UTF_INVALID, 0
    rune, length = _decode_byte(data[0])
    if not 1 <= length <= UTF_SIZ:
        return UTF_INVALID, 1
    taken = 1
    for byte in data[1:length]:
        bits, kind = _decode_byte(byte)
        rune = (rune << 6) | bits
        if kind != 0:
            return UTF_INVALID, taken
        taken += 1
    if taken < length:
        return UTF_INVALID, 0
    rune, _ = utf8_validate(rune, length)
    return rune, length


def utf8_encode(rune: int) -> bytes:
    """Encode a rune; invalid runes become U+FFFD."""
    if rune < 0:
        rune = UTF_INVALID
    rune, length = utf8_validate(rune, 0)
    tail = []
    for _ in range(length - 1):
        tail.append(0x80 | (rune & 0x3F))
        rune >>= 6
    lead = (_UTF_BYTE[length] | (rune & ~_UTF_MASK[length])) & 0xFF
    return bytes([lead, *reversed(tail)])


_B64_ALPHABET = b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_B64_DIGITS = {c: i for i, c in enumerate(_B64_ALPHABET)}
_B64_DIGITS[ord("=")] = -1
_PAD = ord("=")


def base64_decode(text: str | bytes) -> bytes:
    """Decode base64, skipping unprintable bytes and tolerating missing padding."""
    data = text.encode("utf-8") if isinstance(text, str) else bytes(text)
    data = data.split(b"\0", 1)[0]
    end = len(data)
    pos = 0

    def next_digit() -> int:
        nonlocal pos
        while pos < end and not 0x20 <= data[pos] <= 0x7E:
            pos += 1
        if pos >= end:
            return _B64_DIGITS[_PAD]
        c = data[pos]
        pos += 1
        return _B64_DIGITS.get(c, 0)

    out = bytearray()
    while pos < end:
        a, b, c, d = [next_digit() for _ in range(4)]
        if a == -1 or b == -1:
            break
        out.append(((a << 2) | ((b & 0x30) >> 4)) & 0xFF)
        if c == -1:
            break
        out.append((((b & 0x0F) << 4) | ((c & 0x3C) >> 2)) & 0xFF)
        if d == -1:
            break
        out.append((((c & 0x03) << 6) | d) & 0xFF)
    return bytes(out)
import base64

import pytest

from stterm.utf8 import (
    UTF_INVALID,
    base64_decode,
    utf8_decode,
    utf8_encode,
    utf8_validate,
)


@pytest.mark.parametrize("char", ["A", "é", "€", "𝄞", "\x7f", "\u07ff"])
def test_encode_decode_round_trip(char):
    encoded = utf8_encode(ord(char))
    assert encoded == char.encode("utf-8")
    assert utf8_decode(encoded) == (ord(char), len(encoded))


def test_decode_only_consumes_first_character():
    assert utf8_decode("éx".encode()) == (ord("é"), 2)


def test_decode_empty_consumes_nothing():
    assert utf8_decode(b"") == (UTF_INVALID, 0)


def test_decode_incomplete_sequence_waits_for_more():
    assert utf8_decode("€".encode()[:2]) == (UTF_INVALID, 0)


def test_decode_bad_lead_byte_skips_one():
    assert utf8_decode(b"\xffabc") == (UTF_INVALID, 1)


def test_decode_bad_continuation_stops_early():
    assert utf8_decode(b"\xc3A") == (UTF_INVALID, 1)


def test_decode_surrogate_is_invalid():
    assert utf8_decode(b"\xed\xa0\x80") == (UTF_INVALID, 3)


def test_decode_overlong_is_invalid():
    assert utf8_decode(b"\xc0\x80") == (UTF_INVALID, 2)


@pytest.mark.parametrize("rune", [0x110000, 0xD800, -5])
def test_encode_invalid_becomes_replacement(rune):
    assert utf8_encode(rune) == "\ufffd".encode("utf-8")


def test_validate_reports_length():
    assert utf8_validate(ord("A"), 0) == (ord("A"), 1)
    assert utf8_validate(0x10000, 0) == (0x10000, 4)
    assert utf8_validate(0x41, 2) == (UTF_INVALID, 3)


@pytest.mark.parametrize("payload", [b"", b"h", b"he", b"hello", bytes(range(256))])
def test_base64_round_trip(payload):
    assert base64_decode(base64.b64encode(payload).decode()) == payload


def test_base64_missing_padding_is_tolerated():
    assert base64_decode("aGVsbG8") == b"hello"


def test_base64_skips_unprintable_characters():
    assert base64_decode("aGVs\nbG8=\n") == b"hello"


def test_base64_accepts_bytes():
    assert base64_decode(b"aGk=") == b"hi"


def test_base64_stops_at_nul():
    assert base64_decode("aGk=\0aGk=") == b"hi"
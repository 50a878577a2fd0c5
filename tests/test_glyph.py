import pytest

from stterm.glyph import (
    Attr,
    Cursor,
    CursorState,
    Glyph,
    SelectionMode,
    SelectionSnap,
    SelectionType,
    is_truecolor,
    truecolor,
)


def test_glyph_defaults_to_blank_space():
    g = Glyph()
    assert g.u == ord(" ")
    assert g.mode == Attr.NULL


def test_glyph_copy_is_independent():
    g = Glyph(u=ord("x"), mode=Attr.BOLD, fg=3, bg=4)
    c = g.copy()
    assert c == g
    c.mode |= Attr.ITALIC
    c.u = ord("y")
    assert g.mode == Attr.BOLD
    assert g.u == ord("x")


def test_cursor_copy_deep_copies_attr():
    cur = Cursor(Glyph(fg=7), x=2, y=5, state=CursorState.ORIGIN)
    other = cur.copy()
    assert other == cur
    other.attr.fg = 1
    other.x = 0
    assert cur.attr.fg == 7
    assert cur.x == 2


def test_copy_keeps_wrap_and_bold_faint_bits():
    g = Glyph(mode=Attr.WRAP | Attr.WDUMMY | Attr.BOLD_FAINT)
    c = g.copy()
    assert c.mode & Attr.WRAP
    assert c.mode & Attr.WDUMMY
    assert c.mode & Attr.BOLD
    assert c.mode & Attr.FAINT
    assert int(c.mode) == (1 << 8) | (1 << 10) | 0b11


@pytest.mark.parametrize("rgb", [(0, 0, 0), (255, 255, 255), (12, 200, 99)])
def test_truecolor_components_round_trip(rgb):
    r, g, b = rgb
    c = truecolor(r, g, b)
    assert is_truecolor(c)
    assert ((c >> 16) & 0xFF, (c >> 8) & 0xFF, c & 0xFF) == rgb


@pytest.mark.parametrize("index", [0, 7, 15, 255])
def test_indexed_colours_are_not_truecolor(index):
    assert not is_truecolor(index)


def test_truecolor_sets_bit_24():
    assert truecolor(0, 0, 0) == 1 << 24
    assert truecolor(1, 2, 3) == (1 << 24) | 0x010203


@pytest.mark.parametrize(
    "member, value",
    [
        (SelectionMode.IDLE, 0),
        (SelectionMode.READY, 2),
        (SelectionType.RECTANGULAR, 2),
        (SelectionSnap.LINE, 2),
    ],
)
def test_selection_enums_lookup_by_value(member, value):
    assert type(member)(value) is member
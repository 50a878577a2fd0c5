import pytest

from stterm.hls import hls_to_rgb
from stterm.sixel import (
    PALETTE_MAX,
    ParseState,
    SixelError,
    SixelParser,
)


def make(cell_width=1, cell_height=1, private=False, fg=0, bg=0):
    return SixelParser(fg, bg, private, cell_width, cell_height)


def test_initial_image_is_one_pixel():
    parser = make()
    assert (parser.width, parser.height) == (1, 1)
    assert parser.state is ParseState.DECSIXEL
    assert parser.color_index == 16


def test_single_column_red():
    parser = make()
    parser.parse(b"#1;2;100;0;0~")
    pixels = parser.finalize()
    assert (parser.width, parser.height) == (1, 6)
    assert pixels == bytes([0, 0, 255, 255]) * 6


def test_background_fills_undrawn_pixels():
    parser = make(bg=0x010203)
    parser.parse(b"#1;2;0;0;100A")
    pixels = parser.finalize()
    assert (parser.width, parser.height) == (1, 2)
    assert pixels[:4] == bytes([1, 2, 3, 255])
    assert pixels[4:] == bytes([255, 0, 0, 255])


def test_repeat_introducer_fills_block():
    parser = make()
    parser.parse(b"#1;2;100;100;100!3~")
    pixels = parser.finalize()
    assert (parser.width, parser.height) == (3, 6)
    assert pixels == bytes([255]) * (3 * 6 * 4)


def test_repeat_zero_means_one():
    parser = make()
    parser.parse(b"!0~")
    assert parser.pos_x == 1
    assert parser.repeat_count == 1


def test_next_line_moves_down_six_rows():
    parser = make()
    parser.parse(b"~-~")
    assert parser.pos_y == 6
    parser.finalize()
    assert parser.height == 12
    assert parser.width == 1


def test_carriage_return_resets_column():
    parser = make()
    parser.parse(b"~~$")
    assert parser.pos_x == 0
    parser.parse(b"#1~")
    assert parser.pixel(0, 0) == 2
    assert parser.pixel(1, 0) == 16


def test_repeated_run_of_bits_sets_every_cell():
    parser = make()
    parser.parse(b"#3!4~")
    assert all(parser.pixel(x, y) == 4 for x in range(4) for y in range(6))
    assert parser.max_x == 3
    assert parser.max_y == 5


def test_raster_attributes_set_size():
    parser = make()
    parser.parse(b'"1;1;10;12~')
    assert (parser.attributed_ph, parser.attributed_pv) == (10, 12)
    pixels = parser.finalize()
    assert (parser.width, parser.height) == (10, 12)
    assert len(pixels) == 10 * 12 * 4


def test_size_rounds_up_to_cells():
    parser = make(cell_width=4, cell_height=8)
    parser.parse(b"~")
    pixels = parser.finalize()
    assert (parser.width, parser.height) == (4, 8)
    assert len(pixels) == parser.width * parser.height * 4


def test_hls_colour_uses_hls_conversion():
    parser = make()
    parser.parse(b"#1;1;0;50;100~")
    assert parser.palette[2] == hls_to_rgb(0, 50, 100)
    assert parser.palette_modified


def test_rgb_values_are_clamped():
    a = make()
    a.parse(b"#1;2;200;300;400~")
    b = make()
    b.parse(b"#1;2;100;100;100~")
    assert a.palette[2] == b.palette[2] == 0xFFFFFF


def test_color_index_is_clamped():
    parser = make()
    parser.parse(b"#5000~")
    assert parser.color_index == PALETTE_MAX - 1


def test_default_palette_layout():
    parser = make()
    parser.set_default_color()
    assert parser.palette[17] == 0
    assert parser.palette[17 + 215] == 0xFFFFFF
    assert parser.palette[233] == 0
    assert parser.palette[PALETTE_MAX - 1] == 0xFFFFFF


def test_private_register_keeps_foreground():
    parser = make(private=True, fg=0x123456, bg=0x654321)
    assert parser.palette[0] == 0x654321
    assert parser.palette[1] == 0x123456


def test_finalize_loads_defaults_when_many_colors_used():
    parser = make(private=True)
    parser.parse(b"#2~")
    assert parser.ncolors == 3
    assert parser.palette[232] == 0
    parser.finalize()
    assert parser.palette[232] == 0xFFFFFF


def test_modified_palette_blocks_defaults():
    parser = make(private=True)
    parser.parse(b"#2;2;100;0;0~")
    parser.finalize()
    assert parser.palette[232] == 0


def test_data_after_escape_raises():
    parser = make()
    parser.parse(b"~\x1b")
    assert parser.state is ParseState.ESC
    with pytest.raises(SixelError):
        parser.parse(b"~")


def test_text_input_matches_bytes():
    a = make()
    a.parse("#1;2;0;100;0!2~")
    b = make()
    b.parse(b"#1;2;0;100;0!2~")
    assert a.finalize() == b.finalize()


def test_incremental_feeding_matches_whole():
    data = b'"1;1;4;6#1;2;50;50;50!2w-#0~$N'
    whole = make()
    whole.parse(data)
    pieces = make()
    for byte in data:
        pieces.parse(bytes([byte]))
    assert whole.finalize() == pieces.finalize()
    assert (whole.width, whole.height) == (pieces.width, pieces.height)
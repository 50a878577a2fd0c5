import pytest

from stterm.glyph import Attr, CursorState, Glyph, SelectionType, truecolor
from stterm.screen import Charset, Screen


def write(screen, text, y=0, x=0):
    for i, ch in enumerate(text):
        screen.set_char(ord(ch), screen.cursor.attr, x + i, y)


def row_text(screen, y):
    return "".join(chr(g.u) for g in screen.line(y))


def label_rows(screen):
    for y in range(screen.rows):
        write(screen, chr(ord("A") + y), y)


def test_new_screen_is_blank_with_tabs():
    s = Screen(20, 5)
    assert s.cols == 20 and s.rows == 5
    assert all(row_text(s, y) == " " * 20 for y in range(5))
    assert [i for i, t in enumerate(s.tabs) if t] == [8, 16]
    assert (s.top, s.bot) == (0, 4)
    assert s.altscreen is False


def test_set_char_and_line_length():
    s = Screen(10, 3)
    write(s, "ab")
    assert row_text(s, 0).startswith("ab ")
    assert s.line_length(0) == 2
    assert s.line_length(1) == 0


def test_line_length_full_when_wrapped():
    s = Screen(10, 3)
    write(s, "a")
    s.line(0)[9].mode |= Attr.WRAP
    assert s.line_length(0) == s.cols


def test_move_to_clamps():
    s = Screen(10, 5)
    s.move_to(50, -3)
    assert (s.cursor.x, s.cursor.y) == (9, 0)
    s.cursor.state |= CursorState.WRAPNEXT
    s.move_to(2, 2)
    assert not s.cursor.state & CursorState.WRAPNEXT


def test_origin_mode():
    s = Screen(10, 6)
    s.set_scroll(2, 4)
    s.cursor.state |= CursorState.ORIGIN
    s.move_to_absolute(0, 0)
    assert s.cursor.y == 2
    s.move_to(0, 5)
    assert s.cursor.y == 4


def test_clear_region_swaps_corners():
    s = Screen(10, 3)
    write(s, "abcdef")
    s.clear_region(3, 0, 1, 0)
    assert row_text(s, 0).startswith("a   ef")


def test_delete_chars_does_not_alias():
    s = Screen(6, 2)
    write(s, "abcdef")
    s.move_to(1, 0)
    s.delete_chars(2)
    assert row_text(s, 0) == "adef  "


def test_insert_blanks():
    s = Screen(6, 2)
    write(s, "abcdef")
    s.move_to(1, 0)
    s.insert_blanks(2)
    assert row_text(s, 0) == "a  bcd"


def test_scroll_up_and_down():
    s = Screen(4, 4)
    label_rows(s)
    s.scroll_up(0, 1)
    assert [row_text(s, y)[0] for y in range(4)] == ["B", "C", "D", " "]
    s.scroll_down(0, 1)
    assert [row_text(s, y)[0] for y in range(4)] == [" ", "B", "C", "D"]


def test_newline_scrolls_region_only():
    s = Screen(4, 5)
    label_rows(s)
    s.set_scroll(1, 3)
    s.move_to(2, 3)
    s.newline(True)
    assert [row_text(s, y)[0] for y in range(5)] == ["A", "C", "D", " ", "E"]
    assert (s.cursor.x, s.cursor.y) == (0, 3)


def test_newline_keeps_column():
    s = Screen(4, 5)
    s.move_to(2, 0)
    s.newline(False)
    assert (s.cursor.x, s.cursor.y) == (2, 1)


def test_insert_blank_lines_outside_region_is_ignored():
    s = Screen(4, 4)
    label_rows(s)
    s.set_scroll(1, 3)
    s.move_to(0, 0)
    s.insert_blank_lines(1)
    assert [row_text(s, y)[0] for y in range(4)] == ["A", "B", "C", "D"]
    s.move_to(0, 1)
    s.delete_lines(1)
    assert [row_text(s, y)[0] for y in range(4)] == ["A", "C", "D", " "]


def test_put_tab():
    s = Screen(20, 2)
    s.put_tab(1)
    assert s.cursor.x == 8
    s.put_tab(2)
    assert s.cursor.x == s.cols - 1
    s.put_tab(-1)
    assert s.cursor.x == 16


def test_set_scroll_orders_and_limits():
    s = Screen(4, 5)
    s.set_scroll(10, 1)
    assert (s.top, s.bot) == (1, 4)


def test_swap_screen_keeps_contents():
    s = Screen(4, 3)
    write(s, "ab")
    s.swap_screen()
    assert s.altscreen is True
    assert row_text(s, 0) == "    "
    s.swap_screen()
    assert row_text(s, 0) == "ab  "


def test_save_and_load_cursor():
    s = Screen(10, 5)
    s.move_to(3, 2)
    s.save_cursor()
    s.move_to(0, 0)
    s.load_cursor()
    assert (s.cursor.x, s.cursor.y) == (3, 2)


def test_sgr_flags_and_reset():
    s = Screen(4, 2, defaultfg=7, defaultbg=0)
    s.set_attributes([1, 4])
    assert s.cursor.attr.mode & Attr.BOLD and s.cursor.attr.mode & Attr.UNDERLINE
    s.set_attributes([22])
    assert not s.cursor.attr.mode & Attr.BOLD
    s.set_attributes([31, 0])
    assert s.cursor.attr.mode == Attr.NULL
    assert s.cursor.attr.fg == 7


def test_sgr_colors():
    s = Screen(4, 2)
    s.set_attributes([31])
    assert s.cursor.attr.fg == 31 - 30
    s.set_attributes([38, 2, 10, 20, 30])
    assert s.cursor.attr.fg == truecolor(10, 20, 30)
    s.set_attributes([48, 5, 200])
    assert s.cursor.attr.bg == 200
    s.set_attributes([48, 5, 300])
    assert s.cursor.attr.bg == 200
    s.set_attributes([97])
    assert s.cursor.attr.fg == 15


def test_sgr_extended_color_consumes_arguments():
    s = Screen(4, 2)
    s.set_attributes([38, 5, 9, 4])
    assert s.cursor.attr.fg == 9
    assert s.cursor.attr.mode & Attr.UNDERLINE


def test_set_dirty_limits():
    s = Screen(4, 5)
    s.dirty = [False] * 5
    s.set_dirty(-5, 1)
    assert s.dirty == [True, True, False, False, False]


def test_attr_set_skips_last_row():
    s = Screen(4, 3)
    s.line(0)[0].mode |= Attr.BOLD
    assert s.attr_set(Attr.BOLD)
    s.line(0)[0].mode = Attr.NULL
    s.line(2)[0].mode |= Attr.BOLD
    assert not s.attr_set(Attr.BOLD)


def test_set_dirty_attr():
    s = Screen(4, 3)
    s.dirty = [False] * 3
    s.line(1)[1].mode |= Attr.BLINK
    s.set_dirty_attr(Attr.BLINK)
    assert s.dirty == [False, True, False]


def test_alignment_test():
    s = Screen(3, 2)
    s.alignment_test()
    assert all(row_text(s, y) == "EEE" for y in range(2))


def test_dump():
    s = Screen(5, 2)
    write(s, "hi")
    assert s.dump_line(0) == b"hi\n"
    assert s.dump_line(1) == b"\n"
    assert s.dump() == b"hi\n\n"


def test_graphic_charset():
    s = Screen(4, 2)
    s.trantbl[0] = Charset.GRAPHIC0
    s.set_char(ord("q"), s.cursor.attr, 0, 0)
    assert s.line(0)[0].u == ord("─")
    assert s.dump_line(0) == "─\n".encode("utf-8")


def test_overwriting_wide_char_clears_dummy():
    s = Screen(4, 2)
    s.line(0)[0] = Glyph(ord("W"), Attr.WIDE)
    s.line(0)[1] = Glyph(0, Attr.WDUMMY)
    s.set_char(ord("a"), s.cursor.attr, 0, 0)
    assert s.line(0)[1].u == ord(" ")
    assert not s.line(0)[1].mode & Attr.WDUMMY


def test_resize_grow_keeps_content():
    s = Screen(10, 5)
    write(s, "X", y=3, x=2)
    s.resize(20, 8)
    assert (s.cols, s.rows) == (20, 8)
    assert all(len(s.line(y)) == 20 for y in range(8))
    assert s.line(3)[2].u == ord("X")
    assert s.tabs[16]
    assert (s.top, s.bot) == (0, 7)


def test_resize_shrink_slides_to_cursor():
    s = Screen(10, 5)
    write(s, "Z", y=4)
    s.move_to(0, 4)
    s.resize(10, 3)
    assert s.line(2)[0].u == ord("Z")
    assert s.cursor.y == 2


def test_resize_rejects_empty():
    s = Screen(10, 5)
    with pytest.raises(ValueError):
        s.resize(0, 5)


def test_clear_region_drops_selection():
    s = Screen(10, 3)
    write(s, "hello")
    s.selection.start(0, 0, 0)
    s.selection.extend(3, 0, SelectionType.REGULAR, False)
    assert s.selection.selected(1, 0)
    s.clear_region(0, 0, 4, 0)
    assert not s.selection.active


def test_reset_restores_defaults():
    s = Screen(10, 4, defaultfg=5, defaultbg=6)
    write(s, "abc")
    s.set_scroll(1, 2)
    s.trantbl[0] = Charset.GRAPHIC0
    s.reset()
    assert row_text(s, 0) == " " * 10
    assert (s.top, s.bot) == (0, 3)
    assert s.trantbl == [Charset.USA] * 4
    assert (s.cursor.attr.fg, s.cursor.attr.bg) == (5, 6)
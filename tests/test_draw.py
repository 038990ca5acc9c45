import pytest

from c8emu import C8Screen
from c8emu.errors import MemoryOutOfRange

from conftest import make_computer, run_opcodes

SPRITE_AT = 0x300


def draw(c8, x, y, *rows):
    for i, row in enumerate(rows):
        c8.RAM[SPRITE_AT + i] = row
    c8.I = SPRITE_AT
    c8.V[0] = x
    c8.V[1] = y
    run_opcodes(c8, 0xD010 | len(rows))
    return c8.V[0xF]


def lit(c8):
    return {(x, y) for y, row in enumerate(c8.screen.rows()) for x, on in enumerate(row) if on}


def test_draw_on_blank_screen(c8):
    assert draw(c8, 8, 4, 0xC0, 0x81) == 0
    assert lit(c8) == {(8, 4), (9, 4), (8, 5), (15, 5)}


def test_redraw_erases_and_collides(c8):
    draw(c8, 8, 4, 0xC0, 0x81)
    assert draw(c8, 8, 4, 0xC0, 0x81) == 1
    assert c8.screen.lit_pixels() == 0


def test_partial_overlap_collides(c8):
    draw(c8, 0, 0, 0xF0)
    assert draw(c8, 3, 0, 0xF0) == 1
    assert lit(c8) == {(0, 0), (1, 0), (2, 0), (4, 0), (5, 0), (6, 0)}


def test_no_overlap_clears_stale_flag(c8):
    draw(c8, 0, 0, 0xF0)
    c8.V[0xF] = 1
    assert draw(c8, 20, 20, 0xF0) == 0


def test_zero_bits_never_collide(c8):
    draw(c8, 0, 0, 0xFF)
    assert draw(c8, 0, 0, 0x00) == 0
    assert c8.screen.lit_pixels() == 8


def test_clip_right_edge(c8):
    assert draw(c8, 60, 0, 0xFF) == 0
    assert lit(c8) == {(60, 0), (61, 0), (62, 0), (63, 0)}


def test_clip_bottom_edge(c8):
    draw(c8, 0, 30, 0x80, 0x80, 0x80, 0x80)
    assert lit(c8) == {(0, 30), (0, 31)}


def test_clipped_pixels_do_not_collide(c8):
    c8.screen.setpx(0, 0, 1)
    assert draw(c8, 60, 0, 0xFF) == 0
    assert draw(c8, 0, 31, 0x80, 0x80) == 0


def test_wrap_right_edge():
    c8 = make_computer(sprite_wrap=True)
    draw(c8, 60, 0, 0xFF)
    assert lit(c8) == {(60, 0), (61, 0), (62, 0), (63, 0), (0, 0), (1, 0), (2, 0), (3, 0)}


def test_wrap_bottom_edge():
    c8 = make_computer(sprite_wrap=True)
    draw(c8, 0, 30, 0x80, 0x80, 0x80, 0x80)
    assert lit(c8) == {(0, 30), (0, 31), (0, 0), (0, 1)}


def test_wrapped_pixels_collide():
    c8 = make_computer(sprite_wrap=True)
    c8.screen.setpx(1, 0, 1)
    assert draw(c8, 62, 0, 0xF0) == 1
    assert (1, 0) not in lit(c8)


@pytest.mark.parametrize("sprite_wrap", [False, True])
def test_start_coordinates_wrap(sprite_wrap):
    c8 = make_computer(sprite_wrap=sprite_wrap)
    draw(c8, 64 + 5, 32 + 3, 0x80)
    assert lit(c8) == {(5, 3)}


def test_zero_height_sprite_draws_nothing(c8):
    assert draw(c8, 0, 0) == 0
    assert c8.screen.lit_pixels() == 0


def test_sprite_data_past_end_of_memory_faults(c8):
    c8.I = 0xFFE
    with pytest.raises(MemoryOutOfRange):
        run_opcodes(c8, 0xD003)
    assert c8.halted


def test_draw_records_dirty_rect(c8):
    c8.screen.mark_drawn()
    draw(c8, 10, 12, 0xFF, 0xFF, 0xFF)
    assert c8.screen.needs_draw
    assert c8.screen.draw_rect_list == [(10, 12, 18, 15)]


def test_dirty_rect_is_clipped(c8):
    c8.screen.mark_drawn()
    draw(c8, 60, 30, 0xFF, 0xFF, 0xFF)
    assert c8.screen.draw_rect_list == [(60, 30, 64, 32)]


def test_wrapped_sprite_repaints_everything():
    c8 = make_computer(sprite_wrap=True)
    c8.screen.mark_drawn()
    draw(c8, 60, 30, 0xFF, 0xFF, 0xFF)
    assert c8.screen.draw_rect_list == [(0, 0, 64, 32)]


def test_clear_invalidates_whole_screen():
    screen = C8Screen()
    screen.setpx(1, 1, 1)
    screen.mark_drawn()
    screen.clear()
    assert screen.lit_pixels() == 0
    assert screen.needs_draw
    assert screen.draw_rect_list == [(0, 0, 64, 32)]

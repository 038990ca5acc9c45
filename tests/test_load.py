import pytest

from c8emu import C8Config, Variant, load, load_rom_file
from c8emu.computer import FONT, MAX_ROM_SIZE, PROGRAM_START
from c8emu.errors import LoadError, RomTooLarge, RomUnreadable

from conftest import make_computer


@pytest.mark.parametrize("size", [0, 1, 2, 137, MAX_ROM_SIZE])
def test_rom_lands_at_0x200(size):
    rom = bytes((i * 7 + 3) & 0xFF for i in range(size))
    c8 = load(rom, Variant.ORIGINAL)
    for k in range(size):
        assert c8.RAM[PROGRAM_START + k] == rom[k]
    # nothing past the end of the ROM
    assert all(b == 0 for b in c8.RAM[PROGRAM_START + size:])


def test_max_rom_size_is_3584():
    assert MAX_ROM_SIZE == 3584


def test_font_is_loaded_at_zero():
    c8 = load(b"\x12\x00")
    assert list(c8.RAM[0:80]) == FONT
    # glyph for 0 is the first five bytes
    assert list(c8.RAM[0:5]) == [0xF0, 0x90, 0x90, 0x90, 0xF0]


def test_fresh_state_after_load():
    c8 = load(b"\x60\x01")
    assert c8.PC == 0x200
    assert c8.I == 0
    assert len(c8.stack) == 0
    assert list(c8.V) == [0] * 16
    assert c8.delay_timer == 0 and c8.sound_timer == 0
    assert not c8.waiting_for_key
    assert c8.screen.lit_pixels() == 0


def test_oversize_rom_is_rejected():
    with pytest.raises(RomTooLarge) as excinfo:
        load(bytes(MAX_ROM_SIZE + 1))
    assert excinfo.value.size == MAX_ROM_SIZE + 1
    assert isinstance(excinfo.value, LoadError)


def test_oversize_rom_leaves_running_machine_alone():
    c8 = load(b"\x6A\x05")
    c8.cycle()
    with pytest.raises(RomTooLarge):
        c8.load_rom(bytes(MAX_ROM_SIZE + 1))
    assert c8.V[0xA] == 5
    assert c8.PC == 0x202


def test_loading_again_reinitialises_everything():
    c8 = make_computer()
    c8.load_rom(bytes([0x6A, 0x05, 0x22, 0x00]))
    c8.cycle()
    c8.cycle()
    c8.delay_timer = 9
    c8.screen.setpx(3, 3, 1)
    c8.load_rom(bytes([0x00, 0xE0]))
    assert c8.V[0xA] == 0
    assert len(c8.stack) == 0
    assert c8.delay_timer == 0
    assert c8.screen.lit_pixels() == 0
    assert c8.RAM[0x202] == 0
    assert c8.PC == 0x200


def test_reload_restarts_current_rom():
    c8 = load(bytes([0x6A, 0x05]))
    c8.cycle()
    c8.reload()
    assert c8.V[0xA] == 0
    assert c8.PC == 0x200
    assert c8.RAM[0x200] == 0x6A


def test_variant_comes_from_the_caller():
    config = C8Config(variant=Variant.ORIGINAL, clock_speed=900)
    c8 = load(b"\x00\xE0", Variant.EXTENDED, config=config)
    assert c8.variant is Variant.EXTENDED
    assert c8.config.clock_speed == 900
    # the passed config is not modified
    assert config.variant is Variant.ORIGINAL


def test_variant_defaults_to_config():
    c8 = load(b"", config=C8Config(variant=Variant.EXTENDED))
    assert c8.variant is Variant.EXTENDED


def test_load_rom_file(tmp_path):
    path = tmp_path / "pong.ch8"
    path.write_bytes(b"\x6A\x02\x6B\x0C")
    assert load_rom_file(str(path)) == b"\x6A\x02\x6B\x0C"


def test_load_rom_file_missing(tmp_path):
    with pytest.raises(RomUnreadable):
        load_rom_file(str(tmp_path / "missing.ch8"))


def test_load_rom_file_directory(tmp_path):
    with pytest.raises(RomUnreadable):
        load_rom_file(str(tmp_path))

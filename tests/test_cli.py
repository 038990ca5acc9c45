import pytest

from c8emu import Variant
from c8emu.__main__ import build_parser, config_from_args, main
from c8emu.computer import MAX_ROM_SIZE


def test_rom_is_required():
    with pytest.raises(SystemExit) as excinfo:
        main([])
    assert excinfo.value.code != 0


def test_unknown_variant_is_rejected():
    with pytest.raises(SystemExit):
        main(["game.ch8", "--variant", "megachip"])


def test_missing_rom(tmp_path, caplog):
    assert main([str(tmp_path / "missing.ch8")]) == 1
    assert "missing.ch8" in caplog.text


def test_oversize_rom(tmp_path):
    rom = tmp_path / "huge.ch8"
    rom.write_bytes(bytes(MAX_ROM_SIZE + 1))
    assert main([str(rom)]) == 1


def test_defaults():
    config = config_from_args(build_parser().parse_args(["game.ch8"]))
    assert config.variant is Variant.ORIGINAL
    assert config.clock_speed == 600
    assert config.scale_factor == 10
    assert not config.sprite_wrap
    assert not config.strict_opcodes
    assert config.snapshot_path == "save_state.c8s"


def test_options():
    args = build_parser().parse_args(["game.ch8", "--variant", "extended", "--clock", "1200", "--scale", "6",
                                      "--wrap-sprites", "--strict", "--save-file", "slot1.c8s"])
    config = config_from_args(args)
    assert config.variant is Variant.EXTENDED
    assert config.clock_speed == 1200
    assert config.instructions_per_frame == 20
    assert config.scale_factor == 6
    assert config.sprite_wrap
    assert config.strict_opcodes
    assert config.snapshot_path == "slot1.c8s"

import argparse
import logging
import os
import sys

from c8emu.computer import load, load_rom_file
from c8emu.config import C8Config, Variant
from c8emu.errors import LoadError, MachineFault
from c8emu.frontend import C8Frontend

logger = logging.getLogger("c8emu")


def build_parser():
    parser = argparse.ArgumentParser(prog="c8emu", description="CHIP-8 / SUPER-CHIP emulator")
    parser.add_argument("rom", help="path to the ROM image")
    parser.add_argument("--variant", choices=[v.value for v in Variant], default=Variant.ORIGINAL.value,
                        help="quirk set: original COSMAC VIP CHIP-8 or extended SUPER-CHIP (default: original)")
    parser.add_argument("--clock", type=int, default=C8Config.clock_speed,
                        help="instructions per second (default: %(default)s)")
    parser.add_argument("--scale", type=int, default=C8Config.scale_factor,
                        help="window pixels per CHIP-8 pixel (default: %(default)s)")
    parser.add_argument("--wrap-sprites", action="store_true", help="wrap sprites at the screen edges instead of clipping")
    parser.add_argument("--strict", action="store_true", help="stop on unknown opcodes instead of skipping them")
    parser.add_argument("--save-file", default=C8Config.snapshot_path,
                        help="save state file used by F5/F9 (default: %(default)s)")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def config_from_args(args):
    return C8Config(
        variant=Variant(args.variant),
        clock_speed=args.clock,
        sprite_wrap=args.wrap_sprites,
        strict_opcodes=args.strict,
        scale_factor=args.scale,
        snapshot_path=args.save_file,
    )


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="[%(levelname)s]:  %(message)s", stream=sys.stdout)
    config = config_from_args(args)

    try:
        c8 = load(load_rom_file(args.rom), config=config)
    except LoadError as e:
        logger.error("%s", e)
        return 1

    frontend = C8Frontend(c8, config, title=os.path.basename(args.rom))
    try:
        frontend.run()
    except MachineFault as e:
        logger.error("%s\n%s", e, c8.describe())
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

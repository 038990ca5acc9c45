from c8emu.computer import C8Computer, KeyWait, load, load_rom_file
from c8emu.config import C8Config, Variant
from c8emu.screen import C8Screen
from c8emu.stack import C8Stack

__version__ = "0.1.0"

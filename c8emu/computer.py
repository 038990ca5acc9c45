import logging
import random
from array import array
from dataclasses import replace

from c8emu.config import C8Config, Variant
from c8emu.errors import (InvalidOpCodeException, MachineFault, MemoryOutOfRange, RomTooLarge,
                          RomUnreadable)
from c8emu.screen import C8Screen
from c8emu.stack import C8Stack

logger = logging.getLogger(__name__)

MEMORY_SIZE = 4096
PROGRAM_START = 0x200
MAX_ROM_SIZE = MEMORY_SIZE - PROGRAM_START
NUM_REGISTERS = 16
NUM_KEYS = 16

'''
Video in the CHIP-8 is sprite-driven.  Each sprite is 8 pixels wide, and from 1-15 pixels high.
A font representing 0..9 + A..F is required for proper operation.  Example for the character 2:

           ****....
           ...*....
           ****....
           *.......
           ****....

The font has to live in RAM in range 0x000-0x1FF, which is reserved for the interpreter.  Since
we are not using any of that RAM for our actual interpreter, the font starts at 0x000, which
is what lets Fx29 compute a glyph address as digit * 5.
'''
FONT = [0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
        0x20, 0x60, 0x20, 0x20, 0x70,  # 1
        0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
        0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
        0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
        0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
        0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
        0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
        0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
        0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
        0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
        0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
        0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
        0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
        0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
        0xF0, 0x80, 0xF0, 0x80, 0x80]  # F
FONT_SIZE = len(FONT)


def load_rom_file(rom_file):
    try:
        with open(rom_file, "rb") as infile:
            return infile.read()
    except OSError as e:
        raise RomUnreadable("cannot read ROM {}: {}".format(rom_file, e.strerror or e)) from e


def load(rom_bytes, variant=None, config=None, rng=None):
    '''
    Build a freshly reset computer with rom_bytes at 0x200.  variant, when given, overrides the one in
    config; it is never guessed from the ROM.
    '''
    config = config or C8Config()
    if variant is not None:
        config = replace(config, variant=variant)
    c8 = C8Computer(config, rng)
    c8.load_rom(rom_bytes)
    return c8


class KeyWait:
    '''
    Fx0A in progress.  While a computer holds one of these it fetches nothing; each cycle looks at the
    keypad instead.  key stays None until some key is seen down, then the wait ends when that same key
    is seen up again and its index is stored in V[register].
    '''

    def __init__(self, register, key=None):
        self.register = register
        self.key = key

    def __eq__(self, other):
        return isinstance(other, KeyWait) and (self.register, self.key) == (other.register, other.key)

    def __repr__(self):
        return "KeyWait(register={}, key={})".format(self.register, self.key)


class C8Computer:

    def __init__(self, config=None, rng=None):
        self.config = config or C8Config()
        self.rng = rng or random.Random()
        self.screen = C8Screen()
        self.stack = C8Stack()
        self.rom = b''

        # Using a list of functions to speed the lookup, vs. doing a big nested
        # if/else.  There is one instruction for each of the high-order nibbles
        # 1, 2, 3, 4, 5, 6, 7, 9, A, B, C and D.  The others (0, 8, E, F) have
        # multiple.
        self.operation_list = [
            self._0_opcodes, self._1nnn, self._2nnn, self._3xkk, self._4xkk, self._5xy0,
            self._6xkk, self._7xkk, self._8_opcodes, self._9xy0, self._Annn, self._Bnnn,
            self._Cxkk, self._Dxyn, self._E_opcodes, self._F_opcodes
        ]

        # opcodes beginning with 8 can be determined based on the least-significant
        # nibble (0..7 and E)
        self._8_operations = [
            self._8xy0, self._8xy1, self._8xy2, self._8xy3, self._8xy4, self._8xy5,
            self._8xy6, self._8xy7, None, None, None, None, None, None, self._8xyE, None
        ]

        # opcodes beginning with F can be determined based on the least_significant
        # byte (07, 0A, 15, 18, 1E, 29, 33, 55, and 65).  Since this is sparse,
        # will use a dictionary.
        self._F_operations = {
            0x07: self._Fx07,
            0x0A: self._Fx0A,
            0x15: self._Fx15,
            0x18: self._Fx18,
            0x1E: self._Fx1E,
            0x29: self._Fx29,
            0x33: self._Fx33,
            0x55: self._Fx55,
            0x65: self._Fx65
        }

        self.reset()

    def reset(self):
        # 4096 Bytes of RAM
        self.RAM = array('B', [0 for i in range(MEMORY_SIZE)])
        # The 16 registers are named V0..VF
        self.V = array('B', [0 for i in range(NUM_REGISTERS)])
        # Special-purpose 16-bit register; low 12 are used for an address
        self.I = 0
        self.delay_timer = 0
        self.sound_timer = 0
        # Program Counter
        self.PC = PROGRAM_START
        self.stack.clear()
        self.screen.clear()
        self.keys_pressed = [False for i in range(NUM_KEYS)]  # used for the Ex9E, ExA1 and Fx0A instructions
        self.key_wait = None
        self.halted = False
        self.last_opcode = None
        self.num_instr = 0
        self.unknown_opcodes = set()
        self.load_font_sprites()

    @property
    def variant(self):
        return self.config.variant

    @property
    def waiting_for_key(self):
        return self.key_wait is not None

    def load_font_sprites(self):
        for i in range(FONT_SIZE):
            self.RAM[i] = FONT[i]

    def load_rom(self, rom):
        if len(rom) > MAX_ROM_SIZE:
            raise RomTooLarge(len(rom), MAX_ROM_SIZE)
        self.reset()
        self.rom = bytes(rom)
        for i, byte in enumerate(self.rom):
            self.RAM[PROGRAM_START + i] = byte
        logger.debug("Loaded %d byte ROM, variant %s", len(self.rom), self.variant.value)

    def reload(self):
        # start the current ROM over from a clean machine
        self.load_rom(self.rom)

    def describe(self):
        lines = ["PC: 0x{:03X}".format(self.PC)]
        if 0 <= self.PC <= MEMORY_SIZE - 2:
            lines.append("Next instr.: 0x{:04X}".format(self.RAM[self.PC] << 8 | self.RAM[self.PC + 1]))
        lines.append("I: 0x{:03X}".format(self.I))
        for row in range(4):
            lines.append("\t".join("V{:X}: 0x{:02X}".format(i, self.V[i]) for i in range(row * 4, row * 4 + 4)))
        lines.append("delay timer: 0x{:02X}".format(self.delay_timer))
        lines.append("sound timer: 0x{:02X}".format(self.sound_timer))
        lines.append("stack: [{}]".format(", ".join("0x{:03X}".format(a) for a in self.stack)))
        if self.key_wait is not None:
            lines.append("waiting for key: {!r}".format(self.key_wait))
        return "\n".join(lines)

    def read_byte(self, address):
        if not 0 <= address < MEMORY_SIZE:
            raise MemoryOutOfRange(address)
        return self.RAM[address]

    def write_byte(self, address, value):
        if not 0 <= address < MEMORY_SIZE:
            raise MemoryOutOfRange(address)
        self.RAM[address] = value

    def fetch(self):
        # Cannot run off the end of RAM; both bytes of the opcode must be there
        if not 0 <= self.PC <= MEMORY_SIZE - 2:
            raise MemoryOutOfRange(self.PC)
        return self.RAM[self.PC] << 8 | self.RAM[self.PC + 1]

    def set_key(self, key, pressed):
        # the only way input reaches the machine; key is the logical CHIP-8 key 0x0-0xF
        if not 0 <= key < NUM_KEYS:
            raise ValueError("no such key: {}".format(key))
        self.keys_pressed[key] = bool(pressed)

    def release_all_keys(self):
        for i in range(NUM_KEYS):
            self.keys_pressed[i] = False

    def update_timers(self):
        '''
        Called once per frame tick (60Hz) no matter how many instructions ran.  Both timers count
        down to 0 and stay there.  Returns whether the tone should sound this tick.
        '''
        if self.delay_timer > 0:
            self.delay_timer -= 1
        if self.sound_timer > 0:
            self.sound_timer -= 1
            return True
        return False

    def invalid_op(self, opcode):
        if self.config.strict_opcodes:
            raise InvalidOpCodeException(opcode)
        if opcode not in self.unknown_opcodes:
            self.unknown_opcodes.add(opcode)
            logger.warning("Ignoring unknown opcode 0x%04X at 0x%03X", opcode, self.PC - 2)

    def _skip(self):
        self.PC += 2

    def _0_opcodes(self, opcode, vx, vy, n, kk, nnn):
        if opcode == 0x00E0:
            # 00E0 - CLS
            # clear the screen
            self.screen.clear()
        elif opcode == 0x00EE:
            # 00EE - RET
            # Return from a subroutine
            self.PC = self.stack.pop()
        else:
            # 0nnn - SYS addr, machine code routines on the COSMAC VIP; nothing to call here
            self.invalid_op(opcode)

    def _1nnn(self, opcode, vx, vy, n, kk, nnn):
        # 1nnn - JP addr
        # Jump to location nnn
        self.PC = nnn

    def _2nnn(self, opcode, vx, vy, n, kk, nnn):
        # 2nnn - CALL addr
        # Call subroutine at nnn.  PC already points past this instruction, which is where RET returns to.
        self.stack.push(self.PC)
        self.PC = nnn

    def _3xkk(self, opcode, vx, vy, n, kk, nnn):
        # 3xkk - SE Vx, byte
        # Skip next instruction if Vx == kk
        if self.V[vx] == kk:
            self._skip()

    def _4xkk(self, opcode, vx, vy, n, kk, nnn):
        # 4xkk - SNE Vx, byte
        # Skip next instruction if Vx != kk
        if self.V[vx] != kk:
            self._skip()

    def _5xy0(self, opcode, vx, vy, n, kk, nnn):
        # 5xy0 - SE Vx, Vy
        # Skip next instruction if Vx == Vy
        if n != 0:
            self.invalid_op(opcode)
        elif self.V[vx] == self.V[vy]:
            self._skip()

    def _6xkk(self, opcode, vx, vy, n, kk, nnn):
        # 6xkk - LD Vx, byte
        # Set Vx = kk
        self.V[vx] = kk

    def _7xkk(self, opcode, vx, vy, n, kk, nnn):
        # 7xkk - ADD Vx, byte
        # Add value in kk to vx, stores result in vx, does NOT set overflow flag
        self.V[vx] = (self.V[vx] + kk) & 0xFF

    def _8xy0(self, vx, vy):
        # 8xy0 - LD Vx, Vy
        # Set Vx = Vy
        self.V[vx] = self.V[vy]

    def _8xy1(self, vx, vy):
        # 8xy1 - OR Vx, Vy
        # Set Vx = Vx OR Vy.
        # Historical quirk: the COSMAC VIP also set VF = 0
        self.V[vx] = self.V[vx] | self.V[vy]
        if self.variant is Variant.ORIGINAL:
            self.V[0xF] = 0

    def _8xy2(self, vx, vy):
        # 8xy2 - AND Vx, Vy
        # Set Vx = Vx AND Vy
        # Historical quirk: the COSMAC VIP also set VF = 0
        self.V[vx] = self.V[vx] & self.V[vy]
        if self.variant is Variant.ORIGINAL:
            self.V[0xF] = 0

    def _8xy3(self, vx, vy):
        # 8xy3 - XOR Vx, Vy
        # Set Vx = Vx XOR Vy
        # Historical quirk: the COSMAC VIP also set VF = 0
        self.V[vx] = self.V[vx] ^ self.V[vy]
        if self.variant is Variant.ORIGINAL:
            self.V[0xF] = 0

    def _8xy4(self, vx, vy):
        # 8xy4 - ADD Vx, Vy
        # Set Vx = Vx + Vy, set VF = carry.  Must be done in this order so VF wins when x is F.
        sum = self.V[vx] + self.V[vy]
        self.V[vx] = sum & 0xFF
        if sum > 255:
            self.V[0xF] = 1
        else:
            self.V[0xF] = 0

    def _8xy5(self, vx, vy):
        # 8xy5 - SUB Vx, Vy
        # Set Vx = Vx - Vy.  Set VF = NOT borrow (VF = 1 if Vx >= Vy)
        if self.V[vx] >= self.V[vy]:
            notborrow = 1
        else:
            notborrow = 0
        self.V[vx] = (self.V[vx] - self.V[vy]) & 0xFF
        self.V[0xF] = notborrow

    def _8xy6(self, vx, vy):
        # 8xy6 - SHR Vx, Vy
        # ORIGINAL: shift Vy right by 1 and put the result in Vx.
        # EXTENDED: shift Vx right by 1 in place.
        # In both, VF is set to the bit shifted out.
        # See: https://tobiasvl.github.io/blog/write-a-chip-8-emulator/#8xy6-and-8xye-shift
        if self.variant is Variant.ORIGINAL:
            src = self.V[vy]
        else:
            src = self.V[vx]
        lsb = src & 0x1
        self.V[vx] = src >> 1
        self.V[0xF] = lsb

    def _8xy7(self, vx, vy):
        # 8xy7 - SUBN Vx, Vy
        # Set Vx = Vy - Vx.  Set VF = NOT borrow (VF = 1 if Vy >= Vx)
        if self.V[vy] >= self.V[vx]:
            notborrow = 1
        else:
            notborrow = 0
        self.V[vx] = (self.V[vy] - self.V[vx]) & 0xFF
        self.V[0xF] = notborrow

    def _8xyE(self, vx, vy):
        # 8xyE - SHL Vx, Vy
        # ORIGINAL: shift Vy left by 1 and put the result in Vx.
        # EXTENDED: shift Vx left by 1 in place.
        # In both, VF is set to the bit shifted out.
        if self.variant is Variant.ORIGINAL:
            src = self.V[vy]
        else:
            src = self.V[vx]
        msb = src & 0x80
        self.V[vx] = (src << 1) & 0xFF
        if msb:
            self.V[0xF] = 0x1
        else:
            self.V[0xF] = 0x0

    def _8_opcodes(self, opcode, vx, vy, n, kk, nnn):
        operation = self._8_operations[n]
        if operation is None:
            self.invalid_op(opcode)
        else:
            operation(vx, vy)

    def _9xy0(self, opcode, vx, vy, n, kk, nnn):
        # 9xy0 - SNE Vx, Vy
        # Skip next instruction if Vx != Vy
        if n != 0:
            self.invalid_op(opcode)
        elif self.V[vx] != self.V[vy]:
            self._skip()

    def _Annn(self, opcode, vx, vy, n, kk, nnn):
        # Annn - LD I, addr
        # The value of register I is set to nnn
        self.I = nnn

    def _Bnnn(self, opcode, vx, vy, n, kk, nnn):
        # Bnnn - JP V0, addr
        # The program counter is set to nnn plus the value of V0
        self.PC = nnn + self.V[0]

    def _Cxkk(self, opcode, vx, vy, n, kk, nnn):
        # Cxkk - RND Vx, byte
        # Set Vx = random byte AND kk
        self.V[vx] = self.rng.randint(0, 255) & kk

    def _Dxyn(self, opcode, vx, vy, n, kk, nnn):
        # Dxyn - DRW Vx, Vy, nibble
        # Draw n rows of sprite data from I at (Vx, Vy).  The starting point always wraps; whatever
        # hangs off the right or bottom edge is clipped (or wrapped, with sprite_wrap).
        # VF = 1 if any pixel was turned off, else 0.
        # See https://laurencescotford.com/chip-8-on-the-cosmac-vip-drawing-sprites/
        x = self.V[vx] % self.screen.xsize
        y = self.V[vy] % self.screen.ysize
        wrap = self.config.sprite_wrap
        collision = 0
        for i in range(n):
            if not wrap and y + i >= self.screen.ysize:
                break
            if self.screen.xor8px(x, y + i, self.read_byte(self.I + i), wrap):
                collision = 1
        self.V[0xF] = collision
        self.screen.mark_sprite(x, y, n, wrap)

    def _E_opcodes(self, opcode, vx, vy, n, kk, nnn):
        # only the low nibble of Vx names a key
        key = self.V[vx] & 0xF
        if kk == 0x9E:
            # Ex9E - SKP Vx
            # Skip next instruction if key with value of Vx is pressed
            if self.keys_pressed[key]:
                self._skip()
        elif kk == 0xA1:
            # ExA1 - SKNP Vx
            # Skip next instruction if key with value of Vx is NOT pressed
            if not self.keys_pressed[key]:
                self._skip()
        else:
            self.invalid_op(opcode)

    def _Fx07(self, vx):
        # Fx07 - LD Vx, DT
        # The value of the Delay Timer is placed into Vx.
        self.V[vx] = self.delay_timer

    def _Fx0A(self, vx):
        # Fx0A - LD, Vx, Key
        # Wait for a key press, store the value of the key in Vx
        # NOTE: The original CHIP-8 waited until a key was pressed and then released, so do we.
        # PC already points at the next instruction; fetching simply stops until the wait is over.
        self.key_wait = KeyWait(vx)
        logger.debug("Fx0A: waiting for a key for V%X", vx)
        self._service_key_wait()

    def _Fx15(self, vx):
        # Fx15 - LD DT, Vx
        # Set Delay Timer = Vx
        self.delay_timer = self.V[vx]

    def _Fx18(self, vx):
        # Fx18 - LD ST, Vx
        # Set Sound Timer = Vx
        self.sound_timer = self.V[vx]

    def _Fx1E(self, vx):
        # Fx1E - ADD I, Vx
        # Set I = I + Vx - do not set the overflow flag
        # I is 16 bits; a sum that does not fit is reported rather than wrapped back into RAM
        total = self.I + self.V[vx]
        if total > 0xFFFF:
            raise MemoryOutOfRange(total)
        self.I = total

    def _Fx29(self, vx):
        # Fx29 - LD F, Vx
        # Set I = location of sprite for digit Vx ("F" = Font)
        # each character is 5 bytes, with "0" starting at 0x00 in memory
        self.I = 5 * self.V[vx]

    def _Fx33(self, vx):
        # Fx33 - LD B, Vx
        # Store binary coded decimal value of Vx in memory locations I, I+1, I+2
        # Convert Vx to base 10, place the hundreds digit in I, tens digit in I+1, ones in I+2
        val = self.V[vx]
        hundreds = val // 100
        tens = (val - (100 * hundreds)) // 10
        ones = val % 10
        # check the far end first so a bad I changes nothing
        self.read_byte(self.I + 2)
        self.write_byte(self.I, hundreds)
        self.write_byte(self.I + 1, tens)
        self.write_byte(self.I + 2, ones)

    def _Fx55(self, vx):
        # Fx55 - LD [I], Vx
        # Store registers V0 through Vx in memory starting at location I
        # Note that in the original CHIP-8 on the COSMAC VIP, I was incremented during this
        # loop.  See: https://laurencescotford.com/chip-8-on-the-cosmac-vip-loading-and-saving-variables/
        # SUPER-CHIP leaves I where it was.
        self.read_byte(self.I + vx)
        oldI = self.I
        for i in range(vx + 1):
            self.write_byte(self.I, self.V[i])
            self.I += 1
        if self.variant is not Variant.ORIGINAL:
            self.I = oldI

    def _Fx65(self, vx):
        # Fx65 - LD Vx, [I]
        # Read values from memory starting at location I into registers V0 through Vx
        # Same quirk as Fx55.
        self.read_byte(self.I + vx)
        oldI = self.I
        for i in range(vx + 1):
            self.V[i] = self.read_byte(self.I)
            self.I += 1
        if self.variant is not Variant.ORIGINAL:
            self.I = oldI

    def _F_opcodes(self, opcode, vx, vy, n, kk, nnn):
        if kk in self._F_operations:
            self._F_operations[kk](vx)
        else:
            self.invalid_op(opcode)

    def _service_key_wait(self):
        '''
        One look at the keypad on behalf of a pending Fx0A.  Returns True once the wait is over.
        '''
        wait = self.key_wait
        if wait.key is None:
            for key in range(NUM_KEYS):
                if self.keys_pressed[key]:
                    wait.key = key
                    logger.debug("Fx0A: key %X down, waiting for release", key)
                    break
            return False
        if self.keys_pressed[wait.key]:
            return False
        self.V[wait.register] = wait.key
        self.key_wait = None
        logger.debug("Fx0A: key %X released, stored in V%X", wait.key, wait.register)
        return True

    def execute(self, opcode):
        '''
        Instructions have one of 6 patterns:
        All 4 nibbles fixed:
            00E0, 00EE
        Operation + nnn (address)
            1nnn, 2nnn, Annn, Bnnn
        Operation + Vx + kk (byte)
            3xkk, 4xkk, 6xkk, 7xkk, Cxkk
        Operation + Vx + Vy + nibble-type
            5xy0, 8xy0, 8xy1, 8xy2, 8xy3,
            8xy4, 8xy5, 8xy6, 8xy7, 8xyE, 9xy0
        Operation + Vx + Vy + n (nibble)
            Dxyn
        Operation + Vx + byte-type
            Ex9E, ExA1, Fx07, Fx0A, Fx15,
            Fx18, Fx1E, Fx29, Fx33, Fx55,
            Fx65

        To minimize redundant code, calculate all the possible ways
        to parse the opcode and then later use only the ones that are needed
        '''
        operation = opcode >> 12
        vx = opcode >> 8 & 0xF
        vy = opcode >> 4 & 0xF
        n = opcode & 0xF
        nnn = opcode & 0xFFF
        kk = opcode & 0xFF
        self.operation_list[operation](opcode, vx, vy, n, kk, nnn)

    def cycle(self):
        '''
        Fetch, advance PC, execute.  Returns False if the machine cannot make progress this cycle:
        it is halted, or an Fx0A is still waiting on the keypad.

        A MachineFault halts the computer for good and propagates to the caller.
        '''
        if self.halted:
            return False
        if self.key_wait is not None:
            # nothing is fetched while waiting
            self.last_opcode = None
            return self._service_key_wait()
        try:
            opcode = self.fetch()
            self.PC += 2
            self.last_opcode = opcode
            self.execute(opcode)
        except MachineFault:
            self.halted = True
            raise
        self.num_instr += 1
        return self.key_wait is None

    def run_frame(self):
        '''
        One frame tick: up to instructions_per_frame cycles, then one timer update.  When the display
        wait quirk is on, a draw ends the frame's instructions early, as the VIP waited for vertical blank.
        Returns whether the tone should sound.
        '''
        display_wait = self.config.waits_for_display
        for i in range(self.config.instructions_per_frame):
            if not self.cycle():
                break
            if display_wait and self.last_opcode is not None and self.last_opcode >> 12 == 0xD:
                break
        return self.update_timers()

"""
Save states.

A snapshot is a fixed-size big-endian record, laid out in this order (version 1):

    magic            4s    b"C8SN"
    version          H     1
    memory           4096s
    display          2048s one byte per pixel, 0 or 1, row-major 64 wide
    stack entries    16H   slots at and above depth must be 0
    stack depth      B     0..16
    V0..VF           16s
    I                H
    PC               H
    delay timer      B
    sound timer      B
    keypad           16s   one byte per key, 0 or 1
    Fx0A register    B     0xFF when no Fx0A is pending
    Fx0A key         B     0xFF when no key has been latched yet

Any change to the layout gets a new version number; restore() refuses versions it does not know.
"""
import logging
import struct
from array import array

from c8emu.computer import KeyWait, MEMORY_SIZE, NUM_KEYS, NUM_REGISTERS
from c8emu.errors import SnapshotCorrupt, SnapshotError
from c8emu.screen import DISPLAY_HEIGHT, DISPLAY_WIDTH
from c8emu.stack import STACK_DEPTH

logger = logging.getLogger(__name__)

MAGIC = b"C8SN"
VERSION = 1
NOT_WAITING = 0xFF

_HEADER = struct.Struct(">4sH")
_LAYOUT = struct.Struct(">4sH{}s{}s{}HB{}sHHBB{}sBB".format(
    MEMORY_SIZE, DISPLAY_WIDTH * DISPLAY_HEIGHT, STACK_DEPTH, NUM_REGISTERS, NUM_KEYS))
SNAPSHOT_SIZE = _LAYOUT.size


def save(c8):
    if c8.key_wait is None:
        wait_register, wait_key = NOT_WAITING, NOT_WAITING
    else:
        wait_register = c8.key_wait.register
        wait_key = NOT_WAITING if c8.key_wait.key is None else c8.key_wait.key
    return _LAYOUT.pack(
        MAGIC, VERSION,
        c8.RAM.tobytes(),
        c8.screen.vram.tobytes(),
        *c8.stack.entries,
        c8.stack.depth,
        c8.V.tobytes(),
        c8.I & 0xFFFF,
        c8.PC & 0xFFFF,
        c8.delay_timer,
        c8.sound_timer,
        bytes(1 if pressed else 0 for pressed in c8.keys_pressed),
        wait_register,
        wait_key)


def _check_flags(name, data):
    if any(b not in (0, 1) for b in data):
        raise SnapshotCorrupt("{} holds values other than 0 and 1".format(name))


def _check_key_wait(wait_register, wait_key):
    if wait_register == NOT_WAITING:
        if wait_key != NOT_WAITING:
            raise SnapshotCorrupt("latched key without a waiting register")
        return None
    if wait_register >= NUM_REGISTERS:
        raise SnapshotCorrupt("bad key wait register: {}".format(wait_register))
    if wait_key == NOT_WAITING:
        return KeyWait(wait_register)
    if wait_key >= NUM_KEYS:
        raise SnapshotCorrupt("bad key wait key: {}".format(wait_key))
    return KeyWait(wait_register, wait_key)


def restore(c8, blob):
    """
    Replace the whole machine state of c8 with the one in blob.  The blob is fully checked before
    anything is touched, so on SnapshotCorrupt c8 is exactly as it was.
    """
    blob = bytes(blob)
    if len(blob) < _HEADER.size:
        raise SnapshotCorrupt("snapshot is only {} bytes".format(len(blob)))
    magic, version = _HEADER.unpack_from(blob)
    if magic != MAGIC:
        raise SnapshotCorrupt("not a snapshot (magic {!r})".format(magic))
    if version != VERSION:
        raise SnapshotCorrupt("unsupported snapshot version {}".format(version))
    if len(blob) != SNAPSHOT_SIZE:
        raise SnapshotCorrupt("snapshot is {} bytes, expected {}".format(len(blob), SNAPSHOT_SIZE))

    fields = _LAYOUT.unpack(blob)
    memory, display = fields[2], fields[3]
    stack_entries = fields[4:4 + STACK_DEPTH]
    (depth, registers, index, pc, delay_timer, sound_timer, keypad,
     wait_register, wait_key) = fields[4 + STACK_DEPTH:]

    if depth > STACK_DEPTH:
        raise SnapshotCorrupt("stack depth {} exceeds {}".format(depth, STACK_DEPTH))
    if any(stack_entries[depth:]):
        raise SnapshotCorrupt("stack slots above depth {} are not empty".format(depth))
    _check_flags("display", display)
    _check_flags("keypad", keypad)
    key_wait = _check_key_wait(wait_register, wait_key)

    c8.RAM = array('B', memory)
    c8.screen.vram = array('B', display)
    c8.screen.invalidate()
    c8.stack.entries = array('H', stack_entries)
    c8.stack.depth = depth
    c8.V = array('B', registers)
    c8.I = index
    c8.PC = pc
    c8.delay_timer = delay_timer
    c8.sound_timer = sound_timer
    c8.keys_pressed = [bool(b) for b in keypad]
    c8.key_wait = key_wait
    c8.halted = False
    c8.last_opcode = None


def save_to_file(c8, path):
    blob = save(c8)
    try:
        with open(path, "wb") as outfile:
            outfile.write(blob)
    except OSError as e:
        raise SnapshotError("cannot write snapshot {}: {}".format(path, e.strerror or e)) from e
    logger.debug("Saved %d byte snapshot to %s", len(blob), path)


def load_from_file(c8, path):
    try:
        with open(path, "rb") as infile:
            blob = infile.read()
    except OSError as e:
        raise SnapshotError("cannot read snapshot {}: {}".format(path, e.strerror or e)) from e
    restore(c8, blob)
    logger.debug("Restored snapshot from %s", path)

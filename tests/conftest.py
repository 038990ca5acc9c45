import random

import pytest

from c8emu import C8Computer, C8Config, Variant


def make_computer(variant=Variant.ORIGINAL, **config):
    return C8Computer(C8Config(variant=variant, **config), rng=random.Random(1234))


def write_program(c8, *opcodes, at=None):
    """Write 16-bit opcodes into RAM starting at `at` (default: PC) without resetting anything."""
    address = c8.PC if at is None else at
    for opcode in opcodes:
        c8.RAM[address] = opcode >> 8
        c8.RAM[address + 1] = opcode & 0xFF
        address += 2


def run_opcodes(c8, *opcodes):
    """Write opcodes at PC and execute exactly that many cycles."""
    write_program(c8, *opcodes)
    for _ in opcodes:
        c8.cycle()
    return c8


@pytest.fixture
def c8():
    return make_computer()


@pytest.fixture
def original():
    return make_computer(Variant.ORIGINAL)


@pytest.fixture
def extended():
    return make_computer(Variant.EXTENDED)


@pytest.fixture(params=list(Variant), ids=lambda v: v.value)
def any_variant(request):
    return make_computer(request.param)

class C8Error(Exception):
    pass


class LoadError(C8Error):
    pass


class RomTooLarge(LoadError):
    def __init__(self, size, limit):
        super().__init__("ROM is {} bytes; at most {} fit in memory".format(size, limit))
        self.size = size
        self.limit = limit


class RomUnreadable(LoadError):
    pass


class MachineFault(C8Error):
    """Raised from inside an instruction; the computer halts and will not execute further."""
    pass


class StackOverflow(MachineFault):
    pass


class StackUnderflow(MachineFault):
    pass


class MemoryOutOfRange(MachineFault):
    def __init__(self, address):
        super().__init__("memory access out of range: 0x{:X}".format(address))
        self.address = address


class InvalidOpCodeException(MachineFault):
    def __init__(self, opcode):
        super().__init__("invalid opcode: 0x{:04X}".format(opcode))
        self.opcode = opcode


class SnapshotError(C8Error):
    pass


class SnapshotCorrupt(SnapshotError):
    pass

from array import array

from c8emu.errors import StackOverflow, StackUnderflow

# The COSMAC VIP had room for 12 levels; SUPER-CHIP and most modern interpreters allow 16.
STACK_DEPTH = 16


class C8Stack:
    """Return addresses for 2nnn / 00EE, with a fixed number of slots."""

    def __init__(self, capacity=STACK_DEPTH):
        self.capacity = capacity
        self.entries = array('H', [0 for i in range(capacity)])
        self.depth = 0

    def push(self, address):
        if self.depth >= self.capacity:
            raise StackOverflow("call stack overflow ({} levels)".format(self.capacity))
        self.entries[self.depth] = address
        self.depth += 1

    def pop(self):
        if self.depth == 0:
            raise StackUnderflow("return with an empty call stack")
        self.depth -= 1
        address = self.entries[self.depth]
        self.entries[self.depth] = 0
        return address

    def clear(self):
        for i in range(self.capacity):
            self.entries[i] = 0
        self.depth = 0

    def __len__(self):
        return self.depth

    def __iter__(self):
        # bottom of the stack first
        return iter(self.entries[:self.depth])

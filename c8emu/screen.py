from array import array

DISPLAY_WIDTH = 64
DISPLAY_HEIGHT = 32


class C8Screen:
    """
    The 64x32 monochrome frame buffer.  vram holds one byte per pixel (0 or 1), row-major.

    The screen does not paint anything itself.  It records which regions changed in draw_rect_list
    as (x0, y0, x1, y1) tuples with exclusive ends, and sets needs_draw; a renderer consumes both
    and calls mark_drawn() when it has caught up.
    """

    def __init__(self, xsize=DISPLAY_WIDTH, ysize=DISPLAY_HEIGHT):
        self.xsize = xsize
        self.ysize = ysize
        self.vram = array('B', [0 for i in range(self.xsize * self.ysize)])
        self.draw_rect_list = []
        self.needs_draw = False
        self.clear()

    def clear(self):
        for i in range(self.xsize * self.ysize):
            self.vram[i] = 0
        self.invalidate()

    def invalidate(self):
        # whole screen needs repainting, e.g. after a clear or a snapshot restore
        self.draw_rect_list = [(0, 0, self.xsize, self.ysize)]
        self.needs_draw = True

    def getpx(self, x, y):
        return self.vram[(y * self.xsize) + x]

    def setpx(self, x, y, val):
        assert val in (0, 1)
        assert 0 <= x < self.xsize
        assert 0 <= y < self.ysize
        self.vram[(y * self.xsize) + x] = val

    def xor8px(self, x, y, val, wrap=False):
        """
        XOR the 8 pixels from (x, y) to (x + 7, y) with the bits of val, most significant bit first.
        Returns True if any set pixel was turned off.

        Without wrap, pixels past the right edge are dropped and a row below the bottom edge draws
        nothing.  With wrap, both coordinates are taken modulo the screen size.
        """
        assert 0 <= val <= 0xFF
        assert 0 <= x
        assert 0 <= y

        if wrap:
            y %= self.ysize
            numpx = 8
        else:
            if y >= self.ysize:
                return False
            numpx = min([8, self.xsize - x])

        collision = False
        for i in range(numpx):
            if (val << i) & 0x80:
                # 0 means do nothing, so only treat the 1 case
                vramcell = (y * self.xsize) + ((x + i) % self.xsize)
                if self.vram[vramcell] == 1:
                    collision = True
                    self.vram[vramcell] = 0
                else:
                    self.vram[vramcell] = 1
        self.needs_draw = True
        return collision

    def mark_sprite(self, x, y, rows, wrap=False):
        # record the area a sprite touched so the renderer only repaints that
        if wrap and (x + 8 > self.xsize or y + rows > self.ysize):
            self.draw_rect_list.append((0, 0, self.xsize, self.ysize))
        else:
            self.draw_rect_list.append((x, y, min([x + 8, self.xsize]), min([y + rows, self.ysize])))
        self.needs_draw = True

    def mark_drawn(self):
        self.needs_draw = False
        self.draw_rect_list = []

    def lit_pixels(self):
        return sum(self.vram)

    def rows(self):
        """The buffer as a list of rows of booleans, for renderers and tests."""
        return [[bool(self.vram[(y * self.xsize) + x]) for x in range(self.xsize)] for y in range(self.ysize)]

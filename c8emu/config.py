from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class Variant(Enum):
    """Which interpreter's quirks to follow.

    ORIGINAL is the COSMAC VIP CHIP-8: 8xy1/8xy2/8xy3 reset VF, 8xy6/8xyE shift Vy into Vx,
    Fx55/Fx65 leave I pointing past the last register transferred, and drawing waits for the
    next frame.  EXTENDED is SUPER-CHIP: none of the above.
    See: https://tobiasvl.github.io/blog/write-a-chip-8-emulator/#instructions
    """
    ORIGINAL = "original"
    EXTENDED = "extended"


@dataclass
class C8Config:
    variant: Variant = Variant.ORIGINAL
    # how many instructions run per second, and how many frame ticks (timer decrements, redraws)
    clock_speed: int = 600
    frame_rate: int = 60
    # False clips sprites at the screen edge, True wraps them around
    sprite_wrap: bool = False
    # False logs unknown opcodes and skips them, True raises InvalidOpCodeException
    strict_opcodes: bool = False
    # None means "whatever the variant does"
    display_wait: Optional[bool] = None

    # frontend only
    scale_factor: int = 10
    pixel_on: Tuple[int, int, int] = (255, 255, 255)
    pixel_off: Tuple[int, int, int] = (0, 0, 0)
    tone_hz: int = 440
    volume: float = 0.1
    snapshot_path: str = "save_state.c8s"

    @property
    def instructions_per_frame(self) -> int:
        return max(1, self.clock_speed // self.frame_rate)

    @property
    def waits_for_display(self) -> bool:
        if self.display_wait is None:
            return self.variant is Variant.ORIGINAL
        return self.display_wait

import datetime
import logging
from array import array

import pygame

from c8emu import snapshot
from c8emu.errors import SnapshotError

logger = logging.getLogger(__name__)

# The keyboard layout for the CHIP-8 assumes:
#   1 2 3 C
#   4 5 6 D
#   7 8 9 E
#   A 0 B F
#
# We map this to the following keys on our keyboard:
#   1 2 3 4
#   Q W E R
#   A S D F
#   Z X C V

KEYMAPPING = {
    pygame.K_1: 0x01,
    pygame.K_2: 0x02,
    pygame.K_3: 0x03,
    pygame.K_4: 0x0C,
    pygame.K_q: 0x04,
    pygame.K_w: 0x05,
    pygame.K_e: 0x06,
    pygame.K_r: 0x0D,
    pygame.K_a: 0x07,
    pygame.K_s: 0x08,
    pygame.K_d: 0x09,
    pygame.K_f: 0x0E,
    pygame.K_z: 0x0A,
    pygame.K_x: 0x00,
    pygame.K_c: 0x0B,
    pygame.K_v: 0x0F
}


def build_pygame_sound_samples(tone_hz):
    # modified from: https://gist.github.com/ohsqueezy/6540433
    period = int(round(pygame.mixer.get_init()[0] / tone_hz))
    samples = array("h", [0] * period)
    amplitude = 2 ** (abs(pygame.mixer.get_init()[1]) - 1) - 1
    for time in range(period):
        if time < period / 2:
            samples[time] = amplitude
        else:
            samples[time] = -amplitude
    return samples


class C8Window:
    """Paints a C8Screen into a pygame window, one scaled rectangle per CHIP-8 pixel."""

    def __init__(self, window, config):
        self.window = window
        self.scale = config.scale_factor
        self.pixel_on = config.pixel_on
        self.pixel_off = config.pixel_off
        self.num_renders = 0
        self.render_time_ps = 0

    def draw(self, screen):
        self.num_renders += 1
        start_time = datetime.datetime.now()
        pygamerects = []
        for item in screen.draw_rect_list:
            for x in range(item[0], item[2]):
                for y in range(item[1], item[3]):
                    if screen.getpx(x, y) == 0:
                        color = self.pixel_off
                    else:
                        color = self.pixel_on
                    self.window.fill(color, (x * self.scale, y * self.scale, self.scale, self.scale))
            rectx = item[0] * self.scale
            recty = item[1] * self.scale
            rect_width = (item[2] - item[0]) * self.scale
            rect_height = (item[3] - item[1]) * self.scale
            pygamerects.append(pygame.Rect(rectx, recty, rect_width, rect_height))
        pygame.display.update(pygamerects)
        screen.mark_drawn()
        self.render_time_ps += (datetime.datetime.now() - start_time).total_seconds()


class C8Beeper:
    """Turns the tone-enable signal from the timers into a looping square wave."""

    def __init__(self, config):
        self.beep = pygame.mixer.Sound(build_pygame_sound_samples(config.tone_hz))
        self.beep.set_volume(config.volume)
        self.playing = False

    def set_tone(self, on):
        if on and not self.playing:
            self.beep.play(-1)
            self.playing = True
        elif not on and self.playing:
            self.beep.stop()
            self.playing = False


class C8Frontend:
    """
    Owns the pygame side and drives the computer one frame tick at a time:
    input, instructions + timers, audio, redraw, then sleep to hold the frame rate.
    """

    def __init__(self, computer, config, title="CHIP-8"):
        self.computer = computer
        self.config = config
        self.running = False
        self.paused = False

        pygame.mixer.pre_init(44100, -16, 1, 1024)
        pygame.init()
        self.surface = pygame.display.set_mode((64 * config.scale_factor, 32 * config.scale_factor))
        pygame.display.set_caption(title)
        self.surface.fill(config.pixel_off)
        self.window = C8Window(self.surface, config)
        self.beeper = C8Beeper(config)

    def save_state(self):
        try:
            snapshot.save_to_file(self.computer, self.config.snapshot_path)
            logger.info("State saved to %s", self.config.snapshot_path)
        except SnapshotError as e:
            logger.warning("Save failed: %s", e)

    def load_state(self):
        try:
            snapshot.load_from_file(self.computer, self.config.snapshot_path)
            logger.info("State loaded from %s", self.config.snapshot_path)
        except SnapshotError as e:
            logger.warning("Load failed: %s", e)

    def handle_key(self, key, pressed):
        if key in KEYMAPPING:
            self.computer.set_key(KEYMAPPING[key], pressed)
        elif not pressed:
            return
        elif key == pygame.K_ESCAPE:
            self.running = False
        elif key == pygame.K_SPACE:
            self.paused = not self.paused
            logger.debug("Paused" if self.paused else "Resumed")
        elif key == pygame.K_EQUALS:
            self.computer.reload()
            logger.debug("Reset")
        elif key == pygame.K_F5:
            self.save_state()
        elif key == pygame.K_F9:
            self.load_state()

    def handle_events(self):
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False
            elif event.type == pygame.KEYDOWN:
                self.handle_key(event.key, True)
            elif event.type == pygame.KEYUP:
                self.handle_key(event.key, False)
            elif event.type == pygame.WINDOWFOCUSLOST:
                # key-up events go to whichever window has focus now
                self.computer.release_all_keys()

    def run(self):
        '''
        Runs until the window is closed or Escape is pressed.  A MachineFault from the computer ends the
        loop and propagates.
        '''
        self.running = True
        clock = pygame.time.Clock()
        start_time = datetime.datetime.now()
        try:
            while self.running:
                self.handle_events()
                if self.paused:
                    self.beeper.set_tone(False)
                else:
                    self.beeper.set_tone(self.computer.run_frame())
                if self.computer.screen.needs_draw:
                    self.window.draw(self.computer.screen)
                clock.tick(self.config.frame_rate)
        finally:
            self.beeper.set_tone(False)
            duration = (datetime.datetime.now() - start_time).total_seconds()
            logger.info("Duration: %.1f sec.", duration)
            if duration > 0:
                logger.info("Performance: %d instructions per second", self.computer.num_instr / duration)
            if self.window.num_renders:
                logger.info("Screen num renders: %d, average microseconds per render: %d",
                            self.window.num_renders,
                            (1000000 * self.window.render_time_ps) / self.window.num_renders)
            pygame.quit()

"""Galvanometer mirror output through a DAC8552 and the laser PWM pin.

Planned segments are played back one DAC sample pair per timer interrupt,
at the interpolation rate of the machine. The laser is switched on for the
whole segment when the segment asks for it, and back to its idle power when
the segment ends.
"""

from __future__ import annotations

from .config import MachineConfig, preset
from .duetimer import TimerBank
from .hardware import HIGH, LOW, OUTPUT, DacChannel, HardwareLog
from .planner import DAC_MAX

MIRROR_TIMER = 5
_CENTER = 32767


class Galvo:
    """The X/Y mirror pair behind one DAC8552 chip, plus the laser it steers."""

    def __init__(self, config: MachineConfig | None = None, hardware=None, timers=None):
        self.config = config if config is not None else preset("1.8")
        cfg = self.config
        if cfg.pin_xy is None or cfg.pin_laser is None:
            raise ValueError(f"firmware {cfg.version} has no shared mirror DAC and laser pin")
        self.hardware = (
            hardware if hardware is not None else HardwareLog(select_pins=(cfg.pin_xy,))
        )
        self.timers = timers if timers is not None else TimerBank()
        self.timer = self.timers.timer(MIRROR_TIMER)
        self.moving = False
        self.laser = False
        self.position = 0
        self._samples: tuple[tuple[int, int], ...] = ()
        self._attach_at_init = cfg.version == "1.8"
        self._laser_off_first = cfg.version in ("1.5", "1.6")

        hw = self.hardware
        hw.pin_mode(cfg.pin_xy, OUTPUT)
        hw.pin_mode(cfg.pin_laser, OUTPUT)
        hw.digital_write(cfg.pin_xy, HIGH)
        center = min(DAC_MAX, int(_CENTER * 5 / cfg.base_voltage))
        self.write(center, center)
        hw.analog_write(cfg.pin_laser, cfg.laser_off_power)
        if self._attach_at_init:
            self.timer.attach_interrupt(self.on_tick)

    def write(self, x, y):
        """Send the X code to DAC buffer A and the Y code to buffer B."""
        hw = self.hardware
        pin = self.config.pin_xy
        for channel, value in ((DacChannel.A, x), (DacChannel.B, y)):
            hw.digital_write(pin, LOW)
            hw.spi_transfer(int(channel))
            hw.spi_transfer16(value)
            hw.digital_write(pin, HIGH)

    def start_move(self, segment):
        """Begin playing back a planned segment at the interpolation rate."""
        if self.moving:
            raise RuntimeError("mirrors are still playing the previous segment")
        samples = tuple(segment)
        if not samples:
            raise ValueError("segment holds no samples")
        self._samples = samples
        self.laser = bool(segment.laser)
        self.position = 0
        self.moving = True
        if not self._attach_at_init:
            self.timer.attach_interrupt(self.on_tick)
        self.timer.set_frequency(self.config.cycle_interpolation).start()
        if self.laser:
            self.hardware.analog_write(self.config.pin_laser, self.config.laser_on_power)

    def on_tick(self):
        """Handle one timer interrupt; return True when a sample was written."""
        if self.position < len(self._samples):
            x, y = self._samples[self.position]
            self.write(x, y)
            self.position += 1
            return True
        cfg = self.config
        if self._laser_off_first:
            self.hardware.analog_write(cfg.pin_laser, cfg.laser_off_power)
            self.timer.stop()
        else:
            self.timer.stop()
            self.hardware.analog_write(cfg.pin_laser, cfg.laser_off_power)
        self.moving = False
        return False
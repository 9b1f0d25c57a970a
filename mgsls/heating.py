"""Bed heater driven by slow software PWM on a timer interrupt."""

from __future__ import annotations

from .config import MachineConfig, preset
from .duetimer import TimerBank
from .hardware import HIGH, LOW, OUTPUT, HardwareLog


class Heater:
    """Heater pin switched on for a fixed share of each heating cycle."""

    def __init__(self, config: MachineConfig | None = None, hardware=None, timers=None):
        self.config = config if config is not None else preset("1.8")
        cfg = self.config
        if None in (cfg.heating_pin, cfg.heating_cycle, cfg.heating_proportion, cfg.heating_timer):
            raise ValueError(f"firmware {cfg.version} has no heater")
        self.hardware = hardware if hardware is not None else HardwareLog()
        self.timers = timers if timers is not None else TimerBank()
        self.timer = self.timers.timer(cfg.heating_timer)
        self.pin = cfg.heating_pin
        self.heating = False
        self.hardware.pin_mode(self.pin, OUTPUT)
        self.timer.attach_interrupt(self.toggle).start(1)

    @property
    def on_time(self) -> int:
        """Microseconds the pin stays high in each cycle."""
        return int(self.config.heating_proportion * self.config.heating_cycle)

    @property
    def off_time(self) -> int:
        """Microseconds the pin stays low in each cycle."""
        return int((1 - self.config.heating_proportion) * self.config.heating_cycle)

    def start(self):
        """Resume the heating cycle."""
        self.timer.start(self.on_time)

    def stop(self):
        """Switch the heater off and halt the cycle."""
        self.hardware.digital_write(self.pin, LOW)
        self.timer.stop()

    def toggle(self):
        """Timer interrupt: flip the pin and program the length of the next phase."""
        if self.heating:
            self.hardware.digital_write(self.pin, LOW)
            self.timer.start(self.off_time)
            self.heating = False
        else:
            self.hardware.digital_write(self.pin, HIGH)
            self.timer.start(self.on_time)
            self.heating = True
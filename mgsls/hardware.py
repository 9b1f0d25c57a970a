"""Recorded pin, PWM and SPI activity, with DAC8552 framing.

The DAC8552 takes a 24-bit frame: one command byte followed by 16 data bits.
Command 0x30 writes buffer A and loads both DACs, 0x34 writes buffer B and
loads both DACs. The output voltage is Din / 65536 * Vref.
"""

from __future__ import annotations

from enum import IntEnum

LOW = 0
HIGH = 1
INPUT = "INPUT"
OUTPUT = "OUTPUT"


class DacChannel(IntEnum):
    """DAC8552 command bytes that write one buffer and load both outputs."""

    A = 0x30
    B = 0x34


class HardwareLog:
    """Records every hardware operation in order and keeps the current pin state.

    Events are tuples: ("mode", pin, mode), ("digital", pin, level),
    ("analog", pin, value), ("spi8", None, value), ("spi16", None, value).
    """

    def __init__(self, select_pins=()):
        self.select_pins = tuple(select_pins)
        self.events: list[tuple] = []
        self.modes: dict[int, str] = {}
        self.levels: dict[int, int] = {}
        self.analog: dict[int, int] = {}

    def pin_mode(self, pin, mode):
        self.modes[pin] = mode
        self.events.append(("mode", pin, mode))

    def digital_write(self, pin, level):
        level = HIGH if level else LOW
        self.levels[pin] = level
        self.events.append(("digital", pin, level))

    def analog_write(self, pin, value):
        if not 0 <= value <= 255:
            raise ValueError(f"PWM value {value} outside 0..255")
        self.analog[pin] = value
        self.events.append(("analog", pin, value))

    def spi_transfer(self, value):
        if not 0 <= value <= 0xFF:
            raise ValueError(f"SPI byte {value} outside 0..255")
        self.events.append(("spi8", None, value))

    def spi_transfer16(self, value):
        if not 0 <= value <= 0xFFFF:
            raise ValueError(f"SPI word {value} outside 0..65535")
        self.events.append(("spi16", None, value))

    def dac_write(self, select_pin, channel, value):
        """Send one frame to the DAC behind select_pin, releasing every other chip first."""
        channel = DacChannel(channel)
        if not 0 <= value <= 0xFFFF:
            raise ValueError(f"DAC value {value} outside 0..65535")
        for pin in self.select_pins:
            self.digital_write(pin, HIGH)
        self.digital_write(select_pin, HIGH)
        self.digital_write(select_pin, LOW)
        self.spi_transfer(int(channel))
        self.spi_transfer16(value)
        self.digital_write(select_pin, HIGH)

    def dac_frames(self):
        """Decode the log into (select_pin, channel, value) frames.

        The select pin is the chip-select that was low while the frame was sent,
        or None when no single pin was low.
        """
        frames = []
        low: set[int] = set()
        pending = None
        for kind, pin, value in self.events:
            if kind == "digital":
                if value == LOW:
                    low.add(pin)
                else:
                    low.discard(pin)
                pending = None
            elif kind == "spi8":
                pending = value
            elif kind == "spi16" and pending is not None:
                selected = next(iter(low)) if len(low) == 1 else None
                try:
                    channel = DacChannel(pending)
                except ValueError:
                    channel = pending
                frames.append((selected, channel, value))
                pending = None
        return frames
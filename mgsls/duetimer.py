"""Simulated timer/counter bank with the clock selection of a SAM3X board."""

from __future__ import annotations

import math
import struct

VARIANT_MCK = 84_000_000
NUM_TIMERS = 9

TIMER_CLOCK1 = 0
TIMER_CLOCK2 = 1
TIMER_CLOCK3 = 2
TIMER_CLOCK4 = 3

_CLOCKS = ((TIMER_CLOCK1, 2), (TIMER_CLOCK2, 8), (TIMER_CLOCK3, 32), (TIMER_CLOCK4, 128))
_DIVISORS = dict(_CLOCKS)


def _f32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


def _round(value: float) -> float:
    return math.floor(value + 0.5) if value >= 0 else -math.floor(-value + 0.5)


def best_clock(frequency):
    """Pick the prescaler that best matches frequency; return (clock flag, RC compare value)."""
    if frequency <= 0:
        raise ValueError("frequency must be positive")
    best = TIMER_CLOCK4
    best_error = math.inf
    for flag, divisor in reversed(_CLOCKS):
        ticks = _f32(VARIANT_MCK / frequency / divisor)
        error = _f32(divisor * abs(ticks - _round(ticks)))
        if error < best_error:
            best = flag
            best_error = error
    ticks = _f32(VARIANT_MCK / frequency / _DIVISORS[best])
    return best, int(_round(ticks))


class DueTimer:
    """One timer of a TimerBank; configuration methods return the timer for chaining."""

    def __init__(self, bank: TimerBank, index: int):
        self.bank = bank
        self.index = index

    @property
    def frequency(self) -> float:
        return self.bank._frequencies[self.index]

    @property
    def period(self) -> int:
        """Current period in whole microseconds."""
        return int(1.0 / self.frequency * 1_000_000)

    @property
    def running(self) -> bool:
        return self.bank._running[self.index]

    @property
    def callback(self):
        return self.bank._callbacks[self.index]

    @property
    def clock(self):
        return self.bank._clocks[self.index]

    @property
    def rc(self) -> int:
        return self.bank._rcs[self.index]

    def attach_interrupt(self, isr):
        self.bank._callbacks[self.index] = isr
        return self

    def detach_interrupt(self):
        self.stop()
        self.bank._callbacks[self.index] = None
        return self

    def start(self, microseconds=-1):
        microseconds = int(microseconds)
        if microseconds > 0:
            self.set_period(microseconds)
        if self.frequency <= 0:
            self.set_frequency(1)
        self.bank._running[self.index] = True
        return self

    def stop(self):
        self.bank._running[self.index] = False
        return self

    def set_frequency(self, frequency):
        if frequency <= 0:
            frequency = 1
        clock, rc = best_clock(frequency)
        if rc == 0:
            raise ValueError(f"frequency {frequency} Hz is beyond the timer clock")
        self.bank._clocks[self.index] = clock
        self.bank._rcs[self.index] = rc
        self.bank._frequencies[self.index] = VARIANT_MCK / _DIVISORS[clock] / rc
        return self

    def set_period(self, microseconds):
        whole = int(microseconds)
        if whole <= 0:
            raise ValueError("period must be at least one microsecond")
        return self.set_frequency(1_000_000.0 / whole)

    def fire(self):
        """Deliver one interrupt; return False when the timer is stopped."""
        if not self.running:
            return False
        isr = self.callback
        if isr is None:
            raise RuntimeError(f"timer {self.index} fired with no interrupt attached")
        isr()
        return True


class TimerBank:
    """The nine timers of the board and their shared state."""

    def __init__(self):
        self._callbacks = [None] * NUM_TIMERS
        self._frequencies = [-1.0] * NUM_TIMERS
        self._running = [False] * NUM_TIMERS
        self._clocks = [None] * NUM_TIMERS
        self._rcs = [0] * NUM_TIMERS
        self._timers = [DueTimer(self, i) for i in range(NUM_TIMERS)]

    def timer(self, index):
        if not 0 <= index < NUM_TIMERS:
            raise IndexError(f"timer index {index} outside 0..{NUM_TIMERS - 1}")
        return self._timers[index]

    def get_available(self):
        """Return the first timer with no interrupt attached, or timer 0 when all are taken."""
        return next(
            (t for t, cb in zip(self._timers, self._callbacks) if cb is None),
            self._timers[0],
        )

    def fire(self, index):
        return self.timer(index).fire()
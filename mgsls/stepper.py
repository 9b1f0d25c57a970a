"""Stepper axes driven by a timer interrupt with a linear speed ramp.

Each interrupt emits one step pulse and reprograms the timer with the next
step delay. The delay follows the recurrence d' = d * (1 -/+ m * d * d) with
m = acceleration / 1e12, shortening while the axis speeds up and growing
while it slows down before the goal.
"""

from __future__ import annotations

import math
import struct

from .config import StepperAxisConfig
from .duetimer import TimerBank
from .hardware import HIGH, LOW, OUTPUT, HardwareLog


def _f32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


class Stepper:
    """One stepper axis: direction and step pins plus the timer that paces it.

    The acceleration distance is worked out once from the axis settings. A
    move shorter than twice that distance lowers it to half the move, and it
    stays lowered for later moves.
    """

    def __init__(self, axis: StepperAxisConfig, hardware=None, timers=None):
        self.axis = axis
        self.hardware = hardware if hardware is not None else HardwareLog()
        self.timers = timers if timers is not None else TimerBank()
        self.timer = self.timers.timer(axis.timer)
        self.hardware.pin_mode(axis.pin_step, OUTPUT)
        self.hardware.pin_mode(axis.pin_dir, OUTPUT)
        accel = axis.acceleration_steps
        if accel <= 0:
            raise ValueError("stepper acceleration must be positive")
        speed = axis.speed_steps
        self.acceleration_distance = speed * speed // (2 * accel)
        self.multiplier = _f32(accel / 1_000_000.0 / 1_000_000.0)
        self.goal_steps = 0
        self.steps_done = 0
        self.delay = 0.0
        self.moving = False
        self._periods: list[int] = []

    def start_move(self, distance):
        """Begin a relative move of distance units; the sign picks the direction."""
        distance = float(distance)
        if not math.isfinite(distance):
            raise ValueError(f"distance {distance} is not a finite number")
        axis = self.axis
        goal = int(distance * axis.step_per_unit)
        level = axis.negate if goal > 0 else not axis.negate
        self.hardware.digital_write(axis.pin_dir, HIGH if level else LOW)
        goal = abs(goal)
        self.goal_steps = goal
        if self.acceleration_distance > goal // 2:
            self.acceleration_distance = goal // 2
        self.delay = _f32(1_000_000.0 / _f32(math.sqrt(2 * axis.acceleration_steps)))
        self.moving = True
        self._periods = [int(self.delay)]
        self.timer.attach_interrupt(self.on_tick).set_period(self.delay).start()

    def on_tick(self):
        """Handle one timer interrupt; return True when a step was emitted."""
        if self.steps_done < self.goal_steps:
            self.steps_done += 1
            self.hardware.digital_write(self.axis.pin_step, HIGH)
            squared = _f32(_f32(self.multiplier * self.delay) * self.delay)
            if self.steps_done >= self.goal_steps - self.acceleration_distance:
                self.delay = _f32(self.delay * _f32(1 + squared))
            elif self.steps_done < self.acceleration_distance:
                self.delay = _f32(self.delay * _f32(1 - squared))
            self.hardware.digital_write(self.axis.pin_step, LOW)
            self._periods.append(int(self.delay))
            self.timer.set_period(self.delay).start()
            return True
        self.timer.stop()
        self.moving = False
        self.steps_done = 0
        return False

    def run(self):
        """Fire the timer until the move ends; return the periods programmed, in microseconds."""
        while self.moving:
            if not self.timer.fire():
                raise RuntimeError(f"timer {self.timer.index} stopped while the axis was moving")
        return list(self._periods)


def step_delays(distance, axis):
    """Return the step delays of a move on a fresh axis: the initial one, then one per step."""
    stepper = Stepper(axis)
    stepper.start_move(distance)
    delays = [stepper.delay]
    while stepper.on_tick():
        delays.append(stepper.delay)
    return delays
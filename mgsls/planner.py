"""Linear interpolation of galvanometer moves into DAC sample buffers.

A move from the current spot to a goal is cut into equal steps, one per
interpolation cycle, at the configured scan speed. Each step is converted
into a pair of 16-bit DAC codes for the X and Y mirrors. The X code corrects
for the pincushion distortion that the Y mirror adds.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass

from .config import MachineConfig, preset

DAC_MAX = 0xFFFF
_HALF_SCALE = 32768
_CENTER = 32767


def _to_dac(value: float) -> int:
    """Truncate toward zero and keep the code within the DAC's 16-bit range."""
    if math.isnan(value):
        raise ValueError("DAC code is not a number")
    return max(0, min(DAC_MAX, int(value)))


def distance_to_da(x, y, config):
    """Return the (X, Y) DAC codes that aim the beam at (x, y) millimetres on the plane."""
    if config.rad_mg_max is None:
        raise ValueError(f"firmware {config.version} has no mirror angle limit in radians")
    f_theta = config.dis_f_theta
    arm = math.sqrt(f_theta * f_theta + y * y) + config.dis_xymotor
    rad_x = math.atan(x / arm)
    rad_y = math.atan(y / f_theta)
    corrected = x - f_theta * math.tan(rad_x) * (1 / math.cos(rad_y) - 1)
    scale = 5 / config.base_voltage
    da_x = (math.atan(corrected / arm) / config.rad_mg_max * _HALF_SCALE + _CENTER) * scale
    da_y = (rad_y / config.rad_mg_max * _HALF_SCALE + _CENTER) * scale
    return _to_dac(da_x), _to_dac(da_y)


@dataclass(frozen=True)
class Segment:
    """One planned move: the DAC codes to output, one pair per interpolation cycle."""

    da_x: tuple[int, ...]
    da_y: tuple[int, ...]
    laser: bool
    start: tuple[float, float]
    goal: tuple[float, float]

    def __len__(self):
        return len(self.da_x)

    def __iter__(self):
        return zip(self.da_x, self.da_y)


class Planner:
    """Turns XY targets into segments and queues them until the mirrors take them."""

    def __init__(self, config: MachineConfig | None = None):
        self.config = config if config is not None else preset("1.8")
        if self.config.rad_mg_max is None:
            raise ValueError(f"firmware {self.config.version} has no buffered planner")
        self.capacity = self.config.da_buffer_size
        self.position = (0.0, 0.0)
        self._segments: deque[Segment] = deque()

    def plan(self, x, y, laser=False):
        """Plan a straight move from the current position to (x, y), queue it and return it."""
        if len(self._segments) >= self.capacity:
            raise BufferError("planner buffer is full")
        start_x, start_y = self.position
        dx = x - start_x
        dy = y - start_y
        cfg = self.config
        times = int(math.sqrt(dx * dx + dy * dy) / cfg.speed_xy * cfg.cycle_interpolation)
        if cfg.da_array_size is not None and times > cfg.da_array_size:
            raise ValueError(
                f"move needs {times} samples, more than the {cfg.da_array_size} a buffer holds"
            )
        if times:
            step_x = dx / times
            step_y = dy / times
            points = []
            px, py = start_x, start_y
            for _ in range(times):
                px += step_x
                py += step_y
                points.append(distance_to_da(px, py, cfg))
        else:
            points = [distance_to_da(x, y, cfg)]
        da_x, da_y = zip(*points)
        segment = Segment(
            da_x=tuple(da_x),
            da_y=tuple(da_y),
            laser=bool(laser),
            start=(start_x, start_y),
            goal=(x, y),
        )
        self._segments.append(segment)
        self.position = (x, y)
        return segment

    def pop(self):
        """Remove and return the oldest planned segment."""
        if not self._segments:
            raise IndexError("no planned segment waiting")
        return self._segments.popleft()

    def __len__(self):
        return len(self._segments)
"""First-generation controller: two DAC8552 chips, one per mirror axis.

Each axis has its own DAC. Buffer A drives the mirror one way and buffer B
the other, so a move writes zero to one buffer and the angle code to the
other. A G0/G1 move is cut into small straight steps; every step is written
to the mirrors at once, with no timer pacing.
"""

from __future__ import annotations

import math

from .command import to_float
from .config import MachineConfig, preset
from .hardware import OUTPUT, DacChannel, HardwareLog

DAC_MASK = 0xFFFF
_FULL_SCALE = 65536
_EPS = 0.000001
_PERIOD = 0.0004

_DEFAULT = preset("1.1")


def _x_da(x, y, cfg: MachineConfig) -> int:
    f_theta = cfg.dis_f_theta
    angle = math.atan(abs(x) / (math.sqrt(f_theta * f_theta + y * y) + cfg.dis_xymotor))
    return int(math.degrees(angle) / cfg.mg_max_angle * _FULL_SCALE)


def _y_da(distance, cfg: MachineConfig) -> int:
    angle = math.atan(abs(distance) / cfg.dis_f_theta)
    return int(math.degrees(angle) / cfg.mg_max_angle * _FULL_SCALE)


def _countervail(x, y, cfg: MachineConfig) -> float:
    f_theta = cfg.dis_f_theta
    rad_x = math.atan(x / (math.sqrt(f_theta * f_theta + y * y) + cfg.dis_xymotor))
    rad_y = math.atan(y / f_theta)
    return cfg.x_factor_countervail * f_theta * math.tan(rad_x) * (1 / math.cos(rad_y) - 1)


def x_distance_to_da(x, y):
    """DAC code for the X mirror to reach |x| mm while the Y mirror points at y mm."""
    return _x_da(x, y, _DEFAULT)


def y_distance_to_da(distance):
    """DAC code for the Y mirror to reach |distance| mm on the plane."""
    return _y_da(distance, _DEFAULT)


def x_countervail(x, y):
    """Pincushion correction in mm to subtract from an X target at height y."""
    return _countervail(x, y, _DEFAULT)


def find_key(line, key):
    """Value of the last occurrence of key in line, or None when key is absent.

    The value is the leading number after the key; a key at the very end
    of the line reads as 0.0.
    """
    index = line.rfind(key)
    if index < 0:
        return None
    return to_float(line[index + 1:])


def _code(value):
    return int(value) if value is not None and math.isfinite(value) else None


def _before(value, limit, rising):
    return value < limit if rising else value > limit


class LegacyController:
    """Controller that drives each mirror through its own DAC chip."""

    def __init__(self, config: MachineConfig | None = None, hardware=None):
        self.config = config if config is not None else _DEFAULT
        cfg = self.config
        if None in (cfg.pin_x, cfg.pin_y, cfg.mg_max_angle, cfg.x_factor_countervail):
            raise ValueError(f"firmware {cfg.version} has no per-axis DAC chips")
        self.hardware = (
            hardware if hardware is not None
            else HardwareLog(select_pins=(cfg.pin_x, cfg.pin_y))
        )
        self.position = (0.0, 0.0)
        self.target = [0.0, 0.0]
        self._goal = (0.0, 0.0)
        self.hardware.pin_mode(cfg.pin_x, OUTPUT)
        self.hardware.pin_mode(cfg.pin_y, OUTPUT)
        self.home()

    def _write(self, pin, channel, value):
        self.hardware.dac_write(pin, channel, int(value) & DAC_MASK)

    def home(self):
        """Set both buffers of both chips to zero."""
        cfg = self.config
        self._write(cfg.pin_x, DacChannel.A, 0)
        self._write(cfg.pin_x, DacChannel.B, 0)
        self._write(cfg.pin_y, DacChannel.A, 0)
        self._write(cfg.pin_y, DacChannel.B, 0)

    def handle_line(self, line):
        """Interpret one received line and return the replies sent back."""
        if not line:
            return []
        replies = ["ok"]
        g = _code(find_key(line, "G"))
        if g in (0, 1):
            x = find_key(line, "X")
            if x is not None:
                self.target[0] = x
            y = find_key(line, "Y")
            if y is not None:
                self.target[1] = y
            self.move_xy(self.target[0], self.target[1])
        if g == 28:
            self.home()
        if _code(find_key(line, "M")) == 105:
            replies.append("start")
        return replies

    def move_xy(self, x, y):
        """Move in small straight steps to (x, y); return the points written, target last."""
        x = float(x)
        y = float(y)
        if not (math.isfinite(x) and math.isfinite(y)):
            raise ValueError(f"target ({x}, {y}) is not finite")
        cfg = self.config
        self.target = [x, y]
        old_x, old_y = self.position
        dx = x - old_x
        dy = y - old_y
        duration = math.hypot(dx, dy) / cfg.speed_xy
        cycles = cfg.cycle_interpolation * duration
        divisions = cycles + (duration - cycles * _PERIOD) / _PERIOD
        step_x = dx / divisions if divisions else 0.0
        step_y = dy / divisions if divisions else 0.0

        path = []
        gx, gy = self._goal
        if abs(dy) < _EPS:
            gx = old_x
            if dx:
                while _before(gx, x - step_x, dx > 0):
                    gx += step_x
                    self.move_x(gx, gy)
                    path.append((gx, gy))
        elif abs(dx) < _EPS:
            gy = old_y
            while _before(gy, y - step_y, dy > 0):
                gy += step_y
                self.move_x(gx, gy)
                self.move_y(gy)
                path.append((gx, gy))
        else:
            gx, gy = old_x, old_y
            while (_before(gx, x - step_x, dx > 0)
                   and _before(gy, y - step_y, dy > 0)):
                gx += step_x
                gy += step_y
                self.move_x(gx, gy)
                self.move_y(gy)
                path.append((gx, gy))
        self._goal = (gx, gy)

        self.move_x(x, y)
        self.move_y(y)
        path.append((x, y))
        self.position = (x, y)
        return path

    def move_x(self, x, y):
        """Aim the X mirror at x mm, corrected for the Y mirror at y mm."""
        cfg = self.config
        pin = cfg.pin_x
        if x > 0:
            x -= _countervail(x, y, cfg)
            self._write(pin, DacChannel.B, 0)
            self._write(pin, DacChannel.A, _x_da(x, y, cfg))
        elif x < 0:
            x -= _countervail(x, y, cfg)
            self._write(pin, DacChannel.A, 0)
            self._write(pin, DacChannel.B, _x_da(x, y, cfg))
        else:
            self._write(pin, DacChannel.A, 0)
            self._write(pin, DacChannel.B, 0)

    def move_y(self, y):
        """Aim the Y mirror at y mm."""
        cfg = self.config
        pin = cfg.pin_y
        if y > 0:
            self._write(pin, DacChannel.B, 0)
            self._write(pin, DacChannel.A, _y_da(y, cfg))
        elif y < 0:
            self._write(pin, DacChannel.A, 0)
            self._write(pin, DacChannel.B, _y_da(y, cfg))
        else:
            self._write(pin, DacChannel.A, 0)
            self._write(pin, DacChannel.B, 0)
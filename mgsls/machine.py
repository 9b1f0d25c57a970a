"""The whole controller: command queue, planner, mirrors, Z steppers and heater.

``Machine.step`` performs one pass of the firmware's main loop. Timer
interrupts of the mirrors are delivered by ``run_until_idle`` between
passes; stepper moves are waited for inside the pass, as the firmware does.
"""

from __future__ import annotations

import argparse
import sys

from .command import CommandProcessor, GCodeReceiver
from .config import MachineConfig, preset
from .duetimer import TimerBank
from .galvo import Galvo
from .hardware import HardwareLog
from .heating import Heater
from .planner import Planner
from .stepper import Stepper

_FLAGS = ("xy", "laser", "z", "a", "b", "c")


class Machine:
    """Simulated controller fed with G-code text; all hardware activity is logged."""

    def __init__(self, config: MachineConfig | None = None, heating=False,
                 hardware=None, timers=None):
        self.config = config if config is not None else preset("1.8")
        cfg = self.config
        if len(cfg.steppers) != 3 or cfg.gcode_buffer_size < 2 or cfg.pin_xy is None:
            raise ValueError(f"firmware {cfg.version} has no buffered main loop")
        self.hardware = (
            hardware if hardware is not None else HardwareLog(select_pins=(cfg.pin_xy,))
        )
        self.timers = timers if timers is not None else TimerBank()
        self.receiver = GCodeReceiver(cfg.gcode_buffer_size,
                                      check_line_numbers=cfg.version == "1.7")
        self.processor = CommandProcessor(cfg)
        self.galvo = Galvo(cfg, self.hardware, self.timers)
        self.steppers = tuple(Stepper(axis, self.hardware, self.timers) for axis in cfg.steppers)
        self.heater = Heater(cfg, self.hardware, self.timers) if heating else None
        self.planner = Planner(cfg)
        self.z_position = 0.0
        self.replies: list[str] = []
        self._flags = dict.fromkeys(_FLAGS, False)

    def feed(self, data):
        """Hand incoming serial data to the controller; return the replies it caused."""
        replies = self.receiver.feed(data)
        self.replies.extend(replies)
        return replies

    def _move(self, stepper, distance):
        stepper.start_move(distance)
        stepper.run()

    def _heating(self, on):
        if self.heater is None:
            raise RuntimeError("heating was not initialised")
        if on:
            self.heater.start()
        else:
            self.heater.stop()

    def _dispatch(self, request):
        flags = self._flags
        flags["xy"] |= request.move_xy
        flags["laser"] |= request.laser
        flags["z"] |= request.move_z
        flags["a"] |= request.move_a
        flags["b"] |= request.move_b
        flags["c"] |= request.move_c
        stepper_a, stepper_b, stepper_c = self.steppers
        if flags["xy"]:
            flags["xy"] = False
            laser = flags["laser"]
            flags["laser"] = False
            self.planner.plan(request.x, request.y, laser)
        elif flags["z"]:
            flags["z"] = False
            delta = request.z - self.z_position
            if abs(delta) < 0.1:
                self._move(stepper_b, 0.2)
            else:
                self._move(stepper_b, delta * 1.5)
            self._move(stepper_c, -delta)
            self._sweep(stepper_a)
            self.z_position = request.z
        elif flags["a"]:
            flags["a"] = False
            self._sweep(stepper_a)
        elif flags["b"]:
            flags["b"] = False
            self._move(stepper_b, request.b)
        elif flags["c"]:
            flags["c"] = False
            self._move(stepper_c, request.c)

    def _sweep(self, stepper):
        reach = self.config.stepper_a_distance_max
        self._move(stepper, reach)
        self._move(stepper, -reach)

    def step(self):
        """Run one pass of the main loop; return True when anything was done."""
        progressed = False
        if len(self.receiver) < self.receiver.capacity:
            self.replies.extend(self.receiver.feed())
        if len(self.receiver) and len(self.planner) < self.planner.capacity - 1:
            request = self.processor.process(self.receiver.pop())
            if request.heating is not None:
                self._heating(request.heating)
            self.replies.extend(request.replies)
            self._dispatch(request)
            progressed = True
        if len(self.planner) and not self.galvo.moving:
            self.galvo.start_move(self.planner.pop())
            progressed = True
        return progressed

    def run_until_idle(self):
        """Loop and deliver mirror interrupts until no work is left; return the new replies."""
        first = len(self.replies)
        while True:
            progressed = self.step()
            if self.galvo.moving:
                self.galvo.timer.fire()
                progressed = True
            if not progressed:
                break
        return self.replies[first:]


def main(argv=None):
    """Run a G-code file (or standard input) through the simulated controller."""
    parser = argparse.ArgumentParser(prog="mgsls",
                                     description="Simulate the galvanometer SLS controller.")
    parser.add_argument("path", nargs="?", default="-", help="G-code file, '-' for stdin")
    parser.add_argument("--firmware", default="1.8", help="firmware generation (1.7 or 1.8)")
    parser.add_argument("--heating", action="store_true", help="initialise the heater")
    args = parser.parse_args(argv)
    try:
        config = preset(args.firmware)
        machine = Machine(config, heating=args.heating)
    except ValueError as err:
        parser.error(str(err))
    if args.path == "-":
        text = sys.stdin.read()
    else:
        with open(args.path, encoding="latin-1") as handle:
            text = handle.read()
    machine.feed(text)
    try:
        machine.run_until_idle()
    except (RuntimeError, ValueError) as err:
        for reply in machine.replies:
            print(reply)
        print(f"error: {err}", file=sys.stderr)
        return 1
    for reply in machine.replies:
        print(reply)
    return 0
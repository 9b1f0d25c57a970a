import math

import pytest

from mgsls.config import preset
from mgsls.hardware import HIGH, LOW, OUTPUT, HardwareLog
from mgsls.duetimer import TimerBank
from mgsls.stepper import Stepper, step_delays


def axis(version, index):
    return preset(version).steppers[index]


def test_pins_configured_as_outputs():
    hw = HardwareLog()
    ax = axis("1.8", 0)
    Stepper(ax, hardware=hw)
    assert hw.modes[ax.pin_step] == OUTPUT
    assert hw.modes[ax.pin_dir] == OUTPUT


def test_step_count_matches_distance():
    ax = axis("1.8", 1)  # 200 steps per unit
    hw = HardwareLog()
    stepper = Stepper(ax, hardware=hw)
    stepper.start_move(1)
    periods = stepper.run()
    highs = [e for e in hw.events if e == ("digital", ax.pin_step, HIGH)]
    assert len(highs) == 200
    assert len(periods) == 201
    assert stepper.moving is False
    assert stepper.steps_done == 0


def test_step_delays_length():
    ax = axis("1.8", 1)
    assert len(step_delays(1, ax)) == 201
    assert len(step_delays(-1, ax)) == 201


def test_profile_speeds_up_then_slows_down():
    ax = axis("1.8", 1)
    delays = step_delays(2, ax)
    middle = len(delays) // 2
    assert all(b <= a for a, b in zip(delays[:middle - 1], delays[1:middle]))
    assert all(b >= a for a, b in zip(delays[middle + 1:-1], delays[middle + 2:]))
    assert min(delays) < delays[0]
    assert all(d > 0 for d in delays)


def test_direction_follows_sign_and_negate():
    ax = axis("1.8", 1)  # negate is True
    hw = HardwareLog()
    stepper = Stepper(ax, hardware=hw)
    stepper.start_move(0.5)
    assert hw.levels[ax.pin_dir] == HIGH
    stepper.run()
    stepper.start_move(-0.5)
    assert hw.levels[ax.pin_dir] == LOW


def test_direction_without_negate():
    ax = axis("1.8", 0)  # negate is False
    hw = HardwareLog()
    stepper = Stepper(ax, hardware=hw)
    stepper.start_move(1)
    assert hw.levels[ax.pin_dir] == LOW


def test_zero_distance_stops_at_first_tick():
    ax = axis("1.8", 2)
    hw = HardwareLog()
    stepper = Stepper(ax, hardware=hw)
    stepper.start_move(0)
    periods = stepper.run()
    assert len(periods) == 1
    assert not any(e[0] == "digital" and e[1] == ax.pin_step for e in hw.events)
    assert stepper.timer.running is False


def test_acceleration_distance_is_clamped_and_stays():
    ax = axis("1.8", 1)
    stepper = Stepper(ax)
    initial = stepper.acceleration_distance
    stepper.start_move(0.05)  # 10 steps
    assert stepper.acceleration_distance == 5
    assert initial > 5
    stepper.run()
    stepper.start_move(5)
    assert stepper.acceleration_distance == 5


def test_run_periods_follow_step_delays():
    ax = axis("1.7", 1)
    stepper = Stepper(ax)
    stepper.start_move(0.3)
    periods = stepper.run()
    assert periods == [int(d) for d in step_delays(0.3, ax)]


def test_timer_attached_and_stopped_after_run():
    ax = axis("1.6", 0)
    timers = TimerBank()
    stepper = Stepper(ax, timers=timers)
    stepper.start_move(0.5)
    assert timers.timer(ax.timer).running is True
    assert timers.timer(ax.timer).callback == stepper.on_tick
    stepper.run()
    assert timers.timer(ax.timer).running is False


def test_non_finite_distance_rejected():
    stepper = Stepper(axis("1.8", 0))
    with pytest.raises(ValueError):
        stepper.start_move(math.nan)
    with pytest.raises(ValueError):
        stepper.start_move(math.inf)
    assert stepper.moving is False
import math

import pytest

from mgsls.config import preset
from mgsls.hardware import DacChannel
from mgsls.legacy import (
    LegacyController,
    find_key,
    x_countervail,
    x_distance_to_da,
    y_distance_to_da,
)

HOME_FRAMES = [
    (12, DacChannel.A, 0),
    (12, DacChannel.B, 0),
    (13, DacChannel.A, 0),
    (13, DacChannel.B, 0),
]


@pytest.fixture
def controller():
    return LegacyController()


def test_zero_distance_gives_zero_code():
    assert x_distance_to_da(0, 25) == 0
    assert y_distance_to_da(0) == 0


def test_codes_ignore_sign():
    assert y_distance_to_da(-7.5) == y_distance_to_da(7.5)
    assert x_distance_to_da(-12, 3) == x_distance_to_da(12, 3)


def test_codes_grow_with_distance():
    values = [y_distance_to_da(d) for d in (1, 5, 10, 20, 40)]
    assert values == sorted(values)
    assert len(set(values)) == len(values)


def test_full_scale_at_max_mirror_angle():
    cfg = preset("1.1")
    reach = cfg.dis_f_theta * math.tan(math.radians(cfg.mg_max_angle))
    assert 65535 <= y_distance_to_da(reach) <= 65536


def test_x_code_shrinks_when_y_grows():
    assert x_distance_to_da(10, 50) < x_distance_to_da(10, 0)


def test_countervail_is_zero_on_axis_and_odd_in_x():
    assert x_countervail(30, 0) == 0
    assert x_countervail(30, 20) > 0
    assert x_countervail(-30, 20) == pytest.approx(-x_countervail(30, 20))


def test_find_key_reads_values():
    line = "G1 X10 Y20.5"
    assert find_key(line, "G") == 1.0
    assert find_key(line, "X") == 10.0
    assert find_key(line, "Y") == 20.5
    assert find_key(line, "Z") is None


def test_find_key_at_end_reads_zero():
    assert find_key("G1 X", "X") == 0.0


def test_setup_homes_both_chips(controller):
    assert controller.hardware.dac_frames()[:4] == HOME_FRAMES


def test_empty_line_gets_no_reply(controller):
    assert controller.handle_line("") == []


def test_m105_replies_start(controller):
    assert controller.handle_line("M105") == ["ok", "start"]


def test_g28_homes(controller):
    controller.handle_line("G1 X5 Y5")
    assert controller.handle_line("G28") == ["ok"]
    assert controller.hardware.dac_frames()[-4:] == HOME_FRAMES


def test_move_along_x_steps_up_to_target(controller):
    path = controller.move_xy(10, 0)
    assert path[-1] == (10.0, 0.0)
    xs = [p[0] for p in path]
    assert len(path) > 1
    assert xs == sorted(xs)
    assert all(x < 10 for x in xs[:-1])
    assert all(p[1] == 0 for p in path)
    frames = controller.hardware.dac_frames()
    assert frames[-4:] == [
        (12, DacChannel.B, 0),
        (12, DacChannel.A, x_distance_to_da(10, 0)),
        (13, DacChannel.A, 0),
        (13, DacChannel.B, 0),
    ]


def test_negative_x_uses_buffer_b(controller):
    controller.move_xy(-10, 0)
    frames = controller.hardware.dac_frames()
    assert frames[-4:-2] == [
        (12, DacChannel.A, 0),
        (12, DacChannel.B, x_distance_to_da(-10, 0)),
    ]


def test_positive_y_uses_buffer_a(controller):
    controller.move_xy(0, 8)
    frames = controller.hardware.dac_frames()
    assert frames[-2:] == [
        (13, DacChannel.B, 0),
        (13, DacChannel.A, y_distance_to_da(8)),
    ]


def test_diagonal_move_is_monotonic(controller):
    path = controller.move_xy(6, -4)
    assert path[-1] == (6.0, -4.0)
    xs = [p[0] for p in path]
    ys = [p[1] for p in path]
    assert xs == sorted(xs)
    assert ys == sorted(ys, reverse=True)


def test_handle_line_keeps_missing_axis(controller):
    controller.handle_line("G1 X5 Y5")
    assert controller.position == (5.0, 5.0)
    controller.handle_line("G0 X7")
    assert controller.position == (7.0, 5.0)


def test_other_g_codes_do_not_move(controller):
    controller.handle_line("G1 X3 Y2")
    before = len(controller.hardware.events)
    assert controller.handle_line("G2 X9 Y9") == ["ok"]
    assert controller.position == (3.0, 2.0)
    assert len(controller.hardware.events) == before


def test_large_moves_stay_within_sixteen_bits(controller):
    controller.move_xy(150, -150)
    values = [value for _, _, value in controller.hardware.dac_frames()]
    assert all(0 <= v <= 0xFFFF for v in values)


def test_non_finite_target_rejected(controller):
    with pytest.raises(ValueError):
        controller.move_xy(float("nan"), 0)


def test_config_without_per_axis_dacs_rejected():
    with pytest.raises(ValueError):
        LegacyController(preset("1.8"))
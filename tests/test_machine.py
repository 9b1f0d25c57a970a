import pytest

from mgsls.config import preset
from mgsls.machine import Machine, main
from mgsls.planner import Planner


def test_xy_move_plays_planned_segment():
    machine = Machine()
    machine.feed("G1 X10 Y0 E\n")
    machine.run_until_idle()
    assert machine.replies == ["ok"]
    expected = Planner(preset("1.8")).plan(10.0, 0.0, True)
    frames = machine.hardware.dac_frames()[2:]
    assert [f[2] for f in frames[0::2]] == list(expected.da_x)
    assert not machine.galvo.moving
    assert len(machine.planner) == 0
    pin_laser = machine.config.pin_laser
    assert machine.hardware.analog[pin_laser] == machine.config.laser_off_power


def test_g90_replies_start():
    machine = Machine()
    machine.feed("G90\n")
    assert machine.run_until_idle() == ["start", "ok"]


def test_queue_limits_reading_but_all_lines_processed():
    machine = Machine()
    machine.feed("G1 X1\nG1 X2\nG1 X3\n")
    assert len(machine.receiver) == machine.receiver.capacity
    machine.run_until_idle()
    assert machine.replies.count("ok") == 3
    assert machine.planner.position == (3.0, 0.0)


def test_laser_flag_waits_for_next_xy_move():
    machine = Machine()
    machine.feed("G1 E\nG1 X5\n")
    machine.run_until_idle()
    pin_laser = machine.config.pin_laser
    assert ("analog", pin_laser, machine.config.laser_on_power) in machine.hardware.events


def test_z_move_runs_steppers_and_records_height():
    machine = Machine()
    machine.feed("G1 Z0.1\n")
    machine.run_until_idle()
    assert machine.z_position == pytest.approx(0.1)
    assert all(not s.moving for s in machine.steppers)
    assert machine.replies == ["ok"]


def test_heating_commands():
    machine = Machine(heating=True)
    machine.feed("M889\n")
    machine.run_until_idle()
    assert not machine.heater.timer.running
    machine.feed("M888\n")
    machine.run_until_idle()
    assert machine.heater.timer.running


def test_heating_without_heater_raises():
    machine = Machine()
    machine.feed("M888\n")
    with pytest.raises(RuntimeError):
        machine.run_until_idle()


def test_line_number_error_on_numbered_firmware():
    machine = Machine(preset("1.7"))
    replies = machine.feed("N5 G1 X1*0\n")
    assert replies[-1] == "ok"
    assert replies[0].startswith("Error:")
    assert machine.run_until_idle() == []


def test_firmware_without_main_loop_rejected():
    with pytest.raises(ValueError):
        Machine(preset("1.5"))


def test_main_runs_file(tmp_path, capsys):
    path = tmp_path / "part.gcode"
    path.write_text("G90\nG1 X2 Y1\n")
    assert main([str(path)]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out == ["start", "ok", "ok"]


def test_main_rejects_unknown_firmware(tmp_path):
    path = tmp_path / "part.gcode"
    path.write_text("G90\n")
    with pytest.raises(SystemExit):
        main(["--firmware", "9.9", str(path)])
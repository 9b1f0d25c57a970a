# mgsls

`mgsls` is the controller logic of a mirror-galvanometer selective laser
sintering machine, run entirely in software. It reads G-code, plans straight
galvanometer moves as 16-bit DAC codes, paces stepper axes with a linear
speed ramp, switches the laser and a bed heater, and records every pin
write, PWM value and SPI word in a `HardwareLog` instead of sending it to a
board.

## Installation

```
pip install .
```

There are no runtime dependencies. To run the tests:

```
pip install ".[test]"
pytest
```

## Command line

```
mgsls [path] [--firmware VERSION] [--heating]
```

- `path` is a G-code file; leave it out or give `-` to read standard input.
- `--firmware` picks the machine settings, `1.8` by default. Only the
  generations with a buffered main loop, `1.7` and `1.8`, can be run this
  way; any other value is rejected with a usage error.
- `--heating` sets up the bed heater. Without it, an `M888` or `M889` line
  stops the run with an error.

The command feeds the whole input to the machine, runs it until no work is
left and prints every reply (`ok`, `start`, and the error and resend lines
of the line-number check) one per line. If the run stops on an error, the
replies so far are printed, the error goes to standard error and the exit
status is 1.

## Machine settings

`mgsls.config.preset(version)` returns the frozen `MachineConfig` of a
firmware generation: `"1.1"`, `"1.5"`, `"1.6"`, `"1.7"` or `"1.8"` (a leading
`v` or `V` is accepted). An unknown version raises `ValueError`. The stepper
axes A, B and C are described by `StepperAxisConfig`, whose
`acceleration_steps` and `speed_steps` give the settings in whole steps.

## Using it from Python

```python
from mgsls.machine import Machine

machine = Machine()                      # settings of firmware 1.8
machine.feed(b"G1 X10 Y5 E1\nG1 X0 Y0\n")
print(machine.run_until_idle())          # ['ok', 'ok']
```

`Machine.feed` accepts text or bytes and returns any replies it caused,
`Machine.step` runs one pass of the main loop and returns whether anything
was done, and `Machine.run_until_idle` repeats passes, delivering the mirror
timer's interrupts in between, until nothing is left; it returns the replies
added meanwhile. All replies collect in `Machine.replies`, and all hardware
activity in `Machine.hardware`.

What a line does in the main loop:

- `G1` with `X`/`Y` plans a mirror move; an `E` on the line turns the laser
  on for that move.
- `G1 Z…` moves axis B up by 1.5 times the change (0.2 when the change is
  under 0.1), axis C by minus the change, then sweeps axis A out and back.
- `G1 A…` sweeps axis A; `G1 B…` and `G1 C…` move those axes by the value.
- `G90` replies `start`; `M888` and `M889` start and stop the heater.

On firmware 1.7 a line holding `N` must carry the next line number and a
`*` checksum (XOR of the bytes before the `*`); a rejected line produces the
error, resend and `ok` replies and discards the unread input.

### The parts on their own

- `mgsls.command`: `to_float` and `to_int` read a leading number,
  `key_value(line, key)` returns the text after a letter up to the next
  space, `checksum(text)` gives the XOR checksum. `GCodeReceiver` splits
  input into a small queue of lines, drops `;` comments and raises nothing:
  rejected numbered lines become replies (from a `LineError`).
  `CommandProcessor.process(line)` returns a `MoveRequest` for firmware 1.5
  to 1.8; axis targets carry over from line to line.
- `mgsls.planner`: `distance_to_da(x, y, config)` gives the X and Y DAC
  codes for a point on the plane, with the X code corrected for the
  distortion the Y mirror adds. `Planner.plan(x, y, laser)` cuts a straight
  move into one sample per interpolation cycle and queues the resulting
  `Segment`; `Planner.pop` takes it back out.
- `mgsls.galvo`: `Galvo` writes sample pairs to DAC buffers A and B, one per
  timer interrupt, switching the laser PWM on for a lasered segment and back
  to idle power at its end.
- `mgsls.stepper`: `Stepper` emits one step per timer interrupt and
  reprograms the timer with the next delay; `Stepper.run` returns the
  periods used, and `step_delays(distance, axis)` lists the delays of one
  move on a fresh axis.
- `mgsls.heating`: `Heater` keeps its pin high for a fixed share of each
  heating cycle.
- `mgsls.duetimer`: `TimerBank` holds nine `DueTimer`s with chainable
  `attach_interrupt`, `start`, `stop`, `set_frequency` and `set_period`;
  `best_clock(frequency)` picks the clock divisor and compare value.
- `mgsls.hardware`: `HardwareLog` records pin modes, digital and analog
  writes and SPI transfers; `dac_frames()` decodes the log into
  `(select pin, DacChannel, value)` frames.
- `mgsls.legacy`: `LegacyController` drives the first-generation machine,
  with one DAC chip per mirror and unpaced moves. `handle_line` answers
  `ok` (and `start` for `M105`), moves on `G0`/`G1`, and homes on `G28`;
  `move_xy` returns the points written. `x_distance_to_da`,
  `y_distance_to_da`, `x_countervail` and `find_key` are its helpers.

## What it does not do

Nothing here talks to real hardware. There is no serial port, SPI bus, PWM
or timer driver: every output only goes into a `HardwareLog`, and timer
interrupts happen only when the code fires them. The package cannot steer a
physical laser or machine.
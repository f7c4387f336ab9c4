# motorpid

Speed control for a brushed DC motor with an encoder: a PID controller with a
relay (Ziegler–Nichols) auto-tuner, gain scheduling through a radial-basis-function
network, and evaluation of step responses against performance criteria.

## Modules

- `motorpid.pid` — `PID`, a discrete controller that reads its measurement from a
  callable. `compute()` runs one step with output clamped to 0..1000;
  `set_pid()` sets gains and setpoint and clears history; `tune_init()`,
  `tuned()` and `tune_cancel()` drive the relay auto-tuner, whose rule is chosen
  with `ZNMode` (`BASIC`, `LESS_OVERSHOOT`, `NO_OVERSHOOT`, `HIGH_RESPOND`,
  `NO_TUNE`). When tuning finishes, the averaged gains are written to the
  controller's output stream by `report_tune()`. `constrain()` clamps a value.
- `motorpid.motor` — `Motor` drives an H-bridge (`control()` with a `Direction`
  and a power of 0..1000, mapped to a PWM duty of 0..255) and turns encoder
  pulses counted by an `EncoderCounter` into RPM with `rpm()`. The reading can be
  filtered (`FilterMode.NO_FILTER`, `MEDIUM` for an average of recent non-zero
  readings, `LOW_PASS` for an adaptive low-pass), chosen with `configure()`.
  `Board` is an in-memory board: pin modes and levels, PWM duties, analog inputs,
  interrupt handlers and a millisecond clock that either follows a supplied
  callable or is moved on by `advance()` and `delay()`. `arduino_map()` re-maps
  an integer between ranges with truncating division.
- `motorpid.rbf` — `RbfGainNetwork.compute(x)` evaluates a fixed ten-neuron
  Gaussian network and returns `(kp, ki, kd)`; `gains()` returns the last
  result. `normalize()` and `denormalize()` are the scaling helpers.
- `motorpid.performance` — `Performance.evaluate()` feeds one sample into the
  running measurement of steady-state value and error, overshoot, rise time and
  settle time, and reports whether `Criteria` are met. `init_performance()`
  builds a fresh pair; `meet_criteria()` and `reject()` judge a record;
  `format_csv()`, `format_teleplot()`, `format_performance()` and
  `format_criteria()` return text for CSV, Teleplot and brace-delimited reports.
- `motorpid.controller` — `Rig` ties a `Board`, a `Motor`, a `PID` and an
  `RbfGainNetwork` together. `setup()` prepares everything; `loop()` runs one
  10 ms period of RBF-scheduled control with the setpoint read from the
  potentiometer on `Board.A0`; `single_run()` auto-tunes, runs one step
  response, reports it and returns whether the criteria were met;
  `collect_data()` sweeps setpoints and initial errors and writes a CSV row for
  every run that meets the criteria.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Examples

```python
from motorpid.rbf import RbfGainNetwork

net = RbfGainNetwork()
kp, ki, kd = net.compute(300.0)
```

```python
from motorpid.performance import init_performance, meet_criteria

system, criteria = init_performance(300.0, 2, 25, 0.1, 0.3)
samples = [0.0, 120.0, 260.0, 310.0, 302.0, 299.0, 300.0]
for step, value in enumerate(samples):
    system.evaluate(criteria, value, step * 10)
print(meet_criteria(system, criteria))
```

```python
import io

from motorpid.controller import Rig
from motorpid.motor import Board

board = Board()
rig = Rig(board, out=io.StringIO())
rig.setup()
board.analog[Board.A0] = 600
rig.loop()
print(rig.controller.control_val, board.pwm[rig.motor.pwm])
```

## What it does not do

`Board` only keeps pin states and a clock in memory; it does not talk to any
hardware. To run a real motor, subclass `Board` and override its methods
(`millis`, `delay`, `pin_mode`, `digital_write`, `analog_write`, `analog_read`,
`attach_interrupt`) for your platform, and call `EncoderCounter.tick()` from
your encoder interrupts. `Motor.set_pwm_frequency()` only records the requested
frequency. The package has no command-line program.
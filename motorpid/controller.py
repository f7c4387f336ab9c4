"""Motor speed rig: PID or RBF-scheduled PID control of an encoder motor."""

from __future__ import annotations

import sys
from typing import Callable, Optional, Sequence, TextIO

from .motor import (
    PULSES_PER_REV,
    SAMPLE_TIME,
    Board,
    Direction,
    EncoderCounter,
    FilterMode,
    Motor,
    arduino_map,
)
from .performance import (
    Criteria,
    Performance,
    format_criteria,
    format_csv,
    format_performance,
    format_teleplot,
    init_performance,
    meet_criteria,
)
from .pid import PID, ZNMode
from .rbf import RbfGainNetwork

_ULONG_MASK = 0xFFFFFFFF

EXPERIMENT_SETPOINTS: tuple[float, ...] = (350, 400, 150, 300, 200, 450, 125)
DATA_SETPOINTS = range(200, 501, 4)
# Initial-error fractions swept while collecting data (0.0 up to 0.9).
DATA_INITIAL_ERRORS: tuple[float, ...] = tuple(round(i * 0.1, 1) for i in range(10))
DATA_ATTEMPTS = 3
SINGLE_RUN_LIMIT_MS = 5000
DATA_RUN_LIMIT_MS = 1500
SETTLE_WAIT_MS = 1000
LOOP_PERIOD_MS = 10

HEADER = (
    "Set point, initial error, Kp, Ki, Kd, steady state error, "
    "steady state value, overshoot, time rise, time settle"
)


class Rig:
    """A motor, its controller and the evaluation of its step response."""

    def __init__(self, board: Board, out: Optional[TextIO] = None) -> None:
        self.board = board
        self.out = out if out is not None else sys.stdout

        self.encoder = EncoderCounter()
        self.motor = Motor(board, 7, 8, 9, 2, 3, self.encoder)

        self.experiments = EXPERIMENT_SETPOINTS
        self.exp_count = 1
        self.exp_time = 0

        self.setpoint: float = self.experiments[0]
        self.signal: float = self.motor.rpm()
        self.controller = PID(
            self.setpoint, lambda: self.signal, clock=board.millis, out=self.out
        )
        self.performance = Performance()
        self.criteria = Criteria()

        self.flag_run_end = False
        self.flag_tuned = False
        self.wait = 0
        self.time_limit = 5000
        self.filtered_pt = 0.0
        self.last_setpoint: float = 0.0

        self.net = RbfGainNetwork()

        self.raw_now = 0
        self.raw_last_measure = 0
        self.raw_last_val = 0.0
        self.raw_last_enc = 0

        self.run_limit = 5
        self.runs_count = 0
        self.initial_error: float = self.setpoint

        self.data_setpoints: Sequence[float] = DATA_SETPOINTS
        self.data_initial_errors: Sequence[float] = DATA_INITIAL_ERRORS

    # -- timing helpers -------------------------------------------------

    def _wait_while_within(self, elapsed: Callable[[], int], limit: float) -> None:
        while elapsed() <= limit:
            self.board.delay(1)

    def _since(self, start: int) -> Callable[[], int]:
        return lambda: (self.board.millis() - start) & _ULONG_MASK

    def runtime(self) -> int:
        """Milliseconds since the last :meth:`reset_runtime`, never negative."""
        now = self.board.millis()
        if now >= self.wait:
            return (now - self.wait) & _ULONG_MASK
        return 0

    def reset_runtime(self) -> None:
        """Restart the run clock."""
        self.wait = self.board.millis()
        self.performance.timer = 0

    # -- setup and main loop --------------------------------------------

    def setup(self) -> None:
        """Initialise criteria, controller, motor, tuner and interrupts."""
        self.performance, self.criteria = init_performance(
            self.setpoint, 2, 25, 0.1, 0.3
        )
        self.controller.set_pid(self.setpoint, 0, 0, 0)
        self.motor.init()
        self.motor.configure(15e3, FilterMode.LOW_PASS)
        self.controller.tune_init(1000, 0, ZNMode.NO_OVERSHOOT)
        self.board.attach_interrupt(self.motor.en_a, self.encoder.tick)
        self.board.attach_interrupt(self.motor.en_b, self.encoder.tick)
        self.out.write("<Taking data v0.2>\n")
        self.out.write(HEADER + "\n")
        self.encoder.reset()
        self.reset_runtime()
        self.exp_time = self.runtime()

    def loop(self) -> None:
        """One control period driven by the potentiometer setpoint."""
        self.setpoint = self.pt_meter()
        self.signal = self.motor.rpm()
        start = self.runtime()
        self.rbf_pid(self.setpoint, self.setpoint - self.signal)
        self.motor.control(Direction.FORWARD, self.controller.control_val)
        self.out.write(format_teleplot(self.setpoint, self.signal))
        kp, ki, kd = self.controller.gains()
        self.out.write(f"{kp:.2f},{ki:.2f},{kd:.2f}\n")
        self.motor.control(Direction.FORWARD, self.controller.control_val)
        self.out.write(format_csv(start * 0.001, self.controller.control_val))
        self._wait_while_within(
            lambda: (self.runtime() - start) & _ULONG_MASK, LOOP_PERIOD_MS
        )

    def rbf_pid(self, setpoint: float, error: float) -> None:
        """Schedule gains from the RBF network and run one PID step."""
        self.net.compute(setpoint)
        self.controller.setpoint = setpoint
        self.controller.kp, self.controller.ki, self.controller.kd = self.net.gains()
        self.controller.compute()

    def pt_meter(self) -> int:
        """Low-pass filtered potentiometer reading scaled to 0..550."""
        scaled = arduino_map(self.board.analog_read(Board.A0), 0, 1024, 0, 550)
        self.filtered_pt = 0.05 * scaled + 0.95 * self.filtered_pt
        return int(self.filtered_pt)

    def raw_rpm(self) -> float:
        """Unfiltered encoder speed in revolutions per minute."""
        self.raw_now = self.board.millis()
        elapsed = (self.raw_now - self.raw_last_measure) & _ULONG_MASK
        if elapsed <= 1000 * SAMPLE_TIME:
            return self.raw_last_val
        count = self.encoder.read()
        dt = elapsed * 0.001
        if dt <= 1e-5:
            return self.raw_last_val
        speed = ((count - self.raw_last_enc) * 60) / (PULSES_PER_REV * dt)
        self.raw_last_val = speed
        self.raw_last_measure = self.raw_now
        self.raw_last_enc = count
        return speed

    # -- experiment helpers ---------------------------------------------

    def reset(self, setpoint: float) -> None:
        """Prepare a new run at ``setpoint``, keeping the current gains."""
        self.encoder.reset()
        self.performance, self.criteria = init_performance(
            self.setpoint, 2, 25, 0.2, 0.3
        )
        kp, ki, kd = self.controller.gains()
        self.controller.set_pid(setpoint, kp, ki, kd)
        self.motor.reset_counter()
        self.reset_runtime()
        self.initial_error = self.setpoint
        self.flag_tuned = False

    def reset_tuner(self, setpoint: float, initial_error: float) -> None:
        """Clear gains and arm the auto-tuner with a rule suited to ``setpoint``."""
        self.encoder.reset()
        self.controller.kp = 0.0
        self.controller.ki = 0.0
        self.controller.kd = 0.0
        mode = ZNMode.NO_OVERSHOOT if setpoint <= 350 else ZNMode.LESS_OVERSHOOT
        self.controller.tune_init(1000, initial_error, mode)

    def print_pid(self, initial_error: float) -> None:
        """Write setpoint, initial error and gains as the start of a CSV row."""
        kp, ki, kd = self.controller.gains()
        self.out.write(
            f"{self.setpoint:.2f}, {initial_error:.2f}, "
            f"{kp:.2f}, {ki:.2f}, {kd:.2f}, "
        )

    def print_fail(self, count: int) -> None:
        """Report a failed run."""
        self.out.write(f"Run fail, time:{count}\n")

    def _print_result(self, limit: float) -> bool:
        if meet_criteria(self.performance, self.criteria):
            self.print_pid(self.initial_error)
            self.out.write(format_performance(self.performance, self.criteria, 1))
            return True
        self.out.write(format_performance(self.performance, self.criteria, limit))
        self.out.write(format_criteria(self.criteria))
        self.print_fail(0)
        return False

    def single_run(self) -> bool:
        """Tune, run one step response, report it and stop the motor.

        Returns whether the response met the criteria.
        """
        while self.runtime() <= SINGLE_RUN_LIMIT_MS:
            start = self.board.millis()
            stamp = self.runtime()
            self.signal = self.motor.rpm()

            if self.controller.tuned(int(self.runtime() * 0.001)):
                if not self.flag_tuned:
                    self.motor.reset_counter()
                    self.motor.control(Direction.FORWARD, 0)
                    self.board.delay(10)
                    self.out.write(
                        format_teleplot(self.runtime() * 0.001, self.signal)
                    )
                    self.flag_tuned = True
                    self.initial_error = self.setpoint - self.signal
                    self.board.delay(100)
                    self.reset_runtime()
                self.controller.compute()
                self.performance.evaluate(self.criteria, self.signal, stamp)

            self.motor.control(Direction.FORWARD, self.controller.control_val)
            self.out.write(
                format_teleplot(self.controller.control_val * 0.1, self.signal)
            )
            crit = int(meet_criteria(self.performance, self.criteria) * self.setpoint)
            self.out.write(f">criteria:{crit}\n")
            self.out.write(f">T:{self.runtime() * 0.001:.2f}\n")
            self._wait_while_within(self._since(start), 1000 * SAMPLE_TIME)

        met = self._print_result(SINGLE_RUN_LIMIT_MS)
        self.motor.control(Direction.STOP, 0)
        return met

    def collect_data(self) -> None:
        """Sweep setpoints and initial errors, tuning and reporting each run."""
        for setpoint in self.data_setpoints:
            self.setpoint = setpoint
            for initial_error in self.data_initial_errors:
                for _ in range(DATA_ATTEMPTS):
                    if self._data_run(setpoint, initial_error):
                        break
        self.out.write("<finish v0.2>\n")

    def _data_run(self, setpoint: float, initial_error: float) -> bool:
        self.motor.control(Direction.FORWARD, 0)
        self.board.delay(100)
        self.reset(setpoint)
        self.reset_tuner(setpoint, initial_error)

        while self.runtime() <= DATA_RUN_LIMIT_MS:
            start = self.board.millis()
            stamp = self.runtime()
            self.signal = self.motor.rpm()

            if self.controller.tuned(int(self.runtime() * 0.001)):
                if not self.flag_tuned:
                    self._settle_at_initial_error(setpoint, initial_error)
                self.controller.compute()
                self.performance.evaluate(self.criteria, self.signal, stamp)

            self.motor.control(Direction.FORWARD, self.controller.control_val)
            self._wait_while_within(self._since(start), 1000 * SAMPLE_TIME)

        if meet_criteria(self.performance, self.criteria):
            self.print_pid(self.initial_error)
            self.out.write(format_performance(self.performance, self.criteria, 1))
            return True
        return False

    def _settle_at_initial_error(self, setpoint: float, initial_error: float) -> None:
        self.motor.reset_counter()
        self.controller.control_val = 1.5 * initial_error * setpoint
        self.motor.control(Direction.FORWARD, self.controller.control_val)
        self.flag_tuned = True
        settle_start = self.board.millis()
        while ((self.board.millis() - settle_start) & _ULONG_MASK) <= SETTLE_WAIT_MS:
            self.signal = self.motor.rpm()
            self._wait_while_within(
                self._since(self.board.millis()), LOOP_PERIOD_MS
            )
        self.initial_error = setpoint - self.signal
        self.reset_runtime()
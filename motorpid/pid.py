"""PID controller with a relay-based Ziegler–Nichols auto-tuner."""

from __future__ import annotations

import math
import sys
import time
from enum import Enum
from typing import Callable, Optional, TextIO

SAMPLE_TIME = 0.01
OUTPUT_MIN = 0.0
OUTPUT_MAX = 1000.0
INTEGRAL_MAX = 1000.0
ZN_CYCLE = 10
DE_ALPHA = 0.01
_ULONG_MASK = 0xFFFFFFFF


class ZNMode(Enum):
    """Ziegler–Nichols tuning rule used by the relay auto-tuner."""

    BASIC = 0
    LESS_OVERSHOOT = 1
    NO_OVERSHOOT = 2
    HIGH_RESPOND = 3
    NO_TUNE = 4


# (Kp factor, Ti factor, Td factor) for each tuning rule.
_ZN_CONSTANTS: dict[ZNMode, tuple[float, float, float]] = {
    ZNMode.BASIC: (0.6, 0.5, 0.125),
    # Overshoot of 10-20 % and ~0.2 s settling; poor for setpoints below 350.
    ZNMode.LESS_OVERSHOOT: (0.33, 0.9, 0.33),
    # Overshoot ~5 %; best for setpoints of 200-350.
    ZNMode.NO_OVERSHOOT: (0.33, 1.2, 0.33),
    ZNMode.HIGH_RESPOND: (0.7, 0.5, 0.125),
}


def constrain(value: float, low: float, high: float) -> float:
    """Clamp ``value`` into ``[low, high]``."""
    if value < low:
        return low
    if value > high:
        return high
    return value


def _divide(numerator: float, denominator: float) -> float:
    """Floating division that yields inf or nan instead of raising."""
    if denominator != 0:
        return numerator / denominator
    if numerator == 0 or math.isnan(numerator):
        return math.nan
    return math.copysign(math.inf, numerator)


def _default_clock() -> int:
    return int(time.monotonic() * 1000)


class PID:
    """Discrete PID controller reading its measurement from a callable."""

    def __init__(
        self,
        setpoint: float,
        read_input: Callable[[], float],
        clock: Optional[Callable[[], int]] = None,
        out: Optional[TextIO] = None,
    ) -> None:
        self.setpoint = setpoint
        self.read_input = read_input
        self.clock = clock if clock is not None else _default_clock
        self.out = out if out is not None else sys.stdout

        self.control_val = 0.0
        self.kp = 0.0
        self.ki = 0.0
        self.kd = 0.0
        self.error = 0.0

        self._last_e = 0.0
        self._de = 0.0
        self._sum_e = 0.0
        self._filtered_de = 0.0

        self.mode = ZNMode.NO_TUNE
        self.tuning = False
        self.relay_on = 255.0
        self.relay_off = 0.0
        self._peak_max = 1e-9
        self._peak_min = 1e-9
        self._t1 = 0
        self._t2 = 0
        self._t_high = 0
        self._t_low = 0
        self.zn_count = 0

    def _millis(self) -> int:
        return int(self.clock()) & _ULONG_MASK

    def _lowpass(self, value: float) -> float:
        self._filtered_de = value
        return DE_ALPHA * value + (1 - DE_ALPHA) * self._filtered_de

    def compute(self) -> float:
        """Run one control step and return the new control value."""
        self.error = self.setpoint - self.read_input()
        self._de = self._lowpass(self.error - self._last_e)
        if OUTPUT_MIN < self.control_val < OUTPUT_MAX:
            self._sum_e += self.error
        self._sum_e = constrain(self._sum_e, 0.0, INTEGRAL_MAX)
        value = self.kp * self.error + self.ki * self._sum_e + self.kd * self._de
        self.control_val = constrain(value, OUTPUT_MIN, OUTPUT_MAX)
        self._last_e = self.error
        return self.control_val

    def set_pid(self, setpoint: float, kp: float, ki: float, kd: float) -> None:
        """Set gains and setpoint and clear the controller's history."""
        self.kp = kp
        self.ki = ki
        self.kd = kd
        self.setpoint = setpoint
        self.error = 0.0
        self._last_e = 0.0
        self._de = 0.0
        self._sum_e = 0.0
        self._filtered_de = 0.0

    def tune_init(self, high: float, low: float, mode: ZNMode) -> None:
        """Arm the relay auto-tuner with the given relay levels and rule."""
        self.relay_on = high
        self.relay_off = low
        self.mode = ZNMode(mode)
        self.zn_count = 0
        self._peak_max = self.setpoint
        self._peak_min = self.setpoint
        self._t1 = 0
        self._t2 = 0
        self._t_low = 0
        self._t_high = 0
        self.tuning = self.mode is not ZNMode.NO_TUNE

    def tune_cancel(self) -> None:
        """Abort tuning and switch the output off."""
        self.tuning = False
        self.control_val = 0.0

    def gains(self) -> tuple[float, float, float]:
        """Return ``(kp, ki, kd)``."""
        return self.kp, self.ki, self.kd

    def tuned(self, run_time: int) -> bool:
        """Advance the relay auto-tuner by one step; True once tuning is over."""
        if not self.tuning:
            return True
        constants = _ZN_CONSTANTS.get(self.mode)
        if constants is None:
            return True
        kp_const, ti_const, td_const = constants

        value = self.read_input()
        if value > self._peak_max:
            self._peak_max = value
        if value < self._peak_min:
            self._peak_min = value

        if self.control_val == self.relay_on and value >= self.setpoint:
            self.control_val = self.relay_off
            self._t1 = self._millis()
            self._t_high = (self._t1 - self._t2) & _ULONG_MASK

        if self.control_val != self.relay_on and value < self.setpoint:
            self.control_val = self.relay_on
            self._t2 = self._millis()
            self._t_low = (self._t2 - self._t1) & _ULONG_MASK
            amplitude = (self._peak_max - self._peak_min) / 2.0
            relay_span = self.relay_on - self.relay_off

            if amplitude >= 1e-9:
                ku = (4.0 * relay_span) / (math.pi * amplitude)
                tu = (self._t_low + self._t_high) * 0.001
                kp = kp_const * ku
                ki = _divide(kp, ti_const * tu) * SAMPLE_TIME
                kd = (td_const * kp * tu) / SAMPLE_TIME
                if self.zn_count >= 1:
                    self.kp += kp
                    self.ki += ki
                    self.kd += kd

            self._peak_min = self.setpoint
            self._peak_max = self.setpoint
            self.zn_count += 1

        if self.zn_count >= ZN_CYCLE:
            self.control_val = self.relay_off
            cycles = self.zn_count - 1
            self.kp /= cycles
            self.ki /= cycles
            self.kd /= cycles
            self.tuning = False
            self.report_tune(run_time)
            return True
        return False

    def report_tune(self, time: int) -> None:
        """Write the tuned gains to the output stream."""
        kp, ki, kd = self.gains()
        self.out.write(
            f"Tuned! {int(time)}  Kp:{kp:.2f}  Ki:{ki:.2f}  Kd:{kd:.2f}\n"
        )
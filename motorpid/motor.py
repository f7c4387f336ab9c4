"""DC motor driver with encoder-based speed measurement and filtering."""

from __future__ import annotations

import threading
import time
from enum import IntEnum
from typing import Callable, Optional

SAMPLE_TIME = 0.01
FILTER_SIZE = 3
FILTER_ALPHA_FAST = 0.4
FILTER_ALPHA_SLOW = 0.01
FILTER_THRESHOLD = 0.35
PULSES_PER_REV = 4 * 11 * 9.6
_ULONG_MASK = 0xFFFFFFFF


class Direction(IntEnum):
    """Rotation direction for :meth:`Motor.control`."""

    REVERSE = -1
    STOP = 0
    FORWARD = 1


class FilterMode(IntEnum):
    """Speed filter applied by :meth:`Motor.rpm`."""

    NO_FILTER = 0
    MEDIUM = 1
    LOW_PASS = 2


def arduino_map(x: int, in_min: int, in_max: int, out_min: int, out_max: int) -> int:
    """Re-map an integer from one range to another with truncating division."""
    numerator = (int(x) - in_min) * (out_max - out_min)
    denominator = in_max - in_min
    quotient = abs(numerator) // abs(denominator)
    if (numerator < 0) != (denominator < 0):
        quotient = -quotient
    return quotient + out_min


class Board:
    """In-memory board: pin modes and levels, PWM duties, analog inputs and a clock.

    Without a ``clock`` the board keeps its own millisecond counter, moved on
    by :meth:`advance` and :meth:`delay`.
    """

    INPUT = 0
    OUTPUT = 1
    A0 = 14

    def __init__(self, clock: Optional[Callable[[], int]] = None) -> None:
        self._clock = clock
        self._now = 0
        self.modes: dict[int, int] = {}
        self.digital: dict[int, int] = {}
        self.pwm: dict[int, int] = {}
        self.analog: dict[int, int] = {}
        self.handlers: dict[int, Callable[[], None]] = {}

    def millis(self) -> int:
        if self._clock is not None:
            return int(self._clock()) & _ULONG_MASK
        return self._now & _ULONG_MASK

    def advance(self, ms: int) -> None:
        """Move the internal clock forward by ``ms`` milliseconds."""
        self._now += ms

    def delay(self, ms: int) -> None:
        if self._clock is None:
            self._now += ms
        else:
            time.sleep(ms / 1000)

    def pin_mode(self, pin: int, mode: int) -> None:
        self.modes[pin] = mode

    def digital_write(self, pin: int, value: int) -> None:
        self.digital[pin] = value

    def analog_write(self, pin: int, value: int) -> None:
        self.pwm[pin] = value

    def analog_read(self, pin: int) -> int:
        return self.analog.get(pin, 0)

    def attach_interrupt(self, pin: int, handler: Callable[[], None]) -> None:
        self.handlers[pin] = handler

    def trigger(self, pin: int) -> None:
        """Fire the interrupt handler attached to ``pin``, if any."""
        handler = self.handlers.get(pin)
        if handler is not None:
            handler()


class EncoderCounter:
    """Pulse counter shared between an interrupt handler and the main loop."""

    def __init__(self, count: int = 0) -> None:
        self.count = count
        self._lock = threading.Lock()

    def tick(self) -> None:
        with self._lock:
            self.count += 1

    def read(self) -> int:
        with self._lock:
            return self.count

    def reset(self) -> None:
        with self._lock:
            self.count = 0


class Motor:
    """H-bridge driven motor with a quadrature encoder."""

    def __init__(
        self,
        board: Board,
        pin_a: int,
        pin_b: int,
        pwm: int,
        en_a: int,
        en_b: int,
        encoder: EncoderCounter,
    ) -> None:
        self.board = board
        self.pin_a = pin_a
        self.pin_b = pin_b
        self.pwm = pwm
        self.en_a = en_a
        self.en_b = en_b
        self.encoder = encoder

        self.last_enc = 0
        self.last_measure = 0
        self.now = 0
        self.filtered_val = 0.0
        self.rpm_mode = FilterMode.NO_FILTER
        self.top_value = 255
        self.pwm_frequency: Optional[float] = None
        self._buffer = [0.0] * FILTER_SIZE
        self._filter_count = 0

    def init(self) -> None:
        """Configure the driver pins as outputs and encoder pins as inputs."""
        for pin in (self.pin_a, self.pin_b, self.pwm):
            self.board.pin_mode(pin, Board.OUTPUT)
        for pin in (self.en_a, self.en_b):
            self.board.pin_mode(pin, Board.INPUT)

    def rpm(self) -> float:
        """Measured speed in revolutions per minute, filtered per ``rpm_mode``."""
        self.now = self.board.millis()
        elapsed = (self.now - self.last_measure) & _ULONG_MASK
        if elapsed <= 1000 * SAMPLE_TIME:
            return self.filtered_val
        count = self.encoder.read()
        dt = elapsed * 0.001
        if dt <= 1e-5:
            return self.filtered_val
        pulse_diff = count - self.last_enc
        speed = (pulse_diff * 60) / (PULSES_PER_REV * dt)
        if speed <= 1:
            speed = 0.0
            self.filtered_val = 0.0
        if self.rpm_mode == FilterMode.MEDIUM:
            speed = self.filter_median(speed)
        elif self.rpm_mode == FilterMode.LOW_PASS:
            speed = self.filter_lowpass(speed)
        self.filtered_val = speed
        self.last_measure = self.now
        self.last_enc = count
        return speed

    def reset_counter(self) -> None:
        """Zero the encoder and the measurement history."""
        self.encoder.reset()
        self.filtered_val = 0.0
        self.last_measure = 0
        self.last_enc = 0

    def filter_median(self, val: float) -> float:
        """Average of the last few readings, ignoring zero entries."""
        self._buffer[self._filter_count] = val
        nonzero = [v for v in self._buffer if v >= 0.001]
        if nonzero:
            val = sum(nonzero) / len(nonzero)
        self._filter_count = (self._filter_count + 1) % FILTER_SIZE
        return val

    def filter_lowpass(self, val: float) -> float:
        """Adaptive low-pass: slow for small changes, fast for large jumps."""
        alpha = FILTER_ALPHA_FAST
        if val != 0 and abs(val - self.filtered_val) / val <= FILTER_THRESHOLD:
            alpha = FILTER_ALPHA_SLOW
        return alpha * val + (1 - alpha) * self.filtered_val

    def control(self, direction: int, power: float) -> None:
        """Drive the motor in ``direction`` with ``power`` in 0..1000."""
        power = int(power)
        duty = 0 if power == 0 else arduino_map(power, 0, 1000, 0, self.top_value)
        direction = int(direction)
        if direction == 0:
            self.board.digital_write(self.pin_a, 0)
            self.board.digital_write(self.pin_b, 0)
            self.board.analog_write(self.pwm, 0)
        elif direction > 0:
            self.board.digital_write(self.pin_a, 1)
            self.board.digital_write(self.pin_b, 0)
            self.board.analog_write(self.pwm, duty)
        else:
            self.board.digital_write(self.pin_a, 0)
            self.board.digital_write(self.pin_b, 1)
            self.board.analog_write(self.pwm, duty)

    def set_pwm_frequency(self, frequency: float) -> None:
        """Record the requested PWM frequency."""
        self.pwm_frequency = frequency

    def configure(self, frequency: float, filter_mode: int) -> None:
        """Select the speed filter and the PWM frequency."""
        self.rpm_mode = FilterMode(filter_mode)
        self.set_pwm_frequency(frequency)
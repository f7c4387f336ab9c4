"""Step-response evaluation against performance criteria, and text formatting."""

from __future__ import annotations

from dataclasses import dataclass, field

CACHE_SIZE = 10
SETTLE_BAND = 0.05


@dataclass
class Criteria:
    """Targets a step response has to meet."""

    overshoot: float = 0.0
    final_error: float = 0.0
    time_rise: float = 0.0
    time_settle: float = 0.0
    setpoint: float = 0.0


@dataclass
class Performance:
    """Running measurements of a step response."""

    overshoot: float = 0.0
    final_val: float = 0.0
    final_error: float = 0.0
    highest_val: float = 0.0
    time_rise: float = 0.0
    time_settle: float = 0.0
    cached: list[float] = field(default_factory=lambda: [0.0] * CACHE_SIZE)
    counter: int = 0
    timer: int = 0
    flag_settle: bool = False
    flag_risen: bool = False
    flag_risen_low: bool = False

    def evaluate(self, criteria: Criteria, val: float, runtime: int) -> bool:
        """Feed one sample taken at ``runtime`` ms; return whether criteria are met."""
        self.cached[self.counter] = val
        self.counter = (self.counter + 1) % CACHE_SIZE
        self.final_val = sum(self.cached) / CACHE_SIZE
        self.final_error = abs(criteria.setpoint - self.final_val)

        if self.highest_val < val:
            self.highest_val = val
        elif self.final_val != 0:
            self.overshoot = (
                (self.highest_val - self.final_val) * 100 / self.final_val
            )

        if criteria.setpoint * 0.1 <= val <= criteria.setpoint * 0.9:
            if not self.flag_risen:
                self.timer = runtime
            else:
                self.time_rise = runtime - self.time_rise

        low = criteria.setpoint * (1 - SETTLE_BAND)
        high = criteria.setpoint * (1 + SETTLE_BAND)
        if low <= val <= high and not self.flag_settle:
            self.time_settle = runtime * 0.001
            self.flag_settle = True
        elif val < low or val > high:
            self.flag_settle = False

        return meet_criteria(self, criteria)


def init_performance(
    setpoint: float, ess: float, pot: float, tr: float, tss: float
) -> tuple[Performance, Criteria]:
    """Return a fresh measurement record and the criteria it is judged by."""
    criteria = Criteria(
        overshoot=pot,
        final_error=ess,
        time_rise=tr,
        time_settle=tss,
        setpoint=setpoint,
    )
    return Performance(), criteria


def meet_criteria(system: Performance, criteria: Criteria) -> bool:
    """Whether every measured quantity is within its criterion."""
    return (
        system.overshoot <= criteria.overshoot
        and system.final_error <= criteria.final_error
        and system.time_rise <= criteria.time_rise
        and system.time_settle <= criteria.time_settle
    )


def reject(system: Performance, criteria: Criteria) -> bool:
    """Whether the response is already too slow to rise or settle."""
    return (
        system.time_rise > criteria.time_rise
        or system.time_settle > criteria.time_settle
    )


def _num(value: float) -> str:
    return f"{value:.2f}"


def format_csv(x: float, y: float) -> str:
    """One ``x,y`` line with two decimals each."""
    return f"{_num(x)},{_num(y)}\n"


def format_teleplot(setpoint: float, signal: float) -> str:
    """Setpoint and signal lines in teleplot syntax."""
    return f">setpoint:{_num(setpoint)}\n>signal:{_num(signal)}\n"


def format_performance(
    system: Performance, criteria: Criteria, limit: float
) -> str:
    """Evaluation summary in braces, then the settle time on its own line."""
    rise = _num(system.time_rise) if system.time_rise > 1e-4 else "invalid"
    settle = _num(system.time_settle) if system.time_settle <= limit else "inf"
    lines = [
        ' {"evaluation":{',
        f'"steady state error":"{_num(system.final_error)}",',
        f'"steady state value":"{_num(system.final_val)}",',
        f'"overshoot":"{_num(system.overshoot)}",',
        f'"time rise":"{rise}",',
        f'"time settle":"{settle}"',
        "  }",
        "}",
        settle,
    ]
    return "\n".join(lines) + "\n"


def format_criteria(criteria: Criteria) -> str:
    """Summary of the criteria in braces, one quoted value per line."""
    lines = [
        ' {"criteria":{',
        f'"steady state error":"{_num(criteria.final_error)}",',
        f'"steady state value":"{_num(criteria.setpoint)}",',
        f'"overshoot":"{_num(criteria.overshoot)}",',
        f'"time rise":"{_num(criteria.time_rise)}"',
        f'"time settle":"{_num(criteria.time_settle)}"',
        "  }",
        "}",
    ]
    return "\n".join(lines) + "\n"
"""Radial-basis-function network that maps an error signal to PID gains."""

from __future__ import annotations

import math

NUM_NEURONS = 10

CENTERS: tuple[float, ...] = (
    1.2192, -1.2008, 0.1894, -0.8404, 0.5499,
    -0.1452, 1.5788, -1.5589, 0.8845, -0.4799,
)
SPREADS: tuple[float, ...] = (0.46,) * NUM_NEURONS

# One (Kp, Ki, Kd) weight triple per neuron.
WEIGHTS: tuple[tuple[float, float, float], ...] = (
    (-19.0386, -11.2987, -16.7607),
    (7.0994, 6.4647, 4.3393),
    (20.0581, 11.0175, 19.5430),
    (-10.1437, -8.7381, -7.5309),
    (-24.0053, -11.9641, -22.8079),
    (-16.9059, -11.0580, -16.3760),
    (8.4905, 5.5721, 7.9325),
    (-2.9149, -2.6393, -1.9938),
    (25.3759, 13.2862, 23.4092),
    (12.9242, 9.9586, 11.2724),
)

MEAN_KP, STD_KP = 10.7656, 3.6439
MEAN_KI, STD_KI = 1.4464, 0.7777
MEAN_KD, STD_KD = 27.1718, 13.3598
MEAN_E, STD_E = 333.2836, 77.6861


def normalize(x: float, mean: float, std: float) -> float:
    """Standardise ``x`` with the given mean and standard deviation."""
    return (x - mean) / std


def denormalize(x_norm: float, mean: float, std: float) -> float:
    """Undo :func:`normalize`."""
    return x_norm * std + mean


class RbfGainNetwork:
    """Gaussian RBF network producing Kp, Ki and Kd from one input."""

    def __init__(self) -> None:
        self.centers = CENTERS
        self.spreads = SPREADS
        self.weights = WEIGHTS
        self.kp = 0.0
        self.ki = 0.0
        self.kd = 0.0

    def compute(self, error: float) -> tuple[float, float, float]:
        """Evaluate the network for ``error`` and store the resulting gains."""
        e = normalize(error, MEAN_E, STD_E)
        phi = [
            math.exp(-((e - mu) ** 2) / (2 * sigma ** 2))
            for mu, sigma in zip(self.centers, self.spreads)
        ]
        total = sum(phi)

        kp = ki = kd = 0.0
        if total > 0:
            for p, (wp, wi, wd) in zip(phi, self.weights):
                share = p / total
                kp += share * wp
                ki += share * wi
                kd += share * wd

        self.kp = denormalize(kp, MEAN_KP, STD_KP)
        self.ki = denormalize(ki, MEAN_KI, STD_KI)
        self.kd = denormalize(kd, MEAN_KD, STD_KD)
        return self.gains()

    def gains(self) -> tuple[float, float, float]:
        """Return the most recently computed ``(kp, ki, kd)``."""
        return self.kp, self.ki, self.kd
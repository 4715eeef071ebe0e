"""Plan archetypes: tagged parameter presets over the shared burn solver.

Each archetype only decides how the transfer time splits into
accelerate / coast / brake fractions. The solver in ``planner.profile``
does the rest identically for all of them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable


class PlanArchetype(str, Enum):
    ECONOMY = "economy"  # coast-dominated, paced to a Hohmann-like duration
    FAST = "fast"  # continuous burn at the acceleration ceiling
    SPEED = "speed"  # user-tuned accel/brake split


ARCHETYPE_ORDER = (PlanArchetype.ECONOMY, PlanArchetype.FAST, PlanArchetype.SPEED)

PRESET_NAMES = {
    PlanArchetype.ECONOMY: "Economy Transfer",
    PlanArchetype.FAST: "Fast Burn",
    PlanArchetype.SPEED: "Speed Profile",
}

# (acceleration m/s^2, transfer time s) -> (accel fraction, brake fraction)
RatioFn = Callable[[float, float], tuple[float, float]]


@dataclass(frozen=True, slots=True)
class ArrivalTarget:
    """How the ship meets the target.

    ``speed_ms`` is the relative speed to arrive with, or None for an
    unconstrained flyby that keeps whatever the brake fraction leaves.
    """

    speed_ms: float | None
    mode: str  # "rendezvous", "intercept", "aerobrake" or "flyby"


def parse_archetype(value: str | PlanArchetype | None) -> PlanArchetype | None:
    if value is None or isinstance(value, PlanArchetype):
        return value
    return PlanArchetype(value.strip().lower())


def _normalize(fa: float, fb: float) -> tuple[float, float]:
    fa = max(0.0, fa)
    fb = max(0.0, fb)
    total = fa + fb
    if total > 1.0:
        fa, fb = fa / total, fb / total
    return fa, fb


def _brake_for(fa: float, arrival: ArrivalTarget, accel: float, T: float, flyby_brake: float) -> float:
    if arrival.speed_ms is None:
        return min(flyby_brake, fa)
    if accel <= 0.0 or T <= 0.0:
        return fa
    return max(0.0, fa - arrival.speed_ms / (accel * T))


# --------------------------------------------------------------------------- #
#  Presets
# --------------------------------------------------------------------------- #
def economy_burn_fraction(
    distance_m: float,
    accel: float,
    hohmann_s: float,
    symmetric: bool,
    min_fraction: float,
    max_fraction: float,
) -> tuple[float, bool]:
    """Burn fraction that covers ``distance_m`` in about a Hohmann time.

    With a symmetric accelerate/brake profile D = a T^2 (f - f^2), so
    f = (1 - sqrt(1 - 4K)) / 2 for K = D / (a T^2); a one-sided burn gives
    D = a T^2 (f - f^2/2). Returns (fraction, clamped).
    """
    if accel <= 0.0 or hohmann_s <= 0.0:
        return max_fraction, True
    K = distance_m / (accel * hohmann_s**2)
    if symmetric:
        f = (1.0 - math.sqrt(1.0 - 4.0 * K)) / 2.0 if K < 0.25 else 0.5
        upper = max_fraction
    else:
        f = 1.0 - math.sqrt(1.0 - 2.0 * K) if K < 0.5 else 1.0
        upper = min(1.0, 2.0 * max_fraction)
    clamped = min(max(f, min_fraction), upper)
    return clamped, not math.isclose(clamped, f, rel_tol=1e-9)


def economy_ratios(fraction_for: Callable[[float], float], arrival: ArrivalTarget) -> RatioFn:
    """Economy: fraction derived from Hohmann pacing at the current acceleration."""
    def ratios(accel: float, T: float) -> tuple[float, float]:
        fa = fraction_for(accel)
        return _normalize(fa, _brake_for(fa, arrival, accel, T, 0.0))
    return ratios


def fast_ratios(arrival: ArrivalTarget) -> RatioFn:
    """Fast: burn the whole transfer, splitting it to hit the arrival speed."""
    def ratios(accel: float, T: float) -> tuple[float, float]:
        if arrival.speed_ms is None:
            return 1.0, 0.0
        excess = arrival.speed_ms / (accel * T) if accel > 0.0 and T > 0.0 else 0.0
        fa = min(1.0, 0.5 * (1.0 + excess))
        return fa, 1.0 - fa
    return ratios


def speed_ratios(
    accel_ratio: float,
    brake_ratio: float,
    burn_coast_ratio: float | None,
    arrival: ArrivalTarget,
) -> RatioFn:
    """Speed: user split, or one burn/coast ratio shared by both burns."""
    if burn_coast_ratio is not None:
        if arrival.speed_ms is None:
            fa_user, fb_user = burn_coast_ratio, 0.0
        else:
            fa_user = fb_user = 0.5 * burn_coast_ratio
    else:
        fa_user, fb_user = accel_ratio, brake_ratio
    fa_user, fb_user = _normalize(fa_user, fb_user)

    def ratios(accel: float, T: float) -> tuple[float, float]:
        return _normalize(fa_user, _brake_for(fa_user, arrival, accel, T, fb_user))
    return ratios

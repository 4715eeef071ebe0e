"""Accelerate / coast / brake burn profiles and the transfer-time solver.

Both are small pure functions with explicit tolerances and iteration caps,
kept apart from the orchestration in ``planner.engine``.

Mass model: acceleration is taken at the average mass over the burn,
a = min(g_max, F / (m0 - fuel/2)), and that same acceleration drives both
the distance covered and the delta-v (hence the fuel) of the profile.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable

from scipy.optimize import brentq

from planner.archetypes import RatioFn
from propulsion.rocket import fuel_for_delta_v
from system.bodies import G0

logger = logging.getLogger("orrery.planner")


@dataclass(frozen=True, slots=True)
class ShipModel:
    """What the solver needs to know about the ship.

    Without a mass the ship is treated kinematically: it accelerates at the
    g ceiling and no fuel is tracked. Without thrust the ceiling is assumed
    reachable.
    """

    max_g: float
    mass_kg: float | None = None
    isp_s: float | None = None
    thrust_n: float | None = None

    @property
    def ceiling(self) -> float:
        return max(0.0, self.max_g) * G0

    @property
    def tracks_fuel(self) -> bool:
        return bool(self.mass_kg) and bool(self.isp_s) and self.mass_kg > 0.0 and self.isp_s > 0.0

    def accel_at(self, mass_kg: float | None) -> float:
        if self.thrust_n is None or not mass_kg or mass_kg <= 0.0:
            return self.ceiling
        return min(self.ceiling, max(0.0, self.thrust_n) / mass_kg)


@dataclass(frozen=True, slots=True)
class BurnProfile:
    transfer_time_s: float
    accel_ms2: float
    accel_time_s: float
    coast_time_s: float
    brake_time_s: float
    peak_speed_ms: float
    arrival_speed_ms: float
    distance_m: float
    delta_v_ms: float
    fuel_kg: float
    converged: bool  # averaged-mass fixed point settled

    def distance_at(self, dt: float) -> float:
        """Distance travelled ``dt`` seconds after departure."""
        a = self.accel_ms2
        ta, tb = self.accel_time_s, self.brake_time_s
        t_coast_end = self.transfer_time_s - tb
        dt = min(max(dt, 0.0), self.transfer_time_s)
        if dt <= ta:
            return 0.5 * a * dt * dt
        s = 0.5 * a * ta * ta
        if dt <= t_coast_end:
            return s + self.peak_speed_ms * (dt - ta)
        s += self.peak_speed_ms * (t_coast_end - ta)
        tau = dt - t_coast_end
        return s + self.peak_speed_ms * tau - 0.5 * a * tau * tau


def burn_profile(
    T: float,
    ratios: RatioFn,
    ship: ShipModel,
    max_iter: int = 30,
    tol: float = 1e-9,
) -> BurnProfile:
    """Evaluate the burn profile for a transfer lasting ``T`` seconds.

    Iterates acceleration -> burn split -> fuel -> average mass ->
    acceleration to a fixed point. Acceleration only grows as fuel burns
    and is capped by the g ceiling, so the iteration settles quickly.
    """
    m0 = ship.mass_kg
    accel = ship.accel_at(m0)
    converged = True
    fa = fb = fuel = 0.0

    for _ in range(max_iter):
        fa, fb = ratios(accel, T)
        dv = accel * (fa + fb) * T
        fuel = fuel_for_delta_v(m0, dv, ship.isp_s) if ship.tracks_fuel else 0.0
        next_accel = ship.accel_at(m0 - 0.5 * fuel if m0 else None)
        if abs(next_accel - accel) <= tol * max(next_accel, 1e-12):
            accel = next_accel
            break
        accel = next_accel
    else:
        converged = False

    fa, fb = ratios(accel, T)
    ta = fa * T
    tb = fb * T
    peak = accel * ta
    arrival = max(0.0, peak - accel * tb)
    distance = accel * T * T * (fa - 0.5 * fa * fa - 0.5 * fb * fb)
    dv = accel * (ta + tb)
    if ship.tracks_fuel:
        fuel = fuel_for_delta_v(m0, dv, ship.isp_s)

    return BurnProfile(
        transfer_time_s=T,
        accel_ms2=accel,
        accel_time_s=ta,
        coast_time_s=max(0.0, T - ta - tb),
        brake_time_s=tb,
        peak_speed_ms=peak,
        arrival_speed_ms=arrival,
        distance_m=distance,
        delta_v_ms=dv,
        fuel_kg=fuel,
        converged=converged,
    )


def solve_transfer_time(
    residual: Callable[[float], float],
    t_start: float,
    t_limit: float,
    xtol: float = 1.0,
    max_iter: int = 100,
) -> tuple[float | None, bool]:
    """Find the transfer time at which ``residual`` (covered - required) turns non-negative.

    The bracket grows by doubling from ``t_start`` until the sign changes or
    ``t_limit`` is passed, then Brent's method refines it. Returns
    ``(None, False)`` when no bracket exists and ``(best, False)`` when
    Brent's method exhausts ``max_iter``.
    """
    lo = t_start
    f_lo = residual(lo)
    if f_lo >= 0.0:
        return lo, True

    hi = lo
    while True:
        if hi >= t_limit:
            return None, False
        hi = min(hi * 2.0, t_limit)
        f_hi = residual(hi)
        if not math.isfinite(f_hi):
            return None, False
        if f_hi >= 0.0:
            break
        lo, f_lo = hi, f_hi

    if f_hi == 0.0:
        return hi, True

    root, info = brentq(residual, lo, hi, xtol=xtol, maxiter=max_iter, full_output=True, disp=False)
    if not info.converged:
        logger.warning("Transfer-time search stopped after %d iterations (%s)", info.iterations, info.flag)
    return root, info.converged

"""Tsiolkovsky rocket equation helpers.

Masses in kg, specific impulse in s, thrust in N, delta-v in m/s.
Each helper returns 0 for non-physical inputs instead of propagating NaN.
"""

from __future__ import annotations

import math

from numba import njit

from system.bodies import G0


@njit(cache=True)
def delta_v(isp_s: float, m_wet: float, m_dry: float) -> float:
    """Delta-v Isp * g0 * ln(m_wet / m_dry)."""
    if isp_s <= 0.0 or m_dry <= 0.0 or m_wet <= m_dry:
        return 0.0
    return isp_s * G0 * math.log(m_wet / m_dry)


@njit(cache=True)
def fuel_for_delta_v(m_wet: float, dv: float, isp_s: float) -> float:
    """Propellant mass m_wet - m_wet / exp(dv / (Isp * g0)) needed for ``dv``."""
    if isp_s <= 0.0 or dv <= 0.0 or m_wet <= 0.0:
        return 0.0
    return m_wet - m_wet / math.exp(dv / (isp_s * G0))


@njit(cache=True)
def delta_v_for_fuel(m_wet: float, fuel_kg: float, isp_s: float) -> float:
    """Delta-v gained by burning ``fuel_kg`` out of ``m_wet``."""
    if fuel_kg <= 0.0:
        return 0.0
    return delta_v(isp_s, m_wet, m_wet - min(fuel_kg, m_wet))


@njit(cache=True)
def mass_flow(thrust_n: float, isp_s: float) -> float:
    """Propellant mass rate F / (Isp * g0) in kg/s."""
    if thrust_n <= 0.0 or isp_s <= 0.0:
        return 0.0
    return thrust_n / (isp_s * G0)


@njit(cache=True)
def burn_time(dv: float, m_wet: float, thrust_n: float, isp_s: float) -> float:
    """Seconds of full thrust needed to deliver ``dv``."""
    rate = mass_flow(thrust_n, isp_s)
    if rate <= 0.0:
        return 0.0
    return fuel_for_delta_v(m_wet, dv, isp_s) / rate


def oberth_capture_delta_v(v_inf: float, mu: float, r_m: float) -> float:
    """Burn at periapsis ``r_m`` turning an approach at ``v_inf`` into a circular orbit."""
    if mu <= 0.0 or r_m <= 0.0:
        return 0.0
    return abs(math.sqrt(v_inf * v_inf + 2.0 * mu / r_m) - math.sqrt(mu / r_m))

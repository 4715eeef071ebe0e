"""Stellar zones: radiation, condensation and habitability radii around a star.

Every temperature line is placed by the flux it receives, so a compact host
(white dwarf, neutron star, black hole) with a tiny radius but an explicit
luminosity or radiation output still yields well-defined zones.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from config import DEFAULT_RULES, RulePack
from system.bodies import AU_KM, AU_M, SOLAR_RADIUS_KM, SOLAR_TEMPERATURE_K, Node

logger = logging.getLogger("orrery.zones")

_SOLAR_RADIUS_AU = SOLAR_RADIUS_KM / AU_KM

ZONE_ORDER = (
    "roche_limit", "rock_line", "kill_zone", "danger_zone",
    "habitable_inner", "habitable_outer", "frost_line", "co2_line", "co_line", "system_limit",
)


@dataclass(frozen=True, slots=True)
class StellarZones:
    """Radii in AU, non-decreasing in ``ZONE_ORDER``."""

    luminosity_solar: float
    roche_limit: float
    rock_line: float
    kill_zone: float
    danger_zone: float
    habitable_inner: float
    habitable_outer: float
    soot_line: float
    frost_line: float
    co2_line: float
    co_line: float
    system_limit: float


def luminosity_solar(star: Node) -> float:
    """Bolometric luminosity in solar units, (R/R_sun)^2 (T/T_sun)^4 unless given."""
    if star.luminosity_solar is not None:
        return max(0.0, star.luminosity_solar)
    if star.radius_km <= 0.0 or star.temperature_k <= 0.0:
        return 0.0
    return (star.radius_km / SOLAR_RADIUS_KM) ** 2 * (star.temperature_k / SOLAR_TEMPERATURE_K) ** 4


def equilibrium_distance_au(teq_k: float, luminosity: float) -> float:
    """Distance at which a blackbody sits at ``teq_k``: (R_sun/2)(T_sun/Teq)^2 sqrt(L)."""
    if teq_k <= 0.0 or luminosity <= 0.0:
        return 0.0
    return 0.5 * _SOLAR_RADIUS_AU * (SOLAR_TEMPERATURE_K / teq_k) ** 2 * math.sqrt(luminosity)


def uv_factor(spectral_class: str, rules: RulePack = DEFAULT_RULES) -> float:
    key = spectral_class.strip()[:1].upper()
    return rules.zones.uv_factors.get(key, rules.zones.default_uv_factor)


def _effective_flux(coefficients: list[float], teff_k: float, rules: RulePack) -> float:
    s_sun, a, b, c, d = coefficients
    zc = rules.zones
    t = min(max(teff_k, zc.habitable_teff_min_k), zc.habitable_teff_max_k) - SOLAR_TEMPERATURE_K
    return s_sun + a * t + b * t**2 + c * t**3 + d * t**4


def habitable_zone(teff_k: float, luminosity: float, rules: RulePack = DEFAULT_RULES) -> tuple[float, float]:
    """Runaway- and maximum-greenhouse limits sqrt(L / S_eff) in AU."""
    if luminosity <= 0.0:
        return 0.0, 0.0
    teff = teff_k if teff_k > 0.0 else SOLAR_TEMPERATURE_K
    s_inner = _effective_flux(rules.zones.habitable_inner_coefficients, teff, rules)
    s_outer = _effective_flux(rules.zones.habitable_outer_coefficients, teff, rules)
    inner = math.sqrt(luminosity / s_inner) if s_inner > 0.0 else 0.0
    outer = math.sqrt(luminosity / s_outer) if s_outer > 0.0 else 0.0
    return inner, outer


def roche_limit_au(mass_kg: float, satellite_density_kg_m3: float) -> float:
    """Fluid Roche limit for a satellite of the given density, cbrt(3M / (2 pi rho))."""
    if mass_kg <= 0.0 or satellite_density_kg_m3 <= 0.0:
        return 0.0
    return math.cbrt(3.0 * mass_kg / (2.0 * math.pi * satellite_density_kg_m3)) / AU_M


def stellar_zones(star: Node, rules: RulePack = DEFAULT_RULES) -> StellarZones:
    """Compute the zone radii around ``star``.

    Ordering is enforced with a running maximum, so degenerate hosts collapse
    adjacent zones instead of inverting them. The soot line, which can fall
    on either side of the habitable zone, is clamped between the rock and
    frost lines.
    """
    zc = rules.zones
    L = luminosity_solar(star)

    rock = equilibrium_distance_au(zc.rock_line_k, L)
    soot = equilibrium_distance_au(zc.soot_line_k, L)
    frost = equilibrium_distance_au(zc.frost_line_k, L)
    co2 = equilibrium_distance_au(zc.co2_line_k, L)
    co = equilibrium_distance_au(zc.co_line_k, L)

    exposure = uv_factor(star.spectral_class, rules) * max(0.0, star.radiation_output) * L
    kill = zc.kill_zone_coefficient * math.sqrt(exposure)
    danger = kill * zc.danger_zone_multiplier

    hz_inner, hz_outer = habitable_zone(star.temperature_k, L, rules)
    roche = roche_limit_au(star.mass_kg, zc.roche_density_kg_m3)

    raw = (roche, rock, kill, danger, hz_inner, hz_outer, frost, co2, co, co * zc.system_limit_factor)
    ordered = []
    running = 0.0
    for value in raw:
        running = max(running, value)
        ordered.append(running)
    values = dict(zip(ZONE_ORDER, ordered))

    if any(b < a for a, b in zip(raw, raw[1:])):
        logger.debug("Zone radii for '%s' collapsed to preserve ordering", star.id)

    return StellarZones(
        luminosity_solar=L,
        soot_line=min(max(soot, values["rock_line"]), values["frost_line"]),
        **values,
    )


def zone_at(zones: StellarZones, distance_au: float) -> str:
    """Innermost named zone containing ``distance_au``."""
    for name in ZONE_ORDER:
        if distance_au < getattr(zones, name):
            return name
    return "interstellar"

"""Orbital altitude bands around a body.

The usable altitude range runs from the lowest stable orbit (set by the
atmosphere or the surface) up to the sphere of influence. Because that range
spans several orders of magnitude, bands are carved geometrically rather than
linearly. All altitudes are measured above the surface, in km.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from config import DEFAULT_RULES, RulePack
from errors import InputError
from mechanics.transforms import au_to_km, km_to_au
from system.bodies import G, GAS_CONSTANT, Node
from system.snapshot import SystemSnapshot

logger = logging.getLogger("orrery.boundaries")

ORBIT_PLACEMENTS = ("lo", "mo", "ho", "geo")

_NON_GRAVITATING = frozenset({"belt", "ring", "construct"})


@dataclass(frozen=True, slots=True)
class OrbitalBoundaries:
    surface_km: float | None  # None when the body has no solid surface
    min_leo_km: float
    leo_meo_km: float
    meo_heo_km: float
    heo_upper_km: float
    geostationary_km: float | None
    is_geo_fallback: bool
    soi_km: float  # sphere of influence radius from the body centre


# --------------------------------------------------------------------------- #
#  Helpers
# --------------------------------------------------------------------------- #
def hill_sphere(a_km: float, mass_kg: float, host_mass_kg: float) -> float:
    """Hill sphere radius a * cbrt(m / 3M) in km; 0 around a massless host."""
    if host_mass_kg <= 0.0 or a_km <= 0.0 or mass_kg <= 0.0:
        return 0.0
    return a_km * math.cbrt(mass_kg / (3.0 * host_mass_kg))


def surface_gravity(body: Node) -> float:
    """Surface gravity in m/s^2."""
    r_m = body.radius_km * 1000.0
    if r_m <= 0.0:
        return 0.0
    return G * body.mass_kg / r_m**2


def sphere_of_influence_km(body: Node, rules: RulePack = DEFAULT_RULES) -> float:
    """Hill sphere of ``body`` about its orbital host.

    Bodies without a host (rogues) fall back to a fixed fraction of their
    distance, or of a nominal distance when they carry no orbit at all.
    """
    consts = rules.orbital
    if body.orbit is not None:
        a_km = au_to_km(body.orbit.elements.a_au)
        host_mass = body.orbit.host_mu / G
        if host_mass > 0.0:
            return hill_sphere(a_km, body.mass_kg, host_mass)
        return a_km * consts.rogue_soi_fraction
    return consts.rogue_host_distance_km * consts.rogue_soi_fraction


def _min_leo_km(body: Node, heo_upper_km: float, rules: RulePack) -> float:
    consts = rules.orbital
    g = surface_gravity(body)
    if not body.has_atmosphere(consts.negligible_atmosphere_pa) or g <= 0.0:
        return min(consts.no_atmosphere_leo_km, heo_upper_km * consts.airless_leo_soi_fraction)

    atm = body.atmosphere
    molar_mass = atm.molar_mass_kg if atm.molar_mass_kg > 0.0 else 0.029
    scale_height_m = GAS_CONSTANT * atm.surface_temp_k / (molar_mass * g)
    ratio = atm.pressure_pa / consts.target_orbital_pressure_pa
    if ratio <= 1.0:
        return 0.0
    return scale_height_m * math.log(ratio) / 1000.0


def _geostationary_km(body: Node) -> float | None:
    T = abs(body.rotation_period_s)
    if T <= 0.0 or body.mass_kg <= 0.0:
        return None
    r_m = math.cbrt(G * body.mass_kg * T * T / (4.0 * math.pi**2))
    return r_m / 1000.0 - body.radius_km


# --------------------------------------------------------------------------- #
#  Boundaries
# --------------------------------------------------------------------------- #
def orbital_boundaries(body: Node, rules: RulePack = DEFAULT_RULES) -> OrbitalBoundaries:
    """Compute altitude bands for ``body``.

    Parameters
    ----------
    body : planet, moon or star with mass, radius and (optionally) an orbit,
        a rotation period and an atmosphere
    rules : rule pack supplying the floor, fallback and micro-system constants

    Returns
    -------
    OrbitalBoundaries with min_leo <= leo_meo <= meo_heo <= heo_upper.
    """
    consts = rules.orbital
    surface_km = 0.0 if body.has_surface else None

    soi_km = sphere_of_influence_km(body, rules)
    heo_upper = max(0.1, soi_km - body.radius_km)

    min_leo = _min_leo_km(body, heo_upper, rules)
    if min_leo >= heo_upper:
        min_leo = heo_upper * consts.floor_buffer_fraction

    # A sphere of influence this small has room for a single low band
    if heo_upper < consts.micro_system_threshold_km:
        return OrbitalBoundaries(
            surface_km=surface_km,
            min_leo_km=min_leo,
            leo_meo_km=heo_upper,
            meo_heo_km=heo_upper,
            heo_upper_km=heo_upper,
            geostationary_km=None,
            is_geo_fallback=True,
            soi_km=soi_km,
        )

    floor = max(min_leo, 1e-3)

    def log_point(fraction: float) -> float:
        return floor * (heo_upper / floor) ** fraction

    geo = _geostationary_km(body)
    is_fallback = geo is None or geo < min_leo or geo > heo_upper
    leo_meo = log_point(1.0 / 3.0)
    if is_fallback:
        geo = min(max(consts.geo_fallback_soi_fraction * heo_upper, min_leo), heo_upper)
        meo_heo = log_point(2.0 / 3.0)
        logger.debug("GEO for '%s' outside [%.1f, %.1f] km; using fallback %.1f km",
                     body.id, min_leo, heo_upper, geo)
    else:
        meo_heo = geo
        if geo < leo_meo:
            leo_meo = math.sqrt(floor * geo)

    leo_meo = max(min_leo, min(leo_meo, heo_upper))
    meo_heo = max(leo_meo, min(meo_heo, heo_upper))

    return OrbitalBoundaries(
        surface_km=surface_km,
        min_leo_km=min_leo,
        leo_meo_km=leo_meo,
        meo_heo_km=meo_heo,
        heo_upper_km=heo_upper,
        geostationary_km=geo,
        is_geo_fallback=is_fallback,
        soi_km=soi_km,
    )


def boundaries_for(body: Node, rules: RulePack = DEFAULT_RULES) -> OrbitalBoundaries:
    """Precomputed boundaries from the snapshot, else computed on demand."""
    if body.orbital_boundaries is not None:
        return body.orbital_boundaries
    return orbital_boundaries(body, rules)


def placement_altitude_km(boundaries: OrbitalBoundaries, placement: str) -> float:
    """Altitude of a named parking placement (lo, mo, ho, geo or surface)."""
    if placement == "surface":
        if boundaries.surface_km is None:
            raise InputError("Body has no solid surface to land on")
        return boundaries.surface_km
    if placement == "lo":
        return boundaries.min_leo_km
    if placement == "mo":
        return 0.5 * (boundaries.leo_meo_km + boundaries.meo_heo_km)
    if placement == "ho":
        return 0.5 * (boundaries.meo_heo_km + boundaries.heo_upper_km)
    if placement == "geo":
        if boundaries.geostationary_km is None:
            raise InputError("Body has no geostationary band")
        return boundaries.geostationary_km
    raise InputError(f"Unknown orbit placement '{placement}'")


def classify_altitude(boundaries: OrbitalBoundaries, altitude_km: float) -> str:
    """Name the band containing ``altitude_km``."""
    if altitude_km <= 0.0 and boundaries.surface_km is not None:
        return "surface"
    if altitude_km <= boundaries.leo_meo_km:
        return "low"
    if altitude_km <= boundaries.meo_heo_km:
        return "medium"
    if altitude_km <= boundaries.heo_upper_km:
        return "high"
    return "escape"


# --------------------------------------------------------------------------- #
#  Dominant body
# --------------------------------------------------------------------------- #
def dominant_body(system: SystemSnapshot, position_au: np.ndarray, t: float) -> Node | None:
    """Body whose sphere of influence most tightly contains ``position_au``.

    Roots contain everything. Any other body reaches d * cbrt(m / 3M), with
    d its current distance to the massive ancestor it orbits. Belts, rings
    and constructs never dominate.
    """
    best: Node | None = None
    best_soi_au = math.inf
    for node in system:
        if node.kind in _NON_GRAVITATING:
            continue
        here = system.get_position(node.id, t)
        if node.parent_id is None:
            soi_au = math.inf
        else:
            host = system.gravitational_host(node.parent_id)
            if host is None:
                continue
            d_km = au_to_km(float(np.linalg.norm(here - system.get_position(host.id, t))))
            soi_au = km_to_au(hill_sphere(d_km, node.mass_kg, host.mass_kg))
        if float(np.linalg.norm(position_au - here)) > soi_au:
            continue
        if best is None or soi_au < best_soi_au:
            best, best_soi_au = node, soi_au
    return best

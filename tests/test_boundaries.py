from __future__ import annotations

import numpy as np
import pytest

from errors import InputError
from mechanics.boundaries import (
    OrbitalBoundaries,
    boundaries_for,
    classify_altitude,
    dominant_body,
    orbital_boundaries,
    placement_altitude_km,
    sphere_of_influence_km,
)
from system.bodies import AU_KM, G, Node, Orbit, OrbitalElements


def _monotonic(b: OrbitalBoundaries) -> bool:
    return b.min_leo_km <= b.leo_meo_km <= b.meo_heo_km <= b.heo_upper_km


def test_earth_bands(earth):
    b = orbital_boundaries(earth)
    assert _monotonic(b)
    assert b.surface_km == 0.0
    assert 150.0 < b.min_leo_km < 200.0  # scale-height floor
    assert b.geostationary_km == pytest.approx(35_793.0, abs=20.0)
    assert not b.is_geo_fallback
    assert b.meo_heo_km == b.geostationary_km
    assert b.soi_km == pytest.approx(1.4966e6, rel=1e-3)


def test_airless_moon_falls_back_for_geo(moon):
    b = orbital_boundaries(moon)
    assert _monotonic(b)
    assert b.min_leo_km == 30.0
    assert b.is_geo_fallback
    assert b.geostationary_km == pytest.approx(0.1 * b.heo_upper_km)


def test_micro_system_collapses_to_one_band():
    pebble = Node(
        id="pebble", kind="moon", parent_id="mars",
        orbit=Orbit(host_id="mars", host_mu=G * 6.4171e23, t0=0.0,
                    elements=OrbitalElements(a_au=10_000.0 / AU_KM)),
        mass_kg=1.0e15, radius_km=5.0,
    )
    b = orbital_boundaries(pebble)
    assert b.heo_upper_km < 1000.0
    assert b.leo_meo_km == b.meo_heo_km == b.heo_upper_km
    assert b.geostationary_km is None and b.is_geo_fallback
    assert b.min_leo_km < b.heo_upper_km
    with pytest.raises(InputError):
        placement_altitude_km(b, "geo")


def test_rogue_body_uses_nominal_distance():
    rogue = Node(id="rogue", kind="planet", mass_kg=1.0e25, radius_km=7000.0)
    assert sphere_of_influence_km(rogue) == pytest.approx(0.01 * AU_KM)


def test_placements_and_classification(earth):
    b = orbital_boundaries(earth)
    assert placement_altitude_km(b, "surface") == 0.0
    assert placement_altitude_km(b, "lo") == b.min_leo_km
    assert b.leo_meo_km <= placement_altitude_km(b, "mo") <= b.meo_heo_km
    assert b.meo_heo_km <= placement_altitude_km(b, "ho") <= b.heo_upper_km
    assert placement_altitude_km(b, "geo") == b.geostationary_km
    with pytest.raises(InputError):
        placement_altitude_km(b, "l9")

    assert classify_altitude(b, 0.0) == "surface"
    assert classify_altitude(b, 400.0) == "low"
    assert classify_altitude(b, 20_000.0) == "medium"
    assert classify_altitude(b, 100_000.0) == "high"
    assert classify_altitude(b, 2.0e6) == "escape"


def test_precomputed_boundaries_win(earth):
    fixed = OrbitalBoundaries(
        surface_km=0.0, min_leo_km=1.0, leo_meo_km=2.0, meo_heo_km=3.0, heo_upper_km=4.0,
        geostationary_km=None, is_geo_fallback=True, soi_km=10.0,
    )
    node = Node(id="x", kind="planet", mass_kg=1.0, radius_km=1.0, orbital_boundaries=fixed)
    assert boundaries_for(node) is fixed
    assert boundaries_for(earth).min_leo_km > 100.0


def test_dominant_body_picks_the_tightest_sphere(system):
    earth = system.get_position("earth", 0.0)
    moon = system.get_position("moon", 0.0)
    assert dominant_body(system, moon + np.array([0.0, 1.0e-4, 0.0]), 0.0).id == "moon"
    assert dominant_body(system, earth - np.array([0.005, 0.0, 0.0]), 0.0).id == "earth"
    assert dominant_body(system, np.array([0.0, 1.2, 0.0]), 0.0).id == "sun"
    # Belts never capture, even deep inside their band
    assert dominant_body(system, np.array([0.0, -2.7, 0.0]), 0.0).id == "sun"

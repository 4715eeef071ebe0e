from __future__ import annotations

import math

import numpy as np
import pytest

from errors import InputError
from mechanics.kepler import orbital_period
from mechanics.lagrange import LAGRANGE_NAMES, lagrange_points
from system.bodies import Node, Orbit, OrbitalElements
from system.snapshot import SystemSnapshot

from conftest import MU_SUN


def test_earth_l1_l2_bracket_the_planet(system):
    points = lagrange_points(system, "earth", 0.0)
    assert tuple(points) == LAGRANGE_NAMES
    earth = system.get_position("earth", 0.0)
    # Earth sits at +x, so sunward is -x
    assert points["L1"][0] == pytest.approx(earth[0] - 0.01, abs=5e-5)
    assert points["L2"][0] == pytest.approx(earth[0] + 0.01, abs=5e-5)
    assert np.allclose(points["L1"][1:], 0.0) and np.allclose(points["L2"][1:], 0.0)
    assert points["L3"][0] == pytest.approx(-1.0, abs=1e-5)


def test_trojan_points_lead_and_trail_by_sixty_degrees(system):
    points = lagrange_points(system, "earth", 0.0)
    for name, sign in (("L4", 1.0), ("L5", -1.0)):
        p = points[name]
        assert np.linalg.norm(p) == pytest.approx(1.0)
        assert math.atan2(p[1], p[0]) == pytest.approx(sign * math.pi / 3.0)


@pytest.mark.parametrize("retrograde", [False, True])
def test_l4_leads_along_direction_of_motion(sun, retrograde):
    orbit = Orbit(host_id="sun", host_mu=MU_SUN, t0=0.0,
                  elements=OrbitalElements(a_au=1.0), retrograde=retrograde)
    system = SystemSnapshot([sun, Node(id="p", kind="planet", parent_id="sun", mass_kg=1.0e24, orbit=orbit)])
    l4 = lagrange_points(system, "p", 0.0)["L4"]
    assert np.allclose(l4, system.get_position("p", orbital_period(orbit) / 6.0), atol=1e-9)


def test_moon_points_are_relative_to_earth(system):
    points = lagrange_points(system, "moon", 0.0)
    earth = system.get_position("earth", 0.0)
    moon = system.get_position("moon", 0.0)
    assert np.linalg.norm(points["L4"] - earth) == pytest.approx(np.linalg.norm(moon - earth))
    assert np.linalg.norm(points["L1"] - earth) < np.linalg.norm(moon - earth)


def test_lagrange_needs_an_orbit_and_masses(system):
    with pytest.raises(InputError):
        lagrange_points(system, "sun", 0.0)
    with pytest.raises(InputError):
        lagrange_points(system, "main-belt", 0.0)

from __future__ import annotations

import math

import numpy as np
import pytest

from conftest import MU_SUN, heliocentric
from errors import InputError
from mechanics.kepler import TWO_PI, orbit_from_state, orbital_period, propagate, solve_kepler
from system.bodies import AU_M, Orbit, OrbitalElements


@pytest.mark.parametrize("ecc", [0.0, 0.1, 0.5, 0.9, 0.99])
def test_solve_kepler_satisfies_equation(ecc):
    for M in (0.3, 2.0, math.pi, 5.5, -1.0, 12.0):
        E, converged = solve_kepler(M, ecc)
        assert converged
        assert abs(E - ecc * math.sin(E) - M % TWO_PI) < 1e-10


def test_propagation_closes_after_one_period():
    orbit = heliocentric(1.3, m0_rad=0.7, e=0.2, i_deg=5.0, omega_deg=30.0, raan_deg=80.0)
    period = orbital_period(orbit)
    r0, v0 = propagate(orbit, 0.0)
    r1, v1 = propagate(orbit, period)
    assert np.allclose(r0, r1, atol=1e-9)
    assert np.allclose(v0, v1, atol=1e-4)


def test_circular_speed_matches_vis_viva():
    r, v = propagate(heliocentric(1.0), 1.0e6)
    assert np.linalg.norm(r) == pytest.approx(1.0, rel=1e-12)
    assert np.linalg.norm(v) == pytest.approx(math.sqrt(MU_SUN / AU_M), rel=1e-9)


def test_pinned_orbit_stays_on_host():
    pinned = Orbit(host_id="sun", host_mu=0.0, t0=0.0, elements=OrbitalElements(a_au=2.0))
    r, v = propagate(pinned, 1.0e7)
    assert not r.any() and not v.any()
    assert orbital_period(pinned) == math.inf


def test_rate_override_moves_around_massless_anchor():
    orbit = Orbit(host_id="anchor", host_mu=0.0, t0=0.0, elements=OrbitalElements(a_au=2.0),
                  n_rad_per_s=TWO_PI / 1000.0)
    r, v = propagate(orbit, 250.0)
    assert r[0] == pytest.approx(0.0, abs=1e-12)
    assert r[1] == pytest.approx(2.0)
    assert np.linalg.norm(v) == pytest.approx(TWO_PI / 1000.0 * 2.0 * AU_M)
    assert orbital_period(orbit) == pytest.approx(1000.0)


def test_retrograde_orbit_runs_backwards():
    prograde = heliocentric(1.0)
    retrograde = Orbit(host_id="sun", host_mu=MU_SUN, t0=0.0,
                       elements=OrbitalElements(a_au=1.0), retrograde=True)
    assert propagate(prograde, 1.0e5)[0][1] > 0.0
    assert propagate(retrograde, 1.0e5)[0][1] < 0.0


def test_fixed_rate_override():
    orbit = Orbit(host_id="sun", host_mu=MU_SUN, t0=0.0, elements=OrbitalElements(a_au=1.0),
                  n_rad_per_s=TWO_PI / 1000.0)
    assert orbital_period(orbit) == pytest.approx(1000.0)
    r, _ = propagate(orbit, 250.0)
    assert r[0] == pytest.approx(0.0, abs=1e-12)
    assert r[1] == pytest.approx(1.0)


def test_orbit_from_state_reproduces_trajectory():
    source = heliocentric(1.2, m0_rad=1.0, e=0.3, i_deg=10.0, omega_deg=40.0, raan_deg=70.0)
    r, v = propagate(source, 5.0e6)
    fitted = orbit_from_state("sun", MU_SUN, r, v, 5.0e6)

    assert fitted.elements.a_au == pytest.approx(1.2, rel=1e-9)
    assert fitted.elements.e == pytest.approx(0.3, abs=1e-9)
    assert fitted.elements.i_deg == pytest.approx(10.0, abs=1e-7)
    assert np.allclose(propagate(fitted, 9.0e6)[0], propagate(source, 9.0e6)[0], atol=1e-9)


def test_orbit_from_state_rejects_unbound_states():
    with pytest.raises(InputError):
        orbit_from_state("sun", MU_SUN, np.array([1.0, 0.0, 0.0]), np.array([0.0, 60_000.0, 0.0]), 0.0)
    with pytest.raises(InputError):
        orbit_from_state("sun", 0.0, np.array([1.0, 0.0, 0.0]), np.array([0.0, 30_000.0, 0.0]), 0.0)


@pytest.mark.parametrize("elements", [
    dict(a_au=1.0, e=1.0),
    dict(a_au=-1.0),
    dict(a_au=float("nan")),
])
def test_invalid_elements_are_rejected(elements):
    with pytest.raises(InputError):
        OrbitalElements(**elements)

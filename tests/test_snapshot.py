from __future__ import annotations

import numpy as np
import pytest

from conftest import MU_SUN
from errors import InputError, UnknownNodeError
from mechanics.kepler import orbital_period, propagate
from system.bodies import Node, Orbit, OrbitalElements
from system.snapshot import SystemSnapshot


def test_duplicate_ids_are_rejected(sun):
    with pytest.raises(InputError):
        SystemSnapshot([sun, sun])


def test_unknown_node(system):
    with pytest.raises(UnknownNodeError):
        system.get("pluto")
    assert system.find("pluto") is None
    assert "earth" in system and len(system) == 5


def test_chain_and_ancestors(system):
    assert [n.id for n in system.chain("moon")] == ["moon", "earth", "sun"]
    assert system.common_ancestor("moon", "mars").id == "sun"
    assert system.common_ancestor("moon", "earth").id == "earth"
    assert system.gravitational_host("moon").id == "moon"
    assert system.host_star("moon").id == "sun"
    assert {n.id for n in system.children("sun")} == {"earth", "mars", "main-belt"}


def test_dangling_parent_and_cycles():
    orphan = SystemSnapshot([Node(id="a", kind="planet", parent_id="ghost")])
    with pytest.raises(UnknownNodeError):
        orphan.chain("a")

    looped = SystemSnapshot([
        Node(id="a", kind="planet", parent_id="b"),
        Node(id="b", kind="planet", parent_id="a"),
    ])
    with pytest.raises(InputError, match="cycle"):
        looped.chain("a")


def test_absolute_state_sums_the_chain(system, earth, moon):
    t = 3.3e6
    r, v = system.get_state("moon", t)
    r_earth, v_earth = propagate(earth.orbit, t)
    r_moon, v_moon = propagate(moon.orbit, t)
    assert np.allclose(r, r_earth + r_moon)
    assert np.allclose(v, v_earth + v_moon)
    assert not system.get_position("sun", t).any()


def test_offset_anomaly_leaves_original_untouched(system):
    shifted = system.with_offset_anomaly("mars", np.radians(60.0))
    before = system.get_position("mars", 0.0)
    after = shifted.get_position("mars", 0.0)
    assert np.allclose(before, [1.5, 0.0, 0.0])
    assert after[0] == pytest.approx(0.75)
    assert after[1] == pytest.approx(1.5 * np.sin(np.radians(60.0)))
    with pytest.raises(InputError):
        system.with_offset_anomaly("sun", 1.0)


@pytest.mark.parametrize("retrograde", [False, True])
def test_offset_anomaly_leads_along_direction_of_motion(sun, retrograde):
    orbit = Orbit(host_id="sun", host_mu=MU_SUN, t0=0.0,
                  elements=OrbitalElements(a_au=1.0), retrograde=retrograde)
    system = SystemSnapshot([sun, Node(id="p", kind="planet", parent_id="sun", orbit=orbit)])
    sixth = orbital_period(orbit) / 6.0
    leading = system.with_offset_anomaly("p", np.radians(60.0))
    assert np.allclose(leading.get_position("p", 0.0), system.get_position("p", sixth), atol=1e-9)

"""Shared fixtures: a small Sun / Earth / Moon / Mars system and ship figures."""

from __future__ import annotations

import pytest

from propulsion.construct import Construct, EngineDef, EngineMount, FuelDef, FuelTank, Module
from system.bodies import AU_KM, G, SOLAR_MASS_KG, Atmosphere, Node, Orbit, OrbitalElements
from system.snapshot import SystemSnapshot

EARTH_MASS_KG = 5.9722e24
MU_SUN = G * SOLAR_MASS_KG
MU_EARTH = G * EARTH_MASS_KG


def heliocentric(a_au: float, m0_rad: float = 0.0, **elements) -> Orbit:
    return Orbit(host_id="sun", host_mu=MU_SUN, t0=0.0,
                 elements=OrbitalElements(a_au=a_au, m0_rad=m0_rad, **elements))


@pytest.fixture
def sun() -> Node:
    return Node(
        id="sun", kind="star", name="Sun",
        mass_kg=SOLAR_MASS_KG, radius_km=696_340.0,
        temperature_k=5772.0, spectral_class="G2V",
    )


@pytest.fixture
def earth() -> Node:
    return Node(
        id="earth", kind="planet", name="Earth", parent_id="sun",
        orbit=heliocentric(1.0),
        mass_kg=EARTH_MASS_KG, radius_km=6371.0, rotation_period_s=86_164.1,
        atmosphere=Atmosphere(pressure_bar=1.01325, surface_temp_k=288.0, molar_mass_kg=0.029),
    )


@pytest.fixture
def moon() -> Node:
    return Node(
        id="moon", kind="moon", name="Moon", parent_id="earth",
        orbit=Orbit(host_id="earth", host_mu=MU_EARTH, t0=0.0,
                    elements=OrbitalElements(a_au=384_400.0 / AU_KM)),
        mass_kg=7.342e22, radius_km=1737.4, rotation_period_s=2_360_591.5,
    )


@pytest.fixture
def mars() -> Node:
    # Aligned with Earth at t = 0
    return Node(
        id="mars", kind="planet", name="Mars", parent_id="sun",
        orbit=heliocentric(1.5),
        mass_kg=6.4171e23, radius_km=3389.5, rotation_period_s=88_642.7,
        atmosphere=Atmosphere(pressure_bar=0.006, surface_temp_k=210.0, molar_mass_kg=0.0434),
    )


@pytest.fixture
def belt() -> Node:
    return Node(
        id="main-belt", kind="belt", name="Main Belt", parent_id="sun",
        inner_radius_km=2.2 * AU_KM, outer_radius_km=3.2 * AU_KM,
    )


@pytest.fixture
def system(sun, earth, moon, mars, belt) -> SystemSnapshot:
    return SystemSnapshot([sun, earth, moon, mars, belt])


@pytest.fixture
def engine_defs() -> dict[str, EngineDef]:
    return {
        "torch": EngineDef(id="torch", thrust_kn=200.0, isp_s=4000.0, fuel_type_id="hydrogen",
                           atmo_efficiency=0.5, mass_kg=5_000.0),
        "chem": EngineDef(id="chem", thrust_kn=100.0, isp_s=300.0, fuel_type_id="hydrolox",
                          mass_kg=1_000.0),
        "rcs": EngineDef(id="rcs", thrust_kn=1.0, isp_s=200.0, fuel_type_id="hydrolox",
                         mass_kg=50.0, is_main=False),
    }


@pytest.fixture
def fuel_defs() -> dict[str, FuelDef]:
    return {
        "hydrogen": FuelDef(id="hydrogen", density_kg_per_unit=70.0),
        "hydrolox": FuelDef(id="hydrolox", density_kg_per_unit=1_000.0),
    }


@pytest.fixture
def construct() -> Construct:
    return Construct(
        id="tug",
        hull_mass_kg=400_000.0,
        engines=(EngineMount("torch", 1), EngineMount("rcs", 4)),
        fuel_tanks=(FuelTank("hydrogen", capacity_units=2_000.0, current_units=1_000.0),),
        modules=(Module("reactor", mass_kg=20_000.0, power_output_mw=50.0, power_draw_mw=5.0),),
        crew_count=4,
        provisions_person_days=400.0,
        cargo_mass_kg=10_000.0,
        can_aerobrake=True,
        thermal_protection="ceramic",
        spin_radius_m=50.0,
        spin_period_s=15.0,
    )

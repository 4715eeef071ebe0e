from __future__ import annotations

import math
from dataclasses import replace

import pytest

from errors import InputError
from propulsion.construct import Construct, EngineMount, FuelTank
from propulsion.rocket import (
    burn_time,
    delta_v,
    delta_v_for_fuel,
    fuel_for_delta_v,
    mass_flow,
    oberth_capture_delta_v,
)
from propulsion.specs import aerobrake_delta_v, aerobrake_limit_ms, construct_specs, surface_budgets
from system.bodies import G0


def test_rocket_equation_inverts():
    fuel = fuel_for_delta_v(100_000.0, 5_000.0, 350.0)
    assert delta_v(350.0, 100_000.0, 100_000.0 - fuel) == pytest.approx(5_000.0, rel=1e-12)
    assert burn_time(5_000.0, 100_000.0, 1.0e6, 350.0) == pytest.approx(fuel / mass_flow(1.0e6, 350.0))


ISP = 4_000.0


@pytest.mark.parametrize("dv", [1.0, 10.0, 1.0e3, 1.0e4, ISP * G0, 10.0 * ISP * G0])
def test_rocket_equation_inverts_across_scales(dv):
    m_wet = 250_000.0
    fuel = fuel_for_delta_v(m_wet, dv, ISP)
    assert 0.0 < fuel < m_wet
    assert delta_v(ISP, m_wet, m_wet - fuel) == pytest.approx(dv, rel=1e-9)
    assert delta_v_for_fuel(m_wet, fuel, ISP) == pytest.approx(dv, rel=1e-9)


def test_zero_delta_v_needs_no_fuel():
    assert fuel_for_delta_v(250_000.0, 0.0, ISP) == 0.0
    assert delta_v(ISP, 250_000.0, 250_000.0) == 0.0
    assert delta_v_for_fuel(250_000.0, 0.0, ISP) == 0.0


def test_rocket_helpers_guard_nonphysical_inputs():
    assert delta_v(0.0, 10.0, 5.0) == 0.0
    assert delta_v(300.0, 5.0, 10.0) == 0.0
    assert fuel_for_delta_v(10.0, -1.0, 300.0) == 0.0
    assert mass_flow(1000.0, 0.0) == 0.0


def test_oberth_capture_from_rest_is_circularization():
    mu, r = 3.986e14, 6.771e6
    assert oberth_capture_delta_v(0.0, mu, r) == pytest.approx((math.sqrt(2.0) - 1.0) * math.sqrt(mu / r))
    assert oberth_capture_delta_v(1000.0, 0.0, r) == 0.0


def test_construct_rollup(construct, engine_defs, fuel_defs):
    specs = construct_specs(construct, engine_defs, fuel_defs)

    assert specs.dry_mass_kg == pytest.approx(426_400.0)
    assert specs.fuel_mass_kg == pytest.approx(70_000.0)
    assert specs.total_mass_kg == pytest.approx(506_400.0)
    assert specs.total_thrust_n == pytest.approx(200_000.0)  # attitude thrusters excluded
    assert specs.avg_isp_s == pytest.approx(4000.0)
    assert specs.atmo_isp_s == pytest.approx(2000.0)
    assert specs.total_delta_v_ms == pytest.approx(4000.0 * G0 * math.log(506_400.0 / 436_400.0))
    assert specs.max_vacuum_g == pytest.approx(200_000.0 / (506_400.0 * G0))
    assert specs.power_surplus_mw == pytest.approx(45.0)
    assert specs.endurance_days == 100
    assert specs.simulated_g == pytest.approx(4.0 * math.pi**2 * 50.0 / 225.0 / G0)
    assert specs.aerobrake_limit_ms == 12_000.0
    assert specs.surface_twr == 0.0 and not specs.can_lift_off


def test_isp_is_thrust_weighted_harmonic_mean(construct, engine_defs, fuel_defs):
    mixed = Construct(id="mixed", hull_mass_kg=10_000.0,
                      engines=(EngineMount("torch"), EngineMount("chem")))
    specs = construct_specs(mixed, engine_defs, fuel_defs)
    assert specs.avg_isp_s == pytest.approx(300_000.0 / (200_000.0 / 4000.0 + 100_000.0 / 300.0))


def test_unknown_catalog_ids_contribute_nothing(engine_defs, fuel_defs):
    ghost = Construct(id="ghost", hull_mass_kg=1_000.0,
                      engines=(EngineMount("warp-drive"),),
                      fuel_tanks=(FuelTank("unobtainium", 10.0, 10.0),))
    specs = construct_specs(ghost, engine_defs, fuel_defs)
    assert specs.total_thrust_n == 0.0
    assert specs.fuel_mass_kg == 0.0
    assert specs.total_delta_v_ms == 0.0


def test_surface_budgets(earth, moon, sun):
    earth_budget = surface_budgets(earth)
    assert earth_budget.ascent_ms > earth_budget.propulsive_land_ms > earth_budget.aerobrake_land_ms
    assert 9_500.0 < earth_budget.ascent_ms < 11_500.0

    moon_budget = surface_budgets(moon)
    assert moon_budget.aerobrake_land_ms is None
    assert moon_budget.ascent_ms == moon_budget.propulsive_land_ms
    assert surface_budgets(sun) is None


def test_landing_fuel_on_host(construct, engine_defs, fuel_defs, moon):
    specs = construct_specs(construct, engine_defs, fuel_defs, host_body=moon)
    assert specs.surface_twr > 0.0
    assert specs.takeoff_fuel_kg > 0.0
    assert specs.aerobrake_land_fuel_kg is None
    assert specs.round_trip_fuel_kg > specs.takeoff_fuel_kg


def test_aerobraking_split(construct):
    assert aerobrake_delta_v(5_000.0, 3_000.0, True, True) == (2_000.0, 3_000.0)
    assert aerobrake_delta_v(5_000.0, 3_000.0, False, True) == (5_000.0, 0.0)
    assert aerobrake_delta_v(5_000.0, 3_000.0, True, False) == (5_000.0, 0.0)
    assert aerobrake_limit_ms(construct) == 12_000.0


def test_invalid_construct_data():
    with pytest.raises(InputError):
        FuelTank("hydrogen", capacity_units=10.0, current_units=20.0)
    with pytest.raises(InputError):
        Construct(id="bad", hull_mass_kg=-1.0)


def test_landing_needs_gear_and_a_surface(construct, engine_defs, fuel_defs, moon, sun):
    lander = replace(construct, has_landing_gear=True)
    assert construct_specs(lander, engine_defs, fuel_defs, host_body=moon).can_land
    assert not construct_specs(construct, engine_defs, fuel_defs, host_body=moon).can_land
    assert not construct_specs(lander, engine_defs, fuel_defs).can_land
    assert not construct_specs(lander, engine_defs, fuel_defs, host_body=sun).can_land

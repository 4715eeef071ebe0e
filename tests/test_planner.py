from __future__ import annotations

import math
from dataclasses import replace

import numpy as np
import pytest

from config import RulePack, TransitConstants
from errors import InputError, UnknownNodeError
from planner.archetypes import ArrivalTarget, PlanArchetype, economy_burn_fraction, fast_ratios
from planner.engine import (
    ManeuverParams,
    MissionLeg,
    chain_params,
    parking_orbit,
    plan_mission,
    transit_plan,
)
from planner.profile import ShipModel, burn_profile, solve_transfer_time
from propulsion.construct import Construct, EngineMount, FuelTank
from propulsion.specs import construct_specs, surface_budgets
from system.bodies import AU_KM, G0, Node
from system.snapshot import SystemSnapshot

from conftest import heliocentric

DAY = 86_400.0


def _by_type(result, archetype):
    return next(p for p in result.plans if p.archetype is archetype)


# --------------------------------------------------------------------------- #
#  Profile and solver
# --------------------------------------------------------------------------- #
def test_symmetric_burn_profile():
    ship = ShipModel(max_g=1.0)
    profile = burn_profile(1.0e5, fast_ratios(ArrivalTarget(0.0, "rendezvous")), ship)
    assert profile.accel_time_s == pytest.approx(5.0e4)
    assert profile.arrival_speed_ms == pytest.approx(0.0, abs=1e-6)
    assert profile.distance_m == pytest.approx(G0 * 1.0e10 / 4.0)
    assert profile.distance_at(1.0e5) == pytest.approx(profile.distance_m)
    assert profile.delta_v_ms == pytest.approx(G0 * 1.0e5)
    assert profile.fuel_kg == 0.0


def test_thrust_limited_ship_accelerates_as_fuel_burns():
    ship = ShipModel(max_g=1.0, mass_kg=100_000.0, isp_s=3000.0, thrust_n=10_000.0)
    profile = burn_profile(1.0e6, fast_ratios(ArrivalTarget(0.0, "rendezvous")), ship)
    assert profile.converged
    assert profile.accel_ms2 > 0.1  # F / m0
    expected_fuel = 100_000.0 * (1.0 - math.exp(-profile.delta_v_ms / (3000.0 * G0)))
    assert profile.fuel_kg == pytest.approx(expected_fuel)
    assert profile.accel_ms2 == pytest.approx(10_000.0 / (100_000.0 - 0.5 * profile.fuel_kg), rel=1e-6)


def test_solver_brackets_and_refines():
    T, converged = solve_transfer_time(lambda t: t - 1234.5, 60.0, 1.0e6, xtol=1e-6)
    assert converged and T == pytest.approx(1234.5, abs=1e-5)
    assert solve_transfer_time(lambda t: -1.0, 60.0, 1.0e6) == (None, False)


def test_economy_fraction():
    f, clamped = economy_burn_fraction(1.0e9, 1.0, 1.0e6, True, 0.001, 0.5)
    assert f == pytest.approx((1.0 - math.sqrt(1.0 - 4.0e-3)) / 2.0)
    assert not clamped
    f, clamped = economy_burn_fraction(1.0, 1.0, 1.0e6, True, 0.001, 0.5)
    assert f == 0.001 and clamped


# --------------------------------------------------------------------------- #
#  Transit planning
# --------------------------------------------------------------------------- #
def test_heavy_torch_ship_to_mars(system):
    """500 t ship, 4000 s Isp, 200 kN: only the coast-dominated transfer is practical."""
    params = ManeuverParams(max_g=1.0, ship_mass_kg=510_000.0, ship_isp_s=4000.0,
                            ship_thrust_n=200_000.0, fuel_available_kg=10_000.0)
    result = transit_plan(system, "earth", "mars", 0.0, "fast", params)

    fast = _by_type(result, PlanArchetype.FAST)
    assert not fast.visible and fast.total_delta_v_ms > 100_000.0

    best = result.best()
    assert best is result.plans[0]
    assert best.archetype is PlanArchetype.ECONOMY
    assert 1_000.0 <= best.total_delta_v_ms <= 50_000.0
    assert best.is_insufficient_fuel
    assert "HOHMANN-OPTIMAL" in best.tags
    assert result.hidden_count == len(result.plans) - 1
    assert best.final_mass_kg == pytest.approx(510_000.0 - best.total_fuel_kg)
    assert any(w.startswith("Fuel on board covers") for w in best.segments[-1].warnings)


def test_preferred_mode_leads_visible_plans(system):
    params = ManeuverParams(max_g=0.001)
    result = transit_plan(system, "earth", "mars", 0.0, "speed", params)
    visible = result.visible
    assert visible and visible[0].archetype is PlanArchetype.SPEED
    assert all(p.visible for p in result.plans[:len(visible)])


def test_segments_are_contiguous(system):
    result = transit_plan(system, "earth", "mars", 1.0e6, params=ManeuverParams(max_g=0.01))
    for plan in result.plans:
        segs = plan.segments
        assert np.array_equal(segs[0].path_points[0], plan.departure_state.position_au)
        assert np.array_equal(segs[-1].path_points[-1], plan.arrival_state.position_au)
        for prev, nxt in zip(segs, segs[1:]):
            assert prev.end_time == nxt.start_time
            assert np.array_equal(prev.path_points[-1], nxt.path_points[0])
        assert plan.end_time == pytest.approx(segs[-1].end_time)
        assert plan.arrival_velocity_ms == pytest.approx(0.0, abs=1e-3)


def test_planning_is_deterministic(system):
    params = ManeuverParams(max_g=0.05, ship_mass_kg=1.0e6, ship_isp_s=900.0, ship_thrust_n=2.0e6)
    a = transit_plan(system, "earth", "mars", 5.0e5, params=params)
    b = transit_plan(system, "earth", "mars", 5.0e5, params=params)
    assert [p.id for p in a] == [p.id for p in b]
    assert [p.total_time_s for p in a] == [p.total_time_s for p in b]
    assert [p.total_delta_v_ms for p in a] == [p.total_delta_v_ms for p in b]


def test_intercept_and_flyby(system):
    intercept = transit_plan(system, "earth", "mars", 0.0,
                             params=ManeuverParams(max_g=0.01, intercept_speed_ms=5_000.0))
    fast = _by_type(intercept, PlanArchetype.FAST)
    assert fast.arrival_mode == "intercept"
    assert fast.arrival_velocity_ms == pytest.approx(5_000.0, rel=1e-6)
    assert "FLYBY" in fast.tags

    flyby = transit_plan(system, "earth", "mars", 0.0,
                         params=ManeuverParams(max_g=0.01, brake_at_arrival=False))
    fast = _by_type(flyby, PlanArchetype.FAST)
    assert fast.arrival_mode == "flyby"
    assert [s.kind for s in fast.segments] == ["accelerate"]
    assert fast.insertion_delta_v_ms == 0.0


def test_aerobrake_arrival(system):
    params = ManeuverParams(max_g=0.01, aerobrake=True)
    fast = _by_type(transit_plan(system, "earth", "mars", 0.0, params=params), PlanArchetype.FAST)
    assert fast.arrival_mode == "aerobrake"
    assert "AEROBRAKE" in fast.tags
    assert fast.segments[-1].kind == "aerobrake"
    assert fast.arrival_velocity_ms == pytest.approx(3_000.0, rel=1e-6)
    assert fast.aerobrake_delta_v_ms == pytest.approx(3_000.0, rel=1e-6)
    assert np.array_equal(fast.segments[-1].path_points[-1], fast.arrival_state.position_au)

    # The Moon has no atmosphere: the flag is ignored
    moon_plan = transit_plan(system, "earth", "moon", 0.0, params=params).plans[0]
    assert moon_plan.arrival_mode == "rendezvous"


def test_parking_orbit_insertion(system, moon):
    params = ManeuverParams(max_g=0.5, arrival_placement="lo")
    result = transit_plan(system, "earth", "moon", 0.0, "fast", params)
    plan = _by_type(result, PlanArchetype.FAST)
    assert plan.insertion_delta_v_ms > 0.0
    assert plan.total_delta_v_ms == pytest.approx(
        plan.insertion_delta_v_ms + sum(s.delta_v_ms for s in plan.segments))

    orbit = parking_orbit(plan, system)
    assert orbit is not None and orbit.host_id == "moon"
    assert orbit.elements.a_au * AU_KM == pytest.approx(moon.radius_km + 30.0, rel=1e-3)
    assert orbit.elements.e < 1e-3


def test_surface_landing_costs_the_landing_budget(system, moon):
    params = ManeuverParams(max_g=0.5, arrival_placement="surface")
    plan = _by_type(transit_plan(system, "earth", "moon", 0.0, params=params), PlanArchetype.FAST)
    assert plan.insertion_delta_v_ms == pytest.approx(surface_budgets(moon).propulsive_land_ms)
    assert parking_orbit(plan, system) is None

    gearless = replace(params, has_landing_gear=False)
    hidden = _by_type(transit_plan(system, "earth", "moon", 0.0, params=gearless), PlanArchetype.FAST)
    assert hidden.hidden_reason == "Surface arrival needs landing gear"
    assert hidden.insertion_delta_v_ms == plan.insertion_delta_v_ms


def test_lagrange_placement_targets_the_offset_point(system):
    params = ManeuverParams(max_g=0.01, arrival_placement="l4")
    plan = _by_type(transit_plan(system, "earth", "mars", 0.0, params=params), PlanArchetype.FAST)
    l4 = system.with_offset_anomaly("mars", math.radians(60.0)).get_position("mars", plan.end_time)
    assert np.linalg.norm(plan.arrival_state.position_au - l4) < 1e-6
    assert plan.insertion_delta_v_ms == 0.0


def test_sundiver_tag(system):
    far_side = Node(id="venus", kind="planet", parent_id="sun",
                    orbit=heliocentric(0.72, m0_rad=math.pi), mass_kg=4.8675e24, radius_km=6051.8)
    crossing = SystemSnapshot([*system, far_side])
    plan = _by_type(transit_plan(crossing, "earth", "venus", 0.0, params=ManeuverParams(max_g=1.0)),
                    PlanArchetype.FAST)
    assert "SUNDIVER" in plan.tags
    assert any("AU from Sun" in w for w in plan.segments[0].warnings)


def test_high_g_and_low_limits(system):
    rules = RulePack(transit=TransitConstants(max_practical_delta_v_ms=1.0))
    result = transit_plan(system, "earth", "mars", 0.0, params=ManeuverParams(max_g=3.0), rules=rules)
    assert result.plans and result.best() is None
    assert result.hidden_count == len(result.plans)
    assert all("HIGH-G" in p.tags for p in result.plans if p.archetype is PlanArchetype.FAST)


def test_unreachable_target_reports_error(system):
    rules = RulePack(transit=TransitConstants(max_transfer_time_s=3_600.0))
    result = transit_plan(system, "earth", "mars", 0.0, params=ManeuverParams(max_g=0.001), rules=rules)
    assert len(result) == 0
    assert "No transfer" in result.error


def test_invalid_requests(system):
    with pytest.raises(InputError):
        transit_plan(system, "earth", "earth", 0.0)
    with pytest.raises(UnknownNodeError):
        transit_plan(system, "earth", "pluto", 0.0)
    with pytest.raises(InputError):
        transit_plan(system, "earth", "mars", 0.0, mode="warp")
    with pytest.raises(InputError):
        ManeuverParams(max_g=0.0)
    with pytest.raises(InputError):
        ManeuverParams(arrival_placement="l3")


def test_params_from_specs(construct, engine_defs, fuel_defs):
    specs = construct_specs(construct, engine_defs, fuel_defs)
    params = ManeuverParams.from_specs(specs, can_aerobrake=True, max_g=0.5)
    assert params.ship_mass_kg == specs.total_mass_kg
    assert params.fuel_available_kg == specs.fuel_mass_kg
    assert params.aerobrake_limit_ms == 12_000.0
    assert params.max_g == 0.5


def test_ship_without_engines_gets_no_feasible_plan(system, engine_defs, fuel_defs):
    ghost = Construct(id="ghost", hull_mass_kg=1_000.0,
                      engines=(EngineMount("warp-drive"),),
                      fuel_tanks=(FuelTank("unobtainium", 10.0, 10.0),))
    params = ManeuverParams.from_specs(construct_specs(ghost, engine_defs, fuel_defs), max_g=1.0)
    assert params.ship_thrust_n == 0.0
    assert params.fuel_available_kg == 0.0

    result = transit_plan(system, "earth", "mars", 0.0, params=params)
    assert result.plans
    assert result.best() is None
    for plan in result.plans:
        assert plan.hidden_reason.startswith("No thrust")
        assert plan.is_insufficient_fuel


def test_empty_tanks_flag_a_kinematic_plan(system):
    result = transit_plan(system, "earth", "mars", 0.0,
                          params=ManeuverParams(max_g=0.01, fuel_available_kg=0.0))
    assert all(p.is_insufficient_fuel for p in result.plans)


# --------------------------------------------------------------------------- #
#  Chained legs
# --------------------------------------------------------------------------- #
def test_chained_leg_departs_from_previous_arrival(system):
    params = ManeuverParams(max_g=0.01, ship_mass_kg=1.0e6, ship_isp_s=100_000.0,
                            fuel_available_kg=5.0e5)
    first = transit_plan(system, "earth", "mars", 0.0, params=params).best()
    follow = chain_params(first, params)
    second = transit_plan(system, "mars", "earth", first.end_time, params=follow).best()

    assert np.array_equal(second.departure_state.position_au, first.arrival_state.position_au)
    assert second.initial_mass_kg == pytest.approx(first.final_mass_kg)
    assert follow.fuel_available_kg == pytest.approx(5.0e5 - first.total_fuel_kg)


def test_mission_with_dwell(system):
    legs = [MissionLeg("mars"), MissionLeg("earth", dwell_s=10 * DAY)]
    plans = plan_mission(system, "earth", legs, 0.0, ManeuverParams(max_g=0.01))
    assert len(plans) == 2
    assert plans[1].start_time == pytest.approx(plans[0].end_time + 10 * DAY)
    drift = system.get_position("mars", plans[1].start_time) - system.get_position("mars", plans[0].end_time)
    assert np.allclose(plans[1].departure_state.position_au, plans[0].arrival_state.position_au + drift)

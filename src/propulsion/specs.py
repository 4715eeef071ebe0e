"""Construct performance roll-up: mass, thrust, delta-v and landing budgets."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Mapping

from config import DEFAULT_RULES, RulePack
from mechanics.boundaries import surface_gravity
from propulsion.construct import Construct, EngineDef, FuelDef, lookup
from propulsion.rocket import delta_v, fuel_for_delta_v
from system.bodies import G0, Node

logger = logging.getLogger("orrery.specs")


@dataclass(frozen=True, slots=True)
class SurfaceBudgets:
    """Delta-v (m/s) to reach low orbit from the surface and to come back down."""

    ascent_ms: float
    propulsive_land_ms: float
    aerobrake_land_ms: float | None  # None without a usable atmosphere


@dataclass(frozen=True, slots=True)
class ConstructSpecs:
    dry_mass_kg: float
    fuel_mass_kg: float
    cargo_mass_kg: float
    total_mass_kg: float
    total_thrust_n: float
    atmo_thrust_n: float
    avg_isp_s: float
    atmo_isp_s: float
    max_vacuum_g: float
    max_takeoff_g: float
    total_delta_v_ms: float
    atmo_delta_v_ms: float
    surface_twr: float
    can_lift_off: bool
    can_land: bool  # landing gear and a solid surface to set down on
    takeoff_fuel_kg: float
    propulsive_land_fuel_kg: float
    aerobrake_land_fuel_kg: float | None
    round_trip_fuel_kg: float
    aerobrake_limit_ms: float
    power_surplus_mw: float
    endurance_days: float | None  # None: indefinite (no crew to feed)
    simulated_g: float


# --------------------------------------------------------------------------- #
#  Surface budgets
# --------------------------------------------------------------------------- #
def surface_budgets(body: Node | None) -> SurfaceBudgets | None:
    """Ascent and landing delta-v for a planet or moon with a solid surface.

    Gravity losses grow with pressure (a thick atmosphere keeps the ascent
    slow) and drag losses with pressure^0.6. Aerobraked landings cost only a
    de-orbit burn plus a terminal burn that thins out in dense air.
    """
    if body is None or body.kind not in ("planet", "moon") or not body.has_surface:
        return None
    g = surface_gravity(body)
    if g <= 0.0:
        return None

    pressure_bar = body.atmosphere.pressure_bar if body.atmosphere is not None else 0.0
    v_orbit = math.sqrt(g * body.radius_km * 1000.0)

    pressure_penalty = math.log10(pressure_bar) * 0.1 if pressure_bar > 1.0 else 0.0
    gravity_loss = v_orbit * (0.15 + pressure_penalty)
    drag_loss = 1300.0 * pressure_bar**0.6 if pressure_bar > 0.001 else 0.0

    if pressure_bar < 0.001:
        aerobrake_land = None
    else:
        aerobrake_land = 150.0 + 1000.0 * math.exp(-0.5 * pressure_bar) + 50.0

    return SurfaceBudgets(
        ascent_ms=v_orbit + gravity_loss + drag_loss,
        propulsive_land_ms=v_orbit + gravity_loss,
        aerobrake_land_ms=aerobrake_land,
    )


# --------------------------------------------------------------------------- #
#  Aerobraking
# --------------------------------------------------------------------------- #
def aerobrake_limit_ms(construct: Construct, rules: RulePack = DEFAULT_RULES) -> float:
    """Maximum entry speed the construct can shed in an atmosphere."""
    if construct.aerobrake_limit_ms is not None:
        return max(0.0, construct.aerobrake_limit_ms)
    limits = rules.performance.thermal_limits_kms
    key = construct.thermal_protection.lower()
    if key not in limits:
        logger.warning("Unknown thermal protection '%s'; using 'none'", construct.thermal_protection)
        key = "none"
    return limits.get(key, 0.0) * 1000.0


def aerobrake_delta_v(
    required_ms: float,
    limit_ms: float,
    capable: bool,
    has_atmosphere: bool,
) -> tuple[float, float]:
    """Split a required arrival delta-v into (propulsive, shed by aerobraking)."""
    if not capable or not has_atmosphere or limit_ms <= 0.0 or required_ms <= 0.0:
        return max(0.0, required_ms), 0.0
    shed = min(required_ms, limit_ms)
    return required_ms - shed, shed


# --------------------------------------------------------------------------- #
#  Roll-up
# --------------------------------------------------------------------------- #
def construct_specs(
    construct: Construct,
    engine_defs: Mapping[str, EngineDef],
    fuel_defs: Mapping[str, FuelDef],
    host_body: Node | None = None,
    rules: RulePack = DEFAULT_RULES,
) -> ConstructSpecs:
    """Roll up a construct's performance figures.

    Specific impulse is combined as the thrust-weighted harmonic mean
    sum(F) / sum(F / Isp), i.e. total thrust over total propellant mass flow,
    so mixed engines give a consistent combined delta-v.
    """
    perf = rules.performance

    engine_mass = 0.0
    thrust = atmo_thrust = 0.0
    flow = atmo_flow = 0.0  # sum(F / Isp), proportional to mass flow
    power_draw = 0.0
    for mount in construct.engines:
        engine = lookup(engine_defs, mount.engine_id, "engine")
        if engine is None or mount.quantity <= 0:
            continue
        engine_mass += engine.mass_kg * mount.quantity
        power_draw += engine.power_draw_mw * mount.quantity
        if not engine.is_main or engine.isp_s <= 0.0:
            continue
        f = engine.thrust_kn * 1000.0 * mount.quantity
        f_atmo = f * engine.atmo_efficiency
        thrust += f
        atmo_thrust += f_atmo
        flow += f / engine.isp_s
        if engine.atmo_efficiency > 0.0:
            atmo_flow += f_atmo / (engine.isp_s * engine.atmo_efficiency)

    avg_isp = thrust / flow if flow > 0.0 else 0.0
    atmo_isp = atmo_thrust / atmo_flow if atmo_flow > 0.0 else 0.0

    fuel_mass = 0.0
    for tank in construct.fuel_tanks:
        fuel = lookup(fuel_defs, tank.fuel_type_id, "fuel")
        if fuel is not None:
            fuel_mass += tank.current_units * fuel.density_kg_per_unit

    module_mass = sum(m.mass_kg for m in construct.modules)
    power_out = sum(m.power_output_mw for m in construct.modules)
    power_draw += sum(m.power_draw_mw for m in construct.modules)

    crew_mass = (construct.crew_count * perf.crew_member_mass_kg
                 + construct.provisions_person_days * perf.provisions_kg_per_person_day)
    dry = construct.hull_mass_kg + engine_mass + module_mass + crew_mass
    empty = dry + construct.cargo_mass_kg
    total = empty + fuel_mass

    max_vacuum_g = thrust / (total * G0) if total > 0.0 else 0.0
    max_takeoff_g = atmo_thrust / (total * G0) if total > 0.0 else 0.0

    g_surface = surface_gravity(host_body) if host_body is not None else 0.0
    twr = atmo_thrust / (total * g_surface) if total > 0.0 and g_surface > 0.0 else 0.0

    # Landing and takeoff fuel
    budgets = surface_budgets(host_body)
    takeoff_fuel = land_fuel = round_trip = 0.0
    aero_land_fuel = None
    if budgets is not None:
        takeoff_fuel = fuel_for_delta_v(total, budgets.ascent_ms, atmo_isp)
        land_fuel = fuel_for_delta_v(total, budgets.propulsive_land_ms, avg_isp)
        can_aero = construct.can_aerobrake and budgets.aerobrake_land_ms is not None
        if can_aero:
            aero_land_fuel = fuel_for_delta_v(total, budgets.aerobrake_land_ms, avg_isp)
        return_budget = budgets.propulsive_land_ms
        if can_aero:
            return_budget = min(return_budget, budgets.aerobrake_land_ms)
        round_trip = takeoff_fuel + fuel_for_delta_v(total - takeoff_fuel, return_budget, avg_isp)

    if construct.crew_count > 0:
        endurance = math.floor(construct.provisions_person_days / construct.crew_count)
    else:
        endurance = None

    if construct.spin_period_s > 0.0:
        spin_accel = 4.0 * math.pi**2 * construct.spin_radius_m / construct.spin_period_s**2
        simulated_g = spin_accel / G0
    else:
        simulated_g = 0.0

    return ConstructSpecs(
        dry_mass_kg=dry,
        fuel_mass_kg=fuel_mass,
        cargo_mass_kg=construct.cargo_mass_kg,
        total_mass_kg=total,
        total_thrust_n=thrust,
        atmo_thrust_n=atmo_thrust,
        avg_isp_s=avg_isp,
        atmo_isp_s=atmo_isp,
        max_vacuum_g=max_vacuum_g,
        max_takeoff_g=max_takeoff_g,
        total_delta_v_ms=delta_v(avg_isp, total, empty),
        atmo_delta_v_ms=delta_v(atmo_isp, total, empty),
        surface_twr=twr,
        can_lift_off=twr > 1.0 + perf.liftoff_twr_margin,
        can_land=construct.has_landing_gear and budgets is not None,
        takeoff_fuel_kg=takeoff_fuel,
        propulsive_land_fuel_kg=land_fuel,
        aerobrake_land_fuel_kg=aero_land_fuel,
        round_trip_fuel_kg=round_trip,
        aerobrake_limit_ms=aerobrake_limit_ms(construct, rules),
        power_surplus_mw=power_out - power_draw,
        endurance_days=endurance,
        simulated_g=simulated_g,
    )

"""Transit planning engine: enumerate archetypes, solve, refine and tag plans.

Pipeline per request:
  1. geometry    - departure state from the ancestor chain (or a carried-over state)
  2. archetypes  - Economy / Fast / Speed presets over one solver
  3. solve       - transfer time where covered distance meets the moving target
  4. arrival     - insertion burn for parking orbits, landings, L4/L5 offsets, aerobraking
  5. feasibility - delta-v ceiling and fuel checks annotate, never delete
  6. segments    - sampled straight-line accelerate / coast / brake track
  7. annotation  - per-segment fuel and hazard tags
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace

import numpy as np

from config import DEFAULT_RULES, RulePack
from errors import InputError
from mechanics.boundaries import ORBIT_PLACEMENTS, boundaries_for, placement_altitude_km
from mechanics.kepler import orbit_from_state
from mechanics.transforms import au_to_m, distance_to_segment, km_to_au, m_to_au, unit_vector
from mechanics.zones import stellar_zones
from planner.archetypes import (
    ARCHETYPE_ORDER,
    PRESET_NAMES,
    ArrivalTarget,
    PlanArchetype,
    economy_burn_fraction,
    economy_ratios,
    fast_ratios,
    parse_archetype,
    speed_ratios,
)
from planner.profile import BurnProfile, ShipModel, burn_profile, solve_transfer_time
from planner.segments import (
    StateVector,
    TransitPlan,
    TransitResult,
    annotate_fuel,
    append_aerobrake,
    build_segments,
)
from propulsion.rocket import delta_v_for_fuel, fuel_for_delta_v, oberth_capture_delta_v
from propulsion.specs import ConstructSpecs, aerobrake_delta_v, surface_budgets
from system.bodies import SECONDS_PER_DAY, Node, Orbit
from system.snapshot import SystemSnapshot

logger = logging.getLogger("orrery.planner")

LAGRANGE_PLACEMENTS = ("l4", "l5")
PLACEMENTS = ORBIT_PLACEMENTS + ("surface",) + LAGRANGE_PLACEMENTS


@dataclass
class ManeuverParams:
    """Caller-controlled maneuver settings for one leg."""

    max_g: float = 1.0
    accel_ratio: float = 0.25
    brake_ratio: float = 0.25
    burn_coast_ratio: float | None = None
    intercept_speed_ms: float | None = None
    brake_at_arrival: bool = True
    aerobrake: bool = False
    can_aerobrake: bool = True
    has_landing_gear: bool = True
    aerobrake_limit_ms: float | None = None
    ship_mass_kg: float | None = None
    ship_isp_s: float | None = None
    ship_thrust_n: float | None = None
    fuel_available_kg: float | None = None
    initial_state: StateVector | None = None
    arrival_placement: str | None = None
    parking_orbit_radius_km: float | None = None

    def __post_init__(self) -> None:
        if not math.isfinite(self.max_g) or self.max_g <= 0.0:
            raise InputError(f"max_g must be positive, got {self.max_g}")
        for name in ("accel_ratio", "brake_ratio"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise InputError(f"{name} must be within [0, 1], got {value}")
        if self.burn_coast_ratio is not None and not 0.0 < self.burn_coast_ratio <= 1.0:
            raise InputError(f"burn_coast_ratio must be within (0, 1], got {self.burn_coast_ratio}")
        if self.intercept_speed_ms is not None and self.intercept_speed_ms < 0.0:
            raise InputError("intercept_speed_ms cannot be negative")
        for name in ("ship_mass_kg", "ship_isp_s", "parking_orbit_radius_km"):
            value = getattr(self, name)
            if value is not None and (not math.isfinite(value) or value <= 0.0):
                raise InputError(f"{name} must be positive when given, got {value}")
        # Zero thrust is a ship without working main engines
        if self.ship_thrust_n is not None and (not math.isfinite(self.ship_thrust_n) or self.ship_thrust_n < 0.0):
            raise InputError(f"ship_thrust_n cannot be negative, got {self.ship_thrust_n}")
        if self.fuel_available_kg is not None and self.fuel_available_kg < 0.0:
            raise InputError("fuel_available_kg cannot be negative")
        if self.arrival_placement is not None:
            self.arrival_placement = self.arrival_placement.lower()
            if self.arrival_placement not in PLACEMENTS:
                raise InputError(f"Unknown arrival placement '{self.arrival_placement}'")

    @classmethod
    def from_specs(
        cls, specs: ConstructSpecs, can_aerobrake: bool = False, has_landing_gear: bool = True, **overrides,
    ) -> ManeuverParams:
        """Fill ship figures from a construct roll-up."""
        values = dict(
            ship_mass_kg=specs.total_mass_kg or None,
            ship_isp_s=specs.avg_isp_s or None,
            ship_thrust_n=specs.total_thrust_n,
            fuel_available_kg=specs.fuel_mass_kg,
            can_aerobrake=can_aerobrake,
            has_landing_gear=has_landing_gear,
            aerobrake_limit_ms=specs.aerobrake_limit_ms,
        )
        values.update(overrides)
        return cls(**values)


def chain_params(plan: TransitPlan, params: ManeuverParams) -> ManeuverParams:
    """Parameters for the next leg, departing from where ``plan`` arrives."""
    fuel_left = params.fuel_available_kg
    if fuel_left is not None:
        fuel_left = max(0.0, fuel_left - plan.total_fuel_kg)
    return replace(
        params,
        initial_state=plan.arrival_state,
        ship_mass_kg=plan.final_mass_kg if plan.final_mass_kg else params.ship_mass_kg,
        fuel_available_kg=fuel_left,
    )


# --------------------------------------------------------------------------- #
#  Request context
# --------------------------------------------------------------------------- #
@dataclass
class _Leg:
    system: SystemSnapshot
    target_view: SystemSnapshot
    origin: Node
    target: Node
    start_time: float
    r0: np.ndarray
    v0: np.ndarray
    standoff_m: float
    arrival: ArrivalTarget
    aerobrake_limit_ms: float
    ship: ShipModel
    hohmann_s: float
    hohmann_distance_m: float
    thrustless: bool = False

    def target_position(self, T: float) -> np.ndarray:
        return self.target_view.get_position(self.target.id, self.start_time + T)

    def required(self, T: float) -> tuple[float, np.ndarray]:
        """Straight-line distance (m) to the arrival point and its direction."""
        delta = self.target_position(T) - self.r0
        dist_m = au_to_m(float(np.linalg.norm(delta)))
        return max(0.0, dist_m - self.standoff_m), unit_vector(delta)


def _standoff_km(target: Node, params: ManeuverParams, rules: RulePack) -> float:
    """Distance from the target centre at which the ship stops."""
    if params.parking_orbit_radius_km is not None:
        return params.parking_orbit_radius_km
    placement = params.arrival_placement
    if placement is None or placement in LAGRANGE_PLACEMENTS:
        return 0.0
    boundaries = boundaries_for(target, rules)
    return target.radius_km + placement_altitude_km(boundaries, placement)


def _arrival_target(target: Node, params: ManeuverParams, limit_ms: float, rules: RulePack) -> ArrivalTarget:
    if params.intercept_speed_ms is not None and params.intercept_speed_ms > 0.0:
        return ArrivalTarget(params.intercept_speed_ms, "intercept")
    if params.brake_at_arrival:
        atmosphere = target.has_atmosphere(rules.orbital.negligible_atmosphere_pa)
        if params.aerobrake and params.can_aerobrake and atmosphere and limit_ms > 0.0:
            return ArrivalTarget(limit_ms, "aerobrake")
        return ArrivalTarget(0.0, "rendezvous")
    return ArrivalTarget(None, "flyby")


def _hohmann_context(leg: _Leg) -> tuple[float, float]:
    """Hohmann time around the common massive host and the distance due then."""
    system = leg.system
    common = system.common_ancestor(leg.origin.id, leg.target.id)
    host = system.gravitational_host(common.id) if common is not None else None
    if host is None or host.mu <= 0.0:
        return 0.0, 0.0

    host_pos = system.get_position(host.id, leg.start_time)
    floor_au = km_to_au(host.radius_km)
    r1 = max(float(np.linalg.norm(leg.r0 - host_pos)), floor_au)
    r2 = max(float(np.linalg.norm(leg.target_position(0.0) - host_pos)), floor_au)
    a_m = au_to_m(0.5 * (r1 + r2))
    if a_m <= 0.0:
        return 0.0, 0.0
    t_h = math.pi * math.sqrt(a_m**3 / host.mu)
    return t_h, leg.required(t_h)[0]


def _ratios_for(archetype: PlanArchetype, leg: _Leg, params: ManeuverParams, rules: RulePack):
    tc = rules.transit
    if archetype is PlanArchetype.FAST:
        return fast_ratios(leg.arrival)
    if archetype is PlanArchetype.SPEED:
        return speed_ratios(params.accel_ratio, params.brake_ratio, params.burn_coast_ratio, leg.arrival)

    symmetric = leg.arrival.speed_ms is not None

    def fraction_for(accel: float) -> float:
        if leg.hohmann_s <= 0.0:
            return tc.economy_fallback_burn_fraction
        fraction, _ = economy_burn_fraction(
            leg.hohmann_distance_m, accel, leg.hohmann_s, symmetric,
            tc.economy_min_burn_fraction, tc.economy_max_burn_fraction,
        )
        return fraction

    return economy_ratios(fraction_for, leg.arrival)


# --------------------------------------------------------------------------- #
#  Plan assembly
# --------------------------------------------------------------------------- #
def _insertion_delta_v(leg: _Leg, params: ManeuverParams, profile: BurnProfile) -> float:
    if leg.arrival.mode == "flyby":
        return 0.0
    placement = params.arrival_placement
    target = leg.target
    if placement == "surface" and params.parking_orbit_radius_km is None:
        budgets = surface_budgets(target)
        if budgets is None:
            logger.warning("No landing budget for '%s'; landing costs nothing extra", target.id)
            return 0.0
        if leg.arrival.mode == "aerobrake" and budgets.aerobrake_land_ms is not None:
            return budgets.aerobrake_land_ms
        return budgets.propulsive_land_ms
    if leg.standoff_m <= 0.0:
        return 0.0
    v_inf = 0.0 if leg.arrival.mode == "aerobrake" else profile.arrival_speed_ms
    return oberth_capture_delta_v(v_inf, target.mu, leg.standoff_m)


def _assemble_plan(
    archetype: PlanArchetype,
    leg: _Leg,
    params: ManeuverParams,
    profile: BurnProfile,
    solver_converged: bool,
    rules: RulePack,
) -> TransitPlan:
    tc = rules.transit
    T = profile.transfer_time_s
    _, direction = leg.required(T)

    segments, arrival_pos = build_segments(leg.start_time, leg.r0, direction, profile, tc.path_points_per_segment)

    aerobrake_dv = 0.0
    if leg.arrival.mode == "aerobrake":
        _, aerobrake_dv = aerobrake_delta_v(profile.arrival_speed_ms, leg.aerobrake_limit_ms, True, True)
        append_aerobrake(segments, arrival_pos, tc.aerobrake_window_s, aerobrake_dv, tc.aerobrake_g_factor, direction)

    insertion = _insertion_delta_v(leg, params, profile)
    mass_after = annotate_fuel(segments, leg.ship.mass_kg, leg.ship.isp_s)
    insertion_fuel = 0.0
    if leg.ship.tracks_fuel and mass_after:
        insertion_fuel = fuel_for_delta_v(mass_after, insertion, leg.ship.isp_s)
    total_fuel = sum(seg.fuel_kg for seg in segments) + insertion_fuel
    final_mass = leg.ship.mass_kg - total_fuel if leg.ship.mass_kg else None

    end_time = segments[-1].end_time
    _, target_v = leg.target_view.get_state(leg.target.id, end_time)
    residual_speed = 0.0 if leg.arrival.mode in ("rendezvous", "aerobrake") else profile.arrival_speed_ms
    arrival_state = StateVector(arrival_pos.copy(), target_v + direction * residual_speed)

    total_dv = profile.delta_v_ms + insertion
    max_g = max(seg.g_load for seg in segments)

    plan = TransitPlan(
        id=f"{leg.origin.id}->{leg.target.id}:{archetype.value}:{leg.start_time:.0f}",
        origin_id=leg.origin.id,
        target_id=leg.target.id,
        archetype=archetype,
        name=PRESET_NAMES[archetype],
        start_time=leg.start_time,
        segments=segments,
        total_time_s=end_time - leg.start_time,
        total_delta_v_ms=total_dv,
        total_fuel_kg=total_fuel,
        arrival_velocity_ms=profile.arrival_speed_ms,
        max_g=max_g,
        accel_ratio=profile.accel_time_s / T if T > 0.0 else 0.0,
        brake_ratio=profile.brake_time_s / T if T > 0.0 else 0.0,
        distance_au=m_to_au(profile.distance_m),
        insertion_delta_v_ms=insertion,
        aerobrake_delta_v_ms=aerobrake_dv,
        departure_state=StateVector(leg.r0.copy(), leg.v0.copy()),
        arrival_state=arrival_state,
        initial_mass_kg=leg.ship.mass_kg,
        final_mass_kg=final_mass,
        arrival_mode=leg.arrival.mode,
        arrival_placement=params.arrival_placement,
        converged=solver_converged and profile.converged,
    )

    # Feasibility
    if total_dv > tc.max_practical_delta_v_ms:
        plan.hidden_reason = (
            f"Delta-v {total_dv / 1000.0:.1f} km/s exceeds the practical limit of "
            f"{tc.max_practical_delta_v_ms / 1000.0:.0f} km/s"
        )
    if leg.thrustless:
        plan.hidden_reason = "No thrust: the ship has no working main engines"
        plan.is_insufficient_fuel = total_dv > 0.0
    elif params.fuel_available_kg is not None:
        if leg.ship.tracks_fuel:
            plan.is_insufficient_fuel = total_fuel > params.fuel_available_kg
        else:
            plan.is_insufficient_fuel = params.fuel_available_kg <= 0.0 and total_dv > 0.0

    if params.arrival_placement == "surface" and not params.has_landing_gear and plan.hidden_reason is None:
        plan.hidden_reason = "Surface arrival needs landing gear"

    if plan.is_insufficient_fuel and leg.ship.tracks_fuel and not leg.thrustless:
        reach = delta_v_for_fuel(leg.ship.mass_kg, params.fuel_available_kg, leg.ship.isp_s)
        segments[-1].warnings.append(
            f"Fuel on board covers {reach / 1000.0:.1f} of {total_dv / 1000.0:.1f} km/s"
        )

    _tag_plan(plan, archetype, leg, profile, rules)
    return plan


def _tag_plan(plan: TransitPlan, archetype: PlanArchetype, leg: _Leg, profile: BurnProfile, rules: RulePack) -> None:
    tc = rules.transit
    system = leg.system

    star = system.host_star(leg.origin.id)
    if star is not None and star.id not in (leg.origin.id, leg.target.id):
        zones = stellar_zones(star, rules)
        star_pos = system.get_position(star.id, leg.start_time)
        closest = distance_to_segment(star_pos, plan.departure_state.position_au, plan.arrival_state.position_au)
        if closest < zones.danger_zone:
            plan.tags.append("SUNDIVER")
            for seg in plan.segments:
                seg.warnings.append(f"Track passes {closest:.3f} AU from {star.display_name}")

    if plan.max_g > tc.high_g_threshold:
        plan.tags.append("HIGH-G")
        for seg in plan.segments:
            if seg.g_load > tc.high_g_threshold:
                seg.warnings.append(f"High-G: {seg.g_load:.1f} g")

    if leg.arrival.mode in ("flyby", "intercept") and plan.arrival_velocity_ms > 0.0:
        plan.tags.append("FLYBY")
    if leg.arrival.mode == "aerobrake":
        plan.tags.append("AEROBRAKE")
    if archetype is PlanArchetype.ECONOMY and leg.hohmann_s > 0.0:
        _, clamped = economy_burn_fraction(
            leg.hohmann_distance_m, profile.accel_ms2, leg.hohmann_s, leg.arrival.speed_ms is not None,
            tc.economy_min_burn_fraction, tc.economy_max_burn_fraction,
        )
        drift = abs(profile.transfer_time_s - leg.hohmann_s) / leg.hohmann_s
        if not clamped and drift <= tc.hohmann_optimal_tolerance:
            plan.tags.append("HOHMANN-OPTIMAL")
    if not plan.converged:
        plan.tags.append("LOW-CONFIDENCE")


def _dedup(plans: list[TransitPlan], preferred: PlanArchetype | None, tolerance_days: float) -> list[TransitPlan]:
    """Collapse Speed and Fast when they describe the same transfer."""
    by_type = {p.archetype: p for p in plans}
    fast = by_type.get(PlanArchetype.FAST)
    speed = by_type.get(PlanArchetype.SPEED)
    if fast is None or speed is None:
        return plans
    if abs(fast.total_time_days - speed.total_time_days) >= tolerance_days:
        return plans
    drop = fast if preferred is PlanArchetype.SPEED else speed
    logger.debug("Dropping duplicate %s plan", drop.archetype.value)
    return [p for p in plans if p is not drop]


# --------------------------------------------------------------------------- #
#  Entry point
# --------------------------------------------------------------------------- #
def transit_plan(
    system: SystemSnapshot,
    origin_id: str,
    target_id: str,
    start_time: float,
    mode: str | PlanArchetype | None = None,
    params: ManeuverParams | None = None,
    rules: RulePack = DEFAULT_RULES,
) -> TransitResult:
    """Plan candidate transfers from ``origin_id`` to ``target_id``.

    Parameters
    ----------
    system : snapshot holding both endpoints and their ancestor chains
    origin_id, target_id : node ids; must differ and exist
    start_time : departure epoch in seconds
    mode : preferred archetype, listed first among visible plans; None for no preference
    params : maneuver settings; defaults to a 1 g kinematic rendezvous
    rules : rule pack

    Returns
    -------
    TransitResult with visible plans first and hidden ones after. When no
    archetype converges the plan list is empty and ``error`` explains why.
    """
    params = params or ManeuverParams()
    if not origin_id or not target_id:
        raise InputError("Origin and target ids are required")
    if origin_id == target_id:
        raise InputError("Origin and target must be different nodes")
    if not math.isfinite(start_time):
        raise InputError(f"Departure time must be finite, got {start_time}")
    origin = system.get(origin_id)
    target = system.get(target_id)
    try:
        preferred = parse_archetype(mode)
    except ValueError:
        raise InputError(f"Unknown plan mode '{mode}'") from None

    tc = rules.transit

    # 1. Geometry
    if params.initial_state is not None:
        r0 = np.array(params.initial_state.position_au, dtype=np.float64)
        v0 = np.array(params.initial_state.velocity_ms, dtype=np.float64)
    else:
        r0, v0 = system.get_state(origin_id, start_time)

    target_view = system
    if params.arrival_placement in LAGRANGE_PLACEMENTS:
        if target.orbit is None:
            raise InputError(f"Target '{target_id}' has no orbit and therefore no {params.arrival_placement.upper()} point")
        sign = 1.0 if params.arrival_placement == "l4" else -1.0
        target_view = system.with_offset_anomaly(target_id, sign * math.radians(rules.orbital.lagrange_offset_deg))

    # Without engines the track is still laid out at the g ceiling, then hidden
    thrustless = params.ship_thrust_n is not None and params.ship_thrust_n <= 0.0

    limit = params.aerobrake_limit_ms
    if limit is None:
        limit = rules.performance.thermal_limits_kms.get("none", 0.0) * 1000.0

    leg = _Leg(
        system=system,
        target_view=target_view,
        origin=origin,
        target=target,
        start_time=start_time,
        r0=r0,
        v0=v0,
        standoff_m=_standoff_km(target, params, rules) * 1000.0,
        arrival=_arrival_target(target, params, limit, rules),
        aerobrake_limit_ms=limit,
        ship=ShipModel(
            max_g=params.max_g,
            mass_kg=params.ship_mass_kg,
            isp_s=params.ship_isp_s,
            thrust_n=None if thrustless else params.ship_thrust_n,
        ),
        hohmann_s=0.0,
        hohmann_distance_m=0.0,
        thrustless=thrustless,
    )
    leg.hohmann_s, leg.hohmann_distance_m = _hohmann_context(leg)

    # 2-7. Solve every archetype through the shared solver
    plans: list[TransitPlan] = []
    failures: list[str] = []
    for archetype in ARCHETYPE_ORDER:
        ratios = _ratios_for(archetype, leg, params, rules)

        def residual(T: float) -> float:
            profile = burn_profile(T, ratios, leg.ship, tc.mass_max_iter, tc.mass_tolerance)
            return profile.distance_m - leg.required(T)[0]

        T, converged = solve_transfer_time(
            residual, tc.min_transfer_time_s, tc.max_transfer_time_s, tc.solver_xtol_s, tc.solver_max_iter,
        )
        if T is None:
            logger.warning("%s transfer %s -> %s found no solution", archetype.value, origin_id, target_id)
            failures.append(f"{archetype.value}: target unreachable within {tc.max_transfer_time_s / SECONDS_PER_DAY:.0f} days")
            continue

        profile = burn_profile(T, ratios, leg.ship, tc.mass_max_iter, tc.mass_tolerance)
        plans.append(_assemble_plan(archetype, leg, params, profile, converged, rules))

    plans = _dedup(plans, preferred, tc.dedup_tolerance_days)
    plans.sort(key=lambda p: (
        not p.visible,
        p.archetype is not preferred,
        ARCHETYPE_ORDER.index(p.archetype),
    ))

    if not plans:
        error = "No transfer could be solved (" + "; ".join(failures) + ")"
        logger.warning("Transit %s -> %s: %s", origin_id, target_id, error)
        return TransitResult(plans=[], error=error)

    logger.debug(
        "Transit %s -> %s: %d plans (%d hidden)",
        origin_id, target_id, len(plans), sum(1 for p in plans if not p.visible),
    )
    return TransitResult(plans=plans)


def parking_orbit(plan: TransitPlan, system: SystemSnapshot) -> Orbit | None:
    """Circular orbit around the target through the plan's arrival point.

    None for intercepts, flybys, Lagrange placements and surface arrivals.
    """
    if plan.arrival_mode not in ("rendezvous", "aerobrake"):
        return None
    if plan.arrival_placement not in ORBIT_PLACEMENTS and plan.arrival_placement is not None:
        return None
    target = system.get(plan.target_id)
    if target.mu <= 0.0:
        return None

    r_rel = plan.arrival_state.position_au - system.get_position(target.id, plan.end_time)
    r_m = au_to_m(float(np.linalg.norm(r_rel)))
    if r_m <= target.radius_km * 1000.0:
        return None

    normal = np.cross(np.array([0.0, 0.0, 1.0]), r_rel)
    if np.linalg.norm(normal) <= 0.0:
        normal = np.cross(np.array([0.0, 1.0, 0.0]), r_rel)
    v_rel = unit_vector(normal) * math.sqrt(target.mu / r_m)
    return orbit_from_state(target.id, target.mu, r_rel, v_rel, plan.end_time)


# --------------------------------------------------------------------------- #
#  Chained missions
# --------------------------------------------------------------------------- #
@dataclass(frozen=True, slots=True)
class MissionLeg:
    target_id: str
    mode: str | None = None
    dwell_s: float = 0.0  # wait at the previous stop before departing
    params: ManeuverParams | None = None  # replaces the mission-wide settings for this leg


def plan_mission(
    system: SystemSnapshot,
    origin_id: str,
    legs: list[MissionLeg],
    start_time: float,
    params: ManeuverParams | None = None,
    rules: RulePack = DEFAULT_RULES,
) -> list[TransitPlan]:
    """Plan consecutive legs, each departing from the previous arrival.

    Each leg uses its best visible plan. While dwelling between legs the
    ship rides along with the body it arrived at, so the next departure
    state carries that drift.
    """
    if not legs:
        raise InputError("A mission needs at least one leg")
    carried = params or ManeuverParams()
    plans: list[TransitPlan] = []
    current = origin_id
    depart = start_time

    for index, leg in enumerate(legs):
        if leg.dwell_s < 0.0:
            raise InputError(f"Leg {index + 1} has a negative dwell time")
        leg_params = leg.params or carried
        if plans:
            prev = plans[-1]
            leg_params = chain_params(prev, leg_params)
            depart = prev.end_time + leg.dwell_s
            if leg.dwell_s > 0.0:
                drift = (system.get_position(prev.target_id, depart)
                         - system.get_position(prev.target_id, prev.end_time))
                _, v_host = system.get_state(prev.target_id, depart)
                leg_params = replace(
                    leg_params,
                    initial_state=StateVector(prev.arrival_state.position_au + drift, v_host),
                )
        else:
            depart = start_time + leg.dwell_s

        result = transit_plan(system, current, leg.target_id, depart, leg.mode, leg_params, rules)
        plan = result.best()
        if plan is None:
            reason = result.error or f"all {len(result)} plans exceed practical limits"
            raise InputError(f"Leg {index + 1} ({current} -> {leg.target_id}) has no feasible plan: {reason}")
        plans.append(plan)
        carried = leg_params
        current = leg.target_id

    logger.info("Planned %d-leg mission from '%s'", len(plans), origin_id)
    return plans

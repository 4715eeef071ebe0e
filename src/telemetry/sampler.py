"""Mission telemetry: sample ship state and hazards along a chain of plans.

A journey cancelled mid-flight leaves the ship drifting: it follows the
conic of whichever body dominates it at the moment of cancellation, or a
straight coast when no bound orbit fits.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from config import DEFAULT_RULES, RulePack
from errors import InputError
from mechanics.boundaries import dominant_body
from mechanics.kepler import orbit_from_state, propagate
from mechanics.transforms import au_to_km, au_to_m, m_to_au
from mechanics.zones import StellarZones, stellar_zones
from planner.segments import Segment, StateVector, TransitPlan
from system.bodies import Node, Orbit
from system.snapshot import SystemSnapshot

logger = logging.getLogger("orrery.telemetry")

WAITING = "waiting"
TRANSIT = "transit"
ARRIVED = "arrived"
DRIFTING = "drifting"

DEEP_SPACE = "Deep Space"


@dataclass(frozen=True, slots=True)
class Hazard:
    kind: str  # "G-Force", "Aerobrake", "Radiation", "Thermal" or "Debris"
    severity: str  # "Warning", "Danger" or "Critical"
    message: str


@dataclass(slots=True)
class TelemetryPoint:
    time: float
    progress_pct: float
    state: str
    leg_index: int | None
    plan_id: str | None
    segment_kind: str | None
    position_au: np.ndarray
    velocity_ms: np.ndarray = field(default_factory=lambda: np.zeros(3))
    acceleration_g: float = 0.0
    hazards: list[Hazard] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Cancellation:
    """Where and how a journey was abandoned."""

    plan_id: str
    leg_index: int
    time: float
    progress_pct: float
    state: StateVector  # absolute, at ``time``
    host_id: str | None  # body the drift is bound to
    orbit: Orbit | None  # host-relative conic; None coasts in a straight line
    location: str


# --------------------------------------------------------------------------- #
#  Timeline
# --------------------------------------------------------------------------- #
class _Timeline:
    """Resolves where the ship is at any time of a mission."""

    def __init__(self, system: SystemSnapshot, plans: Sequence[TransitPlan], mission_start: float | None):
        if not plans:
            raise InputError("Telemetry needs at least one plan")
        for prev, nxt in zip(plans, plans[1:]):
            if nxt.start_time < prev.end_time - 1e-6:
                raise InputError(f"Leg '{nxt.id}' departs before '{prev.id}' arrives")
        self.system = system
        self.plans = list(plans)
        first = self.plans[0].start_time
        self.start = first if mission_start is None else min(mission_start, first)
        self.end = self.plans[-1].end_time

    @property
    def duration(self) -> float:
        return self.end - self.start

    def progress(self, t: float) -> float:
        if self.duration <= 0.0:
            return 100.0
        return min(100.0, max(0.0, 100.0 * (t - self.start) / self.duration))

    def sample_times(self, samples: int) -> np.ndarray:
        times = [np.linspace(self.start, self.end, samples)]
        for plan in self.plans:
            times.append(np.array([seg.start_time for seg in plan.segments] + [plan.end_time]))
        return np.unique(np.concatenate(times))

    def _ride_along(self, plan: TransitPlan, t: float) -> tuple[np.ndarray, np.ndarray]:
        """Arrival point carried along with the target body after arrival."""
        r_now, v_now = self.system.get_state(plan.target_id, t)
        drift = r_now - self.system.get_position(plan.target_id, plan.end_time)
        return plan.arrival_state.position_au + drift, v_now

    def locate(self, t: float) -> tuple[str, int | None, Segment | None, np.ndarray, np.ndarray]:
        """State name, leg index, active segment, position (AU) and velocity (m/s) at ``t``."""
        first = self.plans[0]
        if t < first.start_time:
            return (WAITING, None, None) + self.system.get_state(first.origin_id, t)

        for index, plan in enumerate(self.plans):
            if t <= plan.end_time:
                if t < plan.start_time:
                    return (WAITING, index, None) + self._ride_along(self.plans[index - 1], t)
                for seg in plan.segments:
                    if t <= seg.end_time:
                        return TRANSIT, index, seg, seg.position_at(t), seg.velocity_at(t)
                arrival = plan.arrival_state
                return TRANSIT, index, plan.segments[-1], arrival.position_au.copy(), arrival.velocity_ms.copy()

        return (ARRIVED, len(self.plans) - 1, None) + self._ride_along(self.plans[-1], t)


# --------------------------------------------------------------------------- #
#  Hazards
# --------------------------------------------------------------------------- #
class _HazardScanner:
    def __init__(self, system: SystemSnapshot, rules: RulePack):
        self.system = system
        self.rules = rules
        self._zones: dict[str, StellarZones] = {}
        self.debris: list[Node] = [n for n in system.of_kind("belt", "ring") if n.parent_id is not None]

    def zones_for(self, star: Node) -> StellarZones:
        if star.id not in self._zones:
            self._zones[star.id] = stellar_zones(star, self.rules)
        return self._zones[star.id]

    def scan(self, t: float, position: np.ndarray, segment: Segment | None,
             accel_g: float, star: Node | None) -> list[Hazard]:
        tc = self.rules.telemetry
        hazards: list[Hazard] = []

        if accel_g > tc.g_critical:
            hazards.append(Hazard("G-Force", "Critical", f"{accel_g:.1f} g exceeds crew tolerance"))
        elif accel_g > tc.g_warning:
            hazards.append(Hazard("G-Force", "Warning", f"Sustained {accel_g:.1f} g"))

        if segment is not None and segment.kind == "aerobrake":
            hazards.append(Hazard("Aerobrake", "Warning", "Atmospheric entry in progress"))

        if star is not None:
            zones = self.zones_for(star)
            d = float(np.linalg.norm(position - self.system.get_position(star.id, t)))
            if d < zones.kill_zone:
                hazards.append(Hazard("Radiation", "Critical", f"Inside the kill zone of {star.display_name}"))
            elif d < zones.danger_zone:
                hazards.append(Hazard("Radiation", "Danger", f"Inside the radiation danger zone of {star.display_name}"))
            if d < zones.rock_line:
                hazards.append(Hazard("Thermal", "Critical", "Inside the rock line; hull temperatures critical"))
            elif d < zones.soot_line:
                hazards.append(Hazard("Thermal", "Warning", "Inside the soot line; elevated hull temperatures"))

        for field_node in self.debris:
            centre = self.system.get_position(field_node.parent_id, t)
            d_km = au_to_km(float(np.linalg.norm(position - centre)))
            if field_node.inner_radius_km <= d_km <= field_node.outer_radius_km:
                severity = "Danger" if field_node.kind == "ring" else "Warning"
                hazards.append(Hazard("Debris", severity, f"Crossing {field_node.display_name}"))

        return hazards


def _point(timeline: _Timeline, scanner: _HazardScanner, t: float) -> TelemetryPoint:
    state, index, segment, position, velocity = timeline.locate(t)
    plan = timeline.plans[index] if index is not None else None
    accel_g = segment.g_load if state == TRANSIT and segment is not None else 0.0
    reference = plan.target_id if plan is not None else timeline.plans[0].origin_id
    star = scanner.system.host_star(reference)
    return TelemetryPoint(
        time=float(t),
        progress_pct=timeline.progress(t),
        state=state,
        leg_index=index,
        plan_id=plan.id if plan is not None else None,
        segment_kind=segment.kind if state == TRANSIT and segment is not None else None,
        position_au=np.asarray(position, dtype=np.float64),
        velocity_ms=np.asarray(velocity, dtype=np.float64),
        acceleration_g=accel_g,
        hazards=scanner.scan(t, position, segment if state == TRANSIT else None, accel_g, star),
    )


# --------------------------------------------------------------------------- #
#  Entry points
# --------------------------------------------------------------------------- #
def flight_telemetry(
    system: SystemSnapshot,
    plans: Sequence[TransitPlan],
    rules: RulePack = DEFAULT_RULES,
    samples: int | None = None,
    mission_start: float | None = None,
) -> list[TelemetryPoint]:
    """Sample the mission evenly in time, always including segment boundaries.

    ``mission_start`` earlier than the first departure adds a waiting
    stretch at the origin.
    """
    n = samples if samples is not None else rules.telemetry.default_samples
    if n < 2:
        raise InputError(f"Telemetry needs at least 2 samples, got {n}")
    timeline = _Timeline(system, plans, mission_start)
    scanner = _HazardScanner(system, rules)
    points = [_point(timeline, scanner, t) for t in timeline.sample_times(n)]
    logger.debug("Sampled %d telemetry points over %d legs", len(points), len(timeline.plans))
    return points


def sample_progress(
    system: SystemSnapshot,
    plans: Sequence[TransitPlan],
    progress_pct: float,
    rules: RulePack = DEFAULT_RULES,
    mission_start: float | None = None,
) -> TelemetryPoint:
    """Telemetry at a percentage of total mission time."""
    if not math.isfinite(progress_pct) or not 0.0 <= progress_pct <= 100.0:
        raise InputError(f"Progress must be within [0, 100], got {progress_pct}")
    timeline = _Timeline(system, plans, mission_start)
    t = timeline.start + timeline.duration * progress_pct / 100.0
    return _point(timeline, _HazardScanner(system, rules), t)


# --------------------------------------------------------------------------- #
#  Cancellation
# --------------------------------------------------------------------------- #
def cancel_journey(
    system: SystemSnapshot,
    plans: Sequence[TransitPlan],
    t: float,
    mission_start: float | None = None,
) -> Cancellation:
    """Abandon the mission at ``t`` and capture the state the ship drifts from.

    Between legs the ship leaves from the stop it is parked at. The drift
    is bound to the dominant body when the state is elliptic around it.

    Raises
    ------
    InputError
        ``t`` is before the first departure or after the final arrival.
    """
    timeline = _Timeline(system, plans, mission_start)
    state, index, _, position, velocity = timeline.locate(t)
    if state == ARRIVED or index is None:
        raise InputError(f"No journey under way at t={t:.0f}; nothing to cancel")
    plan = timeline.plans[index]

    dominant = dominant_body(system, position, t)
    host = system.gravitational_host(dominant.id) if dominant is not None else None
    orbit = None
    if host is not None:
        r_host, v_host = system.get_state(host.id, t)
        r_rel = position - r_host
        v_rel = velocity - v_host
        r_m = au_to_m(float(np.linalg.norm(r_rel)))
        energy = 0.5 * float(np.dot(v_rel, v_rel)) - host.mu / r_m if r_m > 0.0 else 0.0
        if energy < 0.0:
            try:
                orbit = orbit_from_state(host.id, host.mu, r_rel, v_rel, t)
            except InputError as e:
                logger.info("Cancelled '%s' coasts instead of orbiting '%s': %s", plan.id, host.id, e)

    location = host.display_name if orbit is not None else DEEP_SPACE
    logger.info("Cancelled '%s' at t=%.0f; drifting in %s", plan.id, t, location)
    return Cancellation(
        plan_id=plan.id,
        leg_index=index,
        time=float(t),
        progress_pct=timeline.progress(t),
        state=StateVector(np.array(position, dtype=np.float64), np.array(velocity, dtype=np.float64)),
        host_id=host.id if orbit is not None else None,
        orbit=orbit,
        location=location,
    )


def drift_state(system: SystemSnapshot, cancellation: Cancellation, t: float) -> StateVector:
    """Absolute state of a drifting ship at ``t`` (not before the cancellation)."""
    dt = t - cancellation.time
    if dt < 0.0:
        raise InputError("Drift starts at the cancellation time")
    if cancellation.orbit is None:
        start = cancellation.state
        return StateVector(start.position_au + m_to_au(start.velocity_ms * dt), start.velocity_ms.copy())
    r_host, v_host = system.get_state(cancellation.host_id, t)
    dr, dv = propagate(cancellation.orbit, t)
    return StateVector(r_host + dr, v_host + dv)


def drift_telemetry(
    system: SystemSnapshot,
    cancellation: Cancellation,
    until: float,
    rules: RulePack = DEFAULT_RULES,
    samples: int | None = None,
) -> list[TelemetryPoint]:
    """Sample the drift from the cancellation up to ``until``."""
    n = samples if samples is not None else rules.telemetry.default_samples
    if n < 2:
        raise InputError(f"Telemetry needs at least 2 samples, got {n}")
    if not until >= cancellation.time:
        raise InputError("Drift telemetry must end after the cancellation")

    scanner = _HazardScanner(system, rules)
    if cancellation.host_id is not None:
        star = system.host_star(cancellation.host_id)
    else:
        stars = system.of_kind("star")
        star = stars[0] if stars else None
    points = []
    for t in np.linspace(cancellation.time, until, n):
        s = drift_state(system, cancellation, float(t))
        points.append(TelemetryPoint(
            time=float(t),
            progress_pct=cancellation.progress_pct,
            state=DRIFTING,
            leg_index=cancellation.leg_index,
            plan_id=cancellation.plan_id,
            segment_kind=None,
            position_au=s.position_au,
            velocity_ms=s.velocity_ms,
            hazards=scanner.scan(float(t), s.position_au, None, 0.0, star),
        ))
    logger.debug("Sampled %d drift points in %s", len(points), cancellation.location)
    return points

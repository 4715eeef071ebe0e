"""Plan records and segment materialization.

Transit trajectories are deliberately approximated as powered straight-line
intercepts: each segment holds a constant signed acceleration along one
direction, so positions anywhere inside it follow from closed-form
kinematics and the sampled path points are exact samples of that track.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from planner.archetypes import PlanArchetype
from planner.profile import BurnProfile
from propulsion.rocket import fuel_for_delta_v
from system.bodies import AU_M, G0


@dataclass(frozen=True, slots=True)
class StateVector:
    position_au: np.ndarray  # (3,)
    velocity_ms: np.ndarray  # (3,)


@dataclass(slots=True)
class Segment:
    kind: str  # "accelerate", "coast", "brake" or "aerobrake"
    start_time: float
    end_time: float
    start_position_au: np.ndarray
    direction: np.ndarray  # unit vector of travel
    start_speed_ms: float
    accel_ms2: float  # signed along ``direction``
    path_points: np.ndarray  # (N, 3) AU
    delta_v_ms: float = 0.0
    fuel_kg: float = 0.0
    g_load: float = 0.0
    warnings: list[str] = field(default_factory=list)

    @property
    def duration_s(self) -> float:
        return self.end_time - self.start_time

    def position_at(self, t: float) -> np.ndarray:
        """Position (AU) at time ``t`` inside the segment."""
        if t >= self.end_time:
            return self.path_points[-1].copy()
        dt = max(0.0, t - self.start_time)
        s_m = self.start_speed_ms * dt + 0.5 * self.accel_ms2 * dt * dt
        return self.start_position_au + self.direction * (s_m / AU_M)

    def velocity_at(self, t: float) -> np.ndarray:
        """Velocity (m/s) along the track at time ``t``, clamped to the segment."""
        dt = min(max(0.0, t - self.start_time), self.duration_s)
        return self.direction * (self.start_speed_ms + self.accel_ms2 * dt)


@dataclass(slots=True)
class TransitPlan:
    id: str
    origin_id: str
    target_id: str
    archetype: PlanArchetype
    name: str
    start_time: float
    segments: list[Segment]
    total_time_s: float
    total_delta_v_ms: float
    total_fuel_kg: float
    arrival_velocity_ms: float
    max_g: float
    accel_ratio: float
    brake_ratio: float
    distance_au: float
    insertion_delta_v_ms: float
    aerobrake_delta_v_ms: float
    departure_state: StateVector
    arrival_state: StateVector
    initial_mass_kg: float | None
    final_mass_kg: float | None
    arrival_mode: str
    arrival_placement: str | None = None
    tags: list[str] = field(default_factory=list)
    hidden_reason: str | None = None
    is_insufficient_fuel: bool = False
    converged: bool = True

    @property
    def end_time(self) -> float:
        return self.start_time + self.total_time_s

    @property
    def total_time_days(self) -> float:
        return self.total_time_s / 86_400.0

    @property
    def visible(self) -> bool:
        return self.hidden_reason is None


@dataclass(slots=True)
class TransitResult:
    """Ordered candidate plans (visible first) plus an explanation when empty."""

    plans: list[TransitPlan] = field(default_factory=list)
    error: str | None = None

    def __iter__(self):
        return iter(self.plans)

    def __len__(self) -> int:
        return len(self.plans)

    def __getitem__(self, index: int) -> TransitPlan:
        return self.plans[index]

    @property
    def visible(self) -> list[TransitPlan]:
        return [p for p in self.plans if p.visible]

    @property
    def hidden_count(self) -> int:
        return sum(1 for p in self.plans if not p.visible)

    def best(self) -> TransitPlan | None:
        visible = self.visible
        return visible[0] if visible else None


# --------------------------------------------------------------------------- #
#  Materialization
# --------------------------------------------------------------------------- #
def _sample(segment: Segment, n_points: int, end_position: np.ndarray | None = None) -> None:
    times = np.linspace(segment.start_time, segment.end_time, n_points)
    dt = times - segment.start_time
    s_m = segment.start_speed_ms * dt + 0.5 * segment.accel_ms2 * dt * dt
    points = segment.start_position_au + np.outer(s_m / AU_M, segment.direction)
    if end_position is not None:
        points[-1] = end_position
    segment.path_points = points


def build_segments(
    start_time: float,
    origin_au: np.ndarray,
    direction: np.ndarray,
    profile: BurnProfile,
    n_points: int,
) -> tuple[list[Segment], np.ndarray]:
    """Cut a burn profile into time-contiguous segments with sampled paths.

    Segment boundaries are computed once and shared, so consecutive segments
    meet exactly. Returns the segments and the arrival position, which is
    also the final path point.
    """
    a = profile.accel_ms2
    T = profile.transfer_time_s
    b0 = start_time
    b1 = start_time + profile.accel_time_s
    b2 = start_time + T - profile.brake_time_s
    b3 = start_time + T

    arrival = origin_au + direction * (profile.distance_at(T) / AU_M)
    pieces = (
        ("accelerate", b0, b1, 0.0, a),
        ("coast", b1, b2, profile.peak_speed_ms, 0.0),
        ("brake", b2, b3, profile.peak_speed_ms, -a),
    )

    segments: list[Segment] = []
    for kind, t_start, t_end, speed, accel in pieces:
        if t_end - t_start <= 0.0:
            continue
        if segments:
            start_pos = segments[-1].path_points[-1].copy()
        else:
            start_pos = np.array(origin_au, dtype=np.float64)
        seg = Segment(
            kind=kind,
            start_time=t_start,
            end_time=t_end,
            start_position_au=start_pos,
            direction=direction,
            start_speed_ms=speed,
            accel_ms2=accel,
            path_points=np.empty((0, 3)),
            delta_v_ms=abs(accel) * (t_end - t_start),
            g_load=abs(accel) / G0,
        )
        _sample(seg, n_points, arrival if t_end == b3 else None)
        segments.append(seg)

    return segments, arrival


def append_aerobrake(
    segments: list[Segment],
    arrival_au: np.ndarray,
    window_s: float,
    shed_ms: float,
    g_factor: float,
    direction: np.ndarray,
) -> Segment:
    """Atmospheric pass after arrival; the ship holds the arrival point."""
    t_start = segments[-1].end_time
    seg = Segment(
        kind="aerobrake",
        start_time=t_start,
        end_time=t_start + window_s,
        start_position_au=np.array(arrival_au, dtype=np.float64),
        direction=direction,
        start_speed_ms=0.0,
        accel_ms2=0.0,
        path_points=np.vstack([arrival_au, arrival_au]),
        delta_v_ms=shed_ms,
        g_load=(shed_ms / window_s) / G0 * g_factor,
        warnings=["Atmospheric entry: peak deceleration during aerobraking"],
    )
    segments.append(seg)
    return seg


def annotate_fuel(segments: list[Segment], mass_kg: float | None, isp_s: float | None) -> float | None:
    """Fill per-segment fuel, carrying the mass loss forward. Returns final mass."""
    if not mass_kg or not isp_s:
        return mass_kg
    mass = mass_kg
    for seg in segments:
        if seg.kind == "aerobrake":
            continue
        seg.fuel_kg = fuel_for_delta_v(mass, seg.delta_v_ms, isp_s)
        mass -= seg.fuel_kg
    return mass

"""Encoders: internal records to JSON-ready dicts and compact binary paths.

Dicts round floats to keep payloads small; the binary form packs path
points as contiguous float64 arrays that the frontend can read straight
into a Float64Array.
"""

from __future__ import annotations

import struct
from typing import Any, Sequence

import numpy as np

from mechanics.boundaries import OrbitalBoundaries
from mechanics.kepler import orbital_period
from mechanics.transforms import au_to_scene
from mechanics.zones import StellarZones, zone_at
from planner.segments import Segment, StateVector, TransitPlan, TransitResult
from propulsion.specs import ConstructSpecs
from system.bodies import Orbit
from telemetry.sampler import Cancellation, TelemetryPoint

SEGMENT_CODES = {"accelerate": 0, "coast": 1, "brake": 2, "aerobrake": 3}


def _vec(values: np.ndarray, digits: int = 9) -> list[float]:
    return [round(float(x), digits) for x in values]


def _opt(value: float | None, digits: int = 3) -> float | None:
    return None if value is None else round(float(value), digits)


def _points(points: np.ndarray, scene_units: bool) -> list[list[float]]:
    if scene_units:
        return np.round(au_to_scene(points), 6).tolist()
    return np.round(points, 9).tolist()


# --------------------------------------------------------------------------- #
#  Dict encoding
# --------------------------------------------------------------------------- #
def state_to_dict(state: StateVector) -> dict[str, Any]:
    return {"position_au": _vec(state.position_au), "velocity_ms": _vec(state.velocity_ms, 3)}


def orbit_to_dict(orbit: Orbit) -> dict[str, Any]:
    el = orbit.elements
    return {
        "host_id": orbit.host_id,
        "t0": orbit.t0,
        "a_au": round(el.a_au, 12),
        "e": round(el.e, 9),
        "i_deg": round(el.i_deg, 6),
        "omega_deg": round(el.omega_deg, 6),
        "raan_deg": round(el.raan_deg, 6),
        "m0_rad": round(el.m0_rad, 9),
        "period_s": _opt(orbital_period(orbit)),
    }


def segment_to_dict(seg: Segment, scene_units: bool = False) -> dict[str, Any]:
    return {
        "kind": seg.kind,
        "start_time": seg.start_time,
        "end_time": seg.end_time,
        "duration_s": round(seg.duration_s, 3),
        "delta_v_ms": round(seg.delta_v_ms, 3),
        "fuel_kg": round(seg.fuel_kg, 3),
        "g_load": round(seg.g_load, 4),
        "warnings": list(seg.warnings),
        "path": _points(seg.path_points, scene_units),
    }


def plan_to_dict(plan: TransitPlan, scene_units: bool = False, include_paths: bool = True) -> dict[str, Any]:
    out = {
        "id": plan.id,
        "origin_id": plan.origin_id,
        "target_id": plan.target_id,
        "archetype": plan.archetype.value,
        "name": plan.name,
        "start_time": plan.start_time,
        "end_time": plan.end_time,
        "total_time_s": round(plan.total_time_s, 3),
        "total_time_days": round(plan.total_time_days, 4),
        "total_delta_v_ms": round(plan.total_delta_v_ms, 3),
        "total_fuel_kg": round(plan.total_fuel_kg, 3),
        "arrival_velocity_ms": round(plan.arrival_velocity_ms, 3),
        "insertion_delta_v_ms": round(plan.insertion_delta_v_ms, 3),
        "aerobrake_delta_v_ms": round(plan.aerobrake_delta_v_ms, 3),
        "max_g": round(plan.max_g, 4),
        "accel_ratio": round(plan.accel_ratio, 6),
        "brake_ratio": round(plan.brake_ratio, 6),
        "distance_au": round(plan.distance_au, 9),
        "arrival_mode": plan.arrival_mode,
        "arrival_placement": plan.arrival_placement,
        "initial_mass_kg": _opt(plan.initial_mass_kg),
        "final_mass_kg": _opt(plan.final_mass_kg),
        "tags": list(plan.tags),
        "hidden_reason": plan.hidden_reason,
        "is_insufficient_fuel": plan.is_insufficient_fuel,
        "converged": plan.converged,
        "departure_state": state_to_dict(plan.departure_state),
        "arrival_state": state_to_dict(plan.arrival_state),
    }
    if include_paths:
        out["segments"] = [segment_to_dict(s, scene_units) for s in plan.segments]
    else:
        out["segments"] = [{k: v for k, v in segment_to_dict(s).items() if k != "path"} for s in plan.segments]
    return out


def result_to_dict(result: TransitResult, scene_units: bool = False, include_paths: bool = True) -> dict[str, Any]:
    return {
        "plans": [plan_to_dict(p, scene_units, include_paths) for p in result.plans],
        "hidden_count": result.hidden_count,
        "error": result.error,
    }


def telemetry_to_dict(point: TelemetryPoint, scene_units: bool = False) -> dict[str, Any]:
    position = au_to_scene(point.position_au) if scene_units else point.position_au
    return {
        "time": point.time,
        "progress_pct": round(point.progress_pct, 4),
        "state": point.state,
        "leg_index": point.leg_index,
        "plan_id": point.plan_id,
        "segment_kind": point.segment_kind,
        "position": _vec(position, 6 if scene_units else 9),
        "velocity_ms": _vec(point.velocity_ms, 3),
        "acceleration_g": round(point.acceleration_g, 4),
        "hazards": [{"kind": h.kind, "severity": h.severity, "message": h.message} for h in point.hazards],
    }


def cancellation_to_dict(c: Cancellation) -> dict[str, Any]:
    return {
        "plan_id": c.plan_id,
        "leg_index": c.leg_index,
        "time": c.time,
        "progress_pct": round(c.progress_pct, 4),
        "state": state_to_dict(c.state),
        "host_id": c.host_id,
        "orbit": orbit_to_dict(c.orbit) if c.orbit is not None else None,
        "location": c.location,
    }


def boundaries_to_dict(b: OrbitalBoundaries) -> dict[str, Any]:
    return {
        "surface_km": _opt(b.surface_km),
        "min_leo_km": round(b.min_leo_km, 3),
        "leo_meo_km": round(b.leo_meo_km, 3),
        "meo_heo_km": round(b.meo_heo_km, 3),
        "heo_upper_km": round(b.heo_upper_km, 3),
        "geostationary_km": _opt(b.geostationary_km),
        "is_geo_fallback": b.is_geo_fallback,
        "soi_km": round(b.soi_km, 3),
    }


def zones_to_dict(zones: StellarZones, probe_au: float | None = None) -> dict[str, Any]:
    out = {name: round(getattr(zones, name), 9) for name in StellarZones.__slots__}
    if probe_au is not None:
        out["probe_au"] = probe_au
        out["probe_zone"] = zone_at(zones, probe_au)
    return out


def specs_to_dict(specs: ConstructSpecs) -> dict[str, Any]:
    out = {}
    for name in ConstructSpecs.__slots__:
        value = getattr(specs, name)
        out[name] = round(value, 4) if isinstance(value, float) else value
    return out


# --------------------------------------------------------------------------- #
#  Binary path encoding
#  Format: [header][segments], little-endian
# --------------------------------------------------------------------------- #
def encode_plan_paths(plans: Sequence[TransitPlan], scene_units: bool = True) -> bytes:
    """Pack path points of every plan.

    [n_plans:u32] then per plan [total_dv:f64][start:f64][end:f64][n_seg:u32],
    then per segment [kind:i32][n_pts:u32][(x, y, z):f64 * n_pts].
    """
    buf = struct.pack("<I", len(plans))
    for plan in plans:
        buf += struct.pack("<dddI", plan.total_delta_v_ms, plan.start_time, plan.end_time, len(plan.segments))
        for seg in plan.segments:
            points = au_to_scene(seg.path_points) if scene_units else seg.path_points
            buf += struct.pack("<iI", SEGMENT_CODES.get(seg.kind, -1), len(points))
            buf += np.ascontiguousarray(points, dtype=np.float64).tobytes()
    return buf

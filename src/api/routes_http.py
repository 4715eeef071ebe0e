"""HTTP REST endpoints for the Orrery API.

- /health    : Health check
- /propagate : Absolute node positions at an epoch
- /boundaries: Orbital altitude bands of a body
- /zones     : Stellar zone radii (optionally classifying a distance)
- /lagrange  : Lagrange points of a body and its host
- /specs     : Construct performance roll-up
- /transit   : Candidate transfer plans between two nodes
- /telemetry : Sampled state and hazards along a chained mission, or its drift once cancelled
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request

from api.models import (
    BoundariesRequest,
    LagrangeRequest,
    PropagateRequest,
    ShipIn,
    SpecsRequest,
    TelemetryRequest,
    TransitRequest,
    ZonesRequest,
)
from config import DEFAULT_RULES, RulePack
from errors import InputError, UnknownNodeError
from mechanics.boundaries import boundaries_for
from mechanics.lagrange import lagrange_points
from mechanics.transforms import au_to_scene, epoch_to_iso
from mechanics.zones import stellar_zones
from planner.engine import ManeuverParams, MissionLeg, parking_orbit, plan_mission, transit_plan
from propulsion.specs import construct_specs
from serialization.encoder import (
    boundaries_to_dict,
    cancellation_to_dict,
    orbit_to_dict,
    plan_to_dict,
    result_to_dict,
    specs_to_dict,
    telemetry_to_dict,
    zones_to_dict,
)
from telemetry.sampler import cancel_journey, drift_telemetry, flight_telemetry, sample_progress

logger = logging.getLogger("orrery.api")
router = APIRouter()


# --------------------------------------------------------------------------- #
#  Helpers
# --------------------------------------------------------------------------- #
def _get_rules(request: Request) -> RulePack:
    """Rule pack loaded at startup, or the built-in defaults."""
    return getattr(request.app.state, "rules", DEFAULT_RULES)


def _unprocessable(exc: InputError) -> HTTPException:
    status = 404 if isinstance(exc, UnknownNodeError) else 422
    return HTTPException(status_code=status, detail=str(exc))


def _ship_params(ship: ShipIn | None, rules: RulePack) -> ManeuverParams | None:
    """Maneuver baseline filled from a construct roll-up."""
    if ship is None:
        return None
    construct = ship.construct.to_construct()
    specs = construct_specs(construct, ship.catalog.engine_defs(), ship.catalog.fuel_defs(), rules=rules)
    return ManeuverParams.from_specs(
        specs, can_aerobrake=construct.can_aerobrake, has_landing_gear=construct.has_landing_gear,
    )


# --------------------------------------------------------------------------- #
#  Endpoints
# --------------------------------------------------------------------------- #
@router.get("/health")
async def health():
    return {"status": "ok", "service": "orrery"}


@router.post("/propagate")
async def propagate_nodes(req: PropagateRequest):
    """Absolute positions (AU) and velocities (m/s) of nodes at one epoch."""
    try:
        system = req.system.to_snapshot()
        t = req.epoch()
        ids = req.node_ids or [n.id for n in system]
        bodies = []
        for node_id in ids:
            r, v = system.get_state(node_id, t)
            bodies.append({
                "id": node_id,
                "position": [float(x) for x in (au_to_scene(r) if req.scene_units else r)],
                "velocity_ms": [float(x) for x in v],
            })
    except InputError as e:
        raise _unprocessable(e)

    return {"time": t, "time_iso": epoch_to_iso(t), "scene_units": req.scene_units, "bodies": bodies}


@router.post("/boundaries")
async def orbital_boundaries(req: BoundariesRequest, request: Request):
    try:
        body = req.system.to_snapshot().get(req.node_id)
        boundaries = boundaries_for(body, _get_rules(request))
    except InputError as e:
        raise _unprocessable(e)
    return {"node_id": body.id, **boundaries_to_dict(boundaries)}


@router.post("/lagrange")
async def lagrange(req: LagrangeRequest):
    """L1..L5 of a body about the massive ancestor it orbits."""
    try:
        t = req.epoch()
        points = lagrange_points(req.system.to_snapshot(), req.node_id, t)
    except InputError as e:
        raise _unprocessable(e)
    return {
        "node_id": req.node_id,
        "time": t,
        "scene_units": req.scene_units,
        "points": {
            name: [float(x) for x in (au_to_scene(p) if req.scene_units else p)] for name, p in points.items()
        },
    }


@router.post("/zones")
async def zones(req: ZonesRequest, request: Request):
    try:
        star = req.system.to_snapshot().get(req.star_id)
    except InputError as e:
        raise _unprocessable(e)
    if star.kind != "star":
        raise HTTPException(status_code=422, detail=f"Node '{star.id}' is a {star.kind}, not a star")
    return {"star_id": star.id, **zones_to_dict(stellar_zones(star, _get_rules(request)), req.probe_au)}


@router.post("/specs")
async def specs(req: SpecsRequest, request: Request):
    try:
        construct = req.construct.to_construct()
        host = None
        if req.host_id is not None:
            if req.system is None:
                raise InputError("host_id needs a system to look the body up in")
            host = req.system.to_snapshot().get(req.host_id)
        result = construct_specs(
            construct, req.catalog.engine_defs(), req.catalog.fuel_defs(), host, _get_rules(request),
        )
    except InputError as e:
        raise _unprocessable(e)
    return {"construct_id": construct.id, **specs_to_dict(result)}


@router.post("/transit")
async def transit(req: TransitRequest, request: Request):
    """Plan candidate transfers; hidden plans are listed after visible ones."""
    rules = _get_rules(request)
    try:
        system = req.system.to_snapshot()
        params = req.maneuver.to_params(_ship_params(req.ship, rules))
        result = transit_plan(system, req.origin_id, req.target_id, req.epoch(), req.mode, params, rules)
    except InputError as e:
        raise _unprocessable(e)

    out = result_to_dict(result, req.scene_units, req.include_paths)
    for plan, plan_out in zip(result.plans, out["plans"]):
        orbit = parking_orbit(plan, system)
        plan_out["parking_orbit"] = orbit_to_dict(orbit) if orbit is not None else None
    return out


@router.post("/telemetry")
async def telemetry(req: TelemetryRequest, request: Request):
    """Chain the legs (best visible plan each) and sample the mission.

    With ``cancel_at`` the journey is abandoned at that epoch and the points
    follow the drift instead.
    """
    rules = _get_rules(request)
    try:
        system = req.system.to_snapshot()
        base = _ship_params(req.ship, rules)
        params = req.maneuver.to_params(base)
        legs = [
            MissionLeg(
                target_id=leg.target_id,
                mode=leg.mode,
                dwell_s=leg.dwell_s,
                params=leg.maneuver.to_params(base) if leg.maneuver is not None else None,
            )
            for leg in req.legs
        ]
        plans = plan_mission(system, req.origin_id, legs, req.epoch(), params, rules)
        cancellation = None
        if req.cancel_at is not None:
            if req.progress_pct is not None:
                raise InputError("progress_pct and cancel_at cannot be combined")
            cancellation = cancel_journey(system, plans, req.cancel_at, req.mission_start)
            until = req.drift_until if req.drift_until is not None else plans[-1].end_time
            points = drift_telemetry(system, cancellation, until, rules, req.samples)
        elif req.progress_pct is not None:
            points = [sample_progress(system, plans, req.progress_pct, rules, req.mission_start)]
        else:
            points = flight_telemetry(system, plans, rules, req.samples, req.mission_start)
    except InputError as e:
        raise _unprocessable(e)

    return {
        "plans": [plan_to_dict(p, req.scene_units, include_paths=False) for p in plans],
        "n_points": len(points),
        "points": [telemetry_to_dict(p, req.scene_units) for p in points],
        "cancellation": cancellation_to_dict(cancellation) if cancellation is not None else None,
    }

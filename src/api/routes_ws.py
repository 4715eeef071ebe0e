"""WebSocket endpoints for interactive planning.

- /ws/transit: Re-plan on every parameter change while the user drags sliders
"""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from api.models import TransitRequest
from api.routes_http import _get_rules, _ship_params
from errors import InputError
from planner.engine import transit_plan
from serialization.encoder import encode_plan_paths, result_to_dict

logger = logging.getLogger("orrery.ws")
router = APIRouter()


@router.websocket("/ws/transit")
async def ws_transit(websocket: WebSocket):
    """Recompute transit plans for each request message.

    Protocol:
    1. Client sends a JSON transit request (same body as POST /transit),
       optionally with "binary": true to also receive packed path points.
    2. Server answers with {"status": "ok", "result": {...}}, followed by a
       binary frame when requested, or {"status": "error", "message": ...}.
    3. Client sends "stop" to close the stream.
    """
    await websocket.accept()
    logger.info("Transit WebSocket connected")
    rules = _get_rules(websocket)

    try:
        while True:
            raw = await websocket.receive_text()
            if raw.strip().lower() == "stop":
                break

            try:
                payload = json.loads(raw)
                use_binary = bool(payload.pop("binary", False)) if isinstance(payload, dict) else False
                req = TransitRequest.model_validate(payload)
                system = req.system.to_snapshot()
                params = req.maneuver.to_params(_ship_params(req.ship, rules))
                result = transit_plan(system, req.origin_id, req.target_id, req.epoch(), req.mode, params, rules)
            except (json.JSONDecodeError, ValidationError, InputError) as e:
                await websocket.send_json({"status": "error", "message": str(e)})
                continue

            await websocket.send_json({
                "status": "ok",
                "result": result_to_dict(result, req.scene_units, include_paths=not use_binary),
            })
            if use_binary:
                await websocket.send_bytes(encode_plan_paths(result.plans, req.scene_units))

    except WebSocketDisconnect:
        logger.info("Transit WebSocket disconnected")
        return

    await websocket.close()

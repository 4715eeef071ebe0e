from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import DEFAULT_RULES, load_rule_pack, settings
from api.routes_http import router as http_router
from api.routes_ws import router as ws_router

logger = logging.getLogger("orrery")
logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s [%(name)s] %(levelname)s: %(message)s")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: load the rule pack. Shutdown: nothing to release."""
    if settings.rule_pack_path is not None:
        logger.info("Loading rule pack from %s ...", settings.rule_pack_path)
        app.state.rules = load_rule_pack(settings.rule_pack_path)
    else:
        app.state.rules = DEFAULT_RULES
    logger.info("Rule pack '%s' ready", app.state.rules.name)
    yield
    logger.info("Shutting down Orrery")


app = FastAPI(
    title="Orrery: Orbital Mechanics and Transit Planner",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(http_router)
app.include_router(ws_router)


if __name__ == "__main__":
    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=settings.reload)

"""Request models shared by the HTTP and WebSocket endpoints.

Each model validates the wire shape and converts to the domain dataclass;
domain-level checks (orbit ranges, tank capacities, ...) still run in the
dataclass constructors and surface as ``InputError``.
"""

from __future__ import annotations

from dataclasses import replace

import numpy as np
from pydantic import BaseModel, Field, field_validator

from mechanics.transforms import iso_to_epoch
from planner.engine import ManeuverParams
from planner.segments import StateVector
from propulsion.construct import Construct, EngineDef, EngineMount, FuelDef, FuelTank, Module
from system.bodies import Atmosphere, Node, Orbit, OrbitalElements
from system.snapshot import SystemSnapshot


def _validate_iso_date(v: str | None) -> str | None:
    if v is None:
        return v
    try:
        iso_to_epoch(v)
    except (ValueError, TypeError):
        raise ValueError(f"Invalid ISO date: '{v}'. Expected format: YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS")
    return v


# --------------------------------------------------------------------------- #
#  System
# --------------------------------------------------------------------------- #
class ElementsIn(BaseModel):
    a_au: float = Field(ge=0)
    e: float = Field(default=0.0, ge=0, lt=1)
    i_deg: float = 0.0
    omega_deg: float = 0.0
    raan_deg: float = 0.0
    m0_rad: float = 0.0


class OrbitIn(BaseModel):
    host_id: str
    host_mu: float = Field(ge=0, description="Host gravitational parameter, m^3/s^2")
    t0: float = 0.0
    elements: ElementsIn
    n_rad_per_s: float | None = None
    retrograde: bool = False

    def to_orbit(self) -> Orbit:
        return Orbit(
            host_id=self.host_id,
            host_mu=self.host_mu,
            t0=self.t0,
            elements=OrbitalElements(**self.elements.model_dump()),
            n_rad_per_s=self.n_rad_per_s,
            retrograde=self.retrograde,
        )


class AtmosphereIn(BaseModel):
    pressure_bar: float = Field(ge=0)
    surface_temp_k: float = Field(default=288.0, gt=0)
    molar_mass_kg: float = Field(default=0.029, gt=0)


class NodeIn(BaseModel):
    id: str = Field(min_length=1)
    kind: str
    name: str = ""
    parent_id: str | None = None
    orbit: OrbitIn | None = None
    mass_kg: float = Field(default=0.0, ge=0)
    radius_km: float = Field(default=0.0, ge=0)
    rotation_period_s: float = 0.0
    atmosphere: AtmosphereIn | None = None
    has_surface: bool = True
    temperature_k: float = Field(default=0.0, ge=0)
    luminosity_solar: float | None = None
    radiation_output: float = 1.0
    spectral_class: str = ""
    inner_radius_km: float = Field(default=0.0, ge=0)
    outer_radius_km: float = Field(default=0.0, ge=0)
    tags: list[str] = Field(default_factory=list)

    def to_node(self) -> Node:
        data = self.model_dump(exclude={"orbit", "atmosphere", "tags"})
        return Node(
            **data,
            orbit=self.orbit.to_orbit() if self.orbit is not None else None,
            atmosphere=Atmosphere(**self.atmosphere.model_dump()) if self.atmosphere is not None else None,
            tags=tuple(self.tags),
        )


class SystemIn(BaseModel):
    nodes: list[NodeIn] = Field(min_length=1)

    def to_snapshot(self) -> SystemSnapshot:
        return SystemSnapshot(n.to_node() for n in self.nodes)


# --------------------------------------------------------------------------- #
#  Constructs
# --------------------------------------------------------------------------- #
class EngineDefIn(BaseModel):
    id: str
    thrust_kn: float = Field(ge=0)
    isp_s: float = Field(ge=0)
    fuel_type_id: str = ""
    atmo_efficiency: float = Field(default=1.0, ge=0, le=1)
    power_draw_mw: float = 0.0
    mass_kg: float = Field(default=0.0, ge=0)
    is_main: bool = True


class FuelDefIn(BaseModel):
    id: str
    density_kg_per_unit: float = Field(gt=0)


class EngineMountIn(BaseModel):
    engine_id: str
    quantity: int = Field(default=1, ge=0)


class FuelTankIn(BaseModel):
    fuel_type_id: str
    capacity_units: float = Field(ge=0)
    current_units: float = Field(ge=0)


class ModuleIn(BaseModel):
    name: str
    mass_kg: float = Field(default=0.0, ge=0)
    power_output_mw: float = 0.0
    power_draw_mw: float = 0.0


class ConstructIn(BaseModel):
    id: str
    hull_mass_kg: float = Field(ge=0)
    engines: list[EngineMountIn] = Field(default_factory=list)
    fuel_tanks: list[FuelTankIn] = Field(default_factory=list)
    modules: list[ModuleIn] = Field(default_factory=list)
    crew_count: int = Field(default=0, ge=0)
    provisions_person_days: float = Field(default=0.0, ge=0)
    cargo_mass_kg: float = Field(default=0.0, ge=0)
    has_landing_gear: bool = False
    can_aerobrake: bool = False
    thermal_protection: str = "none"
    aerobrake_limit_ms: float | None = None
    spin_radius_m: float = Field(default=0.0, ge=0)
    spin_period_s: float = Field(default=0.0, ge=0)

    def to_construct(self) -> Construct:
        data = self.model_dump(exclude={"engines", "fuel_tanks", "modules"})
        return Construct(
            **data,
            engines=tuple(EngineMount(**m.model_dump()) for m in self.engines),
            fuel_tanks=tuple(FuelTank(**t.model_dump()) for t in self.fuel_tanks),
            modules=tuple(Module(**m.model_dump()) for m in self.modules),
        )


class CatalogIn(BaseModel):
    engines: list[EngineDefIn] = Field(default_factory=list)
    fuels: list[FuelDefIn] = Field(default_factory=list)

    def engine_defs(self) -> dict[str, EngineDef]:
        return {e.id: EngineDef(**e.model_dump()) for e in self.engines}

    def fuel_defs(self) -> dict[str, FuelDef]:
        return {f.id: FuelDef(**f.model_dump()) for f in self.fuels}


# --------------------------------------------------------------------------- #
#  Maneuvers
# --------------------------------------------------------------------------- #
class StateIn(BaseModel):
    position_au: list[float] = Field(min_length=3, max_length=3)
    velocity_ms: list[float] = Field(min_length=3, max_length=3)


class ManeuverIn(BaseModel):
    max_g: float = Field(default=1.0, gt=0)
    accel_ratio: float = Field(default=0.25, ge=0, le=1)
    brake_ratio: float = Field(default=0.25, ge=0, le=1)
    burn_coast_ratio: float | None = Field(default=None, gt=0, le=1)
    intercept_speed_ms: float | None = Field(default=None, ge=0)
    brake_at_arrival: bool = True
    aerobrake: bool = False
    aerobrake_limit_ms: float | None = Field(default=None, ge=0)
    ship_mass_kg: float | None = Field(default=None, gt=0)
    ship_isp_s: float | None = Field(default=None, gt=0)
    ship_thrust_n: float | None = Field(default=None, ge=0)
    fuel_available_kg: float | None = Field(default=None, ge=0)
    initial_state: StateIn | None = None
    arrival_placement: str | None = None
    parking_orbit_radius_km: float | None = Field(default=None, gt=0)

    def to_params(self, base: ManeuverParams | None = None) -> ManeuverParams:
        """Explicitly sent fields override ``base`` (e.g. figures from a ship roll-up)."""
        data = {k: getattr(self, k) for k in self.model_fields_set if k != "initial_state"}
        if self.initial_state is not None:
            data["initial_state"] = StateVector(
                np.array(self.initial_state.position_au, dtype=np.float64),
                np.array(self.initial_state.velocity_ms, dtype=np.float64),
            )
        if base is None:
            return ManeuverParams(**data)
        return replace(base, **data)


class _Timed(BaseModel):
    """Epoch seconds, or an ISO date when ``time`` is omitted."""

    time: float | None = None
    date: str | None = None

    @field_validator("date")
    @classmethod
    def check_iso_date(cls, v: str | None) -> str | None:
        return _validate_iso_date(v)

    def epoch(self) -> float:
        if self.time is not None:
            return self.time
        if self.date is not None:
            return iso_to_epoch(self.date)
        return 0.0


# --------------------------------------------------------------------------- #
#  Requests
# --------------------------------------------------------------------------- #
class PropagateRequest(_Timed):
    system: SystemIn
    node_ids: list[str] | None = None
    scene_units: bool = False


class LagrangeRequest(_Timed):
    system: SystemIn
    node_id: str
    scene_units: bool = False


class BoundariesRequest(BaseModel):
    system: SystemIn
    node_id: str


class ZonesRequest(BaseModel):
    system: SystemIn
    star_id: str
    probe_au: float | None = Field(default=None, ge=0)


class SpecsRequest(BaseModel):
    construct: ConstructIn
    catalog: CatalogIn = Field(default_factory=CatalogIn)
    system: SystemIn | None = None
    host_id: str | None = None


class ShipIn(BaseModel):
    construct: ConstructIn
    catalog: CatalogIn = Field(default_factory=CatalogIn)


class TransitRequest(_Timed):
    system: SystemIn
    origin_id: str
    target_id: str
    mode: str | None = None
    maneuver: ManeuverIn = Field(default_factory=ManeuverIn)
    ship: ShipIn | None = None
    scene_units: bool = False
    include_paths: bool = True

    @field_validator("mode")
    @classmethod
    def check_mode(cls, v: str | None) -> str | None:
        if v is not None and v.strip().lower() not in ("economy", "fast", "speed"):
            raise ValueError(f"mode must be 'economy', 'fast' or 'speed', got '{v}'")
        return v


class LegIn(BaseModel):
    target_id: str
    mode: str | None = None
    dwell_s: float = Field(default=0.0, ge=0, description="Wait at the previous stop before departing")
    maneuver: ManeuverIn | None = None


class TelemetryRequest(_Timed):
    system: SystemIn
    origin_id: str
    legs: list[LegIn] = Field(min_length=1)
    maneuver: ManeuverIn = Field(default_factory=ManeuverIn)
    ship: ShipIn | None = None
    mission_start: float | None = None
    samples: int | None = Field(default=None, ge=2, le=20_000)
    progress_pct: float | None = Field(default=None, ge=0, le=100)
    cancel_at: float | None = Field(default=None, description="Abandon the mission at this epoch and drift")
    drift_until: float | None = Field(default=None, description="End of the drift; defaults to the planned arrival")
    scene_units: bool = False

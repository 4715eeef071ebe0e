"""Construct records and the engine/fuel catalogs they reference."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Mapping, TypeVar

from errors import InputError

logger = logging.getLogger("orrery.construct")

T = TypeVar("T")


# --------------------------------------------------------------------------- #
#  Catalog entries
# --------------------------------------------------------------------------- #
@dataclass(frozen=True, slots=True)
class EngineDef:
    id: str
    thrust_kn: float
    isp_s: float
    fuel_type_id: str
    atmo_efficiency: float = 1.0  # fraction of thrust and Isp kept in atmosphere
    power_draw_mw: float = 0.0
    mass_kg: float = 0.0
    is_main: bool = True  # attitude thrusters are excluded from propulsion totals


@dataclass(frozen=True, slots=True)
class FuelDef:
    id: str
    density_kg_per_unit: float


# --------------------------------------------------------------------------- #
#  Construct components
# --------------------------------------------------------------------------- #
@dataclass(frozen=True, slots=True)
class EngineMount:
    engine_id: str
    quantity: int = 1


@dataclass(frozen=True, slots=True)
class FuelTank:
    fuel_type_id: str
    capacity_units: float
    current_units: float

    def __post_init__(self) -> None:
        if self.capacity_units < 0.0 or self.current_units < 0.0:
            raise InputError(f"Fuel tank for '{self.fuel_type_id}' has negative contents")
        if self.current_units > self.capacity_units:
            raise InputError(
                f"Fuel tank for '{self.fuel_type_id}' holds {self.current_units} units "
                f"but its capacity is {self.capacity_units}"
            )


@dataclass(frozen=True, slots=True)
class Module:
    name: str
    mass_kg: float = 0.0
    power_output_mw: float = 0.0
    power_draw_mw: float = 0.0


@dataclass(frozen=True, slots=True)
class Construct:
    id: str
    hull_mass_kg: float
    engines: tuple[EngineMount, ...] = field(default_factory=tuple)
    fuel_tanks: tuple[FuelTank, ...] = field(default_factory=tuple)
    modules: tuple[Module, ...] = field(default_factory=tuple)
    crew_count: int = 0
    provisions_person_days: float = 0.0
    cargo_mass_kg: float = 0.0
    has_landing_gear: bool = False
    can_aerobrake: bool = False
    thermal_protection: str = "none"
    aerobrake_limit_ms: float | None = None  # overrides the thermal protection table
    spin_radius_m: float = 0.0
    spin_period_s: float = 0.0

    def __post_init__(self) -> None:
        masses = (self.hull_mass_kg, self.cargo_mass_kg, self.provisions_person_days)
        if any(m < 0.0 or not math.isfinite(m) for m in masses):
            raise InputError(f"Construct '{self.id}' has negative or non-finite mass figures")
        if self.crew_count < 0:
            raise InputError(f"Construct '{self.id}' has a negative crew count")


def lookup(catalog: Mapping[str, T], item_id: str, kind: str) -> T | None:
    """Fetch a catalog entry; a missing id logs a warning and contributes nothing."""
    entry = catalog.get(item_id)
    if entry is None:
        logger.warning("Unknown %s id '%s'; treating it as absent", kind, item_id)
    return entry

"""Node records of a star-system snapshot and shared physical constants.

Nodes are immutable values. Positions are in AU, masses in kg, radii
and altitudes in km, periods and epochs in seconds.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from errors import InputError

if TYPE_CHECKING:
    from mechanics.boundaries import OrbitalBoundaries


# --------------------------------------------------------------------------- #
#  Physical constants
# --------------------------------------------------------------------------- #
G = 6.67430e-11  # m^3 / (kg s^2)
G0 = 9.80665  # standard gravity, m/s^2
AU_KM = 149_597_870.7
AU_M = AU_KM * 1000.0
SOLAR_RADIUS_KM = 696_340.0
SOLAR_TEMPERATURE_K = 5772.0
SOLAR_MASS_KG = 1.98847e30
GAS_CONSTANT = 8.314462618  # J / (mol K)
SECONDS_PER_DAY = 86_400.0
PA_PER_BAR = 100_000.0

NODE_KINDS = frozenset({"star", "planet", "moon", "belt", "ring", "barycenter", "construct"})


# --------------------------------------------------------------------------- #
#  Orbits
# --------------------------------------------------------------------------- #
@dataclass(frozen=True, slots=True)
class OrbitalElements:
    a_au: float  # semi-major axis
    e: float = 0.0  # eccentricity
    i_deg: float = 0.0  # inclination
    omega_deg: float = 0.0  # argument of periapsis
    raan_deg: float = 0.0  # longitude of ascending node
    m0_rad: float = 0.0  # mean anomaly at epoch

    def __post_init__(self) -> None:
        values = (self.a_au, self.e, self.i_deg, self.omega_deg, self.raan_deg, self.m0_rad)
        if not all(math.isfinite(v) for v in values):
            raise InputError(f"Orbital elements must be finite, got {values}")
        if self.a_au < 0.0:
            raise InputError(f"Semi-major axis must be non-negative, got {self.a_au}")
        if not 0.0 <= self.e < 1.0:
            raise InputError(f"Eccentricity must be in [0, 1), got {self.e}")


@dataclass(frozen=True, slots=True)
class Orbit:
    host_id: str
    host_mu: float  # G * M_host, m^3/s^2
    t0: float  # epoch, s
    elements: OrbitalElements
    n_rad_per_s: float | None = None  # fixed angular rate (surface-locked constructs)
    retrograde: bool = False

    def __post_init__(self) -> None:
        if not math.isfinite(self.host_mu) or self.host_mu < 0.0:
            raise InputError(f"Host gravitational parameter must be non-negative, got {self.host_mu}")
        if not math.isfinite(self.t0):
            raise InputError(f"Orbit epoch must be finite, got {self.t0}")
        if self.n_rad_per_s is not None and not math.isfinite(self.n_rad_per_s):
            raise InputError(f"Angular rate override must be finite, got {self.n_rad_per_s}")


@dataclass(frozen=True, slots=True)
class Atmosphere:
    pressure_bar: float
    surface_temp_k: float = 288.0
    molar_mass_kg: float = 0.029  # kg/mol

    @property
    def pressure_pa(self) -> float:
        return self.pressure_bar * PA_PER_BAR


# --------------------------------------------------------------------------- #
#  Nodes
# --------------------------------------------------------------------------- #
@dataclass(frozen=True, slots=True)
class Node:
    """A star, planet, moon, belt, ring, barycenter or placed construct."""

    id: str
    kind: str
    name: str = ""
    parent_id: str | None = None
    orbit: Orbit | None = None
    mass_kg: float = 0.0  # effective mass for barycenters
    radius_km: float = 0.0
    rotation_period_s: float = 0.0
    atmosphere: Atmosphere | None = None
    has_surface: bool = True

    # Stars
    temperature_k: float = 0.0
    luminosity_solar: float | None = None
    radiation_output: float = 1.0
    spectral_class: str = ""

    # Belts and rings (distance from parent centre)
    inner_radius_km: float = 0.0
    outer_radius_km: float = 0.0

    orbital_boundaries: OrbitalBoundaries | None = None
    tags: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.id:
            raise InputError("Node id must be a non-empty string")
        if self.kind not in NODE_KINDS:
            raise InputError(f"Node '{self.id}' has unknown kind '{self.kind}'")
        if self.mass_kg < 0.0 or self.radius_km < 0.0:
            raise InputError(f"Node '{self.id}' has negative mass or radius")
        if self.parent_id == self.id:
            raise InputError(f"Node '{self.id}' cannot be its own parent")

    @property
    def mu(self) -> float:
        """Gravitational parameter G*M in m^3/s^2."""
        return G * self.mass_kg

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def has_atmosphere(self, negligible_pa: float = 0.0) -> bool:
        return self.atmosphere is not None and self.atmosphere.pressure_pa > negligible_pa

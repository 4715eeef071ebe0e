from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from errors import ConfigurationError

logger = logging.getLogger("orrery.config")


class Settings(BaseSettings):
    # Rule pack (JSON); built-in defaults when unset
    rule_pack_path: Path | None = None

    # Scene scaling: 1 AU = this many scene units
    scene_scale_au: float = 1000.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_prefix": "ORRERY_"}


# --------------------------------------------------------------------------- #
#  Rule pack: injected physical and gameplay constants
# --------------------------------------------------------------------------- #

class OrbitalConstants(BaseModel):
    """Constants used to carve a body's altitude range into orbit bands."""

    no_atmosphere_leo_km: float = Field(default=30.0, gt=0)
    airless_leo_soi_fraction: float = Field(default=0.2, gt=0, lt=1)
    target_orbital_pressure_pa: float = Field(default=1e-4, gt=0)
    negligible_atmosphere_pa: float = Field(default=1.0, ge=0)
    micro_system_threshold_km: float = Field(default=1000.0, ge=0)
    floor_buffer_fraction: float = Field(default=0.9, gt=0, lt=1)
    rogue_soi_fraction: float = Field(default=0.01, gt=0)
    rogue_host_distance_km: float = Field(default=1.495978707e8, gt=0)
    geo_fallback_soi_fraction: float = Field(default=0.1, gt=0, le=1)
    lagrange_offset_deg: float = Field(default=60.0, gt=0, lt=180)


class ZoneConstants(BaseModel):
    """Stellar zone thresholds (temperatures in K, factors dimensionless)."""

    rock_line_k: float = Field(default=1400.0, gt=0)
    soot_line_k: float = Field(default=500.0, gt=0)
    frost_line_k: float = Field(default=170.0, gt=0)
    co2_line_k: float = Field(default=70.0, gt=0)
    co_line_k: float = Field(default=30.0, gt=0)
    kill_zone_coefficient: float = Field(default=0.1, ge=0)
    danger_zone_multiplier: float = Field(default=5.0, ge=1)
    system_limit_factor: float = Field(default=2.0, ge=1)
    roche_density_kg_m3: float = Field(default=3000.0, gt=0)
    uv_factors: dict[str, float] = Field(default_factory=lambda: {
        "O": 100.0, "B": 50.0, "A": 10.0, "F": 5.0, "G": 1.0, "K": 0.5, "M": 0.1,
    })
    default_uv_factor: float = Field(default=1.0, ge=0)
    # Kopparapu et al. (2013) S_eff polynomials: [S_eff_sun, a, b, c, d]
    habitable_inner_coefficients: list[float] = Field(
        default_factory=lambda: [1.107, 1.332e-4, 1.58e-8, -8.308e-12, -1.931e-15],
    )
    habitable_outer_coefficients: list[float] = Field(
        default_factory=lambda: [0.356, 6.171e-5, 1.698e-9, -3.198e-12, -5.575e-16],
    )
    habitable_teff_min_k: float = 2600.0
    habitable_teff_max_k: float = 7200.0

    @field_validator("habitable_inner_coefficients", "habitable_outer_coefficients")
    @classmethod
    def check_coefficients(cls, v: list[float]) -> list[float]:
        if len(v) != 5:
            raise ValueError(f"habitable zone polynomial needs 5 coefficients, got {len(v)}")
        if v[0] <= 0:
            raise ValueError("solar effective flux must be positive")
        return v


class PerformanceConstants(BaseModel):
    """Construct roll-up constants."""

    liftoff_twr_margin: float = Field(default=0.1, ge=0)
    crew_member_mass_kg: float = Field(default=100.0, ge=0)
    provisions_kg_per_person_day: float = Field(default=2.0, ge=0)
    # Maximum entry speed shed by aerobraking, km/s, keyed by thermal protection
    thermal_limits_kms: dict[str, float] = Field(default_factory=lambda: {
        "none": 3.0, "ceramic": 12.0, "ablative": 20.0, "magnetic": 50.0, "forcefield": 500.0,
    })


class TransitConstants(BaseModel):
    """Transit planner tolerances, ceilings and tagging thresholds."""

    max_practical_delta_v_ms: float = Field(default=100_000.0, gt=0)
    high_g_threshold: float = Field(default=2.0, gt=0)
    path_points_per_segment: int = Field(default=50, ge=2, le=2000)
    economy_min_burn_fraction: float = Field(default=0.001, gt=0, le=0.5)
    economy_max_burn_fraction: float = Field(default=0.5, gt=0, le=0.5)
    economy_fallback_burn_fraction: float = Field(default=0.1, gt=0, le=0.5)
    hohmann_optimal_tolerance: float = Field(default=0.1, gt=0)
    dedup_tolerance_days: float = Field(default=0.1, ge=0)
    aerobrake_window_s: float = Field(default=600.0, gt=0)
    aerobrake_g_factor: float = Field(default=1.5, gt=0)
    min_transfer_time_s: float = Field(default=60.0, gt=0)
    max_transfer_time_s: float = Field(default=100 * 365.25 * 86400.0, gt=0)
    solver_xtol_s: float = Field(default=1e-3, gt=0)
    solver_max_iter: int = Field(default=100, ge=1)
    mass_max_iter: int = Field(default=30, ge=1)
    mass_tolerance: float = Field(default=1e-9, gt=0)


class TelemetryConstants(BaseModel):
    """Telemetry sampling and hazard thresholds."""

    default_samples: int = Field(default=200, ge=2, le=20_000)
    g_warning: float = Field(default=2.0, gt=0)
    g_critical: float = Field(default=10.0, gt=0)


class RulePack(BaseModel):
    """All injected constants, grouped by consumer."""

    name: str = "default"
    orbital: OrbitalConstants = Field(default_factory=OrbitalConstants)
    zones: ZoneConstants = Field(default_factory=ZoneConstants)
    performance: PerformanceConstants = Field(default_factory=PerformanceConstants)
    transit: TransitConstants = Field(default_factory=TransitConstants)
    telemetry: TelemetryConstants = Field(default_factory=TelemetryConstants)


DEFAULT_RULES = RulePack()


def load_rule_pack(path: Path | str) -> RulePack:
    """Read and validate a JSON rule pack. Missing keys keep their defaults."""
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(path, f"cannot read file ({e})") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(path, f"malformed JSON ({e})") from e

    try:
        pack = RulePack.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(path, str(e)) from e

    logger.info("Loaded rule pack '%s' from %s", pack.name, path)
    return pack


settings = Settings()

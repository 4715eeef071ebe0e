"""Unit conversions, epoch helpers and small vector utilities.

Handles:
- AU <-> km <-> m and AU <-> scene units (1 AU = configurable scale)
- ISO-8601 <-> epoch seconds (UTC)
- Straight-line geometry used by the planner's hazard checks
"""

from __future__ import annotations

import math
from datetime import datetime, timezone

import numpy as np
from numba import njit

from config import settings
from system.bodies import AU_KM, AU_M

# --------------------------------------------------------------------------- #
#  Unit conversions
# --------------------------------------------------------------------------- #
SCENE_SCALE = settings.scene_scale_au  # 1 AU = this many scene units


def au_to_scene(pos_au: np.ndarray) -> np.ndarray:
    """Convert position from AU to scene units."""
    return pos_au * SCENE_SCALE


def km_to_au(value_km):
    return value_km / AU_KM


def au_to_km(value_au):
    return value_au * AU_KM


def au_to_m(value_au):
    return value_au * AU_M


def m_to_au(value_m):
    return value_m / AU_M


# --------------------------------------------------------------------------- #
#  Epoch conversions  (ISO-8601 <-> Unix seconds)
# --------------------------------------------------------------------------- #
def iso_to_epoch(iso_str: str) -> float:
    """Convert an ISO date string to Unix seconds. Naive values are UTC."""
    dt = datetime.fromisoformat(iso_str)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def epoch_to_iso(epoch_s: float) -> str:
    """Convert Unix seconds to an ISO date string (UTC)."""
    return datetime.fromtimestamp(epoch_s, tz=timezone.utc).isoformat()


# --------------------------------------------------------------------------- #
#  Vector helpers
# --------------------------------------------------------------------------- #
def unit_vector(vec: np.ndarray) -> np.ndarray:
    """Direction of ``vec``; the +x axis for a zero vector."""
    norm = float(np.linalg.norm(vec))
    if norm <= 0.0 or not math.isfinite(norm):
        return np.array([1.0, 0.0, 0.0])
    return vec / norm


@njit(cache=True)
def distance_to_segment(p: np.ndarray, a: np.ndarray, b: np.ndarray) -> float:
    """Minimum distance from point ``p`` to the segment ``a``-``b``."""
    ab = b - a
    denom = ab[0]**2 + ab[1]**2 + ab[2]**2
    if denom <= 0.0:
        d = p - a
        return math.sqrt(d[0]**2 + d[1]**2 + d[2]**2)
    s = ((p[0] - a[0]) * ab[0] + (p[1] - a[1]) * ab[1] + (p[2] - a[2]) * ab[2]) / denom
    s = max(0.0, min(1.0, s))
    d = a + s * ab - p
    return math.sqrt(d[0]**2 + d[1]**2 + d[2]**2)

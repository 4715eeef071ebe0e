"""Lagrange points of a body and the massive ancestor it orbits.

Positions are absolute, in AU, for the pair's geometry at one instant. L1
and L2 sit a Hill radius either side of the secondary, L3 opposite it
beyond the primary, and L4 / L5 lead and trail it by 60 degrees in its
orbital plane.
"""

from __future__ import annotations

import logging
import math

import numpy as np

from errors import InputError
from mechanics.transforms import unit_vector
from system.snapshot import SystemSnapshot

logger = logging.getLogger("orrery.lagrange")

LAGRANGE_NAMES = ("L1", "L2", "L3", "L4", "L5")
_TRIANGLE_RAD = math.pi / 3.0


def _rotate(vec: np.ndarray, axis: np.ndarray, angle_rad: float) -> np.ndarray:
    """Rodrigues rotation of ``vec`` about the unit ``axis``."""
    c, s = math.cos(angle_rad), math.sin(angle_rad)
    return vec * c + np.cross(axis, vec) * s + axis * float(np.dot(axis, vec)) * (1.0 - c)


def lagrange_points(system: SystemSnapshot, node_id: str, t: float) -> dict[str, np.ndarray]:
    """L1..L5 for ``node_id`` and its gravitational host at ``t``.

    Raises
    ------
    InputError
        The node has no orbit, no massive host, no mass of its own, or sits
        on top of its host.
    """
    secondary = system.get(node_id)
    if secondary.orbit is None or secondary.parent_id is None:
        raise InputError(f"Node '{node_id}' does not orbit anything")
    primary = system.gravitational_host(secondary.parent_id)
    if primary is None or secondary.mass_kg <= 0.0:
        raise InputError(f"Node '{node_id}' needs a mass and a massive host for Lagrange points")

    r1, v1 = system.get_state(primary.id, t)
    r2, v2 = system.get_state(node_id, t)
    rel = r2 - r1
    R = float(np.linalg.norm(rel))
    if R <= 0.0:
        raise InputError(f"Node '{node_id}' coincides with its host")
    u = rel / R

    q = secondary.mass_kg / primary.mass_kg
    hill = R * math.cbrt(q / 3.0)

    # Orbit normal from the relative motion; a node at rest takes the ecliptic pole
    normal = np.cross(rel, v2 - v1)
    axis = unit_vector(normal) if float(np.linalg.norm(normal)) > 0.0 else np.array([0.0, 0.0, 1.0])

    points = {
        "L1": r2 - u * hill,
        "L2": r2 + u * hill,
        "L3": r1 - u * R * (1.0 + 5.0 * q / 12.0),
        "L4": r1 + _rotate(rel, axis, _TRIANGLE_RAD),
        "L5": r1 + _rotate(rel, axis, -_TRIANGLE_RAD),
    }
    logger.debug("Lagrange points of '%s' about '%s' at t=%.0f", node_id, primary.id, t)
    return points

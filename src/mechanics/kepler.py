"""Keplerian orbital mechanics: element propagation and state conversion.

Positions are returned in AU and velocities in m/s, host-centred.
Gravitational parameters are in m^3/s^2 and times in seconds.
Performance-critical inner loops are JIT-compiled with Numba.
"""

from __future__ import annotations

import logging
import math

import numpy as np
from numba import njit

from errors import InputError
from system.bodies import AU_M, Orbit, OrbitalElements

logger = logging.getLogger("orrery.kepler")


# --------------------------------------------------------------------------- #
#  Constants
# --------------------------------------------------------------------------- #
TWO_PI = 2.0 * math.pi


# --------------------------------------------------------------------------- #
#  Kepler's equation
# --------------------------------------------------------------------------- #
@njit(cache=True)
def solve_kepler(M: float, ecc: float, tol: float = 1e-12, max_iter: int = 50) -> tuple:
    """Solve Kepler's equation M = E - e*sin(E) for the eccentric anomaly.

    Newton-Raphson safeguarded by a bisection bracket on [0, 2*pi]: any
    Newton step leaving the bracket is replaced by its midpoint, so the
    iteration cannot diverge for e close to 1.

    Parameters
    ----------
    M : mean anomaly (rad), any value; normalized to [0, 2*pi)
    ecc : eccentricity in [0, 1)
    tol : residual tolerance on |E - e*sin(E) - M|
    max_iter : iteration cap

    Returns
    -------
    (E, converged)
        E is the last iterate when the budget runs out.
    """
    M = M - TWO_PI * math.floor(M / TWO_PI)
    lo = 0.0
    hi = TWO_PI
    if ecc > 0.8:
        E = math.pi
    else:
        E = M + ecc * math.sin(M)

    for _ in range(max_iter):
        f = E - ecc * math.sin(E) - M
        if abs(f) < tol:
            return E, True
        if f > 0.0:
            hi = E
        else:
            lo = E
        E_next = E - f / (1.0 - ecc * math.cos(E))
        if E_next <= lo or E_next >= hi:
            E_next = 0.5 * (lo + hi)
        E = E_next

    f = E - ecc * math.sin(E) - M
    return E, abs(f) < tol


@njit(cache=True)
def _rotate_to_host(x: float, y: float, inc: float, raan: float, argp: float) -> np.ndarray:
    """Rotate a perifocal (x, y, 0) vector through argp, inc, raan."""
    cos_raan = math.cos(raan)
    sin_raan = math.sin(raan)
    cos_argp = math.cos(argp)
    sin_argp = math.sin(argp)
    cos_inc = math.cos(inc)
    sin_inc = math.sin(inc)

    return np.array([
        (cos_raan * cos_argp - sin_raan * sin_argp * cos_inc) * x
        + (-cos_raan * sin_argp - sin_raan * cos_argp * cos_inc) * y,

        (sin_raan * cos_argp + cos_raan * sin_argp * cos_inc) * x
        + (-sin_raan * sin_argp + cos_raan * cos_argp * cos_inc) * y,

        (sin_argp * sin_inc) * x + (cos_argp * sin_inc) * y,
    ])


@njit(cache=True)
def anomaly_state(a_au: float, ecc: float, inc: float, raan: float, argp: float,
                  E: float, n: float) -> tuple:
    """State on an ellipse at eccentric anomaly E with angular rate n (rad/s).

    Returns (r, v) as (3,) arrays in AU and m/s. With the Keplerian rate
    n = sqrt(mu/a^3) the speed satisfies vis-viva.
    """
    cos_E = math.cos(E)
    sin_E = math.sin(E)
    root = math.sqrt(1.0 - ecc * ecc)

    x = a_au * (cos_E - ecc)
    y = a_au * root * sin_E

    rate = n * a_au * AU_M / (1.0 - ecc * cos_E)
    vx = -rate * sin_E
    vy = rate * root * cos_E

    return _rotate_to_host(x, y, inc, raan, argp), _rotate_to_host(vx, vy, inc, raan, argp)


# --------------------------------------------------------------------------- #
#  Element propagation
# --------------------------------------------------------------------------- #
def mean_motion(orbit: Orbit) -> float:
    """Signed angular rate in rad/s (negative for retrograde orbits)."""
    if orbit.n_rad_per_s is not None:
        n = orbit.n_rad_per_s
    else:
        a_m = orbit.elements.a_au * AU_M
        if a_m <= 0.0 or orbit.host_mu <= 0.0:
            return 0.0
        n = math.sqrt(orbit.host_mu / a_m**3)
    return -n if orbit.retrograde else n


def orbital_period(orbit: Orbit) -> float:
    """Period in seconds; ``inf`` for a pinned (non-moving) orbit."""
    n = abs(mean_motion(orbit))
    return TWO_PI / n if n > 0.0 else math.inf


def propagate(orbit: Orbit, t: float) -> tuple[np.ndarray, np.ndarray]:
    """Host-centred position (AU) and velocity (m/s) of an orbit at time ``t``.

    ``a == 0``, or ``mu == 0`` without a rate override, pins the node to its host.
    """
    el = orbit.elements
    if el.a_au <= 0.0 or (orbit.host_mu <= 0.0 and orbit.n_rad_per_s is None):
        return np.zeros(3), np.zeros(3)

    n = mean_motion(orbit)
    M = el.m0_rad + n * (t - orbit.t0)
    E, converged = solve_kepler(M, el.e)
    if not converged:
        logger.warning("Kepler solver did not converge (M=%.6f, e=%.6f); using best iterate", M, el.e)

    return anomaly_state(
        el.a_au, el.e,
        math.radians(el.i_deg), math.radians(el.raan_deg), math.radians(el.omega_deg),
        E, n,
    )


# --------------------------------------------------------------------------- #
#  State vector -> classical orbital elements
# --------------------------------------------------------------------------- #
@njit(cache=True)
def state_to_elements(r: np.ndarray, v: np.ndarray, mu: float) -> tuple:
    """Convert state vector (r, v) to classical Keplerian elements.

    Parameters
    ----------
    r : (3,) position in m
    v : (3,) velocity in m/s
    mu : gravitational parameter m^3/s^2

    Returns
    -------
    (a, e, i, raan, argp, nu)
        a    - semi-major axis (m), ``inf`` when parabolic
        e    - eccentricity
        i    - inclination (rad)
        raan - longitude of ascending node (rad)
        argp - argument of periapsis (rad)
        nu   - true anomaly (rad); argument of latitude or true longitude
               when the orbit is circular
    """
    r_mag = np.sqrt(r[0]**2 + r[1]**2 + r[2]**2)
    v_mag = np.sqrt(v[0]**2 + v[1]**2 + v[2]**2)

    # Specific angular momentum
    h = np.array([
        r[1] * v[2] - r[2] * v[1],
        r[2] * v[0] - r[0] * v[2],
        r[0] * v[1] - r[1] * v[0],
    ])
    h_mag = np.sqrt(h[0]**2 + h[1]**2 + h[2]**2)

    # Node vector
    n = np.array([-h[1], h[0], 0.0])
    n_mag = np.sqrt(n[0]**2 + n[1]**2)

    # Eccentricity vector
    rdotv = r[0] * v[0] + r[1] * v[1] + r[2] * v[2]
    e_vec = (v_mag**2 - mu / r_mag) * r / mu - rdotv * v / mu
    ecc = np.sqrt(e_vec[0]**2 + e_vec[1]**2 + e_vec[2]**2)

    energy = v_mag**2 / 2.0 - mu / r_mag
    if abs(ecc - 1.0) > 1e-10:
        a = -mu / (2.0 * energy)
    else:
        a = np.inf

    inc = math.acos(max(-1.0, min(1.0, h[2] / h_mag)))

    if n_mag > 1e-10:
        raan = math.acos(max(-1.0, min(1.0, n[0] / n_mag)))
        if n[1] < 0:
            raan = TWO_PI - raan
    else:
        raan = 0.0

    if n_mag > 1e-10 and ecc > 1e-10:
        cos_argp = (n[0] * e_vec[0] + n[1] * e_vec[1] + n[2] * e_vec[2]) / (n_mag * ecc)
        argp = math.acos(max(-1.0, min(1.0, cos_argp)))
        if e_vec[2] < 0:
            argp = TWO_PI - argp
    elif ecc > 1e-10:
        # Equatorial: periapsis longitude measured from +x
        argp = math.atan2(e_vec[1], e_vec[0])
        if h[2] < 0:
            argp = -argp
        if argp < 0:
            argp += TWO_PI
    else:
        argp = 0.0

    if ecc > 1e-10:
        cos_nu = (e_vec[0] * r[0] + e_vec[1] * r[1] + e_vec[2] * r[2]) / (ecc * r_mag)
        nu = math.acos(max(-1.0, min(1.0, cos_nu)))
        if rdotv < 0:
            nu = TWO_PI - nu
    elif n_mag > 1e-10:
        cos_u = (n[0] * r[0] + n[1] * r[1]) / (n_mag * r_mag)
        nu = math.acos(max(-1.0, min(1.0, cos_u)))
        if r[2] < 0:
            nu = TWO_PI - nu
    else:
        nu = math.atan2(r[1], r[0])
        if h[2] < 0:
            nu = -nu
        if nu < 0:
            nu += TWO_PI

    return a, ecc, inc, raan, argp, nu


def orbit_from_state(
    host_id: str,
    host_mu: float,
    r_au: np.ndarray,
    v_ms: np.ndarray,
    t: float,
) -> Orbit:
    """Build the bound Orbit passing through a host-relative state at time ``t``.

    Raises InputError for unbound (parabolic or hyperbolic) states.
    """
    if host_mu <= 0.0:
        raise InputError("Cannot fit an orbit around a massless host")
    r_m = np.asarray(r_au, dtype=np.float64) * AU_M
    v = np.asarray(v_ms, dtype=np.float64)
    if not np.any(r_m):
        raise InputError("Cannot fit an orbit through the host centre")

    a, ecc, inc, raan, argp, nu = state_to_elements(r_m, v, host_mu)
    if not ecc < 1.0 or not math.isfinite(a) or a <= 0.0:
        raise InputError(f"State is not bound to host '{host_id}' (e={ecc:.4f})")

    E = 2.0 * math.atan2(
        math.sqrt(1.0 - ecc) * math.sin(nu / 2.0),
        math.sqrt(1.0 + ecc) * math.cos(nu / 2.0),
    )
    M0 = (E - ecc * math.sin(E)) % TWO_PI

    # Circular orbits carry their phase in nu with periapsis pinned at the node
    elements = OrbitalElements(
        a_au=a / AU_M,
        e=float(ecc),
        i_deg=math.degrees(inc),
        omega_deg=math.degrees(argp),
        raan_deg=math.degrees(raan),
        m0_rad=M0,
    )
    return Orbit(host_id=host_id, host_mu=host_mu, t0=t, elements=elements)

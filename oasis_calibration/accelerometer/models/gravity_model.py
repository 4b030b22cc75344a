################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Gravity expressed in the local NED frame for a geodetic position.

Uses the Somigliana model for gravity on the WGS-84 ellipsoid surface and a
second-order height correction for the down component.
"""

from __future__ import annotations

import math

import numpy as np
from numpy.typing import NDArray


# m, WGS-84 equatorial radius
EQUATORIAL_RADIUS_M: float = 6378137.0

# m, WGS-84 polar radius
POLAR_RADIUS_M: float = 6356752.31425

# unitless, WGS-84 eccentricity
ECCENTRICITY: float = 0.0818191908425

# unitless, WGS-84 flattening
FLATTENING: float = 1.0 / 298.257223563

# rad/s, Earth rotation rate
EARTH_ROTATION_RATE_RADS: float = 7.292115e-5

# m^3/s^2, WGS-84 Earth gravitational constant
EARTH_GRAVITATIONAL_CONSTANT: float = 3.986004418e14

# m/s^2, Somigliana gravity at the equator
EQUATORIAL_GRAVITY_MPS2: float = 9.7803253359

# unitless, Somigliana constant
SOMIGLIANA_K: float = 0.001931853

# 1/s^2, north gravity component per meter of height and sin(2 * latitude)
NORTH_HEIGHT_COEFF: float = 8.08e-9


class GravityModelError(Exception):
    """Raised when a position is outside the model domain."""


def ned_gravity(latitude_rad: float, height_m: float) -> NDArray[np.float64]:
    """Return the [north, east, down] gravity vector in m/s^2."""
    lat: float = float(latitude_rad)
    h: float = float(height_m)
    if not math.isfinite(lat) or not math.isfinite(h):
        raise GravityModelError("latitude and height must be finite")
    if abs(lat) > 0.5 * math.pi:
        raise GravityModelError("latitude must be within [-pi/2, pi/2]")

    sin_lat: float = math.sin(lat)
    sin_lat2: float = sin_lat * sin_lat
    g0: float = (
        EQUATORIAL_GRAVITY_MPS2
        * (1.0 + SOMIGLIANA_K * sin_lat2)
        / math.sqrt(1.0 - ECCENTRICITY * ECCENTRICITY * sin_lat2)
    )

    R0: float = EQUATORIAL_RADIUS_M
    height_term: float = (
        2.0
        / R0
        * (
            1.0
            + FLATTENING
            * (1.0 - 2.0 * sin_lat2)
            + EARTH_ROTATION_RATE_RADS**2
            * R0**2
            * POLAR_RADIUS_M
            / EARTH_GRAVITATIONAL_CONSTANT
        )
        * h
    )
    g_down: float = g0 * (1.0 - height_term + 3.0 * h * h / (R0 * R0))
    g_north: float = -NORTH_HEIGHT_COEFF * h * math.sin(2.0 * lat)

    return np.array([g_north, 0.0, g_down], dtype=np.float64)


def gravity_norm(latitude_rad: float, height_m: float) -> float:
    """Return the gravity norm in m/s^2 at a geodetic position."""
    return float(np.linalg.norm(ned_gravity(latitude_rad, height_m)))

################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################
"""Acceleration unit conversion helpers and physical constants."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


class AccelerationUnit:
    """Identifiers for supported acceleration units."""

    METERS_PER_SQUARED_SECOND: str = "m/s^2"
    CENTIMETERS_PER_SQUARED_SECOND: str = "cm/s^2"
    FEET_PER_SQUARED_SECOND: str = "ft/s^2"
    G: str = "g"
    MILLI_G: str = "mg"


class PhysicalConstants:
    """Physical constants used by the calibration math."""

    # m/s^2, standard gravity used by the g-based units
    GRAVITY_MPS2: float = 9.80665
    # m, length of one international foot
    FOOT_M: float = 0.3048


# Factor that converts one unit into m/s^2
_TO_MPS2: dict[str, float] = {
    AccelerationUnit.METERS_PER_SQUARED_SECOND: 1.0,
    AccelerationUnit.CENTIMETERS_PER_SQUARED_SECOND: 0.01,
    AccelerationUnit.FEET_PER_SQUARED_SECOND: PhysicalConstants.FOOT_M,
    AccelerationUnit.G: PhysicalConstants.GRAVITY_MPS2,
    AccelerationUnit.MILLI_G: PhysicalConstants.GRAVITY_MPS2 * 1e-3,
}


class Acceleration:
    """Acceleration unit conversions."""

    @staticmethod
    def units() -> tuple[str, ...]:
        """Return the supported unit identifiers."""
        return tuple(_TO_MPS2.keys())

    @staticmethod
    def to_mps2(
        x: float | NDArray[np.float64],
        unit: str,
    ) -> float | NDArray[np.float64]:
        """Convert a value expressed in the given unit to m/s^2."""
        factor: float = _factor(unit)
        arr: NDArray[np.float64] = np.asarray(x, dtype=float) * factor
        if np.ndim(arr) == 0:
            return float(arr)
        return arr

    @staticmethod
    def from_mps2(
        x: float | NDArray[np.float64],
        unit: str,
    ) -> float | NDArray[np.float64]:
        """Convert a value in m/s^2 to the given unit."""
        factor: float = _factor(unit)
        arr: NDArray[np.float64] = np.asarray(x, dtype=float) / factor
        if np.ndim(arr) == 0:
            return float(arr)
        return arr

    @staticmethod
    def convert(
        x: float | NDArray[np.float64],
        from_unit: str,
        to_unit: str,
    ) -> float | NDArray[np.float64]:
        """Convert a value between two acceleration units."""
        return Acceleration.from_mps2(Acceleration.to_mps2(x, from_unit), to_unit)


def _factor(unit: str) -> float:
    if unit not in _TO_MPS2:
        raise ValueError(f"Unsupported acceleration unit: {unit}")
    return _TO_MPS2[unit]

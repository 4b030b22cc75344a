################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Result bundle of an accelerometer calibration run."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray

from oasis_calibration.accelerometer.calibrator.calibrator_errors import (
    InvalidInputError,
)


# Canonical parameter order of common z-axis result covariances
PARAMETER_NAMES: tuple[str, ...] = (
    "sx",
    "sy",
    "sz",
    "mxy",
    "mxz",
    "myx",
    "myz",
    "mzx",
    "mzy",
)

# Column-major parameter order of general result covariances, as fitted
GENERAL_PARAMETER_NAMES: tuple[str, ...] = (
    "sx",
    "myx",
    "mzx",
    "mxy",
    "sy",
    "mzy",
    "mxz",
    "myz",
    "sz",
)

# (row, col) entry of Ma for each canonical parameter
PARAMETER_ENTRIES: dict[str, tuple[int, int]] = {
    "sx": (0, 0),
    "sy": (1, 1),
    "sz": (2, 2),
    "mxy": (0, 1),
    "mxz": (0, 2),
    "myx": (1, 0),
    "myz": (1, 2),
    "mzx": (2, 0),
    "mzy": (2, 1),
}


@dataclass(frozen=True)
class CalibrationResult:
    """Immutable bundle of a successful calibration.

    Attributes:
        estimated_ma: Scale factor and cross-coupling matrix, unitless
        covariance: 9x9 covariance, unitless^2. General fits keep the solver
            order GENERAL_PARAMETER_NAMES; common z-axis fits are expanded
            into PARAMETER_NAMES order
        chi_sq: Weighted chi-square reported by the solver
        mse: Mean squared error reported by the solver in (m/s^2)^4
        iterations: Number of solver iterations executed
        common_axis_used: True when the common z-axis model was fitted
    """

    estimated_ma: NDArray[np.float64]
    covariance: NDArray[np.float64]
    chi_sq: float
    mse: float
    iterations: int
    common_axis_used: bool

    def __post_init__(self) -> None:
        """Validate result fields and coerce arrays."""
        if not isinstance(self.iterations, int) or isinstance(self.iterations, bool):
            raise ValueError("iterations must be an int")
        if self.iterations < 0:
            raise ValueError("iterations must be non-negative")
        if not isinstance(self.common_axis_used, bool):
            raise ValueError("common_axis_used must be a bool")
        _require_finite(self.chi_sq, "chi_sq")
        _require_finite(self.mse, "mse")

        estimated_ma: NDArray[np.float64] = _as_float_array(
            self.estimated_ma, "estimated_ma", (3, 3)
        )
        covariance: NDArray[np.float64] = _as_float_array(
            self.covariance,
            "covariance",
            (len(PARAMETER_NAMES), len(PARAMETER_NAMES)),
        )
        object.__setattr__(self, "estimated_ma", estimated_ma)
        object.__setattr__(self, "covariance", covariance)
        object.__setattr__(self, "chi_sq", float(self.chi_sq))
        object.__setattr__(self, "mse", float(self.mse))

    @property
    def covariance_names(self) -> tuple[str, ...]:
        """Return the parameter names indexing the covariance rows."""
        if self.common_axis_used:
            return PARAMETER_NAMES
        return GENERAL_PARAMETER_NAMES

    def parameter(self, name: str) -> float:
        """Return the named entry of the estimated Ma matrix."""
        row, col = parameter_entry(name)
        return float(self.estimated_ma[row, col])

    def parameter_variance(self, name: str) -> float:
        """Return the variance of the named parameter."""
        parameter_entry(name)
        index: int = self.covariance_names.index(name)
        return float(self.covariance[index, index])

    def parameter_std(self, name: str) -> float:
        """Return the standard deviation of the named parameter."""
        return float(np.sqrt(max(self.parameter_variance(name), 0.0)))

    def as_dict(self) -> dict[str, Any]:
        """Return a plain Python representation for logging."""
        return {
            "estimated_ma": self.estimated_ma.tolist(),
            "covariance": self.covariance.tolist(),
            "covariance_names": list(self.covariance_names),
            "chi_sq": self.chi_sq,
            "mse": self.mse,
            "iterations": self.iterations,
            "common_axis_used": self.common_axis_used,
        }


def parameter_entry(name: str) -> tuple[int, int]:
    """Return the (row, col) of Ma for a parameter name such as "mxy"."""
    if name not in PARAMETER_ENTRIES:
        raise InvalidInputError(f"Unknown parameter name: {name}")
    return PARAMETER_ENTRIES[name]


def _as_float_array(
    value: Any,
    name: str,
    shape: tuple[int, ...],
) -> NDArray[np.float64]:
    """Coerce a value to a float64 numpy array with a specific shape."""
    array: NDArray[np.float64] = np.array(value, dtype=np.float64)
    if array.shape != shape:
        raise ValueError(f"{name} must have shape {shape}")
    if not np.all(np.isfinite(array)):
        raise ValueError(f"{name} must contain finite values")
    return array


def _require_finite(value: float, name: str) -> None:
    """Ensure a scalar value is finite."""
    if not np.isfinite(value):
        raise ValueError(f"{name} must be finite")

################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Covariance container and parameter-space remapping.

Common z-axis fits estimate six parameters. Their covariance is expanded into
the canonical order [sx, sy, sz, mxy, mxz, myx, myz, mzx, mzy] through a fixed
linear map J as J * P * J^T.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from oasis_calibration.accelerometer.calibration_types.calibration_result import (
    PARAMETER_ENTRIES,
)
from oasis_calibration.accelerometer.calibration_types.calibration_result import (
    PARAMETER_NAMES,
)
from oasis_calibration.accelerometer.models.accel_calibration_model import (
    UPPER_TRIANGULAR_ENTRIES,
)


# Symmetry tolerance for covariance validation
SYM_TOL: float = 1e-9


class CovarianceError(Exception):
    """Raised when covariance matrices are invalid or unsupported."""


@dataclass(frozen=True)
class Covariance:
    """Container for symmetric covariance matrices.

    Attributes:
        P: Symmetric covariance matrix with shape (N, N)
    """

    P: np.ndarray

    def __post_init__(self) -> None:
        """Validate covariance shape, dtype, and symmetry."""
        P: np.ndarray = np.array(self.P, dtype=np.float64)
        if P.ndim != 2 or P.shape[0] != P.shape[1]:
            raise CovarianceError("Covariance must be a square matrix")
        if not np.all(np.isfinite(P)):
            raise CovarianceError("Covariance contains non-finite values")
        scale: float = max(float(np.max(np.abs(P))) if P.size else 0.0, 1.0)
        if not np.allclose(P, P.T, rtol=0.0, atol=SYM_TOL * scale):
            raise CovarianceError("Covariance must be symmetric")
        object.__setattr__(self, "P", P)

    def dim(self) -> int:
        """Return the dimension of the covariance matrix."""
        return int(self.P.shape[0])

    def as_array(self) -> np.ndarray:
        """Return a defensive copy of the covariance matrix."""
        return self.P.copy()

    def propagate(self, jacobian: np.ndarray) -> Covariance:
        """Return J * P * J^T for a linear map J."""
        J: np.ndarray = np.asarray(jacobian, dtype=np.float64)
        if J.ndim != 2 or J.shape[1] != self.dim():
            raise CovarianceError(
                f"jacobian must have shape (M, {self.dim()}) for this covariance"
            )
        propagated: np.ndarray = J @ self.P @ J.T
        return Covariance(0.5 * (propagated + propagated.T))


def _canonical_jacobian(entries: tuple[tuple[int, int], ...]) -> np.ndarray:
    """Return the map placing packed parameters into canonical slots."""
    jacobian: np.ndarray = np.zeros(
        (len(PARAMETER_NAMES), len(entries)), dtype=np.float64
    )
    for col, entry in enumerate(entries):
        for row, name in enumerate(PARAMETER_NAMES):
            if PARAMETER_ENTRIES[name] == entry:
                jacobian[row, col] = 1.0
    return jacobian


# 9x6 map from common z-axis parameters to canonical order; myx, mzx and mzy
# rows are zero
COMMON_AXIS_TO_CANONICAL_JACOBIAN: np.ndarray = _canonical_jacobian(
    UPPER_TRIANGULAR_ENTRIES
)


def common_axis_to_canonical(cov: np.ndarray) -> np.ndarray:
    """Expand a 6x6 common z-axis covariance into the canonical 9x9 space.

    Entries that are not estimated by the common z-axis model get zero
    variance and zero covariance with every other parameter.
    """
    return Covariance(cov).propagate(COMMON_AXIS_TO_CANONICAL_JACOBIAN).as_array()

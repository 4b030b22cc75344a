################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Correction of measured specific force using calibration estimates."""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import NDArray

from oasis_calibration.accelerometer.calibration_types import CalibrationResult
from oasis_calibration.accelerometer.math_utils.linalg import AlgebraError
from oasis_calibration.accelerometer.math_utils.linalg import Linalg


class AccelerationFixerError(Exception):
    """Raised when the fixer is misconfigured or cannot be applied."""


def _as_float_array(value: Any, name: str, shape: tuple[int, ...]) -> np.ndarray:
    array: np.ndarray = np.array(value, dtype=np.float64)
    if array.shape != shape:
        raise AccelerationFixerError(f"{name} must have shape {shape}")
    if not np.all(np.isfinite(array)):
        raise AccelerationFixerError(f"{name} must contain finite values")
    return array


class AccelerationFixer:
    """Undo bias and scale/cross-coupling errors on measured specific force.

    Computes f_true = (I + M_a)^-1 * (f_meas - b_a).
    """

    def __init__(self, b_a_mps2: Any, M_a: Any) -> None:
        self._b_a_mps2: NDArray[np.float64] = _as_float_array(
            b_a_mps2, "b_a_mps2", (3,)
        )
        self._M_a: NDArray[np.float64] = _as_float_array(M_a, "M_a", (3, 3))
        try:
            self._inv_M: NDArray[np.float64] = Linalg.inverse(
                np.eye(3, dtype=np.float64) + self._M_a
            )
        except AlgebraError as exc:
            raise AccelerationFixerError("I + M_a is not invertible") from exc

    @classmethod
    def from_result(cls, result: CalibrationResult, b_a_mps2: Any) -> AccelerationFixer:
        """Create a fixer from a calibration result and the known bias."""
        return cls(b_a_mps2, result.estimated_ma)

    @property
    def b_a_mps2(self) -> NDArray[np.float64]:
        return self._b_a_mps2.copy()

    @property
    def M_a(self) -> NDArray[np.float64]:
        return self._M_a.copy()

    def fix(self, f_meas_mps2: Any) -> NDArray[np.float64]:
        """Return corrected specific force for a (3,) or (N, 3) input."""
        f_meas: NDArray[np.float64] = np.asarray(f_meas_mps2, dtype=np.float64)
        if f_meas.shape == (3,):
            return self._inv_M @ (f_meas - self._b_a_mps2)
        if f_meas.ndim != 2 or f_meas.shape[1] != 3:
            raise AccelerationFixerError("f_meas_mps2 must have shape (3,) or (N, 3)")
        return (f_meas - self._b_a_mps2) @ self._inv_M.T

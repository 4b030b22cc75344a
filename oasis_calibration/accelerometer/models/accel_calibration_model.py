################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Accelerometer measurement model with known bias and gravity norm.

The sensor model is::

    f_meas = b_a + (I + M_a) * f_true

With M = I + M_a and b = M^-1 * b_a this becomes f_meas = M * (f_true + b),
so the true specific force is recovered as f_true = M^-1 * f_meas - b. For a
static pose the norm of f_true equals the local gravity norm, which makes
||f_true||^2 a scalar function of M alone that can be fitted to g^2.

Two parameterizations of M are supported:

- general: all nine entries, packed column-major
  [m11, m21, m31, m12, m22, m32, m13, m23, m33]
- common z-axis: M upper triangular (m21 = m31 = m32 = 0), packed
  column-major [m11, m12, m22, m13, m23, m33]
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import NDArray

from oasis_calibration.accelerometer.math_utils.gradient import DEFAULT_RELATIVE_STEP
from oasis_calibration.accelerometer.math_utils.gradient import GradientEstimator
from oasis_calibration.accelerometer.math_utils.linalg import AlgebraError
from oasis_calibration.accelerometer.math_utils.linalg import Linalg


# Number of unknowns for the general model
GENERAL_UNKNOWNS: int = 9

# Number of unknowns when a common z-axis is assumed
COMMON_Z_AXIS_UNKNOWNS: int = 6

# Minimum number of measurements for the general model
MINIMUM_MEASUREMENTS_GENERAL: int = GENERAL_UNKNOWNS + 1

# Minimum number of measurements for the common z-axis model
MINIMUM_MEASUREMENTS_COMMON_Z_AXIS: int = COMMON_Z_AXIS_UNKNOWNS + 1

# (row, col) of M for each common z-axis parameter, column-major
UPPER_TRIANGULAR_ENTRIES: tuple[tuple[int, int], ...] = (
    (0, 0),
    (0, 1),
    (1, 1),
    (0, 2),
    (1, 2),
    (2, 2),
)

# (row, col) of M forced to zero by the common z-axis model
SUPPRESSED_ENTRIES: tuple[tuple[int, int], ...] = ((1, 0), (2, 0), (2, 1))


class AccelCalibrationModelError(Exception):
    """Raised when accelerometer model inputs are invalid."""


class EvaluationError(Exception):
    """Raised when the model cannot be evaluated for a parameter vector."""


def _as_float_array(value: Any, name: str, shape: tuple[int, ...]) -> np.ndarray:
    """Return a float64 numpy array with a required shape."""
    array: np.ndarray = np.array(value, dtype=np.float64)
    if array.shape != shape:
        raise AccelCalibrationModelError(f"{name} must have shape {shape}")
    if not np.all(np.isfinite(array)):
        raise AccelCalibrationModelError(f"{name} must contain finite values")
    return array


def pack_general(M: NDArray[np.float64]) -> NDArray[np.float64]:
    """Pack a 3x3 matrix into the column-major general parameter vector."""
    mat: NDArray[np.float64] = _as_float_array(M, "M", (3, 3))
    return np.asarray(mat.reshape(GENERAL_UNKNOWNS, order="F"), dtype=np.float64)


def unpack_general(params: NDArray[np.float64]) -> NDArray[np.float64]:
    """Unpack the general parameter vector into a 3x3 matrix."""
    vec: NDArray[np.float64] = np.asarray(params, dtype=np.float64)
    if vec.shape != (GENERAL_UNKNOWNS,):
        raise AccelCalibrationModelError(
            f"params must have shape ({GENERAL_UNKNOWNS},)"
        )
    return np.array(vec.reshape((3, 3), order="F"), dtype=np.float64)


def pack_common_axis(M: NDArray[np.float64]) -> NDArray[np.float64]:
    """Pack the upper-triangular entries of a 3x3 matrix, column-major."""
    mat: NDArray[np.float64] = _as_float_array(M, "M", (3, 3))
    return np.array(
        [mat[row, col] for row, col in UPPER_TRIANGULAR_ENTRIES],
        dtype=np.float64,
    )


def unpack_common_axis(params: NDArray[np.float64]) -> NDArray[np.float64]:
    """Unpack common z-axis parameters into an upper-triangular matrix."""
    vec: NDArray[np.float64] = np.asarray(params, dtype=np.float64)
    if vec.shape != (COMMON_Z_AXIS_UNKNOWNS,):
        raise AccelCalibrationModelError(
            f"params must have shape ({COMMON_Z_AXIS_UNKNOWNS},)"
        )
    mat: NDArray[np.float64] = np.zeros((3, 3), dtype=np.float64)
    for value, (row, col) in zip(vec, UPPER_TRIANGULAR_ENTRIES):
        mat[row, col] = value
    return mat


def predicted_squared_norm(
    M: NDArray[np.float64],
    b_a_mps2: NDArray[np.float64],
    f_meas_mps2: NDArray[np.float64],
) -> float:
    """Return ||M^-1 * f_meas - M^-1 * b_a||^2 in (m/s^2)^2.

    Raises:
        EvaluationError: if M cannot be inverted
    """
    try:
        inv_M: NDArray[np.float64] = Linalg.inverse(M)
    except AlgebraError as exc:
        raise EvaluationError(f"Cannot invert M: {exc}") from exc
    b: NDArray[np.float64] = inv_M @ b_a_mps2
    f_true: NDArray[np.float64] = inv_M @ f_meas_mps2 - b
    norm: float = Linalg.frobenius_norm(f_true)
    return norm * norm


def distort(
    f_true_mps2: NDArray[np.float64],
    b_a_mps2: NDArray[np.float64],
    M_a: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Apply the sensor model to true specific forces.

    Accepts a single (3,) vector or an (N, 3) array of row vectors.
    """
    f_true: NDArray[np.float64] = np.asarray(f_true_mps2, dtype=np.float64)
    b_a: NDArray[np.float64] = _as_float_array(b_a_mps2, "b_a_mps2", (3,))
    M: NDArray[np.float64] = np.eye(3, dtype=np.float64) + _as_float_array(
        M_a, "M_a", (3, 3)
    )
    if f_true.shape == (3,):
        return b_a + M @ f_true
    if f_true.ndim != 2 or f_true.shape[1] != 3:
        raise AccelCalibrationModelError("f_true_mps2 must have shape (3,) or (N, 3)")
    return f_true @ M.T + b_a


class AccelCalibrationModel:
    """Residual model for the known-bias, known-gravity-norm calibration."""

    def __init__(
        self,
        b_a_mps2: NDArray[np.float64],
        *,
        common_axis: bool = False,
        relative_step: float = DEFAULT_RELATIVE_STEP,
    ) -> None:
        self._b_a_mps2: NDArray[np.float64] = _as_float_array(
            b_a_mps2, "b_a_mps2", (3,)
        )
        self._common_axis: bool = bool(common_axis)
        self._relative_step: float = float(relative_step)

    @property
    def b_a_mps2(self) -> NDArray[np.float64]:
        return self._b_a_mps2.copy()

    @property
    def common_axis(self) -> bool:
        return self._common_axis

    @property
    def num_params(self) -> int:
        if self._common_axis:
            return COMMON_Z_AXIS_UNKNOWNS
        return GENERAL_UNKNOWNS

    @property
    def minimum_measurements(self) -> int:
        if self._common_axis:
            return MINIMUM_MEASUREMENTS_COMMON_Z_AXIS
        return MINIMUM_MEASUREMENTS_GENERAL

    def initial_params(self, initial_M_a: NDArray[np.float64]) -> NDArray[np.float64]:
        """Return the parameter vector for M = I + initial_M_a.

        In common z-axis mode the sub-diagonal entries of the guess are
        dropped.
        """
        M: NDArray[np.float64] = np.eye(3, dtype=np.float64) + _as_float_array(
            initial_M_a, "initial_M_a", (3, 3)
        )
        if self._common_axis:
            return pack_common_axis(M)
        return pack_general(M)

    def unpack(self, params: NDArray[np.float64]) -> NDArray[np.float64]:
        """Return M for a parameter vector of this model."""
        if self._common_axis:
            return unpack_common_axis(params)
        return unpack_general(params)

    def ma_from_params(self, params: NDArray[np.float64]) -> NDArray[np.float64]:
        """Return M_a = M - I for a parameter vector of this model."""
        return self.unpack(params) - np.eye(3, dtype=np.float64)

    def evaluate(
        self,
        params: NDArray[np.float64],
        f_meas_mps2: NDArray[np.float64],
    ) -> float:
        """Return the predicted squared gravity norm for one measurement."""
        try:
            M: NDArray[np.float64] = self.unpack(params)
        except AccelCalibrationModelError as exc:
            raise EvaluationError(str(exc)) from exc
        return predicted_squared_norm(M, self._b_a_mps2, f_meas_mps2)

    def evaluate_with_gradient(
        self,
        params: NDArray[np.float64],
        f_meas_mps2: NDArray[np.float64],
    ) -> tuple[float, NDArray[np.float64]]:
        """Return the predicted squared norm and its parameter gradient."""
        f_meas: NDArray[np.float64] = np.asarray(f_meas_mps2, dtype=np.float64)
        estimator: GradientEstimator = GradientEstimator(
            lambda p: self.evaluate(p, f_meas),
            relative_step=self._relative_step,
        )
        gradient: NDArray[np.float64] = estimator.gradient(params)
        return self.evaluate(params, f_meas), gradient

################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################
"""Linear algebra utilities for accelerometer calibration."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


# Units: unitless. Meaning: largest condition number accepted for inversion
MAX_CONDITION_NUMBER: float = 1.0 / float(np.finfo(np.float64).eps)

# Relative singular value cutoff for pseudo-inverses
PSEUDO_INVERSE_RCOND: float = 1e-10


class AlgebraError(Exception):
    """Raised when a matrix operation cannot be completed."""


class Linalg:
    """General linear algebra helpers."""

    @staticmethod
    def inverse(m: NDArray[np.float64]) -> NDArray[np.float64]:
        """Return the inverse of a square matrix.

        Raises:
            AlgebraError: if the matrix is not square, not finite, singular or
                too ill-conditioned to be inverted reliably
        """
        mat: NDArray[np.float64] = np.asarray(m, dtype=float)
        if mat.ndim != 2 or mat.shape[0] != mat.shape[1]:
            raise AlgebraError("Matrix must be square")
        if not np.all(np.isfinite(mat)):
            raise AlgebraError("Matrix must be finite")
        cond: float = float(np.linalg.cond(mat))
        if not np.isfinite(cond) or cond > MAX_CONDITION_NUMBER:
            raise AlgebraError("Matrix is singular or ill-conditioned")
        try:
            inv: NDArray[np.float64] = np.asarray(np.linalg.inv(mat), dtype=float)
        except np.linalg.LinAlgError as exc:
            raise AlgebraError("Matrix is singular") from exc
        return inv

    @staticmethod
    def pseudo_inverse(
        m: NDArray[np.float64],
        *,
        rcond: float = PSEUDO_INVERSE_RCOND,
    ) -> NDArray[np.float64]:
        """Return the Moore-Penrose pseudo-inverse of a symmetric matrix.

        Singular values below ``rcond`` times the largest one are treated as
        zero.
        """
        mat: NDArray[np.float64] = np.asarray(m, dtype=float)
        if mat.ndim != 2 or mat.shape[0] != mat.shape[1]:
            raise AlgebraError("Matrix must be square")
        if not np.all(np.isfinite(mat)):
            raise AlgebraError("Matrix must be finite")
        sym: NDArray[np.float64] = 0.5 * (mat + mat.T)
        return np.asarray(np.linalg.pinv(sym, rcond=rcond, hermitian=True), dtype=float)

    @staticmethod
    def frobenius_norm(x: NDArray[np.float64]) -> float:
        """Return the Frobenius norm of a vector or matrix."""
        arr: NDArray[np.float64] = np.asarray(x, dtype=float)
        return float(np.sqrt(np.sum(arr * arr)))

################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################
"""Finite-difference gradient of scalar functions."""

from __future__ import annotations

from typing import Callable

import numpy as np
from numpy.typing import NDArray


# Units: unitless. Meaning: default relative central-difference step
DEFAULT_RELATIVE_STEP: float = 1e-6


class GradientEstimator:
    """Central-difference gradient estimator.

    The step used for each coordinate is ``relative_step * max(|x_j|, 1)`` so
    parameters close to zero still get a usable perturbation. Exceptions
    raised by the wrapped function propagate unchanged.
    """

    def __init__(
        self,
        function: Callable[[NDArray[np.float64]], float],
        *,
        relative_step: float = DEFAULT_RELATIVE_STEP,
    ) -> None:
        if not np.isfinite(relative_step) or relative_step <= 0.0:
            raise ValueError("relative_step must be positive")
        self._function: Callable[[NDArray[np.float64]], float] = function
        self._relative_step: float = float(relative_step)

    @property
    def relative_step(self) -> float:
        return self._relative_step

    def gradient(self, point: NDArray[np.float64]) -> NDArray[np.float64]:
        """Return the gradient of the wrapped function at ``point``."""
        x: NDArray[np.float64] = np.array(point, dtype=np.float64)
        if x.ndim != 1:
            raise ValueError("point must be a 1D array")
        grad: NDArray[np.float64] = np.zeros(x.size, dtype=np.float64)
        for j in range(x.size):
            x_j: float = float(x[j])
            h: float = self._relative_step * max(abs(x_j), 1.0)

            x[j] = x_j + h
            f_plus: float = float(self._function(x))
            x[j] = x_j - h
            f_minus: float = float(self._function(x))
            x[j] = x_j

            grad[j] = (f_plus - f_minus) / (2.0 * h)
        return grad

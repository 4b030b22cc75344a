################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Levenberg-Marquardt fitter for scalar multi-dimensional models.

Fits y_i ~ f(x_i; a) with per-row standard deviations sigma_i by minimizing
chi^2 = sum(((y_i - f(x_i; a)) / sigma_i)^2). The model is supplied as a row
evaluator returning f(x_i; a) and its gradient with respect to a.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

import numpy as np
from numpy.typing import NDArray

from oasis_calibration.accelerometer.math_utils.linalg import AlgebraError
from oasis_calibration.accelerometer.math_utils.linalg import Linalg


_LOG: logging.Logger = logging.getLogger(__name__)


# Maximum number of Marquardt iterations
DEFAULT_MAX_ITERS: int = 5000

# Units: unitless. Meaning: relative chi-square change treated as no progress
DEFAULT_TOLERANCE: float = 1e-3

# Consecutive no-progress iterations required for convergence
DEFAULT_NDONE: int = 4

# Units: unitless. Meaning: initial Marquardt damping factor
DEFAULT_INITIAL_LAMBDA: float = 1e-3

# Units: unitless. Meaning: damping decrease/increase factor
_LAMBDA_FACTOR: float = 10.0


# evaluator(row_index, row, params) -> (value, gradient wrt params)
RowEvaluator = Callable[
    [int, NDArray[np.float64], NDArray[np.float64]],
    tuple[float, NDArray[np.float64]],
]


class FittingError(Exception):
    """Raised when the fit cannot be completed."""


@dataclass(frozen=True)
class FitResult:
    """Outcome of a converged fit.

    Attributes:
        params: Fitted parameter vector
        covariance: Parameter covariance matrix
        chi_sq: Weighted chi-square at the solution
        mse: Mean of unweighted squared residuals at the solution
        iterations: Number of Marquardt iterations executed
    """

    params: NDArray[np.float64]
    covariance: NDArray[np.float64]
    chi_sq: float
    mse: float
    iterations: int


def _accumulate(
    x: NDArray[np.float64],
    y: NDArray[np.float64],
    sigma: NDArray[np.float64],
    params: NDArray[np.float64],
    evaluator: RowEvaluator,
) -> tuple[NDArray[np.float64], NDArray[np.float64], float, float]:
    """Return curvature, gradient vector, chi-square and mse at ``params``."""
    dim: int = int(params.size)
    alpha: NDArray[np.float64] = np.zeros((dim, dim), dtype=np.float64)
    beta: NDArray[np.float64] = np.zeros(dim, dtype=np.float64)
    chi_sq: float = 0.0
    sq_sum: float = 0.0
    for i in range(x.shape[0]):
        value, gradient = evaluator(i, x[i], params)
        grad: NDArray[np.float64] = np.asarray(gradient, dtype=np.float64)
        if grad.shape != (dim,):
            raise FittingError(f"gradient must have shape ({dim},)")
        if not np.isfinite(value) or not np.all(np.isfinite(grad)):
            raise FittingError(f"non-finite model evaluation at row {i}")
        sig2i: float = 1.0 / float(sigma[i] * sigma[i])
        dy: float = float(y[i]) - float(value)
        weighted: NDArray[np.float64] = grad * sig2i
        alpha += np.outer(weighted, grad)
        beta += dy * weighted
        chi_sq += dy * dy * sig2i
        sq_sum += dy * dy
    return alpha, beta, chi_sq, sq_sum / float(x.shape[0])


def _damped_step(
    alpha: NDArray[np.float64],
    beta: NDArray[np.float64],
    lam: float,
) -> NDArray[np.float64]:
    damped: NDArray[np.float64] = alpha.copy()
    damped[np.diag_indices_from(damped)] *= 1.0 + lam
    try:
        delta: NDArray[np.float64] = np.asarray(
            np.linalg.solve(damped, beta),
            dtype=np.float64,
        )
    except np.linalg.LinAlgError as exc:
        raise FittingError("Singular curvature matrix") from exc
    if not np.all(np.isfinite(delta)):
        raise FittingError("Non-finite parameter step")
    return delta


class LevenbergMarquardtFitter:
    """Levenberg-Marquardt least-squares fitter."""

    def __init__(
        self,
        *,
        max_iters: int = DEFAULT_MAX_ITERS,
        tolerance: float = DEFAULT_TOLERANCE,
        ndone: int = DEFAULT_NDONE,
        initial_lambda: float = DEFAULT_INITIAL_LAMBDA,
        adjust_covariance: bool = False,
    ) -> None:
        if max_iters <= 0:
            raise FittingError("max_iters must be positive")
        if ndone <= 0:
            raise FittingError("ndone must be positive")
        if not np.isfinite(tolerance) or tolerance <= 0.0:
            raise FittingError("tolerance must be positive")
        if not np.isfinite(initial_lambda) or initial_lambda <= 0.0:
            raise FittingError("initial_lambda must be positive")
        self._max_iters: int = int(max_iters)
        self._tolerance: float = float(tolerance)
        self._ndone: int = int(ndone)
        self._initial_lambda: float = float(initial_lambda)
        self._adjust_covariance: bool = bool(adjust_covariance)

    def fit(
        self,
        x: NDArray[np.float64],
        y: NDArray[np.float64],
        sigma: NDArray[np.float64],
        initial_params: NDArray[np.float64],
        evaluator: RowEvaluator,
    ) -> FitResult:
        """Fit the model and return parameters, covariance and statistics.

        Raises:
            FittingError: on malformed input, singular curvature or when no
                convergence is reached within the iteration budget
        """
        x_in, y_in, sigma_in, a = _validate_inputs(x, y, sigma, initial_params)

        alpha, beta, chi_sq, mse = _accumulate(x_in, y_in, sigma_in, a, evaluator)
        lam: float = self._initial_lambda
        old_chi_sq: float = chi_sq
        done: int = 0

        for iteration in range(1, self._max_iters + 1):
            if done >= self._ndone:
                covariance: NDArray[np.float64] = _covariance(alpha)
                covariance = 0.5 * (covariance + covariance.T)
                dof: int = int(x_in.shape[0]) - int(a.size)
                if self._adjust_covariance and dof > 0:
                    covariance = covariance * (chi_sq / float(dof))
                _LOG.info(
                    "Converged after %d iterations, chi_sq=%.6e", iteration, chi_sq
                )
                return FitResult(
                    params=a,
                    covariance=covariance,
                    chi_sq=chi_sq,
                    mse=mse,
                    iterations=iteration,
                )

            delta: NDArray[np.float64] = _damped_step(alpha, beta, lam)
            a_try: NDArray[np.float64] = a + delta
            alpha_try, beta_try, chi_try, mse_try = _accumulate(
                x_in, y_in, sigma_in, a_try, evaluator
            )

            if abs(chi_try - old_chi_sq) < max(
                self._tolerance, self._tolerance * chi_try
            ):
                done += 1

            if chi_try < old_chi_sq:
                lam /= _LAMBDA_FACTOR
                old_chi_sq = chi_try
                alpha, beta, chi_sq, mse = alpha_try, beta_try, chi_try, mse_try
                a = a_try
            else:
                lam *= _LAMBDA_FACTOR

            _LOG.debug(
                "Iteration %d: chi_sq=%.6e lambda=%.3e", iteration, chi_sq, lam
            )

        raise FittingError(f"No convergence after {self._max_iters} iterations")


def _covariance(alpha: NDArray[np.float64]) -> NDArray[np.float64]:
    try:
        return Linalg.inverse(alpha)
    except AlgebraError:
        _LOG.warning("Curvature matrix is rank deficient, using pseudo-inverse")
        return Linalg.pseudo_inverse(alpha)


def _validate_inputs(
    x: NDArray[np.float64],
    y: NDArray[np.float64],
    sigma: NDArray[np.float64],
    initial_params: NDArray[np.float64],
) -> tuple[
    NDArray[np.float64],
    NDArray[np.float64],
    NDArray[np.float64],
    NDArray[np.float64],
]:
    x_in: NDArray[np.float64] = np.asarray(x, dtype=np.float64)
    y_in: NDArray[np.float64] = np.asarray(y, dtype=np.float64)
    sigma_in: NDArray[np.float64] = np.asarray(sigma, dtype=np.float64)
    a: NDArray[np.float64] = np.array(initial_params, dtype=np.float64)

    if x_in.ndim != 2 or x_in.shape[0] == 0:
        raise FittingError("x must be a non-empty 2D array")
    rows: int = int(x_in.shape[0])
    if y_in.shape != (rows,):
        raise FittingError(f"y must have shape ({rows},)")
    if sigma_in.shape != (rows,):
        raise FittingError(f"sigma must have shape ({rows},)")
    if a.ndim != 1 or a.size == 0:
        raise FittingError("initial_params must be a non-empty 1D array")
    for name, array in (("x", x_in), ("y", y_in), ("sigma", sigma_in), ("a", a)):
        if not np.all(np.isfinite(array)):
            raise FittingError(f"{name} must be finite")
    if np.any(sigma_in <= 0.0):
        raise FittingError("sigma must be positive")
    return x_in, y_in, sigma_in, a

################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Tests for the Levenberg-Marquardt fitter."""

from __future__ import annotations

import logging

import numpy as np
import pytest
from numpy.typing import NDArray

from oasis_calibration.accelerometer.solver.lm_fitter import FitResult
from oasis_calibration.accelerometer.solver.lm_fitter import FittingError
from oasis_calibration.accelerometer.solver.lm_fitter import (
    LevenbergMarquardtFitter,
)


def _exponential(
    i: int,
    row: NDArray[np.float64],
    params: NDArray[np.float64],
) -> tuple[float, NDArray[np.float64]]:
    """Evaluate a * exp(b * t) and its gradient."""
    t: float = float(row[0])
    e: float = float(np.exp(params[1] * t))
    return float(params[0] * e), np.array([e, params[0] * t * e], dtype=np.float64)


def _line(
    i: int,
    row: NDArray[np.float64],
    params: NDArray[np.float64],
) -> tuple[float, NDArray[np.float64]]:
    """Evaluate a + b * t and its gradient."""
    t: float = float(row[0])
    return float(params[0] + params[1] * t), np.array([1.0, t], dtype=np.float64)


def _samples(
    count: int,
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    t: NDArray[np.float64] = np.linspace(0.0, 2.0, count, dtype=np.float64)
    x: NDArray[np.float64] = t.reshape(-1, 1)
    y: NDArray[np.float64] = 2.5 * np.exp(-1.3 * t)
    sigma: NDArray[np.float64] = np.full(count, 0.01, dtype=np.float64)
    return x, y, sigma


def test_fits_exponential() -> None:
    """Noise-free exponential data is recovered from a rough start."""
    x, y, sigma = _samples(25)
    fitter: LevenbergMarquardtFitter = LevenbergMarquardtFitter()
    result: FitResult = fitter.fit(
        x, y, sigma, np.array([2.0, -1.0], dtype=np.float64), _exponential
    )
    assert np.allclose(result.params, [2.5, -1.3], atol=1e-3)
    assert result.chi_sq < 1e-3
    assert result.mse < 1e-7
    assert result.iterations > 0
    assert result.covariance.shape == (2, 2)
    assert np.allclose(result.covariance, result.covariance.T)
    assert np.all(np.diag(result.covariance) > 0.0)


def test_linear_covariance_matches_normal_equations() -> None:
    """For a linear model the covariance is (A^T W A)^-1."""
    t: NDArray[np.float64] = np.linspace(-1.0, 1.0, 11, dtype=np.float64)
    x: NDArray[np.float64] = t.reshape(-1, 1)
    y: NDArray[np.float64] = 0.5 + 2.0 * t
    sigma: NDArray[np.float64] = np.full(t.size, 0.1, dtype=np.float64)

    result: FitResult = LevenbergMarquardtFitter().fit(
        x, y, sigma, np.zeros(2, dtype=np.float64), _line
    )

    A: NDArray[np.float64] = np.column_stack([np.ones_like(t), t])
    expected: NDArray[np.float64] = np.linalg.inv(A.T @ A / 0.01)
    assert np.allclose(result.params, [0.5, 2.0], atol=1e-6)
    assert np.allclose(result.covariance, expected, rtol=1e-6)


def test_convergence_logged_at_info(caplog: pytest.LogCaptureFixture) -> None:
    """Convergence is reported at info level."""
    t: NDArray[np.float64] = np.linspace(-1.0, 1.0, 11, dtype=np.float64)
    sigma: NDArray[np.float64] = np.full(t.size, 0.1, dtype=np.float64)

    with caplog.at_level(logging.INFO):
        LevenbergMarquardtFitter().fit(
            t.reshape(-1, 1), 0.5 + 2.0 * t, sigma, np.zeros(2), _line
        )

    converged: list[logging.LogRecord] = [
        record for record in caplog.records if "Converged" in record.getMessage()
    ]
    assert len(converged) == 1
    assert converged[0].levelno == logging.INFO


def test_adjust_covariance_scales_by_reduced_chi_square() -> None:
    """Covariance adjustment multiplies by chi_sq / (N - M)."""
    rng: np.random.Generator = np.random.default_rng(7)
    t: NDArray[np.float64] = np.linspace(-1.0, 1.0, 21, dtype=np.float64)
    x: NDArray[np.float64] = t.reshape(-1, 1)
    y: NDArray[np.float64] = 0.5 + 2.0 * t + rng.normal(0.0, 0.1, t.size)
    sigma: NDArray[np.float64] = np.full(t.size, 0.1, dtype=np.float64)

    plain: FitResult = LevenbergMarquardtFitter().fit(
        x, y, sigma, np.zeros(2, dtype=np.float64), _line
    )
    adjusted: FitResult = LevenbergMarquardtFitter(adjust_covariance=True).fit(
        x, y, sigma, np.zeros(2, dtype=np.float64), _line
    )
    scale: float = adjusted.chi_sq / float(t.size - 2)
    assert np.allclose(adjusted.covariance, plain.covariance * scale, rtol=1e-6)


def test_non_convergence_raises() -> None:
    """Exhausting the iteration budget raises FittingError."""
    x, y, sigma = _samples(25)
    fitter: LevenbergMarquardtFitter = LevenbergMarquardtFitter(max_iters=2)
    with pytest.raises(FittingError):
        fitter.fit(x, y, sigma, np.array([1.0, -0.5], dtype=np.float64), _exponential)


def test_rejects_non_positive_sigma() -> None:
    """Zero standard deviations cannot be weighted."""
    x, y, sigma = _samples(5)
    sigma[2] = 0.0
    with pytest.raises(FittingError):
        LevenbergMarquardtFitter().fit(x, y, sigma, np.ones(2), _exponential)


def test_rejects_mismatched_shapes() -> None:
    """Targets must have one entry per row."""
    x, y, sigma = _samples(5)
    with pytest.raises(FittingError):
        LevenbergMarquardtFitter().fit(x, y[:-1], sigma, np.ones(2), _exponential)


def test_rejects_invalid_settings() -> None:
    """Non-positive solver settings are rejected."""
    with pytest.raises(FittingError):
        LevenbergMarquardtFitter(max_iters=0)
    with pytest.raises(FittingError):
        LevenbergMarquardtFitter(tolerance=0.0)
    with pytest.raises(FittingError):
        LevenbergMarquardtFitter(ndone=0)
    with pytest.raises(FittingError):
        LevenbergMarquardtFitter(initial_lambda=-1.0)


def test_evaluator_errors_propagate() -> None:
    """Errors raised by the evaluator reach the caller unchanged."""

    def failing(
        i: int,
        row: NDArray[np.float64],
        params: NDArray[np.float64],
    ) -> tuple[float, NDArray[np.float64]]:
        raise ArithmeticError("cannot evaluate")

    x, y, sigma = _samples(5)
    with pytest.raises(ArithmeticError):
        LevenbergMarquardtFitter().fit(x, y, sigma, np.ones(2), failing)


def test_rank_deficient_model_uses_pseudo_inverse() -> None:
    """Parameters that are not separately observable still get a covariance."""

    def redundant(
        i: int,
        row: NDArray[np.float64],
        params: NDArray[np.float64],
    ) -> tuple[float, NDArray[np.float64]]:
        t: float = float(row[0])
        return float((params[0] + params[1]) * t), np.array([t, t], dtype=np.float64)

    t: NDArray[np.float64] = np.linspace(0.5, 2.0, 8, dtype=np.float64)
    x: NDArray[np.float64] = t.reshape(-1, 1)
    y: NDArray[np.float64] = 3.0 * t
    sigma: NDArray[np.float64] = np.full(t.size, 0.1, dtype=np.float64)

    result: FitResult = LevenbergMarquardtFitter().fit(
        x, y, sigma, np.zeros(2, dtype=np.float64), redundant
    )
    assert result.params[0] + result.params[1] == pytest.approx(3.0, abs=1e-6)
    assert np.all(np.isfinite(result.covariance))
    assert result.covariance[0, 0] == pytest.approx(result.covariance[0, 1])

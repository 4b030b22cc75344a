################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Tests for specific-force correction."""

from __future__ import annotations

import numpy as np
import pytest
from numpy.typing import NDArray

from oasis_calibration.accelerometer.calibration_types import CalibrationResult
from oasis_calibration.accelerometer.models.accel_calibration_model import distort
from oasis_calibration.accelerometer.models.acceleration_fixer import (
    AccelerationFixer,
)
from oasis_calibration.accelerometer.models.acceleration_fixer import (
    AccelerationFixerError,
)


_BIAS_MPS2: NDArray[np.float64] = np.array([0.1, -0.05, 0.2], dtype=np.float64)

_MA: NDArray[np.float64] = np.array(
    [[0.01, 0.002, -0.001], [0.003, 0.02, 0.001], [-0.002, 0.001, 0.015]],
    dtype=np.float64,
)


def test_fix_undoes_distortion() -> None:
    """Fixing a distorted vector recovers the true specific force."""
    f_true: NDArray[np.float64] = np.array([1.0, -2.0, 9.5], dtype=np.float64)
    fixer: AccelerationFixer = AccelerationFixer(_BIAS_MPS2, _MA)
    fixed: NDArray[np.float64] = fixer.fix(distort(f_true, _BIAS_MPS2, _MA))
    assert np.allclose(fixed, f_true, atol=1e-12)


def test_fix_batch() -> None:
    """Batches are corrected row by row."""
    f_true: NDArray[np.float64] = np.array(
        [[0.0, 0.0, 9.81], [9.81, 0.0, 0.0], [0.0, -9.81, 0.0]], dtype=np.float64
    )
    fixer: AccelerationFixer = AccelerationFixer(_BIAS_MPS2, _MA)
    fixed: NDArray[np.float64] = fixer.fix(distort(f_true, _BIAS_MPS2, _MA))
    assert fixed.shape == (3, 3)
    assert np.allclose(fixed, f_true, atol=1e-12)


def test_from_result() -> None:
    """A fixer can be built from a calibration result."""
    result: CalibrationResult = CalibrationResult(
        estimated_ma=_MA,
        covariance=np.zeros((9, 9)),
        chi_sq=0.0,
        mse=0.0,
        iterations=1,
        common_axis_used=False,
    )
    fixer: AccelerationFixer = AccelerationFixer.from_result(result, _BIAS_MPS2)
    assert np.allclose(fixer.M_a, _MA)
    assert np.allclose(fixer.b_a_mps2, _BIAS_MPS2)


def test_singular_correction_rejected() -> None:
    """M_a = -I leaves nothing to invert."""
    with pytest.raises(AccelerationFixerError):
        AccelerationFixer(_BIAS_MPS2, -np.eye(3))


def test_bad_input_shape() -> None:
    """Inputs that are not 3-vectors are rejected."""
    fixer: AccelerationFixer = AccelerationFixer(_BIAS_MPS2, _MA)
    with pytest.raises(AccelerationFixerError):
        fixer.fix(np.zeros((2, 2)))

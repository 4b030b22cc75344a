################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Tests for the calibration result bundle."""

from __future__ import annotations

import numpy as np
import pytest
from numpy.typing import NDArray

from oasis_calibration.accelerometer.calibration_types import GENERAL_PARAMETER_NAMES
from oasis_calibration.accelerometer.calibration_types import PARAMETER_NAMES
from oasis_calibration.accelerometer.calibration_types import CalibrationResult
from oasis_calibration.accelerometer.calibrator.calibrator_errors import (
    InvalidInputError,
)


def _make_result(common_axis_used: bool = False) -> CalibrationResult:
    ma: NDArray[np.float64] = np.array(
        [[0.01, 0.002, -0.001], [0.003, 0.02, 0.001], [-0.002, 0.004, 0.015]],
        dtype=float,
    )
    cov: NDArray[np.float64] = np.diag(np.arange(1.0, 10.0) * 1e-6)
    return CalibrationResult(
        estimated_ma=ma,
        covariance=cov,
        chi_sq=3.5,
        mse=1e-4,
        iterations=7,
        common_axis_used=common_axis_used,
    )


def test_named_parameters() -> None:
    """Named entries map onto the matrix entries."""
    result: CalibrationResult = _make_result()
    assert result.parameter("sx") == pytest.approx(0.01)
    assert result.parameter("sy") == pytest.approx(0.02)
    assert result.parameter("sz") == pytest.approx(0.015)
    assert result.parameter("mxy") == pytest.approx(0.002)
    assert result.parameter("mxz") == pytest.approx(-0.001)
    assert result.parameter("myx") == pytest.approx(0.003)
    assert result.parameter("myz") == pytest.approx(0.001)
    assert result.parameter("mzx") == pytest.approx(-0.002)
    assert result.parameter("mzy") == pytest.approx(0.004)


def test_general_variance_uses_column_major_order() -> None:
    """General results index covariance in the fitted column-major order."""
    result: CalibrationResult = _make_result()
    assert result.covariance_names == GENERAL_PARAMETER_NAMES
    for index, name in enumerate(GENERAL_PARAMETER_NAMES):
        assert result.parameter_variance(name) == pytest.approx((index + 1) * 1e-6)
    assert result.parameter_variance("myx") == pytest.approx(2e-6)
    assert result.parameter_variance("sy") == pytest.approx(5e-6)
    assert result.parameter_std("sx") == pytest.approx(1e-3)


def test_common_axis_variance_uses_canonical_order() -> None:
    """Common z-axis results index covariance in canonical order."""
    result: CalibrationResult = _make_result(common_axis_used=True)
    assert result.covariance_names == PARAMETER_NAMES
    for index, name in enumerate(PARAMETER_NAMES):
        assert result.parameter_variance(name) == pytest.approx((index + 1) * 1e-6)
    assert result.parameter_variance("sy") == pytest.approx(2e-6)


def test_unknown_parameter_name() -> None:
    """Unknown names raise InvalidInputError."""
    result: CalibrationResult = _make_result()
    with pytest.raises(InvalidInputError):
        result.parameter("sw")
    with pytest.raises(InvalidInputError):
        result.parameter_variance("bx")


def test_invalid_fields() -> None:
    """Malformed fields are rejected at construction."""
    with pytest.raises(ValueError):
        CalibrationResult(
            estimated_ma=np.zeros((2, 2)),
            covariance=np.zeros((9, 9)),
            chi_sq=0.0,
            mse=0.0,
            iterations=1,
            common_axis_used=False,
        )
    with pytest.raises(ValueError):
        CalibrationResult(
            estimated_ma=np.zeros((3, 3)),
            covariance=np.zeros((6, 6)),
            chi_sq=0.0,
            mse=0.0,
            iterations=1,
            common_axis_used=True,
        )
    with pytest.raises(ValueError):
        CalibrationResult(
            estimated_ma=np.zeros((3, 3)),
            covariance=np.zeros((9, 9)),
            chi_sq=float("nan"),
            mse=0.0,
            iterations=1,
            common_axis_used=False,
        )


def test_as_dict() -> None:
    """as_dict returns plain Python values."""
    data: dict = _make_result().as_dict()
    assert data["iterations"] == 7
    assert data["common_axis_used"] is False
    assert isinstance(data["estimated_ma"], list)
    assert len(data["covariance"]) == 9
    assert data["covariance_names"][1] == "myx"

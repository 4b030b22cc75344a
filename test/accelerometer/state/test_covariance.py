################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Tests for covariance helpers and parameter remapping."""

from __future__ import annotations

import numpy as np
import pytest
from numpy.typing import NDArray

from oasis_calibration.accelerometer.calibration_types import PARAMETER_NAMES
from oasis_calibration.accelerometer.state.covariance import (
    COMMON_AXIS_TO_CANONICAL_JACOBIAN,
)
from oasis_calibration.accelerometer.state.covariance import Covariance
from oasis_calibration.accelerometer.state.covariance import CovarianceError
from oasis_calibration.accelerometer.state.covariance import (
    common_axis_to_canonical,
)


def test_covariance_rejects_asymmetric() -> None:
    """Asymmetric matrices are rejected."""
    P: NDArray[np.float64] = np.eye(3, dtype=np.float64)
    P[0, 1] = 0.5
    with pytest.raises(CovarianceError):
        Covariance(P)


def test_covariance_rejects_non_square() -> None:
    """Non-square matrices are rejected."""
    with pytest.raises(CovarianceError):
        Covariance(np.zeros((2, 3)))


def test_propagate_rejects_wrong_jacobian() -> None:
    """Jacobian columns must match the covariance dimension."""
    with pytest.raises(CovarianceError):
        Covariance(np.eye(3)).propagate(np.eye(4))


def test_common_axis_expansion_zeroes_suppressed_entries() -> None:
    """myx, mzx and mzy get zero rows and columns."""
    rng: np.random.Generator = np.random.default_rng(3)
    A: NDArray[np.float64] = rng.normal(size=(6, 6))
    P: NDArray[np.float64] = A @ A.T
    expanded: NDArray[np.float64] = common_axis_to_canonical(P)

    assert expanded.shape == (9, 9)
    for name in ("myx", "mzx", "mzy"):
        index: int = PARAMETER_NAMES.index(name)
        assert np.all(expanded[index, :] == 0.0)
        assert np.all(expanded[:, index] == 0.0)
    assert np.allclose(expanded, expanded.T)


def test_common_axis_expansion_keeps_estimated_entries() -> None:
    """Packed [m11, m12, m22, m13, m23, m33] land on canonical names."""
    packed_names: tuple[str, ...] = ("sx", "mxy", "sy", "mxz", "myz", "sz")
    P: NDArray[np.float64] = np.diag(np.arange(1.0, 7.0))
    P[0, 2] = P[2, 0] = 0.25
    expanded: NDArray[np.float64] = common_axis_to_canonical(P)

    for packed_index, name in enumerate(packed_names):
        index: int = PARAMETER_NAMES.index(name)
        assert expanded[index, index] == P[packed_index, packed_index]
    sx: int = PARAMETER_NAMES.index("sx")
    sy: int = PARAMETER_NAMES.index("sy")
    assert expanded[sx, sy] == 0.25
    assert COMMON_AXIS_TO_CANONICAL_JACOBIAN.shape == (9, 6)

################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Static specific-force measurement type."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from oasis_calibration.accelerometer.math_utils.units import Acceleration
from oasis_calibration.accelerometer.math_utils.units import AccelerationUnit


class MeasurementError(Exception):
    """Raised when measurement validation fails."""


@dataclass(frozen=True)
class StandardDeviationMeasurement:
    """Static specific-force sample with its noise level.

    Attributes:
        specific_force_mps2: Measured specific force in m/s^2
        specific_force_std_mps2: Standard deviation of the specific force in
            m/s^2
    """

    specific_force_mps2: np.ndarray
    specific_force_std_mps2: float

    def __post_init__(self) -> None:
        """Validate measurement fields."""
        f: np.ndarray = np.array(self.specific_force_mps2, dtype=np.float64)
        if f.shape != (3,):
            raise MeasurementError("specific_force_mps2 must have shape (3,)")
        if not np.all(np.isfinite(f)):
            raise MeasurementError("specific_force_mps2 must be finite")
        f.setflags(write=False)

        std: float = _as_float(self.specific_force_std_mps2, "specific_force_std_mps2")
        if std < 0.0:
            raise MeasurementError("specific_force_std_mps2 must be non-negative")

        object.__setattr__(self, "specific_force_mps2", f)
        object.__setattr__(self, "specific_force_std_mps2", std)

    @classmethod
    def from_unit(
        cls,
        specific_force: Any,
        specific_force_std: float,
        unit: str = AccelerationUnit.METERS_PER_SQUARED_SECOND,
    ) -> StandardDeviationMeasurement:
        """Build a measurement from values expressed in ``unit``."""
        try:
            f_mps2: Any = Acceleration.to_mps2(
                np.asarray(specific_force, dtype=np.float64), unit
            )
            std_mps2: Any = Acceleration.to_mps2(float(specific_force_std), unit)
        except ValueError as exc:
            raise MeasurementError(str(exc)) from exc
        return cls(specific_force_mps2=f_mps2, specific_force_std_mps2=std_mps2)


def _as_float(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise MeasurementError(f"{name} must be a float")
    try:
        result: float = float(value)
    except (TypeError, ValueError) as exc:
        raise MeasurementError(f"{name} must be a float") from exc
    if not np.isfinite(result):
        raise MeasurementError(f"{name} must be finite")
    return result

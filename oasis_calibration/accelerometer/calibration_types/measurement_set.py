################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Collection of static measurements captured at a single position."""

from __future__ import annotations

from typing import Any
from typing import Iterable
from typing import Iterator

import numpy as np
from numpy.typing import NDArray

from oasis_calibration.accelerometer.calibration_types.measurement import (
    MeasurementError,
)
from oasis_calibration.accelerometer.calibration_types.measurement import (
    StandardDeviationMeasurement,
)


# Number of specific-force components per measurement
COMPONENTS: int = 3


class MeasurementSet:
    """Unordered set of static specific-force measurements.

    Insertion order carries no meaning and duplicated samples are kept as
    independent observations.
    """

    def __init__(self, measurements: Iterable[StandardDeviationMeasurement]) -> None:
        items: list[StandardDeviationMeasurement] = []
        for measurement in measurements:
            if not isinstance(measurement, StandardDeviationMeasurement):
                raise MeasurementError(
                    "measurements must be StandardDeviationMeasurement instances"
                )
            items.append(measurement)
        self._measurements: tuple[StandardDeviationMeasurement, ...] = tuple(items)

    @classmethod
    def from_arrays(cls, specific_forces_mps2: Any, std_mps2: Any) -> MeasurementSet:
        """Build a set from an (N, 3) force array and N (or one) std values."""
        forces: NDArray[np.float64] = np.asarray(specific_forces_mps2, dtype=np.float64)
        if forces.ndim != 2 or forces.shape[1] != COMPONENTS:
            raise MeasurementError("specific_forces_mps2 must have shape (N, 3)")
        stds: NDArray[np.float64] = np.broadcast_to(
            np.asarray(std_mps2, dtype=np.float64), (forces.shape[0],)
        )
        return cls(
            StandardDeviationMeasurement(
                specific_force_mps2=forces[i],
                specific_force_std_mps2=float(stds[i]),
            )
            for i in range(forces.shape[0])
        )

    def __len__(self) -> int:
        return len(self._measurements)

    def __iter__(self) -> Iterator[StandardDeviationMeasurement]:
        return iter(self._measurements)

    def measurements(self) -> tuple[StandardDeviationMeasurement, ...]:
        """Return the measurements held by this set."""
        return self._measurements

    def design_matrix(self) -> NDArray[np.float64]:
        """Return the (N, 3) matrix of measured specific forces."""
        x: NDArray[np.float64] = np.zeros(
            (len(self._measurements), COMPONENTS), dtype=np.float64
        )
        for i, measurement in enumerate(self._measurements):
            x[i, :] = measurement.specific_force_mps2
        return x

    def target_vector(self, gravity_norm_mps2: float) -> NDArray[np.float64]:
        """Return the target vector, every entry equal to the squared norm."""
        g: float = float(gravity_norm_mps2)
        return np.full(len(self._measurements), g * g, dtype=np.float64)

    def standard_deviations(self) -> NDArray[np.float64]:
        """Return the per-row specific-force standard deviations."""
        return np.array(
            [m.specific_force_std_mps2 for m in self._measurements],
            dtype=np.float64,
        )

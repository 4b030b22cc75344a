################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Type definitions for accelerometer calibration."""

from __future__ import annotations

from oasis_calibration.accelerometer.calibration_types.calibration_result import (
    GENERAL_PARAMETER_NAMES,
)
from oasis_calibration.accelerometer.calibration_types.calibration_result import (
    PARAMETER_NAMES,
)
from oasis_calibration.accelerometer.calibration_types.calibration_result import (
    CalibrationResult,
)
from oasis_calibration.accelerometer.calibration_types.measurement import (
    MeasurementError,
)
from oasis_calibration.accelerometer.calibration_types.measurement import (
    StandardDeviationMeasurement,
)
from oasis_calibration.accelerometer.calibration_types.measurement_set import (
    MeasurementSet,
)


__all__ = [
    "CalibrationResult",
    "GENERAL_PARAMETER_NAMES",
    "MeasurementError",
    "MeasurementSet",
    "PARAMETER_NAMES",
    "StandardDeviationMeasurement",
]

################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Exceptions raised by accelerometer calibrators."""

from __future__ import annotations


class AccelCalibratorError(Exception):
    """Base class for accelerometer calibrator errors."""


class LockedError(AccelCalibratorError):
    """Raised when a calibrator is used or reconfigured while running."""


class NotReadyError(AccelCalibratorError):
    """Raised when calibration is requested without the required inputs."""


class CalibrationError(AccelCalibratorError):
    """Raised when the numerical fit fails."""


class InvalidInputError(AccelCalibratorError, ValueError):
    """Raised when a configuration value is rejected at assignment."""

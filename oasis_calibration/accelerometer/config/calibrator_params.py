################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Structured configuration schema for accelerometer calibration."""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import fields
from dataclasses import replace
from typing import Any

import numpy as np

from oasis_calibration.accelerometer.math_utils.gradient import DEFAULT_RELATIVE_STEP
from oasis_calibration.accelerometer.math_utils.units import Acceleration
from oasis_calibration.accelerometer.math_utils.units import AccelerationUnit
from oasis_calibration.accelerometer.solver.lm_fitter import DEFAULT_INITIAL_LAMBDA
from oasis_calibration.accelerometer.solver.lm_fitter import DEFAULT_MAX_ITERS
from oasis_calibration.accelerometer.solver.lm_fitter import DEFAULT_NDONE
from oasis_calibration.accelerometer.solver.lm_fitter import DEFAULT_TOLERANCE


# Assume a z-axis shared with the gyroscope by default
MODEL_COMMON_Z_AXIS: bool = False
# Unit used for configured accelerations
MODEL_UNIT: str = AccelerationUnit.METERS_PER_SQUARED_SECOND

# Maximum Levenberg-Marquardt iterations
SOLVER_MAX_ITERS: int = DEFAULT_MAX_ITERS
# Relative chi-square change treated as no progress
SOLVER_TOLERANCE: float = DEFAULT_TOLERANCE
# Consecutive no-progress iterations required for convergence
SOLVER_NDONE: int = DEFAULT_NDONE
# Initial Marquardt damping factor
SOLVER_INITIAL_LAMBDA: float = DEFAULT_INITIAL_LAMBDA
# Scale covariance by the reduced chi-square
SOLVER_ADJUST_COVARIANCE: bool = False

# Relative central-difference step for model gradients
GRADIENT_RELATIVE_STEP: float = DEFAULT_RELATIVE_STEP


class CalibratorParamsError(Exception):
    """Raised when calibrator parameter validation fails."""


def _require_positive(value: float, name: str) -> None:
    """Require a finite positive value."""
    if not np.isfinite(value) or value <= 0.0:
        raise CalibratorParamsError(f"{name} must be positive")


def _require_positive_int(value: int, name: str) -> None:
    """Require a positive integer value."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise CalibratorParamsError(f"{name} must be an int")
    if value <= 0:
        raise CalibratorParamsError(f"{name} must be positive")


def _require_bool(value: bool, name: str) -> None:
    if not isinstance(value, bool):
        raise CalibratorParamsError(f"{name} must be a bool")


@dataclass(frozen=True)
class ModelParams:
    """Measurement model selection."""

    # Assume a z-axis shared with the gyroscope
    common_z_axis: bool = MODEL_COMMON_Z_AXIS
    # Unit of configured accelerations
    unit: str = MODEL_UNIT


@dataclass(frozen=True)
class SolverParams:
    """Levenberg-Marquardt configuration parameters."""

    # Maximum solver iterations
    max_iters: int = SOLVER_MAX_ITERS
    # Relative chi-square change treated as no progress
    tolerance: float = SOLVER_TOLERANCE
    # Consecutive no-progress iterations required for convergence
    ndone: int = SOLVER_NDONE
    # Initial Marquardt damping factor
    initial_lambda: float = SOLVER_INITIAL_LAMBDA
    # Scale covariance by the reduced chi-square
    adjust_covariance: bool = SOLVER_ADJUST_COVARIANCE


@dataclass(frozen=True)
class GradientParams:
    """Finite-difference gradient parameters."""

    # Relative central-difference step
    relative_step: float = GRADIENT_RELATIVE_STEP


@dataclass(frozen=True)
class CalibratorParams:
    """Complete configuration tree for accelerometer calibration."""

    model: ModelParams
    solver: SolverParams
    gradient: GradientParams

    @classmethod
    def defaults(cls) -> CalibratorParams:
        """Return the default calibrator parameter tree."""
        return cls(
            model=ModelParams(),
            solver=SolverParams(),
            gradient=GradientParams(),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CalibratorParams:
        """Build parameters from a nested mapping, starting from defaults."""
        if not isinstance(data, dict):
            raise CalibratorParamsError("parameters must be a mapping")
        defaults: CalibratorParams = cls.defaults()
        unknown: set[str] = set(data) - {f.name for f in fields(cls)}
        if unknown:
            raise CalibratorParamsError(
                f"Unknown parameter namespaces: {sorted(unknown)}"
            )
        namespaces: dict[str, Any] = {}
        for f in fields(cls):
            current: Any = getattr(defaults, f.name)
            overrides: Any = data.get(f.name, {})
            if overrides is None:
                overrides = {}
            if not isinstance(overrides, dict):
                raise CalibratorParamsError(f"{f.name} must be a mapping")
            allowed: set[str] = {g.name for g in fields(current)}
            extra: set[str] = set(overrides) - allowed
            if extra:
                raise CalibratorParamsError(
                    f"Unknown {f.name} parameters: {sorted(extra)}"
                )
            namespaces[f.name] = replace(current, **overrides)
        params: CalibratorParams = cls(**namespaces)
        params.validate()
        return params

    def validate(self) -> None:
        """Validate parameter invariants and constraints."""
        _require_bool(self.model.common_z_axis, "model.common_z_axis")
        if self.model.unit not in Acceleration.units():
            raise CalibratorParamsError(
                f"model.unit must be one of {list(Acceleration.units())}"
            )

        _require_positive_int(self.solver.max_iters, "solver.max_iters")
        _require_positive(self.solver.tolerance, "solver.tolerance")
        _require_positive_int(self.solver.ndone, "solver.ndone")
        _require_positive(self.solver.initial_lambda, "solver.initial_lambda")
        _require_bool(self.solver.adjust_covariance, "solver.adjust_covariance")

        _require_positive(self.gradient.relative_step, "gradient.relative_step")

    def replace(self, **namespace_overrides: Any) -> CalibratorParams:
        """Return a modified copy of the parameters."""
        return replace(self, **namespace_overrides)

    def as_nested_dict(self) -> dict[str, Any]:
        """Return a nested dict representation for debugging."""
        return _dataclass_to_dict(self)


def _dataclass_to_dict(value: Any) -> Any:
    """Convert dataclasses and numpy arrays into plain Python values."""
    if hasattr(value, "__dataclass_fields__"):
        return {
            field.name: _dataclass_to_dict(getattr(value, field.name))
            for field in fields(value)
        }
    if isinstance(value, np.ndarray):
        return value.tolist()
    return value

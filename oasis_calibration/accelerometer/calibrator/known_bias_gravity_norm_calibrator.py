################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Accelerometer calibrator for a known bias and a known gravity norm.

Estimates the scale factor and cross-coupling matrix M_a of an accelerometer
from static measurements taken at one position with unknown orientations.
The accelerometer bias and the local gravity norm must be known.
"""

from __future__ import annotations

import logging
from typing import Any
from typing import Iterable

import numpy as np
from numpy.typing import NDArray

from oasis_calibration.accelerometer.calibration_types import CalibrationResult
from oasis_calibration.accelerometer.calibration_types import MeasurementError
from oasis_calibration.accelerometer.calibration_types import MeasurementSet
from oasis_calibration.accelerometer.calibration_types import (
    StandardDeviationMeasurement,
)
from oasis_calibration.accelerometer.calibration_types.calibration_result import (
    parameter_entry,
)
from oasis_calibration.accelerometer.calibrator.calibrator_errors import (
    CalibrationError,
)
from oasis_calibration.accelerometer.calibrator.calibrator_errors import (
    InvalidInputError,
)
from oasis_calibration.accelerometer.calibrator.calibrator_errors import LockedError
from oasis_calibration.accelerometer.calibrator.calibrator_errors import NotReadyError
from oasis_calibration.accelerometer.config.calibrator_config import CalibratorConfig
from oasis_calibration.accelerometer.config.calibrator_params import SolverParams
from oasis_calibration.accelerometer.math_utils.linalg import AlgebraError
from oasis_calibration.accelerometer.math_utils.units import Acceleration
from oasis_calibration.accelerometer.models.accel_calibration_model import (
    MINIMUM_MEASUREMENTS_COMMON_Z_AXIS,
)
from oasis_calibration.accelerometer.models.accel_calibration_model import (
    MINIMUM_MEASUREMENTS_GENERAL,
)
from oasis_calibration.accelerometer.models.accel_calibration_model import (
    AccelCalibrationModel,
)
from oasis_calibration.accelerometer.models.accel_calibration_model import (
    AccelCalibrationModelError,
)
from oasis_calibration.accelerometer.models.accel_calibration_model import (
    EvaluationError,
)
from oasis_calibration.accelerometer.models.gravity_model import GravityModelError
from oasis_calibration.accelerometer.models.gravity_model import gravity_norm
from oasis_calibration.accelerometer.solver.lm_fitter import FitResult
from oasis_calibration.accelerometer.solver.lm_fitter import FittingError
from oasis_calibration.accelerometer.solver.lm_fitter import (
    LevenbergMarquardtFitter,
)
from oasis_calibration.accelerometer.state.covariance import CovarianceError
from oasis_calibration.accelerometer.state.covariance import (
    common_axis_to_canonical,
)


_LOG: logging.Logger = logging.getLogger(__name__)


# Failures raised while fitting that surface as CalibrationError
_FIT_ERRORS: tuple[type[Exception], ...] = (
    AccelCalibrationModelError,
    AlgebraError,
    CovarianceError,
    EvaluationError,
    FittingError,
    ValueError,
)


class CalibratorListener:
    """Receives calibration lifecycle notifications.

    Both hooks are invoked synchronously on the calling thread. The default
    implementations do nothing.
    """

    def on_calibrate_start(
        self, calibrator: KnownBiasAndGravityNormAccelerometerCalibrator
    ) -> None:
        """Called before fitting starts."""

    def on_calibrate_end(
        self, calibrator: KnownBiasAndGravityNormAccelerometerCalibrator
    ) -> None:
        """Called after a successful fit."""


def build_fitter(params: SolverParams) -> LevenbergMarquardtFitter:
    """Create the Levenberg-Marquardt fitter described by solver parameters."""
    return LevenbergMarquardtFitter(
        max_iters=params.max_iters,
        tolerance=params.tolerance,
        ndone=params.ndone,
        initial_lambda=params.initial_lambda,
        adjust_covariance=params.adjust_covariance,
    )


def _as_vector3(value: Any, name: str) -> NDArray[np.float64]:
    try:
        array: NDArray[np.float64] = np.array(value, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"{name} must be numeric") from exc
    if array.shape != (3,):
        raise InvalidInputError(f"{name} must have shape (3,)")
    if not np.all(np.isfinite(array)):
        raise InvalidInputError(f"{name} must be finite")
    return array


def _as_matrix3(value: Any, name: str) -> NDArray[np.float64]:
    try:
        array: NDArray[np.float64] = np.array(value, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"{name} must be numeric") from exc
    if array.shape != (3, 3):
        raise InvalidInputError(f"{name} must have shape (3, 3)")
    if not np.all(np.isfinite(array)):
        raise InvalidInputError(f"{name} must be finite")
    return array


def _as_finite_float(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise InvalidInputError(f"{name} must be a float")
    try:
        result: float = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"{name} must be a float") from exc
    if not np.isfinite(result):
        raise InvalidInputError(f"{name} must be finite")
    return result


def _initial_entry(name: str) -> property:
    """Return a read/write property for one entry of the initial M_a guess."""

    def getter(self: KnownBiasAndGravityNormAccelerometerCalibrator) -> float:
        return self.initial_parameter(name)

    def setter(
        self: KnownBiasAndGravityNormAccelerometerCalibrator, value: float
    ) -> None:
        self.set_initial_parameter(name, value)

    return property(getter, setter, doc=f"Initial guess for {name}.")


def _estimated_entry(name: str) -> property:
    """Return a read-only property for one entry of the estimated M_a."""

    def getter(self: KnownBiasAndGravityNormAccelerometerCalibrator) -> float | None:
        return self.estimated_parameter(name)

    return property(getter, doc=f"Estimated {name}, or None before a fit.")


class KnownBiasAndGravityNormAccelerometerCalibrator:
    """Non-linear least-squares estimator of accelerometer M_a.

    The model fitted is f_meas = b_a + (I + M_a) * f_true where ||f_true||
    equals the known gravity norm. When the common z-axis model is used, the
    sub-diagonal entries of M_a (myx, mzx, mzy) are fixed to zero.

    Every configuration value is validated when assigned and rejected with
    LockedError while a calibration is running.
    """

    initial_sx = _initial_entry("sx")
    initial_sy = _initial_entry("sy")
    initial_sz = _initial_entry("sz")
    initial_mxy = _initial_entry("mxy")
    initial_mxz = _initial_entry("mxz")
    initial_myx = _initial_entry("myx")
    initial_myz = _initial_entry("myz")
    initial_mzx = _initial_entry("mzx")
    initial_mzy = _initial_entry("mzy")

    estimated_sx = _estimated_entry("sx")
    estimated_sy = _estimated_entry("sy")
    estimated_sz = _estimated_entry("sz")
    estimated_mxy = _estimated_entry("mxy")
    estimated_mxz = _estimated_entry("mxz")
    estimated_myx = _estimated_entry("myx")
    estimated_myz = _estimated_entry("myz")
    estimated_mzx = _estimated_entry("mzx")
    estimated_mzy = _estimated_entry("mzy")

    def __init__(
        self,
        *,
        config: CalibratorConfig | None = None,
        measurements: Iterable[StandardDeviationMeasurement] | None = None,
        bias_mps2: Any = None,
        ground_truth_gravity_norm_mps2: float | None = None,
        initial_ma: Any = None,
        common_axis_used: bool | None = None,
        listener: CalibratorListener | None = None,
        fitter: LevenbergMarquardtFitter | None = None,
    ) -> None:
        """Initialize the calibrator from optional named inputs."""
        if config is None:
            config = CalibratorConfig.defaults()
        if not isinstance(config, CalibratorConfig):
            raise InvalidInputError("config must be a CalibratorConfig")
        self._config: CalibratorConfig = config
        self._fitter: LevenbergMarquardtFitter = (
            fitter if fitter is not None else build_fitter(config.params.solver)
        )

        self._running: bool = False
        self._measurements: MeasurementSet | None = None
        self._bias_mps2: NDArray[np.float64] = np.zeros(3, dtype=np.float64)
        self._gravity_norm_mps2: float | None = None
        self._initial_ma: NDArray[np.float64] = np.zeros((3, 3), dtype=np.float64)
        self._common_axis_used: bool = config.common_z_axis()
        self._listener: CalibratorListener | None = None
        self._result: CalibrationResult | None = None

        if measurements is not None:
            self.measurements = measurements
        if bias_mps2 is not None:
            self.bias_mps2 = bias_mps2
        if ground_truth_gravity_norm_mps2 is not None:
            self.ground_truth_gravity_norm_mps2 = ground_truth_gravity_norm_mps2
        if initial_ma is not None:
            self.initial_ma = initial_ma
        if common_axis_used is not None:
            self.common_axis_used = common_axis_used
        self.listener = listener

    def _check_not_running(self) -> None:
        if self._running:
            raise LockedError("Calibrator is running")

    @property
    def config(self) -> CalibratorConfig:
        return self._config

    @property
    def measurements(self) -> MeasurementSet | None:
        return self._measurements

    @measurements.setter
    def measurements(
        self, value: Iterable[StandardDeviationMeasurement] | None
    ) -> None:
        self._check_not_running()
        if value is None:
            self._measurements = None
            return
        try:
            self._measurements = (
                value if isinstance(value, MeasurementSet) else MeasurementSet(value)
            )
        except (MeasurementError, TypeError) as exc:
            raise InvalidInputError(str(exc)) from exc

    @property
    def bias_mps2(self) -> NDArray[np.float64]:
        return self._bias_mps2.copy()

    @bias_mps2.setter
    def bias_mps2(self, value: Any) -> None:
        self._check_not_running()
        self._bias_mps2 = _as_vector3(value, "bias")

    def set_bias(self, value: Any, unit: str | None = None) -> None:
        """Set the known bias expressed in ``unit`` (config unit by default)."""
        self._check_not_running()
        bias: NDArray[np.float64] = _as_vector3(value, "bias")
        self.bias_mps2 = self._to_mps2(bias, unit)

    @property
    def ground_truth_gravity_norm_mps2(self) -> float | None:
        return self._gravity_norm_mps2

    @ground_truth_gravity_norm_mps2.setter
    def ground_truth_gravity_norm_mps2(self, value: float | None) -> None:
        self._check_not_running()
        if value is None:
            self._gravity_norm_mps2 = None
            return
        norm: float = _as_finite_float(value, "ground_truth_gravity_norm")
        if norm < 0.0:
            raise InvalidInputError("ground_truth_gravity_norm must be non-negative")
        self._gravity_norm_mps2 = norm

    def set_ground_truth_gravity_norm(
        self, value: float, unit: str | None = None
    ) -> None:
        """Set the gravity norm expressed in ``unit`` (config unit by default)."""
        self._check_not_running()
        norm: float = _as_finite_float(value, "ground_truth_gravity_norm")
        self.ground_truth_gravity_norm_mps2 = float(self._to_mps2(norm, unit))

    def set_position(self, latitude_rad: float, height_m: float) -> None:
        """Set the gravity norm from a geodetic latitude and height."""
        self._check_not_running()
        try:
            norm: float = gravity_norm(latitude_rad, height_m)
        except GravityModelError as exc:
            raise InvalidInputError(str(exc)) from exc
        self.ground_truth_gravity_norm_mps2 = norm

    @property
    def initial_ma(self) -> NDArray[np.float64]:
        return self._initial_ma.copy()

    @initial_ma.setter
    def initial_ma(self, value: Any) -> None:
        self._check_not_running()
        self._initial_ma = _as_matrix3(value, "initial_ma")

    def initial_parameter(self, name: str) -> float:
        """Return a named entry (sx, mxy, ...) of the initial M_a guess."""
        row, col = parameter_entry(name)
        return float(self._initial_ma[row, col])

    def set_initial_parameter(self, name: str, value: float) -> None:
        """Set a named entry (sx, mxy, ...) of the initial M_a guess."""
        self._check_not_running()
        row, col = parameter_entry(name)
        self._initial_ma[row, col] = _as_finite_float(value, name)

    @property
    def common_axis_used(self) -> bool:
        return self._common_axis_used

    @common_axis_used.setter
    def common_axis_used(self, value: bool) -> None:
        self._check_not_running()
        if not isinstance(value, bool):
            raise InvalidInputError("common_axis_used must be a bool")
        self._common_axis_used = value

    @property
    def listener(self) -> CalibratorListener | None:
        return self._listener

    @listener.setter
    def listener(self, value: CalibratorListener | None) -> None:
        self._check_not_running()
        self._listener = value

    @property
    def minimum_required_measurements(self) -> int:
        if self._common_axis_used:
            return MINIMUM_MEASUREMENTS_COMMON_Z_AXIS
        return MINIMUM_MEASUREMENTS_GENERAL

    def is_ready(self) -> bool:
        """Return True when calibrate() has every input it needs."""
        return self._not_ready_reason() is None

    def is_running(self) -> bool:
        return self._running

    @property
    def result(self) -> CalibrationResult | None:
        return self._result

    @property
    def estimated_ma(self) -> NDArray[np.float64] | None:
        if self._result is None:
            return None
        return self._result.estimated_ma.copy()

    @property
    def estimated_covariance(self) -> NDArray[np.float64] | None:
        if self._result is None:
            return None
        return self._result.covariance.copy()

    @property
    def estimated_chi_sq(self) -> float | None:
        if self._result is None:
            return None
        return self._result.chi_sq

    @property
    def estimated_mse(self) -> float | None:
        if self._result is None:
            return None
        return self._result.mse

    def estimated_parameter(self, name: str) -> float | None:
        """Return a named entry (sx, mxy, ...) of the estimated M_a."""
        if self._result is None:
            parameter_entry(name)
            return None
        return self._result.parameter(name)

    def calibrate(self) -> CalibrationResult:
        """Estimate M_a from the configured measurements.

        Raises:
            LockedError: if a calibration is already running
            NotReadyError: if measurements or gravity norm are missing
            CalibrationError: if the numerical fit fails
        """
        self._check_not_running()
        reason: str | None = self._not_ready_reason()
        measurements: MeasurementSet | None = self._measurements
        gravity_norm_mps2: float | None = self._gravity_norm_mps2
        if reason is not None or measurements is None or gravity_norm_mps2 is None:
            raise NotReadyError(reason or "calibrator is not ready")

        try:
            self._running = True
            _LOG.info(
                "Calibrating accelerometer with %d measurements (common_axis=%s)",
                len(measurements),
                self._common_axis_used,
            )
            if self._listener is not None:
                self._listener.on_calibrate_start(self)

            try:
                result: CalibrationResult = self._fit(measurements, gravity_norm_mps2)
            except _FIT_ERRORS as exc:
                _LOG.warning("Accelerometer calibration failed: %s", exc)
                raise CalibrationError(str(exc)) from exc

            self._result = result
            _LOG.info(
                "Accelerometer calibration finished in %d iterations, "
                "chi_sq=%.6e mse=%.6e",
                result.iterations,
                result.chi_sq,
                result.mse,
            )
            if self._listener is not None:
                self._listener.on_calibrate_end(self)
        finally:
            self._running = False

        return result

    def _not_ready_reason(self) -> str | None:
        if self._measurements is None:
            return "measurements are not set"
        required: int = self.minimum_required_measurements
        if len(self._measurements) < required:
            return (
                f"at least {required} measurements are required, "
                f"got {len(self._measurements)}"
            )
        if self._gravity_norm_mps2 is None:
            return "ground truth gravity norm is not set"
        return None

    def _fit(
        self, measurements: MeasurementSet, gravity_norm_mps2: float
    ) -> CalibrationResult:
        model: AccelCalibrationModel = AccelCalibrationModel(
            self._bias_mps2,
            common_axis=self._common_axis_used,
            relative_step=self._config.params.gradient.relative_step,
        )

        x: NDArray[np.float64] = measurements.design_matrix()
        y: NDArray[np.float64] = measurements.target_vector(gravity_norm_mps2)
        sigma: NDArray[np.float64] = measurements.standard_deviations()
        initial_params: NDArray[np.float64] = model.initial_params(self._initial_ma)

        def evaluator(
            i: int,
            point: NDArray[np.float64],
            params: NDArray[np.float64],
        ) -> tuple[float, NDArray[np.float64]]:
            return model.evaluate_with_gradient(params, point)

        fit: FitResult = self._fitter.fit(x, y, sigma, initial_params, evaluator)

        # M_a = M - I shares the covariance of M
        estimated_ma: NDArray[np.float64] = model.ma_from_params(fit.params)
        covariance: NDArray[np.float64] = fit.covariance
        if self._common_axis_used:
            covariance = common_axis_to_canonical(fit.covariance)

        return CalibrationResult(
            estimated_ma=estimated_ma,
            covariance=covariance,
            chi_sq=fit.chi_sq,
            mse=fit.mse,
            iterations=fit.iterations,
            common_axis_used=self._common_axis_used,
        )

    def _to_mps2(self, value: Any, unit: str | None) -> Any:
        if unit is None:
            unit = self._config.unit()
        try:
            return Acceleration.to_mps2(value, unit)
        except ValueError as exc:
            raise InvalidInputError(str(exc)) from exc

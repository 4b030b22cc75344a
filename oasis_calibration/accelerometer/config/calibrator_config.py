################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""High-level configuration wrapper for accelerometer calibration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .calibrator_params import CalibratorParams
from .calibrator_params import CalibratorParamsError


class CalibratorConfigError(Exception):
    """Raised when calibrator configuration validation fails."""


@dataclass(frozen=True)
class CalibratorConfig:
    """Convenience wrapper around calibrator parameters."""

    params: CalibratorParams

    def __init__(self, params: CalibratorParams) -> None:
        """Initialize the configuration wrapper and validate."""
        object.__setattr__(self, "params", params)
        self.validate()

    @classmethod
    def defaults(cls) -> CalibratorConfig:
        """Return a configuration with default parameters."""
        return cls(CalibratorParams.defaults())

    def validate(self) -> None:
        """Validate parameter invariants."""
        if not isinstance(self.params, CalibratorParams):
            raise CalibratorConfigError("params must be CalibratorParams")
        try:
            self.params.validate()
        except CalibratorParamsError as exc:
            raise CalibratorConfigError(str(exc)) from exc

    def common_z_axis(self) -> bool:
        """Return True when the common z-axis model is configured."""
        return self.params.model.common_z_axis

    def unit(self) -> str:
        """Return the configured acceleration unit."""
        return self.params.model.unit


def config_from_yaml(text: str) -> CalibratorConfig:
    """Parse a YAML document into a validated configuration."""
    try:
        data: Any = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise CalibratorConfigError("Invalid YAML configuration") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise CalibratorConfigError("Configuration must be a YAML mapping")
    try:
        params: CalibratorParams = CalibratorParams.from_dict(data)
    except (CalibratorParamsError, TypeError) as exc:
        raise CalibratorConfigError(str(exc)) from exc
    return CalibratorConfig(params)


def load_calibrator_config(path: str | os.PathLike[str]) -> CalibratorConfig:
    """Load a configuration from a YAML file."""
    path_obj: Path = Path(os.fspath(path))
    if path_obj.suffix.lower() not in {".yaml", ".yml"}:
        raise CalibratorConfigError("Path must end with .yaml or .yml")
    try:
        text: str = path_obj.read_text(encoding="utf-8")
    except OSError as exc:
        raise CalibratorConfigError(
            f"Failed to read configuration from {path_obj}"
        ) from exc
    return config_from_yaml(text)


def config_to_yaml(config: CalibratorConfig) -> str:
    """Serialize a configuration to YAML text."""
    return str(yaml.safe_dump(config.params.as_nested_dict(), sort_keys=True))

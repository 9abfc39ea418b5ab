"""Unscented Kalman Filter for lidar/radar-style sensor fusion.

Tracks one object with a constant-turn-rate-and-velocity model from
asynchronous position and range/bearing/range-rate measurements.

Quick start::

    from fusionukf import MeasurementPackage, SensorType, UnscentedKalmanFilter

    ukf = UnscentedKalmanFilter()
    ukf.process_measurement(MeasurementPackage(SensorType.POSITION, [0.3, 0.6], 0))
    result = ukf.process_measurement(
        MeasurementPackage(SensorType.RANGE_BEARING, [1.0, 0.55, 2.0], 50_000)
    )
    print(ukf.x, result.nis)
"""

from ._types import FilterState, MeasurementPrediction, Prediction, UpdateResult
from .config import FilterConfig
from .consistency import exceeds_chi2_95, nis
from .constants import CHI2_95
from .core import (
    FusionUkfError,
    FusionUkfMathError,
    FusionUkfParameterError,
    UnscentedKalmanFilter,
)
from .measurement import MeasurementPackage, SensorType
from .sensors import PositionSensor, RangeBearingSensor, SensorModel
from .utils import normalize_angle
from .version import __version__, __version_info__

__all__ = [
    "UnscentedKalmanFilter",
    "FilterConfig",
    "MeasurementPackage",
    "SensorType",
    "SensorModel",
    "PositionSensor",
    "RangeBearingSensor",
    "FilterState",
    "Prediction",
    "MeasurementPrediction",
    "UpdateResult",
    "nis",
    "exceeds_chi2_95",
    "CHI2_95",
    "normalize_angle",
    "FusionUkfError",
    "FusionUkfParameterError",
    "FusionUkfMathError",
    "__version__",
    "__version_info__",
]

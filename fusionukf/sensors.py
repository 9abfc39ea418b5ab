"""Sensor measurement models.

Each model projects predicted state sigma points into its measurement
space and knows which measurement component, if any, is an angle. The
weighted recombination, the innovation covariance and the cross
covariance are shared; only the projection and the initial position
conversion differ per sensor.
"""

from __future__ import annotations

import abc
import logging
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from ._types import MeasurementPrediction, Prediction
from .config import FilterConfig
from .constants import MIN_RANGE, PX, PY, V, YAW
from .measurement import SensorType
from .sigma_points import cross_covariance, recombine
from .utils import residual, validate_vector

logger = logging.getLogger(__name__)


class SensorModel(abc.ABC):
    """Measurement model shared interface.

    Parameters
    ----------
    noise_std : sequence of float
        Per-component measurement noise std-devs; the noise covariance is
        ``diag(noise_std ** 2)``.
    """

    #: Sensor this model handles.
    sensor_type: SensorType
    #: Length of a measurement vector.
    measurement_dim: int
    #: Row of the measurement that is an angle, or ``None``.
    angle_index: Optional[int] = None

    def __init__(self, noise_std: Sequence[float]) -> None:
        noise_std = validate_vector(
            noise_std, self.measurement_dim, f"{self.sensor_type.value} noise"
        )
        if np.any(noise_std < 0):
            raise ValueError(f"Noise std-devs must be non-negative, got {noise_std}")
        self._noise_std = noise_std
        self._noise_covariance = np.diag(noise_std**2)

    @property
    def noise_std(self) -> np.ndarray:
        return self._noise_std.copy()

    @property
    def noise_covariance(self) -> np.ndarray:
        """Measurement noise covariance ``R``."""
        return self._noise_covariance.copy()

    @abc.abstractmethod
    def project(self, points: np.ndarray) -> np.ndarray:
        """Map state points ``(5, k)`` to measurement points ``(m, k)``."""

    @abc.abstractmethod
    def initial_position(self, raw: np.ndarray) -> Tuple[float, float]:
        """Cartesian ``(px, py)`` implied by a raw measurement."""

    def residual(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        """``a - b`` with the angle component wrapped."""
        return residual(a, b, self.angle_index)

    def predict(self, points: np.ndarray, weights: np.ndarray) -> MeasurementPrediction:
        """Predicted measurement mean and innovation covariance.

        Parameters
        ----------
        points : numpy.ndarray
            Predicted state sigma points of shape ``(5, k)``.
        weights : numpy.ndarray
            Sigma-point weights of shape ``(k,)``.
        """
        z_points = self.project(points)
        z_pred, S = recombine(z_points, weights, self.angle_index)
        return MeasurementPrediction(
            z=z_pred,
            S=S + self._noise_covariance,
            sigma_points=z_points,
        )

    def cross_covariance(
        self,
        prediction: Prediction,
        measurement: MeasurementPrediction,
        weights: np.ndarray,
    ) -> np.ndarray:
        """Cross covariance ``Tc`` between state and measurement, ``(5, m)``."""
        return cross_covariance(
            prediction.sigma_points,
            prediction.x,
            measurement.sigma_points,
            measurement.z,
            weights,
            state_angle_index=YAW,
            meas_angle_index=self.angle_index,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(noise_std={self._noise_std.tolist()})"


class PositionSensor(SensorModel):
    """Cartesian position sensor: ``z = [px, py]``."""

    sensor_type = SensorType.POSITION
    measurement_dim = 2

    def project(self, points: np.ndarray) -> np.ndarray:
        return points[[PX, PY]]

    def initial_position(self, raw: np.ndarray) -> Tuple[float, float]:
        return float(raw[0]), float(raw[1])


class RangeBearingSensor(SensorModel):
    """Range / bearing / range-rate sensor: ``z = [rho, phi, rho_dot]``.

    The bearing (row 1) is an angle. When a sigma point sits closer to the
    origin than *min_range*, the range-rate is computed with *min_range*
    as its denominator so that it stays finite.
    """

    sensor_type = SensorType.RANGE_BEARING
    measurement_dim = 3
    angle_index = 1

    def __init__(self, noise_std: Sequence[float], min_range: float = MIN_RANGE) -> None:
        super().__init__(noise_std)
        if min_range <= 0:
            raise ValueError(f"min_range must be positive, got {min_range}")
        self.min_range = float(min_range)

    def project(self, points: np.ndarray) -> np.ndarray:
        px = points[PX]
        py = points[PY]
        v = points[V]
        yaw = points[YAW]

        rho = np.sqrt(px * px + py * py)
        phi = np.arctan2(py, px)

        if np.any(rho < self.min_range):
            logger.warning(
                "Predicted range %.3g below %.3g m; clamping range-rate denominator",
                float(np.min(rho)),
                self.min_range,
            )
        rho_dot = (px * v * np.cos(yaw) + py * v * np.sin(yaw)) / np.maximum(rho, self.min_range)
        return np.vstack([rho, phi, rho_dot])

    def initial_position(self, raw: np.ndarray) -> Tuple[float, float]:
        rho, phi = float(raw[0]), float(raw[1])
        return float(rho * np.cos(phi)), float(rho * np.sin(phi))

    def __repr__(self) -> str:
        return (
            f"RangeBearingSensor(noise_std={self._noise_std.tolist()}, "
            f"min_range={self.min_range})"
        )


def build_sensors(config: FilterConfig) -> Dict[SensorType, SensorModel]:
    """Sensor models described by *config*, keyed by sensor type."""
    return {
        SensorType.POSITION: PositionSensor(config.position_noise),
        SensorType.RANGE_BEARING: RangeBearingSensor(
            config.range_bearing_noise, min_range=config.min_range
        ),
    }

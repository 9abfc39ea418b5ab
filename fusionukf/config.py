"""Filter configuration.

:class:`FilterConfig` fixes every tunable of the filter at construction
time: the process-noise standard deviations, the sensor measurement
noise, the sigma-point spreading parameter and which sensors take part
in updates. Defaults are those of a road vehicle tracked by a lidar and
a radar.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .constants import MIN_RANGE, N_AUG, N_X, YAW_RATE_THRESHOLD
from .measurement import SensorType


@dataclass(frozen=True)
class FilterConfig:
    """Immutable configuration of :class:`~fusionukf.UnscentedKalmanFilter`.

    Parameters
    ----------
    std_a : float
        Longitudinal acceleration noise std-dev [m/s^2].
    std_yawdd : float
        Yaw acceleration noise std-dev [rad/s^2].
    position_noise : tuple of float
        Position sensor std-devs ``(px, py)`` [m].
    range_bearing_noise : tuple of float
        Range sensor std-devs ``(rho, phi, rho_dot)`` [m, rad, m/s].
    use_position : bool
        Fuse position packets. When ``False`` such packets still advance
        the prediction but do not update the state.
    use_range_bearing : bool
        Same switch for range/bearing packets.
    lambda_ : float
        Sigma-point spreading parameter. Default ``3 - n_x``.
    initial_variance : tuple of float
        Diagonal of the covariance set on the first packet,
        ``(px, py, v, yaw, yaw_rate)``.
    yaw_rate_threshold : float
        Yaw-rate magnitude below which the motion model moves in a
        straight line.
    min_range : float
        Floor on the range used to divide in the range-rate projection [m].

    Raises
    ------
    ValueError
        If a noise value is negative, a tuple has the wrong length or a
        numeric setting is out of range.

    Examples
    --------
    >>> config = FilterConfig(std_a=0.8, use_range_bearing=False)
    >>> config.is_enabled(SensorType.RANGE_BEARING)
    False
    """

    # Process noise
    std_a: float = 1.5
    std_yawdd: float = 2.0

    # Measurement noise, fixed by the sensor manufacturers
    position_noise: Tuple[float, float] = (0.15, 0.15)
    range_bearing_noise: Tuple[float, float, float] = (0.3, 0.03, 0.3)

    # Sensor toggles
    use_position: bool = True
    use_range_bearing: bool = True

    # Unscented transform
    lambda_: float = 3 - N_X
    initial_variance: Tuple[float, float, float, float, float] = (1.0, 1.0, 0.5, 0.5, 0.5)

    # Numerics
    yaw_rate_threshold: float = YAW_RATE_THRESHOLD
    min_range: float = MIN_RANGE

    def __post_init__(self) -> None:
        if self.std_a < 0 or self.std_yawdd < 0:
            raise ValueError(
                f"Process noise std-devs must be non-negative: "
                f"std_a={self.std_a}, std_yawdd={self.std_yawdd}"
            )
        _check_noise("position_noise", self.position_noise, 2)
        _check_noise("range_bearing_noise", self.range_bearing_noise, 3)

        if self.lambda_ + N_AUG <= 0:
            raise ValueError(
                f"lambda_ + {N_AUG} must be positive, got lambda_={self.lambda_}"
            )
        if len(self.initial_variance) != N_X or min(self.initial_variance) <= 0:
            raise ValueError(
                f"initial_variance must hold {N_X} positive values, "
                f"got {self.initial_variance}"
            )
        if self.yaw_rate_threshold <= 0:
            raise ValueError(
                f"yaw_rate_threshold must be positive, got {self.yaw_rate_threshold}"
            )
        if self.min_range <= 0:
            raise ValueError(f"min_range must be positive, got {self.min_range}")

    def is_enabled(self, sensor_type: SensorType) -> bool:
        """Whether packets of *sensor_type* update the state."""
        if sensor_type is SensorType.POSITION:
            return self.use_position
        if sensor_type is SensorType.RANGE_BEARING:
            return self.use_range_bearing
        raise ValueError(f"Unknown sensor type: {sensor_type!r}")

    def initial_covariance(self) -> np.ndarray:
        """Covariance assigned on initialization."""
        return np.diag(np.asarray(self.initial_variance, dtype=np.float64))


def _check_noise(name: str, values: Tuple[float, ...], length: int) -> None:
    if len(values) != length:
        raise ValueError(f"{name} must have {length} elements, got {len(values)}")
    if min(values) < 0:
        raise ValueError(f"{name} must be non-negative, got {values}")

"""Unscented Kalman Filter fusing position and range/bearing measurements.

Example
-------
>>> from fusionukf import MeasurementPackage, SensorType, UnscentedKalmanFilter
>>>
>>> ukf = UnscentedKalmanFilter()
>>> ukf.process_measurement(
...     MeasurementPackage(SensorType.POSITION, [0.31, 0.58], 1477010443000000)
... )
>>> result = ukf.process_measurement(
...     MeasurementPackage(SensorType.RANGE_BEARING, [1.01, 0.55, 2.01], 1477010443050000)
... )
>>> print(ukf.x, result.nis)
"""

from __future__ import annotations

import contextlib
import logging
from typing import Dict, Iterator, Mapping, Optional

import numpy as np

from ._types import FilterState, MeasurementPrediction, Prediction, UpdateResult
from .config import FilterConfig
from .consistency import nis
from .constants import MICROSECONDS_PER_SECOND, N_AUG, N_X, YAW
from .measurement import MeasurementPackage, SensorType
from .motion import ctrv_propagate, predict_mean_and_covariance
from .sensors import SensorModel, build_sensors
from .sigma_points import augmented_sigma_points, sigma_weights
from .utils import (
    normalize_angle,
    symmetrize,
    validate_finite,
    validate_square,
    validate_vector,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Exception hierarchy
# ---------------------------------------------------------------------------


class FusionUkfError(RuntimeError):
    """Base exception for filter errors."""


class FusionUkfParameterError(FusionUkfError, ValueError):
    """Raised when a call violates a precondition (bad packet, bad time step)."""


class FusionUkfMathError(FusionUkfError):
    """Raised when a numerical step fails (non-PSD covariance, singular ``S``)."""


@contextlib.contextmanager
def _numerics(context: str) -> Iterator[None]:
    """Translate linear-algebra failures into :class:`FusionUkfMathError`."""
    try:
        yield
    except np.linalg.LinAlgError as exc:
        logger.warning("%s failed: %s", context, exc)
        raise FusionUkfMathError(f"{context}: {exc}") from exc


def _check_finite(context: str, *arrays: np.ndarray) -> None:
    for arr in arrays:
        if not np.all(np.isfinite(arr)):
            logger.warning("%s produced non-finite values", context)
            raise FusionUkfMathError(f"{context}: result contains NaN/Inf")


# ---------------------------------------------------------------------------
# Main class
# ---------------------------------------------------------------------------


class UnscentedKalmanFilter:
    """CTRV Unscented Kalman Filter for one tracked object.

    The state is ``[px, py, v, yaw, yaw_rate]``. Each call to
    :meth:`process_measurement` runs a full predict/update cycle and
    commits the new belief only when every stage succeeded; on any error
    the previous state and timestamp are left untouched.

    Parameters
    ----------
    config : FilterConfig, optional
        Noise parameters, sensor switches and numeric settings. Defaults
        to ``FilterConfig()``.
    sensors : mapping, optional
        Sensor models keyed by :class:`SensorType`, replacing the ones
        built from *config* (e.g. synthetic sensors in tests).

    Raises
    ------
    FusionUkfParameterError
        If a supplied sensor model does not match its key.

    Examples
    --------
    >>> ukf = UnscentedKalmanFilter(FilterConfig(std_a=1.0))
    >>> ukf.is_initialized
    False
    """

    def __init__(
        self,
        config: Optional[FilterConfig] = None,
        sensors: Optional[Mapping[SensorType, SensorModel]] = None,
    ) -> None:
        self._config = config if config is not None else FilterConfig()

        if sensors is None:
            sensors = build_sensors(self._config)
        for sensor_type, sensor in sensors.items():
            if not isinstance(sensor, SensorModel) or sensor.sensor_type is not sensor_type:
                raise FusionUkfParameterError(
                    f"Sensor model {sensor!r} cannot handle {sensor_type!r}"
                )
        self._sensors: Dict[SensorType, SensorModel] = dict(sensors)

        self._weights = sigma_weights(N_AUG, self._config.lambda_)
        self._weights.setflags(write=False)

        self._x = np.zeros(N_X)
        self._P = self._config.initial_covariance()
        self._timestamp: Optional[int] = None
        self._is_initialized = False
        self._last_nis: Dict[SensorType, float] = {}

    # -- Properties ---------------------------------------------------------

    @property
    def config(self) -> FilterConfig:
        """The immutable configuration."""
        return self._config

    @property
    def state_dim(self) -> int:
        """State vector dimension (5)."""
        return N_X

    @property
    def weights(self) -> np.ndarray:
        """Sigma-point weights, shape ``(15,)``."""
        return self._weights.copy()

    @property
    def is_initialized(self) -> bool:
        """Whether the first measurement has been received."""
        return self._is_initialized

    @property
    def timestamp(self) -> Optional[int]:
        """Timestamp (microseconds) of the last committed measurement."""
        return self._timestamp

    @property
    def x(self) -> np.ndarray:
        """Current state estimate ``[px, py, v, yaw, yaw_rate]``.

        Examples
        --------
        >>> ukf.x = np.array([1.0, 2.0, 0.5, 0.0, 0.0])
        """
        return self._x.copy()

    @x.setter
    def x(self, value: np.ndarray) -> None:
        try:
            value = validate_finite(validate_vector(value, N_X, "state"), "state")
        except ValueError as exc:
            raise FusionUkfParameterError(str(exc)) from exc
        value[YAW] = normalize_angle(value[YAW])
        self._x = value

    @property
    def P(self) -> np.ndarray:
        """Current state covariance (5 x 5)."""
        return self._P.copy()

    @P.setter
    def P(self, value: np.ndarray) -> None:
        try:
            value = validate_finite(validate_square(value, "P"), "P")
        except ValueError as exc:
            raise FusionUkfParameterError(str(exc)) from exc
        if value.shape[0] != N_X:
            raise FusionUkfParameterError(
                f"P shape {value.shape} does not match state_dim={N_X}"
            )
        if not np.allclose(value, value.T):
            raise FusionUkfParameterError("P must be symmetric")
        self._P = value.copy()

    @property
    def state(self) -> FilterState:
        """Current belief as a :class:`FilterState`."""
        return FilterState(x=self.x, P=self.P)

    @property
    def last_nis(self) -> Dict[SensorType, float]:
        """NIS of the most recent committed update, per sensor type."""
        return dict(self._last_nis)

    def sensor(self, sensor_type: SensorType) -> SensorModel:
        """Measurement model registered for *sensor_type*."""
        try:
            return self._sensors[sensor_type]
        except KeyError:
            raise FusionUkfParameterError(
                f"No sensor model registered for {sensor_type!r}"
            ) from None

    # -- Methods ------------------------------------------------------------

    def initialize(self, packet: MeasurementPackage) -> "UnscentedKalmanFilter":
        """Seed the belief from the first measurement.

        Position is taken from the packet (converted from range/bearing if
        needed); speed, heading and yaw rate start at zero with the
        configured initial covariance.

        Returns
        -------
        UnscentedKalmanFilter
            *self*, for method chaining.

        Raises
        ------
        FusionUkfParameterError
            If the filter is already initialized or the packet is malformed.
        """
        if self._is_initialized:
            raise FusionUkfParameterError(
                "Filter is already initialized; call reset() first"
            )
        raw = self._validate_packet(packet)
        px, py = self.sensor(packet.sensor_type).initial_position(raw)

        self._x = np.array([px, py, 0.0, 0.0, 0.0])
        self._P = self._config.initial_covariance()
        self._timestamp = packet.timestamp
        self._is_initialized = True
        logger.debug(
            "Initialized from %s packet at t=%d us: x=%s",
            packet.sensor_type.value,
            packet.timestamp,
            self._x,
        )
        return self

    def reset(self) -> "UnscentedKalmanFilter":
        """Forget the belief; the next packet initializes the filter again.

        Returns
        -------
        UnscentedKalmanFilter
            *self*, for method chaining.
        """
        self._x = np.zeros(N_X)
        self._P = self._config.initial_covariance()
        self._timestamp = None
        self._is_initialized = False
        self._last_nis.clear()
        return self

    def predict(self, delta_t: float) -> Prediction:
        """Run the prediction step without committing it.

        Parameters
        ----------
        delta_t : float
            Time step in seconds; must be positive.

        Returns
        -------
        Prediction
            Predicted mean, covariance and propagated sigma points.

        Raises
        ------
        FusionUkfParameterError
            If the filter is not initialized or *delta_t* is not positive.
        FusionUkfMathError
            If the augmented covariance is not positive semi-definite.

        Examples
        --------
        >>> prediction = ukf.predict(0.05)
        >>> prediction.x.shape
        (5,)
        """
        if not np.isfinite(delta_t) or delta_t <= 0:
            raise FusionUkfParameterError(f"delta_t must be positive, got {delta_t}")
        return self._predict(float(delta_t))

    def predict_measurement(
        self,
        prediction: Prediction,
        sensor_type: SensorType,
    ) -> MeasurementPrediction:
        """Project a prediction into the measurement space of *sensor_type*.

        Raises
        ------
        FusionUkfParameterError
            If no model is registered for *sensor_type*.
        FusionUkfMathError
            If the projection produces NaN/Inf.
        """
        sensor = self.sensor(sensor_type)
        measurement = sensor.predict(prediction.sigma_points, self._weights)
        _check_finite(f"predict_measurement[{sensor_type.value}]", measurement.z, measurement.S)
        return measurement

    def update(
        self,
        packet: MeasurementPackage,
        prediction: Prediction,
    ) -> UpdateResult:
        """Fuse *packet* into *prediction* without committing the result.

        Parameters
        ----------
        packet : MeasurementPackage
            Measurement of an enabled sensor.
        prediction : Prediction
            Output of :meth:`predict` for the packet's timestamp.

        Returns
        -------
        UpdateResult
            Corrected state plus innovation, ``S``, ``K`` and NIS.

        Raises
        ------
        FusionUkfParameterError
            If the packet is malformed or its sensor is disabled.
        FusionUkfMathError
            If the innovation covariance is singular or the result is not
            finite.
        """
        z = self._validate_packet(packet)
        sensor_type = packet.sensor_type
        if not self._config.is_enabled(sensor_type):
            raise FusionUkfParameterError(f"Sensor {sensor_type.value} is disabled")

        sensor = self.sensor(sensor_type)
        measurement = self.predict_measurement(prediction, sensor_type)
        S = measurement.S

        # cross covariance between state and measurement
        Tc = sensor.cross_covariance(prediction, measurement, self._weights)

        context = f"update[{sensor_type.value}]"
        with _numerics(context):
            # K = Tc S^-1, solved as S^T K^T = Tc^T
            K = np.linalg.solve(S.T, Tc.T).T
            score = nis(measurement.z, z, S, sensor.angle_index)

        innovation = sensor.residual(z, measurement.z)
        x = prediction.x + K @ innovation
        x[YAW] = normalize_angle(x[YAW])
        P = symmetrize(prediction.P - K @ S @ K.T)
        _check_finite(context, x, P)

        return UpdateResult(
            state=FilterState(x=x, P=P),
            innovation=innovation,
            innovation_covariance=S,
            kalman_gain=K,
            nis=score,
        )

    def process_measurement(self, packet: MeasurementPackage) -> Optional[UpdateResult]:
        """Run one full cycle for *packet* and commit the new belief.

        The first packet initializes the filter. Later packets predict to
        their timestamp and, when their sensor is enabled, update. A packet
        of a disabled sensor only advances the prediction.

        Parameters
        ----------
        packet : MeasurementPackage
            Next measurement; timestamps must not decrease.

        Returns
        -------
        UpdateResult or None
            The update result, or ``None`` when the packet initialized the
            filter or its sensor is disabled.

        Raises
        ------
        FusionUkfParameterError
            If the packet is malformed or older than the last one.
        FusionUkfMathError
            If a numerical step fails; the prior state is kept.
        """
        self._validate_packet(packet)
        if not self._is_initialized:
            self.initialize(packet)
            return None

        elapsed = packet.timestamp - self._timestamp
        if elapsed < 0:
            raise FusionUkfParameterError(
                f"Timestamp {packet.timestamp} precedes last timestamp {self._timestamp}"
            )
        prediction = self._predict(elapsed / MICROSECONDS_PER_SECOND)

        if not self._config.is_enabled(packet.sensor_type):
            logger.debug("Sensor %s disabled; prediction only", packet.sensor_type.value)
            self._commit(prediction.x, prediction.P, packet.timestamp)
            return None

        result = self.update(packet, prediction)
        self._commit(result.state.x, result.state.P, packet.timestamp)
        self._last_nis[packet.sensor_type] = result.nis
        return result

    # -- Internals ----------------------------------------------------------

    def _predict(self, delta_t: float) -> Prediction:
        if not self._is_initialized:
            raise FusionUkfParameterError("Filter is not initialized")

        config = self._config
        with _numerics("predict"):
            points_aug = augmented_sigma_points(
                self._x, self._P, config.std_a, config.std_yawdd, config.lambda_
            )
        points = ctrv_propagate(points_aug, delta_t, config.yaw_rate_threshold)
        x, P = predict_mean_and_covariance(points, self._weights)
        _check_finite("predict", points, x, P)
        return Prediction(x=x, P=symmetrize(P), sigma_points=points, delta_t=delta_t)

    def _validate_packet(self, packet: MeasurementPackage) -> np.ndarray:
        if not isinstance(packet, MeasurementPackage):
            raise FusionUkfParameterError(
                f"Expected a MeasurementPackage, got {type(packet).__name__}"
            )
        sensor = self.sensor(packet.sensor_type)
        try:
            raw = validate_vector(
                packet.raw_measurements,
                sensor.measurement_dim,
                f"{packet.sensor_type.value} measurement",
            )
            validate_finite(raw, f"{packet.sensor_type.value} measurement")
        except ValueError as exc:
            raise FusionUkfParameterError(str(exc)) from exc
        return raw

    def _commit(self, x: np.ndarray, P: np.ndarray, timestamp: int) -> None:
        self._x = x.copy()
        self._P = P.copy()
        self._timestamp = timestamp

    # -- Representation -----------------------------------------------------

    def __repr__(self) -> str:
        sensors = ", ".join(
            f"{t.value}={'on' if self._config.is_enabled(t) else 'off'}"
            for t in self._sensors
        )
        return (
            f"UnscentedKalmanFilter(state_dim={N_X}, initialized={self._is_initialized}, "
            f"{sensors})"
        )

"""Value types passed between the filter stages.

Each predict/update cycle produces a chain of short-lived values:

- :class:`Prediction`: predicted state, covariance and the propagated
  sigma points that produced them.
- :class:`MeasurementPrediction`: the same sigma points projected into a
  sensor's measurement space, with their mean and innovation covariance.
- :class:`UpdateResult`: the corrected belief plus diagnostics.

None of these alias the filter's own state; the filter commits a result
only once every stage of a cycle has succeeded.
"""

from __future__ import annotations

from typing import NamedTuple

import numpy as np


class FilterState(NamedTuple):
    """State of the filter.

    Attributes
    ----------
    x : numpy.ndarray
        State estimate ``[px, py, v, yaw, yaw_rate]`` of shape ``(5,)``.
    P : numpy.ndarray
        Error covariance of shape ``(5, 5)``.
    """

    x: np.ndarray
    P: np.ndarray


class Prediction(NamedTuple):
    """Output of the motion-propagation stage.

    Attributes
    ----------
    x : numpy.ndarray
        Predicted state mean of shape ``(5,)``.
    P : numpy.ndarray
        Predicted state covariance of shape ``(5, 5)``.
    sigma_points : numpy.ndarray
        Propagated sigma points of shape ``(5, 15)``, one column per point.
    delta_t : float
        Time step the prediction covers, in seconds.
    """

    x: np.ndarray
    P: np.ndarray
    sigma_points: np.ndarray
    delta_t: float


class MeasurementPrediction(NamedTuple):
    """Predicted measurement for one sensor.

    Attributes
    ----------
    z : numpy.ndarray
        Predicted measurement mean of shape ``(m,)``.
    S : numpy.ndarray
        Innovation covariance of shape ``(m, m)``, measurement noise included.
    sigma_points : numpy.ndarray
        Sigma points in measurement space, shape ``(m, 15)``.
    """

    z: np.ndarray
    S: np.ndarray
    sigma_points: np.ndarray


class UpdateResult(NamedTuple):
    """Result of a measurement update.

    Attributes
    ----------
    state : FilterState
        Corrected belief.
    innovation : numpy.ndarray
        Measurement residual ``z - z_pred`` (bearing wrapped).
    innovation_covariance : numpy.ndarray
        Innovation covariance ``S``.
    kalman_gain : numpy.ndarray
        Kalman gain ``K`` of shape ``(5, m)``.
    nis : float
        Normalized innovation squared of this update.
    """

    state: FilterState
    innovation: np.ndarray
    innovation_covariance: np.ndarray
    kalman_gain: np.ndarray
    nis: float

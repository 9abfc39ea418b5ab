"""Constant-turn-rate-and-velocity (CTRV) motion model.

The state ``[px, py, v, yaw, yaw_rate]`` moves along a circular arc at
constant speed and turn rate. Process noise enters as a longitudinal
acceleration ``nu_a`` and a yaw acceleration ``nu_yawdd``, carried as the
two extra rows of the augmented sigma points.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from .constants import (
    N_X,
    NU_A,
    NU_YAWDD,
    PX,
    PY,
    V,
    YAW,
    YAW_RATE,
    YAW_RATE_THRESHOLD,
)
from .sigma_points import recombine


def ctrv_propagate(
    points_aug: np.ndarray,
    delta_t: float,
    yaw_rate_threshold: float = YAW_RATE_THRESHOLD,
) -> np.ndarray:
    """Advance augmented sigma points through the CTRV model.

    Parameters
    ----------
    points_aug : numpy.ndarray
        Augmented points of shape ``(7, k)``: rows ``px, py, v, yaw,
        yaw_rate, nu_a, nu_yawdd``.
    delta_t : float
        Time step in seconds.
    yaw_rate_threshold : float
        Points whose ``|yaw_rate|`` does not exceed this value move in a
        straight line along their heading.

    Returns
    -------
    numpy.ndarray
        Propagated points of shape ``(5, k)``; the noise rows are dropped.
    """
    px, py, v = points_aug[PX], points_aug[PY], points_aug[V]
    yaw, yawd = points_aug[YAW], points_aug[YAW_RATE]
    nu_a, nu_yawdd = points_aug[NU_A], points_aug[NU_YAWDD]
    dt = float(delta_t)

    turning = np.abs(yawd) > yaw_rate_threshold
    # 1.0 stands in for the yaw rate of straight-line points; their arc
    # result is discarded by np.where below.
    safe_yawd = np.where(turning, yawd, 1.0)
    yaw_end = yaw + yawd * dt

    cos_yaw = np.cos(yaw)
    sin_yaw = np.sin(yaw)

    px_p = np.where(
        turning,
        px + v / safe_yawd * (np.sin(yaw_end) - sin_yaw),
        px + v * dt * cos_yaw,
    )
    py_p = np.where(
        turning,
        py + v / safe_yawd * (cos_yaw - np.cos(yaw_end)),
        py + v * dt * sin_yaw,
    )

    half_dt2 = 0.5 * dt * dt
    predicted = np.empty((N_X, points_aug.shape[1]))
    predicted[PX] = px_p + half_dt2 * nu_a * cos_yaw
    predicted[PY] = py_p + half_dt2 * nu_a * sin_yaw
    predicted[V] = v + nu_a * dt
    predicted[YAW] = yaw_end + half_dt2 * nu_yawdd
    predicted[YAW_RATE] = yawd + nu_yawdd * dt
    return predicted


def predict_mean_and_covariance(
    points: np.ndarray,
    weights: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """Recover the predicted state mean and covariance.

    Heading differences are wrapped onto ``(-pi, pi]`` before they are
    squared, and the mean heading is reported on the same interval.
    """
    return recombine(points, weights, angle_index=YAW)

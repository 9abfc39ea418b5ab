"""Sigma-point generation and recombination (the unscented transform).

Sigma points are stored column-wise: a set for an ``n``-dimensional
distribution is an ``(n, 2n + 1)`` array whose column 0 is the mean and
whose remaining columns are the mean plus/minus the scaled columns of a
lower-triangular square root of the covariance.

Failures of the square root are reported as
:class:`numpy.linalg.LinAlgError`; the filter translates them.
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from .utils import normalize_angle, residual


def sigma_weights(n_aug: int, lambda_: float) -> np.ndarray:
    """Return the ``2 * n_aug + 1`` sigma-point weights.

    ``w[0] = lambda / (lambda + n_aug)``, every other weight is
    ``1 / (2 (lambda + n_aug))``. The weights sum to one; ``w[0]`` is
    negative whenever ``lambda < 0``.

    Raises
    ------
    ValueError
        If ``lambda + n_aug`` is not positive.
    """
    spread = lambda_ + n_aug
    if spread <= 0:
        raise ValueError(
            f"lambda + n_aug must be positive, got {lambda_} + {n_aug}"
        )
    weights = np.full(2 * n_aug + 1, 0.5 / spread)
    weights[0] = lambda_ / spread
    return weights


def cholesky_psd(matrix: np.ndarray) -> np.ndarray:
    """Lower-triangular ``L`` with ``L @ L.T == matrix`` for PSD input.

    Uses a plain Cholesky factorization when *matrix* is positive
    definite. Rows with an exactly zero variance (for example a disabled
    process-noise term) must be zero throughout; they are left out of the
    factorization and get zero columns in ``L``.

    Raises
    ------
    numpy.linalg.LinAlgError
        If *matrix* is not positive semi-definite or holds non-finite values.
    """
    matrix = np.asarray(matrix, dtype=np.float64)
    if not np.all(np.isfinite(matrix)):
        raise np.linalg.LinAlgError("Covariance contains non-finite values")
    try:
        return np.linalg.cholesky(matrix)
    except np.linalg.LinAlgError:
        pass

    variances = np.diag(matrix)
    active = variances > 0.0
    inactive = ~active
    if np.any(variances < 0.0) or np.any(matrix[inactive, :]) or np.any(matrix[:, inactive]):
        raise np.linalg.LinAlgError("Covariance is not positive semi-definite")

    lower = np.zeros_like(matrix)
    if np.any(active):
        block = np.ix_(active, active)
        lower[block] = np.linalg.cholesky(matrix[block])
    return lower


def generate_sigma_points(
    mean: np.ndarray,
    covariance: np.ndarray,
    lambda_: float,
) -> np.ndarray:
    """Generate ``2n + 1`` sigma points for ``N(mean, covariance)``.

    Parameters
    ----------
    mean : numpy.ndarray
        Mean of shape ``(n,)``.
    covariance : numpy.ndarray
        PSD covariance of shape ``(n, n)``.
    lambda_ : float
        Spreading parameter; points sit ``sqrt(lambda + n)`` square-root
        columns away from the mean.

    Returns
    -------
    numpy.ndarray
        Sigma points of shape ``(n, 2n + 1)``.

    Raises
    ------
    numpy.linalg.LinAlgError
        If the covariance cannot be factored.
    """
    n = mean.shape[0]
    scaled = np.sqrt(lambda_ + n) * cholesky_psd(covariance)
    center = mean[:, None]
    return np.hstack([center, center + scaled, center - scaled])


def augment(
    x: np.ndarray,
    P: np.ndarray,
    std_a: float,
    std_yawdd: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """Append the two zero-mean process-noise terms to ``(x, P)``."""
    n_x = x.shape[0]
    x_aug = np.zeros(n_x + 2)
    x_aug[:n_x] = x

    P_aug = np.zeros((n_x + 2, n_x + 2))
    P_aug[:n_x, :n_x] = P
    P_aug[n_x, n_x] = std_a * std_a
    P_aug[n_x + 1, n_x + 1] = std_yawdd * std_yawdd
    return x_aug, P_aug


def augmented_sigma_points(
    x: np.ndarray,
    P: np.ndarray,
    std_a: float,
    std_yawdd: float,
    lambda_: float,
) -> np.ndarray:
    """Sigma points of the noise-augmented state, shape ``(n+2, 2(n+2)+1)``."""
    x_aug, P_aug = augment(x, P, std_a, std_yawdd)
    return generate_sigma_points(x_aug, P_aug, lambda_)


def recombine(
    points: np.ndarray,
    weights: np.ndarray,
    angle_index: Optional[int] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """Weighted mean and covariance of a column-wise point set.

    When *angle_index* is given, that row is treated as an angle: its
    mean is taken modulo ``2 pi`` around the first point and wrapped onto
    ``(-pi, pi]``, and every difference against the mean is wrapped
    before it enters the outer products.
    """
    mean = points @ weights
    if angle_index is not None:
        ref = points[angle_index, 0]
        offsets = normalize_angle(points[angle_index] - ref)
        mean[angle_index] = normalize_angle(ref + offsets @ weights)
    diff = residual(points, mean[:, None], angle_index)
    covariance = (diff * weights) @ diff.T
    return mean, covariance


def cross_covariance(
    state_points: np.ndarray,
    state_mean: np.ndarray,
    meas_points: np.ndarray,
    meas_mean: np.ndarray,
    weights: np.ndarray,
    state_angle_index: Optional[int] = None,
    meas_angle_index: Optional[int] = None,
) -> np.ndarray:
    """Weighted cross covariance ``sum_i w_i dx_i dz_i^T``."""
    dx = residual(state_points, state_mean[:, None], state_angle_index)
    dz = residual(meas_points, meas_mean[:, None], meas_angle_index)
    return (dx * weights) @ dz.T

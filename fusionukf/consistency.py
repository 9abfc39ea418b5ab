"""Normalized innovation squared (NIS) consistency check.

For a consistent filter the NIS of each update follows a chi-squared
distribution with as many degrees of freedom as the measurement has
components. About 5% of updates should exceed :data:`CHI2_95`.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .constants import CHI2_95
from .utils import residual


def nis(
    z_pred: np.ndarray,
    z: np.ndarray,
    S: np.ndarray,
    angle_index: Optional[int] = None,
) -> float:
    """Normalized innovation squared ``(z - z_pred)^T S^-1 (z - z_pred)``.

    Parameters
    ----------
    z_pred : array_like
        Predicted measurement mean.
    z : array_like
        Actual measurement.
    S : array_like
        Innovation covariance.
    angle_index : int, optional
        Component of the innovation to wrap onto ``(-pi, pi]``.

    Returns
    -------
    float
        The NIS value.

    Raises
    ------
    numpy.linalg.LinAlgError
        If *S* is singular.
    """
    innovation = residual(z, z_pred, angle_index)
    S = np.asarray(S, dtype=np.float64)
    return float(innovation @ np.linalg.solve(S, innovation))


def exceeds_chi2_95(value: float, dof: int) -> bool:
    """Whether *value* lies above the 95% chi-squared quantile for *dof*."""
    try:
        threshold = CHI2_95[dof]
    except KeyError:
        raise ValueError(f"No chi-squared threshold tabulated for dof={dof}") from None
    return value > threshold

"""Array helpers shared by the filter stages.

Provides input validation for user-supplied arrays and the circular
arithmetic used wherever a heading or bearing is differenced or averaged.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

# ---------------------------------------------------------------------------
# Angle arithmetic
# ---------------------------------------------------------------------------


def normalize_angle(angle):
    """Wrap an angle (or array of angles) onto ``(-pi, pi]``.

    Angles already inside the interval are returned unchanged, so the
    operation is idempotent.

    Parameters
    ----------
    angle : float or array_like
        Angle(s) in radians.

    Returns
    -------
    float or numpy.ndarray
        Wrapped angle(s); a Python ``float`` for scalar input.

    Examples
    --------
    >>> normalize_angle(0.5)
    0.5
    >>> normalize_angle(-np.pi)
    3.141592653589793
    """
    arr = np.asarray(angle, dtype=np.float64)
    wrapped = np.remainder(arr + np.pi, 2.0 * np.pi) - np.pi
    # remainder lands on [-pi, pi); -pi and pi are the same heading
    wrapped = np.where(wrapped <= -np.pi, np.pi, wrapped)
    result = np.where((arr > -np.pi) & (arr <= np.pi), arr, wrapped)
    if result.ndim == 0:
        return float(result)
    return result


def residual(a, b, angle_index: Optional[int] = None) -> np.ndarray:
    """Return ``a - b`` with the row *angle_index* wrapped onto ``(-pi, pi]``.

    Works for vectors and for column-stacked point sets, where *b* is
    broadcast against *a* (pass a mean as ``mean[:, None]``).
    """
    diff = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
    if angle_index is not None:
        diff[angle_index] = normalize_angle(diff[angle_index])
    return diff


def symmetrize(matrix: np.ndarray) -> np.ndarray:
    """Return ``(M + M^T) / 2``."""
    return 0.5 * (matrix + matrix.T)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def validate_square(arr: np.ndarray, name: str = "matrix") -> np.ndarray:
    """Ensure *arr* is a square 2-D float64 array.

    Parameters
    ----------
    arr : array_like
        Input to validate.
    name : str
        Human-readable name for error messages.

    Returns
    -------
    numpy.ndarray
        Validated array (a new object if dtype conversion occurred).

    Raises
    ------
    ValueError
        If the array is not 2-D or not square.
    """
    arr = np.asarray(arr, dtype=np.float64)
    if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
        raise ValueError(
            f"{name} must be a square 2-D array, got shape {arr.shape}"
        )
    return arr


def validate_vector(arr: np.ndarray, length: int, name: str = "vector") -> np.ndarray:
    """Ensure *arr* is a 1-D float64 array of the given length.

    Parameters
    ----------
    arr : array_like
        Input to validate.
    length : int
        Expected number of elements.
    name : str
        Human-readable name for error messages.

    Returns
    -------
    numpy.ndarray
        Validated 1-D array (always a copy).

    Raises
    ------
    ValueError
        If shape does not match.
    """
    arr = np.array(arr, dtype=np.float64).ravel()
    if arr.shape[0] != length:
        raise ValueError(
            f"{name} must have {length} elements, got {arr.shape[0]}"
        )
    return arr


def validate_finite(arr: np.ndarray, name: str = "array") -> np.ndarray:
    """Raise ``ValueError`` if *arr* holds NaN or infinite values."""
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"{name} contains non-finite values: {arr}")
    return arr

"""Measurement packets delivered to the filter.

A :class:`MeasurementPackage` is produced upstream by a sensor driver;
the filter treats it as read-only input.
"""

from __future__ import annotations

import enum
import numbers
from dataclasses import dataclass

import numpy as np


class SensorType(enum.Enum):
    """Sensor modalities the filter can fuse.

    ``POSITION`` is a Cartesian position sensor (lidar-like) measuring
    ``[px, py]`` in metres. ``RANGE_BEARING`` is a range/bearing/range-rate
    sensor (radar-like) measuring ``[rho, phi, rho_dot]`` in m, rad and m/s.
    """

    POSITION = "position"
    RANGE_BEARING = "range_bearing"


@dataclass(frozen=True)
class MeasurementPackage:
    """One timestamped observation.

    Parameters
    ----------
    sensor_type : SensorType
        Which sensor produced the reading.
    raw_measurements : array_like
        Measurement vector (2 values for ``POSITION``, 3 for
        ``RANGE_BEARING``). Stored as a read-only float64 array.
    timestamp : int
        Acquisition time in integer microseconds.

    Raises
    ------
    TypeError
        If *timestamp* is not an integer.

    Examples
    --------
    >>> pkt = MeasurementPackage(SensorType.POSITION, [0.31, 0.58], 1477010443000000)
    >>> pkt.raw_measurements.shape
    (2,)
    """

    sensor_type: SensorType
    raw_measurements: np.ndarray
    timestamp: int

    def __post_init__(self) -> None:
        raw = np.array(self.raw_measurements, dtype=np.float64).ravel()
        raw.setflags(write=False)
        object.__setattr__(self, "raw_measurements", raw)
        # bool is an Integral but never a time
        if isinstance(self.timestamp, bool) or not isinstance(self.timestamp, numbers.Integral):
            raise TypeError(
                f"timestamp must be an integer number of microseconds, "
                f"got {self.timestamp!r}"
            )
        object.__setattr__(self, "timestamp", int(self.timestamp))

#!/usr/bin/env python3
"""Minimal fusion example: a turning target seen by position and range/bearing sensors."""

import numpy as np

from fusionukf import MeasurementPackage, SensorType, UnscentedKalmanFilter

ukf = UnscentedKalmanFilter()

rng = np.random.default_rng(42)
v, yawd = 3.0, 0.2  # m/s, rad/s
x0, y0 = 2.0, 5.0
dt_us = 50_000  # 20 Hz


def truth(t):
    yaw = yawd * t
    px = x0 + v / yawd * np.sin(yaw)
    py = y0 + v / yawd * (1.0 - np.cos(yaw))
    return px, py, yaw


for step in range(100):
    t = step * dt_us / 1e6
    px, py, yaw = truth(t)

    # Alternate sensors the way a lidar/radar rig interleaves them
    if step % 2 == 0:
        z = np.array([px, py]) + rng.normal(0, 0.15, size=2)
        packet = MeasurementPackage(SensorType.POSITION, z, step * dt_us)
    else:
        rho = np.hypot(px, py)
        rho_dot = (px * v * np.cos(yaw) + py * v * np.sin(yaw)) / rho
        z = np.array([rho, np.arctan2(py, px), rho_dot]) + rng.normal(0, [0.3, 0.03, 0.3])
        packet = MeasurementPackage(SensorType.RANGE_BEARING, z, step * dt_us)

    result = ukf.process_measurement(packet)
    nis = f"{result.nis:6.2f}" if result is not None else "   n/a"

    print(
        f"t={t:5.2f}  "
        f"{packet.sensor_type.value:>13}  "
        f"true=({px:6.2f}, {py:6.2f})  "
        f"est=({ukf.x[0]:6.2f}, {ukf.x[1]:6.2f})  "
        f"v={ukf.x[2]:5.2f}  "
        f"nis={nis}"
    )

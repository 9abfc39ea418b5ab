"""Tests for the sensor measurement models and the NIS statistic."""

import logging

import numpy as np
import pytest

from fusionukf import (
    CHI2_95,
    FilterConfig,
    MeasurementPackage,
    PositionSensor,
    RangeBearingSensor,
    SensorType,
    UnscentedKalmanFilter,
    exceeds_chi2_95,
    nis,
    normalize_angle,
)
from fusionukf.sensors import build_sensors
from fusionukf.sigma_points import recombine, sigma_weights


@pytest.fixture
def weights():
    return sigma_weights(7, -2.0)


@pytest.fixture
def points():
    """Predicted sigma points scattered around a target at (4, 3)."""
    rng = np.random.default_rng(21)
    base = np.array([4.0, 3.0, 2.0, 0.4, 0.1])
    return base[:, None] + 0.1 * rng.standard_normal((5, 15))


def state_column(px, py, v, yaw, yawd=0.0):
    return np.array([[px], [py], [v], [yaw], [yawd]])


# ---------------------------------------------------------------------------
# Position sensor
# ---------------------------------------------------------------------------


class TestPositionSensor:
    def test_attributes(self):
        sensor = PositionSensor([0.15, 0.15])
        assert sensor.sensor_type is SensorType.POSITION
        assert sensor.measurement_dim == 2
        assert sensor.angle_index is None

    def test_noise_covariance(self):
        sensor = PositionSensor([0.1, 0.2])
        np.testing.assert_allclose(sensor.noise_covariance, np.diag([0.01, 0.04]))

    def test_project(self, points):
        np.testing.assert_array_equal(PositionSensor([0.15, 0.15]).project(points), points[:2])

    def test_predict(self, points, weights):
        sensor = PositionSensor([0.15, 0.15])
        predicted = sensor.predict(points, weights)
        mean, cov = recombine(points[:2], weights)

        np.testing.assert_allclose(predicted.z, mean)
        np.testing.assert_allclose(predicted.S, cov + np.diag([0.0225, 0.0225]))
        assert predicted.sigma_points.shape == (2, 15)

    def test_initial_position(self):
        assert PositionSensor([0.15, 0.15]).initial_position(np.array([5.0, -5.0])) == (5.0, -5.0)

    def test_wrong_noise_length(self):
        with pytest.raises(ValueError):
            PositionSensor([0.15, 0.15, 0.15])

    def test_negative_noise(self):
        with pytest.raises(ValueError):
            PositionSensor([0.15, -0.15])


# ---------------------------------------------------------------------------
# Range / bearing sensor
# ---------------------------------------------------------------------------


class TestRangeBearingSensor:
    def test_attributes(self):
        sensor = RangeBearingSensor([0.3, 0.03, 0.3])
        assert sensor.sensor_type is SensorType.RANGE_BEARING
        assert sensor.measurement_dim == 3
        assert sensor.angle_index == 1

    def test_radial_motion(self):
        z = RangeBearingSensor([0.3, 0.03, 0.3]).project(
            state_column(3.0, 4.0, 5.0, np.arctan2(4.0, 3.0))
        )[:, 0]
        np.testing.assert_allclose(z, [5.0, np.arctan2(4.0, 3.0), 5.0], atol=1e-12)

    def test_tangential_motion(self):
        z = RangeBearingSensor([0.3, 0.03, 0.3]).project(
            state_column(0.0, 2.0, 3.0, 0.0)
        )[:, 0]
        np.testing.assert_allclose(z, [2.0, np.pi / 2, 0.0], atol=1e-12)

    def test_receding_behind(self):
        z = RangeBearingSensor([0.3, 0.03, 0.3]).project(
            state_column(-2.0, 0.0, 1.0, np.pi)
        )[:, 0]
        np.testing.assert_allclose(z, [2.0, np.pi, 1.0], atol=1e-12)

    def test_near_zero_range_stays_finite(self, caplog):
        sensor = RangeBearingSensor([0.3, 0.03, 0.3], min_range=1e-4)
        pts = np.hstack([state_column(1e-6, 0.0, 1.0, 0.0), state_column(0.0, 0.0, 1.0, 0.0)])
        with caplog.at_level(logging.WARNING, logger="fusionukf.sensors"):
            z = sensor.project(pts)
        assert np.all(np.isfinite(z))
        np.testing.assert_allclose(z[2], [1e-6 / 1e-4, 0.0])
        assert "clamping" in caplog.text

    def test_no_warning_at_normal_range(self, points, caplog):
        with caplog.at_level(logging.WARNING, logger="fusionukf.sensors"):
            RangeBearingSensor([0.3, 0.03, 0.3]).project(points)
        assert caplog.text == ""

    def test_invalid_min_range(self):
        with pytest.raises(ValueError):
            RangeBearingSensor([0.3, 0.03, 0.3], min_range=0.0)

    def test_predict_adds_noise(self, points, weights):
        sensor = RangeBearingSensor([0.3, 0.03, 0.3])
        predicted = sensor.predict(points, weights)
        z_mean, z_cov = recombine(sensor.project(points), weights, angle_index=1)
        np.testing.assert_allclose(predicted.z, z_mean)
        np.testing.assert_allclose(predicted.S - z_cov, np.diag([0.09, 0.0009, 0.09]), atol=1e-15)

    def test_bearing_mean_behind_sensor(self):
        ukf = UnscentedKalmanFilter()
        ukf.process_measurement(MeasurementPackage(SensorType.RANGE_BEARING, [10.0, np.pi, 0.0], 0))
        prediction = ukf.predict(0.05)
        measurement = ukf.predict_measurement(prediction, SensorType.RANGE_BEARING)

        bearings = measurement.sigma_points[1]
        assert bearings.max() > 2.5 and bearings.min() < -2.5
        assert abs(normalize_angle(measurement.z[1] - np.pi)) < 1e-3
        assert measurement.S[1, 1] < 0.05

    def test_consistent_reading_behind_sensor(self):
        ukf = UnscentedKalmanFilter()
        ukf.process_measurement(MeasurementPackage(SensorType.RANGE_BEARING, [10.0, np.pi, 0.0], 0))
        result = ukf.process_measurement(
            MeasurementPackage(SensorType.RANGE_BEARING, [10.0, np.pi, 0.0], 50_000)
        )
        assert abs(normalize_angle(result.innovation[1])) < 1e-3
        assert ukf.x[1] == pytest.approx(0.0, abs=1e-2)

    def test_residual_wraps_bearing(self):
        sensor = RangeBearingSensor([0.3, 0.03, 0.3])
        diff = sensor.residual(np.array([1.0, np.pi - 0.05, 0.0]), np.array([1.0, -np.pi + 0.05, 0.0]))
        np.testing.assert_allclose(diff, [0.0, -0.1, 0.0], atol=1e-12)

    def test_initial_position(self):
        px, py = RangeBearingSensor([0.3, 0.03, 0.3]).initial_position(np.array([10.0, 0.0, 3.0]))
        assert (px, py) == pytest.approx((10.0, 0.0))
        px, py = RangeBearingSensor([0.3, 0.03, 0.3]).initial_position(np.array([2.0, np.pi, 0.0]))
        assert (px, py) == pytest.approx((-2.0, 0.0), abs=1e-12)


# ---------------------------------------------------------------------------
# Shared machinery
# ---------------------------------------------------------------------------


class TestSharedModel:
    def test_build_sensors_from_config(self):
        sensors = build_sensors(FilterConfig(position_noise=(0.2, 0.1), min_range=0.5))
        np.testing.assert_allclose(sensors[SensorType.POSITION].noise_std, [0.2, 0.1])
        assert sensors[SensorType.RANGE_BEARING].min_range == 0.5

    def test_position_cross_covariance_is_state_block(self):
        ukf = UnscentedKalmanFilter()
        ukf.process_measurement(MeasurementPackage(SensorType.POSITION, [4.0, 3.0], 0))
        prediction = ukf.predict(0.1)
        sensor = ukf.sensor(SensorType.POSITION)
        predicted = sensor.predict(prediction.sigma_points, ukf.weights)
        Tc = sensor.cross_covariance(prediction, predicted, ukf.weights)
        np.testing.assert_allclose(Tc, prediction.P[:, :2], atol=1e-12)

    def test_synthetic_sensor_injection(self):
        precise = PositionSensor([1e-3, 1e-3])
        ukf = UnscentedKalmanFilter(sensors={SensorType.POSITION: precise})
        ukf.process_measurement(MeasurementPackage(SensorType.POSITION, [0.0, 0.0], 0))
        ukf.process_measurement(MeasurementPackage(SensorType.POSITION, [0.5, -0.5], 100_000))
        np.testing.assert_allclose(ukf.x[:2], [0.5, -0.5], atol=1e-3)


# ---------------------------------------------------------------------------
# NIS
# ---------------------------------------------------------------------------


class TestNis:
    def test_zero_for_perfect_prediction(self):
        z = np.array([1.0, 0.3, 2.0])
        assert nis(z, z, np.diag([0.1, 0.01, 0.1])) == 0.0

    def test_known_value(self):
        assert nis([0.0, 0.0], [1.0, 0.0], np.diag([4.0, 1.0])) == pytest.approx(0.25)

    def test_correlated_covariance(self):
        S = np.array([[2.0, 0.5], [0.5, 1.0]])
        y = np.array([0.3, -0.4])
        assert nis(np.zeros(2), y, S) == pytest.approx(y @ np.linalg.inv(S) @ y)

    def test_bearing_wrapped(self):
        value = nis([0.0, np.pi - 0.05, 0.0], [0.0, -np.pi + 0.05, 0.0], np.eye(3), angle_index=1)
        assert value == pytest.approx(0.01)

    def test_full_precision(self):
        value = nis([0.0], [1.0 / 3.0], np.array([[1.0]]))
        assert isinstance(value, float)
        assert value == (1.0 / 3.0) ** 2

    def test_singular_covariance(self):
        with pytest.raises(np.linalg.LinAlgError):
            nis([0.0, 0.0], [1.0, 0.0], np.zeros((2, 2)))

    def test_chi2_thresholds(self):
        assert CHI2_95[2] == pytest.approx(5.991)
        assert CHI2_95[3] == pytest.approx(7.815)
        assert exceeds_chi2_95(6.0, 2)
        assert not exceeds_chi2_95(5.0, 2)
        with pytest.raises(ValueError):
            exceeds_chi2_95(1.0, 12)

"""Tests for the CTRV motion model."""

import numpy as np
import pytest

from fusionukf.constants import N_AUG, NU_A, NU_YAWDD, PX, PY, V, YAW, YAW_RATE
from fusionukf.motion import ctrv_propagate, predict_mean_and_covariance
from fusionukf.sigma_points import sigma_weights


def column(px=0.0, py=0.0, v=0.0, yaw=0.0, yawd=0.0, nu_a=0.0, nu_yawdd=0.0):
    return np.array([[px], [py], [v], [yaw], [yawd], [nu_a], [nu_yawdd]])


class TestDeterministicStep:
    def test_straight_line(self):
        out = ctrv_propagate(column(px=1.0, py=2.0, v=2.0), 0.5)[:, 0]
        np.testing.assert_allclose(out, [2.0, 2.0, 2.0, 0.0, 0.0], atol=1e-12)

    def test_straight_line_along_heading(self):
        out = ctrv_propagate(column(v=1.0, yaw=np.pi / 2), 2.0)[:, 0]
        np.testing.assert_allclose(out[:2], [0.0, 2.0], atol=1e-12)

    def test_quarter_turn(self):
        out = ctrv_propagate(column(v=1.0, yawd=np.pi / 2), 1.0)[:, 0]
        np.testing.assert_allclose(
            out, [2 / np.pi, 2 / np.pi, 1.0, np.pi / 2, np.pi / 2], atol=1e-12
        )

    def test_heading_not_wrapped(self):
        out = ctrv_propagate(column(v=1.0, yaw=3.0, yawd=1.0), 1.0)[:, 0]
        assert out[3] == pytest.approx(4.0)

    def test_zero_step_is_identity(self):
        pts = column(px=3.0, py=-1.0, v=4.0, yaw=0.3, yawd=0.7, nu_a=2.0, nu_yawdd=-1.0)
        out = ctrv_propagate(pts, 0.0)
        np.testing.assert_allclose(out[:, 0], pts[:5, 0], atol=1e-12)

    def test_output_drops_noise_rows(self):
        rng = np.random.default_rng(3)
        assert ctrv_propagate(rng.standard_normal((7, 15)), 0.1).shape == (5, 15)

    def test_matches_reference_column(self):
        # x = [5.7441, 1.3800, 2.2049, 0.5015, 0.3528, 0, 0] over 0.1 s
        out = ctrv_propagate(
            column(5.7441, 1.3800, 2.2049, 0.5015, 0.3528), 0.1
        )[:, 0]
        np.testing.assert_allclose(out, [5.93553, 1.48939, 2.2049, 0.53678, 0.3528], atol=1e-4)


class TestBranchContinuity:
    @pytest.mark.parametrize("yaw", [0.0, 0.7, -2.5])
    def test_branches_agree_near_zero(self, yaw):
        dt = 0.1
        outs = [
            ctrv_propagate(column(px=1.0, py=-1.0, v=3.0, yaw=yaw, yawd=yawd), dt)[:, 0]
            for yawd in (0.0, 1e-4, 1e-2)
        ]
        np.testing.assert_allclose(outs[1][:2], outs[0][:2], atol=1e-5)
        np.testing.assert_allclose(outs[2][:2], outs[0][:2], atol=2e-4)

    def test_continuous_across_threshold(self):
        dt = 0.1
        below = ctrv_propagate(column(v=3.0, yaw=0.4, yawd=0.999e-3), dt)[:, 0]
        above = ctrv_propagate(column(v=3.0, yaw=0.4, yawd=1.001e-3), dt)[:, 0]
        np.testing.assert_allclose(below[:2], above[:2], atol=1e-4)

    def test_no_division_by_small_yaw_rate(self):
        pts = np.hstack([column(v=5.0, yawd=yawd) for yawd in (0.0, 1e-12, -1e-7, 1e-3)])
        with np.errstate(divide="raise", invalid="raise", over="raise"):
            out = ctrv_propagate(pts, 0.05)
        assert np.all(np.isfinite(out))
        np.testing.assert_allclose(out[0], 0.25, atol=1e-6)

    def test_rows_follow_state_layout(self):
        points = np.zeros((N_AUG, 1))
        points[V] = 2.0
        points[YAW_RATE] = 0.5
        points[NU_A] = 1.0
        points[NU_YAWDD] = 0.2
        out = ctrv_propagate(points, 0.1)[:, 0]
        assert out.shape == (5,)
        assert out[V] == pytest.approx(2.1)
        assert out[YAW] == pytest.approx(0.05 + 0.001)
        assert out[YAW_RATE] == pytest.approx(0.52)
        assert out[PX] > 0.0
        assert out[PY] > 0.0


class TestProcessNoise:
    def test_acceleration_noise(self):
        out = ctrv_propagate(column(nu_a=1.0), 2.0)[:, 0]
        np.testing.assert_allclose(out, [2.0, 0.0, 2.0, 0.0, 0.0], atol=1e-12)

    def test_acceleration_noise_along_heading(self):
        out = ctrv_propagate(column(yaw=np.pi / 2, nu_a=1.0), 2.0)[:, 0]
        np.testing.assert_allclose(out[:2], [0.0, 2.0], atol=1e-12)

    def test_yaw_acceleration_noise(self):
        out = ctrv_propagate(column(nu_yawdd=1.0), 2.0)[:, 0]
        np.testing.assert_allclose(out, [0.0, 0.0, 0.0, 2.0, 2.0], atol=1e-12)


class TestPredictedMoments:
    def test_mean_heading_wrapped(self):
        weights = sigma_weights(7, -2.0)
        points = np.zeros((5, 15))
        points[3] = np.pi + 0.3
        mean, cov = predict_mean_and_covariance(points, weights)
        assert mean[3] == pytest.approx(-np.pi + 0.3)
        np.testing.assert_allclose(cov, 0.0, atol=1e-12)

    def test_mean_heading_across_seam(self):
        weights = sigma_weights(7, -2.0)
        points = np.zeros((5, 15))
        points[YAW, 0] = np.pi
        points[YAW, 1:8] = np.pi - 0.2
        points[YAW, 8:] = -np.pi + 0.2
        mean, cov = predict_mean_and_covariance(points, weights)
        assert abs(mean[YAW]) == pytest.approx(np.pi, abs=1e-9)
        assert cov[YAW, YAW] == pytest.approx(0.04 * 1.4, rel=1e-9)

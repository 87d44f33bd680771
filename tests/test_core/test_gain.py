"""Tests for gain calculation."""

import math

import pytest

from pycue.core.gain import MAX_TRUE_PEAK_DB, compute_gain, true_peak_to_db


class TestComputeGain:
    def test_plain_gain(self):
        gain, correction = compute_gain(-14.0, -0.5, -18.0)
        assert gain == pytest.approx(-4.0)
        assert correction == 0.0

    def test_quiet_track_is_amplified(self):
        gain, correction = compute_gain(-30.0, -6.0, -18.0)
        assert gain == pytest.approx(12.0)
        assert correction == 0.0

    def test_clip_prevention_clamps_gain(self):
        gain, correction = compute_gain(-30.0, -6.0, -18.0, clip_prevention=True)

        assert gain == pytest.approx(MAX_TRUE_PEAK_DB - -6.0)
        assert correction == pytest.approx(5.0 - 12.0)

    def test_clip_prevention_only_lowers(self):
        gain, correction = compute_gain(-14.0, -6.0, -18.0, clip_prevention=True)
        assert gain == pytest.approx(-4.0)
        assert correction == 0.0

    def test_correction_is_max_gain_minus_unclamped(self):
        integrated, true_peak_db, target = -25.3, -2.7, -16.0
        unclamped, _ = compute_gain(integrated, true_peak_db, target)
        gain, correction = compute_gain(integrated, true_peak_db, target, True)

        max_gain = MAX_TRUE_PEAK_DB - true_peak_db
        assert gain == pytest.approx(max_gain)
        assert correction == pytest.approx(max_gain - unclamped)

    def test_silent_track_is_never_clamped(self):
        gain, correction = compute_gain(-70.0, float("-inf"), -18.0, clip_prevention=True)
        assert gain == pytest.approx(52.0)
        assert correction == 0.0


class TestTruePeakToDb:
    def test_full_scale(self):
        assert true_peak_to_db(1.0) == 0.0

    def test_half(self):
        assert true_peak_to_db(0.5) == pytest.approx(-6.0206, abs=1e-4)

    def test_zero_is_negative_infinity(self):
        assert true_peak_to_db(0.0) == float("-inf")
        assert math.isinf(true_peak_to_db(-1.0))

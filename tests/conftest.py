"""Shared fixtures for pycue tests."""

from typing import Optional, Sequence

import pytest

from pycue.core.models import Sample, SampleSeries


# ---------------------------------------------------------------------------
# Series builders
# ---------------------------------------------------------------------------


def build_series(
    levels: Sequence[float],
    integrated: float = -14.0,
    step: float = 0.1,
    true_peaks: Sequence[float] = (0.5, 0.5),
    loudness_range: float = 6.0,
    track_duration: Optional[float] = None,
) -> SampleSeries:
    """Series with one sample per ``step`` seconds at the given momentary levels."""
    samples = tuple(
        Sample(
            timestamp=round(i * step, 3),
            momentary_loudness=level,
            integrated_loudness=integrated,
            true_peaks=tuple(true_peaks),
            loudness_range=loudness_range,
        )
        for i, level in enumerate(levels)
    )
    return SampleSeries(samples, track_duration=track_duration)


def hidden_track_levels():
    """
    60s of music, 600s of digital silence, 30s of a hidden track and a
    10s fade out by 11 LU.
    """
    return (
        [-14.0] * 600
        + [-120.0] * 6000
        + [-14.0] * 300
        + [-14.0 - 11.0 * (k + 1) / 100 for k in range(100)]
    )


def long_fade_levels():
    """60s of music followed by a 30s fade out by 36 LU."""
    return [-14.0] * 600 + [-14.0 - 36.0 * (k + 1) / 300 for k in range(300)]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def series_factory():
    """The build_series helper."""
    return build_series


@pytest.fixture
def hidden_track_series():
    return build_series(hidden_track_levels())


@pytest.fixture
def long_fade_series():
    return build_series(long_fade_levels())


@pytest.fixture
def flat_series():
    """10s at a constant -14 LUFS."""
    return build_series([-14.0] * 100)


@pytest.fixture
def cached_tags():
    """Complete tag set as written by a previous analysis at -18 LUFS."""
    return {
        "duration": "245.120",
        "liq_cue_duration": "243.020",
        "liq_cue_in": "1.200",
        "liq_cue_out": "244.220",
        "liq_cross_start_next": "238.900",
        "liq_longtail": "false",
        "liq_sustained_ending": "true",
        "liq_loudness": "-9.870 LUFS",
        "liq_loudness_range": "5.410 LU",
        "liq_amplify": "-8.130 dB",
        "liq_amplify_adjustment": "0.000 dB",
        "liq_reference_loudness": "-18.000 LUFS",
        "liq_blankskip": "0.000",
        "liq_blank_skipped": "false",
        "liq_true_peak": "0.989",
        "liq_true_peak_db": "-0.096 dBFS",
    }

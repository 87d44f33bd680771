"""
Gain calculation for pycue.

ReplayGain-style track gain towards a target loudness, with optional
clipping prevention based on the true peak.
"""

import math
from typing import Tuple

# Highest true peak allowed after applying gain, dBFS
MAX_TRUE_PEAK_DB: float = -1.0


def compute_gain(
    integrated_loudness: float,
    true_peak_db: float,
    target_loudness: float,
    clip_prevention: bool = False,
) -> Tuple[float, float]:
    """
    Compute the gain that brings a track to the target loudness.

    Args:
        integrated_loudness: Track loudness, LUFS
        true_peak_db: Track true peak, dBFS
        target_loudness: Target loudness, LUFS
        clip_prevention: Lower the gain so peaks stay at or below -1 dBFS

    Returns:
        Tuple: (gain, correction) in dB. ``correction`` is the (negative)
        amount the gain was lowered by, 0.0 when unchanged.
    """
    gain = target_loudness - integrated_loudness
    correction = 0.0

    if clip_prevention:
        max_gain = MAX_TRUE_PEAK_DB - true_peak_db
        if gain > max_gain:
            correction = max_gain - gain
            gain = max_gain

    return gain, correction


def true_peak_to_db(true_peak: float) -> float:
    """Convert a linear true peak to dBFS; silence gives -inf."""
    if true_peak <= 0.0:
        return float("-inf")
    return 20.0 * math.log10(true_peak)

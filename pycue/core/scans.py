"""
Window scans over a loudness array.

Every function takes an immutable array and an explicit ``[start, end)``
window and returns an index into the array, or None when nothing in the
window qualifies. None of them mutate their input.
"""

from typing import Optional, Tuple

import numpy as np


def _clip_window(values: np.ndarray, start: int, end: int) -> Tuple[int, int]:
    start = max(0, start)
    end = min(len(values), end)
    return start, end


def first_above(
    values: np.ndarray, level: float, start: int, end: int
) -> Optional[int]:
    """Index of the first value strictly above ``level``."""
    start, end = _clip_window(values, start, end)
    if start >= end:
        return None
    hits = np.flatnonzero(values[start:end] > level)
    if hits.size == 0:
        return None
    return start + int(hits[0])


def last_above(
    values: np.ndarray, level: float, start: int, end: int
) -> Optional[int]:
    """Index of the last value strictly above ``level``."""
    start, end = _clip_window(values, start, end)
    if start >= end:
        return None
    hits = np.flatnonzero(values[start:end] > level)
    if hits.size == 0:
        return None
    return start + int(hits[-1])


def first_blank(
    timestamps: np.ndarray,
    values: np.ndarray,
    level: float,
    min_duration: float,
    start: int,
    end: int,
) -> Optional[int]:
    """
    Start index of the first run of values at or below ``level`` lasting
    at least ``min_duration`` seconds.

    A run's length is measured from its first sample's timestamp to the
    timestamp of its latest sample, so a run reaching the end of the window
    counts once it is long enough.
    """
    start, end = _clip_window(values, start, end)
    run_start: Optional[int] = None

    for i in range(start, end):
        if values[i] <= level:
            if run_start is None:
                run_start = i
            if timestamps[i] - timestamps[run_start] >= min_duration:
                return run_start
        else:
            run_start = None

    return None


def split_halves(start: int, end: int) -> Tuple[Tuple[int, int], Tuple[int, int]]:
    """
    Split ``[start, end)`` into two equal halves.

    With an odd count the middle element belongs to neither half.
    """
    half = max(0, end - start) // 2
    return (start, start + half), (end - half, end)


def window_mean(values: np.ndarray, start: int, end: int) -> Optional[float]:
    """Mean of ``values[start:end]``, None for an empty window."""
    start, end = _clip_window(values, start, end)
    if start >= end:
        return None
    return float(np.mean(values[start:end]))

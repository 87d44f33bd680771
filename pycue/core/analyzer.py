"""
Cue-point analyzer for pycue.

Turns an EBU R128 sample series into cue-in, cue-out and next-track
overlay points, with blank (hidden track) detection and the long tail and
sustained ending corrections.
"""

import math
from typing import Optional, Tuple

import numpy as np

from pycue.core.analyzer_base import BaseAnalyzer
from pycue.core.gain import compute_gain, true_peak_to_db
from pycue.core.models import CueConfig, Decision, SampleSeries
from pycue.core.scans import (
    first_above,
    first_blank,
    last_above,
    split_halves,
    window_mean,
)

# Length of the momentary loudness window, seconds
MOMENTARY_WINDOW: float = 0.4


class CueAnalyzer(BaseAnalyzer[Decision]):
    """
    Multi-pass cue-point analysis.

    Passes over the momentary loudness, in order:
    - cue-in: first sample above the silence level
    - blank: first long enough run at or below the silence level
    - cue-out: last sample above the silence level (or the blank start)
    - overlay: last sample above the overlay level
    - sustained ending and long tail: overlay recomputed at a lower level

    The analysis never fails on odd input; a scan that finds nothing
    yields 0.0 for its point.
    """

    def __init__(self):
        super().__init__("cue", "1.0.0")

    def _analyze_impl(self, series: SampleSeries, config: CueConfig) -> Decision:
        ts = series.timestamps
        momentary = series.momentary
        duration = series.duration
        loudness = series.integrated_loudness

        silence_level = loudness + config.silence_offset
        start, end = 0, len(series)

        # Cue-in
        cue_in = 0.0
        idx = first_above(momentary, silence_level, start, end)
        if idx is not None:
            start = idx
            cue_in = float(ts[idx])
            # Anything within the first window can't be told from lead-in silence
            if cue_in < MOMENTARY_WINDOW:
                cue_in = 0.0
        self.logger.debug(f"Cue-in {cue_in:.3f}s (silence level {silence_level:.2f} LUFS)")

        # Blank candidate
        blank_idx: Optional[int] = None
        if config.blank_skip > 0:
            blank_idx = first_blank(
                ts, momentary, silence_level, config.blank_skip, start, end
            )
            if blank_idx is not None:
                self.logger.debug(f"Blank of {config.blank_skip}s+ at {ts[blank_idx]:.3f}s")

        # Cue-out
        cue_out = 0.0
        idx = last_above(momentary, silence_level, start, end)
        if idx is not None:
            t = float(ts[idx])
            cue_out = max(t, duration - t)
            end = idx + 1
        else:
            end = start

        blank_skipped = False
        if blank_idx is not None and float(ts[blank_idx]) < cue_out:
            self.logger.debug(
                f"Blank skip: cue-out {cue_out:.3f}s -> {ts[blank_idx]:.3f}s"
            )
            cue_out = float(ts[blank_idx])
            end = blank_idx
            blank_skipped = True

        # Overlay
        overlay_level = loudness + config.overlay_offset
        extra_level = overlay_level + config.extra_offset
        overlay_normal, overlay_idx = self._overlay(
            ts, momentary, overlay_level, start, end, cue_out
        )
        self.logger.debug(f"Overlay {overlay_normal:.3f}s (level {overlay_level:.2f} LUFS)")

        # Sustained ending
        sustained_ending = False
        drop_percent: Optional[float] = None
        overlay_sustained = 0.0
        if config.drop_percent > 0 and overlay_idx is not None:
            ending = self._ending_drop(ts, momentary, overlay_idx, end)
            if ending is not None:
                drop_percent, second_half_loudness = ending
                if drop_percent < config.drop_percent:
                    sustained_ending = True
                    overlay_sustained, _ = self._overlay(
                        ts,
                        momentary,
                        max(second_half_loudness, extra_level),
                        start,
                        end,
                        cue_out,
                    )
                    self.logger.debug(
                        f"Sustained ending ({drop_percent:.2f}% drop), "
                        f"overlay {overlay_sustained:.3f}s"
                    )

        # Long tail
        long_tail = False
        overlay_longtail = 0.0
        if cue_out - overlay_normal > config.longtail_seconds:
            long_tail = True
            overlay_longtail, _ = self._overlay(
                ts, momentary, extra_level, start, end, cue_out
            )
            self.logger.debug(
                f"Long tail ({cue_out - overlay_normal:.3f}s), "
                f"overlay {overlay_longtail:.3f}s"
            )

        cross_start_next = max(overlay_normal, overlay_sustained, overlay_longtail)

        true_peak = series.true_peak
        true_peak_db = true_peak_to_db(true_peak)
        gain, gain_correction = compute_gain(
            loudness, true_peak_db, config.target_loudness, config.clip_prevention
        )

        return Decision(
            cue_in=cue_in,
            cue_out=cue_out,
            cross_start_next=cross_start_next,
            duration=duration,
            long_tail=long_tail,
            sustained_ending=sustained_ending,
            blank_skipped=blank_skipped,
            gain=gain,
            gain_correction=gain_correction,
            loudness=loudness,
            loudness_range=series.loudness_range,
            true_peak=true_peak,
            true_peak_db=true_peak_db,
            overlay_normal=overlay_normal,
            drop_percent=drop_percent,
        )

    @staticmethod
    def _overlay(
        ts: np.ndarray,
        momentary: np.ndarray,
        level: float,
        start: int,
        end: int,
        cue_out: float,
    ) -> Tuple[float, Optional[int]]:
        """Overlay point for ``level`` and the index it was found at."""
        idx = last_above(momentary, level, start, end)
        if idx is None:
            return 0.0, None
        t = float(ts[idx])
        return max(t, cue_out - t), idx

    def _ending_drop(
        self,
        ts: np.ndarray,
        momentary: np.ndarray,
        start: int,
        end: int,
    ) -> Optional[Tuple[float, float]]:
        """
        Loudness drop over ``[start, end)``, first half against second half.

        Returns:
            (drop percent, second half mean loudness), or None when the
            range is too short to split or the drop is undefined.
        """
        (a0, a1), (b0, b1) = split_halves(start, end)
        first = window_mean(momentary, a0, a1)
        second = window_mean(momentary, b0, b1)
        if first is None or second is None or second == 0.0:
            return None

        drop = (1.0 - first / second) * 100.0
        if math.isnan(drop):
            return None

        self.logger.debug(
            f"Ending halves: {first:.2f} LUFS @ {window_mean(ts, a0, a1):.3f}s, "
            f"{second:.2f} LUFS @ {window_mean(ts, b0, b1):.3f}s"
        )
        return drop, second

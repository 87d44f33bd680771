"""
Core data models for pycue.

Immutable domain models: loudness samples, the analysis configuration,
the analyzer's decision and the externally visible result.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np
import yaml

from pycue.utils.errors import ConfigurationError, MalformedSeriesError


NEG_INF = float("-inf")


@dataclass(frozen=True)
class Sample:
    """One EBU R128 measurement instant (one ffmpeg ebur128 frame)."""

    timestamp: float  # seconds from track start
    momentary_loudness: float  # LUFS over the trailing 400 ms, may be -inf
    integrated_loudness: float  # LUFS up to this instant
    true_peaks: Tuple[float, ...] = ()  # linear, one per channel
    loudness_range: float = 0.0  # LU


@dataclass(frozen=True)
class SampleSeries:
    """
    Ordered, non-empty sequence of samples for one track.

    The last sample's integrated loudness, true peaks and loudness range
    describe the whole track. Timestamps and momentary loudness are also
    exposed as read-only numpy arrays for the window scans.
    """

    samples: Tuple[Sample, ...]
    # Container duration, when known; never shorter than the last timestamp
    track_duration: Optional[float] = None

    _timestamps: np.ndarray = field(
        default=None, init=False, repr=False, compare=False, hash=False
    )
    _momentary: np.ndarray = field(
        default=None, init=False, repr=False, compare=False, hash=False
    )

    def __post_init__(self) -> None:
        samples = tuple(self.samples)
        if not samples:
            raise MalformedSeriesError("Sample series is empty", sample_count=0)

        timestamps = np.array([s.timestamp for s in samples], dtype=np.float64)
        momentary = np.array(
            [s.momentary_loudness for s in samples], dtype=np.float64
        )

        if np.any(np.isnan(timestamps)):
            raise MalformedSeriesError(
                "Sample series has a timestamp that is not a number",
                sample_count=len(samples),
            )
        backwards = np.flatnonzero(np.diff(timestamps) < 0)
        if backwards.size:
            i = int(backwards[0])
            raise MalformedSeriesError(
                f"Sample timestamps go backwards at index {i + 1}: "
                f"{timestamps[i]:.3f} -> {timestamps[i + 1]:.3f}",
                sample_count=len(samples),
            )

        # nan momentary loudness is unmeasurable, i.e. silent
        momentary[np.isnan(momentary)] = NEG_INF
        timestamps.setflags(write=False)
        momentary.setflags(write=False)

        object.__setattr__(self, 'samples', samples)
        object.__setattr__(self, '_timestamps', timestamps)
        object.__setattr__(self, '_momentary', momentary)

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def timestamps(self) -> np.ndarray:
        return self._timestamps

    @property
    def momentary(self) -> np.ndarray:
        return self._momentary

    @property
    def last(self) -> Sample:
        return self.samples[-1]

    @property
    def duration(self) -> float:
        """Track duration in seconds."""
        last_ts = float(self._timestamps[-1])
        if self.track_duration is None:
            return last_ts
        return max(float(self.track_duration), last_ts)

    @property
    def integrated_loudness(self) -> float:
        return self.last.integrated_loudness

    @property
    def loudness_range(self) -> float:
        return self.last.loudness_range

    @property
    def true_peak(self) -> float:
        """Highest linear true peak over all channels (0.0 if unknown)."""
        peaks = self.last.true_peaks
        return max(peaks) if peaks else 0.0


@dataclass(frozen=True)
class CueConfig:
    """Immutable parameters of one analysis."""

    target_loudness: float = -18.0  # LUFS
    silence_offset: float = -42.0  # LU below integrated loudness
    overlay_offset: float = -8.0  # LU below integrated loudness
    longtail_seconds: float = 15.0
    extra_offset: float = -12.0  # LU, long tail / sustained ending
    drop_percent: float = 40.0  # 0 switches the sustained check off
    blank_skip: float = 0.0  # seconds, 0 switches blank detection off
    clip_prevention: bool = False

    # (field, config key, min, max)
    RANGES = (
        ("target_loudness", "target", -23.0, 0.0),
        ("silence_offset", "silence", -96.0, 0.0),
        ("overlay_offset", "overlay", -96.0, 0.0),
        ("longtail_seconds", "longtail", 0.0, 60.0),
        ("extra_offset", "extra", -96.0, 0.0),
        ("drop_percent", "drop", 0.0, 100.0),
        ("blank_skip", "blankskip", 0.0, 60.0),
    )

    @classmethod
    def from_dict(cls, section: Mapping[str, Any]) -> "CueConfig":
        """
        Build from the ``analysis`` configuration section.

        Missing keys keep their defaults.
        """
        kwargs: Dict[str, Any] = {}
        for name, key, _, _ in cls.RANGES:
            if section.get(key) is not None:
                kwargs[name] = float(section[key])
        if section.get("noclip") is not None:
            kwargs["clip_prevention"] = bool(section["noclip"])
        return cls(**kwargs)

    def validate(self) -> "CueConfig":
        """
        Check every numeric parameter against its allowed range.

        Raises:
            ConfigurationError: On the first value out of range
        """
        for name, key, low, high in self.RANGES:
            value = getattr(self, name)
            if not (low <= value <= high):
                raise ConfigurationError(
                    f"{key} must be between {low} and {high}, got {value:f}",
                    config_key=f"analysis.{key}",
                )
        return self


@dataclass(frozen=True)
class Decision:
    """Analyzer output before labeling."""

    cue_in: float
    cue_out: float
    cross_start_next: float
    duration: float
    long_tail: bool
    sustained_ending: bool
    blank_skipped: bool
    gain: float
    gain_correction: float
    loudness: float
    loudness_range: float
    true_peak: float
    true_peak_db: float
    # Diagnostics
    overlay_normal: float = 0.0
    drop_percent: Optional[float] = None

    @property
    def cue_duration(self) -> float:
        return self.cue_out - self.cue_in


@dataclass(frozen=True)
class CueResult:
    """Complete, externally visible result for one track."""

    duration: float  # s
    cue_duration: float  # s
    cue_in: float  # s
    cue_out: float  # s
    cross_start_next: float  # s
    long_tail: bool
    sustained_ending: bool
    loudness: float  # LUFS
    loudness_range: float  # LU
    gain: float  # dB
    gain_correction: float  # dB
    reference_loudness: float  # LUFS
    blank_skip: float  # s, configured value
    blank_skipped: bool
    true_peak: float  # linear
    true_peak_db: float  # dBFS

    # Metadata
    from_cache: bool = field(default=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        """Labeled dictionary with Liquidsoap key names."""
        from pycue.core.assembler import label_result
        return label_result(self)

    def to_json(self, indent: Optional[int] = None) -> str:
        """Export as JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    def to_yaml(self) -> str:
        """Export as YAML string."""
        return yaml.safe_dump(self.to_dict(), sort_keys=False)

    def annotations(self) -> Dict[str, str]:
        """Flat string map, suitable for writing as file tags."""
        from pycue.core.assembler import annotations
        return annotations(self)


@dataclass(frozen=True)
class Sufficient:
    """Cached tags are complete: ``result`` can be used without a scan."""

    tags: Mapping[str, str]
    result: CueResult

    def __post_init__(self) -> None:
        object.__setattr__(self, 'tags', MappingProxyType(dict(self.tags)))


@dataclass(frozen=True)
class Insufficient:
    """Cached tags cannot be reused; a full scan is needed."""

    reasons: Tuple[str, ...]

    @property
    def reason(self) -> str:
        return "; ".join(self.reasons)

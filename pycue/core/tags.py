"""
Cached tag checker for pycue.

Decides whether the tags a previous analysis left in a file are enough to
answer a request without re-scanning. A cache miss is an ordinary return
value (Insufficient), not an exception.
"""

import logging
import re
from typing import Dict, List, Mapping, Optional, Union

from pycue.core.assembler import annotations, assemble_result
from pycue.core.gain import compute_gain
from pycue.core.models import (
    CueConfig,
    CueResult,
    Decision,
    Insufficient,
    Sufficient,
)
from pycue.utils.errors import TagValueError

logger = logging.getLogger(__name__)

# Every tag pycue reads or writes
TAG_VOCABULARY = frozenset({
    "duration",
    "liq_cue_duration",
    "liq_cue_in",
    "liq_cue_out",
    "liq_cross_start_next",
    "liq_longtail",
    "liq_sustained_ending",
    "liq_loudness",
    "liq_loudness_range",
    "liq_amplify",
    "liq_amplify_adjustment",
    "liq_reference_loudness",
    "liq_blankskip",
    "liq_blank_skipped",
    "liq_true_peak",
    "liq_true_peak_db",
    "replaygain_track_gain",
    "replaygain_track_peak",
    "replaygain_track_range",
    "replaygain_reference_loudness",
})

# Tags whose values may carry a unit suffix
UNIT_TAGS = frozenset({
    "liq_amplify",
    "liq_amplify_adjustment",
    "liq_loudness",
    "liq_loudness_range",
    "liq_reference_loudness",
    "liq_true_peak_db",
    "replaygain_track_gain",
    "replaygain_track_range",
    "replaygain_reference_loudness",
})

REQUIRED_TAGS = ("duration", "liq_cue_in", "liq_cue_out", "liq_cross_start_next")
GAIN_TAGS = ("liq_amplify", "replaygain_track_gain")
REFERENCE_TAGS = ("liq_reference_loudness", "replaygain_reference_loudness")
TRUE_PEAK_TAGS = ("liq_true_peak", "replaygain_track_peak")
RANGE_TAGS = ("liq_loudness_range", "replaygain_track_range")

# ReplayGain 2.0 reference loudness, LUFS
REPLAYGAIN_REFERENCE: float = -18.0

# Cached numbers are written with three decimals
TAG_TOLERANCE: float = 5e-4

_UNIT_VALUE = re.compile(
    r"^\s*([-+]?(?:(?:\d+(?:\.\d*)?|\.\d+)(?:e[-+]?\d+)?|inf))\s*(?:dbfs|db|lufs|lu)?\s*$",
    re.IGNORECASE,
)

_TRUE = {"true", "1", "yes"}
_FALSE = {"false", "0", "no"}


def take_pure_value(key: str, value: str) -> str:
    """
    Strip the unit suffix from a tag value.

    Only tags in UNIT_TAGS are touched; other values are returned as they
    are.

    Raises:
        TagValueError: If a unit tag's value is not a number
    """
    if key not in UNIT_TAGS:
        return value
    match = _UNIT_VALUE.match(value)
    if not match:
        raise TagValueError(key, value)
    return match.group(1)


def parse_number(key: str, value: str) -> float:
    """Parse a numeric tag value, with or without unit."""
    pure = take_pure_value(key, value)
    try:
        number = float(pure)
    except ValueError as e:
        raise TagValueError(key, value) from e
    if number != number:  # nan
        raise TagValueError(key, value)
    return number


def parse_flag(key: str, value: str) -> bool:
    """Parse a boolean tag value ("true"/"false")."""
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise TagValueError(key, value)


def select_tags(tags: Mapping[str, str]) -> Dict[str, str]:
    """New dict with lower-cased keys, limited to TAG_VOCABULARY."""
    selected: Dict[str, str] = {}
    for key, value in tags.items():
        lowered = str(key).lower()
        if lowered in TAG_VOCABULARY and value is not None:
            selected[lowered] = str(value).strip()
    return selected


def check_cached_tags(
    tags: Mapping[str, str], config: CueConfig
) -> Union[Sufficient, Insufficient]:
    """
    Check cached tags and normalize them to the requested configuration.

    Gain and reference loudness are recomputed for the current target, so
    one cached analysis serves any target loudness.

    Args:
        tags: Tags read from the file (not modified)
        config: Requested analysis configuration

    Returns:
        Sufficient with the normalized tags and result, or Insufficient
        with one reason per problem found.
    """
    cached = select_tags(tags)
    reasons: List[str] = []

    for key in REQUIRED_TAGS:
        if key not in cached:
            reasons.append(f"missing tag [{key}]")
    gain_key = _first_present(cached, GAIN_TAGS)
    if gain_key is None:
        reasons.append("missing tag [liq_amplify] or [replaygain_track_gain]")
    if reasons:
        return Insufficient(tuple(reasons))

    values: Dict[str, float] = {}
    for key in REQUIRED_TAGS + (gain_key,):
        _parse_required(cached, key, values, reasons)

    reference = REPLAYGAIN_REFERENCE
    reference_key = _first_present(cached, REFERENCE_TAGS)
    if reference_key is not None:
        parsed = _parse_optional(cached, reference_key)
        if parsed is not None:
            reference = parsed

    if all(key in values for key in REQUIRED_TAGS):
        reasons.extend(_cue_point_problems(values))

    peak_key = _first_present(cached, TRUE_PEAK_TAGS) or "liq_true_peak"
    range_key = _first_present(cached, RANGE_TAGS) or "liq_loudness_range"
    for key in (peak_key, "liq_true_peak_db", "liq_loudness", range_key):
        if key not in cached:
            reasons.append(f"missing tag [{key}]")
        else:
            _parse_required(cached, key, values, reasons)

    cached_blankskip = 0.0
    if "liq_blankskip" in cached:
        try:
            cached_blankskip = parse_number("liq_blankskip", cached["liq_blankskip"])
        except TagValueError as e:
            reasons.append(str(e))
            cached_blankskip = config.blank_skip
    if abs(cached_blankskip - config.blank_skip) > TAG_TOLERANCE:
        reasons.append(
            f"cached blank skip {cached_blankskip:.3f}s differs from "
            f"requested {config.blank_skip:.3f}s"
        )

    if reasons:
        return Insufficient(tuple(reasons))

    # Clipping prevention follows the request, not the cache
    gain, gain_correction = compute_gain(
        values["liq_loudness"],
        values["liq_true_peak_db"],
        config.target_loudness,
        config.clip_prevention,
    )
    logger.debug(
        f"Cached gain {values[gain_key]:.2f} dB at {reference:.2f} LUFS -> "
        f"{gain:.2f} dB at {config.target_loudness:.2f} LUFS"
    )

    decision = Decision(
        cue_in=values["liq_cue_in"],
        cue_out=values["liq_cue_out"],
        cross_start_next=values["liq_cross_start_next"],
        duration=values["duration"],
        long_tail=_flag(cached, "liq_longtail"),
        sustained_ending=_flag(cached, "liq_sustained_ending"),
        blank_skipped=_flag(cached, "liq_blank_skipped"),
        gain=gain,
        gain_correction=gain_correction,
        loudness=values["liq_loudness"],
        loudness_range=values[range_key],
        true_peak=values[peak_key],
        true_peak_db=values["liq_true_peak_db"],
        overlay_normal=values["liq_cross_start_next"],
    )
    result = assemble_result(decision, config, from_cache=True)

    cue_duration = _parse_optional(cached, "liq_cue_duration")
    if cue_duration is not None and abs(cue_duration - result.cue_duration) > 0.01:
        logger.warning(
            f"Cached cue duration {cue_duration:.3f}s does not match cue points, "
            f"using {result.cue_duration:.3f}s"
        )

    # Cached ReplayGain values may belong to another target
    normalized = annotations(result)
    normalized.update(replaygain_tags(result))
    return Sufficient(tags=normalized, result=result)


def replaygain_tags(result: CueResult) -> Dict[str, str]:
    """ReplayGain 2.0 tags mirroring a result's liq_ values."""
    return {
        "replaygain_track_gain": f"{result.gain:.2f} dB",
        "replaygain_track_peak": f"{result.true_peak:.6f}",
        "replaygain_track_range": f"{result.loudness_range:.2f} dB",
        "replaygain_reference_loudness": f"{result.reference_loudness:.2f} LUFS",
    }


def _first_present(cached: Mapping[str, str], keys) -> Optional[str]:
    for key in keys:
        if key in cached:
            return key
    return None


def _cue_point_problems(values: Mapping[str, float]) -> List[str]:
    """Cached cue points must satisfy 0 <= cue in <= cue out <= duration."""
    cue_in = values["liq_cue_in"]
    cue_out = values["liq_cue_out"]
    cross = values["liq_cross_start_next"]
    duration = values["duration"]

    problems = []
    if cue_in < -TAG_TOLERANCE:
        problems.append(f"cached cue in {cue_in:.3f}s is negative")
    if cue_in > cue_out + TAG_TOLERANCE:
        problems.append(f"cached cue in {cue_in:.3f}s is after cue out {cue_out:.3f}s")
    if cue_out > duration + TAG_TOLERANCE:
        problems.append(
            f"cached cue out {cue_out:.3f}s is after track end {duration:.3f}s"
        )
    if cross > cue_out + TAG_TOLERANCE:
        problems.append(
            f"cached overlay start {cross:.3f}s is after cue out {cue_out:.3f}s"
        )
    return problems


def _parse_required(
    cached: Mapping[str, str],
    key: str,
    values: Dict[str, float],
    reasons: List[str],
) -> None:
    try:
        values[key] = parse_number(key, cached[key])
    except TagValueError as e:
        reasons.append(str(e))


def _parse_optional(cached: Mapping[str, str], key: str) -> Optional[float]:
    if key not in cached:
        return None
    try:
        return parse_number(key, cached[key])
    except TagValueError as e:
        logger.warning(f"Ignoring tag: {e}")
        return None


def _flag(cached: Mapping[str, str], key: str) -> bool:
    if key not in cached:
        return False
    try:
        return parse_flag(key, cached[key])
    except TagValueError as e:
        logger.warning(f"Ignoring tag: {e}")
        return False

"""
Decision assembler for pycue.

Builds the final CueResult from an analyzer Decision and the request
configuration, and renders it with units under the Liquidsoap key names.
No computation beyond copying and labeling happens here.
"""

from typing import Any, Dict

from pycue.core.models import CueConfig, CueResult, Decision

# Result field -> external key, in output order
RESULT_KEYS = (
    ("duration", "duration"),
    ("cue_duration", "liq_cue_duration"),
    ("cue_in", "liq_cue_in"),
    ("cue_out", "liq_cue_out"),
    ("cross_start_next", "liq_cross_start_next"),
    ("long_tail", "liq_longtail"),
    ("sustained_ending", "liq_sustained_ending"),
    ("loudness", "liq_loudness"),
    ("loudness_range", "liq_loudness_range"),
    ("gain", "liq_amplify"),
    ("gain_correction", "liq_amplify_adjustment"),
    ("reference_loudness", "liq_reference_loudness"),
    ("blank_skip", "liq_blankskip"),
    ("blank_skipped", "liq_blank_skipped"),
    ("true_peak", "liq_true_peak"),
    ("true_peak_db", "liq_true_peak_db"),
)

# Fields rendered as "<value> <unit>"
UNITS = {
    "loudness": "LUFS",
    "loudness_range": "LU",
    "gain": "dB",
    "gain_correction": "dB",
    "reference_loudness": "LUFS",
    "true_peak_db": "dBFS",
}


def assemble_result(
    decision: Decision, config: CueConfig, from_cache: bool = False
) -> CueResult:
    """Merge a decision with the configuration it was made for."""
    return CueResult(
        duration=decision.duration,
        cue_duration=decision.cue_duration,
        cue_in=decision.cue_in,
        cue_out=decision.cue_out,
        cross_start_next=decision.cross_start_next,
        long_tail=decision.long_tail,
        sustained_ending=decision.sustained_ending,
        loudness=decision.loudness,
        loudness_range=decision.loudness_range,
        gain=decision.gain,
        gain_correction=decision.gain_correction,
        reference_loudness=config.target_loudness,
        blank_skip=config.blank_skip,
        blank_skipped=decision.blank_skipped,
        true_peak=decision.true_peak,
        true_peak_db=decision.true_peak_db,
        from_cache=from_cache,
    )


def label_result(result: CueResult) -> Dict[str, Any]:
    """
    Result as JSON/YAML-ready dict.

    Loudness, gain and peak values become strings with their unit
    ("-14.20 LUFS"); times stay numbers, flags stay booleans.
    """
    labeled: Dict[str, Any] = {}
    for name, key in RESULT_KEYS:
        value = getattr(result, name)
        if name in UNITS:
            labeled[key] = f"{value:.2f} {UNITS[name]}"
        elif isinstance(value, bool):
            labeled[key] = value
        else:
            labeled[key] = float(value)
    return labeled


def annotations(result: CueResult) -> Dict[str, str]:
    """
    Result as a flat string map for file tags.

    Numbers get three decimals, labeled ones included, so a result read
    back from tags matches the analysis it came from within 1e-3.
    """
    tags: Dict[str, str] = {}
    for name, key in RESULT_KEYS:
        value = getattr(result, name)
        if isinstance(value, bool):
            tags[key] = "true" if value else "false"
        elif name in UNITS:
            tags[key] = f"{value:.3f} {UNITS[name]}"
        else:
            tags[key] = f"{value:.3f}"
    return tags

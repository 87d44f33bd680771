"""Tests for the cached tag checker."""

import pytest

from pycue.core.analyzer import CueAnalyzer
from pycue.core.assembler import annotations, assemble_result
from pycue.core.models import CueConfig, Insufficient, Sufficient
from pycue.core.tags import (
    REQUIRED_TAGS,
    check_cached_tags,
    parse_flag,
    parse_number,
    select_tags,
    take_pure_value,
)
from pycue.utils.errors import TagValueError


# ---------------------------------------------------------------------------
# Value parsing
# ---------------------------------------------------------------------------


class TestTakePureValue:
    @pytest.mark.parametrize(
        "key, value, expected",
        [
            ("arbitrary key", "test value", "test value"),
            ("liq_amplify", "25.345 dB", "25.345"),
            ("liq_reference_loudness", "-11.20 LUFS", "-11.20"),
            ("liq_true_peak_db", "-4.4 dBFS", "-4.4"),
            ("liq_loudness_range", "7.1 LU", "7.1"),
            ("replaygain_track_gain", "-3.50 dB", "-3.50"),
            ("liq_amplify", "-2.5", "-2.5"),
            ("liq_true_peak_db", "-inf dBFS", "-inf"),
        ],
    )
    def test_strips_unit(self, key, value, expected):
        assert take_pure_value(key, value) == expected

    def test_corrupt_value(self):
        with pytest.raises(TagValueError) as exc_info:
            take_pure_value("liq_true_peak_db", "corrupt true peak")

        assert str(exc_info.value) == (
            "unexpected value [corrupt true peak] found in [liq_true_peak_db] tag"
        )
        assert exc_info.value.key == "liq_true_peak_db"

    def test_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            take_pure_value("liq_amplify", "loud")


class TestParse:
    def test_parse_number_with_unit(self):
        assert parse_number("liq_loudness", "-9.87 LUFS") == pytest.approx(-9.87)

    def test_parse_number_plain(self):
        assert parse_number("liq_cue_in", "1.200") == pytest.approx(1.2)

    def test_parse_number_rejects_nan(self):
        with pytest.raises(TagValueError):
            parse_number("liq_cue_in", "nan")

    def test_parse_number_rejects_text(self):
        with pytest.raises(TagValueError):
            parse_number("liq_cue_out", "end")

    @pytest.mark.parametrize("value, expected", [
        ("true", True), ("False", False), (" 1 ", True), ("no", False),
    ])
    def test_parse_flag(self, value, expected):
        assert parse_flag("liq_longtail", value) is expected

    def test_parse_flag_rejects_garbage(self):
        with pytest.raises(TagValueError):
            parse_flag("liq_longtail", "maybe")


class TestSelectTags:
    def test_lower_cases_and_filters(self):
        selected = select_tags({
            "LIQ_CUE_IN": "1.0",
            "Title": "Song",
            "REPLAYGAIN_TRACK_GAIN": "-3 dB",
        })
        assert selected == {"liq_cue_in": "1.0", "replaygain_track_gain": "-3 dB"}

    def test_input_not_modified(self):
        tags = {"LIQ_CUE_IN": "1.0"}
        select_tags(tags)
        assert tags == {"LIQ_CUE_IN": "1.0"}


# ---------------------------------------------------------------------------
# Sufficiency
# ---------------------------------------------------------------------------


class TestCheckCachedTags:
    def test_complete_tags_are_sufficient(self, cached_tags):
        check = check_cached_tags(cached_tags, CueConfig())

        assert isinstance(check, Sufficient)
        result = check.result
        assert result.from_cache is True
        assert result.cue_in == pytest.approx(1.2)
        assert result.cue_out == pytest.approx(244.22)
        assert result.cross_start_next == pytest.approx(238.9)
        assert result.duration == pytest.approx(245.12)
        assert result.sustained_ending is True
        assert result.long_tail is False
        assert result.loudness == pytest.approx(-9.87)
        assert result.gain == pytest.approx(-8.13)

    @pytest.mark.parametrize("missing", REQUIRED_TAGS)
    def test_missing_required_tag(self, cached_tags, missing):
        del cached_tags[missing]
        check = check_cached_tags(cached_tags, CueConfig())

        assert isinstance(check, Insufficient)
        assert f"missing tag [{missing}]" in check.reasons

    def test_missing_gain(self, cached_tags):
        del cached_tags["liq_amplify"]
        check = check_cached_tags(cached_tags, CueConfig())

        assert isinstance(check, Insufficient)
        assert "liq_amplify" in check.reason

    def test_replaygain_gain_is_accepted(self, cached_tags):
        del cached_tags["liq_amplify"]
        cached_tags["replaygain_track_gain"] = "-8.13 dB"
        assert isinstance(check_cached_tags(cached_tags, CueConfig()), Sufficient)

    def test_replaygain_peak_and_range_are_accepted(self, cached_tags):
        cached_tags["replaygain_track_peak"] = cached_tags.pop("liq_true_peak")
        cached_tags["replaygain_track_range"] = "5.41 dB"
        del cached_tags["liq_loudness_range"]
        check = check_cached_tags(cached_tags, CueConfig())

        assert isinstance(check, Sufficient)
        assert check.result.true_peak == pytest.approx(0.989)
        assert check.tags["liq_loudness_range"] == "5.410 LU"

    def test_all_reasons_are_collected(self, cached_tags):
        del cached_tags["liq_cue_in"]
        del cached_tags["liq_cue_out"]
        check = check_cached_tags(cached_tags, CueConfig())

        assert len(check.reasons) == 2

    def test_corrupt_required_value(self, cached_tags):
        cached_tags["liq_true_peak_db"] = "corrupt true peak"
        check = check_cached_tags(cached_tags, CueConfig())

        assert isinstance(check, Insufficient)
        assert "unexpected value [corrupt true peak]" in check.reason

    def test_inconsistent_cue_points(self, cached_tags):
        cached_tags["liq_cue_in"] = "300.000"
        cached_tags["liq_cross_start_next"] = "500.000"
        check = check_cached_tags(cached_tags, CueConfig())

        assert isinstance(check, Insufficient)
        assert "cached cue in 300.000s is after cue out 244.220s" in check.reasons
        assert "cached overlay start 500.000s is after cue out 244.220s" in check.reasons

    @pytest.mark.parametrize("key, value, problem", [
        ("liq_cue_in", "-1.000", "is negative"),
        ("liq_cue_out", "250.000", "is after track end"),
    ])
    def test_cue_points_outside_track(self, cached_tags, key, value, problem):
        cached_tags[key] = value
        check = check_cached_tags(cached_tags, CueConfig())

        assert isinstance(check, Insufficient)
        assert problem in check.reason

    def test_rounding_within_tolerance(self, cached_tags):
        cached_tags["liq_cue_out"] = "245.1203"
        cached_tags["liq_cross_start_next"] = "245.1205"
        assert isinstance(check_cached_tags(cached_tags, CueConfig()), Sufficient)

    def test_missing_loudness(self, cached_tags):
        del cached_tags["liq_loudness"]
        assert isinstance(check_cached_tags(cached_tags, CueConfig()), Insufficient)

    def test_input_not_modified(self, cached_tags):
        before = dict(cached_tags)
        check_cached_tags(cached_tags, CueConfig(target_loudness=-23.0))
        assert cached_tags == before


class TestBlankSkipMatching:
    def test_blankskip_mismatch(self, cached_tags):
        check = check_cached_tags(cached_tags, CueConfig(blank_skip=5.0))

        assert isinstance(check, Insufficient)
        assert "blank skip" in check.reason

    def test_blankskip_match(self, cached_tags):
        cached_tags["liq_blankskip"] = "5.000"
        check = check_cached_tags(cached_tags, CueConfig(blank_skip=5.0))

        assert isinstance(check, Sufficient)
        assert check.result.blank_skip == 5.0

    def test_absent_blankskip_means_off(self, cached_tags):
        del cached_tags["liq_blankskip"]
        assert isinstance(check_cached_tags(cached_tags, CueConfig()), Sufficient)
        assert isinstance(
            check_cached_tags(cached_tags, CueConfig(blank_skip=2.0)), Insufficient
        )


class TestRetargeting:
    def test_gain_follows_new_target(self, cached_tags):
        check = check_cached_tags(cached_tags, CueConfig(target_loudness=-23.0))

        assert isinstance(check, Sufficient)
        assert check.result.gain == pytest.approx(-13.13)
        assert check.result.reference_loudness == -23.0
        assert check.tags["liq_reference_loudness"] == "-23.000 LUFS"
        assert check.tags["liq_amplify"] == "-13.130 dB"

    def test_clip_prevention_applies_to_cache(self, cached_tags):
        cached_tags["liq_loudness"] = "-20.000 LUFS"
        check = check_cached_tags(
            cached_tags, CueConfig(target_loudness=-18.0, clip_prevention=True)
        )

        # +2 dB would push a -0.096 dBFS peak over -1 dBFS
        assert check.result.gain == pytest.approx(-1.0 + 0.096)
        assert check.result.gain_correction == pytest.approx(-0.904 - 2.0)


class TestNormalizedTags:
    def test_defaults_filled_in(self, cached_tags):
        for key in ("liq_longtail", "liq_blank_skipped", "liq_amplify_adjustment",
                    "liq_cue_duration"):
            del cached_tags[key]
        check = check_cached_tags(cached_tags, CueConfig())

        assert isinstance(check, Sufficient)
        assert check.tags["liq_longtail"] == "false"
        assert check.tags["liq_blank_skipped"] == "false"
        assert check.tags["liq_amplify_adjustment"] == "0.000 dB"
        assert check.tags["liq_cue_duration"] == "243.020"

    def test_replaygain_mirrored(self, cached_tags):
        check = check_cached_tags(cached_tags, CueConfig())

        assert check.tags["replaygain_track_gain"] == "-8.13 dB"
        assert check.tags["replaygain_track_peak"] == "0.989000"
        assert check.tags["replaygain_reference_loudness"] == "-18.00 LUFS"

    def test_replaygain_follows_new_target(self, cached_tags):
        cached_tags["replaygain_track_gain"] = "-8.13 dB"
        cached_tags["replaygain_reference_loudness"] = "-18.00 LUFS"
        check = check_cached_tags(cached_tags, CueConfig(target_loudness=-23.0))

        assert check.tags["liq_reference_loudness"] == "-23.000 LUFS"
        assert check.tags["replaygain_reference_loudness"] == "-23.00 LUFS"
        assert check.tags["replaygain_track_gain"] == "-13.13 dB"

    def test_tags_are_read_only(self, cached_tags):
        check = check_cached_tags(cached_tags, CueConfig())
        with pytest.raises(TypeError):
            check.tags["liq_cue_in"] = "0"


class TestCacheScanEquivalence:
    """A scan result written as tags and read back gives the same result."""

    @pytest.mark.parametrize("config", [
        CueConfig(),
        CueConfig(target_loudness=-23.0, blank_skip=5.0),
        CueConfig(drop_percent=0.0, longtail_seconds=5.0),
    ])
    def test_round_trip_through_tags(self, hidden_track_series, config):
        scanned = assemble_result(CueAnalyzer().analyze(hidden_track_series, config), config)

        check = check_cached_tags(annotations(scanned), config)

        assert isinstance(check, Sufficient)
        cached = check.result
        for name in ("duration", "cue_duration", "cue_in", "cue_out",
                     "cross_start_next", "loudness", "loudness_range", "gain",
                     "gain_correction", "reference_loudness", "blank_skip",
                     "true_peak", "true_peak_db"):
            assert getattr(cached, name) == pytest.approx(getattr(scanned, name), abs=1e-3)
        for name in ("long_tail", "sustained_ending", "blank_skipped"):
            assert getattr(cached, name) is getattr(scanned, name)

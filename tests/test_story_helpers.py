"""
Tests for video-length helpers and id generation.
"""

import pytest

from sidvid.core.exceptions import ValidationError
from sidvid.utils import (
    generate_id,
    parse_video_length_to_seconds,
    calculate_scene_count,
    calculate_scene_duration,
    get_complexity_guidance,
)


class TestParseVideoLength:

    @pytest.mark.parametrize("value,seconds", [("5s", 5), ("30s", 30), ("1m", 60), ("2m", 120)])
    def test_valid(self, value, seconds):
        assert parse_video_length_to_seconds(value) == seconds

    @pytest.mark.parametrize("value", ["", "abc", "10", "1h", "-5s"])
    def test_invalid_defaults_to_five(self, value):
        assert parse_video_length_to_seconds(value) == 5


class TestSceneCount:

    def test_divides_by_scene_duration(self):
        assert calculate_scene_count("30s") == 6
        assert calculate_scene_count("1m", scene_duration=10) == 6

    def test_at_least_one(self):
        assert calculate_scene_count("3s") == 1

    def test_invalid_format(self):
        assert calculate_scene_count("soon") == 1

    def test_non_positive_scene_duration(self):
        with pytest.raises(ValidationError):
            calculate_scene_count("30s", scene_duration=0)


class TestSceneDuration:

    def test_rounds_to_one_decimal(self):
        assert calculate_scene_duration("10s", 3) == 3.3
        assert calculate_scene_duration("20s", 3) == 6.7

    def test_rounds_half_up(self):
        assert calculate_scene_duration("1s", 4) == 0.3

    def test_zero_scene_count(self):
        with pytest.raises(ValidationError):
            calculate_scene_duration("30s", 0)


class TestComplexityGuidance:

    @pytest.mark.parametrize(
        "value,marker",
        [
            ("3s", "EXTREMELY SHORT"),
            ("10s", "SHORT video"),
            ("30s", "MEDIUM-length"),
            ("1m", "FULL-LENGTH"),
            ("2m", "EXTENDED"),
        ],
    )
    def test_thresholds(self, value, marker):
        assert marker in get_complexity_guidance(value)


def test_generate_id_prefix_and_uniqueness():
    ids = {generate_id("slot") for _ in range(50)}
    assert len(ids) == 50
    assert all(i.startswith("slot-") for i in ids)

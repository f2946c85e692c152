"""Tests for guidance bucket selection and legacy duration parsing"""
import math

import pytest

from packages.domain.recommendation.guidance import GuidanceBucket, select_guidance_bucket
from packages.domain.recommendation.legacy_durations import parse_day_count, parse_minutes


class TestGuidanceBuckets:

    def test_partition_covers_one_to_twenty_one_exactly_once(self):
        for days in range(1, 22):
            containing = [b for b in GuidanceBucket if b.contains(days)]
            assert len(containing) == 1, days
            assert select_guidance_bucket(days) == containing[0]

    @pytest.mark.parametrize("days", [0, None, -1, 22, 60])
    def test_no_bucket_outside_range(self, days):
        assert select_guidance_bucket(days) is None

    @pytest.mark.parametrize("days,expected", [
        (1, GuidanceBucket.DAYS_1_3),
        (3, GuidanceBucket.DAYS_1_3),
        (4, GuidanceBucket.DAYS_4_7),
        (7, GuidanceBucket.DAYS_4_7),
        (8, GuidanceBucket.DAYS_8_14),
        (14, GuidanceBucket.DAYS_8_14),
        (15, GuidanceBucket.DAYS_15_21),
        (21, GuidanceBucket.DAYS_15_21),
    ])
    def test_boundaries(self, days, expected):
        assert select_guidance_bucket(days) == expected

    def test_bucket_bounds(self):
        assert GuidanceBucket.DAYS_8_14.first_day == 8
        assert GuidanceBucket.DAYS_8_14.last_day == 14


class TestLegacyDurations:

    @pytest.mark.parametrize("value,expected", [
        ("1일", 1),
        ("1-2일", 1),
        ("2~3 days", 2),
        (4, 4),
        (4.0, 4),
        ("  7 ", 7),
    ])
    def test_day_count_uses_first_integer(self, value, expected):
        assert parse_day_count(value) == expected

    @pytest.mark.parametrize("value", [None, "", "상담 후 결정", "없음", 0, "0일", math.nan, True])
    def test_unknown_day_counts(self, value):
        assert parse_day_count(value) is None

    def test_minutes(self):
        assert parse_minutes("30분") == 30
        assert parse_minutes(60) == 60
        assert parse_minutes("약 1시간") == 1
        assert parse_minutes("시술시간 상이") is None

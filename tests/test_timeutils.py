"""Tests for interval and instant helpers."""

from datetime import date, datetime, timedelta, timezone

import pytest

from courtbook.tools.timeutils import (
    day_bounds,
    overlaps,
    parse_day,
    parse_instant,
    serialize_instant,
    shift,
)
from tests.conftest import TZ, at


class TestOverlaps:
    def test_back_to_back_does_not_overlap(self):
        assert overlaps(at(3, 10), at(3, 11), at(3, 11), at(3, 12)) is False

    def test_partial_overlap(self):
        assert overlaps(at(3, 9, 30), at(3, 10, 30), at(3, 10), at(3, 11)) is True

    def test_contained_interval_overlaps(self):
        assert overlaps(at(3, 10, 15), at(3, 10, 45), at(3, 10), at(3, 11)) is True

    def test_identical_intervals_overlap(self):
        assert overlaps(at(3, 10), at(3, 11), at(3, 10), at(3, 11)) is True

    def test_disjoint_intervals(self):
        assert overlaps(at(3, 8), at(3, 9), at(3, 14), at(3, 15)) is False

    @pytest.mark.parametrize(
        "a, b",
        [
            ((at(3, 10), at(3, 11)), (at(3, 11), at(3, 12))),
            ((at(3, 9, 30), at(3, 10, 30)), (at(3, 10), at(3, 11))),
            ((at(3, 10, 15), at(3, 10, 45)), (at(3, 10), at(3, 11))),
            ((at(3, 8), at(3, 9)), (at(3, 14), at(3, 15))),
        ],
    )
    def test_symmetric(self, a, b):
        assert overlaps(*a, *b) == overlaps(*b, *a)

    def test_compares_instants_across_offsets(self):
        utc_start = at(3, 10).astimezone(timezone.utc)
        assert overlaps(utc_start, utc_start + timedelta(hours=1), at(3, 10, 30), at(3, 11, 30))


class TestShift:
    def test_keeps_timezone(self):
        assert shift(at(3, 10), timedelta(minutes=30)) == at(3, 10, 30)
        assert shift(at(3, 10), timedelta(minutes=30)).tzinfo is TZ

    def test_crosses_dst_start_in_absolute_time(self):
        # Hobart clocks jump from 02:00 to 03:00 on 4 October 2026.
        before = datetime(2026, 10, 4, 1, 30, tzinfo=TZ)
        after = shift(before, timedelta(hours=1))
        assert after.hour == 3 and after.minute == 30
        assert after.utcoffset() == timedelta(hours=11)


class TestParseInstant:
    def test_offset_instant_converted_to_operating_zone(self):
        parsed = parse_instant("2026-11-03T10:00:00+11:00", TZ)
        assert parsed == at(3, 10)
        assert parsed.utcoffset() == timedelta(hours=11)

    def test_utc_z_suffix(self):
        parsed = parse_instant("2026-11-02T23:00:00Z", TZ)
        assert parsed == at(3, 10)
        assert parsed.hour == 10

    def test_naive_timestamp_rejected(self):
        assert parse_instant("2026-11-03T10:00:00", TZ) is None

    def test_garbage_rejected(self):
        assert parse_instant("next tuesday", TZ) is None

    def test_non_string_rejected(self):
        assert parse_instant(42, TZ) is None
        assert parse_instant(None, TZ) is None

    def test_aware_datetime_accepted(self):
        assert parse_instant(at(3, 10).astimezone(timezone.utc), TZ) == at(3, 10)


class TestParseDay:
    def test_plain_date(self):
        assert parse_day("2026-11-03", TZ) == date(2026, 11, 3)

    def test_instant_uses_operating_zone_date(self):
        # 23:30 UTC on the 2nd is 10:30 on the 3rd in Hobart.
        assert parse_day("2026-11-02T23:30:00Z", TZ) == date(2026, 11, 3)

    def test_empty_or_invalid(self):
        assert parse_day("", TZ) is None
        assert parse_day("03/11/2026", TZ) is None
        assert parse_day(None, TZ) is None


class TestFormatting:
    def test_serialize_drops_microseconds(self):
        value = at(3, 10).replace(microsecond=123456)
        assert serialize_instant(value, TZ) == "2026-11-03T10:00:00+11:00"

    def test_serialize_converts_to_operating_zone(self):
        assert serialize_instant(at(3, 10).astimezone(timezone.utc), TZ) == "2026-11-03T10:00:00+11:00"

    def test_day_bounds(self):
        start, end = day_bounds(date(2026, 11, 3), TZ)
        assert start == at(3, 0)
        assert end == at(4, 0)

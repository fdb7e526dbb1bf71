"""
Tests for the duration/time model.

- Clock parsing and formatting
- TimeWindow construction
- Offset <-> time transforms, snapping and hour carry
- Proportional layout helpers
"""

import pytest

from chefdesk.scheduling.errors import ValidationError
from chefdesk.scheduling.timemodel import (
    TimeWindow,
    build_window,
    duration_to_proportion,
    format_clock,
    hour_ticks,
    offset_to_time,
    parse_clock,
    snap_minute,
    time_to_offset,
)


class TestClock:
    def test_parse(self):
        assert parse_clock("06:00") == 360
        assert parse_clock("9:05") == 545
        assert parse_clock("24:00") == 1440

    @pytest.mark.parametrize("bad", ["", "6", "06:60", "25:00", "ab:cd", "06:00:00", None])
    def test_parse_rejects_malformed(self, bad):
        with pytest.raises(ValidationError):
            parse_clock(bad)

    def test_format_zero_pads(self):
        assert format_clock(545) == "09:05"
        assert format_clock(0) == "00:00"


class TestTimeWindow:
    def test_normalizes_times(self):
        window = TimeWindow(start="6:00", end="17:00")
        assert window.start == "06:00"
        assert window.length_minutes == 660

    def test_build_window_rejects_inverted(self):
        with pytest.raises(ValidationError):
            build_window("17:00", "06:00")

    def test_build_window_rejects_malformed(self):
        with pytest.raises(ValidationError):
            build_window("six", "17:00")

    def test_contains(self, window):
        assert window.contains("06:00", "17:00")
        assert not window.contains("05:45", "06:15")
        assert not window.contains("16:50", "17:10")


class TestTransforms:
    def test_time_to_offset(self, window):
        assert time_to_offset("06:00", window) == 0
        assert time_to_offset("08:30", window) == 150

    def test_time_to_offset_does_not_clamp(self, window):
        assert time_to_offset("05:00", window) == -60

    def test_offset_to_time_snaps_to_quarter_hour(self, window):
        assert offset_to_time(150, window) == "08:30"
        assert offset_to_time(157, window) == "08:30"
        assert offset_to_time(158, window) == "08:45"

    def test_half_rounds_up(self, window):
        # 7.5 minutes past the hour is exactly halfway between :00 and :15
        assert offset_to_time(67.5, window) == "07:15"

    def test_carry_into_next_hour(self, window):
        assert offset_to_time(173, window) == "09:00"

    def test_custom_granularity(self, window):
        assert offset_to_time(14, window, snap_minutes=5) == "06:15"
        assert offset_to_time(12, window, snap_minutes=5) == "06:10"

    def test_snap_minute(self):
        assert snap_minute(52.5) == 60
        assert snap_minute(52.4) == 45
        assert snap_minute(7, snap_minutes=1) == 7

    @pytest.mark.parametrize("snap", [1, 5, 15, 30])
    def test_round_trip_within_granularity(self, window, snap):
        for minutes in range(window.start_minutes, window.end_minutes + 1, 7):
            t = format_clock(minutes)
            back = parse_clock(offset_to_time(time_to_offset(t, window), window, snap))
            assert abs(back - minutes) <= snap


class TestProportions:
    def test_duration_to_proportion(self, window):
        assert duration_to_proportion(66, window) == pytest.approx(0.1)

    def test_proportion_is_clamped(self, window):
        assert duration_to_proportion(10_000, window) == 1.0
        assert duration_to_proportion(-5, window) == 0.0

    def test_hour_ticks(self, window):
        ticks = hour_ticks(window)
        assert len(ticks) == 11
        assert ticks[0] == "1hr"
        assert ticks[-1] == "11hr"

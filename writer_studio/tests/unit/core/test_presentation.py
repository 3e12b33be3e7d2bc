from datetime import date

import pytest

from writer_studio.core.presentation import (
    chart_series,
    format_duration,
    format_number,
    parse_duration,
    progress_bar_value,
)
from writer_studio.models.dtos import DailyViewPoint


@pytest.mark.parametrize("progress,expected", [(0, 0), (42.5, 42.5), (100, 100), (250, 100), (-3, 0)])
def test_progress_bar_value_is_clamped(progress, expected):
    assert progress_bar_value(progress) == expected


@pytest.mark.parametrize("value,expected", [
    (1_900_000, "1.9M"),
    (29_700, "29.7K"),
    (1_000, "1K"),
    (950, "950"),
    (2_500_000_000, "2.5B"),
    (None, "0"),
])
def test_format_number(value, expected):
    assert format_number(value) == expected


@pytest.mark.parametrize("seconds,text", [(161, "2:41"), (3725, "1:02:05"), (59, "0:59"), (0, "0:00"), (None, "0:00")])
def test_format_duration(seconds, text):
    assert format_duration(seconds) == text


@pytest.mark.parametrize("text,seconds", [("2:41", 161), ("1:02:05", 3725), ("45", 45), ("", 0), ("abc", 0)])
def test_parse_duration(text, seconds):
    assert parse_duration(text) == seconds


def test_chart_series():
    rows = chart_series([DailyViewPoint(date=date(2025, 5, 1), views=29_700)])
    assert rows == [{"date": "2025-05-01", "views": 29_700, "label": "29.7K"}]

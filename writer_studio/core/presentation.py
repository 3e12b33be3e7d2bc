"""Display helpers shared by the dashboard payloads and the CLI."""

from typing import Dict, List, Optional

from writer_studio.models.dtos import DailyViewPoint


def progress_bar_value(progress_to_target: float) -> float:
    """Clamp a progress percentage to the 0-100 range a progress bar can show."""
    return max(0.0, min(progress_to_target, 100.0))


def format_number(value: Optional[float]) -> str:
    """1_900_000 -> "1.9M", 29_700 -> "29.7K", 950 -> "950"."""
    if value is None:
        return "0"
    for threshold, suffix in ((1_000_000_000, "B"), (1_000_000, "M"), (1_000, "K")):
        if abs(value) >= threshold:
            return f"{value / threshold:.1f}".rstrip("0").rstrip(".") + suffix
    return f"{int(value)}"


def format_duration(seconds: Optional[int]) -> str:
    """161 -> "2:41", 3725 -> "1:02:05"."""
    if not seconds or seconds < 0:
        return "0:00"
    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def parse_duration(text: Optional[str]) -> int:
    """Inverse of ``format_duration``; also accepts bare seconds. Unparseable input gives 0."""
    if not text:
        return 0
    try:
        parts = [int(part) for part in str(text).strip().split(":")]
    except ValueError:
        return 0
    seconds = 0
    for part in parts:
        seconds = seconds * 60 + part
    return seconds


def chart_series(points: List[DailyViewPoint]) -> List[Dict[str, object]]:
    """Chart rows: ISO date, views, and a formatted label."""
    return [
        {"date": point.date.isoformat(), "views": point.views, "label": format_number(point.views)}
        for point in points
    ]

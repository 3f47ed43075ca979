"""Formatting helpers for command-line output."""

from datetime import datetime, timezone

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_size(size_bytes: int) -> str:
    """Format an object size for listings: 512B, 1.5KB, 20MB, 3.2GB."""
    if size_bytes < 1024:
        return f"{size_bytes}B"
    value = float(size_bytes)
    for unit in SIZE_UNITS[1:]:
        value /= 1024
        if value < 1024 or unit == SIZE_UNITS[-1]:
            break
    # One decimal only where it changes the reading.
    if value < 10 and value != int(value):
        return f"{value:.1f}{unit}"
    return f"{value:.0f}{unit}"


def format_time(timestamp: int) -> str:
    """Format epoch seconds as UTC; zero (unknown) prints as a dash."""
    if not timestamp:
        return "-"
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

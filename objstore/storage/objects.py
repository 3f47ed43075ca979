"""Object record returned by listings."""

from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True, slots=True)
class Object:
    """One stored blob as seen by a listing."""

    key: str
    size: int
    ctime: int
    mtime: int


def parse_timestamp(value: str | None) -> int:
    """Convert an RFC 3339 timestamp to epoch seconds, or 0 if it cannot be parsed."""
    if not value:
        return 0
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return 0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())

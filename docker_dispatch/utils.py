"""Utility functions for Docker dispatch.

Small parsing helpers shared by the context manager and the backend
clients.
"""

import re
from datetime import datetime, timezone

# Docker reports up to nanosecond precision; datetime accepts microseconds
_FRACTION_RE = re.compile(r"\.(\d+)")


def split_lines(text: str) -> list[str]:
    """Split a multi-line blob into trimmed, non-empty lines.

    Examples:
        >>> split_lines("a\\r\\n\\n  b  \\n")
        ['a', 'b']
    """
    return [line.strip() for line in text.splitlines() if line.strip()]


def to_epoch_ms(value: int | float | str | None) -> int:
    """Normalize an engine timestamp to epoch milliseconds.

    Engines report creation times either as epoch seconds or as ISO-8601
    strings with arbitrary fractional precision.

    Examples:
        >>> to_epoch_ms(1700000000)
        1700000000000
        >>> to_epoch_ms("2023-11-14T22:13:20.000Z")
        1700000000000
        >>> to_epoch_ms("2023-11-14T23:13:20.123456789+01:00")
        1700000000123
    """
    if value is None or value == "":
        return 0

    if isinstance(value, (int, float)):
        return int(value * 1000)

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    delta = parsed - datetime(1970, 1, 1, tzinfo=timezone.utc)
    return delta.days * 86_400_000 + delta.seconds * 1000 + delta.microseconds // 1000


def format_size(size_bytes: int) -> str:
    """Format bytes into human-readable string.

    Examples:
        >>> format_size(0)
        '0 B'
        >>> format_size(1536)
        '1.5 KB'
    """
    if size_bytes == 0:
        return "0 B"

    size = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size < 1024.0:
            if unit == "B":
                return f"{int(size)} {unit}"
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} PB"

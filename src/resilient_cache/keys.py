"""Cache key construction.

The cache never partitions keys itself: callers must give every distinct
parameter set its own key. make_key gives that a consistent shape::

    make_key("calendarEvents", "2024-01-01", None, "work")
    # 'calendarEvents:2024-01-01::work'
"""

from typing import Any

SEPARATOR = ":"


def make_key(namespace: str, *parts: Any) -> str:
    """Join a namespace and query parameters into one cache key.

    Args:
        namespace: Logical query name, e.g. "habits" or "calendarEvents"
        *parts: Parameter values; None becomes an empty segment

    Returns:
        The cache key
    """
    if not namespace:
        raise ValueError("namespace must not be empty")
    segments = [namespace]
    segments.extend("" if part is None else str(part) for part in parts)
    return SEPARATOR.join(segments)

"""UTC timestamp helper shared by the repositories."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_timestamp() -> str:
    """Return an RFC3339 UTC timestamp with microseconds and trailing 'Z'.

    Fixed-width output keeps lexical order equal to chronological order.
    """
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="microseconds")
        .replace("+00:00", "Z")
    )

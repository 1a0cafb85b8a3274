from __future__ import annotations

from datetime import datetime, timezone


def format_timestamp(value: int | None) -> str:
    if not value:
        return "n/a"
    dt = datetime.fromtimestamp(int(value), tz=timezone.utc)
    return dt.strftime("%Y-%m-%d %H:%M UTC")

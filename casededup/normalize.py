from datetime import date, datetime, timezone
from typing import Any, Optional


def normalize_name(name: str) -> str:
    # Case folding only; whitespace is significant for edit distance.
    return name.lower()


def coerce_datetime(value: Any) -> Optional[datetime]:
    """Accept datetime, date or ISO-8601 string; None stays None.

    Aware values are converted to UTC and returned naive, matching how
    timestamps are stored.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise TypeError(f"Cannot interpret {type(value).__name__} as a date")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed

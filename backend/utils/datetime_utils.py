from datetime import datetime, date, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_calendar_date(value) -> date:
    """Parse a date, datetime, `YYYY-MM-DD` or ISO-8601 datetime string.

    Aware datetimes are converted to UTC before the date is taken, so
    `2024-03-05T23:30:00-05:00` lands on 2024-03-06. Raises ValueError
    for anything else.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Expected a date string, got {type(value).__name__}")

    text = value.strip()
    if not text:
        raise ValueError("Date is empty")
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    # datetime.fromisoformat only accepts a trailing Z from 3.11 on
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def iso_or_none(value) -> str | None:
    return value.isoformat() if value is not None else None

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, the storage convention."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_today() -> date:
    return utc_now().date()


def to_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def utc_naive_to_aware(dt: datetime) -> datetime:
    return dt.replace(tzinfo=timezone.utc)

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Naive UTC timestamp, matching the naive DateTime columns in the store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

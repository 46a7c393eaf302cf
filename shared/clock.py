"""Time helpers. All calendar dates are UTC."""
import time
from datetime import datetime, timezone


def now_seconds() -> int:
    """Current Unix timestamp in whole seconds."""
    return int(time.time())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def today_utc() -> str:
    """Today's UTC date as YYYY-MM-DD."""
    return utcnow().strftime("%Y-%m-%d")


def format_timestamp(unix_seconds: int) -> str:
    return datetime.fromtimestamp(unix_seconds, tz=timezone.utc).isoformat()

# PATH: core/time.py
"""
Time utilities for XARB.

The daily trade window is keyed by UTC calendar date.
"""

from datetime import datetime, timezone
from typing import Optional


def now_utc() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """Get current UTC datetime as ISO string."""
    return now_utc().isoformat()


def utc_day_key(moment: Optional[datetime] = None) -> str:
    """
    Calendar day key "YYYY-MM-DD" in UTC.

    Naive datetimes are taken to be UTC already.
    """
    moment = moment or now_utc()
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%d")

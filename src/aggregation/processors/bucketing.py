"""
Time bucket derivation for chart records
"""
import numbers
from enum import Enum
from typing import Any, Optional, Tuple

import pandas as pd

from common.error_handlers import AggregationConfigError


class Granularity(str, Enum):
    """Calendar bucket sizes"""

    DAY = 'D'
    WEEK = 'W'
    MONTH = 'M'
    QUARTER = 'Q'
    YEAR = 'Y'

    @classmethod
    def coerce(cls, value: Any) -> 'Granularity':
        """Accept a Granularity, a code ("M") or a level name ("monthly")"""
        if isinstance(value, cls):
            return value

        text = str(value).strip()
        for member in cls:
            if text.upper() == member.value:
                return member

        by_level = {
            'daily': cls.DAY,
            'weekly': cls.WEEK,
            'monthly': cls.MONTH,
            'quarterly': cls.QUARTER,
            'yearly': cls.YEAR
        }
        if text.lower() in by_level:
            return by_level[text.lower()]

        raise AggregationConfigError(f"Unknown granularity: {value!r}")


def parse_timestamp(value: Any) -> Optional[pd.Timestamp]:
    """
    Parse a time-field value into a naive timestamp

    Returns None for missing or unparseable values. Timezone-aware values
    are converted to UTC first so every parsed value stays comparable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str) and not value.strip():
        return None

    try:
        if isinstance(value, numbers.Real):
            # Numeric time values are epoch milliseconds
            ts = pd.to_datetime(value, unit='ms', errors='coerce')
        else:
            ts = pd.to_datetime(value, errors='coerce')
    except (ValueError, TypeError, OverflowError):
        return None

    if not isinstance(ts, pd.Timestamp) or pd.isna(ts):
        return None

    if ts.tzinfo is not None:
        ts = ts.tz_convert('UTC').tz_localize(None)
    return ts


def bucket_start(ts: pd.Timestamp, granularity: Granularity) -> str:
    """ISO date of the first day of the bucket containing ts (W/M/Q/Y)"""
    if granularity == Granularity.WEEK:
        # weekday() is 0 for Monday, so Sunday goes back six days
        monday = ts - pd.Timedelta(days=ts.weekday())
        return monday.strftime('%Y-%m-%d')
    if granularity == Granularity.MONTH:
        return f"{ts.year:04d}-{ts.month:02d}-01"
    if granularity == Granularity.QUARTER:
        quarter_start_month = ((ts.month - 1) // 3) * 3 + 1
        return f"{ts.year:04d}-{quarter_start_month:02d}-01"
    if granularity == Granularity.YEAR:
        return f"{ts.year:04d}-01-01"
    return ts.strftime('%Y-%m-%d')


def derive_bucket(value: Any, granularity) -> Optional[Tuple[str, pd.Timestamp]]:
    """
    Derive the bucket label for a time-field value

    Args:
        value: Raw time-field value from a record
        granularity: Granularity or its code

    Returns:
        (bucket label, parsed timestamp), or None if the value is missing
        or unparseable
    """
    granularity = Granularity.coerce(granularity)
    ts = parse_timestamp(value)
    if ts is None:
        return None

    if granularity == Granularity.DAY:
        label = value if isinstance(value, str) else ts.strftime('%Y-%m-%d')
        return label, ts

    return bucket_start(ts, granularity), ts


def bucket_label(value: Any, granularity) -> Optional[str]:
    """Bucket label for a time-field value, None when it cannot be parsed"""
    bucket = derive_bucket(value, granularity)
    return bucket[0] if bucket else None

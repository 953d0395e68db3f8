"""
Chart summary helpers
"""
from typing import Any, Dict, List, Mapping, Optional, Sequence

from aggregation.processors.aggregators import to_number
from aggregation.processors.bucketing import parse_timestamp


def extract_date_range(records: Sequence[Mapping[str, Any]], time_field) -> Optional[str]:
    """"YYYY-MM-DD to YYYY-MM-DD" over the parseable dates of a time field"""
    if not records:
        return None

    date_field = time_field[0] if isinstance(time_field, (list, tuple)) and time_field else time_field
    if not date_field:
        return None

    dates = sorted(
        ts for ts in (parse_timestamp(record.get(date_field)) for record in records if isinstance(record, Mapping))
        if ts is not None
    )
    if not dates:
        return None

    return f"{dates[0].strftime('%Y-%m-%d')} to {dates[-1].strftime('%Y-%m-%d')}"


def _is_numeric(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value == value
    try:
        float(str(value).strip())
    except (TypeError, ValueError):
        return False
    return bool(str(value).strip())


def aggregate_by_batches(records: Sequence[Mapping[str, Any]], batch_size: int) -> List[Dict[str, Any]]:
    """
    Summarize rows without usable dates in fixed-size batches

    Each batch reports total, average, max and min for every key of its
    first row that holds numeric values.
    """
    if not records:
        return []
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    batches = []
    for start in range(0, len(records), batch_size):
        batch = records[start:start + batch_size]
        summary: Dict[str, Any] = {
            'batch': start // batch_size + 1,
            'data_points': len(batch)
        }
        batches.append(summary)

        batch = [row for row in batch if isinstance(row, Mapping)]
        if not batch:
            continue

        for key in batch[0].keys():
            values = [to_number(row.get(key)) for row in batch if _is_numeric(row.get(key))]
            if not values:
                continue
            total = sum(values)
            summary[f'{key}_total'] = total
            summary[f'{key}_avg'] = total / len(values)
            summary[f'{key}_max'] = max(values)
            summary[f'{key}_min'] = min(values)

    return batches

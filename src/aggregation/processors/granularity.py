"""
Aggregation level selection from data characteristics
"""
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from aggregation.processors.bucketing import parse_timestamp
from config.aggregation_config import AGGREGATION_STRATEGY

DATE_VALUE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}')
DATE_KEY_MARKERS = ('date', 'time', 'month')


@dataclass(frozen=True)
class AggregationPlan:
    """Which levels to pre-compute and which one to serve by default"""

    strategy: str
    levels: List[str]
    default_level: str


@dataclass
class DataCharacteristics:
    strategy: str
    data_points: int
    time_span: Optional[Dict[str, Any]] = None
    plan: Optional[AggregationPlan] = field(default=None, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        time_span = None
        if self.time_span:
            time_span = {
                'start': self.time_span['start'].isoformat(),
                'end': self.time_span['end'].isoformat(),
                'days': self.time_span['days']
            }
        return {
            'strategy': self.strategy,
            'dataPoints': self.data_points,
            'timeSpan': time_span
        }


def select_aggregation_plan(record_count: int) -> AggregationPlan:
    """
    Pick the aggregation strategy for a dataset size

    > 10,000 rows: yearly..daily, default monthly
    1,001-10,000 rows: yearly..weekly, default weekly
    otherwise: yearly, quarterly, monthly, default raw
    """
    for name in ('large', 'medium'):
        strategy = AGGREGATION_STRATEGY[name]
        if record_count > strategy['threshold']:
            return AggregationPlan(name, list(strategy['levels']), strategy['default_level'])

    small = AGGREGATION_STRATEGY['small']
    return AggregationPlan('small', list(small['levels']), small['default_level'])


def looks_like_date_field(key: str, value: Any) -> bool:
    """Name or value heuristic for time fields"""
    if any(marker in key for marker in DATE_KEY_MARKERS):
        return True
    return isinstance(value, str) and bool(DATE_VALUE_PATTERN.match(value))


def first_date_field(record: Mapping[str, Any]) -> Optional[str]:
    for key, value in record.items():
        if looks_like_date_field(key, value):
            return key
    return None


def analyze_data_characteristics(records: Sequence[Mapping[str, Any]]) -> DataCharacteristics:
    """
    Classify a dataset by size and measure the time span it covers

    Args:
        records: Raw chart rows

    Returns:
        DataCharacteristics with strategy, point count and time span
    """
    if not isinstance(records, (list, tuple)) or not records:
        return DataCharacteristics(strategy='small', data_points=0, time_span=None,
                                   plan=select_aggregation_plan(0))

    plan = select_aggregation_plan(len(records))

    dates = []
    for record in records:
        if not isinstance(record, Mapping):
            continue
        key = first_date_field(record)
        if key is None:
            continue
        ts = parse_timestamp(record[key])
        if ts is not None:
            dates.append(ts)

    time_span = None
    if len(dates) > 1:
        series = pd.Series(dates)
        start, end = series.min(), series.max()
        time_span = {
            'start': start,
            'end': end,
            'days': math.ceil((end - start) / pd.Timedelta(days=1))
        }

    return DataCharacteristics(strategy=plan.strategy, data_points=len(records),
                               time_span=time_span, plan=plan)

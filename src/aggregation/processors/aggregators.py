"""
Time-bucket aggregation of chart records
"""
import math
import numbers
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd
import structlog

from aggregation.processors.bucketing import Granularity, derive_bucket
from aggregation.processors.field_classifier import FieldClassifier, FieldStrategy

logger = structlog.get_logger(__name__)


def to_number(value: Any):
    """Coerce a record value to a number; anything non-numeric counts as 0"""
    if value is None:
        return 0
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, numbers.Real):
        number = float(value)
        return number if math.isfinite(number) else 0

    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return 0
    return number if math.isfinite(number) else 0


@dataclass
class BucketAccumulator:
    """Running state for one (time bucket, group) pair"""

    label: str
    group_value: Optional[str]
    first_seen: pd.Timestamp
    values: Dict[str, Any]
    count: int = 0
    ratio_sums: Dict[str, List[float]] = field(default_factory=dict)
    percent_sums: Dict[str, List[float]] = field(default_factory=dict)
    cumulative_seen: set = field(default_factory=set)


class TimeBucketAggregator:
    """Aggregate records into calendar buckets using per-field strategies"""

    def __init__(self,
                 time_field: str,
                 measure_fields: Sequence[str],
                 group_field: Optional[str] = None,
                 classifier: Optional[FieldClassifier] = None):
        self.time_field = time_field
        self.measure_fields = list(dict.fromkeys(
            f for f in measure_fields if f not in (time_field, group_field)
        ))
        self.group_field = group_field or None
        self.classifier = classifier or FieldClassifier()
        self.strategies = self.classifier.classify_all(self.measure_fields)

    def aggregate(self, records: Iterable[Mapping[str, Any]], granularity) -> List[Dict[str, Any]]:
        """
        Aggregate records at the given granularity

        Args:
            records: Raw rows, in any order
            granularity: Granularity or its code (D/W/M/Q/Y)

        Returns:
            One row per bucket, ordered by earliest contributing timestamp
            and then by group value
        """
        granularity = Granularity.coerce(granularity)

        buckets: Dict[str, BucketAccumulator] = {}
        total = 0
        skipped = 0

        for record in records or ():
            total += 1
            if not isinstance(record, Mapping):
                skipped += 1
                continue

            derived = derive_bucket(record.get(self.time_field), granularity)
            if derived is None:
                skipped += 1
                continue

            label, ts = derived
            key, group_value = label, None
            if self.group_field:
                group_value = self._group_value(record)
                key = f"{label}|{group_value}"

            bucket = buckets.get(key)
            if bucket is None:
                bucket = BucketAccumulator(
                    label=label,
                    group_value=group_value,
                    first_seen=ts,
                    values={f: 0 for f in self.measure_fields}
                )
                buckets[key] = bucket
            elif ts < bucket.first_seen:
                bucket.first_seen = ts

            self._accumulate(bucket, record)

        if skipped:
            logger.debug("Skipped records without a usable time value",
                         time_field=self.time_field, skipped=skipped)

        rows = [self._finalize(bucket) for bucket in self._ordered(buckets.values())]

        logger.debug("Aggregated records",
                     granularity=granularity.value,
                     input_records=total,
                     output_records=len(rows))
        return rows

    def _group_value(self, record: Mapping[str, Any]) -> str:
        value = record.get(self.group_field)
        return '' if value is None else str(value)

    def _accumulate(self, bucket: BucketAccumulator, record: Mapping[str, Any]):
        bucket.count += 1

        for name in self.measure_fields:
            strategy = self.strategies[name]

            if strategy == FieldStrategy.RATIO:
                ratio = self.classifier.ratio_for(name)
                numerator = record.get(ratio.numerator_field)
                denominator = record.get(ratio.denominator_field)
                if numerator is None and denominator is None:
                    continue
                sums = bucket.ratio_sums.setdefault(name, [0, 0])
                sums[0] += to_number(numerator)
                sums[1] += to_number(denominator)
                continue

            raw = record.get(name)
            if raw is None:
                continue
            value = to_number(raw)

            if strategy == FieldStrategy.CUMULATIVE:
                if name in bucket.cumulative_seen:
                    bucket.values[name] = max(bucket.values[name], value)
                else:
                    bucket.values[name] = value
                    bucket.cumulative_seen.add(name)
            elif strategy == FieldStrategy.PERCENTAGE:
                sums = bucket.percent_sums.setdefault(name, [0, 0])
                sums[0] += value
                sums[1] += 1
            else:
                bucket.values[name] += value

    def _ordered(self, buckets: Iterable[BucketAccumulator]) -> List[BucketAccumulator]:
        if self.group_field:
            return sorted(buckets, key=lambda b: (b.first_seen, b.group_value))
        return sorted(buckets, key=lambda b: b.first_seen)

    def _finalize(self, bucket: BucketAccumulator) -> Dict[str, Any]:
        row: Dict[str, Any] = {self.time_field: bucket.label}
        if self.group_field:
            row[self.group_field] = bucket.group_value

        for name in self.measure_fields:
            value = bucket.values[name]

            if name in bucket.ratio_sums:
                numerator, denominator = bucket.ratio_sums[name]
                if denominator:
                    value = round(numerator / denominator * 100, 2)
            elif name in bucket.percent_sums:
                total, count = bucket.percent_sums[name]
                if count:
                    value = round(total / count, 2)

            row[name] = value

        return row


def aggregate(records: Iterable[Mapping[str, Any]],
              granularity,
              time_field: str,
              measure_fields: Sequence[str],
              group_field: Optional[str] = None,
              percentage_fields: Iterable[Any] = (),
              field_units: Optional[Mapping[str, str]] = None,
              overrides: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
    """
    Collapse time-stamped records into calendar buckets

    Records whose time value is missing or unparseable are skipped. The
    engine never raises for data-shape problems; only invalid configuration
    (unknown granularity, bad overrides) raises AggregationConfigError.

    Args:
        records: Raw rows (flat key -> value mappings)
        granularity: One of D, W, M, Q, Y
        time_field: Name of the date/timestamp field
        measure_fields: Numeric fields to aggregate
        group_field: Optional categorical field bucketed separately
        percentage_fields: Ratio declarations {field, numerator_field, denominator_field}
        field_units: Declared unit per field ("%" marks standalone percentages)
        overrides: Explicit field -> strategy table, wins over name rules

    Returns:
        Aggregated rows restricted to time, group and measure fields
    """
    classifier = FieldClassifier(percentage_fields, field_units, overrides)
    aggregator = TimeBucketAggregator(time_field, measure_fields, group_field, classifier)
    return aggregator.aggregate(records, granularity)

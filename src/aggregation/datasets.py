"""
Multi-level aggregated datasets for a single chart
"""
import json
from typing import Any, Dict, List, Mapping, Optional

import structlog

from aggregation.mapping import extract_data_mapping
from aggregation.processors.aggregators import TimeBucketAggregator
from aggregation.processors.field_classifier import FieldClassifier
from aggregation.processors.granularity import analyze_data_characteristics
from common.error_handlers import AggregationConfigError
from config.aggregation_config import AGGREGATION_LEVELS

logger = structlog.get_logger(__name__)


def _reduction(original: int, reduced: int) -> str:
    if not original:
        return "0.0%"
    return f"{(original - reduced) / original * 100:.1f}%"


def compression_stats(original: List[Dict[str, Any]],
                      datasets: Mapping[str, List[Dict[str, Any]]]) -> Dict[str, Dict[str, Any]]:
    """Point and serialized-size reduction of every level against the raw rows"""
    original_size = len(json.dumps(original, default=str))
    stats = {}
    for level, rows in datasets.items():
        stats[level] = {
            'originalPoints': len(original),
            'aggregatedPoints': len(rows),
            'dataSizeReduction': _reduction(original_size, len(json.dumps(rows, default=str))),
            'pointReduction': _reduction(len(original), len(rows))
        }
    return stats


def create_aggregated_datasets(records: List[Dict[str, Any]],
                               chart_config: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Pre-compute every aggregation level the data size calls for

    Args:
        records: Raw chart rows
        chart_config: Chart definition (dataMapping, isStacked, additionalOptions)

    Returns:
        {"datasets": {level: rows}, "metadata": {...}}; metadata is None
        when no data mapping could be derived
    """
    analysis = analyze_data_characteristics(records)

    try:
        mapping = extract_data_mapping(chart_config, records)
    except AggregationConfigError as e:
        logger.error("Invalid chart configuration, skipping aggregation", error=str(e))
        mapping = None

    if mapping is None:
        logger.warning("Could not extract data mapping, skipping aggregation")
        return {'datasets': {'raw': records}, 'metadata': None}

    plan = analysis.plan
    logger.info("Data analysis for chart",
                data_points=analysis.data_points,
                strategy=analysis.strategy,
                time_span_days=analysis.time_span['days'] if analysis.time_span else None,
                aggregation_levels=plan.levels)

    aggregator = TimeBucketAggregator(
        mapping.time_field,
        mapping.measure_fields,
        mapping.group_field,
        FieldClassifier(mapping.percentage_fields, mapping.field_units)
    )

    datasets = {'raw': records}
    for level in plan.levels:
        time_period = AGGREGATION_LEVELS[level]['time_period']
        if not time_period:
            continue

        try:
            rows = aggregator.aggregate(records, time_period)
        except AggregationConfigError as e:
            logger.error("Failed to create aggregation level", level=level, error=str(e))
            continue

        datasets[level] = rows
        logger.info("Created aggregation level",
                    level=level,
                    points=len(rows),
                    reduction=_reduction(len(records), len(rows)))

    return {
        'datasets': datasets,
        'metadata': {
            'analysis': analysis.to_dict(),
            'strategy': analysis.strategy,
            'defaultLevel': plan.default_level,
            'availableLevels': list(datasets.keys()),
            'dataMapping': mapping.to_dict()
        }
    }

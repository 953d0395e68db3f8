"""
Chart configuration to aggregation inputs
"""
from dataclasses import asdict, dataclass, field
from numbers import Number
from typing import Any, Dict, List, Mapping, Optional, Sequence

from aggregation.processors.field_classifier import PercentageField
from aggregation.processors.granularity import looks_like_date_field


@dataclass
class DataMapping:
    """Narrow view of a chart config used by the aggregation engine"""

    time_field: str
    measure_fields: List[str]
    group_field: Optional[str] = None
    field_units: Dict[str, str] = field(default_factory=dict)
    percentage_fields: List[PercentageField] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _field_name(axis_item: Any) -> Optional[str]:
    if isinstance(axis_item, Mapping):
        return axis_item.get('field')
    if isinstance(axis_item, str):
        return axis_item
    return None


def extract_field_units(data_mapping: Mapping[str, Any]) -> Dict[str, str]:
    """Units declared on the y axis: yAxisUnit for a single field, or {field, unit} items"""
    units = {}
    y_axis = data_mapping.get('yAxis')

    if isinstance(y_axis, str):
        if data_mapping.get('yAxisUnit'):
            units[y_axis] = data_mapping['yAxisUnit']
    elif isinstance(y_axis, Mapping):
        if y_axis.get('field') and y_axis.get('unit'):
            units[y_axis['field']] = y_axis['unit']
    elif isinstance(y_axis, list):
        for item in y_axis:
            if isinstance(item, Mapping) and item.get('field') and item.get('unit'):
                units[item['field']] = item['unit']

    return units


def extract_percentage_fields(chart_config: Mapping[str, Any]) -> List[PercentageField]:
    options = chart_config.get('additionalOptions') or {}
    return [PercentageField.from_config(item) for item in options.get('percentageFields') or []]


def _detect_time_field(sample: Mapping[str, Any]) -> Optional[str]:
    for key, value in sample.items():
        if looks_like_date_field(key, value):
            return key
    return next(iter(sample), None)


def _detect_measure_fields(sample: Mapping[str, Any], time_field: str) -> List[str]:
    return [
        key for key, value in sample.items()
        if key != time_field and isinstance(value, Number) and not isinstance(value, bool)
    ]


def extract_data_mapping(chart_config: Optional[Mapping[str, Any]],
                         records: Sequence[Mapping[str, Any]]) -> Optional[DataMapping]:
    """
    Build aggregation inputs from a chart configuration

    Args:
        chart_config: Chart definition with a dataMapping block
        records: Chart rows, the first one is used for auto-detection

    Returns:
        DataMapping, or None when the config has no dataMapping or there
        are no rows
    """
    if not chart_config or not chart_config.get('dataMapping'):
        return None
    if not isinstance(records, (list, tuple)) or not records:
        return None

    data_mapping = chart_config['dataMapping']
    sample = records[0] if isinstance(records[0], Mapping) else {}

    x_axis = data_mapping.get('xAxis')
    time_field = x_axis[0] if isinstance(x_axis, list) and x_axis else x_axis
    if not time_field or not isinstance(time_field, str):
        time_field = _detect_time_field(sample)
    if not time_field:
        return None

    y_axis = data_mapping.get('yAxis')
    if isinstance(y_axis, list):
        measure_fields = [name for name in (_field_name(item) for item in y_axis) if name]
    else:
        name = _field_name(y_axis)
        measure_fields = [name] if name else []

    if not measure_fields:
        measure_fields = _detect_measure_fields(sample, time_field)

    # Groups are only kept apart for stacked charts
    group_field = None
    if chart_config.get('isStacked'):
        group_field = _field_name(data_mapping.get('groupBy'))

    return DataMapping(
        time_field=time_field,
        measure_fields=measure_fields,
        group_field=group_field,
        field_units=extract_field_units(data_mapping),
        percentage_fields=extract_percentage_fields(chart_config)
    )

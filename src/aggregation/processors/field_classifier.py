"""
Field aggregation classification
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional

from common.error_handlers import AggregationConfigError
from config.aggregation_config import (
    CUMULATIVE_MARKERS,
    PERCENT_UNIT,
    SUPPLY_FLOW_EXCEPTIONS,
    SUPPLY_MARKER,
)


class FieldStrategy(str, Enum):
    """How a measure field is combined inside a bucket"""

    CUMULATIVE = 'cumulative'
    RATIO = 'ratio'
    PERCENTAGE = 'percentage'
    SUM = 'sum'


@dataclass(frozen=True)
class PercentageField:
    """A percentage computed from two other fields of the same record"""

    field: str
    numerator_field: str
    denominator_field: str

    @classmethod
    def from_config(cls, config: Any) -> 'PercentageField':
        """Build from a PercentageField or a chart-config dict (snake or camel case)"""
        if isinstance(config, cls):
            return config
        try:
            declaration = cls(
                field=config['field'],
                numerator_field=config.get('numerator_field', config.get('numeratorField')),
                denominator_field=config.get('denominator_field', config.get('denominatorField'))
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise AggregationConfigError(f"Invalid percentage field declaration: {config!r}") from e

        if not declaration.numerator_field or not declaration.denominator_field:
            raise AggregationConfigError(f"Percentage field '{declaration.field}' needs numerator and denominator")
        return declaration


def is_cumulative_field(field_name: str) -> bool:
    """Default name rule for running totals and point-in-time snapshots"""
    name = field_name.lower()

    if SUPPLY_MARKER in name and not any(flow in name for flow in SUPPLY_FLOW_EXCEPTIONS):
        return True

    return any(marker in name for marker in CUMULATIVE_MARKERS)


class FieldClassifier:
    """
    Decide the aggregation strategy of each measure field

    Explicit overrides win, then the cumulative name rule, then a ratio
    declaration, then a "%" unit, then plain summation.
    """

    def __init__(self,
                 percentage_fields: Iterable[Any] = (),
                 field_units: Optional[Mapping[str, str]] = None,
                 overrides: Optional[Mapping[str, Any]] = None):
        self.percentage_fields: Dict[str, PercentageField] = {}
        for declaration in percentage_fields or ():
            percentage_field = PercentageField.from_config(declaration)
            self.percentage_fields[percentage_field.field] = percentage_field

        self.field_units = dict(field_units or {})

        self.overrides: Dict[str, FieldStrategy] = {}
        for field, strategy in (overrides or {}).items():
            try:
                strategy = FieldStrategy(strategy)
            except ValueError as e:
                raise AggregationConfigError(f"Unknown strategy for '{field}': {strategy!r}") from e

            if strategy == FieldStrategy.RATIO and field not in self.percentage_fields:
                raise AggregationConfigError(
                    f"Field '{field}' overridden to ratio without a percentage declaration"
                )
            self.overrides[field] = strategy

    def classify(self, field: str) -> FieldStrategy:
        if field in self.overrides:
            return self.overrides[field]
        if is_cumulative_field(field):
            return FieldStrategy.CUMULATIVE
        if field in self.percentage_fields:
            return FieldStrategy.RATIO
        if self.field_units.get(field) == PERCENT_UNIT:
            return FieldStrategy.PERCENTAGE
        return FieldStrategy.SUM

    def classify_all(self, fields: Iterable[str]) -> Dict[str, FieldStrategy]:
        return {field: self.classify(field) for field in fields}

    def ratio_for(self, field: str) -> Optional[PercentageField]:
        return self.percentage_fields.get(field)

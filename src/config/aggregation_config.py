"""
Aggregation levels, selection thresholds and field-name rules
"""
import os
from typing import Dict, Any


# Level name -> file suffix and granularity code. "raw" has no code.
AGGREGATION_LEVELS = {
    'raw': {'suffix': '', 'time_period': None, 'description': 'Raw data (no aggregation)'},
    'daily': {'suffix': '_daily', 'time_period': 'D', 'description': 'Daily aggregated data'},
    'weekly': {'suffix': '_weekly', 'time_period': 'W', 'description': 'Weekly aggregated data'},
    'monthly': {'suffix': '_monthly', 'time_period': 'M', 'description': 'Monthly aggregated data'},
    'quarterly': {'suffix': '_quarterly', 'time_period': 'Q', 'description': 'Quarterly aggregated data'},
    'yearly': {'suffix': '_yearly', 'time_period': 'Y', 'description': 'Yearly aggregated data'}
}

# Checked largest first; a count must be strictly above the threshold
AGGREGATION_STRATEGY = {
    'large': {
        'threshold': 10000,
        'levels': ['yearly', 'quarterly', 'monthly', 'weekly', 'daily'],
        'default_level': 'monthly'
    },
    'medium': {
        'threshold': 1000,
        'levels': ['yearly', 'quarterly', 'monthly', 'weekly'],
        'default_level': 'weekly'
    },
    'small': {
        'threshold': 0,
        'levels': ['yearly', 'quarterly', 'monthly'],
        'default_level': 'raw'
    }
}

# Substrings marking running totals / snapshots (bucketed by max)
CUMULATIVE_MARKERS = ('cumulative', 'total', 'marketcap', 'market_cap')
SUPPLY_MARKER = 'supply'
# A "supply" field naming any of these is a flow and is summed
SUPPLY_FLOW_EXCEPTIONS = ('revenue', 'volume', 'fees')

PERCENT_UNIT = '%'


class OptimizerConfig:
    """Chart data optimizer settings"""

    def __init__(self):
        self.environment = os.getenv('ENVIRONMENT', 'dev')

        self.paths = {
            'input_dir': os.getenv('CHART_DATA_DIR', './'),
            'output_dir': os.getenv('AGGREGATED_DIR', './aggregated/'),
            'configs_dir': os.getenv('CHART_CONFIGS_DIR', '../chart-configs/')
        }

        self.summary_file = '_optimization_summary.json'

    def get_processing_config(self) -> Dict[str, Any]:
        """Get processing configuration"""
        return {
            'gzip_level': int(os.getenv('GZIP_LEVEL', '9')),
            'summary_batch_size': int(os.getenv('SUMMARY_BATCH_SIZE', '30')),
            'write_plain_json': os.getenv('WRITE_PLAIN_JSON', 'true').lower() == 'true'
        }

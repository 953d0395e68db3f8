"""
Shared fixtures for the aggregation and optimizer tests.
"""

import sys
from datetime import date, timedelta
from pathlib import Path

import pytest

# Ensure src/ is importable without an install
src_root = Path(__file__).parent.parent / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))


@pytest.fixture()
def daily_records():
    """90 daily rows from 2024-01-01: volume 1 per day, total_supply = day index."""
    start = date(2024, 1, 1)
    return [
        {
            "date": (start + timedelta(days=i)).isoformat(),
            "volume": 1,
            "total_supply": i,
        }
        for i in range(90)
    ]


@pytest.fixture()
def chart_config():
    return {
        "id": "dex-volume",
        "isStacked": False,
        "dataMapping": {
            "xAxis": "date",
            "yAxis": [{"field": "volume", "unit": "$"}, {"field": "total_supply"}],
        },
    }

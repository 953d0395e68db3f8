"""
Tests for the chart data optimizer and its local / S3 stores.

The S3 client is replaced by a MagicMock; local stores run against tmp_path.
"""

import gzip
import json
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from common.error_handlers import ChartDataError
from common.s3_utils import S3Utils
from optimizer.app import ChartDataOptimizer, main
from optimizer.storage.chart_store import ChartStore, S3ChartStore, is_chart_data_file


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def payload(daily_records):
    return {
        "pageId": "overview",
        "charts": [
            {"chartId": "dex-volume", "success": True, "data": daily_records},
            {"chartId": "broken", "success": False, "error": "upstream timeout"},
            {"chartId": "validators", "success": True, "data": [{"name": "v1", "stake": 5}, {"name": "v2", "stake": 7}]},
        ],
    }


@pytest.fixture()
def local_store(tmp_path, payload, chart_config):
    input_dir = tmp_path / "chart-data"
    configs_dir = tmp_path / "chart-configs"
    input_dir.mkdir()
    configs_dir.mkdir()

    (input_dir / "overview.json.gz").write_bytes(gzip.compress(json.dumps(payload).encode("utf-8")))
    (input_dir / "_optimization_summary.json").write_text("{}")
    (input_dir / "notes.txt").write_text("not chart data")
    (configs_dir / "overview.json").write_text(json.dumps({"charts": [chart_config]}))

    return ChartStore(str(input_dir), str(input_dir / "aggregated"), str(configs_dir))


@pytest.fixture()
def optimizer(local_store):
    return ChartDataOptimizer(local_store, logger=MagicMock())


def _client_error(code, operation="HeadObject"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


# ---------------------------------------------------------------------------
# Payload optimization
# ---------------------------------------------------------------------------


def test_optimize_payload(optimizer, payload, daily_records):
    optimized = optimizer.optimize_payload(payload)
    chart, failed, unmapped = optimized["charts"]

    assert optimized["aggregationOptimized"] is True
    assert optimized["totalOriginalPoints"] == 92
    assert optimized["totalOptimizedPoints"] == 92

    assert chart["originalDataLength"] == 90
    assert chart["data"] == daily_records
    assert set(chart["aggregatedData"]) == {"raw", "yearly", "quarterly", "monthly"}
    assert chart["aggregationMetadata"]["defaultLevel"] == "raw"
    assert chart["compressionStats"]["monthly"]["aggregatedPoints"] == 3
    assert chart["dateRange"] == "2024-01-01 to 2024-03-30"

    assert failed == payload["charts"][1]

    # No config for this chart: raw data only, summarized in batches
    assert unmapped["aggregationMetadata"] is None
    assert unmapped["batchSummary"][0]["stake_total"] == 12


def test_default_level_replaces_data(optimizer, chart_config):
    records = [{"date": f"2024-01-{(i % 28) + 1:02d}", "volume": 1, "total_supply": i} for i in range(1500)]
    optimized = optimizer.optimize_payload(
        {"pageId": "overview", "charts": [{"chartId": "dex-volume", "success": True, "data": records}]}
    )
    chart = optimized["charts"][0]
    assert chart["data"] == chart["aggregatedData"]["weekly"]
    assert optimized["totalOptimizedPoints"] == len(chart["data"])


def test_payload_without_charts(optimizer):
    with pytest.raises(ChartDataError):
        optimizer.optimize_payload({"pageId": "overview"})


def test_chart_configs_are_loaded_once_per_page(payload):
    store = MagicMock()
    store.load_chart_configs.return_value = None
    optimizer = ChartDataOptimizer(store, logger=MagicMock())

    optimizer.optimize_payload(payload)
    store.load_chart_configs.assert_called_once_with("overview")


# ---------------------------------------------------------------------------
# Local store end to end
# ---------------------------------------------------------------------------


def test_optimize_all_local(optimizer, local_store):
    summary = optimizer.optimize_all()

    assert summary["totalFiles"] == 1
    assert summary["failedFiles"] == []
    assert summary["results"][0]["file"] == "overview.json"

    output_dir = local_store.output_dir
    plain = json.loads((output_dir / "overview.json").read_text())
    compressed = json.loads(gzip.decompress((output_dir / "overview.json.gz").read_bytes()))
    assert plain == compressed
    assert plain["charts"][0]["aggregatedData"]["monthly"][0] == {
        "date": "2024-01-01",
        "volume": 31,
        "total_supply": 30,
    }

    report = json.loads((output_dir / "_optimization_summary.json").read_text())
    assert report["totalFiles"] == 1


def test_bad_file_is_reported_and_skipped(optimizer, local_store):
    (local_store.input_dir / "broken.json").write_text("not json")

    summary = optimizer.optimize_all()

    assert summary["totalFiles"] == 1
    assert [f["file"] for f in summary["failedFiles"]] == ["broken.json"]


def test_missing_input_directory(tmp_path):
    store = ChartStore(str(tmp_path / "missing"), str(tmp_path / "out"), str(tmp_path))
    with pytest.raises(ChartDataError):
        store.list_chart_files()


def test_main_local(local_store, capsys):
    exit_code = main([
        "--input", str(local_store.input_dir),
        "--output", str(local_store.output_dir),
        "--configs", str(local_store.configs_dir),
    ])

    assert exit_code == 0
    assert (local_store.output_dir / "overview.json.gz").exists()
    assert '"totalFiles": 1' in capsys.readouterr().out


def test_main_missing_input(tmp_path, capsys):
    exit_code = main(["--input", str(tmp_path / "missing"), "--output", str(tmp_path / "out")])

    assert exit_code == 1
    output = json.loads(capsys.readouterr().out)
    assert output["success"] is False
    assert output["error"]["type"] == "ChartDataError"


@pytest.mark.parametrize(
    "name, expected",
    [
        ("overview.json", True),
        ("overview.json.gz", True),
        ("_optimization_summary.json", False),
        ("aggregated_overview.json", False),
        ("overview.csv", False),
    ],
)
def test_is_chart_data_file(name, expected):
    assert is_chart_data_file(name) is expected


# ---------------------------------------------------------------------------
# S3 store
# ---------------------------------------------------------------------------


@pytest.fixture()
def s3_client(payload):
    client = MagicMock()
    client.get_paginator.return_value.paginate.return_value = [
        {
            "Contents": [
                {"Key": "chart-data/overview.json"},
                {"Key": "chart-data/_optimization_summary.json"},
                {"Key": "chart-data/aggregated/overview.json"},
                {"Key": "chart-data/"},
            ]
        }
    ]
    body = MagicMock()
    body.read.return_value = json.dumps(payload).encode("utf-8")
    client.get_object.return_value = {"Body": body}
    client.head_object.side_effect = _client_error("404")
    return client


@pytest.fixture()
def s3_store(s3_client):
    return S3ChartStore(
        bucket="charts",
        input_prefix="chart-data/",
        output_prefix="chart-data/aggregated/",
        configs_prefix="chart-configs/",
        s3_utils=S3Utils(s3_client),
    )


def test_s3_list_only_direct_chart_files(s3_store):
    assert s3_store.list_chart_files() == ["overview.json"]


def test_s3_read_and_write(s3_store, s3_client, payload):
    data, size = s3_store.read_chart_file("overview.json")
    assert data == payload
    assert size == len(json.dumps(payload).encode("utf-8"))
    s3_client.get_object.assert_called_once_with(Bucket="charts", Key="chart-data/overview.json")

    s3_store.write_optimized("overview.json", {"charts": []})
    keys = [call.kwargs["Key"] for call in s3_client.put_object.call_args_list]
    assert keys == ["chart-data/aggregated/overview.json", "chart-data/aggregated/overview.json.gz"]
    assert s3_client.put_object.call_args_list[1].kwargs["ContentEncoding"] == "gzip"


def test_s3_missing_config_is_none(s3_store):
    assert s3_store.load_chart_configs("overview") is None


def test_s3_optimize_all(s3_store, s3_client):
    summary = ChartDataOptimizer(s3_store, logger=MagicMock()).optimize_all()

    assert summary["totalFiles"] == 1
    written = [call.kwargs["Key"] for call in s3_client.put_object.call_args_list]
    assert "chart-data/aggregated/_optimization_summary.json" in written


def test_s3_errors_are_wrapped():
    client = MagicMock()
    client.get_object.side_effect = _client_error("AccessDenied", "GetObject")
    with pytest.raises(ChartDataError):
        S3Utils(client).get_object_bytes("charts", "chart-data/overview.json")


def test_s3_head_errors_other_than_missing_raise():
    client = MagicMock()
    client.head_object.side_effect = _client_error("403")
    with pytest.raises(ChartDataError):
        S3Utils(client).object_exists("charts", "chart-configs/overview.json")

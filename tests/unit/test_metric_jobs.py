# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Unit tests for static and custom namespace metric collection."""

from datetime import datetime, timedelta, timezone

import pytest

from cloudwatch_scraper.clients.aws_client import AWSAPIError
from cloudwatch_scraper.models.job import CustomNamespaceJob, Dimension, MetricConfig, StaticJob
from cloudwatch_scraper.models.metric import CloudwatchData
from cloudwatch_scraper.services.metric_jobs import (
    fetch_metric_data,
    has_required_dimensions,
    query_window,
    run_custom_namespace_job,
    run_static_job,
)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _request(name: str, config: MetricConfig, statistic: str = "Average"):
    data = CloudwatchData(
        metric_name=name,
        namespace="AWS/EC2",
        dimensions=[Dimension(name="InstanceId", value=name)],
        statistic=statistic,
        period=config.period,
    )
    return data, config


def _echo_results(queries, start_time, end_time):
    """GetMetricData results returning one value per query (its index)."""
    return [
        {"Id": q["Id"], "Values": [float(i), -1.0], "Timestamps": [NOW, NOW - timedelta(minutes=5)]}
        for i, q in enumerate(queries)
    ]


# =============================================================================
# Helpers
# =============================================================================

def test_query_window_honours_length_and_delay():
    config = MetricConfig(name="m", statistics=["Sum"], length=600, delay=120)
    start, end = query_window(config, NOW)
    assert end == NOW - timedelta(seconds=120)
    assert start == end - timedelta(seconds=600)


def test_has_required_dimensions():
    metric = {"Dimensions": [{"Name": "QueueName", "Value": "q"}, {"Name": "Env", "Value": "p"}]}
    assert has_required_dimensions(metric, []) is True
    assert has_required_dimensions(metric, ["QueueName"]) is True
    assert has_required_dimensions(metric, ["QueueName", "Missing"]) is False
    assert has_required_dimensions({}, ["QueueName"]) is False


# =============================================================================
# GetMetricData batching
# =============================================================================

@pytest.mark.asyncio
async def test_requests_batched_by_metrics_per_query(unit_logger, mock_cloudwatch_client):
    config = MetricConfig(name="CPUUtilization", statistics=["Average"])
    requests = [_request(f"i-{i}", config) for i in range(5)]
    mock_cloudwatch_client.get_metric_data.side_effect = _echo_results

    data = await fetch_metric_data(unit_logger, mock_cloudwatch_client, requests, metrics_per_query=2)

    batch_sizes = [len(c.args[0]) for c in mock_cloudwatch_client.get_metric_data.await_args_list]
    assert batch_sizes == [2, 2, 1]
    assert [d.value for d in data] == [0.0, 1.0, 0.0, 1.0, 0.0]


@pytest.mark.asyncio
async def test_query_shape(unit_logger, mock_cloudwatch_client):
    config = MetricConfig(name="CPUUtilization", statistics=["Maximum"], period=60)
    mock_cloudwatch_client.get_metric_data.return_value = []

    await fetch_metric_data(
        unit_logger, mock_cloudwatch_client, [_request("i-1", config, "Maximum")], metrics_per_query=500
    )

    queries = mock_cloudwatch_client.get_metric_data.await_args.args[0]
    assert queries == [{
        "Id": "id_0",
        "MetricStat": {
            "Metric": {
                "Namespace": "AWS/EC2",
                "MetricName": "i-1",
                "Dimensions": [{"Name": "InstanceId", "Value": "i-1"}],
            },
            "Period": 60,
            "Stat": "Maximum",
        },
        "ReturnData": True,
    }]


@pytest.mark.asyncio
async def test_requests_grouped_by_window(unit_logger, mock_cloudwatch_client):
    short = MetricConfig(name="a", statistics=["Sum"], length=300)
    long = MetricConfig(name="b", statistics=["Sum"], length=3600)
    mock_cloudwatch_client.get_metric_data.side_effect = _echo_results

    await fetch_metric_data(
        unit_logger,
        mock_cloudwatch_client,
        [_request("a1", short), _request("b1", long), _request("a2", short)],
        metrics_per_query=500,
    )

    calls = mock_cloudwatch_client.get_metric_data.await_args_list
    assert len(calls) == 2
    windows = sorted(c.args[2] - c.args[1] for c in calls)
    assert windows == [timedelta(seconds=300), timedelta(seconds=3600)]


@pytest.mark.asyncio
async def test_missing_values_and_timestamps(unit_logger, mock_cloudwatch_client):
    plain = MetricConfig(name="a", statistics=["Sum"])
    zero = MetricConfig(name="b", statistics=["Sum"], nil_to_zero=True)
    stamped = MetricConfig(name="c", statistics=["Sum"], add_cloudwatch_timestamp=True)
    mock_cloudwatch_client.get_metric_data.return_value = [
        {"Id": "id_0", "Values": [], "Timestamps": []},
        {"Id": "id_2", "Values": [7.5], "Timestamps": [NOW]},
    ]

    data = await fetch_metric_data(
        unit_logger,
        mock_cloudwatch_client,
        [_request("a", plain), _request("b", zero), _request("c", stamped)],
        metrics_per_query=500,
    )

    assert [(d.value, d.timestamp) for d in data] == [(None, None), (0.0, None), (7.5, NOW)]


@pytest.mark.asyncio
async def test_first_result_per_id_wins(unit_logger, mock_cloudwatch_client):
    config = MetricConfig(name="a", statistics=["Sum"])
    mock_cloudwatch_client.get_metric_data.return_value = [
        {"Id": "id_0", "Values": [3.0], "Timestamps": [NOW]},
        {"Id": "id_0", "Values": [1.0], "Timestamps": [NOW - timedelta(hours=1)]},
    ]

    data = await fetch_metric_data(unit_logger, mock_cloudwatch_client, [_request("a", config)], 500)

    assert data[0].value == 3.0


@pytest.mark.asyncio
async def test_failed_batch_is_dropped(unit_logger, mock_cloudwatch_client):
    config = MetricConfig(name="a", statistics=["Sum"])
    requests = [_request(f"r{i}", config) for i in range(4)]
    calls = 0

    async def get_metric_data(queries, start_time, end_time):
        nonlocal calls
        calls += 1
        if calls == 1:
            raise AWSAPIError("InternalError")
        return _echo_results(queries, start_time, end_time)

    mock_cloudwatch_client.get_metric_data.side_effect = get_metric_data

    data = await fetch_metric_data(unit_logger, mock_cloudwatch_client, requests, metrics_per_query=2)

    assert [d.metric_name for d in data] == ["r2", "r3"]


# =============================================================================
# Static jobs
# =============================================================================

@pytest.mark.asyncio
async def test_static_job_uses_latest_datapoint(unit_logger, mock_cloudwatch_client):
    job = StaticJob(
        name="billing",
        namespace="AWS/Billing",
        regions=["us-east-1"],
        dimensions=[Dimension(name="Currency", value="USD")],
        metrics=[MetricConfig(name="EstimatedCharges", statistics=["Maximum"], add_cloudwatch_timestamp=True)],
    )
    mock_cloudwatch_client.get_metric_statistics.return_value = [
        {"Timestamp": NOW - timedelta(hours=6), "Maximum": 10.0},
        {"Timestamp": NOW, "Maximum": 12.5},
    ]

    data = await run_static_job(unit_logger, job, mock_cloudwatch_client)

    assert len(data) == 1
    assert data[0].value == 12.5
    assert data[0].timestamp == NOW
    assert data[0].resource_name == "billing"
    assert data[0].dimensions == [Dimension(name="Currency", value="USD")]

    kwargs = mock_cloudwatch_client.get_metric_statistics.await_args.kwargs
    assert kwargs["namespace"] == "AWS/Billing"
    assert kwargs["dimensions"] == [{"Name": "Currency", "Value": "USD"}]
    assert kwargs["statistics"] == ["Maximum"]
    assert kwargs["extended_statistics"] is None


@pytest.mark.asyncio
async def test_static_job_splits_extended_statistics(unit_logger, mock_cloudwatch_client):
    job = StaticJob(
        name="latency",
        namespace="MyApp",
        regions=["us-east-1"],
        metrics=[MetricConfig(name="Latency", statistics=["Average", "p99"])],
    )

    async def get_metric_statistics(**kwargs):
        if kwargs["statistics"]:
            return [{"Timestamp": NOW, "Average": 20.0}]
        return [{"Timestamp": NOW, "ExtendedStatistics": {"p99": 95.0}}]

    mock_cloudwatch_client.get_metric_statistics.side_effect = get_metric_statistics

    data = await run_static_job(unit_logger, job, mock_cloudwatch_client)

    assert {d.statistic: d.value for d in data} == {"Average": 20.0, "p99": 95.0}
    assert mock_cloudwatch_client.get_metric_statistics.await_count == 2


@pytest.mark.asyncio
async def test_static_job_nil_to_zero_and_errors(unit_logger, mock_cloudwatch_client):
    job = StaticJob(
        name="s",
        namespace="MyApp",
        regions=["us-east-1"],
        metrics=[
            MetricConfig(name="Broken", statistics=["Sum"]),
            MetricConfig(name="Quiet", statistics=["Sum"], nil_to_zero=True),
        ],
    )

    async def get_metric_statistics(**kwargs):
        if kwargs["metric_name"] == "Broken":
            raise AWSAPIError("AccessDenied")
        return []

    mock_cloudwatch_client.get_metric_statistics.side_effect = get_metric_statistics

    data = await run_static_job(unit_logger, job, mock_cloudwatch_client)

    assert [(d.metric_name, d.value) for d in data] == [("Quiet", 0.0)]


# =============================================================================
# Custom namespace jobs
# =============================================================================

@pytest.mark.asyncio
async def test_custom_namespace_job(unit_logger, mock_cloudwatch_client):
    job = CustomNamespaceJob(
        name="queue",
        namespace="MyApp/Queue",
        regions=["us-east-1"],
        dimension_name_requirements=["QueueName"],
        recently_active_only=True,
        metrics=[MetricConfig(name="Backlog", statistics=["Average", "Maximum"])],
    )
    mock_cloudwatch_client.list_metrics.return_value = [
        {"MetricName": "Backlog", "Dimensions": [{"Name": "QueueName", "Value": "orders"}]},
        {"MetricName": "Backlog", "Dimensions": [{"Name": "Host", "Value": "h1"}]},
    ]
    mock_cloudwatch_client.get_metric_data.side_effect = _echo_results

    data = await run_custom_namespace_job(unit_logger, job, mock_cloudwatch_client, metrics_per_query=500)

    mock_cloudwatch_client.list_metrics.assert_awaited_once_with("MyApp/Queue", "Backlog", True)
    assert [(d.statistic, d.value) for d in data] == [("Average", 0.0), ("Maximum", 1.0)]
    assert all(d.dimensions == [Dimension(name="QueueName", value="orders")] for d in data)
    assert all(d.namespace == "MyApp/Queue" for d in data)


@pytest.mark.asyncio
async def test_custom_namespace_list_failure(unit_logger, mock_cloudwatch_client):
    job = CustomNamespaceJob(
        name="queue",
        namespace="MyApp/Queue",
        regions=["us-east-1"],
        metrics=[MetricConfig(name="Backlog", statistics=["Average"])],
    )
    mock_cloudwatch_client.list_metrics.side_effect = AWSAPIError("Throttling")

    data = await run_custom_namespace_job(unit_logger, job, mock_cloudwatch_client, metrics_per_query=500)

    assert data == []
    mock_cloudwatch_client.get_metric_data.assert_not_awaited()

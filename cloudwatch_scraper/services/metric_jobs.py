# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Metric collection for static and custom namespace jobs.

Also holds the GetMetricData batching shared with discovery jobs: requests are
grouped by query window, split into batches of ``metrics_per_query`` and the
most recent datapoint of each query is written back to its CloudwatchData.
"""

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any

from ..clients.aws_client import AWSAPIError
from ..clients.cloudwatch import CloudwatchClient
from ..models.job import CustomNamespaceJob, Dimension, MetricConfig, StaticJob
from ..models.metric import CloudwatchData
from ..utils.logging_config import ContextLogger

STANDARD_STATISTICS = frozenset(["Average", "Maximum", "Minimum", "SampleCount", "Sum"])

MetricRequest = tuple[CloudwatchData, MetricConfig]


def query_window(config: MetricConfig, now: datetime) -> tuple[datetime, datetime]:
    """Return the (start, end) window of a metric config relative to ``now``."""
    end_time = now - timedelta(seconds=config.delay)
    return end_time - timedelta(seconds=config.length), end_time


def has_required_dimensions(metric: dict[str, Any], required: list[str]) -> bool:
    names = {dimension["Name"] for dimension in metric.get("Dimensions", [])}
    return all(name in names for name in required)


def _metric_data_query(query_id: str, data: CloudwatchData) -> dict[str, Any]:
    return {
        "Id": query_id,
        "MetricStat": {
            "Metric": {
                "Namespace": data.namespace,
                "MetricName": data.metric_name,
                "Dimensions": [{"Name": d.name, "Value": d.value} for d in data.dimensions],
            },
            "Period": data.period,
            "Stat": data.statistic,
        },
        "ReturnData": True,
    }


async def fetch_metric_data(
    log: ContextLogger,
    client: CloudwatchClient,
    requests: list[MetricRequest],
    metrics_per_query: int,
) -> list[CloudwatchData]:
    """
    Fill in values for metric requests through batched GetMetricData calls.

    A failing batch is logged and its metrics are dropped; other batches are
    unaffected.

    Args:
        log: Context logger of the scrape unit
        client: CloudWatch client of the unit's scope
        requests: (data, config) pairs to fetch
        metrics_per_query: Maximum queries per GetMetricData call

    Returns:
        The CloudwatchData of every successfully fetched batch
    """
    now = datetime.now(timezone.utc)
    by_window: dict[tuple[int, int], list[MetricRequest]] = defaultdict(list)
    for data, config in requests:
        by_window[(config.length, config.delay)].append((data, config))

    results: list[CloudwatchData] = []
    for group in by_window.values():
        start_time, end_time = query_window(group[0][1], now)

        for offset in range(0, len(group), metrics_per_query):
            batch = group[offset : offset + metrics_per_query]
            queries = [_metric_data_query(f"id_{i}", data) for i, (data, _) in enumerate(batch)]

            try:
                metric_data_results = await client.get_metric_data(queries, start_time, end_time)
            except AWSAPIError as e:
                log.error(f"GetMetricData failed, dropping batch of {len(batch)} metrics: {e}")
                continue

            latest: dict[str, tuple[float, datetime]] = {}
            for result in metric_data_results:
                query_id = result.get("Id", "")
                values = result.get("Values") or []
                timestamps = result.get("Timestamps") or []
                if query_id not in latest and values and timestamps:
                    latest[query_id] = (values[0], timestamps[0])

            for i, (data, config) in enumerate(batch):
                found = latest.get(f"id_{i}")
                if found is not None:
                    data.value = found[0]
                    if config.add_cloudwatch_timestamp:
                        data.timestamp = found[1]
                elif config.nil_to_zero:
                    data.value = 0.0
                results.append(data)

    log.debug(f"GetMetricData finished, metrics={len(results)}")
    return results


async def run_static_job(
    log: ContextLogger,
    job: StaticJob,
    client: CloudwatchClient,
) -> list[CloudwatchData]:
    """Collect the configured metrics of a static job through GetMetricStatistics."""
    dimensions = [{"Name": d.name, "Value": d.value} for d in job.dimensions]
    now = datetime.now(timezone.utc)
    data: list[CloudwatchData] = []

    for metric in job.metrics:
        start_time, end_time = query_window(metric, now)
        standard = [s for s in metric.statistics if s in STANDARD_STATISTICS]
        extended = [s for s in metric.statistics if s not in STANDARD_STATISTICS]

        datapoints: list[dict[str, Any]] = []
        try:
            for statistics, extended_statistics in ((standard, None), (None, extended)):
                if not (statistics or extended_statistics):
                    continue
                datapoints.extend(await client.get_metric_statistics(
                    namespace=job.namespace,
                    metric_name=metric.name,
                    dimensions=dimensions,
                    start_time=start_time,
                    end_time=end_time,
                    period=metric.period,
                    statistics=statistics,
                    extended_statistics=extended_statistics,
                ))
        except AWSAPIError as e:
            log.error(f"GetMetricStatistics failed for {metric.name}: {e}")
            continue

        for statistic in metric.statistics:
            value, timestamp = _latest_statistic(datapoints, statistic)
            if value is None and metric.nil_to_zero:
                value = 0.0
            data.append(CloudwatchData(
                metric_name=metric.name,
                namespace=job.namespace,
                dimensions=list(job.dimensions),
                statistic=statistic,
                period=metric.period,
                resource_name=job.name,
                value=value,
                timestamp=timestamp if metric.add_cloudwatch_timestamp else None,
            ))

    return data


def _latest_statistic(
    datapoints: list[dict[str, Any]], statistic: str
) -> tuple[float | None, datetime | None]:
    for datapoint in sorted(datapoints, key=lambda d: d["Timestamp"], reverse=True):
        if statistic in STANDARD_STATISTICS:
            value = datapoint.get(statistic)
        else:
            value = datapoint.get("ExtendedStatistics", {}).get(statistic)
        if value is not None:
            return value, datapoint["Timestamp"]
    return None, None


async def run_custom_namespace_job(
    log: ContextLogger,
    job: CustomNamespaceJob,
    client: CloudwatchClient,
    metrics_per_query: int,
) -> list[CloudwatchData]:
    """Collect every metric of a custom namespace matching the job's metric configs."""
    requests: list[MetricRequest] = []

    for metric in job.metrics:
        try:
            listed = await client.list_metrics(job.namespace, metric.name, job.recently_active_only)
        except AWSAPIError as e:
            log.error(f"ListMetrics failed for {metric.name}: {e}")
            continue

        for descriptor in listed:
            if not has_required_dimensions(descriptor, job.dimension_name_requirements):
                continue
            dimensions = [
                Dimension(name=d["Name"], value=d["Value"])
                for d in descriptor.get("Dimensions", [])
            ]
            for statistic in metric.statistics:
                requests.append((
                    CloudwatchData(
                        metric_name=metric.name,
                        namespace=job.namespace,
                        dimensions=dimensions,
                        statistic=statistic,
                        period=metric.period,
                    ),
                    metric,
                ))

    log.debug(f"ListMetrics finished, requests={len(requests)}")
    return await fetch_metric_data(log, client, requests, metrics_per_query)

# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""CloudWatch metrics API client."""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from botocore.config import Config

from .aws_client import BaseAWSClient, SessionProvider

# Window requested for recently active metrics
RECENTLY_ACTIVE_WINDOW = "PT3H"


@dataclass(frozen=True)
class CloudwatchConcurrency:
    """
    Concurrency ceilings for CloudWatch API calls.

    With ``per_api_limit_enabled`` each API gets its own limit; otherwise all
    calls share ``single_limit``.
    """

    single_limit: int = 5
    per_api_limit_enabled: bool = False
    list_metrics: int = 5
    get_metric_data: int = 5
    get_metric_statistics: int = 5


class CloudwatchClient(BaseAWSClient):
    """CloudWatch client scoped to one (region, role) pair."""

    def __init__(
        self,
        session_provider: SessionProvider,
        region: str,
        concurrency: CloudwatchConcurrency | None = None,
        boto_config: Config | None = None,
    ):
        concurrency = concurrency or CloudwatchConcurrency()
        super().__init__(
            session_provider,
            region,
            concurrency=concurrency.single_limit,
            boto_config=boto_config,
        )
        self.concurrency = concurrency
        self._api_semaphores: dict[str, asyncio.Semaphore] = {}
        if concurrency.per_api_limit_enabled:
            self._api_semaphores = {
                "list_metrics": asyncio.Semaphore(concurrency.list_metrics),
                "get_metric_data": asyncio.Semaphore(concurrency.get_metric_data),
                "get_metric_statistics": asyncio.Semaphore(concurrency.get_metric_statistics),
            }

    def _semaphore_for(self, operation: str) -> asyncio.Semaphore:
        return self._api_semaphores.get(operation, self._semaphore)

    async def list_metrics(
        self,
        namespace: str,
        metric_name: str | None = None,
        recently_active_only: bool = False,
    ) -> list[dict[str, Any]]:
        """
        List the metrics of a namespace.

        Args:
            namespace: CloudWatch namespace
            metric_name: Optional metric name filter
            recently_active_only: Only return metrics with data in the last 3 hours

        Returns:
            Metric descriptors ({"Namespace", "MetricName", "Dimensions"})
        """
        params: dict[str, Any] = {"Namespace": namespace}
        if metric_name:
            params["MetricName"] = metric_name
        if recently_active_only:
            params["RecentlyActive"] = RECENTLY_ACTIVE_WINDOW

        result = await self.paginate("cloudwatch", "list_metrics", **params)
        return result.get("Metrics", [])

    async def get_metric_data(
        self,
        queries: list[dict[str, Any]],
        start_time: datetime,
        end_time: datetime,
    ) -> list[dict[str, Any]]:
        """
        Fetch values for a batch of metric data queries.

        Results are ordered newest first, so the first value of each result
        is the latest datapoint.
        """
        result = await self.paginate(
            "cloudwatch",
            "get_metric_data",
            MetricDataQueries=queries,
            StartTime=start_time,
            EndTime=end_time,
            ScanBy="TimestampDescending",
        )
        return result.get("MetricDataResults", [])

    async def get_metric_statistics(
        self,
        namespace: str,
        metric_name: str,
        dimensions: list[dict[str, str]],
        start_time: datetime,
        end_time: datetime,
        period: int,
        statistics: list[str] | None = None,
        extended_statistics: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """
        Fetch statistics datapoints for a single metric identity.

        The API accepts either standard or percentile statistics in one call,
        not both; callers split them.
        """
        params: dict[str, Any] = {
            "Namespace": namespace,
            "MetricName": metric_name,
            "Dimensions": dimensions,
            "StartTime": start_time,
            "EndTime": end_time,
            "Period": period,
        }
        if statistics:
            params["Statistics"] = statistics
        if extended_statistics:
            params["ExtendedStatistics"] = extended_statistics

        response = await self.call("cloudwatch", "get_metric_statistics", **params)
        return response.get("Datapoints", [])

# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""CloudWatch metric result data models.

This module contains the records produced by one scrape unit: the resolved
runtime identity of the unit (JobContext), the raw datapoints collected for
it (CloudwatchData) and the pairing of both (CloudwatchMetricResult).
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .job import Dimension
from .resource import Tag


class JobContext(BaseModel):
    """Resolved identity of a scrape unit, stamped onto every metric it produces."""

    model_config = ConfigDict(frozen=True)

    region: str = Field(..., description="AWS region code")
    account_id: str = Field(..., description="Account ID resolved through STS")
    custom_tags: list[Tag] = Field(default_factory=list, description="Job custom tags")


class CloudwatchData(BaseModel):
    """A single raw CloudWatch datapoint for one (metric, dimensions, statistic)."""

    metric_name: str = Field(..., description="CloudWatch metric name")
    namespace: str = Field(..., description="CloudWatch namespace")
    dimensions: list[Dimension] = Field(default_factory=list)
    statistic: str = Field(..., description="Statistic the value was requested with")
    period: int = Field(default=300, gt=0, description="Period in seconds")
    resource_name: str = Field(default="", description="ARN of the associated resource, if any")
    tags: list[Tag] = Field(default_factory=list, description="Resource tags exported with the metric")
    value: float | None = Field(default=None, description="Most recent datapoint value")
    timestamp: datetime | None = Field(default=None, description="Timestamp of the datapoint")


class CloudwatchMetricResult(BaseModel):
    """The metrics of one scrape unit, paired with the unit's context."""

    model_config = ConfigDict(frozen=True)

    context: JobContext
    data: list[CloudwatchData] = Field(default_factory=list)

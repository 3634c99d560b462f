# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Job configuration models.

A job describes a unit of scrape work: what to look for (a service namespace,
a fixed metric, or a custom namespace), where (regions) and as whom (roles).
Jobs are read-only once validated; the scraper only ever reads them.
"""

import re
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .resource import Tag
from .service import get_service


@lru_cache(maxsize=1024)
def compile_search_pattern(pattern: str) -> re.Pattern:
    """Compile (and cache) a search tag value pattern."""
    return re.compile(pattern)


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Role(_FrozenModel):
    """An assumable IAM identity. An empty ARN means the ambient credentials."""

    role_arn: str = Field(default="", alias="roleArn", description="IAM role ARN to assume")
    external_id: str = Field(default="", alias="externalId", description="External ID for the assume-role call")


class SearchTag(_FrozenModel):
    """A tag constraint: the resource must carry ``key`` with a value matching ``value``."""

    key: str = Field(..., description="Tag key that must be present")
    value: str = Field(..., description="Regular expression the tag value must match")

    @field_validator("value")
    @classmethod
    def _validate_pattern(cls, value: str) -> str:
        try:
            compile_search_pattern(value)
        except re.error as e:
            raise ValueError(f"invalid search tag pattern {value!r}: {e}") from e
        return value

    def matches(self, tag_value: str) -> bool:
        return compile_search_pattern(self.value).search(tag_value) is not None


class Dimension(_FrozenModel):
    name: str
    value: str


class MetricConfig(_FrozenModel):
    """A CloudWatch metric to collect, with the statistics to request for it."""

    name: str = Field(..., description="CloudWatch metric name")
    statistics: list[str] = Field(..., min_length=1, description="Statistics to request (Average, Sum, ...)")
    period: int = Field(default=300, gt=0, description="Period in seconds")
    length: int = Field(default=300, gt=0, description="Window length in seconds")
    delay: int = Field(default=0, ge=0, description="Offset of the window end from now, in seconds")
    nil_to_zero: bool = Field(default=False, alias="nilToZero")
    add_cloudwatch_timestamp: bool = Field(default=False, alias="addCloudwatchTimestamp")


class DiscoveryJob(_FrozenModel):
    """Discover tagged resources of a service namespace and scrape their metrics."""

    type: str = Field(..., description="Service namespace or alias (e.g. AWS/EC2, ec2)")
    regions: list[str] = Field(..., min_length=1)
    roles: list[Role] = Field(default_factory=lambda: [Role()])
    search_tags: list[SearchTag] = Field(default_factory=list, alias="searchTags")
    custom_tags: list[Tag] = Field(default_factory=list, alias="customTags")
    exported_tags_on_metrics: list[str] = Field(default_factory=list, alias="exportedTagsOnMetrics")
    dimension_name_requirements: list[str] = Field(default_factory=list, alias="dimensionNameRequirements")
    recently_active_only: bool = Field(default=False, alias="recentlyActiveOnly")
    metrics: list[MetricConfig] = Field(default_factory=list)

    @field_validator("type")
    @classmethod
    def _resolve_namespace(cls, value: str) -> str:
        service = get_service(value)
        if service is None:
            raise ValueError(f"unsupported discovery job type {value!r}")
        return service.namespace


class StaticJob(_FrozenModel):
    """Scrape a fixed metric identity, no discovery."""

    name: str
    namespace: str
    regions: list[str] = Field(..., min_length=1)
    roles: list[Role] = Field(default_factory=lambda: [Role()])
    custom_tags: list[Tag] = Field(default_factory=list, alias="customTags")
    dimensions: list[Dimension] = Field(default_factory=list)
    metrics: list[MetricConfig] = Field(default_factory=list)


class CustomNamespaceJob(_FrozenModel):
    """Scrape every metric of a user-defined namespace."""

    name: str
    namespace: str
    regions: list[str] = Field(..., min_length=1)
    roles: list[Role] = Field(default_factory=lambda: [Role()])
    custom_tags: list[Tag] = Field(default_factory=list, alias="customTags")
    dimension_name_requirements: list[str] = Field(default_factory=list, alias="dimensionNameRequirements")
    recently_active_only: bool = Field(default=False, alias="recentlyActiveOnly")
    metrics: list[MetricConfig] = Field(default_factory=list)


class JobsConfig(_FrozenModel):
    discovery_jobs: list[DiscoveryJob] = Field(default_factory=list, alias="discovery")
    static_jobs: list[StaticJob] = Field(default_factory=list, alias="static")
    custom_namespace_jobs: list[CustomNamespaceJob] = Field(default_factory=list, alias="customNamespace")

"""Data models for CloudWatch Scraper."""

from .resource import Tag, TaggedResource
from .job import (
    CustomNamespaceJob,
    Dimension,
    DiscoveryJob,
    JobsConfig,
    MetricConfig,
    Role,
    SearchTag,
    StaticJob,
)
from .metric import CloudwatchData, CloudwatchMetricResult, JobContext
from .service import SUPPORTED_SERVICES, ServiceConfig, get_service

__all__ = [
    "Tag",
    "TaggedResource",
    "CustomNamespaceJob",
    "Dimension",
    "DiscoveryJob",
    "JobsConfig",
    "MetricConfig",
    "Role",
    "SearchTag",
    "StaticJob",
    "CloudwatchData",
    "CloudwatchMetricResult",
    "JobContext",
    "SUPPORTED_SERVICES",
    "ServiceConfig",
    "get_service",
]

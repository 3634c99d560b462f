# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Metric collection for discovery jobs.

Resources are discovered through the TaggingClient, then every metric listed
for the job's namespace is associated with the resource it describes. The
association uses the service's dimension regexps: applied to a resource ARN,
the named groups of a regexp yield the CloudWatch dimensions (name and value)
identifying that resource.
"""

from typing import Any, Optional

from ..clients.aws_client import AWSAPIError
from ..clients.cloudwatch import CloudwatchClient
from ..clients.tagging import ExpectedToFindResourcesError, ExtensionHookError, TaggingClient
from ..models.job import DiscoveryJob, Dimension
from ..models.metric import CloudwatchData
from ..models.resource import TaggedResource
from ..models.service import ServiceConfig, get_service
from ..utils.logging_config import ContextLogger
from .metric_jobs import MetricRequest, fetch_metric_data, has_required_dimensions

DimensionSignature = tuple[tuple[str, str], ...]


class MetricAssociator:
    """
    Maps CloudWatch metric dimensions back to discovered resources.

    Resources are indexed by the set of dimension names a regexp extracts
    from their ARN. A metric is matched against the most specific name set
    (the largest one) contained in its own dimensions.
    """

    def __init__(self, service: ServiceConfig, resources: list[TaggedResource]):
        self._index: dict[frozenset[str], dict[DimensionSignature, TaggedResource]] = {}

        for pattern in service.compiled_dimension_regexps():
            for resource in resources:
                match = pattern.search(resource.arn)
                if match is None:
                    continue
                dimensions = {name: value for name, value in match.groupdict().items() if value}
                if not dimensions:
                    continue
                by_signature = self._index.setdefault(frozenset(dimensions), {})
                by_signature.setdefault(tuple(sorted(dimensions.items())), resource)

        self._name_sets = sorted(self._index, key=lambda names: (-len(names), sorted(names)))

    def associate(self, dimensions: list[Dimension]) -> Optional[TaggedResource]:
        values = {d.name: d.value for d in dimensions}
        for names in self._name_sets:
            if not names.issubset(values):
                continue
            signature = tuple(sorted((name, values[name]) for name in names))
            resource = self._index[names].get(signature)
            if resource is not None:
                return resource
        return None


def _dimensions(descriptor: dict[str, Any]) -> list[Dimension]:
    return [Dimension(name=d["Name"], value=d["Value"]) for d in descriptor.get("Dimensions", [])]


async def run_discovery_job(
    log: ContextLogger,
    job: DiscoveryJob,
    region: str,
    tagging_client: TaggingClient,
    cloudwatch_client: CloudwatchClient,
    metrics_per_query: int,
) -> tuple[list[TaggedResource], list[CloudwatchData]]:
    """
    Discover the resources of a job and collect their metrics.

    Args:
        log: Context logger of the scrape unit
        job: Discovery job
        region: AWS region code
        tagging_client: Tagging client of the unit's scope
        cloudwatch_client: CloudWatch client of the unit's scope
        metrics_per_query: Maximum queries per GetMetricData call

    Returns:
        Tuple of (resources, metric data); ([], []) when discovery fails
    """
    try:
        resources = await tagging_client.get_resources(job, region, log)
    except (AWSAPIError, ExtensionHookError, ExpectedToFindResourcesError) as e:
        log.error(f"Couldn't describe resources: {e}")
        return [], []

    service = get_service(job.type)
    # Services without dimension regexps (account level namespaces) keep
    # every listed metric, associated with no resource.
    keep_unassociated = not service.dimension_regexps
    if not resources and not keep_unassociated:
        log.debug("No tagged resources made it through filtering")
        return [], []

    associator = MetricAssociator(service, resources)

    requests: list[MetricRequest] = []
    for metric in job.metrics:
        try:
            listed = await cloudwatch_client.list_metrics(job.type, metric.name, job.recently_active_only)
        except AWSAPIError as e:
            log.error(f"ListMetrics failed for {metric.name}: {e}")
            continue

        for descriptor in listed:
            if not has_required_dimensions(descriptor, job.dimension_name_requirements):
                continue

            dimensions = _dimensions(descriptor)
            resource = associator.associate(dimensions)
            if resource is None and not keep_unassociated:
                continue

            resource_name = resource.arn if resource is not None else ""
            tags = resource.metric_tags(job.exported_tags_on_metrics) if resource is not None else []
            for statistic in metric.statistics:
                requests.append((
                    CloudwatchData(
                        metric_name=metric.name,
                        namespace=job.type,
                        dimensions=dimensions,
                        statistic=statistic,
                        period=metric.period,
                        resource_name=resource_name,
                        tags=tags,
                    ),
                    metric,
                ))

    log.debug(f"Associated metrics with resources, requests={len(requests)}")
    data = await fetch_metric_data(log, cloudwatch_client, requests, metrics_per_query)
    return resources, data

# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Per-namespace extension hooks for resource discovery.

Some services are not (fully) visible through the Resource Groups Tagging
API, or expose resources whose ARN does not carry the identifiers CloudWatch
uses as dimensions. For those namespaces a ServiceFilter provides:

- a resource hook producing additional resources from a service-specific API
- a filter hook re-filtering or rewriting the merged resource collection

The registry is built once at import time and is read-only afterwards.
"""

import logging
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Awaitable, Callable, Mapping, Optional

from ..models.job import DiscoveryJob
from ..models.resource import Tag, TaggedResource

if TYPE_CHECKING:
    from .tagging import TaggingClient

logger = logging.getLogger(__name__)

ResourceFunc = Callable[["TaggingClient", DiscoveryJob, str], Awaitable[list[TaggedResource]]]
FilterFunc = Callable[["TaggingClient", list[TaggedResource]], Awaitable[list[TaggedResource]]]

_REST_API_ID = re.compile(r"/restapis/(?P<api_id>[^/]+)$")
_HTTP_API_ID = re.compile(r"/apis/(?P<api_id>[^/]+)$")


@dataclass(frozen=True)
class ServiceFilter:
    """Optional discovery hooks registered for one namespace."""

    resource_func: Optional[ResourceFunc] = None
    filter_func: Optional[FilterFunc] = None


def _tags(raw_tags: list[dict]) -> list[Tag]:
    return [Tag(key=t["Key"], value=t["Value"]) for t in raw_tags or []]


async def _autoscaling_resources(
    client: "TaggingClient", job: DiscoveryJob, region: str
) -> list[TaggedResource]:
    """Auto Scaling groups, which the tagging API does not list."""
    result = await client.paginate("autoscaling", "describe_auto_scaling_groups")

    resources = []
    for group in result.get("AutoScalingGroups", []):
        resource = TaggedResource(
            arn=group["AutoScalingGroupARN"],
            namespace=job.type,
            region=region,
            tags=_tags(group.get("Tags", [])),
        )
        if resource.filter_through_tags(job.search_tags):
            resources.append(resource)
    return resources


async def _spot_fleet_resources(
    client: "TaggingClient", job: DiscoveryJob, region: str
) -> list[TaggedResource]:
    """Spot fleet requests; CloudWatch identifies them by request ID."""
    result = await client.paginate("ec2", "describe_spot_fleet_requests")

    resources = []
    for request in result.get("SpotFleetRequestConfigs", []):
        resource = TaggedResource(
            arn=request["SpotFleetRequestId"],
            namespace=job.type,
            region=region,
            tags=_tags(request.get("Tags", [])),
        )
        if resource.filter_through_tags(job.search_tags):
            resources.append(resource)
    return resources


async def _shield_protection_resources(
    client: "TaggingClient", job: DiscoveryJob, region: str
) -> list[TaggedResource]:
    """Resources protected by Shield Advanced. Protections carry no tags."""
    result = await client.paginate("shield", "list_protections")

    return [
        TaggedResource(
            arn=protection["ResourceArn"],
            namespace=job.type,
            region=region,
        )
        for protection in result.get("Protections", [])
    ]


async def _storage_gateway_resources(
    client: "TaggingClient", job: DiscoveryJob, region: str
) -> list[TaggedResource]:
    """Storage gateways, identified as ``<gateway id>/<gateway name>``."""
    result = await client.paginate("storagegateway", "list_gateways")

    resources = []
    for gateway in result.get("Gateways", []):
        tags_response = await client.call(
            "storagegateway", "list_tags_for_resource", ResourceARN=gateway["GatewayARN"]
        )
        resource = TaggedResource(
            arn=f"{gateway['GatewayId']}/{gateway['GatewayName']}",
            namespace=job.type,
            region=region,
            tags=_tags(tags_response.get("Tags", [])),
        )
        if resource.filter_through_tags(job.search_tags):
            resources.append(resource)
    return resources


async def _prometheus_workspace_resources(
    client: "TaggingClient", job: DiscoveryJob, region: str
) -> list[TaggedResource]:
    """Managed Prometheus workspaces, which carry their tags as a map."""
    result = await client.paginate("amp", "list_workspaces")

    resources = []
    for workspace in result.get("workspaces", []):
        resource = TaggedResource(
            arn=workspace["arn"],
            namespace=job.type,
            region=region,
            tags=[Tag(key=key, value=value) for key, value in (workspace.get("tags") or {}).items()],
        )
        if resource.filter_through_tags(job.search_tags):
            resources.append(resource)
    return resources


async def _apigateway_filter(
    client: "TaggingClient", resources: list[TaggedResource]
) -> list[TaggedResource]:
    """
    Keep the APIs CloudWatch reports on, under the identifier it uses.

    CloudWatch reports REST API metrics under the API name, while the tagging
    API returns the API ID in the ARN, so the ID is replaced by the name.
    HTTP/WebSocket APIs (``/apis/``) are reported by ID and kept as-is when
    GetApis knows them. Stages and APIs missing from both listings are dropped.
    """
    rest_apis = await client.paginate("apigateway", "get_rest_apis")
    names_by_id = {api["id"]: api["name"] for api in rest_apis.get("items", [])}

    http_apis = await client.paginate("apigatewayv2", "get_apis")
    http_api_ids = {api["ApiId"] for api in http_apis.get("Items", [])}

    filtered = []
    for resource in resources:
        match = _REST_API_ID.search(resource.arn)
        if match is not None and match.group("api_id") in names_by_id:
            api_name = names_by_id[match.group("api_id")]
            filtered.append(
                resource.model_copy(update={"arn": resource.arn[: match.start("api_id")] + api_name})
            )
            continue

        match = _HTTP_API_ID.search(resource.arn)
        if match is not None and match.group("api_id") in http_api_ids:
            filtered.append(resource)
            continue

        logger.debug(f"Skipping API Gateway resource missing from GetRestApis and GetApis: {resource.arn}")
    return filtered


async def _dms_filter(
    client: "TaggingClient", resources: list[TaggedResource]
) -> list[TaggedResource]:
    """
    Append the replication instance identifier to DMS ARNs.

    CloudWatch identifies replication instances (and tasks) by the instance
    identifier, which the ARN does not contain.
    """
    instances = await client.paginate("dms", "describe_replication_instances")
    identifiers_by_arn = {
        instance["ReplicationInstanceArn"]: instance["ReplicationInstanceIdentifier"]
        for instance in instances.get("ReplicationInstances", [])
    }

    tasks = await client.paginate("dms", "describe_replication_tasks", WithoutSettings=True)
    for task in tasks.get("ReplicationTasks", []):
        instance_identifier = identifiers_by_arn.get(task.get("ReplicationInstanceArn", ""))
        if instance_identifier:
            identifiers_by_arn[task["ReplicationTaskArn"]] = instance_identifier

    filtered = []
    for resource in resources:
        identifier = identifiers_by_arn.get(resource.arn)
        if identifier:
            resource = resource.model_copy(update={"arn": f"{resource.arn}/{identifier}"})
        filtered.append(resource)
    return filtered


SERVICE_FILTERS: Mapping[str, ServiceFilter] = MappingProxyType({
    "AWS/ApiGateway": ServiceFilter(filter_func=_apigateway_filter),
    "AWS/AutoScaling": ServiceFilter(resource_func=_autoscaling_resources),
    "AWS/DDoSProtection": ServiceFilter(resource_func=_shield_protection_resources),
    "AWS/DMS": ServiceFilter(filter_func=_dms_filter),
    "AWS/EC2Spot": ServiceFilter(resource_func=_spot_fleet_resources),
    "AWS/Prometheus": ServiceFilter(resource_func=_prometheus_workspace_resources),
    "AWS/StorageGateway": ServiceFilter(resource_func=_storage_gateway_resources),
})

# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Resource discovery through the Resource Groups Tagging API.

The TaggingClient pages through the generic tag listing for the resource
types a service declares, keeps the resources matching the job's search tags,
and then lets the service's extension hooks (if any) add resources and
re-filter the collection.

An empty result for a service that declares a discovery mechanism almost
always means missing permissions or wrong filters, so it is raised as
ExpectedToFindResourcesError instead of being returned as a valid empty list.
"""

import logging
from typing import TYPE_CHECKING

from ..models.job import DiscoveryJob
from ..models.resource import Tag, TaggedResource
from ..models.service import get_service
from ..utils.logging_config import ContextLogger
from .aws_client import BaseAWSClient
from .extensions import SERVICE_FILTERS

if TYPE_CHECKING:
    from ..models.service import ServiceConfig

logger = logging.getLogger(__name__)

# Maximum allowed by the GetResources API
RESOURCES_PER_PAGE = 100


class ExpectedToFindResourcesError(Exception):
    """Raised when a service with a discovery mechanism yields no resources."""

    def __init__(self, namespace: str, region: str):
        super().__init__(
            f"expected to discover resources for {namespace} in {region} but none were found"
        )
        self.namespace = namespace
        self.region = region


class ExtensionHookError(Exception):
    """Raised when a namespace's resource or filter hook fails."""

    def __init__(self, namespace: str, hook: str, cause: Exception):
        super().__init__(f"failed to apply {hook} for {namespace}: {cause}")
        self.namespace = namespace
        self.hook = hook


class TaggingClient(BaseAWSClient):
    """
    Discovers tagged resources for discovery jobs in one (region, role) scope.

    Besides the tagging API, the scope's other service clients (autoscaling,
    ec2, apigateway, ...) are available to extension hooks through ``call``
    and ``paginate``; all of them share this client's concurrency limit.
    """

    async def get_resources(
        self,
        job: DiscoveryJob,
        region: str,
        log: ContextLogger | None = None,
    ) -> list[TaggedResource]:
        """
        Discover the resources of a discovery job in a region.

        Args:
            job: Discovery job (its type is the service namespace)
            region: AWS region code
            log: Context logger of the calling scrape unit

        Returns:
            Matching resources; empty only if the service declares no
            discovery mechanism at all

        Raises:
            AWSAPIError: If the tagging API fails
            ExtensionHookError: If a resource or filter hook fails
            ExpectedToFindResourcesError: If discovery was configured but found nothing
        """
        log = log or ContextLogger(logger)
        service = get_service(job.type)
        if service is None:
            raise ValueError(f"unsupported discovery job type {job.type!r}")

        resources: list[TaggedResource] = []
        should_have_discovered_resources = False

        if service.resource_filters:
            should_have_discovered_resources = True
            resources.extend(await self._list_tagged_resources(service, job, region, log))
            log.debug(f"GetResources pages finished, total={len(resources)}")

        extension = SERVICE_FILTERS.get(service.namespace)
        if extension is not None:
            if extension.resource_func is not None:
                should_have_discovered_resources = True
                try:
                    extra = await extension.resource_func(self, job, region)
                except Exception as e:
                    raise ExtensionHookError(service.namespace, "ResourceFunc", e) from e
                resources.extend(extra)
                log.debug(f"ResourceFunc finished, total={len(resources)}")

            if extension.filter_func is not None:
                try:
                    resources = await extension.filter_func(self, resources)
                except Exception as e:
                    raise ExtensionHookError(service.namespace, "FilterFunc", e) from e
                log.debug(f"FilterFunc finished, total={len(resources)}")

        if should_have_discovered_resources and not resources:
            raise ExpectedToFindResourcesError(service.namespace, region)

        return resources

    async def _list_tagged_resources(
        self,
        service: "ServiceConfig",
        job: DiscoveryJob,
        region: str,
        log: ContextLogger,
    ) -> list[TaggedResource]:
        """
        Page through GetResources for the service's resource type filters.

        Pagination stops when the API returns no token, or a token that was
        already seen; the latter guards against endless loops on a misbehaving
        endpoint.
        """
        resources: list[TaggedResource] = []
        seen_tokens: set[str] = set()
        pagination_token = ""

        while True:
            params: dict = {
                "ResourceTypeFilters": list(service.resource_filters),
                "ResourcesPerPage": RESOURCES_PER_PAGE,
            }
            if pagination_token:
                params["PaginationToken"] = pagination_token

            page = await self.call("resourcegroupstaggingapi", "get_resources", **params)

            for mapping in page.get("ResourceTagMappingList", []):
                resource = TaggedResource(
                    arn=mapping["ResourceARN"],
                    namespace=job.type,
                    region=region,
                    tags=[Tag(key=t["Key"], value=t["Value"]) for t in mapping.get("Tags", [])],
                )
                if resource.filter_through_tags(job.search_tags):
                    resources.append(resource)
                else:
                    log.debug(f"Skipping resource because search tags do not match, resource_arn={resource.arn}")

            next_token = page.get("PaginationToken") or ""
            if not next_token:
                break
            if next_token in seen_tokens:
                log.debug(f"GetResources returned a duplicate pagination token, stopping, token={next_token}")
                break
            seen_tokens.add(next_token)
            pagination_token = next_token

        return resources

# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Prometheus counters for AWS API calls made while scraping."""

from prometheus_client import Counter

RESOURCE_GROUP_TAGGING_API_REQUESTS = Counter(
    "cloudwatch_scraper_resourcegroupstaggingapi_requests_total",
    "Number of calls made to the Resource Groups Tagging API",
)

AUTOSCALING_API_REQUESTS = Counter(
    "cloudwatch_scraper_autoscaling_api_requests_total",
    "Number of calls made to the Auto Scaling API",
)

EC2_API_REQUESTS = Counter(
    "cloudwatch_scraper_ec2_api_requests_total",
    "Number of calls made to the EC2 API",
)

APIGATEWAY_API_REQUESTS = Counter(
    "cloudwatch_scraper_apigateway_api_requests_total",
    "Number of calls made to the API Gateway API",
)

APIGATEWAYV2_API_REQUESTS = Counter(
    "cloudwatch_scraper_apigatewayv2_api_requests_total",
    "Number of calls made to the API Gateway V2 API",
)

DMS_API_REQUESTS = Counter(
    "cloudwatch_scraper_dms_api_requests_total",
    "Number of calls made to the Database Migration Service API",
)

STORAGEGATEWAY_API_REQUESTS = Counter(
    "cloudwatch_scraper_storagegateway_api_requests_total",
    "Number of calls made to the Storage Gateway API",
)

SHIELD_API_REQUESTS = Counter(
    "cloudwatch_scraper_shield_api_requests_total",
    "Number of calls made to the Shield API",
)

PROMETHEUS_API_REQUESTS = Counter(
    "cloudwatch_scraper_prometheus_api_requests_total",
    "Number of calls made to the Amazon Managed Service for Prometheus API",
)

STS_API_REQUESTS = Counter(
    "cloudwatch_scraper_sts_api_requests_total",
    "Number of calls made to the STS API",
)

CLOUDWATCH_API_REQUESTS = Counter(
    "cloudwatch_scraper_cloudwatch_api_requests_total",
    "Number of calls made to the CloudWatch API",
    ["api_name"],
)

_SERVICE_COUNTERS: dict[str, Counter] = {
    "resourcegroupstaggingapi": RESOURCE_GROUP_TAGGING_API_REQUESTS,
    "autoscaling": AUTOSCALING_API_REQUESTS,
    "ec2": EC2_API_REQUESTS,
    "apigateway": APIGATEWAY_API_REQUESTS,
    "apigatewayv2": APIGATEWAYV2_API_REQUESTS,
    "dms": DMS_API_REQUESTS,
    "storagegateway": STORAGEGATEWAY_API_REQUESTS,
    "shield": SHIELD_API_REQUESTS,
    "amp": PROMETHEUS_API_REQUESTS,
    "sts": STS_API_REQUESTS,
}


def record_api_call(service_name: str, operation: str) -> None:
    """Increment the request counter for an AWS service call."""
    if service_name == "cloudwatch":
        CLOUDWATCH_API_REQUESTS.labels(api_name=operation).inc()
        return
    counter = _SERVICE_COUNTERS.get(service_name)
    if counter is not None:
        counter.inc()

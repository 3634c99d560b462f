# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Scrape orchestration across jobs, roles and regions.

scrape_aws_data fans out one asyncio task per (job, role, region) unit and
waits for all of them. A unit first resolves the account it operates in, then
runs discovery and/or metric collection, and finally hands its result to the
shared ResultAggregator.

Units never fail the scrape: account resolution errors and any other error of
a unit are logged with the unit's context and the unit contributes nothing.
Backpressure is left to the scoped clients, whose semaphores bound the number
of in-flight API calls per (region, role).
"""

import asyncio
import contextlib
from dataclasses import dataclass
from typing import Awaitable, Optional

from ..clients.cloudwatch import CloudwatchConcurrency
from ..clients.factory import Factory
from ..models.job import CustomNamespaceJob, DiscoveryJob, JobsConfig, Role, StaticJob
from ..models.metric import CloudwatchMetricResult, JobContext
from ..models.resource import TaggedResource
from ..utils.logging_config import ContextLogger, get_context_logger
from .aggregator import ResultAggregator
from .discovery_job import run_discovery_job
from .metric_jobs import run_custom_namespace_job, run_static_job


@dataclass(frozen=True)
class _UnitSettings:
    metrics_per_query: int
    cloudwatch_concurrency: CloudwatchConcurrency
    tagging_api_concurrency: int
    always_return_info_metrics: bool


async def scrape_aws_data(
    jobs_config: JobsConfig,
    factory: Factory,
    *,
    metrics_per_query: int,
    cloudwatch_concurrency: CloudwatchConcurrency,
    tagging_api_concurrency: int,
    always_return_info_metrics: bool = False,
    cancel_event: Optional[asyncio.Event] = None,
    logger: Optional[ContextLogger] = None,
) -> tuple[list[list[TaggedResource]], list[CloudwatchMetricResult]]:
    """
    Run every configured job in every region for every role, concurrently.

    Args:
        jobs_config: Discovery, static and custom namespace jobs
        factory: Client factory providing scoped AWS clients
        metrics_per_query: Maximum queries per GetMetricData call
        cloudwatch_concurrency: Concurrency limits of CloudWatch clients
        tagging_api_concurrency: Concurrency limit of tagging clients
        always_return_info_metrics: Keep discovery units that found resources
            but no metrics
        cancel_event: When set, in-flight units are cancelled
        logger: Base context logger

    Returns:
        Tuple of (resource batches, metric results), in completion order
    """
    log = logger if logger is not None else get_context_logger(__name__)
    settings = _UnitSettings(
        metrics_per_query=metrics_per_query,
        cloudwatch_concurrency=cloudwatch_concurrency,
        tagging_api_concurrency=tagging_api_concurrency,
        always_return_info_metrics=always_return_info_metrics,
    )
    aggregator = ResultAggregator()
    units: list[Awaitable[None]] = []

    for discovery_job in jobs_config.discovery_jobs:
        for role in discovery_job.roles:
            for region in discovery_job.regions:
                unit_log = log.with_fields(job_type=discovery_job.type, region=region, arn=role.role_arn)
                units.append(_run_unit(
                    unit_log,
                    _run_discovery_unit(unit_log, discovery_job, region, role, factory, aggregator, settings),
                    cancel_event,
                ))

    for static_job in jobs_config.static_jobs:
        for role in static_job.roles:
            for region in static_job.regions:
                unit_log = log.with_fields(static_job_name=static_job.name, region=region, arn=role.role_arn)
                units.append(_run_unit(
                    unit_log,
                    _run_static_unit(unit_log, static_job, region, role, factory, aggregator, settings),
                    cancel_event,
                ))

    for custom_job in jobs_config.custom_namespace_jobs:
        for role in custom_job.roles:
            for region in custom_job.regions:
                unit_log = log.with_fields(
                    custom_metric_namespace=custom_job.namespace, region=region, arn=role.role_arn
                )
                units.append(_run_unit(
                    unit_log,
                    _run_custom_namespace_unit(unit_log, custom_job, region, role, factory, aggregator, settings),
                    cancel_event,
                ))

    log.debug(f"Starting {len(units)} scrape units")
    await asyncio.gather(*units)

    resources, metrics = aggregator.snapshot()
    log.debug(f"Scrape finished, resource_batches={len(resources)} metric_results={len(metrics)}")
    return resources, metrics


async def _run_unit(
    log: ContextLogger,
    work: Awaitable[None],
    cancel_event: Optional[asyncio.Event],
) -> None:
    """Run one unit to a terminal state, absorbing its errors and honoring cancellation."""
    work_task = asyncio.ensure_future(work)
    try:
        if cancel_event is None:
            await work_task
            return

        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait({work_task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()

        if work_task in done:
            work_task.result()
            return

        work_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await work_task
        log.warning("Scrape unit cancelled")
    except Exception as e:
        log.error(f"Scrape unit failed: {e}", exc_info=True)
    finally:
        if not work_task.done():
            work_task.cancel()


async def _resolve_account(
    log: ContextLogger, factory: Factory, region: str, role: Role
) -> Optional[str]:
    try:
        return await factory.get_account_client(region, role).get_account()
    except Exception as e:
        log.error(f"Couldn't get account Id: {e}")
        return None


async def _run_discovery_unit(
    log: ContextLogger,
    job: DiscoveryJob,
    region: str,
    role: Role,
    factory: Factory,
    aggregator: ResultAggregator,
    settings: _UnitSettings,
) -> None:
    account_id = await _resolve_account(log, factory, region, role)
    if account_id is None:
        return
    log = log.with_fields(account=account_id)

    resources, data = await run_discovery_job(
        log,
        job,
        region,
        factory.get_tagging_client(region, role, settings.tagging_api_concurrency),
        factory.get_cloudwatch_client(region, role, settings.cloudwatch_concurrency),
        settings.metrics_per_query,
    )

    add_to_output = bool(data)
    if settings.always_return_info_metrics:
        add_to_output = add_to_output or bool(resources)
    if not add_to_output:
        log.debug("Discovery produced no metrics, nothing to report")
        return

    result = CloudwatchMetricResult(
        context=JobContext(region=region, account_id=account_id, custom_tags=job.custom_tags),
        data=data,
    )
    aggregator.add_resources_and_metrics(resources, result)
    log.debug(f"Discovery unit finished, resources={len(resources)} metrics={len(data)}")


async def _run_static_unit(
    log: ContextLogger,
    job: StaticJob,
    region: str,
    role: Role,
    factory: Factory,
    aggregator: ResultAggregator,
    settings: _UnitSettings,
) -> None:
    account_id = await _resolve_account(log, factory, region, role)
    if account_id is None:
        return
    log = log.with_fields(account=account_id)

    data = await run_static_job(
        log, job, factory.get_cloudwatch_client(region, role, settings.cloudwatch_concurrency)
    )
    aggregator.add_metrics(CloudwatchMetricResult(
        context=JobContext(region=region, account_id=account_id, custom_tags=job.custom_tags),
        data=data,
    ))
    log.debug(f"Static unit finished, metrics={len(data)}")


async def _run_custom_namespace_unit(
    log: ContextLogger,
    job: CustomNamespaceJob,
    region: str,
    role: Role,
    factory: Factory,
    aggregator: ResultAggregator,
    settings: _UnitSettings,
) -> None:
    account_id = await _resolve_account(log, factory, region, role)
    if account_id is None:
        return
    log = log.with_fields(account=account_id)

    data = await run_custom_namespace_job(
        log,
        job,
        factory.get_cloudwatch_client(region, role, settings.cloudwatch_concurrency),
        settings.metrics_per_query,
    )
    aggregator.add_metrics(CloudwatchMetricResult(
        context=JobContext(region=region, account_id=account_id, custom_tags=job.custom_tags),
        data=data,
    ))
    log.debug(f"Custom namespace unit finished, metrics={len(data)}")

# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""
Run one scrape from the command line.

Usage:
    python -m cloudwatch_scraper

All configuration comes from environment variables (see config.py); the
jobs to run are read from JOBS_CONFIG_PATH.
"""

import asyncio
import logging
import sys

from pydantic import ValidationError

from . import __version__
from .clients.factory import ClientFactory
from .config import ConfigError, Settings, load_jobs_config, settings
from .models.metric import CloudwatchMetricResult
from .services.scraper import scrape_aws_data
from .utils.logging_config import configure_logging, get_context_logger

logger = logging.getLogger(__name__)


async def run_scrape(config: Settings) -> tuple[int, list[CloudwatchMetricResult]]:
    """
    Run one scrape bounded by the configured timeout.

    When the timeout expires the cancel event is set; units still in flight
    are cancelled and the scrape returns what the other units produced.

    Returns:
        Tuple of (number of discovered resources, metric results)
    """
    jobs_config = load_jobs_config(config.jobs_config_path)
    factory = ClientFactory(default_region=config.aws_region)
    cancel_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    timer = loop.call_later(config.scrape_timeout_seconds, cancel_event.set)
    try:
        resources, metrics = await scrape_aws_data(
            jobs_config,
            factory,
            metrics_per_query=config.metrics_per_query,
            cloudwatch_concurrency=config.cloudwatch_concurrency_config(),
            tagging_api_concurrency=config.tagging_api_concurrency,
            always_return_info_metrics=config.always_return_info_metrics,
            cancel_event=cancel_event,
            logger=get_context_logger("cloudwatch_scraper.scrape"),
        )
    finally:
        timer.cancel()

    if cancel_event.is_set():
        logger.warning(f"Scrape timed out after {config.scrape_timeout_seconds}s, results are partial")

    return sum(len(batch) for batch in resources), metrics


def main() -> None:
    """
    Main entry point.

    Loads configuration, configures logging and runs one scrape.
    """
    try:
        config = settings()
    except ValidationError as e:
        configure_logging("INFO")
        logger.error(f"Invalid settings: {e}")
        sys.exit(2)

    configure_logging(config.log_level)

    logger.info(f"Starting CloudWatch Scraper v{__version__}")
    logger.info(f"Jobs config: {config.jobs_config_path}, region: {config.aws_region}")

    try:
        resource_count, metrics = asyncio.run(run_scrape(config))
    except (ConfigError, ValidationError) as e:
        logger.error(f"Invalid jobs configuration: {e}")
        sys.exit(2)
    except KeyboardInterrupt:
        logger.info("Scrape interrupted")
        sys.exit(130)

    datapoints = sum(len(result.data) for result in metrics)
    logger.info(
        f"Scrape complete: {resource_count} resources, "
        f"{len(metrics)} metric results, {datapoints} datapoints"
    )


if __name__ == "__main__":
    main()

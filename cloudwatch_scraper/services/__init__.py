"""Service layer for CloudWatch Scraper."""

from .aggregator import ResultAggregator
from .discovery_job import MetricAssociator, run_discovery_job
from .metric_jobs import fetch_metric_data, run_custom_namespace_job, run_static_job
from .scraper import scrape_aws_data

__all__ = [
    "ResultAggregator",
    "MetricAssociator",
    "run_discovery_job",
    "fetch_metric_data",
    "run_custom_namespace_job",
    "run_static_job",
    "scrape_aws_data",
]

"""Configuration management for CloudWatch Scraper.

Process settings come from environment variables (or a .env file) with
sensible defaults. The jobs to scrape are described in a separate YAML file,
loaded into a validated JobsConfig.
"""

from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .clients.cloudwatch import CloudwatchConcurrency
from .models.job import JobsConfig


class ConfigError(Exception):
    """Raised when the jobs configuration file cannot be loaded."""


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have defaults suitable for a single-account scrape using the
    ambient AWS credentials.
    """

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        validation_alias="LOG_LEVEL"
    )

    # AWS Configuration
    aws_region: str = Field(
        default="us-east-1",
        description="Default AWS region (used for STS)",
        validation_alias=AliasChoices("AWS_REGION", "AWS_DEFAULT_REGION")
    )

    # Jobs Configuration
    jobs_config_path: str = Field(
        default="config/jobs.yaml",
        description="Path to the jobs YAML file",
        validation_alias=AliasChoices("JOBS_CONFIG_PATH", "CONFIG_FILE")
    )

    # Scrape Configuration
    metrics_per_query: int = Field(
        default=500,
        gt=0,
        le=500,
        description="Maximum metric queries per GetMetricData call",
        validation_alias="METRICS_PER_QUERY"
    )
    tagging_api_concurrency: int = Field(
        default=5,
        gt=0,
        description="Concurrent tagging API calls per (region, role)",
        validation_alias="TAGGING_API_CONCURRENCY"
    )
    cloudwatch_concurrency: int = Field(
        default=5,
        gt=0,
        description="Concurrent CloudWatch API calls per (region, role)",
        validation_alias="CLOUDWATCH_CONCURRENCY"
    )
    cloudwatch_per_api_limit_enabled: bool = Field(
        default=False,
        description="Use separate limits for each CloudWatch API",
        validation_alias="CLOUDWATCH_PER_API_LIMIT_ENABLED"
    )
    cloudwatch_list_metrics_concurrency: int = Field(
        default=5,
        gt=0,
        description="Concurrent ListMetrics calls (per-API limits only)",
        validation_alias="CLOUDWATCH_LIST_METRICS_CONCURRENCY"
    )
    cloudwatch_get_metric_data_concurrency: int = Field(
        default=5,
        gt=0,
        description="Concurrent GetMetricData calls (per-API limits only)",
        validation_alias="CLOUDWATCH_GET_METRIC_DATA_CONCURRENCY"
    )
    cloudwatch_get_metric_statistics_concurrency: int = Field(
        default=5,
        gt=0,
        description="Concurrent GetMetricStatistics calls (per-API limits only)",
        validation_alias="CLOUDWATCH_GET_METRIC_STATISTICS_CONCURRENCY"
    )
    always_return_info_metrics: bool = Field(
        default=False,
        description="Report discovered resources even when they have no metrics",
        validation_alias="ALWAYS_RETURN_INFO_METRICS"
    )
    scrape_timeout_seconds: float = Field(
        default=300,
        gt=0,
        description="Time after which in-flight scrape units are cancelled",
        validation_alias="SCRAPE_TIMEOUT_SECONDS"
    )

    model_config = SettingsConfigDict(
        env_prefix="",  # No prefix for environment variables
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    def cloudwatch_concurrency_config(self) -> CloudwatchConcurrency:
        """Build the CloudWatch client concurrency limits from these settings."""
        return CloudwatchConcurrency(
            single_limit=self.cloudwatch_concurrency,
            per_api_limit_enabled=self.cloudwatch_per_api_limit_enabled,
            list_metrics=self.cloudwatch_list_metrics_concurrency,
            get_metric_data=self.cloudwatch_get_metric_data_concurrency,
            get_metric_statistics=self.cloudwatch_get_metric_statistics_concurrency,
        )


def get_settings() -> Settings:
    """
    Get application settings.

    Loads settings from environment variables and .env file.

    Returns:
        Settings instance with all configuration values
    """
    return Settings()


# Global settings instance (lazy loaded)
_settings: Optional[Settings] = None


def settings() -> Settings:
    """
    Get the global settings instance.

    Creates the settings instance on first call and caches it.

    Returns:
        Global Settings instance
    """
    global _settings
    if _settings is None:
        _settings = get_settings()
    return _settings


def load_jobs_config(path: Union[str, Path]) -> JobsConfig:
    """
    Load and validate the jobs configuration file.

    Args:
        path: Path to a YAML file with ``discovery``, ``static`` and
            ``customNamespace`` sections

    Returns:
        Validated JobsConfig

    Raises:
        ConfigError: If the file is missing or is not valid YAML
        pydantic.ValidationError: If the content does not describe valid jobs
    """
    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read jobs config {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in jobs config {path}: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Jobs config {path} must be a mapping, got {type(raw).__name__}")

    return JobsConfig.model_validate(raw)

"""Pytest configuration and shared fixtures."""

import logging

import pytest
from unittest.mock import AsyncMock, MagicMock

from cloudwatch_scraper.clients.account import AccountClient
from cloudwatch_scraper.clients.cloudwatch import CloudwatchClient
from cloudwatch_scraper.clients.tagging import TaggingClient
from cloudwatch_scraper.models.resource import Tag, TaggedResource
from cloudwatch_scraper.utils.logging_config import ContextLogger


@pytest.fixture
def anyio_backend():
    """Configure anyio backend for async tests."""
    return "asyncio"


# =============================================================================
# Environment and Configuration Fixtures
# =============================================================================

@pytest.fixture
def test_env(monkeypatch):
    """Set up test environment variables."""
    test_vars = {
        "AWS_REGION": "us-east-1",
        "LOG_LEVEL": "DEBUG",
        "JOBS_CONFIG_PATH": "config/jobs.yaml",
    }
    for key, value in test_vars.items():
        monkeypatch.setenv(key, value)
    return test_vars


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake credentials so boto3 never reaches a real account under moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def unit_logger():
    """Context logger as handed to a scrape unit."""
    return ContextLogger(logging.getLogger("tests")).with_fields(job_type="AWS/EC2", region="us-east-1")


# =============================================================================
# AWS Client Mocks
# =============================================================================

@pytest.fixture
def mock_account_client():
    """AccountClient resolving to a fixed account."""
    client = MagicMock(spec=AccountClient)
    client.get_account = AsyncMock(return_value="123456789012")
    return client


@pytest.fixture
def mock_tagging_client():
    """TaggingClient with no resources unless configured by the test."""
    client = MagicMock(spec=TaggingClient)
    client.get_resources = AsyncMock(return_value=[])
    return client


@pytest.fixture
def mock_cloudwatch_client():
    """CloudwatchClient returning no metrics unless configured by the test."""
    client = MagicMock(spec=CloudwatchClient)
    client.list_metrics = AsyncMock(return_value=[])
    client.get_metric_data = AsyncMock(return_value=[])
    client.get_metric_statistics = AsyncMock(return_value=[])
    return client


@pytest.fixture
def mock_factory(mock_account_client, mock_tagging_client, mock_cloudwatch_client):
    """Client factory handing out the mocked clients for every scope."""
    factory = MagicMock()
    factory.get_account_client.return_value = mock_account_client
    factory.get_tagging_client.return_value = mock_tagging_client
    factory.get_cloudwatch_client.return_value = mock_cloudwatch_client
    return factory


# =============================================================================
# Test Data Fixtures
# =============================================================================

@pytest.fixture
def make_resource():
    """Factory building a TaggedResource with the given tags."""
    def _make(arn: str, namespace: str = "AWS/EC2", region: str = "us-east-1", **tags: str) -> TaggedResource:
        return TaggedResource(
            arn=arn,
            namespace=namespace,
            region=region,
            tags=[Tag(key=key, value=value) for key, value in tags.items()],
        )
    return _make


@pytest.fixture
def sample_tag_mapping():
    """Provide a sample GetResources page entry."""
    return {
        "ResourceARN": "arn:aws:ec2:us-east-1:123456789012:instance/i-1234567890abcdef0",
        "Tags": [
            {"Key": "Name", "Value": "test-instance"},
            {"Key": "Environment", "Value": "production"},
        ],
    }


# =============================================================================
# Pytest Hooks
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "property: marks tests as property-based tests"
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "property" in str(item.fspath):
            item.add_marker(pytest.mark.property)

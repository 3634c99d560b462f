"""AWS client wrapper module."""

from .aws_client import AWSAPIError, BaseAWSClient
from .account import AccountClient, AccountResolutionError
from .cloudwatch import CloudwatchClient, CloudwatchConcurrency
from .tagging import ExpectedToFindResourcesError, ExtensionHookError, TaggingClient
from .factory import ClientFactory

__all__ = [
    "AWSAPIError",
    "BaseAWSClient",
    "AccountClient",
    "AccountResolutionError",
    "CloudwatchClient",
    "CloudwatchConcurrency",
    "ExpectedToFindResourcesError",
    "ExtensionHookError",
    "TaggingClient",
    "ClientFactory",
]

# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""AWS client wrapper with concurrency limiting and backoff."""

import asyncio
import functools
import logging
import threading
from typing import Any, Callable

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..utils.api_metrics import record_api_call

logger = logging.getLogger(__name__)

SessionProvider = Callable[[], boto3.Session]

# Error codes that trigger a retry with exponential backoff
THROTTLING_ERROR_CODES = frozenset([
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "TooManyRequestsException",
])


class AWSAPIError(Exception):
    """Raised when AWS API calls fail."""

    def __init__(self, message: str, service_name: str = "", error_code: str = ""):
        super().__init__(message)
        self.service_name = service_name
        self.error_code = error_code


class BaseAWSClient:
    """
    Wrapper around boto3 clients scoped to one (region, role) pair.

    boto3 calls run in the event loop's default executor so they never block
    other scrape units. A semaphore bounds the number of in-flight calls made
    through this client; throttling errors are retried with exponential
    backoff outside the semaphore.

    The boto3 session is obtained lazily from ``session_provider`` on the
    first call, inside a worker thread, so that role assumption does not block
    the event loop.
    """

    def __init__(
        self,
        session_provider: SessionProvider,
        region: str,
        concurrency: int = 5,
        boto_config: Config | None = None,
        max_retries: int = 5,
        base_delay: float = 1.0,
    ):
        """
        Initialize the client.

        Args:
            session_provider: Callable returning the boto3 Session for this scope
            region: AWS region the service clients are created in
            concurrency: Maximum number of concurrent API calls
            boto_config: Optional boto3 Config merged over the defaults
            max_retries: Maximum attempts for throttled calls
            base_delay: Base delay in seconds for exponential backoff
        """
        config = Config(
            region_name=region,
            retries={
                'max_attempts': 3,
                'mode': 'adaptive'
            }
        )
        if boto_config is not None:
            config = config.merge(boto_config)

        self.region = region
        self._config = config
        self._session_provider = session_provider
        self._service_clients: dict[str, tuple[boto3.Session, Any]] = {}
        self._service_clients_lock = threading.Lock()
        self._semaphore = asyncio.Semaphore(concurrency)
        self._max_retries = max_retries
        self._base_delay = base_delay

    def _service_client(self, service_name: str) -> Any:
        # The provider hands out a new session once credentials are refreshed;
        # clients bound to the previous session are rebuilt.
        session = self._session_provider()
        with self._service_clients_lock:
            cached = self._service_clients.get(service_name)
            if cached is not None and cached[0] is session:
                return cached[1]
            client = session.client(service_name, config=self._config)
            self._service_clients[service_name] = (session, client)
            return client

    def _semaphore_for(self, operation: str) -> asyncio.Semaphore:
        return self._semaphore

    def _invoke(self, service_name: str, operation: str, kwargs: dict[str, Any]) -> Any:
        return getattr(self._service_client(service_name), operation)(**kwargs)

    def _invoke_paginated(self, service_name: str, operation: str, kwargs: dict[str, Any]) -> Any:
        paginator = self._service_client(service_name).get_paginator(operation)
        return paginator.paginate(**kwargs).build_full_result()

    async def _call_with_backoff(
        self,
        service_name: str,
        operation: str,
        func: Callable[[], Any],
    ) -> Any:
        """
        Run a blocking boto3 call with exponential backoff on throttling errors.

        Args:
            service_name: Name of the AWS service
            operation: API operation name, used for counters and errors
            func: Zero-argument callable performing the boto3 call

        Returns:
            Response from AWS API

        Raises:
            AWSAPIError: If the API call fails after retries
        """
        for attempt in range(self._max_retries):
            try:
                async with self._semaphore_for(operation):
                    record_api_call(service_name, operation)
                    loop = asyncio.get_running_loop()
                    return await loop.run_in_executor(None, func)

            except ClientError as e:
                error_code = e.response.get('Error', {}).get('Code', '')

                if error_code in THROTTLING_ERROR_CODES and attempt < self._max_retries - 1:
                    delay = self._base_delay * (2 ** attempt)
                    logger.debug(
                        f"{service_name}.{operation} throttled in {self.region}, "
                        f"retrying in {delay:.1f}s (attempt {attempt + 1})"
                    )
                    await asyncio.sleep(delay)
                    continue

                raise AWSAPIError(
                    f"AWS API error: {error_code} - {str(e)}",
                    service_name=service_name,
                    error_code=error_code,
                ) from e

            except BotoCoreError as e:
                raise AWSAPIError(f"Boto3 error: {str(e)}", service_name=service_name) from e

        raise AWSAPIError(f"Max retries exceeded for {service_name}", service_name=service_name)

    async def call(self, service_name: str, operation: str, **kwargs: Any) -> Any:
        """Call a single boto3 API operation."""
        return await self._call_with_backoff(
            service_name,
            operation,
            functools.partial(self._invoke, service_name, operation, kwargs),
        )

    async def paginate(self, service_name: str, operation: str, **kwargs: Any) -> dict[str, Any]:
        """Run a boto3 paginator to completion and return the merged result."""
        return await self._call_with_backoff(
            service_name,
            operation,
            functools.partial(self._invoke_paginated, service_name, operation, kwargs),
        )

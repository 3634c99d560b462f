# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Factory for creating and caching AWS clients per (region, role) scope."""

import functools
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Protocol

import boto3
from botocore.config import Config

from ..models.job import Role
from ..utils.api_metrics import record_api_call
from .account import AccountClient
from .cloudwatch import CloudwatchClient, CloudwatchConcurrency
from .tagging import TaggingClient

logger = logging.getLogger(__name__)

ROLE_SESSION_NAME = "cloudwatch-scraper"

# Assumed-role sessions are rebuilt this long before their credentials expire
CREDENTIALS_REFRESH_MARGIN = timedelta(minutes=5)

ScopeKey = tuple[str, Role]


class Factory(Protocol):
    """Client factory contract consumed by the scraper."""

    def get_account_client(self, region: str, role: Role) -> AccountClient: ...

    def get_tagging_client(self, region: str, role: Role, concurrency: int) -> TaggingClient: ...

    def get_cloudwatch_client(
        self, region: str, role: Role, concurrency: CloudwatchConcurrency
    ) -> CloudwatchClient: ...


class ClientFactory:
    """
    Factory for creating and caching AWS clients.

    One boto3 session is kept per (region, role). Sessions for a role ARN are
    built by assuming the role through STS the first time a client of that
    scope makes an API call, and rebuilt when their credentials get close to
    expiry. Clients are cached per scope and concurrency limits, so every
    unit of the same scope scraped with the same limits shares one set of
    semaphores.
    """

    def __init__(
        self,
        default_region: str = "us-east-1",
        boto_config: Config | None = None,
    ):
        """
        Initialize with default region and boto3 config.

        Args:
            default_region: Region used for STS when assuming roles
            boto_config: Optional boto3 Config applied to every client
        """
        self._default_region = default_region
        self._boto_config = boto_config
        self._sessions: dict[ScopeKey, tuple[boto3.Session, datetime | None]] = {}
        self._sessions_lock = threading.Lock()
        self._scope_locks: dict[ScopeKey, threading.Lock] = {}
        self._account_clients: dict[ScopeKey, AccountClient] = {}
        self._tagging_clients: dict[tuple[str, Role, int], TaggingClient] = {}
        self._cloudwatch_clients: dict[tuple[str, Role, CloudwatchConcurrency], CloudwatchClient] = {}

        logger.debug(
            f"ClientFactory initialized with default_region={default_region}"
        )

    @property
    def default_region(self) -> str:
        return self._default_region

    @property
    def boto_config(self) -> Config | None:
        return self._boto_config

    def _session(self, region: str, role: Role) -> boto3.Session:
        key = (region, role)
        with self._sessions_lock:
            scope_lock = self._scope_locks.setdefault(key, threading.Lock())

        # Only callers of the same scope wait on each other while STS is called.
        with scope_lock:
            with self._sessions_lock:
                cached = self._sessions.get(key)
            if cached is not None:
                session, expiration = cached
                if expiration is None or expiration - CREDENTIALS_REFRESH_MARGIN > datetime.now(timezone.utc):
                    return session
                logger.info(f"Refreshing credentials for role {role.role_arn} in {region}")

            session, expiration = self._build_session(region, role)
            with self._sessions_lock:
                self._sessions[key] = (session, expiration)
            return session

    def _build_session(self, region: str, role: Role) -> tuple[boto3.Session, datetime | None]:
        if not role.role_arn:
            return boto3.Session(region_name=region), None

        logger.info(f"Assuming role {role.role_arn} for region {region}")
        sts = boto3.client(
            "sts",
            region_name=self._default_region,
            config=self._boto_config,
        )
        params = {"RoleArn": role.role_arn, "RoleSessionName": ROLE_SESSION_NAME}
        if role.external_id:
            params["ExternalId"] = role.external_id

        record_api_call("sts", "assume_role")
        credentials = sts.assume_role(**params)["Credentials"]
        session = boto3.Session(
            aws_access_key_id=credentials["AccessKeyId"],
            aws_secret_access_key=credentials["SecretAccessKey"],
            aws_session_token=credentials["SessionToken"],
            region_name=region,
        )
        return session, credentials.get("Expiration")

    def _session_provider(self, region: str, role: Role):
        return functools.partial(self._session, region, role)

    def get_account_client(self, region: str, role: Role) -> AccountClient:
        key = (region, role)
        if key not in self._account_clients:
            self._account_clients[key] = AccountClient(
                self._session_provider(region, role),
                region,
                boto_config=self._boto_config,
            )
        return self._account_clients[key]

    def get_tagging_client(self, region: str, role: Role, concurrency: int) -> TaggingClient:
        key = (region, role, concurrency)
        if key not in self._tagging_clients:
            self._tagging_clients[key] = TaggingClient(
                self._session_provider(region, role),
                region,
                concurrency=concurrency,
                boto_config=self._boto_config,
            )
        return self._tagging_clients[key]

    def get_cloudwatch_client(
        self, region: str, role: Role, concurrency: CloudwatchConcurrency
    ) -> CloudwatchClient:
        key = (region, role, concurrency)
        if key not in self._cloudwatch_clients:
            self._cloudwatch_clients[key] = CloudwatchClient(
                self._session_provider(region, role),
                region,
                concurrency=concurrency,
                boto_config=self._boto_config,
            )
        return self._cloudwatch_clients[key]

    def clear_clients(self) -> None:
        """
        Clear all cached sessions and clients.

        Subsequent calls create new sessions (and assume roles again).
        """
        with self._sessions_lock:
            session_count = len(self._sessions)
            self._sessions.clear()
        self._account_clients.clear()
        self._tagging_clients.clear()
        self._cloudwatch_clients.clear()
        logger.info(f"Cleared {session_count} cached sessions")

    def get_session_count(self) -> int:
        with self._sessions_lock:
            return len(self._sessions)

# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Account identity resolution through STS."""

from .aws_client import AWSAPIError, BaseAWSClient


class AccountResolutionError(AWSAPIError):
    """Raised when the account ID for a (region, role) scope cannot be resolved."""


class AccountClient(BaseAWSClient):
    """Resolves the AWS account a (region, role) scope operates in."""

    async def get_account(self) -> str:
        """
        Return the account ID of the credentials behind this client.

        Raises:
            AccountResolutionError: If STS fails or returns no account
        """
        try:
            response = await self.call("sts", "get_caller_identity")
        except AWSAPIError as e:
            raise AccountResolutionError(
                f"Failed to resolve account ID: {e}",
                service_name="sts",
                error_code=e.error_code,
            ) from e

        account_id = response.get("Account")
        if not account_id:
            raise AccountResolutionError("STS returned no account ID", service_name="sts")
        return account_id

"""Scoped credentials for target accounts.

Credentials are always handed to boto3 explicitly. Nothing here touches the
process environment, so a session built for one account can never be picked
up by clients working on another.
"""

from __future__ import annotations
from dataclasses import replace

import boto3

from .models import ManagementAccountContext, TemporaryCredentials
from .models.config import (
    ASSUME_ROLE_DURATION_SECONDS,
    ASSUME_ROLE_SESSION_NAME,
    CROSS_ACCOUNT_ROLE_NAME,
)
from .utils import create_client, get_logger

logger = get_logger()

# Re-assume when cached credentials are this close to expiring
EXPIRY_MARGIN_SECONDS = 300


def role_arn(partition: str, account_id: str, role_name: str) -> str:
    return f"arn:{partition}:iam::{account_id}:role/{role_name}"


class CredentialBroker:
    """Hands out boto3 sessions scoped to one account and region."""

    def __init__(
        self,
        partition: str = "aws",
        base_session: boto3.Session | None = None,
        cross_account_role_name: str = CROSS_ACCOUNT_ROLE_NAME,
    ):
        self.partition = partition
        self.base_session = base_session or boto3.Session()
        self.cross_account_role_name = cross_account_role_name
        self.management_account: ManagementAccountContext | None = None
        self._cache: dict[tuple[str, str, str], TemporaryCredentials] = {}

    def assume(
        self,
        account_id: str,
        role_name: str,
        region: str | None = None,
        source_session: boto3.Session | None = None,
    ) -> TemporaryCredentials:
        """Assume ``role_name`` in ``account_id``; cached per account/role/region."""
        cache_key = (account_id, role_name, region or "")
        cached = self._cache.get(cache_key)
        if cached and not cached.expires_within(EXPIRY_MARGIN_SECONDS):
            return cached

        arn = role_arn(self.partition, account_id, role_name)
        sts = create_client(source_session or self.base_session, "sts", region)
        logger.info("Assuming role", extra={"role_arn": arn, "region": region})
        response = sts.assume_role(
            RoleArn=arn,
            RoleSessionName=ASSUME_ROLE_SESSION_NAME,
            DurationSeconds=ASSUME_ROLE_DURATION_SECONDS,
        )
        credentials = TemporaryCredentials.from_response(response["Credentials"])
        self._cache[cache_key] = credentials
        return credentials

    def resolve_management_account(
        self, context: ManagementAccountContext
    ) -> ManagementAccountContext:
        """Attach management credentials when the pipeline runs externally."""
        if context.is_external:
            logger.info(
                "External pipeline account detected, assuming management account role",
                extra={
                    "management_account_id": context.account_id,
                    "executing_account_id": context.executing_account_id,
                    "role_name": context.assume_role_name,
                },
            )
            credentials = self.assume(context.account_id, context.assume_role_name)
            context = replace(context, credentials=credentials)
        self.management_account = context
        return context

    def session(
        self, credentials: TemporaryCredentials | None = None, region: str | None = None
    ) -> boto3.Session:
        """Build a session from explicit credentials, or the executing identity."""
        if credentials is None:
            return self.base_session
        return boto3.Session(
            aws_access_key_id=credentials.access_key_id,
            aws_secret_access_key=credentials.secret_access_key,
            aws_session_token=credentials.session_token,
            region_name=region,
        )

    def management_session(self, region: str | None = None) -> boto3.Session:
        """Session for the management identity.

        Assumed management credentials are re-assumed once they come within
        ``EXPIRY_MARGIN_SECONDS`` of expiring, so runs longer than the role
        session keep working.
        """
        management = self.management_account
        if management is None or management.credentials is None:
            return self.session(region=region)

        if management.credentials.expires_within(EXPIRY_MARGIN_SECONDS):
            logger.info(
                "Management account credentials are expiring, assuming role again",
                extra={
                    "management_account_id": management.account_id,
                    "role_name": management.assume_role_name,
                },
            )
            credentials = self.assume(management.account_id, management.assume_role_name)
            management = replace(management, credentials=credentials)
            self.management_account = management
        return self.session(management.credentials, region)

    def session_for(self, account_id: str, region: str) -> boto3.Session:
        """Session for ``account_id`` in ``region``.

        The management account uses the management identity directly; any
        other account is reached through the cross-account role assumed from
        the management identity.
        """
        management = self.management_account
        if management is None or account_id == management.account_id:
            return self.management_session(region)
        if account_id == management.executing_account_id:
            return self.session(region=region)

        credentials = self.assume(
            account_id,
            self.cross_account_role_name,
            region,
            source_session=self.management_session(region),
        )
        return self.session(credentials, region)

    def reset(self) -> None:
        """Forget every credential issued so far."""
        if self._cache:
            logger.debug(f"Clearing {len(self._cache)} cached credential set(s)")
        self._cache.clear()

"""Credential-scoped deletion targets."""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any

import boto3

from ..utils.aws_helpers import create_client


@dataclass(frozen=True)
class AwsClients:
    """API clients bound to exactly one (account, region) pair."""

    cloudformation: Any
    logs: Any
    s3: Any
    backup: Any
    iam: Any
    kms: Any

    @classmethod
    def from_session(cls, session: boto3.Session, region: str) -> AwsClients:
        return cls(
            cloudformation=create_client(session, "cloudformation", region),
            logs=create_client(session, "logs", region),
            s3=create_client(session, "s3", region),
            backup=create_client(session, "backup", region),
            iam=create_client(session, "iam", region),
            kms=create_client(session, "kms", region),
        )


@dataclass(frozen=True)
class DeleteTarget:
    """One stack to delete in one account and region."""

    clients: AwsClients
    stack_name: str
    account_id: str
    region: str

    @property
    def location(self) -> dict[str, str]:
        """Structured logging context for this target."""
        return {
            "stack_name": self.stack_name,
            "account_id": self.account_id,
            "region": self.region,
        }

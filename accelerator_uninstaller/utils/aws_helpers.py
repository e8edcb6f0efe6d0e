"""AWS helper functions."""

from __future__ import annotations
import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from ..models.config import API_MAX_ATTEMPTS


def client_config(max_attempts: int = API_MAX_ATTEMPTS) -> BotoConfig:
    """Botocore config whose retry handler backs off on throttling."""
    return BotoConfig(retries={"max_attempts": max_attempts, "mode": "standard"})


def create_client(
    session: boto3.Session,
    service_name: str,
    region: str | None = None,
    max_attempts: int = API_MAX_ATTEMPTS,
):
    """Create a client that inherits nothing but the given session."""
    return session.client(
        service_name, region_name=region, config=client_config(max_attempts)
    )


def get_error_code(error: ClientError) -> str:
    """Return the AWS error code of a botocore ClientError."""
    return error.response.get("Error", {}).get("Code", "")


def get_error_message(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Message", "")


def is_stack_not_found(error: ClientError) -> bool:
    """CloudFormation reports missing stacks as a ValidationError."""
    return get_error_code(error) == "ValidationError" and (
        "does not exist" in get_error_message(error) or "does not exist" in str(error)
    )


def chunked(items: list, size: int) -> list[list]:
    """Split a list into batches accepted by batch delete APIs."""
    return [items[i : i + size] for i in range(0, len(items), size)]

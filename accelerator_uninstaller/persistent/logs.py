"""CloudWatch log group cleanup."""

from __future__ import annotations

from botocore.exceptions import ClientError

from ..utils import get_error_code, get_logger

logger = get_logger()


def delete_log_group(logs, log_group_name: str, stack_name: str = "") -> bool:
    """Delete a log group; a missing group is already clean."""
    context = {"log_group": log_group_name, "stack_name": stack_name}
    logger.info(f"Deleting log group {log_group_name}", extra=context)
    try:
        logs.delete_log_group(logGroupName=log_group_name)
    except ClientError as e:
        if get_error_code(e) == "ResourceNotFoundException":
            logger.warning(f"Log group {log_group_name} not found", extra=context)
            return True
        raise
    logger.info(f"Deleted log group {log_group_name}", extra=context)
    return True


def sweep_log_groups(logs, prefixes: tuple[str, ...], account_id: str, region: str) -> int:
    """Delete every log group whose name contains one of ``prefixes``.

    Custom resources write log groups while their stacks are being deleted,
    so these outlive the stacks that created them.
    """
    names = []
    for page in logs.get_paginator("describe_log_groups").paginate():
        for log_group in page.get("logGroups", []):
            name = log_group.get("logGroupName", "")
            if any(prefix in name for prefix in prefixes):
                names.append(name)

    for name in names:
        delete_log_group(logs, name)

    logger.info(
        f"Swept {len(names)} leftover log group(s)",
        extra={"account_id": account_id, "region": region},
    )
    return len(names)

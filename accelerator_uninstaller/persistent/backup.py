"""AWS Backup vault cleanup."""

from __future__ import annotations

from botocore.exceptions import ClientError

from ..utils import get_error_code, get_logger

logger = get_logger()


def delete_recovery_points(backup, vault_name: str) -> int:
    """Delete every recovery point in a vault; a vault must be empty to be deleted."""
    deleted = 0
    paginator = backup.get_paginator("list_recovery_points_by_backup_vault")
    for page in paginator.paginate(BackupVaultName=vault_name):
        for point in page.get("RecoveryPoints", []):
            backup.delete_recovery_point(
                BackupVaultName=vault_name, RecoveryPointArn=point["RecoveryPointArn"]
            )
            deleted += 1
    return deleted


def delete_backup_vault(backup, vault_name: str, stack_name: str = "") -> bool:
    context = {"backup_vault": vault_name, "stack_name": stack_name}
    logger.info(f"Deleting backup vault {vault_name}", extra=context)
    try:
        points = delete_recovery_points(backup, vault_name)
        if points:
            logger.info(
                f"Deleted {points} recovery points from {vault_name}",
                extra={**context, "recovery_points": points},
            )
        backup.delete_backup_vault(BackupVaultName=vault_name)
    except ClientError as e:
        if get_error_code(e) == "ResourceNotFoundException":
            logger.info(f"Backup vault {vault_name} not found", extra=context)
            return True
        raise
    logger.info(f"Deleted backup vault {vault_name}", extra=context)
    return True

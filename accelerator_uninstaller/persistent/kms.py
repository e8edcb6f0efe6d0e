"""KMS key retirement."""

from __future__ import annotations

from botocore.exceptions import ClientError

from ..models.config import KMS_PENDING_WINDOW_DAYS
from ..utils import get_error_code, get_logger

logger = get_logger()


def schedule_key_deletion(
    kms, key_id: str, stack_name: str = "", pending_window_days: int = KMS_PENDING_WINDOW_DAYS
) -> bool:
    """Disable a key and schedule its deletion.

    Keys are never deleted immediately. Keys that are neither enabled nor
    disabled (already pending deletion, pending import, ...) are skipped.
    """
    context = {"key_id": key_id, "stack_name": stack_name}
    try:
        metadata = kms.describe_key(KeyId=key_id)["KeyMetadata"]
        state = metadata.get("KeyState")

        if state == "Enabled":
            logger.info(f"Disabling KMS key {key_id}", extra=context)
            kms.disable_key(KeyId=key_id)
        elif state != "Disabled":
            logger.warning(
                f"KMS key {key_id} is in {state} state, can not schedule deletion",
                extra=context,
            )
            return False

        logger.info(f"Scheduling deletion of KMS key {key_id}", extra=context)
        kms.schedule_key_deletion(KeyId=key_id, PendingWindowInDays=pending_window_days)
        logger.info(
            f"KMS key {key_id} scheduled for deletion in {pending_window_days} days",
            extra=context,
        )
        return True

    except ClientError as e:
        code = get_error_code(e)
        if code == "NotFoundException":
            logger.info(f"KMS key {key_id} not found", extra=context)
            return True
        if code == "KMSInvalidStateException":
            logger.warning(f"KMS key {key_id} not deletable: {e}", extra=context)
            return False
        raise

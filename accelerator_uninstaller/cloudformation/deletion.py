"""CloudFormation stack deletion engine.

Each target goes through: existence check, termination-protection check,
pre-cleanup, delete, then polling until DELETE_COMPLETE. A DELETE_FAILED
stack is deleted again up to ``max_delete_retries`` times.

All targets handed to ``delete_stacks`` are started first and then polled
together, so independent stacks across accounts and regions delete in
parallel while the caller only moves on once every one of them is done.
"""

from __future__ import annotations
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from botocore.exceptions import ClientError

from ..exceptions import (
    StackDeletionError,
    StackDeletionTimeoutError,
    TerminationProtectionError,
)
from ..models import PersistentResourceRef
from ..models.config import Config
from ..models.target import DeleteTarget
from ..persistent import (
    StackInventory,
    collect_stack_inventory,
    reap_after_delete,
    reap_before_delete,
    release_blocking_roles,
)
from ..utils import get_logger, is_stack_not_found

logger = get_logger()

DELETE_COMPLETE = "DELETE_COMPLETE"
DELETE_FAILED = "DELETE_FAILED"
DELETE_IN_PROGRESS = "DELETE_IN_PROGRESS"

# Polls allowed for a termination-protection change to become visible
PROTECTION_SETTLE_POLLS = 20


@dataclass
class StackDeletion:
    """Progress of one target through the deletion state machine."""

    target: DeleteTarget
    inventory: StackInventory = field(default_factory=StackInventory)
    attempts: int = 0
    polls: int = 0


@dataclass
class DeletionResult:
    deleted: list[str] = field(default_factory=list)
    not_found: list[str] = field(default_factory=list)
    deferred_keys: list[PersistentResourceRef] = field(default_factory=list)


def describe_stack(cfn, stack_name: str) -> dict[str, Any] | None:
    """Current stack description, or None when the stack does not exist."""
    try:
        stacks = cfn.describe_stacks(StackName=stack_name).get("Stacks", [])
    except ClientError as e:
        if is_stack_not_found(e):
            return None
        raise
    return stacks[0] if stacks else None


def _wait_for_protection_disabled(
    target: DeleteTarget, config: Config, sleep: Callable[[float], None]
) -> None:
    for _ in range(PROTECTION_SETTLE_POLLS):
        stack = describe_stack(target.clients.cloudformation, target.stack_name)
        if stack is None or not stack.get("EnableTerminationProtection", False):
            return
        sleep(config.poll_interval_seconds)
    raise StackDeletionError(
        target.stack_name,
        target.account_id,
        target.region,
        0,
        "termination protection could not be disabled",
    )


def check_termination_protection(
    target: DeleteTarget,
    stack: dict[str, Any],
    override: bool,
    config: Config,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Stop the run on a protected stack unless the operator asked to override."""
    if not stack.get("EnableTerminationProtection", False):
        return

    if not override:
        logger.warning(
            f"Due to termination protection, skipping deletion of stack {target.stack_name}",
            extra=target.location,
        )
        raise TerminationProtectionError(target.stack_name, target.account_id, target.region)

    logger.warning(
        f"Stack {target.stack_name} termination protection is enabled, disabling it",
        extra=target.location,
    )
    target.clients.cloudformation.update_termination_protection(
        StackName=target.stack_name, EnableTerminationProtection=False
    )
    _wait_for_protection_disabled(target, config, sleep)
    logger.info(
        f"Termination protection disabled for stack {target.stack_name}",
        extra=target.location,
    )


def issue_delete(deletion: StackDeletion) -> None:
    target = deletion.target
    deletion.attempts += 1
    logger.info(
        f"Deleting stack {target.stack_name} in {target.account_id} account "
        f"from {target.region} region",
        extra={**target.location, "attempt": deletion.attempts},
    )
    target.clients.cloudformation.delete_stack(StackName=target.stack_name)
    deletion.polls = 0


def start_deletion(
    target: DeleteTarget,
    override_termination_protection: bool,
    delete_data: bool,
    config: Config,
    sleep: Callable[[float], None] = time.sleep,
) -> StackDeletion | None:
    """Run a target up to DELETE_ISSUED; None when there is nothing to delete."""
    cfn = target.clients.cloudformation
    stack = describe_stack(cfn, target.stack_name)
    if stack is None or stack.get("StackStatus") == DELETE_COMPLETE:
        logger.info(
            f"Stack {target.stack_name} does not exist in {target.account_id} account "
            f"in {target.region} region",
            extra=target.location,
        )
        return None

    check_termination_protection(
        target, stack, override_termination_protection, config, sleep
    )

    inventory = collect_stack_inventory(
        cfn, target.stack_name, target.account_id, target.region
    )
    if not delete_data:
        inventory.refs.clear()

    release_blocking_roles(
        target.clients.iam,
        inventory.role_names,
        config.blocking_role_pattern,
        target.stack_name,
        frozenset(inventory.declared_policy_arns),
    )
    reap_before_delete(target.clients, inventory)

    deletion = StackDeletion(target=target, inventory=inventory)
    if stack.get("StackStatus") == DELETE_IN_PROGRESS:
        logger.info(
            f"Stack {target.stack_name} is already being deleted", extra=target.location
        )
    else:
        issue_delete(deletion)
    return deletion


def poll_deletion(deletion: StackDeletion, config: Config) -> bool:
    """Check one deletion; True once the stack is gone."""
    target = deletion.target
    stack = describe_stack(target.clients.cloudformation, target.stack_name)
    status = stack.get("StackStatus") if stack else DELETE_COMPLETE

    if status == DELETE_COMPLETE:
        return True

    if status == DELETE_FAILED:
        reason = stack.get("StackStatusReason", "")
        if deletion.attempts > config.max_delete_retries:
            logger.error(
                f"Stack {target.stack_name} deletion failed after "
                f"{config.max_delete_retries} retries, manual intervention required",
                extra={**target.location, "reason": reason},
            )
            raise StackDeletionError(
                target.stack_name, target.account_id, target.region, deletion.attempts, reason
            )
        logger.warning(
            f"Stack {target.stack_name} deletion failed, retrying",
            extra={**target.location, "reason": reason, "attempt": deletion.attempts},
        )
        # Objects may have landed in the buckets since the last attempt
        reap_before_delete(target.clients, deletion.inventory)
        issue_delete(deletion)
        return False

    deletion.polls += 1
    if deletion.polls > config.max_poll_attempts:
        raise StackDeletionTimeoutError(
            target.stack_name,
            target.account_id,
            target.region,
            deletion.attempts,
            f"still {status} after {config.max_poll_attempts} polls",
        )
    return False


def delete_stacks(
    targets: list[DeleteTarget],
    override_termination_protection: bool,
    delete_data: bool,
    config: Config,
    sleep: Callable[[float], None] = time.sleep,
) -> DeletionResult:
    """Delete every target and wait until all of them are gone."""
    result = DeletionResult()
    pending: list[StackDeletion] = []

    for target in targets:
        deletion = start_deletion(
            target, override_termination_protection, delete_data, config, sleep
        )
        if deletion is None:
            result.not_found.append(target.stack_name)
        else:
            pending.append(deletion)

    if not pending:
        return result

    logger.info(f"Total {len(pending)} stack(s) will be deleted")
    start = time.time()
    while pending:
        sleep(config.poll_interval_seconds)
        still_pending = []
        for deletion in pending:
            if not poll_deletion(deletion, config):
                still_pending.append(deletion)
                continue

            target = deletion.target
            logger.info(
                f"Stack {target.stack_name} deleted successfully", extra=target.location
            )
            result.deleted.append(target.stack_name)
            if delete_data:
                result.deferred_keys.extend(
                    reap_after_delete(
                        target.clients,
                        deletion.inventory,
                        config.key_owner_stack_suffixes,
                        config.kms_pending_window_days,
                    )
                )
        pending = still_pending

    logger.info(
        f"Total {len(result.deleted)} stack(s) deleted successfully. "
        f"Elapsed time - {time.time() - start:.1f}s"
    )
    return result

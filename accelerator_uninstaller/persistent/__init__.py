"""Resources that are not removed cleanly by stack deletion alone."""

from .s3 import purge_bucket
from .logs import delete_log_group, sweep_log_groups
from .kms import schedule_key_deletion
from .backup import delete_backup_vault
from .iam import detach_role_policies, release_blocking_roles
from .reaper import (
    StackInventory,
    collect_stack_inventory,
    is_key_owner_stack,
    reap,
    reap_before_delete,
    reap_after_delete,
)

__all__ = [
    "purge_bucket",
    "delete_log_group",
    "sweep_log_groups",
    "schedule_key_deletion",
    "delete_backup_vault",
    "detach_role_policies",
    "release_blocking_roles",
    "StackInventory",
    "collect_stack_inventory",
    "is_key_owner_stack",
    "reap",
    "reap_before_delete",
    "reap_after_delete",
]

"""Classify and drain resources that outlive their stack.

S3 buckets block stack deletion while they hold objects, so they are drained
before the delete is issued. Log groups, backup vaults and KMS keys are
retained by their stacks and are drained once the stack is gone. Keys owned
by the key-owning stack are handed back to the caller, because dependent
stacks still decrypt with them while they are being deleted.
"""

from __future__ import annotations
from dataclasses import dataclass, field

from botocore.exceptions import ClientError

from ..models import PersistentResourceRef, ResourceKind
from ..models.config import KEY_OWNER_STACK_SUFFIXES, KMS_PENDING_WINDOW_DAYS
from ..models.plan import CLOUDFORMATION_RESOURCE_KINDS
from ..models.target import AwsClients
from ..utils import get_logger, is_stack_not_found
from .backup import delete_backup_vault
from .kms import schedule_key_deletion
from .logs import delete_log_group
from .s3 import purge_bucket

logger = get_logger()

BEFORE_DELETE_KINDS = {ResourceKind.S3}


@dataclass
class StackInventory:
    """Resources of one stack captured before it is deleted."""

    refs: list[PersistentResourceRef] = field(default_factory=list)
    role_names: list[str] = field(default_factory=list)
    declared_policy_arns: set[str] = field(default_factory=set)

    @property
    def before_delete(self) -> list[PersistentResourceRef]:
        return [ref for ref in self.refs if ref.kind in BEFORE_DELETE_KINDS]

    @property
    def after_delete(self) -> list[PersistentResourceRef]:
        return [ref for ref in self.refs if ref.kind not in BEFORE_DELETE_KINDS]


def collect_stack_inventory(
    cfn, stack_name: str, account_id: str = "", region: str = ""
) -> StackInventory:
    """Walk the stack's resource list and keep what needs explicit removal."""
    inventory = StackInventory()
    try:
        for page in cfn.get_paginator("list_stack_resources").paginate(StackName=stack_name):
            for summary in page.get("StackResourceSummaries", []):
                physical_id = summary.get("PhysicalResourceId")
                if not physical_id:
                    continue
                resource_type = summary.get("ResourceType", "")
                if resource_type == "AWS::IAM::Role":
                    inventory.role_names.append(physical_id)
                    continue
                if resource_type == "AWS::IAM::ManagedPolicy":
                    inventory.declared_policy_arns.add(physical_id)
                    continue
                kind = CLOUDFORMATION_RESOURCE_KINDS.get(resource_type)
                if kind is not None:
                    inventory.refs.append(
                        PersistentResourceRef(
                            kind=kind,
                            stack_name=stack_name,
                            physical_id=physical_id,
                            account_id=account_id,
                            region=region,
                        )
                    )
    except ClientError as e:
        if is_stack_not_found(e):
            return inventory
        raise

    logger.debug(
        f"Stack {stack_name} has {len(inventory.refs)} persistent resource(s)",
        extra={"stack_name": stack_name, "account_id": account_id, "region": region},
    )
    return inventory


def is_key_owner_stack(
    stack_name: str, suffixes: tuple[str, ...] = KEY_OWNER_STACK_SUFFIXES
) -> bool:
    """True for the stack that provisions the key shared by other stacks."""
    return any(suffix in stack_name for suffix in suffixes)


def reap(
    clients: AwsClients,
    ref: PersistentResourceRef,
    pending_window_days: int = KMS_PENDING_WINDOW_DAYS,
) -> bool:
    """Remove one persistent resource."""
    if ref.kind is ResourceKind.S3:
        return purge_bucket(clients.s3, ref.physical_id, ref.stack_name)
    if ref.kind is ResourceKind.CW_LOGS:
        return delete_log_group(clients.logs, ref.physical_id, ref.stack_name)
    if ref.kind is ResourceKind.KMS:
        return schedule_key_deletion(
            clients.kms, ref.physical_id, ref.stack_name, pending_window_days
        )
    if ref.kind is ResourceKind.BACKUP:
        return delete_backup_vault(clients.backup, ref.physical_id, ref.stack_name)
    raise ValueError(f"Unsupported persistent resource kind {ref.kind}")


def reap_before_delete(clients: AwsClients, inventory: StackInventory) -> None:
    for ref in inventory.before_delete:
        reap(clients, ref)


def reap_after_delete(
    clients: AwsClients,
    inventory: StackInventory,
    key_owner_suffixes: tuple[str, ...] = KEY_OWNER_STACK_SUFFIXES,
    pending_window_days: int = KMS_PENDING_WINDOW_DAYS,
) -> list[PersistentResourceRef]:
    """Drain post-delete resources; returns the key refs that must wait."""
    deferred = []
    for ref in inventory.after_delete:
        if ref.kind is ResourceKind.KMS and is_key_owner_stack(
            ref.stack_name, key_owner_suffixes
        ):
            logger.info(
                f"Deferring deletion of shared KMS key {ref.physical_id} "
                f"until every dependent stack is deleted",
                extra={
                    "key_id": ref.physical_id,
                    "stack_name": ref.stack_name,
                    "account_id": ref.account_id,
                    "region": ref.region,
                },
            )
            deferred.append(ref)
            continue
        reap(clients, ref, pending_window_days)
    return deferred

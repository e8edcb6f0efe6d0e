"""Detach out-of-band policies from roles so CloudFormation can delete them."""

from __future__ import annotations
import re

from botocore.exceptions import ClientError

from ..utils import get_error_code, get_logger

logger = get_logger()


def detach_role_policies(
    iam, role_name: str, stack_name: str = "", keep_policy_arns: frozenset[str] = frozenset()
) -> None:
    """Detach managed policies and delete inline policies of one role.

    Managed policies in ``keep_policy_arns`` are declared by the stack itself
    and stay attached; CloudFormation detaches them during the delete.
    """
    context = {"role_name": role_name, "stack_name": stack_name}
    try:
        attached = []
        for page in iam.get_paginator("list_attached_role_policies").paginate(
            RoleName=role_name
        ):
            attached.extend(page.get("AttachedPolicies", []))
        for policy in attached:
            if policy["PolicyArn"] in keep_policy_arns:
                continue
            logger.info(
                f"Detaching policy {policy['PolicyArn']} from role {role_name}", extra=context
            )
            iam.detach_role_policy(RoleName=role_name, PolicyArn=policy["PolicyArn"])

        inline = []
        for page in iam.get_paginator("list_role_policies").paginate(RoleName=role_name):
            inline.extend(page.get("PolicyNames", []))
        for policy_name in inline:
            logger.info(
                f"Deleting inline policy {policy_name} from role {role_name}", extra=context
            )
            iam.delete_role_policy(RoleName=role_name, PolicyName=policy_name)

    except ClientError as e:
        if get_error_code(e) == "NoSuchEntity":
            logger.info(f"Role {role_name} does not exist", extra=context)
            return
        raise


def release_blocking_roles(
    iam,
    role_names: list[str],
    pattern: str,
    stack_name: str = "",
    keep_policy_arns: frozenset[str] = frozenset(),
) -> list[str]:
    """Detach policies from every role matching ``pattern``; returns those roles.

    Only roles whose policies are changed outside their own stack belong in
    ``pattern``. Handler roles of the stack's custom resources must keep their
    permissions until CloudFormation has run the Delete handlers.
    """
    matcher = re.compile(pattern)
    released = [name for name in role_names if matcher.search(name)]
    for role_name in released:
        detach_role_policies(iam, role_name, stack_name, keep_policy_arns)
    return released

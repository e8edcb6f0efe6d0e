"""Accelerator stack naming conventions."""

from __future__ import annotations
import re

# Pipeline stage (value of ``--stage``) to stack name suffix
STAGE_STACK_SUFFIXES = {
    "prepare": "PrepareStack",
    "diagnostics-pack": "DiagnosticsPackStack",
    "pipeline": "PipelineStack",
    "tester-pipeline": "TesterPipelineStack",
    "organizations": "OrganizationsStack",
    "key": "KeyStack",
    "logging": "LoggingStack",
    "bootstrap": "BootstrapStack",
    "accounts": "AccountsStack",
    "dependencies": "DependenciesStack",
    "security": "SecurityStack",
    "security-resources": "SecurityResourcesStack",
    "resource-policy-enforcement": "ResourcePolicyEnforcementStack",
    "operations": "OperationsStack",
    "identity-center": "IdentityCenterStack",
    "network-prep": "NetworkPrepStack",
    "network-vpc": "NetworkVpcStack",
    "network-vpc-endpoints": "NetworkVpcEndpointsStack",
    "network-vpc-dns": "NetworkVpcDnsStack",
    "network-associations": "NetworkAssociationsStack",
    "network-associations-gwlb": "NetworkAssociationsGwlbStack",
    "finalize": "FinalizeStack",
    "security-audit": "SecurityAuditStack",
    "customizations": "CustomizationsStack",
}

BOOTSTRAP_STACK_SUFFIX = "CDKToolkit"


def stack_name_for_stage(stage: str, prefix: str) -> str | None:
    suffix = STAGE_STACK_SUFFIXES.get(stage)
    return f"{prefix}-{suffix}" if suffix else None


def stage_for_stack_name(stack_name: str, prefix: str) -> str | None:
    for stage, suffix in STAGE_STACK_SUFFIXES.items():
        if stack_name == f"{prefix}-{suffix}":
            return stage
    return None


def bootstrap_stack_name(prefix: str) -> str:
    return f"{prefix}-{BOOTSTRAP_STACK_SUFFIX}"


def is_bootstrap_stack(stack_name: str) -> bool:
    return stack_name.endswith(f"-{BOOTSTRAP_STACK_SUFFIX}")


def qualified_stack_name(stack_name: str, account_id: str, region: str) -> str:
    """Name of the deployed stack in one account and region.

    Accelerator stacks carry the account and region as a suffix; the CDK
    bootstrap stack keeps its plain name everywhere.
    """
    if is_bootstrap_stack(stack_name):
        return stack_name
    return f"{stack_name}-{account_id}-{region}"


def qualifier_to_prefix(qualifier: str) -> str:
    """Convert an installer qualifier to the PascalCase stack prefix.

    ``aws-accelerator`` becomes ``AWSAccelerator``.
    """
    words = [word for word in re.split(r"[^A-Za-z0-9]+", qualifier) if word]
    pascal = "".join(word[0].upper() + word[1:].lower() for word in words)
    return re.sub("awsaccelerator", "AWSAccelerator", pascal, flags=re.IGNORECASE)


def parse_toolkit_command(value: str) -> tuple[str, str | None]:
    """Split a toolkit command such as ``deploy --stage logging``.

    Returns the command and the ``--stage`` value, if any.
    """
    tokens = value.split()
    if not tokens:
        raise ValueError("empty toolkit command")
    stage = None
    if "--stage" in tokens:
        index = tokens.index("--stage")
        if index + 1 >= len(tokens):
            raise ValueError(f"missing stage in toolkit command '{value}'")
        stage = tokens[index + 1]
    return tokens[0], stage

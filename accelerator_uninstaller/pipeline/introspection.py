"""Recover what the accelerator pipeline deployed from its stage/action metadata.

The deletion order is never stored anywhere; it is rebuilt from the order of
the pipeline stages and the run-order of the actions inside each stage.
"""

from __future__ import annotations
import json
from typing import Any

import boto3
from botocore.exceptions import ClientError

from ..exceptions import PipelineNotFoundError
from ..models import (
    ConfigSourceRepo,
    ManagementAccountContext,
    OrganizationAccount,
    PipelineDescription,
    StageAction,
)
from ..models.config import DEFAULT_QUALIFIER
from ..utils import create_client, get_error_code, get_logger
from .stack_names import (
    bootstrap_stack_name,
    parse_toolkit_command,
    qualifier_to_prefix,
    stack_name_for_stage,
)

logger = get_logger()

SOURCE_STAGE = "Source"
BUILD_STAGE = "Build"
BOOTSTRAP_STAGE = "Bootstrap"
CONFIG_SOURCE_ACTION = "Configuration"
TOOLKIT_COMMAND_VARIABLE = "CDK_OPTIONS"


def find_installer_pipeline(session: boto3.Session, installer_stack_name: str) -> str:
    """Return the physical name of the pipeline created by the installer stack."""
    cfn = create_client(session, "cloudformation")
    try:
        paginator = cfn.get_paginator("list_stack_resources")
        for page in paginator.paginate(StackName=installer_stack_name):
            for summary in page.get("StackResourceSummaries", []):
                if summary["ResourceType"] == "AWS::CodePipeline::Pipeline":
                    return summary["PhysicalResourceId"]
    except ClientError as e:
        raise PipelineNotFoundError(
            f"Unable to read installer stack {installer_stack_name}: {e}"
        ) from e
    raise PipelineNotFoundError(f"No pipeline found in stack {installer_stack_name}")


def get_pipeline(session: boto3.Session, pipeline_name: str) -> dict[str, Any]:
    codepipeline = create_client(session, "codepipeline")
    try:
        return codepipeline.get_pipeline(name=pipeline_name)["pipeline"]
    except ClientError as e:
        if get_error_code(e) == "PipelineNotFoundException":
            raise PipelineNotFoundError(
                f"Pipeline {pipeline_name} not found, nothing can be uninstalled"
            ) from e
        raise


def get_codebuild_environment_variables(
    session: boto3.Session, project_name: str
) -> dict[str, str]:
    """Environment variables of a CodeBuild project, as a name/value dict."""
    codebuild = create_client(session, "codebuild")
    projects = codebuild.batch_get_projects(names=[project_name]).get("projects", [])
    if not projects:
        logger.warning(f"CodeBuild project {project_name} not found")
        return {}
    variables = projects[0].get("environment", {}).get("environmentVariables", [])
    return {variable["name"]: variable.get("value", "") for variable in variables}


def read_installer_qualifier(
    session: boto3.Session, installer_pipeline_name: str
) -> tuple[str, str | None]:
    """Return the installer qualifier and the installer CodeBuild project name."""
    pipeline = get_pipeline(session, installer_pipeline_name)
    stages = pipeline.get("stages", [])
    project_name = None
    if len(stages) > 1 and stages[1].get("actions"):
        project_name = stages[1]["actions"][0].get("configuration", {}).get("ProjectName")
    if not project_name:
        return DEFAULT_QUALIFIER, None

    variables = get_codebuild_environment_variables(session, project_name)
    return variables.get("ACCELERATOR_QUALIFIER") or DEFAULT_QUALIFIER, project_name


def accelerator_pipeline_name(qualifier: str) -> str:
    return f"{qualifier_to_prefix(qualifier)}-Pipeline"


def parse_action_stack_name(action: dict[str, Any], prefix: str) -> str | None:
    """Stack deployed by one pipeline action, or None if it deploys nothing.

    Raises ValueError when the action payload cannot be understood.
    """
    if action.get("actionTypeId", {}).get("category") == "Approval":
        return None
    payload = action.get("configuration", {}).get("EnvironmentVariables")
    if payload is None:
        raise ValueError("action has no EnvironmentVariables")

    variables = json.loads(payload)
    if isinstance(variables, dict):
        variables = list(variables.values())
    if not variables:
        raise ValueError("action has an empty EnvironmentVariables list")

    command_variable = next(
        (v for v in variables if v.get("name") == TOOLKIT_COMMAND_VARIABLE),
        variables[0],
    )
    command, stage = parse_toolkit_command(command_variable.get("value", ""))

    if command == "bootstrap":
        return bootstrap_stack_name(prefix)
    if command != "deploy":
        return None
    if stage is None:
        raise ValueError(f"deploy command without a stage: {command_variable['value']}")

    stack_name = stack_name_for_stage(stage, prefix)
    if stack_name is None:
        raise ValueError(f"unknown accelerator stage '{stage}'")
    return stack_name


def collect_stage_actions(
    stages: list[dict[str, Any]], prefix: str
) -> tuple[StageAction, ...]:
    """Flatten deploying actions into creation order.

    Every deploying stage gets the next stage order. Actions of a multi-action
    stage keep their own run-order (ties keep declaration order); single
    actions get order 1.
    """
    stage_actions: list[StageAction] = []
    stage_order = 0

    for stage in stages:
        stage_name = stage["name"]
        if stage_name in (SOURCE_STAGE, BUILD_STAGE):
            continue

        actions = stage.get("actions", [])
        multi_action = len(actions) > 1
        discovered: list[StageAction] = []
        next_order = stage_order + 1

        for action in actions:
            try:
                stack_name = parse_action_stack_name(action, prefix)
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                logger.warning(
                    "Skipping pipeline action with malformed metadata",
                    extra={
                        "stage": stage_name,
                        "action": action.get("name"),
                        "error": str(e),
                    },
                )
                continue
            if stack_name is None:
                logger.debug(f"Action {action.get('name')} in {stage_name} deploys no stack")
                continue

            discovered.append(
                StageAction(
                    stage_name=stage_name,
                    stage_order=next_order,
                    order=action.get("runOrder", 1) if multi_action else 1,
                    name=action.get("name", ""),
                    stack_name_prefix=stack_name,
                )
            )

        if discovered:
            stage_order = next_order
            # sorted() is stable, so equal run-orders keep declaration order
            stage_actions.extend(sorted(discovered, key=lambda a: a.order))

    return tuple(stage_actions)


def read_config_source(stage: dict[str, Any]) -> ConfigSourceRepo | None:
    for action in stage.get("actions", []):
        if action.get("name") != CONFIG_SOURCE_ACTION:
            continue
        configuration = action.get("configuration", {})
        return ConfigSourceRepo(
            repository_name=configuration.get("RepositoryName", ""),
            branch=configuration.get("BranchName", ""),
            provider=action.get("actionTypeId", {}).get("provider", ""),
            bucket=configuration.get("S3Bucket"),
            object_key=configuration.get("S3ObjectKey"),
        )
    return None


def resolve_management_context(
    session: boto3.Session, variables: dict[str, str]
) -> ManagementAccountContext:
    """Decide whether the pipeline runs inside the management account."""
    executing_account_id = variables.get("ACCOUNT_ID")
    if not executing_account_id:
        sts = create_client(session, "sts")
        executing_account_id = sts.get_caller_identity()["Account"]

    management_account_id = variables.get("MANAGEMENT_ACCOUNT_ID")
    role_name = variables.get("MANAGEMENT_ACCOUNT_ROLE_NAME")

    if management_account_id and role_name and management_account_id != executing_account_id:
        return ManagementAccountContext(
            account_id=management_account_id,
            executing_account_id=executing_account_id,
            assume_role_name=role_name,
        )
    return ManagementAccountContext(
        account_id=executing_account_id,
        executing_account_id=executing_account_id,
    )


def describe_pipeline(
    session: boto3.Session, pipeline_name: str, prefix: str
) -> PipelineDescription:
    """Read stage/action metadata of the accelerator pipeline."""
    logger.info(f"Reading pipeline {pipeline_name}")
    pipeline = get_pipeline(session, pipeline_name)
    stages = pipeline.get("stages", [])

    codebuild_projects: list[str] = []
    config_source_repo = None
    bootstrap_variables: dict[str, str] = {}

    for stage in stages:
        for action in stage.get("actions", []):
            project = action.get("configuration", {}).get("ProjectName")
            if project and project not in codebuild_projects:
                codebuild_projects.append(project)

        if stage["name"] == SOURCE_STAGE:
            config_source_repo = read_config_source(stage)
        elif stage["name"] == BOOTSTRAP_STAGE and stage.get("actions"):
            project = stage["actions"][0].get("configuration", {}).get("ProjectName")
            if project:
                bootstrap_variables = get_codebuild_environment_variables(session, project)

    stage_actions = collect_stage_actions(stages, prefix)
    management_account = resolve_management_context(session, bootstrap_variables)

    logger.info(
        "Pipeline introspection complete",
        extra={
            "pipeline_name": pipeline_name,
            "stack_count": len(stage_actions),
            "management_account_id": management_account.account_id,
            "external_pipeline": management_account.is_external,
        },
    )
    return PipelineDescription(
        pipeline_name=pipeline_name,
        stage_actions=stage_actions,
        management_account=management_account,
        config_source_repo=config_source_repo,
        codebuild_projects=tuple(codebuild_projects),
    )


def list_organization_accounts(session: boto3.Session) -> tuple[OrganizationAccount, ...]:
    """Active member accounts of the organization."""
    organizations = create_client(session, "organizations")
    accounts = []
    for page in organizations.get_paginator("list_accounts").paginate():
        for account in page.get("Accounts", []):
            if not account.get("Id") or not account.get("Name"):
                continue
            if account.get("Status", "ACTIVE") != "ACTIVE":
                logger.info(
                    f"Skipping account {account['Id']} in status {account['Status']}"
                )
                continue
            accounts.append(
                OrganizationAccount(account_name=account["Name"], account_id=account["Id"])
            )
    return tuple(accounts)

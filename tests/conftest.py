"""Pytest configuration and shared fixtures for accelerator uninstaller tests."""

from __future__ import annotations
import json
import pytest
from typing import Any
from unittest.mock import Mock
from botocore.exceptions import ClientError

from accelerator_uninstaller.models.config import Config
from accelerator_uninstaller.models.target import AwsClients, DeleteTarget


class StackBuilder:
    """Builder for describe_stacks entries.

    Keeps tests focused on the stack status flow instead of response shapes.
    """

    def __init__(self, stack_name: str = "AWSAccelerator-LoggingStack-111111111111-us-east-1"):
        self._stack = {
            "StackName": stack_name,
            "StackStatus": "CREATE_COMPLETE",
            "EnableTerminationProtection": False,
        }

    def with_status(self, status: str, reason: str = "") -> StackBuilder:
        """Set stack status (and optional status reason)."""
        self._stack["StackStatus"] = status
        if reason:
            self._stack["StackStatusReason"] = reason
        return self

    def with_termination_protection(self, enabled: bool = True) -> StackBuilder:
        self._stack["EnableTerminationProtection"] = enabled
        return self

    def build(self) -> dict[str, Any]:
        return dict(self._stack)

    def response(self) -> dict[str, Any]:
        """Wrap the stack as a describe_stacks response."""
        return {"Stacks": [self.build()]}


class PipelineBuilder:
    """Builder for get_pipeline stage/action metadata."""

    def __init__(self):
        self._stages: list[dict[str, Any]] = [
            {
                "name": "Source",
                "actions": [
                    {
                        "name": "Configuration",
                        "actionTypeId": {"category": "Source", "provider": "CodeCommit"},
                        "configuration": {
                            "RepositoryName": "aws-accelerator-config",
                            "BranchName": "main",
                        },
                    }
                ],
            },
            {
                "name": "Build",
                "actions": [
                    {
                        "name": "Build",
                        "actionTypeId": {"category": "Build", "provider": "CodeBuild"},
                        "configuration": {"ProjectName": "AWSAccelerator-BuildProject"},
                    }
                ],
            },
        ]

    @staticmethod
    def deploy_action(name: str, command: str, run_order: int = 1) -> dict[str, Any]:
        """Toolkit action running ``command`` (e.g. ``deploy --stage logging``)."""
        return {
            "name": name,
            "runOrder": run_order,
            "actionTypeId": {"category": "Build", "provider": "CodeBuild"},
            "configuration": {
                "ProjectName": "AWSAccelerator-ToolkitProject",
                "EnvironmentVariables": json.dumps(
                    [{"name": "CDK_OPTIONS", "type": "PLAINTEXT", "value": command}]
                ),
            },
        }

    @staticmethod
    def approval_action(name: str = "Approve", run_order: int = 1) -> dict[str, Any]:
        return {
            "name": name,
            "runOrder": run_order,
            "actionTypeId": {"category": "Approval", "provider": "Manual"},
            "configuration": {},
        }

    def with_stage(self, name: str, *actions: dict[str, Any]) -> PipelineBuilder:
        self._stages.append({"name": name, "actions": list(actions)})
        return self

    def with_bootstrap_stage(self, project_name: str = "AWSAccelerator-ToolkitProject") -> PipelineBuilder:
        action = self.deploy_action("Bootstrap", "bootstrap")
        action["configuration"]["ProjectName"] = project_name
        self._stages.append({"name": "Bootstrap", "actions": [action]})
        return self

    @property
    def stages(self) -> list[dict[str, Any]]:
        return self._stages

    def build(self, name: str = "AWSAccelerator-Pipeline") -> dict[str, Any]:
        return {"pipeline": {"name": name, "stages": self._stages}}


def _paginator(pages: list[dict[str, Any]]) -> Mock:
    paginator = Mock()
    paginator.paginate.return_value = pages
    return paginator


def set_paginators(client: Mock, pages_by_operation: dict[str, list[dict[str, Any]]]) -> Mock:
    """Make ``client.get_paginator(name)`` return canned pages per operation."""
    client.get_paginator.side_effect = lambda name: _paginator(pages_by_operation.get(name, [{}]))
    return client


# Shared fixtures


@pytest.fixture
def stack_builder():
    """Fixture that returns a new StackBuilder."""
    return StackBuilder()


@pytest.fixture
def pipeline_builder():
    """Fixture that returns a new PipelineBuilder."""
    return PipelineBuilder()


@pytest.fixture
def client_error():
    """Factory for botocore ClientErrors.

    Example:
        raise client_error("NoSuchBucket", "The bucket does not exist")
    """

    def _create(code: str, message: str = "error", operation: str = "Operation") -> ClientError:
        return ClientError({"Error": {"Code": code, "Message": message}}, operation)

    return _create


@pytest.fixture
def stack_not_found_error(client_error):
    """CloudFormation's response for a stack that does not exist."""
    return client_error(
        "ValidationError", "Stack with id test does not exist", "DescribeStacks"
    )


@pytest.fixture
def paginated():
    """Expose set_paginators to tests."""
    return set_paginators


@pytest.fixture
def mock_aws_clients():
    """Factory for AwsClients bundles made of Mocks.

    Every client starts with empty paginators so inventory and sweep calls
    see no resources unless a test provides pages.
    """

    def _create(**overrides) -> AwsClients:
        clients = {}
        for name in ("cloudformation", "logs", "s3", "backup", "iam", "kms"):
            client = overrides.get(name) or Mock()
            if name not in overrides:
                set_paginators(client, {})
            clients[name] = client
        return AwsClients(**clients)

    return _create


@pytest.fixture
def delete_target(mock_aws_clients):
    """Factory for DeleteTargets around mocked clients."""

    def _create(
        stack_name: str = "AWSAccelerator-LoggingStack-111111111111-us-east-1",
        account_id: str = "111111111111",
        region: str = "us-east-1",
        **clients,
    ) -> DeleteTarget:
        return DeleteTarget(
            clients=mock_aws_clients(**clients),
            stack_name=stack_name,
            account_id=account_id,
            region=region,
        )

    return _create


@pytest.fixture
def fast_config():
    """Config with small limits so polling loops finish in a few iterations."""
    config = Config()
    config.poll_interval_seconds = 0
    config.max_poll_attempts = 5
    config.max_delete_retries = 2
    config.kms_pending_window_days = 7
    config.key_owner_stack_suffixes = ("PrepareStack",)
    return config


@pytest.fixture
def no_sleep():
    """Sleep replacement recording requested delays."""
    return Mock()

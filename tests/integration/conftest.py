"""Fixtures specific to integration tests."""

import pytest
from unittest.mock import Mock

from accelerator_uninstaller.models import (
    ConfigSourceRepo,
    DeletionStep,
    ManagementAccountContext,
    OrganizationAccount,
    PipelineStackEntry,
    StageAction,
    UninstallOptions,
    UninstallPlan,
)


@pytest.fixture(autouse=True)
def _mark_as_integration(request):
    """Automatically mark all tests in integration/ as integration tests."""
    request.node.add_marker(pytest.mark.integration)


@pytest.fixture
def mock_cloudformation_client(paginated):
    """Factory for creating mock CloudFormation clients.

    Example:
        cfn = mock_cloudformation_client(
            describe_stacks_side_effect=[stack_builder.response(), stack_not_found_error]
        )
    """

    def _create_mock(**kwargs):
        mock = Mock()
        paginated(
            mock,
            {"list_stack_resources": [{"StackResourceSummaries": kwargs.get("resources", [])}]},
        )
        if "describe_stacks_side_effect" in kwargs:
            mock.describe_stacks.side_effect = kwargs["describe_stacks_side_effect"]
        else:
            mock.describe_stacks.return_value = kwargs.get(
                "describe_stacks_response", {"Stacks": []}
            )
        mock.delete_stack.return_value = {}
        return mock

    return _create_mock


@pytest.fixture
def plan_factory():
    """Factory for small, fully resolved uninstall plans.

    Example:
        plan = plan_factory(options=UninstallOptions(full_destroy=True))
    """

    def _create(
        options: UninstallOptions = None,
        steps=None,
        accounts=None,
        regions=("us-east-1",),
        external: bool = False,
        stage_actions=None,
    ) -> UninstallPlan:
        options = options or UninstallOptions(full_destroy=True)
        accounts = accounts or (
            OrganizationAccount("Management", "111111111111"),
            OrganizationAccount("LogArchive", "222222222222"),
        )
        if external:
            management = ManagementAccountContext(
                "111111111111", "999999999999", assume_role_name="PipelineRole"
            )
        else:
            management = ManagementAccountContext("111111111111", "111111111111")
        if steps is None:
            steps = (
                DeletionStep(
                    2,
                    1,
                    tuple(
                        PipelineStackEntry(2, 1, "AWSAccelerator-LoggingStack", a.account_id)
                        for a in accounts
                    ),
                ),
                DeletionStep(
                    1,
                    1,
                    (PipelineStackEntry(1, 1, "AWSAccelerator-PrepareStack", "111111111111"),),
                ),
            )
        if stage_actions is None:
            stage_actions = (
                StageAction("Prepare", 1, 1, "Prepare", "AWSAccelerator-PrepareStack"),
                StageAction("Logging", 2, 1, "Logging", "AWSAccelerator-LoggingStack"),
            )
        return UninstallPlan(
            options=options,
            installer_stack_name="AWSAccelerator-InstallerStack",
            installer_pipeline_name="AWSAccelerator-Installer",
            installer_codebuild_project="AWSAccelerator-InstallerProject",
            pipeline_name="AWSAccelerator-Pipeline",
            qualifier="aws-accelerator",
            pipeline_prefix="AWSAccelerator",
            stack_prefix="AWSAccelerator",
            management_account=management,
            home_region=regions[0],
            enabled_regions=tuple(regions),
            accounts=tuple(accounts),
            stage_actions=stage_actions,
            steps=steps,
            config_source_repo=ConfigSourceRepo("aws-accelerator-config", "main", "CodeCommit"),
            codebuild_projects=("AWSAccelerator-ToolkitProject",),
        )

    return _create

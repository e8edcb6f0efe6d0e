"""Unit tests for option flags and deletion step construction."""

from __future__ import annotations
import pytest

from accelerator_uninstaller.coordinator import build_steps
from accelerator_uninstaller.models import OrganizationAccount, StageAction, UninstallOptions
from accelerator_uninstaller.models.config import MANAGEMENT_ACCOUNT_STAGES

MANAGEMENT = "111111111111"
ACCOUNTS = (
    OrganizationAccount("Management", MANAGEMENT),
    OrganizationAccount("LogArchive", "222222222222"),
    OrganizationAccount("Audit", "333333333333"),
)


def _action(stack: str, stage_order: int, order: int = 1) -> StageAction:
    return StageAction(
        stage_name=stack,
        stage_order=stage_order,
        order=order,
        name=stack,
        stack_name_prefix=f"AWSAccelerator-{stack}",
    )


@pytest.mark.unit
class TestUninstallOptionFlags:
    """Test the flags derived from the operator's choices."""

    def test_full_destroy_overrides_keep_flags(self):
        options = UninstallOptions(
            full_destroy=True, keep_data=True, keep_bootstraps=True, keep_pipeline_and_config=True
        )

        assert options.delete_data
        assert options.delete_bootstraps
        assert options.delete_pipeline
        assert options.delete_installer
        assert options.override_termination_protection
        assert options.sweep_log_groups

    def test_delete_accelerator_honours_keep_flags(self):
        options = UninstallOptions(
            delete_accelerator=True, keep_data=True, keep_pipeline_and_config=True
        )

        assert not options.delete_data
        assert not options.delete_pipeline
        assert not options.delete_installer
        assert not options.sweep_log_groups
        assert options.override_termination_protection

    def test_stage_scope_needs_explicit_override(self):
        """
        GIVEN a stage scope
        WHEN termination protection flags are derived
        THEN override should require --ignore-termination-protection
        """
        assert not UninstallOptions(stage_name="Logging").override_termination_protection
        assert UninstallOptions(
            stage_name="Logging", ignore_termination_protection=True
        ).override_termination_protection
        assert not UninstallOptions(stage_name="Logging").delete_pipeline


@pytest.mark.unit
class TestBuildSteps:
    """Test grouping of stacks into ordered deletion steps."""

    def test_steps_are_in_descending_order(self):
        """
        GIVEN actions from several stages and run-orders
        WHEN build_steps is called
        THEN steps should be ordered by descending (stage_order, order)
        """
        actions = (
            _action("CDKToolkit", 1),
            _action("KeyStack", 3, 1),
            _action("LoggingStack", 3, 2),
            _action("NetworkVpcStack", 4),
        )

        steps = build_steps(actions, ACCOUNTS, MANAGEMENT, MANAGEMENT_ACCOUNT_STAGES, "AWSAccelerator")

        assert [step.label for step in steps] == ["4.1", "3.2", "3.1", "1.1"]

    def test_regular_stacks_join_every_account(self):
        steps = build_steps(
            (_action("LoggingStack", 1),), ACCOUNTS, MANAGEMENT, MANAGEMENT_ACCOUNT_STAGES, "AWSAccelerator"
        )

        assert [entry.account_id for entry in steps[0].entries] == [
            account.account_id for account in ACCOUNTS
        ]

    def test_management_only_stacks_join_management_account(self):
        """
        GIVEN stacks of management-only stages
        WHEN build_steps is called
        THEN they should only be planned for the management account
        """
        actions = (
            _action("PrepareStack", 1),
            _action("AccountsStack", 2),
            _action("FinalizeStack", 3),
        )

        steps = build_steps(actions, ACCOUNTS, MANAGEMENT, MANAGEMENT_ACCOUNT_STAGES, "AWSAccelerator")

        assert all(len(step.entries) == 1 for step in steps)
        assert {step.entries[0].account_id for step in steps} == {MANAGEMENT}

    def test_same_order_actions_share_one_step(self):
        actions = (_action("KeyStack", 2, 1), _action("SecurityStack", 2, 1))

        steps = build_steps(actions, ACCOUNTS, MANAGEMENT, MANAGEMENT_ACCOUNT_STAGES, "AWSAccelerator")

        assert len(steps) == 1
        assert len(steps[0].entries) == 2 * len(ACCOUNTS)

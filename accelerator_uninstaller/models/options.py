"""Uninstall options selected on the command line."""

from __future__ import annotations
from dataclasses import dataclass, field

DEFAULT_INSTALLER_STACK_NAME = "AWSAccelerator-InstallerStack"


@dataclass(frozen=True)
class UninstallOptions:
    """Operator choices for one uninstall run."""

    installer_stack_name: str = DEFAULT_INSTALLER_STACK_NAME
    partition: str = "aws"
    debug: bool = False
    full_destroy: bool = False
    delete_accelerator: bool = False
    keep_pipeline_and_config: bool = False
    keep_data: bool = False
    keep_bootstraps: bool = False
    stage_name: str | None = None
    action_name: str | None = None
    ignore_termination_protection: bool = False
    dry_run: bool = False
    home_region: str | None = None
    enabled_regions: tuple[str, ...] = field(default_factory=tuple)

    @property
    def delete_data(self) -> bool:
        return self.full_destroy or not self.keep_data

    @property
    def delete_pipeline(self) -> bool:
        """Pipeline stack and config repo are removed only on full teardown."""
        if self.full_destroy:
            return True
        return self.delete_accelerator and not self.keep_pipeline_and_config

    @property
    def delete_installer(self) -> bool:
        return self.full_destroy

    @property
    def delete_bootstraps(self) -> bool:
        return self.full_destroy or not self.keep_bootstraps

    @property
    def override_termination_protection(self) -> bool:
        return (
            self.full_destroy
            or self.delete_accelerator
            or self.ignore_termination_protection
        )

    @property
    def sweep_log_groups(self) -> bool:
        return (self.full_destroy or self.delete_accelerator) and self.delete_data

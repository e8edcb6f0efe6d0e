"""Plan data classes built once per run and treated as read-only afterwards."""

from __future__ import annotations
import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .options import UninstallOptions


@dataclass(frozen=True)
class StageAction:
    """One pipeline action that deployed one stack."""

    stage_name: str
    stage_order: int
    order: int
    name: str
    stack_name_prefix: str


@dataclass(frozen=True)
class PipelineStackEntry:
    """One stack in one account, the unit of deletion work."""

    stage_order: int
    order: int
    stack_name: str
    account_id: str

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.stage_order, self.order)


@dataclass(frozen=True)
class DeletionStep:
    """Entries sharing one (stage_order, order) pair.

    Entries inside a step have no dependency on each other and are deleted
    together; steps are executed strictly one after another.
    """

    stage_order: int
    order: int
    entries: tuple[PipelineStackEntry, ...]

    @property
    def label(self) -> str:
        return f"{self.stage_order}.{self.order}"


@dataclass(frozen=True)
class TemporaryCredentials:
    """STS credentials for one assumed role session."""

    access_key_id: str
    secret_access_key: str
    session_token: str
    expiration: datetime.datetime | None = None

    @classmethod
    def from_response(cls, credentials: dict[str, Any]) -> TemporaryCredentials:
        return cls(
            access_key_id=credentials["AccessKeyId"],
            secret_access_key=credentials["SecretAccessKey"],
            session_token=credentials["SessionToken"],
            expiration=credentials.get("Expiration"),
        )

    def expires_within(self, seconds: int) -> bool:
        if self.expiration is None:
            return False
        remaining = self.expiration - datetime.datetime.now(datetime.timezone.utc)
        return remaining.total_seconds() < seconds


@dataclass(frozen=True)
class ManagementAccountContext:
    """Identity the pipeline treats as home.

    When the pipeline runs in a delegated (external) account, the management
    account is reached by assuming ``assume_role_name``.
    """

    account_id: str
    executing_account_id: str
    assume_role_name: str | None = None
    credentials: TemporaryCredentials | None = None

    @property
    def is_external(self) -> bool:
        return self.assume_role_name is not None


@dataclass(frozen=True)
class OrganizationAccount:
    account_name: str
    account_id: str


@dataclass(frozen=True)
class ConfigSourceRepo:
    repository_name: str
    branch: str
    provider: str
    bucket: str | None = None
    object_key: str | None = None


@dataclass(frozen=True)
class PipelineDescription:
    """What the pipeline tells us about the deployed stacks."""

    pipeline_name: str
    stage_actions: tuple[StageAction, ...]
    management_account: ManagementAccountContext
    config_source_repo: ConfigSourceRepo | None
    codebuild_projects: tuple[str, ...] = ()


class ResourceKind(str, Enum):
    S3 = "S3"
    CW_LOGS = "CWLogs"
    KMS = "KMS"
    BACKUP = "Backup"


CLOUDFORMATION_RESOURCE_KINDS = {
    "AWS::S3::Bucket": ResourceKind.S3,
    "AWS::Logs::LogGroup": ResourceKind.CW_LOGS,
    "AWS::KMS::Key": ResourceKind.KMS,
    "AWS::Backup::BackupVault": ResourceKind.BACKUP,
}


@dataclass(frozen=True)
class PersistentResourceRef:
    """A stack resource that must be removed explicitly."""

    kind: ResourceKind
    stack_name: str
    physical_id: str
    account_id: str = ""
    region: str = ""


@dataclass(frozen=True)
class UninstallPlan:
    """Fully resolved deletion plan, validated before anything is deleted."""

    options: UninstallOptions
    installer_stack_name: str
    installer_pipeline_name: str
    installer_codebuild_project: str | None
    pipeline_name: str
    qualifier: str
    pipeline_prefix: str
    stack_prefix: str
    management_account: ManagementAccountContext
    home_region: str
    enabled_regions: tuple[str, ...]
    accounts: tuple[OrganizationAccount, ...]
    stage_actions: tuple[StageAction, ...]
    steps: tuple[DeletionStep, ...]
    config_source_repo: ConfigSourceRepo | None
    codebuild_projects: tuple[str, ...] = ()

    @property
    def bootstrap_stack_name(self) -> str:
        return f"{self.stack_prefix}-CDKToolkit"

    @property
    def pipeline_account_id(self) -> str:
        """Account hosting the pipeline, installer and pipeline stacks."""
        return self.management_account.executing_account_id

    @property
    def pipeline_stack_name(self) -> str:
        return (
            f"{self.pipeline_prefix}-PipelineStack-"
            f"{self.pipeline_account_id}-{self.home_region}"
        )

    @property
    def bootstrap_in_scope(self) -> bool:
        return any(
            action.stack_name_prefix == self.bootstrap_stack_name
            for action in self.stage_actions
        )

    def describe(self) -> list[str]:
        """Human readable plan, one line per step."""
        lines = [
            f"Pipeline {self.pipeline_name} (installer stack {self.installer_stack_name})",
            f"Management account {self.management_account.account_id}"
            + (" (external pipeline)" if self.management_account.is_external else ""),
            f"Regions: {', '.join(self.enabled_regions)} (home {self.home_region})",
            f"Accounts: {len(self.accounts)}",
        ]
        for step in self.steps:
            stacks = sorted({entry.stack_name for entry in step.entries})
            lines.append(
                f"Step {step.label}: {', '.join(stacks)} in "
                f"{len({entry.account_id for entry in step.entries})} account(s)"
            )
        return lines


@dataclass
class RunState:
    """Mutable state threaded explicitly through one run."""

    deferred_keys: list[PersistentResourceRef] = field(default_factory=list)
    deleted_stacks: list[str] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)
    unreachable: set[tuple[str, str]] = field(default_factory=set)

    @property
    def succeeded(self) -> bool:
        return not self.failures

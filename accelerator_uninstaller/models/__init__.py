"""Data models for the uninstaller."""

from .options import UninstallOptions
from .plan import (
    StageAction,
    PipelineStackEntry,
    DeletionStep,
    TemporaryCredentials,
    ManagementAccountContext,
    OrganizationAccount,
    ConfigSourceRepo,
    PipelineDescription,
    ResourceKind,
    PersistentResourceRef,
    UninstallPlan,
    RunState,
)

__all__ = [
    "UninstallOptions",
    "StageAction",
    "PipelineStackEntry",
    "DeletionStep",
    "TemporaryCredentials",
    "ManagementAccountContext",
    "OrganizationAccount",
    "ConfigSourceRepo",
    "PipelineDescription",
    "ResourceKind",
    "PersistentResourceRef",
    "UninstallPlan",
    "RunState",
]

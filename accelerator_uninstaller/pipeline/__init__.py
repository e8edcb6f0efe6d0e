"""Pipeline discovery, scope resolution and pipeline artifact cleanup."""

from .artifacts import delete_codebuild_projects, delete_config_repository
from .global_config import GlobalConfig, load_global_config, parse_global_config
from .introspection import (
    accelerator_pipeline_name,
    collect_stage_actions,
    describe_pipeline,
    find_installer_pipeline,
    list_organization_accounts,
    read_installer_qualifier,
)
from .scope import ScopeFilter, ScopeKind, resolve, scope_from_options, validate_options
from .stack_names import qualified_stack_name, qualifier_to_prefix

__all__ = [
    "delete_codebuild_projects",
    "delete_config_repository",
    "GlobalConfig",
    "load_global_config",
    "parse_global_config",
    "accelerator_pipeline_name",
    "collect_stage_actions",
    "describe_pipeline",
    "find_installer_pipeline",
    "list_organization_accounts",
    "read_installer_qualifier",
    "ScopeFilter",
    "ScopeKind",
    "resolve",
    "scope_from_options",
    "validate_options",
    "qualified_stack_name",
    "qualifier_to_prefix",
]

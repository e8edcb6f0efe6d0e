"""Narrow the discovered stacks down to what the operator asked to delete."""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum

from ..exceptions import ScopeValidationError
from ..models import StageAction, UninstallOptions
from ..utils import get_logger
from .stack_names import is_bootstrap_stack

logger = get_logger()


class ScopeKind(str, Enum):
    FULL = "full-destroy"
    KEEP_SET = "delete-accelerator"
    FROM_STAGE = "stage-name"
    FROM_ACTION = "action-name"


@dataclass(frozen=True)
class ScopeFilter:
    kind: ScopeKind
    name: str | None = None
    keep_bootstraps: bool = False
    keep_pipeline_and_config: bool = False
    keep_data: bool = False


def validate_options(options: UninstallOptions) -> None:
    """Fail before any API call unless exactly one scope selector is set."""
    if not options.installer_stack_name:
        raise ScopeValidationError("Invalid --installer-stack-name, a value is required")

    selected = [
        name
        for name, active in (
            ("--full-destroy", options.full_destroy),
            ("--delete-accelerator", options.delete_accelerator),
            ("--stage-name", options.stage_name is not None),
            ("--action-name", options.action_name is not None),
        )
        if active
    ]
    if not selected:
        raise ScopeValidationError(
            "Invalid options !! One of --full-destroy, --delete-accelerator, "
            "--stage-name or --action-name is required"
        )
    if len(selected) > 1:
        raise ScopeValidationError(
            f"Invalid options !! Only one delete option can be used, got {', '.join(selected)}"
        )
    if options.stage_name is not None and not options.stage_name.strip():
        raise ScopeValidationError("--stage-name must not be empty")
    if options.action_name is not None and not options.action_name.strip():
        raise ScopeValidationError("--action-name must not be empty")


def scope_from_options(options: UninstallOptions) -> ScopeFilter:
    validate_options(options)
    if options.full_destroy:
        # Keep flags are disregarded on a full destroy
        return ScopeFilter(kind=ScopeKind.FULL)
    if options.delete_accelerator:
        return ScopeFilter(
            kind=ScopeKind.KEEP_SET,
            keep_bootstraps=options.keep_bootstraps,
            keep_pipeline_and_config=options.keep_pipeline_and_config,
            keep_data=options.keep_data,
        )
    if options.stage_name is not None:
        return ScopeFilter(
            kind=ScopeKind.FROM_STAGE,
            name=options.stage_name,
            keep_bootstraps=options.keep_bootstraps,
            keep_pipeline_and_config=True,
            keep_data=options.keep_data,
        )
    return ScopeFilter(
        kind=ScopeKind.FROM_ACTION,
        name=options.action_name,
        keep_pipeline_and_config=True,
        keep_data=options.keep_data,
    )


def _index_of(
    stage_actions: tuple[StageAction, ...], name: str, by_stage: bool
) -> int:
    for index, action in enumerate(stage_actions):
        candidate = action.stage_name if by_stage else action.name
        if candidate == name:
            return index

    kind = "stage" if by_stage else "action"
    valid = []
    for action in stage_actions:
        candidate = action.stage_name if by_stage else action.name
        if candidate not in valid:
            valid.append(candidate)
    raise ScopeValidationError(
        f"Unknown pipeline {kind} '{name}', valid {kind} names are: {', '.join(valid)}"
    )


def resolve(
    stage_actions: tuple[StageAction, ...], scope: ScopeFilter
) -> tuple[StageAction, ...]:
    """Apply the scope filter without reordering what remains.

    ``stage_actions`` is in creation order; only a leading run of actions or
    the bootstrap category is ever removed.
    """
    selected = stage_actions
    if scope.kind is ScopeKind.FROM_STAGE:
        selected = selected[_index_of(selected, scope.name, by_stage=True) :]
    elif scope.kind is ScopeKind.FROM_ACTION:
        selected = selected[_index_of(selected, scope.name, by_stage=False) :]

    if scope.keep_bootstraps:
        selected = tuple(
            action for action in selected if not is_bootstrap_stack(action.stack_name_prefix)
        )

    logger.info(
        "Resolved uninstall scope",
        extra={
            "scope": scope.kind.value,
            "scope_name": scope.name,
            "selected_stacks": len(selected),
            "discovered_stacks": len(stage_actions),
        },
    )
    return tuple(selected)

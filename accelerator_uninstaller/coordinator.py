"""Uninstall coordinator: build the plan, then run it step by step."""

from __future__ import annotations
import time
from itertools import groupby
from typing import Callable

from botocore.exceptions import ClientError

from .cloudformation import delete_stacks
from .credentials import CredentialBroker
from .models import (
    DeletionStep,
    OrganizationAccount,
    PipelineDescription,
    PipelineStackEntry,
    RunState,
    StageAction,
    UninstallOptions,
    UninstallPlan,
)
from .models.config import Config
from .models.target import AwsClients, DeleteTarget
from .persistent import schedule_key_deletion, sweep_log_groups
from .pipeline import (
    accelerator_pipeline_name,
    delete_codebuild_projects,
    delete_config_repository,
    describe_pipeline,
    find_installer_pipeline,
    list_organization_accounts,
    load_global_config,
    qualified_stack_name,
    qualifier_to_prefix,
    read_installer_qualifier,
    resolve,
    scope_from_options,
)
from .pipeline.stack_names import is_bootstrap_stack, stage_for_stack_name
from .utils import create_client, get_error_code, get_logger

logger = get_logger()


def build_steps(
    stage_actions: tuple[StageAction, ...],
    accounts: tuple[OrganizationAccount, ...],
    management_account_id: str,
    management_stages: set[str],
    prefix: str,
) -> tuple[DeletionStep, ...]:
    """Cross-join stacks with accounts and group them into deletion steps.

    Stacks of management-only stages are joined with the management account
    alone. Steps come back in deletion order, i.e. descending
    ``(stage_order, order)``.
    """
    entries = []
    for action in stage_actions:
        stage = stage_for_stack_name(action.stack_name_prefix, prefix)
        if stage in management_stages:
            account_ids = [management_account_id]
        else:
            account_ids = [account.account_id for account in accounts]
        for account_id in account_ids:
            entries.append(
                PipelineStackEntry(
                    stage_order=action.stage_order,
                    order=action.order,
                    stack_name=action.stack_name_prefix,
                    account_id=account_id,
                )
            )

    entries.sort(key=lambda entry: entry.sort_key, reverse=True)
    return tuple(
        DeletionStep(stage_order=key[0], order=key[1], entries=tuple(group))
        for key, group in groupby(entries, key=lambda entry: entry.sort_key)
    )


def _resolve_regions(
    options: UninstallOptions,
    broker: CredentialBroker,
    description: PipelineDescription,
    config: Config,
) -> tuple[str, tuple[str, ...]]:
    if options.home_region:
        regions = list(options.enabled_regions)
        if options.home_region not in regions:
            regions.insert(0, options.home_region)
        logger.info(
            "Using regions given on the command line",
            extra={"home_region": options.home_region, "enabled_regions": regions},
        )
        return options.home_region, tuple(regions)

    global_config = load_global_config(
        broker.base_session, description.config_source_repo, config.global_config_file
    )
    regions = list(global_config.enabled_regions)
    if options.enabled_regions:
        regions = [global_config.home_region] + [
            region for region in options.enabled_regions if region != global_config.home_region
        ]
    return global_config.home_region, tuple(regions)


def build_plan(
    options: UninstallOptions, broker: CredentialBroker, config: Config
) -> UninstallPlan:
    """Discover everything that will be deleted; nothing is deleted here."""
    scope = scope_from_options(options)
    session = broker.base_session

    installer_pipeline_name = find_installer_pipeline(session, options.installer_stack_name)
    qualifier, installer_project = read_installer_qualifier(session, installer_pipeline_name)
    pipeline_prefix = qualifier_to_prefix(qualifier)
    pipeline_name = accelerator_pipeline_name(qualifier)
    logger.info(
        "Found installer pipeline",
        extra={
            "installer_pipeline": installer_pipeline_name,
            "qualifier": qualifier,
            "pipeline_name": pipeline_name,
        },
    )

    description = describe_pipeline(session, pipeline_name, config.accelerator_prefix)
    management = broker.resolve_management_account(description.management_account)
    home_region, enabled_regions = _resolve_regions(options, broker, description, config)

    accounts = list_organization_accounts(broker.management_session(home_region))
    if management.account_id not in {account.account_id for account in accounts}:
        accounts = (OrganizationAccount("Management", management.account_id),) + accounts

    selected = resolve(description.stage_actions, scope)
    steps = build_steps(
        selected,
        accounts,
        management.account_id,
        config.management_account_stages,
        config.accelerator_prefix,
    )

    return UninstallPlan(
        options=options,
        installer_stack_name=options.installer_stack_name,
        installer_pipeline_name=installer_pipeline_name,
        installer_codebuild_project=installer_project,
        pipeline_name=pipeline_name,
        qualifier=qualifier,
        pipeline_prefix=pipeline_prefix,
        stack_prefix=config.accelerator_prefix,
        management_account=management,
        home_region=home_region,
        enabled_regions=enabled_regions,
        accounts=accounts,
        stage_actions=selected,
        steps=steps,
        config_source_repo=description.config_source_repo,
        codebuild_projects=description.codebuild_projects,
    )


def _record_failure(state: RunState, account_id: str, region: str, error: Exception) -> None:
    logger.error(
        f"Unable to reach {account_id} account in {region} region, skipping its work items",
        extra={"account_id": account_id, "region": region, "error": str(error)},
    )
    state.failures.append(f"{account_id}/{region}: {error}")
    state.unreachable.add((account_id, region))


def _clients_for(
    broker: CredentialBroker, state: RunState, account_id: str, region: str
) -> AwsClients | None:
    if (account_id, region) in state.unreachable:
        return None
    try:
        session = broker.session_for(account_id, region)
    except ClientError as e:
        _record_failure(state, account_id, region, e)
        return None
    return AwsClients.from_session(session, region)


def _is_deferred_bootstrap(plan: UninstallPlan, entry: PipelineStackEntry, region: str) -> bool:
    """Home-region management bootstrap is removed at the very end instead."""
    return (
        not plan.management_account.is_external
        and is_bootstrap_stack(entry.stack_name)
        and entry.account_id == plan.management_account.account_id
        and region == plan.home_region
    )


def run_step(
    plan: UninstallPlan,
    step: DeletionStep,
    broker: CredentialBroker,
    config: Config,
    state: RunState,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    targets = []
    for entry in step.entries:
        for region in plan.enabled_regions:
            if _is_deferred_bootstrap(plan, entry, region):
                continue
            clients = _clients_for(broker, state, entry.account_id, region)
            if clients is None:
                continue
            targets.append(
                DeleteTarget(
                    clients=clients,
                    stack_name=qualified_stack_name(entry.stack_name, entry.account_id, region),
                    account_id=entry.account_id,
                    region=region,
                )
            )

    logger.info(
        f"Running deletion step {step.label}",
        extra={"step": step.label, "targets": len(targets)},
    )
    result = delete_stacks(
        targets,
        plan.options.override_termination_protection,
        plan.options.delete_data,
        config,
        sleep,
    )
    state.deleted_stacks.extend(result.deleted)
    state.deferred_keys.extend(result.deferred_keys)


def drain_deferred_keys(broker: CredentialBroker, config: Config, state: RunState) -> None:
    """Retire the shared keys once no stack depends on them any more."""
    keys = sorted(state.deferred_keys, key=lambda ref: (ref.account_id, ref.region))
    for (account_id, region), refs in groupby(keys, key=lambda ref: (ref.account_id, ref.region)):
        if (account_id, region) in state.unreachable:
            continue
        try:
            session = broker.session_for(account_id, region)
        except ClientError as e:
            _record_failure(state, account_id, region, e)
            continue
        kms = create_client(session, "kms", region)
        for ref in refs:
            schedule_key_deletion(kms, ref.physical_id, ref.stack_name, config.kms_pending_window_days)
    state.deferred_keys.clear()


def _delete_single_stack(
    plan: UninstallPlan,
    broker: CredentialBroker,
    config: Config,
    state: RunState,
    stack_name: str,
    sleep: Callable[[float], None],
) -> None:
    """Delete a stack that lives in the pipeline account's home region."""
    target = DeleteTarget(
        clients=AwsClients.from_session(broker.session(region=plan.home_region), plan.home_region),
        stack_name=stack_name,
        account_id=plan.pipeline_account_id,
        region=plan.home_region,
    )
    result = delete_stacks(
        [target],
        plan.options.override_termination_protection,
        plan.options.delete_data,
        config,
        sleep,
    )
    state.deleted_stacks.extend(result.deleted)
    state.deferred_keys.extend(result.deferred_keys)


def delete_pipeline_resources(
    plan: UninstallPlan,
    broker: CredentialBroker,
    config: Config,
    state: RunState,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    session = broker.session(region=plan.home_region)
    delete_config_repository(session, plan.config_source_repo, plan.home_region)
    delete_codebuild_projects(session, plan.codebuild_projects, plan.home_region)
    _delete_single_stack(plan, broker, config, state, plan.pipeline_stack_name, sleep)


def delete_installer_resources(
    plan: UninstallPlan,
    broker: CredentialBroker,
    config: Config,
    state: RunState,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    if plan.installer_codebuild_project:
        delete_codebuild_projects(
            broker.session(region=plan.home_region),
            (plan.installer_codebuild_project,),
            plan.home_region,
        )
    _delete_single_stack(plan, broker, config, state, plan.installer_stack_name, sleep)


def sweep_leftover_log_groups(
    plan: UninstallPlan, broker: CredentialBroker, state: RunState
) -> int:
    """Remove log groups written by custom resources while stacks were deleted."""
    prefixes = (f"/aws/lambda/{plan.stack_prefix}", f"/aws/codebuild/{plan.qualifier}")
    swept = 0
    for account in plan.accounts:
        for region in plan.enabled_regions:
            if (account.account_id, region) in state.unreachable:
                continue
            try:
                session = broker.session_for(account.account_id, region)
            except ClientError as e:
                _record_failure(state, account.account_id, region, e)
                continue
            logs = create_client(session, "logs", region)
            try:
                swept += sweep_log_groups(logs, prefixes, account.account_id, region)
            except ClientError as e:
                if get_error_code(e) not in ("AccessDeniedException", "UnrecognizedClientException"):
                    raise
                _record_failure(state, account.account_id, region, e)
    return swept


def execute_plan(
    plan: UninstallPlan,
    broker: CredentialBroker,
    config: Config,
    sleep: Callable[[float], None] = time.sleep,
) -> RunState:
    """Run every deletion step, then the pipeline-level cleanups."""
    state = RunState()
    options = plan.options

    for step in plan.steps:
        run_step(plan, step, broker, config, state, sleep)

    if state.deferred_keys:
        drain_deferred_keys(broker, config, state)

    # Everything below runs in the pipeline account
    broker.reset()

    if options.delete_pipeline:
        delete_pipeline_resources(plan, broker, config, state, sleep)

    if options.delete_installer:
        delete_installer_resources(plan, broker, config, state, sleep)

    if options.sweep_log_groups:
        sweep_leftover_log_groups(plan, broker, state)

    if (
        options.delete_bootstraps
        and plan.bootstrap_in_scope
        and not plan.management_account.is_external
    ):
        logger.info(
            f"Deleting bootstrap stack {plan.bootstrap_stack_name} from home region",
            extra={"account_id": plan.pipeline_account_id, "region": plan.home_region},
        )
        _delete_single_stack(plan, broker, config, state, plan.bootstrap_stack_name, sleep)

    if state.deferred_keys:
        drain_deferred_keys(broker, config, state)
    return state


def uninstall(
    options: UninstallOptions,
    broker: CredentialBroker | None = None,
    config: Config | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RunState:
    """Validate, plan and, unless this is a dry run, execute an uninstall."""
    config = config or Config()
    scope_from_options(options)
    broker = broker or CredentialBroker(
        partition=options.partition,
        cross_account_role_name=config.cross_account_role_name,
    )

    plan = build_plan(options, broker, config)
    for line in plan.describe():
        logger.info(line)

    if options.dry_run or config.dry_run:
        logger.info("[DRY-RUN] Plan built, nothing was deleted")
        return RunState()

    return execute_plan(plan, broker, config, sleep)

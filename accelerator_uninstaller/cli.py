"""Command line entry point for the accelerator uninstaller."""

from __future__ import annotations
import argparse
import sys
import time

from botocore.exceptions import BotoCoreError, ClientError

from .coordinator import uninstall
from .exceptions import ScopeValidationError, UninstallerError
from .models import UninstallOptions
from .models.options import DEFAULT_INSTALLER_STACK_NAME
from .pipeline import validate_options
from .utils import get_logger, set_debug

logger = get_logger()

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID_OPTIONS = 2


def _region_list(value: str) -> tuple[str, ...]:
    return tuple(region.strip() for region in value.split(",") if region.strip())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="accelerator-uninstaller",
        description="Tear down a deployed landing zone accelerator across accounts and regions",
    )
    parser.add_argument(
        "--installer-stack-name",
        default=DEFAULT_INSTALLER_STACK_NAME,
        help=f"Installer stack name (default: {DEFAULT_INSTALLER_STACK_NAME})",
    )
    parser.add_argument("--partition", default="aws", help="AWS partition (default: aws)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    scope = parser.add_argument_group("scope (exactly one is required)")
    scope.add_argument(
        "--full-destroy",
        action="store_true",
        help="Delete every accelerator stack, the pipeline, the installer and all data",
    )
    scope.add_argument(
        "--delete-accelerator",
        action="store_true",
        help="Delete the accelerator stacks, honouring the --keep-* flags",
    )
    scope.add_argument("--stage-name", help="Delete from this pipeline stage onwards")
    scope.add_argument("--action-name", help="Delete from this pipeline action onwards")

    parser.add_argument(
        "--keep-pipeline-and-config",
        action="store_true",
        help="Keep the pipeline stack and the configuration repository",
    )
    parser.add_argument(
        "--keep-data",
        action="store_true",
        help="Keep S3 buckets, log groups, KMS keys and backup vaults",
    )
    parser.add_argument(
        "--keep-bootstraps", action="store_true", help="Keep the CDK bootstrap stacks"
    )
    parser.add_argument(
        "--ignore-termination-protection",
        action="store_true",
        help="Disable termination protection on protected stacks instead of stopping",
    )
    parser.add_argument(
        "--home-region", help="Home region, instead of reading it from global-config.yaml"
    )
    parser.add_argument(
        "--enabled-regions",
        type=_region_list,
        default=(),
        help="Comma separated list of regions to clean",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the deletion plan without deleting anything",
    )
    return parser


def options_from_args(args: argparse.Namespace) -> UninstallOptions:
    return UninstallOptions(
        installer_stack_name=args.installer_stack_name,
        partition=args.partition,
        debug=args.debug,
        full_destroy=args.full_destroy,
        delete_accelerator=args.delete_accelerator,
        keep_pipeline_and_config=args.keep_pipeline_and_config,
        keep_data=args.keep_data,
        keep_bootstraps=args.keep_bootstraps,
        stage_name=args.stage_name,
        action_name=args.action_name,
        ignore_termination_protection=args.ignore_termination_protection,
        dry_run=args.dry_run,
        home_region=args.home_region,
        enabled_regions=tuple(args.enabled_regions),
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    options = options_from_args(args)
    set_debug(options.debug)

    try:
        validate_options(options)
    except ScopeValidationError as e:
        logger.error(str(e))
        return EXIT_INVALID_OPTIONS

    start = time.time()
    logger.info(
        "Starting accelerator uninstall",
        extra={
            "installer_stack_name": options.installer_stack_name,
            "partition": options.partition,
            "dry_run": options.dry_run,
        },
    )
    try:
        state = uninstall(options)
    except (UninstallerError, ClientError, BotoCoreError) as e:
        logger.error(
            f"Accelerator uninstall FAILED: {e}. Elapsed time - {time.time() - start:.1f}s"
        )
        return EXIT_FAILED
    except Exception as e:
        logger.error(
            f"Accelerator uninstall FAILED unexpectedly: {e}. "
            f"Elapsed time - {time.time() - start:.1f}s"
        )
        raise

    elapsed = time.time() - start
    if not state.succeeded:
        logger.error(
            f"Accelerator uninstall finished with {len(state.failures)} failed work item(s). "
            f"Elapsed time - {elapsed:.1f}s",
            extra={"failures": state.failures},
        )
        return EXIT_FAILED

    logger.info(
        f"Accelerator uninstall completed, {len(state.deleted_stacks)} stack(s) deleted. "
        f"Elapsed time - {elapsed:.1f}s"
    )
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

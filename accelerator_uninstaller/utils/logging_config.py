"""Powertools logger shared by every module of the uninstaller."""

from aws_lambda_powertools import Logger

from ..models.config import LOG_LEVEL

logger = Logger(service="accelerator-uninstaller", level=LOG_LEVEL)


def get_logger():
    """Shared logger; pass stack, account and region of a delete through ``extra``."""
    return logger


def set_debug(enabled: bool) -> None:
    """Switch to DEBUG for --debug, otherwise back to ``LOG_LEVEL``."""
    logger.setLevel("DEBUG" if enabled else LOG_LEVEL)

"""Errors raised by the uninstaller.

Anything derived from UninstallerError stops the run; "already absent"
conditions are absorbed where they are detected and never raised.
"""


class UninstallerError(Exception):
    """Base class for fatal uninstaller errors."""


class ScopeValidationError(UninstallerError):
    """Invalid or conflicting scope options."""


class PipelineNotFoundError(UninstallerError):
    """The installer or accelerator pipeline could not be found."""


class GlobalConfigError(UninstallerError):
    """The global configuration document could not be read."""


class TerminationProtectionError(UninstallerError):
    """A stack is protected and the operator did not ask for an override."""

    def __init__(self, stack_name: str, account_id: str = "", region: str = ""):
        self.stack_name = stack_name
        self.account_id = account_id
        self.region = region
        location = f" in {account_id} account from {region} region" if account_id else ""
        super().__init__(
            f"Uninstallation STOPPED, termination protection is enabled for "
            f"stack {stack_name}{location}"
        )


class StackDeletionError(UninstallerError):
    """A stack kept failing to delete after every retry."""

    def __init__(
        self, stack_name: str, account_id: str, region: str, attempts: int, reason: str = ""
    ):
        self.stack_name = stack_name
        self.account_id = account_id
        self.region = region
        self.attempts = attempts
        detail = f": {reason}" if reason else ""
        super().__init__(
            f"Stack {stack_name} in {account_id} account from {region} region "
            f"failed to delete after {attempts} attempt(s){detail}"
        )


class StackDeletionTimeoutError(StackDeletionError):
    """A stack stayed in DELETE_IN_PROGRESS for too long."""

"""CloudFormation stack deletion."""

from .deletion import (
    DeletionResult,
    StackDeletion,
    check_termination_protection,
    delete_stacks,
    describe_stack,
    poll_deletion,
    start_deletion,
)

__all__ = [
    "DeletionResult",
    "StackDeletion",
    "check_termination_protection",
    "delete_stacks",
    "describe_stack",
    "poll_deletion",
    "start_deletion",
]

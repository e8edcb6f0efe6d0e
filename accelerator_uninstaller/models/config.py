"""Configuration from environment variables."""

import os

# Configuration from environment variables
DRY_RUN = os.environ.get("DRY_RUN", "false").lower() == "true"

# Stack naming
ACCELERATOR_PREFIX = os.environ.get("ACCELERATOR_PREFIX", "AWSAccelerator")
DEFAULT_QUALIFIER = "aws-accelerator"
GLOBAL_CONFIG_FILE = os.environ.get("GLOBAL_CONFIG_FILE", "global-config.yaml")

# Cross-account access
CROSS_ACCOUNT_ROLE_NAME = os.environ.get(
    "CROSS_ACCOUNT_ROLE_NAME", "AWSControlTowerExecution"
)
ASSUME_ROLE_SESSION_NAME = "acceleratorAssumeRoleSession"
ASSUME_ROLE_DURATION_SECONDS = 3600

# Stack deletion polling and retry
POLL_INTERVAL_SECONDS = int(os.environ.get("POLL_INTERVAL_SECONDS", "15"))
MAX_POLL_ATTEMPTS = int(os.environ.get("MAX_POLL_ATTEMPTS", "240"))
MAX_DELETE_RETRIES = int(os.environ.get("MAX_DELETE_RETRIES", "3"))

# Transport-level throttling retries (botocore retry handler)
API_MAX_ATTEMPTS = int(os.environ.get("API_MAX_ATTEMPTS", "20"))

# Persistent resources
KMS_PENDING_WINDOW_DAYS = int(os.environ.get("KMS_PENDING_WINDOW_DAYS", "7"))
KEY_OWNER_STACK_SUFFIXES = tuple(
    s.strip()
    for s in os.environ.get("KEY_OWNER_STACK_SUFFIXES", "PrepareStack").split(",")
    if s.strip()
)

# IAM roles that other stacks attach policies to after creation; those
# attachments must be removed before CloudFormation can delete the role
BLOCKING_ROLE_PATTERN = os.environ.get("BLOCKING_ROLE_PATTERN", r"SessionManagerEC2Role")

# Logging configuration
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# Stages deployed only to the management account
MANAGEMENT_ACCOUNT_STAGES = {
    "prepare",
    "identity-center",
    "accounts",
    "organizations",
    "finalize",
}


class Config:
    """Configuration singleton."""

    def __init__(self):
        self.dry_run = DRY_RUN
        self.accelerator_prefix = ACCELERATOR_PREFIX
        self.global_config_file = GLOBAL_CONFIG_FILE
        self.cross_account_role_name = CROSS_ACCOUNT_ROLE_NAME
        self.poll_interval_seconds = POLL_INTERVAL_SECONDS
        self.max_poll_attempts = MAX_POLL_ATTEMPTS
        self.max_delete_retries = MAX_DELETE_RETRIES
        self.kms_pending_window_days = KMS_PENDING_WINDOW_DAYS
        self.key_owner_stack_suffixes = KEY_OWNER_STACK_SUFFIXES
        self.blocking_role_pattern = BLOCKING_ROLE_PATTERN
        self.management_account_stages = MANAGEMENT_ACCOUNT_STAGES

"""Accelerator uninstaller: tears down a deployed landing zone accelerator."""

__version__ = "0.1.0"

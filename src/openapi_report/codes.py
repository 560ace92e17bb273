"""Process exit code constants for openapi-report commands.

These constants prevent magic numbers and keep the CLI and the
programmatic API on the same exit contract.
"""

from enum import Enum


class ExitCode(int, Enum):
    """Exit codes returned by diff commands."""

    OK = 0  # No breaking changes
    USAGE_ERROR = 1  # Bad arguments, unreadable or undecodable input
    BREAKING_CHANGES = 2  # At least one Breaking change record

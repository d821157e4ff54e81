"""Errors raised while resolving the Tower setup configuration.

Each error carries the process exit code ``configure.py`` terminates with.
"""


class SetupError(Exception):
    """Base class for errors that end a setup run."""

    exit_code = 1


class PrerequisiteMissing(SetupError):
    """Required tooling (Ansible, PyYAML) is not installed."""

    exit_code = 32


class PrerequisiteTooOld(SetupError):
    """Required tooling is installed but older than supported."""

    exit_code = 33


class ConflictingOptions(SetupError):
    """Mutually exclusive command line options were given together."""

    exit_code = 64


class OptionsFileError(SetupError):
    """The named options file is missing, unreadable or malformed."""

    exit_code = 40


class ConfigValidationError(OptionsFileError):
    """A configuration value breaks one of the configuration invariants."""

    def __init__(self, key: str, message: str):
        super().__init__(f"Invalid value for '{key}': {message}")
        self.key = key


class DatabaseConnectionError(SetupError):
    """The external PostgreSQL database rejected the supplied details."""

    exit_code = 1


class WriteInterrupted(SetupError):
    """Ctrl-C arrived while the settings and inventory files were being written."""

    exit_code = 130


class ReviewDeclined(SetupError):
    """The operator answered "no" at the review step."""

    exit_code = 10

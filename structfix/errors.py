"""
Exception types raised by the remediation engine and its PDF collaborators.

Detection never raises for ordinary defects; these exceptions cover engine
misconfiguration, malformed fix targets and unreadable input files.
"""


class StructFixError(Exception):
    """Base class for all structfix errors."""


class VisitorConfigurationError(StructFixError, ValueError):
    """A visitor's prerequisites are missing or registered after it."""


class FixApplicationError(StructFixError):
    """A fix could not be applied to its target."""


class DocumentLoadError(StructFixError):
    """The input document could not be opened or its tag tree read."""

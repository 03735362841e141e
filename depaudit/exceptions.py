"""Custom exceptions for depaudit."""

from __future__ import annotations

from collections.abc import Iterable


class DepAuditError(Exception):
    """Base exception for all depaudit errors."""


class ResolveError(DepAuditError):
    """Raised when a manifest cannot be resolved.

    Carries the issues accumulated before the failure so callers never lose
    advisory findings for a file that ultimately failed.
    """

    def __init__(self, message: str, issues: Iterable = ()):
        self.issues = list(issues)
        super().__init__(message)


class UnknownManifestError(ResolveError):
    """Raised when a file name has no registered resolver."""

    def __init__(self, location: str):
        self.location = location
        super().__init__(f"no resolver registered for '{location}'")


class FileReadError(ResolveError):
    """Raised when the file reader cannot provide a location."""


class ManifestParseError(ResolveError):
    """Raised when a manifest document or line is malformed."""

    def __init__(self, location: str, reason: str, issues: Iterable = ()):
        self.location = location
        self.reason = reason
        super().__init__(f"cannot parse {location}: {reason}", issues)


class BuildToolError(ResolveError):
    """Raised when the external build tool fails for a root project."""

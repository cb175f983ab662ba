"""Launcher exception classes.

process-launcher v0.1.0
"""

from __future__ import annotations

from enum import Enum

__all__ = [
    "LauncherError",
    "InvalidArgumentError",
    "CoreError",
    "Severity",
]


class Severity(Enum):
    """Severity carried by a CoreError."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LauncherError(Exception):
    """Base exception for the launcher."""
    pass


class InvalidArgumentError(LauncherError, ValueError):
    """Caller error detected before any I/O (empty command, bad directory)."""
    pass


class CoreError(LauncherError):
    """Operational failure (environment resolution, spawn, process state).

    Attributes:
        message: Error message
        severity: Error severity
        cause: Underlying exception, if any
    """

    def __init__(
        self,
        message: str,
        severity: Severity = Severity.ERROR,
        cause: BaseException | None = None,
    ) -> None:
        self.message = message
        self.severity = severity
        self.cause = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

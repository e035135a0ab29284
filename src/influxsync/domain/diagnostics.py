"""Collected diagnostics for one reconciliation pass."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum

log = logging.getLogger(__name__)


class Severity(StrEnum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


_LEVELS = {
    Severity.DEBUG: logging.DEBUG,
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


@dataclass(frozen=True, slots=True)
class Diagnostic:
    severity: Severity
    message: str


@dataclass(slots=True)
class Diagnostics:
    """Ordered list of ``{severity, message}`` entries, mirrored to ``logging``.

    Operations receive the collector explicitly so callers (and tests) can read
    back exactly what was reported without patching a logger.
    """

    entries: list[Diagnostic] = field(default_factory=list["Diagnostic"])
    logger: logging.Logger = field(default=log, repr=False)

    def report(self, severity: Severity, message: str) -> None:
        self.entries.append(Diagnostic(severity, message))
        self.logger.log(_LEVELS[severity], "%s", message)

    def debug(self, message: str) -> None:
        self.report(Severity.DEBUG, message)

    def info(self, message: str) -> None:
        self.report(Severity.INFO, message)

    def warning(self, message: str) -> None:
        self.report(Severity.WARNING, message)

    def error(self, message: str) -> None:
        self.report(Severity.ERROR, message)

    def messages(self, severity: Severity) -> list[str]:
        return [entry.message for entry in self.entries if entry.severity is severity]

    @property
    def warnings(self) -> list[str]:
        return self.messages(Severity.WARNING)

    @property
    def errors(self) -> list[str]:
        return self.messages(Severity.ERROR)

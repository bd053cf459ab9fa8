"""
core/errors.py -- Exception hierarchy for the Defender status report tool.

Only HostListError and EmptyResultError escape to the CLI. Per-host errors
(StatusQueryError) are contained by the probe and collector, and mail
failures (MailDeliveryError) are logged by the writer.
"""

from __future__ import annotations


class DefenderReportError(Exception):
    """Base error for the report pipeline."""


class HostListError(DefenderReportError):
    """Raised when the host list is missing, empty, or malformed."""

    def __init__(self, message: str, line: int | None = None) -> None:
        self.line = line
        super().__init__(f"line {line}: {message}" if line else message)


class StatusQueryError(DefenderReportError):
    """Raised when a reachable host fails to return its protection status."""

    def __init__(self, host: str, message: str) -> None:
        self.host = host
        super().__init__(message)


class EmptyResultError(DefenderReportError):
    """Raised when a full collection pass produced no status records."""

    def __init__(self, attempted: int) -> None:
        self.attempted = attempted
        super().__init__(f"No status records collected from {attempted} host(s)")


class MailDeliveryError(DefenderReportError):
    """Raised when the mail transport rejects or cannot send a report."""

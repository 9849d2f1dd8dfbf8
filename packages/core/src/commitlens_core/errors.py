"""Error taxonomy for a review run.

Every failure the pipeline can surface is a ReviewError carrying an ErrorKind.
The kind owns the stable code printed by the CLI and decides whether the run
counts as a crash or as a clean no-op exit.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    CONFIG_INVALID = ("1001", "Configuration is invalid", True)
    INSUFFICIENT_HISTORY = ("2002", "Not enough commit history to compute a diff", False)
    CHANGE_SOURCE_FAILED = ("2004", "Could not read changes from the repository", True)
    REQUEST_FAILED = ("3001", "Request to the review backend failed", True)
    BACKEND_REJECTED = ("4001", "Review backend rejected the request", True)
    RESPONSE_MALFORMED = ("4002", "Review backend returned a malformed response", True)
    RESPONSE_EMPTY = ("4003", "Review backend returned an empty review", True)
    REPORT_PERSIST_FAILED = ("5001", "Could not persist the review report", True)
    NOTIFICATION_FAILED = ("6001", "Notification delivery failed", False)

    def __init__(self, code: str, default_message: str, fatal: bool):
        self.code = code
        self.default_message = default_message
        self.fatal = fatal


class ReviewError(Exception):
    """Base class for every error the review run reports to its caller."""

    kind: ErrorKind = ErrorKind.REQUEST_FAILED

    def __init__(self, detail: str | None = None):
        self.detail = detail
        message = self.kind.default_message
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)

    @property
    def code(self) -> str:
        return self.kind.code

    @property
    def fatal(self) -> bool:
        return self.kind.fatal

    def __str__(self) -> str:
        return f"[{self.code}] {self.args[0]}"


class ConfigInvalid(ReviewError):
    kind = ErrorKind.CONFIG_INVALID


class InsufficientHistory(ReviewError):
    kind = ErrorKind.INSUFFICIENT_HISTORY


class ChangeSourceFailed(ReviewError):
    kind = ErrorKind.CHANGE_SOURCE_FAILED


class RequestFailed(ReviewError):
    kind = ErrorKind.REQUEST_FAILED

    def __init__(self, detail: str | None = None, attempts: int = 0):
        self.attempts = attempts
        super().__init__(detail)


class BackendRejected(ReviewError):
    kind = ErrorKind.BACKEND_REJECTED

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        # Error bodies can be whole HTML pages; keep the message readable.
        snippet = body if len(body) <= 500 else body[:500] + "..."
        super().__init__(f"HTTP {status}: {snippet}")


class ResponseMalformed(ReviewError):
    kind = ErrorKind.RESPONSE_MALFORMED


class ResponseEmpty(ReviewError):
    kind = ErrorKind.RESPONSE_EMPTY


class ReportPersistFailed(ReviewError):
    kind = ErrorKind.REPORT_PERSIST_FAILED


class NotificationError(ReviewError):
    """Raised by a notifier's send(); the fan-out logs it and moves on."""

    kind = ErrorKind.NOTIFICATION_FAILED

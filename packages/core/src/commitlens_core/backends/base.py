"""Review backend interface.

A backend performs exactly one HTTP round trip to a chat-completion endpoint
and reports what happened in transport terms:

  - a response of any status      → BackendResponse(status, body)
  - the request never completed   → TransportError (or one of its subclasses)

Backends never retry and never interpret the response body. Classifying the
outcome, parsing the envelope and backing off all live in RetryingReviewClient
so the policy is defined once for every backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class BackendResponse:
    status: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class TransportError(Exception):
    """The request did not produce an HTTP response.

    ``replayable`` is False when the failed attempt consumed a request body
    that cannot be sent again; the client must not retry such a request.
    """

    def __init__(self, message: str, replayable: bool = True):
        super().__init__(message)
        self.replayable = replayable


class HostUnreachable(TransportError):
    """Host name resolution failed. Retrying will not help."""


class RequestInterrupted(TransportError):
    """The request was cancelled or interrupted by the caller.

    The bundled backends have no interruption path of their own; custom
    backends that support cancellation raise this so the client fails fast.
    """


class BaseBackend(ABC):
    @abstractmethod
    def send(self, payload: dict) -> BackendResponse:
        """Send one chat-completion request and return the raw response.

        Raises TransportError when no response was received.
        """

    def close(self) -> None:
        """Release pooled connections. Default is a no-op."""

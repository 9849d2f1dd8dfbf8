"""Retrying caller around a single review backend request.

Outcome classification per attempt:

    non-2xx status                      → BackendRejected   (no retry)
    body not JSON / envelope incomplete → ResponseMalformed (no retry)
    no choices / blank content          → ResponseEmpty     (no retry)
    HostUnreachable, RequestInterrupted → RequestFailed     (no retry)
    TransportError, replayable          → back off, retry
    TransportError, not replayable      → RequestFailed     (no retry)
    any other exception from send()     → RequestFailed     (no retry)

Backoff is base_delay * 2**(attempt-1): 1s, 2s, 4s for the defaults.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass

from commitlens_core.backends.base import BackendResponse, BaseBackend, HostUnreachable, RequestInterrupted, TransportError
from commitlens_core.errors import BackendRejected, RequestFailed, ResponseEmpty, ResponseMalformed, ReviewError

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0


@dataclass
class _RetryState:
    attempt: int = 0
    last_error: ReviewError | TransportError | None = None


def extract_content(body: str) -> str:
    """Pull ``choices[0].message.content`` out of a chat-completion envelope."""
    try:
        envelope = json.loads(body)
    except (json.JSONDecodeError, TypeError) as e:
        raise ResponseMalformed(f"response body is not JSON: {e}")

    if not isinstance(envelope, dict) or "choices" not in envelope:
        raise ResponseMalformed("response has no 'choices' field")
    choices = envelope["choices"]
    if not isinstance(choices, list):
        raise ResponseMalformed("'choices' is not a list")
    if not choices:
        raise ResponseEmpty("response has no choices")

    choice = choices[0]
    if not isinstance(choice, dict) or not isinstance(choice.get("message"), dict):
        raise ResponseMalformed("first choice has no 'message' field")
    message = choice["message"]
    if "content" not in message:
        raise ResponseMalformed("message has no 'content' field")

    content = message["content"]
    if content is None or not str(content).strip():
        raise ResponseEmpty("message content is empty")
    return str(content)


class RetryingReviewClient:
    """Turns one "review this prompt" request into a resilient round trip.

    Holds no state between calls; each call() owns its own retry state.
    ``cancel_event`` lets a caller abort a pending backoff from another thread.
    """

    def __init__(
        self,
        backend: BaseBackend,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 4000,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY,
        cancel_event: threading.Event | None = None,
    ):
        self.backend = backend
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.max_attempts = max_retries + 1
        self.base_delay = base_delay
        self.cancel_event = cancel_event if cancel_event is not None else threading.Event()

    def build_payload(self, prompt: str) -> dict:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    def call(self, prompt: str) -> str:
        payload = self.build_payload(prompt)
        state = _RetryState()

        while state.attempt < self.max_attempts:
            if self.cancel_event.is_set():
                raise RequestFailed("review request was cancelled", attempts=state.attempt)

            state.attempt += 1
            started = time.monotonic()
            try:
                response = self.backend.send(payload)
            except (HostUnreachable, RequestInterrupted) as e:
                self._log_attempt(state.attempt, started, f"fatal transport error: {e}")
                raise RequestFailed(str(e), attempts=state.attempt) from e
            except TransportError as e:
                state.last_error = e
                self._log_attempt(state.attempt, started, f"transport error: {e}")
                if not e.replayable:
                    raise RequestFailed(f"request is not replayable: {e}", attempts=state.attempt) from e
                if state.attempt >= self.max_attempts:
                    break
                self._backoff(state)
                continue
            except Exception as e:
                # Anything else from a backend is a bug, never retried.
                self._log_attempt(state.attempt, started, f"unexpected backend error: {e!r}")
                logger.exception("Review backend raised an unexpected error")
                raise RequestFailed(f"backend error: {type(e).__name__}: {e}", attempts=state.attempt) from e

            try:
                content = self._handle_response(response)
            except ReviewError as e:
                self._log_attempt(state.attempt, started, f"{e.kind.name.lower()}")
                raise
            self._log_attempt(state.attempt, started, "ok")
            if state.attempt > 1:
                logger.info("Review request succeeded after %d attempt(s)", state.attempt)
            return content

        logger.error("Review request failed after %d attempt(s): %s", state.attempt, state.last_error)
        raise RequestFailed(
            f"gave up after {state.attempt} attempt(s): {state.last_error}",
            attempts=state.attempt,
        ) from state.last_error

    def _handle_response(self, response: BackendResponse) -> str:
        if not response.ok:
            raise BackendRejected(response.status, response.body)
        return extract_content(response.body)

    def _backoff(self, state: _RetryState) -> None:
        delay = self.base_delay * (2 ** (state.attempt - 1))
        logger.warning(
            "Review request failed (attempt %d/%d): %s. Retrying in %.1fs...",
            state.attempt,
            self.max_attempts,
            state.last_error,
            delay,
        )
        # Event.wait doubles as an interruptible sleep.
        if self.cancel_event.wait(delay):
            raise RequestFailed("cancelled while waiting to retry", attempts=state.attempt) from state.last_error

    def _log_attempt(self, attempt: int, started: float, outcome: str) -> None:
        elapsed_ms = (time.monotonic() - started) * 1000
        logger.info("Review request attempt %d/%d took %.0fms: %s", attempt, self.max_attempts, elapsed_ms, outcome)


def build_backend(config: dict) -> BaseBackend:
    backend = config.get("backend", "http")
    kwargs = {
        "api_url": config["api_url"],
        "api_key": config["api_key"],
        "connect_timeout": config.get("connect_timeout", 10),
        "read_timeout": config.get("read_timeout", 30),
    }
    if backend == "http":
        from commitlens_core.backends.http import HttpBackend

        return HttpBackend(**kwargs)
    if backend == "openai":
        from commitlens_core.backends.openai import OpenAIBackend

        return OpenAIBackend(**kwargs)
    raise ValueError(f"Unknown backend: {backend!r}. Choose 'http' or 'openai'.")


def build_client(config: dict, backend: BaseBackend | None = None) -> RetryingReviewClient:
    return RetryingReviewClient(
        backend=backend if backend is not None else build_backend(config),
        model=config["model"],
        temperature=float(config.get("temperature", 0.7)),
        max_tokens=int(config.get("max_tokens", 4000)),
        max_retries=int(config.get("max_retries", DEFAULT_MAX_RETRIES)),
        base_delay=float(config.get("retry_base_delay", DEFAULT_BASE_DELAY)),
    )

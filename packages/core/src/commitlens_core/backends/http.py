from __future__ import annotations

import json
import logging

import requests

from commitlens_core.backends.base import BackendResponse, BaseBackend, HostUnreachable, TransportError

logger = logging.getLogger(__name__)

_DNS_MARKERS = ("NameResolutionError", "Name or service not known", "nodename nor servname", "getaddrinfo failed")


def _is_name_resolution_failure(exc: BaseException) -> bool:
    # requests wraps urllib3's NameResolutionError inside a MaxRetryError;
    # the original type only survives in the rendered message.
    current: BaseException | None = exc
    while current is not None:
        if any(marker in f"{type(current).__name__}: {current}" for marker in _DNS_MARKERS):
            return True
        current = current.__cause__
    return False


class HttpBackend(BaseBackend):
    """POSTs the payload as JSON to an OpenAI-compatible chat-completions URL."""

    def __init__(self, api_url: str, api_key: str, connect_timeout: float = 10, read_timeout: float = 30):
        self.api_url = api_url
        self.timeout = (connect_timeout, read_timeout)
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )

    def send(self, payload: dict) -> BackendResponse:
        # Encoded up front so every attempt sends the same replayable bytes.
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        logger.debug("POST %s (%d bytes)", self.api_url, len(body))
        try:
            response = self.session.post(self.api_url, data=body, timeout=self.timeout)
        except requests.exceptions.ConnectionError as e:
            if _is_name_resolution_failure(e):
                raise HostUnreachable(f"cannot resolve host for {self.api_url}: {e}") from e
            raise TransportError(f"connection failed: {e}") from e
        except requests.exceptions.Timeout as e:
            raise TransportError(f"request timed out: {e}") from e
        except requests.exceptions.ChunkedEncodingError as e:
            raise TransportError(f"connection broken while reading the response: {e}") from e
        except requests.exceptions.RequestException as e:
            # InvalidURL, TooManyRedirects and friends: not a transient failure.
            raise TransportError(f"request could not be sent: {e}", replayable=False) from e

        return BackendResponse(status=response.status_code, body=response.text)

    def close(self) -> None:
        self.session.close()

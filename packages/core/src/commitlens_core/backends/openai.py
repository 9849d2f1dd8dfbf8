from __future__ import annotations

try:
    import openai as _openai
    from openai import OpenAI as _OpenAI
except ImportError:
    _openai = None  # type: ignore[assignment]
    _OpenAI = None  # type: ignore[assignment,misc]

from commitlens_core.backends.base import BackendResponse, BaseBackend, HostUnreachable, TransportError
from commitlens_core.backends.http import _is_name_resolution_failure

_COMPLETIONS_SUFFIX = "/chat/completions"


def _base_url(api_url: str) -> str:
    # The SDK appends /chat/completions itself.
    url = api_url.rstrip("/")
    if url.endswith(_COMPLETIONS_SUFFIX):
        url = url[: -len(_COMPLETIONS_SUFFIX)]
    return url


class OpenAIBackend(BaseBackend):
    """Sends the request through the official openai SDK.

    The SDK's own retry loop is disabled (max_retries=0) so RetryingReviewClient
    stays the only place that decides whether to try again.
    """

    def __init__(self, api_url: str, api_key: str, connect_timeout: float = 10, read_timeout: float = 30):
        if _OpenAI is None:
            raise ImportError(
                "The 'openai' package is required for this backend. "
                "Install it with: pip install 'commitlens[openai]'"
            )
        import httpx

        self.client = _OpenAI(
            api_key=api_key,
            base_url=_base_url(api_url),
            max_retries=0,
            timeout=httpx.Timeout(read_timeout, connect=connect_timeout),
        )

    def send(self, payload: dict) -> BackendResponse:
        try:
            raw = self.client.chat.completions.with_raw_response.create(**payload)
        except _openai.APIStatusError as e:
            return BackendResponse(status=e.status_code, body=e.response.text)
        except _openai.APITimeoutError as e:
            raise TransportError(f"request timed out: {e}") from e
        except _openai.APIConnectionError as e:
            if _is_name_resolution_failure(e):
                raise HostUnreachable(f"cannot resolve host: {e}") from e
            raise TransportError(f"connection failed: {e}") from e

        return BackendResponse(status=raw.http_response.status_code, body=raw.http_response.text)

    def close(self) -> None:
        self.client.close()

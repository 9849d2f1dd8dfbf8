"""WeChat official-account template message notifier.

Access tokens are valid for ``expires_in`` seconds (7200 by default) and are
rate-limited by WeChat, so each notifier instance caches its own token and
refreshes it five minutes before expiry. The cache lives on the instance, and
the clock is injectable so expiry can be tested without waiting.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from typing import TYPE_CHECKING, Callable

import requests

from commitlens_core.errors import NotificationError
from commitlens_core.notifiers.base import BaseNotifier

if TYPE_CHECKING:
    from commitlens_core.message import NotificationMessage

logger = logging.getLogger(__name__)

TOKEN_URL = "https://api.weixin.qq.com/cgi-bin/token"
SEND_TEMPLATE_URL = "https://api.weixin.qq.com/cgi-bin/message/template/send"

DEFAULT_TOKEN_TTL = 7200
TOKEN_REFRESH_BUFFER = 5 * 60
_TEXT_COLOR = "#173177"
_UNKNOWN = "unknown"


class WeChatNotifier(BaseNotifier):
    def __init__(
        self,
        app_id: str | None,
        app_secret: str | None,
        open_id: str | None,
        template_id: str | None,
        timeout: float = 10,
        clock: Callable[[], float] = time.time,
        session: requests.Session | None = None,
    ):
        self.app_id = app_id
        self.app_secret = app_secret
        self.open_id = open_id
        self.template_id = template_id
        self.timeout = timeout
        self._clock = clock
        self._session = session or requests.Session()
        self._token: str | None = None
        self._token_expires_at = 0.0
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: dict) -> WeChatNotifier:
        wechat = config.get("wechat") or {}
        return cls(
            app_id=wechat.get("app_id"),
            app_secret=wechat.get("app_secret"),
            open_id=wechat.get("open_id"),
            template_id=wechat.get("template_id"),
        )

    def is_enabled(self) -> bool:
        return all((self.app_id, self.app_secret, self.open_id, self.template_id))

    def send(self, message: NotificationMessage) -> None:
        token = self.get_access_token()
        payload = self.build_template_message(message)
        try:
            response = self._session.post(
                SEND_TEMPLATE_URL,
                params={"access_token": token},
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise NotificationError(f"WeChat template message request failed: {e}") from e

        data = self._json_or_raise(response, "send template message")
        if data.get("errcode", 0) != 0:
            raise NotificationError(f"WeChat rejected the template message: [{data.get('errcode')}] {data.get('errmsg')}")
        logger.info("WeChat notification sent to %s", self.open_id)

    def get_access_token(self) -> str:
        """Return the cached access token, fetching a new one once it is about to expire."""
        with self._lock:
            now = self._clock()
            if self._token is not None and now < self._token_expires_at:
                logger.debug("Using cached WeChat access token")
                return self._token

            logger.info("Fetching WeChat access token")
            try:
                response = self._session.get(
                    TOKEN_URL,
                    params={"grant_type": "client_credential", "appid": self.app_id, "secret": self.app_secret},
                    timeout=self.timeout,
                )
            except requests.exceptions.RequestException as e:
                raise NotificationError(f"WeChat access token request failed: {e}") from e

            data = self._json_or_raise(response, "fetch access token")
            if "errcode" in data and data["errcode"] != 0:
                raise NotificationError(f"WeChat access token error: [{data['errcode']}] {data.get('errmsg', '')}")
            if not data.get("access_token"):
                raise NotificationError("WeChat access token response has no access_token")

            expires_in = int(data.get("expires_in", DEFAULT_TOKEN_TTL))
            self._token = data["access_token"]
            self._token_expires_at = now + expires_in - TOKEN_REFRESH_BUFFER
            return self._token

    def build_template_message(self, message: NotificationMessage) -> dict:
        meta = message.metadata
        branch = _env("BRANCH_NAME") or _env("GITHUB_REF_NAME") or _env("GITHUB_REF") or _UNKNOWN
        branch = branch.removeprefix("refs/heads/")
        data = {
            "repo_name": _env("REPO_NAME") or _env("GITHUB_REPOSITORY") or _UNKNOWN,
            "branch_name": branch,
            "commit_author": _env("COMMIT_AUTHOR") or meta.get("authorName") or _UNKNOWN,
            "commit_message": _env("COMMIT_MESSAGE") or meta.get("commitMessage") or _UNKNOWN,
            "issue_stats": meta.get("issueStats") or _UNKNOWN,
        }
        template = {
            "touser": self.open_id,
            "template_id": self.template_id,
            "data": {key: {"value": value, "color": _TEXT_COLOR} for key, value in data.items()},
        }
        if message.link_url:
            template["url"] = message.link_url
        return template

    @staticmethod
    def _json_or_raise(response: requests.Response, action: str) -> dict:
        if response.status_code != 200:
            raise NotificationError(f"WeChat {action} failed with HTTP {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            raise NotificationError(f"WeChat {action} returned invalid JSON: {e}") from e


def _env(name: str) -> str | None:
    value = os.environ.get(name, "").strip()
    return value or None

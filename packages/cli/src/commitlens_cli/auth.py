"""GitHub token resolution for the github report store.

Resolution order (stops at first success):
  1. ``github_token`` already in config (load_config copies GITHUB_TOKEN there)
  2. GITHUB_TOKEN environment variable
  3. `gh auth token`, reusing a GitHub CLI session on developer machines
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)

_GH_TIMEOUT = 5


def _gh_cli_token() -> str | None:
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=_GH_TIMEOUT,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        logger.debug("gh CLI unavailable; no token from a gh session")
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def resolve_github_token(config: dict | None = None) -> str | None:
    """Return a GitHub token or None.

    Never raises; validate_config reports a missing token when one is needed.
    """
    token = (config or {}).get("github_token") or os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    token = _gh_cli_token()
    if token:
        logger.debug("Resolved GitHub token via gh CLI session.")
    return token

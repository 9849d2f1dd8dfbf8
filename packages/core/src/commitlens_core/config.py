import os
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import yaml

from commitlens_core.errors import ConfigInvalid

DEFAULT_API_URL = "https://dashscope.aliyuncs.com/compatible-mode/v1/chat/completions"

BACKENDS = ("http", "openai")
REPORT_STORES = ("local", "github", "noop")

DEFAULT_CONFIG: dict = {
    "backend": "http",
    "api_url": DEFAULT_API_URL,
    "api_key_env": "OPENAI_API_KEY",
    "model": "qwen-flash",
    "temperature": 0.7,
    "max_tokens": 4000,
    "max_retries": 3,
    "retry_base_delay": 1.0,
    "connect_timeout": 10,
    "read_timeout": 30,
    "repo_path": None,  # None = current working directory
    "prompt_template": None,  # None = built-in prompt; set to a path string to override
    "max_diff_chars": None,  # None = send the whole diff
    "report_store": "local",
    "report_dir": "code-review-reports",
    "report_repo": None,  # owner/name of the repository that receives reports (github store)
    "report_branch": "main",
    "report_repo_url": None,  # base URL used to build report links in notifications
    "notify_console": False,
}

_ENV_OVERRIDES = {
    "COMMITLENS_API_URL": "api_url",
    "COMMITLENS_MODEL": "model",
    "COMMITLENS_REPORT_DIR": "report_dir",
    "COMMITLENS_REPORT_REPO": "report_repo",
    "COMMITLENS_REPORT_REPO_URL": "report_repo_url",
}

_WECHAT_ENV = {
    "app_id": "WECHAT_APP_ID",
    "app_secret": "WECHAT_APP_SECRET",
    "open_id": "WECHAT_OPEN_ID",
    "template_id": "WECHAT_TEMPLATE_ID",
}

# (key, type, zero allowed); coerced in place by validate_config.
_NUMERIC_KEYS = (
    ("temperature", float, True),
    ("max_tokens", int, False),
    ("max_retries", int, True),
    ("retry_base_delay", float, True),
    ("connect_timeout", float, False),
    ("read_timeout", float, False),
    ("max_diff_chars", int, False),
)


def load_config(config_path: str = ".commitlens.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .commitlens.yml in the current directory
      3. COMMITLENS_* environment variables
      4. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            try:
                file_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigInvalid(f"{config_path} is not valid YAML: {e}")
        if not isinstance(file_config, dict):
            raise ConfigInvalid(f"{config_path} must contain a mapping at the top level")
        config.update(file_config)

    for env_name, key in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            config[key] = value

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Resolve credentials from environment variables
    config["api_key"] = config.get("api_key") or os.environ.get(config["api_key_env"])
    config["github_token"] = os.environ.get("GITHUB_TOKEN")

    wechat = dict(config.get("wechat") or {})
    for key, env_name in _WECHAT_ENV.items():
        wechat[key] = wechat.get(key) or os.environ.get(env_name)
    config["wechat"] = wechat

    return config


def validate_config(config: dict) -> None:
    """Reject configuration the pipeline cannot run with.

    Called once at startup, before any collaborator is constructed.
    """
    if not config.get("api_key"):
        raise ConfigInvalid(f"no API key found; set the {config.get('api_key_env', 'OPENAI_API_KEY')} environment variable")

    api_url = config.get("api_url") or ""
    parsed = urlparse(api_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigInvalid(f"api_url must be an http(s) URL, got {api_url!r}")

    if not str(config.get("model") or "").strip():
        raise ConfigInvalid("model must not be empty")

    if config.get("backend") not in BACKENDS:
        raise ConfigInvalid(f"unknown backend {config.get('backend')!r}; choose one of {', '.join(BACKENDS)}")

    if config.get("report_store") not in REPORT_STORES:
        raise ConfigInvalid(
            f"unknown report_store {config.get('report_store')!r}; choose one of {', '.join(REPORT_STORES)}"
        )

    for key, cast, allow_zero in _NUMERIC_KEYS:
        value = config.get(key, DEFAULT_CONFIG[key])
        if value is None and key == "max_diff_chars":
            continue
        try:
            number = cast(value)
        except (TypeError, ValueError):
            raise ConfigInvalid(f"{key} must be a number, got {value!r}")
        if number < 0 or (number == 0 and not allow_zero):
            bound = "must not be negative" if allow_zero else "must be greater than zero"
            raise ConfigInvalid(f"{key} {bound}, got {value!r}")
        config[key] = number

    if config.get("report_store") == "github":
        if not config.get("report_repo"):
            raise ConfigInvalid("report_store 'github' requires report_repo (owner/name)")
        if not config.get("github_token"):
            raise ConfigInvalid("report_store 'github' requires a GitHub token (GITHUB_TOKEN or `gh auth login`)")


def load_prompt_template(config: dict) -> str:
    """
    Load the review prompt template.

    If ``prompt_template`` is set in config, loads from that path (relative to cwd).
    Otherwise falls back to the built-in template.
    """
    from commitlens_core.prompt import DEFAULT_PROMPT_TEMPLATE, DIFF_PLACEHOLDER

    custom_path = config.get("prompt_template")
    if not custom_path:
        return DEFAULT_PROMPT_TEMPLATE

    p = Path(custom_path)
    if not p.exists():
        raise ConfigInvalid(f"prompt template file not found: {custom_path}")
    template = p.read_text(encoding="utf-8")
    if DIFF_PLACEHOLDER not in template:
        raise ConfigInvalid(f"prompt template {custom_path} must contain {DIFF_PLACEHOLDER}")
    return template

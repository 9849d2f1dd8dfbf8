"""init command: setup wizard.

Writes .commitlens.yml and optionally .github/workflows/commitlens.yml so
every push to the repository gets its newest commit reviewed in CI.
"""

from __future__ import annotations

import importlib.metadata
import logging
import subprocess
from pathlib import Path

import click
import yaml
from rich.console import Console

from commitlens_core.config import DEFAULT_API_URL, DEFAULT_CONFIG

console = Console()
logger = logging.getLogger(__name__)

CONFIG_FILE = ".commitlens.yml"
WORKFLOW_FILE = Path(".github/workflows/commitlens.yml")

# fetch-depth 2: the review diffs HEAD against its parent.
_WORKFLOW_TEMPLATE = """\
name: Commit Review

on:
  push:
    branches: [{branch}]

jobs:
  review:
    runs-on: ubuntu-latest
    permissions:
      contents: {contents_permission}

    steps:
      - uses: actions/checkout@v4
        with:
          fetch-depth: 2

      - name: Set up Python
        uses: actions/setup-python@v5
        with:
          python-version: "3.12"

      - name: Install commitlens
        run: pip install "commitlens{extra}=={version}"

      - name: Review latest commit
        env:
          {api_key_env}: ${{{{ secrets.{api_key_env} }}}}
          GITHUB_TOKEN: ${{{{ secrets.GITHUB_TOKEN }}}}
          WECHAT_APP_ID: ${{{{ secrets.WECHAT_APP_ID }}}}
          WECHAT_APP_SECRET: ${{{{ secrets.WECHAT_APP_SECRET }}}}
          WECHAT_OPEN_ID: ${{{{ secrets.WECHAT_OPEN_ID }}}}
          WECHAT_TEMPLATE_ID: ${{{{ secrets.WECHAT_TEMPLATE_ID }}}}
          REPO_NAME: ${{{{ github.repository }}}}
          BRANCH_NAME: ${{{{ github.ref_name }}}}
          COMMIT_AUTHOR: ${{{{ github.event.head_commit.author.name }}}}
          COMMIT_MESSAGE: ${{{{ github.event.head_commit.message }}}}
        run: commitlens review
"""


@click.command("init")
@click.option("--repo", default=None, help="GitHub repository (owner/name). Auto-detected from git remote.")
def init_cmd(repo: str | None):
    """Set up commitlens for this repository.

    Creates .commitlens.yml and, optionally, a GitHub Actions workflow that
    reviews every push.
    """
    console.print("\n[bold cyan]commitlens init[/bold cyan]: setup wizard\n")

    if repo is None:
        repo = _detect_repo_from_git()
        if repo:
            console.print(f"[dim]Detected repository: {repo}[/dim]")

    backend = click.prompt(
        "Backend",
        type=click.Choice(["http", "openai"]),
        default=DEFAULT_CONFIG["backend"],
    )
    api_url = click.prompt("Chat-completion endpoint URL", default=DEFAULT_API_URL)
    model = click.prompt("Model", default=DEFAULT_CONFIG["model"])
    api_key_env = click.prompt("Environment variable holding the API key", default=DEFAULT_CONFIG["api_key_env"])

    console.print("\nWhere should review reports go?")
    console.print("  [bold]local[/bold]  : markdown files under code-review-reports/ (default)")
    console.print("  [bold]github[/bold] : committed to a GitHub repository through the API")
    console.print("  [bold]noop[/bold]   : not saved")
    report_store = click.prompt(
        "Report store",
        type=click.Choice(["local", "github", "noop"]),
        default=DEFAULT_CONFIG["report_store"],
    )

    config: dict = {
        "backend": backend,
        "api_url": api_url,
        "model": model,
        "api_key_env": api_key_env,
        "report_store": report_store,
    }

    if report_store == "github":
        report_repo = click.prompt("Report repository (owner/name)", default=repo or None)
        config["report_repo"] = report_repo
        config["report_branch"] = click.prompt("Report branch", default=DEFAULT_CONFIG["report_branch"])
        if report_repo != repo:
            console.print(
                "\n[yellow]Note:[/yellow] the built-in GITHUB_TOKEN in Actions only covers this repository. "
                "Writing reports elsewhere needs a PAT with [bold]contents[/bold] write access."
            )
    elif repo:
        config["report_repo_url"] = f"https://github.com/{repo}"

    _write_config(config)
    console.print(f"[green]Created {CONFIG_FILE}[/green]")

    if click.confirm(f"\nGenerate {WORKFLOW_FILE} for GitHub Actions?", default=True):
        branch = click.prompt("Branch to review on push", default="main")
        _write_workflow(backend, api_key_env, branch, writes_reports=report_store == "github")
        console.print(f"[green]Created {WORKFLOW_FILE}[/green]")
        console.print(
            f"\n[yellow]Remember to add [bold]{api_key_env}[/bold] (and the WECHAT_* secrets for "
            "notifications) to your GitHub repository secrets (Settings → Secrets → Actions).[/yellow]"
        )

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print("Review the latest commit with: [bold]commitlens review[/bold]")


def _detect_repo_from_git() -> str | None:
    """Try to detect the GitHub repo slug from the git remote URL."""
    try:
        result = subprocess.run(
            ["git", "remote", "get-url", "origin"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    url = result.stdout.strip()
    # https://github.com/owner/repo.git  →  owner/repo
    # git@github.com:owner/repo.git      →  owner/repo
    if "github.com" not in url:
        return None
    slug = url.split("github.com")[-1].lstrip("/:").removesuffix(".git")
    return slug if "/" in slug else None


def _write_config(config: dict) -> None:
    """Write or update .commitlens.yml, preserving any existing keys."""
    path = Path(CONFIG_FILE)
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))


def _get_version() -> str:
    try:
        return importlib.metadata.version("commitlens")
    except importlib.metadata.PackageNotFoundError:
        logger.debug("commitlens is not installed; pinning the workflow to 0.1.0")
        return "0.1.0"


def _write_workflow(backend: str, api_key_env: str, branch: str, writes_reports: bool = False) -> None:
    WORKFLOW_FILE.parent.mkdir(parents=True, exist_ok=True)
    WORKFLOW_FILE.write_text(
        _WORKFLOW_TEMPLATE.format(
            branch=branch,
            contents_permission="write" if writes_reports else "read",
            extra="[openai]" if backend == "openai" else "",
            version=_get_version(),
            api_key_env=api_key_env,
        )
    )

"""review command: review the latest commit of a local repository."""

from __future__ import annotations

import os

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape

from commitlens_core.errors import ConfigInvalid, InsufficientHistory, ReviewError

console = Console()
err_console = Console(stderr=True)


def _report_repo_url(config: dict) -> str | None:
    """Base URL that relative report locations hang off in notification links."""
    if config.get("report_store") == "local" and os.path.isabs(config.get("report_dir") or ""):
        # Reports outside the working tree are not in any repository.
        return None
    if config.get("report_repo_url"):
        return config["report_repo_url"]
    if config.get("report_store") == "github" and config.get("report_repo"):
        return f"https://github.com/{config['report_repo']}"
    return None


@click.command("review")
@click.option(
    "--repo-path",
    default=None,
    type=click.Path(file_okay=False),
    help="Repository to review. Defaults to the current directory.",
)
@click.option(
    "--backend",
    type=click.Choice(["http", "openai"]),
    default=None,
    help="How to reach the model endpoint. Overrides config file.",
)
@click.option("--model", default=None, help="Model name sent to the endpoint. Overrides config file.")
@click.option(
    "--store",
    "report_store",
    type=click.Choice(["local", "github", "noop"]),
    default=None,
    help="Where to save the review report. Overrides config file.",
)
@click.option(
    "--shadow",
    "-s",
    is_flag=True,
    help="Dry-run mode: print the report instead of saving it, and skip notifications.",
)
@click.option("--no-notify", is_flag=True, help="Save the report but do not send notifications.")
@click.pass_context
def review_cmd(
    ctx: click.Context,
    repo_path: str | None,
    backend: str | None,
    model: str | None,
    report_store: str | None,
    shadow: bool,
    no_notify: bool,
):
    """Review the newest commit against its parent.

    Sends the diff to an OpenAI-compatible chat-completion endpoint, saves a
    markdown report and notifies the configured channels.

    \b
    Environment variables:
      OPENAI_API_KEY       API key for the model endpoint (see api_key_env)
      GITHUB_TOKEN         Required for --store github (or use gh CLI)
      WECHAT_APP_ID, WECHAT_APP_SECRET, WECHAT_OPEN_ID, WECHAT_TEMPLATE_ID
                           Enable WeChat notifications when all are set
    """
    from commitlens_cli.auth import resolve_github_token
    from commitlens_cli.cli import _build_notifiers, _build_sink
    from commitlens_core.client import build_backend, build_client
    from commitlens_core.config import load_config, load_prompt_template, validate_config
    from commitlens_core.pipeline import ReviewPipeline
    from commitlens_core.vcs.git import GitChangeSource
    from commitlens_store.noop import NoOpReportSink

    config_path = (ctx.obj or {}).get("config_path", ".commitlens.yml")

    try:
        config = load_config(
            config_path,
            cli_overrides={"repo_path": repo_path, "backend": backend, "model": model, "report_store": report_store},
        )
        if shadow:
            config["report_store"] = "noop"
        if config.get("report_store") == "github":
            config["github_token"] = resolve_github_token(config)
        validate_config(config)
        prompt_template = load_prompt_template(config)
        review_backend = build_backend(config)
    except (ConfigInvalid, ImportError) as e:
        raise click.UsageError(str(e))

    client = build_client(config, backend=review_backend)
    sink = NoOpReportSink() if shadow else _build_sink(config)
    notifiers = [] if shadow or no_notify else _build_notifiers(config)

    pipeline = ReviewPipeline(
        change_source=GitChangeSource(config.get("repo_path")),
        client=client,
        report_sink=sink,
        notifiers=notifiers,
        prompt_template=prompt_template,
        max_diff_chars=config.get("max_diff_chars"),
        report_repo_url=_report_repo_url(config),
        report_branch=config.get("report_branch") or "main",
    )

    try:
        outcome = pipeline.execute()
    except InsufficientHistory as e:
        console.print(f"[yellow]{escape(str(e))}[/yellow]")
        console.print("Nothing to review.")
        return
    except ReviewError as e:
        err_console.print(f"[bold red]Code review failed:[/bold red] {escape(str(e))}")
        ctx.exit(1)
    finally:
        sink.close()
        review_backend.close()

    if shadow:
        console.rule("Review (shadow mode, not saved)")
        console.print(Markdown(outcome.review_text))

    console.print("\n[bold green]Code review complete.[/bold green]")
    if outcome.report_location:
        console.print(f"Report: {escape(outcome.report_location)}")

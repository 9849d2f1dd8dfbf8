"""CLI entry point for commitlens.

Commands:
  review  : review the latest commit, save the report, notify
  init    : write .commitlens.yml and a GitHub Actions workflow
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from commitlens_cli.commands.init import init_cmd
from commitlens_cli.commands.review import review_cmd

console = Console()


def _configure_logging(verbose: bool) -> None:
    """Route stdlib logging through rich on stderr; progress output stays on stdout."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose, rich_tracebacks=True)],
        force=True,
    )


def _build_sink(config: dict):
    """Instantiate the configured report sink.

    Sink selection:
      report_store: local  → LocalReportSink  (report_dir under the working directory)
      report_store: github → GithubReportSink (requires report_repo and github_token)
      report_store: noop   → NoOpReportSink   (nothing persisted)

    This factory lives in cli.py so neither commitlens_core nor
    commitlens_store know about the CLI config format.
    """
    from commitlens_store.noop import NoOpReportSink

    store_type = config.get("report_store", "local")

    if store_type == "github":
        from commitlens_store.github_repo import GithubReportSink

        return GithubReportSink(
            report_repo=config["report_repo"],
            token=config["github_token"],
            branch=config.get("report_branch") or "main",
            report_dir=config.get("report_dir") or "code-review-reports",
        )

    if store_type == "local":
        from commitlens_store.local import LocalReportSink

        return LocalReportSink(report_dir=config.get("report_dir") or "code-review-reports")

    return NoOpReportSink()


def _build_notifiers(config: dict) -> list:
    """Every known channel; disabled ones are skipped by the fan-out."""
    from commitlens_core.notifiers.console import ConsoleNotifier
    from commitlens_core.notifiers.wechat import WeChatNotifier

    return [
        WeChatNotifier.from_config(config),
        ConsoleNotifier(enabled=bool(config.get("notify_console"))),
    ]


@click.group()
@click.version_option(
    version=importlib.metadata.version("commitlens"),
    prog_name="commitlens",
)
@click.option(
    "--config",
    "config_path",
    default=".commitlens.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="COMMITLENS_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """AI code review for the latest commit of a git repository."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


main.add_command(review_cmd)
main.add_command(init_cmd)

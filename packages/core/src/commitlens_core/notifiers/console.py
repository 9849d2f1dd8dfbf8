from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape

from commitlens_core.notifiers.base import BaseNotifier

if TYPE_CHECKING:
    from commitlens_core.message import NotificationMessage

_SEVERITY_COLOR = {"high": "red", "medium": "yellow", "low": "blue"}


class ConsoleNotifier(BaseNotifier):
    """Prints the notification to the terminal. Useful in CI job logs."""

    def __init__(self, enabled: bool = True, console: Console | None = None):
        self._enabled = enabled
        self.console = console or Console()

    def is_enabled(self) -> bool:
        return self._enabled

    def send(self, message: NotificationMessage) -> None:
        color = _SEVERITY_COLOR.get(message.severity.value, "white")
        meta = message.metadata
        self.console.print(f"\n[bold]{escape(message.title)}[/bold]  [{color}]{message.severity.name}[/{color}]")
        self.console.print(f"  Commit: {escape(meta.get('commitMessage', ''))}")
        self.console.print(f"  Author: {escape(meta.get('authorName', ''))}")
        self.console.print(f"  Issues: {escape(meta.get('issueStats', ''))}")
        self.console.print(f"  [dim]{escape(message.summary)}[/dim]")
        if message.link_url:
            self.console.print(f"  {message.link_text}: {escape(message.link_url)}")

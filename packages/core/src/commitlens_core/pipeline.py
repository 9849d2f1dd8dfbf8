"""Core review orchestration.

One run, strictly in order, never looping back:

    START → DIFF_FETCHED → REVIEWED → REPORT_SAVED → NOTIFIED → DONE
      └──────────┴────────────┴────────────┴──────→ FAILED

Only the backend request inside the review stage retries (see client.py).
Any ReviewError aborts the run and propagates to the caller, which owns exit
codes and user-facing error output. Notification can never fail the run.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Callable, Protocol, Sequence

from rich.console import Console
from rich.markup import escape

from commitlens_core.errors import InsufficientHistory, ReportPersistFailed
from commitlens_core.fanout import DispatchResult, NotificationFanout
from commitlens_core.message import build_notification_message
from commitlens_core.models import ChangeInfo, ReviewOutcome
from commitlens_core.prompt import DEFAULT_PROMPT_TEMPLATE, build_prompt

if TYPE_CHECKING:
    from commitlens_core.client import RetryingReviewClient
    from commitlens_core.notifiers.base import BaseNotifier
    from commitlens_core.vcs.base import BaseChangeSource

console = Console()
logger = logging.getLogger(__name__)


class ReportSink(Protocol):
    """Anything that can persist a review report.

    Structural so commitlens_core has no dependency on commitlens_store.
    """

    def save(self, change: ChangeInfo, review_text: str) -> str | None: ...


class PipelineStage(Enum):
    START = "start"
    DIFF_FETCHED = "diff_fetched"
    REVIEWED = "reviewed"
    REPORT_SAVED = "report_saved"
    NOTIFIED = "notified"
    DONE = "done"
    FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReviewPipeline:
    """Sequences change source → review client → report sink → notifiers.

    Collaborators are plain constructor arguments; one pipeline instance
    performs one run and is not meant to be shared between runs.
    """

    def __init__(
        self,
        change_source: BaseChangeSource,
        client: RetryingReviewClient,
        report_sink: ReportSink,
        notifiers: Sequence[BaseNotifier] | None = None,
        *,
        fanout: NotificationFanout | None = None,
        prompt_template: str = DEFAULT_PROMPT_TEMPLATE,
        max_diff_chars: int | None = None,
        report_repo_url: str | None = None,
        report_branch: str = "main",
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.change_source = change_source
        self.client = client
        self.report_sink = report_sink
        self.notifiers = list(notifiers or [])
        self.fanout = fanout or NotificationFanout()
        self.prompt_template = prompt_template
        self.max_diff_chars = max_diff_chars
        self.report_repo_url = report_repo_url
        self.report_branch = report_branch
        self.clock = clock
        self.stage = PipelineStage.START
        self.dispatch_result: DispatchResult | None = None

    def execute(self) -> ReviewOutcome:
        self.stage = PipelineStage.START
        logger.info("Starting code review")
        try:
            change = self._fetch_changes()
            review_text = self._review(change)
            location = self._save_report(change, review_text)
            outcome = ReviewOutcome(
                change=change,
                review_text=review_text,
                completed_at=self.clock(),
                report_location=location or None,
            )
            self._notify(outcome)
        except Exception:
            failed_at = self.stage
            self.stage = PipelineStage.FAILED
            logger.info("Review run stopped after stage %s", failed_at.value)
            raise

        self._advance(PipelineStage.DONE)
        logger.info("Code review complete; report: %s", outcome.report_location or "not saved")
        return outcome

    def _advance(self, stage: PipelineStage) -> None:
        logger.debug("Pipeline stage %s → %s", self.stage.value, stage.value)
        self.stage = stage

    def _fetch_changes(self) -> ChangeInfo:
        console.print("[[1/4]] Fetching latest commit diff...")
        change = self.change_source.get_latest_diff()
        if change.is_empty() or not change.diff_text.strip():
            raise InsufficientHistory("the latest commit has no changes to review")

        console.print(f"  Commit: {escape(change.commit_message.splitlines()[0] if change.commit_message else '')}")
        console.print(f"  Author: {escape(change.author_name)}")
        console.print(f"  Changes: {change.change_summary}")
        self._advance(PipelineStage.DIFF_FETCHED)
        return change

    def _review(self, change: ChangeInfo) -> str:
        prompt = build_prompt(change.diff_text, self.prompt_template, self.max_diff_chars)
        logger.debug("Built review prompt (%d chars)", len(prompt))
        console.print("[[2/4]] Requesting AI review (this may take a while)...")
        review_text = self.client.call(prompt)
        console.print(f"  Review received ({len(review_text)} chars)")
        self._advance(PipelineStage.REVIEWED)
        return review_text

    def _save_report(self, change: ChangeInfo, review_text: str) -> str | None:
        console.print("[[3/4]] Saving review report...")
        try:
            location = self.report_sink.save(change, review_text)
        except ReportPersistFailed:
            raise
        except Exception as e:
            raise ReportPersistFailed(f"{type(e).__name__}: {e}") from e
        console.print(f"  Report: {escape(location) if location else 'not saved'}")
        self._advance(PipelineStage.REPORT_SAVED)
        return location

    def _notify(self, outcome: ReviewOutcome) -> None:
        console.print("[[4/4]] Sending notifications...")
        message = build_notification_message(outcome, self.report_repo_url, self.report_branch)
        self.dispatch_result = self.fanout.dispatch(message, self.notifiers)
        result = self.dispatch_result
        if result.attempted == 0:
            console.print("  [dim]No notification channels enabled.[/dim]")
        else:
            console.print(
                f"  {len(result.delivered)} delivered, {len(result.failed)} failed, {len(result.pending)} still pending"
            )
        self._advance(PipelineStage.NOTIFIED)

"""Notification message derived from a completed review.

Derivation is a pure function of the ReviewOutcome: the same outcome always
yields an identical message, including the timestamp (the outcome's own
completed_at, never "now").
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from commitlens_core.models import ReviewOutcome

TITLE = "Code review completed"
LINK_TEXT = "View full report"
ISSUE_STATS_FALLBACK = "see report"

_SUMMARY_MIN_CHARS = 20
_SUMMARY_MAX_CHARS = 100

# Matches "High(1)", "Medium（0）", "Low( 2 )". Free-form model output makes
# this best-effort: anything else falls back to "see report" / LOW.
ISSUE_COUNT_RE = re.compile(r"High[(（]\s*(\d+)\s*[)）]|Medium[(（]\s*(\d+)\s*[)）]|Low[(（]\s*(\d+)\s*[)）]")


class Severity(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class NotificationMessage:
    title: str
    content: str
    summary: str
    severity: Severity
    timestamp: datetime
    metadata: dict[str, str] = field(default_factory=dict)
    link_url: str | None = None
    link_text: str = LINK_TEXT

    def __post_init__(self):
        if not self.title:
            raise ValueError("NotificationMessage requires a title")


def _truncate(text: str) -> str:
    return text[:_SUMMARY_MAX_CHARS] + "..." if len(text) > _SUMMARY_MAX_CHARS else text


def extract_summary(review_text: str) -> str:
    """Return the first prose line of the review: not a heading, not a bullet."""
    for raw_line in review_text.split("\n"):
        line = raw_line.strip()
        if len(line) >= _SUMMARY_MIN_CHARS and not line.startswith(("#", "*", "-")):
            return _truncate(line)
    return _truncate(review_text)


def parse_issue_counts(review_text: str) -> tuple[int, int, int] | None:
    """Return (high, medium, low) from the first line carrying a count marker."""
    for line in review_text.split("\n"):
        matches = list(ISSUE_COUNT_RE.finditer(line))
        if not matches:
            continue
        high = medium = low = 0
        for match in matches:
            if match.group(1) is not None:
                high = int(match.group(1))
            elif match.group(2) is not None:
                medium = int(match.group(2))
            elif match.group(3) is not None:
                low = int(match.group(3))
        return high, medium, low
    return None


def format_issue_stats(counts: tuple[int, int, int] | None) -> str:
    if counts is None or not any(counts):
        return ISSUE_STATS_FALLBACK
    high, medium, low = counts
    return f"High:{high} Medium:{medium} Low:{low}"


def determine_severity(counts: tuple[int, int, int] | None) -> Severity:
    if counts is None or not any(counts):
        return Severity.LOW
    if counts[0] > 0:
        return Severity.HIGH
    return Severity.MEDIUM


def build_report_url(report_location: str | None, repo_url: str | None, branch: str = "main") -> str | None:
    """Turn a sink location into a browsable link.

    Absolute URLs pass through. Relative paths need a repository URL to hang
    off; local filesystem paths without one have no link.
    """
    if not report_location:
        return None
    if report_location.startswith(("http://", "https://")):
        return report_location
    if not repo_url:
        return None
    base = repo_url.rstrip("/")
    base = base.removesuffix(".git")
    return f"{base}/blob/{branch}/{report_location.lstrip('/')}"


def build_notification_message(
    outcome: ReviewOutcome,
    repo_url: str | None = None,
    branch: str = "main",
) -> NotificationMessage:
    change = outcome.change
    counts = parse_issue_counts(outcome.review_text)

    metadata = {
        "commitMessage": change.commit_message,
        "authorName": change.author_name,
        "issueStats": format_issue_stats(counts),
    }
    if change.commit_hash:
        metadata["commitHash"] = change.commit_hash
    if outcome.report_location:
        metadata["reportPath"] = outcome.report_location

    return NotificationMessage(
        title=TITLE,
        content=outcome.review_text,
        summary=extract_summary(outcome.review_text),
        severity=determine_severity(counts),
        timestamp=outcome.completed_at,
        metadata=metadata,
        link_url=build_report_url(outcome.report_location, repo_url, branch),
    )

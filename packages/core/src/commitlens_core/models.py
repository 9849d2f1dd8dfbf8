"""Value types passed between pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ChangeInfo:
    """The newest commit and its unified diff against the previous commit.

    ``diff_text == ""`` is meaningful: there is nothing to review.
    Line statistics are derived from the diff on access, never stored.
    """

    commit_message: str
    author_name: str
    commit_timestamp: str
    diff_text: str
    commit_hash: str | None = None

    def is_empty(self) -> bool:
        return self.diff_text == ""

    def has_changes(self) -> bool:
        return not self.is_empty() and (self.added_line_count > 0 or self.deleted_line_count > 0)

    @property
    def line_count(self) -> int:
        if self.is_empty():
            return 0
        return len(self.diff_text.splitlines())

    @property
    def added_line_count(self) -> int:
        return sum(1 for line in self.diff_text.splitlines() if line.startswith("+") and not line.startswith("+++"))

    @property
    def deleted_line_count(self) -> int:
        return sum(1 for line in self.diff_text.splitlines() if line.startswith("-") and not line.startswith("---"))

    @property
    def change_summary(self) -> str:
        return f"{self.line_count} line(s), +{self.added_line_count}/-{self.deleted_line_count}"

    def preview(self, max_lines: int = 20) -> str:
        """Return the first ``max_lines`` lines of the diff for terminal output."""
        lines = self.diff_text.splitlines()
        if len(lines) <= max_lines:
            return self.diff_text
        return "\n".join(lines[:max_lines]) + f"\n... ({len(lines)} lines total)"


@dataclass(frozen=True)
class ReviewOutcome:
    """A completed review: the change, the model's report and where it was saved.

    Created once per run after the report sink succeeds. ``report_location``
    is None when the sink does not expose a stable address.
    """

    change: ChangeInfo
    review_text: str
    completed_at: datetime
    report_location: str | None = None

    def __post_init__(self):
        if not self.review_text or not self.review_text.strip():
            raise ValueError("ReviewOutcome requires a non-empty review_text")

"""Markdown rendering and file naming shared by every report sink.

Reports are laid out as ``<report_dir>/<author>/<YYYY-MM-DD>/<message> - <author>.md``
so one author's reviews for a day sit together and re-running a review for the
same commit overwrites the same file.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from commitlens_core.models import ChangeInfo

REPORT_TITLE = "# Code Review Report"

_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|]')
_WHITESPACE = re.compile(r"\s+")
_LEADING_DOTS = re.compile(r"^\.+")
_MARKDOWN_MARKERS = ("```", "#", "*", "-")
_MAX_NAME_CHARS = 120


def sanitize_file_name(name: str | None) -> str:
    """Replace path separators, reserved characters and whitespace with ``_``."""
    if not name:
        return "unknown"
    cleaned = _WHITESPACE.sub("_", _UNSAFE_CHARS.sub("_", name.strip()))
    # "." and ".." would climb out of the report directory.
    cleaned = _LEADING_DOTS.sub("_", cleaned)
    return cleaned[:_MAX_NAME_CHARS] or "unknown"


def report_relative_path(change: ChangeInfo, report_dir: str, reviewed_at: datetime) -> str:
    author = sanitize_file_name(change.author_name)
    subject = change.commit_message.splitlines()[0] if change.commit_message else ""
    file_name = f"{sanitize_file_name(subject)} - {author}.md"
    parts = [report_dir.strip("/"), author, reviewed_at.strftime("%Y-%m-%d"), file_name]
    return "/".join(p for p in parts if p)


def _escape_cell(text: str | None) -> str:
    if not text:
        return ""
    return text.replace("|", "\\|").replace("\r\n", "\n").replace("\n", "<br>")


def _format_review(review_text: str) -> str:
    if not review_text:
        return "*No review content*\n"
    if any(marker in review_text for marker in _MARKDOWN_MARKERS):
        return review_text + "\n"
    # Plain text keeps its line breaks inside a fence.
    return f"```\n{review_text}\n```\n"


def render_markdown_report(change: ChangeInfo, review_text: str, reviewed_at: datetime) -> str:
    rows = [
        ("Review time", reviewed_at.strftime("%Y-%m-%d %H:%M:%S")),
        ("Commit message", _escape_cell(change.commit_message)),
        ("Author", _escape_cell(change.author_name)),
        ("Commit time", _escape_cell(change.commit_timestamp)),
    ]
    if change.commit_hash:
        rows.append(("Commit hash", f"`{change.commit_hash}`"))

    lines = [REPORT_TITLE, "", "## Details", "", "| Field | Value |", "|------|------|"]
    lines.extend(f"| {label} | {value} |" for label, value in rows)
    lines.extend(["", "## Review", "", ""])
    return "\n".join(lines) + _format_review(review_text)

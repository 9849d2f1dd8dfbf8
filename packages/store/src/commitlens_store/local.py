"""LocalReportSink: markdown reports in a directory on disk.

The returned location is the report path relative to ``base_dir`` (the
working directory by default), so the same string doubles as a
repository-relative path when the reports directory is committed. An
absolute ``report_dir`` is used as-is and the absolute path is returned.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from commitlens_store.base import BaseReportSink
from commitlens_store.report import render_markdown_report, report_relative_path

if TYPE_CHECKING:
    from commitlens_core.models import ChangeInfo

logger = logging.getLogger(__name__)


def _local_now() -> datetime:
    return datetime.now().astimezone()


class LocalReportSink(BaseReportSink):
    def __init__(
        self,
        report_dir: str = "code-review-reports",
        base_dir: str | Path | None = None,
        clock: Callable[[], datetime] = _local_now,
    ):
        self.report_dir = report_dir
        self.base_dir = Path(base_dir) if base_dir else Path.cwd()
        self._clock = clock

    def save(self, change: ChangeInfo, review_text: str) -> str | None:
        reviewed_at = self._clock()
        report_dir = Path(self.report_dir)
        if report_dir.is_absolute():
            path = report_dir / report_relative_path(change, "", reviewed_at)
            location = str(path)
        else:
            location = report_relative_path(change, self.report_dir, reviewed_at)
            path = self.base_dir / location
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_markdown_report(change, review_text, reviewed_at), encoding="utf-8")
        logger.info("Review report written to %s", path)
        return location

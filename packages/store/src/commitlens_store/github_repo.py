"""GithubReportSink: commit each report into a GitHub repository.

Uses the contents API, so no clone or push is involved: the report path is
created on the first run and updated in place when the same commit is
reviewed again. Works with the GITHUB_TOKEN that Actions injects as long as
the workflow has ``contents: write`` on the report repository.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Callable

from github import Github, GithubException

from commitlens_store.base import BaseReportSink
from commitlens_store.report import render_markdown_report, report_relative_path

if TYPE_CHECKING:
    from commitlens_core.models import ChangeInfo

logger = logging.getLogger(__name__)


def _local_now() -> datetime:
    return datetime.now().astimezone()


class GithubReportSink(BaseReportSink):
    def __init__(
        self,
        report_repo: str,
        token: str,
        branch: str = "main",
        report_dir: str = "code-review-reports",
        clock: Callable[[], datetime] = _local_now,
    ):
        self.report_repo = report_repo
        self.branch = branch
        self.report_dir = report_dir
        self._gh = Github(token)
        self._clock = clock
        self._repo = None

    def _get_repo(self):
        if self._repo is None:
            self._repo = self._gh.get_repo(self.report_repo)
        return self._repo

    def save(self, change: ChangeInfo, review_text: str) -> str | None:
        reviewed_at = self._clock()
        path = report_relative_path(change, self.report_dir, reviewed_at)
        content = render_markdown_report(change, review_text, reviewed_at)
        subject = change.commit_message.splitlines()[0] if change.commit_message else ""
        commit_message = f"Add code review report: {subject} - {change.author_name}"

        repo = self._get_repo()
        existing_sha = self._existing_sha(repo, path)
        if existing_sha:
            repo.update_file(path, commit_message, content, existing_sha, branch=self.branch)
            logger.info("Updated review report %s in %s@%s", path, self.report_repo, self.branch)
        else:
            repo.create_file(path, commit_message, content, branch=self.branch)
            logger.info("Created review report %s in %s@%s", path, self.report_repo, self.branch)
        return path

    def _existing_sha(self, repo, path: str) -> str | None:
        try:
            contents = repo.get_contents(path, ref=self.branch)
        except GithubException as e:
            if e.status == 404:
                return None
            raise
        # A directory listing comes back as a list; treat it as "no file".
        if isinstance(contents, list):
            return None
        return contents.sha

    def close(self) -> None:
        self._gh.close()

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from commitlens_core.errors import ChangeSourceFailed, InsufficientHistory
from commitlens_core.models import ChangeInfo
from commitlens_core.vcs.base import BaseChangeSource

logger = logging.getLogger(__name__)

# NUL separates fields so commit messages can contain anything else.
_LOG_FORMAT = "%H%x00%an%x00%cI%x00%B"


class GitChangeSource(BaseChangeSource):
    """Reads HEAD and HEAD's parent from a local repository with the git CLI."""

    def __init__(self, repo_path: str | Path | None = None, timeout: float = 60):
        self.repo_path = Path(repo_path) if repo_path else Path.cwd()
        self.timeout = timeout

    def _run_git(self, args: list[str], check: bool = True) -> subprocess.CompletedProcess:
        cmd = ["git", "-C", str(self.repo_path)] + args
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise ChangeSourceFailed("git executable not found on PATH") from e
        except subprocess.TimeoutExpired as e:
            raise ChangeSourceFailed(f"git timed out after {self.timeout}s: {' '.join(cmd)}") from e
        if check and result.returncode != 0:
            raise ChangeSourceFailed(f"git failed: {' '.join(cmd)}\n{result.stderr.strip()}")
        return result

    def get_latest_diff(self) -> ChangeInfo:
        if self._run_git(["rev-parse", "--git-dir"], check=False).returncode != 0:
            raise ChangeSourceFailed(f"{self.repo_path} is not a git repository")

        head = self._run_git(["rev-parse", "--verify", "--quiet", "HEAD"], check=False)
        if head.returncode != 0:
            raise InsufficientHistory("the repository has no commits yet")

        revisions = self._run_git(["rev-list", "--max-count=2", "HEAD"]).stdout.split()
        if len(revisions) < 2:
            raise InsufficientHistory("at least two commits are needed to compute a diff")
        new_rev, old_rev = revisions[0], revisions[1]

        fields = self._run_git(["log", "-1", f"--format={_LOG_FORMAT}", new_rev]).stdout.split("\x00", 3)
        if len(fields) < 4:
            raise ChangeSourceFailed(f"unexpected git log output for {new_rev}")
        commit_hash, author_name, commit_time, message = fields

        diff_text = self._run_git(["diff", "--no-color", "--no-ext-diff", old_rev, new_rev]).stdout

        change = ChangeInfo(
            commit_message=message.strip(),
            author_name=author_name,
            commit_timestamp=commit_time,
            commit_hash=commit_hash,
            diff_text=diff_text,
        )
        logger.info("Commit %s by %s: %s", commit_hash[:7], author_name, change.change_summary)
        return change

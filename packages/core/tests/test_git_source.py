"""Tests for GitChangeSource against real temporary repositories."""

import shutil
import subprocess

import pytest

from commitlens_core.errors import ChangeSourceFailed, InsufficientHistory
from commitlens_core.vcs.git import GitChangeSource

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def _git(repo, *args):
    subprocess.run(["git", "-C", str(repo), *args], check=True, capture_output=True, text=True)


def _commit(repo, filename, content, message, author="Dev Person"):
    (repo / filename).write_text(content)
    _git(repo, "add", filename)
    _git(
        repo,
        "-c",
        f"user.name={author}",
        "-c",
        "user.email=dev@example.com",
        "commit",
        "-q",
        "-m",
        message,
    )


@pytest.fixture
def repo(tmp_path):
    _git(tmp_path, "init", "-q")
    return tmp_path


@requires_git
class TestGitChangeSource:
    def test_latest_commit_diffed_against_parent(self, repo):
        _commit(repo, "app.py", "x = 1\n", "Initial commit")
        _commit(repo, "app.py", "x = 2\ny = 3\n", "Change x\n\nLonger body.", author="Jane Doe")

        change = GitChangeSource(repo).get_latest_diff()

        assert change.commit_message == "Change x\n\nLonger body."
        assert change.author_name == "Jane Doe"
        assert len(change.commit_hash) == 40
        assert change.commit_timestamp[:4].isdigit()
        assert "-x = 1" in change.diff_text
        assert "+x = 2" in change.diff_text
        assert change.added_line_count == 2
        assert change.deleted_line_count == 1

    def test_single_commit_is_insufficient_history(self, repo):
        _commit(repo, "app.py", "x = 1\n", "Initial commit")
        with pytest.raises(InsufficientHistory):
            GitChangeSource(repo).get_latest_diff()

    def test_empty_repository_is_insufficient_history(self, repo):
        with pytest.raises(InsufficientHistory):
            GitChangeSource(repo).get_latest_diff()

    def test_empty_commit_yields_empty_diff(self, repo):
        _commit(repo, "app.py", "x = 1\n", "Initial commit")
        _git(repo, "-c", "user.name=Dev", "-c", "user.email=dev@example.com", "commit", "-q", "--allow-empty", "-m", "Empty")

        change = GitChangeSource(repo).get_latest_diff()

        assert change.is_empty()
        assert change.commit_message == "Empty"

    def test_not_a_repository(self, tmp_path):
        plain = tmp_path / "plain"
        plain.mkdir()
        with pytest.raises(ChangeSourceFailed, match="not a git repository"):
            GitChangeSource(plain).get_latest_diff()


def test_missing_git_binary(mocker, tmp_path):
    mocker.patch("commitlens_core.vcs.git.subprocess.run", side_effect=FileNotFoundError("git"))
    with pytest.raises(ChangeSourceFailed, match="git executable not found"):
        GitChangeSource(tmp_path).get_latest_diff()


def test_git_timeout(mocker, tmp_path):
    mocker.patch(
        "commitlens_core.vcs.git.subprocess.run",
        side_effect=subprocess.TimeoutExpired(cmd="git", timeout=1),
    )
    with pytest.raises(ChangeSourceFailed, match="timed out"):
        GitChangeSource(tmp_path, timeout=1).get_latest_diff()


def test_defaults_to_current_directory(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    assert GitChangeSource().repo_path.resolve() == tmp_path.resolve()

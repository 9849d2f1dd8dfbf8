"""Tests for report rendering and the report sinks."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from github import GithubException

from commitlens_core.models import ChangeInfo
from commitlens_store.github_repo import GithubReportSink
from commitlens_store.local import LocalReportSink
from commitlens_store.noop import NoOpReportSink
from commitlens_store.report import render_markdown_report, report_relative_path, sanitize_file_name

REVIEWED_AT = datetime(2024, 3, 5, 14, 7, 9, tzinfo=timezone.utc)


def _change(message="Fix login: handle *empty* passwords", author="Jane Doe", commit_hash="a" * 40):
    return ChangeInfo(
        commit_message=message,
        author_name=author,
        commit_timestamp="2024-03-05T13:00:00+00:00",
        diff_text="+check(password)\n",
        commit_hash=commit_hash,
    )


# ---------------------------------------------------------------------------
# Naming and rendering
# ---------------------------------------------------------------------------


class TestSanitizeFileName:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Fix bug", "Fix_bug"),
            ('a/b\\c:d*e?f"g<h>i|j', "a_b_c_d_e_f_g_h_i_j"),
            ("tabs\tand\nnewlines", "tabs_and_newlines"),
            ("  padded  ", "padded"),
            ("", "unknown"),
            (None, "unknown"),
            ("..", "_"),
            (".", "_"),
            (".hidden", "_hidden"),
            ("v1.2", "v1.2"),
        ],
    )
    def test_sanitize(self, raw, expected):
        assert sanitize_file_name(raw) == expected

    def test_long_names_capped(self):
        assert len(sanitize_file_name("x" * 500)) == 120


class TestReportRelativePath:
    def test_layout(self):
        path = report_relative_path(_change(), "code-review-reports", REVIEWED_AT)
        assert path == "code-review-reports/Jane_Doe/2024-03-05/Fix_login__handle__empty__passwords - Jane_Doe.md"

    def test_only_subject_line_used(self):
        path = report_relative_path(_change(message="Subject\n\nBody text"), "r", REVIEWED_AT)
        assert path.endswith("/Subject - Jane_Doe.md")

    def test_empty_report_dir(self):
        path = report_relative_path(_change(message="m", author="a"), "", REVIEWED_AT)
        assert path == "a/2024-03-05/m - a.md"


class TestRenderMarkdownReport:
    def test_info_table(self):
        report = render_markdown_report(_change(), "## Review\nAll good.", REVIEWED_AT)
        assert report.startswith("# Code Review Report\n")
        assert "| Review time | 2024-03-05 14:07:09 |" in report
        assert "| Author | Jane Doe |" in report
        assert "| Commit time | 2024-03-05T13:00:00+00:00 |" in report
        assert f"| Commit hash | `{'a' * 40}` |" in report
        assert report.endswith("## Review\nAll good.\n")

    def test_table_cells_escaped(self):
        report = render_markdown_report(_change(message="a | b\nsecond line"), "# r", REVIEWED_AT)
        assert "| Commit message | a \\| b<br>second line |" in report

    def test_hash_row_omitted_when_unknown(self):
        report = render_markdown_report(_change(commit_hash=None), "# r", REVIEWED_AT)
        assert "Commit hash" not in report

    def test_plain_text_review_fenced(self):
        report = render_markdown_report(_change(), "plain words only", REVIEWED_AT)
        assert report.endswith("```\nplain words only\n```\n")


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------


class TestNoOpReportSink:
    def test_returns_no_location(self):
        sink = NoOpReportSink()
        assert sink.save(_change(), "review") is None
        sink.close()


class TestLocalReportSink:
    def test_writes_report(self, tmp_path):
        sink = LocalReportSink(report_dir="reports", base_dir=tmp_path, clock=lambda: REVIEWED_AT)

        location = sink.save(_change(message="Add x"), "## Review\nok")

        assert location == "reports/Jane_Doe/2024-03-05/Add_x - Jane_Doe.md"
        content = (tmp_path / location).read_text(encoding="utf-8")
        assert "| Commit message | Add x |" in content
        assert content.endswith("## Review\nok\n")

    def test_same_commit_overwrites(self, tmp_path):
        sink = LocalReportSink(report_dir="reports", base_dir=tmp_path, clock=lambda: REVIEWED_AT)
        first = sink.save(_change(), "# first")
        second = sink.save(_change(), "# second")
        assert first == second
        assert (tmp_path / second).read_text(encoding="utf-8").endswith("# second\n")

    def test_absolute_report_dir_kept_absolute(self, tmp_path):
        report_dir = tmp_path / "abs_reports"
        sink = LocalReportSink(report_dir=str(report_dir), base_dir=tmp_path / "cwd", clock=lambda: REVIEWED_AT)

        location = sink.save(_change(message="Add x", author="Dev"), "# r")

        expected = report_dir / "Dev" / "2024-03-05" / "Add_x - Dev.md"
        assert location == str(expected)
        assert expected.is_file()
        assert not (tmp_path / "cwd").exists()

    def test_dot_author_stays_inside_report_dir(self, tmp_path):
        sink = LocalReportSink(report_dir="reports", base_dir=tmp_path, clock=lambda: REVIEWED_AT)

        location = sink.save(_change(message="Add x", author=".."), "# r")

        assert location == "reports/_/2024-03-05/Add_x - _.md"
        written = (tmp_path / location).resolve()
        assert written.is_relative_to((tmp_path / "reports").resolve())

    def test_unwritable_directory_raises(self, tmp_path):
        blocker = tmp_path / "reports"
        blocker.write_text("not a directory")
        sink = LocalReportSink(report_dir="reports", base_dir=tmp_path, clock=lambda: REVIEWED_AT)
        with pytest.raises(OSError):
            sink.save(_change(), "# r")


class TestGithubReportSink:
    def _sink(self, mocker):
        mock_gh = mocker.patch("commitlens_store.github_repo.Github")
        repo = MagicMock()
        mock_gh.return_value.get_repo.return_value = repo
        sink = GithubReportSink("org/reports", "tok", branch="reports", report_dir="cr", clock=lambda: REVIEWED_AT)
        return sink, repo, mock_gh

    def test_creates_new_file(self, mocker):
        sink, repo, mock_gh = self._sink(mocker)
        repo.get_contents.side_effect = GithubException(404, "Not Found")

        location = sink.save(_change(message="Add x"), "## Review")

        assert location == "cr/Jane_Doe/2024-03-05/Add_x - Jane_Doe.md"
        mock_gh.assert_called_once_with("tok")
        mock_gh.return_value.get_repo.assert_called_once_with("org/reports")
        args, kwargs = repo.create_file.call_args
        assert args[0] == location
        assert args[1] == "Add code review report: Add x - Jane Doe"
        assert "## Review" in args[2]
        assert kwargs["branch"] == "reports"
        repo.update_file.assert_not_called()

    def test_dot_author_path_has_no_parent_segments(self, mocker):
        sink, repo, _ = self._sink(mocker)
        repo.get_contents.side_effect = GithubException(404, "Not Found")

        location = sink.save(_change(message="..", author=".."), "## Review")

        assert ".." not in location.split("/")
        assert location == "cr/_/2024-03-05/_ - _.md"

    def test_updates_existing_file(self, mocker):
        sink, repo, _ = self._sink(mocker)
        repo.get_contents.return_value = MagicMock(sha="old-sha")

        location = sink.save(_change(), "## Review")

        repo.get_contents.assert_called_once_with(location, ref="reports")
        args, kwargs = repo.update_file.call_args
        assert args[0] == location
        assert args[3] == "old-sha"
        assert kwargs["branch"] == "reports"
        repo.create_file.assert_not_called()

    def test_api_errors_propagate(self, mocker):
        sink, repo, _ = self._sink(mocker)
        repo.get_contents.side_effect = GithubException(403, "Forbidden")

        with pytest.raises(GithubException):
            sink.save(_change(), "## Review")
        repo.create_file.assert_not_called()

    def test_repo_looked_up_once(self, mocker):
        sink, repo, mock_gh = self._sink(mocker)
        repo.get_contents.side_effect = GithubException(404, "Not Found")
        sink.save(_change(), "# a")
        sink.save(_change(), "# b")
        assert mock_gh.return_value.get_repo.call_count == 1

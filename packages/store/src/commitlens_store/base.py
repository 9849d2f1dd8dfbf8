"""Abstract report sink interface.

The CLI depends on BaseReportSink, not on a concrete backend, so the local
directory, a GitHub repository or nothing at all are interchangeable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from commitlens_core.models import ChangeInfo


class BaseReportSink(ABC):
    """Pluggable persistence for rendered review reports.

    Implementations take all credentials through the constructor so they work
    unattended in CI.
    """

    @abstractmethod
    def save(self, change: ChangeInfo, review_text: str) -> str | None:
        """Persist the report and return where it went.

        The returned location is opaque to callers: a filesystem path, a
        repository-relative path or a URL. None means the sink keeps no
        addressable copy. Failures raise; the pipeline wraps them.
        """

    def close(self) -> None:
        """Release any resources held by the sink.

        Default is a no-op so callers can always call close() safely.
        """

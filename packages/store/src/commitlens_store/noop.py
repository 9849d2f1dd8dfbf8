"""No-op sink used by ``commitlens review --shadow``.

Lets the pipeline always call sink.save() without conditional checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from commitlens_store.base import BaseReportSink

if TYPE_CHECKING:
    from commitlens_core.models import ChangeInfo


class NoOpReportSink(BaseReportSink):
    def save(self, change: ChangeInfo, review_text: str) -> str | None:
        return None

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from commitlens_core.models import ChangeInfo


class BaseChangeSource(ABC):
    @abstractmethod
    def get_latest_diff(self) -> ChangeInfo:
        """Return the newest commit and its diff against its predecessor.

        Raises InsufficientHistory when fewer than two revisions exist.
        An empty ``diff_text`` means the commit changed nothing.
        """

"""Abstract notifier interface.

A notifier delivers one NotificationMessage to one channel. The fan-out
depends on BaseNotifier only, so channels are swappable without touching the
pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from commitlens_core.message import NotificationMessage


class BaseNotifier(ABC):
    """One notification channel.

    send() may raise; NotificationFanout catches and logs every failure, so
    implementations should raise NotificationError with a useful message
    rather than swallow errors themselves.
    """

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @abstractmethod
    def is_enabled(self) -> bool:
        """Return True when the channel is configured well enough to send."""

    @abstractmethod
    def send(self, message: NotificationMessage) -> None:
        """Deliver the message. Blocking; runs on a fan-out worker thread."""

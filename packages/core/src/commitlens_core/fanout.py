"""Best-effort concurrent delivery of one message to every enabled notifier.

Each enabled notifier gets its own daemon worker thread. The caller waits for
all of them against one shared deadline; when it elapses, dispatch() returns
and any send still in flight is left to finish (or not) on its own. Delivery
is at-most-once per notifier with no guarantee and no dedup.

dispatch() never raises: a failing or hanging channel must not fail the run.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Sequence

from commitlens_core.errors import NotificationError

if TYPE_CHECKING:
    from commitlens_core.message import NotificationMessage
    from commitlens_core.notifiers.base import BaseNotifier

logger = logging.getLogger(__name__)

DEFAULT_DEADLINE = 5.0

_DELIVERED = "delivered"
_FAILED = "failed"


@dataclass
class DispatchResult:
    delivered: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)

    @property
    def timed_out(self) -> bool:
        return bool(self.pending)

    @property
    def attempted(self) -> int:
        return len(self.delivered) + len(self.failed) + len(self.pending)


class NotificationFanout:
    def __init__(self, deadline: float = DEFAULT_DEADLINE):
        self.deadline = deadline

    def dispatch(self, message: NotificationMessage, notifiers: Sequence[BaseNotifier]) -> DispatchResult:
        if not notifiers:
            logger.debug("No notifiers configured; skipping notification")
            return DispatchResult()

        enabled = [n for n in notifiers if _is_enabled(n)]
        if not enabled:
            logger.debug("No enabled notifiers; skipping notification")
            return DispatchResult()

        outcomes: list[str | None] = [None] * len(enabled)
        lock = threading.Lock()

        def _deliver(index: int, notifier: BaseNotifier) -> None:
            outcome = _FAILED
            try:
                notifier.send(message)
                outcome = _DELIVERED
                logger.info("%s: notification sent", notifier.name)
            except NotificationError as e:
                logger.error("%s: notification failed: %s", notifier.name, e)
            except Exception:
                logger.exception("%s: unexpected error while sending notification", notifier.name)
            finally:
                with lock:
                    outcomes[index] = outcome

        threads = []
        for index, notifier in enumerate(enabled):
            thread = threading.Thread(
                target=_deliver,
                args=(index, notifier),
                name=f"notify-{notifier.name}",
                daemon=True,
            )
            thread.start()
            threads.append(thread)

        deadline_at = time.monotonic() + self.deadline
        for thread in threads:
            thread.join(max(0.0, deadline_at - time.monotonic()))

        result = DispatchResult()
        with lock:
            for notifier, outcome in zip(enabled, outcomes):
                if outcome == _DELIVERED:
                    result.delivered.append(notifier.name)
                elif outcome == _FAILED:
                    result.failed.append(notifier.name)
                else:
                    result.pending.append(notifier.name)

        if result.timed_out:
            logger.warning(
                "Notification deadline of %.1fs elapsed; continuing without waiting for: %s",
                self.deadline,
                ", ".join(result.pending),
            )
        return result


def _is_enabled(notifier: BaseNotifier) -> bool:
    try:
        return bool(notifier.is_enabled())
    except Exception:
        logger.exception("%s: is_enabled() raised; treating the notifier as disabled", notifier.name)
        return False

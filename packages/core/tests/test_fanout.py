"""Tests for NotificationFanout."""

import threading
import time
from datetime import datetime, timezone

from commitlens_core.errors import NotificationError
from commitlens_core.fanout import DEFAULT_DEADLINE, NotificationFanout
from commitlens_core.message import NotificationMessage, Severity
from commitlens_core.notifiers.base import BaseNotifier

MESSAGE = NotificationMessage(
    title="Code review completed",
    content="review",
    summary="summary",
    severity=Severity.LOW,
    timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
)


class _Recorder(BaseNotifier):
    def __init__(self, label, enabled=True, error=None, block=None):
        self.label = label
        self.enabled = enabled
        self.error = error
        self.block = block
        self.sent = threading.Event()
        self.messages = []

    @property
    def name(self):
        return self.label

    def is_enabled(self):
        return self.enabled

    def send(self, message):
        self.messages.append(message)
        self.sent.set()
        if self.block is not None:
            self.block.wait()
        if self.error is not None:
            raise self.error


def test_default_deadline_is_five_seconds():
    assert DEFAULT_DEADLINE == 5.0
    assert NotificationFanout().deadline == 5.0


def test_no_notifiers_returns_immediately():
    result = NotificationFanout().dispatch(MESSAGE, [])
    assert result.attempted == 0


def test_disabled_notifiers_never_sent():
    notifiers = [_Recorder("a", enabled=False), _Recorder("b", enabled=False)]
    started = time.monotonic()

    result = NotificationFanout(deadline=5).dispatch(MESSAGE, notifiers)

    assert time.monotonic() - started < 1
    assert result.attempted == 0
    assert all(n.messages == [] for n in notifiers)


def test_all_enabled_notifiers_receive_message():
    notifiers = [_Recorder("a"), _Recorder("b"), _Recorder("c", enabled=False)]

    result = NotificationFanout().dispatch(MESSAGE, notifiers)

    assert sorted(result.delivered) == ["a", "b"]
    assert result.failed == []
    assert not result.timed_out
    assert notifiers[0].messages == [MESSAGE]
    assert notifiers[2].messages == []


def test_failing_notifier_does_not_affect_others():
    notifiers = [
        _Recorder("wechat", error=NotificationError("errcode 40001")),
        _Recorder("boom", error=RuntimeError("unexpected")),
        _Recorder("console"),
    ]

    result = NotificationFanout().dispatch(MESSAGE, notifiers)

    assert result.delivered == ["console"]
    assert sorted(result.failed) == ["boom", "wechat"]


def test_blocking_notifier_bounded_by_deadline():
    release = threading.Event()
    notifiers = [_Recorder("fast-1"), _Recorder("stuck", block=release), _Recorder("fast-2")]
    started = time.monotonic()

    try:
        result = NotificationFanout(deadline=0.3).dispatch(MESSAGE, notifiers)
        elapsed = time.monotonic() - started
    finally:
        release.set()

    assert 0.25 <= elapsed < 2
    assert result.pending == ["stuck"]
    assert sorted(result.delivered) == ["fast-1", "fast-2"]
    assert result.timed_out
    assert notifiers[0].sent.is_set()
    assert notifiers[2].sent.is_set()


def test_is_enabled_error_treated_as_disabled():
    class _Broken(_Recorder):
        def is_enabled(self):
            raise RuntimeError("bad config")

    broken = _Broken("broken")
    result = NotificationFanout().dispatch(MESSAGE, [broken, _Recorder("ok")])

    assert result.delivered == ["ok"]
    assert broken.messages == []


def test_notifier_name_defaults_to_class_name():
    class WebhookNotifier(BaseNotifier):
        def is_enabled(self):
            return True

        def send(self, message):
            pass

    assert WebhookNotifier().name == "WebhookNotifier"

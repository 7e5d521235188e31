from __future__ import annotations

import pytest

from sparkscope.channel.adapter import ChannelAdapter
from sparkscope.channel.errors import ChannelError, ChannelOpenError
from sparkscope.channel.memory import MemoryChannel
from sparkscope.core.errors import ChannelConnectError


class FakeTracker:
    def __init__(self, ready: bool = True):
        self.ready = ready
        self.wait_calls = []
        self.reexecuted = True

    def wait_ready(self, timeout=None) -> bool:
        self.wait_calls.append(timeout)
        return self.ready

    def clear_reexecuted(self) -> None:
        self.reexecuted = False

    def get_active(self):
        return None

    def get_reexecuted(self) -> bool:
        return self.reexecuted

    def get_execution_count(self) -> int:
        return 0


class RefusingChannel(MemoryChannel):
    def open(self) -> None:
        raise ChannelOpenError("connection refused")


class NoHandshakeChannel(MemoryChannel):
    def send(self, message) -> None:
        raise ChannelOpenError("write failed")


def _adapter(tracker=None, factory=None, **kwargs):
    made = []

    def default_factory():
        ch = MemoryChannel()
        made.append(ch)
        return ch

    adapter = ChannelAdapter(factory or default_factory, tracker or FakeTracker(), **kwargs)
    return adapter, made


def test_open_sends_handshake():
    adapter, made = _adapter()

    ch = adapter.open()

    assert ch is made[0]
    assert adapter.is_open
    assert ch.sent == [{"msgtype": "openfromfrontend"}]


def test_inbound_messages_reach_on_message():
    got = []
    adapter, made = _adapter(on_message=got.append)
    adapter.open()

    made[0].inject({"msgtype": "fromscala", "msg": "{}"})

    assert got == [{"msgtype": "fromscala", "msg": "{}"}]


def test_waits_for_readiness_only_once():
    tracker = FakeTracker(ready=False)
    adapter, _ = _adapter(tracker=tracker, ready_timeout_s=0.5)

    adapter.open()
    adapter.open()

    assert tracker.wait_calls == [0.5]
    assert adapter.opens == 2


def test_reopen_closes_previous_channel_first():
    adapter, made = _adapter()
    adapter.open()
    adapter.open()

    first, second = made
    assert first.is_open is False
    assert second.is_open is True
    assert adapter.channel is second


def test_previous_channel_is_detached_from_inbound():
    got = []
    adapter, made = _adapter(on_message=got.append)
    adapter.open()
    old = made[0]
    adapter.open()

    old.open()
    old.inject({"stale": True})

    assert got == []


def test_kernel_starting_clears_reexecuted_and_reopens():
    tracker = FakeTracker()
    adapter, made = _adapter(tracker=tracker)
    adapter.open()

    adapter.on_kernel_status("busy")
    assert len(made) == 1
    assert tracker.reexecuted is True

    adapter.on_kernel_status("starting")
    assert len(made) == 2
    assert tracker.reexecuted is False
    assert made[1].sent == [{"msgtype": "openfromfrontend"}]


def test_open_failure_raises_connect_error():
    adapter, _ = _adapter(factory=lambda: RefusingChannel())

    with pytest.raises(ChannelConnectError) as ei:
        adapter.open()

    assert ei.value.details == {"driver": "RefusingChannel"}
    assert adapter.channel is None


def test_handshake_failure_closes_and_raises():
    made = []

    def factory():
        ch = NoHandshakeChannel()
        made.append(ch)
        return ch

    adapter, _ = _adapter(factory=factory)

    with pytest.raises(ChannelConnectError):
        adapter.open()

    assert adapter.channel is None
    assert made[0].is_open is False


def test_send_requires_open_channel():
    adapter, made = _adapter()
    with pytest.raises(ChannelError):
        adapter.send({"msgtype": "x"})

    adapter.open()
    adapter.send({"msgtype": "x"})
    assert made[0].sent[-1] == {"msgtype": "x"}


def test_close_is_idempotent():
    adapter, made = _adapter()
    adapter.open()

    adapter.close()
    adapter.close()

    assert adapter.is_open is False
    assert made[0].is_open is False


def test_failed_reopen_on_kernel_restart_is_logged_not_raised(caplog):
    made = []

    def factory():
        ch = MemoryChannel() if not made else RefusingChannel()
        made.append(ch)
        return ch

    tracker = FakeTracker()
    adapter, _ = _adapter(tracker=tracker, factory=factory)
    adapter.open()

    adapter.on_kernel_status("starting")

    assert adapter.is_open is False
    assert adapter.channel is None
    assert tracker.reexecuted is False
    assert any("KERNEL_RESTART_REOPEN_FAILED" in r.getMessage() for r in caplog.records)


def test_next_restart_after_failed_reopen_retries():
    outcomes = [MemoryChannel, RefusingChannel, MemoryChannel]
    made = []

    def factory():
        ch = outcomes[len(made)]()
        made.append(ch)
        return ch

    adapter, _ = _adapter(factory=factory)
    adapter.open()
    adapter.on_kernel_status("starting")
    adapter.on_kernel_status("starting")

    assert adapter.is_open is True
    assert adapter.channel is made[2]
    assert made[2].sent == [{"msgtype": "openfromfrontend"}]

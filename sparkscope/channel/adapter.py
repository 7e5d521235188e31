# sparkscope/channel/adapter.py
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Mapping, Optional

from sparkscope.core.errors import ChannelConnectError
from sparkscope.interfaces.active_command import ActiveCommandTracker
from sparkscope.protocol.decoder import OPEN_HANDSHAKE

from .base import Channel
from .errors import ChannelError

KERNEL_STARTING = "starting"


class ChannelAdapter:
    """
    Owns the current channel to the kernel-side listener.

    Responsibilities:
      - wait once for the host to be ready before the first open
      - (re)open the channel, closing any previous one first
      - send the open handshake
      - reopen on kernel restart, clearing the tracker's re-execution flag

    Correlation state lives in the engine and is untouched by reconnects.
    """

    def __init__(
        self,
        channel_factory: Callable[[], Channel],
        tracker: ActiveCommandTracker,
        *,
        on_message: Optional[Callable[[Any], None]] = None,
        ready_timeout_s: Optional[float] = 2.0,
        logger: Optional[logging.Logger] = None,
    ):
        self._factory = channel_factory
        self._tracker = tracker
        self.on_message = on_message
        self.ready_timeout_s = ready_timeout_s
        self._log = logger or logging.getLogger(__name__)

        self._lock = threading.RLock()
        self._channel: Optional[Channel] = None
        self._waited_ready = False
        self.opens = 0

    @property
    def channel(self) -> Optional[Channel]:
        return self._channel

    @property
    def is_open(self) -> bool:
        ch = self._channel
        return ch is not None and ch.is_open

    def open(self) -> Channel:
        with self._lock:
            if not self._waited_ready:
                self._waited_ready = True
                if not self._tracker.wait_ready(self.ready_timeout_s):
                    self._log.warning("TRACKER_NOT_READY timeout_s=%s", self.ready_timeout_s)

            self._close_current()

            self._log.info("CHANNEL_STARTING")
            channel = self._factory()
            channel.on_message = self._on_message
            channel.on_close = lambda reason, ch=channel: self._on_close(ch, reason)

            try:
                channel.open()
            except ChannelError as e:
                self._log.exception("CHANNEL_OPEN_FAILED")
                raise ChannelConnectError(
                    "Could not open channel to the kernel listener.",
                    hint=str(e),
                    details={"driver": type(channel).__name__},
                ) from None

            self._channel = channel
            self.opens += 1

            try:
                channel.send(dict(OPEN_HANDSHAKE))
            except ChannelError as e:
                self._log.exception("CHANNEL_HANDSHAKE_FAILED")
                self._close_current()
                raise ChannelConnectError(
                    "Channel opened but the handshake could not be sent.",
                    hint=str(e),
                    details={"driver": type(channel).__name__},
                ) from None

            self._log.info("CHANNEL_ESTABLISHED driver=%s", type(channel).__name__)
            return channel

    def close(self) -> None:
        with self._lock:
            self._close_current()

    def send(self, message: Mapping[str, Any]) -> None:
        ch = self._channel
        if ch is None:
            raise ChannelError("send while no channel is open")
        ch.send(message)

    def on_kernel_status(self, status: str) -> None:
        """
        Host hook: kernel status changed. A restart reopens the channel.

        A failed reopen is logged and leaves the adapter without a channel;
        the next restart status tries again.
        """
        if status != KERNEL_STARTING:
            return
        self._log.info("KERNEL_RESTART reopening channel")
        self._tracker.clear_reexecuted()
        try:
            self.open()
        except ChannelConnectError as e:
            self._log.error("KERNEL_RESTART_REOPEN_FAILED err=%s hint=%s", e.message, e.hint)

    def _close_current(self) -> None:
        ch, self._channel = self._channel, None
        if ch is None:
            return
        ch.on_message = None
        try:
            ch.close()
        except Exception:
            self._log.exception("CHANNEL_CLOSE_ERROR")

    def _on_message(self, message: Any) -> None:
        cb = self.on_message
        if cb is not None:
            cb(message)

    def _on_close(self, channel: Channel, reason: Optional[str]) -> None:
        self._log.info("CHANNEL_CLOSE reason=%s current=%s", reason, channel is self._channel)

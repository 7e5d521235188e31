# sparkscope/channel/_internal/rx_worker.py
from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sparkscope.channel.serial import SerialChannel


class ChannelReader(threading.Thread):
    """Thread that continuously reads from a channel and delivers messages."""

    def __init__(self, channel: "SerialChannel"):
        super().__init__(daemon=True, name="sparkscope-reader")
        self.channel = channel
        self._stop_event = threading.Event()

    def run(self) -> None:
        while not self._stop_event.is_set():
            try:
                alive = self.channel._pump_rx()
            except Exception:
                self.channel._log.exception("CHANNEL_READER_EXCEPTION")
                self._stop_event.wait(0.01)
                continue
            if alive is False:
                break
            self._stop_event.wait(0.001)

    def stop(self) -> None:
        self._stop_event.set()

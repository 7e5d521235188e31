# sparkscope/channel/memory.py
from __future__ import annotations

import copy
from typing import Any, List, Mapping

from .base import Channel
from .errors import ChannelIOError


class MemoryChannel(Channel):
    """
    In-process channel. Inbound messages are delivered synchronously by
    ``inject()``; outbound messages are kept in ``sent``.
    """

    PARAMS = {"name": {"type": "str", "default": "memory"}}

    def __init__(self, name: str = "memory"):
        super().__init__()
        self.name = name
        self.sent: List[dict] = []
        self.open_count = 0
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        self._open = True
        self.open_count += 1

    def close(self) -> None:
        if not self._open:
            return
        self._open = False
        self._closed("closed")

    def send(self, message: Mapping[str, Any]) -> None:
        if not self._open:
            raise ChannelIOError("send while channel not open")
        self.sent.append(copy.deepcopy(dict(message)))

    def inject(self, message: Any) -> None:
        if not self._open:
            raise ChannelIOError("inject while channel not open")
        self._deliver(message)

# sparkscope/channel/errors.py
from __future__ import annotations

from typing import Optional, Sequence


class ChannelError(Exception):
    """Base class for channel-layer failures."""

class ChannelOpenError(ChannelError):
    pass

class ChannelIOError(ChannelError):
    pass


class UnknownChannelDriverError(ChannelError):
    def __init__(self, driver: str, known: Sequence[str]):
        super().__init__(f"Channel driver '{driver}' not registered")
        self.driver = driver
        self.known = list(known)


class ChannelParamsError(ChannelError):
    """Driver params rejected by the driver's schema (unknown, missing or mistyped)."""

    def __init__(self, message: str, *, driver: str, param: str, hint: Optional[str] = None):
        super().__init__(message)
        self.driver = driver
        self.param = param
        self.hint = hint

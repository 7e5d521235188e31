from .base import Channel
from .memory import MemoryChannel
from .serial import SerialChannel
from .registry import ChannelDriverRegistry
from .adapter import ChannelAdapter
from .errors import (
    ChannelError,
    ChannelOpenError,
    ChannelIOError,
    ChannelParamsError,
    UnknownChannelDriverError,
)

__all__ = [
    "Channel",
    "MemoryChannel",
    "SerialChannel",
    "ChannelDriverRegistry",
    "ChannelAdapter",
    "ChannelError", "ChannelOpenError", "ChannelIOError",
    "ChannelParamsError", "UnknownChannelDriverError",
]

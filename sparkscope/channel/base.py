from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, Dict, Mapping, Optional

MessageHandler = Callable[[Any], None]
CloseHandler = Callable[[Optional[str]], None]
# param name -> {"type": "str"|"int"|"float", "default": ..., "required": bool}
ParamSchema = Dict[str, Dict[str, Any]]


class Channel(ABC):
    """
    Abstract bidirectional message pipe to the kernel-side listener.

    Contract:
      - open()/close() manage the underlying connection; close() is idempotent.
      - send(message) delivers one JSON-serialisable mapping.
      - on_message is called once per inbound message, in arrival order,
        never concurrently with itself.
      - on_close is called at most once per open(), with a reason string.

    ``PARAMS`` describes the constructor kwargs a config may set. None
    means the driver takes its params unchecked.
    """

    PARAMS: ClassVar[Optional[ParamSchema]] = None

    def __init__(self) -> None:
        self.on_message: Optional[MessageHandler] = None
        self.on_close: Optional[CloseHandler] = None

    @abstractmethod
    def open(self) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def send(self, message: Mapping[str, Any]) -> None: ...

    @property
    @abstractmethod
    def is_open(self) -> bool: ...

    def _deliver(self, message: Any) -> None:
        cb = self.on_message
        if cb is not None:
            cb(message)

    def _closed(self, reason: Optional[str]) -> None:
        cb = self.on_close
        if cb is not None:
            cb(reason)

    def __enter__(self) -> "Channel":
        self.open()
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()

# sparkscope/interfaces/active_command.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(eq=False)
class CommandRef:
    """
    Identity of one interactive command (a notebook cell).

    Owned by the host; the engine only references it. ``id`` may be empty
    until the first job start, at which point the engine assigns one.
    """
    id: str = ""
    label: str = ""


class ActiveCommandTracker(Protocol):
    def get_active(self) -> Optional[CommandRef]: ...
    def get_reexecuted(self) -> bool: ...
    def clear_reexecuted(self) -> None: ...
    def get_execution_count(self) -> int: ...
    def wait_ready(self, timeout: Optional[float] = None) -> bool: ...

# sparkscope/interfaces/display.py
from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Protocol

if TYPE_CHECKING:
    from sparkscope.interfaces.active_command import CommandRef
    from sparkscope.runtime.state import MonitorSnapshot


class CommandDisplay(Protocol):
    """Host-side rendering of one command's monitor (progress bars, tables)."""
    def update(self, snapshot: "MonitorSnapshot") -> None: ...
    def remove(self) -> None: ...


DisplayFactory = Callable[["CommandRef"], CommandDisplay]


class NullDisplay:
    """Display that renders nothing. Used when the host supplies no factory."""

    def update(self, snapshot: "MonitorSnapshot") -> None:
        return None

    def remove(self) -> None:
        return None


def null_display_factory(command: "CommandRef") -> CommandDisplay:
    return NullDisplay()

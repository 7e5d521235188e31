from .active_command import ActiveCommandTracker, CommandRef
from .display import CommandDisplay, DisplayFactory, NullDisplay, null_display_factory

__all__ = [
    "ActiveCommandTracker",
    "CommandRef",
    "CommandDisplay",
    "DisplayFactory",
    "NullDisplay",
    "null_display_factory",
]

# sparkscope/runtime/tracker.py
from __future__ import annotations

import logging
import threading
from typing import Optional, Set

from sparkscope.interfaces.active_command import CommandRef


class ExecutionTracker:
    """
    ActiveCommandTracker for hosts that report command execution explicitly.

    The host calls ``begin(cmd)`` when a command starts executing and
    ``end(cmd)`` when it finishes, and ``forget(cmd)`` once the command is
    deleted so it is no longer held. ``mark_ready()`` releases the one-shot
    ``wait_ready()`` barrier the channel adapter waits on before opening.
    """

    def __init__(self, *, ready: bool = False, logger: Optional[logging.Logger] = None):
        self._log = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._ready = threading.Event()
        if ready:
            self._ready.set()

        self._active: Optional[CommandRef] = None
        self._seen: Set[CommandRef] = set()
        self._execution_count = 0
        self._reexecuted = False

    # --- host side ---
    def begin(self, command: CommandRef) -> None:
        with self._lock:
            self._reexecuted = command in self._seen
            self._seen.add(command)
            self._execution_count += 1
            self._active = command
        self._log.debug("COMMAND_BEGIN id=%s count=%d", command.id, self._execution_count)

    def end(self, command: CommandRef) -> None:
        with self._lock:
            if self._active is command:
                self._active = None
        self._log.debug("COMMAND_END id=%s", command.id)

    def forget(self, command: CommandRef) -> None:
        """Drop a deleted command. A later begin() of it is not a re-execution."""
        with self._lock:
            self._seen.discard(command)
        self._log.debug("COMMAND_FORGOTTEN id=%s", command.id)

    def mark_ready(self) -> None:
        self._ready.set()

    # --- tracker contract ---
    def get_active(self) -> Optional[CommandRef]:
        with self._lock:
            return self._active

    def get_reexecuted(self) -> bool:
        with self._lock:
            return self._reexecuted

    def clear_reexecuted(self) -> None:
        with self._lock:
            self._reexecuted = False

    def get_execution_count(self) -> int:
        with self._lock:
            return self._execution_count

    def wait_ready(self, timeout: Optional[float] = None) -> bool:
        return self._ready.wait(timeout)

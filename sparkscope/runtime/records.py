# sparkscope/runtime/records.py
from __future__ import annotations

from typing import Dict, Optional, Tuple


class CorrelationTable:
    """
    Maps (app_instance, backend id) -> owning command id.

    Entries are write-once: recording an existing key keeps the first
    command id. Nothing is ever evicted, so the table grows for the
    lifetime of the session.
    """

    def __init__(self, name: str):
        self.name = name
        self._entries: Dict[Tuple[str, int], str] = {}

    def record(self, app_instance: str, item_id: int, command_id: str) -> str:
        """Record the owner of an id. Returns the command id now on file."""
        key = (str(app_instance), int(item_id))
        return self._entries.setdefault(key, str(command_id))

    def lookup(self, app_instance: str, item_id: int) -> Optional[str]:
        return self._entries.get((str(app_instance), int(item_id)))

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

"""
Session-scoped cache of first result pages.
"""
from typing import Any, Dict, Hashable, List, Optional

from core.logging import get_logger

logger = get_logger("notes_cache")


class NotesCache:
    """
    Maps a full query key to the display notes of its first page.

    One instance lives for one browsing session and is shared by reference.
    Entries have no size bound or TTL; they are removed by invalidate() when
    a query identity is entered again. Access is confined to the event loop
    thread, so no locking is done.
    """

    def __init__(self):
        self._entries: Dict[Hashable, List[Dict[str, Any]]] = {}

    def get(self, key: Hashable) -> Optional[List[Dict[str, Any]]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        logger.debug("Notes cache hit", key=str(key))
        return [dict(note) for note in entry]

    def set(self, key: Hashable, notes: List[Dict[str, Any]]) -> None:
        self._entries[key] = [dict(note) for note in notes]

    def invalidate(self, key: Hashable) -> bool:
        """Delete one entry; returns True if it existed."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

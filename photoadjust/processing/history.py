"""
Edit history for PhotoAdjust.

Implements a linear undo/redo timeline over rendered images. Adding an edit
after an undo discards the redo tail, so the history never branches.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .image import EditImage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryEntry:
    """A rendered image and the label of the edit that produced it."""
    image: EditImage
    label: str = ""


class EditHistory:
    """
    Bounded undo/redo log of rendered images.

    Features:
    - Single linear timeline: add() truncates any redo tail
    - undo()/redo() return None when there is nothing to do
    - Optional max_entries bound that drops the oldest entries
    - Re-entrant lock so readers never see a half-applied mutation
    """

    def __init__(self, image: Optional[EditImage] = None,
                 max_entries: Optional[int] = None):
        """
        Initialize history.

        Args:
            image: Initial image; when given the history starts reset to it
            max_entries: Maximum number of entries to retain (None = no limit)
        """
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self.max_entries = max_entries
        self._entries = []
        self._cursor = -1
        self._lock = threading.RLock()

        if image is not None:
            self.reset(image)

        logger.debug(f"Initialized edit history: max_entries={max_entries}")

    @property
    def entries(self) -> Tuple[HistoryEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    @property
    def cursor(self) -> int:
        with self._lock:
            return self._cursor

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def reset(self, image: EditImage) -> HistoryEntry:
        """
        Start a new timeline holding only the given image.

        Args:
            image: Newly loaded source image

        Returns:
            The single entry now current
        """
        entry = HistoryEntry(image, "")
        with self._lock:
            self._entries = [entry]
            self._cursor = 0
        logger.debug("Reset edit history")
        return entry

    def add(self, image: EditImage, label: str = "") -> HistoryEntry:
        """
        Append an edit and make it current.

        Any entries after the cursor are discarded first. When the bound is
        exceeded the oldest entries are dropped.

        Args:
            image: Rendered image
            label: Preset name or other description of the edit

        Returns:
            The new current entry
        """
        entry = HistoryEntry(image, label)
        with self._lock:
            if self._cursor < len(self._entries) - 1:
                discarded = len(self._entries) - self._cursor - 1
                del self._entries[self._cursor + 1:]
                logger.debug(f"Discarded {discarded} redo entries")

            self._entries.append(entry)

            if self.max_entries is not None and len(self._entries) > self.max_entries:
                removed_count = len(self._entries) - self.max_entries
                del self._entries[:removed_count]
                logger.debug(f"Trimmed {removed_count} old entries from history")

            self._cursor = len(self._entries) - 1

        logger.debug(f"Added history entry: {label!r}")
        return entry

    def can_undo(self) -> bool:
        with self._lock:
            return self._cursor > 0

    def can_redo(self) -> bool:
        with self._lock:
            return self._cursor < len(self._entries) - 1

    def undo(self) -> Optional[HistoryEntry]:
        """
        Step back one entry.

        Returns:
            The entry now current, or None if nothing to undo
        """
        with self._lock:
            if not self.can_undo():
                logger.debug("Cannot undo: at the first entry")
                return None
            self._cursor -= 1
            position = self._cursor
            entry = self._entries[position]

        logger.debug(f"Undo: moved to position {position}")
        return entry

    def redo(self) -> Optional[HistoryEntry]:
        """
        Step forward one entry.

        Returns:
            The entry now current, or None if nothing to redo
        """
        with self._lock:
            if not self.can_redo():
                logger.debug("Cannot redo: at the latest entry")
                return None
            self._cursor += 1
            position = self._cursor
            entry = self._entries[position]

        logger.debug(f"Redo: moved to position {position}")
        return entry

    def current(self) -> Optional[HistoryEntry]:
        """Return the current entry, or None before the first reset/add."""
        with self._lock:
            if self._cursor < 0:
                return None
            return self._entries[self._cursor]

    def get_history_summary(self) -> Dict[str, Any]:
        """
        Get a summary of the current history state.

        Returns:
            Entry count, cursor position, undo/redo availability and labels
        """
        with self._lock:
            return {
                'total_entries': len(self._entries),
                'current_position': self._cursor,
                'max_entries': self.max_entries,
                'can_undo': self.can_undo(),
                'can_redo': self.can_redo(),
                'labels': [entry.label for entry in self._entries],
            }

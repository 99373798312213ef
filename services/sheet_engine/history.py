"""Bounded undo/redo history of full-sheet snapshots.

Every snapshot is a structural copy owned by the stack; nothing outside
holds a reference to a pushed entry.

The `max_size` bound applies to `save_state` only. `redo` pushes the
current sheet onto the undo stack without evicting, so the undo stack may
grow past `max_size` through redo.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from models.schemas import Sheet

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 50


class HistoryStack:

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE):
        self.max_size = max_size
        self.undo_stack: List[Sheet] = []
        self.redo_stack: List[Sheet] = []

    def save_state(self, current: Sheet) -> None:
        """Checkpoint `current` before a user mutation.

        Evicts the oldest entry past `max_size` and invalidates redo.
        """
        self.undo_stack.append(current.clone())
        if len(self.undo_stack) > self.max_size:
            self.undo_stack.pop(0)
        self.redo_stack = []

    def undo(self, current: Sheet) -> Optional[Sheet]:
        """Return the previous snapshot, or None when there is nothing to undo.

        Snapshots identical to `current` are dropped first, since restoring
        them would not change anything.
        """
        self._drop_matching(self.undo_stack, current)
        if not self.undo_stack:
            return None

        self.redo_stack.append(current.clone())
        snapshot = self.undo_stack.pop()
        logger.debug(f"[HISTORY] undo -> {len(self.undo_stack)} undo / {len(self.redo_stack)} redo")
        return snapshot

    def redo(self, current: Sheet) -> Optional[Sheet]:
        """Return the next snapshot, or None when there is nothing to redo."""
        self._drop_matching(self.redo_stack, current)
        if not self.redo_stack:
            return None

        # Not capped by max_size
        self.undo_stack.append(current.clone())
        snapshot = self.redo_stack.pop()
        logger.debug(f"[HISTORY] redo -> {len(self.undo_stack)} undo / {len(self.redo_stack)} redo")
        return snapshot

    def clear(self) -> None:
        self.undo_stack = []
        self.redo_stack = []

    def can_undo(self) -> bool:
        return len(self.undo_stack) > 0

    def can_redo(self) -> bool:
        return len(self.redo_stack) > 0

    @staticmethod
    def _drop_matching(stack: List[Sheet], current: Sheet) -> None:
        while stack and stack[-1] == current:
            stack.pop()

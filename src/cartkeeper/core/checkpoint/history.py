"""
Bounded, cursor-addressed checkpoint history.

The history is a single linear path of snapshots with one cursor marking
"where we currently are":

- ``add_snapshot`` drops the redo branch (everything after the cursor),
  appends, evicts the oldest entry once capacity is exceeded and moves the
  cursor to the tail.
- ``previous`` / ``next`` walk the cursor one step and return the entry, or
  ``None`` without moving when there is nowhere to go.

States are ``Empty`` (cursor == -1) and ``At(i)``; ``clear`` returns to
``Empty`` from anywhere.
"""

from __future__ import annotations

from cartkeeper.core.settings import get_logger

from .snapshot import Snapshot

DEFAULT_CAPACITY = 10

log = get_logger("cartkeeper.history")


class History:
    """
    Ordered, capacity-bounded sequence of snapshots with a cursor.

    Attributes
    ----------
    _entries : list[Snapshot]
        Oldest first.
    _cursor : int
        Index of the current entry, or -1 when empty.
    _capacity : int
        Maximum number of retained entries.
    """

    __slots__ = ("_entries", "_cursor", "_capacity")

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"History capacity must be at least 1, got {capacity}")
        self._entries: list[Snapshot] = []
        self._cursor: int = -1
        self._capacity: int = capacity

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def cursor(self) -> int:
        """Index of the current entry (-1 when empty)."""
        return self._cursor

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------- Writes ---------------------------------

    def add_snapshot(self, snapshot: Snapshot) -> None:
        """Append ``snapshot`` as the new current entry."""
        if self._cursor < len(self._entries) - 1:
            dropped = len(self._entries) - (self._cursor + 1)
            del self._entries[self._cursor + 1 :]
            log.debug("Pruned %d redo entries past cursor %d", dropped, self._cursor)

        self._entries.append(snapshot)

        if len(self._entries) > self._capacity:
            evicted = self._entries.pop(0)
            self._cursor -= 1
            log.debug("Evicted oldest checkpoint %r (capacity %d)", evicted, self._capacity)

        self._cursor = len(self._entries) - 1

    def clear(self) -> None:
        """Forget every entry and reset the cursor."""
        self._entries.clear()
        self._cursor = -1

    # ------------------------------- Reads ----------------------------------

    def get_snapshot(self, index: int) -> Snapshot | None:
        """Return the entry at ``index``, or ``None`` when out of range."""
        if 0 <= index < len(self._entries):
            return self._entries[index]
        return None

    def current(self) -> Snapshot | None:
        """Return the entry under the cursor, or ``None`` when empty."""
        return self.get_snapshot(self._cursor)

    def entries(self) -> tuple[Snapshot, ...]:
        """Return all entries, oldest first (read-only view)."""
        return tuple(self._entries)

    # ------------------------------- Navigation -----------------------------

    def can_undo(self) -> bool:
        return self._cursor > 0

    def can_redo(self) -> bool:
        return self._cursor < len(self._entries) - 1

    def previous(self) -> Snapshot | None:
        """Step the cursor back and return that entry (``None`` at the start)."""
        if not self.can_undo():
            return None
        self._cursor -= 1
        return self._entries[self._cursor]

    def next(self) -> Snapshot | None:
        """Step the cursor forward and return that entry (``None`` at the tail)."""
        if not self.can_redo():
            return None
        self._cursor += 1
        return self._entries[self._cursor]


__all__ = ["DEFAULT_CAPACITY", "History"]

"""Unit tests for the bounded, cursor-addressed checkpoint history."""

from __future__ import annotations

import pytest

from cartkeeper.core.checkpoint import History, Snapshot


def _snap(n: int) -> Snapshot:
    return Snapshot([{"id": f"p{n}", "quantity": n}], [], label=f"s{n}")


def _labels(history: History) -> list[str]:
    return [s.label for s in history.entries()]


def test_empty_history() -> None:
    h = History()
    assert len(h) == 0
    assert h.cursor == -1
    assert h.capacity == 10
    assert not h.can_undo() and not h.can_redo()
    assert h.previous() is None and h.next() is None
    assert h.current() is None


def test_add_moves_cursor_to_tail() -> None:
    h = History()
    for n in range(3):
        h.add_snapshot(_snap(n))
    assert h.cursor == 2
    assert h.current() is not None and h.current().label == "s2"  # type: ignore[union-attr]
    assert h.can_undo() and not h.can_redo()


def test_capacity_evicts_oldest() -> None:
    """The 11th snapshot evicts the first; length never exceeds capacity."""
    h = History()
    for n in range(11):
        h.add_snapshot(_snap(n))
        assert len(h) <= 10
    assert len(h) == 10
    assert _labels(h)[0] == "s1"
    assert h.cursor == 9


def test_previous_and_next_walk_cursor() -> None:
    h = History()
    for n in range(3):
        h.add_snapshot(_snap(n))

    assert h.previous().label == "s1"  # type: ignore[union-attr]
    assert h.previous().label == "s0"  # type: ignore[union-attr]
    assert h.previous() is None
    assert h.cursor == 0

    assert h.next().label == "s1"  # type: ignore[union-attr]
    assert h.next().label == "s2"  # type: ignore[union-attr]
    assert h.next() is None
    assert h.cursor == 2


def test_add_after_undo_prunes_redo_branch() -> None:
    h = History()
    for n in range(4):
        h.add_snapshot(_snap(n))
    h.previous()
    h.previous()

    h.add_snapshot(_snap(9))
    assert _labels(h) == ["s0", "s1", "s9"]
    assert h.cursor == 2
    assert not h.can_redo()


def test_eviction_with_full_history_after_undo() -> None:
    """Pruning happens before eviction, so a full history only evicts if still over capacity."""
    h = History(capacity=3)
    for n in range(3):
        h.add_snapshot(_snap(n))
    h.previous()

    h.add_snapshot(_snap(7))
    assert _labels(h) == ["s0", "s1", "s7"]

    h.add_snapshot(_snap(8))
    assert _labels(h) == ["s1", "s7", "s8"]
    assert h.cursor == 2


def test_get_snapshot_bounds() -> None:
    h = History()
    h.add_snapshot(_snap(0))
    assert h.get_snapshot(0) is not None
    assert h.get_snapshot(1) is None
    assert h.get_snapshot(-1) is None


def test_clear_resets() -> None:
    h = History()
    for n in range(3):
        h.add_snapshot(_snap(n))
    h.clear()
    assert len(h) == 0
    assert h.cursor == -1
    assert not h.can_undo()


def test_entries_is_read_only_view() -> None:
    h = History()
    h.add_snapshot(_snap(0))
    view = h.entries()
    assert isinstance(view, tuple)
    h.add_snapshot(_snap(1))
    assert len(view) == 1


def test_invalid_capacity() -> None:
    with pytest.raises(ValueError):
        History(capacity=0)

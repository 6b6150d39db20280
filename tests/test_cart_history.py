"""Behavioural tests for the cart history service (undo/redo + auto-save).

All tests drive time with a :class:`ManualScheduler`, so debounce behaviour is
deterministic and nothing sleeps.
"""

from __future__ import annotations

import copy
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from cartkeeper.core.scheduling import ManualScheduler
from cartkeeper.services import CartHistoryService


@pytest.fixture  # type: ignore[misc]
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture  # type: ignore[misc]
def service(scheduler: ManualScheduler) -> CartHistoryService:
    return CartHistoryService(
        scheduler, history_limit=10, autosave_enabled=True, autosave_threshold_ms=2000
    )


# --------------------------------------------------------------------------- #
# Worked scenarios
# --------------------------------------------------------------------------- #


def test_single_save(service: CartHistoryService) -> None:
    """One save: one entry, cursor at 0, nothing to undo."""
    service.update_cart_items([{"id": "p1", "qty": 1, "price": 2.5}])
    assert service.save_state() is True
    assert len(service.get_all_saved_states()) == 1
    assert service.can_undo() is False


def test_second_save_then_undo(service: CartHistoryService) -> None:
    service.update_cart_items([{"id": "p1", "qty": 1, "price": 2.5}])
    service.save_state()
    service.update_cart_items([{"id": "p1", "qty": 1}, {"id": "p2", "qty": 2}])
    service.save_state()

    assert len(service.get_all_saved_states()) == 2
    assert service.can_undo() is True
    assert service.undo() == {
        "items": [{"id": "p1", "qty": 1, "price": 2.5}],
        "applied_instruments": [],
    }


def test_save_after_undo_replaces_forward_entry(service: CartHistoryService) -> None:
    service.update_cart_items([{"id": "p1", "qty": 1, "price": 2.5}])
    service.save_state()
    service.update_cart_items([{"id": "p1", "qty": 1}, {"id": "p2", "qty": 2}])
    service.save_state()
    service.undo()

    service.update_cart_items([{"id": "p3", "qty": 1}])
    service.save_state()
    saved = service.get_all_saved_states()
    assert len(saved) == 2
    assert saved[-1].items() == [{"id": "p3", "qty": 1}]
    assert service.can_redo() is False


def test_eleven_cycles_keep_ten(service: CartHistoryService) -> None:
    for n in range(11):
        service.update_cart_items([{"id": f"p{n}", "quantity": 1}])
        assert service.save_state()

    saved = service.get_all_saved_states()
    assert len(saved) == 10
    assert all(s.items() != [{"id": "p0", "quantity": 1}] for s in saved)
    assert saved[0].items() == [{"id": "p1", "quantity": 1}]


def test_debounce_coalesces_rapid_updates(
    service: CartHistoryService, scheduler: ManualScheduler
) -> None:
    """Two updates 500 ms apart under a 2000 ms threshold -> one checkpoint with the last cart."""
    items_a = [{"id": "a", "quantity": 1}]
    items_b = [{"id": "a", "quantity": 1}, {"id": "b", "quantity": 1}]
    service.set_auto_save_threshold(2000)

    service.update_cart_items(items_a)
    scheduler.advance(500)
    assert service.get_all_saved_states() == ()
    service.update_cart_items(items_b)

    scheduler.advance(10_000)
    saved = service.get_all_saved_states()
    assert len(saved) == 1
    assert saved[0].items() == items_b


# --------------------------------------------------------------------------- #
# Properties
# --------------------------------------------------------------------------- #


def test_empty_cart_save_is_rejected(service: CartHistoryService) -> None:
    assert service.save_state() is False
    assert service.get_all_saved_states() == ()

    service.update_cart_items([{"id": "p1", "quantity": 1}])
    service.save_state()
    service.update_cart_items([])
    assert service.save_state("empty") is False
    assert len(service.get_all_saved_states()) == 1


def test_round_trip_and_no_aliasing(service: CartHistoryService) -> None:
    """save -> mutate -> undo restores a deep-equal state that is not shared with history."""
    state: list[dict[str, Any]] = [{"id": "p1", "quantity": 1, "tags": ["fresh"]}]
    service.update_cart_items(copy.deepcopy(state))
    service.update_applied_instruments([{"id": "v1", "value": 1.0}])
    service.save_state()

    service.update_cart_items([{"id": "p2", "quantity": 3}])
    service.update_applied_instruments([])
    service.save_state()

    view = service.undo()
    assert view is not None
    assert view["items"] == state
    assert view["applied_instruments"] == [{"id": "v1", "value": 1.0}]

    view["items"][0]["tags"].append("mutated")
    view["items"][0]["quantity"] = 99
    view["applied_instruments"].clear()

    first = service.get_all_saved_states()[0]
    assert first.items() == state
    assert first.applied_instruments() == [{"id": "v1", "value": 1.0}]


def test_live_edits_after_save_do_not_reach_history(service: CartHistoryService) -> None:
    items = [{"id": "p1", "quantity": 1}]
    service.update_cart_items(items)
    service.save_state()
    items[0]["quantity"] = 4
    assert service.get_all_saved_states()[0].items() == [{"id": "p1", "quantity": 1}]


def test_branch_pruning_after_n_saves(service: CartHistoryService) -> None:
    n = 5
    for i in range(n):
        service.update_cart_items([{"id": f"p{i}", "quantity": 1}])
        service.save_state()
    service.undo()
    assert service.can_redo()

    service.save_state()
    assert len(service.get_all_saved_states()) == n
    assert service.can_redo() is False


def test_can_undo_lifecycle(service: CartHistoryService) -> None:
    assert service.can_undo() is False

    service.update_cart_items([{"id": "p1", "quantity": 1}])
    service.save_state()
    service.update_cart_items([{"id": "p1", "quantity": 2}])
    service.save_state()
    assert service.can_undo() is True

    service.undo()
    assert service.can_undo() is False
    assert service.can_redo() is True

    service.clear_history()
    assert service.can_undo() is False
    assert service.can_redo() is False


def test_undo_redo_sentinels(service: CartHistoryService) -> None:
    assert service.undo() is None
    assert service.redo() is None

    service.update_cart_items([{"id": "p1", "quantity": 1}])
    service.save_state()
    service.update_cart_items([{"id": "p1", "quantity": 2}])
    service.save_state()

    assert service.redo() is None
    assert service.undo() is not None
    assert service.undo() is None

    view = service.redo()
    assert view is not None
    assert view["items"] == [{"id": "p1", "quantity": 2}]
    assert service.get_cart_items() == [{"id": "p1", "quantity": 2}]


def test_labels_on_manual_saves(service: CartHistoryService) -> None:
    service.update_cart_items([{"id": "p1", "quantity": 2}])
    service.save_state("Added product")
    service.update_cart_items([{"id": "p1", "quantity": 3}])
    service.save_state()

    first, second = service.get_all_saved_states()
    assert first.label == "Added product"
    assert second.label.endswith("(3 items)")


# --------------------------------------------------------------------------- #
# Restore by index
# --------------------------------------------------------------------------- #


def test_restore_by_index_leaves_cursor(service: CartHistoryService) -> None:
    for i in range(3):
        service.update_cart_items([{"id": f"p{i}", "quantity": 1}])
        service.save_state()

    view = service.restore_state_by_index(0)
    assert view is not None
    assert view["items"] == [{"id": "p0", "quantity": 1}]
    assert service.get_cart_items() == [{"id": "p0", "quantity": 1}]
    assert service.history_cursor() == 2
    assert service.can_redo() is False

    view = service.undo()
    assert view is not None and view["items"] == [{"id": "p1", "quantity": 1}]


def test_restore_by_index_out_of_range(service: CartHistoryService) -> None:
    service.update_cart_items([{"id": "p1", "quantity": 1}])
    service.save_state()
    assert service.restore_state_by_index(5) is None
    assert service.restore_state_by_index(-1) is None
    assert service.get_cart_items() == [{"id": "p1", "quantity": 1}]


# --------------------------------------------------------------------------- #
# Live state normalisation
# --------------------------------------------------------------------------- #


def test_updates_normalise_missing_collections(service: CartHistoryService) -> None:
    assert service.update_cart_items(None) == []
    assert service.update_applied_instruments(None) == []
    assert service.update_applied_vouchers(None) == []
    assert service.get_cart_items() == []
    assert service.get_applied_vouchers() == []


def test_update_returns_live_sequence(service: CartHistoryService) -> None:
    items = [{"id": "p1", "quantity": 1}]
    assert service.update_cart_items(items) is items
    assert service.get_cart_items() is items


def test_clear_history_resets_live_state(service: CartHistoryService) -> None:
    service.update_cart_items([{"id": "p1", "quantity": 1}])
    service.update_applied_instruments([{"id": "v1"}])
    service.save_state()

    service.clear_history()
    assert service.get_all_saved_states() == ()
    assert service.history_cursor() == -1
    assert service.get_cart_items() == []
    assert service.get_applied_instruments() == []


# --------------------------------------------------------------------------- #
# Auto-save scheduling
# --------------------------------------------------------------------------- #


def test_first_auto_save_waits_full_threshold(
    service: CartHistoryService, scheduler: ManualScheduler
) -> None:
    service.update_cart_items([{"id": "p1", "quantity": 1}])
    assert service.has_pending_auto_save()

    scheduler.advance(1999)
    assert service.get_all_saved_states() == ()
    scheduler.advance(1)
    assert len(service.get_all_saved_states()) == 1
    assert not service.has_pending_auto_save()


def test_wait_accounts_for_time_since_last_save(
    service: CartHistoryService, scheduler: ManualScheduler
) -> None:
    service.update_cart_items([{"id": "p1", "quantity": 1}])
    service.save_state()
    scheduler.advance(500)

    service.update_cart_items([{"id": "p1", "quantity": 2}])
    scheduler.advance(1499)
    assert len(service.get_all_saved_states()) == 1
    scheduler.advance(1)
    assert len(service.get_all_saved_states()) == 2


def test_wait_is_zero_once_threshold_elapsed(
    service: CartHistoryService, scheduler: ManualScheduler
) -> None:
    service.update_cart_items([{"id": "p1", "quantity": 1}])
    service.save_state()
    scheduler.advance(5000)

    service.update_cart_items([{"id": "p1", "quantity": 2}])
    assert scheduler.run_pending() == 1
    assert len(service.get_all_saved_states()) == 2


def test_voucher_updates_schedule_auto_save(
    service: CartHistoryService, scheduler: ManualScheduler
) -> None:
    service.update_cart_items([{"id": "p1", "quantity": 1}])
    scheduler.advance(2000)
    service.update_applied_instruments([{"id": "v1", "value": 1.0}])
    scheduler.advance(2000)

    saved = service.get_all_saved_states()
    assert len(saved) == 2
    assert saved[-1].applied_instruments() == [{"id": "v1", "value": 1.0}]


def test_empty_update_cancels_pending(
    service: CartHistoryService, scheduler: ManualScheduler
) -> None:
    service.update_cart_items([{"id": "p1", "quantity": 1}])
    service.update_cart_items([])
    assert not service.has_pending_auto_save()
    scheduler.advance(10_000)
    assert service.get_all_saved_states() == ()


def test_empty_guard_checked_when_task_fires(
    service: CartHistoryService, scheduler: ManualScheduler
) -> None:
    """A cart emptied in place after scheduling produces no checkpoint."""
    service.update_cart_items([{"id": "p1", "quantity": 1}])
    service.get_cart_items().clear()
    scheduler.advance(10_000)
    assert service.get_all_saved_states() == ()
    assert not service.has_pending_auto_save()


def test_manual_save_cancels_pending(
    service: CartHistoryService, scheduler: ManualScheduler
) -> None:
    service.update_cart_items([{"id": "p1", "quantity": 1}])
    service.save_state()
    assert not service.has_pending_auto_save()
    scheduler.advance(10_000)
    assert len(service.get_all_saved_states()) == 1


def test_disabling_auto_save_cancels_pending(
    service: CartHistoryService, scheduler: ManualScheduler
) -> None:
    service.update_cart_items([{"id": "p1", "quantity": 1}])
    service.set_auto_save_enabled(False)
    assert service.auto_save_enabled is False
    assert not service.has_pending_auto_save()

    service.update_cart_items([{"id": "p1", "quantity": 2}])
    scheduler.advance(10_000)
    assert service.get_all_saved_states() == ()


def test_clear_history_cancels_pending_and_resets_last_save(
    service: CartHistoryService, scheduler: ManualScheduler
) -> None:
    service.update_cart_items([{"id": "p1", "quantity": 1}])
    service.save_state()
    scheduler.advance(5000)
    service.update_cart_items([{"id": "p1", "quantity": 2}])

    service.clear_history()
    assert not service.has_pending_auto_save()
    scheduler.advance(10_000)
    assert service.get_all_saved_states() == ()

    # No previous save any more: the next auto-save waits the full threshold.
    service.update_cart_items([{"id": "p9", "quantity": 1}])
    scheduler.advance(1999)
    assert service.get_all_saved_states() == ()
    scheduler.advance(1)
    assert len(service.get_all_saved_states()) == 1


def test_threshold_configuration(service: CartHistoryService) -> None:
    service.set_auto_save_threshold(250)
    assert service.auto_save_threshold == 250

    service.set_auto_save_threshold(None)
    assert service.auto_save_threshold == 250

    service.set_auto_save_threshold(-1)
    assert service.auto_save_threshold == 0


def test_negative_threshold_saves_on_next_turn(
    service: CartHistoryService, scheduler: ManualScheduler
) -> None:
    service.set_auto_save_threshold(-500)
    service.update_cart_items([{"id": "p1", "quantity": 1}])
    assert scheduler.run_pending() == 1
    assert len(service.get_all_saved_states()) == 1


def test_defaults_come_from_settings(monkeypatch: Any) -> None:
    from cartkeeper.core.settings import load_settings

    monkeypatch.setenv("CARTKEEPER_HISTORY_LIMIT", "3")
    monkeypatch.setenv("CARTKEEPER_AUTOSAVE_THRESHOLD_MS", "750")
    monkeypatch.setenv("CARTKEEPER_AUTOSAVE_ENABLED", "false")
    load_settings.cache_clear()
    try:
        svc = CartHistoryService(ManualScheduler())
        assert svc.history_capacity == 3
        assert svc.auto_save_threshold == 750
        assert svc.auto_save_enabled is False
    finally:
        load_settings.cache_clear()


def test_checkpoints_are_stamped_from_scheduler_clock() -> None:
    epoch = datetime(2024, 5, 1, 9, 0, tzinfo=UTC)
    sched = ManualScheduler(epoch=epoch)
    svc = CartHistoryService(sched, autosave_enabled=True, autosave_threshold_ms=2000)

    svc.update_cart_items([{"id": "p1", "qty": 2}])
    sched.advance(2000)
    svc.update_cart_items([{"id": "p1", "qty": 3}])
    sched.advance(60_000)

    first, second = svc.get_all_saved_states()
    assert first.timestamp == epoch + timedelta(seconds=2)
    assert second.timestamp == epoch + timedelta(seconds=4)
    assert second.label.endswith("(3 items)")

"""Unit tests for the stock movement audit trail"""

import pytest
from gestor_finance.domain.exceptions import InvalidMovementError, NotFoundError, PersistenceError
from gestor_finance.domain.models import MovementReason, MovementType, StockMovement
from gestor_finance.domain.stock import replay_stock, stock_delta
from gestor_finance.infrastructure.database.repositories import MaterialRepository
from gestor_finance.infrastructure.database.store import InMemoryRecordStore
from gestor_finance.services.stock_ledger import StockLedger
from tests.builders import RecordingNotifier


class FailingStore(InMemoryRecordStore):
    """Store whose stock movement collection cannot be read"""

    def load(self, collection):
        if collection == "stock_movements":
            raise PersistenceError("disk unavailable")
        return super().load(collection)


@pytest.mark.parametrize(
    "movement_type,quantity,delta",
    [(MovementType.IN, 5, 5), (MovementType.OUT, 3, -3), (MovementType.ADJUSTMENT, 2, -2)],
)
def test_stock_delta(movement_type, quantity, delta):
    assert stock_delta(movement_type, quantity) == delta


@pytest.mark.parametrize("quantity", [0, -4])
def test_stock_delta_rejects_non_positive_quantity(quantity):
    with pytest.raises(InvalidMovementError):
        stock_delta(MovementType.IN, quantity)


def test_stock_delta_rejects_unknown_type():
    with pytest.raises(InvalidMovementError):
        stock_delta("sideways", 1)


def test_replay_stock():
    movements = [
        StockMovement("mat-1", MovementType.IN, 10, MovementReason.PURCHASE, 0, 10),
        StockMovement("mat-1", MovementType.OUT, 4, MovementReason.SERVICE_USE, 10, 6),
        StockMovement("mat-1", MovementType.ADJUSTMENT, 1, MovementReason.LOSS, 6, 5),
    ]
    assert replay_stock(movements) == 5
    assert replay_stock([]) == 0


def test_record_movement_derives_new_stock(store):
    notifier = RecordingNotifier()
    ledger = StockLedger(store, notifier)

    movement = ledger.record_movement("mat-1", MovementType.OUT, 3, MovementReason.SERVICE_USE, 10, reference_id="svc-1")

    assert movement.id
    assert movement.new_stock == 7
    assert ledger.movements_by_reference("svc-1") == [movement]
    assert notifier.successes == ["Stock movement recorded, new stock 7"]
    assert notifier.count == 1


def test_record_movement_rejects_invalid_input(store):
    notifier = RecordingNotifier()
    ledger = StockLedger(store, notifier)

    with pytest.raises(InvalidMovementError):
        ledger.record_movement("mat-1", MovementType.IN, 0, MovementReason.PURCHASE, 10)
    assert notifier.count == 1
    assert notifier.errors[0].startswith("Failed to record stock movement")

    with pytest.raises(InvalidMovementError):
        ledger.record_movement("mat-1", MovementType.IN, 1, "gift", 10)

    assert ledger.all_movements() == []
    assert len(notifier.errors) == 2
    assert notifier.successes == []


def test_set_stock_records_matching_movement(store):
    notifier = RecordingNotifier()
    ledger = StockLedger(store, notifier)

    movement = ledger.set_stock("mat-1", 4)

    assert movement.movement_type == MovementType.OUT
    assert movement.quantity == 6
    assert (movement.previous_stock, movement.new_stock) == (10, 4)
    assert movement.reason == MovementReason.MANUAL_ADJUSTMENT
    assert MaterialRepository(store).get_by_id("mat-1").stock == 4
    assert notifier.successes == ["Stock of Model mat-1 updated to 4"]


def test_set_stock_unchanged_records_nothing(store):
    notifier = RecordingNotifier()
    ledger = StockLedger(store, notifier)

    assert ledger.set_stock("mat-1", 10) is None
    assert ledger.all_movements() == []
    assert notifier.successes == ["Stock unchanged"]


def test_set_stock_errors(store):
    notifier = RecordingNotifier()
    ledger = StockLedger(store, notifier)

    with pytest.raises(NotFoundError):
        ledger.set_stock("missing", 3)
    with pytest.raises(InvalidMovementError):
        ledger.set_stock("mat-1", -1)

    assert len(notifier.errors) == 2
    assert notifier.successes == []


def test_replay_and_verify_after_purchases_and_usage():
    store = InMemoryRecordStore({"materials": [{"id": "mat-9", "type": "Pipe", "model": "PVC", "stock": 0}]})
    ledger = StockLedger(store, RecordingNotifier())

    ledger.set_stock("mat-9", 12, MovementReason.PURCHASE)
    ledger.set_stock("mat-9", 9, MovementReason.SERVICE_USE)
    ledger.set_stock("mat-9", 15, MovementReason.RETURN)

    assert [m.movement_type for m in ledger.material_movements("mat-9")] == [
        MovementType.IN,
        MovementType.OUT,
        MovementType.IN,
    ]
    assert ledger.replay("mat-9") == 15
    assert ledger.verify("mat-9") is True


def test_verify_detects_divergence(store):
    """mat-1 starts with stock 10 and no recorded movements"""
    ledger = StockLedger(store, RecordingNotifier())

    assert ledger.verify("mat-1") is False
    with pytest.raises(NotFoundError):
        ledger.verify("missing")


def test_movement_reads_are_best_effort():
    ledger = StockLedger(FailingStore({"materials": []}), RecordingNotifier())

    assert ledger.all_movements() == []
    assert ledger.material_movements("mat-1") == []
    assert ledger.replay("mat-1") == 0

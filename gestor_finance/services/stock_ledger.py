"""Stock ledger - append-only audit trail of material stock changes"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from gestor_finance.domain.exceptions import InvalidMovementError, NotFoundError, PersistenceError
from gestor_finance.domain.models import MovementReason, MovementType, StockMovement
from gestor_finance.domain.ports import Notifier, RecordStore
from gestor_finance.domain.stock import replay_stock, stock_delta
from gestor_finance.infrastructure.clients.notifier import LoggingNotifier
from gestor_finance.infrastructure.database.repositories import MaterialRepository, StockMovementRepository
from gestor_finance.infrastructure.observability.metrics import stock_movement_counter
from gestor_finance.services.notifications import notify_on_failure


class StockLedger:
    """Records stock movements and checks them against material stock"""

    def __init__(self, store: RecordStore, notifier: Optional[Notifier] = None):
        self.movements = StockMovementRepository(store)
        self.materials = MaterialRepository(store)
        self.notifier = notifier or LoggingNotifier()

    def record_movement(
        self,
        material_id: str,
        movement_type: MovementType,
        quantity: int,
        reason: MovementReason,
        previous_stock: int,
        reference_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> StockMovement:
        """
        Append one movement; new_stock is derived from previous_stock.

        Raises:
            InvalidMovementError: Non-positive quantity, unknown type or reason
        """
        with notify_on_failure(self.notifier, "Failed to record stock movement"):
            movement = self._append(
                material_id, movement_type, quantity, reason, previous_stock, reference_id, notes
            )

        self.notifier.notify_success(f"Stock movement recorded, new stock {movement.new_stock}")
        return movement

    def _append(
        self,
        material_id: str,
        movement_type: MovementType,
        quantity: int,
        reason: MovementReason,
        previous_stock: int,
        reference_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> StockMovement:
        delta = stock_delta(movement_type, quantity)
        try:
            reason = MovementReason(reason)
        except ValueError as e:
            raise InvalidMovementError(f"Unknown movement reason: {reason}") from e

        movement = StockMovement(
            id=str(uuid.uuid4()),
            material_id=material_id,
            movement_type=MovementType(movement_type),
            quantity=quantity,
            reason=reason,
            previous_stock=previous_stock,
            new_stock=previous_stock + delta,
            reference_id=reference_id,
            notes=notes,
            created_at=datetime.now(timezone.utc),
        )
        self.movements.append(movement)

        stock_movement_counter.labels(movement_type=movement.movement_type.value).inc()
        logging.info(
            "Stock movement recorded",
            extra={
                "material_id": material_id,
                "movement_type": movement.movement_type.value,
                "quantity": quantity,
                "new_stock": movement.new_stock,
            },
        )
        return movement

    def set_stock(
        self,
        material_id: str,
        new_stock: int,
        reason: MovementReason = MovementReason.MANUAL_ADJUSTMENT,
        notes: Optional[str] = None,
    ) -> Optional[StockMovement]:
        """
        Overwrite a material's stock and record the matching in/out movement.

        Returns None when the stock did not change.

        Raises:
            NotFoundError: Unknown material
            InvalidMovementError: Negative stock or unknown reason
        """
        with notify_on_failure(self.notifier, "Failed to update stock"):
            if new_stock < 0:
                raise InvalidMovementError(f"Stock cannot be negative, got {new_stock}")

            materials = self.materials.list_all()
            material = next((m for m in materials if m.id == material_id), None)
            if material is None:
                raise NotFoundError(f"Material {material_id} not found")

            previous_stock = material.stock
            if new_stock == previous_stock:
                self.notifier.notify_success("Stock unchanged")
                return None

            movement_type = MovementType.IN if new_stock > previous_stock else MovementType.OUT
            movement = self._append(
                material_id,
                movement_type,
                abs(new_stock - previous_stock),
                reason,
                previous_stock,
                notes=notes or "Stock adjustment",
            )

            material.stock = new_stock
            material.updated_at = datetime.now(timezone.utc)
            self.materials.save_all(materials)

        self.notifier.notify_success(f"Stock of {material.model or material.id} updated to {new_stock}")
        return movement

    def all_movements(self) -> List[StockMovement]:
        """Every movement in creation order; a failed read degrades to an empty trail"""
        try:
            return self.movements.list_all()
        except PersistenceError as e:
            logging.warning(f"Stock movements unavailable: {e}")
            return []

    def material_movements(self, material_id: str) -> List[StockMovement]:
        return [m for m in self.all_movements() if m.material_id == material_id]

    def movements_by_reference(self, reference_id: str) -> List[StockMovement]:
        return [m for m in self.all_movements() if m.reference_id == reference_id]

    def replay(self, material_id: str) -> int:
        """Stock reproduced by replaying the material's movements from zero"""
        return replay_stock(self.material_movements(material_id))

    def verify(self, material_id: str) -> bool:
        """True when the replayed trail matches the material's current stock"""
        material = self.materials.get_by_id(material_id)
        if material is None:
            raise NotFoundError(f"Material {material_id} not found")

        consistent = self.replay(material_id) == material.stock
        if not consistent:
            logging.warning(
                "Stock trail diverges from material stock",
                extra={"material_id": material_id, "stock": material.stock},
            )
        return consistent

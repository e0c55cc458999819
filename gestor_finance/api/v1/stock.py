"""Stock movement endpoints - audit trail, manual stock changes and verification"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from gestor_finance.api.dependencies import get_request_id, get_request_notifier, get_store
from gestor_finance.api.errors import mapped_errors, transaction
from gestor_finance.api.v1.schemas import (
    SetStockRequest,
    StockMovementRequest,
    StockMovementSchema,
    StockVerificationSchema,
)
from gestor_finance.domain.ports import RecordStore
from gestor_finance.infrastructure.database.session import get_db
from gestor_finance.services.notifications import DeferredNotifier
from gestor_finance.services.stock_ledger import StockLedger

router = APIRouter()


def get_stock_ledger(
    store: RecordStore = Depends(get_store),
    notifier: DeferredNotifier = Depends(get_request_notifier),
) -> StockLedger:
    return StockLedger(store, notifier)


@router.post("/stock/movements", response_model=StockMovementSchema, status_code=201)
def record_movement(
    body: StockMovementRequest,
    request: Request,
    db: Session = Depends(get_db),
    ledger: StockLedger = Depends(get_stock_ledger),
):
    """Append a movement; the material's stock itself is not touched"""
    with transaction(db, get_request_id(request), ledger.notifier):
        movement = ledger.record_movement(
            body.material_id,
            body.movement_type,
            body.quantity,
            body.reason,
            body.previous_stock,
            reference_id=body.reference_id,
            notes=body.notes,
        )
    return StockMovementSchema.model_validate(movement)


@router.get("/stock/movements", response_model=List[StockMovementSchema])
def list_movements(
    request: Request,
    material_id: Optional[str] = Query(None),
    reference_id: Optional[str] = Query(None),
    ledger: StockLedger = Depends(get_stock_ledger),
):
    with mapped_errors(get_request_id(request)):
        if material_id:
            movements = ledger.material_movements(material_id)
        elif reference_id:
            movements = ledger.movements_by_reference(reference_id)
        else:
            movements = ledger.all_movements()
    return [StockMovementSchema.model_validate(m) for m in movements]


@router.put("/materials/{material_id}/stock", response_model=Optional[StockMovementSchema])
def set_stock(
    material_id: str,
    body: SetStockRequest,
    request: Request,
    db: Session = Depends(get_db),
    ledger: StockLedger = Depends(get_stock_ledger),
):
    """Overwrite a material's stock; returns the recorded movement, or null when unchanged"""
    with transaction(db, get_request_id(request), ledger.notifier):
        movement = ledger.set_stock(material_id, body.new_stock, body.reason, body.notes)
    if movement is None:
        return None
    return StockMovementSchema.model_validate(movement)


@router.get("/materials/{material_id}/stock/verify", response_model=StockVerificationSchema)
def verify_stock(material_id: str, request: Request, ledger: StockLedger = Depends(get_stock_ledger)):
    """Replay the material's movements from zero and compare with its stored stock"""
    with mapped_errors(get_request_id(request)):
        consistent = ledger.verify(material_id)
        replayed = ledger.replay(material_id)
    return StockVerificationSchema(material_id=material_id, replayed_stock=replayed, consistent=consistent)

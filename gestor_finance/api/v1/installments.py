"""Installment plan endpoints - preview, validation, persistence and state transitions"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from gestor_finance.api.dependencies import get_confirmation, get_request_id, get_request_notifier, get_store
from gestor_finance.api.errors import mapped_errors, transaction
from gestor_finance.api.v1.schemas import (
    CreatePlanRequest,
    InstallmentDraft,
    InstallmentSchema,
    InstallmentsSummarySchema,
    OperationResult,
    PayInstallmentRequest,
    PlanPreviewRequest,
    PlanValidationRequest,
    PlanValidationResponse,
    RecalculateRequest,
    UpdateInstallmentRequest,
    UpdatePlanRequest,
)
from gestor_finance.domain.models import Installment
from gestor_finance.domain.ports import Confirmation, RecordStore
from gestor_finance.infrastructure.database.session import get_db
from gestor_finance.services.installment_ledger import InstallmentLedger
from gestor_finance.services.notifications import DeferredNotifier

router = APIRouter()


def get_ledger(
    store: RecordStore = Depends(get_store),
    notifier: DeferredNotifier = Depends(get_request_notifier),
    confirmation: Confirmation = Depends(get_confirmation),
) -> InstallmentLedger:
    return InstallmentLedger(store, notifier, confirmation)


def _drafts_to_installments(service_id: str, drafts: List[InstallmentDraft]) -> List[Installment]:
    return [
        Installment(
            service_id=service_id,
            parcel_number=draft.parcel_number or index,
            amount_cents=draft.amount_cents,
            due_date=draft.due_date,
        )
        for index, draft in enumerate(drafts, start=1)
    ]


@router.post("/installments/preview", response_model=List[InstallmentSchema])
def preview_plan(body: PlanPreviewRequest, request: Request, ledger: InstallmentLedger = Depends(get_ledger)):
    """
    Generate an installment plan without saving it.

    Amounts split the total to the cent; the first parcel absorbs the remainder.
    """
    with mapped_errors(get_request_id(request)):
        plan = ledger.preview(
            body.service_id,
            body.total_cents,
            body.num_installments,
            body.first_due_date,
            body.custom_amounts,
        )
    return [InstallmentSchema.model_validate(i) for i in plan]


@router.post("/installments/validate", response_model=PlanValidationResponse)
def validate_plan(body: PlanValidationRequest, ledger: InstallmentLedger = Depends(get_ledger)):
    """Check a batch against an expected total; every violated rule is reported"""
    validation = ledger.validate(_drafts_to_installments("", body.installments), body.expected_total_cents)
    return PlanValidationResponse.model_validate(validation)


@router.post("/services/{service_id}/installments", response_model=List[InstallmentSchema], status_code=201)
def create_plan(
    service_id: str,
    body: CreatePlanRequest,
    request: Request,
    db: Session = Depends(get_db),
    ledger: InstallmentLedger = Depends(get_ledger),
):
    with transaction(db, get_request_id(request), ledger.notifier):
        rows = ledger.create(service_id, _drafts_to_installments(service_id, body.installments))
    return [InstallmentSchema.model_validate(i) for i in rows]


@router.get("/services/{service_id}/installments", response_model=List[InstallmentSchema])
def list_installments(service_id: str, request: Request, ledger: InstallmentLedger = Depends(get_ledger)):
    with mapped_errors(get_request_id(request)):
        rows = ledger.service_installments(service_id)
    return [InstallmentSchema.model_validate(i) for i in rows]


@router.get("/services/{service_id}/installments/summary", response_model=InstallmentsSummarySchema)
def installments_summary(service_id: str, request: Request, ledger: InstallmentLedger = Depends(get_ledger)):
    with mapped_errors(get_request_id(request)):
        summary = ledger.summary(service_id)
    return InstallmentsSummarySchema.model_validate(summary)


@router.put("/services/{service_id}/installments", response_model=OperationResult)
def update_plan(
    service_id: str,
    body: UpdatePlanRequest,
    request: Request,
    db: Session = Depends(get_db),
    ledger: InstallmentLedger = Depends(get_ledger),
):
    """
    Re-split the unpaid remainder after the service total changed.

    When the total is already covered, pending installments are removed
    only with ?confirm=true.
    """
    with transaction(db, get_request_id(request), ledger.notifier):
        applied = ledger.update_plan(service_id, body.new_total_cents, body.new_count, body.first_due_date)
    return OperationResult(applied=applied)


@router.post("/services/{service_id}/installments/recalculate", response_model=OperationResult)
def recalculate_plan(
    service_id: str,
    body: RecalculateRequest,
    request: Request,
    db: Session = Depends(get_db),
    ledger: InstallmentLedger = Depends(get_ledger),
):
    with transaction(db, get_request_id(request), ledger.notifier):
        applied = ledger.recalculate(service_id, body.new_total_cents, body.new_count)
    return OperationResult(applied=applied)


@router.post("/services/{service_id}/installments/cancel", response_model=OperationResult)
def cancel_pending(
    service_id: str,
    request: Request,
    db: Session = Depends(get_db),
    ledger: InstallmentLedger = Depends(get_ledger),
):
    with transaction(db, get_request_id(request), ledger.notifier):
        canceled = ledger.cancel_pending(service_id)
    return OperationResult(applied=True, count=canceled)


@router.delete("/services/{service_id}/installments", response_model=OperationResult)
def delete_plan(
    service_id: str,
    request: Request,
    db: Session = Depends(get_db),
    ledger: InstallmentLedger = Depends(get_ledger),
):
    """Paid installments are deleted only with ?confirm=true"""
    with transaction(db, get_request_id(request), ledger.notifier):
        applied = ledger.delete_plan(service_id)
    return OperationResult(applied=applied)


@router.post("/installments/{installment_id}/pay", response_model=InstallmentSchema)
def pay_installment(
    installment_id: str,
    request: Request,
    body: Optional[PayInstallmentRequest] = None,
    db: Session = Depends(get_db),
    ledger: InstallmentLedger = Depends(get_ledger),
):
    with transaction(db, get_request_id(request), ledger.notifier):
        installment = ledger.mark_paid(installment_id, body.paid_date if body else None)
    return InstallmentSchema.model_validate(installment)


@router.patch("/installments/{installment_id}", response_model=InstallmentSchema)
def edit_installment(
    installment_id: str,
    body: UpdateInstallmentRequest,
    request: Request,
    db: Session = Depends(get_db),
    ledger: InstallmentLedger = Depends(get_ledger),
):
    with transaction(db, get_request_id(request), ledger.notifier):
        installment = ledger.update(installment_id, body.amount_cents, body.due_date)
    return InstallmentSchema.model_validate(installment)

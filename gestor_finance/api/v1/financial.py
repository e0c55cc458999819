"""Financial summary, balance and expense endpoints"""

from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from gestor_finance.api.dependencies import get_request_id, get_request_notifier, get_store
from gestor_finance.api.errors import mapped_errors, transaction
from gestor_finance.api.v1.schemas import (
    BalanceAdjustRequest,
    BalanceSetRequest,
    ExpenseRequest,
    ExpenseSchema,
    FinancialSummarySchema,
)
from gestor_finance.domain.models import Expense
from gestor_finance.domain.ports import RecordStore
from gestor_finance.infrastructure.database.session import get_db
from gestor_finance.services.financial_aggregator import ExpenseLedger, FinancialAggregator
from gestor_finance.services.notifications import DeferredNotifier

router = APIRouter()


def get_aggregator(
    store: RecordStore = Depends(get_store),
    notifier: DeferredNotifier = Depends(get_request_notifier),
) -> FinancialAggregator:
    return FinancialAggregator(store, notifier)


def get_expense_ledger(
    store: RecordStore = Depends(get_store),
    notifier: DeferredNotifier = Depends(get_request_notifier),
    aggregator: FinancialAggregator = Depends(get_aggregator),
) -> ExpenseLedger:
    return ExpenseLedger(store, aggregator, notifier)


def _expense(expense_id: str, body: ExpenseRequest) -> Expense:
    return Expense(
        id=expense_id,
        description=body.description,
        category=body.category,
        value_cents=body.value_cents,
        due_date=body.due_date,
        is_paid=body.is_paid,
        notes=body.notes,
    )


@router.get("/financial/summary", response_model=FinancialSummarySchema)
def get_summary(request: Request, aggregator: FinancialAggregator = Depends(get_aggregator)):
    """Last stored summary; all zeros before the first recomputation"""
    with mapped_errors(get_request_id(request)):
        summary = aggregator.current()
    return FinancialSummarySchema.model_validate(summary)


@router.post("/financial/summary", response_model=FinancialSummarySchema)
def recompute_summary(
    request: Request,
    db: Session = Depends(get_db),
    aggregator: FinancialAggregator = Depends(get_aggregator),
):
    """Rebuild every figure from services, expenses and material usage; the balance is carried over"""
    with transaction(db, get_request_id(request), aggregator.notifier):
        summary = aggregator.summarize()
    return FinancialSummarySchema.model_validate(summary)


@router.post("/financial/balance/adjust", response_model=FinancialSummarySchema)
def adjust_balance(
    body: BalanceAdjustRequest,
    request: Request,
    db: Session = Depends(get_db),
    aggregator: FinancialAggregator = Depends(get_aggregator),
):
    with transaction(db, get_request_id(request), aggregator.notifier):
        summary = aggregator.adjust_balance(body.amount_cents, body.direction)
    return FinancialSummarySchema.model_validate(summary)


@router.put("/financial/balance", response_model=FinancialSummarySchema)
def set_balance(
    body: BalanceSetRequest,
    request: Request,
    db: Session = Depends(get_db),
    aggregator: FinancialAggregator = Depends(get_aggregator),
):
    with transaction(db, get_request_id(request), aggregator.notifier):
        summary = aggregator.set_balance(body.balance_cents)
    return FinancialSummarySchema.model_validate(summary)


@router.get("/expenses", response_model=List[ExpenseSchema])
def list_expenses(request: Request, ledger: ExpenseLedger = Depends(get_expense_ledger)):
    with mapped_errors(get_request_id(request)):
        expenses = ledger.list_all()
    return [ExpenseSchema.model_validate(e) for e in expenses]


@router.post("/expenses", response_model=ExpenseSchema, status_code=201)
def add_expense(
    body: ExpenseRequest,
    request: Request,
    db: Session = Depends(get_db),
    ledger: ExpenseLedger = Depends(get_expense_ledger),
):
    """A paid expense is subtracted from the balance"""
    with transaction(db, get_request_id(request), ledger.notifier):
        expense = ledger.add(_expense("", body))
    return ExpenseSchema.model_validate(expense)


@router.put("/expenses/{expense_id}", response_model=ExpenseSchema)
def update_expense(
    expense_id: str,
    body: ExpenseRequest,
    request: Request,
    db: Session = Depends(get_db),
    ledger: ExpenseLedger = Depends(get_expense_ledger),
):
    with transaction(db, get_request_id(request), ledger.notifier):
        expense = ledger.update(_expense(expense_id, body))
    return ExpenseSchema.model_validate(expense)


@router.delete("/expenses/{expense_id}", status_code=204)
def delete_expense(
    expense_id: str,
    request: Request,
    db: Session = Depends(get_db),
    ledger: ExpenseLedger = Depends(get_expense_ledger),
):
    with transaction(db, get_request_id(request), ledger.notifier):
        ledger.delete(expense_id)

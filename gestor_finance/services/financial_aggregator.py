"""
Financial aggregator - recomputes and persists the financial summary.

Every summary is rebuilt from services, expenses and material usage; only
the balance is carried over from the stored snapshot, and it changes solely
through explicit adjustments (manual, or triggered by paid expenses).
"""

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Callable, List

from gestor_finance.domain.exceptions import NotFoundError
from gestor_finance.domain.financials import material_costs_by_service, summarize
from gestor_finance.domain.models import Expense, FinancialSummary
from gestor_finance.domain.ports import Notifier, RecordStore
from gestor_finance.infrastructure.database.repositories import (
    ExpenseRepository,
    FinancialDataRepository,
    MaterialRepository,
    ServiceMaterialRepository,
    ServiceRepository,
)
from gestor_finance.infrastructure.observability.metrics import balance_adjustment_counter
from gestor_finance.services.notifications import notify_on_failure

ADD = "add"
SUBTRACT = "subtract"


class FinancialAggregator:
    """Builds the financial summary and owns the running balance"""

    def __init__(self, store: RecordStore, notifier: Notifier, today: Callable[[], date] = date.today):
        self.services = ServiceRepository(store)
        self.expenses = ExpenseRepository(store)
        self.materials = MaterialRepository(store)
        self.service_materials = ServiceMaterialRepository(store)
        self.financial_data = FinancialDataRepository(store)
        self.notifier = notifier
        self.today = today

    def current(self) -> FinancialSummary:
        """Last persisted snapshot (all zeros before the first summarization)"""
        return self.financial_data.get()

    def summarize(self) -> FinancialSummary:
        prior = self.financial_data.get()
        costs = material_costs_by_service(self.materials.list_all(), self.service_materials.list_all())

        summary = summarize(
            self.services.list_all(),
            self.expenses.list_all(),
            prior.balance_cents,
            costs,
            self.today(),
        )
        self.financial_data.save(summary)

        logging.info(
            "Financial summary updated",
            extra={
                "balance_cents": summary.balance_cents,
                "monthly_revenue_cents": summary.monthly_revenue_cents,
                "total_pending_payments_cents": summary.total_pending_payments_cents,
            },
        )
        return summary

    def adjust_balance(self, amount_cents: int, direction: str) -> FinancialSummary:
        """Add to or subtract from the balance without touching any other field"""
        if direction not in (ADD, SUBTRACT):
            raise ValueError(f"Unknown balance direction: {direction}")

        with notify_on_failure(self.notifier, "Failed to update balance"):
            summary = self.shift_balance(amount_cents, direction)

        self.notifier.notify_success("Balance updated")
        return summary

    def shift_balance(self, amount_cents: int, direction: str) -> FinancialSummary:
        """Balance adjustment without notification, for callers that report their own outcome"""
        summary = self.financial_data.get()
        delta = amount_cents if direction == ADD else -amount_cents
        summary.balance_cents += delta
        self.financial_data.save(summary)

        balance_adjustment_counter.labels(direction=direction).inc()
        logging.info("Balance adjusted", extra={"delta_cents": delta, "balance_cents": summary.balance_cents})
        return summary

    def set_balance(self, balance_cents: int) -> FinancialSummary:
        with notify_on_failure(self.notifier, "Failed to update balance"):
            summary = self.financial_data.get()
            summary.balance_cents = balance_cents
            self.financial_data.save(summary)

        balance_adjustment_counter.labels(direction="set").inc()
        self.notifier.notify_success("Balance updated")
        return summary


class ExpenseLedger:
    """Expense CRUD that keeps the balance in step with paid expenses"""

    def __init__(self, store: RecordStore, aggregator: FinancialAggregator, notifier: Notifier):
        self.expenses = ExpenseRepository(store)
        self.aggregator = aggregator
        self.notifier = notifier

    def list_all(self) -> List[Expense]:
        return self.expenses.list_all()

    def add(self, expense: Expense) -> Expense:
        with notify_on_failure(self.notifier, "Failed to add expense"):
            now = datetime.now(timezone.utc)
            expense.id = expense.id or str(uuid.uuid4())
            expense.created_at = now
            expense.updated_at = now
            items = self.expenses.list_all()
            items.append(expense)
            self.expenses.save_all(items)

            if expense.is_paid:
                self._move_balance(expense.value_cents, SUBTRACT)

        self.notifier.notify_success(f"Expense '{expense.description}' added")
        return expense

    def update(self, expense: Expense) -> Expense:
        """
        Replace an expense and apply the balance delta of its paid flag/value change:
        unpaid→paid subtracts, paid→unpaid adds back, paid→paid moves the difference.
        """
        with notify_on_failure(self.notifier, "Failed to update expense"):
            items = self.expenses.list_all()
            index = self._index(items, expense.id)
            old = items[index]

            expense.created_at = old.created_at
            expense.updated_at = datetime.now(timezone.utc)
            items[index] = expense
            self.expenses.save_all(items)

            if not old.is_paid and expense.is_paid:
                self._move_balance(expense.value_cents, SUBTRACT)
            elif old.is_paid and not expense.is_paid:
                self._move_balance(old.value_cents, ADD)
            elif old.is_paid and expense.is_paid and old.value_cents != expense.value_cents:
                difference = expense.value_cents - old.value_cents
                self._move_balance(abs(difference), SUBTRACT if difference > 0 else ADD)

        self.notifier.notify_success(f"Expense '{expense.description}' updated")
        return expense

    def delete(self, expense_id: str) -> None:
        with notify_on_failure(self.notifier, "Failed to delete expense"):
            items = self.expenses.list_all()
            removed = items.pop(self._index(items, expense_id))
            self.expenses.save_all(items)

            if removed.is_paid:
                self._move_balance(removed.value_cents, ADD)

        self.notifier.notify_success(f"Expense '{removed.description}' deleted")

    def _move_balance(self, amount_cents: int, direction: str) -> None:
        self.aggregator.shift_balance(amount_cents, direction)

    @staticmethod
    def _index(items: List[Expense], expense_id: str) -> int:
        for index, item in enumerate(items):
            if item.id == expense_id:
                return index
        raise NotFoundError(f"Expense {expense_id} not found")

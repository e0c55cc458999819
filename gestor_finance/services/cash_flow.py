"""Cash flow forecaster - monthly projection of expected revenues and planned expenses"""

from datetime import date
from typing import Callable, List, Optional, Sequence

from gestor_finance.config import settings
from gestor_finance.domain.forecasting import forecast_with_reliability
from gestor_finance.domain.models import (
    CashFlowForecast,
    CashFlowItem,
    CashFlowPeriod,
    Expense,
    ForecastResult,
    Installment,
    InstallmentCashFlow,
    InstallmentStatus,
    PaymentStatus,
    Service,
)
from gestor_finance.domain.ports import RecordStore
from gestor_finance.infrastructure.database.repositories import (
    ExpenseRepository,
    InstallmentRepository,
    ServiceRepository,
)
from gestor_finance.utils.date_utils import generate_month_starts, month_bounds


def _within(day: Optional[date], start: date, end: date) -> bool:
    return day is not None and start <= day <= end


def period_items(
    start: date,
    end: date,
    services: Sequence[Service],
    installments: Sequence[Installment],
    expenses: Sequence[Expense],
) -> List[CashFlowItem]:
    """
    Collect the cash-flow items falling inside [start, end].

    Sources:
    - unpaid services not split into installments (planned when the service
      payment is still pending, confirmed otherwise)
    - pending installments (planned)
    - unpaid expenses (planned)
    """
    service_names = {s.id: s.name for s in services}
    items: List[CashFlowItem] = []

    for service in services:
        if service.payment_status == PaymentStatus.PAID or service.is_installment_payment:
            continue
        if _within(service.date, start, end):
            items.append(
                CashFlowItem(
                    id=f"revenue-{service.id}",
                    type="revenue",
                    amount_cents=service.total_value_cents,
                    date=service.date,
                    description=f"Service: {service.name}",
                    category="Service Revenue",
                    status="planned" if service.payment_status == PaymentStatus.PENDING else "confirmed",
                    reference_id=service.id,
                )
            )

    for installment in installments:
        if installment.status != InstallmentStatus.PENDING:
            continue
        if _within(installment.due_date, start, end):
            items.append(
                CashFlowItem(
                    id=f"installment-{installment.id}",
                    type="revenue",
                    amount_cents=installment.amount_cents,
                    date=installment.due_date,
                    description=f"Installment: {service_names.get(installment.service_id, 'Unknown Service')}",
                    category="Installment Revenue",
                    status="planned",
                    reference_id=installment.id,
                )
            )

    for expense in expenses:
        if expense.is_paid:
            continue
        if _within(expense.due_date, start, end):
            items.append(
                CashFlowItem(
                    id=f"expense-{expense.id}",
                    type="expense",
                    amount_cents=expense.value_cents,
                    date=expense.due_date,
                    description=expense.description,
                    category=expense.category,
                    status="planned",
                    reference_id=expense.id,
                )
            )

    return items


def build_forecast(
    services: Sequence[Service],
    installments: Sequence[Installment],
    expenses: Sequence[Expense],
    months_ahead: int,
    today: date,
) -> CashFlowForecast:
    periods = []
    for month_start in generate_month_starts(today, months_ahead):
        start, end = month_bounds(month_start)
        items = period_items(start, end, services, installments, expenses)
        revenue = sum(i.amount_cents for i in items if i.type == "revenue")
        expenses_total = sum(i.amount_cents for i in items if i.type == "expense")
        periods.append(
            CashFlowPeriod(
                start_date=start,
                end_date=end,
                total_revenue_cents=revenue,
                total_expenses_cents=expenses_total,
                net_cash_flow_cents=revenue - expenses_total,
                items=items,
            )
        )

    return CashFlowForecast(
        periods=periods,
        total_revenue_cents=sum(p.total_revenue_cents for p in periods),
        total_expenses_cents=sum(p.total_expenses_cents for p in periods),
        net_flow_cents=sum(p.net_cash_flow_cents for p in periods),
    )


class CashFlowForecaster:
    """Read-only projections over the stored services, installments and expenses"""

    def __init__(self, store: RecordStore, today: Callable[[], date] = date.today):
        self.services = ServiceRepository(store)
        self.installments = InstallmentRepository(store)
        self.expenses = ExpenseRepository(store)
        self.today = today

    def forecast(self, months_ahead: int = 6, today: Optional[date] = None) -> CashFlowForecast:
        """Net cash flow of the current month and the following months_ahead - 1"""
        return build_forecast(
            self.services.list_all(),
            self.installments.list_all(),
            self.expenses.list_all(),
            months_ahead,
            today or self.today(),
        )

    def installment_cash_flow(self, months_ahead: int = 12, today: Optional[date] = None) -> List[InstallmentCashFlow]:
        """Pending installment receivables per month"""
        installments = [i for i in self.installments.list_all() if i.status == InstallmentStatus.PENDING]
        result = []
        for month_start in generate_month_starts(today or self.today(), months_ahead):
            start, end = month_bounds(month_start)
            due = [i for i in installments if _within(i.due_date, start, end)]
            result.append(
                InstallmentCashFlow(
                    month=start,
                    amount_cents=sum(i.amount_cents for i in due),
                    count=len(due),
                )
            )
        return result

    @staticmethod
    def numeric_forecast(data: Sequence[float]) -> ForecastResult:
        """Next value of a series, with the configured volatility threshold and smoothing factor"""
        return forecast_with_reliability(
            data,
            volatility_threshold=settings.volatility_threshold,
            alpha=settings.smoothing_alpha,
        )

"""Financial aggregation - period revenue, cost, profit and projection figures"""

from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Mapping, Optional, Sequence

from gestor_finance.domain.forecasting import forecast_with_reliability
from gestor_finance.domain.models import (
    Expense,
    FinancialSummary,
    Material,
    MonthlyData,
    PaymentStatus,
    Service,
    ServiceMaterial,
)
from gestor_finance.utils.date_utils import add_months, generate_month_starts, same_month


@dataclass
class PeriodFigures:
    """Revenue/cost/expense figures of one filter window"""

    revenue_cents: int
    cost_cents: int
    expenses_cents: int
    service_count: int

    @property
    def gross_profit_cents(self) -> int:
        return self.revenue_cents - self.cost_cents

    @property
    def profit_cents(self) -> int:
        return self.gross_profit_cents - self.expenses_cents

    @property
    def reported_expenses_cents(self) -> int:
        return self.expenses_cents + self.cost_cents

    @property
    def margin(self) -> float:
        return profit_margin(self.profit_cents, self.revenue_cents)

    @property
    def avg_service_value_cents(self) -> int:
        return round(self.revenue_cents / self.service_count) if self.service_count else 0


def profit_margin(profit_cents: int, revenue_cents: int) -> float:
    """Profit as a percentage of revenue; 0 when there is no revenue"""
    if revenue_cents == 0:
        return 0.0
    return profit_cents / revenue_cents * 100


def material_costs_by_service(
    materials: Sequence[Material],
    service_materials: Sequence[ServiceMaterial],
) -> Dict[str, int]:
    """Purchase cost of the materials each service consumed (unknown materials cost 0)"""
    prices = {m.id: m.purchase_price_cents for m in materials}
    costs: Dict[str, int] = {}
    for sm in service_materials:
        cost = prices.get(sm.material_id, 0) * sm.quantity
        costs[sm.service_id] = costs.get(sm.service_id, 0) + cost
    return costs


def period_figures(
    services: Sequence[Service],
    expenses: Sequence[Expense],
    material_costs: Mapping[str, int],
    projected: bool = False,
) -> PeriodFigures:
    """
    Apply the revenue/cost/profit formula to one window.

    Confirmed figures only count paid services and paid expenses; projected
    figures run the same formula over everything in the window.
    """
    if not projected:
        services = [s for s in services if s.payment_status == PaymentStatus.PAID]
        expenses = [e for e in expenses if e.is_paid]

    return PeriodFigures(
        revenue_cents=sum(s.total_value_cents for s in services),
        cost_cents=sum(material_costs.get(s.id, 0) for s in services),
        expenses_cents=sum(e.value_cents for e in expenses),
        service_count=len(services),
    )


def pending_payments(services: Sequence[Service]) -> int:
    return sum(s.total_value_cents for s in services if s.payment_status != PaymentStatus.PAID)


def services_in_month(services: Sequence[Service], month: date) -> List[Service]:
    return [s for s in services if same_month(s.date, month)]


def expenses_in_month(expenses: Sequence[Expense], month: date) -> List[Expense]:
    return [e for e in expenses if same_month(e.due_date, month)]


def monthly_history(
    services: Sequence[Service],
    expenses: Sequence[Expense],
    material_costs: Mapping[str, int],
    today: date,
    months: int = 12,
) -> List[MonthlyData]:
    """Confirmed revenue and expenses (paid expenses plus material cost) of the last `months` months, oldest first"""
    first_month = add_months(today.replace(day=1), -(months - 1))
    history = []
    for month in generate_month_starts(first_month, months):
        figures = period_figures(
            services_in_month(services, month),
            expenses_in_month(expenses, month),
            material_costs,
        )
        history.append(
            MonthlyData(
                month=month,
                revenue_cents=figures.revenue_cents,
                expenses_cents=figures.reported_expenses_cents,
            )
        )
    return history


def history_reliability(history: Sequence[MonthlyData]) -> str:
    """Reliability of a revenue forecast backed by the months since the first revenue"""
    revenues = [m.revenue_cents for m in history]
    while revenues and revenues[0] == 0:
        revenues.pop(0)
    return forecast_with_reliability(revenues).reliability


def summarize(
    services: Sequence[Service],
    expenses: Sequence[Expense],
    prior_balance_cents: int,
    material_costs: Mapping[str, int],
    today: Optional[date] = None,
) -> FinancialSummary:
    """
    Recompute the whole financial summary from source records.

    Idempotent: the only carried-over field is the balance, which is copied
    from the previous snapshot unchanged.
    """
    today = today or date.today()
    next_month = add_months(today.replace(day=1), 1)

    this_month_services = services_in_month(services, today)
    this_month_expenses = expenses_in_month(expenses, today)
    next_month_services = services_in_month(services, next_month)
    next_month_expenses = expenses_in_month(expenses, next_month)

    month = period_figures(this_month_services, this_month_expenses, material_costs)
    month_projected = period_figures(this_month_services, this_month_expenses, material_costs, projected=True)
    next_projected = period_figures(next_month_services, next_month_expenses, material_costs, projected=True)
    lifetime = period_figures(services, expenses, material_costs)

    history = monthly_history(services, expenses, material_costs, today)

    return FinancialSummary(
        balance_cents=prior_balance_cents,
        monthly_revenue_cents=month.revenue_cents,
        current_month_pending_revenue_cents=pending_payments(this_month_services),
        monthly_expenses_cents=month.reported_expenses_cents,
        monthly_profit_cents=month.profit_cents,
        profit_margin=month.margin,
        pending_payments_cents=pending_payments(this_month_services),
        completed_services=month.service_count,
        avg_service_value_cents=month.avg_service_value_cents,
        next_month_projected_revenue_cents=next_projected.revenue_cents,
        next_month_projected_expenses_cents=next_projected.reported_expenses_cents,
        next_month_projected_profit_cents=next_projected.profit_cents,
        current_month_projected_revenue_cents=month_projected.revenue_cents,
        current_month_projected_expenses_cents=month_projected.reported_expenses_cents,
        current_month_projected_profit_cents=month_projected.profit_cents,
        total_revenue_cents=lifetime.revenue_cents,
        total_expenses_cents=lifetime.reported_expenses_cents,
        total_profit_cents=lifetime.profit_cents,
        total_avg_service_value_cents=lifetime.avg_service_value_cents,
        total_profit_margin=lifetime.margin,
        total_completed_services=lifetime.service_count,
        total_pending_payments_cents=pending_payments(services),
        forecast_reliability=history_reliability(history),
        monthly_history=history,
    )

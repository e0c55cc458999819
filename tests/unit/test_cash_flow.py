"""Unit tests for the monthly cash flow forecast"""

import pytest
from datetime import date
from gestor_finance.infrastructure.database.store import InMemoryRecordStore
from gestor_finance.services.cash_flow import CashFlowForecaster
from tests.builders import TODAY, expense_record, seed_collections, service_record


def _installment(installment_id, amount_cents, due_date, status="pending", service_id="svc-inst"):
    return {
        "id": installment_id,
        "service_id": service_id,
        "parcel_number": 1,
        "amount_cents": amount_cents,
        "due_date": due_date.isoformat(),
        "status": status,
    }


@pytest.fixture
def forecaster() -> CashFlowForecaster:
    collections = seed_collections(
        services=[
            service_record("svc-open", 40000, date(2025, 3, 20), "unpaid"),
            service_record("svc-pending", 25000, date(2025, 4, 8), "pending"),
            service_record("svc-paid", 99000, date(2025, 3, 2), "paid"),
            service_record("svc-inst", 90000, date(2025, 3, 1), "partial", is_installment_payment=True),
            service_record("svc-late", 70000, date(2025, 12, 1), "unpaid"),
        ],
        expenses=[
            expense_record("exp-rent", 15000, date(2025, 3, 30)),
            expense_record("exp-paid", 8000, date(2025, 3, 10), is_paid=True),
            expense_record("exp-may", 5000, date(2025, 5, 5)),
        ],
    )
    collections["installments"] = [
        _installment("inst-1", 30000, date(2025, 3, 10), status="paid"),
        _installment("inst-2", 30000, date(2025, 4, 10)),
        _installment("inst-3", 30000, date(2025, 5, 10)),
        _installment("inst-4", 10000, date(2025, 5, 31), status="canceled"),
    ]
    return CashFlowForecaster(InMemoryRecordStore(collections), today=lambda: TODAY)


def test_forecast_periods_are_calendar_months(forecaster):
    forecast = forecaster.forecast(3)

    assert [(p.start_date, p.end_date) for p in forecast.periods] == [
        (date(2025, 3, 1), date(2025, 3, 31)),
        (date(2025, 4, 1), date(2025, 4, 30)),
        (date(2025, 5, 1), date(2025, 5, 31)),
    ]


def test_forecast_current_month_items(forecaster):
    march = forecaster.forecast(3).periods[0]

    assert sorted(i.id for i in march.items) == ["expense-exp-rent", "revenue-svc-open"]
    revenue = next(i for i in march.items if i.type == "revenue")
    assert revenue.status == "confirmed"
    assert revenue.category == "Service Revenue"
    assert march.total_revenue_cents == 40000
    assert march.total_expenses_cents == 15000
    assert march.net_cash_flow_cents == 25000


def test_forecast_pending_service_and_installments_are_planned(forecaster):
    april = forecaster.forecast(3).periods[1]

    by_id = {i.id: i for i in april.items}
    assert set(by_id) == {"revenue-svc-pending", "installment-inst-2"}
    assert by_id["revenue-svc-pending"].status == "planned"
    assert by_id["installment-inst-2"].status == "planned"
    assert by_id["installment-inst-2"].description == "Installment: Service svc-inst"
    assert april.total_revenue_cents == 55000


def test_forecast_totals(forecaster):
    forecast = forecaster.forecast(3)

    # March 40000 - 15000, April 55000, May 30000 - 5000
    assert forecast.total_revenue_cents == 125000
    assert forecast.total_expenses_cents == 20000
    assert forecast.net_flow_cents == 105000
    assert forecast.net_flow_cents == sum(p.net_cash_flow_cents for p in forecast.periods)


def test_forecast_default_horizon_and_explicit_today(forecaster):
    assert len(forecaster.forecast().periods) == 6
    december = forecaster.forecast(1, today=date(2025, 12, 24)).periods[0]
    assert [i.id for i in december.items] == ["revenue-svc-late"]


def test_installment_cash_flow(forecaster):
    months = forecaster.installment_cash_flow(3)

    assert [(m.month, m.amount_cents, m.count) for m in months] == [
        (date(2025, 3, 1), 0, 0),
        (date(2025, 4, 1), 30000, 1),
        (date(2025, 5, 1), 30000, 1),
    ]


def test_numeric_forecast_uses_configured_strategy():
    result = CashFlowForecaster.numeric_forecast([100, 200])
    assert result.method == "average"
    assert result.forecast == pytest.approx(150.0)
    assert result.reliability == "low"

"""Unit tests for installment persistence, state transitions and plan updates"""

import pytest
from datetime import date, timedelta
from gestor_finance.domain.exceptions import (
    InsufficientInstallmentsError,
    InvalidTransitionError,
    NotFoundError,
    PlanValidationError,
)
from gestor_finance.domain.installments import generate_installment_plan
from gestor_finance.domain.models import InstallmentStatus, PaymentStatus
from gestor_finance.domain.ports import StaticConfirmation
from gestor_finance.infrastructure.database.repositories import InstallmentRepository, ServiceRepository
from gestor_finance.services.financial_aggregator import FinancialAggregator
from gestor_finance.services.installment_ledger import InstallmentLedger
from tests.builders import TODAY, RecordingNotifier

FIRST_DUE = date(2025, 4, 10)


def make_ledger(store, notifier, answer=False):
    return InstallmentLedger(store, notifier, StaticConfirmation(answer), today=lambda: TODAY)


def create_plan(store, count=3, total=100000, service_id="svc-1"):
    """Persist a plan with a throwaway notifier so tests count only their own notifications"""
    ledger = make_ledger(store, RecordingNotifier())
    return ledger.create(service_id, generate_installment_plan(service_id, total, count, FIRST_DUE))


def service(store, service_id="svc-1"):
    return ServiceRepository(store).get_by_id(service_id)


def test_create_persists_plan_and_flags_service(store, notifier):
    ledger = make_ledger(store, notifier)

    rows = ledger.create("svc-1", generate_installment_plan("svc-1", 100000, 3, FIRST_DUE))

    assert [r.amount_cents for r in rows] == [33334, 33333, 33333]
    assert all(r.id for r in rows)
    stored = InstallmentRepository(store).list_by_service("svc-1")
    assert [r.id for r in stored] == [r.id for r in rows]

    svc = service(store)
    assert svc.is_installment_payment is True
    assert svc.installment_ids == [r.id for r in rows]
    assert svc.payment_status == PaymentStatus.UNPAID
    assert notifier.successes == ["3 installment(s) created"]
    assert notifier.errors == []


def test_create_rejects_batch_not_matching_service_total(store, notifier):
    ledger = make_ledger(store, notifier)

    with pytest.raises(PlanValidationError) as exc:
        ledger.create("svc-1", generate_installment_plan("svc-1", 90000, 3, FIRST_DUE))

    assert exc.value.errors == ["Installments total (900.00) must equal the service total (1000.00)"]
    assert InstallmentRepository(store).list_all() == []
    assert service(store).is_installment_payment is False
    assert notifier.count == 1
    assert len(notifier.errors) == 1


def test_create_unknown_service(store, notifier):
    ledger = make_ledger(store, notifier)

    with pytest.raises(NotFoundError):
        ledger.create("missing", generate_installment_plan("missing", 100000, 2, FIRST_DUE))

    assert len(notifier.errors) == 1


def test_create_rejects_second_plan(store, notifier):
    create_plan(store)
    ledger = make_ledger(store, notifier)

    with pytest.raises(PlanValidationError):
        ledger.create("svc-1", generate_installment_plan("svc-1", 100000, 2, FIRST_DUE))

    assert len(InstallmentRepository(store).list_all()) == 3


def test_mark_paid_derives_service_status(store, notifier):
    rows = create_plan(store)
    ledger = make_ledger(store, notifier)

    paid = ledger.mark_paid(rows[0].id)
    assert paid.status == InstallmentStatus.PAID
    assert paid.paid_date == TODAY
    assert service(store).payment_status == PaymentStatus.PARTIAL

    ledger.mark_paid(rows[1].id, paid_date=date(2025, 3, 1))
    ledger.mark_paid(rows[2].id)
    assert service(store).payment_status == PaymentStatus.PAID
    assert len(notifier.successes) == 3


def test_mark_paid_twice_is_rejected(store, notifier):
    rows = create_plan(store)
    ledger = make_ledger(store, notifier)
    ledger.mark_paid(rows[0].id)

    with pytest.raises(InvalidTransitionError):
        ledger.mark_paid(rows[0].id)

    assert notifier.successes == ["Installment 1 marked as paid"]
    assert len(notifier.errors) == 1


def test_mark_paid_unknown_installment(store, notifier):
    ledger = make_ledger(store, notifier)

    with pytest.raises(NotFoundError):
        ledger.mark_paid("nope")

    assert len(notifier.errors) == 1


def test_update_pending_installment(store, notifier):
    rows = create_plan(store)
    ledger = make_ledger(store, notifier)

    updated = ledger.update(rows[1].id, amount_cents=40000, due_date=date(2025, 5, 20))

    assert updated.amount_cents == 40000
    assert updated.due_date == date(2025, 5, 20)
    stored = InstallmentRepository(store).get_by_id(rows[1].id)
    assert stored.amount_cents == 40000


def test_update_rejects_negative_amount_and_paid_rows(store, notifier):
    rows = create_plan(store)
    ledger = make_ledger(store, notifier)

    with pytest.raises(PlanValidationError):
        ledger.update(rows[0].id, amount_cents=-1)

    ledger.mark_paid(rows[0].id)
    with pytest.raises(InvalidTransitionError):
        ledger.update(rows[0].id, amount_cents=100)


def test_cancel_pending_keeps_paid_rows(store, notifier):
    rows = create_plan(store)
    ledger = make_ledger(store, notifier)
    ledger.mark_paid(rows[0].id)

    assert ledger.cancel_pending("svc-1") == 2

    statuses = [r.status for r in InstallmentRepository(store).list_by_service("svc-1")]
    assert statuses == [InstallmentStatus.PAID, InstallmentStatus.CANCELED, InstallmentStatus.CANCELED]
    assert service(store).payment_status == PaymentStatus.PARTIAL


def test_partly_paid_canceled_plan_is_not_confirmed_revenue(store, notifier):
    rows = create_plan(store)
    ledger = make_ledger(store, notifier)
    ledger.mark_paid(rows[0].id)
    ledger.cancel_pending("svc-1")

    aggregator = FinancialAggregator(store, RecordingNotifier(), today=lambda: TODAY)
    summary = aggregator.summarize()

    assert ledger.summary("svc-1").paid_cents == 33334
    assert summary.monthly_revenue_cents == 0
    assert summary.total_pending_payments_cents == 130000


def test_cancel_pending_twice_is_a_no_op(store, notifier):
    rows = create_plan(store)
    ledger = make_ledger(store, notifier)
    ledger.mark_paid(rows[0].id)
    ledger.cancel_pending("svc-1")
    before_rows = InstallmentRepository(store).list_all()
    before_status = service(store).payment_status
    notifier.successes.clear()

    assert ledger.cancel_pending("svc-1") == 0

    assert InstallmentRepository(store).list_all() == before_rows
    assert service(store).payment_status == before_status
    assert notifier.count == 1


def test_update_plan_resplits_remainder_after_paid_rows(store, notifier):
    rows = create_plan(store)
    ledger = make_ledger(store, notifier)
    ledger.mark_paid(rows[0].id)
    notifier.successes.clear()

    assert ledger.update_plan("svc-1", 120000, 4, date(2025, 5, 10)) is True

    stored = InstallmentRepository(store).list_by_service("svc-1")
    assert [r.parcel_number for r in stored] == [1, 2, 3, 4]
    assert stored[0].id == rows[0].id
    assert stored[0].status == InstallmentStatus.PAID
    # 120000 - 33334 paid = 86666 over three new parcels
    assert [r.amount_cents for r in stored[1:]] == [28890, 28888, 28888]
    assert [r.due_date for r in stored[1:]] == [date(2025, 5, 10), date(2025, 6, 10), date(2025, 7, 10)]
    assert sum(r.amount_cents for r in stored) == 120000
    assert service(store).installment_ids == [r.id for r in stored]
    assert notifier.successes == ["Installments updated"]


def test_update_plan_count_not_above_paid_count(store, notifier):
    rows = create_plan(store)
    ledger = make_ledger(store, notifier)
    ledger.mark_paid(rows[0].id)
    ledger.mark_paid(rows[1].id)
    before = InstallmentRepository(store).list_all()
    notifier.successes.clear()

    with pytest.raises(InsufficientInstallmentsError):
        ledger.update_plan("svc-1", 120000, 2, date(2025, 5, 10))

    assert InstallmentRepository(store).list_all() == before
    assert notifier.successes == []
    assert len(notifier.errors) == 1


def test_update_plan_purges_pending_when_total_already_paid(store, notifier):
    rows = create_plan(store)
    ledger = make_ledger(store, notifier, answer=True)
    ledger.mark_paid(rows[0].id)

    ledger.update_plan("svc-1", 30000, 3, date(2025, 5, 10))

    stored = InstallmentRepository(store).list_by_service("svc-1")
    assert [r.id for r in stored] == [rows[0].id]
    assert service(store).payment_status == PaymentStatus.PAID
    assert ledger.confirmation.questions == ["The total has already been paid. Remove the pending installments?"]


def test_update_plan_keeps_pending_when_purge_declined(store, notifier):
    create_plan(store)
    rows = InstallmentRepository(store).list_by_service("svc-1")
    ledger = make_ledger(store, notifier, answer=False)
    ledger.mark_paid(rows[0].id)

    ledger.update_plan("svc-1", 30000, 3, date(2025, 5, 10))

    assert len(InstallmentRepository(store).list_by_service("svc-1")) == 3


def test_recalculate_declined_leaves_plan_untouched(store, notifier):
    rows = create_plan(store)
    ledger = make_ledger(store, notifier, answer=False)
    ledger.mark_paid(rows[0].id)
    before = InstallmentRepository(store).list_all()
    notifier.successes.clear()

    assert ledger.recalculate("svc-1", 150000, 4) is False

    assert InstallmentRepository(store).list_all() == before
    assert notifier.count == 0


def test_recalculate_confirmed_anchors_on_first_due_date(store, notifier):
    rows = create_plan(store)
    ledger = make_ledger(store, notifier, answer=True)
    ledger.mark_paid(rows[0].id)

    assert ledger.recalculate("svc-1", 100000, 5) is True

    stored = InstallmentRepository(store).list_by_service("svc-1")
    assert len(stored) == 5
    assert stored[1].due_date == FIRST_DUE
    assert sum(r.amount_cents for r in stored) == 100000


def test_recalculate_without_plan_starts_thirty_days_out(store, notifier):
    ledger = make_ledger(store, notifier)

    assert ledger.recalculate("svc-2", 30000, 3) is True

    stored = InstallmentRepository(store).list_by_service("svc-2")
    assert [r.amount_cents for r in stored] == [10000, 10000, 10000]
    assert stored[0].due_date == TODAY + timedelta(days=30)
    assert service(store, "svc-2").is_installment_payment is True


def test_delete_plan_with_paid_rows_needs_confirmation(store, notifier):
    rows = create_plan(store)
    make_ledger(store, RecordingNotifier()).mark_paid(rows[0].id)

    declined = make_ledger(store, notifier, answer=False)
    assert declined.delete_plan("svc-1") is False
    assert len(InstallmentRepository(store).list_all()) == 3

    confirmed = make_ledger(store, notifier, answer=True)
    assert confirmed.delete_plan("svc-1") is True
    assert InstallmentRepository(store).list_all() == []
    svc = service(store)
    assert svc.is_installment_payment is False
    assert svc.installment_ids == []
    assert notifier.successes == ["Installments deleted"]


def test_service_installments_and_summary(store, notifier):
    rows = create_plan(store)
    ledger = make_ledger(store, notifier)
    ledger.mark_paid(rows[0].id)

    assert [r.parcel_number for r in ledger.service_installments("svc-1")] == [1, 2, 3]
    summary = ledger.summary("svc-1")
    assert summary.paid_cents == 33334
    assert summary.pending_cents == 66666

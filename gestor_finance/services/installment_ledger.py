"""
Installment ledger - persistence and state transitions of installment plans.

Installment state machine: pending -> paid, pending -> canceled; both are
terminal. After every mutation the owning service is reconciled: its
installment id list is re-synced with the stored rows and its payment
status is re-derived through derive_payment_status.

Store writes are not atomic across collections; SqlRecordStore callers get
atomicity from committing once per operation.
"""

import logging
import uuid
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence

from gestor_finance.config import settings
from gestor_finance.domain.exceptions import (
    InsufficientInstallmentsError,
    InvalidTransitionError,
    NotFoundError,
    PlanValidationError,
)
from gestor_finance.domain.installments import (
    derive_payment_status,
    generate_installment_plan,
    summarize_installments,
    validate_installment_plan,
)
from gestor_finance.domain.models import (
    Installment,
    InstallmentsSummary,
    InstallmentStatus,
    PlanValidation,
    Service,
)
from gestor_finance.domain.ports import Confirmation, Notifier, RecordStore, StaticConfirmation
from gestor_finance.infrastructure.database.repositories import InstallmentRepository, ServiceRepository
from gestor_finance.infrastructure.observability.logging import log_plan_event
from gestor_finance.infrastructure.observability.metrics import (
    installment_payments_counter,
    installments_created_counter,
    record_plan_outcome,
)
from gestor_finance.services.notifications import notify_on_failure

# Anchor for recalculated plans of services without any installment yet
DEFAULT_FIRST_DUE_DAYS = 30


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InstallmentLedger:
    """CRUD and reconciliation of installment plans"""

    def __init__(
        self,
        store: RecordStore,
        notifier: Notifier,
        confirmation: Optional[Confirmation] = None,
        today: Callable[[], date] = date.today,
        tolerance_cents: Optional[int] = None,
    ):
        self.installments = InstallmentRepository(store)
        self.services = ServiceRepository(store)
        self.notifier = notifier
        self.confirmation = confirmation or StaticConfirmation(False)
        self.today = today
        self.tolerance_cents = settings.plan_tolerance_cents if tolerance_cents is None else tolerance_cents

    # Planning (no persistence)

    def preview(
        self,
        service_id: str,
        total_cents: int,
        num_installments: int,
        first_due_date: date,
        custom_amounts: Optional[Sequence[int]] = None,
    ) -> List[Installment]:
        return generate_installment_plan(service_id, total_cents, num_installments, first_due_date, custom_amounts)

    def validate(self, installments: Sequence[Installment], expected_total_cents: int) -> PlanValidation:
        return validate_installment_plan(installments, expected_total_cents, self.tolerance_cents)

    # Reads

    def service_installments(self, service_id: str) -> List[Installment]:
        return self.installments.list_by_service(service_id)

    def summary(self, service_id: str) -> InstallmentsSummary:
        return summarize_installments(self.installments.list_by_service(service_id))

    # Mutations

    def create(self, service_id: str, installments: Sequence[Installment]) -> List[Installment]:
        """
        Persist a new plan for a service and flag it as an installment payment.

        Raises:
            NotFoundError: Unknown service
            PlanValidationError: Batch doesn't add up to the service total, is
                empty, has non-positive amounts or missing due dates, or the
                service already has a plan
        """
        with notify_on_failure(self.notifier, "Failed to create installments"):
            service = self._get_service(service_id)
            batch_total = sum(inst.amount_cents or 0 for inst in installments)
            validation = self.validate(installments, service.total_value_cents)
            if not validation.is_valid:
                raise PlanValidationError(validation.errors)

            all_rows = self.installments.list_all()
            if any(row.service_id == service_id for row in all_rows):
                raise PlanValidationError([f"Service {service_id} already has an installment plan"])

            now = _now()
            new_rows = [
                replace(
                    inst,
                    id=str(uuid.uuid4()),
                    service_id=service_id,
                    parcel_number=index + 1,
                    status=InstallmentStatus.PENDING,
                    paid_date=None,
                    created_at=now,
                    updated_at=now,
                )
                for index, inst in enumerate(installments)
            ]
            all_rows.extend(new_rows)
            self.installments.save_all(all_rows)

            service.is_installment_payment = True
            self._reconcile(service, all_rows)

        installments_created_counter.inc(len(new_rows))
        log_plan_event("created", service_id, len(new_rows), batch_total)
        self.notifier.notify_success(f"{len(new_rows)} installment(s) created")
        return new_rows

    def mark_paid(self, installment_id: str, paid_date: Optional[date] = None) -> Installment:
        """
        Move a pending installment to paid and reconcile its service.

        Raises:
            NotFoundError: Unknown installment id
            InvalidTransitionError: Installment is already paid or canceled
        """
        with notify_on_failure(self.notifier, "Failed to mark installment as paid"):
            all_rows = self.installments.list_all()
            installment = self._find(all_rows, installment_id)
            if installment.status != InstallmentStatus.PENDING:
                raise InvalidTransitionError(
                    f"Installment {installment.parcel_number} is {installment.status.value} and cannot be paid"
                )

            installment.status = InstallmentStatus.PAID
            installment.paid_date = paid_date or self.today()
            installment.updated_at = _now()
            self.installments.save_all(all_rows)
            self._reconcile_by_id(installment.service_id, all_rows)

        installment_payments_counter.inc()
        log_plan_event("paid", installment.service_id, 1, installment.amount_cents, installment_id)
        self.notifier.notify_success(f"Installment {installment.parcel_number} marked as paid")
        return installment

    def update(
        self,
        installment_id: str,
        amount_cents: Optional[int] = None,
        due_date: Optional[date] = None,
    ) -> Installment:
        """Edit amount and/or due date of a pending installment"""
        with notify_on_failure(self.notifier, "Failed to update installment"):
            all_rows = self.installments.list_all()
            installment = self._find(all_rows, installment_id)
            if installment.status != InstallmentStatus.PENDING:
                raise InvalidTransitionError(
                    f"Installment {installment.parcel_number} is {installment.status.value} and cannot be edited"
                )
            if amount_cents is not None:
                if amount_cents < 0:
                    raise PlanValidationError([f"Installment {installment.parcel_number}: amount cannot be negative"])
                installment.amount_cents = amount_cents
            if due_date is not None:
                installment.due_date = due_date

            installment.updated_at = _now()
            self.installments.save_all(all_rows)
            self._reconcile_by_id(installment.service_id, all_rows)

        self.notifier.notify_success(f"Installment {installment.parcel_number} updated")
        return installment

    def cancel_pending(self, service_id: str) -> int:
        """Cancel every pending installment of a service; paid ones stay as they are"""
        with notify_on_failure(self.notifier, "Failed to cancel installments"):
            service = self._get_service(service_id)
            all_rows = self.installments.list_all()
            now = _now()
            canceled = 0
            for row in all_rows:
                if row.service_id == service_id and row.status == InstallmentStatus.PENDING:
                    row.status = InstallmentStatus.CANCELED
                    row.updated_at = now
                    canceled += 1

            if canceled:
                self.installments.save_all(all_rows)
                self._reconcile(service, all_rows)

        log_plan_event("canceled", service_id, canceled, 0)
        self.notifier.notify_success(f"{canceled} installment(s) canceled")
        return canceled

    def update_plan(self, service_id: str, new_total_cents: int, new_count: int, first_due_date: date) -> bool:
        """
        Recompute the pending part of a plan after the service total changed.

        Paid installments are frozen. The unpaid remainder is split again over
        new_count minus the paid count, replacing every pending installment.

        Raises:
            InsufficientInstallmentsError: new_count leaves no parcel for the remainder
            NotFoundError: Unknown service
        """
        with notify_on_failure(self.notifier, "Failed to update installments"):
            self._update_plan(service_id, new_total_cents, new_count, first_due_date)

        self.notifier.notify_success("Installments updated")
        return True

    def recalculate(self, service_id: str, new_total_cents: int, new_count: int) -> bool:
        """
        update_plan anchored on the current first due date.

        Asks for confirmation when paid or canceled installments exist;
        returns False (nothing changed) when it is declined.
        """
        with notify_on_failure(self.notifier, "Failed to recalculate installments"):
            self._get_service(service_id)
            rows = self.installments.list_by_service(service_id)

            settled = [row for row in rows if row.status != InstallmentStatus.PENDING]
            if settled and not self.confirmation.confirm(
                f"{len(settled)} installment(s) already paid or canceled. "
                "Recalculate only the pending installments?"
            ):
                record_plan_outcome("declined")
                return False

            if rows and rows[0].due_date is not None:
                first_due_date = rows[0].due_date
            else:
                first_due_date = self.today() + timedelta(days=DEFAULT_FIRST_DUE_DAYS)

            self._update_plan(service_id, new_total_cents, new_count, first_due_date)

        self.notifier.notify_success("Installments recalculated")
        return True

    def delete_plan(self, service_id: str) -> bool:
        """Remove every installment of a service; paid ones only after confirmation"""
        with notify_on_failure(self.notifier, "Failed to delete installments"):
            service = self._get_service(service_id)
            all_rows = self.installments.list_all()
            rows = [row for row in all_rows if row.service_id == service_id]

            paid_count = sum(1 for row in rows if row.status == InstallmentStatus.PAID)
            if paid_count and not self.confirmation.confirm(
                f"{paid_count} installment(s) already paid. Delete the whole installment plan?"
            ):
                record_plan_outcome("declined")
                return False

            self.installments.save_all([row for row in all_rows if row.service_id != service_id])
            service.is_installment_payment = False
            service.installment_ids = []
            service.updated_at = _now()
            self.services.upsert(service)

        log_plan_event("deleted", service_id, len(rows), sum(row.amount_cents for row in rows))
        self.notifier.notify_success("Installments deleted")
        return True

    # Internals

    def _update_plan(self, service_id: str, new_total_cents: int, new_count: int, first_due_date: date) -> None:
        service = self._get_service(service_id)
        all_rows = self.installments.list_all()
        rows = [row for row in all_rows if row.service_id == service_id]
        paid = [row for row in rows if row.status == InstallmentStatus.PAID]
        pending = [row for row in rows if row.status == InstallmentStatus.PENDING]

        remaining = new_total_cents - sum(row.amount_cents for row in paid)

        if remaining <= 0:
            if pending and self.confirmation.confirm(
                "The total has already been paid. Remove the pending installments?"
            ):
                kept = [r for r in all_rows if not (r.service_id == service_id and r.status == InstallmentStatus.PENDING)]
                self.installments.save_all(kept)
                self._reconcile(service, kept)
                record_plan_outcome("purged")
            else:
                record_plan_outcome("settled")
            log_plan_event("settled", service_id, 0, new_total_cents)
            return

        remaining_count = new_count - len(paid)
        if remaining_count <= 0:
            record_plan_outcome("rejected")
            raise InsufficientInstallmentsError(
                f"Requested {new_count} installment(s) but {len(paid)} are already paid"
            )

        plan = generate_installment_plan(service_id, remaining, remaining_count, first_due_date)
        now = _now()
        new_rows = [
            replace(
                inst,
                id=str(uuid.uuid4()),
                parcel_number=len(paid) + index + 1,
                created_at=now,
                updated_at=now,
            )
            for index, inst in enumerate(plan)
        ]

        kept = [r for r in all_rows if not (r.service_id == service_id and r.status == InstallmentStatus.PENDING)]
        kept.extend(new_rows)
        self.installments.save_all(kept)

        service.is_installment_payment = True
        self._reconcile(service, kept)

        installments_created_counter.inc(len(new_rows))
        record_plan_outcome("replaced")
        log_plan_event("replanned", service_id, len(new_rows), remaining)

    def _reconcile(self, service: Service, all_rows: Sequence[Installment]) -> None:
        """Re-sync the service's installment ids and derived payment status"""
        rows = sorted((r for r in all_rows if r.service_id == service.id), key=lambda r: r.parcel_number)
        service.installment_ids = [row.id for row in rows]
        if rows:
            service.payment_status = derive_payment_status(rows)
        service.updated_at = _now()
        self.services.upsert(service)

    def _reconcile_by_id(self, service_id: str, all_rows: Sequence[Installment]) -> None:
        service = self.services.get_by_id(service_id)
        if service is None:
            logging.warning(f"Installments reference missing service {service_id}")
            return
        self._reconcile(service, all_rows)

    def _get_service(self, service_id: str) -> Service:
        service = self.services.get_by_id(service_id)
        if service is None:
            raise NotFoundError(f"Service {service_id} not found")
        return service

    @staticmethod
    def _find(rows: Sequence[Installment], installment_id: str) -> Installment:
        for row in rows:
            if row.id == installment_id:
                return row
        raise NotFoundError(f"Installment {installment_id} not found")

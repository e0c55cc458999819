"""Installment plan generation, validation and payment status derivation"""

from datetime import date
from typing import List, Optional, Sequence

from gestor_finance.domain.exceptions import InvalidPlanError
from gestor_finance.domain.models import (
    Installment,
    InstallmentsSummary,
    InstallmentStatus,
    PaymentStatus,
    PlanValidation,
)
from gestor_finance.utils.date_utils import add_months


def split_cents(total_cents: int, count: int) -> List[int]:
    """
    Split a total into `count` integer-cent parts that add back to the total.

    Every part gets floor(total / count); the first part also absorbs the
    remainder, so the split is deterministic and reproducible.

    Example:
        10000 cents / 3 → [3334, 3333, 3333]
    """
    if total_cents <= 0:
        raise InvalidPlanError(f"Plan total must be positive, got {total_cents} cents")
    if count < 1:
        raise InvalidPlanError(f"Plan needs at least one installment, got {count}")

    base_amount = total_cents // count
    remainder = total_cents - base_amount * count

    amounts = [base_amount] * count
    amounts[0] += remainder
    return amounts


def generate_installment_plan(
    service_id: str,
    total_cents: int,
    num_installments: int,
    first_due_date: date,
    custom_amounts: Optional[Sequence[int]] = None,
) -> List[Installment]:
    """
    Generate a monthly installment plan for a service total.

    Requirements:
    - First installment absorbs the rounding remainder
    - Due dates one calendar month apart, starting at first_due_date
    - Parcel numbers 1..N

    Args:
        service_id: Owning service
        total_cents: Total amount to split into installments
        num_installments: Number of parcels
        first_due_date: Due date of parcel 1
        custom_amounts: Explicit amounts overriding the even split
            (ignored unless there is exactly one per parcel)

    Raises:
        InvalidPlanError: When total ≤ 0 or num_installments < 1
    """
    amounts = split_cents(total_cents, num_installments)
    if custom_amounts is not None and len(custom_amounts) == num_installments:
        amounts = list(custom_amounts)

    return [
        Installment(
            service_id=service_id,
            parcel_number=i + 1,
            amount_cents=amounts[i],
            due_date=add_months(first_due_date, i),
            status=InstallmentStatus.PENDING,
        )
        for i in range(num_installments)
    ]


def validate_installment_plan(
    installments: Sequence[Installment],
    expected_total_cents: int,
    tolerance_cents: int = 0,
) -> PlanValidation:
    """
    Check an installment batch against the service total.

    Collects one message per violated rule instead of stopping at the first,
    in this order: total mismatch, empty plan, per-installment amount,
    per-installment due date.
    """
    errors: List[str] = []
    total_amount = sum(inst.amount_cents or 0 for inst in installments)

    if abs(total_amount - expected_total_cents) > tolerance_cents:
        errors.append(
            f"Installments total ({format_cents(total_amount)}) must equal "
            f"the service total ({format_cents(expected_total_cents)})"
        )

    if not installments:
        errors.append("At least one installment must be created")

    for index, inst in enumerate(installments, start=1):
        if not inst.amount_cents or inst.amount_cents <= 0:
            errors.append(f"Installment {index}: amount must be greater than zero")
        if inst.due_date is None:
            errors.append(f"Installment {index}: due date is required")

    return PlanValidation(
        is_valid=not errors,
        errors=errors,
        total_amount_cents=total_amount,
        expected_amount_cents=expected_total_cents,
    )


def derive_payment_status(installments: Sequence[Installment]) -> PaymentStatus:
    """
    Payment status of a service from its installments.

    Paid only when every row is paid; a canceled row keeps the service partial.
    """
    paid_count = sum(1 for inst in installments if inst.status == InstallmentStatus.PAID)

    if installments and paid_count == len(installments):
        return PaymentStatus.PAID
    if paid_count > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.UNPAID


def summarize_installments(installments: Sequence[Installment]) -> InstallmentsSummary:
    def total(status: Optional[InstallmentStatus]) -> int:
        return sum(i.amount_cents for i in installments if status is None or i.status == status)

    def count(status: InstallmentStatus) -> int:
        return sum(1 for i in installments if i.status == status)

    return InstallmentsSummary(
        total_cents=total(None),
        paid_cents=total(InstallmentStatus.PAID),
        pending_cents=total(InstallmentStatus.PENDING),
        canceled_cents=total(InstallmentStatus.CANCELED),
        count=len(installments),
        paid_count=count(InstallmentStatus.PAID),
        pending_count=count(InstallmentStatus.PENDING),
        canceled_count=count(InstallmentStatus.CANCELED),
    )


def format_cents(amount_cents: int) -> str:
    """Render cents as a decimal amount, e.g. 12345 → '123.45'"""
    sign = "-" if amount_cents < 0 else ""
    whole, cents = divmod(abs(amount_cents), 100)
    return f"{sign}{whole}.{cents:02d}"

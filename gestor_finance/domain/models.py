"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class InstallmentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELED = "canceled"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"


class MovementType(str, Enum):
    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"


class MovementReason(str, Enum):
    PURCHASE = "purchase"
    SALE = "sale"
    SERVICE_USE = "service_use"
    RETURN = "return"
    LOSS = "loss"
    MANUAL_ADJUSTMENT = "manual_adjustment"


@dataclass
class Installment:
    """Single parcel of a service's installment plan"""

    service_id: str
    parcel_number: int
    amount_cents: int
    due_date: Optional[date]
    status: InstallmentStatus = InstallmentStatus.PENDING
    paid_date: Optional[date] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Service:
    """Subset of a service order consumed by the engine.

    Fields owned by other parts of the application are kept untouched in
    ``extra`` so that saving a service never drops them.
    """

    id: str
    name: str
    date: date
    total_value_cents: int
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    is_installment_payment: bool = False
    installment_ids: List[str] = field(default_factory=list)
    client_id: Optional[str] = None
    equipment_id: Optional[str] = None
    updated_at: Optional[datetime] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Expense:
    """Business expense with a due date"""

    id: str
    description: str
    category: str
    value_cents: int
    due_date: date
    is_paid: bool = False
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Material:
    """Stock material with purchase and selling prices"""

    id: str
    type: str
    model: str
    purchase_price_cents: int
    selling_price_cents: int
    stock: int = 0
    status: str = "available"  # "available" or "unavailable"
    description: str = ""
    updated_at: Optional[datetime] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ServiceMaterial:
    """Material quantity consumed by a service"""

    id: str
    service_id: str
    material_id: str
    quantity: int
    price_snapshot_cents: int = 0


@dataclass
class StockMovement:
    """One audit entry of a material stock change"""

    material_id: str
    movement_type: MovementType
    quantity: int
    reason: MovementReason
    previous_stock: int
    new_stock: int
    id: Optional[str] = None
    reference_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class PlanValidation:
    """Outcome of validating an installment batch against an expected total"""

    is_valid: bool
    errors: List[str]
    total_amount_cents: int
    expected_amount_cents: int


@dataclass
class InstallmentsSummary:
    """Per-status totals of a service's installments"""

    total_cents: int
    paid_cents: int
    pending_cents: int
    canceled_cents: int
    count: int
    paid_count: int
    pending_count: int
    canceled_count: int


@dataclass
class MonthlyData:
    """Revenue and expenses of one past month"""

    month: date
    revenue_cents: int
    expenses_cents: int


@dataclass
class FinancialSummary:
    """Snapshot of the business finances; only balance is mutated incrementally"""

    balance_cents: int = 0
    monthly_revenue_cents: int = 0
    current_month_pending_revenue_cents: int = 0
    monthly_expenses_cents: int = 0
    monthly_profit_cents: int = 0
    profit_margin: float = 0.0
    pending_payments_cents: int = 0
    completed_services: int = 0
    avg_service_value_cents: int = 0
    next_month_projected_revenue_cents: int = 0
    next_month_projected_expenses_cents: int = 0
    next_month_projected_profit_cents: int = 0
    current_month_projected_revenue_cents: int = 0
    current_month_projected_expenses_cents: int = 0
    current_month_projected_profit_cents: int = 0
    total_revenue_cents: int = 0
    total_expenses_cents: int = 0
    total_profit_cents: int = 0
    total_avg_service_value_cents: int = 0
    total_profit_margin: float = 0.0
    total_completed_services: int = 0
    total_pending_payments_cents: int = 0
    forecast_reliability: str = "unreliable"
    monthly_history: List[MonthlyData] = field(default_factory=list)


@dataclass
class CashFlowItem:
    """Expected revenue or expense inside a forecast period"""

    id: str
    type: str  # "revenue" or "expense"
    amount_cents: int
    date: date
    description: str
    category: str
    status: str  # "planned", "confirmed" or "completed"
    reference_id: str


@dataclass
class CashFlowPeriod:
    """One calendar month of the cash-flow forecast"""

    start_date: date
    end_date: date
    total_revenue_cents: int
    total_expenses_cents: int
    net_cash_flow_cents: int
    items: List[CashFlowItem]


@dataclass
class CashFlowForecast:
    """Ordered forecast periods with totals across all of them"""

    periods: List[CashFlowPeriod]
    total_revenue_cents: int
    total_expenses_cents: int
    net_flow_cents: int


@dataclass
class InstallmentCashFlow:
    """Pending installment receivables due in one month"""

    month: date
    amount_cents: int
    count: int


@dataclass
class ForecastResult:
    """Numeric forecast with its reliability label"""

    forecast: float
    reliability: str  # "high", "medium", "low" or "unreliable"
    method: str

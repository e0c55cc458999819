"""Pydantic schemas for API request/response validation"""

from datetime import date
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from gestor_finance.domain.models import InstallmentStatus, MovementReason, MovementType


class ORMSchema(BaseModel):
    """Response schema populated from domain dataclasses"""

    model_config = ConfigDict(from_attributes=True)


# Installments


class PlanPreviewRequest(BaseModel):
    """Request body for POST /v1/installments/preview"""

    service_id: str = Field(..., min_length=1)
    total_cents: int = Field(..., gt=0, description="Amount to split in cents")
    num_installments: int = Field(..., ge=1)
    first_due_date: date
    custom_amounts: Optional[List[int]] = Field(
        None, description="Used instead of the even split when it has exactly num_installments entries"
    )


class InstallmentDraft(BaseModel):
    """Installment as entered by the user, before it is persisted"""

    parcel_number: Optional[int] = Field(None, ge=1)
    amount_cents: int
    due_date: Optional[date] = None


class PlanValidationRequest(BaseModel):
    """Request body for POST /v1/installments/validate"""

    expected_total_cents: int = Field(..., ge=0)
    installments: List[InstallmentDraft]


class PlanValidationResponse(ORMSchema):
    is_valid: bool
    errors: List[str]
    total_amount_cents: int
    expected_amount_cents: int


class CreatePlanRequest(BaseModel):
    """Request body for POST /v1/services/{service_id}/installments"""

    installments: List[InstallmentDraft]


class InstallmentSchema(ORMSchema):
    """Single persisted installment"""

    id: Optional[str] = None
    service_id: str
    parcel_number: int
    amount_cents: int
    due_date: Optional[date] = None
    status: InstallmentStatus
    paid_date: Optional[date] = None


class PayInstallmentRequest(BaseModel):
    paid_date: Optional[date] = None


class UpdateInstallmentRequest(BaseModel):
    amount_cents: Optional[int] = None
    due_date: Optional[date] = None


class UpdatePlanRequest(BaseModel):
    """Request body for PUT /v1/services/{service_id}/installments"""

    new_total_cents: int = Field(..., ge=0)
    new_count: int = Field(..., ge=0)
    first_due_date: date


class RecalculateRequest(BaseModel):
    new_total_cents: int = Field(..., ge=0)
    new_count: int = Field(..., ge=0)


class InstallmentsSummarySchema(ORMSchema):
    total_cents: int
    paid_cents: int
    pending_cents: int
    canceled_cents: int
    count: int
    paid_count: int
    pending_count: int
    canceled_count: int


class OperationResult(BaseModel):
    """Outcome of an operation that may be declined at confirmation"""

    applied: bool
    count: Optional[int] = None


# Financial


class MonthlyDataSchema(ORMSchema):
    month: date
    revenue_cents: int
    expenses_cents: int


class FinancialSummarySchema(ORMSchema):
    balance_cents: int
    monthly_revenue_cents: int
    current_month_pending_revenue_cents: int
    monthly_expenses_cents: int
    monthly_profit_cents: int
    profit_margin: float
    pending_payments_cents: int
    completed_services: int
    avg_service_value_cents: int
    next_month_projected_revenue_cents: int
    next_month_projected_expenses_cents: int
    next_month_projected_profit_cents: int
    current_month_projected_revenue_cents: int
    current_month_projected_expenses_cents: int
    current_month_projected_profit_cents: int
    total_revenue_cents: int
    total_expenses_cents: int
    total_profit_cents: int
    total_avg_service_value_cents: int
    total_profit_margin: float
    total_completed_services: int
    total_pending_payments_cents: int
    forecast_reliability: str
    monthly_history: List[MonthlyDataSchema]


class BalanceAdjustRequest(BaseModel):
    amount_cents: int = Field(..., ge=0)
    direction: Literal["add", "subtract"]


class BalanceSetRequest(BaseModel):
    balance_cents: int


class ExpenseRequest(BaseModel):
    """Request body for expense create/update"""

    description: str = Field(..., min_length=1)
    category: str
    value_cents: int = Field(..., ge=0)
    due_date: date
    is_paid: bool = False
    notes: Optional[str] = None


class ExpenseSchema(ORMSchema):
    id: str
    description: str
    category: str
    value_cents: int
    due_date: date
    is_paid: bool
    notes: Optional[str] = None


# Cash flow


class CashFlowItemSchema(ORMSchema):
    id: str
    type: str
    amount_cents: int
    date: date
    description: str
    category: str
    status: str
    reference_id: str


class CashFlowPeriodSchema(ORMSchema):
    start_date: date
    end_date: date
    total_revenue_cents: int
    total_expenses_cents: int
    net_cash_flow_cents: int
    items: List[CashFlowItemSchema]


class CashFlowForecastSchema(ORMSchema):
    periods: List[CashFlowPeriodSchema]
    total_revenue_cents: int
    total_expenses_cents: int
    net_flow_cents: int


class InstallmentCashFlowSchema(ORMSchema):
    month: date
    amount_cents: int
    count: int


class NumericForecastRequest(BaseModel):
    data: List[float] = Field(..., description="Historical values, oldest first")


class ForecastResultSchema(ORMSchema):
    forecast: float
    reliability: str
    method: str


# Stock


class StockMovementRequest(BaseModel):
    """Request body for POST /v1/stock/movements"""

    material_id: str = Field(..., min_length=1)
    movement_type: MovementType
    quantity: int
    reason: MovementReason
    previous_stock: int
    reference_id: Optional[str] = None
    notes: Optional[str] = None


class SetStockRequest(BaseModel):
    new_stock: int
    reason: MovementReason = MovementReason.MANUAL_ADJUSTMENT
    notes: Optional[str] = None


class StockMovementSchema(ORMSchema):
    id: Optional[str] = None
    material_id: str
    movement_type: MovementType
    quantity: int
    reason: MovementReason
    previous_stock: int
    new_stock: int
    reference_id: Optional[str] = None
    notes: Optional[str] = None


class StockVerificationSchema(BaseModel):
    material_id: str
    replayed_stock: int
    consistent: bool


# Backup


class BackupValidationSchema(ORMSchema):
    is_valid: bool
    errors: List[str]
    warnings: List[str]
    stats: Optional[Dict[str, int]] = None


class BackupImportSchema(ORMSchema):
    success: bool
    errors: List[str]
    warnings: List[str]
    imported_counts: Dict[str, int]
    is_dry_run: bool


BackupPayload = Dict[str, Any]

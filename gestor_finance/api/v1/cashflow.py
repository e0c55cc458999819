"""Cash flow forecast endpoints (read-only)"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from gestor_finance.api.dependencies import get_request_id, get_store
from gestor_finance.api.errors import mapped_errors
from gestor_finance.api.v1.schemas import (
    CashFlowForecastSchema,
    ForecastResultSchema,
    InstallmentCashFlowSchema,
    NumericForecastRequest,
)
from gestor_finance.config import settings
from gestor_finance.domain.ports import RecordStore
from gestor_finance.services.cash_flow import CashFlowForecaster

router = APIRouter()


def get_forecaster(store: RecordStore = Depends(get_store)) -> CashFlowForecaster:
    return CashFlowForecaster(store)


@router.get("/cashflow/forecast", response_model=CashFlowForecastSchema)
def cash_flow_forecast(
    request: Request,
    months_ahead: Optional[int] = Query(None, ge=1, le=60),
    forecaster: CashFlowForecaster = Depends(get_forecaster),
):
    """Planned and confirmed revenues against unpaid expenses, per calendar month"""
    with mapped_errors(get_request_id(request)):
        forecast = forecaster.forecast(months_ahead or settings.forecast_months_ahead)
    return CashFlowForecastSchema.model_validate(forecast)


@router.get("/cashflow/installments", response_model=List[InstallmentCashFlowSchema])
def installment_cash_flow(
    request: Request,
    months_ahead: Optional[int] = Query(None, ge=1, le=60),
    forecaster: CashFlowForecaster = Depends(get_forecaster),
):
    with mapped_errors(get_request_id(request)):
        months = forecaster.installment_cash_flow(months_ahead or settings.installment_cash_flow_months)
    return [InstallmentCashFlowSchema.model_validate(m) for m in months]


@router.post("/cashflow/numeric-forecast", response_model=ForecastResultSchema)
def numeric_forecast(body: NumericForecastRequest):
    """Next value of a series with the strategy picked from its volatility"""
    return ForecastResultSchema.model_validate(CashFlowForecaster.numeric_forecast(body.data))

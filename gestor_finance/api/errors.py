"""Mapping of domain errors to HTTP responses and per-request transactions"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from gestor_finance.domain.exceptions import (
    DomainException,
    InsufficientInstallmentsError,
    InvalidMovementError,
    InvalidPlanError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    PlanValidationError,
)
from gestor_finance.services.notifications import DeferredNotifier

STATUS_CODES = {
    NotFoundError: 404,
    InvalidPlanError: 422,
    PlanValidationError: 422,
    InvalidMovementError: 422,
    InsufficientInstallmentsError: 409,
    InvalidTransitionError: 409,
    PersistenceError: 503,
}


def to_http_exception(error: DomainException) -> HTTPException:
    status_code = STATUS_CODES.get(type(error), 400)
    if isinstance(error, PlanValidationError):
        return HTTPException(status_code=status_code, detail={"errors": error.errors})
    if isinstance(error, PersistenceError):
        return HTTPException(status_code=status_code, detail="Storage unavailable")
    return HTTPException(status_code=status_code, detail=str(error))


@contextmanager
def transaction(db: Session, request_id: str, notifier: Optional[DeferredNotifier] = None) -> Iterator[None]:
    """
    Commit the request's work once on success, roll everything back on error.

    Buffered notifications go out only after the commit; a rollback replaces
    them with a single error. Domain errors become their mapped HTTP status;
    anything else is a 500.
    """
    try:
        yield
        db.commit()
    except DomainException as e:
        db.rollback()
        _settle_failure(notifier, f"Failed to save changes: {e}")
        logging.warning(f"{type(e).__name__}: {e}", extra={"request_id": request_id})
        raise to_http_exception(e)
    except HTTPException as e:
        db.rollback()
        _settle_failure(notifier, f"Failed to save changes: {e.detail}")
        raise
    except Exception as e:
        db.rollback()
        _settle_failure(notifier, "Failed to save changes")
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    if notifier is not None:
        notifier.deliver()


def _settle_failure(notifier: Optional[DeferredNotifier], message: str) -> None:
    if notifier is not None:
        notifier.fail(message)


@contextmanager
def mapped_errors(request_id: str) -> Iterator[None]:
    """Domain errors of read-only requests mapped to their HTTP status"""
    try:
        yield
    except DomainException as e:
        logging.warning(f"{type(e).__name__}: {e}", extra={"request_id": request_id})
        raise to_http_exception(e)

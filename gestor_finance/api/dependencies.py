"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Query, Request
from sqlalchemy.orm import Session

from gestor_finance.domain.ports import Notifier, RecordStore, StaticConfirmation
from gestor_finance.infrastructure.clients.notifier import build_notifier
from gestor_finance.infrastructure.database.session import get_db
from gestor_finance.infrastructure.database.store import SqlRecordStore
from gestor_finance.services.notifications import DeferredNotifier


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_store(db: Session = Depends(get_db)) -> RecordStore:
    """Record store bound to the request's database session"""
    return SqlRecordStore(db)


def get_notifier() -> Notifier:
    """Provide the configured notification channel"""
    return build_notifier()


def get_request_notifier(notifier: Notifier = Depends(get_notifier)) -> DeferredNotifier:
    """Notifications of one request, delivered once its transaction commits"""
    return DeferredNotifier(notifier)


def get_confirmation(
    confirm: bool = Query(False, description="Answer to the confirmation asked by irreversible operations"),
) -> StaticConfirmation:
    return StaticConfirmation(confirm)

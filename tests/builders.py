"""Record builders shared by the test suites"""

from datetime import date
from typing import Any, Dict, List, Optional

from gestor_finance.domain.ports import Collection

TODAY = date(2025, 3, 15)


class RecordingNotifier:
    """Notifier that keeps every notification for assertions"""

    def __init__(self):
        self.successes: List[str] = []
        self.errors: List[str] = []

    def notify_success(self, message: str) -> None:
        self.successes.append(message)

    def notify_error(self, message: str) -> None:
        self.errors.append(message)

    @property
    def count(self) -> int:
        return len(self.successes) + len(self.errors)


def service_record(
    service_id: str,
    total_value_cents: int,
    service_date: date = TODAY,
    payment_status: str = "unpaid",
    client_id: str = "client-1",
    **extra: Any,
) -> Dict[str, Any]:
    return {
        "id": service_id,
        "name": f"Service {service_id}",
        "date": service_date.isoformat(),
        "total_value_cents": total_value_cents,
        "payment_status": payment_status,
        "is_installment_payment": False,
        "installment_ids": [],
        "client_id": client_id,
        **extra,
    }


def expense_record(
    expense_id: str,
    value_cents: int,
    due_date: date = TODAY,
    is_paid: bool = False,
    category: str = "Rent",
) -> Dict[str, Any]:
    return {
        "id": expense_id,
        "description": f"Expense {expense_id}",
        "category": category,
        "value_cents": value_cents,
        "due_date": due_date.isoformat(),
        "is_paid": is_paid,
    }


def material_record(material_id: str, stock: int = 0, purchase_price_cents: int = 1000) -> Dict[str, Any]:
    return {
        "id": material_id,
        "type": "Cable",
        "model": f"Model {material_id}",
        "purchase_price_cents": purchase_price_cents,
        "selling_price_cents": purchase_price_cents * 2,
        "stock": stock,
        "status": "available",
    }


def seed_collections(
    services: Optional[List[Dict[str, Any]]] = None,
    expenses: Optional[List[Dict[str, Any]]] = None,
    materials: Optional[List[Dict[str, Any]]] = None,
    service_materials: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, List[Dict[str, Any]]]:
    return {
        Collection.CLIENTS: [{"id": "client-1", "name": "Maria Souza"}],
        Collection.SERVICES: services or [],
        Collection.EXPENSES: expenses or [],
        Collection.MATERIALS: materials or [],
        Collection.SERVICE_MATERIALS: service_materials or [],
    }

"""Ports the engine depends on - storage, notifications and confirmation"""

from typing import Any, Dict, List, Protocol

Record = Dict[str, Any]


class Collection:
    """Names of the record collections kept by the store"""

    USERS = "users"
    CLIENTS = "clients"
    MATERIALS = "materials"
    TECHNICIANS = "technicians"
    SERVICES = "services"
    SERVICE_MATERIALS = "service_materials"
    SERVICE_TECHNICIANS = "service_technicians"
    ORDERS = "orders"
    ORDER_MATERIALS = "order_materials"
    EXPENSES = "expenses"
    PAYMENTS = "payments"
    INSTALLMENTS = "installments"
    EQUIPMENTS = "equipments"
    APPOINTMENTS = "appointments"
    FINANCIAL_DATA = "financial_data"
    STOCK_MOVEMENTS = "stock_movements"
    TECHNICIAN_WORK_LOGS = "technician_work_logs"

    ALL = (
        USERS, CLIENTS, MATERIALS, TECHNICIANS, SERVICES, SERVICE_MATERIALS,
        SERVICE_TECHNICIANS, ORDERS, ORDER_MATERIALS, EXPENSES, PAYMENTS,
        INSTALLMENTS, EQUIPMENTS, APPOINTMENTS, FINANCIAL_DATA,
        STOCK_MOVEMENTS, TECHNICIAN_WORK_LOGS,
    )


class RecordStore(Protocol):
    """Key-value record store with whole-collection load/save.

    Implementations raise PersistenceError on any storage failure.
    """

    def load(self, collection: str) -> List[Record]: ...

    def save(self, collection: str, items: List[Record]) -> None: ...


class Notifier(Protocol):
    """Fire-and-forget user notifications; implementations never raise"""

    def notify_success(self, message: str) -> None: ...

    def notify_error(self, message: str) -> None: ...


class Confirmation(Protocol):
    """Synchronous yes/no question for irreversible operations"""

    def confirm(self, message: str) -> bool: ...


class StaticConfirmation:
    """Answers every confirmation with a fixed value (HTTP `confirm` flag, tests)"""

    def __init__(self, answer: bool):
        self.answer = answer
        self.questions: List[str] = []

    def confirm(self, message: str) -> bool:
        self.questions.append(message)
        return self.answer

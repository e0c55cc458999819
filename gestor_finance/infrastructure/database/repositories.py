"""Data access layer - typed repositories over record store collections"""

from dataclasses import fields
from datetime import date, datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from gestor_finance.domain.models import (
    Expense,
    FinancialSummary,
    Installment,
    InstallmentStatus,
    Material,
    MonthlyData,
    MovementReason,
    MovementType,
    PaymentStatus,
    Service,
    ServiceMaterial,
    StockMovement,
)
from gestor_finance.domain.ports import Collection, Record, RecordStore

T = TypeVar("T")


def _iso(value: date | datetime | None) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_date(value: Any) -> Optional[date]:
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    # Accept full timestamps too ("2025-03-01T00:00:00Z")
    return date.fromisoformat(str(value)[:10])


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


class Repository(Generic[T]):
    """Whole-collection load/save with record <-> dataclass mapping"""

    collection: str

    def __init__(self, store: RecordStore):
        self.store = store

    def to_record(self, item: T) -> Record:
        raise NotImplementedError

    def from_record(self, record: Record) -> T:
        raise NotImplementedError

    def list_all(self) -> List[T]:
        return [self.from_record(r) for r in self.store.load(self.collection)]

    def save_all(self, items: List[T]) -> None:
        self.store.save(self.collection, [self.to_record(i) for i in items])

    def get_by_id(self, item_id: str) -> Optional[T]:
        return next((i for i in self.list_all() if i.id == item_id), None)

    def upsert(self, item: T) -> None:
        """Replace the item with the same id, or append it"""
        items = self.list_all()
        for index, existing in enumerate(items):
            if existing.id == item.id:
                items[index] = item
                break
        else:
            items.append(item)
        self.save_all(items)


class InstallmentRepository(Repository[Installment]):
    collection = Collection.INSTALLMENTS

    def to_record(self, item: Installment) -> Record:
        return {
            "id": item.id,
            "service_id": item.service_id,
            "parcel_number": item.parcel_number,
            "amount_cents": item.amount_cents,
            "due_date": _iso(item.due_date),
            "status": InstallmentStatus(item.status).value,
            "paid_date": _iso(item.paid_date),
            "created_at": _iso(item.created_at),
            "updated_at": _iso(item.updated_at),
        }

    def from_record(self, record: Record) -> Installment:
        return Installment(
            id=record["id"],
            service_id=record["service_id"],
            parcel_number=int(record["parcel_number"]),
            amount_cents=int(record["amount_cents"]),
            due_date=_parse_date(record.get("due_date")),
            status=InstallmentStatus(record.get("status", InstallmentStatus.PENDING)),
            paid_date=_parse_date(record.get("paid_date")),
            created_at=_parse_datetime(record.get("created_at")),
            updated_at=_parse_datetime(record.get("updated_at")),
        )

    def list_by_service(self, service_id: str) -> List[Installment]:
        """Installments of one service ordered by parcel number"""
        return sorted(
            (i for i in self.list_all() if i.service_id == service_id),
            key=lambda i: i.parcel_number,
        )


class ServiceRepository(Repository[Service]):
    collection = Collection.SERVICES

    _known = {
        "id", "name", "date", "total_value_cents", "payment_status",
        "is_installment_payment", "installment_ids", "client_id",
        "equipment_id", "updated_at",
    }

    def to_record(self, item: Service) -> Record:
        record = dict(item.extra)
        record.update(
            {
                "id": item.id,
                "name": item.name,
                "date": _iso(item.date),
                "total_value_cents": item.total_value_cents,
                "payment_status": PaymentStatus(item.payment_status).value,
                "is_installment_payment": item.is_installment_payment,
                "installment_ids": list(item.installment_ids),
                "client_id": item.client_id,
                "equipment_id": item.equipment_id,
                "updated_at": _iso(item.updated_at),
            }
        )
        return record

    def from_record(self, record: Record) -> Service:
        return Service(
            id=record["id"],
            name=record.get("name", ""),
            date=_parse_date(record["date"]),
            total_value_cents=int(record.get("total_value_cents", 0)),
            payment_status=PaymentStatus(record.get("payment_status", PaymentStatus.UNPAID)),
            is_installment_payment=bool(record.get("is_installment_payment", False)),
            installment_ids=list(record.get("installment_ids") or []),
            client_id=record.get("client_id"),
            equipment_id=record.get("equipment_id"),
            updated_at=_parse_datetime(record.get("updated_at")),
            extra={k: v for k, v in record.items() if k not in self._known},
        )


class ExpenseRepository(Repository[Expense]):
    collection = Collection.EXPENSES

    def to_record(self, item: Expense) -> Record:
        return {
            "id": item.id,
            "description": item.description,
            "category": item.category,
            "value_cents": item.value_cents,
            "due_date": _iso(item.due_date),
            "is_paid": item.is_paid,
            "notes": item.notes,
            "created_at": _iso(item.created_at),
            "updated_at": _iso(item.updated_at),
        }

    def from_record(self, record: Record) -> Expense:
        return Expense(
            id=record["id"],
            description=record.get("description", ""),
            category=record.get("category", ""),
            value_cents=int(record.get("value_cents", 0)),
            due_date=_parse_date(record["due_date"]),
            is_paid=bool(record.get("is_paid", False)),
            notes=record.get("notes"),
            created_at=_parse_datetime(record.get("created_at")),
            updated_at=_parse_datetime(record.get("updated_at")),
        )


class MaterialRepository(Repository[Material]):
    collection = Collection.MATERIALS

    _known = {
        "id", "type", "model", "purchase_price_cents", "selling_price_cents",
        "stock", "status", "description", "updated_at",
    }

    def to_record(self, item: Material) -> Record:
        record = dict(item.extra)
        record.update(
            {
                "id": item.id,
                "type": item.type,
                "model": item.model,
                "description": item.description,
                "purchase_price_cents": item.purchase_price_cents,
                "selling_price_cents": item.selling_price_cents,
                "stock": item.stock,
                "status": item.status,
                "updated_at": _iso(item.updated_at),
            }
        )
        return record

    def from_record(self, record: Record) -> Material:
        return Material(
            id=record["id"],
            type=record.get("type", ""),
            model=record.get("model", ""),
            description=record.get("description", ""),
            purchase_price_cents=int(record.get("purchase_price_cents", 0)),
            selling_price_cents=int(record.get("selling_price_cents", 0)),
            stock=int(record.get("stock") or 0),
            status=record.get("status", "available"),
            updated_at=_parse_datetime(record.get("updated_at")),
            extra={k: v for k, v in record.items() if k not in self._known},
        )


class ServiceMaterialRepository(Repository[ServiceMaterial]):
    collection = Collection.SERVICE_MATERIALS

    def to_record(self, item: ServiceMaterial) -> Record:
        return {f.name: getattr(item, f.name) for f in fields(ServiceMaterial)}

    def from_record(self, record: Record) -> ServiceMaterial:
        return ServiceMaterial(
            id=record["id"],
            service_id=record["service_id"],
            material_id=record["material_id"],
            quantity=int(record.get("quantity", 0)),
            price_snapshot_cents=int(record.get("price_snapshot_cents", 0)),
        )


class StockMovementRepository(Repository[StockMovement]):
    collection = Collection.STOCK_MOVEMENTS

    def to_record(self, item: StockMovement) -> Record:
        return {
            "id": item.id,
            "material_id": item.material_id,
            "movement_type": MovementType(item.movement_type).value,
            "quantity": item.quantity,
            "reason": MovementReason(item.reason).value,
            "previous_stock": item.previous_stock,
            "new_stock": item.new_stock,
            "reference_id": item.reference_id,
            "notes": item.notes,
            "created_at": _iso(item.created_at),
        }

    def from_record(self, record: Record) -> StockMovement:
        return StockMovement(
            id=record["id"],
            material_id=record["material_id"],
            movement_type=MovementType(record["movement_type"]),
            quantity=int(record["quantity"]),
            reason=MovementReason(record.get("reason", MovementReason.MANUAL_ADJUSTMENT)),
            previous_stock=int(record["previous_stock"]),
            new_stock=int(record["new_stock"]),
            reference_id=record.get("reference_id"),
            notes=record.get("notes"),
            created_at=_parse_datetime(record.get("created_at")),
        )

    def append(self, movement: StockMovement) -> None:
        records = self.store.load(self.collection)
        records.append(self.to_record(movement))
        self.store.save(self.collection, records)


class FinancialDataRepository:
    """Single-record collection holding the latest financial summary"""

    collection = Collection.FINANCIAL_DATA
    record_id = "summary"

    def __init__(self, store: RecordStore):
        self.store = store

    def get(self) -> FinancialSummary:
        records = self.store.load(self.collection)
        if not records:
            return FinancialSummary()

        data: Dict[str, Any] = dict(records[0])
        data.pop("id", None)
        history = [
            MonthlyData(
                month=_parse_date(m["month"]),
                revenue_cents=int(m["revenue_cents"]),
                expenses_cents=int(m["expenses_cents"]),
            )
            for m in data.pop("monthly_history", [])
        ]
        known = {f.name for f in fields(FinancialSummary)}
        return FinancialSummary(
            monthly_history=history,
            **{k: v for k, v in data.items() if k in known},
        )

    def save(self, summary: FinancialSummary) -> None:
        record: Record = {f.name: getattr(summary, f.name) for f in fields(FinancialSummary)}
        record["id"] = self.record_id
        record["monthly_history"] = [
            {
                "month": _iso(m.month),
                "revenue_cents": m.revenue_cents,
                "expenses_cents": m.expenses_cents,
            }
            for m in summary.monthly_history
        ]
        self.store.save(self.collection, [record])

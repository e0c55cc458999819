"""Record store implementations - SQLAlchemy-backed and in-memory"""

import copy
from typing import Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gestor_finance.domain.exceptions import PersistenceError
from gestor_finance.domain.ports import Record
from gestor_finance.infrastructure.database.models import StoredRecord


class SqlRecordStore:
    """
    Record store over the stored_record table.

    Writes are flushed, never committed: the caller owns the transaction, so
    a multi-collection mutation commits or rolls back as a whole.
    """

    def __init__(self, db: Session):
        self.db = db

    def load(self, collection: str) -> List[Record]:
        try:
            rows = (
                self.db.query(StoredRecord)
                .filter(StoredRecord.collection == collection)
                .order_by(StoredRecord.position)
                .all()
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load {collection}: {e}") from e

        return [copy.deepcopy(row.payload) for row in rows]

    def save(self, collection: str, items: List[Record]) -> None:
        try:
            existing: Dict[str, StoredRecord] = {
                row.id: row
                for row in self.db.query(StoredRecord).filter(StoredRecord.collection == collection)
            }

            kept = set()
            for position, item in enumerate(items):
                record_id = _record_id(collection, item)
                row = existing.get(record_id)
                if row is None:
                    row = StoredRecord(collection=collection, id=record_id)
                    self.db.add(row)
                row.position = position
                row.payload = copy.deepcopy(item)
                existing[record_id] = row
                kept.add(record_id)

            for record_id, row in existing.items():
                if record_id not in kept:
                    self.db.delete(row)

            self.db.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save {collection}: {e}") from e


class InMemoryRecordStore:
    """Record store kept in a dict; no transactions, each save is final"""

    def __init__(self, initial: Dict[str, List[Record]] | None = None):
        self._collections: Dict[str, List[Record]] = copy.deepcopy(initial or {})

    def load(self, collection: str) -> List[Record]:
        return copy.deepcopy(self._collections.get(collection, []))

    def save(self, collection: str, items: List[Record]) -> None:
        for item in items:
            _record_id(collection, item)
        self._collections[collection] = copy.deepcopy(list(items))


def _record_id(collection: str, item: Record) -> str:
    record_id = item.get("id")
    if not record_id:
        raise PersistenceError(f"Record without id in {collection}")
    return str(record_id)

"""
Backup manager - full-state export and all-or-nothing restore.

A backup bundles every record-store collection with a checksum and a
format tag. Restore validates the whole payload (structure, checksum,
referential integrity) before anything is written.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from gestor_finance.config import settings
from gestor_finance.domain.ports import Collection, Notifier, Record, RecordStore
from gestor_finance.infrastructure.clients.notifier import LoggingNotifier
from gestor_finance.services.notifications import notify_on_failure

DATA_VERSION = "normalized"

OPTIONAL_COLLECTIONS = (Collection.STOCK_MOVEMENTS, Collection.TECHNICIAN_WORK_LOGS)
REQUIRED_COLLECTIONS = tuple(c for c in Collection.ALL if c not in OPTIONAL_COLLECTIONS)

# (child collection, foreign key, parent collection, optional reference)
FOREIGN_KEYS: Tuple[Tuple[str, str, str, bool], ...] = (
    (Collection.SERVICES, "client_id", Collection.CLIENTS, False),
    (Collection.SERVICES, "equipment_id", Collection.EQUIPMENTS, True),
    (Collection.SERVICE_MATERIALS, "service_id", Collection.SERVICES, False),
    (Collection.SERVICE_MATERIALS, "material_id", Collection.MATERIALS, False),
    (Collection.SERVICE_TECHNICIANS, "service_id", Collection.SERVICES, False),
    (Collection.SERVICE_TECHNICIANS, "technician_id", Collection.TECHNICIANS, False),
    (Collection.INSTALLMENTS, "service_id", Collection.SERVICES, False),
    (Collection.PAYMENTS, "service_id", Collection.SERVICES, False),
    (Collection.ORDERS, "related_service_id", Collection.SERVICES, True),
    (Collection.ORDER_MATERIALS, "order_id", Collection.ORDERS, False),
    (Collection.ORDER_MATERIALS, "material_id", Collection.MATERIALS, False),
    (Collection.EQUIPMENTS, "client_id", Collection.CLIENTS, False),
    (Collection.APPOINTMENTS, "client_id", Collection.CLIENTS, True),
    (Collection.APPOINTMENTS, "service_id", Collection.SERVICES, True),
    (Collection.STOCK_MOVEMENTS, "material_id", Collection.MATERIALS, False),
    (Collection.TECHNICIAN_WORK_LOGS, "service_id", Collection.SERVICES, False),
    (Collection.TECHNICIAN_WORK_LOGS, "technician_id", Collection.TECHNICIANS, False),
)


@dataclass
class BackupValidation:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    stats: Optional[Dict[str, int]] = None


@dataclass
class BackupImportResult:
    success: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    imported_counts: Dict[str, int] = field(default_factory=dict)
    is_dry_run: bool = False


def serialize_data(data: Dict[str, Any]) -> str:
    """Canonical form used for checksums: compact, key-sorted JSON"""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def checksum(content: str) -> str:
    """
    32-bit rolling hash (h = h * 31 + code unit) over UTF-16 code units,
    wrapped to a signed 32-bit integer; hex of its absolute value.
    """
    encoded = content.encode("utf-16-le")
    h = 0
    for i in range(0, len(encoded), 2):
        unit = encoded[i] | (encoded[i + 1] << 8)
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return format(abs(h), "x")


def record_errors(data: Dict[str, Any]) -> List[str]:
    """Every record must be an object carrying an id"""
    errors = []
    for name in Collection.ALL:
        for index, record in enumerate(data.get(name) or []):
            if not isinstance(record, dict) or not record.get("id"):
                errors.append(f"{name}[{index}]: record without id")
    return errors


def integrity_errors(data: Dict[str, Any]) -> List[str]:
    """Every foreign key among the collections must resolve"""
    ids = {
        name: {record.get("id") for record in data.get(name) or [] if isinstance(record, dict)}
        for name in Collection.ALL
    }
    errors = []
    for child, key, parent, optional in FOREIGN_KEYS:
        for record in data.get(child) or []:
            reference = record.get(key)
            if reference is None and optional:
                continue
            if reference not in ids[parent]:
                errors.append(
                    f"{child} {record.get('id')} references non-existent {parent} record {reference}"
                )
    return errors


class BackupManager:
    """Exports, validates and restores the full record-store state"""

    def __init__(self, store: RecordStore, notifier: Optional[Notifier] = None):
        self.store = store
        self.notifier = notifier or LoggingNotifier()

    def export(self) -> Dict[str, Any]:
        data = {name: self.store.load(name) for name in Collection.ALL}
        backup = {
            "metadata": {
                "version": settings.backup_format_version,
                "export_date": datetime.now(timezone.utc).isoformat(),
                "data_version": DATA_VERSION,
                "checksum": checksum(serialize_data(data)),
            },
            "data": data,
        }
        logging.info(
            "Backup exported",
            extra={"collections": len(data), "records": sum(len(v) for v in data.values())},
        )
        return backup

    def validate(self, backup: Any) -> BackupValidation:
        """
        Check a backup payload without writing anything.

        Structural problems stop validation early; otherwise every
        violation is collected so the caller sees them all at once.
        """
        if not isinstance(backup, dict) or not isinstance(backup.get("metadata"), dict):
            return BackupValidation(is_valid=False, errors=["Missing metadata"])

        data = backup.get("data")
        if not isinstance(data, dict):
            return BackupValidation(is_valid=False, errors=["Missing data"])

        errors: List[str] = []
        warnings: List[str] = []

        if backup["metadata"].get("checksum") != checksum(serialize_data(data)):
            errors.append("Data integrity check failed - checksum mismatch")

        for name in REQUIRED_COLLECTIONS:
            if not isinstance(data.get(name), list):
                errors.append(f"Invalid or missing {name} collection")

        for name in OPTIONAL_COLLECTIONS:
            if name not in data:
                warnings.append(f"Backup has no {name} collection; it will be left untouched")
            elif not isinstance(data[name], list):
                errors.append(f"Invalid {name} collection")

        version = backup["metadata"].get("version")
        if version != settings.backup_format_version:
            warnings.append(f"Backup format version {version} differs from {settings.backup_format_version}")

        if not errors:
            errors.extend(record_errors(data))
        if not errors:
            errors.extend(integrity_errors(data))

        stats = None
        if not errors:
            stats = {name: len(data.get(name) or []) for name in Collection.ALL}

        return BackupValidation(is_valid=not errors, errors=errors, warnings=warnings, stats=stats)

    def restore(self, backup: Any, dry_run: bool = False) -> BackupImportResult:
        """
        Replace the stored collections with the backup's.

        Nothing is written unless the whole backup validates. A dry run only
        reports what would be imported.
        """
        validation = self.validate(backup)
        if not validation.is_valid:
            logging.warning("Backup rejected", extra={"error_count": len(validation.errors)})
            if not dry_run:
                self.notifier.notify_error(f"Backup rejected: {len(validation.errors)} error(s)")
            return BackupImportResult(
                success=False,
                errors=validation.errors,
                warnings=validation.warnings,
                is_dry_run=dry_run,
            )

        data = backup["data"]
        present = [name for name in Collection.ALL if name in data]
        counts = {name: len(data[name]) for name in present}

        if dry_run:
            return BackupImportResult(
                success=True,
                warnings=validation.warnings,
                imported_counts=counts,
                is_dry_run=True,
            )

        with notify_on_failure(self.notifier, "Failed to restore backup"):
            for name in present:
                records: List[Record] = data[name]
                self.store.save(name, records)

        logging.info("Backup restored", extra={"imported_counts": counts})
        self.notifier.notify_success("Backup restored")
        return BackupImportResult(
            success=True,
            warnings=validation.warnings,
            imported_counts=counts,
            is_dry_run=False,
        )

    def restore_json(self, content: str, dry_run: bool = False) -> BackupImportResult:
        """Restore from a serialized backup file"""
        try:
            backup = json.loads(content)
        except json.JSONDecodeError as e:
            return BackupImportResult(
                success=False,
                errors=[f"Invalid backup file format: {e}"],
                is_dry_run=dry_run,
            )
        return self.restore(backup, dry_run=dry_run)
